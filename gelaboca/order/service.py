"""Cart service: applies commands and performs the persistence effect.

The store is the source of truth for the persisted part of a cart, so every
worker sharing it sees the same cart. A small in-process cache keeps what the
store does not hold: the transient modal flags, and the whole state of a
session whose last write failed, until a later write succeeds.
"""
import threading
from collections import OrderedDict
from typing import Optional

from ..app.config import Config
from ..app.session import SessionLocks
from ..utils.logger import get_logger
from .cart import PERSISTED_COMMANDS, CartCommand, CartState, StartNewOrder, reduce
from .storage import CartStorage

logger = get_logger()


class _CachedCart:
    __slots__ = ("state", "synced")

    def __init__(self, state: CartState, synced: bool):
        self.state = state
        self.synced = synced


class CartService:
    def __init__(self, storage: CartStorage, max_sessions: Optional[int] = None):
        self.storage = storage
        self.max_sessions = max_sessions or Config.CART_CACHE_SIZE
        self.locks = SessionLocks()
        self._cache: "OrderedDict[str, _CachedCart]" = OrderedDict()
        self._cache_guard = threading.Lock()

    def _cached(self, session_id: str) -> Optional[_CachedCart]:
        with self._cache_guard:
            entry = self._cache.get(session_id)
            if entry is not None:
                self._cache.move_to_end(session_id)
            return entry

    def _remember(self, session_id: str, state: CartState, synced: bool) -> None:
        with self._cache_guard:
            self._cache[session_id] = _CachedCart(state, synced)
            self._cache.move_to_end(session_id)
            while len(self._cache) > self.max_sessions:
                evicted, entry = self._cache.popitem(last=False)
                if not entry.synced:
                    logger.warning("Dropping unsaved cart of session %s from cache", evicted)

    def _current(self, session_id: str) -> CartState:
        entry = self._cached(session_id)
        if entry is not None and not entry.synced:
            # the store is behind this process, memory wins
            return entry.state
        base = entry.state if entry is not None else CartState()
        loaded = self.storage.load(session_id)
        if loaded is None:
            return base
        return reduce(base, loaded)

    def get(self, session_id: str) -> CartState:
        with self.locks.hold(session_id):
            return self._current(session_id)

    def dispatch(self, session_id: str, command: CartCommand) -> CartState:
        """
        Apply a command to the session cart.

        The transition always takes effect; storage is written afterwards and
        a failed write is only logged, the state staying cached until a later
        write goes through.
        """
        with self.locks.hold(session_id):
            previous = self._current(session_id)
            state = reduce(previous, command)

            entry = self._cached(session_id)
            synced = entry.synced if entry is not None else True
            if isinstance(command, StartNewOrder):
                synced = self.storage.erase(session_id)
            elif isinstance(command, PERSISTED_COMMANDS):
                synced = self.storage.save(session_id, state)
            self._remember(session_id, state, synced)

        if state is previous:
            logger.debug("Cart command %s ignored for session %s", command.type, session_id)
        return state
