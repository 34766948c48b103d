"""Cart persistence.

Four JSON entries per session, mirroring what the table UI keeps in local
storage: cart items, finalized ids, cancelled ids and the order-completed
flag. Storage is best effort: failures are logged and the in-memory state
stays authoritative.
"""
import json
from typing import Any, List, Optional

from pydantic import ValidationError

from ..app.session import KeyValueStore
from ..data.models import CartItem
from ..utils.logger import get_logger
from .cart import CartState, LoadState

logger = get_logger()

CART_KEY = "gelaboca-cart"
FINALIZED_KEY = "gelaboca-finalized"
CANCELLED_KEY = "gelaboca-cancelled"
ORDER_COMPLETED_KEY = "gelaboca-order-completed"

ALL_KEYS = (CART_KEY, FINALIZED_KEY, CANCELLED_KEY, ORDER_COMPLETED_KEY)


class CartStorage:
    def __init__(self, store: KeyValueStore):
        self.store = store

    def _key(self, session_id: str, name: str) -> str:
        return f"cart:{session_id}:{name}"

    def _read(self, session_id: str, name: str, default: Any) -> Any:
        raw = self.store.get(self._key(session_id, name))
        if raw is None:
            return default
        return json.loads(raw)

    def load(self, session_id: str) -> Optional[LoadState]:
        """
        Restore the persisted snapshot; absent keys mean empty/false.

        Unreadable data restores as an empty cart. Returns None when the
        store itself could not be reached.
        """
        try:
            items_raw = self._read(session_id, CART_KEY, [])
            finalized: List[str] = self._read(session_id, FINALIZED_KEY, [])
            cancelled: List[str] = self._read(session_id, CANCELLED_KEY, [])
            completed = self._read(session_id, ORDER_COMPLETED_KEY, False)
            return LoadState(
                items=tuple(CartItem.model_validate(item) for item in items_raw),
                finalized_items=tuple(str(i) for i in finalized),
                cancelled_items=tuple(str(i) for i in cancelled),
                is_order_completed=bool(completed),
            )
        except (ValueError, TypeError, ValidationError) as e:
            logger.error("Failed to load cart for session %s: %s", session_id, e)
            return LoadState()
        except Exception as e:
            logger.error("Cart storage unavailable for session %s: %s", session_id, e)
            return None

    def save(self, session_id: str, state: CartState) -> bool:
        """Write the full persisted tuple. Returns False when the write failed."""
        entries = {
            CART_KEY: [item.model_dump(by_alias=True) for item in state.items],
            FINALIZED_KEY: list(state.finalized_items),
            CANCELLED_KEY: list(state.cancelled_items),
            ORDER_COMPLETED_KEY: state.is_order_completed,
        }
        try:
            for name, value in entries.items():
                self.store.set(self._key(session_id, name), json.dumps(value, ensure_ascii=False))
            return True
        except Exception as e:
            logger.error("Failed to save cart for session %s: %s", session_id, e)
            return False

    def erase(self, session_id: str) -> bool:
        try:
            for name in ALL_KEYS:
                self.store.delete(self._key(session_id, name))
            return True
        except Exception as e:
            logger.error("Failed to erase cart for session %s: %s", session_id, e)
            return False
