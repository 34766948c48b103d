#!/usr/bin/env python3
"""
Session management module for the GelaBoca assistant.

Conversation histories and cart entries live in a key-value store. Redis is
used when it is configured and reachable; otherwise an in-memory store is
used so a single process can still serve the app.
"""

import json
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

import redis

from .config import Config
from ..schemas.io_models import ChatMessage
from ..utils.logger import get_logger

logger = get_logger()

SYSTEM_GREETING = (
    "Você é o GelinhIA, assistente virtual da sorveteria GelaBoca. "
    "Seja sempre amigável e prestativo!"
)


class KeyValueStore:
    """Minimal string key-value interface used for sessions and carts."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class InMemoryStore(KeyValueStore):
    def __init__(self):
        self._data: Dict[str, str] = {}
        self._guard = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._guard:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._guard:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._guard:
            self._data.pop(key, None)


class RedisStore(KeyValueStore):
    def __init__(self, client: "redis.Redis"):
        self.redis_client = client

    def get(self, key: str) -> Optional[str]:
        return self.redis_client.get(key)

    def set(self, key: str, value: str) -> None:
        self.redis_client.set(key, value)

    def delete(self, key: str) -> None:
        self.redis_client.delete(key)


def create_store() -> KeyValueStore:
    """Build the configured store, falling back to memory when Redis is down."""
    if Config.SESSION_BACKEND != "redis":
        logger.info("Using in-memory session storage")
        return InMemoryStore()
    try:
        client = redis.Redis(
            host=Config.REDIS_HOST,
            port=Config.REDIS_PORT,
            db=Config.REDIS_DB,
            decode_responses=True,
        )
        # Test Redis connection
        client.ping()
        logger.info("Using Redis for session storage at %s:%s", Config.REDIS_HOST, Config.REDIS_PORT)
        return RedisStore(client)
    except redis.RedisError as e:
        logger.warning("Redis not available (%s), using in-memory session storage", e)
        return InMemoryStore()


class SessionLocks:
    """
    One lock per session id, alive only while someone holds or waits on it.

    Entries are reference counted and dropped when the last holder leaves,
    so the registry never outgrows the number of in-flight requests.
    """

    def __init__(self):
        self._entries: Dict[str, list] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    @contextmanager
    def hold(self, session_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(session_id)
            if entry is None:
                entry = self._entries[session_id] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[session_id]


class SessionManager:
    """Manages per-session conversation history."""

    def __init__(self, store: KeyValueStore, max_messages: Optional[int] = None):
        self.store = store
        self.max_messages = max_messages or Config.MAX_HISTORY_MESSAGES
        self.locks = SessionLocks()

    def _get_session_key(self, session_id: str) -> str:
        return f"chat:{session_id}"

    def lock(self, session_id: str):
        """
        Context manager that serializes requests of one session.

        Holding it across read-process-append keeps history appends in
        arrival order when the same session sends concurrent requests.
        """
        return self.locks.hold(session_id)

    def get_history(self, session_id: str) -> List[ChatMessage]:
        """
        Retrieve the conversation history, seeding new sessions.

        Args:
            session_id: Client-chosen session identifier

        Returns:
            Messages in order, starting with the system message
        """
        raw = self.store.get(self._get_session_key(session_id))
        if raw:
            try:
                return [ChatMessage(**m) for m in json.loads(raw)]
            except (ValueError, TypeError) as e:
                logger.warning("Discarding unreadable history for session %s: %s", session_id, e)
        return [ChatMessage(role="system", content=SYSTEM_GREETING)]

    def _save(self, session_id: str, history: List[ChatMessage]) -> None:
        payload = json.dumps([m.model_dump() for m in history], ensure_ascii=False)
        self.store.set(self._get_session_key(session_id), payload)

    def truncate(self, history: List[ChatMessage]) -> List[ChatMessage]:
        """Keep the system message plus the most recent max-1 messages."""
        if len(history) <= self.max_messages:
            return history
        return [history[0]] + history[-(self.max_messages - 1):]

    def append(self, session_id: str, role: str, content: str) -> List[ChatMessage]:
        """
        Add a message to the session history and persist it.

        Args:
            session_id: Client-chosen session identifier
            role: user or assistant
            content: Message text

        Returns:
            The updated (possibly truncated) history
        """
        history = self.get_history(session_id)
        history.append(ChatMessage(role=role, content=content))
        history = self.truncate(history)
        self._save(session_id, history)
        return history

    def clear(self, session_id: str) -> None:
        self.store.delete(self._get_session_key(session_id))
