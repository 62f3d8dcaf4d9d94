# lms_chat/services/chat/presence_registry.py
"""Which live connection a user's pushes go to."""
from typing import Dict, Generic, List, Optional, TypeVar
from uuid import UUID
import threading
import logging

logger = logging.getLogger(__name__)

H = TypeVar('H')


class PresenceRegistry(Generic[H]):
    """userId -> most recent connection handle.

    One entry per user: a later register replaces the earlier handle. Entries
    live only in this process and are lost on restart.
    """

    def __init__(self):
        self._connections: Dict[str, H] = {}
        self._lock = threading.Lock()
        self._closed = False

    def register(self, user_id: UUID, handle: H) -> Optional[H]:
        """Point user_id at handle; returns the handle it superseded, if any"""
        user_key = str(user_id)
        with self._lock:
            if self._closed:
                raise RuntimeError("Presence registry is closed")
            previous = self._connections.get(user_key)
            self._connections[user_key] = handle

        if previous is not None and previous is not handle:
            logger.info(f"User {user_key} reconnected; previous connection superseded")
        return previous

    def unregister(self, handle: H) -> bool:
        """Drop entries that still point at this exact handle.

        A stale disconnect from a superseded connection leaves the newer entry alone.
        """
        with self._lock:
            user_keys = [key for key, current in self._connections.items() if current is handle]
            for key in user_keys:
                del self._connections[key]

        for key in user_keys:
            logger.info(f"User {key} went offline")
        return bool(user_keys)

    def lookup(self, user_id: UUID) -> Optional[H]:
        with self._lock:
            return self._connections.get(str(user_id))

    def is_online(self, user_id: UUID) -> bool:
        return self.lookup(user_id) is not None

    def online_users(self) -> List[str]:
        with self._lock:
            return list(self._connections)

    def close(self):
        """Forget every entry; called once at shutdown"""
        with self._lock:
            count = len(self._connections)
            self._connections.clear()
            self._closed = True
        logger.info(f"Presence registry closed ({count} connection(s) dropped)")

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)
