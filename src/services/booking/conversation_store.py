"""Per-caller conversation state with TTL expiry and a size bound.

This module provides thread-safe storage for in-progress booking dialogues.
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple

from loguru import logger

from ...models.booking import AvailabilityOptions, ResumableContext


@dataclass
class ConversationState:
    """What is known about one caller's booking so far."""

    service: Optional[str] = None
    specialty: Optional[str] = None
    location: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    doctor: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    # Parameters the portal has accepted so far
    context: Optional[ResumableContext] = None
    # Options offered on the last turn
    options: AvailabilityOptions = field(default_factory=AvailabilityOptions)


class ConversationStore:
    """Thread-safe map from caller id to ConversationState."""

    def __init__(
        self,
        ttl_seconds: float = 1800,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize conversation store.

        Args:
            ttl_seconds: Drop conversations idle for longer than this
            max_entries: Evict the least recently updated entry beyond this
            clock: Monotonic time source
        """
        self._entries: "OrderedDict[str, Tuple[float, ConversationState]]" = OrderedDict()
        self._lock = threading.RLock()
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock

    def _expired(self, stamp: float, now: float) -> bool:
        return now - stamp > self._ttl

    def get(self, caller_id: str) -> Optional[ConversationState]:
        """Get a caller's state, dropping it if it has expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(caller_id)
            if entry is None:
                return None
            stamp, state = entry
            if self._expired(stamp, now):
                del self._entries[caller_id]
                logger.debug(f"Conversation {caller_id} expired")
                return None
            return state

    def put(self, caller_id: str, state: ConversationState) -> None:
        """Store a caller's state and mark it as most recently updated."""
        now = self._clock()
        with self._lock:
            self._entries[caller_id] = (now, state)
            self._entries.move_to_end(caller_id)
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.info(f"Conversation store full, evicted {evicted}")

    def delete(self, caller_id: str) -> bool:
        """
        Drop a caller's state.

        Returns:
            True if state was found and removed
        """
        with self._lock:
            return self._entries.pop(caller_id, None) is not None

    def purge_expired(self) -> int:
        """
        Remove expired conversations.

        Returns:
            Number of conversations removed
        """
        now = self._clock()
        with self._lock:
            expired_ids = [
                caller_id
                for caller_id, (stamp, _) in self._entries.items()
                if self._expired(stamp, now)
            ]
            for caller_id in expired_ids:
                del self._entries[caller_id]

        if expired_ids:
            logger.info(f"Purged {len(expired_ids)} expired conversations")
        return len(expired_ids)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, caller_id: object) -> bool:
        return isinstance(caller_id, str) and self.get(caller_id) is not None
