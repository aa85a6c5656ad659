"""
Typing indicators: best-effort, per-process presence with a short TTL.

Entries live only in this server instance and are never persisted; a
background task (started on application startup) sweeps expired entries.
"""
import asyncio
import logging
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from socialgraph.config import settings

logger = logging.getLogger(__name__)


class TypingIndicatorCache:
    def __init__(self, ttl_seconds: float = 5.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[Tuple[str, str], float] = {}

    def set_typing(self, sender_id: str, receiver_id: str, is_typing: bool = True) -> None:
        key = (sender_id, receiver_id)
        with self._lock:
            if is_typing:
                self._entries[key] = self._clock()
            else:
                self._entries.pop(key, None)

    def clear(self, sender_id: str, receiver_id: str) -> None:
        self.set_typing(sender_id, receiver_id, False)

    def is_typing(self, sender_id: str, receiver_id: str) -> bool:
        """True if sender_id signalled typing to receiver_id within the TTL"""
        with self._lock:
            stamp = self._entries.get((sender_id, receiver_id))
        return stamp is not None and self._clock() - stamp < self.ttl_seconds

    def sweep(self) -> int:
        """Drop expired entries; returns how many were removed"""
        now = self._clock()
        with self._lock:
            expired = [key for key, stamp in self._entries.items() if now - stamp >= self.ttl_seconds]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


typing_cache = TypingIndicatorCache(ttl_seconds=settings.typing_ttl_seconds)


def get_typing_cache() -> TypingIndicatorCache:
    return typing_cache


async def typing_sweep_loop(cache: Optional[TypingIndicatorCache] = None, interval: Optional[float] = None):
    """Background task that periodically drops expired typing indicators"""
    cache = cache or typing_cache
    interval = interval or settings.typing_sweep_interval_seconds
    while True:
        try:
            removed = cache.sweep()
            if removed:
                logger.debug(f"Swept {removed} expired typing indicator(s)")
        except Exception as e:
            logger.error(f"Error in typing sweep loop: {str(e)}")
        await asyncio.sleep(interval)
