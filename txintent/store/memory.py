"""
In-process intent store.
"""
import time
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict

from .base import IntentStore


class MemoryIntentStore(IntentStore):
    """Thread-safe store holding intents in a dict"""

    def __init__(self, clock: Callable[[], float] = time.time):
        super().__init__(clock)
        self._data: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    @contextmanager
    def _records(self, write: bool = False):
        with self._lock:
            yield self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
