"""
File-backed intent store, safe across threads and processes.
"""
import os
import json
import stat
import time
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import portalocker

from .base import IntentStore

logger = logging.getLogger(__name__)

LOCK_TIMEOUT = 10


class FileIntentStore(IntentStore):
    """
    Intents kept in one JSON document.

    Every operation holds a ``portalocker`` lock on a sibling ``.lock`` file
    for the whole read-check-write, and writes go through a temporary file
    followed by ``os.replace``.
    """

    def __init__(self, store_path: Optional[str] = None, clock: Callable[[], float] = time.time):
        super().__init__(clock)
        if store_path:
            self.store_path = Path(store_path)
        else:
            self.store_path = Path(os.environ.get(
                "TXINTENT_STORE_PATH", os.path.expanduser("~/.txintent/intents.json")
            ))
        self._ensure_dir()

    def _ensure_dir(self):
        directory = self.store_path.parent
        if not directory.exists():
            directory.mkdir(parents=True, exist_ok=True)
            if os.name == "posix":
                os.chmod(directory, stat.S_IRUSR | stat.S_IWUSR | stat.S_IXUSR)  # 0700

    def _get_lock_path(self) -> str:
        return str(self.store_path) + ".lock"

    def _read(self) -> Dict[str, Dict[str, Any]]:
        try:
            with open(self.store_path, "r") as f:
                return json.load(f).get("intents", {})
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as e:
            raise ValueError(f"Intent store {self.store_path} is corrupt: {e}") from e

    def _write(self, records: Dict[str, Dict[str, Any]]) -> None:
        tmp_path = str(self.store_path) + ".tmp"
        with open(tmp_path, "w") as f:
            json.dump({"intents": records}, f, indent=2)
        if os.name == "posix":
            os.chmod(tmp_path, stat.S_IRUSR | stat.S_IWUSR)  # 0600
        os.replace(tmp_path, self.store_path)

    @contextmanager
    def _records(self, write: bool = False):
        with portalocker.Lock(self._get_lock_path(), timeout=LOCK_TIMEOUT):
            records = self._read()
            yield records
            if write:
                self._write(records)
