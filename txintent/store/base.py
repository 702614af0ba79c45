"""
Intent persistence with expiry and a single-writer completion transition.
"""
import time
import logging
from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any, Callable, Dict

from ..exceptions import AlreadyCompletedError, ExpiredError, NotFoundError
from ..models import Intent

logger = logging.getLogger(__name__)


class IntentStore(ABC):
    """
    Base class for intent stores.

    Subclasses only provide :meth:`_records`, a locked view of the raw
    records keyed by intent id. Every read-check-write below happens inside
    one such view, so ``complete`` is a single conditional update.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock

    @abstractmethod
    def _records(self, write: bool = False) -> AbstractContextManager:
        """Context manager yielding ``{intent_id: record}`` under the store lock"""

    def _check_pending(self, intent: Intent) -> None:
        if intent.is_completed:
            raise AlreadyCompletedError(f"Intent {intent.id} is already completed")
        if intent.is_expired(self.clock()):
            raise ExpiredError(f"Intent {intent.id} has expired")

    @staticmethod
    def _load(records: Dict[str, Dict[str, Any]], intent_id: str) -> Intent:
        record = records.get(intent_id)
        if record is None:
            raise NotFoundError(f"Intent {intent_id} not found")
        return Intent.model_validate(record)

    def insert(self, intent: Intent) -> None:
        with self._records(write=True) as records:
            if intent.id in records:
                raise ValueError(f"Duplicate intent id: {intent.id}")
            records[intent.id] = intent.model_dump(mode="json")
        logger.debug(f"Stored intent {intent.id[:8]}...")

    def fetch(self, intent_id: str) -> Intent:
        """Intent regardless of state"""
        with self._records() as records:
            return self._load(records, intent_id)

    def get_pending(self, intent_id: str) -> Intent:
        """
        Raises:
            NotFoundError: Unknown id
            AlreadyCompletedError: Completion already recorded
            ExpiredError: ``now >= expires_at``
        """
        intent = self.fetch(intent_id)
        self._check_pending(intent)
        return intent

    def complete(self, intent_id: str, txn_hash: str) -> Intent:
        """Record ``txn_hash`` on a pending intent, at most once"""
        with self._records(write=True) as records:
            intent = self._load(records, intent_id)
            self._check_pending(intent)
            completed = intent.model_copy(update={"completion_hash": txn_hash})
            records[intent_id] = completed.model_dump(mode="json")
        return completed

    def purge_expired(self) -> int:
        """Remove expired intents that were never completed"""
        now = self.clock()
        with self._records(write=True) as records:
            expired = [
                intent_id for intent_id, record in records.items()
                if record.get("completion_hash") is None and now >= record["expires_at"]
            ]
            for intent_id in expired:
                del records[intent_id]
        if expired:
            logger.info(f"Purged {len(expired)} expired intent(s)")
        return len(expired)
