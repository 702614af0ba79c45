"""
Intent lifecycle: create, read, build and complete.

This is the transport-agnostic surface; an HTTP app or the CLI sits on top.
"""
import time
import uuid
import logging
from typing import Any, Callable, Dict, Optional

from .exceptions import ValidationError
from .handlers.registry import HandlerRegistry, build_default_registry
from .models import (
    DEFAULT_TTL_SECONDS,
    BuildResponse,
    CompletionAck,
    CreateResponse,
    Intent,
    IntentView,
)
from .store.base import IntentStore
from .store.memory import MemoryIntentStore

logger = logging.getLogger(__name__)


def _short(intent_id: str) -> str:
    return f"{intent_id[:8]}..."


class IntentService:
    """
    Wires the handler registry to an intent store.

    Args:
        registry: Handler registry (defaults to every shipped handler)
        store: Intent store (defaults to an in-memory store)
        ttl_seconds: Lifetime of new intents
        clock: Epoch-seconds clock used for ``created_at``
    """

    def __init__(
        self,
        registry: Optional[HandlerRegistry] = None,
        store: Optional[IntentStore] = None,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.registry = registry if registry is not None else build_default_registry()
        self.store = store if store is not None else MemoryIntentStore(clock=clock)
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)

    def create(self, intent_type: str, payload: Dict[str, Any]) -> CreateResponse:
        handler = self.registry.get_handler(intent_type)
        result = handler.create(payload)

        now = self.clock()
        intent = Intent(
            id=uuid.uuid4().hex,
            type=intent_type,
            chain=result.chain,
            data=result.data,
            created_at=now,
            expires_at=now + self.ttl_seconds,
        )
        self.store.insert(intent)
        self.logger.info(f"Created {intent_type} intent {_short(intent.id)} on {intent.chain}")
        return CreateResponse(
            intent_id=intent.id,
            chain=intent.chain,
            expires_at=intent.expires_at,
            extras=result.extras,
        )

    def get(self, intent_id: str) -> IntentView:
        intent = self.store.get_pending(intent_id)
        return IntentView(type=intent.type, chain=intent.chain, data=intent.data, expires_at=intent.expires_at)

    def build(self, intent_id: str, address: str) -> BuildResponse:
        """Recompute unsigned transactions against current chain state; nothing is persisted"""
        if not address:
            raise ValidationError.for_field("address", "Missing required field: address")
        intent = self.store.get_pending(intent_id)
        handler = self.registry.get_handler(intent.type)
        result = handler.build(dict(intent.data), address)
        self.logger.info(
            f"Built {len(result.transactions)} transaction(s) for intent {_short(intent_id)}"
        )
        return BuildResponse(chain=intent.chain, transactions=result.transactions, auxiliary=result.auxiliary)

    def complete(self, intent_id: str, txn_hash: str) -> CompletionAck:
        if not txn_hash or not txn_hash.strip():
            raise ValidationError.for_field("txnHash", "Missing required field: txnHash")
        self.store.complete(intent_id, txn_hash.strip())
        self.logger.info(f"Completed intent {_short(intent_id)} with {txn_hash[:12]}...")
        return CompletionAck(intent_id=intent_id, txn_hash=txn_hash.strip())

    def purge_expired(self) -> int:
        return self.store.purge_expired()
