"""
txintent: validated transaction intents assembled into unsigned transactions.
"""
from .exceptions import (
    IntentError,
    ValidationError,
    UnsupportedTypeError,
    NotFoundError,
    ExpiredError,
    AlreadyCompletedError,
    BuildError,
    PreconditionError,
    UpstreamError,
    TransientUpstreamError,
    PermanentUpstreamError,
)
from .models import Intent, TransactionEnvelope, EnvelopeEncoding
from .config import NetworkConfig, Settings
from .handlers.registry import HandlerRegistry, build_default_registry
from .service import IntentService
from .store import FileIntentStore, MemoryIntentStore
from .version import __version__

__all__ = [
    "IntentService",
    "HandlerRegistry",
    "build_default_registry",
    "FileIntentStore",
    "MemoryIntentStore",
    "NetworkConfig",
    "Settings",
    "Intent",
    "TransactionEnvelope",
    "EnvelopeEncoding",
    "IntentError",
    "ValidationError",
    "UnsupportedTypeError",
    "NotFoundError",
    "ExpiredError",
    "AlreadyCompletedError",
    "BuildError",
    "PreconditionError",
    "UpstreamError",
    "TransientUpstreamError",
    "PermanentUpstreamError",
    "__version__",
]
