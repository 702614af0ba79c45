"""
Static mapping from ``<protocol>/<action>`` keys to handler instances.
"""
import re
import logging
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from ..config import Settings
from ..exceptions import FieldIssue, UnsupportedTypeError
from .base import Handler

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[a-z0-9][a-z0-9._-]*/[a-zA-Z0-9][a-zA-Z0-9._-]*$")


class HandlerRegistry(Mapping):
    """Read-only registry, built once at startup"""

    def __init__(self, handlers: Mapping[str, Handler]):
        for key, handler in handlers.items():
            if not _KEY_PATTERN.match(key):
                raise ValueError(f"Handler key must look like '<protocol>/<action>': {key!r}")
            if not isinstance(handler, Handler):
                raise TypeError(f"{key} is not a Handler: {type(handler).__name__}")
        self._handlers = MappingProxyType(dict(handlers))

    def __getitem__(self, key: str) -> Handler:
        return self._handlers[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)

    def get_handler(self, intent_type: str) -> Handler:
        """
        Raises:
            UnsupportedTypeError: If no handler is registered for ``intent_type``
        """
        handler = self._handlers.get(intent_type)
        if handler is None:
            raise UnsupportedTypeError(
                issues=[FieldIssue("type", f"Unsupported transaction type: {intent_type}")]
            )
        return handler


def build_default_registry(providers=None, settings: Optional[Settings] = None) -> HandlerRegistry:
    """Registry with every shipped handler sharing one provider registry"""
    from ..providers.registry import ProviderRegistry
    from .compound import CompoundV2Handler
    from .evm.transfer import EvmTransferHandler
    from .oneinch import OneInchSwapHandler
    from .solana.spl import SplCreateHandler
    from .solana.transfer import SolanaTransferHandler

    settings = settings or Settings()
    providers = providers or ProviderRegistry(settings)
    registry = HandlerRegistry({
        "evm/transfer": EvmTransferHandler(providers, settings),
        "compound/v2": CompoundV2Handler(providers, settings),
        "1inch/swap": OneInchSwapHandler(providers, settings),
        "solana/transfer": SolanaTransferHandler(providers, settings),
        "solana/spl-create": SplCreateHandler(providers, settings),
    })
    logger.debug(f"Registered handlers: {', '.join(sorted(registry))}")
    return registry
