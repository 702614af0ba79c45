"""
Lazily constructed, cached collaborator instances keyed by chain.
"""
import time
import logging
import threading
from typing import Any, Callable, Dict, Optional

from ..backoff import BackoffPolicy, RequestPacer
from ..config import NetworkConfig, Settings
from .base import EvmStateProvider, QuoteProvider, SolanaStateProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """
    Hands out one provider per chain (and one quote client per protocol).

    Instances are created on first use and cached under a lock. ``overrides``
    pre-populates the cache, which is how tests and embedding applications
    inject their own collaborators.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        overrides: Optional[Dict[str, Any]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings or Settings()
        self._sleep = sleep
        self._providers: Dict[str, Any] = dict(overrides or {})
        self._lock = threading.RLock()

    @staticmethod
    def evm_key(chain: str) -> str:
        return f"evm:{NetworkConfig.resolve_chain(chain)}"

    @staticmethod
    def solana_key(chain: str = "solana") -> str:
        return f"solana:{NetworkConfig.resolve_chain(chain)}"

    @staticmethod
    def quotes_key(protocol: str) -> str:
        return f"quotes:{protocol}"

    def backoff(self) -> BackoffPolicy:
        return BackoffPolicy(
            max_retries=self.settings.retry_count,
            backoff_base=self.settings.backoff_base,
            sleep=self._sleep,
        )

    def _get_or_create(self, key: str, factory: Callable[[], Any]) -> Any:
        with self._lock:
            if key not in self._providers:
                logger.debug(f"Creating provider {key}")
                self._providers[key] = factory()
            return self._providers[key]

    def evm(self, chain: str) -> EvmStateProvider:
        from .evm import Web3StateProvider

        return self._get_or_create(
            self.evm_key(chain),
            lambda: Web3StateProvider(
                chain, backoff=self.backoff(), timeout=self.settings.request_timeout
            ),
        )

    def solana(self, chain: str = "solana") -> SolanaStateProvider:
        from .solana import SolanaRpcProvider

        return self._get_or_create(
            self.solana_key(chain),
            lambda: SolanaRpcProvider(
                chain,
                backoff=self.backoff(),
                retry_count=self.settings.retry_count,
                timeout=self.settings.request_timeout,
            ),
        )

    def quotes(self, protocol: str) -> QuoteProvider:
        if protocol != "1inch":
            raise ValueError(f"No quote provider for protocol: {protocol}")
        from .oneinch import OneInchQuoteProvider

        return self._get_or_create(
            self.quotes_key(protocol),
            lambda: OneInchQuoteProvider(
                self.settings.oneinch_api_key,
                pacer=RequestPacer(self.settings.quote_spacing_seconds, sleep=self._sleep),
                backoff=self.backoff(),
                timeout=self.settings.request_timeout,
                referrer=self.settings.oneinch_referrer,
                fee=self.settings.oneinch_fee,
            ),
        )
