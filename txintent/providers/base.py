"""
Collaborator contracts consumed by handlers.

The core never implements chain state itself; it talks to these narrow
interfaces. Failures surface as :class:`~txintent.exceptions.UpstreamError`.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, TypeVar

from .._rate_limited_log import rate_limited_log
from ..config import CollaboratorPolicy
from ..exceptions import UpstreamError

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeeEstimate:
    """
    Fee fields for an EVM transaction.

    Chains with EIP-1559 fill ``max_fee_per_gas`` and
    ``max_priority_fee_per_gas``; older chains fill ``gas_price`` only.
    """
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None
    gas_price: Optional[int] = None

    def as_request_fields(self) -> Dict[str, Optional[int]]:
        if self.max_fee_per_gas is not None:
            return {
                "max_fee_per_gas": self.max_fee_per_gas,
                "max_priority_fee_per_gas": self.max_priority_fee_per_gas,
            }
        return {"gas_price": self.gas_price}


class EvmStateProvider(ABC):
    """Read-only view of one EVM chain"""

    chain: str

    @abstractmethod
    def balance_of(self, owner: str, token: Optional[str] = None) -> int:
        """Native balance when ``token`` is None, ERC-20 balance otherwise"""

    @abstractmethod
    def allowance_of(self, token: str, owner: str, spender: str) -> int:
        """ERC-20 allowance granted by ``owner`` to ``spender``"""

    @abstractmethod
    def decimals_of(self, token: Optional[str]) -> int:
        """Decimal count of a token (18 for the native asset)"""

    @abstractmethod
    def fee_estimate(self) -> FeeEstimate:
        """Current fee fields"""

    @abstractmethod
    def account_exists(self, address: str) -> bool:
        """Whether the address has any nonce, balance or code"""

    @abstractmethod
    def next_nonce(self, address: str) -> int:
        """Next nonce for ``address``, counting pending transactions"""

    @abstractmethod
    def estimate_gas(self, tx: Dict[str, Any]) -> int:
        """Gas estimate for a call ``{from, to, data, value}``"""

    @abstractmethod
    def call(self, to: str, data: bytes) -> bytes:
        """Read-only contract call returning raw ABI data"""


class SolanaStateProvider(ABC):
    """Read-only view of a Solana cluster"""

    chain: str

    @abstractmethod
    def balance_of(self, owner: str, mint: Optional[str] = None) -> int:
        """Lamports when ``mint`` is None, token base units in the owner's ATA otherwise"""

    @abstractmethod
    def account_exists(self, address: str) -> bool:
        pass

    @abstractmethod
    def decimals_of(self, mint: str) -> int:
        pass

    @abstractmethod
    def latest_blockhash(self) -> str:
        """Recent blockhash; it also fixes the fee schedule of the transaction"""

    @abstractmethod
    def minimum_balance_for_rent_exemption(self, size: int) -> int:
        pass


class QuoteProvider(ABC):
    """Upstream routing API that returns raw unsigned transaction templates"""

    @abstractmethod
    def allowance(self, chain_id: int, token: str, wallet: str) -> int:
        pass

    @abstractmethod
    def approve_transaction(self, chain_id: int, token: str, amount: Optional[int] = None) -> Dict[str, Any]:
        pass

    @abstractmethod
    def swap(
        self,
        chain_id: int,
        src: str,
        dst: str,
        amount: int,
        from_address: str,
        slippage: float,
    ) -> Dict[str, Any]:
        pass


def call_with_policy(
    policy: CollaboratorPolicy,
    collaborator: str,
    fn: Callable[[], T],
    default: T,
    logger_instance: Optional[logging.Logger] = None,
) -> T:
    """
    Run a collaborator call under a failure policy.

    With ``RAISE`` the upstream error propagates. With ``LOG`` it is logged
    (rate limited) and ``default`` is returned instead.
    """
    try:
        return fn()
    except UpstreamError as e:
        if policy == CollaboratorPolicy.RAISE:
            raise
        rate_limited_log(
            f"{collaborator} failed, continuing with {default!r}: {e}",
            level="warning",
            logger_instance=logger_instance or logger,
        )
        return default
