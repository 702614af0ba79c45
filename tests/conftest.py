"""
Pytest fixtures for the txintent tests.
"""
import time
from typing import Any, Dict, List, Optional

import pytest
from solders.hash import Hash
from solders.keypair import Keypair

from txintent import _rate_limited_log
from txintent.config import NetworkConfig, Settings
from txintent.exceptions import PermanentUpstreamError
from txintent.providers.base import EvmStateProvider, FeeEstimate, QuoteProvider, SolanaStateProvider
from txintent.providers.registry import ProviderRegistry

SENDER = "0x1111111111111111111111111111111111111111"
RECIPIENT = "0x2222222222222222222222222222222222222222"
TOKEN = "0x3333333333333333333333333333333333333333"
SPENDER = "0x4444444444444444444444444444444444444444"

# Deterministic Solana keys
SOL_OWNER = str(Keypair.from_seed(bytes([1] * 32)).pubkey())
SOL_RECIPIENT = str(Keypair.from_seed(bytes([2] * 32)).pubkey())
SOL_MINT = str(Keypair.from_seed(bytes([3] * 32)).pubkey())
BLOCKHASH = str(Hash(bytes([7] * 32)))

T0 = 1_700_000_000.0


# Make time.sleep instantaneous so retries don't slow the suite down
@pytest.fixture(autouse=True)
def _fast_sleep(monkeypatch):
    monkeypatch.setattr(time, "sleep", lambda *_a, **_kw: None)


@pytest.fixture(autouse=True)
def _reset_shared_state():
    _rate_limited_log.reset()
    NetworkConfig._networks_cache = None
    yield
    _rate_limited_log.reset()
    NetworkConfig._networks_cache = None


class FrozenClock:
    """Manually advanced epoch clock"""

    def __init__(self, now: float = T0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FrozenClock()


class FakeEvmProvider(EvmStateProvider):
    """In-memory EVM state; ``failures`` maps a method name to the exception it raises"""

    def __init__(self, chain: str = "ethereum"):
        self.chain = chain
        self.balances: Dict[Optional[str], int] = {None: 10 ** 24}
        self.allowances: Dict[tuple, int] = {}
        self.decimals: Dict[str, int] = {}
        self.nonce = 7
        self.fees = FeeEstimate(max_fee_per_gas=30 * 10 ** 9, max_priority_fee_per_gas=2 * 10 ** 9)
        self.gas = 50000
        self.call_results: Dict[tuple, bytes] = {}
        self.failures: Dict[str, Exception] = {}
        self.calls: List[str] = []

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]

    def balance_of(self, owner, token=None):
        self._record("balance_of")
        return self.balances.get(token.lower() if token else None, 10 ** 30 if token else 0)

    def allowance_of(self, token, owner, spender):
        self._record("allowance_of")
        return self.allowances.get((token.lower(), spender.lower()), 0)

    def decimals_of(self, token):
        self._record("decimals_of")
        if token is None:
            return 18
        return self.decimals.get(token.lower(), 18)

    def fee_estimate(self):
        self._record("fee_estimate")
        return self.fees

    def account_exists(self, address):
        self._record("account_exists")
        return True

    def next_nonce(self, address):
        self._record("next_nonce")
        return self.nonce

    def estimate_gas(self, tx):
        self._record("estimate_gas")
        return self.gas

    def call(self, to, data):
        self._record("call")
        key = (to.lower(), bytes(data[:4]))
        if key not in self.call_results:
            raise PermanentUpstreamError(f"eth_call reverted: {to}", collaborator="evm-rpc")
        return self.call_results[key]


class FakeSolanaProvider(SolanaStateProvider):
    def __init__(self):
        self.chain = "solana"
        self.balances: Dict[Optional[str], int] = {None: 10 ** 12}
        self.existing = {SOL_MINT}
        self.mint_decimals: Dict[str, int] = {SOL_MINT: 6}
        self.blockhash = BLOCKHASH
        self.rent = 1461600
        self.failures: Dict[str, Exception] = {}

    def _check(self, name):
        if name in self.failures:
            raise self.failures[name]

    def balance_of(self, owner, mint=None):
        self._check("balance_of")
        return self.balances.get(mint, 10 ** 15)

    def account_exists(self, address):
        self._check("account_exists")
        return address in self.existing

    def decimals_of(self, mint):
        self._check("decimals_of")
        return self.mint_decimals[mint]

    def latest_blockhash(self):
        self._check("latest_blockhash")
        return self.blockhash

    def minimum_balance_for_rent_exemption(self, size):
        self._check("minimum_balance_for_rent_exemption")
        return self.rent


class FakeQuoteProvider(QuoteProvider):
    ROUTER = "0x1111111254eeb25477b68fb85ed929f73a960582"

    def __init__(self):
        self.allowance_value = 0
        self.requests: List[str] = []

    def allowance(self, chain_id, token, wallet):
        self.requests.append("allowance")
        return self.allowance_value

    def approve_transaction(self, chain_id, token, amount=None):
        self.requests.append("approve_transaction")
        return {
            "to": token,
            "data": "0x095ea7b3" + "00" * 64,
            "value": "0",
            "gasPrice": "1",
        }

    def swap(self, chain_id, src, dst, amount, from_address, slippage):
        self.requests.append("swap")
        return {
            "dstAmount": "123456",
            "tx": {
                "from": from_address,
                "to": self.ROUTER,
                "data": "0x12aa3caf" + "11" * 32,
                "value": "0",
                "gas": 0,
                "gasPrice": "1",
            },
        }


@pytest.fixture
def evm_provider():
    return FakeEvmProvider()


@pytest.fixture
def solana_provider():
    return FakeSolanaProvider()


@pytest.fixture
def quote_provider():
    return FakeQuoteProvider()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def providers(evm_provider, solana_provider, quote_provider, settings):
    return ProviderRegistry(
        settings,
        overrides={
            "evm:ethereum": evm_provider,
            "solana:solana": solana_provider,
            "quotes:1inch": quote_provider,
        },
        sleep=lambda _s: None,
    )
