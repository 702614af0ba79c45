"""
EVM chain state over JSON-RPC using web3.py.
"""
import logging
import threading
from typing import Any, Callable, Dict, Optional

import requests
from cachetools import LRUCache
from web3 import Web3
from web3.exceptions import ContractLogicError, Web3Exception

from ..backoff import BackoffPolicy
from ..chains import is_native_token
from ..config import NetworkConfig, validate_rpc_url
from ..exceptions import PermanentUpstreamError, TransientUpstreamError
from .base import EvmStateProvider, FeeEstimate

logger = logging.getLogger(__name__)

ERC20_ABI = [
    {
        "inputs": [{"internalType": "address", "name": "owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [{"internalType": "uint8", "name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [
            {"internalType": "address", "name": "owner", "type": "address"},
            {"internalType": "address", "name": "spender", "type": "address"}
        ],
        "name": "allowance",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    }
]

NATIVE_DECIMALS = 18


def _translate_error(description: str, e: Exception) -> Exception:
    """Map transport and node errors onto the upstream error taxonomy"""
    if isinstance(e, (requests.Timeout, requests.ConnectionError)):
        return TransientUpstreamError(f"{description}: {e}", collaborator="evm-rpc")
    if isinstance(e, requests.HTTPError):
        status = getattr(e.response, "status_code", 0) or 0
        if status == 429 or status >= 500:
            return TransientUpstreamError(f"{description}: HTTP {status}", collaborator="evm-rpc")
        return PermanentUpstreamError(f"{description}: HTTP {status}", collaborator="evm-rpc")
    if isinstance(e, ContractLogicError):
        return PermanentUpstreamError(f"{description} reverted: {e}", collaborator="evm-rpc")
    return PermanentUpstreamError(f"{description} failed: {e}", collaborator="evm-rpc")


class Web3StateProvider(EvmStateProvider):
    """
    Chain state provider backed by a web3.py HTTP connection.

    Every node call goes through the backoff policy; only transport-level
    failures and rate limits are retried.
    """

    def __init__(
        self,
        chain: str,
        rpc_url: Optional[str] = None,
        backoff: Optional[BackoffPolicy] = None,
        timeout: int = 30,
        w3: Optional[Web3] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.chain = NetworkConfig.resolve_chain(chain)
        self.rpc_url = validate_rpc_url(rpc_url or NetworkConfig.get_rpc_url(self.chain))
        self.w3 = w3 or Web3(Web3.HTTPProvider(self.rpc_url, request_kwargs={"timeout": timeout}))
        self.backoff = backoff or BackoffPolicy()
        self.logger = logger or logging.getLogger(__name__)
        self._decimals_cache = LRUCache(maxsize=512)
        self._decimals_lock = threading.Lock()

    def _request(self, description: str, fn: Callable[..., Any], *args) -> Any:
        def attempt():
            try:
                return fn(*args)
            except (requests.RequestException, Web3Exception, ValueError) as e:
                raise _translate_error(description, e) from e

        self.logger.debug(f"[{self.chain}] {description}")
        return self.backoff.run(attempt, description=f"{self.chain} {description}")

    def _erc20(self, token: str):
        return self.w3.eth.contract(address=Web3.to_checksum_address(token), abi=ERC20_ABI)

    def balance_of(self, owner: str, token: Optional[str] = None) -> int:
        owner = Web3.to_checksum_address(owner)
        if token is None or is_native_token(token):
            return int(self._request("get_balance", self.w3.eth.get_balance, owner))
        fn = self._erc20(token).functions.balanceOf(owner)
        return int(self._request("balanceOf", fn.call))

    def allowance_of(self, token: str, owner: str, spender: str) -> int:
        fn = self._erc20(token).functions.allowance(
            Web3.to_checksum_address(owner), Web3.to_checksum_address(spender)
        )
        return int(self._request("allowance", fn.call))

    def decimals_of(self, token: Optional[str]) -> int:
        if token is None or is_native_token(token):
            return NATIVE_DECIMALS
        key = token.lower()
        with self._decimals_lock:
            if key in self._decimals_cache:
                return self._decimals_cache[key]
        decimals = int(self._request("decimals", self._erc20(token).functions.decimals().call))
        with self._decimals_lock:
            self._decimals_cache[key] = decimals
        return decimals

    def fee_estimate(self) -> FeeEstimate:
        block = self._request("get_block", self.w3.eth.get_block, "latest")
        base_fee = block.get("baseFeePerGas")
        if base_fee is None:
            return FeeEstimate(gas_price=int(self._request("gas_price", lambda: self.w3.eth.gas_price)))
        priority = int(self._request("max_priority_fee", lambda: self.w3.eth.max_priority_fee))
        return FeeEstimate(
            max_fee_per_gas=int(base_fee) * 2 + priority,
            max_priority_fee_per_gas=priority,
        )

    def account_exists(self, address: str) -> bool:
        address = Web3.to_checksum_address(address)
        if self._request("get_transaction_count", self.w3.eth.get_transaction_count, address) > 0:
            return True
        if self._request("get_balance", self.w3.eth.get_balance, address) > 0:
            return True
        return len(self._request("get_code", self.w3.eth.get_code, address)) > 0

    def next_nonce(self, address: str) -> int:
        return int(self._request(
            "get_transaction_count",
            self.w3.eth.get_transaction_count,
            Web3.to_checksum_address(address),
            "pending",
        ))

    def estimate_gas(self, tx: Dict[str, Any]) -> int:
        params = {k: v for k, v in tx.items() if v is not None}
        for key in ("from", "to"):
            if key in params:
                params[key] = Web3.to_checksum_address(params[key])
        if isinstance(params.get("data"), bytes):
            params["data"] = "0x" + params["data"].hex()
        return int(self._request("estimate_gas", self.w3.eth.estimate_gas, params))

    def call(self, to: str, data: bytes) -> bytes:
        params = {"to": Web3.to_checksum_address(to), "data": "0x" + data.hex()}
        return bytes(self._request("eth_call", self.w3.eth.call, params))
