"""
Solana cluster state over plain JSON-RPC.
"""
import logging
import itertools
from typing import Any, List, Optional

import requests
from requests.adapters import HTTPAdapter
from solders.pubkey import Pubkey
from urllib3.util.retry import Retry

from ..backoff import BackoffPolicy
from ..config import NetworkConfig, validate_rpc_url
from ..encoding.solana import get_associated_token_address
from ..exceptions import PermanentUpstreamError, TransientUpstreamError
from .base import SolanaStateProvider

logger = logging.getLogger(__name__)

# JSON-RPC error code some providers use for rate limiting
_RATE_LIMITED_CODES = {429, -32429}


class SolanaRpcProvider(SolanaStateProvider):
    """Solana state provider using a ``requests`` session"""

    def __init__(
        self,
        chain: str = "solana",
        rpc_url: Optional[str] = None,
        backoff: Optional[BackoffPolicy] = None,
        retry_count: int = 3,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.chain = NetworkConfig.resolve_chain(chain)
        self.rpc_url = validate_rpc_url(rpc_url or NetworkConfig.get_rpc_url(self.chain))
        self.backoff = backoff or BackoffPolicy(max_retries=retry_count)
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self._ids = itertools.count(1)

        if session is None:
            session = requests.Session()
            # Connection-level retries only; status handling happens in _rpc
            retries = Retry(
                total=retry_count,
                connect=retry_count,
                read=0,
                backoff_factor=0.5,
                allowed_methods=["POST"],
                raise_on_status=False,
            )
            session.mount("http://", HTTPAdapter(max_retries=retries))
            session.mount("https://", HTTPAdapter(max_retries=retries))
        self.session = session

    def _post(self, method: str, params: List[Any]) -> Any:
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = self.session.post(self.rpc_url, json=body, timeout=self.timeout)
        except (requests.Timeout, requests.ConnectionError) as e:
            raise TransientUpstreamError(f"{method}: {e}", collaborator="solana-rpc") from e
        except requests.RequestException as e:
            raise PermanentUpstreamError(f"{method}: {e}", collaborator="solana-rpc") from e

        if response.status_code == 429 or response.status_code >= 500:
            raise TransientUpstreamError(
                f"{method}: HTTP {response.status_code}", collaborator="solana-rpc"
            )
        if response.status_code >= 400:
            raise PermanentUpstreamError(
                f"{method}: HTTP {response.status_code} {response.text[:200]}", collaborator="solana-rpc"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise PermanentUpstreamError(f"{method}: invalid JSON response: {e}", collaborator="solana-rpc")

        error = payload.get("error")
        if error:
            message = f"{method} failed: {error.get('message', error)}"
            if error.get("code") in _RATE_LIMITED_CODES:
                raise TransientUpstreamError(message, collaborator="solana-rpc")
            raise PermanentUpstreamError(message, collaborator="solana-rpc")
        if "result" not in payload:
            raise PermanentUpstreamError(f"{method}: missing result in response", collaborator="solana-rpc")
        return payload["result"]

    def _rpc(self, method: str, params: List[Any]) -> Any:
        self.logger.debug(f"[{self.chain}] {method}")
        return self.backoff.run(self._post, method, params, description=f"{self.chain} {method}")

    def balance_of(self, owner: str, mint: Optional[str] = None) -> int:
        if mint is None:
            return int(self._rpc("getBalance", [owner])["value"])
        ata = str(get_associated_token_address(Pubkey.from_string(owner), Pubkey.from_string(mint)))
        if not self.account_exists(ata):
            return 0
        return int(self._rpc("getTokenAccountBalance", [ata])["value"]["amount"])

    def account_exists(self, address: str) -> bool:
        result = self._rpc("getAccountInfo", [address, {"encoding": "base64"}])
        return result.get("value") is not None

    def decimals_of(self, mint: str) -> int:
        return int(self._rpc("getTokenSupply", [mint])["value"]["decimals"])

    def latest_blockhash(self) -> str:
        return self._rpc("getLatestBlockhash", [{"commitment": "finalized"}])["value"]["blockhash"]

    def minimum_balance_for_rent_exemption(self, size: int) -> int:
        return int(self._rpc("getMinimumBalanceForRentExemption", [size]))
