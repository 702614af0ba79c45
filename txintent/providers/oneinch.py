"""
1inch swap API client.

The API is rate limited per key and returns stale routes when dependent
requests arrive back to back, so every request first waits on a
:class:`~txintent.backoff.RequestPacer`.
"""
import logging
from typing import Any, Dict, Optional

import requests

from ..backoff import BackoffPolicy, RequestPacer
from ..exceptions import PermanentUpstreamError, TransientUpstreamError
from .base import QuoteProvider

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.1inch.dev/swap/v6.0"


class OneInchQuoteProvider(QuoteProvider):
    """Quote provider for the 1inch aggregation API"""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = API_BASE_URL,
        pacer: Optional[RequestPacer] = None,
        backoff: Optional[BackoffPolicy] = None,
        timeout: int = 30,
        referrer: Optional[str] = None,
        fee: Optional[str] = None,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.pacer = pacer or RequestPacer(1.0)
        self.backoff = backoff or BackoffPolicy()
        self.timeout = timeout
        self.referrer = referrer
        self.fee = fee
        self.session = session or requests.Session()
        self.logger = logger or logging.getLogger(__name__)

    def _get_once(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        self.pacer.wait()
        headers = {"accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        url = f"{self.base_url}{endpoint}"
        try:
            response = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
        except (requests.Timeout, requests.ConnectionError) as e:
            raise TransientUpstreamError(f"1inch {endpoint}: {e}", collaborator="1inch") from e
        except requests.RequestException as e:
            raise PermanentUpstreamError(f"1inch {endpoint}: {e}", collaborator="1inch") from e

        if response.status_code == 429 or response.status_code >= 500:
            raise TransientUpstreamError(
                f"1inch {endpoint}: HTTP {response.status_code}", collaborator="1inch"
            )
        if response.status_code >= 400:
            raise PermanentUpstreamError(
                f"API call failed: {response.status_code} {response.reason} {response.text[:300]}",
                collaborator="1inch",
            )
        try:
            return response.json()
        except ValueError as e:
            raise PermanentUpstreamError(f"1inch {endpoint}: invalid JSON response: {e}", collaborator="1inch")

    def _get(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        self.logger.debug(f"1inch GET {endpoint}")
        return self.backoff.run(self._get_once, endpoint, params, description=f"1inch {endpoint}")

    def allowance(self, chain_id: int, token: str, wallet: str) -> int:
        data = self._get(f"/{chain_id}/approve/allowance", {
            "tokenAddress": token,
            "walletAddress": wallet,
        })
        try:
            return int(data["allowance"])
        except (KeyError, TypeError, ValueError):
            raise PermanentUpstreamError(f"Malformed allowance response: {data}", collaborator="1inch")

    def approve_transaction(self, chain_id: int, token: str, amount: Optional[int] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {"tokenAddress": token}
        if amount is not None:
            params["amount"] = str(amount)
        return self._get(f"/{chain_id}/approve/transaction", params)

    def swap(
        self,
        chain_id: int,
        src: str,
        dst: str,
        amount: int,
        from_address: str,
        slippage: float,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "src": src,
            "dst": dst,
            "amount": str(amount),
            "from": from_address,
            "slippage": slippage,
            "disableEstimate": "true",
            "allowPartialFill": "false",
        }
        if self.referrer and self.fee:
            params["referrer"] = self.referrer
            params["fee"] = self.fee
        data = self._get(f"/{chain_id}/swap", params)
        if "tx" not in data:
            raise PermanentUpstreamError(f"Swap response has no transaction: {data}", collaborator="1inch")
        return data
