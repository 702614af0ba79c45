"""
Configuration for txintent: chain networks and runtime settings.
"""
import os
import json
import logging
import urllib.parse
import importlib.resources
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)


def validate_rpc_url(url: str, name: str = "rpc_url") -> str:
    """
    Require https for remote endpoints; plain http is allowed for localhost.

    Raises:
        ValueError: If the URL uses an insecure scheme for a remote host
    """
    parsed = urllib.parse.urlparse(url)
    host = parsed.hostname or ""
    is_local = host in ("localhost", "127.0.0.1", "::1")
    if parsed.scheme != "https" and not is_local:
        raise ValueError(f"{name} must use https:// for security (got: {parsed.scheme}://)")
    return url


class NetworkConfig:
    """Chain registry backed by the packaged networks.json"""

    _networks_cache: Optional[Dict[str, Dict[str, Any]]] = None

    @classmethod
    def load_networks(cls) -> Dict[str, Dict[str, Any]]:
        """
        Load network definitions, caching them after the first read.

        Returns:
            Mapping of canonical chain name to its definition
        """
        if cls._networks_cache is None:
            resource = importlib.resources.files("txintent").joinpath("networks.json")
            with resource.open("r", encoding="utf-8") as f:
                cls._networks_cache = json.load(f)
            logger.debug(f"Loaded {len(cls._networks_cache)} network definitions")
        return cls._networks_cache

    @classmethod
    def resolve_chain(cls, name: str) -> str:
        """
        Map a chain name or alias to its canonical lower-case name.

        Raises:
            ValueError: If the chain is unknown
        """
        networks = cls.load_networks()
        key = (name or "").strip().lower()
        if key in networks:
            return key
        for canonical, network in networks.items():
            if key in network.get("aliases", []):
                return canonical
        available = ", ".join(sorted(networks))
        raise ValueError(f"Unsupported chain: {name}. Available chains: {available}")

    @classmethod
    def get_network(cls, name: str) -> Dict[str, Any]:
        return cls.load_networks()[cls.resolve_chain(name)]

    @classmethod
    def get_family(cls, name: str) -> str:
        return cls.get_network(name)["family"]

    @classmethod
    def get_chain_id(cls, name: str) -> int:
        network = cls.get_network(name)
        if "chainId" not in network:
            raise ValueError(f"Chain {name} has no EVM chain id")
        return int(network["chainId"])

    @classmethod
    def get_rpc_url(cls, name: str) -> str:
        """
        RPC endpoint for a chain. ``<CHAIN>_RPC_URL`` overrides the packaged default.
        """
        canonical = cls.resolve_chain(name)
        env_var = f"{canonical.upper()}_RPC_URL"
        url = os.environ.get(env_var) or cls.load_networks()[canonical]["rpc"]
        return validate_rpc_url(url, env_var)


class CollaboratorPolicy(str, Enum):
    """What to do when a non-essential collaborator call fails"""
    RAISE = "raise"
    LOG = "log"


DEFAULT_POLICIES: Dict[str, CollaboratorPolicy] = {
    "gas_estimate": CollaboratorPolicy.LOG,
    "balance_check": CollaboratorPolicy.RAISE,
}


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got: {raw!r}")


@dataclass
class Settings:
    """Runtime settings, usually read from the environment"""
    intent_ttl_seconds: int = 3600
    store_path: str = os.path.expanduser("~/.txintent/intents.json")
    request_timeout: int = 30
    retry_count: int = 3
    backoff_base: float = 0.5
    quote_spacing_seconds: float = 1.0
    oneinch_api_key: Optional[str] = None
    oneinch_referrer: Optional[str] = None
    oneinch_fee: Optional[str] = None
    collaborator_policies: Dict[str, CollaboratorPolicy] = field(
        default_factory=lambda: dict(DEFAULT_POLICIES)
    )

    def __post_init__(self):
        if self.intent_ttl_seconds <= 0:
            raise ValueError("intent_ttl_seconds must be positive")

    def policy_for(self, collaborator: str) -> CollaboratorPolicy:
        return self.collaborator_policies.get(collaborator, CollaboratorPolicy.RAISE)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from ``TXINTENT_*`` and provider environment variables"""
        policies = dict(DEFAULT_POLICIES)
        for key, value in os.environ.items():
            if key.startswith("TXINTENT_POLICY_"):
                name = key[len("TXINTENT_POLICY_"):].lower()
                try:
                    policies[name] = CollaboratorPolicy(value.strip().lower())
                except ValueError:
                    raise ValueError(f"{key} must be 'raise' or 'log', got: {value!r}")

        return cls(
            intent_ttl_seconds=int(os.environ.get("TXINTENT_INTENT_TTL", "3600")),
            store_path=os.environ.get(
                "TXINTENT_STORE_PATH", os.path.expanduser("~/.txintent/intents.json")
            ),
            request_timeout=int(os.environ.get("TXINTENT_TIMEOUT", "30")),
            retry_count=int(os.environ.get("TXINTENT_RETRY_COUNT", "3")),
            backoff_base=_env_float("TXINTENT_BACKOFF_BASE", 0.5),
            quote_spacing_seconds=_env_float("TXINTENT_QUOTE_SPACING", 1.0),
            oneinch_api_key=os.environ.get("ONEINCH_API_KEY"),
            oneinch_referrer=os.environ.get("ONEINCH_REFERRER"),
            oneinch_fee=os.environ.get("ONEINCH_FEE"),
            collaborator_policies=policies,
        )
