"""
Tests for NetworkConfig, Settings and address validation.
"""
import pytest
from unittest.mock import patch

from txintent.chains import (
    is_native_token,
    is_solana_address,
    validate_evm_address,
    validate_solana_address,
)
from txintent.config import CollaboratorPolicy, NetworkConfig, Settings, validate_rpc_url
from txintent.exceptions import ValidationError

from conftest import SOL_OWNER

MOCK_NETWORKS = {
    "test-chain": {
        "family": "evm",
        "chainId": 123,
        "aliases": ["tc"],
        "rpc": "https://test.example.com",
    },
    "test-sol": {
        "family": "solana",
        "aliases": [],
        "rpc": "https://sol.example.com",
    },
}


class TestNetworkConfig:
    """Test NetworkConfig class."""

    def test_load_networks_cached(self):
        """Networks are cached after first load."""
        NetworkConfig._networks_cache = MOCK_NETWORKS

        with patch("importlib.resources.files") as mock_files:
            result = NetworkConfig.load_networks()
            mock_files.assert_not_called()

        assert result == MOCK_NETWORKS

    def test_packaged_networks(self):
        networks = NetworkConfig.load_networks()
        assert networks["ethereum"]["chainId"] == 1
        assert networks["solana"]["family"] == "solana"

    @pytest.mark.parametrize("name,expected", [
        ("ethereum", "ethereum"),
        ("Ethereum", "ethereum"),
        ("eth", "ethereum"),
        ("BSC", "bnb"),
        ("sol", "solana"),
    ])
    def test_resolve_chain_aliases(self, name, expected):
        assert NetworkConfig.resolve_chain(name) == expected

    def test_resolve_unknown_chain_lists_available(self):
        NetworkConfig._networks_cache = MOCK_NETWORKS
        with pytest.raises(ValueError) as exc_info:
            NetworkConfig.resolve_chain("dogechain")
        assert "test-chain" in str(exc_info.value)
        assert "test-sol" in str(exc_info.value)

    def test_get_chain_id(self):
        NetworkConfig._networks_cache = MOCK_NETWORKS
        assert NetworkConfig.get_chain_id("tc") == 123

    def test_get_chain_id_non_evm(self):
        NetworkConfig._networks_cache = MOCK_NETWORKS
        with pytest.raises(ValueError):
            NetworkConfig.get_chain_id("test-sol")

    def test_get_rpc_url_default(self):
        NetworkConfig._networks_cache = MOCK_NETWORKS
        assert NetworkConfig.get_rpc_url("test-chain") == "https://test.example.com"

    def test_get_rpc_url_env_override(self, monkeypatch):
        NetworkConfig._networks_cache = MOCK_NETWORKS
        monkeypatch.setenv("TEST-CHAIN_RPC_URL", "https://override.example.com")
        assert NetworkConfig.get_rpc_url("tc") == "https://override.example.com"

    def test_get_rpc_url_rejects_insecure_override(self, monkeypatch):
        monkeypatch.setenv("ETHEREUM_RPC_URL", "http://rpc.example.com")
        with pytest.raises(ValueError) as exc_info:
            NetworkConfig.get_rpc_url("ethereum")
        assert "https" in str(exc_info.value)

class TestValidateRpcUrl:
    @pytest.mark.parametrize("url", [
        "https://rpc.example.com",
        "http://localhost:8545",
        "http://127.0.0.1:8899",
    ])
    def test_allowed(self, url):
        assert validate_rpc_url(url) == url

    def test_remote_http_rejected(self):
        with pytest.raises(ValueError):
            validate_rpc_url("http://rpc.example.com")


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.intent_ttl_seconds == 3600
        assert settings.policy_for("gas_estimate") == CollaboratorPolicy.LOG
        assert settings.policy_for("balance_check") == CollaboratorPolicy.RAISE
        assert settings.policy_for("anything_else") == CollaboratorPolicy.RAISE

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("TXINTENT_INTENT_TTL", "60")
        monkeypatch.setenv("TXINTENT_QUOTE_SPACING", "0.25")
        monkeypatch.setenv("TXINTENT_POLICY_BALANCE_CHECK", "log")
        monkeypatch.setenv("ONEINCH_API_KEY", "secret")

        settings = Settings.from_env()

        assert settings.intent_ttl_seconds == 60
        assert settings.quote_spacing_seconds == 0.25
        assert settings.policy_for("balance_check") == CollaboratorPolicy.LOG
        assert settings.oneinch_api_key == "secret"

    def test_from_env_rejects_bad_policy(self, monkeypatch):
        monkeypatch.setenv("TXINTENT_POLICY_GAS_ESTIMATE", "ignore")
        with pytest.raises(ValueError) as exc_info:
            Settings.from_env()
        assert "TXINTENT_POLICY_GAS_ESTIMATE" in str(exc_info.value)

    def test_from_env_rejects_bad_number(self, monkeypatch):
        monkeypatch.setenv("TXINTENT_BACKOFF_BASE", "fast")
        with pytest.raises(ValueError):
            Settings.from_env()

    def test_non_positive_ttl_rejected(self):
        with pytest.raises(ValueError):
            Settings(intent_ttl_seconds=0)


class TestAddressValidation:
    def test_evm_address_is_lower_cased(self):
        checksummed = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
        assert validate_evm_address(checksummed) == checksummed.lower()

    @pytest.mark.parametrize("address", ["USDC", "0x123", "", "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAeD"])
    def test_invalid_evm_address(self, address):
        with pytest.raises(ValidationError) as exc_info:
            validate_evm_address(address, path="recipient")
        assert exc_info.value.issues[0].path == "recipient"

    def test_solana_address(self):
        assert is_solana_address(SOL_OWNER)
        assert validate_solana_address(SOL_OWNER) == SOL_OWNER

    @pytest.mark.parametrize("address", ["0OIl", "abc", "0x1111111111111111111111111111111111111111"])
    def test_invalid_solana_address(self, address):
        assert not is_solana_address(address)
        with pytest.raises(ValidationError):
            validate_solana_address(address)

    def test_native_token(self):
        assert is_native_token("0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE")
        assert not is_native_token("0x1111111111111111111111111111111111111111")
