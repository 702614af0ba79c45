"""
End-to-end tests for the intent lifecycle.
"""
import pytest

from txintent import IntentService, MemoryIntentStore, build_default_registry
from txintent.encoding.evm import decode_unsigned
from txintent.exceptions import (
    AlreadyCompletedError,
    ExpiredError,
    NotFoundError,
    PreconditionError,
    UnsupportedTypeError,
    ValidationError,
)

from conftest import RECIPIENT, SENDER, SOL_RECIPIENT, T0

PAYLOAD = {"chain": "ethereum", "recipient": RECIPIENT, "amount": "1.5"}


@pytest.fixture
def store(clock):
    return MemoryIntentStore(clock=clock)


@pytest.fixture
def service(providers, settings, store, clock):
    return IntentService(build_default_registry(providers, settings), store, ttl_seconds=3600, clock=clock)


class TestIntentService:
    """Create, read, build and complete through the service"""

    def test_lifecycle(self, service, clock):
        created = service.create("evm/transfer", PAYLOAD)
        assert created.chain == "ethereum"
        assert created.expires_at == T0 + 3600
        assert len(created.intent_id) == 32

        view = service.get(created.intent_id)
        assert view.type == "evm/transfer"
        assert view.data["recipient"] == RECIPIENT

        built = service.build(created.intent_id, SENDER)
        assert built.chain == "ethereum"
        (envelope,) = built.transactions
        assert decode_unsigned(envelope.payload).value == 1_500_000_000_000_000_000

        ack = service.complete(created.intent_id, "  0xfeed  ")
        assert ack.txn_hash == "0xfeed"
        with pytest.raises(AlreadyCompletedError):
            service.build(created.intent_id, SENDER)
        with pytest.raises(AlreadyCompletedError):
            service.complete(created.intent_id, "0xfeed")

    def test_build_is_repeatable(self, service):
        intent_id = service.create("evm/transfer", PAYLOAD).intent_id
        first = service.build(intent_id, SENDER)
        second = service.build(intent_id, SENDER)
        assert first == second

    def test_failed_build_keeps_intent_pending(self, service, evm_provider):
        intent_id = service.create("evm/transfer", PAYLOAD).intent_id
        evm_provider.balances[None] = 0
        with pytest.raises(PreconditionError):
            service.build(intent_id, SENDER)

        evm_provider.balances[None] = 10 ** 24
        assert len(service.build(intent_id, SENDER).transactions) == 1

    def test_invalid_payload_is_not_stored(self, service, store):
        with pytest.raises(ValidationError):
            service.create("evm/transfer", {"chain": "ethereum"})
        assert len(store) == 0

    def test_unsupported_type(self, service, store):
        with pytest.raises(UnsupportedTypeError):
            service.create("foo/bar", PAYLOAD)
        assert len(store) == 0

    def test_expired(self, service, clock):
        intent_id = service.create("evm/transfer", PAYLOAD).intent_id
        clock.advance(3600)
        with pytest.raises(ExpiredError):
            service.get(intent_id)
        with pytest.raises(ExpiredError):
            service.build(intent_id, SENDER)
        with pytest.raises(ExpiredError):
            service.complete(intent_id, "0xfeed")
        assert service.purge_expired() == 1
        with pytest.raises(NotFoundError):
            service.get(intent_id)

    @pytest.mark.parametrize("address", ["", None])
    def test_build_requires_address(self, service, address):
        intent_id = service.create("evm/transfer", PAYLOAD).intent_id
        with pytest.raises(ValidationError) as exc_info:
            service.build(intent_id, address)
        assert exc_info.value.issues[0].path == "address"

    @pytest.mark.parametrize("txn_hash", ["", "   "])
    def test_complete_requires_hash(self, service, txn_hash):
        intent_id = service.create("evm/transfer", PAYLOAD).intent_id
        with pytest.raises(ValidationError) as exc_info:
            service.complete(intent_id, txn_hash)
        assert exc_info.value.issues[0].path == "txnHash"

    def test_solana_extras_returned(self, service):
        created = service.create("solana/transfer", {"toWalletAddress": SOL_RECIPIENT, "amount": "1"})
        assert created.chain == "solana"
        assert "Token address" in created.extras["message"]

    def test_ttl_must_be_positive(self, store):
        with pytest.raises(ValueError):
            IntentService(store=store, ttl_seconds=0)
