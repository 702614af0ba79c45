"""
Tests for the txintent command line.
"""
import io
import json

import pytest

from txintent import IntentService, MemoryIntentStore, build_default_registry
from txintent.cli import EXIT_INTENT_ERROR, EXIT_OK, main

from conftest import RECIPIENT, SENDER, SOL_OWNER

PAYLOAD = json.dumps({"chain": "ethereum", "recipient": RECIPIENT, "amount": "1"})


@pytest.fixture
def service(providers, settings, clock):
    return IntentService(build_default_registry(providers, settings), MemoryIntentStore(clock=clock), clock=clock)


def run_cli(capsys, argv, service=None):
    code = main(argv, service=service)
    out, err = capsys.readouterr()
    return code, out, err


def test_types(capsys, service):
    code, out, _ = run_cli(capsys, ["types"], service)
    assert code == EXIT_OK
    assert "evm/transfer" in json.loads(out)["types"]


def test_create_build_complete(capsys, service):
    code, out, _ = run_cli(capsys, ["create", "evm/transfer", PAYLOAD], service)
    assert code == EXIT_OK
    intent_id = json.loads(out)["intent_id"]

    code, out, _ = run_cli(capsys, ["build", intent_id, SENDER], service)
    assert code == EXIT_OK
    (transaction,) = json.loads(out)["transactions"]
    assert transaction["hex"].startswith("0x02")

    code, out, _ = run_cli(capsys, ["complete", intent_id, "0xfeed"], service)
    assert code == EXIT_OK
    assert json.loads(out)["txn_hash"] == "0xfeed"


def test_create_from_stdin(capsys, monkeypatch, service):
    monkeypatch.setattr("sys.stdin", io.StringIO(PAYLOAD))
    code, out, _ = run_cli(capsys, ["create", "evm/transfer", "-"], service)
    assert code == EXIT_OK
    assert json.loads(out)["chain"] == "ethereum"


def test_validation_error_lists_issues(capsys, service):
    code, out, err = run_cli(capsys, ["create", "evm/transfer", "{}"], service)
    assert code == EXIT_INTENT_ERROR
    assert out == ""
    body = json.loads(err)
    assert body["error"] == "ValidationError"
    assert {issue["path"] for issue in body["issues"]} == {"chain", "recipient", "amount"}


@pytest.mark.parametrize("payload", ["not json", "[1, 2]"])
def test_bad_payload(capsys, service, payload):
    code, _, err = run_cli(capsys, ["create", "evm/transfer", payload], service)
    assert code == EXIT_INTENT_ERROR
    assert json.loads(err)["issues"][0]["path"] == "payload"


def test_unknown_intent(capsys, service):
    code, _, err = run_cli(capsys, ["get", "missing"], service)
    assert code == EXIT_INTENT_ERROR
    assert json.loads(err)["error"] == "NotFoundError"


def test_file_store_between_invocations(capsys, tmp_path, monkeypatch):
    store = str(tmp_path / "intents.json")
    code, out, _ = run_cli(capsys, ["--store", store, "create", "evm/transfer", PAYLOAD])
    assert code == EXIT_OK
    intent_id = json.loads(out)["intent_id"]

    code, out, _ = run_cli(capsys, ["--store", store, "get", intent_id])
    assert code == EXIT_OK
    assert json.loads(out)["data"]["recipient"] == RECIPIENT

    code, out, _ = run_cli(capsys, ["--store", store, "purge"])
    assert json.loads(out) == {"purged": 0}


def test_version(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["--version"])
    assert exc_info.value.code == 0
    assert capsys.readouterr().out.startswith("txintent ")


def test_oversized_amount_is_an_intent_error(capsys, service):
    payload = json.dumps({"decimals": 9, "mintAmount": "100000000000"})
    code, out, _ = run_cli(capsys, ["create", "solana/spl-create", payload], service)
    assert code == EXIT_OK
    intent_id = json.loads(out)["intent_id"]

    code, _, err = run_cli(capsys, ["build", intent_id, SOL_OWNER], service)
    assert code == EXIT_INTENT_ERROR
    assert json.loads(err)["error"] == "PreconditionError"
