"""
Command-line front-end over :class:`~txintent.service.IntentService`.

Intents live in the file store so separate invocations share state::

    txintent create evm/transfer '{"chain": "ethereum", "recipient": "0x...", "amount": "1.5"}'
    txintent build <intent_id> <address>
    txintent complete <intent_id> <txn_hash>
"""
import os
import sys
import json
import logging
import argparse
from typing import Any, Dict, List, Optional

from .config import Settings
from .exceptions import IntentError, ValidationError
from .handlers.registry import build_default_registry
from .service import IntentService
from .store.file import FileIntentStore
from .version import __version__

logger = logging.getLogger(__name__)

# Exit codes
EXIT_OK = 0
EXIT_INTENT_ERROR = 1
EXIT_USAGE = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="txintent", description="Create and build unsigned transaction intents")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument(
        "--store",
        default=None,
        help="Intent store file (default: $TXINTENT_STORE_PATH or ~/.txintent/intents.json)",
    )
    p.add_argument(
        "-v", "--verbose",
        action="count",
        default=int(os.environ.get("TXINTENT_VERBOSE", "0") or 0),
        help="Increase log verbosity (-v info, -vv debug)",
    )
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("types", help="List registered intent types")

    create = sub.add_parser("create", help="Validate a payload and store it as an intent")
    create.add_argument("type", help="Intent type, e.g. evm/transfer")
    create.add_argument("payload", help="JSON payload, or '-' to read it from stdin")

    get = sub.add_parser("get", help="Show a pending intent")
    get.add_argument("intent_id")

    build = sub.add_parser("build", help="Assemble unsigned transactions for a wallet")
    build.add_argument("intent_id")
    build.add_argument("address", help="Wallet address that will sign")

    complete = sub.add_parser("complete", help="Record the hash of the broadcast transaction")
    complete.add_argument("intent_id")
    complete.add_argument("txn_hash")

    sub.add_parser("purge", help="Remove expired intents from the store")
    return p.parse_args(argv)


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s", stream=sys.stderr)


def _load_payload(raw: str) -> Dict[str, Any]:
    text = sys.stdin.read() if raw == "-" else raw
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError.for_field("payload", f"Invalid JSON: {e.msg}")
    if not isinstance(payload, dict):
        raise ValidationError.for_field("payload", "Payload must be a JSON object")
    return payload


def _error_body(error: IntentError) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": type(error).__name__, "message": str(error)}
    issues = getattr(error, "issues", None)
    if issues:
        body["issues"] = [{"path": issue.path, "message": issue.message} for issue in issues]
    return body


def build_service(args: argparse.Namespace, settings: Optional[Settings] = None) -> IntentService:
    settings = settings or Settings.from_env()
    store = FileIntentStore(args.store or settings.store_path)
    return IntentService(
        registry=build_default_registry(settings=settings),
        store=store,
        ttl_seconds=settings.intent_ttl_seconds,
    )


def run(args: argparse.Namespace, service: IntentService) -> Any:
    if args.command == "types":
        return {"types": sorted(service.registry)}
    if args.command == "create":
        return service.create(args.type, _load_payload(args.payload)).model_dump(mode="json")
    if args.command == "get":
        return service.get(args.intent_id).model_dump(mode="json")
    if args.command == "build":
        return service.build(args.intent_id, args.address).to_wire()
    if args.command == "complete":
        return service.complete(args.intent_id, args.txn_hash).model_dump(mode="json")
    if args.command == "purge":
        return {"purged": service.purge_expired()}
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None, service: Optional[IntentService] = None) -> int:
    args = parse_args(argv)
    _configure_logging(args.verbose)
    try:
        service = service or build_service(args)
        result = run(args, service)
    except IntentError as e:
        logger.debug(f"{args.command} failed: {e}")
        print(json.dumps(_error_body(e), indent=2), file=sys.stderr)
        return EXIT_INTENT_ERROR
    except ValueError as e:
        print(json.dumps({"error": "ConfigurationError", "message": str(e)}, indent=2), file=sys.stderr)
        return EXIT_USAGE
    print(json.dumps(result, indent=2))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
