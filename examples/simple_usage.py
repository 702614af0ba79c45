#!/usr/bin/env python3
"""
Simple example of using txintent.
"""
import os
import json
import logging

from txintent import IntentService, Settings, build_default_registry
from txintent.exceptions import IntentError


def main():
    """
    Create a native transfer intent and build it for a wallet.

    The resulting hex payload is unsigned; sign and broadcast it with the
    wallet, then report the hash back with ``service.complete``.
    """
    logging.basicConfig(level=logging.INFO)

    sender = os.environ.get("WALLET_ADDRESS")
    recipient = os.environ.get("RECIPIENT_ADDRESS")
    if not sender or not recipient:
        print("ERROR: WALLET_ADDRESS and RECIPIENT_ADDRESS environment variables are required")
        return

    settings = Settings.from_env()
    service = IntentService(
        registry=build_default_registry(settings=settings),
        ttl_seconds=settings.intent_ttl_seconds,
    )

    try:
        created = service.create("evm/transfer", {
            "chain": os.environ.get("CHAIN", "ethereum"),
            "recipient": recipient,
            "amount": os.environ.get("AMOUNT", "0.01"),
        })
        print(f"Created intent {created.intent_id}, expires at {created.expires_at}")

        built = service.build(created.intent_id, sender)
        print(json.dumps(built.to_wire(), indent=2))
    except IntentError as e:
        print(f"ERROR: {type(e).__name__}: {e}")


if __name__ == "__main__":
    main()
