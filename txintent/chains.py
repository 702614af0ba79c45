"""
Chain families and syntactic address validation.

Everything here is pure: no network access.
"""
from enum import Enum

import base58
from web3 import Web3

from .exceptions import ValidationError

NATIVE_TOKEN_ADDRESSES = (
    "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee",
    "0x0000000000000000000000000000000000000000",
)


class ChainFamily(str, Enum):
    EVM = "evm"
    SOLANA = "solana"


def is_evm_address(address: str) -> bool:
    return isinstance(address, str) and Web3.is_address(address)


def validate_evm_address(address: str, path: str = "address") -> str:
    """
    Check an EVM address and return it lower-cased.

    Raises:
        ValidationError: If the address is not a valid EVM address
    """
    if not is_evm_address(address):
        raise ValidationError.for_field(
            path,
            f"{address} is not a valid EVM address. If it's a ticker or symbol, "
            "search for the corresponding token address first",
        )
    return address.lower()


def is_solana_address(address: str) -> bool:
    if not isinstance(address, str) or not 32 <= len(address) <= 44:
        return False
    try:
        return len(base58.b58decode(address)) == 32
    except ValueError:
        return False


def validate_solana_address(address: str, path: str = "address") -> str:
    """
    Check a base58 Solana public key. Case is significant and preserved.

    Raises:
        ValidationError: If the address does not decode to 32 bytes
    """
    if not is_solana_address(address):
        raise ValidationError.for_field(path, f"{address} is not a valid Solana address")
    return address


def is_native_token(token_address: str) -> bool:
    return token_address.lower() in NATIVE_TOKEN_ADDRESSES
