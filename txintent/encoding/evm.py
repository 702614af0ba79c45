"""
Unsigned transaction encoding for account-based (EVM) chains.

Transactions are serialized the way wallets expect to receive them for
signing: RLP with no signature fields. EIP-1559 (type 2) is used whenever
``max_fee_per_gas`` is known, EIP-155 legacy otherwise.
"""
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

import rlp
from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from web3 import Web3

from ..models import EnvelopeEncoding, TransactionEnvelope

DYNAMIC_FEE_TX_TYPE = 0x02
UINT256_MAX = 2 ** 256 - 1


@dataclass(frozen=True)
class EvmTransactionRequest:
    """Intermediate representation handed to the encoder"""
    chain_id: int
    to: Optional[str]
    data: bytes = b""
    value: int = 0
    nonce: int = 0
    gas: int = 0
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None
    gas_price: Optional[int] = None

    @property
    def is_dynamic_fee(self) -> bool:
        return self.max_fee_per_gas is not None


def _address_bytes(address: Optional[str]) -> bytes:
    if not address:
        return b""
    return bytes.fromhex(address[2:] if address.startswith("0x") else address)


def _to_int(raw: bytes) -> int:
    return int.from_bytes(raw, "big") if raw else 0


def _to_address(raw: bytes) -> Optional[str]:
    return "0x" + raw.hex() if raw else None


def encode_unsigned(request: EvmTransactionRequest) -> str:
    """
    Serialize a transaction request with zero signatures attached.

    Returns:
        0x-prefixed hex string
    """
    to = _address_bytes(request.to)
    if request.is_dynamic_fee:
        fields = [
            request.chain_id,
            request.nonce,
            request.max_priority_fee_per_gas or 0,
            request.max_fee_per_gas,
            request.gas,
            to,
            request.value,
            request.data,
            [],  # access list
        ]
        raw = bytes([DYNAMIC_FEE_TX_TYPE]) + rlp.encode(fields)
    else:
        # EIP-155 signing payload: chain id followed by two empty fields
        fields = [
            request.nonce,
            request.gas_price or 0,
            request.gas,
            to,
            request.value,
            request.data,
            request.chain_id,
            0,
            0,
        ]
        raw = rlp.encode(fields)
    return "0x" + raw.hex()


def decode_unsigned(payload: str) -> EvmTransactionRequest:
    """
    Parse an unsigned hex payload produced by :func:`encode_unsigned`.

    Raises:
        ValueError: If the payload is not an unsigned type 0 or type 2 transaction
    """
    raw = bytes.fromhex(payload[2:] if payload.startswith("0x") else payload)
    if not raw:
        raise ValueError("Empty transaction payload")

    if raw[0] == DYNAMIC_FEE_TX_TYPE:
        fields = rlp.decode(raw[1:])
        if len(fields) != 9:
            raise ValueError(f"Expected 9 fields in a type 2 transaction, got {len(fields)}")
        chain_id, nonce, priority, max_fee, gas, to, value, data, _access_list = fields
        return EvmTransactionRequest(
            chain_id=_to_int(chain_id),
            to=_to_address(to),
            data=bytes(data),
            value=_to_int(value),
            nonce=_to_int(nonce),
            gas=_to_int(gas),
            max_fee_per_gas=_to_int(max_fee),
            max_priority_fee_per_gas=_to_int(priority),
        )

    if raw[0] >= 0xC0:
        fields = rlp.decode(raw)
        if len(fields) != 9:
            raise ValueError(f"Expected 9 fields in an unsigned legacy transaction, got {len(fields)}")
        nonce, gas_price, gas, to, value, data, chain_id, r, s = fields
        if r or s:
            raise ValueError("Legacy transaction carries signature values")
        return EvmTransactionRequest(
            chain_id=_to_int(chain_id),
            to=_to_address(to),
            data=bytes(data),
            value=_to_int(value),
            nonce=_to_int(nonce),
            gas=_to_int(gas),
            gas_price=_to_int(gas_price),
        )

    raise ValueError(f"Unsupported transaction type: {raw[0]:#04x}")


def to_envelope(request: EvmTransactionRequest) -> TransactionEnvelope:
    return TransactionEnvelope(encoding=EnvelopeEncoding.HEX, payload=encode_unsigned(request))


def _argument_types(signature: str) -> List[str]:
    inner = signature[signature.index("(") + 1:signature.rindex(")")]
    return [t.strip() for t in inner.split(",") if t.strip()]


def function_selector(signature: str) -> bytes:
    """First four bytes of keccak256 of a canonical signature like ``transfer(address,uint256)``"""
    return bytes(Web3.keccak(text=signature)[:4])


def encode_call(signature: str, args: Sequence[Any] = ()) -> bytes:
    """ABI-encode a function call"""
    types = _argument_types(signature)
    if len(types) != len(args):
        raise ValueError(f"{signature} takes {len(types)} arguments, got {len(args)}")
    encoded = abi_encode(types, list(args)) if types else b""
    return function_selector(signature) + encoded


def decode_call(signature: str, data: bytes) -> Tuple[Any, ...]:
    """
    Decode call data for a known signature.

    Raises:
        ValueError: If the selector does not match
    """
    if data[:4] != function_selector(signature):
        raise ValueError(f"Call data does not match {signature}")
    types = _argument_types(signature)
    return tuple(abi_decode(types, data[4:])) if types else ()


def decode_result(types: Sequence[str], data: bytes) -> Tuple[Any, ...]:
    """Decode the return data of an eth_call"""
    return tuple(abi_decode(list(types), data))
