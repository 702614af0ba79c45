"""
Per-chain-family envelope encoders.

Each chain family has exactly one encoding: EVM chains produce RLP hex,
Solana produces base64 legacy or versioned transactions.
"""
from .evm import EvmTransactionRequest, encode_unsigned, decode_unsigned
from .solana import encode_transaction, decode_transaction

__all__ = [
    "EvmTransactionRequest",
    "encode_unsigned",
    "decode_unsigned",
    "encode_transaction",
    "decode_transaction",
]
