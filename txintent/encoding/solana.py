"""
Unsigned transaction encoding for instruction-list (Solana) chains.

A transaction is compiled from ``{instructions, fee_payer, recent_blockhash}``
into a legacy ``Message`` or a ``MessageV0`` and serialized to base64 with one
signature slot per required signer. Slots start as the all-zero default
signature. Keypairs generated by this service (a fresh mint, for example)
may fill their own slot; the fee payer's slot is never filled here.
"""
import base64
import struct
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.message import Message, MessageV0, to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction, VersionedTransaction

from ..models import EnvelopeEncoding, TransactionEnvelope

TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
ASSOCIATED_TOKEN_PROGRAM_ID = Pubkey.from_string("ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL")
SYSTEM_PROGRAM_ID = Pubkey.from_string("11111111111111111111111111111111")

LAMPORTS_PER_SOL = 1_000_000_000
SOL_DECIMALS = 9
MINT_SIZE = 82

U64_MAX = 2 ** 64 - 1

# SPL token program instruction tags
_TOKEN_TRANSFER = 3
_TOKEN_MINT_TO = 7
_TOKEN_INITIALIZE_MINT2 = 20

# Associated token account program instruction tags
_ATA_CREATE = 0
_ATA_CREATE_IDEMPOTENT = 1


@dataclass(frozen=True)
class DecodedSolanaTransaction:
    instructions: List[Instruction]
    fee_payer: Pubkey
    recent_blockhash: str
    signatures: List[Signature]
    account_keys: List[Pubkey]
    versioned: bool

    def signature_for(self, signer: Pubkey) -> Signature:
        return self.signatures[self.account_keys.index(signer)]


def _compile(instructions: Sequence[Instruction], fee_payer: Pubkey, blockhash: Hash, versioned: bool):
    if versioned:
        message = MessageV0.try_compile(fee_payer, list(instructions), [], blockhash)
        return message, to_bytes_versioned(message)
    message = Message.new_with_blockhash(list(instructions), fee_payer, blockhash)
    return message, bytes(message)


def encode_transaction(
    instructions: Sequence[Instruction],
    fee_payer: Pubkey,
    recent_blockhash: str,
    versioned: bool = False,
    signers: Sequence[Keypair] = (),
    auxiliary: Optional[dict] = None,
) -> TransactionEnvelope:
    """
    Compile and serialize an unsigned (or service-partially-signed) transaction.

    Args:
        instructions: Ordered instruction list
        fee_payer: End-user wallet paying fees; its signature slot stays empty
        recent_blockhash: Base58 blockhash fetched at build time
        versioned: Produce a v0 message instead of a legacy one
        signers: Service-generated keypairs that must co-sign
        auxiliary: Extra values returned alongside the payload

    Raises:
        ValueError: If asked to sign for the fee payer or for a non-signer
    """
    if not instructions:
        raise ValueError("A transaction needs at least one instruction")

    message, message_bytes = _compile(instructions, fee_payer, Hash.from_string(recent_blockhash), versioned)
    account_keys = list(message.account_keys)
    required = message.header.num_required_signatures
    signatures = [Signature.default()] * required

    for keypair in signers:
        pubkey = keypair.pubkey()
        if pubkey == fee_payer:
            raise ValueError("Refusing to attach a signature for the fee payer")
        if pubkey not in account_keys[:required]:
            raise ValueError(f"{pubkey} is not a required signer of this transaction")
        signatures[account_keys.index(pubkey)] = keypair.sign_message(message_bytes)

    if versioned:
        tx = VersionedTransaction.populate(message, signatures)
        encoding = EnvelopeEncoding.VERSIONED_BINARY
    else:
        tx = Transaction.populate(message, signatures)
        encoding = EnvelopeEncoding.LEGACY_BINARY

    payload = base64.b64encode(bytes(tx)).decode("ascii")
    return TransactionEnvelope(encoding=encoding, payload=payload, auxiliary=auxiliary or None)


def decode_transaction(envelope: Union[TransactionEnvelope, str], versioned: Optional[bool] = None) -> DecodedSolanaTransaction:
    """
    Rebuild the instruction list, fee payer and blockhash from a base64 payload.

    Signer and writable flags are recovered from the message header.
    """
    if isinstance(envelope, TransactionEnvelope):
        if envelope.encoding == EnvelopeEncoding.HEX:
            raise ValueError("Not a Solana envelope")
        payload = envelope.payload
        versioned = envelope.encoding == EnvelopeEncoding.VERSIONED_BINARY
    else:
        payload = envelope
    raw = base64.b64decode(payload)

    if versioned:
        tx = VersionedTransaction.from_bytes(raw)
    else:
        tx = Transaction.from_bytes(raw)
    message = tx.message

    keys = list(message.account_keys)
    header = message.header
    n_signed = header.num_required_signatures
    readonly_signed = header.num_readonly_signed_accounts
    readonly_unsigned = header.num_readonly_unsigned_accounts

    def is_writable(index: int) -> bool:
        if index < n_signed:
            return index < n_signed - readonly_signed
        return index < len(keys) - readonly_unsigned

    instructions = [
        Instruction(
            keys[compiled.program_id_index],
            bytes(compiled.data),
            [AccountMeta(keys[i], i < n_signed, is_writable(i)) for i in compiled.accounts],
        )
        for compiled in message.instructions
    ]
    return DecodedSolanaTransaction(
        instructions=instructions,
        fee_payer=keys[0],
        recent_blockhash=str(message.recent_blockhash),
        signatures=list(tx.signatures),
        account_keys=keys,
        versioned=bool(versioned),
    )


def _u64(amount: int) -> int:
    if not 0 <= amount <= U64_MAX:
        raise ValueError(f"Amount {amount} does not fit in a u64")
    return amount


def get_associated_token_address(owner: Pubkey, mint: Pubkey) -> Pubkey:
    address, _bump = Pubkey.find_program_address(
        [bytes(owner), bytes(TOKEN_PROGRAM_ID), bytes(mint)],
        ASSOCIATED_TOKEN_PROGRAM_ID,
    )
    return address


def create_associated_token_account(
    payer: Pubkey, owner: Pubkey, mint: Pubkey, idempotent: bool = True
) -> Instruction:
    tag = _ATA_CREATE_IDEMPOTENT if idempotent else _ATA_CREATE
    return Instruction(
        ASSOCIATED_TOKEN_PROGRAM_ID,
        bytes([tag]),
        [
            AccountMeta(payer, True, True),
            AccountMeta(get_associated_token_address(owner, mint), False, True),
            AccountMeta(owner, False, False),
            AccountMeta(mint, False, False),
            AccountMeta(SYSTEM_PROGRAM_ID, False, False),
            AccountMeta(TOKEN_PROGRAM_ID, False, False),
        ],
    )


def token_transfer(source: Pubkey, destination: Pubkey, owner: Pubkey, amount: int) -> Instruction:
    return Instruction(
        TOKEN_PROGRAM_ID,
        struct.pack("<BQ", _TOKEN_TRANSFER, _u64(amount)),
        [
            AccountMeta(source, False, True),
            AccountMeta(destination, False, True),
            AccountMeta(owner, True, False),
        ],
    )


def initialize_mint2(
    mint: Pubkey, decimals: int, mint_authority: Pubkey, freeze_authority: Optional[Pubkey] = None
) -> Instruction:
    data = bytes([_TOKEN_INITIALIZE_MINT2, decimals]) + bytes(mint_authority)
    if freeze_authority is None:
        data += b"\x00"
    else:
        data += b"\x01" + bytes(freeze_authority)
    return Instruction(TOKEN_PROGRAM_ID, data, [AccountMeta(mint, False, True)])


def mint_to(mint: Pubkey, destination: Pubkey, authority: Pubkey, amount: int) -> Instruction:
    return Instruction(
        TOKEN_PROGRAM_ID,
        struct.pack("<BQ", _TOKEN_MINT_TO, _u64(amount)),
        [
            AccountMeta(mint, False, True),
            AccountMeta(destination, False, True),
            AccountMeta(authority, True, False),
        ],
    )
