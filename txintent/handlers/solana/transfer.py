"""
SOL and SPL token transfers.
"""
import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer

from ...chains import validate_solana_address
from ...encoding.solana import (
    SOL_DECIMALS,
    U64_MAX,
    create_associated_token_account,
    get_associated_token_address,
    token_transfer,
)
from ...exceptions import ValidationError
from ...models import BuildResult, CreateResult
from ..assembler import SolanaAssembler, gather
from ..base import (
    Handler,
    PositiveAmount,
    SolanaAddress,
    dump_data,
    load_data,
    parse_payload,
    scale_amount,
)

logger = logging.getLogger(__name__)

PENDING_MESSAGE = "Token address will be known after transaction is completed"


class SolanaTransferPayload(BaseModel):
    toWalletAddress: SolanaAddress
    amount: PositiveAmount
    tokenAddress: Optional[SolanaAddress] = None


class SolanaTransferHandler(Handler):
    """``solana/transfer``: send SOL, or an SPL token when ``tokenAddress`` is set"""

    chain = "solana"

    def create(self, payload: Dict[str, Any]) -> CreateResult:
        parsed = parse_payload(SolanaTransferPayload, payload)
        if parsed.tokenAddress is not None:
            if not self.providers.solana(self.chain).account_exists(parsed.tokenAddress):
                raise ValidationError.for_field("tokenAddress", f"Token mint {parsed.tokenAddress} does not exist")
        return CreateResult(chain=self.chain, data=dump_data(parsed), extras={"message": PENDING_MESSAGE})

    def build(self, data: Dict[str, Any], address: str) -> BuildResult:
        owner_address = validate_solana_address(address)
        payload = load_data(SolanaTransferPayload, data)
        provider = self.providers.solana(self.chain)
        assembler = SolanaAssembler(provider, self.settings)
        owner = Pubkey.from_string(owner_address)
        recipient = Pubkey.from_string(payload.toWalletAddress)

        if payload.tokenAddress is None:
            raw = scale_amount(payload.amount, SOL_DECIMALS, U64_MAX)
            assembler.check_balance(owner_address, raw)
            instructions = [transfer(TransferParams(from_pubkey=owner, to_pubkey=recipient, lamports=raw))]
        else:
            mint = Pubkey.from_string(payload.tokenAddress)
            destination = get_associated_token_address(recipient, mint)
            state = gather({
                "decimals": lambda: provider.decimals_of(payload.tokenAddress),
                "destination_exists": lambda: provider.account_exists(str(destination)),
            })
            raw = scale_amount(payload.amount, state["decimals"], U64_MAX)
            assembler.check_balance(owner_address, raw, payload.tokenAddress)

            instructions = []
            if not state["destination_exists"]:
                logger.debug(f"Recipient token account {destination} missing, creating it")
                instructions.append(create_associated_token_account(owner, recipient, mint))
            instructions.append(
                token_transfer(get_associated_token_address(owner, mint), destination, owner, raw)
            )

        return BuildResult(transactions=[assembler.assemble(owner_address, instructions)])
