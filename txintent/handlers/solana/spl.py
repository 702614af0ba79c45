"""
SPL token mint creation.

The mint account is a fresh keypair generated here. It co-signs the
transaction for its own slot only; the wallet still signs as fee payer.
"""
import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import CreateAccountParams, create_account

from ...chains import validate_solana_address
from ...encoding.solana import (
    MINT_SIZE,
    TOKEN_PROGRAM_ID,
    U64_MAX,
    create_associated_token_account,
    get_associated_token_address,
    initialize_mint2,
    mint_to,
)
from ...exceptions import PreconditionError
from ...models import BuildResult, CreateResult
from ..assembler import SolanaAssembler, gather
from ..base import (
    Handler,
    NonNegativeAmount,
    SolanaAddress,
    dump_data,
    load_data,
    parse_payload,
    scale_amount,
)

logger = logging.getLogger(__name__)


class SplCreatePayload(BaseModel):
    decimals: int = Field(default=9, ge=0, le=9)
    freezeAuthority: Optional[SolanaAddress] = None
    mintAuthority: Optional[SolanaAddress] = None
    mintAmount: NonNegativeAmount = "1000000000"


class SplCreateHandler(Handler):
    """``solana/spl-create``: create a new SPL mint, optionally minting to the wallet"""

    chain = "solana"

    def __init__(self, providers, settings=None, keypair_factory=Keypair):
        super().__init__(providers, settings)
        self.keypair_factory = keypair_factory

    def create(self, payload: Dict[str, Any]) -> CreateResult:
        parsed = parse_payload(SplCreatePayload, payload)
        return CreateResult(chain=self.chain, data=dump_data(parsed))

    def build(self, data: Dict[str, Any], address: str) -> BuildResult:
        owner_address = validate_solana_address(address)
        payload = load_data(SplCreatePayload, data)
        provider = self.providers.solana(self.chain)
        owner = Pubkey.from_string(owner_address)

        mint_authority = Pubkey.from_string(payload.mintAuthority) if payload.mintAuthority else owner
        freeze_authority = Pubkey.from_string(payload.freezeAuthority) if payload.freezeAuthority else None
        raw_supply = scale_amount(payload.mintAmount, payload.decimals, U64_MAX)
        if raw_supply > 0 and mint_authority != owner:
            raise PreconditionError("mintAuthority must be the building wallet when minting an initial supply")

        mint = self.keypair_factory()
        mint_pubkey = mint.pubkey()
        state = gather({
            "rent": lambda: provider.minimum_balance_for_rent_exemption(MINT_SIZE),
            "blockhash": provider.latest_blockhash,
        })

        instructions = [
            create_account(CreateAccountParams(
                from_pubkey=owner,
                to_pubkey=mint_pubkey,
                lamports=state["rent"],
                space=MINT_SIZE,
                owner=TOKEN_PROGRAM_ID,
            )),
            initialize_mint2(mint_pubkey, payload.decimals, mint_authority, freeze_authority),
        ]
        if raw_supply > 0:
            token_account = get_associated_token_address(owner, mint_pubkey)
            instructions.append(create_associated_token_account(owner, owner, mint_pubkey, idempotent=False))
            instructions.append(mint_to(mint_pubkey, token_account, mint_authority, raw_supply))

        token_address = str(mint_pubkey)
        logger.info(f"Prepared SPL mint {token_address} for {owner_address[:8]}...")
        envelope = SolanaAssembler(provider, self.settings).assemble(
            owner_address,
            instructions,
            signers=[mint],
            auxiliary={"tokenAddress": token_address},
            blockhash=state["blockhash"],
        )
        return BuildResult(transactions=[envelope], auxiliary={"tokenAddress": token_address})
