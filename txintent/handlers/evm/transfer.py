"""
Native and ERC-20 transfers on EVM chains.
"""
import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel
from web3 import Web3

from ...chains import is_native_token, validate_evm_address
from ...encoding.evm import UINT256_MAX, encode_call
from ...models import BuildResult, CreateResult
from ..assembler import ERC20_TRANSFER, BalanceRequirement, CallSpec, EvmAssembler
from ..base import (
    EvmAddress,
    EvmChain,
    Handler,
    PositiveAmount,
    dump_data,
    load_data,
    parse_payload,
    scale_amount,
)

logger = logging.getLogger(__name__)

NATIVE_TRANSFER_GAS = 21000
TOKEN_TRANSFER_GAS = 100000


class TransferPayload(BaseModel):
    chain: EvmChain
    recipient: EvmAddress
    amount: PositiveAmount
    token: Optional[EvmAddress] = None


class EvmTransferHandler(Handler):
    """``evm/transfer``: send the native asset or an ERC-20 token"""

    def create(self, payload: Dict[str, Any]) -> CreateResult:
        parsed = parse_payload(TransferPayload, payload)
        if parsed.token is not None and is_native_token(parsed.token):
            parsed = parsed.model_copy(update={"token": None})
        return CreateResult(chain=parsed.chain, data=dump_data(parsed))

    def build(self, data: Dict[str, Any], address: str) -> BuildResult:
        sender = validate_evm_address(address)
        payload = load_data(TransferPayload, data)
        provider = self.providers.evm(payload.chain)
        assembler = EvmAssembler(provider, payload.chain, self.settings)

        if payload.token is None:
            raw = scale_amount(payload.amount, provider.decimals_of(None), UINT256_MAX)
            action = CallSpec(to=payload.recipient, value=raw, default_gas=NATIVE_TRANSFER_GAS)
        else:
            raw = scale_amount(payload.amount, provider.decimals_of(payload.token), UINT256_MAX)
            action = CallSpec(
                to=payload.token,
                data=encode_call(ERC20_TRANSFER, [Web3.to_checksum_address(payload.recipient), raw]),
                default_gas=TOKEN_TRANSFER_GAS,
            )

        transactions = assembler.assemble(
            sender, action, balance=BalanceRequirement(amount=raw, token=payload.token)
        )
        return BuildResult(transactions=transactions)
