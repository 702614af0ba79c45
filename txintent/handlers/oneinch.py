"""
Token swaps through the 1inch aggregation API.

The API supplies both the approval and the swap transaction templates; this
handler only decides whether the approval is needed and re-encodes the
templates with our own nonce and fee fields.
"""
import logging
from typing import Any, Dict, Optional

from hexbytes import HexBytes
from pydantic import BaseModel, Field, model_validator

from ..chains import is_native_token, validate_evm_address
from ..config import NetworkConfig
from ..encoding.evm import UINT256_MAX
from ..exceptions import PermanentUpstreamError
from ..models import BuildResult, CreateResult
from .assembler import ApprovalRequirement, BalanceRequirement, CallSpec, EvmAssembler, needs_approval
from .base import (
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

SWAP_GAS = 500000


class SwapPayload(BaseModel):
    chain: EvmChain
    inputToken: EvmAddress
    outputToken: EvmAddress
    amount: PositiveAmount
    slippage: float = Field(default=1, ge=0, le=100)

    @model_validator(mode="after")
    def _distinct_tokens(self) -> "SwapPayload":
        if self.inputToken == self.outputToken:
            raise ValueError("inputToken and outputToken must differ")
        return self


def call_from_template(template: Dict[str, Any], default_gas: int = SWAP_GAS) -> CallSpec:
    """Turn an API transaction template into a :class:`CallSpec`"""
    try:
        gas = int(template.get("gas") or 0)
        return CallSpec(
            to=template["to"].lower(),
            data=bytes(HexBytes(template.get("data") or "0x")),
            value=int(template.get("value") or 0),
            gas=gas or None,
            default_gas=default_gas,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise PermanentUpstreamError(f"Malformed transaction template: {e}", collaborator="1inch") from e


class OneInchSwapHandler(Handler):
    """``1inch/swap``: swap ``amount`` of ``inputToken`` for ``outputToken``"""

    protocol = "1inch"

    def create(self, payload: Dict[str, Any]) -> CreateResult:
        parsed = parse_payload(SwapPayload, payload)
        return CreateResult(chain=parsed.chain, data=dump_data(parsed))

    def build(self, data: Dict[str, Any], address: str) -> BuildResult:
        sender = validate_evm_address(address)
        payload = load_data(SwapPayload, data)
        chain_id = NetworkConfig.get_chain_id(payload.chain)
        provider = self.providers.evm(payload.chain)
        quotes = self.providers.quotes(self.protocol)

        native_input = is_native_token(payload.inputToken)
        token = None if native_input else payload.inputToken
        raw = scale_amount(payload.amount, provider.decimals_of(token), UINT256_MAX)

        # API calls run in order; the quote provider paces them
        allowance: Optional[int] = None
        approve_call: Optional[CallSpec] = None
        if not native_input:
            allowance = quotes.allowance(chain_id, payload.inputToken, sender)
            if needs_approval(allowance, raw):
                approve_call = call_from_template(quotes.approve_transaction(chain_id, payload.inputToken), 100000)

        swap = quotes.swap(chain_id, payload.inputToken, payload.outputToken, raw, sender, payload.slippage)
        action = call_from_template(swap["tx"])

        approval: Optional[ApprovalRequirement] = None
        if not native_input:
            approval = ApprovalRequirement(
                token=payload.inputToken,
                spender=action.to,
                amount=raw,
                allowance=allowance,
                call=approve_call,
            )

        assembler = EvmAssembler(provider, payload.chain, self.settings)
        transactions = assembler.assemble(
            sender, action, approval=approval, balance=BalanceRequirement(amount=raw, token=token)
        )

        auxiliary = {}
        if swap.get("dstAmount") is not None:
            auxiliary["expectedOutput"] = str(swap["dstAmount"])
        return BuildResult(transactions=transactions, auxiliary=auxiliary)
