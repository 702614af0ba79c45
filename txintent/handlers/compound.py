"""
Compound v2 lending actions.

Markets are cToken contracts. ERC-20 markets are looked up through the
comptroller by matching each market's ``underlying()``; the native asset has
a dedicated cEther market.
"""
import logging
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel

from ..chains import is_native_token, validate_evm_address
from ..config import NetworkConfig
from ..encoding.evm import UINT256_MAX, decode_result, encode_call
from ..exceptions import BuildError, PermanentUpstreamError, ValidationError
from ..models import BuildResult, CreateResult
from .assembler import ApprovalRequirement, BalanceRequirement, CallSpec, EvmAssembler, gather
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

# cEther, keyed by chain id
NATIVE_CTOKEN_ADDRESSES = {
    1: "0x4ddc2d193948926d02f9b1fe9e1daa0718270ed5",
}

COMPTROLLER_ADDRESSES = {
    1: "0x3d9819210a31b4961b30ef54be2aed79b9c9cd3b",
}

ACTION_GAS = 350000


class CompoundAction(str, Enum):
    SUPPLY = "supply"
    BORROW = "borrow"
    REPAY_BORROW = "repayBorrow"
    REDEEM = "redeem"


class CompoundPayload(BaseModel):
    chain: EvmChain
    action: CompoundAction
    amount: PositiveAmount
    asset: Optional[EvmAddress] = None
    market: Optional[str] = None


class CompoundV2Handler(Handler):
    """``compound/v2``: supply, borrow, repayBorrow and redeem"""

    def _underlying_of(self, provider, ctoken: str) -> Optional[str]:
        try:
            (underlying,) = decode_result(["address"], provider.call(ctoken, encode_call("underlying()")))
        except PermanentUpstreamError:
            # cEther has no underlying()
            return None
        return underlying.lower()

    def resolve_market(self, chain: str, asset: Optional[str]) -> Optional[str]:
        """cToken address for ``asset`` (native asset when None), or None when not listed"""
        chain_id = NetworkConfig.get_chain_id(chain)
        if asset is None:
            return NATIVE_CTOKEN_ADDRESSES.get(chain_id)

        provider = self.providers.evm(chain)
        (markets,) = decode_result(
            ["address[]"], provider.call(COMPTROLLER_ADDRESSES[chain_id], encode_call("getAllMarkets()"))
        )
        logger.debug(f"Scanning {len(markets)} Compound markets on {chain}")
        underlyings = gather({
            market.lower(): (lambda m=market: self._underlying_of(provider, m))
            for market in markets
        })
        for market, underlying in underlyings.items():
            if underlying == asset:
                return market
        return None

    def create(self, payload: Dict[str, Any]) -> CreateResult:
        parsed = parse_payload(CompoundPayload, payload)
        if parsed.asset is not None and is_native_token(parsed.asset):
            parsed = parsed.model_copy(update={"asset": None})

        chain_id = NetworkConfig.get_chain_id(parsed.chain)
        if chain_id not in COMPTROLLER_ADDRESSES:
            raise ValidationError.for_field("chain", f"Compound v2 is not deployed on {parsed.chain}")

        market = self.resolve_market(parsed.chain, parsed.asset)
        if market is None:
            raise ValidationError.for_field("asset", "cToken not found for the given asset")

        parsed = parsed.model_copy(update={"market": market})
        return CreateResult(chain=parsed.chain, data=dump_data(parsed))

    def _action_call(self, payload: CompoundPayload, raw: int) -> CallSpec:
        market = payload.market
        native = payload.asset is None
        if payload.action == CompoundAction.SUPPLY:
            if native:
                return CallSpec(to=market, data=encode_call("mint()"), value=raw, default_gas=ACTION_GAS)
            return CallSpec(to=market, data=encode_call("mint(uint256)", [raw]), default_gas=ACTION_GAS)
        if payload.action == CompoundAction.REPAY_BORROW:
            if native:
                return CallSpec(to=market, data=encode_call("repayBorrow()"), value=raw, default_gas=ACTION_GAS)
            return CallSpec(to=market, data=encode_call("repayBorrow(uint256)", [raw]), default_gas=ACTION_GAS)
        if payload.action == CompoundAction.BORROW:
            return CallSpec(to=market, data=encode_call("borrow(uint256)", [raw]), default_gas=ACTION_GAS)
        return CallSpec(to=market, data=encode_call("redeem(uint256)", [raw]), default_gas=ACTION_GAS)

    def build(self, data: Dict[str, Any], address: str) -> BuildResult:
        sender = validate_evm_address(address)
        payload = load_data(CompoundPayload, data)
        if not payload.market:
            raise BuildError("Intent has no resolved cToken market")

        provider = self.providers.evm(payload.chain)
        # redeem is denominated in cTokens, everything else in the underlying asset
        unit = payload.market if payload.action == CompoundAction.REDEEM else payload.asset
        raw = scale_amount(payload.amount, provider.decimals_of(unit), UINT256_MAX)

        approval = None
        balance = None
        if payload.action in (CompoundAction.SUPPLY, CompoundAction.REPAY_BORROW):
            balance = BalanceRequirement(amount=raw, token=payload.asset)
            if payload.asset is not None:
                approval = ApprovalRequirement(token=payload.asset, spender=payload.market, amount=raw)

        assembler = EvmAssembler(provider, payload.chain, self.settings)
        transactions = assembler.assemble(sender, self._action_call(payload, raw), approval=approval, balance=balance)
        return BuildResult(transactions=transactions)
