"""
Transaction assembly shared by handlers.

Handlers describe *what* to send (an action call, an optional approval
requirement, a balance requirement); the assemblers here resolve chain
state, decide whether an approval has to be inserted, and encode the
ordered envelope list. Nothing is returned unless every step succeeds.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from web3 import Web3

from ..config import NetworkConfig, Settings
from ..encoding.evm import EvmTransactionRequest, encode_call, to_envelope
from ..encoding.solana import encode_transaction
from ..exceptions import PreconditionError
from ..models import TransactionEnvelope
from ..providers.base import EvmStateProvider, SolanaStateProvider, call_with_policy

logger = logging.getLogger(__name__)

ERC20_APPROVE = "approve(address,uint256)"
ERC20_TRANSFER = "transfer(address,uint256)"

DEFAULT_GAS_LIMIT = 300000
# Same 10% headroom applied to node estimates everywhere
GAS_BUFFER_PERCENT = 10

_MAX_WORKERS = 8


def gather(calls: Dict[str, Callable[[], Any]]) -> Dict[str, Any]:
    """
    Run independent read-only calls concurrently.

    All calls are allowed to finish; the first failure in declaration order
    is then re-raised.
    """
    if len(calls) <= 1:
        return {name: fn() for name, fn in calls.items()}
    with ThreadPoolExecutor(max_workers=min(len(calls), _MAX_WORKERS)) as pool:
        futures = {name: pool.submit(fn) for name, fn in calls.items()}
    return {name: future.result() for name, future in futures.items()}


def needs_approval(allowance: int, required: int) -> bool:
    return allowance < required


@dataclass(frozen=True)
class CallSpec:
    """An EVM call before nonce, fee and gas fields are resolved"""
    to: str
    data: bytes = b""
    value: int = 0
    gas: Optional[int] = None
    default_gas: int = DEFAULT_GAS_LIMIT


@dataclass(frozen=True)
class ApprovalRequirement:
    """
    Allowance ``spender`` must hold on ``token`` before the action runs.

    ``allowance`` skips the on-chain lookup when the caller already knows it.
    ``call`` replaces the default ``approve(spender, amount)`` call, e.g. when
    an aggregator supplies its own approval template.
    """
    token: str
    spender: str
    amount: int
    allowance: Optional[int] = None
    call: Optional[CallSpec] = None


@dataclass(frozen=True)
class BalanceRequirement:
    """Minimum balance of ``token`` (native asset when None)"""
    amount: int
    token: Optional[str] = None


def approval_call(token: str, spender: str, amount: int) -> CallSpec:
    return CallSpec(
        to=token,
        data=encode_call(ERC20_APPROVE, [Web3.to_checksum_address(spender), amount]),
        default_gas=100000,
    )


def _with_buffer(gas: int) -> int:
    return gas + gas * GAS_BUFFER_PERCENT // 100


class EvmAssembler:
    """Assembles ordered, nonce-sequenced unsigned EVM transactions"""

    def __init__(
        self,
        provider: EvmStateProvider,
        chain: str,
        settings: Optional[Settings] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.provider = provider
        self.chain = NetworkConfig.resolve_chain(chain)
        self.chain_id = NetworkConfig.get_chain_id(self.chain)
        self.settings = settings or Settings()
        self.logger = logger or logging.getLogger(__name__)

    def _check_balance(self, sender: str, requirement: BalanceRequirement) -> None:
        balance = call_with_policy(
            self.settings.policy_for("balance_check"),
            "balance_check",
            lambda: self.provider.balance_of(sender, requirement.token),
            None,
            self.logger,
        )
        if balance is not None and balance < requirement.amount:
            asset = requirement.token or "native asset"
            raise PreconditionError(
                f"Insufficient balance of {asset}: have {balance}, need {requirement.amount}"
            )

    def _gas_for(self, sender: str, call: CallSpec, index: int) -> int:
        if call.gas:
            return call.gas
        if index > 0:
            # Depends on state changes from earlier steps, so a node estimate
            # would simulate against the wrong state
            return call.default_gas
        estimate = call_with_policy(
            self.settings.policy_for("gas_estimate"),
            "gas_estimate",
            lambda: self.provider.estimate_gas({
                "from": sender,
                "to": call.to,
                "data": call.data,
                "value": call.value,
            }),
            None,
            self.logger,
        )
        return _with_buffer(estimate) if estimate else call.default_gas

    def plan(
        self,
        sender: str,
        action: CallSpec,
        approval: Optional[ApprovalRequirement] = None,
        allowance: Optional[int] = None,
    ) -> List[CallSpec]:
        """Ordered calls: approval first when the allowance is short, action last"""
        calls: List[CallSpec] = []
        if approval is not None:
            current = approval.allowance if approval.allowance is not None else allowance
            if current is None:
                current = self.provider.allowance_of(approval.token, sender, approval.spender)
            if needs_approval(current, approval.amount):
                self.logger.debug(
                    f"Allowance {current} below {approval.amount}, inserting approval for {approval.token}"
                )
                calls.append(approval.call or approval_call(approval.token, approval.spender, approval.amount))
        calls.append(action)
        return calls

    def assemble(
        self,
        sender: str,
        action: CallSpec,
        approval: Optional[ApprovalRequirement] = None,
        balance: Optional[BalanceRequirement] = None,
    ) -> List[TransactionEnvelope]:
        """
        Resolve chain state for ``sender`` and encode the transaction list.

        Raises:
            PreconditionError: If the sender's balance is too low
            UpstreamError: If a required collaborator call fails
        """
        reads: Dict[str, Callable[[], Any]] = {
            "nonce": lambda: self.provider.next_nonce(sender),
            "fees": self.provider.fee_estimate,
        }
        if approval is not None and approval.allowance is None:
            reads["allowance"] = lambda: self.provider.allowance_of(approval.token, sender, approval.spender)
        if balance is not None:
            reads["balance"] = lambda: self._check_balance(sender, balance)
        state = gather(reads)

        calls = self.plan(sender, action, approval, state.get("allowance"))
        fee_fields = state["fees"].as_request_fields()
        envelopes = []
        for index, call in enumerate(calls):
            request = EvmTransactionRequest(
                chain_id=self.chain_id,
                to=call.to.lower(),
                data=call.data,
                value=call.value,
                nonce=state["nonce"] + index,
                gas=self._gas_for(sender, call, index),
                **fee_fields,
            )
            envelopes.append(to_envelope(request))

        self.logger.info(f"[{self.chain}] Assembled {len(envelopes)} transaction(s) for {sender[:10]}...")
        return envelopes


class SolanaAssembler:
    """Compiles instruction lists into base64 Solana envelopes"""

    def __init__(
        self,
        provider: SolanaStateProvider,
        settings: Optional[Settings] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.provider = provider
        self.settings = settings or Settings()
        self.logger = logger or logging.getLogger(__name__)

    def check_balance(self, owner: str, amount: int, mint: Optional[str] = None) -> None:
        balance = call_with_policy(
            self.settings.policy_for("balance_check"),
            "balance_check",
            lambda: self.provider.balance_of(owner, mint),
            None,
            self.logger,
        )
        if balance is not None and balance < amount:
            asset = mint or "SOL"
            raise PreconditionError(f"Insufficient balance of {asset}: have {balance}, need {amount}")

    def assemble(
        self,
        fee_payer: str,
        instructions: Sequence[Instruction],
        signers: Sequence[Keypair] = (),
        versioned: bool = False,
        auxiliary: Optional[Dict[str, Any]] = None,
        blockhash: Optional[str] = None,
    ) -> TransactionEnvelope:
        blockhash = blockhash or self.provider.latest_blockhash()
        envelope = encode_transaction(
            instructions,
            Pubkey.from_string(fee_payer),
            blockhash,
            versioned=versioned,
            signers=signers,
            auxiliary=auxiliary,
        )
        self.logger.info(f"Assembled Solana transaction with {len(instructions)} instruction(s) for {fee_payer[:8]}...")
        return envelope
