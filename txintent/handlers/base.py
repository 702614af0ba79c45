"""
Handler contract shared by every protocol plugin.

A handler has two phases:

``create(payload)``
    Validate and normalize caller input without touching chain state
    beyond read-only existence checks. The returned ``data`` is the single
    source of truth for ``build``.

``build(data, address)``
    Resolve live chain state for ``address`` and assemble the ordered list
    of unsigned transaction envelopes.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import AfterValidator, BaseModel, BeforeValidator
from pydantic import ValidationError as PydanticValidationError
from typing_extensions import Annotated

from ..amounts import parse_amount, to_raw_amount
from ..chains import ChainFamily, is_evm_address, is_solana_address
from ..config import NetworkConfig, Settings
from ..exceptions import BuildError, FieldIssue, PreconditionError, ValidationError
from ..models import BuildResult, CreateResult

ModelT = TypeVar("ModelT", bound=BaseModel)


class Handler(ABC):
    """Protocol plugin implementing the create/build contract"""

    def __init__(self, providers, settings: Optional[Settings] = None):
        self.providers = providers
        self.settings = settings or Settings()

    @abstractmethod
    def create(self, payload: Dict[str, Any]) -> CreateResult:
        """
        Validate and normalize a payload.

        Raises:
            ValidationError: On schema violations, inconsistent fields or
                failed existence checks
        """

    @abstractmethod
    def build(self, data: Dict[str, Any], address: str) -> BuildResult:
        """
        Assemble unsigned transactions for ``address``.

        Raises:
            ValidationError: If ``address`` is not valid for the chain family
            BuildError: If chain state does not allow the action
            UpstreamError: If a collaborator fails
        """


def _issue_path(loc) -> str:
    return ".".join(str(part) for part in loc)


def _issue_message(message: str) -> str:
    # pydantic prefixes messages from custom validators
    for prefix in ("Value error, ", "Assertion failed, "):
        if message.startswith(prefix):
            return message[len(prefix):]
    return message


def parse_payload(schema: Type[ModelT], payload: Any) -> ModelT:
    """
    Validate a caller payload, aggregating every field failure.

    Raises:
        ValidationError: Listing each ``path: message`` pair
    """
    if not isinstance(payload, dict):
        raise ValidationError.for_field("payload", "Payload must be an object")
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as e:
        issues = [FieldIssue(_issue_path(err["loc"]), _issue_message(err["msg"])) for err in e.errors()]
        raise ValidationError(issues=issues) from None


def load_data(schema: Type[ModelT], data: Dict[str, Any]) -> ModelT:
    """Re-hydrate normalized intent data inside ``build``"""
    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        raise BuildError(f"Stored intent data is invalid: {e.error_count()} error(s)") from e


def dump_data(model: BaseModel) -> Dict[str, Any]:
    return model.model_dump(mode="json", exclude_none=True)


def scale_amount(amount: str, decimals: int, max_raw: int) -> int:
    """
    Convert a normalized amount into minor units inside ``build``.

    Args:
        amount: Decimal string from intent data
        decimals: Decimal count of the asset
        max_raw: Largest value the target encoding can carry

    Raises:
        PreconditionError: If a positive amount floors to zero or the result
            does not fit in ``max_raw``
    """
    raw = to_raw_amount(amount, decimals)
    if raw == 0 and parse_amount(amount) > 0:
        raise PreconditionError(
            f"Amount {amount} is below the smallest unit of an asset with {decimals} decimals"
        )
    if raw > max_raw:
        raise PreconditionError(f"Amount {amount} is too large: {raw} minor units exceeds {max_raw}")
    return raw


def _evm_address(value: str) -> str:
    if not is_evm_address(value):
        raise ValueError(
            f"{value} is not a valid EVM address. If it's a ticker or symbol, "
            "search for the corresponding token address first"
        )
    return value.lower()


def _solana_address(value: str) -> str:
    if not is_solana_address(value):
        raise ValueError(f"{value} is not a valid Solana address")
    return value


def _chain_of(family: ChainFamily):
    def check(value: str) -> str:
        canonical = NetworkConfig.resolve_chain(value)
        if NetworkConfig.get_family(canonical) != family.value:
            raise ValueError(f"Chain {canonical} is not a {family.value} chain")
        return canonical
    return check


def _amount(value: Any, allow_zero: bool = False) -> str:
    if value is None or value == "":
        raise ValueError("Missing required field: amount")
    amount = parse_amount(value)
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValueError("Amount must be positive")
    return str(amount)


EvmAddress = Annotated[str, AfterValidator(_evm_address)]
SolanaAddress = Annotated[str, AfterValidator(_solana_address)]
EvmChain = Annotated[str, AfterValidator(_chain_of(ChainFamily.EVM))]
PositiveAmount = Annotated[str, BeforeValidator(_amount)]
NonNegativeAmount = Annotated[str, BeforeValidator(lambda v: _amount(v, allow_zero=True))]
