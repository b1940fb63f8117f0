"""Structural contract for untrusted strategy documents.

Parser output is data, never code: it is validated here into a provisional
pydantic document and only then promoted to the frozen ``Strategy`` type.
"""

from typing import Annotated, Any, List, Literal, Optional, Tuple

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError

from .models import (
    Action,
    ActionType,
    ApprovalMode,
    Condition,
    ConditionType,
    Controls,
    Direction,
    Strategy,
)

# One year.
MAX_EXPIRES_IN_MINUTES = 525_600


class SchemaViolationError(ValueError):
    """Raised when a strategy document is structurally malformed."""

    def __init__(self, errors: Tuple[str, ...]) -> None:
        super().__init__("Invalid strategy: " + "; ".join(errors))
        self.errors = errors


def _require_number(value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("must be a number")
    return value


def _require_integer(value: Any) -> Any:
    value = _require_number(value)
    if isinstance(value, float) and not value.is_integer():
        raise ValueError("must be an integer")
    return value


Number = Annotated[float, BeforeValidator(_require_number)]
Integer = Annotated[int, BeforeValidator(_require_integer)]


class _Document(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class ConditionDocument(_Document):
    type: Literal["price_below", "price_above", "funding_below", "funding_above", "volatility_above"]
    value: Number = Field(gt=0, allow_inf_nan=False)


class ActionDocument(_Document):
    type: Literal["swap"]
    amount_usdc: Number = Field(gt=0, allow_inf_nan=False)
    direction: Literal["buy", "sell"]


class ControlsDocument(_Document):
    max_slippage_bps: Integer = Field(ge=1, le=500)
    approval_mode: Literal["auto", "manual"]
    expires_in_minutes: Integer = Field(gt=0, le=MAX_EXPIRES_IN_MINUTES)


class StrategyDocument(_Document):
    pair: str = Field(min_length=1)
    conditions: List[ConditionDocument] = Field(min_length=1)
    actions: List[ActionDocument] = Field(min_length=1)
    controls: ControlsDocument

    def to_strategy(self) -> Strategy:
        return Strategy(
            pair=self.pair,
            conditions=tuple(
                Condition(type=ConditionType(item.type), value=float(item.value))
                for item in self.conditions
            ),
            actions=tuple(
                Action(
                    type=ActionType(item.type),
                    amount_usdc=float(item.amount_usdc),
                    direction=Direction(item.direction),
                )
                for item in self.actions
            ),
            controls=Controls(
                max_slippage_bps=int(self.controls.max_slippage_bps),
                approval_mode=ApprovalMode(self.controls.approval_mode),
                expires_in_minutes=int(self.controls.expires_in_minutes),
            ),
        )


def parse_strategy(raw: Any) -> Tuple[Optional[Strategy], Tuple[str, ...]]:
    """Return the trusted strategy, or ``None`` and one message per violation."""

    try:
        document = StrategyDocument.model_validate(raw)
    except ValidationError as exc:
        return None, tuple(_format_issue(issue) for issue in exc.errors())
    return document.to_strategy(), ()


def assert_valid_strategy(raw: Any) -> Strategy:
    strategy, errors = parse_strategy(raw)
    if strategy is None:
        raise SchemaViolationError(errors)
    return strategy


def _format_issue(issue: dict) -> str:
    location = ".".join(str(part) for part in issue.get("loc", ())) or "strategy"
    return f"{location}: {issue['msg']}"
