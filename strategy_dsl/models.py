"""Domain models for the strategy DSL."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple


class ConditionType(Enum):
    PRICE_BELOW = "price_below"
    PRICE_ABOVE = "price_above"
    FUNDING_BELOW = "funding_below"
    FUNDING_ABOVE = "funding_above"
    VOLATILITY_ABOVE = "volatility_above"


class ActionType(Enum):
    SWAP = "swap"


class Direction(Enum):
    BUY = "buy"
    SELL = "sell"


class ApprovalMode(Enum):
    AUTO = "auto"
    MANUAL = "manual"


@dataclass(frozen=True)
class Condition:
    type: ConditionType
    value: float


@dataclass(frozen=True)
class Action:
    type: ActionType
    amount_usdc: float
    direction: Direction


@dataclass(frozen=True)
class Controls:
    max_slippage_bps: int
    approval_mode: ApprovalMode
    expires_in_minutes: int


@dataclass(frozen=True)
class Strategy:
    """Validated trading instruction: one pair, ordered triggers and actions."""

    pair: str
    conditions: Tuple[Condition, ...]
    actions: Tuple[Action, ...]
    controls: Controls

    @property
    def total_spend_usdc(self) -> float:
        return sum(action.amount_usdc for action in self.actions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pair": self.pair,
            "conditions": [
                {"type": _wire(condition.type), "value": condition.value}
                for condition in self.conditions
            ],
            "actions": [
                {
                    "type": _wire(action.type),
                    "amount_usdc": action.amount_usdc,
                    "direction": _wire(action.direction),
                }
                for action in self.actions
            ],
            "controls": {
                "max_slippage_bps": self.controls.max_slippage_bps,
                "approval_mode": _wire(self.controls.approval_mode),
                "expires_in_minutes": self.controls.expires_in_minutes,
            },
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Strategy":
        controls = data["controls"]
        return Strategy(
            pair=data["pair"],
            conditions=tuple(
                Condition(type=ConditionType(entry["type"]), value=float(entry["value"]))
                for entry in data["conditions"]
            ),
            actions=tuple(
                Action(
                    type=ActionType(entry["type"]),
                    amount_usdc=float(entry["amount_usdc"]),
                    direction=Direction(entry["direction"]),
                )
                for entry in data["actions"]
            ),
            controls=Controls(
                max_slippage_bps=int(controls["max_slippage_bps"]),
                approval_mode=ApprovalMode(controls["approval_mode"]),
                expires_in_minutes=int(controls["expires_in_minutes"]),
            ),
        )


def format_amount(value: float) -> str:
    """Render a number the way operators typed it: 500 rather than 500.0."""

    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _wire(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value
