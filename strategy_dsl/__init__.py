from .models import (
    Action,
    ActionType,
    ApprovalMode,
    Condition,
    ConditionType,
    Controls,
    Direction,
    Strategy,
    format_amount,
)
from .schema import SchemaViolationError, StrategyDocument, assert_valid_strategy, parse_strategy

__all__ = [
    "Action",
    "ActionType",
    "ApprovalMode",
    "Condition",
    "ConditionType",
    "Controls",
    "Direction",
    "SchemaViolationError",
    "Strategy",
    "StrategyDocument",
    "assert_valid_strategy",
    "format_amount",
    "parse_strategy",
]
