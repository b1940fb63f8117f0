from .executor import TradeExecutor
from .models import ExecutionResult

__all__ = [
    "ExecutionResult",
    "TradeExecutor",
]
