from .logger import ReceiptLogger
from .models import ExecutionReceipt, ParserSummary, ReceiptStatus

__all__ = [
    "ExecutionReceipt",
    "ParserSummary",
    "ReceiptLogger",
    "ReceiptStatus",
]
