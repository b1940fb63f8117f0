"""Ledger records for paid-data procurement."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


class PaymentStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"


class Decision(Enum):
    PROCEED = "proceed"
    SKIP = "skip"


@dataclass(frozen=True)
class PaymentRecord:
    tool: str
    cost_usdc: float
    tx_hash: str
    timestamp: str
    status: PaymentStatus

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tool": self.tool,
            "cost_usdc": self.cost_usdc,
            "tx_hash": self.tx_hash,
            "timestamp": self.timestamp,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class ReasonCode:
    """Audit entry for one proceed/skip purchase decision."""

    tool: str
    cost_usdc: float
    budget_remaining_usdc: float
    decision: Decision
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tool": self.tool,
            "cost_usdc": self.cost_usdc,
            "budget_remaining_usdc": self.budget_remaining_usdc,
            "decision": self.decision.value,
            "reason": self.reason,
        }
