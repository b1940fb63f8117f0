"""Audit receipt models."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from paid_data.models import PaymentRecord, ReasonCode
from parser_adapter.models import ParserMetadata
from strategy_dsl.models import Strategy


class ReceiptStatus(Enum):
    EXECUTED = "executed"
    ABORTED = "aborted"
    EXPIRED = "expired"


@dataclass(frozen=True)
class ParserSummary:
    """The parser's narrative output; the strategy itself is recorded separately."""

    explanation: str
    risk_notes: Tuple[str, ...]
    parser_metadata: ParserMetadata


@dataclass(frozen=True)
class ExecutionReceipt:
    intent_id: Optional[str]
    raw_user_prompt: str
    parser_output: ParserSummary
    validated_strategy: Optional[Strategy]
    encrypted_intent_hash: Optional[str]
    payments: Tuple[PaymentRecord, ...]
    reason_codes: Tuple[ReasonCode, ...]
    conditions_met: bool
    execution_tx_hash: Optional[str]
    total_spend_usdc: float
    status: ReceiptStatus
    timestamp: str
    errors: Tuple[str, ...] = ()
    clamped: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intent_id": self.intent_id,
            "raw_user_prompt": self.raw_user_prompt,
            "parser_output": {
                "explanation": self.parser_output.explanation,
                "risk_notes": list(self.parser_output.risk_notes),
                "parser_metadata": {
                    "model": self.parser_output.parser_metadata.model,
                    "confidence": self.parser_output.parser_metadata.confidence,
                },
            },
            "validated_strategy": (
                self.validated_strategy.to_dict() if self.validated_strategy else None
            ),
            "encrypted_intent_hash": self.encrypted_intent_hash,
            "payments": [record.to_dict() for record in self.payments],
            "reason_codes": [code.to_dict() for code in self.reason_codes],
            "conditions_met": self.conditions_met,
            "execution_tx_hash": self.execution_tx_hash,
            "total_spend_usdc": self.total_spend_usdc,
            "status": self.status.value,
            "timestamp": self.timestamp,
            "errors": list(self.errors),
            "clamped": list(self.clamped),
        }
