"""Builds one write-once receipt per workflow run."""

from datetime import datetime, timezone
from typing import Callable, Iterable, Optional
import hashlib

from paid_data.models import PaymentRecord, ReasonCode
from strategy_dsl.models import Strategy

from .models import ExecutionReceipt, ParserSummary, ReceiptStatus


class ReceiptLogger:
    def __init__(self, time_provider: Optional[Callable[[], str]] = None) -> None:
        self._time_provider = time_provider or _utc_timestamp

    def build_receipt(
        self,
        *,
        intent_id: Optional[str],
        raw_prompt: str,
        parser_output: ParserSummary,
        validated_strategy: Optional[Strategy],
        encrypted_payload: Optional[str],
        payments: Iterable[PaymentRecord],
        reason_codes: Iterable[ReasonCode],
        conditions_met: bool,
        execution_tx_hash: Optional[str],
        total_spend_usdc: float,
        status: ReceiptStatus,
        errors: Iterable[str] = (),
        clamped: Iterable[str] = (),
    ) -> ExecutionReceipt:
        """Only the hash of the sealed payload is kept, never the payload."""

        return ExecutionReceipt(
            intent_id=intent_id,
            raw_user_prompt=raw_prompt,
            parser_output=parser_output,
            validated_strategy=validated_strategy,
            encrypted_intent_hash=(
                hashlib.sha256(encrypted_payload.encode("utf-8")).hexdigest()
                if encrypted_payload is not None
                else None
            ),
            payments=tuple(payments),
            reason_codes=tuple(reason_codes),
            conditions_met=conditions_met,
            execution_tx_hash=execution_tx_hash,
            total_spend_usdc=total_spend_usdc,
            status=status,
            timestamp=self._time_provider(),
            errors=tuple(errors),
            clamped=tuple(clamped),
        )


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()
