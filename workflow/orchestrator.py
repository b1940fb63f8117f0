"""Agent workflow: parse, validate, seal, monitor, open, re-check, execute, receipt.

Each run walks a linear state machine. Every stage either hands over to the
next one or ends in a tagged outcome (``Aborted``, ``Expired``, ``Executed``);
``_finalize`` turns the outcome into the run's single receipt.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
import logging

import httpx

from execution_adapter.dex.executor import TradeExecutor
from execution_adapter.dex.models import ExecutionResult
from intent_vault.bite import BiteIntentHandler
from intent_vault.models import EncryptedIntent
from paid_data.models import PaymentRecord, ReasonCode
from paid_data.reasoning import EconomicReasoningEngine
from paid_data.x402 import SignPayment, X402PaymentClient
from parser_adapter.client import ParserAdapter
from parser_adapter.models import ParserInput, ParserOutput
from policy_guard.risk import check_risk
from policy_guard.validator import validate_strategy
from receipts.logger import ReceiptLogger
from receipts.models import ExecutionReceipt, ParserSummary, ReceiptStatus
from strategy_dsl.models import Strategy

from .conditions import ConditionChecker
from .config import WorkflowConfig

logger = logging.getLogger(__name__)


class WorkflowState(Enum):
    STARTED = "started"
    PARSED = "parsed"
    VALIDATION_FAILED = "validation_failed"
    VALIDATED = "validated"
    ENCRYPTED = "encrypted"
    MONITORING = "monitoring"
    CONDITIONS_NOT_MET = "conditions_not_met"
    CONDITIONS_MET = "conditions_met"
    DECRYPTED = "decrypted"
    RISK_FAILED = "risk_failed"
    RISK_PASSED = "risk_passed"
    EXECUTED = "executed"


@dataclass(frozen=True)
class Aborted:
    errors: Tuple[str, ...]
    conditions_met: bool = False
    total_spend_usdc: float = 0.0


@dataclass(frozen=True)
class Expired:
    pass


@dataclass(frozen=True)
class Executed:
    result: ExecutionResult
    total_spend_usdc: float


Outcome = Union[Aborted, Expired, Executed]


@dataclass(frozen=True)
class WorkflowResult:
    receipt: ExecutionReceipt
    encrypted_intent: Optional[EncryptedIntent]
    signals: Dict[str, Any]
    states: Tuple[WorkflowState, ...]


@dataclass
class _Run:
    """Mutable scratch state owned by exactly one run."""

    prompt: str
    parser_output: ParserOutput
    states: List[WorkflowState]
    strategy: Optional[Strategy] = None
    clamped: Tuple[str, ...] = ()
    intent: Optional[EncryptedIntent] = None
    signals: Dict[str, Any] = field(default_factory=dict)
    payments: Tuple[PaymentRecord, ...] = ()
    reason_codes: Tuple[ReasonCode, ...] = ()


class AgentWorkflow:
    """Runs one natural-language request through the full pipeline per ``run`` call.

    The intent handler (and so its key) is shared by every run of this
    instance; payment and reasoning ledgers are created fresh for each run.
    """

    def __init__(
        self,
        config: WorkflowConfig,
        bite: Optional[BiteIntentHandler] = None,
        parser: Optional[ParserAdapter] = None,
        executor: Optional[TradeExecutor] = None,
        receipt_logger: Optional[ReceiptLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config
        self._clock = clock or _utc_now
        if bite is None:
            bite = (
                BiteIntentHandler.from_hex(config.intent_key_hex, clock=self._clock)
                if config.intent_key_hex
                else BiteIntentHandler(clock=self._clock)
            )
        self._bite = bite
        self._parser = parser or ParserAdapter(
            config.parser_endpoint,
            timeout_seconds=config.parser_timeout_seconds,
            api_key=config.parser_api_key,
        )
        self._executor = executor or TradeExecutor(simulate=True)
        self._receipt_logger = receipt_logger or ReceiptLogger()
        self._http_client = http_client

    @property
    def config(self) -> WorkflowConfig:
        return self._config

    async def run(
        self,
        user_prompt: str,
        condition_checker: ConditionChecker,
        sign_payment: Optional[SignPayment] = None,
    ) -> WorkflowResult:
        """Parser, payment and decryption errors propagate; every other path yields a receipt."""

        states = [WorkflowState.STARTED]
        parser_output = await self._parser.parse(
            ParserInput(user_prompt=user_prompt, context=self._config.parser_context())
        )
        run = _Run(prompt=user_prompt, parser_output=parser_output, states=states)
        self._enter(run, WorkflowState.PARSED)

        outcome = await self._advance(run, condition_checker, sign_payment)
        receipt = self._finalize(run, outcome)
        logger.info(
            "Run for intent %s finished with status %s", receipt.intent_id, receipt.status.value
        )
        return WorkflowResult(
            receipt=receipt,
            encrypted_intent=run.intent,
            signals=dict(run.signals),
            states=tuple(run.states),
        )

    async def _advance(
        self,
        run: _Run,
        condition_checker: ConditionChecker,
        sign_payment: Optional[SignPayment],
    ) -> Outcome:
        validation = validate_strategy(
            run.parser_output.strategy_dsl, self._config.validation_limits()
        )
        run.clamped = validation.clamped
        if not validation.valid or validation.strategy is None:
            self._enter(run, WorkflowState.VALIDATION_FAILED)
            return Aborted(errors=validation.errors)
        run.strategy = validation.strategy
        self._enter(run, WorkflowState.VALIDATED)

        run.intent = self._bite.encrypt(run.strategy)
        self._enter(run, WorkflowState.ENCRYPTED)

        self._enter(run, WorkflowState.MONITORING)
        if sign_payment is not None and self._config.paid_signals:
            await self._procure_signals(run, sign_payment)

        if not await condition_checker(run.strategy):
            self._enter(run, WorkflowState.CONDITIONS_NOT_MET)
            return Expired()
        self._enter(run, WorkflowState.CONDITIONS_MET)

        decrypted = self._bite.decrypt(run.intent)
        self._enter(run, WorkflowState.DECRYPTED)

        risk = check_risk(
            decrypted,
            self._config.risk_config(),
            expires_at=datetime.fromisoformat(run.intent.public_metadata.expires_at),
            now=self._clock(),
        )
        if not risk.passed:
            self._enter(run, WorkflowState.RISK_FAILED)
            return Aborted(errors=risk.violations, conditions_met=True)
        self._enter(run, WorkflowState.RISK_PASSED)

        result = await self._executor.execute(decrypted)
        self._enter(run, WorkflowState.EXECUTED)
        return Executed(result=result, total_spend_usdc=decrypted.total_spend_usdc)

    async def _procure_signals(self, run: _Run, sign_payment: SignPayment) -> None:
        client = X402PaymentClient(
            http_client=self._http_client,
            timeout_seconds=self._config.parser_timeout_seconds,
        )
        reasoning = EconomicReasoningEngine(self._config.budget_usdc)
        try:
            for signal in self._config.paid_signals:
                if not reasoning.should_purchase(signal.name, signal.cost_usdc):
                    continue
                paid_before = client.total_spent
                run.signals[signal.name] = await client.fetch_with_payment(
                    signal.url, sign_payment, signal.cost_usdc
                )
                reasoning.record_spend(client.total_spent - paid_before)
        finally:
            run.payments = client.payment_records
            run.reason_codes = reasoning.reason_codes

    def _finalize(self, run: _Run, outcome: Outcome) -> ExecutionReceipt:
        if isinstance(outcome, Executed):
            succeeded = outcome.result.success
            status = ReceiptStatus.EXECUTED if succeeded else ReceiptStatus.ABORTED
            conditions_met = True
            tx_hash = outcome.result.tx_hash if succeeded else None
            total_spend = outcome.total_spend_usdc
            errors: Tuple[str, ...] = () if succeeded else (outcome.result.error or "",)
        elif isinstance(outcome, Expired):
            status = ReceiptStatus.EXPIRED
            conditions_met = False
            tx_hash = None
            total_spend = 0.0
            errors = ()
        elif isinstance(outcome, Aborted):
            status = ReceiptStatus.ABORTED
            conditions_met = outcome.conditions_met
            tx_hash = None
            total_spend = outcome.total_spend_usdc
            errors = outcome.errors
        else:
            raise TypeError(f"Unknown workflow outcome: {outcome!r}")

        return self._receipt_logger.build_receipt(
            intent_id=run.intent.intent_id if run.intent else None,
            raw_prompt=run.prompt,
            parser_output=ParserSummary(
                explanation=run.parser_output.explanation,
                risk_notes=run.parser_output.risk_notes,
                parser_metadata=run.parser_output.parser_metadata,
            ),
            validated_strategy=run.strategy,
            encrypted_payload=run.intent.encrypted_payload if run.intent else None,
            payments=run.payments,
            reason_codes=run.reason_codes,
            conditions_met=conditions_met,
            execution_tx_hash=tx_hash,
            total_spend_usdc=total_spend,
            status=status,
            errors=errors,
            clamped=run.clamped,
        )

    @staticmethod
    def _enter(run: _Run, state: WorkflowState) -> None:
        run.states.append(state)
        logger.debug("Workflow state -> %s", state.value)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)
