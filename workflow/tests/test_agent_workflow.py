"""End-to-end runs of the agent workflow with in-process collaborators."""

import copy
import unittest
from datetime import datetime, timedelta, timezone

import httpx

from execution_adapter.dex.executor import TradeExecutor
from intent_vault.bite import BiteIntentHandler
from paid_data.models import Decision, PaymentStatus
from paid_data.x402 import PAYMENT_HEADER, PaymentFailureError
from parser_adapter.client import ParserError
from parser_adapter.models import ParserMetadata, ParserOutput
from receipts.models import ReceiptStatus
from workflow import (
    AgentWorkflow,
    PaidSignal,
    StaticConditionChecker,
    WorkflowConfig,
    WorkflowState,
)

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

STRATEGY = {
    "pair": "ETH/USDC",
    "conditions": [{"type": "price_below", "value": 3000}],
    "actions": [{"type": "swap", "amount_usdc": 100, "direction": "buy"}],
    "controls": {"max_slippage_bps": 50, "approval_mode": "auto", "expires_in_minutes": 60},
}


class FakeParser:
    def __init__(self, strategy_dsl=None, error=None) -> None:
        self.strategy_dsl = copy.deepcopy(STRATEGY) if strategy_dsl is None else strategy_dsl
        self.error = error
        self.inputs = []

    async def parse(self, parser_input):
        self.inputs.append(parser_input)
        if self.error is not None:
            raise self.error
        return ParserOutput(
            strategy_dsl=self.strategy_dsl,
            explanation="Buy ETH on a dip.",
            risk_notes=("volatile",),
            parser_metadata=ParserMetadata(model="fake", confidence=0.95),
        )


class MutableClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _config(**overrides) -> WorkflowConfig:
    fields = dict(
        parser_endpoint="https://parser.example/parse",
        allowed_pairs=("ETH/USDC",),
        max_spend_usdc=500.0,
        max_slippage_bps=75,
    )
    fields.update(overrides)
    return WorkflowConfig(**fields)


class AgentWorkflowTests(unittest.IsolatedAsyncioTestCase):
    def _workflow(self, parser, config=None, clock=None, http_client=None) -> AgentWorkflow:
        clock = clock or MutableClock(NOW)
        return AgentWorkflow(
            config or _config(),
            bite=BiteIntentHandler(clock=clock),
            parser=parser,
            executor=TradeExecutor(simulate=True),
            clock=clock,
            http_client=http_client,
        )

    async def test_conditions_met_executes(self) -> None:
        parser = FakeParser()
        checker = StaticConditionChecker(True)
        result = await self._workflow(parser).run("Buy ETH if it dips below 3k", checker)

        receipt = result.receipt
        self.assertEqual(receipt.status, ReceiptStatus.EXECUTED)
        self.assertEqual(receipt.total_spend_usdc, 100)
        self.assertTrue(receipt.conditions_met)
        self.assertTrue(receipt.execution_tx_hash.startswith("0x"))
        self.assertEqual(receipt.intent_id, result.encrypted_intent.intent_id)
        self.assertIsNotNone(receipt.encrypted_intent_hash)
        self.assertEqual(receipt.raw_user_prompt, "Buy ETH if it dips below 3k")
        self.assertEqual(receipt.parser_output.parser_metadata.model, "fake")
        self.assertEqual(checker.calls, 1)
        self.assertEqual(
            result.states,
            (
                WorkflowState.STARTED,
                WorkflowState.PARSED,
                WorkflowState.VALIDATED,
                WorkflowState.ENCRYPTED,
                WorkflowState.MONITORING,
                WorkflowState.CONDITIONS_MET,
                WorkflowState.DECRYPTED,
                WorkflowState.RISK_PASSED,
                WorkflowState.EXECUTED,
            ),
        )

    async def test_parser_receives_hard_limits(self) -> None:
        parser = FakeParser()
        await self._workflow(parser).run("buy", StaticConditionChecker(True))
        (parser_input,) = parser.inputs
        self.assertEqual(parser_input.context.allowed_pairs, ("ETH/USDC",))
        self.assertEqual(parser_input.context.max_spend_usdc_hard, 500.0)
        self.assertEqual(parser_input.context.max_slippage_bps_hard, 75)

    async def test_disallowed_pair_aborts_before_monitoring(self) -> None:
        parser = FakeParser(dict(copy.deepcopy(STRATEGY), pair="DOGE/USDC"))
        checker = StaticConditionChecker(True)
        result = await self._workflow(parser).run("Buy DOGE", checker)

        receipt = result.receipt
        self.assertEqual(receipt.status, ReceiptStatus.ABORTED)
        self.assertFalse(receipt.conditions_met)
        self.assertEqual(checker.calls, 0)
        self.assertIsNone(result.encrypted_intent)
        self.assertIsNone(receipt.intent_id)
        self.assertIsNone(receipt.encrypted_intent_hash)
        self.assertIsNone(receipt.validated_strategy)
        self.assertEqual(receipt.payments, ())
        self.assertEqual(receipt.reason_codes, ())
        self.assertIn("DOGE/USDC", receipt.errors[0])
        self.assertEqual(result.states[-1], WorkflowState.VALIDATION_FAILED)

    async def test_unrepresentable_expiry_aborts_with_receipt(self) -> None:
        strategy = copy.deepcopy(STRATEGY)
        strategy["controls"]["expires_in_minutes"] = 6_000_000_000
        checker = StaticConditionChecker(True)
        result = await self._workflow(FakeParser(strategy)).run("buy", checker)

        receipt = result.receipt
        self.assertEqual(receipt.status, ReceiptStatus.ABORTED)
        self.assertEqual(checker.calls, 0)
        self.assertIsNone(result.encrypted_intent)
        self.assertIn("expires_in_minutes", receipt.errors[0])
        self.assertEqual(result.states[-1], WorkflowState.VALIDATION_FAILED)

    async def test_conditions_not_met_expires_but_returns_intent(self) -> None:
        result = await self._workflow(FakeParser()).run("buy", StaticConditionChecker(False))

        receipt = result.receipt
        self.assertEqual(receipt.status, ReceiptStatus.EXPIRED)
        self.assertFalse(receipt.conditions_met)
        self.assertIsNone(receipt.execution_tx_hash)
        self.assertEqual(receipt.total_spend_usdc, 0.0)
        self.assertIsNotNone(result.encrypted_intent)
        self.assertEqual(receipt.intent_id, result.encrypted_intent.intent_id)

    async def test_oversized_action_aborts_at_validation(self) -> None:
        doc = copy.deepcopy(STRATEGY)
        doc["actions"][0]["amount_usdc"] = 9999
        checker = StaticConditionChecker(True)
        result = await self._workflow(FakeParser(doc)).run("Buy a lot of ETH", checker)

        self.assertEqual(result.receipt.status, ReceiptStatus.ABORTED)
        self.assertIsNone(result.receipt.execution_tx_hash)
        self.assertIsNone(result.encrypted_intent)
        self.assertEqual(checker.calls, 0)
        self.assertTrue(any("9999" in error for error in result.receipt.errors))

    async def test_malformed_parser_strategy_aborts(self) -> None:
        result = await self._workflow(FakeParser({"pair": "ETH/USDC"})).run(
            "buy", StaticConditionChecker(True)
        )
        self.assertEqual(result.receipt.status, ReceiptStatus.ABORTED)
        self.assertTrue(result.receipt.errors)

    async def test_aggregate_spend_fails_risk_recheck(self) -> None:
        doc = copy.deepcopy(STRATEGY)
        doc["actions"] = [
            {"type": "swap", "amount_usdc": 300, "direction": "buy"},
            {"type": "swap", "amount_usdc": 300, "direction": "buy"},
        ]
        result = await self._workflow(FakeParser(doc)).run("buy", StaticConditionChecker(True))

        receipt = result.receipt
        self.assertEqual(receipt.status, ReceiptStatus.ABORTED)
        self.assertTrue(receipt.conditions_met)
        self.assertIsNone(receipt.execution_tx_hash)
        self.assertEqual(receipt.total_spend_usdc, 0.0)
        self.assertIn("Total spend 600 USDC exceeds cap of 500 USDC", receipt.errors)
        self.assertEqual(result.states[-1], WorkflowState.RISK_FAILED)

    async def test_intent_past_expiry_fails_risk_recheck(self) -> None:
        clock = MutableClock(NOW)

        async def slow_checker(strategy) -> bool:
            clock.now = NOW + timedelta(minutes=61)
            return True

        result = await self._workflow(FakeParser(), clock=clock).run("buy", slow_checker)

        self.assertEqual(result.receipt.status, ReceiptStatus.ABORTED)
        self.assertTrue(result.receipt.errors[0].startswith("Intent expired at"))

    async def test_slippage_clamp_is_recorded(self) -> None:
        doc = copy.deepcopy(STRATEGY)
        doc["controls"]["max_slippage_bps"] = 200
        result = await self._workflow(FakeParser(doc)).run("buy", StaticConditionChecker(True))

        receipt = result.receipt
        self.assertEqual(receipt.status, ReceiptStatus.EXECUTED)
        self.assertEqual(receipt.validated_strategy.controls.max_slippage_bps, 75)
        self.assertEqual(receipt.clamped, ("max_slippage_bps clamped from 200 to 75",))

    async def test_failed_execution_aborts_with_spend(self) -> None:
        workflow = AgentWorkflow(
            _config(),
            parser=FakeParser(),
            executor=TradeExecutor(simulate=False),
        )
        result = await workflow.run("buy", StaticConditionChecker(True))

        self.assertEqual(result.receipt.status, ReceiptStatus.ABORTED)
        self.assertEqual(result.receipt.total_spend_usdc, 100)
        self.assertIsNone(result.receipt.execution_tx_hash)
        self.assertEqual(result.receipt.errors, ("Real execution not yet implemented",))

    async def test_parser_errors_propagate(self) -> None:
        workflow = self._workflow(FakeParser(error=ParserError("Parser returned HTTP 500")))
        with self.assertRaises(ParserError):
            await workflow.run("buy", StaticConditionChecker(True))

    async def test_key_from_config_decrypts_across_instances(self) -> None:
        key_hex = "11" * 32
        first = AgentWorkflow(_config(intent_key_hex=key_hex), parser=FakeParser())
        result = await first.run("buy", StaticConditionChecker(False))

        other = BiteIntentHandler.from_hex(key_hex)
        self.assertEqual(other.decrypt(result.encrypted_intent).pair, "ETH/USDC")


class PaidSignalWorkflowTests(unittest.IsolatedAsyncioTestCase):
    SIGNALS = (
        PaidSignal(name="funding", url="https://tools.example/funding", cost_usdc=0.5),
        PaidSignal(name="volatility", url="https://tools.example/vol", cost_usdc=2.0),
    )

    async def asyncSetUp(self) -> None:
        self.signed = []
        self.fail_retry = False

        def handler(request: httpx.Request) -> httpx.Response:
            if request.headers.get(PAYMENT_HEADER) is None:
                return httpx.Response(402)
            if self.fail_retry:
                return httpx.Response(503)
            return httpx.Response(200, json={"url": str(request.url)})

        self.http = httpx.AsyncClient(transport=httpx.MockTransport(handler))

    async def asyncTearDown(self) -> None:
        await self.http.aclose()

    async def _sign(self, amount: float) -> str:
        self.signed.append(amount)
        return f"0xpay{len(self.signed)}"

    def _workflow(self, budget: float) -> AgentWorkflow:
        return AgentWorkflow(
            _config(budget_usdc=budget, paid_signals=self.SIGNALS),
            parser=FakeParser(),
            http_client=self.http,
        )

    async def test_affordable_signals_are_bought_and_recorded(self) -> None:
        result = await self._workflow(1.0).run(
            "buy", StaticConditionChecker(True), sign_payment=self._sign
        )

        receipt = result.receipt
        self.assertEqual(self.signed, [0.5])
        self.assertEqual(list(result.signals), ["funding"])
        self.assertEqual(result.signals["funding"], {"url": "https://tools.example/funding"})
        (payment,) = receipt.payments
        self.assertEqual(payment.status, PaymentStatus.SUCCESS)
        self.assertEqual(
            [code.decision for code in receipt.reason_codes], [Decision.PROCEED, Decision.SKIP]
        )
        self.assertEqual(receipt.reason_codes[1].budget_remaining_usdc, 0.5)

    async def test_no_signer_means_no_purchases(self) -> None:
        result = await self._workflow(10.0).run("buy", StaticConditionChecker(True))
        self.assertEqual(result.signals, {})
        self.assertEqual(result.receipt.payments, ())
        self.assertEqual(result.receipt.reason_codes, ())

    async def test_ledgers_are_per_run(self) -> None:
        workflow = self._workflow(1.0)
        first = await workflow.run("buy", StaticConditionChecker(True), sign_payment=self._sign)
        second = await workflow.run("buy", StaticConditionChecker(True), sign_payment=self._sign)
        self.assertEqual(len(first.receipt.payments), 1)
        self.assertEqual(len(second.receipt.payments), 1)
        self.assertEqual(second.receipt.reason_codes[0].budget_remaining_usdc, 1.0)

    async def test_payment_failure_propagates(self) -> None:
        self.fail_retry = True
        with self.assertRaises(PaymentFailureError):
            await self._workflow(10.0).run(
                "buy", StaticConditionChecker(True), sign_payment=self._sign
            )


if __name__ == "__main__":
    unittest.main()
