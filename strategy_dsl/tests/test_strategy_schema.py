"""Structural contract tests for untrusted strategy documents."""

import copy
import unittest

from strategy_dsl.models import ActionType, ApprovalMode, ConditionType, Direction, Strategy
from strategy_dsl.schema import (
    MAX_EXPIRES_IN_MINUTES,
    SchemaViolationError,
    assert_valid_strategy,
    parse_strategy,
)

SAMPLE = {
    "pair": "ETH/USDC",
    "conditions": [{"type": "price_below", "value": 3000}],
    "actions": [{"type": "swap", "amount_usdc": 100, "direction": "buy"}],
    "controls": {
        "max_slippage_bps": 50,
        "approval_mode": "auto",
        "expires_in_minutes": 60,
    },
}


class StrategySchemaTests(unittest.TestCase):
    def _doc(self, **overrides):
        doc = copy.deepcopy(SAMPLE)
        doc.update(overrides)
        return doc

    def test_valid_document_promotes_to_strategy(self) -> None:
        strategy, errors = parse_strategy(SAMPLE)

        self.assertEqual(errors, ())
        self.assertIsInstance(strategy, Strategy)
        self.assertEqual(strategy.pair, "ETH/USDC")
        self.assertEqual(strategy.conditions[0].type, ConditionType.PRICE_BELOW)
        self.assertEqual(strategy.actions[0].type, ActionType.SWAP)
        self.assertEqual(strategy.actions[0].direction, Direction.BUY)
        self.assertEqual(strategy.controls.approval_mode, ApprovalMode.AUTO)
        self.assertEqual(strategy.total_spend_usdc, 100)

    def test_every_condition_type_accepted(self) -> None:
        for kind in ConditionType:
            doc = self._doc(conditions=[{"type": kind.value, "value": 1.5}])
            strategy, errors = parse_strategy(doc)
            self.assertEqual(errors, (), kind)
            self.assertEqual(strategy.conditions[0].type, kind)

    def test_empty_lists_rejected(self) -> None:
        strategy, errors = parse_strategy(self._doc(conditions=[], actions=[]))
        self.assertIsNone(strategy)
        self.assertEqual(len(errors), 2)
        self.assertTrue(any(error.startswith("conditions") for error in errors))
        self.assertTrue(any(error.startswith("actions") for error in errors))

    def test_missing_field_and_bad_pair(self) -> None:
        doc = self._doc(pair="")
        del doc["controls"]
        strategy, errors = parse_strategy(doc)
        self.assertIsNone(strategy)
        self.assertTrue(any(error.startswith("pair") for error in errors))
        self.assertTrue(any(error.startswith("controls") for error in errors))

    def test_unknown_enum_values_rejected(self) -> None:
        doc = self._doc(
            conditions=[{"type": "price_sideways", "value": 10}],
            actions=[{"type": "transfer", "amount_usdc": 10, "direction": "hold"}],
        )
        strategy, errors = parse_strategy(doc)
        self.assertIsNone(strategy)
        self.assertEqual(len(errors), 3)

    def test_controls_out_of_range(self) -> None:
        doc = self._doc(
            controls={"max_slippage_bps": 501, "approval_mode": "auto", "expires_in_minutes": 0}
        )
        strategy, errors = parse_strategy(doc)
        self.assertIsNone(strategy)
        self.assertEqual(len(errors), 2)

    def test_non_positive_and_non_numeric_amounts(self) -> None:
        doc = self._doc(
            actions=[
                {"type": "swap", "amount_usdc": -5, "direction": "buy"},
                {"type": "swap", "amount_usdc": "100", "direction": "sell"},
                {"type": "swap", "amount_usdc": True, "direction": "sell"},
            ]
        )
        strategy, errors = parse_strategy(doc)
        self.assertIsNone(strategy)
        self.assertEqual(len(errors), 3)

    def test_expiry_capped_at_one_year(self) -> None:
        controls = {"max_slippage_bps": 50, "approval_mode": "auto"}
        strategy, errors = parse_strategy(
            self._doc(controls=dict(controls, expires_in_minutes=MAX_EXPIRES_IN_MINUTES))
        )
        self.assertEqual(errors, ())
        self.assertEqual(strategy.controls.expires_in_minutes, MAX_EXPIRES_IN_MINUTES)

        strategy, errors = parse_strategy(
            self._doc(controls=dict(controls, expires_in_minutes=6_000_000_000))
        )
        self.assertIsNone(strategy)
        self.assertEqual(len(errors), 1)
        self.assertTrue(errors[0].startswith("controls.expires_in_minutes"))

    def test_fractional_slippage_rejected(self) -> None:
        doc = self._doc(
            controls={"max_slippage_bps": 12.5, "approval_mode": "auto", "expires_in_minutes": 60}
        )
        strategy, errors = parse_strategy(doc)
        self.assertIsNone(strategy)
        self.assertIn("controls.max_slippage_bps", errors[0])

    def test_extra_keys_rejected(self) -> None:
        strategy, errors = parse_strategy(self._doc(leverage=10))
        self.assertIsNone(strategy)
        self.assertTrue(errors[0].startswith("leverage"))

    def test_non_mapping_input(self) -> None:
        for raw in (None, "buy eth", 42, ["ETH/USDC"]):
            strategy, errors = parse_strategy(raw)
            self.assertIsNone(strategy)
            self.assertTrue(errors)

    def test_assert_valid_strategy_raises_with_all_errors(self) -> None:
        with self.assertRaises(SchemaViolationError) as ctx:
            assert_valid_strategy(self._doc(conditions=[], actions=[]))
        self.assertEqual(len(ctx.exception.errors), 2)

    def test_dict_round_trip_is_canonical(self) -> None:
        strategy = assert_valid_strategy(SAMPLE)
        self.assertEqual(Strategy.from_dict(strategy.to_dict()), strategy)
        self.assertEqual(strategy.to_dict()["controls"]["approval_mode"], "auto")

    def test_strategy_is_immutable(self) -> None:
        strategy = assert_valid_strategy(SAMPLE)
        with self.assertRaises(Exception):
            strategy.pair = "DOGE/USDC"


if __name__ == "__main__":
    unittest.main()
