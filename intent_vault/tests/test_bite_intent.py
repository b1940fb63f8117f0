"""Confidentiality and integrity tests for sealed intents."""

import json
import unittest
from dataclasses import replace
from datetime import datetime, timezone

from intent_vault.bite import BiteIntentHandler, IntentAuthenticationError, generate_key_hex
from intent_vault.models import EncryptedIntent
from strategy_dsl.models import (
    Action,
    ActionType,
    ApprovalMode,
    Condition,
    ConditionType,
    Controls,
    Direction,
    Strategy,
)

STRATEGY = Strategy(
    pair="ETH/USDC",
    conditions=(
        Condition(type=ConditionType.PRICE_BELOW, value=2987.25),
        Condition(type=ConditionType.FUNDING_ABOVE, value=0.0125),
    ),
    actions=(
        Action(type=ActionType.SWAP, amount_usdc=123.45, direction=Direction.BUY),
        Action(type=ActionType.SWAP, amount_usdc=77.0, direction=Direction.SELL),
    ),
    controls=Controls(max_slippage_bps=50, approval_mode=ApprovalMode.AUTO, expires_in_minutes=60),
)


def _flip_hex(value: str) -> str:
    first = "1" if value[0] == "0" else "0"
    return first + value[1:]


class BiteIntentHandlerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.handler = BiteIntentHandler(
            clock=lambda: datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        )

    def test_round_trip(self) -> None:
        intent = self.handler.encrypt(STRATEGY)
        self.assertEqual(self.handler.decrypt(intent), STRATEGY)

    def test_public_metadata(self) -> None:
        intent = self.handler.encrypt(STRATEGY)
        meta = intent.public_metadata
        self.assertEqual(meta.intent_id, intent.intent_id)
        self.assertEqual(meta.pair, "ETH/USDC")
        self.assertAlmostEqual(meta.budget_cap_usdc, 200.45)
        self.assertEqual(meta.expires_at, "2024-01-01T13:00:00+00:00")
        self.assertEqual(intent.created_at, "2024-01-01T12:00:00+00:00")
        self.assertEqual(len(meta.authorization_hash), 64)

    def test_secret_fields_not_in_envelope(self) -> None:
        intent = self.handler.encrypt(STRATEGY)
        envelope = json.dumps(intent.to_dict())
        for secret in ("2987.25", "0.0125", "123.45", "77.0", "price_below", "buy", "sell"):
            self.assertNotIn(secret, envelope)

    def test_fresh_id_and_ciphertext_per_encryption(self) -> None:
        first = self.handler.encrypt(STRATEGY)
        second = self.handler.encrypt(STRATEGY)
        self.assertNotEqual(first.intent_id, second.intent_id)
        self.assertNotEqual(first.encrypted_payload, second.encrypted_payload)
        self.assertNotEqual(first.iv, second.iv)

    def test_wrong_key_fails_closed(self) -> None:
        intent = self.handler.encrypt(STRATEGY)
        other = BiteIntentHandler()
        with self.assertRaises(IntentAuthenticationError):
            other.decrypt(intent)

    def test_tampered_payload_rejected(self) -> None:
        intent = self.handler.encrypt(STRATEGY)
        with self.assertRaises(IntentAuthenticationError):
            self.handler.decrypt(replace(intent, encrypted_payload=_flip_hex(intent.encrypted_payload)))

    def test_tampered_tag_rejected(self) -> None:
        intent = self.handler.encrypt(STRATEGY)
        with self.assertRaises(IntentAuthenticationError):
            self.handler.decrypt(replace(intent, auth_tag=_flip_hex(intent.auth_tag)))

    def test_swapped_intent_id_rejected(self) -> None:
        intent = self.handler.encrypt(STRATEGY)
        forged_meta = replace(intent.public_metadata, intent_id="forged")
        with self.assertRaises(IntentAuthenticationError):
            self.handler.decrypt(replace(intent, intent_id="forged", public_metadata=forged_meta))

    def test_malformed_hex_rejected(self) -> None:
        intent = self.handler.encrypt(STRATEGY)
        with self.assertRaises(IntentAuthenticationError):
            self.handler.decrypt(replace(intent, iv="not-hex"))

    def test_non_string_fields_rejected(self) -> None:
        intent = self.handler.encrypt(STRATEGY)
        for forged in (
            replace(intent, iv=123),
            replace(intent, auth_tag=None),
            replace(intent, public_metadata=replace(intent.public_metadata, authorization_hash=7)),
        ):
            with self.assertRaises(IntentAuthenticationError):
                self.handler.decrypt(forged)

    def test_non_ascii_authorization_hash_rejected(self) -> None:
        intent = self.handler.encrypt(STRATEGY)
        forged_meta = replace(intent.public_metadata, authorization_hash="é" * 64)
        with self.assertRaises(IntentAuthenticationError):
            self.handler.decrypt(replace(intent, public_metadata=forged_meta))

    def test_dict_transport_and_shared_key(self) -> None:
        key_hex = generate_key_hex()
        sealer = BiteIntentHandler.from_hex(key_hex)
        opener = BiteIntentHandler.from_hex(key_hex)
        intent = EncryptedIntent.from_dict(json.loads(json.dumps(sealer.encrypt(STRATEGY).to_dict())))
        self.assertEqual(opener.decrypt(intent), STRATEGY)

    def test_rejects_bad_key_material(self) -> None:
        with self.assertRaises(ValueError):
            BiteIntentHandler(key=b"short")
        with self.assertRaises(ValueError):
            BiteIntentHandler.from_hex("zz")


if __name__ == "__main__":
    unittest.main()
