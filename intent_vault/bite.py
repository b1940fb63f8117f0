"""BITE encrypted conditional intents.

Trigger thresholds, trade sizes and directions live only inside the
AES-256-GCM ciphertext. The pair, aggregate budget cap and absolute expiry are
published in the envelope on purpose.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional
import hashlib
import hmac
import json
import logging
import secrets
import uuid

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from strategy_dsl.models import Strategy

from .models import EncryptedIntent, PublicMetadata

logger = logging.getLogger(__name__)

KEY_LENGTH = 32
NONCE_LENGTH = 12
TAG_LENGTH = 16


class IntentAuthenticationError(ValueError):
    """Raised when an intent cannot be authenticated under this handler's key."""


class BiteIntentHandler:
    """Seals and opens strategies under one symmetric key held for its lifetime."""

    def __init__(
        self,
        key: Optional[bytes] = None,
        nonce_provider: Optional[Callable[[int], bytes]] = None,
        id_provider: Optional[Callable[[], str]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if key is not None and len(key) != KEY_LENGTH:
            raise ValueError(f"Intent key must be {KEY_LENGTH} bytes.")
        self._cipher = AESGCM(key if key is not None else secrets.token_bytes(KEY_LENGTH))
        self._nonce_provider = nonce_provider or secrets.token_bytes
        self._id_provider = id_provider or _random_intent_id
        self._clock = clock or _utc_now

    @classmethod
    def from_hex(cls, key_hex: str, **options: Any) -> "BiteIntentHandler":
        try:
            key = bytes.fromhex(key_hex)
        except ValueError as exc:
            raise ValueError("Intent key must be hex-encoded.") from exc
        return cls(key=key, **options)

    def encrypt(self, strategy: Strategy) -> EncryptedIntent:
        intent_id = self._id_provider()
        nonce = self._nonce_provider(NONCE_LENGTH)
        sealed = self._cipher.encrypt(nonce, _canonical_bytes(strategy), intent_id.encode("utf-8"))
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]

        created = self._clock()
        expires_at = created + timedelta(minutes=strategy.controls.expires_in_minutes)
        metadata = PublicMetadata(
            intent_id=intent_id,
            budget_cap_usdc=strategy.total_spend_usdc,
            pair=strategy.pair,
            expires_at=expires_at.isoformat(),
            authorization_hash=_authorization_hash(intent_id, ciphertext.hex()),
        )
        logger.info("Sealed intent %s for %s", intent_id, strategy.pair)
        return EncryptedIntent(
            intent_id=intent_id,
            encrypted_payload=ciphertext.hex(),
            iv=nonce.hex(),
            auth_tag=tag.hex(),
            public_metadata=metadata,
            created_at=created.isoformat(),
        )

    def decrypt(self, intent: EncryptedIntent) -> Strategy:
        fields = (
            intent.intent_id,
            intent.encrypted_payload,
            intent.iv,
            intent.auth_tag,
            intent.public_metadata.intent_id,
            intent.public_metadata.authorization_hash,
        )
        if not all(isinstance(value, str) for value in fields):
            raise IntentAuthenticationError("Intent fields must be strings.")

        expected_hash = _authorization_hash(intent.intent_id, intent.encrypted_payload)
        if intent.public_metadata.intent_id != intent.intent_id or not hmac.compare_digest(
            expected_hash.encode("utf-8"),
            intent.public_metadata.authorization_hash.encode("utf-8"),
        ):
            raise IntentAuthenticationError("Intent authorization hash does not match payload.")

        try:
            nonce = bytes.fromhex(intent.iv)
            sealed = bytes.fromhex(intent.encrypted_payload) + bytes.fromhex(intent.auth_tag)
        except ValueError as exc:
            raise IntentAuthenticationError("Intent fields are not valid hex.") from exc

        try:
            plaintext = self._cipher.decrypt(nonce, sealed, intent.intent_id.encode("utf-8"))
        except (InvalidTag, ValueError) as exc:
            logger.warning("Rejected intent %s: authentication failed", intent.intent_id)
            raise IntentAuthenticationError("Invalid key or tampered intent.") from exc

        return Strategy.from_dict(json.loads(plaintext.decode("utf-8")))


def generate_key_hex() -> str:
    return secrets.token_hex(KEY_LENGTH)


def _canonical_bytes(strategy: Strategy) -> bytes:
    return json.dumps(strategy.to_dict(), sort_keys=True, separators=(",", ":")).encode("utf-8")


def _authorization_hash(intent_id: str, payload_hex: str) -> str:
    return hashlib.sha256(f"{intent_id}{payload_hex}".encode("utf-8")).hexdigest()


def _random_intent_id() -> str:
    return str(uuid.uuid4())


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)
