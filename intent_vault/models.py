"""Sealed intent envelope models."""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class PublicMetadata:
    intent_id: str
    budget_cap_usdc: float
    pair: str
    expires_at: str
    authorization_hash: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intent_id": self.intent_id,
            "budget_cap_usdc": self.budget_cap_usdc,
            "pair": self.pair,
            "expires_at": self.expires_at,
            "authorization_hash": self.authorization_hash,
        }


@dataclass(frozen=True)
class EncryptedIntent:
    """Opaque sealed strategy plus the small envelope that stays public."""

    intent_id: str
    encrypted_payload: str
    iv: str
    auth_tag: str
    public_metadata: PublicMetadata
    created_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intent_id": self.intent_id,
            "encrypted_payload": self.encrypted_payload,
            "iv": self.iv,
            "auth_tag": self.auth_tag,
            "public_metadata": self.public_metadata.to_dict(),
            "created_at": self.created_at,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "EncryptedIntent":
        meta = data["public_metadata"]
        return EncryptedIntent(
            intent_id=data["intent_id"],
            encrypted_payload=data["encrypted_payload"],
            iv=data["iv"],
            auth_tag=data["auth_tag"],
            public_metadata=PublicMetadata(
                intent_id=meta["intent_id"],
                budget_cap_usdc=float(meta["budget_cap_usdc"]),
                pair=meta["pair"],
                expires_at=meta["expires_at"],
                authorization_hash=meta["authorization_hash"],
            ),
            created_at=data["created_at"],
        )
