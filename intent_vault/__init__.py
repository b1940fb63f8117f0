from .bite import BiteIntentHandler, IntentAuthenticationError, generate_key_hex
from .models import EncryptedIntent, PublicMetadata

__all__ = [
    "BiteIntentHandler",
    "EncryptedIntent",
    "IntentAuthenticationError",
    "PublicMetadata",
    "generate_key_hex",
]
