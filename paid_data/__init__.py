from .models import Decision, PaymentRecord, PaymentStatus, ReasonCode
from .reasoning import EconomicReasoningEngine
from .x402 import PAYMENT_HEADER, PaymentFailureError, SignPayment, ToolRequestError, X402PaymentClient

__all__ = [
    "Decision",
    "EconomicReasoningEngine",
    "PAYMENT_HEADER",
    "PaymentFailureError",
    "PaymentRecord",
    "PaymentStatus",
    "ReasonCode",
    "SignPayment",
    "ToolRequestError",
    "X402PaymentClient",
]
