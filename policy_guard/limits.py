"""Operator-configured hard limits."""

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class ValidationLimits:
    """Limits applied to parser output before encryption."""

    allowed_pairs: Tuple[str, ...]
    max_spend_usdc: float
    max_slippage_bps: int
    max_expires_minutes: Optional[int] = None


@dataclass(frozen=True)
class RiskConfig:
    """Limits re-applied to the decrypted strategy right before execution."""

    allowed_pairs: Tuple[str, ...]
    max_spend_usdc: float
    max_slippage_bps: int
    max_expires_minutes: Optional[int] = None
