"""Final risk gate run on the decrypted strategy right before execution."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from strategy_dsl.models import Strategy, format_amount

from .limits import RiskConfig


@dataclass(frozen=True)
class RiskCheckResult:
    passed: bool
    violations: Tuple[str, ...]


def check_risk(
    strategy: Strategy,
    config: RiskConfig,
    expires_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> RiskCheckResult:
    """Re-validate every limit independently; violations accumulate.

    Spend is checked in aggregate because all actions fire together. When
    ``expires_at`` (captured at encryption time) is given, a ``now`` past it is
    a violation.
    """

    violations: List[str] = []

    if strategy.pair not in config.allowed_pairs:
        violations.append(f'Pair "{strategy.pair}" not in allowlist')

    total_spend = strategy.total_spend_usdc
    if total_spend > config.max_spend_usdc:
        violations.append(
            f"Total spend {format_amount(total_spend)} USDC exceeds cap of "
            f"{format_amount(config.max_spend_usdc)} USDC"
        )

    if strategy.controls.max_slippage_bps > config.max_slippage_bps:
        violations.append(
            f"Slippage {strategy.controls.max_slippage_bps} bps exceeds max of "
            f"{config.max_slippage_bps} bps"
        )

    if (
        config.max_expires_minutes is not None
        and strategy.controls.expires_in_minutes > config.max_expires_minutes
    ):
        violations.append(
            f"Expiry {strategy.controls.expires_in_minutes} min exceeds max of "
            f"{config.max_expires_minutes} min"
        )

    if expires_at is not None:
        current = now or datetime.now(timezone.utc)
        if current > expires_at:
            violations.append(f"Intent expired at {expires_at.isoformat()}")

    return RiskCheckResult(passed=not violations, violations=tuple(violations))
