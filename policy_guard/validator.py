"""Deterministic validation and clamp layer for parsed strategies."""

from dataclasses import dataclass, replace
from typing import Any, List, Optional, Tuple

from strategy_dsl.models import Strategy, format_amount
from strategy_dsl.schema import parse_strategy

from .limits import ValidationLimits


class PolicyViolationError(ValueError):
    """Raised when a strategy breaches allowlist, spend, slippage or expiry policy."""

    def __init__(self, errors: Tuple[str, ...]) -> None:
        super().__init__("Policy violation: " + "; ".join(errors))
        self.errors = errors


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    strategy: Optional[Strategy]
    errors: Tuple[str, ...]
    clamped: Tuple[str, ...]

    def raise_for_errors(self) -> Strategy:
        if not self.valid or self.strategy is None:
            raise PolicyViolationError(self.errors)
        return self.strategy


def validate_strategy(candidate: Any, limits: ValidationLimits) -> ValidationResult:
    """Validate untrusted parser output against hard limits.

    Slippage above the hard maximum is clamped and noted. Everything else that
    breaches a limit is an error; any error rejects the whole strategy, even
    when clamps were also applied.
    """

    strategy, schema_errors = parse_strategy(candidate)
    if strategy is None:
        return ValidationResult(valid=False, strategy=None, errors=schema_errors, clamped=())

    errors: List[str] = []
    clamped: List[str] = []

    if strategy.pair not in limits.allowed_pairs:
        errors.append(
            f'Pair "{strategy.pair}" is not in the allowlist: '
            f"[{', '.join(limits.allowed_pairs)}]"
        )

    if strategy.controls.max_slippage_bps > limits.max_slippage_bps:
        clamped.append(
            f"max_slippage_bps clamped from {strategy.controls.max_slippage_bps} "
            f"to {limits.max_slippage_bps}"
        )
        strategy = replace(
            strategy,
            controls=replace(strategy.controls, max_slippage_bps=limits.max_slippage_bps),
        )

    # Oversized trades are never shrunk silently.
    for action in strategy.actions:
        if action.amount_usdc > limits.max_spend_usdc:
            errors.append(
                f"Action amount {format_amount(action.amount_usdc)} USDC exceeds hard cap "
                f"of {format_amount(limits.max_spend_usdc)} USDC"
            )

    expires = strategy.controls.expires_in_minutes
    if expires <= 0:
        errors.append("Expiry must be a positive number of minutes")
    elif limits.max_expires_minutes is not None and expires > limits.max_expires_minutes:
        errors.append(
            f"Expiry {expires} min exceeds hard max of {limits.max_expires_minutes} min"
        )

    if errors:
        return ValidationResult(
            valid=False, strategy=None, errors=tuple(errors), clamped=tuple(clamped)
        )
    return ValidationResult(valid=True, strategy=strategy, errors=(), clamped=tuple(clamped))
