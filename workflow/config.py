"""Operator configuration for workflow runs."""

from dataclasses import dataclass
from typing import Mapping, Optional, Tuple
import os

from dotenv import load_dotenv

from parser_adapter.models import ParserContext
from policy_guard.limits import RiskConfig, ValidationLimits

ENV_PREFIX = "SHADOW_"


@dataclass(frozen=True)
class PaidSignal:
    """A metered data feed bought during monitoring."""

    name: str
    url: str
    cost_usdc: float


@dataclass(frozen=True)
class WorkflowConfig:
    parser_endpoint: str
    allowed_pairs: Tuple[str, ...]
    max_spend_usdc: float
    max_slippage_bps: int
    max_expires_minutes: Optional[int] = None
    budget_usdc: float = 0.0
    parser_timeout_seconds: float = 10.0
    parser_api_key: Optional[str] = None
    poll_interval_seconds: float = 5.0
    poll_timeout_seconds: float = 300.0
    condition_endpoint: Optional[str] = None
    intent_key_hex: Optional[str] = None
    paid_signals: Tuple[PaidSignal, ...] = ()

    def __post_init__(self) -> None:
        if not self.allowed_pairs:
            raise ValueError("At least one allowed pair is required.")
        if self.max_spend_usdc <= 0:
            raise ValueError("max_spend_usdc must be positive.")
        if self.max_slippage_bps < 1:
            raise ValueError("max_slippage_bps must be at least 1.")
        if self.budget_usdc < 0:
            raise ValueError("budget_usdc must be non-negative.")

    def validation_limits(self) -> ValidationLimits:
        return ValidationLimits(
            allowed_pairs=self.allowed_pairs,
            max_spend_usdc=self.max_spend_usdc,
            max_slippage_bps=self.max_slippage_bps,
            max_expires_minutes=self.max_expires_minutes,
        )

    def risk_config(self) -> RiskConfig:
        return RiskConfig(
            allowed_pairs=self.allowed_pairs,
            max_spend_usdc=self.max_spend_usdc,
            max_slippage_bps=self.max_slippage_bps,
            max_expires_minutes=self.max_expires_minutes,
        )

    def parser_context(self) -> ParserContext:
        return ParserContext(
            allowed_pairs=self.allowed_pairs,
            max_spend_usdc_hard=self.max_spend_usdc,
            max_slippage_bps_hard=self.max_slippage_bps,
        )

    @staticmethod
    def from_env(environ: Optional[Mapping[str, str]] = None) -> "WorkflowConfig":
        """Read ``SHADOW_*`` settings; a ``.env`` file is loaded when reading the process environment."""

        if environ is None:
            load_dotenv()
            environ = os.environ

        def get(name: str) -> Optional[str]:
            value = environ.get(ENV_PREFIX + name)
            return value.strip() if value and value.strip() else None

        def require(name: str) -> str:
            value = get(name)
            if value is None:
                raise ValueError(f"{ENV_PREFIX}{name} is required.")
            return value

        def number(name: str, default: Optional[float] = None, required: bool = False):
            raw = require(name) if required else get(name)
            if raw is None:
                return default
            try:
                return float(raw)
            except ValueError as exc:
                raise ValueError(f"{ENV_PREFIX}{name} must be a number.") from exc

        def integer(name: str, default: Optional[int] = None, required: bool = False):
            raw = require(name) if required else get(name)
            if raw is None:
                return default
            try:
                return int(raw)
            except ValueError as exc:
                raise ValueError(f"{ENV_PREFIX}{name} must be an integer.") from exc

        pairs = tuple(
            pair.strip() for pair in require("ALLOWED_PAIRS").split(",") if pair.strip()
        )
        return WorkflowConfig(
            parser_endpoint=get("PARSER_ENDPOINT") or "",
            allowed_pairs=pairs,
            max_spend_usdc=number("MAX_SPEND_USDC", required=True),
            max_slippage_bps=integer("MAX_SLIPPAGE_BPS", required=True),
            max_expires_minutes=integer("MAX_EXPIRES_MINUTES"),
            parser_timeout_seconds=number("PARSER_TIMEOUT_SECONDS", 10.0),
            parser_api_key=get("PARSER_API_KEY"),
            poll_interval_seconds=number("POLL_INTERVAL_SECONDS", 5.0),
            poll_timeout_seconds=number("POLL_TIMEOUT_SECONDS", 300.0),
            condition_endpoint=get("CONDITION_ENDPOINT"),
            intent_key_hex=get("INTENT_KEY"),
        )
