"""Wire models for the bring-your-own parser endpoint."""

from dataclasses import dataclass
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class ParserContext:
    allowed_pairs: Tuple[str, ...]
    max_spend_usdc_hard: float
    max_slippage_bps_hard: int


@dataclass(frozen=True)
class ParserInput:
    user_prompt: str
    context: ParserContext

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_prompt": self.user_prompt,
            "context": {
                "allowed_pairs": list(self.context.allowed_pairs),
                "max_spend_usdc_hard": self.context.max_spend_usdc_hard,
                "max_slippage_bps_hard": self.context.max_slippage_bps_hard,
            },
        }


@dataclass(frozen=True)
class ParserMetadata:
    model: str
    confidence: float


@dataclass(frozen=True)
class ParserOutput:
    """Parser response. ``strategy_dsl`` is untrusted raw data until validated."""

    strategy_dsl: Any
    explanation: str
    risk_notes: Tuple[str, ...]
    parser_metadata: ParserMetadata
