"""DEX execution result models."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ExecutionResult:
    success: bool
    tx_hash: Optional[str]
    error: Optional[str] = None
