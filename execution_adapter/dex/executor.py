"""Execute decrypted strategies against a simulated DEX backend."""

from typing import Callable, Optional
import hashlib
import json
import logging
import secrets

from strategy_dsl.models import ActionType, Strategy

from .models import ExecutionResult

logger = logging.getLogger(__name__)

_SALT_BYTES = 16


class TradeExecutor:
    """Simulation mode hashes the strategy with fresh salt into a mock tx hash."""

    def __init__(
        self,
        simulate: bool = True,
        entropy_provider: Optional[Callable[[int], bytes]] = None,
    ) -> None:
        self._simulate = simulate
        self._entropy_provider = entropy_provider or secrets.token_bytes

    @property
    def simulate(self) -> bool:
        return self._simulate

    async def execute(self, strategy: Strategy) -> ExecutionResult:
        if not strategy.actions:
            return ExecutionResult(success=False, tx_hash=None, error="No actions to execute")

        for action in strategy.actions:
            if action.type is not ActionType.SWAP:
                kind = getattr(action.type, "value", action.type)
                return ExecutionResult(
                    success=False, tx_hash=None, error=f"Unsupported action type: {kind}"
                )

        if not self._simulate:
            return ExecutionResult(
                success=False, tx_hash=None, error="Real execution not yet implemented"
            )

        salt = self._entropy_provider(_SALT_BYTES)
        digest = hashlib.sha256(_strategy_bytes(strategy) + salt.hex().encode("ascii")).hexdigest()
        tx_hash = "0x" + digest
        logger.info("Simulated %d swap(s) on %s: %s", len(strategy.actions), strategy.pair, tx_hash)
        return ExecutionResult(success=True, tx_hash=tx_hash)


def _strategy_bytes(strategy: Strategy) -> bytes:
    return json.dumps(strategy.to_dict(), sort_keys=True).encode("utf-8")
