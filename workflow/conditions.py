"""Condition-checking collaborators.

A checker is any async callable taking the plaintext strategy and answering
once whether its conditions hold. Polling and its timeout live here, never in
the orchestrator.
"""

from typing import Awaitable, Callable, Optional
import asyncio
import logging
import time

import httpx
from pydantic import BaseModel, StrictBool

from strategy_dsl.models import Strategy

logger = logging.getLogger(__name__)

ConditionChecker = Callable[[Strategy], Awaitable[bool]]
ConditionProbe = Callable[[Strategy], Awaitable[bool]]


class ConditionProbeError(RuntimeError):
    """Raised when the condition oracle cannot be reached or answers malformed."""


class StaticConditionChecker:
    """Always gives the same answer; counts how often it was asked."""

    def __init__(self, answer: bool) -> None:
        self.answer = answer
        self.calls = 0

    async def __call__(self, strategy: Strategy) -> bool:
        self.calls += 1
        return self.answer


class PollingConditionChecker:
    def __init__(
        self,
        probe: ConditionProbe,
        interval_seconds: float = 5.0,
        timeout_seconds: float = 300.0,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        monotonic: Optional[Callable[[], float]] = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive.")
        if timeout_seconds < 0:
            raise ValueError("timeout_seconds must be non-negative.")
        self._probe = probe
        self._interval = interval_seconds
        self._timeout = timeout_seconds
        self._sleep = sleep or asyncio.sleep
        self._monotonic = monotonic or time.monotonic

    async def __call__(self, strategy: Strategy) -> bool:
        deadline = self._monotonic() + self._timeout
        attempts = 0
        while True:
            attempts += 1
            if await self._probe(strategy):
                logger.info("Conditions met for %s after %d probe(s)", strategy.pair, attempts)
                return True
            if self._monotonic() + self._interval > deadline:
                logger.info("Conditions not met for %s within %gs", strategy.pair, self._timeout)
                return False
            await self._sleep(self._interval)


class _ProbeAnswer(BaseModel):
    conditions_met: StrictBool


class HttpConditionProbe:
    """Asks an operator-run oracle: POST strategy JSON, expect ``{"conditions_met": bool}``."""

    def __init__(
        self,
        endpoint: str,
        timeout_seconds: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not endpoint:
            raise ValueError("Condition endpoint is required.")
        self._endpoint = endpoint
        self._timeout_seconds = timeout_seconds
        self._http_client = http_client

    async def __call__(self, strategy: Strategy) -> bool:
        if self._http_client is not None:
            return await self._ask(self._http_client, strategy)
        async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
            return await self._ask(client, strategy)

    async def _ask(self, client: httpx.AsyncClient, strategy: Strategy) -> bool:
        try:
            response = await client.post(self._endpoint, json=strategy.to_dict())
        except httpx.HTTPError as exc:
            raise ConditionProbeError(f"Condition oracle request failed: {exc}") from exc
        if not response.is_success:
            raise ConditionProbeError(f"Condition oracle returned HTTP {response.status_code}")
        try:
            answer = _ProbeAnswer.model_validate(response.json())
        except ValueError as exc:
            raise ConditionProbeError("Condition oracle returned an unexpected response.") from exc
        return answer.conditions_met
