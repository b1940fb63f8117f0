"""x402 pay-per-call client: challenge, pay, retry."""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, List, Optional, Tuple
import logging

import httpx

from .models import PaymentRecord, PaymentStatus

logger = logging.getLogger(__name__)

PAYMENT_REQUIRED = 402
PAYMENT_HEADER = "X-Payment-Tx"

SignPayment = Callable[[float], Awaitable[str]]


class ToolRequestError(RuntimeError):
    """Raised when a paid tool fails before any payment was attempted."""


class PaymentFailureError(RuntimeError):
    """Raised when the paid retry does not succeed; the attempt stays on record."""


class X402PaymentClient:
    """Fetches paid tool data and keeps an append-only ledger of payment attempts."""

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 10.0,
        time_provider: Optional[Callable[[], str]] = None,
    ) -> None:
        self._http_client = http_client
        self._timeout_seconds = timeout_seconds
        self._time_provider = time_provider or _utc_timestamp
        self._records: List[PaymentRecord] = []

    async def fetch_with_payment(
        self, tool_url: str, sign_payment: SignPayment, cost_usdc: float
    ) -> Any:
        if self._http_client is not None:
            return await self._fetch(self._http_client, tool_url, sign_payment, cost_usdc)
        async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
            return await self._fetch(client, tool_url, sign_payment, cost_usdc)

    @property
    def payment_records(self) -> Tuple[PaymentRecord, ...]:
        return tuple(self._records)

    @property
    def total_spent(self) -> float:
        return sum(
            record.cost_usdc for record in self._records if record.status == PaymentStatus.SUCCESS
        )

    async def _fetch(
        self,
        client: httpx.AsyncClient,
        tool_url: str,
        sign_payment: SignPayment,
        cost_usdc: float,
    ) -> Any:
        first = await client.get(tool_url)

        if first.status_code != PAYMENT_REQUIRED:
            if first.is_success:
                return first.json()
            raise ToolRequestError(f"Tool request failed: HTTP {first.status_code}")

        tx_hash = await sign_payment(cost_usdc)
        index = len(self._records)
        self._records.append(
            PaymentRecord(
                tool=tool_url,
                cost_usdc=cost_usdc,
                tx_hash=tx_hash,
                timestamp=self._time_provider(),
                status=PaymentStatus.SUCCESS,
            )
        )
        logger.info("Paid %.2f USDC for %s (tx %s)", cost_usdc, tool_url, tx_hash)

        try:
            retry = await client.get(tool_url, headers={PAYMENT_HEADER: tx_hash})
        except httpx.HTTPError as exc:
            self._mark_failed(index)
            raise PaymentFailureError(f"Paid tool retry failed: {exc}") from exc

        if not retry.is_success:
            self._mark_failed(index)
            raise PaymentFailureError(f"Paid tool retry failed: HTTP {retry.status_code}")

        return retry.json()

    def _mark_failed(self, index: int) -> None:
        record = self._records[index]
        self._records[index] = replace(record, status=PaymentStatus.FAILED)
        logger.warning("Payment %s for %s marked failed", record.tx_hash, record.tool)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()
