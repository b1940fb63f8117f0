"""Thin client for a user-supplied natural-language strategy parser."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

import httpx
from pydantic import BaseModel

from .models import ParserInput, ParserMetadata, ParserOutput

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class ParserError(RuntimeError):
    """Raised when the parser endpoint fails, times out, or answers malformed."""


class _MetadataBody(BaseModel):
    model: str
    confidence: float


class _ParserBody(BaseModel):
    strategy_dsl: Any
    explanation: str
    risk_notes: List[str]
    parser_metadata: _MetadataBody


class ParserAdapter:
    """Posts the prompt plus hard-limit context; never retries.

    Only the response envelope is checked here. ``strategy_dsl`` is passed on
    as raw data for the limit enforcer to validate.
    """

    def __init__(
        self,
        endpoint: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not endpoint:
            raise ValueError("Parser endpoint is required.")
        self._endpoint = endpoint
        self._timeout_seconds = timeout_seconds
        self._api_key = api_key
        self._http_client = http_client

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def parse(self, parser_input: ParserInput) -> ParserOutput:
        if self._http_client is not None:
            return await self._parse(self._http_client, parser_input)
        async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
            return await self._parse(client, parser_input)

    async def _parse(self, client: httpx.AsyncClient, parser_input: ParserInput) -> ParserOutput:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        try:
            response = await client.post(
                self._endpoint,
                json=parser_input.to_dict(),
                headers=headers,
                timeout=self._timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            raise ParserError(f"Parser timed out after {self._timeout_seconds:g}s") from exc
        except httpx.HTTPError as exc:
            raise ParserError(f"Parser request failed: {exc}") from exc

        if not response.is_success:
            raise ParserError(f"Parser returned HTTP {response.status_code}: {response.reason_phrase}")

        try:
            body = _ParserBody.model_validate(response.json())
        except ValueError as exc:
            logger.warning("Parser at %s returned a malformed envelope", self._endpoint)
            raise ParserError("Parser returned an unexpected response.") from exc

        logger.info(
            "Parser %s answered (model=%s, confidence=%.2f)",
            self._endpoint,
            body.parser_metadata.model,
            body.parser_metadata.confidence,
        )
        return ParserOutput(
            strategy_dsl=body.strategy_dsl,
            explanation=body.explanation,
            risk_notes=tuple(body.risk_notes),
            parser_metadata=ParserMetadata(
                model=body.parser_metadata.model,
                confidence=body.parser_metadata.confidence,
            ),
        )
