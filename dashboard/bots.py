"""Registry and health checks for plugged-in parser bots."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple
import asyncio
import logging
import threading
import time

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BOT_TIMEOUT_SECONDS = 5.0


class BotConnection(Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


@dataclass(frozen=True)
class BotConfig:
    name: str
    endpoint: str
    api_key: Optional[str] = None
    timeout_seconds: float = DEFAULT_BOT_TIMEOUT_SECONDS
    enabled: bool = True

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("Bot name is required.")
        if not self.endpoint.startswith(("http://", "https://")):
            raise ValueError("Bot endpoint must be an http(s) URL.")
        if self.timeout_seconds <= 0:
            raise ValueError("Bot timeout must be positive.")

    def to_dict(self) -> Dict[str, Any]:
        """API keys are never echoed back."""

        return {
            "name": self.name,
            "endpoint": self.endpoint,
            "has_api_key": bool(self.api_key),
            "timeout_seconds": self.timeout_seconds,
            "enabled": self.enabled,
        }


@dataclass(frozen=True)
class BotHealthStatus:
    bot_name: str
    endpoint: str
    status: BotConnection
    last_check: str
    response_time_ms: Optional[float] = None
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bot_name": self.bot_name,
            "endpoint": self.endpoint,
            "status": self.status.value,
            "last_check": self.last_check,
            "response_time_ms": self.response_time_ms,
            "error_message": self.error_message,
        }


class BotManager:
    """Registry access is serialized; health checks run outside the lock."""

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        time_provider: Optional[Callable[[], str]] = None,
    ) -> None:
        self._bots: Dict[str, BotConfig] = {}
        self._lock = threading.Lock()
        self._http_client = http_client
        self._time_provider = time_provider or _utc_timestamp

    def register_bot(self, config: BotConfig) -> None:
        with self._lock:
            replaced = config.name in self._bots
            self._bots[config.name] = config
        logger.info("%s bot %s at %s", "Updated" if replaced else "Registered", config.name, config.endpoint)

    def remove_bot(self, name: str) -> bool:
        with self._lock:
            removed = self._bots.pop(name, None) is not None
        if removed:
            logger.info("Removed bot %s", name)
        return removed

    def get_bot(self, name: str) -> Optional[BotConfig]:
        with self._lock:
            return self._bots.get(name)

    def list_bots(self) -> Tuple[BotConfig, ...]:
        with self._lock:
            return tuple(self._bots.values())

    async def check_bot_health(self, name: str) -> BotHealthStatus:
        bot = self.get_bot(name)
        if bot is None:
            return BotHealthStatus(
                bot_name=name,
                endpoint="",
                status=BotConnection.ERROR,
                last_check=self._time_provider(),
                error_message="Bot not found",
            )

        headers = {"Authorization": f"Bearer {bot.api_key}"} if bot.api_key else {}
        started = time.monotonic()
        try:
            if self._http_client is not None:
                response = await self._http_client.get(
                    bot.endpoint, headers=headers, timeout=bot.timeout_seconds
                )
            else:
                async with httpx.AsyncClient(timeout=bot.timeout_seconds) as client:
                    response = await client.get(bot.endpoint, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Bot %s unreachable: %s", name, exc)
            return BotHealthStatus(
                bot_name=name,
                endpoint=bot.endpoint,
                status=BotConnection.DISCONNECTED,
                last_check=self._time_provider(),
                response_time_ms=_elapsed_ms(started),
                error_message=str(exc) or type(exc).__name__,
            )

        elapsed = _elapsed_ms(started)
        if response.is_success:
            status, error = BotConnection.CONNECTED, None
        else:
            status = BotConnection.ERROR
            error = f"HTTP {response.status_code}: {response.reason_phrase}"
        return BotHealthStatus(
            bot_name=name,
            endpoint=bot.endpoint,
            status=status,
            last_check=self._time_provider(),
            response_time_ms=elapsed,
            error_message=error,
        )

    async def check_all_bots_health(self) -> Tuple[BotHealthStatus, ...]:
        results = await asyncio.gather(
            *(self.check_bot_health(bot.name) for bot in self.list_bots())
        )
        return tuple(results)


def _elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000, 1)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()
