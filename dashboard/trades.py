"""Trade lifecycle table: one background workflow run per submitted prompt."""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple
from urllib.parse import urlsplit
import asyncio
import logging
import threading
import uuid

import httpx

from execution_adapter.dex.executor import TradeExecutor
from intent_vault.bite import BiteIntentHandler
from parser_adapter.client import ParserAdapter
from receipts.models import ReceiptStatus
from workflow.conditions import ConditionChecker, HttpConditionProbe, PollingConditionChecker
from workflow.config import WorkflowConfig
from workflow.orchestrator import AgentWorkflow, WorkflowResult

from .bots import BotConfig, BotHealthStatus, BotManager

logger = logging.getLogger(__name__)

PARSE_PATH = "/parse"
DEFAULT_MAX_FINISHED_TRADES = 500


class TradeStatusError(RuntimeError):
    """Raised when a trade status would move backwards."""


class TradeStatus(Enum):
    PENDING = "pending"
    MONITORING = "monitoring"
    EXECUTED = "executed"
    FAILED = "failed"
    EXPIRED = "expired"

    @property
    def terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset({TradeStatus.EXECUTED, TradeStatus.FAILED, TradeStatus.EXPIRED})

_RANK = {
    TradeStatus.PENDING: 0,
    TradeStatus.MONITORING: 1,
    TradeStatus.EXECUTED: 2,
    TradeStatus.FAILED: 2,
    TradeStatus.EXPIRED: 2,
}

_RECEIPT_TO_TRADE = {
    ReceiptStatus.EXECUTED: TradeStatus.EXECUTED,
    ReceiptStatus.ABORTED: TradeStatus.FAILED,
    ReceiptStatus.EXPIRED: TradeStatus.EXPIRED,
}


@dataclass
class TradeRequest:
    trade_id: str
    user_prompt: str
    bot_name: str
    submitted_at: str
    status: TradeStatus = TradeStatus.PENDING
    result: Optional[WorkflowResult] = None
    error: Optional[str] = None

    def advance(self, status: TradeStatus) -> None:
        """Move forward only: pending, then monitoring, then one terminal status."""

        if self.status.terminal or _RANK[status] <= _RANK[self.status]:
            raise TradeStatusError(
                f"Trade {self.trade_id} cannot move from {self.status.value} to {status.value}."
            )
        self.status = status

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.trade_id,
            "user_prompt": self.user_prompt,
            "bot_name": self.bot_name,
            "submitted_at": self.submitted_at,
            "status": self.status.value,
            "error": self.error,
            "receipt": self.result.receipt.to_dict() if self.result else None,
            "encrypted_intent": (
                self.result.encrypted_intent.to_dict()
                if self.result and self.result.encrypted_intent
                else None
            ),
        }


def normalize_parser_endpoint(endpoint: str) -> str:
    """A bare host URL gets the conventional ``/parse`` path."""

    endpoint = endpoint.strip()
    if urlsplit(endpoint).path in ("", "/"):
        return endpoint.rstrip("/") + PARSE_PATH
    return endpoint


class TradingDashboard:
    """Bots plug in as parsers; every trade gets its own workflow and ledgers.

    All trades share one intent handler, so one key, for the dashboard's
    lifetime. Monitoring runs as asyncio tasks on the running loop.
    """

    def __init__(
        self,
        config: WorkflowConfig,
        bite: Optional[BiteIntentHandler] = None,
        bot_manager: Optional[BotManager] = None,
        condition_checker: Optional[ConditionChecker] = None,
        executor: Optional[TradeExecutor] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        id_provider: Optional[Callable[[], str]] = None,
        time_provider: Optional[Callable[[], str]] = None,
        max_finished_trades: int = DEFAULT_MAX_FINISHED_TRADES,
    ) -> None:
        if max_finished_trades < 1:
            raise ValueError("max_finished_trades must be at least 1.")
        self._config = config
        self._bite = bite or (
            BiteIntentHandler.from_hex(config.intent_key_hex)
            if config.intent_key_hex
            else BiteIntentHandler()
        )
        self._bots = bot_manager or BotManager(http_client=http_client)
        if condition_checker is None and config.condition_endpoint:
            condition_checker = PollingConditionChecker(
                HttpConditionProbe(config.condition_endpoint, http_client=http_client),
                interval_seconds=config.poll_interval_seconds,
                timeout_seconds=config.poll_timeout_seconds,
            )
        self._condition_checker = condition_checker
        self._executor = executor or TradeExecutor(simulate=True)
        self._http_client = http_client
        self._id_provider = id_provider or _trade_id
        self._time_provider = time_provider or _utc_timestamp
        self._trades: Dict[str, TradeRequest] = {}
        self._tasks: Dict[str, "asyncio.Task[None]"] = {}
        self._max_finished_trades = max_finished_trades
        self._lock = threading.Lock()

    @property
    def config(self) -> WorkflowConfig:
        return self._config

    @property
    def bot_manager(self) -> BotManager:
        return self._bots

    def register_bot(self, config: BotConfig) -> None:
        self._bots.register_bot(config)

    def remove_bot(self, name: str) -> bool:
        return self._bots.remove_bot(name)

    def list_bots(self) -> Tuple[BotConfig, ...]:
        return self._bots.list_bots()

    async def check_bot_health(self, name: str) -> BotHealthStatus:
        return await self._bots.check_bot_health(name)

    async def submit_trade(self, user_prompt: str, bot_name: str) -> TradeRequest:
        if not user_prompt.strip():
            raise ValueError("Trade prompt is required.")
        bot = self._bots.get_bot(bot_name)
        if bot is None:
            raise KeyError(f'Bot "{bot_name}" not found')
        if not bot.enabled:
            raise ValueError(f'Bot "{bot_name}" is disabled')
        if self._condition_checker is None:
            raise ValueError("No condition checker configured; set SHADOW_CONDITION_ENDPOINT.")

        trade = TradeRequest(
            trade_id=self._id_provider(),
            user_prompt=user_prompt,
            bot_name=bot_name,
            submitted_at=self._time_provider(),
        )
        workflow = self._workflow_for(bot)
        with self._lock:
            self._trades[trade.trade_id] = trade
            self._tasks[trade.trade_id] = asyncio.create_task(
                self._monitor(trade, workflow), name=f"trade-{trade.trade_id}"
            )
        logger.info("Submitted trade %s via bot %s", trade.trade_id, bot_name)
        return trade

    def get_trade(self, trade_id: str) -> Optional[TradeRequest]:
        with self._lock:
            return self._trades.get(trade_id)

    def list_trades(self) -> Tuple[TradeRequest, ...]:
        with self._lock:
            return tuple(self._trades.values())

    def cancel_trade(self, trade_id: str) -> bool:
        """Stops a pending or monitoring trade; decryption and execution never start."""

        with self._lock:
            trade = self._trades.get(trade_id)
            if trade is None or trade.status.terminal:
                return False
            task = self._tasks.pop(trade_id, None)
            trade.advance(TradeStatus.EXPIRED)
            trade.error = "Cancelled by operator"
            self._prune_finished()
        if task is not None:
            task.cancel()
        logger.info("Cancelled trade %s", trade_id)
        return True

    async def wait_for_trade(self, trade_id: str) -> Optional[TradeRequest]:
        with self._lock:
            task = self._tasks.get(trade_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
        return self.get_trade(trade_id)

    async def aclose(self) -> None:
        with self._lock:
            tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _workflow_for(self, bot: BotConfig) -> AgentWorkflow:
        endpoint = normalize_parser_endpoint(bot.endpoint)
        config = replace(
            self._config,
            parser_endpoint=endpoint,
            parser_timeout_seconds=bot.timeout_seconds,
            parser_api_key=bot.api_key,
        )
        return AgentWorkflow(
            config,
            bite=self._bite,
            parser=ParserAdapter(
                endpoint,
                timeout_seconds=bot.timeout_seconds,
                api_key=bot.api_key,
                http_client=self._http_client,
            ),
            executor=self._executor,
            http_client=self._http_client,
        )

    async def _monitor(self, trade: TradeRequest, workflow: AgentWorkflow) -> None:
        with self._lock:
            if trade.status is TradeStatus.PENDING:
                trade.advance(TradeStatus.MONITORING)
        try:
            result = await workflow.run(trade.user_prompt, self._condition_checker)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception("Trade %s failed", trade.trade_id)
            self._settle(trade, TradeStatus.FAILED, error=str(exc) or type(exc).__name__)
            return
        self._settle(trade, _RECEIPT_TO_TRADE[result.receipt.status], result=result)

    def _settle(
        self,
        trade: TradeRequest,
        status: TradeStatus,
        result: Optional[WorkflowResult] = None,
        error: Optional[str] = None,
    ) -> None:
        with self._lock:
            self._tasks.pop(trade.trade_id, None)
            if trade.status.terminal:
                return
            trade.result = result
            trade.error = error or (
                "; ".join(result.receipt.errors) if result and result.receipt.errors else None
            )
            trade.advance(status)
            self._prune_finished()
        logger.info("Trade %s settled as %s", trade.trade_id, status.value)

    def _prune_finished(self) -> None:
        """Drop the oldest terminal trades beyond the cap; caller holds the lock."""

        finished = [trade_id for trade_id, trade in self._trades.items() if trade.status.terminal]
        for trade_id in finished[: max(0, len(finished) - self._max_finished_trades)]:
            del self._trades[trade_id]


def _trade_id() -> str:
    return f"trade_{uuid.uuid4().hex[:12]}"


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()
