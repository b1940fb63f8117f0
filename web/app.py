"""Local-first FastAPI surface over the trading dashboard."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional
from urllib.parse import urlsplit
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from dashboard.bots import DEFAULT_BOT_TIMEOUT_SECONDS, BotConfig
from dashboard.trades import TradeStatus, TradeStatusError, TradingDashboard, normalize_parser_endpoint
from intent_vault.bite import IntentAuthenticationError
from strategy_dsl.schema import SchemaViolationError
from workflow.config import WorkflowConfig

logger = logging.getLogger(__name__)

_STATE: dict = {"dashboard": None}


@asynccontextmanager
async def _lifespan(app: FastAPI):
    yield
    dashboard = _STATE["dashboard"]
    if dashboard is not None:
        await dashboard.aclose()


app = FastAPI(title="Shadow Trader", description="Local-first trading dashboard", lifespan=_lifespan)


class BotRequest(BaseModel):
    name: str
    endpoint: str
    api_key: Optional[str] = None
    timeout_seconds: float = Field(DEFAULT_BOT_TIMEOUT_SECONDS, gt=0)
    enabled: bool = True


class QuickConnectRequest(BaseModel):
    endpoint: str
    name: Optional[str] = None
    api_key: Optional[str] = None
    timeout_seconds: float = Field(DEFAULT_BOT_TIMEOUT_SECONDS, gt=0)
    enabled: bool = True


class TradeSubmitRequest(BaseModel):
    user_prompt: str
    bot_name: str


@app.middleware("http")
async def _local_only(request: Request, call_next):
    client = request.client
    if client is not None:
        host = client.host
        if host not in {"127.0.0.1", "::1", "testclient"}:
            return JSONResponse({"error": "Remote access disabled."}, status_code=403)
    return await call_next(request)


async def _handle_errors(request: Request, exc: Exception):
    return JSONResponse({"error": str(exc)}, status_code=400)


async def _handle_not_found(request: Request, exc: KeyError):
    message = exc.args[0] if exc.args else "Not found"
    return JSONResponse({"error": message}, status_code=404)


for _exc_class in (
    IntentAuthenticationError,
    SchemaViolationError,
    TradeStatusError,
    ValueError,
):
    app.add_exception_handler(_exc_class, _handle_errors)
app.add_exception_handler(KeyError, _handle_not_found)


@app.get("/api/status")
async def status():
    dashboard = _dashboard()
    config = dashboard.config
    trades = dashboard.list_trades()
    return {
        "bots": len(dashboard.list_bots()),
        "trades": {
            trade_status.value: sum(1 for trade in trades if trade.status is trade_status)
            for trade_status in TradeStatus
        },
        "limits": {
            "allowed_pairs": list(config.allowed_pairs),
            "max_spend_usdc": config.max_spend_usdc,
            "max_slippage_bps": config.max_slippage_bps,
            "max_expires_minutes": config.max_expires_minutes,
        },
    }


@app.get("/api/bots")
async def list_bots():
    return {"bots": [bot.to_dict() for bot in _dashboard().list_bots()]}


@app.post("/api/bots", status_code=201)
async def register_bot(payload: BotRequest):
    bot = BotConfig(
        name=payload.name.strip(),
        endpoint=payload.endpoint.strip(),
        api_key=payload.api_key or None,
        timeout_seconds=payload.timeout_seconds,
        enabled=payload.enabled,
    )
    _dashboard().register_bot(bot)
    return {"status": "ok", "bot": bot.to_dict()}


@app.post("/api/bots/quick-connect", status_code=201)
async def quick_connect(payload: QuickConnectRequest):
    endpoint = payload.endpoint.strip()
    if not endpoint:
        raise ValueError("endpoint is required")
    endpoint = normalize_parser_endpoint(endpoint)
    fallback_name = (urlsplit(endpoint).hostname or "").replace(".", "-")
    bot = BotConfig(
        name=(payload.name or "").strip() or fallback_name,
        endpoint=endpoint,
        api_key=payload.api_key or None,
        timeout_seconds=payload.timeout_seconds,
        enabled=payload.enabled,
    )
    _dashboard().register_bot(bot)
    return {"status": "ok", "bot": bot.to_dict()}


@app.delete("/api/bots/{name}")
async def remove_bot(name: str):
    if not _dashboard().remove_bot(name):
        raise HTTPException(status_code=404, detail=f'Bot "{name}" not found')
    return {"status": "ok"}


@app.get("/api/bots/{name}/health")
async def bot_health(name: str):
    dashboard = _dashboard()
    if dashboard.bot_manager.get_bot(name) is None:
        raise HTTPException(status_code=404, detail=f'Bot "{name}" not found')
    health = await dashboard.check_bot_health(name)
    return health.to_dict()


@app.get("/api/trades")
async def list_trades():
    return {"trades": [trade.to_dict() for trade in _dashboard().list_trades()]}


@app.post("/api/trades", status_code=201)
async def submit_trade(payload: TradeSubmitRequest):
    trade = await _dashboard().submit_trade(payload.user_prompt, payload.bot_name)
    return trade.to_dict()


@app.get("/api/trades/{trade_id}")
async def get_trade(trade_id: str):
    trade = _dashboard().get_trade(trade_id)
    if trade is None:
        raise HTTPException(status_code=404, detail="Trade not found")
    return trade.to_dict()


@app.post("/api/trades/{trade_id}/cancel")
async def cancel_trade(trade_id: str):
    dashboard = _dashboard()
    trade = dashboard.get_trade(trade_id)
    if trade is None:
        raise HTTPException(status_code=404, detail="Trade not found")
    if not dashboard.cancel_trade(trade_id):
        raise ValueError(f"Trade {trade_id} is already {trade.status.value}.")
    return trade.to_dict()


def _dashboard() -> TradingDashboard:
    dashboard = _STATE["dashboard"]
    if dashboard is None:
        config = WorkflowConfig.from_env()
        dashboard = TradingDashboard(config)
        _STATE["dashboard"] = dashboard
        logger.info("Dashboard started for pairs %s", ", ".join(config.allowed_pairs))
    return dashboard


def _reset_state(dashboard: Optional[TradingDashboard] = None) -> None:
    _STATE["dashboard"] = dashboard
