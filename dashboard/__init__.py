from .bots import BotConfig, BotConnection, BotHealthStatus, BotManager
from .trades import (
    TradeRequest,
    TradeStatus,
    TradeStatusError,
    TradingDashboard,
    normalize_parser_endpoint,
)

__all__ = [
    "BotConfig",
    "BotConnection",
    "BotHealthStatus",
    "BotManager",
    "TradeRequest",
    "TradeStatus",
    "TradeStatusError",
    "TradingDashboard",
    "normalize_parser_endpoint",
]
