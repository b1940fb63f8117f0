"""Run the dashboard API: ``python -m web``."""

from __future__ import annotations

import logging
import os

import uvicorn


if __name__ == "__main__":
    logging.basicConfig(level=os.getenv("SHADOW_LOG_LEVEL", "INFO").upper())
    uvicorn.run(
        "web.app:app",
        host="127.0.0.1",
        port=int(os.getenv("SHADOW_PORT", "8080")),
        reload=False,
    )
