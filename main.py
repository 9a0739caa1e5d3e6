"""
AI Mandalart -- Application Entry Point.

Starts the FastAPI server via uvicorn.

Usage:
    python main.py              # Development (reload with MANDALART_DEV_MODE=1)
    uvicorn main:app --host 0.0.0.0 --port 8000  # Production
"""

from __future__ import annotations

import os

import uvicorn

from mandalart.api import create_app
from mandalart.lib.logging import setup_logging

setup_logging()

app = create_app()


if __name__ == "__main__":
    port = int(os.getenv("MANDALART_PORT", "8000"))
    host = os.getenv("MANDALART_HOST", "0.0.0.0")
    reload = os.getenv("MANDALART_DEV_MODE", "0") == "1"

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )
