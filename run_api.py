#!/usr/bin/env python3
"""
Serve the disaster signal API (api.main:app) with uvicorn.

HOST, PORT and RELOAD=1 control the server; SIGNAL_* and LOG_LEVEL are read by the app
itself (core.config). LOG_LEVEL is passed on to uvicorn so access logs match the app's.
"""
import os

from dotenv import load_dotenv
import uvicorn

from core.config import load_settings

UVICORN_LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


def main():
    load_dotenv()
    settings = load_settings()
    log_level = settings.log_level.lower()
    uvicorn.run(
        "api.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", 8000)),
        reload=os.environ.get("RELOAD", "0") == "1",
        log_level=log_level if log_level in UVICORN_LOG_LEVELS else "info",
    )


if __name__ == "__main__":
    main()
