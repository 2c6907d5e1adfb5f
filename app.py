"""Application entrypoint to run the Thrivelog backend API."""

from __future__ import annotations

import logging
import os

import uvicorn

from thrivelog.app import app

__all__ = ["app"]


BACKEND_HOST = os.getenv("THRIVELOG_HOST", "0.0.0.0")
BACKEND_PORT = int(os.getenv("THRIVELOG_PORT", 8000))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

logger = logging.getLogger("thrivelog")


def main() -> None:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting backend API at http://localhost:%d", BACKEND_PORT)
    try:
        uvicorn.run(
            "thrivelog.app:app",
            host=BACKEND_HOST,
            port=BACKEND_PORT,
            reload=os.getenv("THRIVELOG_RELOAD", "true").lower() == "true",
            log_level=LOG_LEVEL.lower(),
        )
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")


if __name__ == "__main__":
    main()
