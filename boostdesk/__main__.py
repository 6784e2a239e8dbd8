"""Run the order desk under uvicorn: ``python -m boostdesk``."""
from __future__ import annotations

import logging

import uvicorn

from .config import DEFAULT_APP_CONFIG
from .logging_config import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    config = DEFAULT_APP_CONFIG
    setup_logging(config.log_level)
    shown_host = "localhost" if config.host in {"0.0.0.0", ""} else config.host
    logger.info("Server running at http://%s:%d", shown_host, config.port)
    logger.info("Admin page: http://%s:%d/admin.html", shown_host, config.port)
    uvicorn.run("boostdesk.app:app", host=config.host, port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
