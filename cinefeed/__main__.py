"""Console entrypoint: ``python -m cinefeed`` or the ``cinefeed`` script."""

from __future__ import annotations

import logging

import uvicorn

from app.config import get_settings

logger = logging.getLogger("cinefeed")


def main() -> None:
    config = get_settings()
    logging.basicConfig(level=config.log_level)
    logger.info(
        "Serving %s on %s:%s (%s)",
        config.app_name,
        config.server_host,
        config.server_port,
        config.environment,
    )
    uvicorn.run(
        "app.main:app",
        host=config.server_host,
        port=config.server_port,
        log_level=config.log_level.lower(),
        reload=config.environment == "development",
    )


if __name__ == "__main__":  # pragma: no cover
    main()
