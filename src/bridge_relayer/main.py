"""Application entry point for the bridge relayer server."""

from __future__ import annotations

import logging
import os

import uvicorn

from bridge_relayer.config.settings import AppConfig


def main() -> None:
    """Start the bridge relayer server.

    Settings come from ``BRIDGE_*`` environment variables and the optional
    YAML file named by ``BRIDGE_CONFIG_PATH``.
    """
    config = AppConfig()
    level = logging.DEBUG if config.debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    reload = os.getenv("BRIDGE_RELOAD", "false").lower() in ("1", "true", "yes")
    uvicorn.run(
        "bridge_relayer.api.app:create_app",
        factory=True,
        host=config.server.host,
        port=config.server.port,
        reload=reload,
        log_level="debug" if config.debug else "info",
    )


if __name__ == "__main__":
    main()
