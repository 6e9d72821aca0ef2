# RCD service - server
# Copyright (C) 2025  Clyso GmbH
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.

# pyright: reportExplicitAny=false

from __future__ import annotations

import errno
import sys
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from rcdcore.errors import RCDError
from rcdlib.config.config import Config, config_init, config_set
from rcdlib.core.mgr import MgrError, mgr_init
from rcdlib.core.notify import NotificationSender
from rcdlib.logger import logger as parent_logger
from rcdlib.logger import setup_logging, uvicorn_logging_config
from rcdlib.routes import dependencies, groups, releases

logger = parent_logger.getChild("server")


# fastapi application
#
def _lifespan(
    config: Config, sender: NotificationSender | None
) -> Callable[[FastAPI], Any]:
    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncGenerator[None, Any]:
        logger.info("Preparing rcd service server...")

        try:
            _ = mgr_init(config, sender)
        except (MgrError, RCDError, Exception) as e:
            logger.error(f"error initializing manager: {e}")
            sys.exit(errno.ENOTRECOVERABLE)

        logger.info("Starting rcd service server...")
        yield
        logger.info("Shutting down rcd service server...")

    return lifespan


def factory(
    config: Config | None = None, sender: NotificationSender | None = None
) -> FastAPI:
    """
    Build the service application.

    Without a 'config' it is loaded from 'RCD_CONFIG'. Without a 'sender',
    notifications are dispatched to the celery worker.
    """
    api_tags_meta = [
        {"name": "releases", "description": "Release tracking"},
        {"name": "dependencies", "description": "Dependencies between releases"},
        {"name": "deployment-groups", "description": "Batched deployments"},
    ]

    if config is None:
        try:
            logger.debug("init config")
            config = config_init()
        except Exception:
            logger.exception("error setting up config state")
            sys.exit(1)
    else:
        config_set(config)

    if not config.server:
        logger.error("missing server config")
        sys.exit(errno.EINVAL)

    setup_logging(config.server.logs)

    app = FastAPI(docs_url=None, lifespan=_lifespan(config, sender))
    api = FastAPI(
        title="Release Coordination API",
        description="Release and dependency coordination service",
        version="1.0.0",
        openapi_tags=api_tags_meta,
    )

    api.include_router(releases.router, tags=["releases"])
    api.include_router(dependencies.router, tags=["dependencies"])
    api.include_router(groups.router, tags=["deployment-groups"])
    app.mount("/api", api)

    return app


# main
#
def main() -> None:
    try:
        config = config_init()
    except RCDError as e:
        print(f"error loading config: {e}")
        sys.exit(errno.EINVAL)

    if not config.server:
        print("missing server config")
        sys.exit(errno.EINVAL)

    uvicorn.run(
        app="rcdlib.server:factory",
        host=config.server.host,
        port=config.server.port,
        factory=True,
        log_config=uvicorn_logging_config(config.server.logs),
        ssl_certfile=config.server.cert,
        ssl_keyfile=config.server.key,
    )


if __name__ == "__main__":
    main()
