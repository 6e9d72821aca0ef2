# RCD service library - workqueue's worker - celery
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

import logging
import os
from typing import Any

from celery import Celery, signals

from rcdlib.config.config import Config

celery_app = Celery(
    __name__,
    # include the tasks module, so the worker knows where to find them.
    include=["rcdlib.worker.tasks"],
)

logger = celery_app.log.get_default_logger(__name__)


def celery_init(config: Config) -> None:
    """Point the celery app at the configured broker and results backend."""
    celery_app.conf.broker_url = config.broker_url
    celery_app.conf.result_backend = config.results_backend_url
    # notifications are fire-and-forget, nobody waits on their results.
    celery_app.conf.task_ignore_result = True


# pyright: reportUnknownArgumentType=false
# pyright: reportUnusedParameter=false
# pyright: reportExplicitAny=false, reportAny=false
# pyright: reportMissingParameterType=false
# pyright: reportUnknownParameterType=false
#
@signals.after_setup_task_logger.connect
def setup_task_logger(
    sender: Any,
    logger: logging.Logger,
    loglevel: int,
    logfile: str,
    format: str,
    **kwargs,
) -> None:
    if os.environ.get("RCD_DEBUG"):
        logging.getLogger("rcd").setLevel(logging.DEBUG)
