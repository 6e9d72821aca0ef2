# RCD service library - worker
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

# Celery entry point, run with
#
#   RCD_CONFIG=/path/to/config.yaml celery -A rcdlib.worker.worker worker
#

import errno
import sys

from rcdcore.errors import RCDError
from rcdlib.config.config import config_init
from rcdlib.worker.celery import celery_app, celery_init, logger


def _init() -> None:
    try:
        config = config_init()
    except (RCDError, Exception) as e:
        logger.error(f"unable to init config: {e}")
        sys.exit(errno.ENOTRECOVERABLE)

    celery_init(config)


_init()

__all__ = ["celery_app"]
