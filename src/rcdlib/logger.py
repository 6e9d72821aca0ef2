# RCD service library - logging
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

import logging.config
import os
from copy import deepcopy
from typing import Any

import uvicorn.config

from rcdcore.logger import logger as root_logger
from rcdlib.config.server import LogsConfig

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# loggers of the service's own dependencies that are too chatty at DEBUG.
_QUIET_LOGGERS = ("httpx", "httpcore", "celery", "kombu")


def effective_level(logs: LogsConfig) -> str:
    """Configured console level, unless 'RCD_DEBUG' asks for everything."""
    return "DEBUG" if os.getenv("RCD_DEBUG") else logs.level


# source: https://gist.github.com/angstwad/bf22d1822c38a92ec0a9?permalink_comment_id=4038517#gistcomment-4038517
# credit to @tfedldmann
# licensed under MIT license
#
def _deep_merge(a: dict[Any, Any], b: dict[Any, Any]) -> dict[Any, Any]:
    result = deepcopy(a)
    for bk, bv in b.items():  # pyright: ignore[reportAny]
        av = result.get(bk)
        if isinstance(av, dict) and isinstance(bv, dict):
            result[bk] = _deep_merge(av, bv)  # pyright: ignore[reportUnknownArgumentType]
        else:
            result[bk] = deepcopy(bv)  # pyright: ignore[reportAny]
    return result


def logging_config(logs: LogsConfig) -> dict[str, Any]:
    """Build the 'dictConfig' for the service from its logs config."""
    level = effective_level(logs)

    handlers: dict[str, dict[str, Any]] = {
        "console": {
            "level": level,
            "class": "logging.StreamHandler",
            "formatter": "colorized",
        },
    }
    if logs.file:
        handlers["log_file"] = {
            "level": logs.file_level,
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "plain",
            "filename": str(logs.file),
            "maxBytes": logs.max_bytes,
            "backupCount": logs.backup_count,
        }

    # the root logger must let through whatever the chattiest handler wants.
    levels = logging.getLevelNamesMapping()
    root_level = min(levels[h["level"]] for h in handlers.values())

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "colorized": {
                "()": "uvicorn.logging.ColourizedFormatter",
                "format": (
                    "%(levelprefix)s %(asctime)s [%(module)s(%(name)s)] %(message)s"
                ),
                "datefmt": DATE_FORMAT,
            },
            "plain": {
                "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                "datefmt": DATE_FORMAT,
            },
        },
        "handlers": handlers,
        "loggers": {
            name: {"level": "WARNING" if level != "DEBUG" else "INFO"}
            for name in _QUIET_LOGGERS
        },
        "root": {
            "level": logging.getLevelName(root_level),
            "handlers": list(handlers.keys()),
        },
    }


def setup_logging(logs: LogsConfig | None = None) -> None:
    logging.config.dictConfig(logging_config(logs or LogsConfig()))


# uvicorn logging
#
def uvicorn_logging_config(logs: LogsConfig | None = None) -> dict[str, Any]:
    level = effective_level(logs or LogsConfig())
    config_dict = {
        "formatters": {
            "default": {
                "fmt": "%(levelprefix)s %(asctime)s -- %(message)s",
                "datefmt": DATE_FORMAT,
            },
            "access": {
                "fmt": '%(levelprefix)s %(asctime)s -- %(client_addr)s -- "%(request_line)s" %(status_code)s',  # noqa: E501
                "datefmt": DATE_FORMAT,
            },
        },
        "handlers": {
            "default": {"level": level},
            "access": {"level": level},
        },
    }
    return _deep_merge(uvicorn.config.LOGGING_CONFIG, config_dict)


# application logger
#
logger = root_logger.getChild("lib")
