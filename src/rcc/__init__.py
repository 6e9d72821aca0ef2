# rcc - release coordination client
# Copyright (C) 2025  Clyso GmbH
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.

import logging
from pathlib import Path
from typing import override

from rcdcore.errors import RCDError
from rcdcore.logger import set_debug_logging as rcdcore_set_debug_logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("rcc")


class RCCError(RCDError):
    @override
    def __str__(self) -> str:
        return self.with_maybe_msg("RCC Error")


def set_debug_logging() -> None:
    """Set debug logging for RCC."""
    logger.setLevel(logging.DEBUG)
    rcdcore_set_debug_logging()


RCC_DEFAULT_CONFIG_PATH = Path.cwd() / "rcc-config.json"
