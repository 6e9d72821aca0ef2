# RCD core library - errors
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

from typing import override


class RCDError(Exception):
    msg: str | None

    def __init__(self, msg: str | None = None) -> None:
        super().__init__()
        self.msg = msg

    def with_maybe_msg(self, prefix: str) -> str:
        return prefix + (f": {self.msg}" if self.msg else "")

    @override
    def __str__(self) -> str:
        return self.with_maybe_msg("RCD error")
