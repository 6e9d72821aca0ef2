# rcc - user config
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

from __future__ import annotations

from pathlib import Path

import pydantic

from rcc import RCCError


class UserConfig(pydantic.BaseModel):
    """Where the service lives, and the team API key to reach it with."""

    host: str
    token: pydantic.SecretStr

    @classmethod
    def load(cls, path: Path) -> UserConfig:
        if not path.exists():
            raise RCCError(msg=f"missing config file at '{path}'")

        try:
            with path.open("r") as f:
                return UserConfig.model_validate_json(f.read())
        except pydantic.ValidationError:
            raise RCCError(msg=f"invalid config at '{path}'") from None
        except Exception as e:
            raise RCCError(
                msg=f"unexpected error loading config at '{path}': {e}"
            ) from e
