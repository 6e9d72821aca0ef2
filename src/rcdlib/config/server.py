# RCD service library - config - server
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

from __future__ import annotations

from pathlib import Path
from typing import Annotated, ClassVar, Literal

import pydantic


class RateLimitConfig(pydantic.BaseModel):
    model_config: ClassVar[pydantic.ConfigDict] = pydantic.ConfigDict(
        populate_by_name=True,
        validate_by_alias=True,
        serialize_by_alias=True,
    )

    max_requests: Annotated[int, pydantic.Field(alias="max-requests", gt=0)] = 100
    window_seconds: Annotated[
        float, pydantic.Field(alias="window-seconds", gt=0)
    ] = 60.0


LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogsConfig(pydantic.BaseModel):
    """Where the service logs to, and how much."""

    model_config: ClassVar[pydantic.ConfigDict] = pydantic.ConfigDict(
        populate_by_name=True,
        validate_by_alias=True,
        serialize_by_alias=True,
    )

    level: LogLevel = "INFO"

    # rotating log file, console only if unset
    #
    file: Path | None = None
    file_level: Annotated[LogLevel, pydantic.Field(alias="file-level")] = "DEBUG"
    max_bytes: Annotated[int, pydantic.Field(alias="max-bytes", gt=0)] = 10485760
    backup_count: Annotated[int, pydantic.Field(alias="backup-count", ge=0)] = 1


class ServerConfig(pydantic.BaseModel):
    model_config: ClassVar[pydantic.ConfigDict] = pydantic.ConfigDict(
        populate_by_name=True,
        validate_by_alias=True,
        serialize_by_alias=True,
    )

    # listening address
    #
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8080

    # ssl certs, plain http if unset
    #
    cert: Path | None = None
    key: Path | None = None

    # database path
    #
    db: Path

    # logging levels and optional log file
    #
    logs: LogsConfig = pydantic.Field(default_factory=LogsConfig)

    # per api key request rate limiting
    #
    rate_limit: Annotated[
        RateLimitConfig, pydantic.Field(alias="rate-limit")
    ] = pydantic.Field(default_factory=RateLimitConfig)
