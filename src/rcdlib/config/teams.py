# RCD service library - config - teams
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

import enum
from typing import Annotated, ClassVar

import pydantic


class APIScope(enum.StrEnum):
    RELEASES_READ = "releases:read"
    RELEASES_WRITE = "releases:write"
    DEPENDENCIES_READ = "dependencies:read"
    DEPENDENCIES_WRITE = "dependencies:write"
    GROUPS_READ = "groups:read"
    GROUPS_WRITE = "groups:write"


class APIKeyConfig(pydantic.BaseModel):
    name: str
    key: pydantic.SecretStr
    scopes: list[APIScope] = pydantic.Field(default_factory=lambda: list(APIScope))


class TeamNotificationsConfig(pydantic.BaseModel):
    """Team-level notification opt-outs."""

    model_config: ClassVar[pydantic.ConfigDict] = pydantic.ConfigDict(
        populate_by_name=True,
        validate_by_alias=True,
        serialize_by_alias=True,
    )

    status_change: Annotated[bool, pydantic.Field(alias="status-change")] = True
    ready: bool = True
    blocked: bool = True


class TeamConfig(pydantic.BaseModel):
    model_config: ClassVar[pydantic.ConfigDict] = pydantic.ConfigDict(
        populate_by_name=True,
        validate_by_alias=True,
        serialize_by_alias=True,
    )

    name: str
    slack_webhook_url: Annotated[
        pydantic.SecretStr | None, pydantic.Field(alias="slack-webhook-url")
    ] = None
    slack_channel: Annotated[str | None, pydantic.Field(alias="slack-channel")] = (
        None
    )
    notifications: TeamNotificationsConfig = pydantic.Field(
        default_factory=TeamNotificationsConfig
    )
    api_keys: Annotated[list[APIKeyConfig], pydantic.Field(alias="api-keys")] = (
        pydantic.Field(default_factory=list)
    )
