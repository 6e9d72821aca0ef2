# RCD core library - api requests
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

from datetime import date
from typing import Annotated, ClassVar

import pydantic

from rcdcore.releases.types import (
    DependencyType,
    DeployOrder,
    ReleaseID,
    ReleaseStatus,
)

_Title = Annotated[str, pydantic.Field(min_length=1, max_length=200)]
_Service = Annotated[str, pydantic.Field(min_length=1)]
_Version = Annotated[str, pydantic.Field(max_length=50)]
_ReleaseDescription = Annotated[str, pydantic.Field(max_length=2000)]
_ShortDescription = Annotated[str, pydantic.Field(max_length=500)]
_GroupName = Annotated[str, pydantic.Field(min_length=1, max_length=100)]


class NewReleaseRequest(pydantic.BaseModel):
    title: _Title
    service: _Service
    description: _ReleaseDescription | None = None
    sprint: str | None = None
    owner: str | None = None
    version: _Version | None = None
    target_date: date | None = None


class UpdateReleaseRequest(pydantic.BaseModel):
    """
    Partial release update.

    Only the fields explicitly set by the caller are applied. Blocked state is
    derived from the dependency graph and is not accepted here.
    """

    model_config: ClassVar[pydantic.ConfigDict] = pydantic.ConfigDict(
        extra="forbid"
    )

    title: _Title | None = None
    service: _Service | None = None
    description: _ReleaseDescription | None = None
    sprint: str | None = None
    owner: str | None = None
    version: _Version | None = None
    target_date: date | None = None
    status: ReleaseStatus | None = None


class NewDependencyRequest(pydantic.BaseModel):
    blocking_id: ReleaseID
    type: DependencyType = DependencyType.BLOCKS
    description: _ShortDescription | None = None


class UpdateDependencyRequest(pydantic.BaseModel):
    model_config: ClassVar[pydantic.ConfigDict] = pydantic.ConfigDict(
        extra="forbid"
    )

    type: DependencyType | None = None
    description: _ShortDescription | None = None
    is_resolved: bool | None = None


class NewDeploymentGroupRequest(pydantic.BaseModel):
    name: _GroupName
    description: _ShortDescription | None = None
    deploy_order: DeployOrder = DeployOrder.SIMULTANEOUS
    target_date: date | None = None
    notify_on_ready: bool = False


class UpdateDeploymentGroupRequest(pydantic.BaseModel):
    """Partial group update; a group's status is derived and never set here."""

    model_config: ClassVar[pydantic.ConfigDict] = pydantic.ConfigDict(
        extra="forbid"
    )

    name: _GroupName | None = None
    description: _ShortDescription | None = None
    deploy_order: DeployOrder | None = None
    target_date: date | None = None
    notify_on_ready: bool | None = None


class AssignReleasesRequest(pydantic.BaseModel):
    release_ids: Annotated[list[ReleaseID], pydantic.Field(min_length=1)]
