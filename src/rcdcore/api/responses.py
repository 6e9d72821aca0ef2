# RCD core library - api responses
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

from datetime import datetime as dt

import pydantic

from rcdcore.releases.types import (
    Dependency,
    DependencyID,
    DependencyType,
    DeploymentGroup,
    Release,
    ReleaseID,
    ReleaseStatus,
)


class BaseErrorModel(pydantic.BaseModel):
    detail: str


class ReleaseSummary(pydantic.BaseModel):
    """The other end of a dependency edge, as shown alongside the edge."""

    release_id: ReleaseID
    title: str
    version: str | None
    service: str
    status: ReleaseStatus

    @classmethod
    def from_release(cls, release: Release) -> ReleaseSummary:
        return cls(
            release_id=release.release_id,
            title=release.title,
            version=release.version,
            service=release.service,
            status=release.status,
        )


class DependencyEntry(pydantic.BaseModel):
    dep_id: DependencyID
    type: DependencyType
    description: str | None
    is_resolved: bool
    resolved_at: dt | None
    created: dt
    release: ReleaseSummary

    @classmethod
    def from_dependency(cls, dep: Dependency, other: Release) -> DependencyEntry:
        return cls(
            dep_id=dep.dep_id,
            type=dep.type,
            description=dep.description,
            is_resolved=dep.is_resolved,
            resolved_at=dep.resolved_at,
            created=dep.created,
            release=ReleaseSummary.from_release(other),
        )


class DependenciesResponse(pydantic.BaseModel):
    depends_on: list[DependencyEntry]
    dependents: list[DependencyEntry]


class DeploymentGroupResponse(pydantic.BaseModel):
    group: DeploymentGroup
    releases: list[Release]
