# RCD core library - releases types
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

import enum
from datetime import date
from datetime import datetime as dt
from typing import Any

import pydantic

ReleaseID = int
DependencyID = int
GroupID = int
ActivityID = int


class ReleaseStatus(enum.StrEnum):
    #
    # declared in pipeline order.
    #
    PLANNING = "PLANNING"
    IN_DEVELOPMENT = "IN_DEVELOPMENT"
    IN_REVIEW = "IN_REVIEW"
    READY_STAGING = "READY_STAGING"
    IN_STAGING = "IN_STAGING"
    STAGING_VERIFIED = "STAGING_VERIFIED"
    READY_PRODUCTION = "READY_PRODUCTION"
    DEPLOYED = "DEPLOYED"
    CANCELLED = "CANCELLED"
    #
    # a rolled back release has not shipped, and keeps blocking its dependents.
    #
    ROLLED_BACK = "ROLLED_BACK"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]

    @property
    def emoji(self) -> str:
        return STATUS_EMOJI[self]


# statuses after which a BLOCKS edge no longer holds its dependent blocked.
TERMINAL_STATUSES = frozenset({ReleaseStatus.DEPLOYED, ReleaseStatus.CANCELLED})

STATUS_LABELS: dict[ReleaseStatus, str] = {
    ReleaseStatus.PLANNING: "Planning",
    ReleaseStatus.IN_DEVELOPMENT: "In Development",
    ReleaseStatus.IN_REVIEW: "In Review",
    ReleaseStatus.READY_STAGING: "Ready for Staging",
    ReleaseStatus.IN_STAGING: "In Staging",
    ReleaseStatus.STAGING_VERIFIED: "Staging Verified",
    ReleaseStatus.READY_PRODUCTION: "Ready for Production",
    ReleaseStatus.DEPLOYED: "Deployed",
    ReleaseStatus.CANCELLED: "Cancelled",
    ReleaseStatus.ROLLED_BACK: "Rolled Back",
}

STATUS_EMOJI: dict[ReleaseStatus, str] = {
    ReleaseStatus.PLANNING: "📋",
    ReleaseStatus.IN_DEVELOPMENT: "🔨",
    ReleaseStatus.IN_REVIEW: "👀",
    ReleaseStatus.READY_STAGING: "🎯",
    ReleaseStatus.IN_STAGING: "🧪",
    ReleaseStatus.STAGING_VERIFIED: "✅",
    ReleaseStatus.READY_PRODUCTION: "🚀",
    ReleaseStatus.DEPLOYED: "🎉",
    ReleaseStatus.CANCELLED: "❌",
    ReleaseStatus.ROLLED_BACK: "⏪",
}


class DependencyType(enum.StrEnum):
    BLOCKS = "BLOCKS"
    SOFT_DEPENDENCY = "SOFT_DEPENDENCY"
    REQUIRES_SYNC = "REQUIRES_SYNC"


class DeploymentGroupStatus(enum.StrEnum):
    PENDING = "PENDING"
    READY = "READY"
    DEPLOYING = "DEPLOYING"
    DEPLOYED = "DEPLOYED"
    CANCELLED = "CANCELLED"


class DeployOrder(enum.StrEnum):
    SEQUENTIAL = "SEQUENTIAL"
    SIMULTANEOUS = "SIMULTANEOUS"


class ActivityType(enum.StrEnum):
    RELEASE_CREATED = "RELEASE_CREATED"
    RELEASE_UPDATED = "RELEASE_UPDATED"
    DEPENDENCY_ADDED = "DEPENDENCY_ADDED"
    DEPENDENCY_RESOLVED = "DEPENDENCY_RESOLVED"
    DEPENDENCY_REMOVED = "DEPENDENCY_REMOVED"
    GROUP_UPDATED = "GROUP_UPDATED"


class Release(pydantic.BaseModel):
    """A trackable unit of deployable work moving through the status pipeline."""

    release_id: ReleaseID
    team: str
    title: str
    service: str
    description: str | None = None
    version: str | None = None
    owner: str | None = None
    sprint: str | None = None
    group_id: GroupID | None = None
    target_date: date | None = None

    status: ReleaseStatus = ReleaseStatus.PLANNING
    # derived, only ever written by the blocked status resolver.
    is_blocked: bool = False
    blocked_reason: str | None = None

    created: dt
    updated: dt
    status_changed: dt | None = None
    staging_deployed: dt | None = None
    prod_deployed: dt | None = None


class Dependency(pydantic.BaseModel):
    """
    Directed edge between two releases.

    The dependent release cannot safely proceed until the blocking release
    satisfies this edge.
    """

    dep_id: DependencyID
    dependent_id: ReleaseID
    blocking_id: ReleaseID
    type: DependencyType = DependencyType.BLOCKS
    description: str | None = None
    is_resolved: bool = False
    resolved_at: dt | None = None
    created: dt


class DeploymentGroup(pydantic.BaseModel):
    """A batch of releases deployed together; its status is derived."""

    group_id: GroupID
    team: str
    name: str
    description: str | None = None
    deploy_order: DeployOrder = DeployOrder.SIMULTANEOUS
    target_date: date | None = None
    notify_on_ready: bool = False
    status: DeploymentGroupStatus = DeploymentGroupStatus.PENDING
    deployed_at: dt | None = None
    created: dt
    updated: dt


class Activity(pydantic.BaseModel):
    activity_id: ActivityID
    team: str
    release_id: ReleaseID | None
    type: ActivityType
    action: str
    description: str
    metadata: dict[str, Any] = pydantic.Field(default_factory=dict)
    created: dt
