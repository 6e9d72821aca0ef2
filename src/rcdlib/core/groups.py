# RCD service library - core - deployment groups status
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

import datetime
from collections.abc import Iterable
from datetime import datetime as dt
from typing import NamedTuple

from rcdcore.releases.errors import NoSuchDeploymentGroupError
from rcdcore.releases.types import (
    DeploymentGroup,
    DeploymentGroupStatus,
    GroupID,
    ReleaseStatus,
)
from rcdlib.core import logger as parent_logger
from rcdlib.db.db import ReleasesDB

logger = parent_logger.getChild("groups")

_DEPLOYING_STATUSES = frozenset(
    {
        ReleaseStatus.IN_STAGING,
        ReleaseStatus.STAGING_VERIFIED,
        ReleaseStatus.READY_PRODUCTION,
    }
)


class GroupStatusChange(NamedTuple):
    group: DeploymentGroup
    old_status: DeploymentGroupStatus


def compute_group_status(statuses: Iterable[ReleaseStatus]) -> DeploymentGroupStatus:
    """Roll up member release statuses into a group status, first match wins."""
    non_cancelled = [s for s in statuses if s != ReleaseStatus.CANCELLED]

    if not non_cancelled:
        return DeploymentGroupStatus.CANCELLED
    elif all(s == ReleaseStatus.DEPLOYED for s in non_cancelled):
        return DeploymentGroupStatus.DEPLOYED
    elif all(s == ReleaseStatus.READY_STAGING for s in non_cancelled):
        # must be checked before the deploying states.
        return DeploymentGroupStatus.READY
    elif any(s in _DEPLOYING_STATUSES for s in non_cancelled):
        return DeploymentGroupStatus.DEPLOYING
    return DeploymentGroupStatus.PENDING


async def update_deployment_group_status(
    db: ReleasesDB, group_id: GroupID
) -> GroupStatusChange | None:
    """
    Recompute a deployment group's status from its members.

    Nothing is written if the status does not change, or if the group has no
    members. Returns the change, if any.
    """
    try:
        group = await db.get_group(group_id)
    except NoSuchDeploymentGroupError:
        logger.warning(f"unable to update group status: no group {group_id}")
        return None

    members = await db.ls_releases(group_id=group_id)
    if not members:
        logger.debug(f"deployment group {group_id} has no releases")
        return None

    new_status = compute_group_status(r.status for r in members)
    old_status = group.status
    if new_status == old_status:
        return None

    logger.info(f"deployment group {group_id} status: {old_status} -> {new_status}")
    group.status = new_status
    if new_status == DeploymentGroupStatus.DEPLOYED and not group.deployed_at:
        group.deployed_at = dt.now(datetime.UTC)

    await db.put_group(group)
    return GroupStatusChange(group=group, old_status=old_status)
