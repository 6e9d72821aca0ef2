# RCD service library - core - deployment groups
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

from rcdcore.api.requests import (
    NewDeploymentGroupRequest,
    UpdateDeploymentGroupRequest,
)
from rcdcore.api.responses import DeploymentGroupResponse
from rcdcore.releases.errors import NoUpdateFieldsError
from rcdcore.releases.types import (
    ActivityType,
    DeploymentGroup,
    DeploymentGroupStatus,
    GroupID,
    Release,
    ReleaseID,
)
from rcdlib.core import logger as parent_logger
from rcdlib.core.activity import ActivityLog
from rcdlib.core.groups import update_deployment_group_status
from rcdlib.core.notify import Notifier
from rcdlib.core.utils import find_group, find_release
from rcdlib.db.db import ReleasesDB

logger = parent_logger.getChild("deployments")


class GroupsMgr:
    _db: ReleasesDB
    _activity: ActivityLog
    _notifier: Notifier

    def __init__(
        self, db: ReleasesDB, activity: ActivityLog, notifier: Notifier
    ) -> None:
        self._db = db
        self._activity = activity
        self._notifier = notifier

    async def _response(self, group: DeploymentGroup) -> DeploymentGroupResponse:
        members = await self._db.ls_releases(team=group.team, group_id=group.group_id)
        return DeploymentGroupResponse(group=group, releases=members)

    async def _record(
        self, group: DeploymentGroup, action: str, description: str, **metadata: object
    ) -> None:
        _ = await self._activity.record(
            group.team,
            None,
            ActivityType.GROUP_UPDATED,
            action,
            description,
            {"group_id": group.group_id, **metadata},
        )

    async def refresh(self, team: str, group_id: GroupID) -> DeploymentGroupResponse:
        """Roll up the group's status from its current members."""
        _ = await find_group(self._db, team, group_id)

        change = await update_deployment_group_status(self._db, group_id)
        if change and change.group.status == DeploymentGroupStatus.READY:
            self._notifier.handle_group_ready(change.group)

        return await self._response(await self._db.get_group(group_id))

    async def new(
        self, team: str, req: NewDeploymentGroupRequest
    ) -> DeploymentGroupResponse:
        group = await self._db.new_group(team, req)
        logger.info(f"new deployment group {group.group_id} for team '{team}'")
        await self._record(group, "created", f'Created deployment group "{group.name}"')
        return DeploymentGroupResponse(group=group, releases=[])

    async def get(self, team: str, group_id: GroupID) -> DeploymentGroupResponse:
        return await self._response(await find_group(self._db, team, group_id))

    async def ls(self, team: str) -> list[DeploymentGroup]:
        return await self._db.ls_groups(team=team)

    async def update(
        self, team: str, group_id: GroupID, req: UpdateDeploymentGroupRequest
    ) -> DeploymentGroupResponse:
        fields = {
            k: v
            for k, v in req.model_dump(exclude_unset=True).items()  # pyright: ignore[reportAny]
            if v is not None or k in ("description", "target_date")
        }
        if not fields:
            raise NoUpdateFieldsError()

        group = await find_group(self._db, team, group_id)
        for name, value in fields.items():  # pyright: ignore[reportAny]
            setattr(group, name, value)

        await self._db.put_group(group)
        logger.info(f"updated deployment group {group_id}: {list(fields.keys())}")
        await self._record(
            group,
            "updated",
            f'Updated deployment group "{group.name}"',
            fields=list(fields.keys()),
        )
        return await self._response(group)

    async def delete(self, team: str, group_id: GroupID) -> None:
        """Delete a group; its releases are kept, and no longer grouped."""
        group = await find_group(self._db, team, group_id)

        for release in await self._db.ls_releases(group_id=group_id):
            release.group_id = None
            await self._db.put_release(release)

        await self._db.delete_group(group_id)
        logger.info(f"deleted deployment group {group_id}")
        await self._record(group, "deleted", f'Deleted deployment group "{group.name}"')

    async def assign(
        self, team: str, group_id: GroupID, release_ids: list[ReleaseID]
    ) -> DeploymentGroupResponse:
        """
        Move releases into a group.

        Every release must exist and belong to the team before any is moved.
        Releases leaving another group have that group rolled up as well.
        """
        group = await find_group(self._db, team, group_id)

        releases: list[Release] = []
        for release_id in dict.fromkeys(release_ids):
            # propagate exceptions
            releases.append(await find_release(self._db, team, release_id))

        previous: set[GroupID] = set()
        for release in releases:
            if release.group_id == group_id:
                continue
            if release.group_id is not None:
                previous.add(release.group_id)
            release.group_id = group_id
            await self._db.put_release(release)

        for other in sorted(previous):
            _ = await update_deployment_group_status(self._db, other)

        await self._record(
            group,
            "releases_added",
            f'Added {len(releases)} release(s) to deployment group "{group.name}"',
            release_ids=[r.release_id for r in releases],
        )
        return await self.refresh(team, group_id)

    async def unassign(
        self, team: str, group_id: GroupID, release_ids: list[ReleaseID]
    ) -> DeploymentGroupResponse:
        group = await find_group(self._db, team, group_id)

        removed: list[ReleaseID] = []
        for release_id in dict.fromkeys(release_ids):
            release = await find_release(self._db, team, release_id)
            if release.group_id != group_id:
                logger.debug(f"release {release_id} not in group {group_id}")
                continue
            release.group_id = None
            await self._db.put_release(release)
            removed.append(release_id)

        await self._record(
            group,
            "releases_removed",
            f'Removed {len(removed)} release(s) from deployment group "{group.name}"',
            release_ids=removed,
        )
        return await self.refresh(team, group_id)
