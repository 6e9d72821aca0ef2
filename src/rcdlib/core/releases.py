# RCD service library - core - releases
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

from typing import Any

from rcdcore.api.requests import NewReleaseRequest, UpdateReleaseRequest
from rcdcore.releases.errors import NoUpdateFieldsError
from rcdcore.releases.types import (
    TERMINAL_STATUSES,
    Activity,
    ActivityType,
    DeploymentGroupStatus,
    GroupID,
    Release,
    ReleaseID,
    ReleaseStatus,
)
from rcdlib.core import logger as parent_logger
from rcdlib.core.activity import ActivityLog
from rcdlib.core.blocked import (
    recalculate_dependent_blocked_status,
    recalculate_many,
)
from rcdlib.core.groups import update_deployment_group_status
from rcdlib.core.notify import Notifier
from rcdlib.core.utils import find_release, now
from rcdlib.db.db import ReleasesDB

logger = parent_logger.getChild("releases")

# fields that cannot be cleared once set.
_REQUIRED_FIELDS = frozenset({"title", "service", "status"})


class ReleasesMgr:
    """
    Creates, updates, and deletes releases.

    A release update runs the whole chain of derived state: dependents are
    recomputed when the release reaches a terminal status, the release's
    deployment group is rolled up, and notifications are handed off last.
    """

    _db: ReleasesDB
    _activity: ActivityLog
    _notifier: Notifier

    def __init__(
        self, db: ReleasesDB, activity: ActivityLog, notifier: Notifier
    ) -> None:
        self._db = db
        self._activity = activity
        self._notifier = notifier

    async def new(self, team: str, req: NewReleaseRequest) -> Release:
        release = await self._db.new_release(team, req)
        logger.info(
            f"new release {release.release_id} for team '{team}': {release.title}"
        )
        _ = await self._activity.record(
            team,
            release.release_id,
            ActivityType.RELEASE_CREATED,
            "created",
            f'Created release "{release.title}"',
            {"service": release.service, "version": release.version},
        )
        return release

    async def get(self, team: str, release_id: ReleaseID) -> Release:
        return await find_release(self._db, team, release_id)

    async def ls(self, team: str, *, group_id: GroupID | None = None) -> list[Release]:
        return await self._db.ls_releases(team=team, group_id=group_id)

    async def activities(
        self, team: str, release_id: ReleaseID, *, max_entries: int | None = 20
    ) -> list[Activity]:
        _ = await find_release(self._db, team, release_id)
        return await self._activity.ls(team, release_id, max_entries=max_entries)

    async def _refresh_group(self, group_id: GroupID | None) -> None:
        if group_id is None:
            return

        change = await update_deployment_group_status(self._db, group_id)
        if change and change.group.status == DeploymentGroupStatus.READY:
            self._notifier.handle_group_ready(change.group)

    async def _propagate(self, release: Release) -> None:
        try:
            changes = await recalculate_dependent_blocked_status(
                self._db, release.release_id
            )
        except Exception as e:
            logger.error(
                f"error propagating status of release {release.release_id}: {e}"
            )
            return

        if changes:
            logger.info(
                f"release {release.release_id} flipped blocked status of "
                + f"{[c.release.release_id for c in changes]}"
            )
        self._notifier.handle_blocked_changes(changes)

    async def update(
        self, team: str, release_id: ReleaseID, req: UpdateReleaseRequest
    ) -> Release:
        """
        Apply a partial update to a release.

        Only the fields set on the request are applied; setting a required
        field to null is ignored. Raises 'NoUpdateFieldsError' if nothing is
        left to apply.
        """
        fields = {
            k: v
            for k, v in req.model_dump(exclude_unset=True).items()  # pyright: ignore[reportAny]
            if v is not None or k not in _REQUIRED_FIELDS
        }
        if not fields:
            raise NoUpdateFieldsError()

        release = await find_release(self._db, team, release_id)
        old_status = release.status
        new_status: ReleaseStatus = fields.get("status", old_status)  # pyright: ignore[reportAny]

        changes: dict[str, dict[str, Any]] = {}
        for name, value in fields.items():  # pyright: ignore[reportAny]
            old: Any = getattr(release, name)  # pyright: ignore[reportAny]
            if old != value:
                changes[name] = {"from": old, "to": value}
            setattr(release, name, value)

        if new_status != old_status:
            ts = now()
            release.status_changed = ts
            if new_status == ReleaseStatus.IN_STAGING and not release.staging_deployed:
                release.staging_deployed = ts
            if new_status == ReleaseStatus.DEPLOYED and not release.prod_deployed:
                release.prod_deployed = ts

        await self._db.put_release(release)
        logger.info(f"updated release {release_id}: {list(fields.keys())}")

        if new_status != old_status:
            description = (
                f'Changed status of "{release.title}" from '
                + f"{old_status.label} to {new_status.label}"
            )
        else:
            description = f'Updated release "{release.title}"'

        _ = await self._activity.record(
            team,
            release_id,
            ActivityType.RELEASE_UPDATED,
            "status_changed" if new_status != old_status else "updated",
            description,
            {"changes": changes},
        )

        if new_status != old_status:
            if new_status in TERMINAL_STATUSES:
                await self._propagate(release)

            await self._refresh_group(release.group_id)
            self._notifier.handle_status_change(team, release, old_status, new_status)

        # refetch, the group and blocked status may have been rewritten.
        return await self._db.get_release(release_id)

    async def delete(self, team: str, release_id: ReleaseID) -> None:
        """
        Delete a release and every edge touching it.

        The release's former dependents are recomputed, and its former group
        is rolled up again.
        """
        release = await find_release(self._db, team, release_id)

        as_dependent = await self._db.ls_dependencies(dependent_id=release_id)
        as_blocking = await self._db.ls_dependencies(blocking_id=release_id)

        dependents: list[ReleaseID] = []
        for dep in as_blocking:
            if dep.dependent_id not in dependents:
                dependents.append(dep.dependent_id)

        for dep in as_dependent + as_blocking:
            await self._db.delete_dependency(dep.dep_id)

        await self._db.delete_release(release_id)
        logger.info(
            f"deleted release {release_id} and {len(as_dependent) + len(as_blocking)} "
            + "dependencies"
        )

        changes = await recalculate_many(self._db, dependents)
        self._notifier.handle_blocked_changes(changes)
        await self._refresh_group(release.group_id)

