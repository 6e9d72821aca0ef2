# RCD service library - core - activity log
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

from rcdcore.releases.types import Activity, ActivityType, ReleaseID
from rcdlib.core import logger as parent_logger
from rcdlib.db.db import ReleasesDB

logger = parent_logger.getChild("activity")


class ActivityLog:
    """Records what changed; a failure to record never fails the caller."""

    _db: ReleasesDB

    def __init__(self, db: ReleasesDB) -> None:
        self._db = db

    async def record(
        self,
        team: str,
        release_id: ReleaseID | None,
        activity_type: ActivityType,
        action: str,
        description: str,
        metadata: dict[str, Any] | None = None,
    ) -> Activity | None:
        try:
            return await self._db.new_activity(
                team, release_id, activity_type, action, description, metadata
            )
        except Exception as e:
            logger.error(f"error recording '{activity_type}' activity: {e}")
            return None

    async def ls(
        self, team: str, release_id: ReleaseID, *, max_entries: int | None = 20
    ) -> list[Activity]:
        return await self._db.ls_activities(
            team=team, release_id=release_id, max_entries=max_entries
        )
