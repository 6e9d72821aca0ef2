# RCD service library - core - utilities
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

import datetime
from datetime import datetime as dt

from rcdcore.releases.errors import NoSuchDeploymentGroupError, NoSuchReleaseError
from rcdcore.releases.types import DeploymentGroup, GroupID, Release, ReleaseID
from rcdlib.db.db import ReleasesDB


def now() -> dt:
    return dt.now(datetime.UTC)


async def find_release(db: ReleasesDB, team: str, release_id: ReleaseID) -> Release:
    """Obtain a release owned by 'team'; other teams' releases do not exist."""
    release = await db.get_release(release_id)
    if release.team != team:
        raise NoSuchReleaseError(release_id)
    return release


async def find_group(db: ReleasesDB, team: str, group_id: GroupID) -> DeploymentGroup:
    group = await db.get_group(group_id)
    if group.team != team:
        raise NoSuchDeploymentGroupError(group_id)
    return group
