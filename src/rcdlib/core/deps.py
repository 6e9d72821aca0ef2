# RCD service library - core - dependencies
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

from rcdcore.api.responses import DependenciesResponse, DependencyEntry
from rcdcore.releases.errors import (
    CyclicDependencyError,
    DuplicateDependencyError,
    InvalidDependencyError,
    NoSuchDependencyError,
    NoSuchReleaseError,
    NoUpdateFieldsError,
)
from rcdcore.releases.types import (
    ActivityType,
    Dependency,
    DependencyID,
    DependencyType,
    Release,
    ReleaseID,
)
from rcdlib.core import logger as parent_logger
from rcdlib.core.activity import ActivityLog
from rcdlib.core.blocked import recalculate_blocked_status
from rcdlib.core.graph import DependencyGraph
from rcdlib.core.notify import Notifier
from rcdlib.core.utils import find_release, now
from rcdlib.db.db import ReleasesDB

logger = parent_logger.getChild("deps")


class DependenciesMgr:
    """
    Maintains the dependency edges between releases.

    Every edge mutation reruns the blocked status resolver for the dependent
    release of the affected edge.
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

    async def _find_dependency(
        self, team: str, release_id: ReleaseID, dep_id: DependencyID
    ) -> Dependency:
        # propagate exceptions
        _ = await find_release(self._db, team, release_id)
        dep = await self._db.get_dependency(dep_id)
        if dep.dependent_id != release_id:
            raise NoSuchDependencyError(dep_id)
        return dep

    async def _resolve(self, release_id: ReleaseID) -> None:
        change = await recalculate_blocked_status(self._db, release_id)
        if change and change.changed:
            self._notifier.handle_blocked_changes([change])

    async def _blocking_release(self, dep: Dependency) -> Release:
        return await self._db.get_release(dep.blocking_id)

    async def add(
        self,
        team: str,
        dependent_id: ReleaseID,
        blocking_id: ReleaseID,
        dep_type: DependencyType = DependencyType.BLOCKS,
        description: str | None = None,
    ) -> DependencyEntry:
        """Make 'dependent_id' depend on 'blocking_id'."""
        if dependent_id == blocking_id:
            logger.info(f"refusing self dependency for release {dependent_id}")
            raise InvalidDependencyError(dependent_id)

        # propagate exceptions
        _ = await find_release(self._db, team, dependent_id)
        blocking = await find_release(self._db, team, blocking_id)

        existing = await self._db.ls_dependencies(
            dependent_id=dependent_id, blocking_id=blocking_id
        )
        if existing:
            logger.info(
                f"dependency {dependent_id} -> {blocking_id} already exists "
                + f"as {existing[0].dep_id}"
            )
            raise DuplicateDependencyError(dependent_id, blocking_id)

        graph = await DependencyGraph.load(self._db)
        if graph.would_create_cycle(dependent_id, blocking_id):
            logger.info(f"dependency {dependent_id} -> {blocking_id} creates a cycle")
            raise CyclicDependencyError(dependent_id, blocking_id)

        dep = await self._db.new_dependency(
            dependent_id, blocking_id, dep_type, description
        )
        logger.info(
            f"added dependency {dep.dep_id}: {dependent_id} -> {blocking_id} "
            + f"({dep_type})"
        )

        await self._resolve(dependent_id)
        _ = await self._activity.record(
            team,
            dependent_id,
            ActivityType.DEPENDENCY_ADDED,
            "added",
            f'Added dependency on "{blocking.title}"',
            {
                "dependency_id": dep.dep_id,
                "blocking_id": blocking_id,
                "type": dep.type.value,
            },
        )
        return DependencyEntry.from_dependency(dep, blocking)

    async def remove(
        self, team: str, release_id: ReleaseID, dep_id: DependencyID
    ) -> None:
        dep = await self._find_dependency(team, release_id, dep_id)
        await self._db.delete_dependency(dep_id)
        logger.info(f"removed dependency {dep_id}")

        await self._resolve(dep.dependent_id)

        try:
            title = (await self._blocking_release(dep)).title
        except NoSuchReleaseError:
            title = f"release {dep.blocking_id}"

        _ = await self._activity.record(
            team,
            release_id,
            ActivityType.DEPENDENCY_REMOVED,
            "removed",
            f'Removed dependency on "{title}"',
            {"blocking_id": dep.blocking_id},
        )

    async def update(
        self,
        team: str,
        release_id: ReleaseID,
        dep_id: DependencyID,
        *,
        dep_type: DependencyType | None = None,
        description: str | None = None,
        is_resolved: bool | None = None,
    ) -> DependencyEntry:
        if dep_type is None and description is None and is_resolved is None:
            raise NoUpdateFieldsError()

        dep = await self._find_dependency(team, release_id, dep_id)
        was_resolved = dep.is_resolved

        if dep_type is not None:
            dep.type = dep_type
        if description is not None:
            dep.description = description
        if is_resolved is not None:
            dep.is_resolved = is_resolved
            if not is_resolved:
                dep.resolved_at = None
            elif not was_resolved:
                dep.resolved_at = now()

        await self._db.put_dependency(dep)
        await self._resolve(dep.dependent_id)

        blocking = await self._blocking_release(dep)
        if is_resolved is not None and is_resolved != was_resolved:
            action = "resolved" if is_resolved else "unresolved"
            _ = await self._activity.record(
                team,
                release_id,
                ActivityType.DEPENDENCY_RESOLVED,
                action,
                f'{action.capitalize()} dependency on "{blocking.title}"',
                {"dependency_id": dep.dep_id, "blocking_id": dep.blocking_id},
            )

        return DependencyEntry.from_dependency(dep, blocking)

    async def set_resolved(
        self,
        team: str,
        release_id: ReleaseID,
        dep_id: DependencyID,
        is_resolved: bool,
    ) -> DependencyEntry:
        return await self.update(team, release_id, dep_id, is_resolved=is_resolved)

    async def get(
        self, team: str, release_id: ReleaseID, dep_id: DependencyID
    ) -> DependencyEntry:
        dep = await self._find_dependency(team, release_id, dep_id)
        return DependencyEntry.from_dependency(dep, await self._blocking_release(dep))

    async def ls(self, team: str, release_id: ReleaseID) -> DependenciesResponse:
        """List what a release depends on, and what depends on it."""
        _ = await find_release(self._db, team, release_id)

        depends_on: list[DependencyEntry] = []
        for dep in await self._db.ls_dependencies(dependent_id=release_id):
            try:
                other = await self._db.get_release(dep.blocking_id)
            except NoSuchReleaseError:
                logger.warning(f"dependency {dep.dep_id} has no blocking release")
                continue
            depends_on.append(DependencyEntry.from_dependency(dep, other))

        dependents: list[DependencyEntry] = []
        for dep in await self._db.ls_dependencies(blocking_id=release_id):
            try:
                other = await self._db.get_release(dep.dependent_id)
            except NoSuchReleaseError:
                logger.warning(f"dependency {dep.dep_id} has no dependent release")
                continue
            dependents.append(DependencyEntry.from_dependency(dep, other))

        return DependenciesResponse(depends_on=depends_on, dependents=dependents)
