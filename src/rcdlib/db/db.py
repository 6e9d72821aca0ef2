# RCD service library - db
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

from __future__ import annotations

import asyncio
import datetime
import dbm
from datetime import datetime as dt
from pathlib import Path
from typing import Any, TypeVar, override

import pydantic

from rcdcore.api.requests import NewDeploymentGroupRequest, NewReleaseRequest
from rcdcore.errors import RCDError
from rcdcore.releases.errors import (
    NoSuchDependencyError,
    NoSuchDeploymentGroupError,
    NoSuchReleaseError,
)
from rcdcore.releases.types import (
    Activity,
    ActivityType,
    Dependency,
    DependencyID,
    DependencyType,
    DeploymentGroup,
    GroupID,
    Release,
    ReleaseID,
)
from rcdlib.db import logger as parent_logger

logger = parent_logger.getChild("db")

_T = TypeVar("_T", bound=pydantic.BaseModel)

_ROOT_KEY = "releases_root"


class ReleasesDBError(RCDError):
    @override
    def __str__(self) -> str:
        return self.with_maybe_msg("releases db error")


class MalformedEntryError(ReleasesDBError):
    """Entry in database is malformed."""

    def __init__(self, key: str) -> None:
        super().__init__(f"malformed entry '{key}' in database")


class MalformedDBRootError(ReleasesDBError):
    """DB Root entry in database is malformed."""

    def __init__(self) -> None:
        super().__init__("malformed releases DB root entry in database")


def _release_key(release_id: ReleaseID) -> str:
    return f"release_{release_id}"


def _dep_key(dep_id: DependencyID) -> str:
    return f"dep_{dep_id}"


def _group_key(group_id: GroupID) -> str:
    return f"group_{group_id}"


def _activity_key(activity_id: int) -> str:
    return f"activity_{activity_id}"


def _now() -> dt:
    return dt.now(datetime.UTC)


class _DBRoot(pydantic.BaseModel):
    """
    Releases database root entry.

    Keeps the last allocated identifier for each entry kind. Identifiers only
    ever grow, so sorting by identifier yields creation order.
    """

    last_release_id: ReleaseID = 0
    last_dep_id: DependencyID = 0
    last_group_id: GroupID = 0
    last_activity_id: int = 0

    @property
    def next_release_id(self) -> ReleaseID:
        self.last_release_id += 1
        return self.last_release_id

    @property
    def next_dep_id(self) -> DependencyID:
        self.last_dep_id += 1
        return self.last_dep_id

    @property
    def next_group_id(self) -> GroupID:
        self.last_group_id += 1
        return self.last_group_id

    @property
    def next_activity_id(self) -> int:
        self.last_activity_id += 1
        return self.last_activity_id

    def save(self, path: Path) -> None:
        """Store the releases DB root back to disk."""
        try:
            with dbm.open(path, flag="c") as db:
                db[_ROOT_KEY] = self.model_dump_json()
        except Exception as e:
            msg = f"failed to save releases db root: {e}"
            logger.error(msg)
            raise ReleasesDBError(msg) from e

    @classmethod
    def load(cls, path: Path) -> _DBRoot:
        """Load the releases DB root from disk."""
        try:
            with dbm.open(path, flag="c") as db:
                if _ROOT_KEY in db:
                    return _DBRoot.model_validate_json(db[_ROOT_KEY])
                else:
                    logger.info("releases db root not found, creating new")
                    return cls()

        except pydantic.ValidationError as e:
            logger.error(f"malformed releases db root in db:\n{e}")
            raise MalformedDBRootError() from e

        except Exception as e:
            msg = f"failed to load releases db root: {e}"
            logger.error(msg)
            raise ReleasesDBError(msg) from e


class ReleasesDB:
    """
    Interface to the releases database.

    Releases, dependency edges, deployment groups, and activities are stored as
    JSON documents keyed by kind and identifier. Every individual read or write
    is serialized by the database lock.
    """

    _db_path: Path
    _root: _DBRoot
    _lock: asyncio.Lock

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        # propagate exceptions
        self._root = _DBRoot.load(db_path)
        self._lock = asyncio.Lock()

    # low level helpers, must be called with the lock held.
    #
    def _put(self, key: str, entry: pydantic.BaseModel) -> None:
        try:
            with dbm.open(self._db_path, flag="c") as db:
                db[key] = entry.model_dump_json()
        except Exception as e:
            msg = f"failed to save entry '{key}': {e}"
            logger.error(msg)
            raise ReleasesDBError(msg) from e

    def _get(self, key: str, model: type[_T]) -> _T | None:
        try:
            with dbm.open(self._db_path, flag="c") as db:
                raw = db.get(key)
        except Exception as e:
            msg = f"failed to get entry '{key}' from db: {e}"
            logger.error(msg)
            raise ReleasesDBError(msg) from e

        if raw is None:
            return None

        try:
            return model.model_validate_json(raw)
        except pydantic.ValidationError as e:
            logger.error(f"malformed entry '{key}' in db:\n{e}")
            raise MalformedEntryError(key) from e

    def _delete(self, key: str) -> bool:
        try:
            with dbm.open(self._db_path, flag="c") as db:
                if key not in db:
                    return False
                del db[key]
        except Exception as e:
            msg = f"failed to delete entry '{key}': {e}"
            logger.error(msg)
            raise ReleasesDBError(msg) from e
        return True

    def _scan(self, prefix: str, model: type[_T]) -> list[_T]:
        entries: list[_T] = []
        try:
            with dbm.open(self._db_path, flag="c") as db:
                for raw_key in db.keys():
                    key = (
                        raw_key.decode("utf-8")
                        if isinstance(raw_key, bytes)
                        else str(raw_key)
                    )
                    if not key.startswith(prefix):
                        continue

                    try:
                        entries.append(model.model_validate_json(db[raw_key]))
                    except pydantic.ValidationError as e:
                        logger.warning(f"malformed entry '{key}' in db, skipping:\n{e}")
                        continue

        except Exception as e:
            msg = f"failed to scan '{prefix}' entries from db: {e}"
            logger.error(msg)
            raise ReleasesDBError(msg) from e

        return entries

    # releases
    #
    async def new_release(self, team: str, req: NewReleaseRequest) -> Release:
        """Create a new release entry in the database."""
        async with self._lock:
            now = _now()
            release = Release(
                release_id=self._root.next_release_id,
                team=team,
                created=now,
                updated=now,
                **req.model_dump(),  # pyright: ignore[reportAny]
            )
            self._put(_release_key(release.release_id), release)
            self._root.save(self._db_path)
            return release

    async def get_release(self, release_id: ReleaseID) -> Release:
        """Obtain a specific release from the database."""
        async with self._lock:
            release = self._get(_release_key(release_id), Release)
        if not release:
            raise NoSuchReleaseError(release_id)
        return release

    async def put_release(self, release: Release) -> None:
        """Store an existing release, bumping its update timestamp."""
        async with self._lock:
            release.updated = _now()
            self._put(_release_key(release.release_id), release)

    async def delete_release(self, release_id: ReleaseID) -> None:
        async with self._lock:
            if not self._delete(_release_key(release_id)):
                raise NoSuchReleaseError(release_id)

    async def ls_releases(
        self,
        *,
        team: str | None = None,
        group_id: GroupID | None = None,
    ) -> list[Release]:
        """List releases, optionally filtered by owning team and group."""
        async with self._lock:
            entries = self._scan("release_", Release)

        return sorted(
            (
                r
                for r in entries
                if (team is None or r.team == team)
                and (group_id is None or r.group_id == group_id)
            ),
            key=lambda r: r.release_id,
        )

    # dependencies
    #
    async def new_dependency(
        self,
        dependent_id: ReleaseID,
        blocking_id: ReleaseID,
        dep_type: DependencyType,
        description: str | None,
    ) -> Dependency:
        """Insert a new, unresolved, dependency edge."""
        async with self._lock:
            dep = Dependency(
                dep_id=self._root.next_dep_id,
                dependent_id=dependent_id,
                blocking_id=blocking_id,
                type=dep_type,
                description=description,
                is_resolved=False,
                resolved_at=None,
                created=_now(),
            )
            self._put(_dep_key(dep.dep_id), dep)
            self._root.save(self._db_path)
            return dep

    async def get_dependency(self, dep_id: DependencyID) -> Dependency:
        async with self._lock:
            dep = self._get(_dep_key(dep_id), Dependency)
        if not dep:
            raise NoSuchDependencyError(dep_id)
        return dep

    async def put_dependency(self, dep: Dependency) -> None:
        async with self._lock:
            self._put(_dep_key(dep.dep_id), dep)

    async def delete_dependency(self, dep_id: DependencyID) -> None:
        async with self._lock:
            if not self._delete(_dep_key(dep_id)):
                raise NoSuchDependencyError(dep_id)

    async def ls_dependencies(
        self,
        *,
        dependent_id: ReleaseID | None = None,
        blocking_id: ReleaseID | None = None,
        dep_type: DependencyType | None = None,
    ) -> list[Dependency]:
        """
        List dependency edges, in creation order.

        Filters combine; with no filter every edge in the database is returned.
        """
        async with self._lock:
            entries = self._scan("dep_", Dependency)

        return sorted(
            (
                d
                for d in entries
                if (dependent_id is None or d.dependent_id == dependent_id)
                and (blocking_id is None or d.blocking_id == blocking_id)
                and (dep_type is None or d.type == dep_type)
            ),
            key=lambda d: d.dep_id,
        )

    # deployment groups
    #
    async def new_group(
        self, team: str, req: NewDeploymentGroupRequest
    ) -> DeploymentGroup:
        async with self._lock:
            now = _now()
            group = DeploymentGroup(
                group_id=self._root.next_group_id,
                team=team,
                created=now,
                updated=now,
                **req.model_dump(),  # pyright: ignore[reportAny]
            )
            self._put(_group_key(group.group_id), group)
            self._root.save(self._db_path)
            return group

    async def get_group(self, group_id: GroupID) -> DeploymentGroup:
        async with self._lock:
            group = self._get(_group_key(group_id), DeploymentGroup)
        if not group:
            raise NoSuchDeploymentGroupError(group_id)
        return group

    async def put_group(self, group: DeploymentGroup) -> None:
        async with self._lock:
            group.updated = _now()
            self._put(_group_key(group.group_id), group)

    async def delete_group(self, group_id: GroupID) -> None:
        async with self._lock:
            if not self._delete(_group_key(group_id)):
                raise NoSuchDeploymentGroupError(group_id)

    async def ls_groups(self, *, team: str | None = None) -> list[DeploymentGroup]:
        async with self._lock:
            entries = self._scan("group_", DeploymentGroup)
        return sorted(
            (g for g in entries if team is None or g.team == team),
            key=lambda g: g.group_id,
        )

    # activities
    #
    async def new_activity(
        self,
        team: str,
        release_id: ReleaseID | None,
        activity_type: ActivityType,
        action: str,
        description: str,
        metadata: dict[str, Any] | None = None,
    ) -> Activity:
        async with self._lock:
            activity = Activity(
                activity_id=self._root.next_activity_id,
                team=team,
                release_id=release_id,
                type=activity_type,
                action=action,
                description=description,
                metadata=metadata or {},
                created=_now(),
            )
            self._put(_activity_key(activity.activity_id), activity)
            self._root.save(self._db_path)
            return activity

    async def ls_activities(
        self,
        *,
        team: str,
        release_id: ReleaseID | None = None,
        max_entries: int | None = None,
    ) -> list[Activity]:
        """List activities, most recent first."""
        async with self._lock:
            entries = self._scan("activity_", Activity)

        lst = sorted(
            (
                a
                for a in entries
                if a.team == team and (release_id is None or a.release_id == release_id)
            ),
            key=lambda a: a.activity_id,
            reverse=True,
        )
        return lst[:max_entries] if max_entries else lst
