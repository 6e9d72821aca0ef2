# RCD service library - core - blocked status
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

from collections.abc import Iterable
from typing import NamedTuple

from rcdcore.releases.errors import NoSuchReleaseError
from rcdcore.releases.types import (
    TERMINAL_STATUSES,
    Dependency,
    DependencyType,
    Release,
    ReleaseID,
)
from rcdlib.core import logger as parent_logger
from rcdlib.core.graph import DependencyGraph
from rcdlib.db.db import ReleasesDB

logger = parent_logger.getChild("blocked")


class BlockedChange(NamedTuple):
    """A release after its blocked status was recomputed."""

    release: Release
    was_blocked: bool

    @property
    def changed(self) -> bool:
        return self.release.is_blocked != self.was_blocked


def blocked_reason(blocker: Release) -> str:
    return f"Blocked by: {blocker.title} ({blocker.status.value})"


def compute_blocked_status(
    blockers: Iterable[tuple[Dependency, Release | None]],
) -> tuple[bool, str | None]:
    """
    Compute blocked state from a release's incoming edges.

    'blockers' pairs each edge the release depends on with the blocking release,
    or None if the blocking release no longer exists. The first qualifying edge,
    in the order given, provides the reason.
    """
    for dep, blocker in blockers:
        if dep.type != DependencyType.BLOCKS or dep.is_resolved:
            continue
        if blocker is None or blocker.status in TERMINAL_STATUSES:
            continue
        return True, blocked_reason(blocker)

    return False, None


async def recalculate_blocked_status(
    db: ReleasesDB, release_id: ReleaseID
) -> BlockedChange | None:
    """
    Recompute and store whether a release is blocked, and why.

    Only touches the release's own fields, and does not recurse into its
    dependents. Returns None if the release does not exist.
    """
    try:
        release = await db.get_release(release_id)
    except NoSuchReleaseError:
        logger.warning(f"unable to recalculate blocked status: no release {release_id}")
        return None

    deps = await db.ls_dependencies(
        dependent_id=release_id, dep_type=DependencyType.BLOCKS
    )

    blockers: list[tuple[Dependency, Release | None]] = []
    for dep in deps:
        try:
            blockers.append((dep, await db.get_release(dep.blocking_id)))
        except NoSuchReleaseError:
            logger.debug(
                f"dependency {dep.dep_id} references missing release {dep.blocking_id}"
            )
            blockers.append((dep, None))

    is_blocked, reason = compute_blocked_status(blockers)
    was_blocked = release.is_blocked

    if is_blocked != release.is_blocked or reason != release.blocked_reason:
        logger.debug(
            f"release {release_id} blocked: {was_blocked} -> {is_blocked} ({reason})"
        )
        release.is_blocked = is_blocked
        release.blocked_reason = reason
        await db.put_release(release)

    return BlockedChange(release=release, was_blocked=was_blocked)


async def recalculate_many(
    db: ReleasesDB, release_ids: Iterable[ReleaseID]
) -> list[BlockedChange]:
    """
    Recompute blocked status for each release, independently.

    A failure on one release is logged and does not prevent the others from
    being recomputed. Returns only the releases whose blocked flag flipped.
    """
    changes: list[BlockedChange] = []
    for release_id in release_ids:
        try:
            change = await recalculate_blocked_status(db, release_id)
        except Exception as e:
            logger.error(f"error recalculating blocked status for {release_id}: {e}")
            continue

        if change and change.changed:
            changes.append(change)

    return changes


async def recalculate_dependent_blocked_status(
    db: ReleasesDB, blocking_id: ReleaseID
) -> list[BlockedChange]:
    """Recompute every release depending, directly or not, on 'blocking_id'."""
    graph = await DependencyGraph.load(db)
    dependents = graph.reachable_dependents(blocking_id)
    logger.debug(f"propagating from release {blocking_id} to {dependents}")
    return await recalculate_many(db, dependents)
