# RCD service library - core - dependency graph
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

from collections import defaultdict
from collections.abc import Callable, Iterable, Iterator

from rcdcore.releases.types import Dependency, ReleaseID
from rcdlib.core import logger as parent_logger
from rcdlib.db.db import ReleasesDB

logger = parent_logger.getChild("graph")


def walk(
    start: ReleaseID, neighbours: Callable[[ReleaseID], Iterable[ReleaseID]]
) -> Iterator[ReleaseID]:
    """
    Depth-first walk from 'start', yielding every reachable release once.

    'start' itself is only yielded if it can be reached again through some
    path, which only happens on a graph that already holds a cycle.
    """
    visited: set[ReleaseID] = set()
    stack: list[ReleaseID] = [start]
    while stack:
        node = stack.pop()
        fresh: list[ReleaseID] = []
        for nxt in neighbours(node):
            if nxt in visited:
                continue
            visited.add(nxt)
            fresh.append(nxt)
            yield nxt
        stack.extend(reversed(fresh))


class DependencyGraph:
    """
    In-memory view of the release dependency graph.

    Edges point from the dependent release to the blocking release. Every edge
    type is part of the graph; blocking semantics are only applied when
    resolving a release's blocked status.
    """

    _depends_on: defaultdict[ReleaseID, list[ReleaseID]]
    _dependents: defaultdict[ReleaseID, list[ReleaseID]]

    def __init__(self, edges: Iterable[Dependency]) -> None:
        self._depends_on = defaultdict(list)
        self._dependents = defaultdict(list)
        for edge in edges:
            self._depends_on[edge.dependent_id].append(edge.blocking_id)
            self._dependents[edge.blocking_id].append(edge.dependent_id)

    @classmethod
    async def load(cls, db: ReleasesDB) -> DependencyGraph:
        return cls(await db.ls_dependencies())

    def depends_on(self, release_id: ReleaseID) -> list[ReleaseID]:
        """Releases 'release_id' depends on."""
        return self._depends_on.get(release_id, [])

    def dependents(self, release_id: ReleaseID) -> list[ReleaseID]:
        """Releases depending on 'release_id'."""
        return list(dict.fromkeys(self._dependents.get(release_id, [])))

    def would_create_cycle(
        self, dependent_id: ReleaseID, blocking_id: ReleaseID
    ) -> bool:
        """Check whether adding 'dependent_id' -> 'blocking_id' closes a cycle."""
        if dependent_id == blocking_id:
            return True

        for node in walk(blocking_id, self.depends_on):
            if node == dependent_id:
                logger.debug(
                    f"release {blocking_id} reaches release {dependent_id}, "
                    + "new edge would close a cycle"
                )
                return True
        return False

    def reachable_dependents(self, release_id: ReleaseID) -> list[ReleaseID]:
        """All releases transitively depending on 'release_id', direct ones first."""
        return [n for n in walk(release_id, self.dependents) if n != release_id]
