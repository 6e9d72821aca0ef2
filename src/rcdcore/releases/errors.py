# RCD core library - releases errors
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

from typing import override

from rcdcore.errors import RCDError


class DependencyError(RCDError):
    """A requested dependency edge is not acceptable."""

    @override
    def __str__(self) -> str:
        return self.with_maybe_msg("dependency error")


class InvalidDependencyError(DependencyError):
    """A release was asked to depend on itself."""

    release_id: int

    def __init__(self, release_id: int) -> None:
        super().__init__("a release cannot depend on itself")
        self.release_id = release_id


class DuplicateDependencyError(DependencyError):
    """An edge already exists for the ordered (dependent, blocking) pair."""

    dependent_id: int
    blocking_id: int

    def __init__(self, dependent_id: int, blocking_id: int) -> None:
        super().__init__(
            f"release {dependent_id} already depends on release {blocking_id}"
        )
        self.dependent_id = dependent_id
        self.blocking_id = blocking_id


class CyclicDependencyError(DependencyError):
    """Adding the edge would close a cycle in the dependency graph."""

    dependent_id: int
    blocking_id: int

    def __init__(self, dependent_id: int, blocking_id: int) -> None:
        super().__init__(
            f"release {dependent_id} depending on release {blocking_id} "
            + "would create a circular dependency"
        )
        self.dependent_id = dependent_id
        self.blocking_id = blocking_id


class NotFoundError(RCDError):
    @override
    def __str__(self) -> str:
        return self.with_maybe_msg("not found")


class NoSuchReleaseError(NotFoundError):
    release_id: int

    def __init__(self, release_id: int) -> None:
        super().__init__(f"no such release {release_id}")
        self.release_id = release_id


class NoSuchDependencyError(NotFoundError):
    dep_id: int

    def __init__(self, dep_id: int) -> None:
        super().__init__(f"no such dependency {dep_id}")
        self.dep_id = dep_id


class NoSuchDeploymentGroupError(NotFoundError):
    group_id: int

    def __init__(self, group_id: int) -> None:
        super().__init__(f"no such deployment group {group_id}")
        self.group_id = group_id


class NoUpdateFieldsError(RCDError):
    """An update request carried nothing to update."""

    @override
    def __str__(self) -> str:
        return "no valid update fields provided"
