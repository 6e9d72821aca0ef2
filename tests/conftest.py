# RCD - tests
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
from pathlib import Path

import pytest

from rcdcore.api.requests import NewReleaseRequest, UpdateReleaseRequest
from rcdcore.releases.types import (
    Dependency,
    DependencyType,
    Release,
    ReleaseStatus,
)
from rcdlib.config.config import Config
from rcdlib.core.mgr import Mgr
from rcdlib.core.notify import NotificationKind, NotificationMessage
from rcdlib.db.db import ReleasesDB


class RecordingSender:
    """Keeps every message it is asked to send."""

    sent: list[tuple[NotificationMessage, str | None]]
    fail: bool

    def __init__(self) -> None:
        self.sent = []
        self.fail = False

    def send(self, message: NotificationMessage, channel: str | None = None) -> bool:
        if self.fail:
            raise RuntimeError("delivery failed")
        self.sent.append((message, channel))
        return True

    def kinds(self) -> list[NotificationKind]:
        return [m.kind for m, _ in self.sent]

    def clear(self) -> None:
        self.sent.clear()


def make_config(db_path: Path, *, max_requests: int = 100) -> Config:
    return Config.model_validate(
        {
            "server": {
                "db": str(db_path),
                "rate-limit": {"max-requests": max_requests},
            },
            "broker-url": "memory://",
            "results-backend-url": "cache+memory://",
            "teams": [
                {
                    "name": "alpha",
                    "slack-channel": "#alpha-releases",
                    "api-keys": [
                        {"name": "ci", "key": "alpha-key"},
                        {
                            "name": "viewer",
                            "key": "alpha-viewer-key",
                            "scopes": ["releases:read", "dependencies:read"],
                        },
                    ],
                },
                {
                    "name": "beta",
                    "notifications": {"status-change": False},
                    "api-keys": [{"name": "ci", "key": "beta-key"}],
                },
            ],
        }
    )


def edge(
    dep_id: int,
    dependent_id: int,
    blocking_id: int,
    dep_type: DependencyType = DependencyType.BLOCKS,
    *,
    is_resolved: bool = False,
) -> Dependency:
    return Dependency(
        dep_id=dep_id,
        dependent_id=dependent_id,
        blocking_id=blocking_id,
        type=dep_type,
        is_resolved=is_resolved,
        created=dt.now(datetime.UTC),
    )


async def new_release(
    mgr: Mgr,
    title: str,
    *,
    team: str = "alpha",
    status: ReleaseStatus | None = None,
) -> Release:
    release = await mgr.releases.new(team, NewReleaseRequest(title=title, service="api"))
    if status is not None:
        release = await mgr.releases.update(
            team, release.release_id, UpdateReleaseRequest(status=status)
        )
    return release


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return make_config(tmp_path / "rcd.db")


@pytest.fixture
def mgr(config: Config, sender: RecordingSender) -> Mgr:
    return Mgr(config, sender)


@pytest.fixture
def db(tmp_path: Path) -> ReleasesDB:
    return ReleasesDB(tmp_path / "standalone.db")
