# RCD - tests - notifications
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

import pytest
from conftest import RecordingSender

from rcdcore.releases.types import (
    DeploymentGroup,
    DeploymentGroupStatus,
    Release,
    ReleaseStatus,
)
from rcdlib.config.config import Config
from rcdlib.core.notify import DEFAULT_BLOCKED_REASON, NotificationKind, Notifier


def _release() -> Release:
    now = dt.now(datetime.UTC)
    return Release(
        release_id=1,
        team="alpha",
        title="auth service",
        service="auth",
        version="2.0.0",
        created=now,
        updated=now,
    )


@pytest.fixture
def notifier(config: Config, sender: RecordingSender) -> Notifier:
    return Notifier(config.teams, sender)


@pytest.mark.parametrize(
    ("status", "environment"),
    [
        (ReleaseStatus.READY_STAGING, "staging"),
        (ReleaseStatus.STAGING_VERIFIED, "production"),
        (ReleaseStatus.READY_PRODUCTION, "production"),
        (ReleaseStatus.IN_STAGING, None),
        (ReleaseStatus.DEPLOYED, None),
    ],
)
def test_status_change(
    notifier: Notifier,
    sender: RecordingSender,
    status: ReleaseStatus,
    environment: str | None,
) -> None:
    notifier.handle_status_change("alpha", _release(), ReleaseStatus.PLANNING, status)

    message, channel = sender.sent[0]
    assert message.kind == NotificationKind.STATUS_CHANGED
    assert status.label in message.text
    assert channel == "#alpha-releases"

    if environment:
        assert sender.kinds()[1:] == [NotificationKind.READY_TO_DEPLOY]
        assert sender.sent[1][0].fields["environment"] == environment
    else:
        assert len(sender.sent) == 1


def test_blocked_transitions(notifier: Notifier, sender: RecordingSender) -> None:
    release = _release()

    notifier.handle_blocked_change("alpha", release, False, True, None)
    notifier.handle_blocked_change("alpha", release, True, True, "Blocked by: x")
    notifier.handle_blocked_change("alpha", release, False, False, None)
    notifier.handle_blocked_change("alpha", release, True, False, None)

    assert sender.kinds() == [NotificationKind.BLOCKED, NotificationKind.UNBLOCKED]
    assert sender.sent[0][0].text == DEFAULT_BLOCKED_REASON


def test_team_opt_out(notifier: Notifier, sender: RecordingSender) -> None:
    release = _release()
    # beta opted out of status changes, but not of ready messages.
    notifier.handle_status_change(
        "beta", release, ReleaseStatus.IN_REVIEW, ReleaseStatus.READY_STAGING
    )
    assert sender.kinds() == [NotificationKind.READY_TO_DEPLOY]
    assert sender.sent[0][1] is None


def test_unknown_team_is_silent(notifier: Notifier, sender: RecordingSender) -> None:
    notifier.handle_blocked_change("gamma", _release(), False, True, "reason")
    assert sender.sent == []


def test_delivery_failure_is_swallowed(
    notifier: Notifier, sender: RecordingSender
) -> None:
    sender.fail = True
    notifier.handle_status_change(
        "alpha", _release(), ReleaseStatus.PLANNING, ReleaseStatus.READY_STAGING
    )
    notifier.handle_blocked_change("alpha", _release(), False, True, "reason")
    assert sender.sent == []


def test_group_ready(notifier: Notifier, sender: RecordingSender) -> None:
    now = dt.now(datetime.UTC)
    group = DeploymentGroup(
        group_id=1,
        team="alpha",
        name="sprint 12",
        status=DeploymentGroupStatus.READY,
        created=now,
        updated=now,
    )
    notifier.handle_group_ready(group)
    assert sender.sent == []

    group.notify_on_ready = True
    notifier.handle_group_ready(group)
    assert sender.kinds() == [NotificationKind.GROUP_READY]
