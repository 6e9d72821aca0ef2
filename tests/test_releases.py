# RCD - tests - releases
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

import pydantic
import pytest
from conftest import RecordingSender, new_release

from rcdcore.api.requests import NewDeploymentGroupRequest, UpdateReleaseRequest
from rcdcore.releases.errors import NoSuchReleaseError, NoUpdateFieldsError
from rcdcore.releases.types import (
    ActivityType,
    DeploymentGroupStatus,
    ReleaseStatus,
)
from rcdlib.core.mgr import Mgr
from rcdlib.core.notify import NotificationKind


@pytest.mark.anyio
async def test_end_to_end_scenario(mgr: Mgr, sender: RecordingSender) -> None:
    a = await new_release(mgr, "A", status=ReleaseStatus.IN_REVIEW)
    b = await new_release(mgr, "B")
    c = await new_release(mgr, "C")

    # B depends on A, which is still in review.
    _ = await mgr.deps.add("alpha", b.release_id, a.release_id)
    b = await mgr.releases.get("alpha", b.release_id)
    assert b.is_blocked
    assert b.blocked_reason == "Blocked by: A (IN_REVIEW)"

    res = await mgr.groups.new("alpha", NewDeploymentGroupRequest(name="G"))
    group_id = res.group.group_id
    _ = await mgr.groups.assign("alpha", group_id, [b.release_id, c.release_id])
    sender.clear()

    # A ships, B is no longer blocked.
    _ = await mgr.releases.update(
        "alpha", a.release_id, UpdateReleaseRequest(status=ReleaseStatus.DEPLOYED)
    )
    b = await mgr.releases.get("alpha", b.release_id)
    assert not b.is_blocked
    assert b.blocked_reason is None
    assert NotificationKind.UNBLOCKED in sender.kinds()
    assert NotificationKind.STATUS_CHANGED in sender.kinds()

    # B and C ship, and so does their group.
    for release_id in (b.release_id, c.release_id):
        _ = await mgr.releases.update(
            "alpha", release_id, UpdateReleaseRequest(status=ReleaseStatus.DEPLOYED)
        )

    group = (await mgr.groups.get("alpha", group_id)).group
    assert group.status == DeploymentGroupStatus.DEPLOYED
    assert group.deployed_at is not None
    deployed_at = group.deployed_at

    # nothing changes on a refresh, and the stamp is kept.
    group = (await mgr.groups.refresh("alpha", group_id)).group
    assert group.status == DeploymentGroupStatus.DEPLOYED
    assert group.deployed_at == deployed_at


@pytest.mark.anyio
async def test_rolled_back_keeps_blocking(mgr: Mgr) -> None:
    a = await new_release(mgr, "A", status=ReleaseStatus.ROLLED_BACK)
    b = await new_release(mgr, "B")
    _ = await mgr.deps.add("alpha", b.release_id, a.release_id)

    b = await mgr.releases.get("alpha", b.release_id)
    assert b.is_blocked
    assert b.blocked_reason == "Blocked by: A (ROLLED_BACK)"


@pytest.mark.anyio
async def test_cancelled_unblocks(mgr: Mgr) -> None:
    a = await new_release(mgr, "A")
    b = await new_release(mgr, "B")
    _ = await mgr.deps.add("alpha", b.release_id, a.release_id)

    _ = await mgr.releases.update(
        "alpha", a.release_id, UpdateReleaseRequest(status=ReleaseStatus.CANCELLED)
    )
    assert not (await mgr.releases.get("alpha", b.release_id)).is_blocked


@pytest.mark.anyio
async def test_status_timestamps(mgr: Mgr) -> None:
    a = await new_release(mgr, "A")
    assert a.status_changed is None

    a = await mgr.releases.update(
        "alpha", a.release_id, UpdateReleaseRequest(status=ReleaseStatus.IN_STAGING)
    )
    assert a.status_changed is not None
    staging = a.staging_deployed
    assert staging is not None
    assert a.prod_deployed is None

    a = await mgr.releases.update(
        "alpha", a.release_id, UpdateReleaseRequest(status=ReleaseStatus.DEPLOYED)
    )
    prod = a.prod_deployed
    assert prod is not None

    for status in (ReleaseStatus.ROLLED_BACK, ReleaseStatus.IN_STAGING):
        _ = await mgr.releases.update(
            "alpha", a.release_id, UpdateReleaseRequest(status=status)
        )
    a = await mgr.releases.update(
        "alpha", a.release_id, UpdateReleaseRequest(status=ReleaseStatus.DEPLOYED)
    )
    assert a.staging_deployed == staging
    assert a.prod_deployed == prod


@pytest.mark.anyio
async def test_partial_update(mgr: Mgr, sender: RecordingSender) -> None:
    a = await new_release(mgr, "A")
    a = await mgr.releases.update(
        "alpha", a.release_id, UpdateReleaseRequest(version="1.2.0", sprint="s1")
    )
    assert a.version == "1.2.0"
    assert a.sprint == "s1"
    assert a.status == ReleaseStatus.PLANNING
    assert a.status_changed is None
    assert sender.sent == []

    # required fields are not cleared, optional ones are.
    a = await mgr.releases.update(
        "alpha", a.release_id, UpdateReleaseRequest(title=None, sprint=None)
    )
    assert a.title == "A"
    assert a.sprint is None

    with pytest.raises(NoUpdateFieldsError):
        _ = await mgr.releases.update("alpha", a.release_id, UpdateReleaseRequest())

    activities = await mgr.releases.activities("alpha", a.release_id)
    assert activities[0].type == ActivityType.RELEASE_UPDATED
    assert activities[-1].type == ActivityType.RELEASE_CREATED


def test_blocked_state_not_client_writable() -> None:
    with pytest.raises(pydantic.ValidationError):
        _ = UpdateReleaseRequest.model_validate({"is_blocked": False})


@pytest.mark.anyio
async def test_status_change_notifications(mgr: Mgr, sender: RecordingSender) -> None:
    a = await new_release(mgr, "A")
    _ = await mgr.releases.update(
        "alpha", a.release_id, UpdateReleaseRequest(status=ReleaseStatus.READY_STAGING)
    )
    assert sender.kinds() == [
        NotificationKind.STATUS_CHANGED,
        NotificationKind.READY_TO_DEPLOY,
    ]
    assert sender.sent[1][0].fields["environment"] == "staging"

    # team beta has opted out of status change messages.
    sender.clear()
    b = await new_release(mgr, "B", team="beta")
    _ = await mgr.releases.update(
        "beta", b.release_id, UpdateReleaseRequest(status=ReleaseStatus.IN_REVIEW)
    )
    assert sender.sent == []


@pytest.mark.anyio
async def test_delete_release(mgr: Mgr) -> None:
    a = await new_release(mgr, "A")
    b = await new_release(mgr, "B")
    c = await new_release(mgr, "C")
    _ = await mgr.deps.add("alpha", b.release_id, a.release_id)
    _ = await mgr.deps.add("alpha", a.release_id, c.release_id)

    res = await mgr.groups.new("alpha", NewDeploymentGroupRequest(name="G"))
    group_id = res.group.group_id
    _ = await mgr.groups.assign("alpha", group_id, [a.release_id, b.release_id])
    _ = await mgr.releases.update(
        "alpha", b.release_id, UpdateReleaseRequest(status=ReleaseStatus.DEPLOYED)
    )

    await mgr.releases.delete("alpha", a.release_id)

    with pytest.raises(NoSuchReleaseError):
        _ = await mgr.releases.get("alpha", a.release_id)
    assert await mgr.db.ls_dependencies() == []
    assert not (await mgr.releases.get("alpha", b.release_id)).is_blocked
    # only b is left in the group.
    group = (await mgr.groups.get("alpha", group_id)).group
    assert group.status == DeploymentGroupStatus.DEPLOYED


@pytest.mark.anyio
async def test_releases_are_team_scoped(mgr: Mgr) -> None:
    a = await new_release(mgr, "A")
    _ = await new_release(mgr, "B", team="beta")

    with pytest.raises(NoSuchReleaseError):
        _ = await mgr.releases.get("beta", a.release_id)
    with pytest.raises(NoSuchReleaseError):
        await mgr.releases.delete("beta", a.release_id)
    assert [r.title for r in await mgr.releases.ls("alpha")] == ["A"]
