# RCD - tests - deployment groups
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

import pytest
from conftest import RecordingSender, new_release

from rcdcore.api.requests import (
    NewDeploymentGroupRequest,
    UpdateDeploymentGroupRequest,
    UpdateReleaseRequest,
)
from rcdcore.releases.errors import (
    NoSuchDeploymentGroupError,
    NoSuchReleaseError,
    NoUpdateFieldsError,
)
from rcdcore.releases.types import DeploymentGroupStatus as G
from rcdcore.releases.types import ReleaseStatus as S
from rcdlib.core.groups import compute_group_status, update_deployment_group_status
from rcdlib.core.mgr import Mgr
from rcdlib.core.notify import NotificationKind


@pytest.mark.parametrize(
    ("statuses", "expected"),
    [
        ([S.CANCELLED], G.CANCELLED),
        ([S.CANCELLED, S.CANCELLED], G.CANCELLED),
        ([S.DEPLOYED, S.DEPLOYED], G.DEPLOYED),
        ([S.DEPLOYED, S.CANCELLED], G.DEPLOYED),
        ([S.READY_STAGING, S.READY_STAGING], G.READY),
        ([S.READY_STAGING, S.CANCELLED], G.READY),
        ([S.IN_STAGING, S.PLANNING], G.DEPLOYING),
        ([S.STAGING_VERIFIED, S.DEPLOYED], G.DEPLOYING),
        ([S.READY_PRODUCTION, S.READY_STAGING], G.DEPLOYING),
        ([S.READY_STAGING, S.PLANNING], G.PENDING),
        ([S.DEPLOYED, S.ROLLED_BACK], G.PENDING),
        ([S.IN_REVIEW], G.PENDING),
    ],
)
def test_group_status_table(statuses: list[S], expected: G) -> None:
    assert compute_group_status(statuses) == expected


async def _group(mgr: Mgr, name: str = "G", *, notify: bool = False) -> int:
    res = await mgr.groups.new(
        "alpha", NewDeploymentGroupRequest(name=name, notify_on_ready=notify)
    )
    return res.group.group_id


@pytest.mark.anyio
async def test_empty_group_is_left_untouched(mgr: Mgr) -> None:
    group_id = await _group(mgr)
    assert await update_deployment_group_status(mgr.db, group_id) is None
    assert (await mgr.db.get_group(group_id)).status == G.PENDING


@pytest.mark.anyio
async def test_missing_group_is_a_noop(mgr: Mgr) -> None:
    assert await update_deployment_group_status(mgr.db, 42) is None


@pytest.mark.anyio
async def test_deployed_at_stamped_once(mgr: Mgr) -> None:
    group_id = await _group(mgr)
    a = await new_release(mgr, "a")
    _ = await mgr.groups.assign("alpha", group_id, [a.release_id])

    _ = await mgr.releases.update(
        "alpha", a.release_id, UpdateReleaseRequest(status=S.DEPLOYED)
    )
    group = await mgr.db.get_group(group_id)
    assert group.status == G.DEPLOYED
    deployed_at = group.deployed_at
    assert deployed_at is not None

    _ = await mgr.releases.update(
        "alpha", a.release_id, UpdateReleaseRequest(status=S.ROLLED_BACK)
    )
    assert (await mgr.db.get_group(group_id)).status == G.PENDING

    _ = await mgr.releases.update(
        "alpha", a.release_id, UpdateReleaseRequest(status=S.DEPLOYED)
    )
    group = await mgr.db.get_group(group_id)
    assert group.status == G.DEPLOYED
    assert group.deployed_at == deployed_at


@pytest.mark.anyio
async def test_assign_and_unassign_recompute(mgr: Mgr) -> None:
    first = await _group(mgr, "first")
    second = await _group(mgr, "second")
    a = await new_release(mgr, "a", status=S.DEPLOYED)
    b = await new_release(mgr, "b", status=S.IN_STAGING)

    res = await mgr.groups.assign("alpha", first, [a.release_id, b.release_id])
    assert res.group.status == G.DEPLOYING
    assert [r.release_id for r in res.releases] == [a.release_id, b.release_id]

    # moving b away leaves only deployed releases in the first group.
    res = await mgr.groups.assign("alpha", second, [b.release_id])
    assert res.group.status == G.DEPLOYING
    assert (await mgr.db.get_group(first)).status == G.DEPLOYED

    res = await mgr.groups.unassign("alpha", second, [b.release_id])
    assert res.releases == []
    assert (await mgr.db.get_release(b.release_id)).group_id is None


@pytest.mark.anyio
async def test_assign_checks_every_release_first(mgr: Mgr) -> None:
    group_id = await _group(mgr)
    a = await new_release(mgr, "a")
    other = await new_release(mgr, "other", team="beta")

    with pytest.raises(NoSuchReleaseError):
        _ = await mgr.groups.assign(
            "alpha", group_id, [a.release_id, other.release_id]
        )
    assert (await mgr.db.get_release(a.release_id)).group_id is None


@pytest.mark.anyio
async def test_groups_are_team_scoped(mgr: Mgr) -> None:
    group_id = await _group(mgr)
    with pytest.raises(NoSuchDeploymentGroupError):
        _ = await mgr.groups.get("beta", group_id)
    assert await mgr.groups.ls("beta") == []


@pytest.mark.anyio
async def test_group_ready_notification(mgr: Mgr, sender: RecordingSender) -> None:
    group_id = await _group(mgr, notify=True)
    a = await new_release(mgr, "a")
    b = await new_release(mgr, "b")
    _ = await mgr.groups.assign("alpha", group_id, [a.release_id, b.release_id])

    for release in (a, b):
        _ = await mgr.releases.update(
            "alpha", release.release_id, UpdateReleaseRequest(status=S.READY_STAGING)
        )

    assert (await mgr.db.get_group(group_id)).status == G.READY
    assert sender.kinds().count(NotificationKind.GROUP_READY) == 1


@pytest.mark.anyio
async def test_update_and_delete_group(mgr: Mgr) -> None:
    group_id = await _group(mgr)
    a = await new_release(mgr, "a")
    _ = await mgr.groups.assign("alpha", group_id, [a.release_id])

    with pytest.raises(NoUpdateFieldsError):
        _ = await mgr.groups.update("alpha", group_id, UpdateDeploymentGroupRequest())

    res = await mgr.groups.update(
        "alpha", group_id, UpdateDeploymentGroupRequest(name="renamed")
    )
    assert res.group.name == "renamed"

    await mgr.groups.delete("alpha", group_id)
    with pytest.raises(NoSuchDeploymentGroupError):
        _ = await mgr.groups.get("alpha", group_id)
    assert (await mgr.db.get_release(a.release_id)).group_id is None
