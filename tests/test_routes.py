# RCD - tests - http api
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

# pyright: reportExplicitAny=false, reportAny=false

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from conftest import RecordingSender, make_config
from fastapi.testclient import TestClient

from rcdlib.config.config import config_set
from rcdlib.core.notify import NotificationKind
from rcdlib.server import factory

_ALPHA = {"Authorization": "Bearer alpha-key"}
_VIEWER = {"Authorization": "Bearer alpha-viewer-key"}
_BETA = {"Authorization": "Bearer beta-key"}


def _client(tmp_path: Path, sender: RecordingSender, **kwargs: Any) -> TestClient:
    return TestClient(factory(make_config(tmp_path / "rcd.db", **kwargs), sender))


@pytest.fixture
def client(tmp_path: Path, sender: RecordingSender) -> Iterator[TestClient]:
    with _client(tmp_path, sender) as c:
        yield c
    config_set(None)


def _new_release(client: TestClient, title: str, **extra: Any) -> dict[str, Any]:
    res = client.post(
        "/api/releases",
        json={"title": title, "service": "api", **extra},
        headers=_ALPHA,
    )
    assert res.status_code == 201
    return res.json()


def _set_status(client: TestClient, release_id: int, status: str) -> dict[str, Any]:
    res = client.patch(
        f"/api/releases/{release_id}", json={"status": status}, headers=_ALPHA
    )
    assert res.status_code == 200
    return res.json()


def test_authentication(client: TestClient) -> None:
    res = client.get("/api/releases")
    # depending on the fastapi version, a missing bearer is 401 or 403.
    assert res.status_code in (401, 403)

    res = client.get("/api/releases", headers={"Authorization": "Bearer nope"})
    assert res.status_code == 401
    assert res.json()["detail"] == "Invalid API key"

    res = client.get("/api/releases", headers=_ALPHA)
    assert res.status_code == 200
    assert res.json() == []


def test_scopes(client: TestClient) -> None:
    release = _new_release(client, "auth")

    res = client.get(f"/api/releases/{release['release_id']}", headers=_VIEWER)
    assert res.status_code == 200

    res = client.post(
        "/api/releases", json={"title": "x", "service": "api"}, headers=_VIEWER
    )
    assert res.status_code == 403
    assert "releases:write" in res.json()["detail"]

    res = client.get("/api/deployment-groups", headers=_VIEWER)
    assert res.status_code == 403


def test_release_lifecycle(client: TestClient) -> None:
    release = _new_release(client, "auth", version="1.0.0")
    assert release["status"] == "PLANNING"
    assert not release["is_blocked"]
    release_id = release["release_id"]

    res = client.patch(
        f"/api/releases/{release_id}",
        json={"version": "1.1.0", "status": "IN_REVIEW"},
        headers=_ALPHA,
    )
    assert res.status_code == 200
    assert res.json()["version"] == "1.1.0"
    assert res.json()["status_changed"] is not None

    res = client.patch(f"/api/releases/{release_id}", json={}, headers=_ALPHA)
    assert res.status_code == 400

    res = client.patch(
        f"/api/releases/{release_id}", json={"is_blocked": False}, headers=_ALPHA
    )
    assert res.status_code == 422

    res = client.get(
        f"/api/releases/{release_id}/activities",
        params={"limit": 1},
        headers=_ALPHA,
    )
    assert res.status_code == 200
    assert [a["type"] for a in res.json()] == ["RELEASE_UPDATED"]

    res = client.delete(f"/api/releases/{release_id}", headers=_ALPHA)
    assert res.status_code == 200
    res = client.get(f"/api/releases/{release_id}", headers=_ALPHA)
    assert res.status_code == 404


def test_releases_are_team_scoped(client: TestClient) -> None:
    release = _new_release(client, "auth")
    res = client.get(f"/api/releases/{release['release_id']}", headers=_BETA)
    assert res.status_code == 404

    res = client.get("/api/releases", headers=_BETA)
    assert res.json() == []


def test_dependencies(client: TestClient, sender: RecordingSender) -> None:
    a = _new_release(client, "auth")
    b = _new_release(client, "web")
    deps_ep = f"/api/releases/{b['release_id']}/dependencies"

    res = client.post(
        deps_ep,
        json={"blocking_id": a["release_id"], "description": "new api"},
        headers=_ALPHA,
    )
    assert res.status_code == 201
    dep = res.json()
    assert dep["type"] == "BLOCKS"
    assert dep["release"]["release_id"] == a["release_id"]

    res = client.get(f"/api/releases/{b['release_id']}", headers=_ALPHA)
    assert res.json()["is_blocked"]
    assert res.json()["blocked_reason"] == "Blocked by: auth (PLANNING)"
    assert NotificationKind.BLOCKED in sender.kinds()

    # duplicate, self and circular edges.
    res = client.post(deps_ep, json={"blocking_id": a["release_id"]}, headers=_ALPHA)
    assert res.status_code == 409
    res = client.post(deps_ep, json={"blocking_id": b["release_id"]}, headers=_ALPHA)
    assert res.status_code == 400
    res = client.post(
        f"/api/releases/{a['release_id']}/dependencies",
        json={"blocking_id": b["release_id"]},
        headers=_ALPHA,
    )
    assert res.status_code == 400

    res = client.get(deps_ep, headers=_ALPHA)
    assert res.status_code == 200
    assert len(res.json()["depends_on"]) == 1
    assert res.json()["dependents"] == []

    res = client.patch(
        f"{deps_ep}/{dep['dep_id']}", json={"is_resolved": True}, headers=_ALPHA
    )
    assert res.status_code == 200
    assert res.json()["resolved_at"] is not None
    res = client.get(f"/api/releases/{b['release_id']}", headers=_ALPHA)
    assert not res.json()["is_blocked"]

    res = client.delete(f"{deps_ep}/{dep['dep_id']}", headers=_ALPHA)
    assert res.status_code == 200
    res = client.get(f"{deps_ep}/{dep['dep_id']}", headers=_ALPHA)
    assert res.status_code == 404


def test_deployment_groups(client: TestClient) -> None:
    a = _new_release(client, "auth")
    b = _new_release(client, "web")

    res = client.post(
        "/api/deployment-groups",
        json={"name": "sprint 12", "deploy_order": "SEQUENTIAL"},
        headers=_ALPHA,
    )
    assert res.status_code == 201
    group = res.json()["group"]
    assert group["status"] == "PENDING"
    group_ep = f"/api/deployment-groups/{group['group_id']}"

    ids = [a["release_id"], b["release_id"]]
    res = client.post(f"{group_ep}/releases", json={"release_ids": ids}, headers=_ALPHA)
    assert res.status_code == 200
    assert [r["release_id"] for r in res.json()["releases"]] == ids

    res = client.get(
        "/api/releases", params={"group_id": group["group_id"]}, headers=_ALPHA
    )
    assert len(res.json()) == 2

    # only web ships, auth is still being planned.
    _ = _set_status(client, b["release_id"], "DEPLOYED")
    res = client.get(group_ep, headers=_ALPHA)
    assert res.json()["group"]["status"] == "PENDING"
    assert res.json()["group"]["deployed_at"] is None

    # dropping auth from the group leaves only deployed members.
    res = client.request(
        "DELETE",
        f"{group_ep}/releases",
        json={"release_ids": [a["release_id"]]},
        headers=_ALPHA,
    )
    assert res.status_code == 200
    assert [r["release_id"] for r in res.json()["releases"]] == [b["release_id"]]
    assert res.json()["group"]["status"] == "DEPLOYED"
    assert res.json()["group"]["deployed_at"] is not None

    res = client.get(f"/api/releases/{a['release_id']}", headers=_ALPHA)
    assert res.json()["group_id"] is None

    res = client.post(f"{group_ep}/refresh", headers=_ALPHA)
    assert res.status_code == 200

    res = client.patch(group_ep, json={"name": "sprint 13"}, headers=_ALPHA)
    assert res.json()["group"]["name"] == "sprint 13"
    res = client.patch(group_ep, json={"status": "READY"}, headers=_ALPHA)
    assert res.status_code == 422

    res = client.get(group_ep, headers=_BETA)
    assert res.status_code == 404

    res = client.delete(group_ep, headers=_ALPHA)
    assert res.status_code == 200
    res = client.get(f"/api/releases/{b['release_id']}", headers=_ALPHA)
    assert res.json()["group_id"] is None


def test_rate_limit(tmp_path: Path, sender: RecordingSender) -> None:
    with _client(tmp_path, sender, max_requests=2) as client:
        res = client.get("/api/releases", headers=_ALPHA)
        assert res.headers["X-RateLimit-Limit"] == "2"
        assert res.headers["X-RateLimit-Remaining"] == "1"

        res = client.get("/api/releases", headers=_ALPHA)
        assert res.headers["X-RateLimit-Remaining"] == "0"

        res = client.get("/api/releases", headers=_ALPHA)
        assert res.status_code == 429
        assert int(res.headers["Retry-After"]) > 0

        # other keys have their own budget.
        res = client.get("/api/releases", headers=_BETA)
        assert res.status_code == 200
    config_set(None)
