# RCD service library - routes - releases
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

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from rcdcore.api.requests import NewReleaseRequest, UpdateReleaseRequest
from rcdcore.api.responses import BaseErrorModel
from rcdcore.releases.types import Activity, GroupID, Release, ReleaseID
from rcdlib.config.teams import APIScope
from rcdlib.core.mgr import RCDMgr
from rcdlib.routes import logger as parent_logger
from rcdlib.routes._auth import RCDAuthCaller
from rcdlib.routes._utils import RequiredScope, http_error, rate_limited, responses_auth

logger = parent_logger.getChild("releases")

router = APIRouter(prefix="/releases", dependencies=[Depends(rate_limited)])


_responses = {
    **responses_auth,
    404: {"model": BaseErrorModel, "description": "No such release"},
    500: {
        "model": BaseErrorModel,
        "description": "An internal error occurred, please check RCD logs",
    },
}

_read = [Depends(RequiredScope(APIScope.RELEASES_READ))]
_write = [Depends(RequiredScope(APIScope.RELEASES_WRITE))]


@router.get("", responses={**_responses}, dependencies=_read)
async def releases_list(
    caller: RCDAuthCaller,
    mgr: RCDMgr,
    group_id: GroupID | None = None,
) -> list[Release]:
    try:
        return await mgr.releases.ls(caller.team, group_id=group_id)
    except Exception as e:
        raise http_error(e) from e


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    responses={**_responses},
    dependencies=_write,
)
async def releases_new(
    caller: RCDAuthCaller, mgr: RCDMgr, req: NewReleaseRequest
) -> Release:
    logger.info(f"new release for team '{caller.team}': {req.title}")
    try:
        return await mgr.releases.new(caller.team, req)
    except Exception as e:
        raise http_error(e) from e


@router.get("/{release_id}", responses={**_responses}, dependencies=_read)
async def releases_get(
    caller: RCDAuthCaller, mgr: RCDMgr, release_id: ReleaseID
) -> Release:
    try:
        return await mgr.releases.get(caller.team, release_id)
    except Exception as e:
        raise http_error(e) from e


@router.patch(
    "/{release_id}",
    responses={
        **_responses,
        400: {"model": BaseErrorModel, "description": "No fields to update"},
    },
    dependencies=_write,
)
async def releases_update(
    caller: RCDAuthCaller,
    mgr: RCDMgr,
    release_id: ReleaseID,
    req: UpdateReleaseRequest,
) -> Release:
    logger.debug(f"update release {release_id}: {req.model_dump(exclude_unset=True)}")
    try:
        return await mgr.releases.update(caller.team, release_id, req)
    except Exception as e:
        raise http_error(e) from e


@router.delete("/{release_id}", responses={**_responses}, dependencies=_write)
async def releases_delete(
    caller: RCDAuthCaller, mgr: RCDMgr, release_id: ReleaseID
) -> bool:
    try:
        await mgr.releases.delete(caller.team, release_id)
    except Exception as e:
        raise http_error(e) from e
    return True


@router.get(
    "/{release_id}/activities", responses={**_responses}, dependencies=_read
)
async def releases_activities(
    caller: RCDAuthCaller,
    mgr: RCDMgr,
    release_id: ReleaseID,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> list[Activity]:
    try:
        return await mgr.releases.activities(
            caller.team, release_id, max_entries=limit
        )
    except Exception as e:
        raise http_error(e) from e
