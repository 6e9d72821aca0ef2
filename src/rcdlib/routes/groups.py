# RCD service library - routes - deployment groups
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

from fastapi import APIRouter, Depends, status

from rcdcore.api.requests import (
    AssignReleasesRequest,
    NewDeploymentGroupRequest,
    UpdateDeploymentGroupRequest,
)
from rcdcore.api.responses import BaseErrorModel, DeploymentGroupResponse
from rcdcore.releases.types import DeploymentGroup, GroupID
from rcdlib.config.teams import APIScope
from rcdlib.core.mgr import RCDMgr
from rcdlib.routes import logger as parent_logger
from rcdlib.routes._auth import RCDAuthCaller
from rcdlib.routes._utils import RequiredScope, http_error, rate_limited, responses_auth

logger = parent_logger.getChild("groups")

router = APIRouter(prefix="/deployment-groups", dependencies=[Depends(rate_limited)])


_responses = {
    **responses_auth,
    404: {
        "model": BaseErrorModel,
        "description": "No such deployment group or release",
    },
    500: {
        "model": BaseErrorModel,
        "description": "An internal error occurred, please check RCD logs",
    },
}

_read = [Depends(RequiredScope(APIScope.GROUPS_READ))]
_write = [Depends(RequiredScope(APIScope.GROUPS_WRITE))]


@router.get("", responses={**_responses}, dependencies=_read)
async def groups_list(caller: RCDAuthCaller, mgr: RCDMgr) -> list[DeploymentGroup]:
    try:
        return await mgr.groups.ls(caller.team)
    except Exception as e:
        raise http_error(e) from e


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    responses={**_responses},
    dependencies=_write,
)
async def groups_new(
    caller: RCDAuthCaller, mgr: RCDMgr, req: NewDeploymentGroupRequest
) -> DeploymentGroupResponse:
    logger.info(f"new deployment group for team '{caller.team}': {req.name}")
    try:
        return await mgr.groups.new(caller.team, req)
    except Exception as e:
        raise http_error(e) from e


@router.get("/{group_id}", responses={**_responses}, dependencies=_read)
async def groups_get(
    caller: RCDAuthCaller, mgr: RCDMgr, group_id: GroupID
) -> DeploymentGroupResponse:
    try:
        return await mgr.groups.get(caller.team, group_id)
    except Exception as e:
        raise http_error(e) from e


@router.patch(
    "/{group_id}",
    responses={
        **_responses,
        400: {"model": BaseErrorModel, "description": "No fields to update"},
    },
    dependencies=_write,
)
async def groups_update(
    caller: RCDAuthCaller,
    mgr: RCDMgr,
    group_id: GroupID,
    req: UpdateDeploymentGroupRequest,
) -> DeploymentGroupResponse:
    try:
        return await mgr.groups.update(caller.team, group_id, req)
    except Exception as e:
        raise http_error(e) from e


@router.delete("/{group_id}", responses={**_responses}, dependencies=_write)
async def groups_delete(caller: RCDAuthCaller, mgr: RCDMgr, group_id: GroupID) -> bool:
    try:
        await mgr.groups.delete(caller.team, group_id)
    except Exception as e:
        raise http_error(e) from e
    return True


# membership changes also need releases write access, since they rewrite the
# releases' group.
@router.post(
    "/{group_id}/releases",
    responses={**_responses},
    dependencies=[*_write, Depends(RequiredScope(APIScope.RELEASES_WRITE))],
)
async def groups_assign(
    caller: RCDAuthCaller,
    mgr: RCDMgr,
    group_id: GroupID,
    req: AssignReleasesRequest,
) -> DeploymentGroupResponse:
    logger.info(f"assign releases {req.release_ids} to group {group_id}")
    try:
        return await mgr.groups.assign(caller.team, group_id, req.release_ids)
    except Exception as e:
        raise http_error(e) from e


@router.delete(
    "/{group_id}/releases",
    responses={**_responses},
    dependencies=[*_write, Depends(RequiredScope(APIScope.RELEASES_WRITE))],
)
async def groups_unassign(
    caller: RCDAuthCaller,
    mgr: RCDMgr,
    group_id: GroupID,
    req: AssignReleasesRequest,
) -> DeploymentGroupResponse:
    logger.info(f"remove releases {req.release_ids} from group {group_id}")
    try:
        return await mgr.groups.unassign(caller.team, group_id, req.release_ids)
    except Exception as e:
        raise http_error(e) from e


@router.post("/{group_id}/refresh", responses={**_responses}, dependencies=_write)
async def groups_refresh(
    caller: RCDAuthCaller, mgr: RCDMgr, group_id: GroupID
) -> DeploymentGroupResponse:
    try:
        return await mgr.groups.refresh(caller.team, group_id)
    except Exception as e:
        raise http_error(e) from e
