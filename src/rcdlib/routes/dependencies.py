# RCD service library - routes - dependencies
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

from rcdcore.api.requests import NewDependencyRequest, UpdateDependencyRequest
from rcdcore.api.responses import (
    BaseErrorModel,
    DependenciesResponse,
    DependencyEntry,
)
from rcdcore.releases.types import DependencyID, ReleaseID
from rcdlib.config.teams import APIScope
from rcdlib.core.mgr import RCDMgr
from rcdlib.routes import logger as parent_logger
from rcdlib.routes._auth import RCDAuthCaller
from rcdlib.routes._utils import RequiredScope, http_error, rate_limited, responses_auth

logger = parent_logger.getChild("dependencies")

router = APIRouter(
    prefix="/releases/{release_id}/dependencies",
    dependencies=[Depends(rate_limited)],
)


_responses = {
    **responses_auth,
    404: {"model": BaseErrorModel, "description": "No such release or dependency"},
    500: {
        "model": BaseErrorModel,
        "description": "An internal error occurred, please check RCD logs",
    },
}

_read = [Depends(RequiredScope(APIScope.DEPENDENCIES_READ))]
_write = [Depends(RequiredScope(APIScope.DEPENDENCIES_WRITE))]


@router.get("", responses={**_responses}, dependencies=_read)
async def dependencies_list(
    caller: RCDAuthCaller, mgr: RCDMgr, release_id: ReleaseID
) -> DependenciesResponse:
    try:
        return await mgr.deps.ls(caller.team, release_id)
    except Exception as e:
        raise http_error(e) from e


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    responses={
        **_responses,
        400: {
            "model": BaseErrorModel,
            "description": "Self or circular dependency",
        },
        409: {"model": BaseErrorModel, "description": "Dependency already exists"},
    },
    dependencies=_write,
)
async def dependencies_add(
    caller: RCDAuthCaller,
    mgr: RCDMgr,
    release_id: ReleaseID,
    req: NewDependencyRequest,
) -> DependencyEntry:
    logger.info(
        f"add dependency {release_id} -> {req.blocking_id} ({req.type}) "
        + f"for team '{caller.team}'"
    )
    try:
        return await mgr.deps.add(
            caller.team, release_id, req.blocking_id, req.type, req.description
        )
    except Exception as e:
        raise http_error(e) from e


@router.get("/{dep_id}", responses={**_responses}, dependencies=_read)
async def dependencies_get(
    caller: RCDAuthCaller,
    mgr: RCDMgr,
    release_id: ReleaseID,
    dep_id: DependencyID,
) -> DependencyEntry:
    try:
        return await mgr.deps.get(caller.team, release_id, dep_id)
    except Exception as e:
        raise http_error(e) from e


@router.patch(
    "/{dep_id}",
    responses={
        **_responses,
        400: {"model": BaseErrorModel, "description": "No fields to update"},
    },
    dependencies=_write,
)
async def dependencies_update(
    caller: RCDAuthCaller,
    mgr: RCDMgr,
    release_id: ReleaseID,
    dep_id: DependencyID,
    req: UpdateDependencyRequest,
) -> DependencyEntry:
    try:
        return await mgr.deps.update(
            caller.team,
            release_id,
            dep_id,
            dep_type=req.type,
            description=req.description,
            is_resolved=req.is_resolved,
        )
    except Exception as e:
        raise http_error(e) from e


@router.delete("/{dep_id}", responses={**_responses}, dependencies=_write)
async def dependencies_delete(
    caller: RCDAuthCaller,
    mgr: RCDMgr,
    release_id: ReleaseID,
    dep_id: DependencyID,
) -> bool:
    try:
        await mgr.deps.remove(caller.team, release_id, dep_id)
    except Exception as e:
        raise http_error(e) from e
    return True
