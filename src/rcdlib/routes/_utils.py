# RCD service library - routes - utilities
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

import math

from fastapi import HTTPException, Response, status

from rcdcore.api.responses import BaseErrorModel
from rcdcore.releases.errors import (
    CyclicDependencyError,
    DuplicateDependencyError,
    InvalidDependencyError,
    NotFoundError,
    NoUpdateFieldsError,
)
from rcdlib.config.teams import APIScope
from rcdlib.core.mgr import RCDMgr
from rcdlib.routes import logger as parent_logger
from rcdlib.routes._auth import RCDAuthCaller, responses_auth_token

logger = parent_logger.getChild("utils")


responses_auth = {
    **responses_auth_token,
    403: {"description": "API key missing required scope", "model": BaseErrorModel},
    429: {"description": "Rate limit exceeded", "model": BaseErrorModel},
}


class RequiredScope:
    """Route dependency rejecting callers whose key lacks a scope."""

    _required: APIScope

    def __init__(self, required: APIScope) -> None:
        self._required = required

    def __call__(self, caller: RCDAuthCaller) -> None:
        if self._required not in caller.scopes:
            logger.warning(
                f"api key '{caller.key_name}' of team '{caller.team}' "
                + f"missing scope '{self._required}'"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"API key missing required scope '{self._required}'",
            )


async def rate_limited(
    caller: RCDAuthCaller, mgr: RCDMgr, response: Response
) -> None:
    res = mgr.limiter.check(f"{caller.team}/{caller.key_name}")
    headers = {
        "X-RateLimit-Limit": str(mgr.limiter.limit),
        "X-RateLimit-Remaining": str(res.remaining),
        "X-RateLimit-Reset": str(math.ceil(res.reset_after)),
    }

    if not res.allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded, try again later",
            headers={**headers, "Retry-After": headers["X-RateLimit-Reset"]},
        )

    response.headers.update(headers)


def http_error(e: Exception) -> HTTPException:
    """Translate an error raised by the managers into an HTTP error."""
    if isinstance(e, HTTPException):
        return e
    elif isinstance(e, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    elif isinstance(e, DuplicateDependencyError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    elif isinstance(
        e, (InvalidDependencyError, CyclicDependencyError, NoUpdateFieldsError)
    ):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.error(f"unexpected error: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="check logs for failure",
    )
