# RCD service library - routes - authentication
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

import pydantic
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from rcdcore.api.responses import BaseErrorModel
from rcdlib.config.teams import APIScope
from rcdlib.core.mgr import RCDMgr
from rcdlib.routes import logger as parent_logger

logger = parent_logger.getChild("auth")

_http_bearer = HTTPBearer()


responses_auth_token = {
    401: {
        "model": BaseErrorModel,
        "description": "Missing or invalid API key",
    }
}


class AuthCaller(pydantic.BaseModel):
    """The team, and key, a request was authenticated as."""

    team: str
    key_name: str
    scopes: set[APIScope]


def _token_auth(
    authorization: Annotated[HTTPAuthorizationCredentials, Depends(_http_bearer)],
) -> str:
    failed_error = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid authorization",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if authorization.scheme.lower() != "bearer" or not authorization.credentials:
        raise failed_error

    return authorization.credentials


_AuthToken = Annotated[str, Depends(_token_auth)]


def get_caller(token: _AuthToken, mgr: RCDMgr) -> AuthCaller:
    entry = mgr.lookup_api_key(token)
    if not entry:
        logger.warning("request with unknown api key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "Bearer"},
        )

    team, api_key = entry
    return AuthCaller(team=team.name, key_name=api_key.name, scopes=set(api_key.scopes))


RCDAuthCaller = Annotated[AuthCaller, Depends(get_caller)]
