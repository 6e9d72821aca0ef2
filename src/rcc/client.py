# rcc - http client
# Copyright (C) 2025  Clyso GmbH
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.

# pyright: reportExplicitAny=false

import logging
from typing import Any, override

import httpx
import pydantic
from httpx import _types as httpx_types  # pyright: ignore[reportPrivateUsage]

from rcc import RCCError
from rcdcore.api.responses import BaseErrorModel


class RCCConnectionError(RCCError):
    """Connection error to the RCD server."""

    @override
    def __str__(self) -> str:
        return self.with_maybe_msg("Connection error")


class RCCPermissionDeniedError(RCCError):
    """Permission denied from the RCD server, most likely due to an invalid key."""

    @override
    def __str__(self) -> str:
        return self.with_maybe_msg("Permission denied")


class RCCClient:
    _client: httpx.Client
    _logger: logging.Logger

    def __init__(
        self,
        logger: logging.Logger,
        base_url: str,
        *,
        token: str | None = None,
        verify: bool = False,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._logger = logger

        headers = None if not token else {"Authorization": f"Bearer {token}"}

        self._client = httpx.Client(
            base_url=f"{base_url}/api",
            headers=headers,
            verify=verify,
            transport=transport,
        )

    def _maybe_handle_error(self, ep: str, res: httpx.Response) -> None:
        if not res.is_error:
            return

        try:
            err = BaseErrorModel.model_validate(res.json())
            msg = err.detail
        except (pydantic.ValidationError, ValueError):
            msg = res.read().decode("utf-8")

        if res.status_code in (
            httpx.codes.UNAUTHORIZED.value,
            httpx.codes.FORBIDDEN.value,
        ):
            raise RCCPermissionDeniedError(f"accessing '{ep}': {msg}")
        raise RCCError(msg)

    def _request(
        self,
        method: str,
        ep: str,
        *,
        params: httpx_types.QueryParamTypes | None = None,
        data: Any = None,
    ) -> httpx.Response:
        try:
            res = self._client.request(method, ep, params=params, json=data)
            self._maybe_handle_error(ep, res)
        except httpx.ConnectError as e:
            msg = f"error connecting to '{self._client.base_url}': {e}"
            self._logger.error(msg)
            raise RCCConnectionError(msg) from e
        except RCCError as e:
            self._logger.error(f"error on {method} '{ep}': {e}")
            raise e from None
        except Exception as e:
            msg = f"error on {method} '{ep}': {e}"
            self._logger.error(msg)
            raise RCCError(msg) from e
        return res

    def get(
        self, ep: str, *, params: httpx_types.QueryParamTypes | None = None
    ) -> httpx.Response:
        """Send a GET request to the given RCD endpoint."""
        return self._request("GET", ep, params=params)

    def post(self, ep: str, data: Any = None) -> httpx.Response:  # pyright: ignore[reportAny]
        """Send a POST request to the given RCD endpoint."""
        return self._request("POST", ep, data=data)

    def patch(self, ep: str, data: Any) -> httpx.Response:  # pyright: ignore[reportAny]
        """Send a PATCH request to the given RCD endpoint."""
        return self._request("PATCH", ep, data=data)

    def delete(self, ep: str, data: Any = None) -> httpx.Response:  # pyright: ignore[reportAny]
        """Send a DELETE request to the given RCD endpoint."""
        return self._request("DELETE", ep, data=data)
