# RCD service library - core - manager
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

from fastapi import Depends

from rcdcore.errors import RCDError
from rcdlib.config.config import Config
from rcdlib.config.teams import APIKeyConfig, TeamConfig
from rcdlib.core import logger as parent_logger
from rcdlib.core.activity import ActivityLog
from rcdlib.core.deployments import GroupsMgr
from rcdlib.core.deps import DependenciesMgr
from rcdlib.core.notify import (
    CeleryNotificationSender,
    NotificationSender,
    Notifier,
)
from rcdlib.core.ratelimit import RateLimiter
from rcdlib.core.releases import ReleasesMgr
from rcdlib.db.db import ReleasesDB
from rcdlib.worker.celery import celery_init

logger = parent_logger.getChild("mgr")


class MgrError(RCDError):
    pass


class Mgr:
    """
    Owns the service's state: database, collaborators, and domain managers.

    Everything a request handler needs is reached through here, including the
    rate limiter, so that separate instances never share request counters.
    """

    _db: ReleasesDB
    _api_keys: dict[str, tuple[TeamConfig, APIKeyConfig]]

    activity: ActivityLog
    notifier: Notifier
    limiter: RateLimiter
    releases: ReleasesMgr
    deps: DependenciesMgr
    groups: GroupsMgr

    def __init__(self, config: Config, sender: NotificationSender) -> None:
        if not config.server:
            msg = "missing server config"
            logger.error(msg)
            raise MgrError(msg)

        # propagate exceptions
        self._db = ReleasesDB(config.server.db)

        self._api_keys = {
            api_key.key.get_secret_value(): (team, api_key)
            for team in config.teams
            for api_key in team.api_keys
        }
        logger.info(
            f"loaded {len(config.teams)} teams, {len(self._api_keys)} api keys"
        )

        self.activity = ActivityLog(self._db)
        self.notifier = Notifier(config.teams, sender)
        self.limiter = RateLimiter(
            config.server.rate_limit.max_requests,
            config.server.rate_limit.window_seconds,
        )

        self.releases = ReleasesMgr(self._db, self.activity, self.notifier)
        self.deps = DependenciesMgr(self._db, self.activity, self.notifier)
        self.groups = GroupsMgr(self._db, self.activity, self.notifier)

    def lookup_api_key(self, key: str) -> tuple[TeamConfig, APIKeyConfig] | None:
        return self._api_keys.get(key)

    @property
    def db(self) -> ReleasesDB:
        return self._db


_mgr: Mgr | None = None


def mgr_init(config: Config, sender: NotificationSender | None = None) -> Mgr:
    """
    Set up the service manager.

    Without an explicit sender, notifications are dispatched to the celery
    worker configured by 'config'.
    """
    logger.info("init rcd service mgr")
    global _mgr

    if sender is None:
        celery_init(config)
        sender = CeleryNotificationSender()

    _mgr = Mgr(config, sender)
    return _mgr


def get_mgr() -> Mgr:
    assert _mgr, "RCD service manager not set up"
    return _mgr


RCDMgr = Annotated[Mgr, Depends(get_mgr)]
