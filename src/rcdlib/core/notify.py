# RCD service library - core - notifications
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

from __future__ import annotations

import enum
from collections.abc import Iterable
from typing import Protocol

import pydantic

from rcdcore.releases.types import (
    DeploymentGroup,
    Release,
    ReleaseID,
    ReleaseStatus,
)
from rcdlib.config.teams import TeamConfig
from rcdlib.core import logger as parent_logger
from rcdlib.core.blocked import BlockedChange
from rcdlib.worker.celery import celery_app

logger = parent_logger.getChild("notify")

DEFAULT_BLOCKED_REASON = "No reason provided"

# environment a release becomes ready to be deployed to.
_READY_ENVIRONMENTS: dict[ReleaseStatus, str] = {
    ReleaseStatus.READY_STAGING: "staging",
    ReleaseStatus.STAGING_VERIFIED: "production",
    ReleaseStatus.READY_PRODUCTION: "production",
}


class NotificationKind(enum.StrEnum):
    STATUS_CHANGED = "status_changed"
    READY_TO_DEPLOY = "ready_to_deploy"
    BLOCKED = "blocked"
    UNBLOCKED = "unblocked"
    GROUP_READY = "group_ready"


class NotificationMessage(pydantic.BaseModel):
    """A fully composed outbound message."""

    kind: NotificationKind
    team: str
    release_id: ReleaseID | None = None
    title: str
    text: str
    fields: dict[str, str] = pydantic.Field(default_factory=dict)


class NotificationSender(Protocol):
    """Delivers composed messages; never expected to raise on delivery failure."""

    def send(self, message: NotificationMessage, channel: str | None = None) -> bool:
        ...


def _status_text(status: ReleaseStatus) -> str:
    return f"{status.emoji} {status.label}"


class Notifier:
    """
    Decides which events warrant an outbound message.

    Delivery is fire-and-forget: any failure composing or sending a message is
    logged and never reaches the caller.
    """

    _teams: dict[str, TeamConfig]
    _sender: NotificationSender

    def __init__(self, teams: list[TeamConfig], sender: NotificationSender) -> None:
        self._teams = {t.name: t for t in teams}
        self._sender = sender

    def _send(self, message: NotificationMessage) -> None:
        try:
            team = self._teams.get(message.team)
            channel = team.slack_channel if team else None
            if not self._sender.send(message, channel):
                logger.warning(
                    f"failed delivering '{message.kind}' notification "
                    + f"for team '{message.team}'"
                )
        except Exception as e:
            logger.error(f"error sending '{message.kind}' notification: {e}")

    def _enabled(self, team_name: str, what: str) -> bool:
        team = self._teams.get(team_name)
        if not team:
            logger.debug(f"no config for team '{team_name}', notifications disabled")
            return False
        return bool(getattr(team.notifications, what))

    def handle_status_change(
        self,
        team: str,
        release: Release,
        old_status: ReleaseStatus,
        new_status: ReleaseStatus,
    ) -> None:
        try:
            if self._enabled(team, "status_change"):
                self._send(
                    NotificationMessage(
                        kind=NotificationKind.STATUS_CHANGED,
                        team=team,
                        release_id=release.release_id,
                        title=f"Release status changed: {release.title}",
                        text=(
                            f"{_status_text(old_status)} → {_status_text(new_status)}"
                        ),
                        fields={
                            "service": release.service,
                            "version": release.version or "n/a",
                        },
                    )
                )

            env = _READY_ENVIRONMENTS.get(new_status)
            if env and self._enabled(team, "ready"):
                self._send(
                    NotificationMessage(
                        kind=NotificationKind.READY_TO_DEPLOY,
                        team=team,
                        release_id=release.release_id,
                        title=f"Ready to deploy to {env}: {release.title}",
                        text=f"{release.title} is ready to be deployed to {env}",
                        fields={"environment": env, "service": release.service},
                    )
                )
        except Exception as e:
            logger.error(
                "error handling status change notifications "
                + f"for release {release.release_id}: {e}"
            )

    def handle_blocked_change(
        self,
        team: str,
        release: Release,
        was_blocked: bool,
        is_blocked: bool,
        reason: str | None,
    ) -> None:
        # only the flag flipping matters, not changes to the reason.
        if was_blocked == is_blocked:
            return

        try:
            if not self._enabled(team, "blocked"):
                return

            if is_blocked:
                message = NotificationMessage(
                    kind=NotificationKind.BLOCKED,
                    team=team,
                    release_id=release.release_id,
                    title=f"Release blocked: {release.title}",
                    text=reason or DEFAULT_BLOCKED_REASON,
                )
            else:
                message = NotificationMessage(
                    kind=NotificationKind.UNBLOCKED,
                    team=team,
                    release_id=release.release_id,
                    title=f"Release unblocked: {release.title}",
                    text=f"{release.title} is no longer blocked",
                )
            self._send(message)
        except Exception as e:
            logger.error(
                "error handling blocked change notifications "
                + f"for release {release.release_id}: {e}"
            )

    def handle_blocked_changes(self, changes: Iterable[BlockedChange]) -> None:
        for change in changes:
            release = change.release
            self.handle_blocked_change(
                release.team,
                release,
                change.was_blocked,
                release.is_blocked,
                release.blocked_reason,
            )

    def handle_group_ready(self, group: DeploymentGroup) -> None:
        if not group.notify_on_ready:
            return

        try:
            if not self._enabled(group.team, "ready"):
                return
            self._send(
                NotificationMessage(
                    kind=NotificationKind.GROUP_READY,
                    team=group.team,
                    title=f"Deployment group ready: {group.name}",
                    text=f"All releases in '{group.name}' are ready for staging",
                    fields={"deploy order": group.deploy_order.value},
                )
            )
        except Exception as e:
            logger.error(
                f"error handling ready notification for group {group.group_id}: {e}"
            )


class CeleryNotificationSender:
    """Hands messages over to the worker; the request never waits on delivery."""

    def send(self, message: NotificationMessage, channel: str | None = None) -> bool:
        try:
            _ = celery_app.send_task(
                "rcdlib.worker.tasks.deliver_notification",
                kwargs={
                    "message": message.model_dump(mode="json"),
                    "channel": channel,
                },
            )
        except Exception as e:
            logger.error(f"unable to dispatch notification: {e}")
            return False
        return True
