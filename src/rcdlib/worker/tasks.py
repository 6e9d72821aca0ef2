# RCD service library - workqueue's worker - tasks
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

from typing import Any

import httpx
import pydantic

from rcdlib.config.config import get_config
from rcdlib.core.notify import NotificationMessage
from rcdlib.worker import WorkerError
from rcdlib.worker.celery import celery_app, logger

_SLACK_TIMEOUT = 10.0


def slack_payload(message: NotificationMessage, channel: str | None) -> dict[str, Any]:
    """Build the Slack incoming webhook payload for a message."""
    blocks: list[dict[str, Any]] = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": message.title},
        },
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": message.text},
        },
    ]
    if message.fields:
        blocks.append(
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*{k}*\n{v}"}
                    for k, v in message.fields.items()
                ],
            }
        )

    payload: dict[str, Any] = {"text": message.title, "blocks": blocks}
    if channel:
        payload["channel"] = channel
    return payload


def post_to_slack(
    client: httpx.Client, webhook_url: str, payload: dict[str, Any]
) -> bool:
    try:
        res = client.post(webhook_url, json=payload, timeout=_SLACK_TIMEOUT)
        _ = res.raise_for_status()
    except httpx.HTTPError as e:
        logger.error(f"error posting to slack: {e}")
        return False
    return True


@celery_app.task
def deliver_notification(message: dict[str, Any], channel: str | None) -> bool:
    try:
        msg = NotificationMessage.model_validate(message)
    except pydantic.ValidationError as e:
        logger.error(f"malformed notification message: {e}")
        return False

    config = get_config()
    team = config.get_team(msg.team)
    if not team:
        err = f"unknown team '{msg.team}' for notification"
        logger.error(err)
        raise WorkerError(err)

    if not team.slack_webhook_url:
        logger.debug(f"team '{team.name}' has no slack webhook, dropping message")
        return False

    logger.info(f"deliver '{msg.kind}' notification for team '{team.name}'")
    with httpx.Client() as client:
        return post_to_slack(
            client,
            team.slack_webhook_url.get_secret_value(),
            slack_payload(msg, channel),
        )
