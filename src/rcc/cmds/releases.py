# rcc - commands - releases
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

import errno
import logging
import sys
from datetime import datetime as dt
from typing import TypeVar

import click
import httpx
import pydantic
import rich.box
from rich.padding import Padding
from rich.table import Table

from rcc import RCCError
from rcc.client import RCCClient
from rcc.cmds import console, endpoint, fail, pass_config, pass_logger, update_ctx
from rcc.config import UserConfig
from rcdcore.api.requests import NewReleaseRequest, UpdateReleaseRequest
from rcdcore.releases.types import Activity, Release, ReleaseStatus

# pyright: reportUnusedParameter=false, reportUnusedFunction=false

_T = TypeVar("_T")


def validate_response(
    logger: logging.Logger, res: httpx.Response, what: type[_T]
) -> _T:
    """Validate a server response body against 'what'."""
    raw = res.json()  # pyright: ignore[reportAny]
    try:
        return pydantic.TypeAdapter(what).validate_python(raw)
    except pydantic.ValidationError:
        msg = f"error validating server result: {raw}"
        logger.error(msg)
        raise RCCError(msg) from None


def status_text(status: ReleaseStatus) -> str:
    return f"{status.emoji} {status.label}"


def _ts(ts: dt | None) -> str:
    return ts.strftime("%Y-%m-%d %H:%M:%S") if ts else "n/a"


@endpoint("/releases")
def _release_list(
    logger: logging.Logger, client: RCCClient, ep: str, group_id: int | None
) -> list[Release]:
    params = {"group_id": group_id} if group_id is not None else None
    r = client.get(ep, params=params)
    return validate_response(logger, r, list[Release])


@endpoint("/releases")
def _release_get(
    logger: logging.Logger, client: RCCClient, ep: str, release_id: int
) -> Release:
    r = client.get(f"{ep}/{release_id}")
    return validate_response(logger, r, Release)


@endpoint("/releases")
def _release_new(
    logger: logging.Logger, client: RCCClient, ep: str, req: NewReleaseRequest
) -> Release:
    r = client.post(ep, req.model_dump(mode="json"))
    return validate_response(logger, r, Release)


@endpoint("/releases")
def _release_update(
    logger: logging.Logger,
    client: RCCClient,
    ep: str,
    release_id: int,
    req: UpdateReleaseRequest,
) -> Release:
    r = client.patch(
        f"{ep}/{release_id}", req.model_dump(mode="json", exclude_unset=True)
    )
    return validate_response(logger, r, Release)


@endpoint("/releases")
def _release_delete(
    logger: logging.Logger, client: RCCClient, ep: str, release_id: int
) -> None:
    _ = client.delete(f"{ep}/{release_id}")


@endpoint("/releases")
def _release_activities(
    logger: logging.Logger, client: RCCClient, ep: str, release_id: int, limit: int
) -> list[Activity]:
    r = client.get(f"{ep}/{release_id}/activities", params={"limit": limit})
    return validate_response(logger, r, list[Activity])


def print_release(release: Release) -> None:
    table = Table(show_header=False, show_lines=False, box=None)
    table.add_column(justify="right", style="bold cyan", no_wrap=True)
    table.add_column(justify="left", style="magenta", no_wrap=False)
    table.add_row("ID", str(release.release_id))
    table.add_row("Title", release.title)
    table.add_row("Service", release.service)
    table.add_row("Version", release.version or "n/a")
    table.add_row("Status", status_text(release.status))
    table.add_row(
        "Blocked",
        f"[red]{release.blocked_reason}[/red]" if release.is_blocked else "no",
    )
    table.add_row("Group", str(release.group_id) if release.group_id else "n/a")
    table.add_row("Sprint", release.sprint or "n/a")
    table.add_row("Owner", release.owner or "n/a")
    table.add_row("Target date", str(release.target_date or "n/a"))
    table.add_row("Status changed", _ts(release.status_changed))
    table.add_row("In staging", _ts(release.staging_deployed))
    table.add_row("In production", _ts(release.prod_deployed))
    if release.description:
        table.add_row("Description", release.description)

    console.print(Padding(table, (1, 0, 1, 0)))


@click.group("release", help="Release related commands")
@update_ctx
def cmd_release() -> None:
    pass


@cmd_release.command("list", help="List the team's releases")
@click.option(
    "-g",
    "--group",
    "group_id",
    type=int,
    required=False,
    metavar="ID",
    help="Only list releases in this deployment group",
)
@update_ctx
@pass_logger
@pass_config
def cmd_release_list(
    config: UserConfig, logger: logging.Logger, group_id: int | None
) -> None:
    try:
        lst = _release_list(logger, config, group_id)
    except RCCError as e:
        fail("listing releases", e)

    if not lst:
        click.echo("no releases found")
        return

    table = Table(show_header=True, show_lines=True, box=rich.box.HORIZONTALS)
    table.add_column("ID", justify="right", style="bold cyan", no_wrap=True)
    table.add_column("Title", justify="left", style="magenta", no_wrap=False)
    table.add_column("Service", justify="left", no_wrap=True)
    table.add_column("Status", justify="left", no_wrap=True)
    table.add_column("Blocked", justify="left", no_wrap=False)

    for release in lst:
        table.add_row(
            str(release.release_id),
            release.title,
            release.service,
            status_text(release.status),
            f"[red]{release.blocked_reason}[/red]" if release.is_blocked else "",
        )

    console.print(Padding(table, (1, 0, 1, 0)))


@cmd_release.command("show", help="Show a release")
@click.argument("release_id", type=int, metavar="ID", required=True)
@update_ctx
@pass_logger
@pass_config
def cmd_release_show(config: UserConfig, logger: logging.Logger, release_id: int) -> None:
    try:
        release = _release_get(logger, config, release_id)
    except RCCError as e:
        fail(f"obtaining release {release_id}", e)

    print_release(release)


@cmd_release.command("new", help="Create a new release")
@click.argument("title", type=str, metavar="TITLE", required=True)
@click.option(
    "-s",
    "--service",
    type=str,
    required=True,
    metavar="NAME",
    help="Service being released",
)
@click.option("-v", "--version", type=str, required=False, help="Release version")
@click.option("--sprint", type=str, required=False, help="Sprint for this release")
@click.option("--owner", type=str, required=False, help="Release owner")
@click.option(
    "--target-date",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    required=False,
    metavar="YYYY-MM-DD",
    help="Targeted release date",
)
@click.option("--description", type=str, required=False, help="Release description")
@update_ctx
@pass_logger
@pass_config
def cmd_release_new(
    config: UserConfig,
    logger: logging.Logger,
    title: str,
    service: str,
    version: str | None,
    sprint: str | None,
    owner: str | None,
    target_date: dt | None,
    description: str | None,
) -> None:
    try:
        req = NewReleaseRequest(
            title=title,
            service=service,
            version=version,
            sprint=sprint,
            owner=owner,
            target_date=target_date.date() if target_date else None,
            description=description,
        )
    except pydantic.ValidationError as e:
        click.echo(f"invalid release: {e}", err=True)
        sys.exit(errno.EINVAL)

    try:
        release = _release_new(logger, config, req)
    except RCCError as e:
        fail("creating release", e)

    click.echo(f"created release {release.release_id}")
    print_release(release)


@cmd_release.command("update", help="Update a release")
@click.argument("release_id", type=int, metavar="ID", required=True)
@click.option(
    "--status",
    type=click.Choice([s.value for s in ReleaseStatus], case_sensitive=False),
    required=False,
    help="New release status",
)
@click.option("--title", type=str, required=False, help="New title")
@click.option("--service", type=str, required=False, help="New service")
@click.option("-v", "--version", type=str, required=False, help="New version")
@click.option("--sprint", type=str, required=False, help="New sprint")
@click.option("--owner", type=str, required=False, help="New owner")
@click.option("--description", type=str, required=False, help="New description")
@update_ctx
@pass_logger
@pass_config
def cmd_release_update(
    config: UserConfig,
    logger: logging.Logger,
    release_id: int,
    status: str | None,
    title: str | None,
    service: str | None,
    version: str | None,
    sprint: str | None,
    owner: str | None,
    description: str | None,
) -> None:
    fields = {
        k: v
        for k, v in {
            "status": status.upper() if status else None,
            "title": title,
            "service": service,
            "version": version,
            "sprint": sprint,
            "owner": owner,
            "description": description,
        }.items()
        if v is not None
    }
    if not fields:
        click.echo("nothing to update", err=True)
        sys.exit(errno.EINVAL)

    try:
        req = UpdateReleaseRequest.model_validate(fields)
    except pydantic.ValidationError as e:
        click.echo(f"invalid update: {e}", err=True)
        sys.exit(errno.EINVAL)

    try:
        release = _release_update(logger, config, release_id, req)
    except RCCError as e:
        fail(f"updating release {release_id}", e)

    print_release(release)


@cmd_release.command("delete", help="Delete a release and its dependencies")
@click.argument("release_id", type=int, metavar="ID", required=True)
@update_ctx
@pass_logger
@pass_config
def cmd_release_delete(
    config: UserConfig, logger: logging.Logger, release_id: int
) -> None:
    try:
        _release_delete(logger, config, release_id)
    except RCCError as e:
        fail(f"deleting release {release_id}", e)

    click.echo(f"deleted release {release_id}")


@cmd_release.command("activity", help="Show a release's recent activity")
@click.argument("release_id", type=int, metavar="ID", required=True)
@click.option(
    "-n",
    "--limit",
    type=click.IntRange(1, 100),
    default=20,
    show_default=True,
    help="Number of entries to show",
)
@update_ctx
@pass_logger
@pass_config
def cmd_release_activity(
    config: UserConfig, logger: logging.Logger, release_id: int, limit: int
) -> None:
    try:
        lst = _release_activities(logger, config, release_id, limit)
    except RCCError as e:
        fail(f"obtaining activity for release {release_id}", e)

    if not lst:
        click.echo("no activity found")
        return

    table = Table(show_header=True, show_lines=False, box=rich.box.HORIZONTALS)
    table.add_column("When", justify="left", style="bold cyan", no_wrap=True)
    table.add_column("Type", justify="left", style="magenta", no_wrap=True)
    table.add_column("Description", justify="left", no_wrap=False)

    for entry in lst:
        table.add_row(_ts(entry.created), entry.type.value, entry.description)

    console.print(Padding(table, (1, 0, 1, 0)))
