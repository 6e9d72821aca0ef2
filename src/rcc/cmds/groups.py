# rcc - commands - deployment groups
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

import click
import pydantic
import rich.box
from rich.padding import Padding
from rich.table import Table

from rcc import RCCError
from rcc.client import RCCClient
from rcc.cmds import console, endpoint, fail, pass_config, pass_logger, update_ctx
from rcc.cmds.releases import status_text, validate_response
from rcc.config import UserConfig
from rcdcore.api.requests import NewDeploymentGroupRequest
from rcdcore.api.responses import DeploymentGroupResponse
from rcdcore.releases.types import DeploymentGroup, DeployOrder

# pyright: reportUnusedParameter=false, reportUnusedFunction=false


@endpoint("/deployment-groups")
def _group_list(
    logger: logging.Logger, client: RCCClient, ep: str
) -> list[DeploymentGroup]:
    r = client.get(ep)
    return validate_response(logger, r, list[DeploymentGroup])


@endpoint("/deployment-groups")
def _group_get(
    logger: logging.Logger, client: RCCClient, ep: str, group_id: int
) -> DeploymentGroupResponse:
    r = client.get(f"{ep}/{group_id}")
    return validate_response(logger, r, DeploymentGroupResponse)


@endpoint("/deployment-groups")
def _group_new(
    logger: logging.Logger,
    client: RCCClient,
    ep: str,
    req: NewDeploymentGroupRequest,
) -> DeploymentGroupResponse:
    r = client.post(ep, req.model_dump(mode="json"))
    return validate_response(logger, r, DeploymentGroupResponse)


@endpoint("/deployment-groups")
def _group_members(
    logger: logging.Logger,
    client: RCCClient,
    ep: str,
    group_id: int,
    release_ids: list[int],
    add: bool,
) -> DeploymentGroupResponse:
    data = {"release_ids": release_ids}
    if add:
        r = client.post(f"{ep}/{group_id}/releases", data)
    else:
        r = client.delete(f"{ep}/{group_id}/releases", data)
    return validate_response(logger, r, DeploymentGroupResponse)


@endpoint("/deployment-groups")
def _group_refresh(
    logger: logging.Logger, client: RCCClient, ep: str, group_id: int
) -> DeploymentGroupResponse:
    r = client.post(f"{ep}/{group_id}/refresh")
    return validate_response(logger, r, DeploymentGroupResponse)


@endpoint("/deployment-groups")
def _group_delete(
    logger: logging.Logger, client: RCCClient, ep: str, group_id: int
) -> None:
    _ = client.delete(f"{ep}/{group_id}")


def print_group(res: DeploymentGroupResponse) -> None:
    group = res.group

    summary = Table(show_header=False, show_lines=False, box=None)
    summary.add_column(justify="right", style="bold cyan", no_wrap=True)
    summary.add_column(justify="left", style="magenta", no_wrap=False)
    summary.add_row("ID", str(group.group_id))
    summary.add_row("Name", group.name)
    summary.add_row("Status", group.status.value)
    summary.add_row("Deploy order", group.deploy_order.value)
    summary.add_row("Target date", str(group.target_date or "n/a"))
    summary.add_row("Deployed at", str(group.deployed_at or "n/a"))
    summary.add_row("Notify on ready", "yes" if group.notify_on_ready else "no")
    console.print(Padding(summary, (1, 0, 0, 0)))

    if not res.releases:
        click.echo("no releases in group")
        return

    table = Table(show_header=True, show_lines=False, box=rich.box.HORIZONTALS)
    table.add_column("ID", justify="right", style="bold cyan", no_wrap=True)
    table.add_column("Title", justify="left", style="magenta", no_wrap=False)
    table.add_column("Status", justify="left", no_wrap=True)
    for release in res.releases:
        table.add_row(
            str(release.release_id), release.title, status_text(release.status)
        )
    console.print(Padding(table, (1, 0, 1, 0)))


@click.group("group", help="Deployment group commands")
@update_ctx
def cmd_group() -> None:
    pass


@cmd_group.command("list", help="List the team's deployment groups")
@update_ctx
@pass_logger
@pass_config
def cmd_group_list(config: UserConfig, logger: logging.Logger) -> None:
    try:
        lst = _group_list(logger, config)
    except RCCError as e:
        fail("listing deployment groups", e)

    if not lst:
        click.echo("no deployment groups found")
        return

    table = Table(show_header=True, show_lines=True, box=rich.box.HORIZONTALS)
    table.add_column("ID", justify="right", style="bold cyan", no_wrap=True)
    table.add_column("Name", justify="left", style="magenta", no_wrap=False)
    table.add_column("Status", justify="left", no_wrap=True)
    table.add_column("Order", justify="left", no_wrap=True)
    for group in lst:
        table.add_row(
            str(group.group_id),
            group.name,
            group.status.value,
            group.deploy_order.value,
        )

    console.print(Padding(table, (1, 0, 1, 0)))


@cmd_group.command("show", help="Show a deployment group and its releases")
@click.argument("group_id", type=int, metavar="ID", required=True)
@update_ctx
@pass_logger
@pass_config
def cmd_group_show(config: UserConfig, logger: logging.Logger, group_id: int) -> None:
    try:
        res = _group_get(logger, config, group_id)
    except RCCError as e:
        fail(f"obtaining deployment group {group_id}", e)

    print_group(res)


@cmd_group.command("new", help="Create a deployment group")
@click.argument("name", type=str, metavar="NAME", required=True)
@click.option(
    "--order",
    "deploy_order",
    type=click.Choice([o.value for o in DeployOrder], case_sensitive=False),
    default=DeployOrder.SIMULTANEOUS.value,
    show_default=True,
    help="How the group's releases are deployed",
)
@click.option("--description", type=str, required=False, help="Group description")
@click.option(
    "--notify-on-ready",
    is_flag=True,
    default=False,
    help="Notify the team when every release is ready for staging",
)
@update_ctx
@pass_logger
@pass_config
def cmd_group_new(
    config: UserConfig,
    logger: logging.Logger,
    name: str,
    deploy_order: str,
    description: str | None,
    notify_on_ready: bool,
) -> None:
    try:
        req = NewDeploymentGroupRequest(
            name=name,
            deploy_order=DeployOrder(deploy_order.upper()),
            description=description,
            notify_on_ready=notify_on_ready,
        )
    except pydantic.ValidationError as e:
        click.echo(f"invalid deployment group: {e}", err=True)
        sys.exit(errno.EINVAL)

    try:
        res = _group_new(logger, config, req)
    except RCCError as e:
        fail("creating deployment group", e)

    click.echo(f"created deployment group {res.group.group_id}")


@cmd_group.command("assign", help="Add releases to a deployment group")
@click.argument("group_id", type=int, metavar="ID", required=True)
@click.argument("release_ids", type=int, metavar="RELEASE...", nargs=-1, required=True)
@update_ctx
@pass_logger
@pass_config
def cmd_group_assign(
    config: UserConfig,
    logger: logging.Logger,
    group_id: int,
    release_ids: tuple[int, ...],
) -> None:
    try:
        res = _group_members(logger, config, group_id, list(release_ids), True)
    except RCCError as e:
        fail(f"assigning releases to group {group_id}", e)

    print_group(res)


@cmd_group.command("unassign", help="Remove releases from a deployment group")
@click.argument("group_id", type=int, metavar="ID", required=True)
@click.argument("release_ids", type=int, metavar="RELEASE...", nargs=-1, required=True)
@update_ctx
@pass_logger
@pass_config
def cmd_group_unassign(
    config: UserConfig,
    logger: logging.Logger,
    group_id: int,
    release_ids: tuple[int, ...],
) -> None:
    try:
        res = _group_members(logger, config, group_id, list(release_ids), False)
    except RCCError as e:
        fail(f"removing releases from group {group_id}", e)

    print_group(res)


@cmd_group.command("refresh", help="Recompute a deployment group's status")
@click.argument("group_id", type=int, metavar="ID", required=True)
@update_ctx
@pass_logger
@pass_config
def cmd_group_refresh(
    config: UserConfig, logger: logging.Logger, group_id: int
) -> None:
    try:
        res = _group_refresh(logger, config, group_id)
    except RCCError as e:
        fail(f"refreshing deployment group {group_id}", e)

    click.echo(f"deployment group {group_id} is {res.group.status.value}")


@cmd_group.command("delete", help="Delete a deployment group, keeping its releases")
@click.argument("group_id", type=int, metavar="ID", required=True)
@update_ctx
@pass_logger
@pass_config
def cmd_group_delete(config: UserConfig, logger: logging.Logger, group_id: int) -> None:
    try:
        _group_delete(logger, config, group_id)
    except RCCError as e:
        fail(f"deleting deployment group {group_id}", e)

    click.echo(f"deleted deployment group {group_id}")
