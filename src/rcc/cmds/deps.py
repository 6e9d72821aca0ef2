# rcc - commands - dependencies
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

import logging

import click
import rich.box
from rich.padding import Padding
from rich.table import Table

from rcc import RCCError
from rcc.client import RCCClient
from rcc.cmds import console, endpoint, fail, pass_config, pass_logger, update_ctx
from rcc.cmds.releases import status_text, validate_response
from rcc.config import UserConfig
from rcdcore.api.requests import NewDependencyRequest
from rcdcore.api.responses import DependenciesResponse, DependencyEntry
from rcdcore.releases.types import DependencyType

# pyright: reportUnusedParameter=false, reportUnusedFunction=false


def _ep(ep: str, release_id: int) -> str:
    return f"{ep}/{release_id}/dependencies"


@endpoint("/releases")
def _deps_list(
    logger: logging.Logger, client: RCCClient, ep: str, release_id: int
) -> DependenciesResponse:
    r = client.get(_ep(ep, release_id))
    return validate_response(logger, r, DependenciesResponse)


@endpoint("/releases")
def _deps_add(
    logger: logging.Logger,
    client: RCCClient,
    ep: str,
    release_id: int,
    req: NewDependencyRequest,
) -> DependencyEntry:
    r = client.post(_ep(ep, release_id), req.model_dump(mode="json"))
    return validate_response(logger, r, DependencyEntry)


@endpoint("/releases")
def _deps_set_resolved(
    logger: logging.Logger,
    client: RCCClient,
    ep: str,
    release_id: int,
    dep_id: int,
    is_resolved: bool,
) -> DependencyEntry:
    r = client.patch(f"{_ep(ep, release_id)}/{dep_id}", {"is_resolved": is_resolved})
    return validate_response(logger, r, DependencyEntry)


@endpoint("/releases")
def _deps_remove(
    logger: logging.Logger, client: RCCClient, ep: str, release_id: int, dep_id: int
) -> None:
    _ = client.delete(f"{_ep(ep, release_id)}/{dep_id}")


def _deps_table(title: str, entries: list[DependencyEntry]) -> Table:
    table = Table(
        title=title, show_header=True, show_lines=False, box=rich.box.HORIZONTALS
    )
    table.add_column("Dep", justify="right", style="bold cyan", no_wrap=True)
    table.add_column("Release", justify="left", style="magenta", no_wrap=False)
    table.add_column("Status", justify="left", no_wrap=True)
    table.add_column("Type", justify="left", no_wrap=True)
    table.add_column("Resolved", justify="left", no_wrap=True)

    for entry in entries:
        table.add_row(
            str(entry.dep_id),
            f"{entry.release.release_id}: {entry.release.title}",
            status_text(entry.release.status),
            entry.type.value,
            "yes" if entry.is_resolved else "no",
        )
    return table


@click.group("deps", help="Release dependency commands")
@update_ctx
def cmd_deps() -> None:
    pass


@cmd_deps.command("list", help="List a release's dependencies and dependents")
@click.argument("release_id", type=int, metavar="RELEASE", required=True)
@update_ctx
@pass_logger
@pass_config
def cmd_deps_list(config: UserConfig, logger: logging.Logger, release_id: int) -> None:
    try:
        res = _deps_list(logger, config, release_id)
    except RCCError as e:
        fail(f"listing dependencies of release {release_id}", e)

    if not res.depends_on and not res.dependents:
        click.echo(f"release {release_id} has no dependencies")
        return

    if res.depends_on:
        console.print(Padding(_deps_table("Depends on", res.depends_on), (1, 0, 0, 0)))
    if res.dependents:
        console.print(Padding(_deps_table("Dependents", res.dependents), (1, 0, 0, 0)))


@cmd_deps.command("add", help="Make RELEASE depend on BLOCKING")
@click.argument("release_id", type=int, metavar="RELEASE", required=True)
@click.argument("blocking_id", type=int, metavar="BLOCKING", required=True)
@click.option(
    "-t",
    "--type",
    "dep_type",
    type=click.Choice([t.value for t in DependencyType], case_sensitive=False),
    default=DependencyType.BLOCKS.value,
    show_default=True,
    help="Dependency type",
)
@click.option("--description", type=str, required=False, help="Why this dependency")
@update_ctx
@pass_logger
@pass_config
def cmd_deps_add(
    config: UserConfig,
    logger: logging.Logger,
    release_id: int,
    blocking_id: int,
    dep_type: str,
    description: str | None,
) -> None:
    req = NewDependencyRequest(
        blocking_id=blocking_id,
        type=DependencyType(dep_type.upper()),
        description=description,
    )
    try:
        entry = _deps_add(logger, config, release_id, req)
    except RCCError as e:
        fail("adding dependency", e)

    click.echo(
        f"added dependency {entry.dep_id}: release {release_id} "
        + f"depends on '{entry.release.title}'"
    )


@cmd_deps.command("resolve", help="Mark a dependency as resolved")
@click.argument("release_id", type=int, metavar="RELEASE", required=True)
@click.argument("dep_id", type=int, metavar="DEP", required=True)
@click.option(
    "--unresolve",
    is_flag=True,
    default=False,
    help="Mark the dependency as unresolved instead",
)
@update_ctx
@pass_logger
@pass_config
def cmd_deps_resolve(
    config: UserConfig,
    logger: logging.Logger,
    release_id: int,
    dep_id: int,
    unresolve: bool,
) -> None:
    try:
        entry = _deps_set_resolved(logger, config, release_id, dep_id, not unresolve)
    except RCCError as e:
        fail(f"updating dependency {dep_id}", e)

    state = "resolved" if entry.is_resolved else "unresolved"
    click.echo(f"dependency {dep_id} is now {state}")


@cmd_deps.command("remove", help="Remove a dependency")
@click.argument("release_id", type=int, metavar="RELEASE", required=True)
@click.argument("dep_id", type=int, metavar="DEP", required=True)
@update_ctx
@pass_logger
@pass_config
def cmd_deps_remove(
    config: UserConfig, logger: logging.Logger, release_id: int, dep_id: int
) -> None:
    try:
        _deps_remove(logger, config, release_id, dep_id)
    except RCCError as e:
        fail(f"removing dependency {dep_id}", e)

    click.echo(f"removed dependency {dep_id}")
