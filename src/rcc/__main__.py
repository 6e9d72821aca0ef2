# rcc - release coordination client
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

# pyright: reportAny=false

import logging
from pathlib import Path

import click

from rcc import RCC_DEFAULT_CONFIG_PATH, logger
from rcc import set_debug_logging as rcc_set_debug_logging
from rcc.cmds import Ctx, pass_ctx
from rcc.cmds.deps import cmd_deps
from rcc.cmds.groups import cmd_group
from rcc.cmds.releases import cmd_release
from rcc.config import UserConfig

_rcc_help_message = """Release Coordination Client

Interacts with an RCD service, tracking a team's releases, the dependencies
between them, and the deployment groups they are shipped in.

See subcommands' descriptions for more information.
"""


@click.group(help=_rcc_help_message)
@click.option(
    "-d",
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug logging",
)
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        resolve_path=True,
        path_type=Path,
    ),
    required=False,
    help="Specify rcc config JSON file",
)
@pass_ctx
def main(ctx: Ctx, debug: bool, config_path: Path | None) -> None:
    if debug:
        rcc_set_debug_logging()

    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.CRITICAL)

    logger.debug(f"config path: {config_path}")
    user_config_path: Path = RCC_DEFAULT_CONFIG_PATH
    if config_path:
        user_config_path = config_path

    if user_config_path.exists() and user_config_path.is_file():
        ctx.config = UserConfig.load(user_config_path)


main.add_command(cmd_release)
main.add_command(cmd_deps)
main.add_command(cmd_group)

if __name__ == "__main__":
    main()
