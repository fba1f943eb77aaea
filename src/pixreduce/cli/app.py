"""Tyro CLI application entrypoint."""

from __future__ import annotations

from typing import Annotated

import tyro

from pixreduce.cli import commands_bench, commands_list, commands_run


TopLevelCommand = Annotated[
    commands_run.RunCommand,
    tyro.conf.subcommand(name="run"),
] | Annotated[
    commands_bench.BenchCommand,
    tyro.conf.subcommand(name="bench"),
] | Annotated[
    commands_list.ListCommand,
    tyro.conf.subcommand(name="list"),
]


def dispatch(command: TopLevelCommand) -> None:
    """Dispatch parsed top-level command object."""

    if isinstance(command, commands_run.RunCommand):
        commands_run.execute(command)
        return
    if isinstance(command, commands_bench.BenchCommand):
        commands_bench.execute(command)
        return
    if isinstance(command, commands_list.ListCommand):
        commands_list.execute(command)
        return
    raise TypeError(f"Unsupported command type: {type(command).__name__}")


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and run requested command."""

    command = tyro.cli(TopLevelCommand, args=argv)
    dispatch(command)
