"""CLI entry point for p4lens.

Commands:
  review   — run AI review on a Perforce changelist
  changes  — list a user's changelists
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from p4lens_cli.commands.changes import changes_cmd
from p4lens_cli.commands.review import review_cmd

console = Console(stderr=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=verbose)],
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("p4lens"),
    prog_name="p4lens",
)
@click.option(
    "--config",
    "config_path",
    default=".p4lens.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="P4LENS_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log p4 commands and pipeline progress.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """AI-powered code reviewer for Perforce changelists."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


main.add_command(review_cmd)
main.add_command(changes_cmd)
