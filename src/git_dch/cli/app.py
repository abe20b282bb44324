"""Command line entry point for git-dch."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import click
from click.core import ParameterSource
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from git_dch import __version__
from git_dch.cli.commands.update import run_update
from git_dch.config import load_config
from git_dch.core.entry import URGENCY_CHOICES
from git_dch.exceptions import ConfigError

# Parameters that do not map onto a configuration field
_NON_CONFIG_PARAMS = ("changelog",)


def configure_logging(verbose: bool, console: Console) -> None:
    """Send library debug traces to stderr when ``verbose`` is set."""
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=True)],
        force=True,
    )
    logging.getLogger("git").setLevel(logging.INFO)


def _explicit_overrides(ctx: click.Context) -> dict[str, Any]:
    """Options given on the command line, so config file values stay in effect otherwise."""
    overrides = {}
    for name, value in ctx.params.items():
        if name in _NON_CONFIG_PARAMS:
            continue
        if ctx.get_parameter_source(name) in (ParameterSource.DEFAULT, ParameterSource.DEFAULT_MAP):
            continue
        overrides[name] = value
    return overrides


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("changelog", required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.option("-a", "--auto", is_flag=True, help="Autocomplete changelog from last snapshot or tag.")
@click.option(
    "--distribution",
    default="unstable",
    show_default=True,
    metavar="DISTRIBUTION",
    help="Set distribution.",
)
@click.option(
    "--force-branch",
    default="",
    metavar="BRANCH",
    help="Force the branch name to use while generating the changelog.",
)
@click.option(
    "--force-distribution",
    is_flag=True,
    help="Use the distribution even if it does not match the list of known distributions.",
)
@click.option(
    "--git-author",
    is_flag=True,
    help="Use name and email from git config for the changelog trailer.",
)
@click.option("--ignore-merges", is_flag=True, help="Ignore merge commits in git history.")
@click.option(
    "-N",
    "--new-version",
    default="",
    metavar="NEW_VERSION",
    help="Use this as base for the new version number.",
)
@click.option("--purge-unstable", is_flag=True, help="Purge old unstable releases from the changelog.")
@click.option("--purge-testing", is_flag=True, help="Purge old testing releases from the changelog.")
@click.option("-R", "--release", is_flag=True, help="Mark as release.")
@click.option(
    "--since",
    default="",
    metavar="SINCE",
    help="Commit to start from (e.g. HEAD^^^, debian/0.4.3).",
)
@click.option("-S", "--snapshot", is_flag=True, help="Mark as snapshot build.")
@click.option(
    "--urgency",
    type=click.Choice(URGENCY_CHOICES),
    default="medium",
    show_default=True,
    help="Set urgency level.",
)
@click.option("--verbose", is_flag=True, help="Print debug information on stderr.")
@click.version_option(__version__, "-v", "--version", prog_name="git-dch")
@click.pass_context
def cli(ctx: click.Context, changelog: Path | None, **_: Any) -> None:
    """Generate a Debian changelog entry from git history.

    CHANGELOG defaults to ./debian/changelog.
    """
    console = Console(highlight=False)
    err_console = Console(stderr=True)

    overrides = _explicit_overrides(ctx)
    if changelog is not None:
        overrides["changelog_path"] = changelog

    try:
        config = load_config(Path.cwd(), **overrides)
    except ConfigError as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}")
        raise SystemExit(1) from e

    configure_logging(config.verbose, err_console)
    run_update(config, console, err_console)


def main() -> None:
    cli()
