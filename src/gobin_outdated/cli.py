"""Command-line interface.

Purpose
-------
Thin click layer: parse flags, configure logging, resolve settings once and
hand over to :func:`gobin_outdated.checker.run_check`.

Contents
--------
* :class:`DefaultCommandGroup` - Group that runs ``check`` when no command is named
* :func:`cli` - Root command group (``--verbose``, ``--version``)
* ``check`` - Report upgradeable Go binaries (the default command)
* ``config`` - Show layered configuration or effective settings
* ``info`` - Show package metadata
* :func:`main` - Console script entry point

Exit Codes
----------
0 on success (per-file errors included), 1 for run-level failures, 2 for
invalid usage such as ``--cmd --json``.
"""

from __future__ import annotations

import logging
import re

import click
from click.core import ParameterSource

from . import __init__conf__
from .checker import CheckError, run_check
from .config import resolve_settings
from .config_show import display_config, display_settings

logger = logging.getLogger(__name__)

_LOG_LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)
_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"
_RE_VERBOSE_FLAGS = re.compile(r"-v+")


def _configure_logging(verbosity: int) -> None:
    level = _LOG_LEVELS[min(verbosity, len(_LOG_LEVELS) - 1)]
    logging.basicConfig(level=level, format=_LOG_FORMAT, force=True)


def _given(ctx: click.Context, name: str, value: bool) -> bool | None:
    """Return ``value`` if the flag was passed explicitly, else None."""
    if ctx.get_parameter_source(name) is ParameterSource.DEFAULT:
        return None
    return value


class DefaultCommandGroup(click.Group):
    """Group that falls back to ``default_command`` for unknown arguments.

    ``gobin-outdated --all ~/go/bin`` runs as ``gobin-outdated check --all
    ~/go/bin``. Leading group options (``-v``, ``--version`` ...) stay in
    front of the inserted command name.
    """

    default_command = "check"

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        group_opts = {opt for param in self.get_params(ctx) for opt in (*param.opts, *param.secondary_opts)}
        index = 0
        while index < len(args) and (args[index] in group_opts or _RE_VERBOSE_FLAGS.fullmatch(args[index])):
            index += 1
        if index < len(args) and args[index] not in self.commands:
            args = [*args[:index], self.default_command, *args[index:]]
        return super().parse_args(ctx, args)


@click.group(cls=DefaultCommandGroup, context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__init__conf__.version, prog_name=__init__conf__.shell_command)
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (repeatable).")
def cli(verbose: int) -> None:
    """Report installed Go binaries that have newer module versions."""
    _configure_logging(verbose)


@cli.command("check")
@click.argument("paths", nargs=-1, required=True, type=click.Path(path_type=str))
@click.option("--all", "show_all", is_flag=True, help="Show all files, not only upgradeable ones.")
@click.option("--cmd", "emit_cmd", is_flag=True, help="Emit output as shell commands.")
@click.option("--json", "emit_json", is_flag=True, help="Emit output as JSON.")
@click.option("--errs/--no-errs", "show_errors", default=True, show_default=True, help="Show per-file errors.")
@click.option(
    "--pre/--no-pre",
    "include_prerelease",
    default=True,
    show_default=True,
    help="Include prerelease versions.",
)
@click.option(
    "--rate",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Max queries per second to the proxy [default: 2].",
)
@click.option("--proxy", default=None, metavar="URL", help="Go module proxy URL [default: $GOPROXY].")
@click.option("-u", "--upgradeable-only", is_flag=True, help="Only show upgradeable files, hide errors.")
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Per-request timeout in seconds [default: 30].",
)
@click.pass_context
def check(
    ctx: click.Context,
    paths: tuple[str, ...],
    show_all: bool,
    emit_cmd: bool,
    emit_json: bool,
    show_errors: bool,
    include_prerelease: bool,
    rate: float | None,
    proxy: str | None,
    upgradeable_only: bool,
    timeout: float | None,
) -> None:
    """Check Go binaries (files or directories of files) for upgrades."""
    try:
        settings = resolve_settings(
            show_all=show_all,
            cmd=emit_cmd,
            json=emit_json,
            show_errors=_given(ctx, "show_errors", show_errors),
            include_prerelease=_given(ctx, "include_prerelease", include_prerelease),
            upgradeable_only=upgradeable_only,
            proxy=proxy,
            rate=rate,
            timeout=timeout,
        )
    except ValueError as exc:
        raise click.UsageError(str(exc), ctx=ctx) from exc

    try:
        run_check(paths, settings)
    except CheckError as exc:
        raise click.ClickException(str(exc)) from exc


@cli.command("config")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
    help="Output format.",
)
@click.option("--section", default=None, help="Only show this configuration section.")
@click.option("--effective", is_flag=True, help="Show the resolved settings of a check run instead.")
def config_command(output_format: str, section: str | None, effective: bool) -> None:
    """Show the merged configuration."""
    if effective:
        try:
            settings = resolve_settings()
        except ValueError as exc:
            raise click.ClickException(str(exc)) from exc
        display_settings(settings, format=output_format)
        return
    display_config(format=output_format, section=section)


@cli.command("info")
def info_command() -> None:
    """Show package information."""
    __init__conf__.print_info()


def main() -> None:
    """Console script entry point."""
    cli(prog_name=__init__conf__.shell_command)


__all__ = [
    "cli",
    "main",
]
