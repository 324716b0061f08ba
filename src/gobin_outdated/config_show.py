"""Configuration display for the CLI ``config`` command.

Purpose
-------
Show the merged layered configuration, or the effective settings a ``check``
run would use after environment variables (GOPROXY, GOBIN, GOPATH) have been
applied, in human-readable or JSON form.

Contents
--------
* :func:`display_config` – displays the layered configuration
* :func:`display_settings` – displays resolved :class:`CheckerSettings`
"""

from __future__ import annotations

import json
from dataclasses import asdict
from enum import Enum
from typing import Any

import click
from lib_layered_config import Config

from .config import CheckerSettings, get_config


def _format_value(value: Any) -> str:
    """Format a configuration value for human-readable display."""
    if isinstance(value, Enum):
        return f'"{value.value}"'
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, str):
        return f'"{value}"'
    return str(value)


def _echo_section(section_name: str, section_data: Any) -> None:
    click.echo(f"\n[{section_name}]")
    if isinstance(section_data, dict):
        for key, value in section_data.items():
            click.echo(f"  {key} = {_format_value(value)}")
    else:
        click.echo(f"  {section_data}")


def display_config(
    *,
    format: str = "human",
    section: str | None = None,
    config: Config | None = None,
) -> None:
    """Display the merged configuration from all sources.

    Args:
        format: ``"human"`` for a TOML-like listing or ``"json"``.
        section: Only display this section.
        config: Configuration to show; defaults to :func:`get_config`.

    Raises:
        click.ClickException: If ``section`` does not exist or is empty.
    """
    cfg = get_config() if config is None else config
    as_json = format.lower() == "json"

    if section:
        section_data = cfg.get(section, default={})
        if not section_data:
            raise click.ClickException(f"Section '{section}' not found or empty")
        if as_json:
            click.echo(json.dumps({section: section_data}, indent=2))
        else:
            _echo_section(section, section_data)
        return

    if as_json:
        click.echo(cfg.to_json(indent=2))
        return
    data: dict[str, Any] = cfg.as_dict()
    for section_name, section_data in data.items():
        _echo_section(section_name, section_data)


def display_settings(settings: CheckerSettings, *, format: str = "human") -> None:
    """Display the effective settings of a check run.

    Example:
        >>> display_settings(CheckerSettings(install_dir="/home/u/go/bin"))  # doctest: +SKIP
        <BLANKLINE>
        [effective]
          output_mode = "plain"
          ...
    """
    data = asdict(settings)
    if format.lower() == "json":
        data["output_mode"] = settings.output_mode.value
        click.echo(json.dumps({"effective": data}, indent=2))
        return
    _echo_section("effective", data)


__all__ = [
    "display_config",
    "display_settings",
]
