"""Static package metadata surfaced to CLI commands and configuration.

Purpose
-------
Keep the distribution name, version and lib_layered_config identifiers in a
single place so the CLI ``info`` command and the configuration loader agree.

Contents
--------
* Module-level metadata constants (``name``, ``title``, ``version`` ...)
* ``LAYEREDCONF_*`` identifiers consumed by :mod:`gobin_outdated.config`
* :func:`print_info` – renders the metadata block for ``gobin-outdated info``
"""

from __future__ import annotations

import click

name = "gobin_outdated"
title = "Report installed Go binaries that have newer module versions"
version = "1.0.0"
shell_command = "gobin-outdated"

# lib_layered_config identifiers (platform-specific config directories)
LAYEREDCONF_VENDOR = "gobin-outdated"
LAYEREDCONF_APP = "gobin-outdated"
LAYEREDCONF_SLUG = "gobin-outdated"


def print_info() -> None:
    """Print the summarised metadata block used by the ``info`` command."""
    fields = [
        ("name", name),
        ("title", title),
        ("version", version),
        ("shell_command", shell_command),
        ("config_slug", LAYEREDCONF_SLUG),
    ]
    pad = max(len(label) for label, _ in fields)
    click.echo(f"Info for {name}:\n")
    for label, value in fields:
        click.echo(f"    {label.ljust(pad)} = {value}")


__all__ = [
    "LAYEREDCONF_APP",
    "LAYEREDCONF_SLUG",
    "LAYEREDCONF_VENDOR",
    "name",
    "print_info",
    "shell_command",
    "title",
    "version",
]
