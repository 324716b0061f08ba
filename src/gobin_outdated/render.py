"""Result rendering for plain text, shell command and JSON output.

Purpose
-------
Decide whether a :class:`Result` is printed under the active settings and
write it in the selected :class:`OutputMode`.

Contents
--------
* :func:`is_upgradeable` - Whether a result has a newer valid version
* :func:`should_emit` - Suppression policy
* :func:`format_plain` - ``file: package=... installed=... available=...``
* :class:`Renderer` - Writes results to stdout/stderr

System Role
-----------
The last stage of the pipeline. The checker hands over each result as soon
as it is built; the renderer never feeds anything back.
"""

from __future__ import annotations

import logging
from typing import IO

import click

from . import semver
from .config import CheckerSettings
from .models import OutputMode, Result
from .schemas import ResultSchema

logger = logging.getLogger(__name__)


def is_upgradeable(result: Result) -> bool:
    """Return True when both versions are valid and installed < available.

    Example:
        >>> is_upgradeable(Result(file="x", installed="v1.0.0", available="v1.2.0"))
        True
        >>> is_upgradeable(Result(file="x", installed="(devel)", available="v1.2.0"))
        False
    """
    if not semver.is_valid(result.installed) or not semver.is_valid(result.available):
        return False
    return semver.compare(result.installed, result.available) < 0


def should_emit(result: Result, settings: CheckerSettings) -> bool:
    """Apply the suppression policy to ``result``.

    Errors are shown unless ``show_errors`` is off or only upgradeable
    results were requested. Other results are shown when upgradeable, or
    always with ``show_all`` (which cmd mode never honours). In cmd mode a
    result without a command has nothing to print.
    """
    if result.failed:
        return settings.show_errors and not settings.upgradeable_only
    if settings.output_mode is OutputMode.CMD and not result.command:
        return False
    if settings.show_all and settings.output_mode is not OutputMode.CMD:
        return True
    return is_upgradeable(result)


def format_plain(result: Result) -> str:
    """Format a successful result as one line, omitting empty fields.

    Example:
        >>> format_plain(Result(file="/bin/x", installed="v1.0.0", main_package="example.com/x"))
        '/bin/x: package=example.com/x installed=v1.0.0'
    """
    parts = [f"{result.file}:"]
    if result.main_package:
        parts.append(f"package={result.main_package}")
    if result.installed:
        parts.append(f"installed={result.installed}")
    if result.available:
        parts.append(f"available={result.available}")
    return " ".join(parts)


def format_error(result: Result) -> str:
    return f"{result.file}: {result.error}"


class Renderer:
    """Write results according to the run's settings.

    Args:
        settings: Resolved settings of the run.
        out: Stream for results; defaults to stdout.
        err: Stream for per-file errors; defaults to stderr.
    """

    def __init__(
        self,
        settings: CheckerSettings,
        *,
        out: IO[str] | None = None,
        err: IO[str] | None = None,
    ) -> None:
        self.settings = settings
        self._out = out
        self._err = err

    def render(self, result: Result) -> tuple[str, bool]:
        """Return the text for ``result`` and whether it goes to stderr."""
        mode = self.settings.output_mode
        if mode is OutputMode.JSON:
            return ResultSchema.from_result(result).to_json(), False
        if result.failed:
            return format_error(result), True
        if mode is OutputMode.CMD:
            return result.command, False
        return format_plain(result), False

    def emit(self, result: Result) -> bool:
        """Write ``result`` if the suppression policy lets it through.

        Returns:
            True if something was written.
        """
        if not should_emit(result, self.settings):
            logger.debug("Suppressed result for %s", result.file)
            return False

        text, to_stderr = self.render(result)
        stream = self._err if to_stderr else self._out
        try:
            click.echo(text, file=stream, err=to_stderr)
        except OSError as exc:
            logger.error("Writing result for %s failed: %s", result.file, exc)
            return False
        return True


__all__ = [
    "Renderer",
    "format_error",
    "format_plain",
    "is_upgradeable",
    "should_emit",
]
