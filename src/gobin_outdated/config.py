"""Configuration management using lib_layered_config.

Purpose
-------
Load the ``[checker]`` defaults and every user override (app, host and
user config files, ``.env`` files, environment variables) in a fixed
precedence order, then fold in command-line flags to produce the immutable
:class:`CheckerSettings` a run works with.

Contents
--------
* :func:`get_config` – loads configuration with lib_layered_config
* :func:`get_default_config_path` – returns path to bundled default config
* :class:`CheckerSettings` – immutable settings of one run
* :func:`resolve_settings` – merges config, environment and CLI flags

Configuration identifiers (vendor, app, slug) are imported from
:mod:`gobin_outdated.__init__conf__` as LAYEREDCONF_* constants.

System Role
-----------
Acts as the configuration adapter layer. Environment lookups (GOPROXY,
GOBIN, GOPATH, HOME) happen here, once, so the checker and renderer only
ever see a frozen settings value.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

from lib_layered_config import Config, read_config

from . import __init__conf__
from .install_command import default_install_dir
from .models import OutputMode
from .ratelimit import DEFAULT_RATE
from .registry import DEFAULT_PROXY_URL, DEFAULT_TIMEOUT, proxy_from_env

logger = logging.getLogger(__name__)

# Environment variable prefix for native (short) env vars
_ENV_PREFIX = "GOBIN_OUTDATED_"


def get_default_config_path() -> Path:
    """Return the path to the bundled default configuration file.

    Example:
        >>> path = get_default_config_path()
        >>> path.name
        'defaultconfig.toml'
    """
    return Path(__file__).parent / "defaultconfig.toml"


@lru_cache(maxsize=1)
def get_config(*, start_dir: str | None = None) -> Config:
    """Load layered configuration with application defaults.

    Layers are merged lowest first: bundled defaults, app, host, user,
    ``.env`` file, environment.

    Args:
        start_dir: Directory where ``.env`` lookup starts; the current
            working directory when None.

    Returns:
        Merged, read-only configuration. Cached for the process lifetime.
    """
    return read_config(
        vendor=__init__conf__.LAYEREDCONF_VENDOR,
        app=__init__conf__.LAYEREDCONF_APP,
        slug=__init__conf__.LAYEREDCONF_SLUG,
        default_file=get_default_config_path(),
        start_dir=start_dir,
    )


@dataclass(frozen=True, slots=True)
class CheckerSettings:
    """Immutable settings for one check run.

    Attributes:
        output_mode: How results are rendered.
        show_all: Print results that are not upgradeable too.
        show_errors: Print per-file errors.
        include_prerelease: Consider pre-release versions as upgrade targets.
        upgradeable_only: Print upgradeable results only (errors hidden).
        proxy_url: Go module proxy base URL.
        rate: Maximum proxy queries per second.
        timeout: Per-request timeout in seconds.
        install_dir: Default ``go install`` target directory.
    """

    output_mode: OutputMode = OutputMode.PLAIN
    show_all: bool = False
    show_errors: bool = True
    include_prerelease: bool = True
    upgradeable_only: bool = False
    proxy_url: str = DEFAULT_PROXY_URL
    rate: float = DEFAULT_RATE
    timeout: float = DEFAULT_TIMEOUT
    install_dir: str = ""

    def __post_init__(self) -> None:
        """Reject option combinations that make no sense together."""
        if self.show_all and self.output_mode is OutputMode.CMD:
            raise ValueError("cannot specify both --all and --cmd")
        if self.show_all and self.upgradeable_only:
            raise ValueError("cannot specify both --all and --upgradeable-only")
        if self.rate <= 0:
            raise ValueError(f"rate must be positive, got {self.rate}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")


def _select_output_mode(*, cmd: bool, json: bool) -> OutputMode:
    if cmd and json:
        raise ValueError("cannot specify both --cmd and --json")
    if cmd:
        return OutputMode.CMD
    if json:
        return OutputMode.JSON
    return OutputMode.PLAIN


def _env_float(environ: Mapping[str, str], name: str, fallback: float) -> float:
    raw = environ.get(f"{_ENV_PREFIX}{name}")
    if not raw:
        return fallback
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s%s=%r", _ENV_PREFIX, name, raw)
        return fallback


def _resolve_proxy(section: Mapping[str, Any], environ: Mapping[str, str]) -> str:
    if env_proxy := environ.get(f"{_ENV_PREFIX}PROXY"):
        return env_proxy.rstrip("/")
    if config_proxy := section.get("proxy", ""):
        return str(config_proxy).rstrip("/")
    return proxy_from_env(environ.get("GOPROXY"))


def resolve_settings(
    *,
    show_all: bool = False,
    cmd: bool = False,
    json: bool = False,
    show_errors: bool | None = None,
    include_prerelease: bool | None = None,
    upgradeable_only: bool = False,
    proxy: str | None = None,
    rate: float | None = None,
    timeout: float | None = None,
    config: Config | None = None,
    environ: Mapping[str, str] | None = None,
) -> CheckerSettings:
    """Resolve the settings of a run from flags, environment and config.

    Values are resolved in the following precedence order (highest wins):
    1. Explicit arguments (CLI flags); None means "not given"
    2. Native environment variables (GOBIN_OUTDATED_PROXY, _RATE, _TIMEOUT)
    3. lib_layered_config layers (``[checker]`` section)
    4. ``GOPROXY`` (proxy only), then built-in defaults

    Raises:
        ValueError: For incompatible flag combinations or non-positive
            rate/timeout values.
    """
    output_mode = _select_output_mode(cmd=cmd, json=json)
    env = os.environ if environ is None else environ
    cfg = get_config() if config is None else config
    section: Mapping[str, Any] = cfg.get("checker", default={}) or {}

    resolved_rate = _env_float(env, "RATE", float(section.get("rate", DEFAULT_RATE)))
    resolved_timeout = _env_float(env, "TIMEOUT", float(section.get("timeout", DEFAULT_TIMEOUT)))

    settings = CheckerSettings(
        output_mode=output_mode,
        show_all=show_all,
        show_errors=bool(section.get("show_errors", True)) if show_errors is None else show_errors,
        include_prerelease=(
            bool(section.get("include_prerelease", True)) if include_prerelease is None else include_prerelease
        ),
        upgradeable_only=upgradeable_only,
        proxy_url=proxy.rstrip("/") if proxy else _resolve_proxy(section, env),
        rate=resolved_rate if rate is None else rate,
        timeout=resolved_timeout if timeout is None else timeout,
        install_dir=default_install_dir(env),
    )
    logger.debug("Resolved settings: %s", settings)
    return settings


__all__ = [
    "CheckerSettings",
    "get_config",
    "get_default_config_path",
    "resolve_settings",
]
