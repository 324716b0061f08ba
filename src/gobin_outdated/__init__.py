"""Public package surface for checking installed Go binaries for upgrades.

This package reads the module information embedded in Go executables,
lists the published versions of each binary's module on a Go module proxy,
and reports which binaries have a newer version available.

Main API
--------
* :func:`run_check` - Check files/directories and render the results
* :func:`resolve_settings` - Build the immutable settings of a run
* :func:`read_build_info` - Read module metadata from a Go executable
* :class:`Result` - Data class for one checked file
"""

from __future__ import annotations

from .__init__conf__ import print_info
from .buildinfo import BuildInfoError, read_build_info
from .checker import CheckError, Checker, run_check, run_check_async
from .config import CheckerSettings, get_config, resolve_settings
from .models import BuildMetadata, OutputMode, Result
from .ratelimit import RateLimitedTransport, TokenBucket
from .registry import GoProxyClient, RegistryError

__all__ = [
    "BuildInfoError",
    "BuildMetadata",
    "CheckError",
    "Checker",
    "CheckerSettings",
    "GoProxyClient",
    "OutputMode",
    "RateLimitedTransport",
    "RegistryError",
    "Result",
    "TokenBucket",
    "get_config",
    "print_info",
    "read_build_info",
    "resolve_settings",
    "run_check",
    "run_check_async",
]
