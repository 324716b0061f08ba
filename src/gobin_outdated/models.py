"""Domain models for the upgrade check (dataclasses).

Purpose
-------
Define the data structures that flow through the check pipeline. These are
pure dataclasses used for internal business logic.

For JSON serialization, use the Pydantic schemas in schemas.py.

Contents
--------
* :class:`OutputMode` - Enumeration of the rendering modes
* :class:`BuildMetadata` - Module information embedded in a Go binary
* :class:`Result` - Outcome of checking a single file

Data Flow Pattern
-----------------
Binary -> BuildMetadata -> (proxy versions) -> Result -> Pydantic (serialize) -> Output
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class OutputMode(str, Enum):
    """How results are written to stdout.

    Attributes:
        PLAIN: One ``file: key=value`` line per result.
        CMD: The suggested ``go install`` command per result.
        JSON: One indented JSON object per result.
    """

    PLAIN = "plain"
    CMD = "cmd"
    JSON = "json"


@dataclass(frozen=True, slots=True)
class BuildMetadata:
    """Build information read from a Go executable.

    Attributes:
        module_path: Path of the main module (e.g. ``golang.org/x/tools``).
        installed_version: Version of the main module, possibly ``(devel)``
            or empty for local builds.
        package_path: Import path of the ``main`` package.
        go_version: Toolchain that produced the binary (e.g. ``go1.22.1``).
    """

    module_path: str
    installed_version: str
    package_path: str
    go_version: str = ""


@dataclass(frozen=True, slots=True)
class Result:
    """Outcome of checking one file.

    Attributes:
        file: Path of the checked file as given or discovered.
        installed: Installed module version.
        available: Highest version published on the proxy, after filtering.
        main_module: Module path of the binary.
        main_package: Package path of the binary.
        command: Suggested upgrade command, set only with ``available``.
        error: Failure description; None on success.
    """

    file: str
    installed: str = ""
    available: str = ""
    main_module: str = ""
    main_package: str = ""
    command: str = ""
    error: str | None = None

    @property
    def failed(self) -> bool:
        """Whether extraction or the proxy lookup failed."""
        return self.error is not None


__all__ = [
    "BuildMetadata",
    "OutputMode",
    "Result",
]
