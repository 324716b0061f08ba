"""Core checker that decides which Go binaries can be upgraded.

Purpose
-------
Orchestrate the check pipeline: expand input paths to candidate files, read
each file's build information, list the published versions of its module
through the rate-limited proxy client, and build an immutable
:class:`Result` per file.

Contents
--------
* :func:`select_versions` - Apply the pre-release policy to a version list
* :func:`build_result` - Assemble a successful result
* :class:`Checker` - Async per-path and per-file processing
* :func:`run_check` - Run a whole batch and render every result
* :class:`CheckError` - Fatal, run-level failure

System Role
-----------
The central component that coordinates all other modules. Per-file problems
end up in ``Result.error``; only unreadable top-level paths abort a run.
"""

from __future__ import annotations

import asyncio
import logging
import os
import stat
from collections.abc import AsyncIterator, Callable, Iterable
from dataclasses import dataclass

import httpx

from . import semver
from .buildinfo import BuildInfoError, read_build_info
from .config import CheckerSettings
from .install_command import command_for
from .models import BuildMetadata, Result
from .ratelimit import TokenBucket
from .registry import GoProxyClient, RegistryError, build_http_client
from .render import Renderer

logger = logging.getLogger(__name__)


class CheckError(Exception):
    """Raised when a top-level input path cannot be processed at all."""


def select_versions(versions: Iterable[str], *, include_prerelease: bool) -> list[str]:
    """Return the candidate versions sorted ascending.

    Args:
        versions: Versions published on the proxy.
        include_prerelease: Keep versions with a pre-release suffix.

    Returns:
        New sorted list; the last element is the upgrade target.

    Example:
        >>> select_versions(["v1.1.0-beta", "v1.0.0"], include_prerelease=False)
        ['v1.0.0']
        >>> select_versions(["v1.1.0-beta", "v1.0.0"], include_prerelease=True)
        ['v1.0.0', 'v1.1.0-beta']
    """
    candidates = [v for v in versions if include_prerelease or not semver.prerelease(v)]
    semver.sort(candidates)
    return candidates


def build_result(
    path: str,
    info: BuildMetadata,
    versions: Iterable[str],
    settings: CheckerSettings,
) -> Result:
    """Assemble the result for a file whose metadata and versions are known."""
    candidates = select_versions(versions, include_prerelease=settings.include_prerelease)
    available = candidates[-1] if candidates else ""
    command = ""
    if available and info.package_path:
        command = command_for(info.package_path, available, path, settings.install_dir)
    return Result(
        file=path,
        installed=info.installed_version,
        available=available,
        main_module=info.module_path,
        main_package=info.package_path,
        command=command,
    )


@dataclass
class Checker:
    """Check files and directories for upgradeable Go binaries.

    Attributes:
        registry: Proxy client shared by the whole run.
        settings: Resolved settings of the run.
        read_info: Build information reader (swappable in tests).
    """

    registry: GoProxyClient
    settings: CheckerSettings
    read_info: Callable[[str], BuildMetadata] = read_build_info

    async def check_file(self, path: str) -> Result:
        """Check a single file. Never raises for per-file problems."""
        logger.debug("Checking %s", path)
        try:
            info = self.read_info(path)
        except BuildInfoError as exc:
            return Result(file=path, error=str(exc))

        try:
            versions = await self.registry.list_versions(info.module_path)
        except RegistryError as exc:
            return Result(
                file=path,
                main_module=info.module_path,
                main_package=info.package_path,
                error=f"listing versions for {info.module_path}: {exc}",
            )

        return build_result(path, info, versions, self.settings)

    def _list_dir(self, path: str) -> list[str]:
        try:
            with os.scandir(path) as entries:
                names = sorted(entry.name for entry in entries)
        except OSError as exc:
            raise CheckError(f"reading {path}: {exc}") from exc
        return [os.path.join(path, name) for name in names]

    async def check_path(self, path: str) -> AsyncIterator[Result]:
        """Yield the results for a file or every entry of a directory.

        Raises:
            CheckError: If ``path`` cannot be stat'ed or, for a directory,
                listed.
        """
        try:
            mode = os.stat(path).st_mode
        except OSError as exc:
            raise CheckError(f"statting {path}: {exc}") from exc

        files = self._list_dir(path) if stat.S_ISDIR(mode) else [path]
        for file in files:
            yield await self.check_file(file)

    async def check_paths(self, paths: Iterable[str]) -> AsyncIterator[Result]:
        """Yield results for every input path, in order."""
        for path in paths:
            async for result in self.check_path(path):
                yield result


async def run_check_async(
    paths: Iterable[str],
    settings: CheckerSettings,
    *,
    renderer: Renderer | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    read_info: Callable[[str], BuildMetadata] = read_build_info,
) -> list[Result]:
    """Check ``paths`` and render each result as soon as it is built.

    Args:
        paths: Files and directories given by the operator.
        settings: Resolved settings of the run.
        renderer: Output writer; defaults to stdout/stderr.
        transport: Network transport for the proxy client (tests).
        read_info: Build information reader (tests).

    Returns:
        All results, including suppressed ones.

    Raises:
        CheckError: On a fatal, run-level failure.
    """
    renderer = renderer or Renderer(settings)
    limiter = TokenBucket(settings.rate)
    results: list[Result] = []

    logger.info("Querying %s at up to %.2f requests/s", settings.proxy_url, settings.rate)
    async with build_http_client(limiter, timeout=settings.timeout, transport=transport) as client:
        checker = Checker(
            registry=GoProxyClient(client=client, base_url=settings.proxy_url),
            settings=settings,
            read_info=read_info,
        )
        async for result in checker.check_paths(paths):
            renderer.emit(result)
            results.append(result)

    failed = sum(1 for r in results if r.failed)
    logger.info("Checked %d files (%d failed)", len(results), failed)
    return results


def run_check(
    paths: Iterable[str],
    settings: CheckerSettings,
    *,
    renderer: Renderer | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    read_info: Callable[[str], BuildMetadata] = read_build_info,
) -> list[Result]:
    """Synchronous wrapper for :func:`run_check_async`."""
    return asyncio.run(
        run_check_async(
            paths,
            settings,
            renderer=renderer,
            transport=transport,
            read_info=read_info,
        )
    )


__all__ = [
    "CheckError",
    "Checker",
    "build_result",
    "run_check",
    "run_check_async",
    "select_versions",
]
