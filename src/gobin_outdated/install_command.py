"""Derive the ``go install`` command that upgrades a binary in place.

Purpose
-------
The package path recorded in a binary rarely matches the name and location
the operator gave the installed file. The suggested command must reproduce
both, so three spellings exist:

1. Default install directory and default name: ``go install pkg@ver``
2. Default name in another directory: ``GOBIN=<dir> go install pkg@ver``
3. Renamed binary: install into a temporary directory, then ``mv`` the
   result onto the original path.

Contents
--------
* :func:`default_install_dir` - Where ``go install`` puts binaries
* :func:`command_for` - Build the upgrade command for one binary
"""

from __future__ import annotations

import os
import posixpath
import shlex
import tempfile
from collections.abc import Mapping
from pathlib import Path


def default_install_dir(environ: Mapping[str, str] | None = None) -> str:
    """Return the directory ``go install`` writes binaries to.

    ``GOBIN`` wins, then the first ``GOPATH`` entry plus ``bin``, then
    ``~/go/bin``.

    Args:
        environ: Environment to consult; defaults to ``os.environ``.

    Example:
        >>> default_install_dir({"GOBIN": "/opt/gobin"})
        '/opt/gobin'
        >>> default_install_dir({"GOPATH": "/srv/go"})
        '/srv/go/bin'
    """
    env = os.environ if environ is None else environ
    gobin = env.get("GOBIN", "")
    if gobin:
        return os.path.normpath(gobin)
    gopath = env.get("GOPATH", "").split(os.pathsep)[0]
    if not gopath:
        gopath = os.path.join(str(Path.home()), "go")
    return os.path.normpath(os.path.join(gopath, "bin"))


def command_for(package: str, version: str, dest: str, install_dir: str) -> str:
    """Return the shell command that installs ``package@version`` at ``dest``.

    Args:
        package: Import path of the binary's main package.
        version: Version to install.
        dest: Path of the existing binary.
        install_dir: Default install directory (see :func:`default_install_dir`).

    Returns:
        A single shell command line.

    Example:
        >>> command_for("example.com/tool/cmd/tool", "v2.0.0", "/home/u/go/bin/tool", "/home/u/go/bin")
        'go install example.com/tool/cmd/tool@v2.0.0'
        >>> command_for("example.com/tool/cmd/tool", "v2.0.0", "/usr/local/bin/tool", "/home/u/go/bin")
        'GOBIN=/usr/local/bin go install example.com/tool/cmd/tool@v2.0.0'
    """
    dest_dir, dest_file = os.path.split(dest)
    dest_dir = os.path.normpath(dest_dir or ".")
    pkg_base = posixpath.basename(package)
    target = shlex.quote(f"{package}@{version}")

    if dest_dir == os.path.normpath(install_dir) and dest_file == pkg_base:
        return f"go install {target}"

    if dest_file == pkg_base:
        return f"GOBIN={shlex.quote(dest_dir)} go install {target}"

    tmp_dir = tempfile.gettempdir()
    tmp_file = os.path.join(tmp_dir, pkg_base)
    return (
        f"GOBIN={shlex.quote(tmp_dir)} go install {target}"
        f" && mv {shlex.quote(tmp_file)} {shlex.quote(dest)}"
    )


__all__ = [
    "command_for",
    "default_install_dir",
]
