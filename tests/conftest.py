"""Shared fixtures: hand-built Go executables, fake configs, proxy mocks."""

from __future__ import annotations

import io
import json
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

import httpx
import pytest

from gobin_outdated.config import CheckerSettings
from gobin_outdated.render import Renderer

# Sentinels the Go linker writes around the module information
MODINFO_START = bytes.fromhex("3077af0c9274080241e1c107e6d618e6")
MODINFO_END = bytes.fromhex("f932433186182072008242104116d8f2")
BUILDINFO_MAGIC = b"\xff Go buildinf:"


def uvarint(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def sleb128(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        done = (value == 0 and not byte & 0x40) or (value == -1 and byte & 0x40)
        out.append(byte if done else byte | 0x80)
        if done:
            return bytes(out)


def buildinfo_blob(
    *,
    module: str = "example.com/tool",
    version: str = "v1.0.0",
    package: str = "example.com/tool/cmd/tool",
    go_version: str = "go1.22.1",
    inline: bool = True,
    with_modinfo: bool = True,
) -> bytes:
    """Return the header and strings the Go linker writes into ``.go.buildinfo``."""
    modinfo = b""
    if with_modinfo:
        lines = f"path\t{package}\nmod\t{module}\t{version}\th1:abc=\n".encode()
        modinfo = MODINFO_START + lines + MODINFO_END
    flags = 0x2 if inline else 0x0
    header = BUILDINFO_MAGIC + bytes([8, flags]) + b"\x00" * 16
    version_bytes = go_version.encode()
    return header + uvarint(len(version_bytes)) + version_bytes + uvarint(len(modinfo)) + modinfo


def go_executable_bytes(*, exe_magic: bytes = b"\x7fELF", **blob_kwargs: Any) -> bytes:
    """Return a minimal file that carries Go build info like a real binary."""
    return exe_magic.ljust(64, b"\x00") + buildinfo_blob(**blob_kwargs) + b"\x00" * 32


def go_wasm_bytes(*, address: int = 0x1000, **blob_kwargs: Any) -> bytes:
    """Return a wasm module whose only data segment, loaded at ``address``, holds the build info."""
    blob = buildinfo_blob(**blob_kwargs)
    segment = uvarint(0) + b"\x41" + sleb128(address) + b"\x0b" + uvarint(len(blob)) + blob
    body = uvarint(1) + segment
    custom = uvarint(len(b"name")) + b"name"
    return (
        b"\x00asm\x01\x00\x00\x00"
        + b"\x00" + uvarint(len(custom)) + custom
        + b"\x0b" + uvarint(len(body)) + body
    )


@pytest.fixture
def go_binary(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a fake Go executable into ``tmp_path``."""

    def _make(name: str = "tool", directory: Path | None = None, **kwargs: Any) -> Path:
        target = (directory or tmp_path) / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(go_executable_bytes(**kwargs))
        return target

    return _make


class FakeConfig:
    """Stand-in for lib_layered_config's Config (``get`` with ``default=``)."""

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data = dict(data or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def as_dict(self) -> dict[str, Any]:
        return dict(self._data)

    def to_json(self, indent: int | None = None) -> str:
        return json.dumps(self._data, indent=indent)


@pytest.fixture
def fake_config() -> Callable[..., FakeConfig]:
    return FakeConfig


def proxy_transport(
    versions: Mapping[str, Iterable[str]],
    *,
    status: int = 200,
    seen: list[str] | None = None,
) -> httpx.MockTransport:
    """Mock proxy answering ``@v/list`` for the modules in ``versions``."""

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if seen is not None:
            seen.append(path)
        module = path.strip("/").removesuffix("/@v/list")
        if status != 200:
            return httpx.Response(status)
        if module not in versions:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, text="\n".join(versions[module]) + "\n")

    return httpx.MockTransport(handler)


class CapturingRenderer(Renderer):
    """Renderer writing into in-memory streams."""

    def __init__(self, settings: CheckerSettings) -> None:
        self.stdout = io.StringIO()
        self.stderr = io.StringIO()
        super().__init__(settings, out=self.stdout, err=self.stderr)


@pytest.fixture
def settings_factory(tmp_path: Path) -> Callable[..., CheckerSettings]:
    """Build settings with a fast rate and a temp install dir."""

    def _make(**overrides: Any) -> CheckerSettings:
        values: dict[str, Any] = {
            "proxy_url": "https://proxy.test",
            "rate": 1000.0,
            "install_dir": str(tmp_path / "gobin"),
        }
        values.update(overrides)
        return CheckerSettings(**values)

    return _make
