"""Reader for the build information embedded in Go executables.

Purpose
-------
Every module-aware Go build (Go 1.18 and later) stores a ``.go.buildinfo``
blob holding the toolchain version and the module information printed by
``go version -m``. This module finds that blob and extracts the main module
path, its version and the main package path.

Contents
--------
* :func:`read_build_info` - Read :class:`BuildMetadata` from a file
* :func:`parse_build_info` - Same, from an in-memory buffer
* :class:`BuildInfoError` - Raised for unreadable or non-Go files

Blob Layout
-----------
A 32-byte header aligned to 16 bytes in memory: the magic
``\\xff Go buildinf:``, the pointer size, a flags byte, padding. With the
inline flag set the header is followed by two uvarint length-prefixed
strings: the Go version and the module information, the latter wrapped in
16-byte sentinels. Native executables map the header at a 16-byte aligned
file offset; WebAssembly modules only align it within the memory address of
the data segment holding it, so their data section is parsed first.
"""

from __future__ import annotations

import logging
import mmap
from pathlib import Path
from typing import NamedTuple, Union

from .models import BuildMetadata

logger = logging.getLogger(__name__)

_BUILDINFO_MAGIC = b"\xff Go buildinf:"
_BUILDINFO_ALIGN = 16
_HEADER_SIZE = 32
_FLAG_VERSION_INLINE = 0x2
_SENTINEL_SIZE = 16
_MAX_STRING_SIZE = 1 << 20
_WASM_MAGIC = b"\x00asm"
_WASM_HEADER_SIZE = 8
_WASM_DATA_SECTION = 11
_WASM_I32_CONST = 0x41
_WASM_END = 0x0B

_EXECUTABLE_MAGICS: tuple[bytes, ...] = (
    b"\x7fELF",  # ELF
    b"\xfe\xed\xfa\xce",  # Mach-O 32-bit big endian
    b"\xfe\xed\xfa\xcf",  # Mach-O 64-bit big endian
    b"\xce\xfa\xed\xfe",  # Mach-O 32-bit little endian
    b"\xcf\xfa\xed\xfe",  # Mach-O 64-bit little endian
    b"MZ",  # PE
    b"\x01\xdf",  # XCOFF 32-bit
    b"\x01\xf7",  # XCOFF 64-bit
    _WASM_MAGIC,  # WebAssembly
)

Buffer = Union[bytes, bytearray, mmap.mmap]


class _Region(NamedTuple):
    """File range ``[start, end)`` that is loaded at memory ``address``."""

    start: int
    end: int
    address: int


class BuildInfoError(Exception):
    """Raised when a file carries no readable Go build information."""


def _is_executable(prefix: bytes) -> bool:
    return any(prefix.startswith(magic) for magic in _EXECUTABLE_MAGICS)


def _read_uvarint(buf: Buffer, pos: int) -> tuple[int, int] | None:
    """Decode an unsigned LEB128 varint at ``pos``; None if truncated."""
    value = 0
    shift = 0
    for i in range(10):
        if pos + i >= len(buf):
            return None
        byte = buf[pos + i]
        value |= (byte & 0x7F) << shift
        if byte < 0x80:
            return value, pos + i + 1
        shift += 7
    return None


def _read_string(buf: Buffer, pos: int) -> tuple[bytes, int] | None:
    decoded = _read_uvarint(buf, pos)
    if decoded is None:
        return None
    size, start = decoded
    if size > _MAX_STRING_SIZE or start + size > len(buf):
        return None
    return bytes(buf[start : start + size]), start + size


def _decode_inline(buf: Buffer, offset: int) -> tuple[str, bytes] | None:
    """Decode the two inline strings following the header at ``offset``."""
    first = _read_string(buf, offset + _HEADER_SIZE)
    if first is None:
        return None
    raw_version, pos = first
    second = _read_string(buf, pos)
    if second is None:
        return None
    raw_modinfo, _ = second
    try:
        go_version = raw_version.decode("utf-8")
    except UnicodeDecodeError:
        return None
    if not go_version.startswith("go"):
        return None
    return go_version, raw_modinfo


def _read_sleb(buf: Buffer, pos: int) -> tuple[int, int] | None:
    """Decode a signed LEB128 varint at ``pos``; None if truncated."""
    value = 0
    shift = 0
    for i in range(10):
        if pos + i >= len(buf):
            return None
        byte = buf[pos + i]
        value |= (byte & 0x7F) << shift
        shift += 7
        if byte < 0x80:
            if byte & 0x40:
                value -= 1 << shift
            return value, pos + i + 1
    return None


def _wasm_segments(buf: Buffer, pos: int, end: int) -> list[_Region]:
    """Return the active segments of a wasm data section body."""
    segments: list[_Region] = []
    decoded = _read_uvarint(buf, pos)
    if decoded is None:
        return segments
    count, pos = decoded
    for _ in range(count):
        decoded = _read_uvarint(buf, pos)
        if decoded is None:
            break
        flags, pos = decoded
        address: int | None = None
        if flags == 2:
            decoded = _read_uvarint(buf, pos)
            if decoded is None:
                break
            pos = decoded[1]
        if flags in (0, 2):
            if pos >= end or buf[pos] != _WASM_I32_CONST:
                break
            const = _read_sleb(buf, pos + 1)
            if const is None or const[1] >= end or buf[const[1]] != _WASM_END:
                break
            address, pos = const[0], const[1] + 1
        elif flags != 1:
            break
        decoded = _read_uvarint(buf, pos)
        if decoded is None:
            break
        size, pos = decoded
        # Passive segments have no memory address to align against
        if address is not None:
            segments.append(_Region(pos, min(pos + size, end), address))
        pos += size
    return segments


def _wasm_data_regions(buf: Buffer) -> list[_Region]:
    """Map the data segments of a wasm module to their memory addresses."""
    regions: list[_Region] = []
    pos = _WASM_HEADER_SIZE
    while pos < len(buf):
        section_id = buf[pos]
        decoded = _read_uvarint(buf, pos + 1)
        if decoded is None:
            break
        size, body = decoded
        if section_id == _WASM_DATA_SECTION:
            regions.extend(_wasm_segments(buf, body, body + size))
        pos = body + size
    return regions


def _search_regions(buf: Buffer) -> list[_Region]:
    if bytes(buf[:4]) == _WASM_MAGIC:
        return _wasm_data_regions(buf)
    return [_Region(0, len(buf), 0)]


def _find_build_info(buf: Buffer) -> tuple[str, bytes]:
    """Locate the build info header and return (go version, raw module info).

    The header is aligned in memory, so alignment is checked against the
    address each searched region is loaded at.
    """
    old_format = False
    for region in _search_regions(buf):
        start = region.start
        while True:
            offset = buf.find(_BUILDINFO_MAGIC, start, region.end)
            if offset < 0:
                break
            start = offset + 1
            if (region.address + offset - region.start) % _BUILDINFO_ALIGN:
                continue
            if offset + _HEADER_SIZE > len(buf):
                continue
            ptr_size = buf[offset + len(_BUILDINFO_MAGIC)]
            flags = buf[offset + len(_BUILDINFO_MAGIC) + 1]
            if ptr_size not in (4, 8):
                continue
            if not flags & _FLAG_VERSION_INLINE:
                old_format = True
                continue
            decoded = _decode_inline(buf, offset)
            if decoded is not None:
                return decoded

    if old_format:
        raise BuildInfoError("unsupported build info format (built before go1.18)")
    raise BuildInfoError("not a Go executable")


def _strip_sentinels(raw_modinfo: bytes) -> str:
    size = len(raw_modinfo)
    if size >= 2 * _SENTINEL_SIZE + 1 and raw_modinfo[size - _SENTINEL_SIZE - 1] == ord("\n"):
        return raw_modinfo[_SENTINEL_SIZE : size - _SENTINEL_SIZE].decode("utf-8", errors="replace")
    return ""


def _parse_modinfo(modinfo: str) -> tuple[str, str, str]:
    """Extract (package path, module path, module version) from module info."""
    package_path = module_path = module_version = ""
    for line in modinfo.splitlines():
        key, _, rest = line.partition("\t")
        if key == "path":
            package_path = rest
        elif key == "mod":
            fields = rest.split("\t")
            module_path = fields[0]
            module_version = fields[1] if len(fields) > 1 else ""
    return package_path, module_path, module_version


def parse_build_info(buf: Buffer) -> BuildMetadata:
    """Parse build information from the contents of an executable.

    Args:
        buf: File contents (bytes or a memory map).

    Returns:
        Module metadata of the executable.

    Raises:
        BuildInfoError: If the buffer is not a Go executable with module
            information.
    """
    if not _is_executable(bytes(buf[:4])):
        raise BuildInfoError("unrecognized file format")

    go_version, raw_modinfo = _find_build_info(buf)
    package_path, module_path, version = _parse_modinfo(_strip_sentinels(raw_modinfo))
    if not module_path:
        raise BuildInfoError("no module information")

    return BuildMetadata(
        module_path=module_path,
        installed_version=version,
        package_path=package_path,
        go_version=go_version,
    )


def read_build_info(path: Path | str) -> BuildMetadata:
    """Read the module build information of a Go executable.

    Args:
        path: Path to the candidate executable.

    Returns:
        Module metadata of the executable.

    Raises:
        BuildInfoError: If the file cannot be read or is not a Go
            executable. The message is prefixed with ``reading <path>``.

    Example:
        >>> info = read_build_info(Path.home() / "go/bin/gopls")  # doctest: +SKIP
        >>> info.module_path  # doctest: +SKIP
        'golang.org/x/tools/gopls'
    """
    path = Path(path)
    try:
        with path.open("rb") as fh:
            if path.stat().st_size < 4:
                raise BuildInfoError("unrecognized file format")
            with mmap.mmap(fh.fileno(), 0, access=mmap.ACCESS_READ) as buf:
                info = parse_build_info(buf)
    except (BuildInfoError, OSError, ValueError) as exc:
        raise BuildInfoError(f"reading {path}: {exc}") from exc

    logger.debug("Read build info from %s: %s %s", path, info.module_path, info.installed_version)
    return info


__all__ = [
    "BuildInfoError",
    "parse_build_info",
    "read_build_info",
]
