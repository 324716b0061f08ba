"""Build info stories: what a Go binary says about itself.

The fixtures in ``conftest`` assemble files that mimic the layout the Go
linker writes: an executable magic, an aligned ``\\xff Go buildinf:`` header
and the sentinel-wrapped module information.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from conftest import BUILDINFO_MAGIC, go_executable_bytes, go_wasm_bytes
from gobin_outdated.buildinfo import (
    BuildInfoError,
    _read_sleb,  # pyright: ignore[reportPrivateUsage]
    _read_uvarint,  # pyright: ignore[reportPrivateUsage]
    _strip_sentinels,  # pyright: ignore[reportPrivateUsage]
    parse_build_info,
    read_build_info,
)
from gobin_outdated.models import BuildMetadata


# ════════════════════════════════════════════════════════════════════════════
# parse_build_info: Recognised executables
# ════════════════════════════════════════════════════════════════════════════


@pytest.mark.os_agnostic
def test_parse_reads_module_version_and_package_from_elf() -> None:
    info = parse_build_info(go_executable_bytes())

    assert info == BuildMetadata(
        module_path="example.com/tool",
        installed_version="v1.0.0",
        package_path="example.com/tool/cmd/tool",
        go_version="go1.22.1",
    )


@pytest.mark.os_agnostic
@pytest.mark.parametrize(
    "magic",
    [b"\xcf\xfa\xed\xfe", b"\xfe\xed\xfa\xce", b"MZ", b"\x01\xf7"],
    ids=["macho64", "macho32be", "pe", "xcoff64"],
)
def test_parse_accepts_other_executable_formats(magic: bytes) -> None:
    info = parse_build_info(go_executable_bytes(exe_magic=magic))

    assert info.module_path == "example.com/tool"


@pytest.mark.os_agnostic
def test_parse_keeps_pseudo_version_verbatim() -> None:
    info = parse_build_info(go_executable_bytes(version="v0.0.0-20240101120000-abcdef123456"))

    assert info.installed_version == "v0.0.0-20240101120000-abcdef123456"


@pytest.mark.os_agnostic
def test_parse_reports_devel_version_of_local_builds() -> None:
    info = parse_build_info(go_executable_bytes(version="(devel)"))

    assert info.installed_version == "(devel)"


@pytest.mark.os_agnostic
def test_parse_accepts_bytearray_buffers() -> None:
    info = parse_build_info(bytearray(go_executable_bytes(module="example.com/other")))

    assert info.module_path == "example.com/other"


# ════════════════════════════════════════════════════════════════════════════
# parse_build_info: WebAssembly modules align within the data segment
# ════════════════════════════════════════════════════════════════════════════


@pytest.mark.os_agnostic
def test_parse_reads_wasm_header_unaligned_in_file() -> None:
    data = go_wasm_bytes(module="example.com/wasmtool", version="v0.3.0")

    info = parse_build_info(data)

    assert data.find(BUILDINFO_MAGIC) % 16 != 0
    assert (info.module_path, info.installed_version) == ("example.com/wasmtool", "v0.3.0")


@pytest.mark.os_agnostic
def test_parse_rejects_wasm_header_unaligned_in_memory() -> None:
    with pytest.raises(BuildInfoError, match="not a Go executable"):
        parse_build_info(go_wasm_bytes(address=0x1001))


@pytest.mark.os_agnostic
def test_parse_rejects_wasm_without_data_section() -> None:
    with pytest.raises(BuildInfoError, match="not a Go executable"):
        parse_build_info(b"\x00asm\x01\x00\x00\x00")


@pytest.mark.os_agnostic
def test_read_sleb_decodes_negative_values() -> None:
    assert _read_sleb(b"\x7f", 0) == (-1, 1)


# ════════════════════════════════════════════════════════════════════════════
# parse_build_info: Files that are not usable Go binaries
# ════════════════════════════════════════════════════════════════════════════


@pytest.mark.os_agnostic
def test_parse_rejects_non_executables() -> None:
    with pytest.raises(BuildInfoError, match="unrecognized file format"):
        parse_build_info(b"#!/bin/sh\necho hello\n")


@pytest.mark.os_agnostic
def test_parse_rejects_executables_without_build_info() -> None:
    with pytest.raises(BuildInfoError, match="not a Go executable"):
        parse_build_info(b"\x7fELF" + b"\x00" * 256)


@pytest.mark.os_agnostic
def test_parse_ignores_unaligned_magic() -> None:
    data = b"\x7fELF" + b"\x00" + go_executable_bytes()[64:] + b"\x00" * 16

    with pytest.raises(BuildInfoError, match="not a Go executable"):
        parse_build_info(data)


@pytest.mark.os_agnostic
def test_parse_reports_pre_118_format() -> None:
    with pytest.raises(BuildInfoError, match="before go1.18"):
        parse_build_info(go_executable_bytes(inline=False))


@pytest.mark.os_agnostic
def test_parse_rejects_garbled_go_version() -> None:
    with pytest.raises(BuildInfoError, match="not a Go executable"):
        parse_build_info(go_executable_bytes(go_version="1.22"))


@pytest.mark.os_agnostic
def test_parse_reports_missing_module_information() -> None:
    with pytest.raises(BuildInfoError, match="no module information"):
        parse_build_info(go_executable_bytes(with_modinfo=False))


# ════════════════════════════════════════════════════════════════════════════
# Low-level helpers
# ════════════════════════════════════════════════════════════════════════════


@pytest.mark.os_agnostic
def test_read_uvarint_decodes_multibyte_values() -> None:
    assert _read_uvarint(b"\xac\x02", 0) == (300, 2)


@pytest.mark.os_agnostic
def test_read_uvarint_returns_none_when_truncated() -> None:
    assert _read_uvarint(b"\x80", 0) is None


@pytest.mark.os_agnostic
def test_strip_sentinels_requires_trailing_newline() -> None:
    assert _strip_sentinels(b"x" * 16 + b"path\tp" + b"y" * 16) == ""


# ════════════════════════════════════════════════════════════════════════════
# read_build_info: Files on disk
# ════════════════════════════════════════════════════════════════════════════


@pytest.mark.os_agnostic
def test_read_build_info_reads_file(go_binary: Callable[..., Path]) -> None:
    path = go_binary("gopls", module="golang.org/x/tools/gopls", version="v0.15.0")

    info = read_build_info(path)

    assert (info.module_path, info.installed_version) == ("golang.org/x/tools/gopls", "v0.15.0")


@pytest.mark.os_agnostic
def test_read_build_info_accepts_string_paths(go_binary: Callable[..., Path]) -> None:
    path = go_binary()

    assert read_build_info(str(path)).module_path == "example.com/tool"


@pytest.mark.os_agnostic
def test_read_build_info_prefixes_errors_with_path(tmp_path: Path) -> None:
    script = tmp_path / "script.sh"
    script.write_text("#!/bin/sh\necho hi\n")

    with pytest.raises(BuildInfoError, match=r"^reading .*script\.sh: unrecognized file format$"):
        read_build_info(script)


@pytest.mark.os_agnostic
def test_read_build_info_rejects_empty_file(tmp_path: Path) -> None:
    empty = tmp_path / "empty"
    empty.write_bytes(b"")

    with pytest.raises(BuildInfoError, match="unrecognized file format"):
        read_build_info(empty)


@pytest.mark.os_agnostic
def test_read_build_info_reports_missing_file(tmp_path: Path) -> None:
    with pytest.raises(BuildInfoError, match="^reading "):
        read_build_info(tmp_path / "missing")


@pytest.mark.posix_only
def test_read_build_info_reports_directory(tmp_path: Path) -> None:
    with pytest.raises(BuildInfoError, match="^reading "):
        read_build_info(tmp_path)
