# Copyright 2022-2025 Broadcom.
# SPDX-License-Identifier: Apache-2.0
import pathlib

import pytest

from cmakebuild.compiler import Compiler, CompilerResolver, DefaultCompilerResolver


@pytest.fixture
def resolver() -> DefaultCompilerResolver:
    return DefaultCompilerResolver()


def test_resolver_interface() -> None:
    with pytest.raises(NotImplementedError):
        CompilerResolver().get_compiler("x86_64-unknown-linux-gnu", {})
    with pytest.raises(NotImplementedError):
        CompilerResolver().find_msvc_version("x86_64-pc-windows-msvc", {})


def test_linux_defaults(resolver) -> None:
    compiler = resolver.get_compiler("x86_64-unknown-linux-gnu", {})
    assert compiler == Compiler(
        "cc",
        ["-O0", "-ffunction-sections", "-fdata-sections", "-fPIC", "-m64"],
    )


def test_i686_linux_release(resolver) -> None:
    environ = {"OPT_LEVEL": "3", "DEBUG": "true"}
    compiler = resolver.get_compiler("i686-unknown-linux-gnu", environ)
    assert compiler.args == [
        "-O3",
        "-g",
        "-ffunction-sections",
        "-fdata-sections",
        "-fPIC",
        "-m32",
    ]


def test_windows_gnu(resolver) -> None:
    compiler = resolver.get_compiler("x86_64-pc-windows-gnu", {})
    assert compiler.path == "gcc"
    assert "-fPIC" not in compiler.args


def test_msvc(resolver) -> None:
    environ = {"OPT_LEVEL": "2", "DEBUG": "true"}
    compiler = resolver.get_compiler("x86_64-pc-windows-msvc", environ)
    assert compiler == Compiler("cl.exe", ["/nologo", "/MD", "/O2", "/Z7"])


@pytest.mark.parametrize(
    "var",
    [
        "CC_aarch64-unknown-linux-gnu",
        "CC_aarch64_unknown_linux_gnu",
        "TARGET_CC",
        "CC",
    ],
)
def test_cc_environment(resolver, var) -> None:
    compiler = resolver.get_compiler("aarch64-unknown-linux-gnu", {var: "clang"})
    assert compiler.path == "clang"


def test_cc_target_specific_wins(resolver) -> None:
    environ = {"CC": "gcc", "CC_aarch64-unknown-linux-gnu": "clang"}
    assert resolver.get_compiler("aarch64-unknown-linux-gnu", environ).path == "clang"


def test_cc_with_arguments_and_cflags(resolver) -> None:
    environ = {"CC": "ccache gcc", "CFLAGS": "-Wall -DX=1"}
    compiler = resolver.get_compiler("aarch64-unknown-linux-gnu", environ)
    assert compiler.path == "ccache"
    assert compiler.args[0] == "gcc"
    assert compiler.args[-2:] == ["-Wall", "-DX=1"]


def test_find_msvc_version_from_environment(resolver) -> None:
    assert resolver.find_msvc_version(
        "x86_64-pc-windows-msvc", {"VisualStudioVersion": "14.0"}
    ) == "Visual Studio 14.0"
    version = resolver.find_msvc_version(
        "x86_64-pc-windows-msvc", {"VS120COMNTOOLS": "C:\\VS12\\Common7\\Tools\\"}
    )
    assert "12.0" in version


def test_find_msvc_version_from_path(resolver, tmp_path: pathlib.Path) -> None:
    bindir = tmp_path / "Microsoft Visual Studio 14.0" / "VC" / "bin"
    bindir.mkdir(parents=True)
    cl = bindir / "cl.exe"
    cl.write_text("")
    cl.chmod(0o755)
    version = resolver.find_msvc_version("i686-pc-windows-msvc", {"PATH": str(bindir)})
    assert version == str(bindir)


def test_find_msvc_version_missing(resolver, tmp_path: pathlib.Path) -> None:
    assert resolver.find_msvc_version("i686-pc-windows-msvc", {"PATH": str(tmp_path)}) is None


@pytest.mark.parametrize("var", ["CC", "TARGET_CC", "CC_x86_64-unknown-linux-gnu"])
def test_blank_cc_uses_default(resolver, var) -> None:
    compiler = resolver.get_compiler("x86_64-unknown-linux-gnu", {var: " "})
    assert compiler.path == "cc"


def test_blank_target_cc_falls_back_to_cc(resolver) -> None:
    environ = {"CC_x86_64-unknown-linux-gnu": "  ", "CC": "clang"}
    assert resolver.get_compiler("x86_64-unknown-linux-gnu", environ).path == "clang"


def test_msvc_quoted_cc_path(resolver) -> None:
    environ = {"CC": '"C:\\Program Files\\Microsoft Visual Studio 14.0\\VC\\bin\\cl.exe" /W3'}
    compiler = resolver.get_compiler("x86_64-pc-windows-msvc", environ)
    assert compiler.path == "C:\\Program Files\\Microsoft Visual Studio 14.0\\VC\\bin\\cl.exe"
    assert compiler.args[:3] == ["/W3", "/nologo", "/MD"]
