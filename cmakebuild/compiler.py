# Copyright 2022-2025 Broadcom.
# SPDX-License-Identifier: Apache-2.0
"""
C compiler and Visual Studio toolchain discovery.

The orchestrator only talks to a :class:`CompilerResolver`; swap in another
implementation to change how compilers are found.
"""
from __future__ import annotations

import logging
import os
import pathlib
import shlex
import shutil
from typing import Mapping, Optional, Sequence

log = logging.getLogger(__name__)


class Compiler:
    """
    A C compiler executable and the flags it always wants applied.

    :param path: The compiler executable
    :type path: str
    :param args: Flags passed on every invocation
    :type args: list
    """

    def __init__(self, path: str, args: Sequence[str] = ()) -> None:
        self.path = path
        self.args = list(args)

    def __repr__(self) -> str:
        return f"Compiler(path={self.path!r}, args={self.args!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Compiler):
            return NotImplemented
        return self.path == other.path and self.args == other.args


class CompilerResolver:
    """
    Interface used by the build to find a compiler for a target.
    """

    def get_compiler(self, target: str, environ: Mapping[str, str]) -> Compiler:
        raise NotImplementedError

    def find_msvc_version(
        self, target: str, environ: Mapping[str, str]
    ) -> Optional[str]:
        """
        Describe the installed Visual Studio toolchain.

        The result is free form text, ``None`` when no toolchain was found.
        """
        raise NotImplementedError


def _target_vars(name: str, target: str) -> list[str]:
    return [
        f"{name}_{target}",
        f"{name}_{target.replace('-', '_')}",
        f"TARGET_{name}",
        name,
    ]


def _lookup(name: str, target: str, environ: Mapping[str, str]) -> Optional[str]:
    for var in _target_vars(name, target):
        value = environ.get(var)
        if value and value.strip():
            log.debug("Using %s=%s", var, value)
            return value
    return None


class DefaultCompilerResolver(CompilerResolver):
    """
    Find compilers the way Cargo build scripts expect.

    ``CC`` and ``CFLAGS`` may be given per target (``CC_x86_64-unknown-linux-gnu``
    or ``CC_x86_64_unknown_linux_gnu``), as ``TARGET_CC`` or as plain ``CC``.
    ``OPT_LEVEL`` and ``DEBUG`` select optimization and debug info flags.
    """

    def get_compiler(self, target: str, environ: Mapping[str, str]) -> Compiler:
        msvc = "msvc" in target
        args: list[str] = []
        words = shlex.split(_lookup("CC", target, environ) or "", posix=not msvc)
        if words:
            # Non posix splitting keeps the quotes around C:\Program Files paths.
            path, args = words[0].strip("\""), words[1:]
        elif msvc:
            path = "cl.exe"
        elif "windows-gnu" in target:
            path = "gcc"
        else:
            path = "cc"

        opt_level = environ.get("OPT_LEVEL", "0")
        debug = environ.get("DEBUG", "false") == "true"
        if msvc:
            args += ["/nologo", "/MD"]
            if opt_level != "0":
                args.append("/O2")
            if debug:
                args.append("/Z7")
        else:
            args.append(f"-O{opt_level}")
            if debug:
                args.append("-g")
            args += ["-ffunction-sections", "-fdata-sections"]
            if "windows" not in target:
                args.append("-fPIC")
            if target.startswith("x86_64"):
                args.append("-m64")
            elif target.startswith("i686"):
                args.append("-m32")

        extra = _lookup("CFLAGS", target, environ)
        if extra:
            args += shlex.split(extra, posix=not msvc)
        return Compiler(path, args)

    def find_msvc_version(
        self, target: str, environ: Mapping[str, str]
    ) -> Optional[str]:
        version = environ.get("VisualStudioVersion")
        if version:
            return f"Visual Studio {version}"
        for var, version in (("VS140COMNTOOLS", "14.0"), ("VS120COMNTOOLS", "12.0")):
            if environ.get(var):
                return f"Microsoft Visual Studio {version} at {environ[var]}"
        cl = shutil.which("cl.exe", path=environ.get("PATH"))
        if cl:
            # e.g. C:\Program Files (x86)\Microsoft Visual Studio 14.0\VC\bin\cl.exe
            return str(pathlib.Path(cl).parent)
        log.debug("No Visual Studio toolchain found for %s", target)
        return None
