# Copyright 2022-2025 Broadcom.
# SPDX-License-Identifier: Apache-2.0
"""
Builder style configuration for a pending cmake build.
"""
from __future__ import annotations

import os
import pathlib
from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

if TYPE_CHECKING:
    from .compiler import CompilerResolver

PathLike = Union[str, os.PathLike[str]]


class Config:
    """
    Options for building the cmake project at ``path``.

    A ``Config`` is never modified in place. Every option method returns a new
    ``Config``, so calls chain::

        dst = Config("libfoo").define("FOO", "BAR").cflag("-foo").build()

    :param path: The directory holding the project's ``CMakeLists.txt``
    :type path: str
    """

    __slots__ = (
        "path",
        "cflags",
        "defines",
        "deps",
        "target_triple",
        "output_dir",
        "build_profile",
        "build_args",
    )

    def __init__(self, path: PathLike) -> None:
        self.path: pathlib.Path = pathlib.Path(path)
        self.cflags: str = ""
        self.defines: tuple[tuple[str, str], ...] = ()
        self.deps: tuple[str, ...] = ()
        self.target_triple: Optional[str] = None
        self.output_dir: Optional[pathlib.Path] = None
        self.build_profile: Optional[str] = None
        self.build_args: tuple[str, ...] = ()

    def __repr__(self) -> str:
        return "Config({})".format(
            ", ".join(f"{_}={getattr(self, _)!r}" for _ in self.__slots__)
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Config):
            return NotImplemented
        return all(getattr(self, _) == getattr(other, _) for _ in self.__slots__)

    def _replace(self, **changes: Any) -> "Config":
        new = Config.__new__(Config)
        for name in self.__slots__:
            setattr(new, name, changes.get(name, getattr(self, name)))
        return new

    def cflag(self, flag: str) -> "Config":
        """
        Add a flag to pass down to the compiler, supplementing those the
        compiler already wants.
        """
        cflags = f"{self.cflags} {flag}" if self.cflags else flag
        return self._replace(cflags=cflags)

    def define(self, key: str, value: str) -> "Config":
        """
        Add a ``-D`` flag for the generate step.

        Values are passed as is; quote them yourself if they need it.
        """
        return self._replace(defines=self.defines + ((key, value),))

    def register_dep(self, dep: str) -> "Config":
        """
        Register a dependency on a native library built previously.

        The dependency's ``DEP_<NAME>_ROOT`` is added to ``CMAKE_PREFIX_PATH``
        for the generate step.
        """
        return self._replace(deps=self.deps + (dep,))

    def target(self, target: str) -> "Config":
        """
        Set the target triple. Defaults to ``$TARGET``.
        """
        return self._replace(target_triple=target)

    def out_dir(self, out: PathLike) -> "Config":
        """
        Set the output directory. Defaults to ``$OUT_DIR``.
        """
        return self._replace(output_dir=pathlib.Path(out))

    def profile(self, profile: str) -> "Config":
        """
        Set the cmake build type. Defaults to one derived from ``$PROFILE``.
        """
        return self._replace(build_profile=profile)

    def build_arg(self, arg: str) -> "Config":
        """
        Add an argument to the final ``cmake --build`` step.
        """
        return self._replace(build_args=self.build_args + (arg,))

    def build(
        self,
        resolver: Optional["CompilerResolver"] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> pathlib.Path:
        """
        Run the generate and build steps and return the install directory.
        """
        from .builder import run_build

        return run_build(self, resolver=resolver, environ=environ)
