# Copyright 2022-2025 Broadcom.
# SPDX-License-Identifier: Apache-2.0
"""
Run cmake to configure, build and install a native library.
"""
from __future__ import annotations

import argparse
import logging
import os
import pathlib
import sys
from typing import Iterable, Mapping, Optional, Sequence

from .common import (
    OUT_DIR_ENV,
    PREFIX_PATH_ENV,
    PROFILE_ENV,
    TARGET_ENV,
    CMakeBuildException,
    GeneratorError,
    InvalidEnvironmentError,
    MissingEnvironmentError,
    Version,
    cmake_program,
    join_paths,
    runcmd,
    split_paths,
)
from .compiler import Compiler, CompilerResolver, DefaultCompilerResolver
from .config import Config, PathLike

log = logging.getLogger(__name__)

MSYS_GENERATOR = "MSYS Makefiles"

VISUAL_STUDIO_GENERATORS = (
    (Version("12.0"), "Visual Studio 12 2013"),
    (Version("14.0"), "Visual Studio 14 2015"),
)

BUILD_TYPES = {
    _.lower(): _ for _ in ("Debug", "Release", "RelWithDebInfo", "MinSizeRel")
}


def resolve_target(config: Config, environ: Mapping[str, str]) -> str:
    """
    The target triple, from the config or ``$TARGET``.
    """
    if config.target_triple is not None:
        return config.target_triple
    target = environ.get(TARGET_ENV)
    if not target:
        raise MissingEnvironmentError(TARGET_ENV)
    return target


def is_msvc(target: str) -> bool:
    return "msvc" in target


def resolve_out_dir(config: Config, environ: Mapping[str, str]) -> pathlib.Path:
    """
    The output and install directory, from the config or ``$OUT_DIR``.
    """
    if config.output_dir is not None:
        return config.output_dir
    out_dir = environ.get(OUT_DIR_ENV)
    if not out_dir:
        raise MissingEnvironmentError(OUT_DIR_ENV)
    return pathlib.Path(out_dir)


def ensure_build_dir(dst: pathlib.Path) -> pathlib.Path:
    """
    Create the ``build`` directory cmake runs in.
    """
    build_dir = dst / "build"
    try:
        build_dir.mkdir()
    except FileExistsError:
        pass
    except OSError as exc:
        raise CMakeBuildException(
            f"failed to create build directory {build_dir}: {exc}"
        ) from exc
    return build_dir


def dep_root_var(dep: str) -> str:
    return "DEP_{}_ROOT".format(dep.upper().replace("-", "_"))


def child_environ(environ: Mapping[str, str]) -> dict[str, str]:
    """
    The environment both cmake steps run with.

    An injected mapping is laid over the parent environment so the children
    still see ``PATH`` and the rest of it.
    """
    env = dict(os.environ)
    if environ is not os.environ:
        env.update(environ)
    return env


def cmake_prefix_path(deps: Iterable[str], environ: Mapping[str, str]) -> list[str]:
    """
    Build the list of directories cmake searches for dependencies.

    Roots of registered dependencies come first, in registration order,
    followed by the entries already in ``$CMAKE_PREFIX_PATH``.
    """
    paths = []
    for dep in deps:
        var = dep_root_var(dep)
        root = environ.get(var)
        if root:
            if os.pathsep in root:
                raise InvalidEnvironmentError(
                    var, f"contains the path separator {os.pathsep!r}"
                )
            paths.append(root)
        else:
            log.debug("No %s set for dependency %s", var, dep)
    paths.extend(split_paths(environ.get(PREFIX_PATH_ENV)))
    return paths


def visual_studio_generator(target: str, version: Optional[str]) -> str:
    """
    The Visual Studio generator matching the installed toolchain and target.

    :param target: The msvc target triple
    :type target: str
    :param version: Free form description of the installed toolchain
    :type version: str

    :raises GeneratorError: If the toolchain or the architecture is unsupported
    """
    found = Version.find_all(version or "")
    for wanted, name in VISUAL_STUDIO_GENERATORS:
        if any(_.release == wanted.release for _ in found):
            base = name
            break
    else:
        raise GeneratorError(
            f"couldn't determine visual studio generator from {version!r}"
        )

    if "i686" in target:
        return base
    elif "x86_64" in target:
        return f"{base} Win64"
    raise GeneratorError(f"unsupported msvc target: {target}")


def select_generator(
    target: str, resolver: CompilerResolver, environ: Mapping[str, str]
) -> Optional[str]:
    """
    The ``-G`` generator to use, ``None`` for cmake's platform default.
    """
    if "windows-gnu" in target:
        # Makefiles MinGW can build instead of a Visual Studio solution.
        return MSYS_GENERATOR
    elif is_msvc(target):
        # The generator decides between 32 and 64 bit builds.
        return visual_studio_generator(
            target, resolver.find_msvc_version(target, environ)
        )
    return None


def resolve_profile(profile: Optional[str], ambient: Optional[str], msvc: bool) -> str:
    """
    The cmake build type.

    :param profile: An explicitly configured build type
    :param ambient: The value of ``$PROFILE``
    :param msvc: Whether the target uses the msvc ABI
    """
    if profile is not None:
        return BUILD_TYPES.get(profile.lower(), profile)
    if ambient in ("bench", "release"):
        return "Release"
    # The same CRT has to be used across the whole link.
    if msvc:
        return "Release"
    return "Debug"


def generate_command(
    project: PathLike,
    generator: Optional[str],
    profile: str,
    dst: PathLike,
    cflags: str,
    compiler: Compiler,
    defines: Iterable[tuple[str, str]],
    cmake: str = "cmake",
) -> list[str]:
    """
    The command that generates the build system.
    """
    cmd = [cmake, os.fspath(project)]
    if generator:
        cmd += ["-G", generator]
    flags = " ".join(_ for _ in [cflags, *compiler.args] if _)
    cmd += [
        f"-DCMAKE_BUILD_TYPE={profile}",
        f"-DCMAKE_INSTALL_PREFIX={os.fspath(dst)}",
        f"-DCMAKE_C_FLAGS={flags}",
        f"-DCMAKE_C_COMPILER={compiler.path}",
    ]
    for key, value in defines:
        cmd.append(f"-D{key}={value}")
    return cmd


def build_command(
    profile: str, build_args: Sequence[str] = (), cmake: str = "cmake"
) -> list[str]:
    """
    The command that builds and installs the project.
    """
    return [
        cmake,
        "--build",
        ".",
        "--target",
        "install",
        "--config",
        profile,
        "--",
        *build_args,
    ]


def run_build(
    config: Config,
    resolver: Optional[CompilerResolver] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> pathlib.Path:
    """
    Generate the build system, build and install the project.

    The install directory is announced to the calling build pipeline as
    ``cargo:root=<dir>`` on stdout and returned.

    :param config: The build options
    :type config: ``cmakebuild.config.Config``
    :param resolver: Finds the C compiler and Visual Studio toolchain
    :type resolver: ``cmakebuild.compiler.CompilerResolver``
    :param environ: The environment to read defaults from, ``os.environ`` if not given
    :type environ: dict

    :raises CMakeBuildException: If anything needed for the build is missing or
        either cmake step fails
    """
    if environ is None:
        environ = os.environ
    if resolver is None:
        resolver = DefaultCompilerResolver()

    target = resolve_target(config, environ)
    msvc = is_msvc(target)
    compiler = resolver.get_compiler(target, environ)
    log.debug("Using compiler %r for %s", compiler, target)

    dst = resolve_out_dir(config, environ)
    build_dir = ensure_build_dir(dst)

    prefix_path = join_paths(cmake_prefix_path(config.deps, environ))
    cmake = cmake_program(environ)
    generator = select_generator(target, resolver, environ)
    profile = resolve_profile(config.build_profile, environ.get(PROFILE_ENV), msvc)

    cmd = generate_command(
        pathlib.Path.cwd() / config.path,
        generator,
        profile,
        dst,
        config.cflags,
        compiler,
        config.defines,
        cmake=cmake,
    )
    env = child_environ(environ)
    generate_env = dict(env)
    generate_env[PREFIX_PATH_ENV] = prefix_path
    runcmd(cmd, cwd=build_dir, env=generate_env)

    runcmd(
        build_command(profile, config.build_args, cmake=cmake),
        cwd=build_dir,
        env=env,
    )

    print(f"cargo:root={dst}")
    sys.stdout.flush()
    return dst


def build(path: PathLike) -> pathlib.Path:
    """
    Build the project at ``path`` with the default options.

    :return: The directory the library was installed to
    """
    return Config(path).build()


def setup_parser(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> None:
    """
    Setup the subparser for the ``build`` command.

    :param subparsers: The subparsers object returned from ``add_subparsers``
    :type subparsers: argparse._SubParsersAction
    """
    build_subparser = subparsers.add_parser(
        "build", description="Configure, build and install a cmake project"
    )
    build_subparser.set_defaults(func=main)
    build_subparser.add_argument(
        "path",
        type=str,
        help="The directory holding the project's CMakeLists.txt",
    )
    build_subparser.add_argument(
        "-D",
        "--define",
        dest="defines",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="A definition passed to the generate step, can be used multiple times.",
    )
    build_subparser.add_argument(
        "--cflag",
        dest="cflags",
        action="append",
        default=[],
        help="A flag added to CMAKE_C_FLAGS, can be used multiple times.",
    )
    build_subparser.add_argument(
        "--dep",
        dest="deps",
        metavar="NAME",
        action="append",
        default=[],
        help=(
            "A dependency whose DEP_<NAME>_ROOT is added to CMAKE_PREFIX_PATH, "
            "can be used multiple times."
        ),
    )
    build_subparser.add_argument(
        "--target",
        default=None,
        type=str,
        help="The target triple [default: $TARGET]",
    )
    build_subparser.add_argument(
        "--out-dir",
        default=None,
        type=str,
        help="The output and install directory [default: $OUT_DIR]",
    )
    build_subparser.add_argument(
        "--profile",
        default=None,
        type=str,
        help="The cmake build type [default: derived from $PROFILE]",
    )
    build_subparser.add_argument(
        "--build-arg",
        dest="build_args",
        metavar="ARG",
        action="append",
        default=[],
        help="An argument passed to the native build tool, can be used multiple times.",
    )
    build_subparser.add_argument(
        "--log-level",
        default="info",
        choices=(
            "error",
            "warning",
            "info",
            "debug",
        ),
        help="Log level determines how verbose the logs will be.",
    )


def config_from_args(args: argparse.Namespace) -> Config:
    """
    Turn parsed command line arguments into a ``Config``.
    """
    config = Config(args.path)
    for define in args.defines:
        key, sep, value = define.partition("=")
        if not sep:
            raise CMakeBuildException(f"Invalid define {define!r}, expected KEY=VALUE")
        config = config.define(key, value)
    for flag in args.cflags:
        config = config.cflag(flag)
    for dep in args.deps:
        config = config.register_dep(dep)
    if args.target:
        config = config.target(args.target)
    if args.out_dir:
        config = config.out_dir(args.out_dir)
    if args.profile:
        config = config.profile(args.profile)
    for arg in args.build_args:
        config = config.build_arg(arg)
    return config


def main(args: argparse.Namespace) -> None:
    """
    The entrypoint to the ``build`` command.

    :param args: The arguments to the command
    :type args: ``argparse.Namespace``
    """
    logging.basicConfig(level=args.log_level.upper())
    try:
        config_from_args(args).build()
    except CMakeBuildException as exc:
        log.error("%s", exc)
        log.error("build script failed, must exit now")
        sys.exit(1)
