# Copyright 2022-2025 Broadcom.
# SPDX-License-Identifier: Apache-2.0
"""
Common classes and values used around cmakebuild.
"""
from __future__ import annotations

import logging
import os
import queue
import re
import selectors
import subprocess
import sys
import threading
from typing import IO, Any, Iterable, Mapping, Optional, Sequence, cast

# cmakebuild package version
__version__ = "0.1.0"

log = logging.getLogger(__name__)

CMAKE = "cmake"
CMAKE_ENV = "CMAKEBUILD_CMAKE"

TARGET_ENV = "TARGET"
OUT_DIR_ENV = "OUT_DIR"
PROFILE_ENV = "PROFILE"
PREFIX_PATH_ENV = "CMAKE_PREFIX_PATH"


class CMakeBuildException(Exception):
    """
    Base class for exeptions generated from cmakebuild.
    """


class MissingEnvironmentError(CMakeBuildException):
    """
    A required value was neither configured nor present in the environment.
    """

    def __init__(self, var: str) -> None:
        self.var = var
        super().__init__(
            f"environment variable {var} is not set and no override was configured"
        )


class InvalidEnvironmentError(CMakeBuildException):
    """
    An environment variable holds a value that cannot be used.
    """

    def __init__(self, var: str, reason: str) -> None:
        self.var = var
        super().__init__(f"environment variable {var} {reason}")


class ToolNotFoundError(CMakeBuildException):
    """
    The executable for a command could not be found.
    """

    def __init__(self, program: str, error: Optional[OSError] = None) -> None:
        self.program = program
        super().__init__(
            f"failed to execute command: {error}\nis `{program}` not installed?"
        )


class CommandFailedError(CMakeBuildException):
    """
    A command finished with a non zero exit code.
    """

    def __init__(self, cmd: Sequence[Any], returncode: int) -> None:
        self.cmd = [str(_) for _ in cmd]
        self.returncode = returncode
        super().__init__(
            "command did not execute successfully, got: exit status {}\n{}".format(
                returncode, " ".join(self.cmd)
            )
        )


class GeneratorError(CMakeBuildException):
    """
    No cmake generator could be chosen for the target.
    """


def cmake_program(environ: Optional[Mapping[str, str]] = None) -> str:
    """
    The name of the cmake executable, overridable with ``CMAKEBUILD_CMAKE``.
    """
    if environ is None:
        environ = os.environ
    return environ.get(CMAKE_ENV) or CMAKE


def split_paths(value: Optional[str], sep: str = os.pathsep) -> list[str]:
    """
    Split a path list environment value into its entries.

    Empty entries are dropped.
    """
    if not value:
        return []
    return [_ for _ in value.split(sep) if _]


def join_paths(paths: Iterable[str | os.PathLike[str]], sep: str = os.pathsep) -> str:
    """
    Join paths into a path list environment value.

    :raises CMakeBuildException: If a path contains the separator
    """
    parts = []
    for path in paths:
        path = os.fspath(path)
        if sep in path:
            raise CMakeBuildException(
                f"path {path!r} contains the path separator {sep!r}"
            )
        parts.append(path)
    return sep.join(parts)


def runcmd(*args: Any, **kwargs: Any) -> subprocess.Popen[str]:
    """
    Run a command.

    Run the provided command, raising an Exception when the command finishes
    with a non zero exit code.  Arguments are passed through to ``subprocess.Popen``

    :return: The process result
    :rtype: ``subprocess.Popen``

    :raises ToolNotFoundError: If the executable does not exist
    :raises CMakeBuildException: If the process could not be started
    :raises CommandFailedError: If the command finishes with a non zero exit code
    """
    if not args:
        raise CMakeBuildException("No command provided to runcmd")
    cmd = [str(_) for _ in args[0]]
    log.info("Running command: %s", " ".join(cmd))
    kwargs["stdout"] = subprocess.PIPE
    kwargs["stderr"] = subprocess.PIPE
    if "universal_newlines" not in kwargs:
        kwargs["universal_newlines"] = True
    try:
        p = subprocess.Popen(cmd, *args[1:], **kwargs)
    except OSError as exc:
        cwd = kwargs.get("cwd")
        if isinstance(exc, FileNotFoundError) and (cwd is None or os.path.isdir(cwd)):
            raise ToolNotFoundError(cmd[0], exc) from exc
        raise CMakeBuildException(f"failed to execute command: {exc}") from exc
    stdout_stream = p.stdout
    stderr_stream = p.stderr
    if stdout_stream is None or stderr_stream is None:
        p.wait()
        raise CMakeBuildException("Process pipes are unavailable")
    if sys.platform != "win32":
        # Read both stdout and stderr simultaneously
        sel = selectors.DefaultSelector()
        sel.register(stdout_stream, selectors.EVENT_READ)
        sel.register(stderr_stream, selectors.EVENT_READ)
        open_streams = 2
        while open_streams:
            for key, _ in sel.select():
                stream = cast(IO[str], key.fileobj)
                line = stream.readline()
                if not line:
                    sel.unregister(stream)
                    open_streams -= 1
                    continue
                if stream is stdout_stream:
                    log.info(line.rstrip("\n"))
                else:
                    log.error(line.rstrip("\n"))
        sel.close()
    else:

        def enqueue_stream(
            stream: IO[str],
            item_queue: "queue.Queue[tuple[int, str]]",
            kind: int,
        ) -> None:
            for line in iter(stream.readline, ""):
                item_queue.put((kind, line))
            item_queue.put((0, ""))
            stream.close()

        q: "queue.Queue[tuple[int, str]]" = queue.Queue()
        to = threading.Thread(target=enqueue_stream, args=(stdout_stream, q, 1))
        te = threading.Thread(target=enqueue_stream, args=(stderr_stream, q, 2))
        te.start()
        to.start()

        closed = 0
        while closed < 2:
            kind, line = q.get()
            if kind == 1:  # stdout
                log.info(line.rstrip("\n"))
            elif kind == 2:
                log.error(line.rstrip("\n"))
            else:
                closed += 1

        to.join()
        te.join()

    p.wait()
    if p.returncode != 0:
        raise CommandFailedError(cmd, p.returncode)
    return p


class Version:
    """
    A ``major.minor[.micro]`` version.
    """

    def __init__(self, data: str) -> None:
        major, minor, micro = self.parse_string(data)
        self.major: int = major
        self.minor: Optional[int] = minor
        self.micro: Optional[int] = micro

    @property
    def release(self: "Version") -> tuple[int, int]:
        """
        Major and minor, a missing minor counting as zero.
        """
        return (self.major, self.minor or 0)

    @staticmethod
    def parse_string(data: str) -> tuple[int, Optional[int], Optional[int]]:
        """
        Parse a version string into major, minor, and micro integers.
        """
        parts: list[Optional[int]] = [int(_) for _ in data.split(".")]
        parts += [None] * (3 - len(parts))
        major, minor, micro = parts
        return cast(int, major), minor, micro

    @classmethod
    def find_all(cls, text: str) -> list["Version"]:
        """
        Every ``major.minor`` token that appears in free form text, in order.
        """
        return [
            cls(match.group(0))
            for match in re.finditer(r"(?<![\d.])\d+\.\d+(?:\.\d+)?(?![\d])", text)
        ]
