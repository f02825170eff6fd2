# Copyright 2022-2025 Broadcom.
# SPDX-License-Identifier: Apache-2.0
"""
Run cmake from a build script to build a native library.
"""
from __future__ import annotations

import sys

from cmakebuild.common import __version__

MIN_SUPPORTED_PYTHON = (3, 10)

if sys.version_info < MIN_SUPPORTED_PYTHON:
    raise RuntimeError("cmakebuild requires Python 3.10 or newer.")

from cmakebuild.builder import build  # noqa: E402
from cmakebuild.config import Config  # noqa: E402

__all__ = ["__version__", "Config", "build"]
