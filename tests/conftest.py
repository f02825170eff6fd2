# Copyright 2022-2025 Broadcom.
# SPDX-License-Identifier: Apache-2.0
#
import logging
import pathlib
from typing import Iterator

import pytest

from tests.helpers import FakeResolver

log = logging.getLogger(__name__)


@pytest.fixture
def out_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "out"
    path.mkdir()
    return path


@pytest.fixture
def environ(out_dir: pathlib.Path) -> dict[str, str]:
    return {
        "TARGET": "x86_64-unknown-linux-gnu",
        "OUT_DIR": str(out_dir),
        "PROFILE": "release",
    }


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def project(tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[pathlib.Path]:
    path = tmp_path / "libfoo"
    path.mkdir()
    (path / "CMakeLists.txt").write_text("project(foo C)\n")
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("CMAKE_PREFIX_PATH", raising=False)
    yield pathlib.Path.cwd() / "libfoo"
