# Copyright 2025 Broadcom.
# SPDX-License-Identifier: Apache-2.0
#
from __future__ import annotations

import importlib
import pathlib
from typing import TYPE_CHECKING, List, Sequence

import pytest

if TYPE_CHECKING:
    from _pytest.mark.structures import ParameterSet


def _top_level_modules() -> Sequence["ParameterSet"]:
    package_dir = pathlib.Path(__file__).resolve().parents[1] / "cmakebuild"
    params: List["ParameterSet"] = []
    for path in sorted(package_dir.iterdir()):
        if not path.is_file() or path.suffix != ".py":
            continue
        stem = path.stem
        if stem == "__init__":
            module_name = "cmakebuild"
        else:
            module_name = f"cmakebuild.{stem}"
        params.append(pytest.param(module_name, id=module_name))
    return params


@pytest.mark.parametrize("module_name", _top_level_modules())
def test_import_top_level_module(module_name: str) -> None:
    """
    Ensure each top-level module in the cmakebuild package can be imported.
    """
    importlib.import_module(module_name)


def test_public_api() -> None:
    import cmakebuild

    assert cmakebuild.Config is importlib.import_module("cmakebuild.config").Config
    assert callable(cmakebuild.build)
    assert cmakebuild.__version__
