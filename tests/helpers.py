# Copyright 2022-2025 Broadcom.
# SPDX-License-Identifier: Apache-2.0
from cmakebuild.compiler import Compiler, CompilerResolver


class FakeResolver(CompilerResolver):
    """
    Resolver returning a fixed compiler and Visual Studio version.
    """

    def __init__(self, path="/usr/bin/cc", args=("-O2", "-fPIC"), version=None):
        self.compiler = Compiler(path, args)
        self.version = version
        self.targets = []

    def get_compiler(self, target, environ):
        self.targets.append(target)
        return self.compiler

    def find_msvc_version(self, target, environ):
        return self.version
