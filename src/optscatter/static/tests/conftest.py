# SPDX-FileCopyrightText: Copyright (c) 2024 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import importlib
import os
import sys

import pytest

from optscatter.static import reset_renderer


@pytest.fixture(autouse=True)
def clean_renderer():
    reset_renderer()
    yield
    reset_renderer()


@pytest.fixture
def legacy_ops_path():
    current_directory = os.path.dirname(os.path.abspath(__file__))

    return os.path.join(current_directory, "data", "legacy_ops.py")


@pytest.fixture
def import_source(tmp_path, monkeypatch):
    """Write source text as a module under ``tmp_path`` and import it."""
    imported = []

    def _import(module_name: str, source: str):
        (tmp_path / f"{module_name}.py").write_text(source, encoding="utf-8")
        monkeypatch.syspath_prepend(str(tmp_path))
        sys.modules.pop(module_name, None)
        importlib.invalidate_caches()
        imported.append(module_name)
        return importlib.import_module(module_name)

    yield _import

    for module_name in imported:
        sys.modules.pop(module_name, None)
