# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import llmvis  # noqa: F401
except ImportError:
    raise ImportError("llmvis is not installed. Run: pip install -e '.[dev]'") from None

import os

import pytest


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Tests never see LLMVIS_* settings from the developer's shell."""
    for name in list(os.environ):
        if name.startswith("LLMVIS_"):
            monkeypatch.delenv(name, raising=False)
