"""Mini README: Shared pytest fixtures.

Every test starts from default settings: ``CLOUDRECONCILE_*`` variables are
removed and the cached settings object is rebuilt.
"""

from __future__ import annotations

import os

import pytest

from cloudreconcile.configuration import get_settings


@pytest.fixture(autouse=True)
def default_settings(monkeypatch):
    for name in list(os.environ):
        if name.upper().startswith("CLOUDRECONCILE_"):
            monkeypatch.delenv(name)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
