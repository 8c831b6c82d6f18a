from __future__ import annotations

"""
Global Pytest Configuration and Fixtures.

1. A scripted stand-in for ldd that records every path it is asked about.
2. A factory for readable files under tmp_path (the cache only inspects
   files it can read).
3. Process-wide logger overrides are reset around every test.
"""

import os
from typing import Callable, Dict, List, Union

import pytest

from libdeps.modules.cache import ResolutionCache
from libdeps.modules.inspector import InspectionFailed
from libdeps.modules.logger import Logger


# -----------------------------------------------------------------------------
# Fake inspector
# -----------------------------------------------------------------------------
class FakeInspector:
    """Maps a path to the ldd lines it should produce, or to an exception."""

    def __init__(self, reports: Dict[str, Union[List[str], Exception]] = None):
        self.reports = dict(reports or {})
        self.calls: List[str] = []

    def __call__(self, path: str) -> List[str]:
        self.calls.append(path)
        report = self.reports.get(path)
        if report is None:
            raise InspectionFailed(path, "not a dynamic executable")
        if isinstance(report, Exception):
            raise report
        return list(report)


# -----------------------------------------------------------------------------
# Shared Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _reset_logger():
    Logger.reset()
    yield
    Logger.reset()


@pytest.fixture
def fake_inspector() -> FakeInspector:
    return FakeInspector()


@pytest.fixture
def cache(fake_inspector) -> ResolutionCache:
    return ResolutionCache(inspector=fake_inspector)


@pytest.fixture
def make_file(tmp_path) -> Callable[[str], str]:
    """Create a readable file (e.g. 'bin/true', 'lib/libc.so.6') and return its path."""

    def _make(relpath: str) -> str:
        path = tmp_path / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\x7fELF")
        return os.fspath(path)

    return _make
