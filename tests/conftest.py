"""Shared test fixtures for popauth.

Provides scripted surfaces and openers that stand in for a real browser
window, config isolation, and automatic reset of the process-wide state
(output manager, interaction flag) between tests.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

import pytest

from popauth.exceptions import CrossOriginError
from popauth.interaction import clear_interaction_status
from popauth.output import reset_output
from popauth.surface.base import Surface, SurfaceOpener

LANDING_HREF = "http://127.0.0.1:8400/callback"


class FakeSurface(Surface):
    """Scripted surface.

    ``hrefs`` and ``hashes`` are consumed one entry per read; the last entry
    sticks. A ``None`` entry makes that read fail with
    :class:`CrossOriginError`. ``close()`` refuses to close twice so tests
    catch double closes.
    """

    def __init__(
        self,
        name: str = "fake",
        hrefs: Sequence[Optional[str]] = (LANDING_HREF,),
        hashes: Sequence[Optional[str]] = ("",),
    ) -> None:
        super().__init__(name)
        self._hrefs = list(hrefs)
        self._hashes = list(hashes)
        self._closed = False
        self.href_reads = 0
        self.hash_reads = 0
        self.close_calls = 0
        self.focused = False
        self.navigations: list[str] = []

    @staticmethod
    def _scripted(values: list[Optional[str]], index: int) -> str:
        value = values[min(index, len(values) - 1)]
        if value is None:
            raise CrossOriginError()
        return value

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def location_href(self) -> str:
        self.href_reads += 1
        return self._scripted(self._hrefs, self.href_reads - 1)

    @property
    def location_hash(self) -> str:
        self.hash_reads += 1
        return self._scripted(self._hashes, self.hash_reads - 1)

    def navigate(self, url: str) -> None:
        self.navigations.append(url)

    def focus(self) -> None:
        self.focused = True

    def close(self) -> None:
        if self._closed:
            raise AssertionError(f"surface {self.name!r} closed twice")
        self._closed = True
        self.close_calls += 1

    def user_close(self) -> None:
        """Simulate the user closing the window."""
        self._closed = True


class FakeOpener(SurfaceOpener):
    """Opener that records calls and hands out a prepared surface."""

    def __init__(self, surface: Optional[Surface] = None) -> None:
        self.surface = surface
        self.calls: list[tuple[str, str, Optional[Surface]]] = []

    def open(
        self, url: str, name: str, existing: Optional[Surface] = None
    ) -> Optional[Surface]:
        self.calls.append((url, name, existing))
        if existing is not None and not existing.closed:
            existing.navigate(url)
            return existing
        return self.surface


@pytest.fixture(autouse=True)
def _reset_global_state() -> None:
    """Reset the global OutputManager and interaction flag after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at creation
    time, which go stale once a test's captured streams are closed.
    """
    yield
    reset_output()
    clear_interaction_status()


@pytest.fixture
def fake_surface() -> FakeSurface:
    return FakeSurface()


@pytest.fixture
def fake_opener(fake_surface: FakeSurface) -> FakeOpener:
    return FakeOpener(fake_surface)


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points the XDG directories at ``tmp_path`` and clears all POPAUTH_*
    environment variables so tests never touch real user settings.
    """
    monkeypatch.setattr("popauth.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in [
        "POPAUTH_POPUP_TIMEOUT_MS",
        "POPAUTH_REDIRECT_HOST",
        "POPAUTH_REDIRECT_PORT",
    ]:
        monkeypatch.delenv(var, raising=False)
    return tmp_path


@pytest.fixture
def make_surface() -> type[FakeSurface]:
    """Factory for scripted surfaces: ``make_surface(hashes=["", "#code=x"])``."""
    return FakeSurface
