"""Abstract contracts for interactive surfaces.

This module defines the two foundational types of the surface subsystem:

- :class:`Surface` -- a handle to an externally-owned interactive window.
  The caller can always ask whether it is closed, but can read its
  location only while the window is on the caller's own origin.
- :class:`SurfaceOpener` -- the factory that opens (or reuses) a surface
  for a target URL.

The monitor only ever uses the capabilities declared here, so any
platform-specific window (system browser, embedded webview, automated
browser page) can be substituted by implementing them.

See Also:
    :mod:`popauth.surface.loopback` for the system-browser implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from popauth.urls import hash_from_href


class Surface(ABC):
    """Handle to an interactive window owned by someone else.

    Subclasses must provide :attr:`closed`, :attr:`location_href`,
    :meth:`navigate`, and :meth:`close`. :attr:`location_hash` and
    :meth:`focus` have default implementations.

    Args:
        name: The window name the surface was opened under.
    """

    def __init__(self, name: str) -> None:
        self.name = name

    @property
    @abstractmethod
    def closed(self) -> bool:
        """Whether the window has been closed. Always readable."""
        ...

    @property
    @abstractmethod
    def location_href(self) -> str:
        """The current location of the window.

        Raises:
            CrossOriginError: While the window is on a different origin.
        """
        ...

    @property
    def location_hash(self) -> str:
        """The ``#fragment`` of the current location, or ``""``.

        Raises:
            CrossOriginError: While the window is on a different origin.
        """
        return hash_from_href(self.location_href)

    @abstractmethod
    def navigate(self, url: str) -> None:
        """Point the window at *url*."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Close the window. Calling it on a closed surface does nothing."""
        ...

    def focus(self) -> None:
        """Bring the window to the front, where the platform allows it."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, closed={self.closed})"


class SurfaceOpener(ABC):
    """Factory for interactive surfaces."""

    @abstractmethod
    def open(
        self, url: str, name: str, existing: Optional[Surface] = None
    ) -> Optional[Surface]:
        """Open a surface navigated to *url* under *name*.

        When *existing* is given and still open, implementations navigate it
        to *url* instead of opening a new window.

        Returns:
            The surface, or ``None`` if the platform produced no window.
        """
        ...
