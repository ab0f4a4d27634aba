"""Interactive surfaces: the windows an authorization flow is delegated to.

The main entry points are:

- :class:`Surface` -- capability interface the monitor relies on (closed
  check, location read that fails while cross-origin, close).
- :class:`SurfaceOpener` -- factory that opens or reuses a surface.
- :class:`SystemBrowserOpener` -- opener for the user's default browser,
  observed through a :class:`RedirectListener` on localhost.
"""

from popauth.surface.base import Surface, SurfaceOpener
from popauth.surface.loopback import LoopbackSurface, RedirectListener, SystemBrowserOpener

__all__ = [
    "LoopbackSurface",
    "RedirectListener",
    "Surface",
    "SurfaceOpener",
    "SystemBrowserOpener",
]
