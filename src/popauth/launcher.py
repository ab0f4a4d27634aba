"""Launch the interactive surface for an authorization request.

:class:`InteractionLauncher` is the first step of a popup flow: it
validates the target URL, marks the process-wide interaction as in
progress, and delegates the actual window handling to a
:class:`~popauth.surface.base.SurfaceOpener`. The returned surface is
then handed to :class:`~popauth.monitor.SurfaceMonitor`.
"""

from __future__ import annotations

from typing import Optional, Sequence

from popauth.constants import SURFACE_NAME_PREFIX
from popauth.exceptions import EmptyTargetError, SurfaceOpenError
from popauth.interaction import set_interaction_in_progress
from popauth.output import debug
from popauth.surface.base import Surface, SurfaceOpener


def generate_surface_name(
    client_id: str,
    scopes: Sequence[str],
    authority: str,
    correlation_id: str,
) -> str:
    """Build a deterministic window name for an authorization request.

    Repeating a request with the same client, scopes, authority and
    correlation id yields the same name, so the opener reuses the window
    instead of stacking a new one.

    Example::

        >>> generate_surface_name("cid", ["openid", "email"], "https://login.example.com", "42")
        'popauth.popup.cid.openid email.https://login.example.com.42'
    """
    return ".".join(
        [SURFACE_NAME_PREFIX, client_id, " ".join(scopes), authority, correlation_id]
    )


class InteractionLauncher:
    """Open (or adopt) the surface that hosts the interactive step.

    Args:
        opener: The platform opener that creates surfaces.

    Example::

        launcher = InteractionLauncher(SystemBrowserOpener())
        surface = launcher.initiate(authorize_url, "popauth.popup.demo")
    """

    def __init__(self, opener: SurfaceOpener) -> None:
        self._opener = opener

    def initiate(
        self,
        target_url: Optional[str],
        surface_name: str,
        existing_surface: Optional[Surface] = None,
    ) -> Surface:
        """Open a surface navigated to *target_url*.

        Args:
            target_url: Fully-formed authorization request URL.
            surface_name: Window name; reused windows keep their name.
            existing_surface: A surface to navigate instead of opening a new
                one, if it is still open.

        Returns:
            The surface handle, focused.

        Raises:
            EmptyTargetError: If *target_url* is empty or blank. Nothing is
                opened and the interaction flag is left untouched.
            SurfaceOpenError: If the opener fails or produces no surface.
        """
        if not target_url or not target_url.strip():
            raise EmptyTargetError()

        set_interaction_in_progress()
        debug(f"Navigate to: {target_url}")

        try:
            surface = self._opener.open(target_url, surface_name, existing_surface)
        except SurfaceOpenError:
            raise
        except Exception as exc:
            raise SurfaceOpenError(f"Error opening popup window: {exc}") from exc
        if surface is None:
            raise SurfaceOpenError(
                "No window was created. The browser may have blocked it.",
                error_code="empty_window_error",
            )
        surface.focus()
        return surface
