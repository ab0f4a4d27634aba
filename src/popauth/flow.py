"""Popup flow controller -- launch, monitor, and conclude one interactive flow.

:class:`PopupFlow` composes :class:`~popauth.launcher.InteractionLauncher`
and :class:`~popauth.monitor.SurfaceMonitor` and owns the lifecycle of the
process-wide interaction flag: it claims the flag atomically, refuses to
start while another flow holds it, and clears the flag when the flow ends,
whichever way it ends.
"""

from __future__ import annotations

from typing import Optional

from popauth.constants import POLL_INTERVAL_MS
from popauth.exceptions import InteractionInProgressError
from popauth.interaction import clear_interaction_status, try_set_interaction_in_progress
from popauth.launcher import InteractionLauncher
from popauth.models import Settings
from popauth.monitor import SurfaceMonitor
from popauth.surface.base import Surface, SurfaceOpener

DEFAULT_SURFACE_NAME = "popauth.popup"


class PopupFlow:
    """Run an authorization step in a popup surface.

    Args:
        opener: Opener used to create the surface.
        settings: Effective settings; supplies the default timeout.
        poll_interval_ms: Poll interval passed to the monitor.

    Example::

        with SystemBrowserOpener() as opener:
            flow = PopupFlow(opener, resolve_settings())
            response_hash = asyncio.run(flow.run(authorize_url))
    """

    def __init__(
        self,
        opener: SurfaceOpener,
        settings: Optional[Settings] = None,
        poll_interval_ms: int = POLL_INTERVAL_MS,
    ) -> None:
        self.settings = settings or Settings()
        self.launcher = InteractionLauncher(opener)
        self.monitor = SurfaceMonitor(poll_interval_ms)

    async def run(
        self,
        target_url: str,
        surface_name: Optional[str] = None,
        existing_surface: Optional[Surface] = None,
        timeout_ms: Optional[int] = None,
    ) -> str:
        """Open *target_url* and wait for the authorization response hash.

        Raises:
            InteractionInProgressError: If another flow is still running.
            EmptyTargetError: If *target_url* is blank.
            SurfaceOpenError: If no surface could be opened.
            UserCancelledError: If the user closed the surface.
            MonitorTimeoutError: If the surface never produced a response.
        """
        if not try_set_interaction_in_progress():
            raise InteractionInProgressError()

        budget = timeout_ms if timeout_ms is not None else self.settings.popup_timeout_ms
        try:
            surface = self.launcher.initiate(
                target_url, surface_name or DEFAULT_SURFACE_NAME, existing_surface
            )
            return await self.monitor.wait_for_completion(surface, budget)
        finally:
            clear_interaction_status()
