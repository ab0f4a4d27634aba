"""System-browser surface backed by a loopback redirect listener.

The system browser is the interactive window, and it never lets us read
its location while it shows the authorization server's pages. What we do
own is the redirect target: a small HTTP server on ``127.0.0.1``. Once the
browser is redirected there, the window is "same-origin" from our point of
view. The landing page we serve reports ``window.location.href`` (fragment
included, which a browser never sends to a server by itself) and announces
when it is being closed.

Flow:
    1. :class:`SystemBrowserOpener` binds a :class:`RedirectListener` and
       exposes its :attr:`~SystemBrowserOpener.redirect_uri`.
    2. :meth:`SystemBrowserOpener.open` launches the browser at the target
       URL and returns a :class:`LoopbackSurface`.
    3. Until the browser reaches the listener, reading the surface location
       raises :class:`~popauth.exceptions.CrossOriginError`.
    4. The landing page POSTs its href to ``/__popauth/report`` and keeps
       polling; once the surface is closed on our side the reply tells the
       page to close itself.

The browser window cannot be observed before it reaches the listener, so a
user closing it while still on the authorization server goes unnoticed
until the monitor times out.
"""

from __future__ import annotations

import json
import threading
import webbrowser
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Optional
from urllib.parse import urljoin

from popauth.constants import CLOSED_PATH, REPORT_PATH
from popauth.exceptions import CrossOriginError, SurfaceOpenError
from popauth.output import debug
from popauth.surface.base import Surface, SurfaceOpener
from popauth.urls import origin_of

_LANDING_PAGE = """<!doctype html>
<html>
<head><meta charset="utf-8"><title>Sign-in complete</title></head>
<body>
<h2>Completing sign-in. You can close this window and return to the terminal.</h2>
<script>
(function () {
  function report() {
    fetch("%(report)s", {
      method: "POST",
      headers: {"Content-Type": "application/json"},
      body: JSON.stringify({href: window.location.href})
    })
      .then(function (response) { return response.json(); })
      .then(function (state) {
        if (state.close) { window.close(); } else { setTimeout(report, 1000); }
      })
      .catch(function () {});
  }
  window.addEventListener("pagehide", function () {
    navigator.sendBeacon("%(closed)s");
  });
  report();
})();
</script>
</body>
</html>
""" % {"report": REPORT_PATH, "closed": CLOSED_PATH}


class _RedirectHandler(BaseHTTPRequestHandler):
    server: _ListenerServer

    def do_GET(self) -> None:
        self.server.listener.record_landing(self.path)
        self._send(200, "text/html; charset=utf-8", _LANDING_PAGE.encode("utf-8"))

    def do_POST(self) -> None:
        listener = self.server.listener
        length = int(self.headers.get("Content-Length") or 0)
        raw = self.rfile.read(length) if length else b""

        if self.path == REPORT_PATH:
            try:
                href = json.loads(raw.decode("utf-8")).get("href", "")
            except (ValueError, AttributeError):
                href = None
            if not isinstance(href, str):
                self._send(400, "application/json", b'{"error": "invalid report"}')
                return
            listener.record_report(href)
            body = json.dumps({"close": listener.is_released()}).encode("utf-8")
            self._send(200, "application/json", body)
        elif self.path == CLOSED_PATH:
            listener.record_page_closed()
            self._send(204, "text/plain", b"")
        else:
            self._send(404, "text/plain", b"not found")

    def _send(self, status: int, content_type: str, body: bytes) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Cache-Control", "no-store")
        self.end_headers()
        if body:
            self.wfile.write(body)

    def log_message(self, format: str, *args: Any) -> None:
        pass


class _ListenerServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], listener: RedirectListener) -> None:
        super().__init__(address, _RedirectHandler)
        self.listener = listener


class RedirectListener:
    """Local HTTP server that receives the authorization redirect.

    Tracks what the browser window reported for the current surface: its
    href (``None`` until the browser reached us), whether the page was
    closed, and whether our side has released the surface.

    Args:
        host: Interface to bind, normally ``127.0.0.1``.
        port: Port to bind. ``0`` picks a free port.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 0) -> None:
        self._lock = threading.Lock()
        self._href: Optional[str] = None
        self._page_closed = False
        self._released = False
        try:
            self._server = _ListenerServer((host, port), self)
        except OSError as exc:
            raise SurfaceOpenError(
                f"Cannot bind redirect listener on {host}:{port}: {exc}"
            ) from exc
        self._thread: Optional[threading.Thread] = None
        bound_host, bound_port = self._server.server_address[:2]
        self.base_url = f"http://{bound_host}:{bound_port}/"

    def start(self) -> RedirectListener:
        if self._thread is None:
            self._thread = threading.Thread(
                target=self._server.serve_forever, name="popauth-listener", daemon=True
            )
            self._thread.start()
            debug(f"Redirect listener serving on {self.base_url}")
        return self

    def stop(self) -> None:
        if self._thread is not None:
            self._server.shutdown()
            self._thread.join()
            self._thread = None
        self._server.server_close()

    def reset(self) -> None:
        """Forget everything reported for the previous surface."""
        with self._lock:
            self._href = None
            self._page_closed = False
            self._released = False

    # Called from request threads.

    def record_landing(self, path: str) -> None:
        with self._lock:
            self._href = urljoin(self.base_url, path)
            self._page_closed = False

    def record_report(self, href: str) -> None:
        if origin_of(href) != origin_of(self.base_url):
            return
        with self._lock:
            self._href = href

    def record_page_closed(self) -> None:
        with self._lock:
            self._page_closed = True

    # Called from the surface.

    @property
    def href(self) -> Optional[str]:
        with self._lock:
            return self._href

    @property
    def page_closed(self) -> bool:
        with self._lock:
            return self._page_closed

    def release(self) -> None:
        with self._lock:
            self._released = True

    def is_released(self) -> bool:
        with self._lock:
            return self._released


class LoopbackSurface(Surface):
    """A system-browser window observed through a :class:`RedirectListener`.

    Args:
        name: Window name the surface was opened under.
        listener: The listener the browser will be redirected to.
        browser_open: Callable used to (re)navigate the browser, with the
            signature of :func:`webbrowser.open`.
    """

    def __init__(
        self,
        name: str,
        listener: RedirectListener,
        browser_open: Callable[..., bool] = webbrowser.open,
    ) -> None:
        super().__init__(name)
        self._listener = listener
        self._browser_open = browser_open
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed or self._listener.page_closed

    @property
    def location_href(self) -> str:
        href = self._listener.href
        if href is None:
            raise CrossOriginError()
        return href

    def navigate(self, url: str) -> None:
        self._listener.reset()
        self._closed = False
        self._browser_open(url, new=0)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._listener.release()


class SystemBrowserOpener(SurfaceOpener):
    """Open surfaces in the user's default browser.

    The listener is bound lazily on first use of :attr:`redirect_uri` or
    :meth:`open`, and stays up until :meth:`shutdown`. Surfaces are keyed
    by name: opening a name that is still open navigates the same surface.
    Only the most recently opened surface receives redirects; opening a
    new name closes the previous surfaces.

    Args:
        host: Interface for the redirect listener.
        port: Port for the redirect listener (``0`` = any free port).
        new_window: Ask the browser for a new window rather than a tab.

    Example::

        with SystemBrowserOpener() as opener:
            url = authorize_url.replace("{redirect_uri}", opener.redirect_uri)
            surface = opener.open(url, "popauth.popup.demo")
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 0, new_window: bool = True) -> None:
        self._host = host
        self._port = port
        self._new_window = new_window
        self._listener: Optional[RedirectListener] = None
        self._surfaces: dict[str, LoopbackSurface] = {}

    @property
    def listener(self) -> RedirectListener:
        if self._listener is None:
            self._listener = RedirectListener(self._host, self._port).start()
        return self._listener

    @property
    def redirect_uri(self) -> str:
        """Base URL of the redirect listener, e.g. ``http://127.0.0.1:53211/``."""
        return self.listener.base_url

    def open(
        self, url: str, name: str, existing: Optional[Surface] = None
    ) -> Optional[Surface]:
        reuse = existing if existing is not None else self._surfaces.get(name)
        if reuse is not None and not reuse.closed:
            debug(f"Reusing surface '{reuse.name}'")
            reuse.navigate(url)
            return reuse

        listener = self.listener
        for other in list(self._surfaces.values()):
            other.close()
        self._surfaces.clear()
        listener.reset()

        try:
            opened = webbrowser.open(url, new=1 if self._new_window else 2)
        except webbrowser.Error as exc:
            raise SurfaceOpenError(f"Error opening browser: {exc}") from exc
        if not opened:
            return None

        surface = LoopbackSurface(name, listener, webbrowser.open)
        self._surfaces[name] = surface
        return surface

    def shutdown(self) -> None:
        """Close every surface and stop the listener."""
        for surface in self._surfaces.values():
            surface.close()
        self._surfaces.clear()
        if self._listener is not None:
            self._listener.stop()
            self._listener = None

    def __enter__(self) -> SystemBrowserOpener:
        return self

    def __exit__(self, *args: object) -> None:
        self.shutdown()
