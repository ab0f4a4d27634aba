"""Open command -- run one popup authorization flow from the terminal.

Opens the authorization URL in the default browser, waits for the browser
to be redirected to the local listener, and prints the parameters found in
the URL fragment (``code``, ``state``, ``error``, ...) to stdout.

Typical usage::

    popauth open "https://login.example.com/authorize?client_id=cli&response_mode=fragment&redirect_uri={redirect_uri}"
    popauth --json open "$AUTHORIZE_URL" --timeout-ms 120000 | jq -r .code
"""

from __future__ import annotations

import asyncio
from typing import Optional
from urllib.parse import quote

import typer

from popauth.exceptions import InteractionError, MonitorTimeoutError, PopauthError
from popauth.output import error, format_response, get_output, info, success, suggest, warning

REDIRECT_PLACEHOLDER = "{redirect_uri}"


def open_command(
    url: str = typer.Argument(
        help="Authorization URL. '{redirect_uri}' is replaced with the local listener address."
    ),
    name: Optional[str] = typer.Option(
        None, "--name", help="Window name. Reusing a name reuses the window."
    ),
    timeout_ms: Optional[int] = typer.Option(
        None, "--timeout-ms", help="Monitoring budget once the browser is back, in ms."
    ),
    host: Optional[str] = typer.Option(
        None, "--host", help="Interface for the redirect listener."
    ),
    port: Optional[int] = typer.Option(
        None, "--port", help="Port for the redirect listener (0 = any free port)."
    ),
    raw: bool = typer.Option(
        False, "--raw", help="Print the raw fragment instead of its parameters."
    ),
) -> None:
    """Open URL in the browser and wait for the authorization response.

    Raises:
        typer.Exit: With the error's exit code when the flow fails (2 for an
            empty URL, 3 when the window was closed, 4 on timeout, 5 when no
            browser window could be opened).

    Example::

        popauth open "https://login.example.com/authorize?redirect_uri={redirect_uri}"
    """
    from popauth.config import resolve_settings
    from popauth.flow import PopupFlow
    from popauth.surface import SystemBrowserOpener
    from popauth.urls import deserialize_hash

    try:
        settings = resolve_settings(timeout_ms, host, port)
        with SystemBrowserOpener(
            settings.redirect_host, settings.redirect_port, settings.new_window
        ) as opener:
            if REDIRECT_PLACEHOLDER in url:
                target = url.replace(REDIRECT_PLACEHOLDER, quote(opener.redirect_uri, safe=""))
            else:
                target = url
                if url.strip():
                    warning(
                        f"URL has no {REDIRECT_PLACEHOLDER} placeholder; its redirect "
                        f"must point at {opener.redirect_uri}"
                    )
            info(f"Opening browser. Waiting for the redirect on {opener.redirect_uri}")
            response_hash = asyncio.run(PopupFlow(opener, settings).run(target, name))
    except PopauthError as exc:
        error(str(exc))
        if isinstance(exc, MonitorTimeoutError):
            suggest("Increase --timeout-ms or finish signing in sooner.")
        raise typer.Exit(code=exc.exit_code) from None

    params = deserialize_hash(response_hash)
    if raw:
        get_output().print_data(response_hash)
    else:
        format_response(params)

    if params.get("error"):
        exc = InteractionError(
            f"Authorization server returned '{params['error']}': "
            f"{params.get('error_description', '')}".rstrip(": "),
            error_code=params["error"],
        )
        error(str(exc))
        raise typer.Exit(code=exc.exit_code)

    success("Authorization response received.")
