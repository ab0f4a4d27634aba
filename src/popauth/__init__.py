"""popauth -- run redirect-based authorization steps in an external window.

The interactive part of an authorization flow happens in a window we do not
own: the user may close it at any time, and its location is unreadable while
it shows the authorization server's pages. popauth opens that window, then
polls it until one of three things happens first: it comes back with an
authorization response in its URL fragment, the user closes it, or the
monitoring budget runs out.

Typical usage::

    import asyncio
    from popauth.flow import PopupFlow
    from popauth.surface import SystemBrowserOpener

    with SystemBrowserOpener() as opener:
        url = f"https://login.example.com/authorize?redirect_uri={opener.redirect_uri}"
        response_hash = asyncio.run(PopupFlow(opener).run(url))

Modules:
    launcher: Opens or adopts the surface and marks the interaction in progress.
    monitor: Same-origin gate, poll loop and cleanup.
    flow: Composes both and owns the interaction flag lifecycle.
    surface: Surface contracts and the system-browser implementation.
    urls: Recognized-hash predicate and fragment parsing.
    app: Typer CLI entry point.
"""

__version__ = "0.1.0"
