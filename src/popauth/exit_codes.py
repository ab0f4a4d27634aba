"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific failure category and is referenced by the
corresponding :class:`~popauth.exceptions.PopauthError` subclass.
Shell wrappers can inspect the exit code to tell a cancelled login from a
timed-out one without parsing stderr.

Example::

    $ popauth open "https://login.example.com/authorize?redirect_uri={redirect_uri}"
    $ echo $?
    3   # EXIT_INTERACTION_FAILURE -- the user closed the window
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments (e.g. an empty target URL)."""

EXIT_INTERACTION_FAILURE = 3
"""The interactive step did not complete (user cancelled, flow already running)."""

EXIT_TIMEOUT = 4
"""The surface was monitored for the full budget without a result."""

EXIT_SURFACE_ERROR = 5
"""The interactive surface could not be opened or read."""

EXIT_CANCELLED = 130
"""The process was interrupted with Ctrl-C."""
