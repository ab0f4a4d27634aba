"""Exception hierarchy for popauth.

All exceptions inherit from :class:`PopauthError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`popauth.exit_codes`
and a short machine-readable ``error_code``. The CLI entry point in
:func:`popauth.app.main` catches ``PopauthError`` and exits with the
appropriate code, while unexpected exceptions produce a crash log and exit
with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    PopauthError (exit 1)
    +-- InvalidUsageError             (exit 2)
    |   +-- EmptyTargetError
    +-- InteractionError              (exit 3)
    |   +-- UserCancelledError
    |   +-- MonitorTimeoutError       (exit 4)
    |   +-- InteractionInProgressError
    +-- SurfaceError                  (exit 5)
    |   +-- SurfaceOpenError
    |   +-- CrossOriginError
    +-- ConfigError                   (exit 1)
"""

from popauth.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_INTERACTION_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_SURFACE_ERROR,
    EXIT_TIMEOUT,
)


class PopauthError(Exception):
    """Base exception for all popauth errors.

    Every subclass sets a class-level ``exit_code`` and ``error_code``, and
    may provide a ``default_message`` used when no message is passed.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
        error_code: Optional override for the class-level error code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE
    error_code: str = "unexpected_error"
    default_message: str = "Unexpected error"

    def __init__(
        self,
        message: str | None = None,
        exit_code: int | None = None,
        error_code: str | None = None,
    ):
        super().__init__(message or self.default_message)
        if exit_code is not None:
            self.exit_code = exit_code
        if error_code is not None:
            self.error_code = error_code


class InvalidUsageError(PopauthError):
    """Raised for invalid CLI arguments or invalid call parameters."""

    exit_code = EXIT_INVALID_USAGE
    error_code = "invalid_usage"


class EmptyTargetError(InvalidUsageError):
    """Raised by the launcher when the target URL is empty or blank."""

    error_code = "empty_navigate_uri"
    default_message = "Navigation URI is empty. No surface was opened."


class InteractionError(PopauthError):
    """Raised when the interactive step ends without an authorization response."""

    exit_code = EXIT_INTERACTION_FAILURE
    error_code = "interaction_failed"


class UserCancelledError(InteractionError):
    """Raised when the surface is closed before a recognized hash appears."""

    error_code = "user_cancelled"
    default_message = "User cancelled the flow."


class MonitorTimeoutError(InteractionError):
    """Raised when the tick budget runs out with the surface still open."""

    exit_code = EXIT_TIMEOUT
    error_code = "monitor_window_timeout"
    default_message = "Token acquisition in popup failed due to timeout."


class InteractionInProgressError(InteractionError):
    """Raised when an interactive flow starts while another one is running."""

    error_code = "interaction_in_progress"
    default_message = (
        "Interaction is currently in progress. Wait for it to complete "
        "before starting another interactive flow."
    )


class SurfaceError(PopauthError):
    """Raised on failures of the interactive surface itself."""

    exit_code = EXIT_SURFACE_ERROR
    error_code = "surface_error"


class SurfaceOpenError(SurfaceError):
    """Raised when a surface cannot be opened.

    ``error_code`` is ``popup_window_error`` when the opener failed and
    ``empty_window_error`` when it returned without a usable surface.
    """

    error_code = "popup_window_error"
    default_message = "Error opening popup window. Ensure a browser is available."


class CrossOriginError(SurfaceError):
    """Raised when reading the location of a surface that is on another origin."""

    error_code = "cross_origin_access"
    default_message = "Surface location is not readable from this origin."


class ConfigError(PopauthError):
    """Raised for configuration problems (invalid JSON, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE
    error_code = "config_error"
