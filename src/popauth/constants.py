"""Library-wide constants for launching and monitoring interactive surfaces."""

POLL_INTERVAL_MS = 50
"""Delay between two evaluations of a monitored surface, in milliseconds."""

DEFAULT_POPUP_TIMEOUT_MS = 60000
"""Recommended minimum monitoring budget. Lower values only trigger a warning."""

INTERACTION_IN_PROGRESS_VALUE = "interaction_in_progress"

BLANK_PAGE_HREF = "about:blank"

# Fragment parameters that mark an authorization response.
KNOWN_HASH_PROPERTIES = ("code", "error", "error_description", "state")

SURFACE_NAME_PREFIX = "popauth.popup"

# Endpoints served by the loopback redirect listener.
REPORT_PATH = "/__popauth/report"
CLOSED_PATH = "/__popauth/closed"
