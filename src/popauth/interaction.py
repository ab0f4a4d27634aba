"""Process-wide interaction status.

Only one interactive flow may be on screen at a time. The launcher marks
the flow as in progress when it opens a surface; the flow controller
(:class:`~popauth.flow.PopupFlow`) claims the flag atomically before
starting and clears it once the flow concludes, whatever the outcome.

The status lives in module state behind a lock, following the same
get/set/reset pattern as :mod:`popauth.output`, so a value written by one
thread is visible to every other reader as soon as the writer returns.
"""

from __future__ import annotations

import threading
from typing import Optional

from popauth.constants import INTERACTION_IN_PROGRESS_VALUE

_lock = threading.Lock()
_status: Optional[str] = None


def set_interaction_in_progress() -> None:
    """Mark an interactive flow as in progress."""
    global _status
    with _lock:
        _status = INTERACTION_IN_PROGRESS_VALUE


def try_set_interaction_in_progress() -> bool:
    """Claim the flag if it is free.

    Returns:
        True if this call set the flag, False if another flow holds it.
        The check and the set happen under one lock acquisition.
    """
    global _status
    with _lock:
        if _status == INTERACTION_IN_PROGRESS_VALUE:
            return False
        _status = INTERACTION_IN_PROGRESS_VALUE
        return True


def is_interaction_in_progress() -> bool:
    """Return True while an interactive flow holds the flag."""
    with _lock:
        return _status == INTERACTION_IN_PROGRESS_VALUE


def clear_interaction_status() -> None:
    """Clear the flag. Safe to call when nothing is in progress."""
    global _status
    with _lock:
        _status = None
