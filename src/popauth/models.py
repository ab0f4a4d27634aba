"""Pydantic models shared across popauth modules.

**Configuration** -- :class:`Settings` is serialised as JSON in the user's
config directory and resolved by :func:`popauth.config.resolve_settings`.

**Monitor output** -- :class:`MonitorOutcome` and :class:`MonitorResult`
describe the single terminal transition of a monitoring session. Exactly
one result is produced per session; only ``SUCCESS`` carries a hash.
"""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from popauth.constants import DEFAULT_POPUP_TIMEOUT_MS


class Settings(BaseModel):
    """User-wide settings persisted at ``~/.config/popauth/config.json``.

    Fields here have the lowest precedence and can be overridden by
    environment variables or CLI flags. See
    :func:`~popauth.config.resolve_settings` for the precedence chain.

    Example::

        Settings(popup_timeout_ms=120000, redirect_port=8765)
    """

    popup_timeout_ms: int = Field(
        default=DEFAULT_POPUP_TIMEOUT_MS,
        gt=0,
        description="Monitoring budget for the popup, in milliseconds",
    )
    redirect_host: str = Field(
        default="127.0.0.1", description="Host the loopback redirect listener binds to"
    )
    redirect_port: int = Field(
        default=0,
        ge=0,
        le=65535,
        description="Port for the loopback redirect listener (0 = any free port)",
    )
    new_window: bool = Field(
        default=True,
        description="Ask the browser for a new window instead of a new tab",
    )


class MonitorOutcome(str, enum.Enum):
    """The three mutually exclusive terminal conditions of a session."""

    SUCCESS = "success"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"


class MonitorResult(BaseModel):
    """Tagged outcome of one monitoring session.

    Attributes:
        outcome: Which terminal condition fired.
        hash: The recognized location hash. Set for ``SUCCESS`` only.
        ticks: Number of poll ticks counted before the session ended.
    """

    model_config = ConfigDict(frozen=True)

    outcome: MonitorOutcome
    hash: Optional[str] = None
    ticks: int = 0

    @model_validator(mode="after")
    def _hash_only_on_success(self) -> MonitorResult:
        if (self.outcome == MonitorOutcome.SUCCESS) != (self.hash is not None):
            raise ValueError("hash must be set for success and only for success")
        return self

    @classmethod
    def success(cls, hash: str, ticks: int = 0) -> MonitorResult:
        return cls(outcome=MonitorOutcome.SUCCESS, hash=hash, ticks=ticks)

    @classmethod
    def cancelled(cls, ticks: int = 0) -> MonitorResult:
        return cls(outcome=MonitorOutcome.CANCELLED, ticks=ticks)

    @classmethod
    def timed_out(cls, ticks: int = 0) -> MonitorResult:
        return cls(outcome=MonitorOutcome.TIMED_OUT, ticks=ticks)
