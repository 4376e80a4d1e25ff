"""
Health models - Probe definitions, outcomes and stored statuses.

These are plain value objects shared by the config loader, the probe
executor, the store and the transition engine.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class Status(Enum):
    """Health status of a probe. UNKNOWN means nothing is stored."""

    PASS = "pass"
    FAIL = "fail"
    UNKNOWN = "unknown"

    @classmethod
    def from_token(cls, token: Optional[str]) -> "Status":
        """
        Map a persisted token back to a Status.

        Args:
            token: Stored value ("pass" / "fail") or None when absent

        Returns:
            Status.PASS, Status.FAIL, or Status.UNKNOWN for anything else
        """
        if token == cls.PASS.value:
            return cls.PASS
        if token == cls.FAIL.value:
            return cls.FAIL
        return cls.UNKNOWN


@dataclass(frozen=True)
class ProbeParameter:
    """One request parameter; env_var means value names an env variable."""

    key: str
    value: str
    env_var: bool = False


@dataclass(frozen=True)
class ProbeDefinition:
    """
    A declarative HTTP health check.

    Attributes:
        url: Target endpoint (without the probe's own parameters)
        method: HTTP method, "GET" or "POST"
        expected_status: Status code considered passing
        parameters: Ordered request parameters
        basic_auth: Attach the shared API credentials when True
    """

    url: str
    method: str
    expected_status: int
    parameters: Tuple[ProbeParameter, ...] = field(default_factory=tuple)
    basic_auth: bool = False

    @property
    def identity(self) -> str:
        """Method plus URL, e.g. "GET https://example.com/health"."""
        return f"{self.method} {self.url}"


@dataclass(frozen=True)
class Outcome:
    """Result of executing one probe once."""

    status: Status
    message: str

    @property
    def passed(self) -> bool:
        return self.status is Status.PASS
