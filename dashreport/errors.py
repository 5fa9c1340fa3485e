"""Structured error base shared by every dashreport subsystem.

Each error carries a kind tag plus contextual key/value pairs (organisation,
dashboard, job) that are attached as the error crosses a propagation
boundary:

>>> err = UpstreamUnavailableError.http_error("orgs", 502)
>>> err.with_context(org_id=1).context
{'path': 'orgs', 'status_code': 502, 'org_id': 1}

"""

from __future__ import annotations

import enum
import typing as typ


class ErrorKind(enum.StrEnum):
    """Classification tag carried by :class:`DashReportError`."""

    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    NOT_CACHED = "not_cached"
    CREATE_FAILED = "create_failed"
    ARTIFACT_UNAVAILABLE = "artifact_unavailable"
    REPORT_SERVICE = "report_service"
    CONFIGURATION = "configuration"
    JOB_FAILED = "job_failed"
    JOB_TIMEOUT = "job_timeout"


class DashReportError(Exception):
    """Base class for all dashreport errors.

    Parameters
    ----------
    message
        Human-readable description of the failure.
    context
        Initial contextual key/value pairs.

    Attributes
    ----------
    kind
        Class-level classification tag.
    context
        Contextual pairs accumulated at each propagation boundary.

    """

    kind: typ.ClassVar[ErrorKind]

    def __init__(
        self,
        message: str,
        *,
        context: typ.Mapping[str, object] | None = None,
    ) -> None:
        """Initialise with a message and optional context pairs."""
        self.message = message
        self.context: dict[str, object] = dict(context or {})
        super().__init__(message)

    def with_context(self, **pairs: object) -> typ.Self:
        """Attach context pairs without overwriting existing keys."""
        for key, value in pairs.items():
            self.context.setdefault(key, value)
        return self

    @property
    def is_soft(self) -> bool:
        """Return True when the failure should be logged and absorbed."""
        return False

    def __str__(self) -> str:
        """Render the message followed by its context pairs."""
        if not self.context:
            return self.message
        pairs = " ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} ({pairs})"


class ConfigurationError(DashReportError):
    """Raised when settings are missing or invalid."""

    kind = ErrorKind.CONFIGURATION

    @classmethod
    def invalid(cls, source: str, detail: str) -> ConfigurationError:
        """Return an error for an invalid configuration source."""
        return cls(f"invalid configuration: {detail}", context={"source": source})


class UpstreamUnavailableError(DashReportError):
    """Raised when an external service is unreachable or answers non-2xx.

    Not-found and forbidden answers are soft: they reflect races between
    listing and access checks rather than an outage.
    """

    kind = ErrorKind.UPSTREAM_UNAVAILABLE

    _SOFT_STATUS_CODES: typ.ClassVar[frozenset[int]] = frozenset({403, 404})

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        context: typ.Mapping[str, object] | None = None,
    ) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message, context=context)

    @property
    def is_soft(self) -> bool:
        """Return True for not-found and forbidden responses."""
        return self.status_code in self._SOFT_STATUS_CODES

    @classmethod
    def http_error(cls, path: str, status_code: int) -> UpstreamUnavailableError:
        """Return an error for a non-success HTTP status."""
        return cls(
            f"upstream answered HTTP {status_code}",
            status_code=status_code,
            context={"path": path, "status_code": status_code},
        )

    @classmethod
    def network_error(cls, path: str, detail: str) -> UpstreamUnavailableError:
        """Return an error for a transport-level failure."""
        return cls(f"upstream unreachable: {detail}", context={"path": path})

    @classmethod
    def unreadable(cls, path: str) -> UpstreamUnavailableError:
        """Return an error for a body that is not the expected JSON shape."""
        return cls("upstream returned an unreadable body", context={"path": path})


__all__ = [
    "ConfigurationError",
    "DashReportError",
    "ErrorKind",
    "UpstreamUnavailableError",
]
