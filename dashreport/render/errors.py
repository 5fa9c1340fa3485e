"""Errors raised by the report job client."""

from __future__ import annotations

from dashreport.errors import DashReportError, ErrorKind


class ReportServiceError(DashReportError):
    """Raised when the report service cannot satisfy a request."""

    kind = ErrorKind.REPORT_SERVICE

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        context: dict[str, object] | None = None,
    ) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message, context=context)

    @classmethod
    def http_error(cls, endpoint: str, status_code: int) -> ReportServiceError:
        """Return an error for a non-success HTTP status."""
        return cls(
            f"report service answered HTTP {status_code}",
            status_code=status_code,
            context={"endpoint": endpoint},
        )

    @classmethod
    def network_error(cls, endpoint: str, detail: str) -> ReportServiceError:
        """Return an error for a transport-level failure."""
        return cls(
            f"report service unreachable: {detail}", context={"endpoint": endpoint}
        )


class CreateFailedError(ReportServiceError):
    """Raised when a render job could not be created."""

    kind = ErrorKind.CREATE_FAILED

    @classmethod
    def invalid_job_id(cls, raw: object) -> CreateFailedError:
        """Return an error for a missing or non-integer job identifier."""
        return cls(
            "create response carried no integer report_id",
            context={"report_id": repr(raw)},
        )

    @classmethod
    def unreadable(cls) -> CreateFailedError:
        """Return an error for a create response that is not a JSON object."""
        return cls("create response body is not a JSON object")


class ArtifactUnavailableError(ReportServiceError):
    """Raised when a finished report cannot be downloaded."""

    kind = ErrorKind.ARTIFACT_UNAVAILABLE

    @classmethod
    def empty(cls, job_id: int) -> ArtifactUnavailableError:
        """Return an error for an empty artefact body."""
        return cls("report artefact is empty", context={"job_id": job_id})


__all__ = ["ArtifactUnavailableError", "CreateFailedError", "ReportServiceError"]
