"""Errors specific to report orchestration."""

from __future__ import annotations

from dashreport.errors import DashReportError, ErrorKind


class JobFailedError(DashReportError):
    """Raised when the report service reports a job as failed."""

    kind = ErrorKind.JOB_FAILED

    @classmethod
    def for_job(cls, job_id: int) -> JobFailedError:
        """Return an error for a job the service stopped."""
        return cls(
            "report job stopped on the report service",
            context={"job_id": job_id},
        )


class JobTimeoutError(DashReportError):
    """Raised when a job does not reach a terminal state in time."""

    kind = ErrorKind.JOB_TIMEOUT

    @classmethod
    def attempts_exhausted(cls, job_id: int, attempts: int) -> JobTimeoutError:
        """Return an error for a job still running after ``attempts`` polls."""
        return cls(
            f"report job not finished after {attempts} poll(s)",
            context={"job_id": job_id},
        )

    @classmethod
    def deadline(cls, job_id: int, timeout_s: float) -> JobTimeoutError:
        """Return an error for a job that outlived its wall-clock limit."""
        return cls(
            f"report job not finished within {timeout_s:g}s",
            context={"job_id": job_id},
        )


__all__ = ["JobFailedError", "JobTimeoutError"]
