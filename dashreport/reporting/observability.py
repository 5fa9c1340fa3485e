"""Emit structured observability events for reporting runs.

This module defines event identifiers and a logger wrapper used by
``ReportingService`` to emit run, organisation, and job lifecycle telemetry.

Usage
-----
>>> event_logger = ReportingEventLogger()
>>> event_logger.log_job_created(org_id=1, dashboard_uid="abc", job_id=42)

"""

from __future__ import annotations

import enum
import typing as typ

from dashreport.logging import get_logger, log_event

if typ.TYPE_CHECKING:
    from .models import DashboardOutcome, OrganizationSummary, RunSummary

logger = get_logger(__name__)


class ReportingEventType(enum.StrEnum):
    """Structured log event types for reporting runs."""

    RUN_STARTED = "reporting.run.started"
    RUN_COMPLETED = "reporting.run.completed"
    RUN_FAILED = "reporting.run.failed"
    ORGANIZATION_COMPLETED = "reporting.organization.completed"
    ORGANIZATION_FAILED = "reporting.organization.failed"
    JOB_CREATED = "reporting.job.created"
    JOB_COMPLETED = "reporting.job.completed"
    JOB_FAILED = "reporting.job.failed"


class ReportingEventLogger:
    """Emit structured reporting events via femtologging."""

    def log_run_started(self, *, organizations: int) -> None:
        """Log the start of a run over ``organizations`` organisations."""
        log_event(
            logger,
            "INFO",
            ReportingEventType.RUN_STARTED,
            organizations=organizations,
        )

    def log_run_completed(self, summary: RunSummary) -> None:
        """Log the end of a run with per-run totals."""
        log_event(
            logger,
            "INFO",
            ReportingEventType.RUN_COMPLETED,
            organizations=len(summary.organizations),
            failed_organizations=sum(1 for org in summary.organizations if not org.ok),
            delivered=sum(org.delivered for org in summary.organizations),
            duration_seconds=f"{summary.duration.total_seconds():.3f}",
        )

    def log_run_failed(self, *, error: BaseException) -> None:
        """Log a run that could not list organisations."""
        log_event(
            logger,
            "ERROR",
            ReportingEventType.RUN_FAILED,
            error_type=type(error).__name__,
            error_message=error,
        )

    def log_organization_completed(self, summary: OrganizationSummary) -> None:
        """Log the result of one organisation.

        Organisations that failed to resolve or were interrupted are logged at
        ERROR; the rest at INFO with their delivery count.
        """
        org = summary.organization
        if summary.error is not None or summary.interrupted is not None:
            log_event(
                logger,
                "ERROR",
                ReportingEventType.ORGANIZATION_FAILED,
                org_id=org.id,
                org_name=org.name,
                error=summary.error,
                interrupted=summary.interrupted,
            )
            return
        log_event(
            logger,
            "INFO",
            ReportingEventType.ORGANIZATION_COMPLETED,
            org_id=org.id,
            org_name=org.name,
            dashboards=len(summary.outcomes),
            delivered=summary.delivered,
        )

    def log_job_created(self, *, org_id: int, dashboard_uid: str, job_id: int) -> None:
        """Log a job accepted by the report service."""
        log_event(
            logger,
            "INFO",
            ReportingEventType.JOB_CREATED,
            org_id=org_id,
            dashboard_uid=dashboard_uid,
            job_id=job_id,
        )

    def log_job_finished(self, outcome: DashboardOutcome) -> None:
        """Log a job's final outcome."""
        if outcome.ok:
            log_event(
                logger,
                "INFO",
                ReportingEventType.JOB_COMPLETED,
                org_id=outcome.org_id,
                dashboard_uid=outcome.dashboard_uid,
                job_id=outcome.job_id,
            )
            return
        log_event(
            logger,
            "WARNING",
            ReportingEventType.JOB_FAILED,
            org_id=outcome.org_id,
            dashboard_uid=outcome.dashboard_uid,
            job_id=outcome.job_id,
            state=outcome.state,
            error=outcome.error,
        )


__all__ = ["ReportingEventLogger", "ReportingEventType"]
