"""Reporting service driving render jobs for every resolved dashboard.

This module provides the ReportingService class which orchestrates a
reporting run: listing organisations, resolving their dashboards, submitting
one render job per dashboard, polling it to a terminal state, and handing the
finished report to a delivery sink.

Usage
-----
Create a service and run it once:

>>> from pathlib import Path
>>> from dashreport.delivery import FilesystemDelivery
>>> from dashreport.metadata import (
...     DashboardCache,
...     GrafanaMetadataClient,
...     MetadataResolver,
...     MetadataServiceConfig,
... )
>>> from dashreport.render import ReportJobClient, ReportServiceConfig
>>> from dashreport.reporting import (
...     ReportingConfig,
...     ReportingService,
...     ReportingServiceDependencies,
... )
>>>
>>> metadata = GrafanaMetadataClient(MetadataServiceConfig())
>>> dependencies = ReportingServiceDependencies(
...     resolver=MetadataResolver(metadata, DashboardCache()),
...     report_client=ReportJobClient(ReportServiceConfig()),
...     delivery=FilesystemDelivery(Path("reports")),
... )
>>> service = ReportingService(dependencies, config=ReportingConfig())
>>> summary = await service.run()

"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import datetime as dt
import typing as typ

from dashreport.common.slug import dashboard_subject, slugify
from dashreport.errors import DashReportError
from dashreport.logging import get_logger, log_debug, log_exception, log_warning
from dashreport.render.models import CancelOutcome, ReportRequest, ReportStatus

from .errors import JobFailedError, JobTimeoutError
from .models import (
    DashboardOutcome,
    OrganizationResolution,
    OrganizationSummary,
    OutcomeState,
    RunSummary,
)
from .observability import ReportingEventLogger

if typ.TYPE_CHECKING:
    from dashreport.delivery.sink import DeliverySink
    from dashreport.metadata.models import Organization, ResolvedDashboard
    from dashreport.metadata.resolver import MetadataResolver
    from dashreport.render.client import ReportJobClient
    from dashreport.render.models import ReportJob

    from .config import ReportingConfig

logger = get_logger(__name__)

INTERRUPTED_BY_DEADLINE = "timed out"
INTERRUPTED_BY_STOP = "stopped"

_MAX_BACKOFF_FACTOR = 8


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


@dc.dataclass(frozen=True, slots=True)
class ReportingServiceDependencies:
    """Core dependencies for ReportingService.

    Attributes
    ----------
    resolver
        Resolves organisations and dashboards from the metadata service.
    report_client
        Client for the report rendering service.
    delivery
        Destination for finished reports.

    """

    resolver: MetadataResolver
    report_client: ReportJobClient
    delivery: DeliverySink


@dc.dataclass(slots=True)
class _OrganizationProgress:
    """Mutable record of one organisation's work while a run is in flight."""

    organization: Organization
    dashboards: tuple[ResolvedDashboard, ...] = ()
    outcomes: dict[int, DashboardOutcome] = dc.field(default_factory=dict)
    error: str | None = None

    def summarize(self, *, interrupted: str | None = None) -> OrganizationSummary:
        ordered = tuple(self.outcomes[index] for index in sorted(self.outcomes))
        return OrganizationSummary(
            organization=self.organization,
            outcomes=ordered,
            error=self.error,
            interrupted=interrupted,
        )


class ReportingService:
    """Orchestrates report generation across organisations.

    Each organisation is processed as an independent task. A failure inside
    one organisation never aborts its siblings, and a failing job never
    aborts the other jobs of its organisation.

    Parameters
    ----------
    dependencies
        Resolver, report client, and delivery sink.
    config
        Job parameters and polling policy.
    event_logger
        Optional structured event logger. Defaults to
        :class:`ReportingEventLogger`.

    """

    def __init__(
        self,
        dependencies: ReportingServiceDependencies,
        *,
        config: ReportingConfig,
        event_logger: ReportingEventLogger | None = None,
    ) -> None:
        """Configure the service with its collaborators."""
        self._resolver = dependencies.resolver
        self._report_client = dependencies.report_client
        self._delivery = dependencies.delivery
        self._config = config
        self._events = event_logger or ReportingEventLogger()

    @property
    def config(self) -> ReportingConfig:
        """Return the reporting configuration."""
        return self._config

    async def run(self, *, stop: asyncio.Event | None = None) -> RunSummary:
        """Generate and deliver a report for every resolvable dashboard.

        Parameters
        ----------
        stop
            Optional event that ends the run early when set. Organisations
            still in progress are reported as interrupted, keeping the
            outcomes recorded so far.

        Returns
        -------
        RunSummary
            Per-organisation outcomes. ``error`` is set when organisations
            could not be listed at all.

        """
        started_at = _utcnow()
        try:
            organizations = await self._resolver.list_organizations()
        except DashReportError as exc:
            self._events.log_run_failed(error=exc)
            return RunSummary(
                started_at=started_at, finished_at=_utcnow(), error=str(exc)
            )

        self._events.log_run_started(organizations=len(organizations))
        progress = [_OrganizationProgress(organization=org) for org in organizations]
        semaphore = asyncio.Semaphore(self._config.max_concurrent_organizations)

        async def bounded(entry: _OrganizationProgress) -> None:
            async with semaphore:
                await self._process_organization(entry)

        tasks = [
            asyncio.create_task(
                bounded(entry), name=f"organization-{entry.organization.id}"
            )
            for entry in progress
        ]
        interrupted, reason = await self._join(tasks, stop)

        summaries: list[OrganizationSummary] = []
        for entry, task in zip(progress, tasks, strict=True):
            if task in interrupted:
                summary = entry.summarize(interrupted=reason)
            else:
                exc = task.exception()
                if exc is not None:
                    log_exception(
                        logger,
                        f"Organisation {entry.organization.id} failed unexpectedly",
                        exc,
                    )
                    entry.error = f"{type(exc).__name__}: {exc}"
                summary = entry.summarize()
            self._events.log_organization_completed(summary)
            summaries.append(summary)

        result = RunSummary(
            started_at=started_at,
            finished_at=_utcnow(),
            organizations=tuple(summaries),
        )
        self._events.log_run_completed(result)
        return result

    async def _join(
        self,
        tasks: list[asyncio.Task[None]],
        stop: asyncio.Event | None,
    ) -> tuple[set[asyncio.Task[None]], str | None]:
        """Wait for ``tasks``; cancel the rest on deadline or stop.

        Returns the set of cancelled tasks and the reason they were cancelled.
        """
        pending: set[asyncio.Task[None]] = set(tasks)
        stop_waiter = asyncio.create_task(stop.wait()) if stop is not None else None
        loop = asyncio.get_running_loop()
        deadline_s = self._config.run_deadline_s
        deadline = None if deadline_s is None else loop.time() + deadline_s
        reason: str | None = None

        try:
            while pending:
                timeout = None if deadline is None else max(deadline - loop.time(), 0)
                waiters: set[asyncio.Task[typ.Any]] = set(pending)
                if stop_waiter is not None:
                    waiters.add(stop_waiter)
                done, _ = await asyncio.wait(
                    waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
                )
                pending -= done
                if stop_waiter is not None and stop_waiter in done:
                    reason = INTERRUPTED_BY_STOP
                    break
                if not done:
                    reason = INTERRUPTED_BY_DEADLINE
                    break
        finally:
            if stop_waiter is not None:
                stop_waiter.cancel()
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        if pending:
            log_warning(
                logger,
                "Run %s with %d organisation(s) unfinished",
                reason,
                len(pending),
            )
        return pending, reason

    async def _process_organization(self, entry: _OrganizationProgress) -> None:
        org = entry.organization
        try:
            resolved = await self._resolver.resolve_organization(org)
        except DashReportError as exc:
            entry.error = str(exc)
            return
        entry.dashboards = tuple(resolved)
        semaphore = asyncio.Semaphore(self._config.max_concurrent_jobs)

        async def bounded(index: int, dashboard: ResolvedDashboard) -> None:
            async with semaphore:
                try:
                    outcome = await self.run_for_dashboard(dashboard)
                except Exception as exc:  # noqa: BLE001
                    log_exception(
                        logger,
                        f"Report for dashboard {dashboard.dashboard.uid} crashed",
                        exc,
                    )
                    outcome = self._finish(
                        dashboard,
                        OutcomeState.FAILED,
                        error=f"{type(exc).__name__}: {exc}",
                    )
                entry.outcomes[index] = outcome

        async with asyncio.TaskGroup() as group:
            for index, dashboard in enumerate(entry.dashboards):
                group.create_task(bounded(index, dashboard))

    async def run_for_organization(self, org: Organization) -> OrganizationSummary:
        """Resolve and report every dashboard of a single organisation.

        Returns
        -------
        OrganizationSummary
            Outcomes in listing order. ``error`` is set when the
            organisation's dashboards could not be resolved.

        """
        entry = _OrganizationProgress(organization=org)
        await self._process_organization(entry)
        summary = entry.summarize()
        self._events.log_organization_completed(summary)
        return summary

    async def run_for_dashboard(self, resolved: ResolvedDashboard) -> DashboardOutcome:
        """Render, await, and deliver the report for one dashboard.

        Failures are captured in the returned outcome rather than raised.
        When the enclosing task is cancelled, the remote job is cancelled on
        a best-effort basis before the cancellation propagates.

        """
        dashboard = resolved.dashboard
        request = ReportRequest(
            template=self._config.template or dashboard.uid,
            time_from=self._config.time_from,
            time_to=self._config.time_to,
            variables=resolved.variables,
        )
        try:
            job = await self._report_client.submit(request)
        except DashReportError as exc:
            exc.with_context(org_id=dashboard.org_id, dashboard_uid=dashboard.uid)
            return self._finish(resolved, OutcomeState.FAILED, error=str(exc))

        self._events.log_job_created(
            org_id=dashboard.org_id, dashboard_uid=dashboard.uid, job_id=job.job_id
        )
        try:
            job = await self._await_completion(job)
        except JobTimeoutError as exc:
            await self._abandon(job)
            return self._finish(
                resolved, OutcomeState.TIMED_OUT, job=job, error=str(exc)
            )
        except asyncio.CancelledError:
            await self._abandon(job)
            raise

        if job.status is ReportStatus.FAILED:
            error = JobFailedError.for_job(job.job_id)
            return self._finish(
                resolved, OutcomeState.FAILED, job=job, error=str(error)
            )

        try:
            artifact = await self._report_client.fetch_artifact(job.job_id)
        except DashReportError as exc:
            return self._finish(
                resolved, OutcomeState.UNDELIVERED, job=job, error=str(exc)
            )

        delivered = await self._delivery.deliver(
            recipient=self._config.recipient,
            subject=dashboard_subject(dashboard.title, dashboard.folder_title),
            attachment=artifact,
            filename=f"{slugify(dashboard.title)}.pdf",
        )
        if not delivered:
            return self._finish(
                resolved,
                OutcomeState.UNDELIVERED,
                job=job,
                error=f"delivery to {self._config.recipient} failed",
            )
        return self._finish(resolved, OutcomeState.DELIVERED, job=job)

    async def _await_completion(self, job: ReportJob) -> ReportJob:
        """Poll ``job`` until it is terminal.

        Raises
        ------
        JobTimeoutError
            When the attempt budget or the per-job wall clock is exhausted.

        """
        timeout_s = self._config.job_timeout_s
        try:
            async with asyncio.timeout(timeout_s):
                return await self._poll_until_terminal(job)
        except TimeoutError as exc:
            raise JobTimeoutError.deadline(job.job_id, timeout_s or 0.0) from exc

    async def _poll_until_terminal(self, job: ReportJob) -> ReportJob:
        interval = self._config.poll_interval_s
        max_attempts = self._config.poll_max_attempts
        unknown_streak = 0
        for attempt in range(1, max_attempts + 1):
            job = await self._report_client.poll(job)
            if job.status.is_terminal:
                return job
            if attempt == max_attempts:
                break
            # back off while the service cannot report a status
            if job.status is ReportStatus.UNKNOWN:
                unknown_streak += 1
            else:
                unknown_streak = 0
            factor = min(2**unknown_streak, _MAX_BACKOFF_FACTOR)
            log_debug(
                logger,
                "Report %d is %s after %d poll(s)",
                job.job_id,
                job.status,
                attempt,
            )
            await asyncio.sleep(interval * factor)
        raise JobTimeoutError.attempts_exhausted(job.job_id, max_attempts)

    async def _abandon(self, job: ReportJob) -> None:
        if not self._config.cancel_on_timeout:
            return
        outcome = await self._report_client.cancel(job.job_id)
        if outcome is not CancelOutcome.CANCELED:
            log_warning(
                logger,
                "Abandoned report %d may still be rendering: cancel %s",
                job.job_id,
                outcome,
            )

    def _finish(
        self,
        resolved: ResolvedDashboard,
        state: OutcomeState,
        *,
        job: ReportJob | None = None,
        error: str | None = None,
    ) -> DashboardOutcome:
        dashboard = resolved.dashboard
        outcome = DashboardOutcome(
            org_id=dashboard.org_id,
            dashboard_uid=dashboard.uid,
            title=dashboard.title,
            state=state,
            job_id=None if job is None else job.job_id,
            job_status=None if job is None else job.status,
            error=error,
        )
        self._events.log_job_finished(outcome)
        return outcome

    async def resolve_only(self) -> list[OrganizationResolution]:
        """Resolve every organisation's dashboards without submitting jobs.

        Raises
        ------
        UpstreamUnavailableError
            If organisations cannot be listed.

        """
        organizations = await self._resolver.list_organizations()
        semaphore = asyncio.Semaphore(self._config.max_concurrent_organizations)

        async def bounded(org: Organization) -> OrganizationResolution:
            async with semaphore:
                try:
                    dashboards = await self._resolver.resolve_organization(org)
                except DashReportError as exc:
                    return OrganizationResolution(organization=org, error=exc)
            return OrganizationResolution(
                organization=org, dashboards=tuple(dashboards)
            )

        return list(await asyncio.gather(*(bounded(org) for org in organizations)))


__all__ = [
    "INTERRUPTED_BY_DEADLINE",
    "INTERRUPTED_BY_STOP",
    "ReportingService",
    "ReportingServiceDependencies",
]
