"""Result records for a reporting run."""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as typ

if typ.TYPE_CHECKING:
    import datetime as dt

    from dashreport.errors import DashReportError
    from dashreport.metadata.models import Organization, ResolvedDashboard
    from dashreport.render.models import ReportStatus


class OutcomeState(enum.StrEnum):
    """Final state of one dashboard's report."""

    DELIVERED = "delivered"
    UNDELIVERED = "undelivered"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dc.dataclass(frozen=True, slots=True)
class DashboardOutcome:
    """What happened to one dashboard's report job.

    Attributes
    ----------
    org_id
        Owning organisation.
    dashboard_uid
        Stable dashboard identifier.
    title
        Dashboard title, used as the delivery subject.
    state
        Final state.
    job_id
        Report service job identifier, when a job was created.
    job_status
        Last observed job status, when a job was created.
    error
        Actionable description of the failure, if any.

    """

    org_id: int
    dashboard_uid: str
    title: str
    state: OutcomeState
    job_id: int | None = None
    job_status: ReportStatus | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Return True when the report was delivered."""
        return self.state is OutcomeState.DELIVERED


@dc.dataclass(frozen=True, slots=True)
class OrganizationSummary:
    """Per-organisation result of a run.

    ``outcomes`` follows the organisation's dashboard listing order.
    ``interrupted`` names why processing stopped early, if it did.
    """

    organization: Organization
    outcomes: tuple[DashboardOutcome, ...] = ()
    error: str | None = None
    interrupted: str | None = None

    @property
    def ok(self) -> bool:
        """Return True when every dashboard in the organisation was delivered."""
        if self.error is not None or self.interrupted is not None:
            return False
        return all(outcome.ok for outcome in self.outcomes)

    @property
    def delivered(self) -> int:
        """Return the number of delivered reports."""
        return sum(1 for outcome in self.outcomes if outcome.ok)


@dc.dataclass(frozen=True, slots=True)
class RunSummary:
    """Result of a complete reporting run."""

    started_at: dt.datetime
    finished_at: dt.datetime
    organizations: tuple[OrganizationSummary, ...] = ()
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Return True when the run and every organisation succeeded."""
        return self.error is None and all(org.ok for org in self.organizations)

    @property
    def duration(self) -> dt.timedelta:
        """Return the wall-clock duration of the run."""
        return self.finished_at - self.started_at


@dc.dataclass(frozen=True, slots=True)
class OrganizationResolution:
    """Dashboards resolved for one organisation without submitting jobs."""

    organization: Organization
    dashboards: tuple[ResolvedDashboard, ...] = ()
    error: DashReportError | None = None


__all__ = [
    "DashboardOutcome",
    "OrganizationResolution",
    "OrganizationSummary",
    "OutcomeState",
    "RunSummary",
]
