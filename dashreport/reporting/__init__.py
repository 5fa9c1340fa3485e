"""Reporting run orchestration.

Public API
----------
ReportingConfig
    Job parameters, polling policy, and concurrency limits.
ReportingService
    Drives render jobs for every resolved dashboard and delivers the results.
ReportingServiceDependencies
    Frozen dataclass grouping the service's collaborators.
RunSummary
    Per-run result with one ``OrganizationSummary`` per organisation.
ReportingEventLogger
    Structured lifecycle event logging.

Example:
Run once and print the organisations that failed:

>>> service = ReportingService(deps, config=ReportingConfig(recipient="ops@x"))
>>> summary = await service.run()
>>> [org.organization.name for org in summary.organizations if not org.ok]

"""

from __future__ import annotations

from .config import ReportingConfig
from .errors import JobFailedError, JobTimeoutError
from .models import (
    DashboardOutcome,
    OrganizationResolution,
    OrganizationSummary,
    OutcomeState,
    RunSummary,
)
from .observability import ReportingEventLogger, ReportingEventType
from .service import (
    INTERRUPTED_BY_DEADLINE,
    INTERRUPTED_BY_STOP,
    ReportingService,
    ReportingServiceDependencies,
)

__all__ = [
    "INTERRUPTED_BY_DEADLINE",
    "INTERRUPTED_BY_STOP",
    "DashboardOutcome",
    "JobFailedError",
    "JobTimeoutError",
    "OrganizationResolution",
    "OrganizationSummary",
    "OutcomeState",
    "ReportingConfig",
    "ReportingEventLogger",
    "ReportingEventType",
    "ReportingService",
    "ReportingServiceDependencies",
    "RunSummary",
]
