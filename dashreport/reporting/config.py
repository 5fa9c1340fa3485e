"""Configuration for a reporting run.

Usage
-----
>>> config = ReportingConfig(recipient="ops@example.com")
>>> config.poll_interval_s
5.0

Values are normally loaded through :func:`dashreport.settings.load_settings`
from ``reporter.yaml`` and ``DASHREPORT_REPORTING_*`` environment variables.

"""

from __future__ import annotations

import dataclasses as dc


@dc.dataclass(frozen=True, slots=True)
class ReportingConfig:
    """Job parameters and polling policy for a reporting run.

    Attributes
    ----------
    template
        Report template identifier. When empty, each dashboard's uid is used.
    time_from
        Start of the rendered time range.
    time_to
        End of the rendered time range.
    recipient
        Delivery destination for every report.
    poll_interval_s
        Delay between status polls.
    poll_max_attempts
        Polls allowed per job before it is treated as timed out.
    job_timeout_s
        Optional wall-clock limit per job, covering all of its polls.
    run_deadline_s
        Optional wall-clock limit for the whole run. Organisations still in
        progress when it expires are reported as interrupted.
    max_concurrent_organizations
        Organisations processed at once.
    max_concurrent_jobs
        Render jobs in flight at once within one organisation.
    cancel_on_timeout
        Issue a best-effort cancel for jobs abandoned by a timeout or stop.

    """

    template: str = ""
    time_from: str = "now-7d"
    time_to: str = "now"
    recipient: str = "reports@localhost"
    poll_interval_s: float = 5.0
    poll_max_attempts: int = 120
    job_timeout_s: float | None = None
    run_deadline_s: float | None = None
    max_concurrent_organizations: int = 4
    max_concurrent_jobs: int = 4
    cancel_on_timeout: bool = True

    def __post_init__(self) -> None:
        """Validate numeric limits.

        Raises
        ------
        ValueError
            If a limit is out of range or the recipient is empty.

        """
        if not self.recipient.strip():
            msg = "recipient must be non-empty"
            raise ValueError(msg)
        if self.poll_interval_s < 0:
            msg = f"poll_interval_s must not be negative, got: {self.poll_interval_s}"
            raise ValueError(msg)
        for name in (
            "poll_max_attempts",
            "max_concurrent_organizations",
            "max_concurrent_jobs",
        ):
            value = getattr(self, name)
            if value < 1:
                msg = f"{name} must be positive, got: {value}"
                raise ValueError(msg)
        for name in ("job_timeout_s", "run_deadline_s"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                msg = f"{name} must be positive when set, got: {value}"
                raise ValueError(msg)


__all__ = ["ReportingConfig"]
