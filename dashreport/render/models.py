"""Report job models and the status state machine."""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

import msgspec

from dashreport.metadata.models import EMPTY_VARIABLES, freeze_variables

if typ.TYPE_CHECKING:
    from dashreport.metadata.models import VariableMap


class ReportStatus(enum.StrEnum):
    """Lifecycle state of a render job as seen by the client.

    ``UNKNOWN`` means the last poll could not be interpreted; callers should
    poll again after a delay.
    """

    PENDING = "pending"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @property
    def is_terminal(self) -> bool:
        """Return True for states that end polling."""
        return self in {ReportStatus.COMPLETE, ReportStatus.FAILED}


class CancelOutcome(enum.StrEnum):
    """Result of a cancellation request."""

    CANCELED = "canceled"
    REJECTED = "rejected"
    REQUEST_FAILED = "request_failed"


_FAILED_STATUS_TEXT = frozenset({"stopped", "stopping"})
_RUNNING_STATUS_TEXT = "running"


class StatusPayload(msgspec.Struct, kw_only=True):
    """Body returned by the status endpoint.

    Attributes
    ----------
    report_id
        Job identifier echoed by the service.
    progress
        Completion percentage.
    status
        Free-text status (``running``, ``stopped``, ``stopping``, ...).
    done
        True once the renderer has finished writing the artefact.
    execution_time
        Elapsed render time in seconds.

    """

    report_id: int | str | None = None
    progress: float | None = None
    status: str = ""
    done: bool = False
    execution_time: float | None = None

    def to_status(self) -> ReportStatus:
        """Map the payload onto :class:`ReportStatus`.

        ``stopped``/``stopping`` always mean failure; otherwise a set ``done``
        flag means completion, ``running`` means in progress, and any other
        text is unknown.
        """
        text = self.status.strip().lower()
        if text in _FAILED_STATUS_TEXT:
            return ReportStatus.FAILED
        if self.done:
            return ReportStatus.COMPLETE
        if text == _RUNNING_STATUS_TEXT:
            return ReportStatus.RUNNING
        return ReportStatus.UNKNOWN


@dataclasses.dataclass(frozen=True, slots=True)
class ReportRequest:
    """Parameters for a render job.

    Attributes
    ----------
    template
        Report template identifier; omitted from the query when empty.
    time_from
        Start of the rendered time range (for example ``now-7d``).
    time_to
        End of the rendered time range (for example ``now``).
    variables
        Dashboard variables sent as ``var-<name>`` parameters.

    """

    template: str
    time_from: str
    time_to: str
    variables: VariableMap = dataclasses.field(
        default_factory=lambda: EMPTY_VARIABLES
    )

    def __post_init__(self) -> None:
        """Freeze the variable mapping."""
        object.__setattr__(self, "variables", freeze_variables(self.variables))

    def to_query(self) -> list[tuple[str, str]]:
        """Return the render query parameters in a stable order."""
        query: list[tuple[str, str]] = []
        if self.template:
            query.append(("var-template", self.template))
        query.extend([("from", self.time_from), ("to", self.time_to)])
        query.extend((f"var-{name}", value) for name, value in self.variables.items())
        return query


@dataclasses.dataclass(frozen=True, slots=True)
class ReportJob:
    """A render job created on the report service."""

    job_id: int
    request: ReportRequest
    status: ReportStatus = ReportStatus.PENDING

    def with_status(self, status: ReportStatus) -> ReportJob:
        """Return a copy of the job in ``status``."""
        return dataclasses.replace(self, status=status)


__all__ = [
    "CancelOutcome",
    "ReportJob",
    "ReportRequest",
    "ReportStatus",
    "StatusPayload",
]
