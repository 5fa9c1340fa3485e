"""Report job lifecycle against the rendering service."""

from __future__ import annotations

from .client import ReportJobClient, ReportServiceConfig
from .errors import ArtifactUnavailableError, CreateFailedError, ReportServiceError
from .models import (
    CancelOutcome,
    ReportJob,
    ReportRequest,
    ReportStatus,
    StatusPayload,
)

__all__ = [
    "ArtifactUnavailableError",
    "CancelOutcome",
    "CreateFailedError",
    "ReportJob",
    "ReportJobClient",
    "ReportRequest",
    "ReportServiceConfig",
    "ReportServiceError",
    "ReportStatus",
    "StatusPayload",
]
