"""Dashboard discovery and variable resolution against the metadata service."""

from __future__ import annotations

from .cache import DashboardCache, NotCachedError, cache_key
from .client import GrafanaMetadataClient, MetadataClient, MetadataServiceConfig
from .models import (
    DashboardDocument,
    DashboardPresence,
    DashboardSummary,
    Organization,
    ResolvedDashboard,
    VariableMap,
)
from .resolver import MetadataResolver
from .variables import extract_variables

__all__ = [
    "DashboardCache",
    "DashboardDocument",
    "DashboardPresence",
    "DashboardSummary",
    "GrafanaMetadataClient",
    "MetadataClient",
    "MetadataResolver",
    "MetadataServiceConfig",
    "NotCachedError",
    "Organization",
    "ResolvedDashboard",
    "VariableMap",
    "cache_key",
    "extract_variables",
]
