"""Typed domain models for metadata resolution."""

from __future__ import annotations

import enum
import types
import typing as typ

import msgspec

DashboardDocument = dict[str, typ.Any]
VariableMap = typ.Mapping[str, str]

FOLDER_TYPE = "dash-folder"


def freeze_variables(values: typ.Mapping[str, str]) -> VariableMap:
    """Return a read-only copy of ``values``."""
    return types.MappingProxyType(dict(values))


EMPTY_VARIABLES: VariableMap = freeze_variables({})


class DashboardPresence(enum.StrEnum):
    """Outcome of a presence probe against the metadata service."""

    PRESENT = "present"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"


class Organization(msgspec.Struct, kw_only=True, frozen=True):
    """Tenant boundary within the metadata service.

    Attributes
    ----------
    id
        Numeric organisation identifier.
    name
        Display name.

    """

    id: int
    name: str


class DashboardSummary(msgspec.Struct, kw_only=True, frozen=True):
    """Dashboard entry produced by listing, before variables are known.

    Attributes
    ----------
    id
        Numeric listing identifier.
    uid
        Stable unique identifier used as the cache key.
    title
        Dashboard title.
    slug
        URL slug.
    type
        Search type tag reported by the metadata service.
    folder_title
        Title of the containing folder, if any.
    org_id
        Owning organisation identifier.
    org_name
        Owning organisation display name.

    """

    id: int
    uid: str
    title: str
    slug: str = ""
    type: str = ""
    folder_title: str | None = None
    org_id: int = 0
    org_name: str = ""

    @property
    def is_folder(self) -> bool:
        """Return True when the listing tags this entry as a folder."""
        return self.type == FOLDER_TYPE

    def in_organization(self, org: Organization) -> DashboardSummary:
        """Return a copy carrying ``org`` identification."""
        return msgspec.structs.replace(self, org_id=org.id, org_name=org.name)


class ResolvedDashboard(msgspec.Struct, kw_only=True, frozen=True):
    """A dashboard summary paired with its resolved variables."""

    dashboard: DashboardSummary
    variables: VariableMap = msgspec.field(default_factory=lambda: EMPTY_VARIABLES)

    @property
    def key(self) -> tuple[int, str]:
        """Return the ``(org_id, uid)`` join key."""
        return (self.dashboard.org_id, self.dashboard.uid)


__all__ = [
    "EMPTY_VARIABLES",
    "FOLDER_TYPE",
    "DashboardDocument",
    "DashboardPresence",
    "DashboardSummary",
    "Organization",
    "ResolvedDashboard",
    "VariableMap",
    "freeze_variables",
]
