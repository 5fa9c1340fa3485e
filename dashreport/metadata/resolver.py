"""Resolve organisations, dashboards, and dashboard variables.

The resolver walks organisations → dashboards → variables against a
:class:`~dashreport.metadata.client.MetadataClient`, keeping every fetched
definition in an injected :class:`~dashreport.metadata.cache.DashboardCache`
so no document is downloaded twice within a process. Documents are cached
per organisation because uids are only unique within one.

Usage
-----
>>> resolver = MetadataResolver(client, DashboardCache())
>>> for org in await resolver.list_organizations():
...     resolved = await resolver.resolve_organization(org)

"""

from __future__ import annotations

import asyncio
import typing as typ

from dashreport.errors import DashReportError, UpstreamUnavailableError
from dashreport.logging import get_logger, log_debug, log_info

from .cache import cache_key
from .models import (
    DashboardPresence,
    DashboardSummary,
    Organization,
    ResolvedDashboard,
)
from .variables import extract_variables

if typ.TYPE_CHECKING:
    from .cache import DashboardCache
    from .client import MetadataClient
    from .models import DashboardDocument, VariableMap

logger = get_logger(__name__)

_DEFAULT_MAX_CONCURRENCY = 8
_HTTP_NOT_FOUND = 404


def _is_folder_payload(payload: dict[str, typ.Any]) -> bool:
    meta = payload.get("meta")
    return isinstance(meta, dict) and meta.get("isFolder") is True


def _document_from_payload(payload: dict[str, typ.Any]) -> DashboardDocument:
    document = payload.get("dashboard")
    return document if isinstance(document, dict) else {}


class MetadataResolver:
    """Produce :class:`ResolvedDashboard` records for each organisation.

    Parameters
    ----------
    client
        Metadata service client.
    cache
        Shared dashboard document cache.
    max_concurrency
        Upper bound on concurrent variable resolutions per organisation.

    """

    def __init__(
        self,
        client: MetadataClient,
        cache: DashboardCache,
        *,
        max_concurrency: int = _DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        """Initialise the resolver with its client and cache."""
        if max_concurrency < 1:
            msg = f"max_concurrency must be positive, got: {max_concurrency}"
            raise ValueError(msg)
        self._client = client
        self._cache = cache
        self._max_concurrency = max_concurrency

    @property
    def cache(self) -> DashboardCache:
        """Return the cache shared by this resolver."""
        return self._cache

    async def list_organizations(self) -> list[Organization]:
        """Return every organisation the metadata service exposes.

        Raises
        ------
        UpstreamUnavailableError
            If the service is unreachable or answers non-2xx.

        """
        organizations = await self._client.list_organizations()
        log_info(logger, "Found %d organisation(s)", len(organizations))
        return organizations

    async def list_dashboards(self, org: Organization) -> list[DashboardSummary]:
        """Return the organisation's non-folder dashboards in listing order.

        Every returned dashboard has its document cached. Entries that vanish
        or become forbidden between listing and fetching are dropped.

        Raises
        ------
        UpstreamUnavailableError
            If listing fails or a fetch fails for any reason other than
            not-found. The error carries organisation and dashboard context.

        """
        try:
            hits = await self._client.search_dashboards(org.id)
        except UpstreamUnavailableError as exc:
            exc.with_context(org_id=org.id, org_name=org.name)
            raise

        dashboards: list[DashboardSummary] = []
        for hit in hits:
            if hit.is_folder:
                log_debug(logger, "Skipping folder %s in org %d", hit.uid, org.id)
                continue
            summary = hit.in_organization(org)
            if await self._admit(org, summary):
                dashboards.append(summary)

        log_info(
            logger,
            "Organisation %d (%s): %d dashboard(s) of %d search hit(s)",
            org.id,
            org.name,
            len(dashboards),
            len(hits),
        )
        return dashboards

    async def _admit(self, org: Organization, summary: DashboardSummary) -> bool:
        """Probe, fetch, and cache one listed dashboard; False drops it."""
        key = cache_key(summary.uid, org_id=org.id)
        if self._cache.exists(key):
            return True

        try:
            presence = await self._client.probe_dashboard(summary.uid, org_id=org.id)
            if presence is not DashboardPresence.PRESENT:
                log_info(
                    logger,
                    "Dropping dashboard %s in org %d: %s",
                    summary.uid,
                    org.id,
                    presence,
                )
                return False
            payload = await self._client.fetch_dashboard(summary.uid, org_id=org.id)
        except UpstreamUnavailableError as exc:
            if exc.status_code == _HTTP_NOT_FOUND:
                log_info(
                    logger,
                    "Dropping dashboard %s in org %d: deleted during listing",
                    summary.uid,
                    org.id,
                )
                return False
            exc.with_context(
                org_id=org.id, org_name=org.name, dashboard_uid=summary.uid
            )
            raise

        if _is_folder_payload(payload):
            log_debug(logger, "Dropping folder-shaped document %s", summary.uid)
            return False

        self._cache.put(key, _document_from_payload(payload))
        return True

    async def resolve_variables(
        self, uid: str, *, org_id: int | None = None
    ) -> VariableMap:
        """Return the variables for ``uid``, fetching its document on a miss.

        Parameters
        ----------
        uid
            Stable dashboard identifier.
        org_id
            Organisation the dashboard belongs to. Documents are cached per
            organisation; ``None`` uses the credentials' default organisation.

        Raises
        ------
        UpstreamUnavailableError
            If the document is not cached and cannot be fetched.

        """

        async def _fetch(_key: str) -> DashboardDocument:
            try:
                payload = await self._client.fetch_dashboard(uid, org_id=org_id)
            except UpstreamUnavailableError as exc:
                exc.with_context(org_id=org_id, dashboard_uid=uid)
                raise
            return _document_from_payload(payload)

        document = await self._cache.get_or_fetch(
            cache_key(uid, org_id=org_id), _fetch
        )
        return extract_variables(document)

    async def resolve_organization(self, org: Organization) -> list[ResolvedDashboard]:
        """List and resolve every dashboard in ``org``.

        Dashboards that vanish or become forbidden while listing are dropped
        by :meth:`list_dashboards`; the remaining ones are resolved
        concurrently and returned in listing order.

        Raises
        ------
        UpstreamUnavailableError
            If listing or any variable resolution fails. The error carries the
            organisation.

        """
        dashboards = await self.list_dashboards(org)
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def bounded(summary: DashboardSummary) -> ResolvedDashboard:
            async with semaphore:
                variables = await self.resolve_variables(summary.uid, org_id=org.id)
            log_info(
                logger,
                "Found dashboard uid=%s title=%r folder=%r variables=%d",
                summary.uid,
                summary.title,
                summary.folder_title,
                len(variables),
            )
            return ResolvedDashboard(dashboard=summary, variables=variables)

        try:
            resolved = await asyncio.gather(
                *(bounded(summary) for summary in dashboards)
            )
        except DashReportError as exc:
            exc.with_context(org_id=org.id, org_name=org.name)
            raise
        return list(resolved)


__all__ = ["MetadataResolver"]
