"""HTTP client for the dashboard metadata service.

The client speaks the Grafana HTTP API: organisations are listed with
``GET orgs``, dashboards are searched per organisation with the
``X-Grafana-Org-Id`` header, and full definitions are fetched with
``GET dashboards/uid/<uid>``.
"""

from __future__ import annotations

import dataclasses
import typing as typ

import httpx
import msgspec

from dashreport.errors import ConfigurationError, UpstreamUnavailableError
from dashreport.logging import get_logger, log_debug, log_warning

from .models import DashboardPresence, DashboardSummary, Organization

logger = get_logger(__name__)

T = typ.TypeVar("T")

_HTTP_ERROR_STATUS_THRESHOLD = 400
_HTTP_FORBIDDEN = frozenset({401, 403})
_HTTP_NOT_FOUND = 404
_ORG_HEADER = "X-Grafana-Org-Id"


class MetadataClient(typ.Protocol):
    """Interface for reading organisations and dashboards."""

    async def health(self) -> bool:
        """Return True when the metadata service reports itself healthy."""
        ...

    async def list_organizations(self) -> list[Organization]:
        """Return every organisation visible to the configured credentials."""
        ...

    async def search_dashboards(self, org_id: int) -> list[DashboardSummary]:
        """Return dashboard search hits for one organisation, in service order."""
        ...

    async def probe_dashboard(self, uid: str, *, org_id: int) -> DashboardPresence:
        """Report whether a dashboard is still present and accessible."""
        ...

    async def fetch_dashboard(
        self, uid: str, *, org_id: int | None = None
    ) -> dict[str, typ.Any]:
        """Return the full ``{dashboard, meta}`` payload for ``uid``."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class MetadataServiceConfig:
    """Connection settings for the metadata service.

    Attributes
    ----------
    url
        API base URL, including the ``/api`` path.
    username
        Basic-auth user, used when no API token is set.
    password
        Basic-auth password.
    api_token
        Bearer token; takes precedence over basic auth.
    timeout_s
        Per-request timeout in seconds.
    search_type
        Search ``type`` filter used when listing dashboards.

    """

    url: str = "http://localhost:3000/api"
    username: str = ""
    password: str = ""
    api_token: str = ""
    timeout_s: float = 20.0
    search_type: str = "dash-db"
    user_agent: str = "dashreport/0.1"

    def auth(self) -> httpx.Auth | None:
        """Return basic auth when a username is configured without a token."""
        if self.api_token or not self.username:
            return None
        return httpx.BasicAuth(self.username, self.password)

    def headers(self) -> dict[str, str]:
        """Return default request headers."""
        headers = {"Accept": "application/json", "User-Agent": self.user_agent}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers


class _OrgPayload(msgspec.Struct):
    id: int
    name: str = ""


class _SearchHit(msgspec.Struct, rename="camel"):
    uid: str
    id: int = 0
    title: str = ""
    type: str = ""
    folder_title: str | None = None
    url: str = ""
    slug: str = ""


def _slug_from_url(url: str) -> str:
    """Return the trailing path segment of a dashboard URL."""
    return url.rstrip("/").rsplit("/", 1)[-1] if url else ""


def _summary_from_hit(hit: _SearchHit) -> DashboardSummary:
    return DashboardSummary(
        id=hit.id,
        uid=hit.uid,
        title=hit.title,
        slug=hit.slug or _slug_from_url(hit.url),
        type=hit.type,
        folder_title=hit.folder_title,
    )


class GrafanaMetadataClient:
    """httpx implementation of :class:`MetadataClient`.

    Parameters
    ----------
    config
        Connection settings.
    http_client
        Optional pre-built client for testing. When omitted the instance
        creates and owns its own client.

    """

    def __init__(
        self,
        config: MetadataServiceConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client with the provided service configuration."""
        if not config.url.strip():
            raise ConfigurationError.invalid("metadata.url", "URL must be non-empty")

        self._config = config
        self._base_url = config.url.rstrip("/") + "/"
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_s,
            headers=config.headers(),
            auth=config.auth(),
        )

    @property
    def config(self) -> MetadataServiceConfig:
        """Return the configuration used by this client."""
        return self._config

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def health(self) -> bool:
        """Return True when ``GET health`` answers 2xx."""
        try:
            response = await self._send("health")
        except UpstreamUnavailableError as exc:
            log_warning(logger, "Metadata service health check failed: %s", exc)
            return False
        return response.status_code < _HTTP_ERROR_STATUS_THRESHOLD

    async def list_organizations(self) -> list[Organization]:
        """Return every organisation visible to the configured credentials.

        Raises
        ------
        UpstreamUnavailableError
            If the service is unreachable, answers non-2xx, or returns a body
            that is not a list of organisations.

        """
        payload = await self._get_json("orgs", as_type=list[_OrgPayload])
        return [Organization(id=org.id, name=org.name) for org in payload]

    async def search_dashboards(self, org_id: int) -> list[DashboardSummary]:
        """Return dashboard search hits for ``org_id``, in service order."""
        hits = await self._get_json(
            "search",
            as_type=list[_SearchHit],
            params={"type": self._config.search_type},
            org_id=org_id,
        )
        return [_summary_from_hit(hit) for hit in hits]

    async def probe_dashboard(self, uid: str, *, org_id: int) -> DashboardPresence:
        """Report whether ``uid`` is still listed and accessible in ``org_id``."""
        path = "search"
        response = await self._send(
            path, params={"dashboardUIDs": uid}, org_id=org_id
        )
        if response.status_code in _HTTP_FORBIDDEN:
            return DashboardPresence.FORBIDDEN
        if response.status_code == _HTTP_NOT_FOUND:
            return DashboardPresence.NOT_FOUND
        self._raise_for_status(path, response)
        hits = self._decode(path, response, as_type=list[_SearchHit])
        if any(hit.uid == uid for hit in hits):
            return DashboardPresence.PRESENT
        return DashboardPresence.NOT_FOUND

    async def fetch_dashboard(
        self, uid: str, *, org_id: int | None = None
    ) -> dict[str, typ.Any]:
        """Return the full ``{dashboard, meta}`` payload for ``uid``.

        Raises
        ------
        UpstreamUnavailableError
            On any failure; ``status_code`` is 404 when the dashboard vanished.

        """
        return await self._get_json(
            f"dashboards/uid/{uid}", as_type=dict[str, typ.Any], org_id=org_id
        )

    async def _get_json(
        self,
        path: str,
        *,
        as_type: type[T],
        params: dict[str, str] | None = None,
        org_id: int | None = None,
    ) -> T:
        response = await self._send(path, params=params, org_id=org_id)
        self._raise_for_status(path, response)
        return self._decode(path, response, as_type=as_type)

    async def _send(
        self,
        path: str,
        *,
        params: dict[str, str] | None = None,
        org_id: int | None = None,
    ) -> httpx.Response:
        headers = {_ORG_HEADER: str(org_id)} if org_id is not None else None
        url = self._base_url + path
        log_debug(logger, "GET %s params=%s org_id=%s", url, params, org_id)
        try:
            response = await self._client.get(url, params=params, headers=headers)
        except httpx.TimeoutException as exc:
            raise UpstreamUnavailableError.network_error(path, "timeout") from exc
        except httpx.RequestError as exc:
            raise UpstreamUnavailableError.network_error(path, str(exc)) from exc
        log_debug(logger, "GET %s -> %d", url, response.status_code)
        return response

    def _raise_for_status(self, path: str, response: httpx.Response) -> None:
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise UpstreamUnavailableError.http_error(path, response.status_code)

    def _decode(
        self, path: str, response: httpx.Response, *, as_type: type[T]
    ) -> T:
        try:
            return msgspec.json.decode(response.content, type=as_type)
        except msgspec.DecodeError as exc:
            raise UpstreamUnavailableError.unreadable(path) from exc


__all__ = ["GrafanaMetadataClient", "MetadataClient", "MetadataServiceConfig"]
