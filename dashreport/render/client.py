"""Client for the asynchronous report rendering service.

The service exposes a small job API under a versioned base path::

    POST   /api/v1/render?var-template=..&from=..&to=..&var-<name>=..
    GET    /api/v1/status?report_id=<id>
    DELETE /api/v1/cancel?report_id=<id>
    GET    /view_report?report_id=<id>
    GET    /view_log?report_id=<id>

Endpoints written with a leading ``/`` are resolved against the service root;
all others are placed under the configured API prefix. The client never
retries; polling cadence and backoff belong to the caller.
"""

from __future__ import annotations

import dataclasses
import typing as typ

import httpx
import msgspec

from dashreport.errors import ConfigurationError
from dashreport.logging import get_logger, log_debug, log_error, log_info, log_warning

from .errors import ArtifactUnavailableError, CreateFailedError, ReportServiceError
from .models import (
    CancelOutcome,
    ReportJob,
    ReportRequest,
    ReportStatus,
    StatusPayload,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = get_logger(__name__)

_HTTP_OK = 200
_HTTP_ERROR_STATUS_THRESHOLD = 400


@dataclasses.dataclass(frozen=True, slots=True)
class ReportServiceConfig:
    """Connection settings for the report service.

    Attributes
    ----------
    url
        Service root URL.
    api_prefix
        Versioned API base path for job endpoints.
    timeout_s
        Per-request timeout in seconds.
    artifact_endpoint
        Endpoint serving a finished report.
    log_endpoint
        Endpoint serving a job's render log.

    """

    url: str = "http://localhost:8989"
    api_prefix: str = "/api/v1/"
    timeout_s: float = 60.0
    artifact_endpoint: str = "/view_report"
    log_endpoint: str = "/view_log"

    def endpoint_url(self, endpoint: str) -> str:
        """Return the absolute URL for ``endpoint``."""
        root = self.url.rstrip("/")
        if endpoint.startswith("/"):
            return root + endpoint
        prefix = "/" + self.api_prefix.strip("/") + "/"
        return root + prefix + endpoint


def _parse_job_id(raw: object) -> int:
    """Convert the ``report_id`` field of a create response to an integer."""
    if isinstance(raw, bool) or not isinstance(raw, str | int):
        raise CreateFailedError.invalid_job_id(raw)
    try:
        return int(raw)
    except ValueError as exc:
        raise CreateFailedError.invalid_job_id(raw) from exc


def _job_query(job_id: int) -> list[tuple[str, str]]:
    return [("report_id", str(job_id))]


class ReportJobClient:
    """Create, poll, cancel, and download render jobs.

    Parameters
    ----------
    config
        Connection settings.
    http_client
        Optional pre-built client for testing. When omitted the instance
        creates and owns its own client.

    Examples
    --------
    >>> client = ReportJobClient(ReportServiceConfig(url="http://grr:8989"))
    >>> job_id = await client.create("nightly", "now-7d", "now", {"site": "hq"})
    >>> await client.status(job_id)
    <ReportStatus.RUNNING: 'running'>

    """

    def __init__(
        self,
        config: ReportServiceConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client with the provided service configuration."""
        if not config.url.strip():
            raise ConfigurationError.invalid("reports.url", "URL must be non-empty")

        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_s,
            headers={"Accept": "application/json"},
        )

    @property
    def config(self) -> ReportServiceConfig:
        """Return the configuration used by this client."""
        return self._config

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def create(
        self,
        template: str,
        time_from: str,
        time_to: str,
        variables: cabc.Mapping[str, str] | None = None,
    ) -> int:
        """Start a render job and return its identifier.

        Raises
        ------
        CreateFailedError
            On transport failure, non-success status, an unreadable body, or a
            missing/non-integer ``report_id``.

        """
        request = ReportRequest(
            template=template,
            time_from=time_from,
            time_to=time_to,
            variables=variables or {},
        )
        return await self._create(request)

    async def submit(self, request: ReportRequest) -> ReportJob:
        """Start a render job for ``request`` and return it as pending."""
        job_id = await self._create(request)
        return ReportJob(job_id=job_id, request=request)

    async def _create(self, request: ReportRequest) -> int:
        log_info(
            logger,
            "Creating report template=%r from=%s to=%s vars=%s",
            request.template,
            request.time_from,
            request.time_to,
            dict(request.variables),
        )
        try:
            response = await self._request("POST", "render", request.to_query())
        except ReportServiceError as exc:
            raise CreateFailedError(exc.message, context=exc.context) from exc

        if response.status_code != _HTTP_OK:
            log_error(
                logger,
                "Could not create report template=%r status=%d",
                request.template,
                response.status_code,
            )
            raise CreateFailedError.http_error("render", response.status_code)

        try:
            body = msgspec.json.decode(response.content)
        except msgspec.DecodeError as exc:
            raise CreateFailedError.unreadable() from exc
        if not isinstance(body, dict):
            raise CreateFailedError.unreadable()

        job_id = _parse_job_id(body.get("report_id"))
        log_info(logger, "Created report job %d", job_id)
        return job_id

    async def status(self, job_id: int) -> ReportStatus:
        """Return the job's status; failures map to ``UNKNOWN`` and are logged."""
        try:
            response = await self._request("GET", "status", _job_query(job_id))
        except ReportServiceError as exc:
            log_error(logger, "Status for report %d not available: %s", job_id, exc)
            return ReportStatus.UNKNOWN

        if response.status_code != _HTTP_OK:
            log_error(
                logger,
                "Status for report %d not available: HTTP %d",
                job_id,
                response.status_code,
            )
            return ReportStatus.UNKNOWN

        try:
            payload = msgspec.json.decode(response.content, type=StatusPayload)
        except msgspec.DecodeError:
            log_error(logger, "Unable to parse status body for report %d", job_id)
            return ReportStatus.UNKNOWN

        status = payload.to_status()
        if status is ReportStatus.UNKNOWN:
            log_warning(
                logger,
                "Unknown status text for report %d: %r",
                job_id,
                payload.status,
            )
        else:
            log_debug(
                logger,
                "Report %d is %s (progress=%s)",
                job_id,
                status,
                payload.progress,
            )
        return status

    async def poll(self, job: ReportJob) -> ReportJob:
        """Return ``job`` updated with a fresh status."""
        return job.with_status(await self.status(job.job_id))

    async def cancel(self, job_id: int) -> CancelOutcome:
        """Ask the service to cancel a job.

        Returns
        -------
        CancelOutcome
            ``CANCELED`` when the service answered 200, ``REJECTED`` for any
            other answer, ``REQUEST_FAILED`` when no answer arrived.

        """
        try:
            response = await self._request("DELETE", "cancel", _job_query(job_id))
        except ReportServiceError as exc:
            log_error(logger, "Cancel request for report %d failed: %s", job_id, exc)
            return CancelOutcome.REQUEST_FAILED

        if response.status_code == _HTTP_OK:
            log_info(logger, "Canceled report %d", job_id)
            return CancelOutcome.CANCELED
        log_warning(
            logger,
            "Cancel for report %d rejected: HTTP %d",
            job_id,
            response.status_code,
        )
        return CancelOutcome.REJECTED

    async def fetch_artifact(self, job_id: int) -> bytes:
        """Download the rendered report of a completed job.

        Raises
        ------
        ArtifactUnavailableError
            On transport failure, non-success status, or an empty body.

        """
        endpoint = self._config.artifact_endpoint
        try:
            response = await self._request("GET", endpoint, _job_query(job_id))
        except ReportServiceError as exc:
            raise ArtifactUnavailableError(
                exc.message, context={**exc.context, "job_id": job_id}
            ) from exc

        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise ArtifactUnavailableError.http_error(
                endpoint, response.status_code
            ).with_context(job_id=job_id)
        if not response.content:
            raise ArtifactUnavailableError.empty(job_id)
        return response.content

    async def fetch_log(self, job_id: int) -> str:
        """Return the render log of a job.

        Raises
        ------
        ReportServiceError
            On transport failure or non-success status.

        """
        endpoint = self._config.log_endpoint
        response = await self._request("GET", endpoint, _job_query(job_id))
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise ReportServiceError.http_error(
                endpoint, response.status_code
            ).with_context(job_id=job_id)
        return response.text

    async def _request(
        self,
        method: str,
        endpoint: str,
        query: list[tuple[str, str]],
    ) -> httpx.Response:
        url = self._config.endpoint_url(endpoint)
        log_debug(logger, "Creating request method=%s url=%s", method, url)
        try:
            response = await self._client.request(method, url, params=query)
        except httpx.TimeoutException as exc:
            raise ReportServiceError.network_error(endpoint, "timeout") from exc
        except httpx.RequestError as exc:
            raise ReportServiceError.network_error(endpoint, str(exc)) from exc
        log_debug(
            logger,
            "Response method=%s url=%s status=%d",
            method,
            url,
            response.status_code,
        )
        return response


__all__ = ["ReportJobClient", "ReportServiceConfig"]
