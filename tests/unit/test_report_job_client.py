"""Unit tests for the report job client and its status state machine."""

from __future__ import annotations

import typing as typ

import httpx
import pytest

from dashreport.errors import ConfigurationError, ErrorKind
from dashreport.render import (
    ArtifactUnavailableError,
    CancelOutcome,
    CreateFailedError,
    ReportJobClient,
    ReportRequest,
    ReportServiceConfig,
    ReportServiceError,
    ReportStatus,
    StatusPayload,
)
from tests.helpers.stub_services import (
    REPORTS_URL,
    StubReportService,
    status_body,
)

_JOB_ID = 42


def _client_for(
    handler: typ.Callable[[httpx.Request], httpx.Response],
) -> ReportJobClient:
    return ReportJobClient(
        ReportServiceConfig(url=REPORTS_URL),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def _answer(status: int, body: object = None) -> ReportJobClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if isinstance(body, bytes):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)

    return _client_for(handler)


def _refuse(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("refused", request=request)


class TestReportServiceConfig:
    """Tests for endpoint URL resolution."""

    @pytest.mark.parametrize(
        ("endpoint", "expected"),
        [
            pytest.param("render", f"{REPORTS_URL}/api/v1/render", id="prefixed"),
            pytest.param("/view_report", f"{REPORTS_URL}/view_report", id="rooted"),
        ],
    )
    def test_endpoint_url(self, endpoint: str, expected: str) -> None:
        """Rooted endpoints bypass the API prefix; others sit beneath it."""
        config = ReportServiceConfig(url=f"{REPORTS_URL}/", api_prefix="api/v1")

        assert config.endpoint_url(endpoint) == expected

    def test_empty_url_is_rejected(self) -> None:
        """Constructing a client without a URL is a configuration error."""
        with pytest.raises(ConfigurationError):
            ReportJobClient(ReportServiceConfig(url=""))


class TestCreate:
    """Tests for job creation."""

    @pytest.mark.asyncio
    async def test_string_report_id_is_parsed_to_integer(self) -> None:
        """A ``report_id`` sent as a numeric string yields an integer id."""
        stub = StubReportService()
        client = stub.client()

        job_id = await client.create("nightly", "now-7d", "now", {"site": "hq"})

        assert job_id == _JOB_ID
        assert isinstance(job_id, int)
        [request] = stub.requests
        assert request.method == "POST"
        assert list(request.url.params.multi_items()) == [
            ("var-template", "nightly"),
            ("from", "now-7d"),
            ("to", "now"),
            ("var-site", "hq"),
        ]

    @pytest.mark.asyncio
    async def test_non_numeric_report_id_is_create_failed(self) -> None:
        """A ``report_id`` that is not an integer fails creation."""
        client = _answer(200, {"report_id": "abc"})

        with pytest.raises(CreateFailedError) as excinfo:
            await client.create("nightly", "now-7d", "now", {"site": "hq"})

        assert excinfo.value.kind is ErrorKind.CREATE_FAILED

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "body"),
        [
            pytest.param(200, {}, id="missing-id"),
            pytest.param(200, {"report_id": True}, id="boolean-id"),
            pytest.param(200, [1, 2], id="array-body"),
            pytest.param(200, b"<html>", id="not-json"),
            pytest.param(500, {"report_id": "1"}, id="server-error"),
        ],
    )
    async def test_malformed_responses_are_create_failed(
        self, status: int, body: object
    ) -> None:
        """Every unusable create response raises CreateFailedError."""
        with pytest.raises(CreateFailedError):
            await _answer(status, body).create("nightly", "now-7d", "now")

    @pytest.mark.asyncio
    async def test_transport_failure_is_create_failed(self) -> None:
        """An unreachable service fails creation rather than leaking httpx."""
        with pytest.raises(CreateFailedError, match="unreachable"):
            await _client_for(_refuse).create("nightly", "now-7d", "now")

    @pytest.mark.asyncio
    async def test_empty_template_is_omitted(self) -> None:
        """No ``var-template`` parameter is sent for an empty template."""
        stub = StubReportService()

        job = await stub.client().submit(ReportRequest("", "now-1d", "now"))

        assert job.status is ReportStatus.PENDING
        assert stub.create_queries() == [[("from", "now-1d"), ("to", "now")]]


class TestStatus:
    """Tests for status polling; ``status`` never raises."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("body", "expected"),
        [
            pytest.param(status_body("running"), ReportStatus.RUNNING, id="running"),
            pytest.param(status_body("stopped"), ReportStatus.FAILED, id="stopped"),
            pytest.param(status_body("stopping"), ReportStatus.FAILED, id="stopping"),
            pytest.param(
                status_body("running", done=True), ReportStatus.COMPLETE, id="done"
            ),
            pytest.param(
                status_body("stopped", done=True),
                ReportStatus.FAILED,
                id="stopped-wins-over-done",
            ),
            pytest.param(status_body("queued"), ReportStatus.UNKNOWN, id="other-text"),
            pytest.param({}, ReportStatus.UNKNOWN, id="empty-object"),
            pytest.param(b"", ReportStatus.UNKNOWN, id="empty-body"),
            pytest.param(b"{not json", ReportStatus.UNKNOWN, id="malformed-json"),
        ],
    )
    async def test_status_mapping(self, body: object, expected: ReportStatus) -> None:
        """Status text and flags map onto ReportStatus."""
        status = await _answer(200, body).status(_JOB_ID)

        assert status is expected

    @pytest.mark.asyncio
    async def test_server_error_yields_unknown(self) -> None:
        """HTTP 500 on status is Unknown, not an exception."""
        stub = StubReportService(status_scripts={"": [(500, {"error": "boom"})]})

        status = await stub.client().status(_JOB_ID)

        assert status is ReportStatus.UNKNOWN
        [request] = stub.requests
        assert request.url.path == "/api/v1/status"
        assert request.url.params["report_id"] == str(_JOB_ID)

    @pytest.mark.asyncio
    async def test_transport_failure_yields_unknown(self) -> None:
        """An unreachable service is Unknown, not an exception."""
        assert await _client_for(_refuse).status(_JOB_ID) is ReportStatus.UNKNOWN

    @pytest.mark.asyncio
    async def test_poll_returns_updated_job(self) -> None:
        """Polling returns a copy of the job in its new state."""
        stub = StubReportService()
        client = stub.client()
        job = await client.submit(ReportRequest("nightly", "now-7d", "now"))

        polled = await client.poll(job)

        assert polled.status is ReportStatus.COMPLETE
        assert job.status is ReportStatus.PENDING, "jobs are immutable"

    def test_payload_status_is_case_insensitive(self) -> None:
        """Status text is compared without case or surrounding space."""
        assert StatusPayload(status=" Running ").to_status() is ReportStatus.RUNNING


class TestCancel:
    """Tests for cancellation.

    ``cancel`` distinguishes a refused cancellation from one that never
    reached the service, replacing a single boolean for both cases.
    """

    @pytest.mark.asyncio
    async def test_accepted_cancel(self) -> None:
        """HTTP 200 means the job was canceled."""
        stub = StubReportService()

        outcome = await stub.client().cancel(_JOB_ID)

        assert outcome is CancelOutcome.CANCELED
        assert stub.canceled == [_JOB_ID]
        assert stub.requests[0].method == "DELETE"

    @pytest.mark.asyncio
    async def test_refused_cancel_is_rejected(self) -> None:
        """A non-200 answer is a rejection, not a transport failure."""
        stub = StubReportService(cancel_status=409)

        assert await stub.client().cancel(_JOB_ID) is CancelOutcome.REJECTED

    @pytest.mark.asyncio
    async def test_unreachable_service_is_request_failed(self) -> None:
        """No answer at all is reported separately from a rejection."""
        outcome = await _client_for(_refuse).cancel(_JOB_ID)

        assert outcome is CancelOutcome.REQUEST_FAILED


class TestArtifacts:
    """Tests for downloading finished reports and logs."""

    @pytest.mark.asyncio
    async def test_fetch_artifact(self) -> None:
        """The artefact endpoint is queried like every other job endpoint."""
        stub = StubReportService(artifact=b"%PDF-1.7 body")

        content = await stub.client().fetch_artifact(_JOB_ID)

        assert content == b"%PDF-1.7 body"
        request = stub.requests[0]
        assert str(request.url) == f"{REPORTS_URL}/view_report?report_id={_JOB_ID}"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "artifact"),
        [
            pytest.param(404, b"missing", id="not-found"),
            pytest.param(200, b"", id="empty"),
        ],
    )
    async def test_unavailable_artifact(self, status: int, artifact: bytes) -> None:
        """Missing or empty artefacts raise ArtifactUnavailableError."""
        stub = StubReportService(artifact=artifact, artifact_status=status)

        with pytest.raises(ArtifactUnavailableError) as excinfo:
            await stub.client().fetch_artifact(_JOB_ID)

        assert excinfo.value.context["job_id"] == _JOB_ID

    @pytest.mark.asyncio
    async def test_fetch_log(self) -> None:
        """The render log is returned as text."""
        stub = StubReportService(log_text="rendering page 1")

        assert await stub.client().fetch_log(_JOB_ID) == "rendering page 1"

    @pytest.mark.asyncio
    async def test_fetch_log_failure_raises(self) -> None:
        """Log download failures raise ReportServiceError."""
        with pytest.raises(ReportServiceError):
            await _client_for(_refuse).fetch_log(_JOB_ID)
