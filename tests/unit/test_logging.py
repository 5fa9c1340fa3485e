"""Unit tests for the femtologging helpers."""

from __future__ import annotations

import pytest

from dashreport.logging import (
    configure_logging,
    format_fields,
    format_log_message,
    log_debug,
    log_error,
    log_event,
    log_exception,
    log_info,
    log_warning,
    normalize_log_level,
)
from tests.helpers.recording_logger import RecordingLogger


@pytest.mark.parametrize(
    ("raw", "expected", "invalid"),
    [
        pytest.param(" debug ", "DEBUG", False, id="padded-lowercase"),
        pytest.param("WARN", "WARN", False, id="alias"),
        pytest.param(None, "INFO", True, id="missing"),
        pytest.param("loud", "INFO", True, id="unknown"),
    ],
)
def test_normalize_log_level(raw: str | None, expected: str, invalid: bool) -> None:
    """Levels are upper-cased; unusable input falls back to INFO."""
    assert normalize_log_level(raw) == (expected, invalid)


def test_format_without_args_returns_template_untouched() -> None:
    """A literal percent sign survives when no arguments are given."""
    assert format_log_message("progress 100%") == "progress 100%"


def test_format_with_args_interpolates() -> None:
    """Arguments are interpolated with percent-style formatting."""
    assert format_log_message("job %d is %s", 42, "running") == "job 42 is running"


@pytest.mark.parametrize(
    ("helper", "level"),
    [
        (log_debug, "DEBUG"),
        (log_info, "INFO"),
        (log_warning, "WARNING"),
        (log_error, "ERROR"),
    ],
)
def test_helpers_emit_at_their_level(
    helper: object, level: str
) -> None:
    """Each helper formats the message and forwards its level."""
    logger = RecordingLogger()

    helper(logger, "org %d: %s", 1, "Acme")  # type: ignore[operator]

    assert [(r.level, r.message) for r in logger.records] == [(level, "org 1: Acme")]


def test_log_exception_attaches_exc_info() -> None:
    """log_exception forwards the exception as exc_info."""
    logger = RecordingLogger()
    exc = RuntimeError("boom")

    log_exception(logger, "render failed", exc)

    [record] = logger.records
    assert record.level == "ERROR"
    assert record.exc_info is exc


def test_format_fields_keeps_order() -> None:
    """Fields render as key=value pairs in the order given."""
    rendered = format_fields(org_id=1, job_id=42, error=None)

    assert rendered == "org_id=1 job_id=42 error=None"


@pytest.mark.parametrize(
    ("fields", "expected"),
    [
        pytest.param(
            {"org_id": 1, "job_id": 42},
            "[reporting.job.created] org_id=1 job_id=42",
            id="with-fields",
        ),
        pytest.param({}, "[reporting.run.started]", id="bare"),
    ],
)
def test_log_event_renders_bracketed_event(
    fields: dict[str, object], expected: str
) -> None:
    """Events are prefixed with their bracketed identifier."""
    logger = RecordingLogger()
    event = "reporting.job.created" if fields else "reporting.run.started"

    log_event(logger, "WARNING", event, **fields)

    assert [(r.level, r.message) for r in logger.records] == [("WARNING", expected)]


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.fixture
    def captured(self, monkeypatch: pytest.MonkeyPatch) -> dict[str, object]:
        """Replace femtologging's basicConfig with a recorder."""
        calls: dict[str, object] = {}

        def fake_basic_config(**kwargs: object) -> None:
            calls.update(kwargs)

        monkeypatch.setattr("dashreport.logging.basicConfig", fake_basic_config)
        return calls

    def test_applies_normalized_level(self, captured: dict[str, object]) -> None:
        """The normalized level reaches basicConfig."""
        assert configure_logging("warning") == ("WARNING", False)
        assert captured == {"level": "WARNING", "force": False}

    def test_verbose_forces_debug(self, captured: dict[str, object]) -> None:
        """Verbose mode wins over the configured level."""
        level, invalid = configure_logging("ERROR", verbose=True, force=True)

        assert (level, invalid) == ("DEBUG", False)
        assert captured == {"level": "DEBUG", "force": True}

    def test_invalid_level_is_flagged(self, captured: dict[str, object]) -> None:
        """Unknown names fall back to INFO and are reported as invalid."""
        assert configure_logging("chatty") == ("INFO", True)
        assert captured["level"] == "INFO"
