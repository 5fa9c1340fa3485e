"""Unit tests for ReportingConfig."""

from __future__ import annotations

import typing as typ

import pytest

from dashreport.reporting.config import ReportingConfig


class TestReportingConfig:
    """Tests for ReportingConfig defaults and validation."""

    def test_defaults(self) -> None:
        """Defaults render the last week and poll every five seconds."""
        config = ReportingConfig()

        assert (config.time_from, config.time_to) == ("now-7d", "now")
        assert config.poll_interval_s == 5.0
        assert config.poll_max_attempts == 120
        assert config.job_timeout_s is None, "no per-job deadline by default"
        assert config.run_deadline_s is None, "no run deadline by default"
        assert config.cancel_on_timeout

    @pytest.mark.parametrize(
        ("overrides", "match"),
        [
            pytest.param({"recipient": "  "}, "recipient", id="blank-recipient"),
            pytest.param({"poll_interval_s": -1.0}, "poll_interval_s", id="interval"),
            pytest.param({"poll_max_attempts": 0}, "poll_max_attempts", id="attempts"),
            pytest.param(
                {"max_concurrent_jobs": 0}, "max_concurrent_jobs", id="job-limit"
            ),
            pytest.param(
                {"max_concurrent_organizations": -2},
                "max_concurrent_organizations",
                id="org-limit",
            ),
            pytest.param({"job_timeout_s": 0.0}, "job_timeout_s", id="job-timeout"),
            pytest.param({"run_deadline_s": -5.0}, "run_deadline_s", id="deadline"),
        ],
    )
    def test_rejects_out_of_range_values(
        self, overrides: dict[str, typ.Any], match: str
    ) -> None:
        """Out-of-range limits are rejected at construction."""
        with pytest.raises(ValueError, match=match):
            ReportingConfig(**overrides)

    def test_zero_interval_is_allowed(self) -> None:
        """Polling back-to-back is a valid configuration."""
        assert ReportingConfig(poll_interval_s=0.0).poll_interval_s == 0.0
