"""Unit tests for settings loading."""

from __future__ import annotations

import textwrap
import typing as typ

import pytest

from dashreport.errors import ConfigurationError
from dashreport.settings import Settings, load_settings

if typ.TYPE_CHECKING:
    from pathlib import Path


def _write_yaml(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "reporter.yaml"
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


class TestLoadSettings:
    """Tests for YAML and environment settings."""

    def test_defaults_without_file_or_environment(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """No file and no variables yields the built-in defaults."""
        monkeypatch.chdir(tmp_path)

        settings = load_settings(env={})

        assert settings == Settings()
        assert settings.metadata.url == "http://localhost:3000/api"
        assert settings.delivery.backend == "filesystem"

    def test_yaml_sections_are_loaded(self, tmp_path: Path) -> None:
        """Every section of the YAML file reaches its config object."""
        path = _write_yaml(
            tmp_path,
            """
            metadata:
              url: http://grafana:3000/api
              api_token: glsa_token
            reports:
              url: http://grr:8989
            reporting:
              template: nightly
              recipient: ops@example.com
              poll_interval_s: 2
              run_deadline_s: 600
            delivery:
              backend: smtp
              smtp:
                host: mail.example.com
                port: 2465
            log_level: debug
            """,
        )

        settings = load_settings(path, env={})

        assert settings.metadata.api_token == "glsa_token"
        assert settings.reports.url == "http://grr:8989"
        assert settings.reporting.template == "nightly"
        assert settings.reporting.poll_interval_s == 2.0
        assert settings.reporting.run_deadline_s == 600.0
        assert settings.delivery.smtp.host == "mail.example.com"
        assert settings.delivery.smtp.port == 2465
        assert settings.log_level == "debug"

    def test_environment_overrides_file(self, tmp_path: Path) -> None:
        """``DASHREPORT_<SECTION>_<KEY>`` values win over the file."""
        path = _write_yaml(
            tmp_path,
            """
            reporting:
              recipient: file@example.com
              poll_max_attempts: 10
            """,
        )
        env = {
            "DASHREPORT_REPORTING_RECIPIENT": "env@example.com",
            "DASHREPORT_REPORTING_CANCEL_ON_TIMEOUT": "false",
            "DASHREPORT_METADATA_TIMEOUT_S": "3.5",
            "DASHREPORT_DELIVERY_SMTP_USERNAME": "mailer",
            "DASHREPORT_LOG_LEVEL": "WARNING",
            "DASHREPORT_UNRELATED": "ignored",
            "HOME": "/root",
        }

        settings = load_settings(path, env=env)

        assert settings.reporting.recipient == "env@example.com"
        assert settings.reporting.poll_max_attempts == 10, "file values survive"
        assert settings.reporting.cancel_on_timeout is False
        assert settings.metadata.timeout_s == 3.5
        assert settings.delivery.smtp.username == "mailer"
        assert settings.log_level == "WARNING"

    def test_config_path_from_environment(self, tmp_path: Path) -> None:
        """``DASHREPORT_CONFIG`` names the file when no path is given."""
        path = _write_yaml(tmp_path, "reports:\n  url: http://elsewhere:8989\n")

        settings = load_settings(env={"DASHREPORT_CONFIG": str(path)})

        assert settings.reports.url == "http://elsewhere:8989"

    def test_default_file_in_working_directory(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """``reporter.yaml`` in the working directory is read by default."""
        _write_yaml(tmp_path, "reporting:\n  template: weekly\n")
        monkeypatch.chdir(tmp_path)

        assert load_settings(env={}).reporting.template == "weekly"

    def test_empty_file_yields_defaults(self, tmp_path: Path) -> None:
        """An empty YAML document is treated as no settings."""
        path = _write_yaml(tmp_path, "")

        assert load_settings(path, env={}) == Settings()

    @pytest.mark.parametrize(
        "content",
        [
            pytest.param("reporting: [unclosed\n", id="malformed-yaml"),
            pytest.param("- just\n- a list\n", id="not-a-mapping"),
            pytest.param("reporting:\n  poll_max_attempts: 0\n", id="out-of-range"),
            pytest.param("reporting:\n  poll_max_attempts: many\n", id="wrong-type"),
            pytest.param("colour: blue\n", id="unknown-section"),
        ],
    )
    def test_invalid_files_raise_configuration_error(
        self, tmp_path: Path, content: str
    ) -> None:
        """Every unusable file is reported as a ConfigurationError."""
        path = _write_yaml(tmp_path, content)

        with pytest.raises(ConfigurationError) as excinfo:
            load_settings(path, env={})

        assert excinfo.value.context["source"] == str(path)

    def test_missing_explicit_file_raises(self, tmp_path: Path) -> None:
        """A named file that does not exist is a configuration error."""
        with pytest.raises(ConfigurationError):
            load_settings(tmp_path / "absent.yaml", env={})

    def test_invalid_environment_value_raises(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Environment values are validated like file values."""
        monkeypatch.chdir(tmp_path)

        with pytest.raises(ConfigurationError) as excinfo:
            load_settings(env={"DASHREPORT_REPORTING_MAX_CONCURRENT_JOBS": "lots"})

        assert excinfo.value.context["source"] == "environment"
