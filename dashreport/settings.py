"""Process settings loaded from YAML and the environment.

Settings come from an optional YAML file overlaid with environment variables
named ``DASHREPORT_<SECTION>_<KEY>``, for example::

    DASHREPORT_METADATA_URL=http://grafana:3000/api
    DASHREPORT_REPORTING_POLL_INTERVAL_S=2
    DASHREPORT_DELIVERY_SMTP_HOST=mail.example.com
    DASHREPORT_LOG_LEVEL=DEBUG

The YAML file mirrors the same sections:

.. code-block:: yaml

    metadata:
      url: http://grafana:3000/api
      api_token: glsa_xxx
    reports:
      url: http://grr:8989
    reporting:
      template: nightly
      recipient: ops@example.com
    delivery:
      backend: smtp
      smtp:
        host: mail.example.com

"""

from __future__ import annotations

import os
import typing as typ
from pathlib import Path

import msgspec
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from dashreport.delivery.factory import DeliveryConfig
from dashreport.errors import ConfigurationError
from dashreport.metadata.client import MetadataServiceConfig
from dashreport.render.client import ReportServiceConfig
from dashreport.reporting.config import ReportingConfig

if typ.TYPE_CHECKING:
    import collections.abc as cabc

YAML_VERSION = (1, 2)
DEFAULT_CONFIG_FILE = "reporter.yaml"
ENV_PREFIX = "DASHREPORT_"
CONFIG_PATH_ENV = "DASHREPORT_CONFIG"

_SECTIONS = ("metadata", "reports", "reporting", "delivery")
_NESTED = {"delivery": ("smtp",)}


class Settings(msgspec.Struct, kw_only=True, frozen=True, forbid_unknown_fields=True):
    """Validated settings for one process."""

    metadata: MetadataServiceConfig = msgspec.field(
        default_factory=MetadataServiceConfig
    )
    reports: ReportServiceConfig = msgspec.field(default_factory=ReportServiceConfig)
    reporting: ReportingConfig = msgspec.field(default_factory=ReportingConfig)
    delivery: DeliveryConfig = msgspec.field(default_factory=DeliveryConfig)
    log_level: str = "INFO"


def load_settings(
    path: Path | str | None = None,
    env: cabc.Mapping[str, str] | None = None,
) -> Settings:
    """Load settings from ``path`` and ``env``.

    Parameters
    ----------
    path
        YAML file to read. When omitted, ``DASHREPORT_CONFIG`` is consulted
        and then ``reporter.yaml`` in the working directory, if present.
    env
        Environment mapping. Defaults to ``os.environ``.

    Raises
    ------
    ConfigurationError
        If the file cannot be read or parsed, or a value fails validation.

    """
    environ = os.environ if env is None else env
    source = _config_path(path, environ)
    raw = _read_yaml(source) if source is not None else {}
    merged = _overlay_environment(raw, environ)
    try:
        return msgspec.convert(merged, type=Settings, strict=False)
    except (msgspec.ValidationError, ValueError, TypeError) as exc:
        origin = str(source) if source is not None else "environment"
        raise ConfigurationError.invalid(origin, str(exc)) from exc


def _config_path(
    path: Path | str | None, environ: cabc.Mapping[str, str]
) -> Path | None:
    if path is not None:
        return Path(path)
    configured = environ.get(CONFIG_PATH_ENV, "").strip()
    if configured:
        return Path(configured)
    default = Path(DEFAULT_CONFIG_FILE)
    return default if default.is_file() else None


def _read_yaml(path: Path) -> dict[str, typ.Any]:
    yaml = YAML(typ="safe")
    yaml.version = YAML_VERSION
    yaml.allow_duplicate_keys = False
    try:
        loaded = yaml.load(path.read_text(encoding="utf-8"))
    except (OSError, YAMLError) as exc:
        msg = f"failed to read YAML: {exc}"
        raise ConfigurationError.invalid(str(path), msg) from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigurationError.invalid(str(path), "top level must be a mapping")
    return loaded


def _overlay_environment(
    raw: dict[str, typ.Any], environ: cabc.Mapping[str, str]
) -> dict[str, typ.Any]:
    """Return ``raw`` with ``DASHREPORT_<SECTION>_<KEY>`` values applied."""
    merged: dict[str, typ.Any] = {
        key: dict(value) if isinstance(value, dict) else value
        for key, value in raw.items()
    }
    for name, value in environ.items():
        if not name.startswith(ENV_PREFIX) or not value.strip():
            continue
        key = name.removeprefix(ENV_PREFIX).lower()
        if key == "log_level":
            merged["log_level"] = value
            continue
        section, _, field = key.partition("_")
        if section not in _SECTIONS or not field:
            continue
        target = _section(merged, section)
        for nested in _NESTED.get(section, ()):
            if field.startswith(f"{nested}_"):
                target = _section(target, nested)
                field = field.removeprefix(f"{nested}_")
                break
        target[field] = value
    return merged


def _section(container: dict[str, typ.Any], name: str) -> dict[str, typ.Any]:
    current = container.get(name)
    if not isinstance(current, dict):
        current = {}
    else:
        current = dict(current)
    container[name] = current
    return current


__all__ = ["DEFAULT_CONFIG_FILE", "Settings", "load_settings"]
