"""Factory for creating DeliverySink implementations from configuration."""

from __future__ import annotations

import dataclasses
import typing as typ
from pathlib import Path

from dashreport.errors import ConfigurationError

from .filesystem import FilesystemDelivery
from .smtp import SmtpConfig, SmtpDelivery

if typ.TYPE_CHECKING:
    from .sink import DeliverySink

_VALID_BACKENDS = frozenset({"filesystem", "smtp"})


@dataclasses.dataclass(frozen=True, slots=True)
class DeliveryConfig:
    """Delivery adapter selection.

    Attributes
    ----------
    backend
        ``filesystem`` or ``smtp``.
    output_dir
        Base directory for the filesystem backend.
    smtp
        Mail server settings for the smtp backend.

    """

    backend: str = "filesystem"
    output_dir: str = "reports"
    smtp: SmtpConfig = dataclasses.field(default_factory=SmtpConfig)


def create_delivery_sink(config: DeliveryConfig) -> DeliverySink:
    """Create the adapter selected by ``config.backend``.

    Raises
    ------
    ConfigurationError
        If the backend is unknown or its settings are incomplete.

    Examples
    --------
    >>> sink = create_delivery_sink(DeliveryConfig(output_dir="/tmp/out"))
    >>> type(sink).__name__
    'FilesystemDelivery'

    """
    backend = config.backend.strip().lower()
    if backend not in _VALID_BACKENDS:
        raise ConfigurationError.invalid(
            "delivery.backend",
            f"expected one of {sorted(_VALID_BACKENDS)}, got {config.backend!r}",
        )

    if backend == "filesystem":
        if not config.output_dir.strip():
            raise ConfigurationError.invalid(
                "delivery.output_dir", "output directory must be non-empty"
            )
        return FilesystemDelivery(Path(config.output_dir))

    if not config.smtp.host.strip():
        raise ConfigurationError.invalid("delivery.smtp.host", "host must be non-empty")
    return SmtpDelivery(config.smtp)


__all__ = ["DeliveryConfig", "create_delivery_sink"]
