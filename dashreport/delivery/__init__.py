"""Delivery port and adapters for finished reports.

Public API
----------
DeliverySink
    Protocol implemented by every adapter.
FilesystemDelivery
    Writes reports beneath a base directory.
SmtpDelivery
    Sends reports as e-mail attachments.
DeliveryConfig
    Selects and configures an adapter.
create_delivery_sink
    Build the adapter named by a :class:`DeliveryConfig`.

"""

from __future__ import annotations

from .factory import DeliveryConfig, create_delivery_sink
from .filesystem import FilesystemDelivery
from .sink import DEFAULT_ATTACHMENT_NAME, DeliverySink
from .smtp import SmtpConfig, SmtpDelivery

__all__ = [
    "DEFAULT_ATTACHMENT_NAME",
    "DeliveryConfig",
    "DeliverySink",
    "FilesystemDelivery",
    "SmtpConfig",
    "SmtpDelivery",
    "create_delivery_sink",
]
