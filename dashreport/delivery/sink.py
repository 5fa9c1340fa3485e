"""DeliverySink protocol for handing finished reports to a recipient.

This module defines the port for report delivery. Adapters implement it to
send artefacts by e-mail, write them to disk, and so on. Every adapter
reports success as a boolean and logs its own failures instead of raising.

Usage
-----
Type-check a concrete adapter:

>>> from pathlib import Path
>>> from dashreport.delivery import FilesystemDelivery, DeliverySink
>>> isinstance(FilesystemDelivery(Path(".")), DeliverySink)
True

"""

from __future__ import annotations

import typing as typ

DEFAULT_ATTACHMENT_NAME = "report.pdf"


@typ.runtime_checkable
class DeliverySink(typ.Protocol):
    """Protocol for delivering a rendered report."""

    async def deliver(
        self,
        *,
        recipient: str,
        subject: str,
        attachment: bytes | None = None,
        filename: str = DEFAULT_ATTACHMENT_NAME,
    ) -> bool:
        """Deliver a report and return True on success.

        Parameters
        ----------
        recipient
            Destination address.
        subject
            Subject line, usually derived from the dashboard title.
        attachment
            Optional report bytes.
        filename
            Attachment file name.

        """
        ...


__all__ = ["DEFAULT_ATTACHMENT_NAME", "DeliverySink"]
