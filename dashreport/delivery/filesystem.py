r"""Filesystem adapter for the DeliverySink protocol.

Writes delivered reports beneath a base directory::

    {base_path}/{recipient}/{subject-slug}-{filename}

Usage
-----
>>> import asyncio
>>> from pathlib import Path
>>> sink = FilesystemDelivery(Path("/var/lib/dashreport/outbox"))
>>> asyncio.run(
...     sink.deliver(recipient="ops@example.com", subject="Ops / Latency",
...                  attachment=b"%PDF-1.7")
... )
True

"""

from __future__ import annotations

import asyncio
import typing as typ

from dashreport.common.slug import slugify
from dashreport.logging import get_logger, log_error, log_info

from .sink import DEFAULT_ATTACHMENT_NAME

if typ.TYPE_CHECKING:
    from pathlib import Path

logger = get_logger(__name__)


class FilesystemDelivery:
    """Deliver reports by writing them to the local filesystem.

    Parameters
    ----------
    base_path
        Root directory; one subdirectory is created per recipient.

    """

    def __init__(self, base_path: Path) -> None:
        """Initialise the sink with a base directory path."""
        self._base_path = base_path

    def target_path(
        self, *, recipient: str, subject: str, filename: str = DEFAULT_ATTACHMENT_NAME
    ) -> Path:
        """Return the path a delivery would be written to."""
        directory = self._base_path / slugify(recipient, fallback="unaddressed")
        return directory / f"{slugify(subject)}-{filename}"

    async def deliver(
        self,
        *,
        recipient: str,
        subject: str,
        attachment: bytes | None = None,
        filename: str = DEFAULT_ATTACHMENT_NAME,
    ) -> bool:
        """Write ``attachment`` (or an empty file) and return True on success."""
        path = self.target_path(recipient=recipient, subject=subject, filename=filename)
        try:
            await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(path.write_bytes, attachment or b"")
        except OSError as exc:
            log_error(logger, "Could not write report %s: %s", path, exc)
            return False
        log_info(logger, "Delivered %r to %s", subject, path)
        return True


__all__ = ["FilesystemDelivery"]
