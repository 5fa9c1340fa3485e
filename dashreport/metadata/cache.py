"""Append-only, read-through cache of dashboard documents.

Dashboard uids are only unique within an organisation, so callers that know
the organisation store documents under :func:`cache_key`.

The cache is the only mutable state shared between concurrent resolution
tasks. Each public call holds a single :class:`threading.Lock` for its whole
duration, so ``exists``, ``get`` and ``put`` serialize completely and no
partial read is observable. The lock is never held across a fetch: two
callers may both miss and both fetch the same identifier, and the second
``put`` simply overwrites the first with identical content.

Usage
-----
>>> cache = DashboardCache()
>>> cache.put("abc", {"title": "Latency"})
>>> cache.exists("abc")
True
>>> cache.get("abc")["title"]
'Latency'
>>> cache_key("abc", org_id=2)
'2/abc'

"""

from __future__ import annotations

import threading
import typing as typ

from dashreport.errors import DashReportError, ErrorKind

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .models import DashboardDocument


def cache_key(uid: str, *, org_id: int | None = None) -> str:
    """Return the cache identifier for ``uid`` within ``org_id``."""
    return uid if org_id is None else f"{org_id}/{uid}"


class NotCachedError(DashReportError):
    """Raised by :meth:`DashboardCache.get` for an identifier never stored."""

    kind = ErrorKind.NOT_CACHED

    @classmethod
    def for_uid(cls, uid: str) -> NotCachedError:
        """Return an error naming the missing identifier."""
        return cls("dashboard document is not cached", context={"dashboard_uid": uid})


class DashboardCache:
    """Concurrency-safe map from stable dashboard identifier to document.

    Documents are never evicted. Callers treat returned documents as
    read-only.
    """

    def __init__(self) -> None:
        """Initialise an empty store."""
        self._lock = threading.Lock()
        self._documents: dict[str, DashboardDocument] = {}

    def exists(self, uid: str) -> bool:
        """Return True iff a document is cached for ``uid``."""
        with self._lock:
            return uid in self._documents

    def get(self, uid: str) -> DashboardDocument:
        """Return the cached document for ``uid``.

        Raises
        ------
        NotCachedError
            If nothing has been stored under ``uid``.

        """
        with self._lock:
            try:
                return self._documents[uid]
            except KeyError:
                raise NotCachedError.for_uid(uid) from None

    def put(self, uid: str, document: DashboardDocument) -> None:
        """Store ``document`` under ``uid``; last writer wins."""
        with self._lock:
            self._documents[uid] = document

    def __len__(self) -> int:
        """Return the number of cached documents."""
        with self._lock:
            return len(self._documents)

    async def get_or_fetch(
        self,
        uid: str,
        fetch: cabc.Callable[[str], cabc.Awaitable[DashboardDocument]],
    ) -> DashboardDocument:
        """Return the cached document, fetching and storing it on a miss.

        The lock is released while ``fetch`` runs; concurrent misses for the
        same identifier may each call ``fetch``.
        """
        if self.exists(uid):
            return self.get(uid)
        document = await fetch(uid)
        self.put(uid, document)
        return self.get(uid)


__all__ = ["DashboardCache", "NotCachedError", "cache_key"]
