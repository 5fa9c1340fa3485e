"""Slug utilities for file names derived from dashboard titles.

Dashboard titles and e-mail subjects are free text. Before they are used as
path components they are reduced to lowercase ASCII words joined by ``-``.
"""

from __future__ import annotations

import re
import unicodedata

_NON_WORD = re.compile(r"[^a-z0-9]+")


def slugify(text: str, *, fallback: str = "report") -> str:
    """Reduce free text to a filesystem-safe slug.

    Parameters
    ----------
    text:
        Free text such as a dashboard title.
    fallback:
        Slug returned when ``text`` contains no usable characters.

    Returns
    -------
    str
        Lowercase slug with words separated by ``-``.

    Examples
    --------
    >>> slugify("Ops / Nightly Überblick")
    'ops-nightly-uberblick'
    >>> slugify("  ***  ")
    'report'

    """
    normalised = unicodedata.normalize("NFKD", text)
    ascii_text = normalised.encode("ascii", "ignore").decode("ascii").lower()
    slug = _NON_WORD.sub("-", ascii_text).strip("-")
    return slug or fallback


def dashboard_subject(title: str, folder_title: str | None = None) -> str:
    """Build the delivery subject line for a dashboard.

    Examples
    --------
    >>> dashboard_subject("Latency", "Ops")
    'Ops / Latency'
    >>> dashboard_subject("Latency")
    'Latency'

    """
    if folder_title:
        return f"{folder_title} / {title}"
    return title
