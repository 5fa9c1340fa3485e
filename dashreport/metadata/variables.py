"""Extract template variables from a raw dashboard document.

The extractor descends through an untyped JSON tree one key at a time. Every
step checks the shape it expects and falls back to a default on mismatch, so
the extractor never raises: a document without ``templating`` yields an empty
mapping, and list entries with a missing ``name`` or ``current.text`` yield
empty strings.

Examples
--------
>>> extract_variables({"templating": {"list": [
...     {"name": "site", "current": {"text": "hq"}},
... ]}})["site"]
'hq'
>>> dict(extract_variables({}))
{}

"""

from __future__ import annotations

import typing as typ

from .models import EMPTY_VARIABLES, freeze_variables

if typ.TYPE_CHECKING:
    from .models import DashboardDocument, VariableMap

_MISSING = object()


def _descend(node: object, *keys: str) -> object:
    """Follow ``keys`` through nested mappings, returning ``_MISSING`` on mismatch."""
    current = node
    for key in keys:
        if not isinstance(current, dict):
            return _MISSING
        current = typ.cast("dict[str, object]", current).get(key, _MISSING)
    return current


def _text(node: object, *keys: str) -> str:
    """Return the string at ``keys`` or the empty string."""
    value = _descend(node, *keys)
    return value if isinstance(value, str) else ""


def extract_variables(document: DashboardDocument) -> VariableMap:
    """Return a read-only mapping of variable name to current text.

    Parameters
    ----------
    document
        The dashboard's full definition document.

    Returns
    -------
    VariableMap
        Variable names mapped to their currently selected text. Later list
        entries overwrite earlier entries with the same name.

    """
    templating = _descend(document, "templating")
    if templating is _MISSING:
        return EMPTY_VARIABLES

    entries = _descend(templating, "list")
    if not isinstance(entries, list):
        return EMPTY_VARIABLES

    variables: dict[str, str] = {}
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        # unnamed entries collapse onto the empty name
        variables[_text(entry, "name")] = _text(entry, "current", "text")
    return freeze_variables(variables)


__all__ = ["extract_variables"]
