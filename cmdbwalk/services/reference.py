"""Normalization of ServiceNow reference fields.

With ``sysparm_display_value=all`` (or ``true``/``false``) a reference field
comes back in one of three shapes:

* a bare string: the sys_id, or a display value when display mode is ``true``
* ``{"value": <sys_id>, "display_value": <label>, "link": <url>}``
* ``{"link": "https://<instance>/api/now/table/cmdb_ci/<sys_id>"}``

Each shape is parsed once into a small tagged union and the two accessors
below read the id and the human-readable name from it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Union

SYS_ID_PATTERN = re.compile(r"^[a-f0-9]{32}$")


@dataclass(frozen=True)
class RawId:
    text: str


@dataclass(frozen=True)
class ValueWithDisplay:
    sys_id: str
    display: str = ""


@dataclass(frozen=True)
class LinkOnly:
    url: str


@dataclass(frozen=True)
class Missing:
    pass


Reference = Union[RawId, ValueWithDisplay, LinkOnly, Missing]

MISSING = Missing()


def _str_or_empty(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _link_tail(url: str) -> str:
    return url.rstrip("/").rsplit("/", 1)[-1]


def parse_reference(field: Any) -> Reference:
    if not field:
        return MISSING
    if isinstance(field, str):
        return RawId(field)
    if isinstance(field, dict):
        value = _str_or_empty(field.get("value"))
        display = _str_or_empty(field.get("display_value"))
        link = _str_or_empty(field.get("link"))
        if value:
            return ValueWithDisplay(value, display)
        if link:
            return ValueWithDisplay(_link_tail(link), display) if display else LinkOnly(link)
        if display:
            return ValueWithDisplay("", display)
    return MISSING


def looks_like_sys_id(text: str) -> bool:
    return bool(SYS_ID_PATTERN.match(text))


def extract_id(field: Any) -> str:
    """Return the sys_id encoded in a reference field, or ``""``."""
    ref = parse_reference(field)
    if isinstance(ref, RawId):
        return ref.text
    if isinstance(ref, ValueWithDisplay):
        return ref.sys_id
    if isinstance(ref, LinkOnly):
        return _link_tail(ref.url)
    return ""


def extract_display_name(field: Any) -> str:
    """Return the display label of a reference field, or ``""``.

    A bare 32-char hex string is a sys_id, never a name.
    """
    ref = parse_reference(field)
    if isinstance(ref, RawId):
        return "" if looks_like_sys_id(ref.text) else ref.text
    if isinstance(ref, ValueWithDisplay):
        return ref.display
    return ""


def field_text(field: Any) -> str:
    """Text of a plain (non-reference) field in any display mode."""
    if isinstance(field, dict):
        return _str_or_empty(field.get("display_value")) or _str_or_empty(field.get("value"))
    if field is None:
        return ""
    return str(field)
