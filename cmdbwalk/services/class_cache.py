"""Per-traversal memo of CI sys_id -> class name."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from cmdbwalk.services.reference import extract_display_name, extract_id
from cmdbwalk.utils.exceptions import NotFoundError, RemoteQueryError
from cmdbwalk.utils.logging import get_logger

logger = get_logger(__name__)

UNKNOWN_CLASS = "unknown"

ClassLookup = Callable[[str], Awaitable[dict[str, Any]]]


def class_of(record: dict[str, Any]) -> str:
    """Read ``sys_class_name`` from a CI record in any display mode."""
    field = record.get("sys_class_name")
    return extract_display_name(field) or extract_id(field)


class ClassCache:
    """Resolves CI classes at most once per sys_id.

    Failed or empty lookups are remembered as ``"unknown"`` so a broken
    record never costs a second remote call within one traversal.
    """

    def __init__(self, lookup: ClassLookup) -> None:
        self._lookup = lookup
        self._classes: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._classes)

    def seed(self, sys_id: str, ci_class: str) -> None:
        self._classes[sys_id] = ci_class or UNKNOWN_CLASS

    async def get(self, sys_id: str) -> str:
        cached = self._classes.get(sys_id)
        if cached is not None:
            return cached

        try:
            record = await self._lookup(sys_id)
            ci_class = class_of(record) or UNKNOWN_CLASS
        except (NotFoundError, RemoteQueryError) as exc:
            logger.warning("class_lookup_failed", sys_id=sys_id, error=str(exc))
            ci_class = UNKNOWN_CLASS

        self._classes[sys_id] = ci_class
        return ci_class
