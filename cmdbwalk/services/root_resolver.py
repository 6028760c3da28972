"""Resolve the user-supplied sys_id or CI name into the root node of a walk."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from cmdbwalk.models.schemas import Node
from cmdbwalk.servicenow.connection import RecordQuery
from cmdbwalk.servicenow.queries import CI_FIELDS, CI_TABLE, ROOT_NAME_LIMIT, name_is
from cmdbwalk.services.class_cache import UNKNOWN_CLASS, class_of
from cmdbwalk.services.reference import extract_id, field_text
from cmdbwalk.utils.exceptions import NotFoundError, ValidationError
from cmdbwalk.utils.logging import get_logger

logger = get_logger(__name__)


async def _noop() -> None:
    return None


class RootResolver:
    """Confirms the root CI exists and reads its name and class.

    When several CIs share a name the first record in the instance's own
    ordering wins; no tie-break is applied on top of it.
    """

    def __init__(
        self,
        store: RecordQuery,
        before_call: Callable[[], Awaitable[None]] = _noop,
    ) -> None:
        self._store = store
        self._before_call = before_call

    async def resolve(self, sys_id: str | None = None, ci_name: str | None = None) -> Node:
        if bool(sys_id) == bool(ci_name):
            raise ValidationError("Exactly one of ci_name or sys_id is required")
        if sys_id:
            return await self._by_sys_id(sys_id)
        return await self._by_name(ci_name or "")

    async def _by_sys_id(self, sys_id: str) -> Node:
        await self._before_call()
        try:
            record = await self._store.get(CI_TABLE, sys_id, CI_FIELDS)
        except NotFoundError as exc:
            raise NotFoundError(f"CI not found with sys_id: {sys_id}") from exc

        name = field_text(record.get("name"))
        if not name:
            raise NotFoundError(f"CI not found with sys_id: {sys_id}")
        return Node(sys_id=sys_id, name=name, ci_class=class_of(record) or UNKNOWN_CLASS)

    async def _by_name(self, ci_name: str) -> Node:
        await self._before_call()
        records = await self._store.query(
            CI_TABLE, name_is(ci_name), CI_FIELDS, ROOT_NAME_LIMIT
        )
        if not records:
            raise NotFoundError(f"CI not found: {ci_name}")

        if len(records) > 1:
            logger.info("root_name_ambiguous", ci_name=ci_name, candidates=len(records))
        first = records[0]
        root_id = extract_id(first.get("sys_id"))
        if not root_id:
            raise NotFoundError(f"CI not found: {ci_name}")
        return Node(
            sys_id=root_id,
            name=field_text(first.get("name")) or ci_name,
            ci_class=class_of(first) or UNKNOWN_CLASS,
        )
