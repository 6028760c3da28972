"""CMDB relationship walk: impact analysis and dependency mapping over cmdb_rel_ci."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

from cmdbwalk.models.schemas import (
    Direction,
    Edge,
    EdgeDirection,
    Node,
    TraversalRequest,
    TraversalResult,
    TraversalSummary,
)
from cmdbwalk.servicenow.connection import RecordQuery
from cmdbwalk.servicenow.queries import (
    CI_CLASS_FIELDS,
    CI_TABLE,
    DISPLAY_ALL,
    REL_FIELDS,
    REL_ROW_LIMIT,
    REL_TABLE,
    incident_to,
)
from cmdbwalk.services.class_cache import ClassCache
from cmdbwalk.services.reference import extract_display_name, extract_id
from cmdbwalk.services.root_resolver import RootResolver
from cmdbwalk.utils.exceptions import RemoteQueryError, TraversalCancelledError
from cmdbwalk.utils.logging import get_logger

logger = get_logger(__name__)

MIN_DEPTH = 1
MAX_DEPTH = 5
DEFAULT_RELATION_TYPE = "Related to"


def clamp_depth(depth: int | None, default: int = 3) -> int:
    """Out-of-range depths are corrected, never rejected."""
    value = default if depth is None else depth
    return min(max(value, MIN_DEPTH), MAX_DEPTH)


def _contains(haystack: str, needle: str | None) -> bool:
    return not needle or needle.lower() in haystack.lower()


@dataclass
class TraversalContext:
    """Mutable state of one walk. Never shared between requests."""

    root: Node
    max_depth: int
    direction: Direction
    type_filter: str | None
    class_filter: str | None
    class_cache: ClassCache
    cancel_event: asyncio.Event | None = None
    visited: set[str] = field(default_factory=set)
    edges: list[Edge] = field(default_factory=list)
    expanded: list[str] = field(default_factory=list)
    failed_fetches: int = 0

    def check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise TraversalCancelledError(
                f"Traversal from {self.root.sys_id} cancelled after "
                f"{len(self.expanded)} expansions"
            )


class TraversalService:
    """Walks CI relationships outward from a root CI.

    Expansion is depth-first and strictly sequential, one Table API call
    outstanding at a time. Each CI is expanded at most once per walk; a
    relationship fetch that fails contributes no rows instead of failing
    the walk.
    """

    def __init__(self, store: RecordQuery, default_depth: int = 3) -> None:
        self._store = store
        self._default_depth = default_depth

    async def traverse(
        self,
        request: TraversalRequest,
        cancel_event: asyncio.Event | None = None,
    ) -> TraversalResult:
        async def before_call() -> None:
            if cancel_event is not None and cancel_event.is_set():
                raise TraversalCancelledError("Traversal cancelled before root resolution")

        root = await RootResolver(self._store, before_call).resolve(
            sys_id=request.sys_id, ci_name=request.ci_name
        )

        ctx = TraversalContext(
            root=root,
            max_depth=clamp_depth(request.max_depth, self._default_depth),
            direction=request.effective_direction,
            type_filter=request.type_filter,
            class_filter=request.class_filter,
            class_cache=ClassCache(lambda sys_id: self._lookup_class(ctx, sys_id)),
            cancel_event=cancel_event,
            visited={root.sys_id},
        )
        ctx.class_cache.seed(root.sys_id, root.ci_class)

        log = logger.bind(root_id=root.sys_id, root_name=root.name)
        log.info(
            "traversal_started",
            depth=ctx.max_depth,
            direction=ctx.direction,
            type_filter=ctx.type_filter,
            class_filter=ctx.class_filter,
        )
        started = time.monotonic()

        await self._expand(ctx, root.sys_id, 1)

        log.info(
            "traversal_completed",
            edges=len(ctx.edges),
            nodes_expanded=len(ctx.expanded),
            classes_resolved=len(ctx.class_cache),
            failed_fetches=ctx.failed_fetches,
            elapsed_ms=round((time.monotonic() - started) * 1000),
        )

        return TraversalResult(
            root=root,
            edges=ctx.edges,
            summary=TraversalSummary(
                depth=ctx.max_depth,
                direction=ctx.direction,
                total_edges=len(ctx.edges),
            ),
        )

    async def _lookup_class(self, ctx: TraversalContext, sys_id: str) -> dict[str, Any]:
        ctx.check_cancelled()
        return await self._store.get(CI_TABLE, sys_id, CI_CLASS_FIELDS)

    async def _fetch_rows(self, ctx: TraversalContext, node_id: str) -> list[dict[str, Any]]:
        ctx.check_cancelled()
        try:
            rows = await self._store.query(
                REL_TABLE,
                incident_to(node_id),
                REL_FIELDS,
                REL_ROW_LIMIT,
                display_value=DISPLAY_ALL,
            )
        except RemoteQueryError as exc:
            ctx.failed_fetches += 1
            logger.warning("relationship_fetch_failed", sys_id=node_id, error=str(exc))
            return []
        return rows[:REL_ROW_LIMIT]

    async def _expand(self, ctx: TraversalContext, node_id: str, depth: int) -> None:
        if depth > ctx.max_depth:
            return

        rows = await self._fetch_rows(ctx, node_id)
        ctx.expanded.append(node_id)
        logger.debug("node_expanded", sys_id=node_id, depth=depth, rows=len(rows))

        seen: set[tuple[str, EdgeDirection]] = set()

        for row in rows:
            parent_id = extract_id(row.get("parent"))
            child_id = extract_id(row.get("child"))
            relation_type = extract_display_name(row.get("type")) or DEFAULT_RELATION_TYPE

            rel_dir: EdgeDirection
            if parent_id == node_id:
                other_id, other_name = child_id, extract_display_name(row.get("child"))
                rel_dir = "downstream"
            elif child_id == node_id:
                other_id, other_name = parent_id, extract_display_name(row.get("parent"))
                rel_dir = "upstream"
            else:
                continue

            if not other_id or other_id == node_id:
                continue
            if ctx.direction != "both" and rel_dir != ctx.direction:
                continue
            if not _contains(relation_type, ctx.type_filter):
                continue

            pair = (other_id, rel_dir)
            if pair in seen:
                continue
            seen.add(pair)

            other_class = await ctx.class_cache.get(other_id)

            # Class filter narrows what is reported, never what is explored
            if _contains(other_class, ctx.class_filter):
                ctx.edges.append(
                    Edge(
                        other_id=other_id,
                        other_name=other_name or other_id,
                        other_class=other_class,
                        relation_type=relation_type,
                        direction=rel_dir,
                        depth=depth,
                    )
                )

            if depth < ctx.max_depth and other_id not in ctx.visited:
                ctx.visited.add(other_id)
                await self._expand(ctx, other_id, depth + 1)
