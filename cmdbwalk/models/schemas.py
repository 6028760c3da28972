"""Internal Pydantic models for traversal requests, nodes, edges and results."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Direction = Literal["upstream", "downstream", "both"]
EdgeDirection = Literal["upstream", "downstream"]


# ── Graph models ─────────────────────────────────────────────────────


class Node(BaseModel):
    """A configuration item, identified by its sys_id."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    sys_id: str
    name: str
    ci_class: str = Field(default="unknown", alias="class")


class Edge(BaseModel):
    """One relationship discovered while expanding a source CI.

    ``direction`` is relative to the CI being expanded, not the root, and
    ``depth`` is the depth at which that CI was expanded (root = 1).
    """

    model_config = ConfigDict(frozen=True)

    other_id: str = Field(serialization_alias="sys_id")
    other_name: str = Field(serialization_alias="name")
    other_class: str = Field(serialization_alias="class")
    relation_type: str = Field(serialization_alias="type")
    direction: EdgeDirection
    depth: int


# ── Request / result ─────────────────────────────────────────────────


class TraversalRequest(BaseModel):
    sys_id: str | None = None
    ci_name: str | None = None
    max_depth: int | None = Field(default=None, description="Clamped to 1..5")
    direction: Direction = "both"
    type_filter: str | None = Field(default=None, description="Substring of the relationship type")
    class_filter: str | None = Field(default=None, description="Substring of the reported CI class")
    impact: bool = Field(default=False, description="Impact analysis: walk upstream only")

    @property
    def effective_direction(self) -> Direction:
        return "upstream" if self.impact else self.direction


class TraversalSummary(BaseModel):
    depth: int
    direction: Direction
    total_edges: int = 0


class TraversalResult(BaseModel):
    root: Node
    edges: list[Edge] = Field(default_factory=list)
    summary: TraversalSummary

    def to_record(self) -> dict[str, Any]:
        """Serialize as ``{root, relationships, meta}`` using ServiceNow field names."""
        return {
            "root": self.root.model_dump(by_alias=True),
            "relationships": [e.model_dump(by_alias=True) for e in self.edges],
            "meta": {
                "depth": self.summary.depth,
                "direction": self.summary.direction,
                "total": self.summary.total_edges,
            },
        }
