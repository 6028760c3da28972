"""Request/response models for the relationships API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from cmdbwalk.models.schemas import Direction, EdgeDirection, TraversalRequest


class RelationshipsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ci_name: str | None = Field(default=None, examples=["SAP ERP Production"])
    sys_id: str | None = Field(default=None, examples=["a9c0c8d2c611227601fd0ca1a1b5c5b1"])
    depth: int | None = Field(default=None, description="Levels to traverse; clamped to 1..5")
    direction: Direction = "both"
    type: str | None = Field(default=None, description="Relationship type substring")
    ci_class: str | None = Field(default=None, alias="class", description="Reported CI class substring")
    impact: bool = Field(default=False, description="Impact analysis mode: walks upstream only")

    def to_traversal_request(self) -> TraversalRequest:
        return TraversalRequest(
            sys_id=self.sys_id or None,
            ci_name=self.ci_name or None,
            max_depth=self.depth,
            direction=self.direction,
            type_filter=self.type or None,
            class_filter=self.ci_class or None,
            impact=self.impact,
        )


class RootCI(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sys_id: str
    name: str
    ci_class: str = Field(alias="class")


class RelatedCI(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sys_id: str
    name: str
    ci_class: str = Field(alias="class")
    type: str
    direction: EdgeDirection
    depth: int


class TraversalMeta(BaseModel):
    depth: int
    direction: Direction
    total: int


class RelationshipsResponse(BaseModel):
    root: RootCI
    relationships: list[RelatedCI] = Field(default_factory=list)
    meta: TraversalMeta
