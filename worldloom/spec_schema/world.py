"""
World schemas - locations, layouts, regions and companion definitions.

Only location ids and entry scenes matter to the transition engine. Layouts
and the spatial graph are navigation hints for presentation layers; their
conditions are still checked by validation.
"""

from __future__ import annotations
from typing import Optional

from pydantic import Field

from .base import Number, SchemaModel
from .effect_dsl import Condition


class GridTile(SchemaModel):
    scene_id: str
    walkable: Optional[bool] = None
    tags: Optional[list[str]] = None


class GridLayout(SchemaModel):
    width: int
    height: int
    tiles: dict[str, GridTile]  # sparse, keyed "x,y"


class LayoutNode(SchemaModel):
    id: str
    scene_id: str
    tags: Optional[list[str]] = None
    label: Optional[str] = None


class LayoutConnection(SchemaModel):
    from_: str = Field(alias="from")
    to: str
    direction: Optional[str] = None
    locked_by: Optional[Condition] = None
    label: Optional[str] = None


class LocationLayout(SchemaModel):
    layout_type: str  # nodeGraph | grid | abstract
    nodes: Optional[list[LayoutNode]] = None
    connections: Optional[list[LayoutConnection]] = None
    grid: Optional[GridLayout] = None


class Location(SchemaModel):
    id: str
    name: str
    type: str  # town | dungeon | wilderness | interior | other
    description: Optional[str] = None
    entry_scene: str
    scene_ids: Optional[list[str]] = None
    layout: Optional[LocationLayout] = None
    lore_location_id: Optional[str] = None
    tags: Optional[list[str]] = None


class Region(SchemaModel):
    id: str
    name: str
    description: Optional[str] = None
    climate: Optional[str] = None
    themes: Optional[list[str]] = None
    location_ids: Optional[list[str]] = None


class SpatialNode(SchemaModel):
    id: str
    type: str  # region | location | landmark
    ref_id: Optional[str] = None
    name: Optional[str] = None
    tags: Optional[list[str]] = None


class SpatialEdge(SchemaModel):
    from_: str = Field(alias="from")
    to: str
    travel_mode: Optional[str] = None
    distance: Optional[Number] = None
    condition: Optional[Condition] = None


class SpatialGraph(SchemaModel):
    nodes: list[SpatialNode]
    edges: list[SpatialEdge]


class RelationshipSeed(SchemaModel):
    """Starting relationship for a companion."""
    value: Number
    stage: Optional[str] = None
    flags: Optional[dict[str, bool]] = None


class CompanionDefinition(SchemaModel):
    id: str
    name: str
    role: Optional[str] = None
    description: Optional[str] = None
    default_relationship: Optional[RelationshipSeed] = None
    tags: Optional[list[str]] = None


class WorldDefinition(SchemaModel):
    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    regions: Optional[list[Region]] = None
    locations: list[Location]
    companions: Optional[list[CompanionDefinition]] = None
    spatial_graph: Optional[SpatialGraph] = None

    def get_companion(self, companion_id: str) -> CompanionDefinition | None:
        for companion in self.companions or []:
            if companion.id == companion_id:
                return companion
        return None
