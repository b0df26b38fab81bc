"""
Schema base - shared model configuration and small value types.

Bundles arrive as camelCase JSON. Every schema model aliases its snake_case
fields to camelCase so the same model reads bundle JSON and is written to from
Python code by field name.
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class SchemaModel(BaseModel):
    """Immutable bundle data. Never mutated by the engine."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Dump using wire (camelCase) names, dropping unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class MutableModel(BaseModel):
    """Runtime data owned by a game (state, history payloads)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


Number = Union[int, float]


class LoreRevealState(str, Enum):
    """How much of a lore entry the player has uncovered."""
    KNOWN = "known"
    DISCOVERABLE = "discoverable"
    HIDDEN = "hidden"


class Direction(str, Enum):
    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"
    NORTHEAST = "northeast"
    NORTHWEST = "northwest"
    SOUTHEAST = "southeast"
    SOUTHWEST = "southwest"
    UP = "up"
    DOWN = "down"
    IN = "in"
    OUT = "out"
    NONE = "none"


class LocalizedText(SchemaModel):
    """One translation of a narrative line, e.g. locale "en-GB"."""
    locale: str
    text: str


class BundleMetadata(SchemaModel):
    author: Optional[str] = None
    license: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    themes: Optional[list[str]] = None
    content_rating: Optional[str] = None  # everyone | teen | mature
