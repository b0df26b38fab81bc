"""
Bundle schemas - StoryBundle, LoreBundle and their loaders.

A StoryBundle is the whole authored story: scene graph, world, expected rule
modules and optional assets. LoreBundles carry canon data that stories
cross-reference. Both are immutable once loaded.
"""

from __future__ import annotations
import json
from typing import Any, Mapping, Optional, TypeVar, Union

from pydantic import Field, ValidationError

from ..errors import BundleLoadError
from .assets import Asset
from .base import BundleMetadata, SchemaModel
from .effect_dsl import RuleModuleRef
from .lore import Deity, Faction, LoreEvent, LoreItem, LoreLocation, Race, Trait
from .scene import Scene, StoryGraph
from .validation import ValidationIssue, issues_from_pydantic
from .world import WorldDefinition


class LoreBundleRef(SchemaModel):
    id: str


class StoryBundle(SchemaModel):
    id: str
    version: str
    schema_version: Optional[str] = None
    name: str
    description: Optional[str] = None
    lore_refs: Optional[list[LoreBundleRef]] = None
    world: WorldDefinition
    story: StoryGraph
    rule_modules: list[RuleModuleRef] = Field(default_factory=list)
    assets: Optional[list[Asset]] = None
    metadata: Optional[BundleMetadata] = None

    @property
    def scenes(self) -> list[Scene]:
        return self.story.scenes

    @property
    def start_scene(self) -> str:
        return self.story.start_scene


class LoreBundle(SchemaModel):
    id: str
    version: str
    schema_version: Optional[str] = None
    name: str
    description: Optional[str] = None
    races: Optional[list[Race]] = None
    factions: Optional[list[Faction]] = None
    deities: Optional[list[Deity]] = None
    traits: Optional[list[Trait]] = None
    locations: Optional[list[LoreLocation]] = None
    items: Optional[list[LoreItem]] = None
    history: Optional[list[LoreEvent]] = None
    tags: Optional[list[str]] = None
    metadata: Optional[BundleMetadata] = None


BundleT = TypeVar("BundleT", StoryBundle, LoreBundle)
BundleInput = Union[str, bytes, Mapping[str, Any], StoryBundle, LoreBundle]


def _load(model: type[BundleT], data: BundleInput, label: str) -> BundleT:
    if isinstance(data, model):
        return data
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as e:
            raise BundleLoadError(
                f"{label} is not valid JSON",
                [ValidationIssue.error("/", f"Invalid JSON: {e.msg} (line {e.lineno})")],
            ) from e
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise BundleLoadError(f"{label} failed schema validation", issues_from_pydantic(e)) from e


def load_story_bundle(data: BundleInput) -> StoryBundle:
    """Load a StoryBundle from JSON text, a mapping, or an existing model."""
    return _load(StoryBundle, data, "Story bundle")


def load_lore_bundle(data: BundleInput) -> LoreBundle:
    """Load a LoreBundle from JSON text, a mapping, or an existing model."""
    return _load(LoreBundle, data, "Lore bundle")
