"""
Scene graph schemas - scenes, exits, actions and narrative text.

Scenes form a directed graph through exit targets and teleport effects.
Cycles are expected: players revisit scenes.
"""

from __future__ import annotations
from typing import Annotated, Any, Optional, Union

from pydantic import Discriminator, Field, Tag

from .assets import AmbienceBlock
from .base import LocalizedText, Number, SchemaModel
from .effect_dsl import Condition, Effect, RuleHook


class TextVariant(SchemaModel):
    """A weighted, optionally conditional narrative variant (default weight 1)."""
    text: str
    weight: Optional[Number] = None
    condition: Optional[Condition] = None


def _narrative_tag(value: Any) -> str:
    if isinstance(value, str):
        return "plain"
    first = value[0] if isinstance(value, (list, tuple)) and value else None
    if isinstance(first, LocalizedText) or (isinstance(first, dict) and "locale" in first):
        return "localized"
    return "variants"


NarrativeText = Annotated[
    Union[
        Annotated[str, Tag("plain")],
        Annotated[list[LocalizedText], Tag("localized")],
        Annotated[list[TextVariant], Tag("variants")],
    ],
    Discriminator(_narrative_tag),
]


class LoreRef(SchemaModel):
    """Reference from narrative to a lore entity, checked during validation."""
    type: str  # race | faction | deity | trait | location | item | event | other
    id: str
    note: Optional[str] = None


class NarrativeBlock(SchemaModel):
    text: NarrativeText
    pov: Optional[str] = None  # first | third
    tone: Optional[str] = None
    lore_refs: Optional[list[LoreRef]] = None
    author_notes: Optional[str] = None


class Exit(SchemaModel):
    """A labeled edge to another scene."""
    label: str
    target_scene: str
    condition: Optional[Condition] = None
    travel_text: Optional[NarrativeText] = None


class Action(SchemaModel):
    """An in-scene choice. Ids are unique within their scene."""
    id: str
    label: str
    condition: Optional[Condition] = None
    effects: Optional[list[Effect]] = None
    rule_hooks: Optional[list[RuleHook]] = None
    category: Optional[str] = None  # talk | search | use | combat | move | other


class Scene(SchemaModel):
    id: str
    title: Optional[str] = None
    narrative: NarrativeBlock
    ambience: Optional[AmbienceBlock] = None
    exits: list[Exit] = Field(default_factory=list)
    actions: list[Action] = Field(default_factory=list)
    entry_rules: list[RuleHook] = Field(default_factory=list)
    exit_rules: list[RuleHook] = Field(default_factory=list)
    tags: Optional[list[str]] = None
    location_id: Optional[str] = None

    def get_action(self, action_id: str) -> Action | None:
        for action in self.actions:
            if action.id == action_id:
                return action
        return None


class StoryGraph(SchemaModel):
    scenes: list[Scene]
    start_scene: str
