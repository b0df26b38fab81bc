"""Story and lore bundle schemas - the declarative input of the engine."""

from .base import LocalizedText, LoreRevealState
from .effect_dsl import (
    Condition,
    CustomCondition,
    Effect,
    ExpressionCondition,
    FlagCondition,
    InventoryCondition,
    Item,
    LoreCondition,
    RuleHook,
    RuleModuleRef,
    StatCondition,
    TeleportEffect,
)
from .scene import Action, Exit, NarrativeBlock, NarrativeText, Scene, StoryGraph, TextVariant
from .assets import AmbienceBlock, Asset, AssetRef
from .world import CompanionDefinition, Location, WorldDefinition
from .bundle import LoreBundle, StoryBundle, load_lore_bundle, load_story_bundle
from .validation import (
    Severity,
    ValidationIssue,
    ValidationResult,
    validate_bundles,
    validate_game_state,
)

__all__ = [
    "LocalizedText",
    "LoreRevealState",
    "Condition",
    "CustomCondition",
    "Effect",
    "ExpressionCondition",
    "FlagCondition",
    "InventoryCondition",
    "Item",
    "LoreCondition",
    "RuleHook",
    "RuleModuleRef",
    "StatCondition",
    "TeleportEffect",
    "Action",
    "Exit",
    "NarrativeBlock",
    "NarrativeText",
    "Scene",
    "StoryGraph",
    "TextVariant",
    "AmbienceBlock",
    "Asset",
    "AssetRef",
    "CompanionDefinition",
    "Location",
    "WorldDefinition",
    "LoreBundle",
    "StoryBundle",
    "load_lore_bundle",
    "load_story_bundle",
    "Severity",
    "ValidationIssue",
    "ValidationResult",
    "validate_bundles",
    "validate_game_state",
]
