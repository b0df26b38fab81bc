"""
Condition & Effect DSL - declarative rules carried by story bundles.

Conditions gate exits, actions and narrative variants. Effects describe the
state mutations applied when a player takes a transition. Rule hooks name an
extension point handled by a rule module.

Key design decisions:
- Conditions and effects are tagged by their "type" field
- Condition types the engine does not know are kept as CustomCondition so a
  rule module can still answer them
- Effect types are a closed vocabulary; an unknown effect fails to load
- Operators are plain strings: the evaluator treats unknown operators as false
"""

from __future__ import annotations
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import ConfigDict, Discriminator, Field, Tag

from .base import Number, SchemaModel


# ============================================================================
# Items
# ============================================================================

class Item(SchemaModel):
    """An item definition, carried by addItem effects and inventory entries."""
    id: str
    name: str
    description: Optional[str] = None
    tags: Optional[list[str]] = None
    lore_item_id: Optional[str] = None
    properties: Optional[dict[str, Any]] = None  # interpreted by rule modules


# ============================================================================
# Conditions
# ============================================================================

class FlagCondition(SchemaModel):
    """Story flag check. operator: equals | notEquals | exists | notExists."""
    type: Literal["flag"] = "flag"
    key: str
    operator: Optional[str] = None
    value: Optional[bool] = None


class StatCondition(SchemaModel):
    """Character stat check. operator: gt | gte | lt | lte | eq | neq."""
    type: Literal["stat"] = "stat"
    key: str
    operator: str
    value: Number


class InventoryCondition(SchemaModel):
    """Inventory check. operator: has | notHas | countGte | countLte."""
    type: Literal["inventory"] = "inventory"
    key: str  # item id
    operator: Optional[str] = None
    value: Optional[Number] = None


class ExpressionCondition(SchemaModel):
    """Free-form expression, e.g. "flag.met == true && stat.str >= 10"."""
    type: Literal["expression"] = "expression"
    expr: str


class LoreCondition(SchemaModel):
    """
    World-canon check keyed by prefix:
    race:<id>, faction:<id>, knows:<key>, lore:<key> (reveal states),
    anything else is a plain var/flag lookup.
    """
    type: Literal["lore"] = "lore"
    key: str
    operator: Optional[str] = None  # equals | notEquals | has | notHas
    value: Any = None


class CustomCondition(SchemaModel):
    """A condition type the engine does not evaluate itself."""
    model_config = ConfigDict(extra="allow")

    type: str


BUILTIN_CONDITION_TYPES = frozenset({"flag", "stat", "inventory", "expression", "lore"})


def _condition_tag(value: Any) -> str:
    if isinstance(value, dict):
        kind = value.get("type")
    else:
        kind = getattr(value, "type", None)
    if isinstance(value, CustomCondition) or kind not in BUILTIN_CONDITION_TYPES:
        return "custom"
    return kind


Condition = Annotated[
    Union[
        Annotated[FlagCondition, Tag("flag")],
        Annotated[StatCondition, Tag("stat")],
        Annotated[InventoryCondition, Tag("inventory")],
        Annotated[ExpressionCondition, Tag("expression")],
        Annotated[LoreCondition, Tag("lore")],
        Annotated[CustomCondition, Tag("custom")],
    ],
    Discriminator(_condition_tag),
]


# ============================================================================
# Effects
# ============================================================================

class SetFlagEffect(SchemaModel):
    type: Literal["setFlag"] = "setFlag"
    key: str
    value: bool


class ModifyStatEffect(SchemaModel):
    """stats[key] += delta, then clamped to the optional min/max."""
    type: Literal["modifyStat"] = "modifyStat"
    key: str
    delta: Number
    min: Optional[Number] = None
    max: Optional[Number] = None


class AddItemEffect(SchemaModel):
    type: Literal["addItem"] = "addItem"
    item: Item
    count: Optional[int] = None


class RemoveItemEffect(SchemaModel):
    type: Literal["removeItem"] = "removeItem"
    item_id: str
    count: Optional[int] = None


class SetVarEffect(SchemaModel):
    type: Literal["setVar"] = "setVar"
    key: str
    value: Any = None


class ModifyVarEffect(SchemaModel):
    """Adds numbers, appends strings, otherwise overwrites with delta."""
    type: Literal["modifyVar"] = "modifyVar"
    key: str
    delta: Any = None


class TeleportEffect(SchemaModel):
    """Redirects the next scene. Applied by the transition machine, not here."""
    type: Literal["teleport"] = "teleport"
    target_scene: str
    target_location_id: Optional[str] = None


class SetReputationEffect(SchemaModel):
    type: Literal["setReputation"] = "setReputation"
    faction_id: str
    value: Number


class SetRelationshipEffect(SchemaModel):
    type: Literal["setRelationship"] = "setRelationship"
    target_id: str
    value: Number
    stage: Optional[str] = None
    flags: Optional[dict[str, bool]] = None


class ModifyRelationshipEffect(SchemaModel):
    type: Literal["modifyRelationship"] = "modifyRelationship"
    target_id: str
    delta: Number
    min: Optional[Number] = None
    max: Optional[Number] = None


class AddCompanionEffect(SchemaModel):
    type: Literal["addCompanion"] = "addCompanion"
    companion_id: str


class RemoveCompanionEffect(SchemaModel):
    type: Literal["removeCompanion"] = "removeCompanion"
    companion_id: str


class SetCompanionFlagEffect(SchemaModel):
    type: Literal["setCompanionFlag"] = "setCompanionFlag"
    companion_id: str
    key: str
    value: bool


class ModifyCompanionRelationshipEffect(SchemaModel):
    type: Literal["modifyCompanionRelationship"] = "modifyCompanionRelationship"
    companion_id: str
    delta: Number
    min: Optional[Number] = None
    max: Optional[Number] = None


Effect = Annotated[
    Union[
        SetFlagEffect,
        ModifyStatEffect,
        AddItemEffect,
        RemoveItemEffect,
        SetVarEffect,
        ModifyVarEffect,
        TeleportEffect,
        SetReputationEffect,
        SetRelationshipEffect,
        ModifyRelationshipEffect,
        AddCompanionEffect,
        RemoveCompanionEffect,
        SetCompanionFlagEffect,
        ModifyCompanionRelationshipEffect,
    ],
    Field(discriminator="type"),
]


# ============================================================================
# Rule modules and hooks
# ============================================================================

class RuleModuleRef(SchemaModel):
    """A rule module the story expects the host to provide."""
    id: str
    system: str  # e.g. "SRD5e", "OpenD6", "Custom"
    version: Optional[str] = None
    config: Optional[dict[str, Any]] = None


class RuleHook(SchemaModel):
    """
    An extension point dispatched to a rule module.

    With module_id set only that module is asked; otherwise every registered
    module is asked in registration order.
    """
    module_id: Optional[str] = None
    type: str  # module-defined, e.g. "skillCheck"
    payload: Optional[dict[str, Any]] = None
