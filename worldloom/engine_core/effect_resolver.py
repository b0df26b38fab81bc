"""
Effect Resolver - applies effect lists to a GameState.

Effects are applied strictly in order and each one appends an `effect`
history entry. A teleport does not move the player: it is reported back
as EffectOutcome.teleport_target for the transition machine to follow.
When several teleports appear in one list the last one wins.

Relationship and companion maps are created on first use.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Iterable, TYPE_CHECKING
import logging

from ..spec_schema.effect_dsl import (
    AddCompanionEffect,
    AddItemEffect,
    ModifyCompanionRelationshipEffect,
    ModifyRelationshipEffect,
    ModifyStatEffect,
    ModifyVarEffect,
    RemoveCompanionEffect,
    RemoveItemEffect,
    SetCompanionFlagEffect,
    SetFlagEffect,
    SetRelationshipEffect,
    SetReputationEffect,
    SetVarEffect,
    TeleportEffect,
)
from ..spec_schema.validation import ValidationIssue
from .runtime import build_companion_state
from .state import CompanionState, GameState, InventoryEntry, RelationshipState

if TYPE_CHECKING:
    from ..spec_schema.effect_dsl import Effect
    from .runtime import RuntimeContext

logger = logging.getLogger(__name__)


@dataclass
class EffectOutcome:
    state: GameState
    teleport_target: str | None = None


def clamp(value, minimum=None, maximum=None):
    """One-sided clamps: either bound may be None."""
    if minimum is not None:
        value = max(minimum, value)
    if maximum is not None:
        value = min(maximum, value)
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def combine_var(current: Any, delta: Any) -> Any:
    """
    modifyVar semantics by (current, delta) kind:
    number + number adds, string + string appends, anything else overwrites.
    """
    if _is_number(current) and _is_number(delta):
        return current + delta
    if isinstance(current, str) and isinstance(delta, str):
        return current + delta
    return delta


class EffectResolver:
    """Applies effects for one runtime (needed for companion definitions and warnings)."""

    def __init__(self, runtime: RuntimeContext):
        self.runtime = runtime
        self._handlers: dict[str, Callable[[GameState, Any], str | None]] = {
            "setFlag": self._set_flag,
            "modifyStat": self._modify_stat,
            "addItem": self._add_item,
            "removeItem": self._remove_item,
            "setVar": self._set_var,
            "modifyVar": self._modify_var,
            "teleport": self._teleport,
            "setReputation": self._set_reputation,
            "setRelationship": self._set_relationship,
            "modifyRelationship": self._modify_relationship,
            "addCompanion": self._add_companion,
            "removeCompanion": self._remove_companion,
            "setCompanionFlag": self._set_companion_flag,
            "modifyCompanionRelationship": self._modify_companion_relationship,
        }

    def apply(self, state: GameState, effects: Iterable[Effect] | None) -> EffectOutcome:
        """Apply effects in order. Mutates state in place and returns it."""
        teleport_target = None
        for effect in effects or []:
            handler = self._handlers[effect.type]
            target = handler(state, effect)
            if target is not None:
                teleport_target = target
            state.record("effect", data={"effect": effect.type})
            logger.debug("Applied %s", effect.type)
        return EffectOutcome(state=state, teleport_target=teleport_target)

    # ------------------------------------------------------------------
    # Flags, stats, vars
    # ------------------------------------------------------------------

    def _set_flag(self, state: GameState, effect: SetFlagEffect):
        state.flags[effect.key] = effect.value

    def _modify_stat(self, state: GameState, effect: ModifyStatEffect):
        current = state.character.stats.get(effect.key, 0)
        state.character.stats[effect.key] = clamp(current + effect.delta, effect.min, effect.max)

    def _set_var(self, state: GameState, effect: SetVarEffect):
        state.vars[effect.key] = effect.value

    def _modify_var(self, state: GameState, effect: ModifyVarEffect):
        state.vars[effect.key] = combine_var(state.vars.get(effect.key), effect.delta)

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------

    def _add_item(self, state: GameState, effect: AddItemEffect):
        count = 1 if effect.count is None else effect.count
        entry = state.character.get_entry(effect.item.id)
        if entry:
            entry.count += count
        else:
            state.character.inventory.append(InventoryEntry(item=effect.item, count=count))

    def _remove_item(self, state: GameState, effect: RemoveItemEffect):
        count = 1 if effect.count is None else effect.count
        entry = state.character.get_entry(effect.item_id)
        if entry is None:
            return
        entry.count -= count
        if entry.count <= 0:
            state.character.inventory = [
                e for e in state.character.inventory if e.item.id != effect.item_id
            ]

    # ------------------------------------------------------------------
    # Movement
    # ------------------------------------------------------------------

    def _teleport(self, state: GameState, effect: TeleportEffect) -> str:
        if effect.target_location_id:
            state.current_location_id = effect.target_location_id
        return effect.target_scene

    # ------------------------------------------------------------------
    # Reputation and relationships
    # ------------------------------------------------------------------

    def _set_reputation(self, state: GameState, effect: SetReputationEffect):
        if state.reputation is None:
            state.reputation = {}
        state.reputation[effect.faction_id] = effect.value

    def _set_relationship(self, state: GameState, effect: SetRelationshipEffect):
        if state.relationships is None:
            state.relationships = {}
        state.relationships[effect.target_id] = RelationshipState(
            value=effect.value,
            stage=effect.stage,
            flags=dict(effect.flags) if effect.flags else None,
        )

    def _modify_relationship(self, state: GameState, effect: ModifyRelationshipEffect):
        if state.relationships is None:
            state.relationships = {}
        relationship = state.relationships.setdefault(effect.target_id, RelationshipState(value=0))
        relationship.value = clamp(relationship.value + effect.delta, effect.min, effect.max)

    # ------------------------------------------------------------------
    # Companions
    # ------------------------------------------------------------------

    def _add_companion(self, state: GameState, effect: AddCompanionEffect):
        if state.companions is None:
            state.companions = []
        if state.get_companion(effect.companion_id):
            return
        definition = self.runtime.story.world.get_companion(effect.companion_id)
        if definition is None:
            self.runtime.record_warning(
                ValidationIssue.warning(
                    "/runtime/effects/addCompanion",
                    f"Companion {effect.companion_id} has no definition in the world",
                )
            )
            state.companions.append(CompanionState(id=effect.companion_id, name=effect.companion_id))
            return
        state.companions.append(build_companion_state(definition))

    def _remove_companion(self, state: GameState, effect: RemoveCompanionEffect):
        if state.companions:
            state.companions = [c for c in state.companions if c.id != effect.companion_id]

    def _set_companion_flag(self, state: GameState, effect: SetCompanionFlagEffect):
        companion = self._require_companion(state, effect.companion_id, effect.type)
        if companion is None:
            return
        if companion.flags is None:
            companion.flags = {}
        companion.flags[effect.key] = effect.value

    def _modify_companion_relationship(self, state: GameState, effect: ModifyCompanionRelationshipEffect):
        companion = self._require_companion(state, effect.companion_id, effect.type)
        if companion is None:
            return
        if companion.relationship is None:
            companion.relationship = RelationshipState(value=0)
        companion.relationship.value = clamp(
            companion.relationship.value + effect.delta, effect.min, effect.max
        )

    def _require_companion(self, state: GameState, companion_id: str, effect_type: str) -> CompanionState | None:
        companion = state.get_companion(companion_id)
        if companion is None:
            self.runtime.record_warning(
                ValidationIssue.warning(
                    f"/runtime/effects/{effect_type}", f"Companion {companion_id} is not in the party"
                )
            )
        return companion


def apply_effects(runtime: RuntimeContext, state: GameState, effects: Iterable[Effect] | None) -> EffectOutcome:
    """Convenience function to apply an effect list."""
    return EffectResolver(runtime).apply(state, effects)
