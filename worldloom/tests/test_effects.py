"""
Tests for the effect resolver.

Tests:
- Each effect type
- Ordering and history
- Clamping and modifyVar combination rules
- Companion warnings
"""

import pytest
from pydantic import TypeAdapter, ValidationError

from ..engine_core.effect_resolver import apply_effects, clamp, combine_var
from ..engine_core.runtime import OptionalFeatures
from ..engine_core.persistence import create_new_game
from ..spec_schema.effect_dsl import Effect

effects_adapter = TypeAdapter(list[Effect])


def effects(*raw):
    return effects_adapter.validate_python(list(raw))


class TestBasicEffects:
    """Flags, stats, vars and inventory."""

    def test_set_flag(self, runtime, state):
        apply_effects(runtime, state, effects({"type": "setFlag", "key": "lit", "value": True}))
        assert state.flags["lit"] is True

    def test_modify_stat_with_clamps(self, runtime, state):
        state.character.stats["hp"] = 2
        apply_effects(runtime, state, effects({"type": "modifyStat", "key": "hp", "delta": -5, "min": 0}))
        assert state.character.stats["hp"] == 0
        apply_effects(runtime, state, effects({"type": "modifyStat", "key": "hp", "delta": 50, "max": 10}))
        assert state.character.stats["hp"] == 10

    def test_modify_missing_stat_starts_at_zero(self, runtime, state):
        apply_effects(runtime, state, effects({"type": "modifyStat", "key": "luck", "delta": 2}))
        assert state.character.stats["luck"] == 2

    def test_vars(self, runtime, state):
        apply_effects(runtime, state, effects(
            {"type": "setVar", "key": "gold", "value": 5},
            {"type": "modifyVar", "key": "gold", "delta": 3},
            {"type": "setVar", "key": "title", "value": "Sir"},
            {"type": "modifyVar", "key": "title", "delta": " Ash"},
            {"type": "modifyVar", "key": "fresh", "delta": 7},
        ))
        assert state.vars == {"gold": 8, "title": "Sir Ash", "fresh": 7}

    def test_add_and_remove_items(self, runtime, state):
        torch = {"id": "torch", "name": "Torch"}
        apply_effects(runtime, state, effects(
            {"type": "addItem", "item": torch},
            {"type": "addItem", "item": torch, "count": 2},
        ))
        assert state.character.item_count("torch") == 3
        assert len(state.character.inventory) == 1

        apply_effects(runtime, state, effects({"type": "removeItem", "itemId": "torch", "count": 2}))
        assert state.character.item_count("torch") == 1
        apply_effects(runtime, state, effects({"type": "removeItem", "itemId": "torch", "count": 5}))
        assert state.character.inventory == []

    def test_remove_missing_item_is_noop(self, runtime, state):
        apply_effects(runtime, state, effects({"type": "removeItem", "itemId": "ghost"}))
        assert state.character.inventory == []

    def test_unknown_effect_type_rejected(self):
        with pytest.raises(ValidationError):
            effects({"type": "explode", "key": "x"})


class TestOrderingAndTeleport:
    """Effects apply in order and report teleports."""

    def test_in_order_with_history(self, runtime, state):
        outcome = apply_effects(runtime, state, effects(
            {"type": "setFlag", "key": "a", "value": True},
            {"type": "setFlag", "key": "a", "value": False},
        ))
        assert outcome.state is state
        assert state.flags["a"] is False
        assert [h.type for h in state.history] == ["effect", "effect"]
        assert [h.seq for h in state.history] == [0, 1]
        assert state.history[0].data == {"effect": "setFlag"}

    def test_teleport_is_reported_not_followed(self, runtime, state):
        outcome = apply_effects(runtime, state, effects(
            {"type": "teleport", "targetScene": "s.hall"},
            {"type": "teleport", "targetScene": "s.vault", "targetLocationId": "loc.b"},
        ))
        assert outcome.teleport_target == "s.vault"
        assert state.current_scene_id == "s.start"
        assert state.current_location_id == "loc.b"

    def test_empty_list(self, runtime, state):
        outcome = apply_effects(runtime, state, None)
        assert outcome.teleport_target is None
        assert state.history == []


class TestSocialEffects:
    """Reputation, relationships and companions."""

    def test_reputation_created_on_first_use(self, runtime, state):
        assert state.reputation is None
        apply_effects(runtime, state, effects({"type": "setReputation", "factionId": "wardens", "value": 5}))
        assert state.reputation == {"wardens": 5}

    def test_relationships(self, runtime, state):
        apply_effects(runtime, state, effects(
            {"type": "setRelationship", "targetId": "npc.keeper", "value": 2, "stage": "wary"},
            {"type": "modifyRelationship", "targetId": "npc.keeper", "delta": 10, "max": 5},
            {"type": "modifyRelationship", "targetId": "npc.smith", "delta": -3},
        ))
        keeper = state.relationships["npc.keeper"]
        assert keeper.value == 5
        assert keeper.stage == "wary"
        assert state.relationships["npc.smith"].value == -3

    def test_add_companion_from_world(self, runtime, state):
        apply_effects(runtime, state, effects(
            {"type": "addCompanion", "companionId": "comp.ash"},
            {"type": "addCompanion", "companionId": "comp.ash"},
        ))
        assert len(state.companions) == 1
        ash = state.companions[0]
        assert ash.name == "Ash"
        assert ash.role == "scout"
        assert ash.relationship.value == 3

    def test_add_unknown_companion_warns(self, runtime, state):
        apply_effects(runtime, state, effects({"type": "addCompanion", "companionId": "comp.ghost"}))
        assert state.get_companion("comp.ghost").name == "comp.ghost"
        assert runtime.warnings[-1].path == "/runtime/effects/addCompanion"

    def test_companion_flag_and_relationship(self, runtime, state):
        apply_effects(runtime, state, effects(
            {"type": "addCompanion", "companionId": "comp.ash"},
            {"type": "setCompanionFlag", "companionId": "comp.ash", "key": "trusts", "value": True},
            {"type": "modifyCompanionRelationship", "companionId": "comp.ash", "delta": -10, "min": 0},
        ))
        ash = state.get_companion("comp.ash")
        assert ash.flags == {"trusts": True}
        assert ash.relationship.value == 0

    def test_companion_effects_need_party_member(self, runtime, state):
        apply_effects(runtime, state, effects(
            {"type": "setCompanionFlag", "companionId": "comp.ash", "key": "trusts", "value": True},
        ))
        assert state.companions is None
        assert runtime.warnings[-1].path == "/runtime/effects/setCompanionFlag"

    def test_remove_companion(self, make_runtime):
        runtime = make_runtime(optional_features=OptionalFeatures(companions=True))
        state = create_new_game(runtime)
        assert [c.id for c in state.companions] == ["comp.ash"]
        apply_effects(runtime, state, effects({"type": "removeCompanion", "companionId": "comp.ash"}))
        assert state.companions == []


class TestHelpers:
    """clamp() and combine_var()."""

    def test_clamp(self):
        assert clamp(5, 0, 3) == 3
        assert clamp(-1, 0, None) == 0
        assert clamp(7) == 7

    @pytest.mark.parametrize("current,delta,expected", [
        (1, 2, 3),
        (1.5, 1, 2.5),
        ("a", "b", "ab"),
        (None, 4, 4),
        ("a", 1, 1),
        (True, 1, 1),
    ])
    def test_combine_var(self, current, delta, expected):
        assert combine_var(current, delta) == expected
