"""
Integration tests - End-to-end runs of the bundled sample story.

Tests the complete flow:
1. Load bundles and build a runtime
2. Play through scenes with actions, exits and rule modules
3. Save, load and replay deterministically
4. Drive the CLI
"""

import json

import pytest

from ..cli import bundled_path, main
from ..engine_core import (
    LcgRng,
    OptionalFeatures,
    RuntimeConfig,
    SceneMachine,
    create_new_game,
    create_runtime,
    load_game,
    save_game,
)
from ..rules import DiceRuleModule, RulesCoreModule, SampleRuleModule


def labels(items):
    return [item.label for item in items]


def sample_runtime_with_seed(sample_story, sample_lore, seed):
    return create_runtime(RuntimeConfig(
        story=sample_story,
        lore_bundles=[sample_lore],
        modules=[RulesCoreModule(), SampleRuleModule(), DiceRuleModule()],
        rng=LcgRng(seed),
        optional_features=OptionalFeatures(relationships=True),
    )).unwrap()


def play_script(runtime):
    """A fixed sequence of choices; returns the state and every render model."""
    machine = SceneMachine(runtime)
    state = create_new_game(runtime, {"stats": {"str": 1, "hp": 3}})
    models = [machine.enter_scene(state, state.current_scene_id).render_model]
    models.append(machine.select_action(state, "act.talk").render_model)
    models.append(machine.select_action(state, "act.lantern").render_model)
    models.append(machine.select_exit(state, "Take the road north").render_model)
    models.append(machine.select_action(state, "act.climb").render_model)
    return state, models


class TestSampleStoryWalkthrough:
    """Walks the Lantern Road from the gate to the hollow."""

    def test_walkthrough(self, sample_runtime):
        machine = SceneMachine(sample_runtime)
        state = create_new_game(sample_runtime, {"raceId": "human"})

        gate = machine.enter_scene(state, state.current_scene_id).render_model
        assert gate.scene_id == "scene.gate"
        assert gate.location_id == "loc.village"
        assert gate.ambience.mood == "uneasy"
        assert labels(gate.available_exits) == ["Take the road north"]
        assert [a.id for a in gate.available_actions] == ["act.talk", "act.lantern"]

        talked = machine.select_action(state, "act.talk").render_model
        assert talked.recent_narrative == ["Sample rule narrative."]
        assert state.vars["rumours"] == 1
        assert labels(talked.available_exits) == ["Take the road north", "Step into the chapel"]
        assert "act.recruit" in [a.id for a in talked.available_actions]

        recruited = machine.select_action(state, "act.recruit").render_model
        assert state.get_companion("comp.mara").relationship.stage == "wary"
        assert "act.recruit" not in [a.id for a in recruited.available_actions]

        machine.select_action(state, "act.lantern")
        assert state.character.item_count("lantern") == 1

        chapel = machine.select_exit(state, "Step into the chapel").render_model
        assert chapel.narrative_text.startswith("Candles gutter")
        machine.select_action(state, "act.pray")
        assert state.reputation == {"wardens": 5}
        assert state.vars["knows.lamplighter"] is True
        machine.select_exit(state, "Back to the gate")

        road = machine.select_exit(state, "Take the road north").render_model
        assert road.location_id == "loc.hills"
        assert road.narrative_text == "The road climbs into the dark hills."
        assert labels(road.available_exits) == ["Return to Ashford", "Follow the marsh lights"]

        hollow = machine.select_exit(state, "Follow the marsh lights").render_model
        assert hollow.scene_id == "scene.hollow"
        assert hollow.narrative_text == (
            "Your lantern shows a ring of standing stones.\n\nSample rule narrative."
        )
        assert state.flags["sample.effect"] is True

        ridge = machine.select_exit(state, "Climb out toward the ridge").render_model
        assert ridge.scene_id == "scene.ridge"
        assert sample_runtime.warnings == []

    def test_localized_road(self, sample_story, sample_lore):
        runtime = create_runtime(RuntimeConfig(
            story=sample_story,
            lore_bundles=[sample_lore],
            modules=[RulesCoreModule(), SampleRuleModule(), DiceRuleModule()],
            locale="de",
        )).unwrap()
        state = create_new_game(runtime)
        model = SceneMachine(runtime).select_exit(state, "Take the road north").render_model
        assert model.narrative_text == "Die Strasse steigt in die dunklen Huegel."


class TestDeterminism:
    """Same seed, same choices, same game."""

    def test_same_seed_replays_identically(self, sample_story, sample_lore):
        state_a, models_a = play_script(sample_runtime_with_seed(sample_story, sample_lore, 42))
        state_b, models_b = play_script(sample_runtime_with_seed(sample_story, sample_lore, 42))

        assert save_game(state_a) == save_game(state_b)
        assert [m.to_dict() for m in models_a] == [m.to_dict() for m in models_b]

    def test_history_is_sequenced(self, sample_story, sample_lore):
        state, _ = play_script(sample_runtime_with_seed(sample_story, sample_lore, 42))
        assert [h.seq for h in state.history] == list(range(len(state.history)))
        assert {h.at for h in state.history} == {"1970-01-01T00:00:00.000Z"}

    def test_save_mid_game_and_continue(self, sample_story, sample_lore):
        runtime = sample_runtime_with_seed(sample_story, sample_lore, 42)
        state, _ = play_script(runtime)

        loaded = load_game(runtime, save_game(state))
        assert loaded.ok
        assert loaded.state == state
        assert loaded.warnings == []


class TestCli:
    """Tests for the command-line interface."""

    def test_validate_sample(self, capsys):
        main(["validate", bundled_path("story.json"), "--lore", bundled_path("lore.json")])
        assert "is valid (0 warning(s))" in capsys.readouterr().out

    def test_validate_broken_story(self, tmp_path, story_dict, capsys):
        story_dict["story"]["startScene"] = "s.gone"
        path = tmp_path / "story.json"
        path.write_text(json.dumps(story_dict), encoding="utf-8")

        with pytest.raises(SystemExit) as info:
            main(["validate", str(path)])
        assert info.value.code == 1
        assert "/story/startScene" in capsys.readouterr().out

    def test_missing_file(self, capsys):
        with pytest.raises(SystemExit):
            main(["validate", "does-not-exist.json"])
        assert "File not found" in capsys.readouterr().out

    def test_bad_seed_in_environment(self, monkeypatch, capsys):
        monkeypatch.setenv("WORLDLOOM_SEED", "lucky")
        with pytest.raises(SystemExit) as info:
            main(["play"])
        assert info.value.code == 2
        assert "invalid int value" in capsys.readouterr().err

    def test_play_session(self, monkeypatch, capsys):
        commands = iter(["help", "2", "state", "look", "99", "quit"])
        monkeypatch.setattr("builtins.input", lambda prompt="": next(commands))

        main(["play", "--seed", "3"])

        out = capsys.readouterr().out
        assert "=== scene.gate @ loc.village ===" in out
        assert "Sample rule narrative." in out
        assert "Flags: met.keeper" in out
        assert "Unknown command" in out
        assert out.rstrip().endswith("Goodbye.")
