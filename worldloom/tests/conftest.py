"""
Pytest fixtures for Worldloom tests.
"""

import copy

import pytest

from ..cli import bundled_path
from ..engine_core.rule_modules import RuleModule, RuleResult
from ..engine_core.runtime import OptionalFeatures, RuntimeConfig, create_runtime
from ..engine_core.persistence import create_new_game
from ..engine_core.rng import LcgRng
from ..rules import DiceRuleModule, RulesCoreModule, SampleRuleModule
from ..spec_schema import load_lore_bundle, load_story_bundle


class FixedRng:
    """RNG stub returning scripted values, then repeating the last one."""

    def __init__(self, values, rolls=None):
        self.values = list(values)
        self.rolls = list(rolls or [])
        self.calls = 0

    def next(self) -> float:
        self.calls += 1
        if len(self.values) > 1:
            return self.values.pop(0)
        return self.values[0]

    def randint(self, low: int, high: int) -> int:
        return low + int(self.next() * (high - low + 1))

    def roll(self, notation: str) -> int:
        if self.rolls:
            return self.rolls.pop(0)
        return 0


class RecordingModule(RuleModule):
    """Answers conditions of type `oracle` and echoes hooks of type `echo`."""

    id = "rules.test"
    system = "Custom"

    def __init__(self, answer=True):
        self.answer = answer
        self.hooks = []
        self.configs = []

    def init(self, config):
        self.configs.append(config)
        if config.get("reject"):
            return False

    def evaluate_condition(self, condition, state, context=None):
        if condition.type == "oracle":
            return self.answer
        return None

    def resolve(self, context):
        self.hooks.append(context.hook.type)
        if context.hook.type == "echo":
            payload = context.hook.payload or {}
            return RuleResult(narrative=payload.get("text"), effects=payload.get("effects") or [])
        return RuleResult()


def _scene(scene_id, text="...", **extra):
    scene = {"id": scene_id, "narrative": {"text": text}}
    scene.update(extra)
    return scene


@pytest.fixture
def story_dict() -> dict:
    """A small story exercising exits, actions, teleports and hooks."""
    return {
        "id": "story.test",
        "version": "1.0.0",
        "schemaVersion": "1.0",
        "name": "Test Story",
        "ruleModules": [{"id": "rules.test", "system": "Custom"}],
        "world": {
            "id": "world.test",
            "name": "Test World",
            "locations": [
                {"id": "loc.a", "name": "A", "type": "town", "entryScene": "s.start"},
                {"id": "loc.b", "name": "B", "type": "dungeon", "entryScene": "s.vault"},
            ],
            "companions": [
                {
                    "id": "comp.ash",
                    "name": "Ash",
                    "role": "scout",
                    "defaultRelationship": {"value": 3, "stage": "neutral"},
                }
            ],
        },
        "story": {
            "startScene": "s.start",
            "scenes": [
                _scene(
                    "s.start",
                    "You stand at the start.",
                    locationId="loc.a",
                    exits=[
                        {"label": "North", "targetScene": "s.hall"},
                        {
                            "label": "Locked door",
                            "targetScene": "s.vault",
                            "condition": {"type": "flag", "key": "door.open"},
                        },
                    ],
                    actions=[
                        {
                            "id": "open",
                            "label": "Open the door",
                            "effects": [{"type": "setFlag", "key": "door.open", "value": True}],
                        },
                        {
                            "id": "jump",
                            "label": "Jump",
                            "effects": [{"type": "teleport", "targetScene": "s.relay"}],
                        },
                        {
                            "id": "shout",
                            "label": "Shout",
                            "ruleHooks": [
                                {"moduleId": "rules.test", "type": "echo", "payload": {"text": "Echo!"}}
                            ],
                        },
                        {
                            "id": "gated",
                            "label": "Gated",
                            "condition": {"type": "stat", "key": "str", "operator": "gte", "value": 5},
                        },
                    ],
                ),
                _scene("s.hall", "A long hall.", locationId="loc.a",
                       exits=[{"label": "Back", "targetScene": "s.start"}]),
                _scene(
                    "s.relay",
                    "You should never see this.",
                    entryRules=[
                        {
                            "moduleId": "rules.test",
                            "type": "echo",
                            "payload": {"effects": [{"type": "teleport", "targetScene": "s.vault"}]},
                        }
                    ],
                ),
                _scene("s.vault", "A vault full of dust.", locationId="loc.b"),
            ],
        },
    }


@pytest.fixture
def story(story_dict):
    return load_story_bundle(story_dict)


@pytest.fixture
def test_module() -> RecordingModule:
    return RecordingModule()


@pytest.fixture
def make_runtime(story_dict, test_module):
    """Factory building a runtime over (a copy of) story_dict."""

    def factory(story=None, modules=None, **kwargs):
        bundle = load_story_bundle(copy.deepcopy(story or story_dict))
        config = RuntimeConfig(
            story=bundle,
            modules=[test_module] if modules is None else modules,
            rng=kwargs.pop("rng", LcgRng(42)),
            **kwargs,
        )
        return create_runtime(config).unwrap()

    return factory


@pytest.fixture
def runtime(make_runtime):
    return make_runtime()


@pytest.fixture
def state(runtime):
    return create_new_game(runtime)


@pytest.fixture
def sample_story():
    with open(bundled_path("story.json"), encoding="utf-8") as f:
        return load_story_bundle(f.read())


@pytest.fixture
def sample_lore():
    with open(bundled_path("lore.json"), encoding="utf-8") as f:
        return load_lore_bundle(f.read())


@pytest.fixture
def sample_runtime(sample_story, sample_lore):
    """The bundled sample story with every module and feature it uses."""
    result = create_runtime(RuntimeConfig(
        story=sample_story,
        lore_bundles=[sample_lore],
        modules=[RulesCoreModule(), SampleRuleModule(), DiceRuleModule()],
        rng=LcgRng(42),
        condition_evaluation="engine+modules",
        optional_features=OptionalFeatures(lore_reveal_states=True, relationships=True),
    ))
    return result.unwrap()
