"""
Tests for bundle loading and validation.
"""

import json

import pytest
from pydantic import ValidationError

from ..errors import BundleLoadError
from ..spec_schema import load_lore_bundle, load_story_bundle, validate_bundles
from ..spec_schema.validation import Severity, ValidationIssue


def paths(issues):
    return [issue.path for issue in issues]


class TestLoading:
    """Tests for the bundle loaders."""

    def test_load_from_json_text(self, story_dict):
        story = load_story_bundle(json.dumps(story_dict))
        assert story.id == "story.test"
        assert story.start_scene == "s.start"
        assert len(story.scenes) == 4

    def test_invalid_json(self):
        with pytest.raises(BundleLoadError) as info:
            load_story_bundle("{not json")
        assert info.value.issues[0].path == "/"

    def test_schema_errors_carry_paths(self, story_dict):
        del story_dict["story"]["startScene"]
        with pytest.raises(BundleLoadError) as info:
            load_story_bundle(story_dict)
        assert "/story/startScene" in paths(info.value.issues)

    def test_bad_effect_type(self, story_dict):
        story_dict["story"]["scenes"][0]["actions"][0]["effects"] = [{"type": "explode"}]
        with pytest.raises(BundleLoadError):
            load_story_bundle(story_dict)

    def test_loaded_models_are_immutable(self, story):
        with pytest.raises(ValidationError):
            story.name = "Renamed"

    def test_lore_bundle(self, sample_lore):
        assert [race.id for race in sample_lore.races] == ["human", "elf"]
        assert load_lore_bundle(sample_lore) is sample_lore


class TestStoryValidation:
    """Tests for validate_bundles."""

    def test_fixture_story_is_valid(self, story):
        result = validate_bundles(story)
        assert result.ok
        assert result.errors == []

    def test_sample_bundles_are_clean(self, sample_story, sample_lore):
        result = validate_bundles(sample_story, [sample_lore])
        assert result.issues == []

    def test_missing_start_scene(self, story_dict):
        story_dict["story"]["startScene"] = "s.missing"
        result = validate_bundles(load_story_bundle(story_dict))
        assert not result.ok
        assert "/story/startScene" in paths(result.errors)

    def test_dangling_exit(self, story_dict):
        story_dict["story"]["scenes"][1]["exits"][0]["targetScene"] = "s.gone"
        result = validate_bundles(load_story_bundle(story_dict))
        assert "/story/scenes/1/exits/0/targetScene" in paths(result.errors)

    def test_duplicate_ids(self, story_dict):
        scenes = story_dict["story"]["scenes"]
        scenes.append(dict(scenes[1]))
        scenes[0]["actions"].append({"id": "open", "label": "Open again"})
        result = validate_bundles(load_story_bundle(story_dict))
        assert "/story/scenes/4/id" in paths(result.errors)
        assert "/story/scenes/0/actions/4/id" in paths(result.errors)

    def test_dangling_teleport(self, story_dict):
        story_dict["story"]["scenes"][0]["actions"][1]["effects"][0]["targetScene"] = "s.gone"
        result = validate_bundles(load_story_bundle(story_dict))
        assert "/story/scenes/0/actions/1/effects/0/targetScene" in paths(result.errors)

    def test_location_entry_scene(self, story_dict):
        story_dict["world"]["locations"][0]["entryScene"] = "s.gone"
        result = validate_bundles(load_story_bundle(story_dict))
        assert "/world/locations/0/entryScene" in paths(result.errors)

    def test_unknown_scene_location_is_a_warning(self, story_dict):
        story_dict["story"]["scenes"][1]["locationId"] = "loc.moon"
        result = validate_bundles(load_story_bundle(story_dict))
        assert result.ok
        assert "/story/scenes/1/locationId" in paths(result.warnings)

    def test_broken_expression_is_a_warning(self, story_dict):
        story_dict["story"]["scenes"][0]["exits"][0]["condition"] = {"type": "expression", "expr": "flag.a &&"}
        result = validate_bundles(load_story_bundle(story_dict))
        assert result.ok
        [warning] = result.warnings
        assert warning.path == "/story/scenes/0/exits/0/condition"
        assert warning.severity is Severity.WARNING

    def test_lore_refs_resolve_against_lore(self, story_dict, sample_lore):
        story_dict["story"]["scenes"][0]["narrative"]["loreRefs"] = [
            {"type": "faction", "id": "wardens"},
            {"type": "deity", "id": "sun-king"},
            {"type": "other", "id": "anything"},
        ]
        result = validate_bundles(load_story_bundle(story_dict), [sample_lore])
        assert paths(result.warnings) == ["/story/scenes/0/narrative/loreRefs/1"]

    def test_layout_references(self, story_dict):
        story_dict["world"]["locations"][0]["layout"] = {
            "layoutType": "nodeGraph",
            "nodes": [{"id": "n1", "sceneId": "s.start"}, {"id": "n2", "sceneId": "s.gone"}],
            "connections": [{"from": "n1", "to": "n3"}],
        }
        result = validate_bundles(load_story_bundle(story_dict))
        assert "/world/locations/0/layout/nodes/1/sceneId" in paths(result.errors)
        assert "/world/locations/0/layout/connections/0/to" in paths(result.errors)


class TestValidationIssue:
    """Tests for ValidationIssue."""

    def test_constructors(self):
        error = ValidationIssue.error("/a", "bad")
        warning = ValidationIssue.warning("/b", "meh")
        assert error.is_error
        assert not warning.is_error
        assert warning.to_dict() == {"path": "/b", "message": "meh", "severity": "warning"}
