"""
Worldloom CLI - Command-line interface for the engine.

Usage:
    worldloom play [--story FILE] [--lore FILE] [--no-lore]    Play a story in the terminal
    worldloom validate <story_file> [--lore FILE ...]          Validate bundles

Environment:
    WORLDLOOM_LOCALE   default for --locale
    WORLDLOOM_SEED     default for --seed
"""

import argparse
import logging
import os
import sys
from importlib import resources

from .engine_core import (
    OptionalFeatures,
    RuntimeConfig,
    SceneMachine,
    create_default_rng,
    create_new_game,
    create_runtime,
)
from .errors import BundleLoadError, LookupFatalError, WorldloomError
from .rules import DiceRuleModule, RulesCoreModule, SampleRuleModule
from .spec_schema import load_lore_bundle, load_story_bundle, validate_bundles

logger = logging.getLogger(__name__)


def bundled_path(name: str) -> str:
    """Path of an example bundle shipped with the package."""
    return str(resources.files("worldloom") / "bundles" / name)


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Worldloom - Narrative Scene Engine",
        prog="worldloom",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Play command
    play_parser = subparsers.add_parser("play", help="Play a story in the terminal")
    play_parser.add_argument("--story", default=bundled_path("story.json"), help="Story bundle file")
    play_parser.add_argument("--lore", action="append", help="Lore bundle file (repeatable)")
    play_parser.add_argument("--no-lore", action="store_true", help="Skip lore bundles")
    play_parser.add_argument("--locale", default=os.getenv("WORLDLOOM_LOCALE"), help="Narrative locale")
    play_parser.add_argument(
        "--seed", type=int, default=os.getenv("WORLDLOOM_SEED", "1"), help="RNG seed"
    )

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Validate a story bundle")
    validate_parser.add_argument("story_file", help="Path to story bundle")
    validate_parser.add_argument("--lore", action="append", default=[], help="Lore bundle file (repeatable)")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "play":
        cmd_play(args)
    elif args.command == "validate":
        cmd_validate(args)
    else:
        parser.print_help()
        sys.exit(1)


def _read(path: str) -> str:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except FileNotFoundError:
        print(f"Error: File not found: {path}")
        sys.exit(1)


def _load_bundles(story_path: str, lore_paths: list[str]):
    try:
        story = load_story_bundle(_read(story_path))
        lore = [load_lore_bundle(_read(path)) for path in lore_paths]
    except BundleLoadError as e:
        print(f"Error: {e}")
        sys.exit(1)
    return story, lore


def cmd_validate(args):
    """Validate a story bundle against optional lore bundles."""
    story, lore = _load_bundles(args.story_file, args.lore)
    result = validate_bundles(story, lore)

    for issue in result.issues:
        print(f"[{issue.severity.value}] {issue.path}: {issue.message}")

    if result.ok:
        print(f"✓ {story.name} is valid ({len(result.warnings)} warning(s))")
    else:
        print(f"✗ {story.name} has {len(result.errors)} error(s)")
        sys.exit(1)


def cmd_play(args):
    """Play a story with a line-mode prompt."""
    if args.no_lore:
        lore_paths = []
    else:
        lore_paths = args.lore or [bundled_path("lore.json")]
    story, lore = _load_bundles(args.story, lore_paths)

    result = create_runtime(RuntimeConfig(
        story=story,
        lore_bundles=lore,
        modules=[RulesCoreModule(), SampleRuleModule(), DiceRuleModule()],
        rng=create_default_rng(args.seed),
        locale=args.locale,
        condition_evaluation="engine+modules",
        on_warning=lambda issue: print(f"Warning: {issue.message}"),
        optional_features=OptionalFeatures(lore_reveal_states=True, relationships=True),
    ))
    if not result.ok:
        print("Runtime init failed:")
        for issue in result.errors:
            print(f"  {issue.path}: {issue.message}")
        sys.exit(1)

    runtime = result.runtime
    machine = SceneMachine(runtime)
    state = create_new_game(runtime)
    model = machine.enter_scene(state, state.current_scene_id).render_model
    _print_scene(model)

    while True:
        choices = [("exit", e) for e in model.available_exits] + [("action", a) for a in model.available_actions]
        _print_choices(choices)
        try:
            command = input("> ").strip().lower()
        except (EOFError, KeyboardInterrupt):
            print()
            break

        if command in ("quit", "exit", "q"):
            break
        if command == "help":
            print('Commands: [number] to choose, "look", "state", "help", "quit"')
            continue
        if command == "look":
            model = machine.get_render_model(state)
            _print_scene(model)
            continue
        if command == "state":
            _print_state(state)
            continue
        if not command.isdigit() or not 1 <= int(command) <= len(choices):
            print("Unknown command. Type a choice number or \"help\".")
            continue

        kind, choice = choices[int(command) - 1]
        try:
            if kind == "exit":
                model = machine.select_exit(state, choice).render_model
            else:
                model = machine.select_action(state, choice.id).render_model
        except LookupFatalError as e:
            print(f"Error: {e}")
            continue
        except WorldloomError as e:
            print(f"Error: {e}")
            sys.exit(1)
        _print_scene(model)

    print("Goodbye.")


def _print_scene(model):
    heading = f"{model.scene_id} @ {model.location_id}" if model.location_id else model.scene_id
    print(f"\n=== {heading} ===")
    print(model.narrative_text)
    if model.recent_narrative:
        print("\nOutcome:")
        for line in model.recent_narrative:
            print(f"- {line}")


def _print_choices(choices):
    if not choices:
        print("\nNo available actions or exits.")
        return
    print("\nChoices:")
    for i, (kind, choice) in enumerate(choices, 1):
        print(f"{i}) [{kind.capitalize()}] {choice.label}")


def _print_state(state):
    print(f"\nScene: {state.current_scene_id}")
    if state.current_location_id:
        print(f"Location: {state.current_location_id}")
    print(f"Flags: {', '.join(state.flags) or '(none)'}")
    print(f"Vars: {', '.join(state.vars) or '(none)'}")
    items = [f"{e.item.name} x{e.count}" for e in state.character.inventory]
    print(f"Inventory: {', '.join(items) or '(empty)'}")
    if state.companions:
        print(f"Companions: {', '.join(c.name for c in state.companions)}")


if __name__ == "__main__":
    main()
