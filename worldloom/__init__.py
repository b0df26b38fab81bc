"""
Worldloom - Narrative Scene Engine

A deterministic, data-driven engine for branching text adventures.
The engine loads story and lore bundles and provides:
- Condition and expression evaluation
- Effect application
- Pluggable rule modules (dice, skill checks)
- Scene transitions with teleports and weighted narrative
- Save/load and multiplayer session voting
"""

__version__ = "0.1.0"
