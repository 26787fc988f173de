"""Casefile engine components.

The engine is deterministic: every command is parsed, validated against
capabilities and accessibility, turned into an ordered effect list by a verb
handler, and applied by the EffectReducer. Language models are optional
collaborators plugged in at the edges (see `casefile.llm`).

Import directly from submodules to avoid circular imports:
    from casefile.engine.processor import CommandProcessor
    from casefile.engine.reducer import EffectReducer
    from casefile.engine.accessibility import AccessibilityResolver
    from casefile.engine.game_loader import GameLoader, new_game_state
"""

# Note: No eager imports to avoid circular import issues
