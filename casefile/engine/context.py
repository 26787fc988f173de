"""
Per-process engine context.

Tallies that would otherwise be module-level globals live here and are passed
explicitly through the processor, reducer and LLM collaborators.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class EngineContext:
    """Counters for operator visibility.

    Attributes:
        commands_processed: Commands that went through the processor
        effects_applied: Effects the reducer applied successfully
        unknown_effects: Effects skipped because their type is unknown
        reducer_faults: Effects discarded because they raised
        llm_calls: Calls made to the text-generation provider
        llm_failures: Calls that failed after every retry
    """

    commands_processed: int = 0
    effects_applied: int = 0
    unknown_effects: int = 0
    reducer_faults: int = 0
    llm_calls: int = 0
    llm_failures: int = 0

    def snapshot(self) -> dict[str, int]:
        return {
            "commands_processed": self.commands_processed,
            "effects_applied": self.effects_applied,
            "unknown_effects": self.unknown_effects,
            "reducer_faults": self.reducer_faults,
            "llm_calls": self.llm_calls,
            "llm_failures": self.llm_failures,
        }
