"""
Interpreter collaborator - maps free text the parser did not understand onto
the engine's verbs.

The interpreter only proposes. The command processor re-dispatches the
proposed verb through the normal handler table, so capability checks,
accessibility and conditions still decide what actually happens.

Example:
    >>> interpreter = LLMInterpreter()
    >>> result = await interpreter.interpret("pry the crate with my crowbar", snapshot)
    >>> result.verb, result.target, result.instrument
    ('use', 'crate', 'crowbar')
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from pydantic import BaseModel

from casefile.llm.client import RetryPolicy, get_completion, parse_json_response
from casefile.llm.prompt_loader import get_loader

if TYPE_CHECKING:
    from casefile.models.perception import PerceptionSnapshot, VisibleEntity

logger = logging.getLogger(__name__)


class Interpretation(BaseModel):
    """What the interpreter thinks the player meant.

    Attributes:
        reply: In-world text to show when there is no verb to run
        verb: One of the processor's verbs, or None
        target: Name of the thing acted on
        instrument: Name of the tool, for "use X on Y"
    """

    reply: str = ""
    verb: str | None = None
    target: str | None = None
    instrument: str | None = None


class Interpreter(Protocol):
    """Anything that can turn free text plus a snapshot into an Interpretation.

    Implementations raise InterpreterError when they cannot answer.
    """

    async def interpret(self, player_input: str, snapshot: "PerceptionSnapshot") -> Interpretation:
        ...


def _format_entities(entities: list["VisibleEntity"], empty: str) -> str:
    lines = []
    for entity in entities:
        line = f'- "{entity.name}" ({entity.kind})'
        if entity.affordances:
            line += f" can: {', '.join(entity.affordances)}"
        lines.append(line)
    return "\n".join(lines) if lines else empty


class LLMInterpreter:
    """Interpreter backed by the configured LiteLLM provider.

    Attributes:
        policy: Retry policy for the provider call
        temperature: Sampling temperature; kept low for stable mappings
    """

    def __init__(self, policy: RetryPolicy | None = None, temperature: float = 0.2):
        self.policy = policy or RetryPolicy.from_env()
        self.temperature = temperature

    async def interpret(self, player_input: str, snapshot: "PerceptionSnapshot") -> Interpretation:
        """Ask the model for a verb/target mapping.

        Raises:
            InterpreterError: If every attempt failed or returned unusable JSON
        """
        messages = [
            {"role": "system", "content": self.build_system_prompt(snapshot)},
            {"role": "user", "content": f'Player input: "{player_input}"'},
        ]

        async def attempt() -> Interpretation:
            content = await get_completion(
                messages,
                temperature=self.temperature,
                max_tokens=256,
                response_format={"type": "json_object"},
            )
            return self.parse(parse_json_response(content))

        result = await self.policy.run(attempt, label="Interpreter")
        logger.info(f"Interpreted {player_input!r} as verb={result.verb!r} target={result.target!r}")
        return result

    @staticmethod
    def build_system_prompt(snapshot: "PerceptionSnapshot") -> str:
        template = get_loader().get_prompt("interpreter", "system_prompt.txt")
        return template.format(
            goal=snapshot.goal or "Investigate.",
            location_name=snapshot.location_name,
            zone_title=snapshot.zone_title or "the middle of the room",
            focus_name=snapshot.focus_name or "nothing in particular",
            visible_entities=_format_entities(snapshot.visible_entities, "Nothing of note"),
            inventory=_format_entities(snapshot.inventory, "Nothing"),
            available_verbs=", ".join(snapshot.available_verbs),
        )

    @staticmethod
    def parse(parsed: dict) -> Interpretation:
        """Normalise the model's JSON; empty strings become None."""

        def clean(key: str) -> str | None:
            value = parsed.get(key)
            if not isinstance(value, str) or not value.strip():
                return None
            return value.strip()

        verb = clean("verb")
        return Interpretation(
            reply=clean("reply") or "",
            verb=verb.lower() if verb else None,
            target=clean("target"),
            instrument=clean("instrument"),
        )
