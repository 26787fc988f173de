"""
Dialogue collaborator - freeform NPC replies.

Only used for NPCs marked freeform, and only after scripted topics have had
their chance to match. Failures surface as InterpreterError and the
conversation handler falls back to the NPC's default response.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from casefile.llm.client import RetryPolicy, get_completion
from casefile.llm.prompt_loader import get_loader

if TYPE_CHECKING:
    from casefile.models.content import NPC, Location

logger = logging.getLogger(__name__)


class DialogueGenerator(Protocol):
    async def reply(self, npc: "NPC", player_input: str, location: "Location | None") -> str:
        ...


class LLMDialogueGenerator:
    """Dialogue generator backed by the configured LiteLLM provider."""

    def __init__(self, policy: RetryPolicy | None = None, temperature: float = 0.8):
        self.policy = policy or RetryPolicy.from_env()
        self.temperature = temperature

    async def reply(self, npc: "NPC", player_input: str, location: "Location | None") -> str:
        system_prompt = get_loader().get_prompt("dialogue", "system_prompt.txt").format(
            npc_name=npc.name,
            persona=npc.persona or npc.description or "A witness.",
            location_name=location.name if location else "somewhere",
        )
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": player_input},
        ]

        async def attempt() -> str:
            content = await get_completion(messages, temperature=self.temperature, max_tokens=300)
            return content.strip().strip('"')

        text = await self.policy.run(attempt, label=f"Dialogue ({npc.id})")
        logger.debug(f"{npc.id} replied with {len(text)} chars")
        return text
