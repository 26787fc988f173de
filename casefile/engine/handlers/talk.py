"""
Talk handler and conversation mode.

"talk to <npc>" starts a conversation. While one is active, every line of
input is routed to ConversationHandler instead of the normal verb table:
end keywords close the conversation, topic keywords select scripted
responses, and anything else falls through to freeform dialogue (if the NPC
allows it and a dialogue generator is configured) or the NPC's default line.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from casefile.engine.errors import InterpreterError
from casefile.engine.handlers.base import BaseHandler, CommandResult, narrate
from casefile.engine.outcomes import media_type, message
from casefile.engine.state import get_current_location, get_runtime_state, has_flag
from casefile.models.effects import (
    CompleteTopic,
    DemoteNpc,
    EffectType,
    EndConversation,
    IncrementEntityCounter,
    SetFlag,
    ShowMessage,
    StartConversation,
)

if TYPE_CHECKING:
    from casefile.engine.handlers.base import HandlerContext
    from casefile.engine.parser import ParsedCommand
    from casefile.llm.dialogue import DialogueGenerator
    from casefile.models.content import NPC, Topic
    from casefile.models.state import PlayerState

logger = logging.getLogger(__name__)

END_KEYWORDS = ("goodbye", "bye", "leave", "stop", "end", "exit")

_END_PATTERN = re.compile(r"\b(" + "|".join(END_KEYWORDS) + r")\b", re.IGNORECASE)


def is_ending_conversation(text: str) -> bool:
    return bool(_END_PATTERN.search(text or ""))


def npc_says(npc: "NPC", text: str) -> ShowMessage:
    return ShowMessage(content=f'"{text}"', speaker="npc", sender_name=npc.name)


class TalkHandler(BaseHandler):
    """Handles TALK."""

    verbs = ("talk",)

    def handle(self, command: "ParsedCommand", state: "PlayerState") -> CommandResult:
        if not command.target:
            return narrate("Who do you want to talk to?")

        match = self.find(command.target, state)
        if match is None:
            return self.not_found(command.target, "talk to")

        entity_id = match.entity_id
        name = self.name_of(entity_id, state)
        if match.kind != "npc":
            return self.refuse(entity_id, "talk", f"The {name} has nothing to say.", state, match.kind)

        denied = self.check_access(entity_id, "talk", state)
        if denied is not None:
            return denied

        npc = self.game.npcs[entity_id]
        runtime = get_runtime_state(state, entity_id)
        if npc.max_interactions is not None and runtime.interaction_count >= npc.max_interactions:
            return CommandResult([npc_says(npc, npc.limit_reached_message)], False, entity_id, "npc")

        start = StartConversation(npc_id=entity_id)
        ruled = self.run_rule(entity_id, "talk", state, kind="npc", before=[start])
        if ruled is not None:
            return ruled

        effects: list[Any] = [start]
        if npc.welcome_message:
            effects.append(npc_says(npc, npc.welcome_message))
        else:
            effects.append(message(f"You start talking to {name}."))
        effects.append(
            message(f"You are talking to {name}. Say GOODBYE to end the conversation.", speaker="system")
        )
        return CommandResult(effects, True, entity_id, "npc")


class ConversationHandler:
    """Routes input while a conversation is active.

    Attributes:
        ctx: Shared handler collaborators
        dialogue: Optional freeform dialogue generator
    """

    def __init__(self, ctx: "HandlerContext", dialogue: "DialogueGenerator | None" = None):
        self.ctx = ctx
        self.game = ctx.game
        self.dialogue = dialogue

    async def handle(self, raw_input: str, state: "PlayerState") -> CommandResult:
        npc_id = state.active_conversation_with
        npc = self.game.npcs.get(npc_id) if npc_id else None
        if npc is None:
            logger.warning(f"Conversation with unknown NPC {npc_id!r}, ending it")
            return CommandResult([EndConversation()], False)

        if is_ending_conversation(raw_input):
            return CommandResult([EndConversation(), npc_says(npc, npc.goodbye_message)], True, npc.id, "npc")

        runtime = get_runtime_state(state, npc.id)
        if npc.max_interactions is not None and runtime.interaction_count >= npc.max_interactions:
            return CommandResult(
                [EndConversation(), npc_says(npc, npc.limit_reached_message)], False, npc.id, "npc"
            )

        effects: list[Any] = [IncrementEntityCounter(entity_id=npc.id, counter="interaction_count")]
        demoted = runtime.stage == "demoted"

        topic = None if demoted else self.select_topic(npc, raw_input, state)
        if topic is not None:
            effects.extend(self.topic_effects(npc, topic, state))
            return CommandResult(effects, True, npc.id, "npc")

        if npc.freeform and self.dialogue is not None:
            location = get_current_location(self.game, state)
            try:
                reply = await self.dialogue.reply(npc, raw_input, location)
            except InterpreterError as exc:
                logger.warning(f"Dialogue for {npc.id} failed after {exc.attempts} attempts")
                reply = npc.default_response
            effects.append(npc_says(npc, reply))
            return CommandResult(effects, True, npc.id, "npc")

        effects.append(npc_says(npc, npc.default_response))
        return CommandResult(effects, True, npc.id, "npc")

    # =========================================================================
    # Topics
    # =========================================================================

    def available_topics(self, npc: "NPC", state: "PlayerState") -> list["Topic"]:
        completed = get_runtime_state(state, npc.id).completed_topics
        available = []
        for topic in npc.topics:
            if topic.once and topic.topic_id in completed:
                continue
            if not all(has_flag(state, f) for f in topic.required_flags_all):
                continue
            if any(has_flag(state, f) for f in topic.forbidden_flags_any):
                continue
            available.append(topic)
        return available

    def select_topic(self, npc: "NPC", raw_input: str, state: "PlayerState") -> "Topic | None":
        text = raw_input.lower()
        for topic in self.available_topics(npc, state):
            if any(keyword.lower() in text for keyword in topic.keywords):
                return topic
        return None

    def topic_effects(self, npc: "NPC", topic: "Topic", state: "PlayerState") -> list[Any]:
        """Topic response in reducer order, followed by demotion if it is due."""
        response = topic.response
        effects: list[Any] = [CompleteTopic(npc_id=npc.id, topic_id=topic.topic_id)]
        effects.extend(e for e in response.effects if e.type != EffectType.SHOW_MESSAGE)
        if response.message:
            url = response.media.url if response.media else None
            effects.append(
                ShowMessage(
                    content=f'"{response.message}"',
                    speaker="npc",
                    sender_name=npc.name,
                    message_type=media_type(url),
                    image_url=url,
                )
            )
        effects.extend(e for e in response.effects if e.type == EffectType.SHOW_MESSAGE)

        if self.should_demote(npc, topic, response.effects, state):
            effects.append(DemoteNpc(npc_id=npc.id))
        return effects

    @staticmethod
    def should_demote(npc: "NPC", topic: "Topic", pending: list[Any], state: "PlayerState") -> bool:
        """Whether the NPC's demote rules are met once this topic has run."""
        rules = npc.demote_rules
        if rules is None or get_runtime_state(state, npc.id).stage == "demoted":
            return False
        if not rules.on_flags_all and not rules.on_topics_completed:
            return False

        flags = {flag for flag, value in state.flags.items() if value}
        for effect in pending:
            if isinstance(effect, SetFlag):
                if effect.value:
                    flags.add(effect.flag)
                else:
                    flags.discard(effect.flag)
        completed = set(get_runtime_state(state, npc.id).completed_topics) | {topic.topic_id}

        return all(f in flags for f in rules.on_flags_all) and all(
            t in completed for t in rules.on_topics_completed
        )
