"""
Password and code entry.

Two ways in:
    - normal mode, "say justice" / "password justice": requires focus on an
      object that accepts input, so a phrase never matches an unrelated
      entity by name
    - interaction mode, entered by "unlock <object>" on an inputtable
      object: every line is treated as an attempt until the player steps
      away
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from casefile.engine.handlers.base import BaseHandler, CommandResult, narrate
from casefile.engine.matching import normalize_name
from casefile.engine.outcomes import build_effects_from_outcome, message
from casefile.engine.state import get_entity
from casefile.models.effects import EndInteraction, SetEntityState

if TYPE_CHECKING:
    from casefile.engine.parser import ParsedCommand
    from casefile.models.state import PlayerState

LEAVE_WORDS = {"exit", "cancel", "leave", "stop", "back", "quit"}

_PREFIXES = re.compile(r"^\s*(password|passphrase|code|say|enter|type|for|is|the)\s+", re.IGNORECASE)


def normalize_attempt(text: str, kind: str = "phrase") -> str:
    text = normalize_name(text)
    if kind == "code":
        return re.sub(r"[\s\-]", "", text)
    return text


class PasswordHandler(BaseHandler):
    """Handles INPUT and interaction mode."""

    verbs = ("input",)

    def handle(self, command: "ParsedCommand", state: "PlayerState") -> CommandResult:
        focus_id = state.current_focus_id
        focus = self.game.game_objects.get(focus_id) if focus_id else None
        if focus is None:
            return narrate(
                "You need to focus on something first. Try examining or opening the "
                "object you want to interact with.",
                speaker="system",
            )
        return self.attempt(focus_id, command.target or "", state)

    def handle_interaction(self, raw_input: str, state: "PlayerState") -> CommandResult:
        object_id = state.interacting_with_object
        name = self.name_of(object_id, state) if object_id else "object"
        words = raw_input.lower().split()
        if object_id is None or object_id not in self.game.game_objects:
            return CommandResult([EndInteraction()], False)
        if words and (words[0] in LEAVE_WORDS or " ".join(words[:2]) == "step away"):
            return CommandResult(
                [EndInteraction(), message(f"You step away from the {name}.")], True, object_id, "object"
            )
        return self.attempt(object_id, raw_input, state)

    def attempt(self, object_id: str, text: str, state: "PlayerState") -> CommandResult:
        """Try a phrase or code against an inputtable object."""
        entity = get_entity(self.game, state, object_id)
        name = self.name_of(object_id, state)
        leave = [EndInteraction()] if state.interacting_with_object == object_id else []

        config = getattr(entity, "input", None)
        if config is None:
            return CommandResult(
                leave + [message(f"The {name} doesn't accept password input.")], False, object_id, "object"
            )

        if not self.ctx.validator.validate("unlock", object_id, state).valid:
            return CommandResult(
                leave + [message(f"No need. The {name} is already unlocked.")], False, object_id, "object"
            )

        phrase = text
        lowered = phrase.lower()
        index = lowered.find(name.lower())
        if index != -1:
            phrase = phrase[index + len(name):]
        stripped = _PREFIXES.sub("", phrase)
        while stripped != phrase:
            phrase, stripped = stripped, _PREFIXES.sub("", stripped)
        attempt = normalize_attempt(phrase, config.type)
        if not attempt:
            return CommandResult(
                [message("It seems you tried a passphrase. Unfortunately, this is not it.")],
                False,
                object_id,
                "object",
            )

        rule = self.ctx.resolver.resolve_handler(object_id, "unlock", state)
        if attempt != normalize_attempt(config.validation, config.type):
            fail = rule.fail if rule is not None else None
            text = fail.message if fail is not None and fail.message else "That password doesn't work."
            return CommandResult([message(text)], False, object_id, "object")

        patch = {"is_locked": False}
        if entity.capabilities.openable:
            patch["is_open"] = True
        effects: list = [SetEntityState(entity_id=object_id, patch=patch)]
        success = rule.success if rule is not None else None
        if success is not None:
            effects.extend(build_effects_from_outcome(success))
        else:
            effects.append(message(f"The {name} unlocks!"))
        effects.extend(leave)
        return CommandResult(effects, True, object_id, "object")
