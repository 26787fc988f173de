"""
Read handler.

Readable entities either author an on_read rule or page through their
state map: each read shows the next state-map entry, in authored order, and
bumps read_count. Once every page has been read the player is nudged on.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from casefile.engine.handlers.base import BaseHandler, CommandResult
from casefile.engine.outcomes import message
from casefile.engine.state import get_entity, get_entity_status
from casefile.models.effects import IncrementEntityCounter

if TYPE_CHECKING:
    from casefile.engine.parser import ParsedCommand
    from casefile.models.state import PlayerState

FINISHED_READING = "You've read all there is to read in the {name}. Time to move on."


class ReadHandler(BaseHandler):
    """Handles READ."""

    verbs = ("read",)

    def handle(self, command: "ParsedCommand", state: "PlayerState") -> CommandResult:
        match = self.find(command.target, state)
        if match is None:
            return self.not_found(command.target, "read")

        entity_id = match.entity_id
        name = self.name_of(entity_id, state)

        denied = self.check_access(entity_id, "read", state)
        if denied is not None:
            return denied

        validation = self.ctx.validator.validate("read", entity_id, state)
        if not validation.valid:
            return self.refuse(entity_id, "read", f"There's nothing to read on the {name}.", state, match.kind)

        counter = IncrementEntityCounter(entity_id=entity_id, counter="read_count")
        ruled = self.run_rule(entity_id, "read", state, kind=match.kind, before=[counter])
        if ruled is not None:
            return ruled

        entity = get_entity(self.game, state, entity_id)
        pages = [entry for entry in (entity.state_map or {}).values() if entry.description]
        if pages:
            read_count = get_entity_status(self.game, state, entity_id).read_count
            if read_count >= len(pages):
                return CommandResult(
                    [message(FINISHED_READING.format(name=name))], True, entity_id, match.kind
                )
            text = pages[read_count].description
            return CommandResult([counter, message(text)], True, entity_id, match.kind)

        text = entity.description or f"You read the {name}."
        return CommandResult([counter, message(text)], True, entity_id, match.kind)
