"""
Climb handler.

Only objects can be climbed, and only those that author an on_climb rule.
A bare "climb" climbs the focused object. A successful climb moves focus onto
the object.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from casefile.engine.handlers.base import BaseHandler, CommandResult
from casefile.engine.outcomes import message

if TYPE_CHECKING:
    from casefile.engine.parser import ParsedCommand
    from casefile.models.state import PlayerState


class ClimbHandler(BaseHandler):
    """Handles CLIMB."""

    verbs = ("climb",)

    def handle(self, command: "ParsedCommand", state: "PlayerState") -> CommandResult:
        focus_id = state.current_focus_id
        if not command.target and focus_id in self.game.game_objects:
            entity_id, kind = focus_id, "object"
        else:
            match = self.find(command.target, state)
            if match is None:
                return self.not_found(command.target, "climb")
            entity_id, kind = match.entity_id, match.kind

        if kind != "object":
            return CommandResult([message("You can't climb that.")], False, entity_id, kind)
        name = self.name_of(entity_id, state)

        denied = self.check_access(entity_id, "climb", state)
        if denied is not None:
            return denied

        ruled = self.run_rule(entity_id, "climb", state, kind=kind)
        if ruled is not None:
            return ruled
        return self.refuse(entity_id, "climb", f"You can't climb onto the {name}.", state, kind)
