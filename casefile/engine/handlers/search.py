"""
Search handler - look inside, under or behind something.

An authored on_search rule wins. Without one, searching an entity that
grants access reveals any hidden children it holds.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from casefile.engine.handlers.base import BaseHandler, CommandResult
from casefile.engine.outcomes import message
from casefile.engine.state import get_children, get_entity_status
from casefile.models.effects import RevealFromParent

if TYPE_CHECKING:
    from casefile.engine.parser import ParsedCommand
    from casefile.models.state import PlayerState


class SearchHandler(BaseHandler):
    """Handles SEARCH."""

    verbs = ("search",)

    def handle(self, command: "ParsedCommand", state: "PlayerState") -> CommandResult:
        match = self.find(command.target, state)
        if match is None:
            return self.not_found(command.target, "search")

        denied = self.check_access(match.entity_id, "search", state)
        if denied is not None:
            return denied

        entity_id = match.entity_id
        name = self.name_of(entity_id, state)

        ruled = self.run_rule(entity_id, "search", state, kind=match.kind)
        if ruled is not None:
            return ruled

        validation = self.ctx.validator.validate("search", entity_id, state)
        if not validation.valid:
            return self.refuse(
                entity_id, "search", f"There's nothing to search in the {name}.", state, match.kind
            )

        containment = self.ctx.access.containment
        if containment.grants_access(state, entity_id) is not None:
            return CommandResult(
                [message(f"You can't get into the {name} right now.")], False, entity_id, match.kind
            )

        hidden = [
            child_id
            for child_id in get_children(state, entity_id)
            if get_entity_status(self.game, state, child_id).is_visible is False
        ]
        if not hidden:
            return CommandResult(
                [message(f"You search the {name} but find nothing of interest.")],
                True,
                entity_id,
                match.kind,
            )

        effects = [RevealFromParent(entity_id=child_id, parent_id=entity_id) for child_id in hidden]
        found = ", ".join(self.name_of(child_id, state) for child_id in hidden)
        effects.append(message(f"Searching the {name}, you find: {found}."))
        return CommandResult(effects, True, entity_id, match.kind)
