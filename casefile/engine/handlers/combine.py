"""
Combine handler - "combine X with Y" for two carried items.

Both items must be combinable. The pairing is authored as an on_combine rule
on either item naming the other (item_id); the first item is checked first.
The rule's outcome does the work, typically removing both items and adding
or creating the result.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from casefile.engine.handlers.base import BaseHandler, CommandResult, narrate
from casefile.engine.outcomes import message

if TYPE_CHECKING:
    from casefile.engine.parser import ParsedCommand
    from casefile.models.state import PlayerState

logger = logging.getLogger(__name__)


class CombineHandler(BaseHandler):
    """Handles COMBINE."""

    verbs = ("combine",)

    def handle(self, command: "ParsedCommand", state: "PlayerState") -> CommandResult:
        if not command.target or not command.instrument:
            return narrate("You need to name two items to combine.")

        first = self._carried(command.target, state)
        if first is None:
            return narrate(f'You don\'t have "{command.target}" in your inventory.')
        second = self._carried(command.instrument, state)
        if second is None:
            return narrate(f'You don\'t have "{command.instrument}" in your inventory.')

        first_name = self.name_of(first, state)
        second_name = self.name_of(second, state)
        if first == second:
            return CommandResult(
                [message(f"You can't combine the {first_name} with itself.")], False, first, "item"
            )

        for item_id in (first, second):
            if not self.ctx.validator.validate("combine", item_id, state).valid:
                name = self.name_of(item_id, state)
                return self.refuse(
                    item_id, "combine", f"The {name} can't be combined with anything.", state, "item"
                )

        for owner, other in ((first, second), (second, first)):
            resolved = self.ctx.resolver.resolve(owner, "combine", state, item_id=other)
            if resolved is not None and resolved.rule.item_id == other:
                result = self.run_rule(owner, "combine", state, kind="item", resolved=resolved)
                return result._replace(target_id=first)

        logger.debug(f"No combine rule pairs {first!r} with {second!r}")
        return CommandResult(
            [message(f"You can't combine the {first_name} with the {second_name}.")], False, first, "item"
        )

    def _carried(self, search: str, state: "PlayerState") -> str | None:
        match = self.ctx.focus.matcher.best_match(search, state.inventory, state, location_bonus=False)
        return match.entity_id if match is not None else None
