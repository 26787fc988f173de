"""
Use handler - single ("use phone") and dual ("use crowbar on crate").

Dual use looks for a rule on the target that names the instrument
(item_id), then for a rule on the instrument that names the target. A
matching rule whose conditions fail still answers with its fail branch, so
"use crowbar on crate" twice says "already broken" instead of "nothing
happens".
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from casefile.engine.handlers.base import BaseHandler, CommandResult, narrate
from casefile.engine.outcomes import message
from casefile.engine.state import get_descendants, get_entity
from casefile.models.effects import IncrementEntityCounter, SetDeviceFocus

if TYPE_CHECKING:
    from casefile.engine.parser import ParsedCommand
    from casefile.models.state import PlayerState

logger = logging.getLogger(__name__)


class UseHandler(BaseHandler):
    """Handles USE."""

    verbs = ("use",)

    def handle(self, command: "ParsedCommand", state: "PlayerState") -> CommandResult:
        if command.instrument:
            return self.use_on(command.instrument, command.target, state)
        return self.use(command.target, state)

    def use(self, search: str | None, state: "PlayerState") -> CommandResult:
        match = self.find(search, state)
        if match is None:
            return self.not_found(search, "use")

        entity_id = match.entity_id
        name = self.name_of(entity_id, state)

        denied = self.check_access(entity_id, "use", state)
        if denied is not None:
            return denied

        entity = get_entity(self.game, state, entity_id)
        if getattr(entity, "is_device", False) or getattr(entity, "is_phone", False):
            text = f"You take out your {name}."
            if entity.device_help:
                text += f"\n\n{entity.device_help}"
            return CommandResult(
                [SetDeviceFocus(device_id=entity_id), message(text)], True, entity_id, match.kind
            )

        counter = IncrementEntityCounter(entity_id=entity_id, counter="used_count")
        ruled = self.run_rule(entity_id, "use", state, kind=match.kind, before=[counter])
        if ruled is not None:
            return ruled

        validation = self.ctx.validator.validate("use", entity_id, state)
        if not validation.valid:
            return self.refuse(
                entity_id,
                "use",
                f"You need to specify what to use the {name} on, or it can't be used by itself.",
                state,
                match.kind,
            )
        return CommandResult(
            [counter, message(f"You use the {name}, but nothing happens.")], True, entity_id, match.kind
        )

    def use_on(self, instrument: str, search: str | None, state: "PlayerState") -> CommandResult:
        """Use a carried item on another entity."""
        carried: list[str] = []
        for item_id in state.inventory:
            carried.append(item_id)
            carried.extend(get_descendants(state, item_id))
        tool = self.ctx.focus.matcher.best_match(instrument, carried, state, location_bonus=False)
        if tool is None:
            return narrate(f'You don\'t have a "{instrument}".')

        match = self.find(search, state)
        if match is None:
            return self.not_found(search, "use that on")

        target_id = match.entity_id
        denied = self.check_access(target_id, "use", state)
        if denied is not None:
            return denied

        counter = IncrementEntityCounter(entity_id=tool.entity_id, counter="used_count")

        resolved = self.ctx.resolver.resolve(target_id, "use", state, item_id=tool.entity_id)
        if resolved is not None and resolved.rule.item_id == tool.entity_id:
            return self.run_rule(
                target_id, "use", state, kind=match.kind, before=[counter], resolved=resolved
            )

        resolved = self.ctx.resolver.resolve(tool.entity_id, "use", state, item_id=target_id)
        if resolved is not None and resolved.rule.item_id == target_id:
            result = self.run_rule(
                tool.entity_id, "use", state, kind="item", before=[counter], resolved=resolved
            )
            return result._replace(target_id=target_id, target_kind=match.kind)

        logger.debug(f"No use rule pairs {tool.entity_id!r} with {target_id!r}")
        return CommandResult([message("That doesn't seem to work.")], False, target_id, match.kind)
