"""
Take and drop handlers.

Taking goes through the full gate: the target must be an item, accessible,
takeable and not already carried. Dropping puts the item into the focused
container when there is one that is open to the player, otherwise it is set
aside and leaves the inventory.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from casefile.engine.handlers.base import BaseHandler, CommandResult, narrate
from casefile.engine.outcomes import has_effect, message
from casefile.engine.state import get_entity
from casefile.models.effects import AddItem, AddToContainer, EffectType, RemoveItem, SetEntityState
from casefile.models.validation import RejectionCode

if TYPE_CHECKING:
    from casefile.engine.parser import ParsedCommand
    from casefile.models.state import PlayerState


class TakeHandler(BaseHandler):
    """Handles TAKE.

    An authored on_take rule can veto the take (fail branch) or add to it
    (success effects run after ADD_ITEM).
    """

    verbs = ("take",)

    def handle(self, command: "ParsedCommand", state: "PlayerState") -> CommandResult:
        match = self.find(command.target, state)
        if match is None:
            if command.target:
                return narrate(f'You don\'t see a "{command.target}" here to take.')
            return narrate("What do you want to take?")

        entity_id = match.entity_id
        name = self.name_of(entity_id, state)

        if entity_id in state.inventory:
            return CommandResult([message(f"You already have the {name}.")], False, entity_id, match.kind)

        if match.kind != "item":
            return self.refuse(entity_id, "take", f"You can't take the {name}.", state, match.kind)

        denied = self.check_access(entity_id, "take", state)
        if denied is not None:
            return denied

        validation = self.ctx.validator.validate("take", entity_id, state)
        if not validation.valid:
            reason = validation.rejection_reason or f"You can't take the {name}."
            if validation.rejection_code == RejectionCode.MISSING_CAPABILITY:
                reason = f"You can't take the {name}."
            return self.refuse(entity_id, "take", reason, state, match.kind)

        ruled = self.run_rule(entity_id, "take", state, kind="item", before=[AddItem(item_id=entity_id)])
        if ruled is not None:
            return ruled
        return CommandResult(
            [AddItem(item_id=entity_id), message(f"You take the {name}.")], True, entity_id, "item"
        )


class DropHandler(BaseHandler):
    """Handles DROP."""

    verbs = ("drop",)

    def handle(self, command: "ParsedCommand", state: "PlayerState") -> CommandResult:
        if not command.target:
            return narrate("What do you want to drop?")

        match = self.ctx.focus.matcher.best_match(command.target, state.inventory, state, location_bonus=False)
        if match is None:
            return narrate(f'You don\'t have "{command.target}" in your inventory.')

        item_id = match.entity_id
        name = self.name_of(item_id, state)
        item = get_entity(self.game, state, item_id)
        if getattr(item, "is_personal", False):
            return CommandResult(
                [message(f"You'd rather keep your {name} with you.")], False, item_id, "item"
            )

        place = self._placement(item_id, state)
        resolved = self.ctx.resolver.resolve(item_id, "drop", state)
        if resolved is not None:
            ruled = self.run_rule(item_id, "drop", state, kind="item", resolved=resolved)
            if ruled.success and not has_effect(ruled.effects, EffectType.REMOVE_ITEM):
                return CommandResult(place + ruled.effects, True, item_id, "item")
            return ruled

        if isinstance(place[0], AddToContainer):
            container = self.name_of(place[0].parent_id, state)
            text = f"You put the {name} in the {container}."
        else:
            text = f"You drop the {name}."
        return CommandResult(place + [message(text)], True, item_id, "item")

    def _placement(self, item_id: str, state: "PlayerState") -> list:
        focus_id = state.current_focus_id
        if focus_id and focus_id != item_id:
            focus = get_entity(self.game, state, focus_id)
            caps = getattr(focus, "capabilities", None)
            containment = self.ctx.access.containment
            if (
                caps is not None
                and caps.container
                and containment.is_accessible(state, focus_id)
                and containment.grants_access(state, focus_id) is None
            ):
                return [
                    AddToContainer(entity_id=item_id, parent_id=focus_id),
                    SetEntityState(entity_id=item_id, patch={"taken": False}),
                ]
        return [RemoveItem(item_id=item_id), SetEntityState(entity_id=item_id, patch={"taken": False})]
