"""
Move and break handlers.

Both are one-way transitions on scenery. Moving something that hides
children (a rug over a trapdoor) or breaking something that holds items
(a crate) is what opens those children up; the accessibility layer reads the
new is_moved / is_broken state, so these handlers only flip the flag and
narrate.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from casefile.engine.handlers.base import BaseHandler, CommandResult
from casefile.engine.outcomes import message
from casefile.engine.state import get_children, get_entity_status
from casefile.models.effects import RevealFromParent, SetEntityState
from casefile.models.validation import RejectionCode

if TYPE_CHECKING:
    from casefile.engine.parser import ParsedCommand
    from casefile.models.state import PlayerState


class _TransitionHandler(BaseHandler):
    """Shared flow for one-way state flips."""

    field_name: str = ""
    default_text: str = ""
    nothing_text: str = ""

    def handle(self, command: "ParsedCommand", state: "PlayerState") -> CommandResult:
        verb = command.verb
        match = self.find(command.target, state)
        if match is None:
            return self.not_found(command.target, verb)

        entity_id = match.entity_id
        name = self.name_of(entity_id, state)

        if command.instrument:
            return self.with_instrument(command, entity_id, match.kind, state)

        denied = self.check_access(entity_id, verb, state)
        if denied is not None:
            return denied

        validation = self.ctx.validator.validate(verb, entity_id, state)
        if not validation.valid:
            if validation.rejection_code == RejectionCode.MISSING_CAPABILITY:
                return self.refuse(entity_id, verb, self.nothing_text.format(name=name), state, match.kind)
            return CommandResult([message(validation.rejection_reason)], False, entity_id, match.kind)

        change = SetEntityState(entity_id=entity_id, patch={self.field_name: True})
        ruled = self.run_rule(entity_id, verb, state, kind=match.kind, before=[change])
        if ruled is not None:
            return ruled

        effects: list = [change]
        hidden = [
            child_id
            for child_id in get_children(state, entity_id)
            if get_entity_status(self.game, state, child_id).is_visible is False
        ]
        effects.extend(RevealFromParent(entity_id=c, parent_id=entity_id) for c in hidden)
        text = self.default_text.format(name=name)
        if hidden:
            found = ", ".join(self.name_of(c, state) for c in hidden)
            text += f" You find: {found}."
        effects.append(message(text))
        return CommandResult(effects, True, entity_id, match.kind)

    def with_instrument(self, command, entity_id, kind, state) -> CommandResult:
        return CommandResult(
            [message(f"That doesn't seem to help with the {self.name_of(entity_id, state)}.")],
            False,
            entity_id,
            kind,
        )


class MoveHandler(_TransitionHandler):
    """Handles MOVE (push, pull, shift)."""

    verbs = ("move",)
    field_name = "is_moved"
    default_text = "You move the {name} aside."
    nothing_text = "You can't move the {name}."


class BreakHandler(_TransitionHandler):
    """Handles BREAK.

    "break crate with crowbar" is the same action as "use crowbar on crate"
    and is routed through the use rules.
    """

    verbs = ("break",)
    field_name = "is_broken"
    default_text = "You break the {name}."
    nothing_text = "The {name} can't be broken. Try a different approach."

    def __init__(self, ctx, use_handler=None):
        super().__init__(ctx)
        self.use_handler = use_handler

    def with_instrument(self, command, entity_id, kind, state) -> CommandResult:
        if self.use_handler is None:
            return super().with_instrument(command, entity_id, kind, state)
        return self.use_handler.use_on(command.instrument, command.target, state)
