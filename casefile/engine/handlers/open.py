"""
Open, close, unlock and lock handlers.

Each verb runs the same gate: resolve the target, check access, check
capability and redundant state, then apply the authored rule if there is
one. When an authored rule passes, the verb's own state change is emitted
ahead of the rule's effects so content never has to repeat it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from casefile.engine.handlers.base import BaseHandler, CommandResult
from casefile.engine.outcomes import message
from casefile.engine.state import get_children, get_entity, get_entity_status
from casefile.models.effects import SetEntityState, StartInteraction
from casefile.models.validation import RejectionCode

if TYPE_CHECKING:
    from casefile.engine.parser import ParsedCommand
    from casefile.models.state import PlayerState


_PATCHES = {
    "open": {"is_open": True},
    "close": {"is_open": False},
    "unlock": {"is_locked": False},
    "lock": {"is_locked": True},
}

_DEFAULT_TEXT = {
    "open": "You open the {name}.",
    "close": "You close the {name}.",
    "unlock": "You unlock the {name}.",
    "lock": "You lock the {name}.",
}


class OpenHandler(BaseHandler):
    """Handles OPEN, CLOSE, UNLOCK and LOCK.

    Unlocking has three paths: an instrument ("unlock safe with key"), an
    authored on_unlock rule, or a code/password prompt for inputtable
    objects, which puts the player in interaction mode.
    """

    verbs = ("open", "close", "unlock", "lock")

    def handle(self, command: "ParsedCommand", state: "PlayerState") -> CommandResult:
        verb = command.verb
        match = self.find(command.target, state)
        if match is None:
            return self.not_found(command.target, verb)

        entity_id = match.entity_id
        name = self.name_of(entity_id, state)

        denied = self.check_access(entity_id, verb, state)
        if denied is not None:
            return denied

        validation = self.ctx.validator.validate(verb, entity_id, state)
        if not validation.valid:
            return self._rejected(verb, entity_id, match.kind, validation.rejection_code, validation.rejection_reason, state)

        change = SetEntityState(entity_id=entity_id, patch=dict(_PATCHES[verb]))

        if verb == "unlock" and command.instrument:
            return self._unlock_with(entity_id, match.kind, command.instrument, change, state)

        if verb == "unlock" and getattr(get_entity(self.game, state, entity_id), "input", None) is not None:
            return self._unlock_prompt(entity_id, match.kind, state)

        ruled = self.run_rule(entity_id, verb, state, kind=match.kind, before=[change])
        if ruled is not None:
            return ruled

        if verb == "unlock":
            return self._unlock_prompt(entity_id, match.kind, state)

        text = _DEFAULT_TEXT[verb].format(name=name)
        if verb == "open":
            inside = [
                self.name_of(child_id, state)
                for child_id in get_children(state, entity_id)
                if get_entity_status(self.game, state, child_id).is_visible is not False
            ]
            if inside:
                text += f" Inside you see: {', '.join(inside)}."
        return CommandResult([change, message(text)], True, entity_id, match.kind)

    def _rejected(self, verb, entity_id, kind, code, reason, state) -> CommandResult:
        name = self.name_of(entity_id, state)
        if code == RejectionCode.MISSING_CAPABILITY:
            return self.refuse(entity_id, verb, f"You can't {verb} the {name}.", state, kind)
        if code == RejectionCode.LOCKED:
            entity = get_entity(self.game, state, entity_id)
            text = (getattr(entity, "fallback_messages", {}) or {}).get("locked") or reason
            config = getattr(entity, "input", None)
            if config is not None and config.hint:
                text += f"\n\n{config.hint}"
            return CommandResult([message(text)], False, entity_id, kind)
        return CommandResult([message(reason)], False, entity_id, kind)

    def _unlock_with(self, entity_id, kind, instrument, change, state) -> CommandResult:
        name = self.name_of(entity_id, state)
        tool = self.ctx.focus.matcher.best_match(instrument, state.inventory, state, location_bonus=False)
        if tool is None:
            return CommandResult([message(f'You don\'t have a "{instrument}".')], False, entity_id, kind)

        for verb in ("unlock", "use"):
            resolved = self.ctx.resolver.resolve(entity_id, verb, state, item_id=tool.entity_id)
            if resolved is not None and resolved.rule.item_id == tool.entity_id:
                return self.run_rule(
                    entity_id, verb, state, kind=kind, before=[change], resolved=resolved
                )

        tool_name = self.name_of(tool.entity_id, state)
        return CommandResult(
            [message(f"The {tool_name} doesn't fit the {name}.")], False, entity_id, kind
        )

    def _unlock_prompt(self, entity_id, kind, state) -> CommandResult:
        entity = get_entity(self.game, state, entity_id)
        name = self.name_of(entity_id, state)
        config = getattr(entity, "input", None)
        if config is None:
            return CommandResult(
                [message(f"You need something to unlock the {name} with.")], False, entity_id, kind
            )
        what = "code" if config.type == "code" else "password"
        text = f"The {name} needs a {what}. Type it in, or say EXIT to step away."
        if config.hint:
            text += f"\n\n{config.hint}"
        return CommandResult(
            [StartInteraction(object_id=entity_id), message(text)], True, entity_id, kind
        )
