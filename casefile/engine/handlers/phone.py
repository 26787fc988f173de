"""
Phone calls and device mode.

"call 555-1234" dials through the phone in device focus, or the first
phone the player carries. Call rules live under on_call on the phone and are
keyed by phone_number; "*" (or no number) is the catch-all.

While a device is in focus, DeviceHandler gets first look at every line of
input: exit words put the device away, call and help are answered here, and
read/open/examine fall through to the normal verb table.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from casefile.engine.handlers.base import BaseHandler, CommandResult, narrate
from casefile.engine.outcomes import build_effects_from_outcome, message
from casefile.engine.state import get_entity, get_item
from casefile.models.content import Rule
from casefile.models.effects import ClearDeviceFocus

if TYPE_CHECKING:
    from casefile.engine.parser import ParsedCommand
    from casefile.models.state import PlayerState

EXIT_WORDS = {"exit", "stop", "quit", "goodbye", "bye", "done"}

# Verbs that keep working normally while a device is out
DEVICE_PASSTHROUGH = {"read", "open", "examine", "look", "inventory"}


def normalize_phone_number(number: str | None) -> str:
    """Drop spaces, dashes, dots, parentheses and quotes; lowercase."""
    return re.sub(r"[\s\-\.\(\)\"']", "", number or "").lower()


class CallHandler(BaseHandler):
    """Handles CALL / DIAL."""

    verbs = ("call",)

    def handle(self, command: "ParsedCommand", state: "PlayerState") -> CommandResult:
        number = (command.target or "").strip()
        if not number:
            return narrate("Call what number? Try: CALL 555-1234")

        device_id = self.pick_device(command.instrument, state)
        if device_id is None:
            if command.instrument:
                return narrate(f'You don\'t have a "{command.instrument}" to make calls with.')
            return narrate("You need a phone to make calls.")

        name = self.name_of(device_id, state)
        rule_set = self.ctx.resolver.get_rule_set(device_id, "call", state)
        if rule_set is None:
            return CommandResult(
                [message(f"The {name} doesn't have calling functionality.")], False, device_id, "item"
            )
        rules = [rule_set] if isinstance(rule_set, Rule) else list(rule_set)

        dialled = normalize_phone_number(number)
        matching = [r for r in rules if r.phone_number not in (None, "*") and normalize_phone_number(r.phone_number) == dialled]
        if matching:
            for rule in matching:
                outcome, passed = self.ctx.resolver.select_outcome(rule, state)
                if outcome is not None:
                    return CommandResult(build_effects_from_outcome(outcome), passed, device_id, "item")
            return CommandResult([message(f"You dial {number}. The line is busy.")], False, device_id, "item")

        default = next((r for r in rules if r.phone_number in (None, "*")), None)
        if default is not None:
            outcome, passed = self.ctx.resolver.select_outcome(default, state)
            if outcome is not None:
                return CommandResult(build_effects_from_outcome(outcome), passed, device_id, "item")

        return CommandResult(
            [message(f"You dial {number}. No answer. The line goes dead.")], False, device_id, "item"
        )

    def pick_device(self, instrument: str | None, state: "PlayerState") -> str | None:
        if instrument:
            match = self.find(instrument, state)
            if match is None or not self.ctx.access.is_accessible(match.entity_id, state):
                return None
            return match.entity_id
        if state.active_device_focus:
            return state.active_device_focus
        for item_id in state.inventory:
            item = get_item(self.game, state, item_id)
            if item is not None and item.is_phone:
                return item_id
        return None


class DeviceHandler:
    """First responder while a device is in focus.

    Attributes:
        ctx: Shared handler collaborators
        call: CallHandler used for call/dial
    """

    def __init__(self, ctx, call: CallHandler):
        self.ctx = ctx
        self.game = ctx.game
        self.call = call

    def handle(self, command: "ParsedCommand", state: "PlayerState") -> CommandResult | None:
        """Answer a device-mode command, or None to use the normal verb table."""
        device_id = state.active_device_focus
        device = get_entity(self.game, state, device_id) if device_id else None
        if device is None:
            return CommandResult([ClearDeviceFocus()], False)

        if self.is_exit(command, device.name):
            return CommandResult(
                [message(f"You pocket your {device.name}."), ClearDeviceFocus()], True, device_id, "item"
            )

        if command.verb == "call":
            return self.call.handle(command, state)

        if command.verb == "help":
            text = getattr(device, "device_help", None) or (
                f"You are using the {device.name}.\n\nType PUT AWAY or CLOSE to stop using it."
            )
            return CommandResult([message(text)], True, device_id, "item")

        if command.verb in DEVICE_PASSTHROUGH:
            return None

        return CommandResult(
            [
                message(
                    f"You're currently using your {device.name}. Type HELP for available "
                    "commands, or PUT AWAY to stop using it."
                )
            ],
            False,
            device_id,
            "item",
        )

    @staticmethod
    def is_exit(command: "ParsedCommand", device_name: str) -> bool:
        words = command.raw.lower().split()
        if not words:
            return False
        first, rest = words[0], " ".join(words[1:])
        if first in EXIT_WORDS:
            return True
        device_words = set(device_name.lower().split()) | {"phone", "device"}
        if first == "put" and ("away" in rest or any(w in rest.split() for w in device_words)):
            return True
        if first == "close" and (not rest or any(w in rest.split() for w in device_words)):
            return True
        return False
