"""Inventory and help handlers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from casefile.engine.handlers.base import BaseHandler, CommandResult
from casefile.engine.outcomes import message

if TYPE_CHECKING:
    from casefile.engine.parser import ParsedCommand
    from casefile.models.state import PlayerState

HELP_TEXT = """Things you can try:
- LOOK, EXAMINE <thing>, SEARCH <thing>, READ <thing>
- TAKE <item>, DROP <item>, INVENTORY
- OPEN / CLOSE / UNLOCK / LOCK <thing>
- MOVE <thing>, BREAK <thing>, CLIMB <thing>
- USE <item>, USE <item> ON <thing>, COMBINE <item> WITH <item>
- GO <place or thing>, TALK TO <person>, CALL <number>"""


class InventoryHandler(BaseHandler):
    """Handles INVENTORY."""

    verbs = ("inventory",)

    def handle(self, command: "ParsedCommand", state: "PlayerState") -> CommandResult:
        names = [self.name_of(item_id, state) for item_id in state.inventory]
        if not names:
            return CommandResult([message("You aren't carrying anything.")], True)
        return CommandResult([message("You are carrying: " + ", ".join(names) + ".")], True)


class HelpHandler(BaseHandler):
    """Handles HELP, with the current chapter goal when there is one."""

    verbs = ("help",)

    def handle(self, command: "ParsedCommand", state: "PlayerState") -> CommandResult:
        lines = [HELP_TEXT]
        chapter = self.game.chapters.get(state.current_chapter_id or "")
        if chapter is not None and chapter.goal:
            lines.append(f"Your current goal: {chapter.goal}")
        if state.current_focus_id:
            lines.append(f"You are focused on the {self.name_of(state.current_focus_id, state)}.")
        return CommandResult([message("\n\n".join(lines), speaker="system")], True)
