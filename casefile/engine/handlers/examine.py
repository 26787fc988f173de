"""
Examine and look handlers.

"look" with no target describes the surroundings; "look <thing>" and
"examine <thing>" describe one entity using its state-aware description.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from casefile.engine.handlers.base import BaseHandler, CommandResult, narrate
from casefile.engine.outcomes import message
from casefile.engine.state import get_current_location, get_entity, get_parent
from casefile.models.effects import IncrementEntityCounter

if TYPE_CHECKING:
    from casefile.engine.parser import ParsedCommand
    from casefile.models.state import PlayerState


class ExamineHandler(BaseHandler):
    """Handles EXAMINE and LOOK.

    Examining is always free: it never changes anything except the examine
    counter, which state-map content can key on.
    """

    verbs = ("examine", "look")

    def handle(self, command: "ParsedCommand", state: "PlayerState") -> CommandResult:
        if command.verb == "look" and not command.target:
            return self.describe_surroundings(state)
        if not command.target:
            return narrate("What do you want to examine?")

        match = self.find(command.target, state)
        if match is None:
            return self.not_found(command.target, "examine")

        denied = self.check_access(match.entity_id, "examine", state)
        if denied is not None:
            return denied

        counter = IncrementEntityCounter(entity_id=match.entity_id, counter="examined_count")
        ruled = self.run_rule(match.entity_id, "examine", state, kind=match.kind, before=[counter])
        if ruled is not None:
            return ruled

        text = self.describe(match.entity_id, match.kind, state)
        return CommandResult([counter, message(text)], True, match.entity_id, match.kind)

    def describe(self, entity_id: str, kind: str, state: "PlayerState") -> str:
        """Effective description plus whatever can be seen inside."""
        description = self.ctx.resolver.get_effective_description(entity_id, state)
        name = self.name_of(entity_id, state)
        if not description:
            if kind == "portal":
                portal = get_entity(self.game, state, entity_id)
                target = self.game.get_location(portal.to_location_id)
                description = f"It leads to {target.name}." if target else f"It's the {name}."
            else:
                description = f"You see nothing special about the {name}."

        inside = [
            self.name_of(child_id, state)
            for child_id in self.ctx.access.containment.get_accessible_children(state, entity_id)
        ]
        if inside:
            description += f"\n\nInside the {name} you see: {', '.join(inside)}."
        return description

    def describe_surroundings(self, state: "PlayerState") -> CommandResult:
        location = get_current_location(self.game, state)
        if location is None:
            return narrate("You are nowhere in particular.")

        lines = [location.scene_description or location.name]
        zone_id = self.ctx.access.zones.get_current_zone(state, location)
        zone = location.get_zone(zone_id)
        if zone is not None:
            lines.append(f"You are at the {zone.title}.")

        names = [
            self.name_of(entity_id, state)
            for entity_id in self.ctx.access.get_accessible_entities(state)
            if entity_id not in state.inventory
            and get_parent(state, entity_id) is None
            and not getattr(get_entity(self.game, state, entity_id), "is_personal", False)
        ]
        if names:
            lines.append(f"You can see: {', '.join(names)}.")
        return CommandResult([message("\n\n".join(lines))], True)
