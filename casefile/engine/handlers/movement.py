"""
Movement handler - portals, locations, zones and walking up to things.

Resolution order for "go <target>":
    1. an exit portal of the current location
    2. a location one of those portals leads to
    3. a zone of the current location
    4. an entity here (object or NPC); objects in another zone move the
       player into that zone first
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from casefile.engine.handlers.base import BaseHandler, CommandResult, narrate
from casefile.engine.matching import normalize_name, score_name_match
from casefile.engine.outcomes import message
from casefile.engine.state import get_current_location, get_entity_status, get_parent, get_root
from casefile.models.effects import EnterPortal, SetZone

if TYPE_CHECKING:
    from casefile.engine.parser import ParsedCommand
    from casefile.models.content import Location, Portal, Zone
    from casefile.models.state import PlayerState


class MovementHandler(BaseHandler):
    """Handles GO."""

    verbs = ("go",)

    def handle(self, command: "ParsedCommand", state: "PlayerState") -> CommandResult:
        if not command.target:
            return narrate("Where do you want to go?")

        location = get_current_location(self.game, state)
        if location is None:
            return narrate("You can't go anywhere from here.")

        portal = self._find_portal(command.target, location, state)
        if portal is not None:
            return self.enter_portal(portal, state)

        zone = self._find_zone(command.target, location)
        if zone is not None:
            return self.enter_zone(zone, location, state)

        return self.approach(command.target, location, state)

    # =========================================================================
    # Portals
    # =========================================================================

    def _find_portal(self, search: str, location: "Location", state: "PlayerState") -> "Portal | None":
        best, best_score = None, 0.0
        for portal_id in location.exit_portals:
            portal = self.game.portals.get(portal_id)
            if portal is None:
                continue
            score = score_name_match(portal, search).score
            destination = self.game.get_location(portal.to_location_id)
            if destination is not None and normalize_name(destination.name) == normalize_name(search):
                score = max(score, 95)
            if score > best_score:
                best, best_score = portal, score
        return best

    def enter_portal(self, portal: "Portal", state: "PlayerState") -> CommandResult:
        if get_entity_status(self.game, state, portal.portal_id).is_locked:
            return CommandResult([message(portal.locked_message)], False, portal.portal_id, "portal")

        destination = self.game.get_location(portal.to_location_id)
        if destination is None:
            return CommandResult([message("That way leads nowhere.")], False, portal.portal_id, "portal")

        effects: list = [EnterPortal(portal_id=portal.portal_id)]
        effects.append(message(f"You go through the {portal.name}."))
        text = destination.intro_message or destination.scene_description
        if text:
            effects.append(message(text))
        return CommandResult(effects, True, portal.portal_id, "portal")

    # =========================================================================
    # Zones
    # =========================================================================

    @staticmethod
    def _find_zone(search: str, location: "Location") -> "Zone | None":
        search = normalize_name(search)
        for zone in location.zones:
            title = normalize_name(zone.title)
            if search in (title, normalize_name(zone.id)) or title.removeprefix("the ") == search:
                return zone
        return None

    def enter_zone(self, zone: "Zone", location: "Location", state: "PlayerState") -> CommandResult:
        zones = self.ctx.access.zones
        current = zones.get_current_zone(state, location)
        if current == zone.id:
            return narrate(f"You're already at the {zone.title}.", success=True)

        verdict = zones.can_navigate_to_zone(zone.id, current, location)
        if not verdict.allowed:
            return narrate(f"You can't get to the {zone.title} from here. Try the {verdict.target_name} first.")
        return CommandResult([SetZone(zone_id=zone.id), message(f"You move to the {zone.title}.")], True)

    # =========================================================================
    # Entities
    # =========================================================================

    def approach(self, search: str, location: "Location", state: "PlayerState") -> CommandResult:
        match = self.find(search, state)
        if match is None:
            return narrate("You can't go there.")

        entity_id = match.entity_id
        name = self.name_of(entity_id, state)
        containment = self.ctx.access.containment
        if not containment.check(state, entity_id).allowed:
            return self.check_access(entity_id, "reach", state)

        if match.kind == "npc":
            return CommandResult([message(f"You walk up to {name}.")], True, entity_id, "npc")
        if match.kind == "portal":
            return self.enter_portal(self.game.portals[entity_id], state)
        if entity_id in state.inventory:
            return CommandResult([message(f"You already have the {name}.")], False, entity_id, match.kind)

        zones = self.ctx.access.zones
        effects: list = []
        if location.zones:
            current = zones.get_current_zone(state, location)
            target_zone = zones.get_entity_zone(state, get_root(state, entity_id), location)
            if target_zone is not None and target_zone != current:
                verdict = zones.can_navigate_to_zone(target_zone, current, location)
                if not verdict.allowed:
                    return CommandResult(
                        [message(f"You can't reach the {name} from here.")], False, entity_id, match.kind
                    )
                effects.append(SetZone(zone_id=target_zone))

        if state.current_focus_id == entity_id and not effects:
            return CommandResult([message(f"You're already at the {name}.")], True, entity_id, match.kind)
        if get_parent(state, entity_id) is not None:
            effects.append(message(f"You turn your attention to the {name}."))
        return CommandResult(effects, True, entity_id, match.kind)
