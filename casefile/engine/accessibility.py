"""
AccessibilityResolver - can the player see and reach an entity?

Two independent layers:

Layer A, containment (ContainmentResolver):
    An entity is *visible* if it is not explicitly hidden and it is either
    declared in the current location (directly, or nested under something
    that is), carried, or explicitly revealed. It is *accessible* if it is
    visible and every ancestor in its containment chain grants access.

Layer B, zones (ZoneResolver):
    A location may partition its objects into zones and the player stands in
    exactly one. can_access() resolves in a fixed order; see its docstring.

AccessibilityResolver.check() runs Layer A, then Layer B.

Top-level zone membership is total: an object's assigned zone wins; an
object with no assigned zone belongs to the zone that lists it in
object_ids; an object that is neither assigned nor listed is room-wide and
reachable from every zone. NPCs and portals are room-wide.

Example:
    >>> resolver = AccessibilityResolver(game)
    >>> result = resolver.check("item_document", state)
    >>> result.allowed, result.reason
    (False, <AccessReason.CONTAINER_LOCKED: 'container_locked'>)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from casefile.engine.state import (
    MAX_DEPTH,
    get_ancestors,
    get_children,
    get_current_location,
    get_descendants,
    get_entity,
    get_entity_kind,
    get_entity_name,
    get_entity_status,
    get_runtime_state,
    get_root,
)
from casefile.models.content import Capabilities
from casefile.models.validation import AccessReason, AccessResult, allowed, denied

if TYPE_CHECKING:
    from casefile.models.content import Game, Location, Zone
    from casefile.models.state import PlayerState

logger = logging.getLogger(__name__)


# =============================================================================
# Layer A: containment and visibility
# =============================================================================


class ContainmentResolver:
    """Visibility and parent-gated access.

    Attributes:
        game: The loaded cartridge
    """

    def __init__(self, game: "Game"):
        self.game = game

    def _capabilities(self, state: "PlayerState", entity_id: str) -> Capabilities:
        entity = get_entity(self.game, state, entity_id)
        return getattr(entity, "capabilities", None) or Capabilities()

    def _has_children(self, state: "PlayerState", entity_id: str, items_only: bool = False) -> bool:
        entity = get_entity(self.game, state, entity_id)
        authored = getattr(entity, "children", None)
        if authored is not None:
            if authored.items or (authored.objects and not items_only):
                return True
        for child_id in get_children(state, entity_id):
            if not items_only or get_entity_kind(self.game, state, child_id) == "item":
                return True
        return False

    def is_personal(self, state: "PlayerState", entity_id: str) -> bool:
        entity = get_entity(self.game, state, entity_id)
        return bool(getattr(entity, "is_personal", False))

    def is_declared(self, state: "PlayerState", entity_id: str) -> bool:
        """Declared in the current location, directly or through its root."""
        location = get_current_location(self.game, state)
        if location is None:
            return False
        root = get_root(state, entity_id)
        for candidate in (entity_id, root):
            if (
                candidate in location.objects
                or candidate in location.npcs
                or candidate in location.exit_portals
            ):
                return True
        return False

    def is_carried(self, state: "PlayerState", entity_id: str) -> bool:
        """In the inventory, or nested inside something that is."""
        if entity_id in state.inventory:
            return True
        return any(a in state.inventory for a in get_ancestors(state, entity_id))

    def is_revealed(self, state: "PlayerState", entity_id: str) -> bool:
        runtime = get_runtime_state(state, entity_id)
        return runtime.discovered is True or runtime.is_visible is True

    def is_present(self, state: "PlayerState", entity_id: str) -> bool:
        """Physically here: declared in this location, carried, or personal."""
        return (
            self.is_declared(state, entity_id)
            or self.is_carried(state, entity_id)
            or self.is_personal(state, entity_id)
        )

    def is_visible(self, state: "PlayerState", entity_id: str) -> bool:
        """Not explicitly hidden, and declared here, carried, or revealed."""
        if get_entity(self.game, state, entity_id) is None:
            return False
        if get_entity_status(self.game, state, entity_id).is_visible is False:
            return False
        return self.is_present(state, entity_id) or self.is_revealed(state, entity_id)

    def grants_access(self, state: "PlayerState", parent_id: str) -> AccessReason | None:
        """Whether a parent lets the player reach its children.

        Returns:
            None if access is granted, otherwise the denial reason
        """
        caps = self._capabilities(state, parent_id)
        status = get_entity_status(self.game, state, parent_id)

        if status.is_visible is False:
            return AccessReason.NOT_VISIBLE
        if status.is_broken:
            return None
        if caps.lockable and status.is_locked:
            return AccessReason.CONTAINER_LOCKED
        if caps.container and caps.openable and not status.is_open:
            return AccessReason.CONTAINER_CLOSED
        if caps.movable and not caps.container and self._has_children(state, parent_id):
            if not status.is_moved:
                return AccessReason.NOT_ACCESSIBLE
        if (
            caps.breakable
            and not caps.openable
            and self._has_children(state, parent_id, items_only=True)
        ):
            # Moving a breakable object can reveal its contents without breaking it
            if not (caps.movable and status.is_moved):
                return AccessReason.NOT_ACCESSIBLE
        return None

    def get_blocking_ancestor(
        self, state: "PlayerState", entity_id: str
    ) -> tuple[str, AccessReason] | None:
        """First ancestor (nearest first) that denies access, if any."""
        for ancestor_id in get_ancestors(state, entity_id):
            reason = self.grants_access(state, ancestor_id)
            if reason is not None:
                return ancestor_id, reason
        return None

    def check(self, state: "PlayerState", entity_id: str) -> AccessResult:
        """Layer A verdict for one entity."""
        name = get_entity_name(self.game, state, entity_id)
        if not self.is_visible(state, entity_id):
            return denied(AccessReason.NOT_VISIBLE, target_name=name)
        if not self.is_present(state, entity_id):
            return denied(AccessReason.NOT_ACCESSIBLE, target_name=name)
        blocking = self.get_blocking_ancestor(state, entity_id)
        if blocking is not None:
            blocking_id, reason = blocking
            return denied(reason, target_name=name, blocking_id=blocking_id)
        return allowed()

    def is_accessible(self, state: "PlayerState", entity_id: str) -> bool:
        return self.check(state, entity_id).allowed

    def get_accessible_children(self, state: "PlayerState", parent_id: str) -> list[str]:
        """Children of parent_id the player can reach right now."""
        if self.grants_access(state, parent_id) is not None:
            return []
        return [
            child_id
            for child_id in get_children(state, parent_id)
            if get_entity_status(self.game, state, child_id).is_visible is not False
        ]

    def get_visible_entities(self, state: "PlayerState") -> list[str]:
        """Every entity visible in the current context, in a stable order.

        Order: location objects and their nested contents, NPCs, exit
        portals, carried items and their contents, then personal objects.
        """
        location = get_current_location(self.game, state)
        ordered: list[str] = []

        def add(entity_id: str) -> None:
            if entity_id not in ordered and self.is_visible(state, entity_id):
                ordered.append(entity_id)

        if location is not None:
            for object_id in location.objects:
                if get_entity_status(self.game, state, object_id).is_visible is False:
                    continue
                add(object_id)
                for nested_id in get_descendants(state, object_id):
                    add(nested_id)
            for npc_id in location.npcs:
                add(npc_id)
            for portal_id in location.exit_portals:
                add(portal_id)

        for item_id in state.inventory:
            add(item_id)
            for nested_id in get_descendants(state, item_id):
                add(nested_id)

        for object_id, obj in self.game.game_objects.items():
            if obj.is_personal:
                add(object_id)

        return ordered

    def get_known_entities(self, state: "PlayerState") -> list[str]:
        """Visible entities here plus anything discovered elsewhere."""
        known = self.get_visible_entities(state)
        for entity_id, runtime in state.world.items():
            if entity_id in known or runtime.is_visible is False:
                continue
            if runtime.discovered is True and get_entity(self.game, state, entity_id) is not None:
                known.append(entity_id)
        return known


# =============================================================================
# Layer B: zones
# =============================================================================


class ZoneResolver:
    """Zone gating, independent of containment.

    Attributes:
        game: The loaded cartridge
    """

    def __init__(self, game: "Game"):
        self.game = game

    @staticmethod
    def get_default_zone(location: "Location") -> str | None:
        """The zone marked is_default, else the first zone, else None."""
        if not location.zones:
            return None
        default = next((z for z in location.zones if z.is_default), None)
        return (default or location.zones[0]).id

    def get_current_zone(self, state: "PlayerState", location: "Location") -> str | None:
        return state.current_zone_id or self.get_default_zone(location)

    def get_entity_zone(self, state: "PlayerState", entity_id: str, location: "Location") -> str | None:
        """Effective zone of a top-level entity (see module docstring)."""
        entity = get_entity(self.game, state, entity_id)
        assigned = getattr(entity, "zone", None)
        if assigned:
            return assigned
        for zone in location.zones:
            if entity_id in zone.object_ids:
                return zone.id
        return None

    def _is_registered_in_zone(
        self, state: "PlayerState", entity_id: str, zone_id: str, location: "Location"
    ) -> bool:
        entity = get_entity(self.game, state, entity_id)
        if getattr(entity, "zone", None) == zone_id:
            return True
        zone = location.get_zone(zone_id)
        return zone is not None and entity_id in zone.object_ids

    def _container_in_zone(
        self, state: "PlayerState", container_id: str, zone_id: str, location: "Location"
    ) -> bool:
        """The container, or any ancestor of it, is in the zone (or carried)."""
        chain = [container_id] + get_ancestors(state, container_id)
        for depth, ancestor_id in enumerate(chain):
            if depth > MAX_DEPTH:
                break
            if ancestor_id in state.inventory:
                return True
            entity = get_entity(self.game, state, ancestor_id)
            if getattr(entity, "is_personal", False):
                return True
            if self._is_registered_in_zone(state, ancestor_id, zone_id, location):
                return True
            # Room-wide root: reachable from every zone, so are its contents
            if (
                get_runtime_state(state, ancestor_id).parent_id is None
                and ancestor_id in location.objects
                and self.get_entity_zone(state, ancestor_id, location) is None
            ):
                return True
        return False

    def can_access(self, state: "PlayerState", target_id: str) -> AccessResult:
        """Zone verdict for one entity.

        Order:
            1. Inventory items are always accessible.
            2. Personal equipment is always accessible.
            3. Nested targets: the direct container's state decides first.
               Broken bypasses everything, locked denies, closed denies. This
               runs before the no-zones shortcut.
            4. A location without zones grants access.
            5. A target in the player's zone (or room-wide) is accessible.
            6. A nested target is accessible if its container, or any
               ancestor of it, is registered in the player's zone.
            7. Otherwise deny with out_of_zone.
        """
        entity = get_entity(self.game, state, target_id)
        name = get_entity_name(self.game, state, target_id)

        if target_id in state.inventory:
            return allowed()

        if getattr(entity, "is_personal", False):
            return allowed()

        parent_id = get_runtime_state(state, target_id).parent_id
        if parent_id is not None:
            parent = get_entity(self.game, state, parent_id)
            if parent is None:
                logger.warning(f"{target_id!r} is inside unknown container {parent_id!r}")
                return denied(AccessReason.NOT_ACCESSIBLE, target_name=name)
            caps = getattr(parent, "capabilities", None) or Capabilities()
            parent_status = get_entity_status(self.game, state, parent_id)
            if parent_status.is_broken:
                return allowed()
            if parent_status.is_locked:
                return denied(AccessReason.CONTAINER_LOCKED, target_name=name, blocking_id=parent_id)
            if caps.openable and not parent_status.is_open:
                return denied(AccessReason.CONTAINER_CLOSED, target_name=name, blocking_id=parent_id)

        location = get_current_location(self.game, state)
        if location is None or not location.zones:
            return allowed()

        current_zone = self.get_current_zone(state, location)

        if parent_id is None:
            target_zone = self.get_entity_zone(state, target_id, location)
            if target_zone is None or target_zone == current_zone:
                return allowed()
        else:
            entity_zone = getattr(entity, "zone", None)
            if entity_zone is not None and entity_zone == current_zone:
                return allowed()
            if current_zone is not None and self._container_in_zone(
                state, parent_id, current_zone, location
            ):
                return allowed()

        return denied(AccessReason.OUT_OF_ZONE, target_name=name)

    def can_navigate_to_zone(
        self, target_zone_id: str, current_zone_id: str | None, location: "Location"
    ) -> AccessResult:
        """Whether the player can walk from their zone to another.

        Compact locations allow any zone. Sprawling locations allow a direct
        child, the parent, a sibling, or any top-level zone.
        """
        if not location.zones:
            return allowed()

        target = location.get_zone(target_zone_id)
        if target is None:
            return denied(AccessReason.NOT_ACCESSIBLE, target_name=target_zone_id)

        if current_zone_id is None:
            if target_zone_id == self.get_default_zone(location):
                return allowed()
            return denied(AccessReason.NOT_ACCESSIBLE, target_name=target.title)

        if location.spatial_mode == "compact":
            return allowed()

        current = location.get_zone(current_zone_id)
        if target.parent == current_zone_id:
            return allowed()
        if current is not None and current.parent == target_zone_id:
            return allowed()
        if current is not None and current.parent and target.parent == current.parent:
            return allowed()
        if target.parent is None:
            return allowed()

        parent = location.get_zone(target.parent)
        return denied(
            AccessReason.OUT_OF_ZONE,
            target_name=parent.title if parent else target.title,
        )

    def get_zone_objects(self, state: "PlayerState", location: "Location", zone: "Zone") -> list[str]:
        """Top-level objects that belong to a zone."""
        return [
            object_id
            for object_id in location.objects
            if self.get_entity_zone(state, object_id, location) == zone.id
        ]


# =============================================================================
# Combined resolver
# =============================================================================


class AccessibilityResolver:
    """Runs containment gating, then zone gating.

    Attributes:
        containment: Layer A resolver
        zones: Layer B resolver
    """

    def __init__(self, game: "Game"):
        self.game = game
        self.containment = ContainmentResolver(game)
        self.zones = ZoneResolver(game)

    def check(self, target_id: str, state: "PlayerState") -> AccessResult:
        """Full access verdict for one entity."""
        if get_entity(self.game, state, target_id) is None:
            return denied(AccessReason.NOT_VISIBLE, target_name=target_id)
        result = self.containment.check(state, target_id)
        if not result.allowed:
            return result
        return self.zones.can_access(state, target_id)

    def is_accessible(self, target_id: str, state: "PlayerState") -> bool:
        return self.check(target_id, state).allowed

    def get_accessible_entities(self, state: "PlayerState") -> list[str]:
        """Visible entities that also pass both layers."""
        return [
            entity_id
            for entity_id in self.containment.get_visible_entities(state)
            if self.check(entity_id, state).allowed
        ]
