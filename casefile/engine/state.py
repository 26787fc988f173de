"""
Read-only queries over PlayerState layered on authored content.

Nothing in this module mutates state; EffectReducer is the only writer.
The containment graph is an arena keyed by entity id: each RuntimeState
records its parent_id and its contained_entities, and every traversal here
is depth-bounded so an authoring cycle cannot hang a command.

Example:
    >>> status = get_entity_status(game, state, "obj_safe")
    >>> status.is_locked
    True
    >>> get_ancestors(state, "item_document")
    ['obj_safe']
"""

from __future__ import annotations

import logging
from typing import Literal, Union

from pydantic import BaseModel

from casefile.models.content import (
    AuthoredState,
    Game,
    GameObject,
    Item,
    Location,
    NPC,
    Portal,
)
from casefile.models.state import PlayerState, RuntimeState

logger = logging.getLogger(__name__)

# Guard against cyclic containment introduced by authoring mistakes
MAX_DEPTH = 10

EntityKind = Literal["object", "item", "npc", "portal"]
AnyEntity = Union[GameObject, Item, NPC, Portal]


class EntityStatus(BaseModel):
    """Effective state of one entity: authored defaults plus runtime overrides."""

    is_visible: bool = True
    is_open: bool = False
    is_locked: bool = False
    is_broken: bool = False
    is_moved: bool = False
    is_powered_on: bool = False
    taken: bool = False
    current_state_id: str = "default"
    discovered: bool = False
    examined_count: int = 0
    used_count: int = 0
    read_count: int = 0
    interaction_count: int = 0


_STATUS_FIELDS = (
    "is_visible",
    "is_open",
    "is_locked",
    "is_broken",
    "is_moved",
    "is_powered_on",
    "taken",
    "current_state_id",
    "discovered",
)


def get_runtime_state(state: PlayerState, entity_id: str) -> RuntimeState:
    """Get the runtime overrides for an entity without creating an entry."""
    return state.world.get(entity_id) or RuntimeState()


def get_entity(game: Game, state: PlayerState, entity_id: str) -> AnyEntity | None:
    """Look up any addressable entity, including items made at runtime."""
    if entity_id in game.game_objects:
        return game.game_objects[entity_id]
    if entity_id in game.items:
        return game.items[entity_id]
    if entity_id in state.runtime_items:
        return state.runtime_items[entity_id]
    if entity_id in game.npcs:
        return game.npcs[entity_id]
    if entity_id in game.portals:
        return game.portals[entity_id]
    return None


def get_entity_kind(game: Game, state: PlayerState, entity_id: str) -> EntityKind | None:
    if entity_id in game.game_objects:
        return "object"
    if entity_id in game.items or entity_id in state.runtime_items:
        return "item"
    if entity_id in game.npcs:
        return "npc"
    if entity_id in game.portals:
        return "portal"
    return None


def get_entity_name(game: Game, state: PlayerState, entity_id: str) -> str:
    entity = get_entity(game, state, entity_id)
    return entity.name if entity is not None else entity_id


def get_item(game: Game, state: PlayerState, item_id: str) -> Item | None:
    return game.items.get(item_id) or state.runtime_items.get(item_id)


def get_entity_status(game: Game, state: PlayerState, entity_id: str) -> EntityStatus:
    """Merge authored defaults with runtime overrides for one entity.

    Args:
        game: The loaded cartridge
        state: Current player state
        entity_id: Entity to resolve

    Returns:
        EntityStatus with every field concrete
    """
    entity = get_entity(game, state, entity_id)
    authored = getattr(entity, "state", None)
    if not isinstance(authored, AuthoredState):
        authored = AuthoredState(is_locked=bool(getattr(entity, "is_locked", False)))

    values = authored.model_dump()
    runtime = get_runtime_state(state, entity_id)
    for field in _STATUS_FIELDS:
        override = getattr(runtime, field)
        if override is not None:
            values[field] = override

    return EntityStatus(
        is_visible=values["is_visible"],
        is_open=values["is_open"],
        is_locked=values["is_locked"],
        is_broken=values["is_broken"],
        is_moved=values["is_moved"],
        is_powered_on=values["is_powered_on"],
        taken=values["taken"],
        current_state_id=values["current_state_id"],
        discovered=bool(values.get("discovered")),
        examined_count=runtime.examined_count,
        used_count=runtime.used_count,
        read_count=runtime.read_count,
        interaction_count=runtime.interaction_count,
    )


def is_entity_visible(game: Game, state: PlayerState, entity_id: str) -> bool:
    """Only an explicit is_visible=False hides an entity."""
    return get_entity_status(game, state, entity_id).is_visible is not False


def has_flag(state: PlayerState, flag: str) -> bool:
    return state.flags.get(flag, False) is True


def get_current_location(game: Game, state: PlayerState) -> Location | None:
    return game.get_location(state.current_location_id)


# =============================================================================
# Containment arena
# =============================================================================


def get_parent(state: PlayerState, entity_id: str) -> str | None:
    return get_runtime_state(state, entity_id).parent_id


def get_children(state: PlayerState, entity_id: str) -> list[str]:
    return list(get_runtime_state(state, entity_id).contained_entities)


def get_ancestors(state: PlayerState, entity_id: str) -> list[str]:
    """Return the containment chain from the direct parent upwards.

    Stops at MAX_DEPTH or on the first repeated id.
    """
    ancestors: list[str] = []
    current = get_parent(state, entity_id)
    while current is not None and len(ancestors) < MAX_DEPTH:
        if current in ancestors or current == entity_id:
            logger.warning(f"Containment cycle detected at {current!r}")
            break
        ancestors.append(current)
        current = get_parent(state, current)
    return ancestors


def get_descendants(state: PlayerState, entity_id: str) -> list[str]:
    """Return every entity nested below entity_id, breadth-first."""
    found: list[str] = []
    frontier = [(entity_id, 0)]
    seen = {entity_id}
    while frontier:
        current, depth = frontier.pop(0)
        if depth >= MAX_DEPTH:
            continue
        for child in get_children(state, current):
            if child in seen:
                continue
            seen.add(child)
            found.append(child)
            frontier.append((child, depth + 1))
    return found


def is_descendant_of(state: PlayerState, entity_id: str, ancestor_id: str) -> bool:
    return ancestor_id in get_ancestors(state, entity_id)


def get_root(state: PlayerState, entity_id: str) -> str:
    """The outermost container of an entity (itself if top-level)."""
    ancestors = get_ancestors(state, entity_id)
    return ancestors[-1] if ancestors else entity_id
