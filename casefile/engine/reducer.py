"""
EffectReducer - the sole mutator of player state.

apply() is pure: it deep-copies the incoming state, applies one effect to the
copy and returns the copy together with any messages the effect produced. The
input state is never touched.

Failure isolation:
    - Unknown effect types are logged and skipped.
    - If an effect raises, that effect alone is discarded: the state for that
      step reverts to its pre-effect value and the fault is logged.

Example:
    >>> reducer = EffectReducer(game)
    >>> result = reducer.apply_all(
    ...     [
    ...         SetEntityState(entity_id="obj_crate", patch={"is_broken": True}),
    ...         RevealFromParent(entity_id="item_gem", parent_id="obj_crate"),
    ...         ShowMessage(content="The crate splinters."),
    ...     ],
    ...     state,
    ... )
    >>> result.state.world["item_gem"].parent_id
    'obj_crate'
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, NamedTuple

from pydantic import TypeAdapter, ValidationError

from casefile.engine.context import EngineContext
from casefile.engine.errors import ContentError, ReducerFault
from casefile.engine.state import get_ancestors
from casefile.models.content import Game, Item
from casefile.models.effects import Effect, EffectType
from casefile.models.message import Message
from casefile.models.state import PlayerState, RuntimeState

logger = logging.getLogger(__name__)

_effect_adapter: TypeAdapter = TypeAdapter(Effect)

# Containment must go through ADD_TO_CONTAINER / REMOVE_FROM_CONTAINER
_PROTECTED_FIELDS = {"parent_id", "contained_entities"}


class ReducerResult(NamedTuple):
    """New state plus the messages produced while reaching it."""

    state: PlayerState
    messages: list[Message]


def parse_effect(raw: Any) -> Any:
    """Parse a dict (or an already-built effect) into an Effect model."""
    return _effect_adapter.validate_python(raw)


class EffectReducer:
    """Applies effects to PlayerState.

    Dispatch is an explicit table from EffectType to a patch method. Each
    patch method mutates the working copy it is handed; apply() owns the copy.

    Attributes:
        game: The loaded cartridge (needed for locations, portals, names)
        context: Per-process counters
    """

    def __init__(self, game: Game, context: EngineContext | None = None):
        self.game = game
        self.context = context or EngineContext()
        handlers: dict[EffectType, Callable[[Any, PlayerState, list[Message]], None]] = {
            EffectType.SET_FLAG: self._set_flag,
            EffectType.INC_COUNTER: self._inc_counter,
            EffectType.LINK_ENABLE: self._link_enable,
            EffectType.LINK_DISABLE: self._link_disable,
            EffectType.SET_ENTITY_STATE: self._set_entity_state,
            EffectType.SET_STATE_ID: self._set_state_id,
            EffectType.INCREMENT_ENTITY_COUNTER: self._increment_entity_counter,
            EffectType.REVEAL_ENTITY: self._reveal_entity,
            EffectType.HIDE_ENTITY: self._hide_entity,
            EffectType.REVEAL_FROM_PARENT: self._reveal_from_parent,
            EffectType.ADD_TO_CONTAINER: self._add_to_container,
            EffectType.REMOVE_FROM_CONTAINER: self._remove_from_container,
            EffectType.ADD_ITEM: self._add_item,
            EffectType.REMOVE_ITEM: self._remove_item,
            EffectType.CREATE_DYNAMIC_ITEM: self._create_dynamic_item,
            EffectType.MOVE_TO_LOCATION: self._move_to_location,
            EffectType.TELEPORT: self._move_to_location,
            EffectType.ENTER_PORTAL: self._enter_portal,
            EffectType.SET_ZONE: self._set_zone,
            EffectType.SET_FOCUS: self._set_focus,
            EffectType.CLEAR_FOCUS: self._clear_focus,
            EffectType.SET_DEVICE_FOCUS: self._set_device_focus,
            EffectType.CLEAR_DEVICE_FOCUS: self._clear_device_focus,
            EffectType.START_CONVERSATION: self._start_conversation,
            EffectType.END_CONVERSATION: self._end_conversation,
            EffectType.START_INTERACTION: self._start_interaction,
            EffectType.END_INTERACTION: self._end_interaction,
            EffectType.COMPLETE_TOPIC: self._complete_topic,
            EffectType.DEMOTE_NPC: self._demote_npc,
            EffectType.SET_CHAPTER: self._set_chapter,
            EffectType.START_TIMER: self._start_timer,
            EffectType.CANCEL_TIMER: self._cancel_timer,
            EffectType.SHOW_MESSAGE: self._show_message,
        }
        self._handlers = {kind.value: handler for kind, handler in handlers.items()}

    # =========================================================================
    # Public API
    # =========================================================================

    def apply(self, effect: Any, state: PlayerState) -> ReducerResult:
        """Apply a single effect.

        Args:
            effect: An Effect model (or a dict in the same shape)
            state: The state before the effect; never mutated

        Returns:
            ReducerResult with the new state and produced messages. If the
            effect is unknown, malformed or faults, the original state is
            returned.
        """
        if isinstance(effect, dict):
            try:
                effect = parse_effect(effect)
            except ValidationError as exc:
                self._fault(effect, exc)
                return ReducerResult(state, [])

        kind = getattr(effect, "type", None)
        if isinstance(kind, EffectType):
            kind = kind.value
        handler = self._handlers.get(kind)
        if handler is None:
            self.context.unknown_effects += 1
            logger.warning(f"Unknown effect type {kind!r}, skipping")
            return ReducerResult(state, [])

        working = state.model_copy(deep=True)
        messages: list[Message] = []
        try:
            handler(effect, working, messages)
        except Exception as exc:
            self._fault(effect, exc)
            return ReducerResult(state, [])

        self.context.effects_applied += 1
        return ReducerResult(working, messages)

    def _fault(self, effect: Any, exc: Exception) -> None:
        fault = ReducerFault(effect, exc)
        self.context.reducer_faults += 1
        logger.error(f"{fault.message} (effect discarded)", exc_info=exc)

    def apply_all(self, effects: Iterable[Any], state: PlayerState) -> ReducerResult:
        """Fold a list of effects over the state, in order."""
        messages: list[Message] = []
        for effect in effects:
            state, produced = self.apply(effect, state)
            messages.extend(produced)
        return ReducerResult(state, messages)

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _touch(state: PlayerState, entity_id: str) -> RuntimeState:
        """Get the runtime entry for an entity, creating it on first use."""
        runtime = state.world.get(entity_id)
        if runtime is None:
            runtime = RuntimeState()
            state.world[entity_id] = runtime
        return runtime

    def _require_entity(self, state: PlayerState, entity_id: str) -> None:
        known = (
            entity_id in self.game.game_objects
            or entity_id in self.game.items
            or entity_id in self.game.npcs
            or entity_id in self.game.portals
            or entity_id in state.runtime_items
        )
        if not known:
            raise ContentError(entity_id)

    def _unlink(self, state: PlayerState, entity_id: str) -> None:
        child = self._touch(state, entity_id)
        parent_id = child.parent_id
        if parent_id is not None:
            parent = self._touch(state, parent_id)
            parent.contained_entities = [
                c for c in parent.contained_entities if c != entity_id
            ]
        child.parent_id = None

    def _link(self, state: PlayerState, entity_id: str, parent_id: str) -> None:
        if entity_id == parent_id or entity_id in get_ancestors(state, parent_id):
            raise ValueError(
                f"Placing {entity_id!r} inside {parent_id!r} would create a cycle"
            )
        self._unlink(state, entity_id)
        if entity_id in state.inventory:
            state.inventory.remove(entity_id)
        parent = self._touch(state, parent_id)
        if entity_id not in parent.contained_entities:
            parent.contained_entities.append(entity_id)
        self._touch(state, entity_id).parent_id = parent_id

    def _default_zone(self, location_id: str) -> str | None:
        location = self.game.get_location(location_id)
        if location is None or not location.zones:
            return None
        default = next((z for z in location.zones if z.is_default), None)
        return (default or location.zones[0]).id

    # =========================================================================
    # Flags and counters
    # =========================================================================

    def _set_flag(self, effect, state: PlayerState, messages: list[Message]) -> None:
        state.flags[effect.flag] = effect.value

    def _inc_counter(self, effect, state: PlayerState, messages: list[Message]) -> None:
        state.counters[effect.key] = state.counters.get(effect.key, 0) + effect.by

    def _link_enable(self, effect, state: PlayerState, messages: list[Message]) -> None:
        state.counters[f"link_{effect.link_id}"] = 1

    def _link_disable(self, effect, state: PlayerState, messages: list[Message]) -> None:
        state.counters[f"link_{effect.link_id}"] = 0

    # =========================================================================
    # Entity state
    # =========================================================================

    def _set_entity_state(self, effect, state: PlayerState, messages: list[Message]) -> None:
        self._require_entity(state, effect.entity_id)
        unknown = set(effect.patch) - set(RuntimeState.model_fields)
        if unknown:
            raise ValueError(f"Unknown state fields: {sorted(unknown)}")
        protected = set(effect.patch) & _PROTECTED_FIELDS
        if protected:
            raise ValueError(
                f"Containment fields {sorted(protected)} must change via ADD_TO_CONTAINER"
            )
        current = self._touch(state, effect.entity_id)
        state.world[effect.entity_id] = RuntimeState.model_validate(
            {**current.model_dump(), **effect.patch}
        )

    def _set_state_id(self, effect, state: PlayerState, messages: list[Message]) -> None:
        self._require_entity(state, effect.entity_id)
        self._touch(state, effect.entity_id).current_state_id = effect.to

    def _increment_entity_counter(
        self, effect, state: PlayerState, messages: list[Message]
    ) -> None:
        runtime = self._touch(state, effect.entity_id)
        setattr(runtime, effect.counter, getattr(runtime, effect.counter) + effect.by)

    def _reveal_entity(self, effect, state: PlayerState, messages: list[Message]) -> None:
        self._require_entity(state, effect.entity_id)
        runtime = self._touch(state, effect.entity_id)
        runtime.is_visible = True
        runtime.discovered = True

    def _hide_entity(self, effect, state: PlayerState, messages: list[Message]) -> None:
        self._require_entity(state, effect.entity_id)
        self._touch(state, effect.entity_id).is_visible = False

    # =========================================================================
    # Containment
    # =========================================================================

    def _reveal_from_parent(self, effect, state: PlayerState, messages: list[Message]) -> None:
        self._require_entity(state, effect.entity_id)
        self._require_entity(state, effect.parent_id)
        # Already carried: revealing again must not put it back in the container
        if effect.entity_id not in state.inventory:
            self._link(state, effect.entity_id, effect.parent_id)
        runtime = self._touch(state, effect.entity_id)
        runtime.is_visible = True
        runtime.discovered = True
        runtime.revealed_by = effect.parent_id

    def _add_to_container(self, effect, state: PlayerState, messages: list[Message]) -> None:
        self._require_entity(state, effect.entity_id)
        self._require_entity(state, effect.parent_id)
        self._link(state, effect.entity_id, effect.parent_id)

    def _remove_from_container(
        self, effect, state: PlayerState, messages: list[Message]
    ) -> None:
        self._unlink(state, effect.entity_id)

    # =========================================================================
    # Inventory
    # =========================================================================

    def _add_item(self, effect, state: PlayerState, messages: list[Message]) -> None:
        self._require_entity(state, effect.item_id)
        self._unlink(state, effect.item_id)
        if effect.item_id not in state.inventory:
            state.inventory.append(effect.item_id)
        runtime = self._touch(state, effect.item_id)
        runtime.taken = True
        # Whatever the player holds is in plain sight
        runtime.is_visible = True

    def _remove_item(self, effect, state: PlayerState, messages: list[Message]) -> None:
        state.inventory = [i for i in state.inventory if i != effect.item_id]

    def _create_dynamic_item(self, effect, state: PlayerState, messages: list[Message]) -> None:
        item = Item.model_validate(effect.item)
        if item.id in self.game.items:
            raise ValueError(f"Dynamic item id {item.id!r} collides with authored content")
        state.runtime_items[item.id] = item
        if item.id not in state.inventory:
            state.inventory.append(item.id)
        runtime = self._touch(state, item.id)
        runtime.taken = True
        runtime.discovered = True

    # =========================================================================
    # Movement
    # =========================================================================

    def _move_to_location(self, effect, state: PlayerState, messages: list[Message]) -> None:
        if self.game.get_location(effect.to_location_id) is None:
            raise ContentError(effect.to_location_id, f"Unknown location {effect.to_location_id!r}")
        self._relocate(state, effect.to_location_id)

    def _relocate(self, state: PlayerState, location_id: str) -> None:
        state.current_location_id = location_id
        state.current_zone_id = self._default_zone(location_id)
        if state.current_focus_id is not None:
            state.previous_focus_id = state.current_focus_id
        state.current_focus_id = None
        state.focus_type = None

    def _enter_portal(self, effect, state: PlayerState, messages: list[Message]) -> None:
        portal = self.game.portals.get(effect.portal_id)
        if portal is None:
            raise ContentError(effect.portal_id)
        self._touch(state, effect.portal_id).used_count += 1
        if self.game.get_location(portal.to_location_id) is None:
            raise ContentError(portal.to_location_id)
        self._relocate(state, portal.to_location_id)

    def _set_zone(self, effect, state: PlayerState, messages: list[Message]) -> None:
        location = self.game.get_location(state.current_location_id)
        if effect.zone_id is not None and (location is None or location.get_zone(effect.zone_id) is None):
            raise ContentError(effect.zone_id, f"Unknown zone {effect.zone_id!r}")
        if state.current_zone_id != effect.zone_id:
            if state.current_focus_id is not None:
                state.previous_focus_id = state.current_focus_id
            state.current_focus_id = None
            state.focus_type = None
        state.current_zone_id = effect.zone_id

    # =========================================================================
    # Attention and modes
    # =========================================================================

    def _set_focus(self, effect, state: PlayerState, messages: list[Message]) -> None:
        self._require_entity(state, effect.focus_id)
        state.previous_focus_id = state.current_focus_id
        state.current_focus_id = effect.focus_id
        state.focus_type = effect.focus_type
        if effect.transition_message:
            messages.append(
                Message(
                    speaker="narrator",
                    sender_name=self.game.narrator_name,
                    content=effect.transition_message,
                )
            )

    def _clear_focus(self, effect, state: PlayerState, messages: list[Message]) -> None:
        if state.current_focus_id is not None:
            state.previous_focus_id = state.current_focus_id
        state.current_focus_id = None
        state.focus_type = None

    def _set_device_focus(self, effect, state: PlayerState, messages: list[Message]) -> None:
        self._require_entity(state, effect.device_id)
        state.active_device_focus = effect.device_id

    def _clear_device_focus(self, effect, state: PlayerState, messages: list[Message]) -> None:
        state.active_device_focus = None

    def _start_conversation(self, effect, state: PlayerState, messages: list[Message]) -> None:
        if effect.npc_id not in self.game.npcs:
            raise ContentError(effect.npc_id)
        state.active_conversation_with = effect.npc_id

    def _end_conversation(self, effect, state: PlayerState, messages: list[Message]) -> None:
        state.active_conversation_with = None

    def _start_interaction(self, effect, state: PlayerState, messages: list[Message]) -> None:
        self._require_entity(state, effect.object_id)
        state.interacting_with_object = effect.object_id

    def _end_interaction(self, effect, state: PlayerState, messages: list[Message]) -> None:
        state.interacting_with_object = None

    # =========================================================================
    # NPCs and story
    # =========================================================================

    def _complete_topic(self, effect, state: PlayerState, messages: list[Message]) -> None:
        runtime = self._touch(state, effect.npc_id)
        if effect.topic_id not in runtime.completed_topics:
            runtime.completed_topics.append(effect.topic_id)

    def _demote_npc(self, effect, state: PlayerState, messages: list[Message]) -> None:
        if effect.npc_id not in self.game.npcs:
            raise ContentError(effect.npc_id)
        runtime = self._touch(state, effect.npc_id)
        runtime.stage = "demoted"
        runtime.importance = "ambient"

    def _set_chapter(self, effect, state: PlayerState, messages: list[Message]) -> None:
        if effect.chapter_id not in self.game.chapters:
            raise ContentError(effect.chapter_id, f"Unknown chapter {effect.chapter_id!r}")
        state.current_chapter_id = effect.chapter_id

    def _start_timer(self, effect, state: PlayerState, messages: list[Message]) -> None:
        state.active_timers[effect.timer_id] = effect.turns

    def _cancel_timer(self, effect, state: PlayerState, messages: list[Message]) -> None:
        state.active_timers.pop(effect.timer_id, None)

    # =========================================================================
    # Output
    # =========================================================================

    def _show_message(self, effect, state: PlayerState, messages: list[Message]) -> None:
        sender_name = effect.sender_name
        if sender_name is None:
            sender_name = self.game.narrator_name if effect.speaker == "narrator" else effect.speaker
        messages.append(
            Message(
                speaker=effect.speaker,
                sender_name=sender_name,
                content=effect.content,
                message_type=effect.message_type,
                image_url=effect.image_url,
            )
        )
