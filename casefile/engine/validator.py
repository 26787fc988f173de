"""
CapabilityValidator - verb applicability and condition evaluation.

Three independent checks, all pure:
    1. Capability: is the verb structurally possible on this entity?
    2. State: would the verb be a redundant transition right now?
    3. Conditions: do an authored rule's conditions hold?

Randomness (RANDOM_CHANCE) comes from an injectable callable so tests can
pin it.

Example:
    >>> validator = CapabilityValidator(game)
    >>> result = validator.validate("open", "obj_box", state)
    >>> result.valid
    True
    >>> validator.get_affordances(game.game_objects["obj_box"], status)
    ['open', 'examine']
"""

from __future__ import annotations

import logging
import random as _random
import re
from typing import TYPE_CHECKING, Callable, Iterable

from casefile.engine.state import (
    EntityStatus,
    get_entity,
    get_entity_status,
    get_item,
    get_runtime_state,
    has_flag,
)
from casefile.models.content import (
    Capabilities,
    ChapterIsCondition,
    FlagCondition,
    HasFlagCondition,
    HasItemCondition,
    LocationIsCondition,
    NoFlagCondition,
    RandomChanceCondition,
    StateCondition,
    StateMatchCondition,
)
from casefile.models.validation import (
    RejectionCode,
    ValidationResult,
    invalid_result,
    valid_result,
)

if TYPE_CHECKING:
    from casefile.models.content import Condition, Game
    from casefile.models.state import PlayerState

logger = logging.getLogger(__name__)

# verb -> capability the entity must have
CAPABILITY_MAP: dict[str, str] = {
    "open": "openable",
    "close": "openable",
    "unlock": "lockable",
    "lock": "lockable",
    "break": "breakable",
    "move": "movable",
    "search": "searchable",
    "input": "inputtable",
    "read": "readable",
    "use": "usable",
    "combine": "combinable",
    "take": "takeable",
}

PAST_PARTICIPLES: dict[str, str] = {
    "move": "moved",
    "break": "broken",
    "read": "read",
    "use": "used",
    "open": "opened",
    "close": "closed",
    "take": "taken",
    "combine": "combined",
    "search": "searched",
    "input": "given input",
}


def _snake(key: str) -> str:
    """Accept camelCase state keys from older content ("isLocked")."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


class CapabilityValidator:
    """Validates verbs and rule conditions against capabilities and state.

    Attributes:
        game: The loaded cartridge
        random: Zero-argument callable returning a float in [0, 1)
    """

    def __init__(self, game: "Game", random: Callable[[], float] | None = None):
        self.game = game
        self.random = random or _random.random

    # =========================================================================
    # Capability and state
    # =========================================================================

    @staticmethod
    def validate_capability(verb: str, capabilities: Capabilities | None) -> ValidationResult:
        """Check that the entity has the capability the verb requires.

        Unrecognised verbs pass; they are handled elsewhere.
        """
        verb = verb.lower()
        required = CAPABILITY_MAP.get(verb)
        if required is None:
            return valid_result()

        if capabilities is None or getattr(capabilities, required, False) is not True:
            past = PAST_PARTICIPLES.get(verb, f"{verb}ed")
            return invalid_result(
                RejectionCode.MISSING_CAPABILITY,
                f"This entity cannot be {past}.",
                required_capability=required,
            )
        return valid_result()

    @staticmethod
    def validate_state(verb: str, status: EntityStatus) -> ValidationResult:
        """Reject transitions that would not change anything."""
        verb = verb.lower()

        if verb == "open":
            if status.is_open:
                return invalid_result(RejectionCode.ALREADY_OPEN, "It is already open.")
            if status.is_locked:
                return invalid_result(RejectionCode.LOCKED, "It is locked.")
        elif verb == "close":
            if not status.is_open:
                return invalid_result(RejectionCode.ALREADY_CLOSED, "It is already closed.")
        elif verb == "unlock":
            if not status.is_locked:
                return invalid_result(RejectionCode.NOT_LOCKED, "It is not locked.")
        elif verb == "lock":
            if status.is_locked:
                return invalid_result(RejectionCode.ALREADY_LOCKED, "It is already locked.")
            if status.is_open:
                return invalid_result(RejectionCode.MUST_CLOSE_FIRST, "You must close it first.")
        elif verb == "move":
            if status.is_moved:
                return invalid_result(RejectionCode.ALREADY_MOVED, "It has already been moved.")
        elif verb == "break":
            if status.is_broken:
                return invalid_result(RejectionCode.ALREADY_BROKEN, "It is already broken.")
        elif verb == "take":
            if status.taken:
                return invalid_result(RejectionCode.ALREADY_HAVE, "You already have it.")

        return valid_result()

    @staticmethod
    def get_affordances(entity: object, status: EntityStatus) -> list[str]:
        """Derive the verbs that are valid right now.

        Used for interpreter guidance and for error messages.
        """
        caps: Capabilities = getattr(entity, "capabilities", None) or Capabilities()
        affordances: list[str] = []

        if caps.openable:
            if status.is_open:
                affordances.append("close")
            elif not status.is_locked:
                affordances.append("open")

        if caps.lockable:
            if status.is_locked:
                affordances.append("unlock")
            elif not status.is_open:
                affordances.append("lock")

        if caps.movable and not status.is_moved:
            affordances.append("move")
        if caps.breakable and not status.is_broken:
            affordances.append("break")
        if caps.searchable:
            affordances.append("search")
        if caps.readable:
            affordances.append("read")
        if caps.usable:
            affordances.append("use")
        if caps.combinable:
            affordances.append("combine")
        if caps.takeable and not status.taken:
            affordances.append("take")
        if caps.inputtable:
            affordances.append("enter code")

        affordances.append("examine")
        return affordances

    def validate(self, verb: str, entity_id: str, state: "PlayerState") -> ValidationResult:
        """Full check of a verb against one entity.

        Order: existence, visibility, capability, state. Deterministic for
        identical capabilities and runtime state.

        Args:
            verb: The verb being attempted
            entity_id: Target entity
            state: Current player state

        Returns:
            ValidationResult; affordances are in context on failure
        """
        entity = get_entity(self.game, state, entity_id)
        if entity is None:
            return invalid_result(RejectionCode.ENTITY_NOT_FOUND, "Entity not found.")

        status = get_entity_status(self.game, state, entity_id)
        if status.is_visible is False:
            return invalid_result(RejectionCode.NOT_VISIBLE, "You cannot see that.")

        capability = self.validate_capability(verb, getattr(entity, "capabilities", None))
        if not capability.valid:
            capability.context["affordances"] = self.get_affordances(entity, status)
            capability.context["entity_id"] = entity_id
            return capability

        state_check = self.validate_state(verb, status)
        if not state_check.valid:
            state_check.context["affordances"] = self.get_affordances(entity, status)
            state_check.context["entity_id"] = entity_id
            return state_check

        return valid_result(entity_id=entity_id)

    # =========================================================================
    # Conditions
    # =========================================================================

    def evaluate_condition(self, condition: "Condition", state: "PlayerState") -> bool:
        """Check a single condition.

        Unknown condition types and evaluation errors count as failed.
        """
        try:
            if isinstance(condition, FlagCondition):
                return has_flag(state, condition.flag) == condition.value
            if isinstance(condition, HasFlagCondition):
                return has_flag(state, condition.flag)
            if isinstance(condition, NoFlagCondition):
                return not has_flag(state, condition.flag)
            if isinstance(condition, StateCondition):
                return self._state_value(state, condition.entity_id, condition.key) == condition.equals
            if isinstance(condition, StateMatchCondition):
                return (
                    self._state_value(state, condition.entity_id, condition.key)
                    == condition.expected_value
                )
            if isinstance(condition, HasItemCondition):
                return self._has_item(state, condition)
            if isinstance(condition, LocationIsCondition):
                return state.current_location_id == condition.location_id
            if isinstance(condition, ChapterIsCondition):
                return state.current_chapter_id == condition.chapter_id
            if isinstance(condition, RandomChanceCondition):
                return self.random() < condition.p
        except Exception:
            logger.exception(f"Error evaluating condition {condition!r}")
            return False

        logger.warning(f"Unknown condition type: {getattr(condition, 'type', condition)!r}")
        return False

    def evaluate_conditions(
        self, conditions: Iterable["Condition"] | None, state: "PlayerState"
    ) -> bool:
        """Logical AND over conditions; an empty list passes."""
        if not conditions:
            return True
        return all(self.evaluate_condition(c, state) for c in conditions)

    def _state_value(self, state: "PlayerState", entity_id: str, key: str) -> object:
        key = _snake(key)
        status = get_entity_status(self.game, state, entity_id)
        if key in EntityStatus.model_fields:
            return getattr(status, key)
        return getattr(get_runtime_state(state, entity_id), key, None)

    def _has_item(self, state: "PlayerState", condition: HasItemCondition) -> bool:
        if condition.item_id:
            return condition.item_id in state.inventory
        if condition.tag:
            for item_id in state.inventory:
                item = get_item(self.game, state, item_id)
                if item is not None and condition.tag in item.tags:
                    return True
        return False
