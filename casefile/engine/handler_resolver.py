"""
HandlerResolver - effective rule and description for (entity, verb, state).

Resolution priority:
    1. state_map[current_state_id].overrides["on_<verb>"]
    2. handlers["on_<verb>"]
    3. None (the caller falls back to fallback text)

A handler can be a single Rule or a list of Rules. Lists resolve to the first
rule whose conditions pass. This lets one entity change behaviour across
narrative states without branching handler code.

Example:
    >>> resolver = HandlerResolver(game, validator)
    >>> rule, passed = resolver.resolve("obj_safe", "open", state)
    >>> outcome, passed = resolver.select_outcome(rule, state, passed)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

from casefile.engine.state import get_entity, get_entity_status
from casefile.models.content import Rule

if TYPE_CHECKING:
    from casefile.engine.validator import CapabilityValidator
    from casefile.models.content import Game, Outcome, RuleSet
    from casefile.models.state import PlayerState

DEFAULT_FALLBACK = "You cannot do that."


class Resolution(NamedTuple):
    """A resolved rule and whether its conditions passed."""

    rule: Rule
    passed: bool


def build_verb_key(verb: str) -> str:
    """Handler key for a verb: "open" -> "on_open", "enter code" -> "on_enter_code"."""
    return "on_" + "_".join(verb.lower().split())


class HandlerResolver:
    """Resolves state-aware handlers.

    Attributes:
        game: The loaded cartridge
        validator: Evaluates rule conditions
    """

    def __init__(self, game: "Game", validator: "CapabilityValidator"):
        self.game = game
        self.validator = validator

    def get_rule_set(self, entity_id: str, verb: str, state: "PlayerState") -> "RuleSet | None":
        """Raw handler for a verb, honouring state-map overrides."""
        entity = get_entity(self.game, state, entity_id)
        if entity is None:
            return None
        key = build_verb_key(verb)

        state_map = getattr(entity, "state_map", None) or {}
        state_id = get_entity_status(self.game, state, entity_id).current_state_id or "default"
        entry = state_map.get(state_id)
        if entry is not None and key in entry.overrides:
            return entry.overrides[key]

        handlers = getattr(entity, "handlers", None) or {}
        return handlers.get(key)

    def resolve(
        self,
        entity_id: str,
        verb: str,
        state: "PlayerState",
        item_id: str | None = None,
    ) -> Resolution | None:
        """Resolve the effective Rule together with its condition verdict.

        Each candidate rule's conditions are evaluated at most once, so a
        RANDOM_CHANCE rule is chosen and narrated on the same roll.

        Args:
            entity_id: Entity the verb acts on
            verb: The verb
            state: Current player state
            item_id: For "use X on Y", the item X. Rules naming that item take
                precedence; if none of them pass, the first one is returned so
                its fail branch can narrate.

        Returns:
            Resolution, or None if no handler applies
        """
        rule_set = self.get_rule_set(entity_id, verb, state)
        if rule_set is None:
            return None
        if isinstance(rule_set, Rule):
            if rule_set.item_id is not None and rule_set.item_id != item_id:
                return None
            return Resolution(rule_set, self.validator.evaluate_conditions(rule_set.conditions, state))

        rules = list(rule_set)
        if item_id is not None:
            specific = [r for r in rules if r.item_id == item_id]
            if specific:
                return self._first_passing(specific, state) or Resolution(specific[0], False)
        generic = [r for r in rules if r.item_id is None]
        return self._first_passing(generic, state)

    def resolve_handler(
        self,
        entity_id: str,
        verb: str,
        state: "PlayerState",
        item_id: str | None = None,
    ) -> Rule | None:
        """The effective single Rule, or None. See resolve()."""
        resolution = self.resolve(entity_id, verb, state, item_id=item_id)
        return resolution.rule if resolution is not None else None

    def _first_passing(self, rules: list[Rule], state: "PlayerState") -> Resolution | None:
        for rule in rules:
            if self.validator.evaluate_conditions(rule.conditions, state):
                return Resolution(rule, True)
        return None

    def select_outcome(
        self, rule: Rule, state: "PlayerState", passed: bool | None = None
    ) -> tuple["Outcome | None", bool]:
        """Pick success or fail for a rule.

        A rule whose conditions pass but which only authors a fail branch is
        treated as a failure (a "default refusal" entry in a rule list).

        Args:
            rule: The resolved rule
            state: Current player state
            passed: Verdict already computed by resolve(); conditions are only
                evaluated when it is None

        Returns:
            (outcome, passed)
        """
        if passed is None:
            passed = self.validator.evaluate_conditions(rule.conditions, state)
        if passed and rule.success is not None:
            return rule.success, True
        if passed and rule.success is None:
            return rule.fail, False
        return rule.fail, False

    def get_effective_description(self, entity_id: str, state: "PlayerState") -> str:
        """State-map description if there is one, else the base description."""
        entity = get_entity(self.game, state, entity_id)
        if entity is None:
            return ""
        state_map = getattr(entity, "state_map", None) or {}
        state_id = get_entity_status(self.game, state, entity_id).current_state_id or "default"
        entry = state_map.get(state_id)
        if entry is not None and entry.description:
            return entry.description
        return entity.description

    def get_fallback_message(self, entity_id: str | None, kind: str, state: "PlayerState") -> str:
        """Entity fallback for this kind, then its default, then the game's."""
        entity = get_entity(self.game, state, entity_id) if entity_id else None
        messages = getattr(entity, "fallback_messages", None) or {}
        if kind in messages:
            return messages[kind]
        if "default" in messages:
            return messages["default"]
        return self.game.fallback_messages.get(kind) or self.game.fallback_messages.get(
            "default", DEFAULT_FALLBACK
        )
