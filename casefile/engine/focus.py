"""
Focus - what the player is giving close attention to.

Zone is where the player stands; focus is what they are looking at. Focus is
optional and only narrows target resolution, it never grants access.

FocusResolver resolves free-text targets with focus first:
    1. the focused entity, its descendants, its parent and its siblings
    2. (unless focus-only) carried items and their contents
    3. (unless focus-only) every known entity, with the location bonus

FocusManager decides, after an action, whether focus should change.

Example:
    >>> resolver = FocusResolver(game)
    >>> match = resolver.find_entity("justice", state)
    >>> match.entity_id, match.scope
    ('item_password_note', 'focus')
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, Literal, NamedTuple

from casefile.engine.accessibility import ContainmentResolver
from casefile.engine.matching import NameMatcher, normalize_name
from casefile.engine.state import (
    get_children,
    get_descendants,
    get_entity,
    get_entity_kind,
    get_entity_name,
    get_entity_status,
    get_parent,
    is_descendant_of,
)
from casefile.models.effects import ClearFocus, SetFocus

if TYPE_CHECKING:
    from casefile.models.content import Game
    from casefile.models.state import PlayerState

FocusKind = Literal["object", "item", "npc", "portal"]

NPC_TRANSITIONS = [
    "You approach {name}.",
    "You walk up to {name}.",
    "You step closer to {name}.",
    "You turn your attention to {name}.",
    "You move toward {name}.",
    "You head over to {name}.",
]

OBJECT_TRANSITIONS = [
    "You walk over to the {name}.",
    "You step up to the {name}.",
    "You move closer to the {name}.",
    "You approach the {name}.",
    "You turn your attention to the {name}.",
    "You head over to the {name}.",
    "You make your way to the {name}.",
    "You go over to the {name}.",
    "You focus on the {name}.",
]

OUT_OF_REACH = [
    "You can't {action} the {target} from here. You'll need to move closer first.",
    "The {target} is out of reach. Try moving to it first.",
    "You'll need to get closer to the {target} to {action} it.",
]

OUT_OF_REACH_FOCUSED = [
    "You're at the {focus} right now. To {action} the {target}, you'll need to go over there first.",
    "That won't work from the {focus}. Try moving to the {target} first.",
    "You can't reach the {target} from the {focus}. Move closer first.",
]


class FocusMatch(NamedTuple):
    """Resolved target and where it was found."""

    entity_id: str
    kind: FocusKind
    scope: Literal["focus", "inventory", "visible"]
    score: float


class FocusResolver:
    """Focus-aware target resolution and focus narration.

    Attributes:
        game: The loaded cartridge
        rng: Random source for narration templates
    """

    def __init__(self, game: "Game", rng: random.Random | None = None):
        self.game = game
        self.rng = rng or random.Random()
        self.matcher = NameMatcher(game)
        self.containment = ContainmentResolver(game)

    def get_entities_in_focus(self, state: "PlayerState") -> list[str]:
        """The focused entity, all its descendants, its parent and siblings."""
        focus_id = state.current_focus_id
        if not focus_id or get_entity(self.game, state, focus_id) is None:
            return []

        in_focus = [focus_id] + get_descendants(state, focus_id)
        parent_id = get_parent(state, focus_id)
        if parent_id is not None:
            in_focus.append(parent_id)
            in_focus.extend(s for s in get_children(state, parent_id) if s != focus_id)

        seen: list[str] = []
        for entity_id in in_focus:
            if entity_id in seen:
                continue
            if get_entity_status(self.game, state, entity_id).is_visible is False:
                continue
            seen.append(entity_id)
        return seen

    def find_entity(
        self,
        search: str,
        state: "PlayerState",
        require_focus: bool = False,
    ) -> FocusMatch | None:
        """Resolve a free-text target to an entity id.

        Args:
            search: What the player typed for the target
            state: Current player state
            require_focus: Only search within the current focus

        Returns:
            FocusMatch, or None if nothing matches
        """
        search = normalize_name(search)
        if not search:
            return None

        if state.current_focus_id:
            match = self.matcher.best_match(
                search, self.get_entities_in_focus(state), state, location_bonus=False
            )
            if match is not None:
                return self._to_match(match.entity_id, "focus", match.score, state)
            if require_focus:
                return None

        carried: list[str] = []
        for item_id in state.inventory:
            carried.append(item_id)
            carried.extend(get_descendants(state, item_id))
        match = self.matcher.best_match(search, carried, state, location_bonus=False)
        if match is not None:
            return self._to_match(match.entity_id, "inventory", match.score, state)

        match = self.matcher.best_match(
            search, self.containment.get_known_entities(state), state
        )
        if match is not None:
            return self._to_match(match.entity_id, "visible", match.score, state)
        return None

    def _to_match(self, entity_id: str, scope, score: float, state: "PlayerState") -> FocusMatch:
        kind = get_entity_kind(self.game, state, entity_id) or "object"
        return FocusMatch(entity_id, kind, scope, score)

    def get_transition_narration(
        self, focus_id: str, focus_type: FocusKind, state: "PlayerState"
    ) -> str | None:
        """Short narration for walking over to a new focus.

        Suppressed when focus does not change, for personal equipment, for
        targets nested inside another entity, and for items.
        """
        if state.current_focus_id == focus_id:
            return None
        entity = get_entity(self.game, state, focus_id)
        if entity is None or getattr(entity, "is_personal", False):
            return None
        if get_parent(state, focus_id) is not None:
            return None
        if focus_type in ("item", "portal"):
            return None

        name = entity.name
        location = self.game.get_location(state.current_location_id)
        if location is not None and location.transition_templates:
            template = self.rng.choice(location.transition_templates)
            return template.replace("{entity}", name)

        templates = NPC_TRANSITIONS if focus_type == "npc" else OBJECT_TRANSITIONS
        return self.rng.choice(templates).format(name=name)

    def get_out_of_focus_message(self, action: str, target_name: str, state: "PlayerState") -> str:
        """Explain that a target is out of reach from where the player is."""
        if not state.current_focus_id:
            return self.rng.choice(OUT_OF_REACH).format(action=action, target=target_name)
        focus_name = get_entity_name(self.game, state, state.current_focus_id)
        return self.rng.choice(OUT_OF_REACH_FOCUSED).format(
            action=action, target=target_name, focus=focus_name
        )


class FocusDecision(NamedTuple):
    """Outcome of determine_next_focus."""

    action: Literal["keep", "clear", "set"]
    focus_id: str | None = None
    focus_type: FocusKind | None = None
    narration: str | None = None

    def to_effect(self) -> SetFocus | ClearFocus | None:
        if self.action == "set" and self.focus_id is not None:
            focus_type = self.focus_type if self.focus_type != "portal" else "object"
            return SetFocus(
                focus_id=self.focus_id,
                focus_type=focus_type or "object",
                transition_message=self.narration,
            )
        if self.action == "clear":
            return ClearFocus()
        return None


KEEP = FocusDecision("keep")

# Verbs that always move attention onto their target
_FOCUSING_VERBS = {"examine", "search", "read", "open", "climb"}
# Verbs that never move attention
_STATIC_VERBS = {"take", "break", "close", "drop", "move", "combine", "inventory", "help"}


class FocusManager:
    """Decides where focus goes after an action.

    Attributes:
        resolver: Supplies transition narration
    """

    def __init__(self, resolver: FocusResolver):
        self.resolver = resolver
        self.game = resolver.game

    def determine_next_focus(
        self,
        verb: str,
        target_id: str | None,
        target_kind: FocusKind | None,
        success: bool,
        state: "PlayerState",
    ) -> FocusDecision:
        """Pure function of the action and the current focus.

        Rules, in order:
            - a failed action keeps focus
            - personal equipment never changes focus
            - a target nested inside the current focus keeps focus
            - examine, search, read, open and climb set focus to the target
            - use sets focus only when the target is an object
            - talk sets focus only when the target is an NPC
            - take, break, close and combine keep focus
            - go clears focus, unless it targets a specific object
        """
        verb = verb.lower()
        if not success:
            return KEEP

        entity = get_entity(self.game, state, target_id) if target_id else None
        if entity is not None and getattr(entity, "is_personal", False):
            return KEEP

        current = state.current_focus_id
        if current and target_id and is_descendant_of(state, target_id, current):
            return KEEP

        if verb == "go":
            if target_id and target_kind == "object":
                return self._set(target_id, target_kind, state)
            return FocusDecision("clear")

        if target_id is None or verb in _STATIC_VERBS:
            return KEEP

        if verb in _FOCUSING_VERBS:
            return self._set(target_id, target_kind, state)
        if verb == "use" and target_kind == "object":
            return self._set(target_id, target_kind, state)
        if verb == "talk" and target_kind == "npc":
            return self._set(target_id, target_kind, state)
        return KEEP

    def _set(self, target_id: str, target_kind: FocusKind | None, state: "PlayerState") -> FocusDecision:
        if state.current_focus_id == target_id:
            return KEEP
        kind = target_kind or "object"
        narration = self.resolver.get_transition_narration(target_id, kind, state)
        return FocusDecision("set", target_id, kind, narration)
