"""
NameMatcher - scores free-text target names against entities.

Scores (higher is better):
    100         exact name
    90          exact alternate name
    50 + 10/len search term is a word-bounded substring of the name
    45 + 10/len name is a word-bounded substring of the search term
    40          a word of an alternate name matches
    30          raw entity id
    25          id without its type prefix and underscores
    20 / 15     id substring matches (with / without prefix)

Substring matches require both strings to be at least 4 characters, so "art"
never matches "article". Shorter names score slightly higher (more specific).

Candidates physically present in the player's location get a flat bonus of
LOCATION_BONUS, so an exact match in another room never outranks a fuzzy
match in this one.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Iterable, NamedTuple

from casefile.engine.state import get_ancestors, get_current_location, get_entity, get_root

if TYPE_CHECKING:
    from casefile.models.content import Game
    from casefile.models.state import PlayerState

LOCATION_BONUS = 1000

MIN_SUBSTRING_LENGTH = 4

_ID_PREFIX = re.compile(r"^(item_|obj_|npc_|portal_)")


class MatchResult(NamedTuple):
    matches: bool
    score: float


class BestMatch(NamedTuple):
    """Winning candidate of a name search."""

    entity_id: str
    score: float
    in_current_location: bool


def normalize_name(name: str | None) -> str:
    """Lowercase, strip surrounding quotes and collapse whitespace."""
    if not name:
        return ""
    name = name.strip().strip('"').strip("'").lower()
    return " ".join(name.split())


def _word_bounded(haystack: str, needle: str) -> bool:
    index = haystack.find(needle)
    if index < 0:
        return False
    before = haystack[index - 1] if index > 0 else " "
    end = index + len(needle)
    after = haystack[end] if end < len(haystack) else " "
    return before in " -" or after in " -"


def score_name_match(entity: object, search: str) -> MatchResult:
    """Score how well a search term matches one entity.

    Args:
        entity: Anything with id, name and alternate_names
        search: Raw or normalized search term

    Returns:
        MatchResult; score 0 when nothing matches
    """
    search = normalize_name(search)
    if entity is None or not search:
        return MatchResult(False, 0)

    name = normalize_name(getattr(entity, "name", ""))
    alternates = [normalize_name(a) for a in getattr(entity, "alternate_names", [])]

    if name == search:
        return MatchResult(True, 100)

    if search in alternates:
        return MatchResult(True, 90)

    if len(name) >= MIN_SUBSTRING_LENGTH and len(search) >= MIN_SUBSTRING_LENGTH:
        if search in name and _word_bounded(name, search):
            return MatchResult(True, 50 + 10 / len(name))
        if name in search and _word_bounded(search, name):
            return MatchResult(True, 45 + 10 / len(name))

    for alternate in alternates:
        for word in alternate.split():
            if word == search:
                return MatchResult(True, 40)
            if len(word) >= MIN_SUBSTRING_LENGTH and len(search) >= MIN_SUBSTRING_LENGTH:
                if word in search or search in word:
                    return MatchResult(True, 40)

    # Upstream interpretation sometimes leaks raw ids
    entity_id = str(getattr(entity, "id", "")).lower()
    if entity_id:
        if entity_id == search:
            return MatchResult(True, 30)
        bare_id = _ID_PREFIX.sub("", entity_id).replace("_", "")
        bare_search = _ID_PREFIX.sub("", search).replace("_", "").replace(" ", "")
        if bare_id and bare_id == bare_search:
            return MatchResult(True, 25)
        if entity_id in search or search in entity_id:
            return MatchResult(True, 20)
        if bare_id and bare_search and (bare_id in bare_search or bare_search in bare_id):
            return MatchResult(True, 15)

    return MatchResult(False, 0)


class NameMatcher:
    """Location-aware best-match search over a candidate list.

    Attributes:
        game: The loaded cartridge
    """

    def __init__(self, game: "Game"):
        self.game = game

    def is_in_current_location(self, state: "PlayerState", entity_id: str) -> bool:
        """Physically present: in this location's tree, carried, or personal."""
        if entity_id in state.inventory:
            return True
        if any(a in state.inventory for a in get_ancestors(state, entity_id)):
            return True
        entity = get_entity(self.game, state, entity_id)
        if getattr(entity, "is_personal", False):
            return True
        location = get_current_location(self.game, state)
        if location is None:
            return False
        root = get_root(state, entity_id)
        return any(
            candidate in location.objects
            or candidate in location.npcs
            or candidate in location.exit_portals
            for candidate in (entity_id, root)
        )

    def best_match(
        self,
        search: str,
        candidates: Iterable[str],
        state: "PlayerState",
        location_bonus: bool = True,
    ) -> BestMatch | None:
        """Pick the highest-scoring candidate.

        Ties keep the earlier candidate, so callers control precedence
        through candidate order.
        """
        best: BestMatch | None = None
        for entity_id in candidates:
            entity = get_entity(self.game, state, entity_id)
            result = score_name_match(entity, search)
            if not result.matches:
                continue
            here = self.is_in_current_location(state, entity_id)
            score = result.score + (LOCATION_BONUS if location_bonus and here else 0)
            if best is None or score > best.score:
                best = BestMatch(entity_id, score, here)
        return best
