"""Unit tests for name matching and focus-aware target resolution.

Tests cover:
- score_name_match score bands
- Location bonus: a fuzzy match here beats an exact match elsewhere
- Focus scope wins over the wider room
- FocusManager decisions after an action
"""

import random

import pytest

from casefile.engine.focus import FocusManager, FocusResolver
from casefile.engine.matching import LOCATION_BONUS, NameMatcher, normalize_name, score_name_match
from casefile.models.content import GameObject
from casefile.models.effects import ClearFocus, RevealEntity, SetEntityState, SetFocus, SetZone


@pytest.fixture
def desk_drawer() -> GameObject:
    return GameObject(id="obj_drawer", name="Desk Drawer", alternate_names=["drawer", "top drawer"])


class TestScoreNameMatch:
    """Score bands for a single entity."""

    def test_exact_name(self, desk_drawer) -> None:
        assert score_name_match(desk_drawer, "Desk Drawer").score == 100

    def test_exact_alternate(self, desk_drawer) -> None:
        assert score_name_match(desk_drawer, "drawer").score == 90

    def test_search_inside_name(self, desk_drawer) -> None:
        result = score_name_match(desk_drawer, "desk")

        assert result.matches
        assert result.score == pytest.approx(50 + 10 / len("desk drawer"))

    def test_name_inside_search(self, desk_drawer) -> None:
        result = score_name_match(desk_drawer, "old desk drawer")

        assert result.score == pytest.approx(45 + 10 / len("desk drawer"))

    def test_alternate_word(self, desk_drawer) -> None:
        assert score_name_match(desk_drawer, "top").score == 40

    def test_raw_id(self) -> None:
        device = GameObject(id="obj_x17", name="Strange Device")

        assert score_name_match(device, "obj_x17").score == 30

    def test_short_terms_do_not_substring_match(self) -> None:
        article = GameObject(id="obj_clipping", name="Newspaper Article")

        assert score_name_match(article, "art").matches is False

    def test_no_match(self, desk_drawer) -> None:
        assert score_name_match(desk_drawer, "crowbar").matches is False

    def test_normalize_name(self) -> None:
        assert normalize_name('  "The   Safe" ') == "the safe"


class TestLocationPrecedence:
    """An entity here always outranks one elsewhere."""

    def test_fuzzy_here_beats_exact_elsewhere(self, game, reducer, new_state) -> None:
        state = reducer.apply(RevealEntity(entity_id="item_old_ledger"), new_state).state
        matcher = NameMatcher(game)

        best = matcher.best_match("old ledger", ["item_old_ledger", "obj_ledger"], state)

        assert best.entity_id == "obj_ledger"
        assert best.score > LOCATION_BONUS
        assert best.in_current_location is True

    def test_resolver_uses_known_entities(self, game, reducer, new_state) -> None:
        state = reducer.apply(RevealEntity(entity_id="item_old_ledger"), new_state).state

        match = FocusResolver(game).find_entity("old ledger", state)

        assert match.entity_id == "obj_ledger"
        assert match.scope == "visible"
        assert match.score > LOCATION_BONUS

    def test_same_name_elsewhere_loses(self, game, new_state) -> None:
        matcher = NameMatcher(game)

        best = matcher.best_match("door", ["portal_hall_door", "portal_archive_door"], new_state)

        assert best.entity_id == "portal_hall_door"


class TestFocusResolution:
    """FocusResolver looks inside the current focus first."""

    def test_justice_resolves_to_note_in_focus(self, game, reducer, new_state) -> None:
        state = reducer.apply_all(
            [
                SetZone(zone_id="zone_desk"),
                SetEntityState(entity_id="obj_drawer", patch={"is_open": True}),
                SetFocus(focus_id="obj_drawer"),
            ],
            new_state,
        ).state

        match = FocusResolver(game).find_entity("justice", state)

        assert match.entity_id == "item_password_note"
        assert match.scope == "focus"

    def test_justice_without_focus_is_the_painting(self, game, new_state) -> None:
        match = FocusResolver(game).find_entity("justice", new_state)

        assert match.entity_id == "obj_painting"
        assert match.scope == "visible"

    def test_entities_in_focus(self, game, reducer, new_state) -> None:
        state = reducer.apply(SetFocus(focus_id="obj_drawer"), new_state).state

        in_focus = FocusResolver(game).get_entities_in_focus(state)

        assert in_focus == ["obj_drawer", "item_password_note", "obj_desk"]

    def test_hidden_children_not_in_focus(self, game, reducer, new_state) -> None:
        state = reducer.apply(SetFocus(focus_id="obj_coat_rack"), new_state).state

        assert FocusResolver(game).get_entities_in_focus(state) == ["obj_coat_rack"]

    def test_require_focus(self, game, reducer, new_state) -> None:
        state = reducer.apply(SetFocus(focus_id="obj_drawer"), new_state).state

        assert FocusResolver(game).find_entity("crowbar", state, require_focus=True) is None

    def test_inventory_before_room(self, game, new_state) -> None:
        match = FocusResolver(game).find_entity("phone", new_state)

        assert match.entity_id == "item_phone"
        assert match.scope == "inventory"

    def test_nothing_matches(self, game, new_state) -> None:
        assert FocusResolver(game).find_entity("zeppelin", new_state) is None


class TestFocusManager:
    """Where focus goes after an action."""

    @pytest.fixture
    def manager(self, game) -> FocusManager:
        return FocusManager(FocusResolver(game, rng=random.Random(3)))

    def test_failure_keeps_focus(self, manager, new_state) -> None:
        decision = manager.determine_next_focus("examine", "obj_coat_rack", "object", False, new_state)

        assert decision.action == "keep"
        assert decision.to_effect() is None

    def test_examine_sets_focus_with_narration(self, manager, new_state) -> None:
        decision = manager.determine_next_focus("examine", "obj_desk", "object", True, new_state)

        assert decision.action == "set"
        assert decision.focus_id == "obj_desk"
        assert "Desk" in decision.narration

        effect = decision.to_effect()
        assert isinstance(effect, SetFocus)
        assert effect.transition_message == decision.narration

    def test_nested_target_keeps_focus(self, manager, reducer, new_state) -> None:
        state = reducer.apply(SetFocus(focus_id="obj_desk"), new_state).state

        decision = manager.determine_next_focus("take", "item_password_note", "item", True, state)

        assert decision.action == "keep"

    def test_nested_examine_keeps_focus(self, manager, reducer, new_state) -> None:
        state = reducer.apply(SetFocus(focus_id="obj_desk"), new_state).state

        assert manager.determine_next_focus("open", "obj_drawer", "object", True, state).action == "keep"

    def test_personal_items_never_move_focus(self, manager, new_state) -> None:
        assert manager.determine_next_focus("read", "item_notebook", "item", True, new_state).action == (
            "keep"
        )

    def test_go_to_zone_clears_focus(self, manager, new_state) -> None:
        decision = manager.determine_next_focus("go", None, None, True, new_state)

        assert decision.action == "clear"
        assert isinstance(decision.to_effect(), ClearFocus)

    def test_go_to_object_sets_focus(self, manager, new_state) -> None:
        decision = manager.determine_next_focus("go", "obj_safe", "object", True, new_state)

        assert decision.action == "set"
        assert decision.focus_id == "obj_safe"

    def test_take_keeps_focus(self, manager, new_state) -> None:
        assert manager.determine_next_focus("take", "item_photo", "item", True, new_state).action == "keep"

    def test_talk_focuses_npc(self, manager, new_state) -> None:
        decision = manager.determine_next_focus("talk", "npc_clerk", "npc", True, new_state)

        assert decision.focus_type == "npc"
        assert "Martin Hale" in decision.narration

    def test_use_only_focuses_objects(self, manager, new_state) -> None:
        assert manager.determine_next_focus("use", "obj_crate", "object", True, new_state).action == "set"
        assert manager.determine_next_focus("use", "item_crowbar", "item", True, new_state).action == (
            "keep"
        )

    def test_already_focused(self, manager, reducer, new_state) -> None:
        state = reducer.apply(SetFocus(focus_id="obj_desk"), new_state).state

        assert manager.determine_next_focus("search", "obj_desk", "object", True, state).action == "keep"

    def test_nested_target_gets_no_narration(self, manager, new_state) -> None:
        decision = manager.determine_next_focus("examine", "item_photo", "item", True, new_state)

        assert decision.action == "set"
        assert decision.narration is None
