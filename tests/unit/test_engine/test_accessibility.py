"""Unit tests for AccessibilityResolver.

Tests cover:
- Containment gating: locked, closed, movable covers, breakable shells
- Hidden children stay invisible until revealed
- Zone gating, including a three-deep container chain on a child zone
- Sprawling zone navigation
- Monotonicity: opening things only ever grants access
"""

import pytest

from casefile.engine.accessibility import AccessibilityResolver
from casefile.models.effects import EnterPortal, RevealEntity, SetEntityState, SetZone
from casefile.models.validation import AccessReason


@pytest.fixture
def access(game) -> AccessibilityResolver:
    return AccessibilityResolver(game)


def at_zone(reducer, state, zone_id):
    return reducer.apply(SetZone(zone_id=zone_id), state).state


def patch(reducer, state, entity_id, **values):
    return reducer.apply(SetEntityState(entity_id=entity_id, patch=values), state).state


class TestContainment:
    """Layer A: parents decide whether children can be reached."""

    def test_locked_safe_blocks_document(self, access, reducer, new_state) -> None:
        state = at_zone(reducer, new_state, "zone_desk")

        result = access.check("item_document", state)

        assert result.allowed is False
        assert result.reason == AccessReason.CONTAINER_LOCKED
        assert result.blocking_id == "obj_safe"

    def test_unlocked_safe_grants_document(self, access, reducer, new_state) -> None:
        state = at_zone(reducer, new_state, "zone_desk")
        state = patch(reducer, state, "obj_safe", is_locked=False)

        assert access.check("item_document", state).allowed is True

    def test_closed_drawer_blocks_note(self, access, reducer, new_state) -> None:
        state = at_zone(reducer, new_state, "zone_desk")

        result = access.check("item_password_note", state)

        assert result.reason == AccessReason.CONTAINER_CLOSED
        assert result.blocking_id == "obj_drawer"

    def test_crate_contents_need_breaking(self, access, reducer, new_state) -> None:
        state = at_zone(reducer, new_state, "zone_shelves")
        state = patch(reducer, state, "item_pouch", is_visible=True)

        assert access.containment.grants_access(state, "obj_crate") == AccessReason.NOT_ACCESSIBLE

        broken = patch(reducer, state, "obj_crate", is_broken=True)
        assert access.containment.grants_access(broken, "obj_crate") is None
        assert access.check("item_pouch", broken).allowed is True

    def test_rug_covers_trapdoor_until_moved(self, access, reducer, new_state) -> None:
        assert access.containment.grants_access(new_state, "obj_rug") == AccessReason.NOT_ACCESSIBLE

        moved = patch(reducer, new_state, "obj_rug", is_moved=True)
        assert access.containment.grants_access(moved, "obj_rug") is None

    def test_hidden_child_is_not_visible(self, access, new_state) -> None:
        result = access.check("item_crowbar", new_state)

        assert result.allowed is False
        assert result.reason == AccessReason.NOT_VISIBLE

    def test_other_location_not_accessible(self, access, new_state) -> None:
        result = access.check("obj_notice_board", new_state)

        assert result.allowed is False

    def test_unknown_entity(self, access, new_state) -> None:
        assert access.check("obj_nowhere", new_state).reason == AccessReason.NOT_VISIBLE

    def test_visible_entities_exclude_hidden(self, access, new_state) -> None:
        visible = access.containment.get_visible_entities(new_state)

        assert "obj_desk" in visible
        assert "npc_clerk" in visible
        assert "portal_hall_door" in visible
        assert "item_notebook" in visible
        assert "item_crowbar" not in visible
        assert "obj_trapdoor" not in visible
        assert "obj_notice_board" not in visible

    def test_discovered_elsewhere_is_known(self, access, reducer, new_state) -> None:
        state = reducer.apply(RevealEntity(entity_id="item_old_ledger"), new_state).state

        assert "item_old_ledger" in access.containment.get_known_entities(state)
        assert "item_old_ledger" not in access.containment.get_visible_entities(state)
        assert access.check("item_old_ledger", state).reason == AccessReason.NOT_ACCESSIBLE


class TestZones:
    """Layer B: the player's zone limits what they can reach."""

    def test_object_in_other_zone(self, access, new_state) -> None:
        result = access.check("obj_safe", new_state)

        assert result.allowed is False
        assert result.reason == AccessReason.OUT_OF_ZONE

    def test_object_in_player_zone(self, access, new_state) -> None:
        assert access.check("obj_coat_rack", new_state).allowed is True

    def test_room_wide_object(self, access, reducer, new_state) -> None:
        """The rug is in no zone, so every zone reaches it."""
        for zone_id in ("zone_entrance", "zone_desk", "zone_top_shelf"):
            state = at_zone(reducer, new_state, zone_id)
            assert access.check("obj_rug", state).allowed is True

    def test_npcs_and_portals_are_room_wide(self, access, reducer, new_state) -> None:
        state = at_zone(reducer, new_state, "zone_shelves")

        assert access.check("npc_clerk", state).allowed is True
        assert access.check("portal_hall_door", state).allowed is True

    def test_carried_and_personal_always_reachable(self, access, reducer, new_state) -> None:
        state = at_zone(reducer, new_state, "zone_top_shelf")

        assert access.check("item_notebook", state).allowed is True
        assert access.check("item_phone", state).allowed is True

    def test_three_deep_chain_on_child_zone(self, access, reducer, new_state) -> None:
        """Photo in folder in box, box assigned to the top shelf."""
        on_top = at_zone(reducer, new_state, "zone_top_shelf")
        below = at_zone(reducer, new_state, "zone_shelves")
        entrance = new_state

        assert access.check("item_photo", on_top).allowed is True
        assert access.check("item_photo", below).reason == AccessReason.OUT_OF_ZONE
        assert access.check("item_photo", entrance).reason == AccessReason.OUT_OF_ZONE

    def test_direct_container_state_checked_first(self, access, reducer, new_state) -> None:
        state = at_zone(reducer, new_state, "zone_top_shelf")
        state = patch(reducer, state, "obj_case_folder", is_open=False)

        result = access.check("item_photo", state)

        assert result.reason == AccessReason.CONTAINER_CLOSED

    def test_location_without_zones(self, access, reducer, new_state) -> None:
        state = reducer.apply(EnterPortal(portal_id="portal_hall_door"), new_state).state

        assert access.check("obj_notice_board", state).allowed is True
        assert access.check("item_old_ledger", state).allowed is True

    def test_contents_of_room_wide_object(self, access, reducer, new_state) -> None:
        state = patch(reducer, new_state, "obj_rug", is_moved=True)
        state = reducer.apply(RevealEntity(entity_id="obj_trapdoor"), state).state

        for zone_id in ("zone_entrance", "zone_top_shelf"):
            assert access.check("obj_trapdoor", at_zone(reducer, state, zone_id)).allowed is True


class TestZoneNavigation:
    """can_navigate_to_zone in a sprawling location."""

    @pytest.fixture
    def archive(self, game):
        return game.locations["loc_archive"]

    def test_top_level_to_top_level(self, access, archive) -> None:
        assert access.zones.can_navigate_to_zone("zone_shelves", "zone_entrance", archive).allowed

    def test_parent_to_child(self, access, archive) -> None:
        assert access.zones.can_navigate_to_zone("zone_top_shelf", "zone_shelves", archive).allowed

    def test_child_to_parent(self, access, archive) -> None:
        assert access.zones.can_navigate_to_zone("zone_shelves", "zone_top_shelf", archive).allowed

    def test_child_to_other_top_level(self, access, archive) -> None:
        assert access.zones.can_navigate_to_zone("zone_desk", "zone_top_shelf", archive).allowed

    def test_cannot_skip_into_nested_zone(self, access, archive) -> None:
        result = access.zones.can_navigate_to_zone("zone_top_shelf", "zone_entrance", archive)

        assert result.allowed is False
        assert result.target_name == "Shelves"

    def test_unknown_zone(self, access, archive) -> None:
        assert access.zones.can_navigate_to_zone("zone_roof", "zone_entrance", archive).allowed is False

    def test_default_zone(self, access, archive) -> None:
        assert access.zones.get_default_zone(archive) == "zone_entrance"


class TestMonotonicity:
    """Opening, unlocking, moving and breaking never take access away."""

    @pytest.mark.parametrize(
        "entity_id, change",
        [
            ("obj_safe", {"is_locked": False}),
            ("obj_drawer", {"is_open": True}),
            ("obj_crate", {"is_broken": True}),
            ("obj_rug", {"is_moved": True}),
            ("obj_case_folder", {"is_open": True}),
        ],
    )
    def test_access_only_grows(self, access, reducer, new_state, entity_id, change) -> None:
        candidates = [
            "item_document",
            "item_password_note",
            "item_pouch",
            "obj_trapdoor",
            "item_photo",
            "obj_drawer",
        ]
        for zone_id in ("zone_entrance", "zone_desk", "zone_shelves", "zone_top_shelf"):
            before = at_zone(reducer, new_state, zone_id)
            after = patch(reducer, before, entity_id, **change)
            for candidate in candidates:
                if access.check(candidate, before).allowed:
                    assert access.check(candidate, after).allowed, (candidate, zone_id)
