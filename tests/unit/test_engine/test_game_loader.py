"""Unit tests for loading and validating cartridges.

Tests cover:
- Listing and loading cartridges from a games directory
- Opening state: start zone, starting inventory, seeded containment
- Validator errors for broken references and warnings for unset flags
"""

import pytest
import yaml

from casefile.engine.game_loader import GameLoader, new_game_state, parse_game
from casefile.engine.game_validator import GameValidator, validate_game
from tests.conftest import GAME_ID, GAMES_DIR


def minimal_game(**overrides) -> dict:
    data = {
        "title": "Tiny Case",
        "description": "A one-room case.",
        "start_location_id": "loc_room",
        "locations": {"loc_room": {"name": "Room", "objects": ["obj_box"]}},
        "game_objects": {"obj_box": {"name": "Box"}},
    }
    data.update(overrides)
    return data


def write_cartridge(games_dir, game_id: str, data: dict) -> None:
    folder = games_dir / game_id
    folder.mkdir(parents=True)
    (folder / "game.yaml").write_text(yaml.safe_dump(data))


class TestGameLoader:
    """GameLoader."""

    def test_list_shipped_games(self) -> None:
        games = GameLoader(GAMES_DIR).list_games()

        assert [g["id"] for g in games] == [GAME_ID]
        assert games[0]["title"] == "The Archive Break-In"

    def test_list_skips_non_cartridges(self, tmp_path) -> None:
        write_cartridge(tmp_path, "tiny", minimal_game())
        (tmp_path / "notes").mkdir()
        (tmp_path / "README.txt").write_text("not a game")

        assert GameLoader(tmp_path).list_games() == [
            {"id": "tiny", "title": "Tiny Case", "description": "A one-room case."}
        ]

    def test_long_descriptions_are_truncated(self, tmp_path) -> None:
        write_cartridge(tmp_path, "tiny", minimal_game(description="x" * 300))

        description = GameLoader(tmp_path).list_games()[0]["description"]

        assert description == "x" * 200 + "..."

    def test_missing_games_dir(self, tmp_path) -> None:
        assert GameLoader(tmp_path / "nowhere").list_games() == []

    def test_env_var_sets_games_dir(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("CASEFILE_GAMES_DIR", str(tmp_path))

        assert GameLoader().games_dir == tmp_path

    def test_missing_cartridge(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            GameLoader(tmp_path).load_game("ghost")

    def test_folder_name_is_game_id(self, tmp_path) -> None:
        write_cartridge(tmp_path, "tiny", minimal_game())

        game = GameLoader(tmp_path).load_game("tiny")

        assert game.id == "tiny"
        assert game.game_objects["obj_box"].id == "obj_box"
        assert game.locations["loc_room"].location_id == "loc_room"

    def test_invalid_cartridge_raises(self, tmp_path) -> None:
        write_cartridge(tmp_path, "broken", minimal_game(start_location_id="loc_nowhere"))

        with pytest.raises(ValueError, match="validation failed"):
            GameLoader(tmp_path).load_game("broken")

    def test_validation_can_be_skipped(self, tmp_path) -> None:
        write_cartridge(tmp_path, "broken", minimal_game(start_location_id="loc_nowhere"))

        game = GameLoader(tmp_path).load_game("broken", validate=False)

        assert game.start_location_id == "loc_nowhere"


class TestParseGame:
    """parse_game."""

    def test_ids_filled_from_keys(self) -> None:
        game = parse_game(
            {
                "id": "tiny",
                **minimal_game(
                    items={"item_key": {"name": "Key"}},
                    npcs={"npc_cat": {"name": "Cat"}},
                    portals={"portal_door": {"name": "Door", "to_location_id": "loc_room"}},
                ),
            }
        )

        assert game.items["item_key"].id == "item_key"
        assert game.npcs["npc_cat"].id == "npc_cat"
        assert game.portals["portal_door"].portal_id == "portal_door"

    def test_explicit_id_is_kept(self) -> None:
        data = minimal_game(game_objects={"obj_box": {"id": "obj_box", "name": "Box"}})

        game = parse_game({"id": "tiny", **data})

        assert game.game_objects["obj_box"].name == "Box"

    def test_unknown_effect_types_survive(self) -> None:
        data = minimal_game(
            game_objects={
                "obj_box": {
                    "name": "Box",
                    "handlers": {
                        "on_examine": {"success": {"effects": [{"type": "PLAY_SOUND", "sound": "creak"}]}}
                    },
                }
            }
        )

        game = parse_game({"id": "tiny", **data})
        report = GameValidator(game).validate()

        assert report.is_valid
        assert report.warnings == ["Outcome at obj_box/on_examine has an effect type the engine ignores"]


class TestOpeningState:
    """new_game_state."""

    def test_start_position(self, new_state) -> None:
        assert new_state.game_id == GAME_ID
        assert new_state.current_location_id == "loc_archive"
        assert new_state.current_chapter_id == "ch_archive"
        assert new_state.current_zone_id == "zone_entrance"
        assert new_state.turn_count == 0

    def test_starting_inventory(self, new_state) -> None:
        assert new_state.inventory == ["item_notebook", "item_phone"]
        assert new_state.world["item_phone"].taken is True

    def test_containment_seeded_both_ways(self, new_state) -> None:
        assert new_state.world["item_password_note"].parent_id == "obj_drawer"
        assert "item_password_note" in new_state.world["obj_drawer"].contained_entities

    def test_compact_location_has_no_zone(self) -> None:
        game = parse_game({"id": "tiny", **minimal_game()})

        state = new_game_state(game)

        assert state.current_zone_id is None
        assert state.inventory == []


class TestGameValidator:
    """GameValidator."""

    def test_shipped_cartridge_is_clean(self) -> None:
        report = validate_game(GAME_ID, GAMES_DIR)

        assert report.errors == []
        assert report.warnings == []

    def test_bad_references(self) -> None:
        data = minimal_game(
            starting_inventory=["item_ghost"],
            locations={
                "loc_room": {
                    "name": "Room",
                    "objects": ["obj_box", "obj_missing"],
                    "npcs": ["npc_missing"],
                    "exit_portals": ["portal_missing"],
                }
            },
            portals={"portal_door": {"name": "Door", "to_location_id": "loc_void"}},
        )

        report = GameValidator(parse_game({"id": "tiny", **data})).validate()

        assert not report.is_valid
        assert "Starting inventory contains invalid item 'item_ghost'" in report.errors
        assert "Location 'loc_room' lists invalid object 'obj_missing'" in report.errors
        assert "Location 'loc_room' lists invalid NPC 'npc_missing'" in report.errors
        assert "Location 'loc_room' lists invalid portal 'portal_missing'" in report.errors
        assert "Portal 'portal_door' leads to invalid location 'loc_void'" in report.errors

    def test_containment_cycle(self) -> None:
        data = minimal_game(
            game_objects={
                "obj_box": {"name": "Box", "children": {"objects": ["obj_lid"]}},
                "obj_lid": {"name": "Lid", "children": {"objects": ["obj_box"]}},
            }
        )

        report = GameValidator(parse_game({"id": "tiny", **data})).validate()

        assert any(error.startswith("Containment cycle") for error in report.errors)

    def test_child_with_two_parents(self) -> None:
        data = minimal_game(
            game_objects={
                "obj_box": {"name": "Box", "children": {"items": ["item_key"]}},
                "obj_bag": {"name": "Bag", "children": {"items": ["item_key"]}},
            },
            items={"item_key": {"name": "Key"}},
        )

        report = GameValidator(parse_game({"id": "tiny", **data})).validate()

        assert "Entity 'item_key' is a child of both 'obj_box' and 'obj_bag'" in report.errors

    def test_rule_references(self) -> None:
        data = minimal_game(
            game_objects={
                "obj_box": {
                    "name": "Box",
                    "handlers": {
                        "on_use": {
                            "item_id": "item_ghost",
                            "conditions": [{"type": "STATE", "entity_id": "obj_ghost", "key": "is_open"}],
                            "success": {"effects": [{"type": "ADD_ITEM", "item_id": "item_phantom"}]},
                        }
                    },
                }
            }
        )

        report = GameValidator(parse_game({"id": "tiny", **data})).validate()

        assert "Rule obj_box/on_use answers to invalid item 'item_ghost'" in report.errors
        assert "Rule obj_box/on_use checks state of invalid entity 'obj_ghost'" in report.errors
        assert "Outcome at obj_box/on_use references invalid entity 'item_phantom'" in report.errors

    def test_unset_flags_warn(self) -> None:
        data = minimal_game(
            game_objects={
                "obj_box": {
                    "name": "Box",
                    "handlers": {
                        "on_open": {
                            "conditions": [
                                {"type": "HAS_FLAG", "flag": "found_key"},
                                {"type": "FLAG", "flag": "timer_alarm"},
                            ]
                        }
                    },
                }
            }
        )

        report = GameValidator(parse_game({"id": "tiny", **data})).validate()

        assert report.is_valid
        assert report.warnings == ["Flag 'found_key' is checked at obj_box/on_open but never set anywhere"]

    def test_zone_references(self) -> None:
        data = minimal_game(
            locations={
                "loc_room": {
                    "name": "Room",
                    "objects": ["obj_box"],
                    "zones": [
                        {"id": "zone_a", "title": "A", "object_ids": ["obj_box"], "is_default": True},
                        {"id": "zone_b", "title": "B", "object_ids": ["obj_ghost"], "parent": "zone_x"},
                    ],
                }
            }
        )

        report = GameValidator(parse_game({"id": "tiny", **data})).validate()

        assert "Zone 'loc_room/zone_b' has invalid parent zone 'zone_x'" in report.errors
        assert "Zone 'loc_room/zone_b' lists invalid entity 'obj_ghost'" in report.errors
