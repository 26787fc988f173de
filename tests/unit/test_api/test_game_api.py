"""Unit tests for the game API.

Tests cover:
- Health check and cartridge listing
- Starting a case: opening state and narration
- Running commands against a caller-held state
- Error responses for unknown games and mismatched state
- Process-wide counters at /stats
"""

import pytest
from fastapi.testclient import TestClient

from casefile.api import game as game_api
from casefile.engine.game_loader import GameLoader
from casefile.llm.interpreter import LLMInterpreter
from casefile.main import app
from tests.conftest import GAME_ID, GAMES_DIR


@pytest.fixture
def client(monkeypatch):
    monkeypatch.delenv("CASEFILE_LLM_ENABLED", raising=False)
    app.dependency_overrides[game_api.get_game_loader] = lambda: GameLoader(GAMES_DIR)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def opening(client) -> dict:
    response = client.post("/api/game/new", json={"game_id": GAME_ID})
    assert response.status_code == 200
    return response.json()


def command(client, state: dict, text: str):
    return client.post("/api/game/command", json={"game_id": GAME_ID, "state": state, "command": text})


class TestHealth:
    """Root endpoint."""

    def test_root(self, client) -> None:
        body = client.get("/").json()

        assert body["status"] == "ok"
        assert body["name"] == "Casefile"


class TestGames:
    """Listing and starting cases."""

    def test_list_games(self, client) -> None:
        games = client.get("/api/game/games").json()["games"]

        assert [g["id"] for g in games] == [GAME_ID]

    def test_new_game(self, opening) -> None:
        state = opening["state"]

        assert state["game_id"] == GAME_ID
        assert state["current_location_id"] == "loc_archive"
        assert state["inventory"] == ["item_notebook", "item_phone"]
        assert [m["content"] for m in opening["messages"]][0] == "Chapter One. The archive, 7:40 a.m."
        assert opening["messages"][1]["content"].startswith("Rows of steel shelving")

    def test_unknown_game(self, client) -> None:
        response = client.post("/api/game/new", json={"game_id": "ghost"})

        assert response.status_code == 404


class TestCommand:
    """Running commands."""

    def test_state_round_trip(self, client, opening) -> None:
        response = command(client, opening["state"], "go to clerk's desk")

        assert response.status_code == 200
        body = response.json()
        assert body["state"]["current_zone_id"] == "zone_desk"
        assert body["state"]["turn_count"] == 1
        assert "You move to the Clerk's Desk." in [m["content"] for m in body["messages"]]

    def test_chained_commands(self, client, opening) -> None:
        state = command(client, opening["state"], "go to clerk's desk").json()["state"]

        body = command(client, state, "open drawer").json()

        assert body["messages"][0]["content"] == "You open the Desk Drawer. Inside you see: Torn Note."
        assert body["state"]["world"]["obj_drawer"]["is_open"] is True

    def test_state_from_other_game(self, client, opening) -> None:
        state = {**opening["state"], "game_id": "other-game"}

        response = command(client, state, "look")

        assert response.status_code == 400

    def test_unknown_location_in_state(self, client, opening) -> None:
        state = {**opening["state"], "current_location_id": "loc_moon"}

        assert command(client, state, "look").status_code == 400

    def test_command_too_long(self, client, opening) -> None:
        assert command(client, opening["state"], "x" * 501).status_code == 422


class TestStats:
    """Engine counters."""

    def test_commands_are_counted(self, client, opening) -> None:
        before = client.get("/api/game/stats").json()["commands_processed"]

        command(client, opening["state"], "inventory")

        after = client.get("/api/game/stats").json()
        assert after["commands_processed"] == before + 1
        assert set(after) == {
            "commands_processed",
            "effects_applied",
            "unknown_effects",
            "reducer_faults",
            "llm_calls",
            "llm_failures",
        }


class TestBuildProcessor:
    """LLM collaborators are opt-in."""

    def test_llm_disabled_by_default(self, monkeypatch, game) -> None:
        monkeypatch.delenv("CASEFILE_LLM_ENABLED", raising=False)

        assert game_api.build_processor(game).interpreter is None

    def test_llm_enabled(self, monkeypatch, game) -> None:
        monkeypatch.setenv("CASEFILE_LLM_ENABLED", "true")

        assert isinstance(game_api.build_processor(game).interpreter, LLMInterpreter)
