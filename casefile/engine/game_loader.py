"""
Game loader - Load and validate YAML game cartridges, and start new cases.

A cartridge is a folder under games/ holding a single game.yaml. The
folder name is the game id.

Example:
    >>> loader = GameLoader()
    >>> game = loader.load_game("archive-break-in")
    >>> state = new_game_state(game)
    >>> state.current_location_id
    'loc_archive'
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from casefile.engine.reducer import EffectReducer
from casefile.models.content import Game
from casefile.models.effects import AddItem, AddToContainer
from casefile.models.state import PlayerState

logger = logging.getLogger(__name__)

GAME_FILE = "game.yaml"


def _default_games_dir() -> Path:
    env_dir = os.getenv("CASEFILE_GAMES_DIR")
    if env_dir:
        return Path(env_dir)
    # Default to games/ relative to project root
    return Path(__file__).parent.parent.parent / "games"


class GameLoader:
    """Loads game cartridges from YAML files"""

    def __init__(self, games_dir: str | Path | None = None):
        """Initialize with games directory path (CASEFILE_GAMES_DIR by default)"""
        self.games_dir = Path(games_dir) if games_dir is not None else _default_games_dir()

    def list_games(self) -> list[dict[str, Any]]:
        """List available cartridges with metadata"""
        games: list[dict[str, Any]] = []

        if not self.games_dir.exists():
            return games

        for game_path in sorted(self.games_dir.iterdir()):
            game_yaml = game_path / GAME_FILE
            if not game_path.is_dir() or not game_yaml.exists():
                continue
            try:
                with open(game_yaml) as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                logger.warning(f"Skipping unreadable cartridge {game_path.name}: {e}")
                continue
            description = data.get("description", "")
            games.append({
                "id": game_path.name,
                "title": data.get("title", game_path.name),
                "description": description[:200] + "..." if len(description) > 200 else description,
            })

        return games

    def load_game(self, game_id: str, validate: bool = True) -> Game:
        """
        Load a complete cartridge.

        Args:
            game_id: The cartridge identifier (folder name in games/)
            validate: Whether to run the cartridge validator (default True)

        Returns:
            The parsed Game

        Raises:
            FileNotFoundError: If the cartridge doesn't exist
            ValueError: If validation fails and validate=True
        """
        game_yaml = self.games_dir / game_id / GAME_FILE
        if not game_yaml.exists():
            raise FileNotFoundError(f"Game '{game_id}' not found at {game_yaml}")

        with open(game_yaml) as f:
            data = yaml.safe_load(f) or {}
        data.setdefault("id", game_id)
        game = parse_game(data)
        logger.info(
            f"Loaded game {game_id}: {len(game.locations)} locations, "
            f"{len(game.game_objects)} objects, {len(game.items)} items, {len(game.npcs)} NPCs"
        )

        if validate:
            from casefile.engine.game_validator import GameValidator

            report = GameValidator(game).validate()
            for warning in report.warnings:
                logger.warning(f"[{game_id}] {warning}")
            if not report.is_valid:
                error_list = "\n  - ".join(report.errors)
                raise ValueError(
                    f"Game '{game_id}' validation failed with {len(report.errors)} error(s):\n  - {error_list}"
                )

        return game


def parse_game(data: dict[str, Any]) -> Game:
    """Build a Game from cartridge data.

    Maps keyed by id may omit the id inside each entry; it is filled in from
    the key.
    """
    data = dict(data)
    for section, id_field in (
        ("locations", "location_id"),
        ("game_objects", "id"),
        ("items", "id"),
        ("npcs", "id"),
        ("portals", "portal_id"),
        ("chapters", "id"),
    ):
        entries = data.get(section) or {}
        data[section] = {
            key: {id_field: key, **(value or {})} for key, value in entries.items()
        }
    return Game.model_validate(data)


def new_game_state(game: Game, reducer: EffectReducer | None = None) -> PlayerState:
    """Create the opening PlayerState for a cartridge.

    Authored containment is seeded through ADD_TO_CONTAINER and the starting
    inventory through ADD_ITEM, so both sides of every link are recorded by
    the reducer.
    """
    reducer = reducer or EffectReducer(game)
    location = game.get_location(game.start_location_id)
    zone_id = None
    if location is not None and location.zones:
        default = next((z for z in location.zones if z.is_default), location.zones[0])
        zone_id = default.id

    state = PlayerState(
        game_id=game.id,
        current_location_id=game.start_location_id,
        current_zone_id=zone_id,
        current_chapter_id=game.start_chapter_id,
    )

    effects: list[Any] = []
    for entity in [*game.game_objects.values(), *game.items.values()]:
        for child_id in [*entity.children.objects, *entity.children.items]:
            effects.append(AddToContainer(entity_id=child_id, parent_id=entity.id))
    effects.extend(AddItem(item_id=item_id) for item_id in game.starting_inventory)

    return reducer.apply_all(effects, state).state
