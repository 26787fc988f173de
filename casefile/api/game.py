"""
Game API endpoints - Start cases and run commands

The server keeps no sessions. Each command request carries the caller's
PlayerState; the response carries the new one. Persistence belongs to the
caller.
"""

from __future__ import annotations

import logging
import os

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from casefile.engine.context import EngineContext
from casefile.engine.game_loader import GameLoader, new_game_state
from casefile.engine.processor import CommandProcessor
from casefile.models.content import Game
from casefile.models.message import Message
from casefile.models.state import PlayerState

logger = logging.getLogger(__name__)

router = APIRouter()

# Process-wide counters, exposed at /stats
engine_context = EngineContext()

_game_loader: GameLoader | None = None
_games: dict[str, Game] = {}


def get_game_loader() -> GameLoader:
    """Dependency: the cartridge loader (CASEFILE_GAMES_DIR or games/)"""
    global _game_loader
    if _game_loader is None:
        _game_loader = GameLoader()
    return _game_loader


def llm_enabled() -> bool:
    return os.getenv("CASEFILE_LLM_ENABLED", "false").lower() in ("1", "true", "yes")


def load_game(game_id: str, loader: GameLoader) -> Game:
    """Load a cartridge once per process; 404 if it does not exist"""
    cache_key = f"{loader.games_dir}:{game_id}"
    if cache_key not in _games:
        try:
            _games[cache_key] = loader.load_game(game_id)
        except FileNotFoundError:
            raise HTTPException(status_code=404, detail=f"Game '{game_id}' not found")
        except ValueError as e:
            logger.error(f"Cartridge {game_id} failed validation: {e}")
            raise HTTPException(status_code=500, detail=str(e))
    return _games[cache_key]


def build_processor(game: Game) -> CommandProcessor:
    """Processor for one request, with LLM collaborators when enabled"""
    interpreter = dialogue = None
    if llm_enabled():
        from casefile.llm.dialogue import LLMDialogueGenerator
        from casefile.llm.interpreter import LLMInterpreter

        interpreter = LLMInterpreter()
        dialogue = LLMDialogueGenerator()
    return CommandProcessor(game, context=engine_context, interpreter=interpreter, dialogue=dialogue)


# =============================================================================
# Request / response models
# =============================================================================


class NewGameRequest(BaseModel):
    """Request to start a new case"""

    game_id: str


class CommandRequest(BaseModel):
    """One line of player input against a caller-held state"""

    game_id: str
    state: PlayerState
    command: str = Field(max_length=500)


class TurnResponse(BaseModel):
    """New state plus the messages produced reaching it"""

    state: PlayerState
    messages: list[Message]


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/games")
async def list_games(loader: GameLoader = Depends(get_game_loader)):
    """List available cartridges"""
    return {"games": loader.list_games()}


@router.post("/new", response_model=TurnResponse)
async def new_game(request: NewGameRequest, loader: GameLoader = Depends(get_game_loader)):
    """Start a new case: opening state plus the opening narration"""
    game = load_game(request.game_id, loader)
    processor = build_processor(game)
    state = new_game_state(game, processor.reducer)
    logger.info(f"New game: {game.id} at {state.current_location_id}")
    return TurnResponse(state=state, messages=processor.opening(state))


@router.post("/command", response_model=TurnResponse)
async def run_command(request: CommandRequest, loader: GameLoader = Depends(get_game_loader)):
    """Process one command against the supplied state"""
    game = load_game(request.game_id, loader)

    state = request.state
    if state.game_id != game.id:
        raise HTTPException(
            status_code=400, detail=f"State belongs to game '{state.game_id}', not '{game.id}'"
        )
    if game.get_location(state.current_location_id) is None:
        raise HTTPException(
            status_code=400, detail=f"Unknown location '{state.current_location_id}' in state"
        )

    processor = build_processor(game)
    result = await processor.process(request.command, state)
    return TurnResponse(state=result.state, messages=result.messages)


@router.get("/stats")
async def stats():
    """Process-wide engine counters"""
    return engine_context.snapshot()
