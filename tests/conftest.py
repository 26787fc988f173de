"""
Shared pytest fixtures for Casefile tests.

This module provides:
- game: The shipped archive-break-in cartridge, loaded and validated
- new_state: The opening PlayerState for that cartridge
- processor: A CommandProcessor with a seeded random source
- run: Helper that feeds a sequence of commands through the processor
- Custom markers for test categorization
"""

from __future__ import annotations

import random
from pathlib import Path

import pytest

from casefile.engine.context import EngineContext
from casefile.engine.game_loader import GameLoader, new_game_state
from casefile.engine.handlers import HandlerContext
from casefile.engine.parser import CommandParser
from casefile.engine.processor import CommandProcessor
from casefile.engine.reducer import EffectReducer
from casefile.models.content import Game
from casefile.models.state import PlayerState

GAMES_DIR = Path(__file__).parent.parent / "games"
GAME_ID = "archive-break-in"


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line("markers", "integration: marks tests as integration tests")


# =============================================================================
# Cartridge Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def game() -> Game:
    """The shipped sample cartridge."""
    return GameLoader(GAMES_DIR).load_game(GAME_ID)


@pytest.fixture
def reducer(game: Game) -> EffectReducer:
    return EffectReducer(game, EngineContext())


@pytest.fixture
def new_state(game: Game, reducer: EffectReducer) -> PlayerState:
    """Opening state: archive entrance, notebook and phone carried."""
    return new_game_state(game, reducer)


@pytest.fixture
def ctx(game: Game) -> HandlerContext:
    """Handler collaborators with a seeded random source."""
    return HandlerContext.for_game(game, rng=random.Random(7))


@pytest.fixture
def parser() -> CommandParser:
    return CommandParser()


@pytest.fixture
def processor(game: Game) -> CommandProcessor:
    """Processor without LLM collaborators."""
    return CommandProcessor(game, context=EngineContext(), rng=random.Random(7))


@pytest.fixture
def run(processor: CommandProcessor):
    """Feed commands through the processor, returning (state, messages of the last command).

    Usage:
        async def test_something(run, new_state):
            state, messages = await run(new_state, "go to desk", "unlock safe")
    """

    async def _run(state: PlayerState, *commands: str):
        messages = []
        for command in commands:
            state, messages = await processor.process(command, state)
        return state, messages

    return _run


def texts(messages) -> list[str]:
    """Message contents, for assertions."""
    return [m.content for m in messages]


def joined(messages) -> str:
    return "\n".join(texts(messages))
