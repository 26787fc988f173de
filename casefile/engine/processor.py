"""
Command processor - routes one line of input to effects and applies them.

Pipeline:
    1. Route by mode: conversation, interaction, device, or normal
    2. Normal mode: parse, then dispatch the verb through the handler table;
       unknown verbs go to the interpreter collaborator (if configured) and
       its proposal is re-validated through the same handler table
    3. FocusManager decides whether focus changes and appends that effect
    4. EffectReducer applies the effects; focus on anything no longer
       accessible is cleared; timers tick; the turn advances

The processor holds no player state. Callers pass the current state in and
get the new state and the messages back.

Example:
    >>> processor = CommandProcessor(game)
    >>> result = await processor.process("use crowbar on crate", state)
    >>> [m.content for m in result.messages]
    ['The crate splinters open.']
"""

from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING, Any, Callable

from casefile.engine.context import EngineContext
from casefile.engine.errors import InterpreterError
from casefile.engine.focus import FocusManager
from casefile.engine.handlers import (
    BaseHandler,
    BreakHandler,
    CallHandler,
    ClimbHandler,
    CombineHandler,
    CommandResult,
    ConversationHandler,
    DeviceHandler,
    DropHandler,
    ExamineHandler,
    HandlerContext,
    HelpHandler,
    InventoryHandler,
    MoveHandler,
    MovementHandler,
    OpenHandler,
    PasswordHandler,
    ReadHandler,
    SearchHandler,
    TakeHandler,
    TalkHandler,
    UseHandler,
    narrate,
)
from casefile.engine.parser import CommandParser, ParsedCommand
from casefile.engine.reducer import EffectReducer, ReducerResult
from casefile.engine.state import (
    get_current_location,
    get_entity,
    get_entity_kind,
    get_entity_name,
    get_entity_status,
)
from casefile.models.effects import CancelTimer, ClearFocus, SetFlag, ShowMessage, StartTimer
from casefile.models.perception import PerceptionSnapshot, VisibleEntity

if TYPE_CHECKING:
    from casefile.llm.dialogue import DialogueGenerator
    from casefile.llm.interpreter import Interpreter
    from casefile.models.content import Game
    from casefile.models.message import Message
    from casefile.models.state import PlayerState

logger = logging.getLogger(__name__)

UNKNOWN_COMMAND = "I'm not sure what you mean. Type HELP for ideas."


class CommandProcessor:
    """Turns player input into a new PlayerState and messages.

    Attributes:
        game: The loaded cartridge
        context: Per-process counters shared with the reducer
        interpreter: Optional natural-language interpreter
        reducer: The sole state mutator
    """

    def __init__(
        self,
        game: "Game",
        context: EngineContext | None = None,
        interpreter: "Interpreter | None" = None,
        dialogue: "DialogueGenerator | None" = None,
        rng: random.Random | None = None,
        chance: Callable[[], float] | None = None,
    ):
        """Initialize the processor.

        Args:
            game: The loaded cartridge
            context: Shared counters (a fresh one if omitted)
            interpreter: Collaborator for verbs the parser does not know
            dialogue: Collaborator for freeform NPC dialogue
            rng: Random source for narration variety
            chance: Zero-argument callable used by RANDOM_CHANCE conditions
        """
        self.game = game
        self.context = context or EngineContext()
        self.interpreter = interpreter

        self.ctx = HandlerContext.for_game(game, rng=rng, chance=chance)
        self.parser = CommandParser()
        self.reducer = EffectReducer(game, self.context)
        self.focus_manager = FocusManager(self.ctx.focus)

        use = UseHandler(self.ctx)
        call = CallHandler(self.ctx)
        self.password = PasswordHandler(self.ctx)
        handlers: list[BaseHandler] = [
            ExamineHandler(self.ctx),
            SearchHandler(self.ctx),
            TakeHandler(self.ctx),
            DropHandler(self.ctx),
            OpenHandler(self.ctx),
            MoveHandler(self.ctx),
            BreakHandler(self.ctx, use_handler=use),
            ReadHandler(self.ctx),
            use,
            CombineHandler(self.ctx),
            ClimbHandler(self.ctx),
            MovementHandler(self.ctx),
            TalkHandler(self.ctx),
            call,
            self.password,
            InventoryHandler(self.ctx),
            HelpHandler(self.ctx),
        ]
        self.handlers: dict[str, BaseHandler] = {
            verb: handler for handler in handlers for verb in handler.verbs
        }
        self.conversation = ConversationHandler(self.ctx, dialogue)
        self.device = DeviceHandler(self.ctx, call)

    @property
    def available_verbs(self) -> list[str]:
        return sorted(self.handlers)

    # =========================================================================
    # Public API
    # =========================================================================

    async def process(self, raw_input: str, state: "PlayerState") -> ReducerResult:
        """Process one line of player input.

        Args:
            raw_input: What the player typed
            state: Current state; never mutated

        Returns:
            ReducerResult with the new state and the messages to show
        """
        self.context.commands_processed += 1
        verb, result = await self.route(raw_input, state)

        effects: list[Any] = list(result.effects)
        if verb is not None:
            decision = self.focus_manager.determine_next_focus(
                verb, result.target_id, result.target_kind, result.success, state
            )
            focus_effect = decision.to_effect()
            if focus_effect is not None:
                effects.append(focus_effect)

        logger.debug(f"{raw_input!r} -> {[getattr(e, 'type', e) for e in effects]}")
        new_state, messages = self.reducer.apply_all(effects, state)
        new_state = self.release_unreachable_focus(new_state)

        new_state, timer_messages = self.reducer.apply_all(self.tick_timers(new_state), new_state)
        new_state = new_state.model_copy(update={"turn_count": new_state.turn_count + 1})
        return ReducerResult(new_state, messages + timer_messages)

    def opening(self, state: "PlayerState") -> list["Message"]:
        """Messages that open a new game: chapter intro, then the location."""
        effects: list[Any] = []
        chapter = self.game.chapters.get(state.current_chapter_id or "")
        if chapter is not None and chapter.intro_message:
            effects.append(ShowMessage(content=chapter.intro_message))
        location = get_current_location(self.game, state)
        if location is not None:
            text = location.intro_message or location.scene_description
            if text:
                effects.append(ShowMessage(content=text))
        return self.reducer.apply_all(effects, state).messages

    # =========================================================================
    # Routing
    # =========================================================================

    async def route(self, raw_input: str, state: "PlayerState") -> tuple[str | None, CommandResult]:
        """Pick the handler for this input based on the player's mode.

        Returns:
            (verb for focus tracking or None, handler result)
        """
        mode = state.mode
        if mode == "conversation":
            return None, await self.conversation.handle(raw_input, state)
        if mode == "interaction":
            return None, self.password.handle_interaction(raw_input, state)

        command = self.parser.parse(raw_input)
        if command is None:
            return None, narrate("What do you want to do?")

        if mode == "device":
            result = self.device.handle(command, state)
            if result is not None:
                return None, result

        handler = self.handlers.get(command.verb)
        if handler is not None:
            return command.verb, handler.handle(command, state)

        return await self.interpret(command, state)

    async def interpret(self, command: ParsedCommand, state: "PlayerState") -> tuple[str | None, CommandResult]:
        """Ask the interpreter about a verb the parser does not know."""
        fallback = self.game.fallback_messages.get("unknown_verb", UNKNOWN_COMMAND)
        if self.interpreter is None:
            return None, narrate(fallback)

        self.context.llm_calls += 1
        try:
            interpretation = await self.interpreter.interpret(command.raw, self.build_snapshot(state))
        except InterpreterError as exc:
            self.context.llm_failures += 1
            logger.warning(f"Interpreter failed for {command.raw!r}: {exc.message}")
            return None, narrate(fallback)

        verb = (interpretation.verb or "").lower().strip()
        handler = self.handlers.get(verb)
        if handler is not None:
            proposal = ParsedCommand(
                raw=command.raw,
                verb=verb,
                target=interpretation.target,
                instrument=interpretation.instrument,
            )
            logger.info(f"Interpreter proposed {verb!r} on {interpretation.target!r}")
            return verb, handler.handle(proposal, state)

        return None, narrate(interpretation.reply or fallback)

    # =========================================================================
    # Turn bookkeeping
    # =========================================================================

    def release_unreachable_focus(self, state: "PlayerState") -> "PlayerState":
        """Clear focus when the focused entity is no longer accessible."""
        focus_id = state.current_focus_id
        if focus_id is None:
            return state
        verdict = self.ctx.access.check(focus_id, state)
        if verdict.allowed:
            return state
        logger.debug(f"Focus on {focus_id!r} released: {verdict.reason}")
        return self.reducer.apply(ClearFocus(), state).state

    @staticmethod
    def tick_timers(state: "PlayerState") -> list[Any]:
        """Count every active timer down by one turn; expired ones set a flag."""
        effects: list[Any] = []
        for timer_id, turns in state.active_timers.items():
            if turns <= 1:
                effects.append(CancelTimer(timer_id=timer_id))
                effects.append(SetFlag(flag=f"timer_{timer_id}_expired", value=True))
            else:
                effects.append(StartTimer(timer_id=timer_id, turns=turns - 1))
        return effects

    def build_snapshot(self, state: "PlayerState") -> PerceptionSnapshot:
        """What the interpreter is allowed to see.

        Only accessible entities appear; anything sealed in a container or
        hidden stays out of the snapshot.
        """
        location = get_current_location(self.game, state)
        chapter = self.game.chapters.get(state.current_chapter_id or "")
        zones = self.ctx.access.zones
        zone = location.get_zone(zones.get_current_zone(state, location)) if location else None
        in_focus = set(self.ctx.focus.get_entities_in_focus(state))

        def visible(entity_id: str) -> VisibleEntity:
            entity = get_entity(self.game, state, entity_id)
            status = get_entity_status(self.game, state, entity_id)
            return VisibleEntity(
                id=entity_id,
                name=entity.name,
                kind=get_entity_kind(self.game, state, entity_id) or "object",
                description=self.ctx.resolver.get_effective_description(entity_id, state) or None,
                affordances=self.ctx.validator.get_affordances(entity, status),
                in_focus=entity_id in in_focus,
            )

        accessible = self.ctx.access.get_accessible_entities(state)
        return PerceptionSnapshot(
            goal=chapter.goal if chapter else "",
            location_id=state.current_location_id,
            location_name=location.name if location else state.current_location_id,
            zone_title=zone.title if zone else None,
            focus_name=get_entity_name(self.game, state, state.current_focus_id) if state.current_focus_id else None,
            visible_entities=[visible(e) for e in accessible if e not in state.inventory],
            inventory=[visible(e) for e in state.inventory if get_entity(self.game, state, e) is not None],
            available_verbs=self.available_verbs,
        )

