"""
Shared plumbing for verb handlers.

Every handler receives a ParsedCommand and the current PlayerState and
returns a CommandResult: an ordered effect list plus what the action was
aimed at. Handlers never mutate state; the processor feeds their effects to
the EffectReducer.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, NamedTuple

from casefile.engine.accessibility import AccessibilityResolver
from casefile.engine.focus import FocusMatch, FocusResolver
from casefile.engine.handler_resolver import HandlerResolver, Resolution
from casefile.engine.outcomes import build_effects_from_outcome, message
from casefile.engine.state import get_entity, get_entity_name
from casefile.engine.validator import CapabilityValidator
from casefile.models.validation import AccessReason

if TYPE_CHECKING:
    from casefile.engine.parser import ParsedCommand
    from casefile.models.content import Game
    from casefile.models.state import PlayerState


class CommandResult(NamedTuple):
    """What a handler decided.

    Attributes:
        effects: Ordered effects for the reducer
        success: Whether the action did what the player asked
        target_id: Entity the action was aimed at, if any
        target_kind: object, item, npc or portal
    """

    effects: list[Any]
    success: bool = True
    target_id: str | None = None
    target_kind: str | None = None


def narrate(text: str, success: bool = False, speaker: str = "narrator") -> CommandResult:
    """A result that only says something."""
    return CommandResult([message(text, speaker=speaker)], success)


@dataclass
class HandlerContext:
    """Collaborators shared by every handler for one game.

    Attributes:
        game: The loaded cartridge
        validator: Capability, state and condition checks
        access: Containment and zone gating
        focus: Focus-aware target resolution
        resolver: State-aware handler lookup
        rng: Random source for narration variety
    """

    game: "Game"
    validator: CapabilityValidator
    access: AccessibilityResolver
    focus: FocusResolver
    resolver: HandlerResolver
    rng: random.Random = field(default_factory=random.Random)

    @classmethod
    def for_game(cls, game: "Game", rng: random.Random | None = None, chance=None) -> "HandlerContext":
        rng = rng or random.Random()
        validator = CapabilityValidator(game, random=chance or rng.random)
        return cls(
            game=game,
            validator=validator,
            access=AccessibilityResolver(game),
            focus=FocusResolver(game, rng=rng),
            resolver=HandlerResolver(game, validator),
            rng=rng,
        )


class BaseHandler:
    """Common lookups for verb handlers.

    Subclasses list the canonical verbs they answer to in ``verbs`` and
    implement ``handle``.
    """

    verbs: tuple[str, ...] = ()

    def __init__(self, ctx: HandlerContext):
        self.ctx = ctx
        self.game = ctx.game

    def handle(self, command: "ParsedCommand", state: "PlayerState") -> CommandResult:
        raise NotImplementedError

    # =========================================================================
    # Lookups
    # =========================================================================

    def find(self, search: str | None, state: "PlayerState", require_focus: bool = False) -> FocusMatch | None:
        if not search:
            return None
        return self.ctx.focus.find_entity(search, state, require_focus=require_focus)

    def name_of(self, entity_id: str, state: "PlayerState") -> str:
        return get_entity_name(self.game, state, entity_id)

    def not_found(self, search: str | None, verb: str) -> CommandResult:
        if not search:
            return narrate(f"What do you want to {verb}?")
        return narrate(f'You don\'t see any "{search}" here.')

    def check_access(self, entity_id: str, verb: str, state: "PlayerState") -> CommandResult | None:
        """Narrated refusal if the player cannot reach the entity, else None."""
        result = self.ctx.access.check(entity_id, state)
        if result.allowed:
            return None

        name = result.target_name or self.name_of(entity_id, state)
        blocker = self.name_of(result.blocking_id, state) if result.blocking_id else None
        if result.reason == AccessReason.OUT_OF_ZONE:
            text = self.ctx.focus.get_out_of_focus_message(verb, name, state)
        elif result.reason == AccessReason.CONTAINER_LOCKED and blocker:
            text = f"The {blocker} is locked."
        elif result.reason == AccessReason.CONTAINER_CLOSED and blocker:
            text = f"The {blocker} is closed."
        elif result.reason == AccessReason.NOT_VISIBLE:
            text = "You cannot see that."
        else:
            text = f"You can't reach the {name}."
        return CommandResult([message(text)], False, entity_id, None)

    # =========================================================================
    # Rules
    # =========================================================================

    def run_rule(
        self,
        entity_id: str,
        verb: str,
        state: "PlayerState",
        kind: str | None = None,
        item_id: str | None = None,
        before: list[Any] | None = None,
        resolved: Resolution | None = None,
    ) -> CommandResult | None:
        """Apply the authored rule for (entity, verb), if there is one.

        Args:
            entity_id: Entity the verb acts on
            verb: Canonical verb
            state: Current player state
            kind: Entity kind for the result
            item_id: Instrument item for dual commands
            before: Effects to emit ahead of the outcome when the rule passes
            resolved: A resolution the caller already made, so conditions are
                not rolled a second time

        Returns:
            CommandResult, or None when no rule applies
        """
        if resolved is None:
            resolved = self.ctx.resolver.resolve(entity_id, verb, state, item_id=item_id)
        if resolved is None:
            return None
        outcome, passed = self.ctx.resolver.select_outcome(resolved.rule, state, resolved.passed)
        if outcome is None:
            fallback = self.ctx.resolver.get_fallback_message(entity_id, verb, state)
            return CommandResult([message(fallback)], passed, entity_id, kind)
        effects = list(before or []) if passed else []
        effects.extend(build_effects_from_outcome(outcome))
        return CommandResult(effects, passed, entity_id, kind)

    def refuse(self, entity_id: str, verb: str, reason: str, state: "PlayerState", kind: str | None = None) -> CommandResult:
        """Refusal that prefers the entity's authored fallback text."""
        entity = get_entity(self.game, state, entity_id)
        authored = getattr(entity, "fallback_messages", None) or {}
        text = authored.get(verb) or reason
        return CommandResult([message(text)], False, entity_id, kind)
