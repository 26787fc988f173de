"""
Verb handlers for the command processor.

Each handler resolves its target, gates it through accessibility and the
capability validator, and returns a CommandResult holding an ordered effect
list. Handlers never touch PlayerState; the processor hands their effects to
the EffectReducer.

Example:
    >>> ctx = HandlerContext.for_game(game)
    >>> result = TakeHandler(ctx).handle(parser.parse("take notebook"), state)
    >>> [e.type for e in result.effects]
    ['ADD_ITEM', 'SHOW_MESSAGE']
"""

from casefile.engine.handlers.base import BaseHandler, CommandResult, HandlerContext, narrate
from casefile.engine.handlers.climb import ClimbHandler
from casefile.engine.handlers.combine import CombineHandler
from casefile.engine.handlers.examine import ExamineHandler
from casefile.engine.handlers.inventory import HelpHandler, InventoryHandler
from casefile.engine.handlers.move import BreakHandler, MoveHandler
from casefile.engine.handlers.movement import MovementHandler
from casefile.engine.handlers.open import OpenHandler
from casefile.engine.handlers.password import PasswordHandler
from casefile.engine.handlers.phone import CallHandler, DeviceHandler
from casefile.engine.handlers.read import ReadHandler
from casefile.engine.handlers.search import SearchHandler
from casefile.engine.handlers.take import DropHandler, TakeHandler
from casefile.engine.handlers.talk import ConversationHandler, TalkHandler
from casefile.engine.handlers.use import UseHandler

__all__ = [
    "BaseHandler",
    "CommandResult",
    "HandlerContext",
    "narrate",
    "ExamineHandler",
    "SearchHandler",
    "TakeHandler",
    "DropHandler",
    "OpenHandler",
    "MoveHandler",
    "BreakHandler",
    "ReadHandler",
    "UseHandler",
    "CombineHandler",
    "ClimbHandler",
    "MovementHandler",
    "TalkHandler",
    "ConversationHandler",
    "CallHandler",
    "DeviceHandler",
    "PasswordHandler",
    "InventoryHandler",
    "HelpHandler",
]
