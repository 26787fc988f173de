"""
Engine exceptions.

Only operator-facing faults are exceptions. Capability, condition and access
failures are returned as ValidationResult / AccessResult values and turned
into narration by the handlers.
"""

from __future__ import annotations

from typing import Any


class CasefileError(Exception):
    """Base class for engine faults."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ContentError(CasefileError):
    """Authored content references an entity id that does not exist."""

    def __init__(self, entity_id: str, message: str | None = None):
        super().__init__(message or f"Unknown entity id: {entity_id!r}")
        self.entity_id = entity_id


class ReducerFault(CasefileError):
    """An effect raised while being applied.

    The reducer catches the underlying error, wraps it in a ReducerFault for
    logging and discards that single effect.
    """

    def __init__(self, effect: Any, cause: BaseException):
        if isinstance(effect, dict):
            kind = effect.get("type", "dict")
        else:
            kind = getattr(effect, "type", type(effect).__name__)
        super().__init__(f"Effect {kind} failed: {cause}")
        self.effect = effect
        self.cause = cause


class InterpreterError(CasefileError):
    """The external text-generation call failed after all retries."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts
