"""
Validation models.

ValidationResult is what the capability validator returns: whether a verb is
allowed on an entity right now, and if not, a code and an in-fiction reason.
AccessResult is what the accessibility resolver returns.

Neither is ever raised. Player-facing failures are values that handlers turn
into narration.

Example:
    >>> result = invalid_result(
    ...     RejectionCode.ALREADY_OPEN,
    ...     "It is already open.",
    ...     entity_id="obj_box",
    ... )
    >>> result.valid
    False
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator


class RejectionCode(str, Enum):
    """Why a validation failed."""

    # Lookup
    ENTITY_NOT_FOUND = "entity_not_found"
    NOT_VISIBLE = "not_visible"

    # Capability
    MISSING_CAPABILITY = "missing_capability"

    # Redundant transitions
    ALREADY_OPEN = "already_open"
    ALREADY_CLOSED = "already_closed"
    ALREADY_LOCKED = "already_locked"
    NOT_LOCKED = "not_locked"
    LOCKED = "locked"
    MUST_CLOSE_FIRST = "must_close_first"
    ALREADY_MOVED = "already_moved"
    ALREADY_BROKEN = "already_broken"
    ALREADY_HAVE = "already_have"

    # Rules
    CONDITIONS_FAILED = "conditions_failed"


class AccessReason(str, Enum):
    """Why an entity could not be reached."""

    OUT_OF_ZONE = "out_of_zone"
    CONTAINER_CLOSED = "container_closed"
    CONTAINER_LOCKED = "container_locked"
    NOT_VISIBLE = "not_visible"
    NOT_ACCESSIBLE = "not_accessible"


class ValidationResult(BaseModel):
    """Result of checking a verb against an entity.

    Attributes:
        valid: Whether the verb is allowed
        rejection_code: Code indicating why validation failed (if invalid)
        rejection_reason: Human-readable reason for failure (if invalid)
        context: Additional context (entity id, affordances)
    """

    valid: bool
    rejection_code: RejectionCode | None = None
    rejection_reason: str | None = None
    context: dict[str, object] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_rejection_fields(self) -> "ValidationResult":
        """Ensure rejection fields are present when valid=False."""
        if not self.valid:
            if self.rejection_code is None:
                raise ValueError("rejection_code is required when valid=False")
            if self.rejection_reason is None:
                raise ValueError("rejection_reason is required when valid=False")
        return self


class AccessResult(BaseModel):
    """Result of an accessibility check.

    Attributes:
        allowed: Whether the player can physically reach the entity
        reason: Machine-readable reason when denied
        target_name: Display name of the entity, for message generation
        blocking_id: The ancestor that denied access, if any
    """

    allowed: bool
    reason: AccessReason | None = None
    target_name: str | None = None
    blocking_id: str | None = None


# Convenience factory functions


def valid_result(**context: object) -> ValidationResult:
    """Create a successful ValidationResult."""
    return ValidationResult(valid=True, context=dict(context))


def invalid_result(
    code: RejectionCode,
    reason: str,
    **context: object,
) -> ValidationResult:
    """Create a failed ValidationResult.

    Args:
        code: The rejection code
        reason: Human-readable reason for rejection
        **context: Additional context to include

    Returns:
        ValidationResult with valid=False
    """
    return ValidationResult(
        valid=False,
        rejection_code=code,
        rejection_reason=reason,
        context=dict(context),
    )


def allowed() -> AccessResult:
    return AccessResult(allowed=True)


def denied(
    reason: AccessReason,
    target_name: str | None = None,
    blocking_id: str | None = None,
) -> AccessResult:
    return AccessResult(
        allowed=False,
        reason=reason,
        target_name=target_name,
        blocking_id=blocking_id,
    )
