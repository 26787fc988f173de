"""
Perception models - the read-only snapshot handed to the interpreter.

The interpreter collaborator only ever sees this snapshot. Entities that are
hidden, or still sealed inside a container, never appear here.

Example:
    >>> snapshot = PerceptionSnapshot(
    ...     goal="Find out who broke into the archive.",
    ...     location_id="loc_archive",
    ...     location_name="Records Archive",
    ...     visible_entities=[
    ...         VisibleEntity(
    ...             id="obj_safe",
    ...             name="Wall Safe",
    ...             kind="object",
    ...             affordances=["unlock", "examine"],
    ...         ),
    ...     ],
    ... )
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class VisibleEntity(BaseModel):
    """An entity the player can currently perceive.

    Attributes:
        id: Entity ID from the cartridge
        name: Display name
        kind: object, item, npc or portal
        description: Effective description for the current state
        affordances: Verbs that are valid right now
        in_focus: True if the entity is the focus or inside it
    """

    id: str
    name: str
    kind: Literal["object", "item", "npc", "portal"]
    description: str | None = None
    affordances: list[str] = Field(default_factory=list)
    in_focus: bool = False


class PerceptionSnapshot(BaseModel):
    """What the interpreter is allowed to know about the current state.

    Attributes:
        goal: The current chapter's goal
        location_id: Current location ID
        location_name: Display name of the location
        zone_title: Title of the zone the player stands in, if any
        focus_name: Name of the focused entity, if any
        visible_entities: Accessible and visible entities with affordances
        inventory: Names of carried items
        available_verbs: Verbs the command processor understands
    """

    goal: str = ""
    location_id: str
    location_name: str
    zone_title: str | None = None
    focus_name: str | None = None
    visible_entities: list[VisibleEntity] = Field(default_factory=list)
    inventory: list[VisibleEntity] = Field(default_factory=list)
    available_verbs: list[str] = Field(default_factory=list)
