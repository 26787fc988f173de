"""
Authored content models - Pydantic models for YAML game cartridges.

Content is read-only at runtime. Everything that changes while a case is
being played lives in PlayerState (see casefile.models.state); the only
sanctioned way to add content during play is the CREATE_DYNAMIC_ITEM effect.

Example:
    >>> safe = GameObject(
    ...     id="obj_safe",
    ...     name="Wall Safe",
    ...     capabilities=Capabilities(lockable=True, container=True),
    ...     state=AuthoredState(is_locked=True),
    ...     children=EntityChildren(items=["item_document"]),
    ... )
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Discriminator, Field, Tag

from casefile.models.effects import EffectList


# =============================================================================
# Conditions
# =============================================================================


class FlagCondition(BaseModel):
    """Flag must equal the given value"""
    type: Literal["FLAG"] = "FLAG"
    flag: str
    value: bool = True


class HasFlagCondition(BaseModel):
    """Flag must be set"""
    type: Literal["HAS_FLAG"] = "HAS_FLAG"
    flag: str


class NoFlagCondition(BaseModel):
    """Flag must not be set"""
    type: Literal["NO_FLAG"] = "NO_FLAG"
    flag: str


class StateCondition(BaseModel):
    """A runtime field of any named entity must equal a value"""
    type: Literal["STATE"] = "STATE"
    entity_id: str
    key: str
    equals: Any = None


class StateMatchCondition(BaseModel):
    """Same as STATE, kept for content that uses expected_value"""
    type: Literal["STATE_MATCH"] = "STATE_MATCH"
    entity_id: str
    key: str
    expected_value: Any = None


class HasItemCondition(BaseModel):
    """Inventory holds the item, or any item sharing the tag"""
    type: Literal["HAS_ITEM"] = "HAS_ITEM"
    item_id: str | None = None
    tag: str | None = None


class LocationIsCondition(BaseModel):
    type: Literal["LOCATION_IS"] = "LOCATION_IS"
    location_id: str


class ChapterIsCondition(BaseModel):
    type: Literal["CHAPTER_IS"] = "CHAPTER_IS"
    chapter_id: str


class RandomChanceCondition(BaseModel):
    """Passes with probability p"""
    type: Literal["RANDOM_CHANCE"] = "RANDOM_CHANCE"
    p: float = Field(ge=0.0, le=1.0)


class UnknownCondition(BaseModel):
    """Condition type this engine version does not know; always fails"""
    type: str
    model_config = {"extra": "allow"}


_CONDITION_TYPES = {
    "FLAG",
    "HAS_FLAG",
    "NO_FLAG",
    "STATE",
    "STATE_MATCH",
    "HAS_ITEM",
    "LOCATION_IS",
    "CHAPTER_IS",
    "RANDOM_CHANCE",
}


def _condition_tag(value: Any) -> str:
    kind = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    return kind if kind in _CONDITION_TYPES else "UNKNOWN"


Condition = Annotated[
    Union[
        Annotated[FlagCondition, Tag("FLAG")],
        Annotated[HasFlagCondition, Tag("HAS_FLAG")],
        Annotated[NoFlagCondition, Tag("NO_FLAG")],
        Annotated[StateCondition, Tag("STATE")],
        Annotated[StateMatchCondition, Tag("STATE_MATCH")],
        Annotated[HasItemCondition, Tag("HAS_ITEM")],
        Annotated[LocationIsCondition, Tag("LOCATION_IS")],
        Annotated[ChapterIsCondition, Tag("CHAPTER_IS")],
        Annotated[RandomChanceCondition, Tag("RANDOM_CHANCE")],
        Annotated[UnknownCondition, Tag("UNKNOWN")],
    ],
    Discriminator(_condition_tag),
]


# =============================================================================
# Rules and outcomes
# =============================================================================


class Media(BaseModel):
    """Image or video attached to an outcome"""
    url: str
    description: str = ""
    hint: str | None = None


class Outcome(BaseModel):
    """One branch of a rule: narration plus the effects it causes"""
    message: str | None = None
    speaker: str | None = None
    effects: EffectList = Field(default_factory=list)
    media: Media | None = None


class Rule(BaseModel):
    """Conditional handler for a verb.

    Attributes:
        conditions: All must pass for the success branch (empty passes)
        success: Outcome when conditions pass
        fail: Outcome when conditions fail
        item_id: For "use X on Y" rules, the item X this rule answers to
        phone_number: For call rules, the dialled number ("*" matches any)
    """
    conditions: list[Condition] = Field(default_factory=list)
    success: Outcome | None = None
    fail: Outcome | None = None
    item_id: str | None = None
    phone_number: str | None = None


RuleSet = Union[Rule, list[Rule]]


class StateMapEntry(BaseModel):
    """Per-narrative-state description and handler overrides"""
    description: str | None = None
    overrides: dict[str, RuleSet] = Field(default_factory=dict)


# =============================================================================
# Entities
# =============================================================================


class Capabilities(BaseModel):
    """Authored traits gating which verbs are structurally possible"""
    openable: bool = False
    lockable: bool = False
    breakable: bool = False
    movable: bool = False
    powerable: bool = False
    container: bool = False
    readable: bool = False
    inputtable: bool = False
    searchable: bool = False
    usable: bool = False
    combinable: bool = False
    takeable: bool = False


class AuthoredState(BaseModel):
    """Initial values for the mutable per-entity fields"""
    is_visible: bool = True
    is_open: bool = False
    is_locked: bool = False
    is_broken: bool = False
    is_moved: bool = False
    is_powered_on: bool = False
    taken: bool = False
    current_state_id: str = "default"


class EntityChildren(BaseModel):
    """Entities authored as starting inside this one"""
    objects: list[str] = Field(default_factory=list)
    items: list[str] = Field(default_factory=list)


class InputConfig(BaseModel):
    """Password or code an inputtable object accepts"""
    type: Literal["phrase", "code"] = "phrase"
    validation: str
    hint: str | None = None


class Entity(BaseModel):
    """Fields shared by objects and items"""
    id: str
    name: str
    alternate_names: list[str] = Field(default_factory=list)
    description: str = ""
    capabilities: Capabilities = Field(default_factory=Capabilities)
    state: AuthoredState = Field(default_factory=AuthoredState)
    handlers: dict[str, RuleSet] = Field(default_factory=dict)
    state_map: dict[str, StateMapEntry] = Field(default_factory=dict)
    zone: str | None = None  # zone id, or "personal" for carried equipment
    children: EntityChildren = Field(default_factory=EntityChildren)
    personal: bool = False
    tags: list[str] = Field(default_factory=list)
    fallback_messages: dict[str, str] = Field(default_factory=dict)
    media: Media | None = None

    @property
    def is_personal(self) -> bool:
        return self.personal or self.zone == "personal"


class GameObject(Entity):
    """Fixed scenery the player interacts with (desks, safes, crates)"""
    archetype: str = ""
    input: InputConfig | None = None


class Item(Entity):
    """Something that can be carried"""
    is_device: bool = False
    is_phone: bool = False
    device_help: str | None = None


class Topic(BaseModel):
    """Scripted conversation topic"""
    topic_id: str
    label: str = ""
    keywords: list[str] = Field(default_factory=list)
    once: bool = False
    required_flags_all: list[str] = Field(default_factory=list)
    forbidden_flags_any: list[str] = Field(default_factory=list)
    response: Outcome = Field(default_factory=Outcome)


class DemoteRules(BaseModel):
    """When an NPC stops being important to the case"""
    on_flags_all: list[str] = Field(default_factory=list)
    on_topics_completed: list[str] = Field(default_factory=list)


class NPC(BaseModel):
    """Non-player character"""
    id: str
    name: str
    alternate_names: list[str] = Field(default_factory=list)
    description: str = ""
    persona: str = ""
    welcome_message: str = ""
    goodbye_message: str = "You end the conversation."
    topics: list[Topic] = Field(default_factory=list)
    default_response: str = "They don't seem to know anything about that."
    freeform: bool = False
    demote_rules: DemoteRules | None = None
    max_interactions: int | None = None
    limit_reached_message: str = "They have nothing more to say to you."
    stage: str = "active"
    importance: str = "primary"
    handlers: dict[str, RuleSet] = Field(default_factory=dict)


class Portal(BaseModel):
    """Exit from one location to another"""
    portal_id: str
    name: str
    alternate_names: list[str] = Field(default_factory=list)
    description: str = ""
    to_location_id: str
    is_locked: bool = False
    locked_message: str = "It won't budge."

    @property
    def id(self) -> str:
        return self.portal_id


class Zone(BaseModel):
    """Named spatial partition of a location"""
    id: str
    title: str
    object_ids: list[str] = Field(default_factory=list)
    is_default: bool = False
    parent: str | None = None


class Location(BaseModel):
    """Location definition"""
    location_id: str
    name: str
    scene_description: str = ""
    intro_message: str | None = None
    zones: list[Zone] = Field(default_factory=list)
    objects: list[str] = Field(default_factory=list)
    npcs: list[str] = Field(default_factory=list)
    exit_portals: list[str] = Field(default_factory=list)
    spatial_mode: Literal["compact", "sprawling"] = "compact"
    transition_templates: list[str] = Field(default_factory=list)

    def get_zone(self, zone_id: str | None) -> Zone | None:
        if zone_id is None:
            return None
        return next((z for z in self.zones if z.id == zone_id), None)


class Objective(BaseModel):
    flag: str
    label: str


class Chapter(BaseModel):
    """Chapter of the case"""
    id: str
    title: str
    goal: str = ""
    objectives: list[Objective] = Field(default_factory=list)
    intro_message: str | None = None


class Game(BaseModel):
    """Complete loaded game cartridge"""
    id: str
    title: str
    description: str = ""
    start_location_id: str
    start_chapter_id: str | None = None
    starting_inventory: list[str] = Field(default_factory=list)
    narrator_name: str = "Narrator"
    chapters: dict[str, Chapter] = Field(default_factory=dict)
    locations: dict[str, Location]
    game_objects: dict[str, GameObject] = Field(default_factory=dict)
    items: dict[str, Item] = Field(default_factory=dict)
    npcs: dict[str, NPC] = Field(default_factory=dict)
    portals: dict[str, Portal] = Field(default_factory=dict)
    fallback_messages: dict[str, str] = Field(default_factory=dict)

    def get_location(self, location_id: str) -> Location | None:
        """Get a location by ID"""
        return self.locations.get(location_id)
