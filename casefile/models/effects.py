"""
Effect models - the contract between command handlers and the reducer.

Handlers never touch PlayerState directly. They return an ordered list of
effects, and EffectReducer applies them one at a time. Effects are plain
serializable data so authored content can carry them too.

Unknown effect types (content written for a newer engine) parse into
UnknownEffect instead of failing the whole cartridge; the reducer logs and
skips them.

Example:
    >>> effects = [
    ...     SetEntityState(entity_id="obj_crate", patch={"is_broken": True}),
    ...     RevealFromParent(entity_id="item_gem", parent_id="obj_crate"),
    ...     ShowMessage(content="The crate splinters apart."),
    ... ]
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Discriminator, Field, Tag


class EffectType(str, Enum):
    """All effect types understood by the reducer.

    Categories:
        Flags/counters: SET_FLAG, INC_COUNTER, LINK_ENABLE, LINK_DISABLE
        Entities: SET_ENTITY_STATE, SET_STATE_ID, INCREMENT_ENTITY_COUNTER,
            REVEAL_ENTITY, HIDE_ENTITY
        Containment: REVEAL_FROM_PARENT, ADD_TO_CONTAINER, REMOVE_FROM_CONTAINER
        Inventory: ADD_ITEM, REMOVE_ITEM, CREATE_DYNAMIC_ITEM
        Movement: MOVE_TO_LOCATION, TELEPORT, ENTER_PORTAL, SET_ZONE
        Attention/modes: SET_FOCUS, CLEAR_FOCUS, SET_DEVICE_FOCUS,
            CLEAR_DEVICE_FOCUS, START_CONVERSATION, END_CONVERSATION,
            START_INTERACTION, END_INTERACTION
        NPCs: COMPLETE_TOPIC, DEMOTE_NPC
        Story: SET_CHAPTER, START_TIMER, CANCEL_TIMER
        Output: SHOW_MESSAGE
    """

    SET_FLAG = "SET_FLAG"
    INC_COUNTER = "INC_COUNTER"
    LINK_ENABLE = "LINK_ENABLE"
    LINK_DISABLE = "LINK_DISABLE"

    SET_ENTITY_STATE = "SET_ENTITY_STATE"
    SET_STATE_ID = "SET_STATE_ID"
    INCREMENT_ENTITY_COUNTER = "INCREMENT_ENTITY_COUNTER"
    REVEAL_ENTITY = "REVEAL_ENTITY"
    HIDE_ENTITY = "HIDE_ENTITY"

    REVEAL_FROM_PARENT = "REVEAL_FROM_PARENT"
    ADD_TO_CONTAINER = "ADD_TO_CONTAINER"
    REMOVE_FROM_CONTAINER = "REMOVE_FROM_CONTAINER"

    ADD_ITEM = "ADD_ITEM"
    REMOVE_ITEM = "REMOVE_ITEM"
    CREATE_DYNAMIC_ITEM = "CREATE_DYNAMIC_ITEM"

    MOVE_TO_LOCATION = "MOVE_TO_LOCATION"
    TELEPORT = "TELEPORT"
    ENTER_PORTAL = "ENTER_PORTAL"
    SET_ZONE = "SET_ZONE"

    SET_FOCUS = "SET_FOCUS"
    CLEAR_FOCUS = "CLEAR_FOCUS"
    SET_DEVICE_FOCUS = "SET_DEVICE_FOCUS"
    CLEAR_DEVICE_FOCUS = "CLEAR_DEVICE_FOCUS"
    START_CONVERSATION = "START_CONVERSATION"
    END_CONVERSATION = "END_CONVERSATION"
    START_INTERACTION = "START_INTERACTION"
    END_INTERACTION = "END_INTERACTION"

    COMPLETE_TOPIC = "COMPLETE_TOPIC"
    DEMOTE_NPC = "DEMOTE_NPC"

    SET_CHAPTER = "SET_CHAPTER"
    START_TIMER = "START_TIMER"
    CANCEL_TIMER = "CANCEL_TIMER"

    SHOW_MESSAGE = "SHOW_MESSAGE"


# Flags and counters


class SetFlag(BaseModel):
    type: Literal["SET_FLAG"] = "SET_FLAG"
    flag: str
    value: bool = True


class IncCounter(BaseModel):
    type: Literal["INC_COUNTER"] = "INC_COUNTER"
    key: str
    by: int = 1


class LinkEnable(BaseModel):
    type: Literal["LINK_ENABLE"] = "LINK_ENABLE"
    link_id: str


class LinkDisable(BaseModel):
    type: Literal["LINK_DISABLE"] = "LINK_DISABLE"
    link_id: str


# Entity state


class SetEntityState(BaseModel):
    """Merge a patch of RuntimeState fields into one entity"""
    type: Literal["SET_ENTITY_STATE"] = "SET_ENTITY_STATE"
    entity_id: str
    patch: dict[str, Any] = Field(default_factory=dict)


class SetStateId(BaseModel):
    type: Literal["SET_STATE_ID"] = "SET_STATE_ID"
    entity_id: str
    to: str


class IncrementEntityCounter(BaseModel):
    type: Literal["INCREMENT_ENTITY_COUNTER"] = "INCREMENT_ENTITY_COUNTER"
    entity_id: str
    counter: Literal[
        "examined_count", "used_count", "read_count", "interaction_count"
    ] = "examined_count"
    by: int = 1


class RevealEntity(BaseModel):
    type: Literal["REVEAL_ENTITY"] = "REVEAL_ENTITY"
    entity_id: str


class HideEntity(BaseModel):
    type: Literal["HIDE_ENTITY"] = "HIDE_ENTITY"
    entity_id: str


# Containment


class RevealFromParent(BaseModel):
    """Make a child visible and link it under the parent that revealed it"""
    type: Literal["REVEAL_FROM_PARENT"] = "REVEAL_FROM_PARENT"
    entity_id: str
    parent_id: str


class AddToContainer(BaseModel):
    type: Literal["ADD_TO_CONTAINER"] = "ADD_TO_CONTAINER"
    entity_id: str
    parent_id: str


class RemoveFromContainer(BaseModel):
    type: Literal["REMOVE_FROM_CONTAINER"] = "REMOVE_FROM_CONTAINER"
    entity_id: str


# Inventory


class AddItem(BaseModel):
    type: Literal["ADD_ITEM"] = "ADD_ITEM"
    item_id: str


class RemoveItem(BaseModel):
    type: Literal["REMOVE_ITEM"] = "REMOVE_ITEM"
    item_id: str


class CreateDynamicItem(BaseModel):
    """Synthesize a new item at runtime and put it in the inventory.

    The item payload uses the same shape as an authored Item.
    """
    type: Literal["CREATE_DYNAMIC_ITEM"] = "CREATE_DYNAMIC_ITEM"
    item: dict[str, Any]


# Movement


class MoveToLocation(BaseModel):
    type: Literal["MOVE_TO_LOCATION"] = "MOVE_TO_LOCATION"
    to_location_id: str


class Teleport(BaseModel):
    type: Literal["TELEPORT"] = "TELEPORT"
    to_location_id: str


class EnterPortal(BaseModel):
    type: Literal["ENTER_PORTAL"] = "ENTER_PORTAL"
    portal_id: str


class SetZone(BaseModel):
    type: Literal["SET_ZONE"] = "SET_ZONE"
    zone_id: str | None = None


# Attention and modes


class SetFocus(BaseModel):
    type: Literal["SET_FOCUS"] = "SET_FOCUS"
    focus_id: str
    focus_type: Literal["object", "item", "npc", "device"] = "object"
    transition_message: str | None = None


class ClearFocus(BaseModel):
    type: Literal["CLEAR_FOCUS"] = "CLEAR_FOCUS"


class SetDeviceFocus(BaseModel):
    type: Literal["SET_DEVICE_FOCUS"] = "SET_DEVICE_FOCUS"
    device_id: str


class ClearDeviceFocus(BaseModel):
    type: Literal["CLEAR_DEVICE_FOCUS"] = "CLEAR_DEVICE_FOCUS"


class StartConversation(BaseModel):
    type: Literal["START_CONVERSATION"] = "START_CONVERSATION"
    npc_id: str


class EndConversation(BaseModel):
    type: Literal["END_CONVERSATION"] = "END_CONVERSATION"


class StartInteraction(BaseModel):
    type: Literal["START_INTERACTION"] = "START_INTERACTION"
    object_id: str


class EndInteraction(BaseModel):
    type: Literal["END_INTERACTION"] = "END_INTERACTION"


# NPCs


class CompleteTopic(BaseModel):
    type: Literal["COMPLETE_TOPIC"] = "COMPLETE_TOPIC"
    npc_id: str
    topic_id: str


class DemoteNpc(BaseModel):
    type: Literal["DEMOTE_NPC"] = "DEMOTE_NPC"
    npc_id: str


# Story


class SetChapter(BaseModel):
    type: Literal["SET_CHAPTER"] = "SET_CHAPTER"
    chapter_id: str


class StartTimer(BaseModel):
    type: Literal["START_TIMER"] = "START_TIMER"
    timer_id: str
    turns: int = 1


class CancelTimer(BaseModel):
    type: Literal["CANCEL_TIMER"] = "CANCEL_TIMER"
    timer_id: str


# Output


class ShowMessage(BaseModel):
    """Append a message to the turn's log (never touches world state)"""
    type: Literal["SHOW_MESSAGE"] = "SHOW_MESSAGE"
    content: str
    speaker: Literal["narrator", "npc", "system", "player", "device"] = "narrator"
    sender_name: str | None = None
    message_type: Literal["text", "image", "video", "document"] = "text"
    image_url: str | None = None


class UnknownEffect(BaseModel):
    """Effect type this engine version does not recognise"""
    type: str
    model_config = {"extra": "allow"}


_MODELS: dict[str, type[BaseModel]] = {
    "SET_FLAG": SetFlag,
    "INC_COUNTER": IncCounter,
    "LINK_ENABLE": LinkEnable,
    "LINK_DISABLE": LinkDisable,
    "SET_ENTITY_STATE": SetEntityState,
    "SET_STATE_ID": SetStateId,
    "INCREMENT_ENTITY_COUNTER": IncrementEntityCounter,
    "REVEAL_ENTITY": RevealEntity,
    "HIDE_ENTITY": HideEntity,
    "REVEAL_FROM_PARENT": RevealFromParent,
    "ADD_TO_CONTAINER": AddToContainer,
    "REMOVE_FROM_CONTAINER": RemoveFromContainer,
    "ADD_ITEM": AddItem,
    "REMOVE_ITEM": RemoveItem,
    "CREATE_DYNAMIC_ITEM": CreateDynamicItem,
    "MOVE_TO_LOCATION": MoveToLocation,
    "TELEPORT": Teleport,
    "ENTER_PORTAL": EnterPortal,
    "SET_ZONE": SetZone,
    "SET_FOCUS": SetFocus,
    "CLEAR_FOCUS": ClearFocus,
    "SET_DEVICE_FOCUS": SetDeviceFocus,
    "CLEAR_DEVICE_FOCUS": ClearDeviceFocus,
    "START_CONVERSATION": StartConversation,
    "END_CONVERSATION": EndConversation,
    "START_INTERACTION": StartInteraction,
    "END_INTERACTION": EndInteraction,
    "COMPLETE_TOPIC": CompleteTopic,
    "DEMOTE_NPC": DemoteNpc,
    "SET_CHAPTER": SetChapter,
    "START_TIMER": StartTimer,
    "CANCEL_TIMER": CancelTimer,
    "SHOW_MESSAGE": ShowMessage,
}


def _effect_tag(value: Any) -> str:
    kind = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    if isinstance(kind, EffectType):
        kind = kind.value
    return kind if kind in _MODELS else "UNKNOWN"


Effect = Annotated[
    Union[
        Annotated[SetFlag, Tag("SET_FLAG")],
        Annotated[IncCounter, Tag("INC_COUNTER")],
        Annotated[LinkEnable, Tag("LINK_ENABLE")],
        Annotated[LinkDisable, Tag("LINK_DISABLE")],
        Annotated[SetEntityState, Tag("SET_ENTITY_STATE")],
        Annotated[SetStateId, Tag("SET_STATE_ID")],
        Annotated[IncrementEntityCounter, Tag("INCREMENT_ENTITY_COUNTER")],
        Annotated[RevealEntity, Tag("REVEAL_ENTITY")],
        Annotated[HideEntity, Tag("HIDE_ENTITY")],
        Annotated[RevealFromParent, Tag("REVEAL_FROM_PARENT")],
        Annotated[AddToContainer, Tag("ADD_TO_CONTAINER")],
        Annotated[RemoveFromContainer, Tag("REMOVE_FROM_CONTAINER")],
        Annotated[AddItem, Tag("ADD_ITEM")],
        Annotated[RemoveItem, Tag("REMOVE_ITEM")],
        Annotated[CreateDynamicItem, Tag("CREATE_DYNAMIC_ITEM")],
        Annotated[MoveToLocation, Tag("MOVE_TO_LOCATION")],
        Annotated[Teleport, Tag("TELEPORT")],
        Annotated[EnterPortal, Tag("ENTER_PORTAL")],
        Annotated[SetZone, Tag("SET_ZONE")],
        Annotated[SetFocus, Tag("SET_FOCUS")],
        Annotated[ClearFocus, Tag("CLEAR_FOCUS")],
        Annotated[SetDeviceFocus, Tag("SET_DEVICE_FOCUS")],
        Annotated[ClearDeviceFocus, Tag("CLEAR_DEVICE_FOCUS")],
        Annotated[StartConversation, Tag("START_CONVERSATION")],
        Annotated[EndConversation, Tag("END_CONVERSATION")],
        Annotated[StartInteraction, Tag("START_INTERACTION")],
        Annotated[EndInteraction, Tag("END_INTERACTION")],
        Annotated[CompleteTopic, Tag("COMPLETE_TOPIC")],
        Annotated[DemoteNpc, Tag("DEMOTE_NPC")],
        Annotated[SetChapter, Tag("SET_CHAPTER")],
        Annotated[StartTimer, Tag("START_TIMER")],
        Annotated[CancelTimer, Tag("CANCEL_TIMER")],
        Annotated[ShowMessage, Tag("SHOW_MESSAGE")],
        Annotated[UnknownEffect, Tag("UNKNOWN")],
    ],
    Discriminator(_effect_tag),
]

EffectList = list[Effect]
