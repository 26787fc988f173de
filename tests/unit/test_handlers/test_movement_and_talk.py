"""Unit tests for movement, talk and conversation handlers.

Tests cover:
- Portals, destination names and locked exits
- Zone moves in a sprawling location
- Walking up to objects and NPCs
- Conversation topics: keywords, once, required flags, demotion
"""

import pytest

from casefile.engine.handlers import ConversationHandler, MovementHandler, TalkHandler
from casefile.engine.handlers.talk import is_ending_conversation
from casefile.models.effects import (
    CompleteTopic,
    DemoteNpc,
    EndConversation,
    EnterPortal,
    IncrementEntityCounter,
    SetFlag,
    SetZone,
    ShowMessage,
    StartConversation,
)
from tests.mocks.llm import MockDialogue


def says(result) -> list[str]:
    return [e.content for e in result.effects if isinstance(e, ShowMessage)]


def advance(reducer, state, *effects):
    return reducer.apply_all(list(effects), state).state


class TestPortals:
    """Leaving through exits."""

    def test_go_through_door(self, ctx, parser, new_state) -> None:
        result = MovementHandler(ctx).handle(parser.parse("go hall door"), new_state)

        assert result.effects[0] == EnterPortal(portal_id="portal_hall_door")
        assert says(result)[0] == "You go through the Hall Door."
        assert says(result)[1].startswith("A long hallway")
        assert result.target_kind == "portal"

    def test_go_by_destination_name(self, ctx, parser, new_state) -> None:
        result = MovementHandler(ctx).handle(parser.parse("go to second-floor hallway"), new_state)

        assert result.target_id == "portal_hall_door"

    def test_locked_exit(self, ctx, parser, reducer, new_state) -> None:
        state = advance(reducer, new_state, EnterPortal(portal_id="portal_hall_door"))

        result = MovementHandler(ctx).handle(parser.parse("go basement gate"), state)

        assert result.success is False
        assert says(result) == ["The stairwell gate is chained shut."]

    def test_nowhere(self, ctx, parser, new_state) -> None:
        assert says(MovementHandler(ctx).handle(parser.parse("go zeppelin"), new_state)) == [
            "You can't go there."
        ]

    def test_no_target(self, ctx, parser, new_state) -> None:
        assert says(MovementHandler(ctx).handle(parser.parse("go"), new_state)) == [
            "Where do you want to go?"
        ]


class TestZones:
    """Moving between zones."""

    def test_move_to_zone(self, ctx, parser, new_state) -> None:
        result = MovementHandler(ctx).handle(parser.parse("go to clerk's desk"), new_state)

        assert result.effects[0] == SetZone(zone_id="zone_desk")
        assert says(result) == ["You move to the Clerk's Desk."]
        assert result.target_id is None

    def test_already_there(self, ctx, parser, new_state) -> None:
        result = MovementHandler(ctx).handle(parser.parse("go to entrance"), new_state)

        assert says(result) == ["You're already at the Entrance."]

    def test_cannot_skip_to_nested_zone(self, ctx, parser, new_state) -> None:
        result = MovementHandler(ctx).handle(parser.parse("go to top shelf"), new_state)

        assert result.success is False
        assert says(result) == ["You can't get to the Top Shelf from here. Try the Shelves first."]

    def test_nested_zone_from_parent(self, ctx, parser, reducer, new_state) -> None:
        state = advance(reducer, new_state, SetZone(zone_id="zone_shelves"))

        result = MovementHandler(ctx).handle(parser.parse("go to top shelf"), state)

        assert result.effects[0] == SetZone(zone_id="zone_top_shelf")


class TestApproach:
    """Walking up to things."""

    def test_approach_object_in_other_zone(self, ctx, parser, new_state) -> None:
        result = MovementHandler(ctx).handle(parser.parse("go to desk"), new_state)

        assert result.effects == [SetZone(zone_id="zone_desk")]
        assert result.target_id == "obj_desk"
        assert result.target_kind == "object"

    def test_approach_npc(self, ctx, parser, new_state) -> None:
        result = MovementHandler(ctx).handle(parser.parse("go to clerk"), new_state)

        assert says(result) == ["You walk up to Martin Hale."]
        assert result.target_kind == "npc"

    def test_approach_unreachable_zone(self, ctx, parser, new_state) -> None:
        result = MovementHandler(ctx).handle(parser.parse("go to photo"), new_state)

        assert result.success is False
        assert says(result) == ["You can't reach the Surveillance Photo from here."]


class TestTalk:
    """Starting conversations."""

    def test_talk_to_clerk(self, ctx, parser, new_state) -> None:
        result = TalkHandler(ctx).handle(parser.parse("talk to clerk"), new_state)

        assert result.effects[0] == StartConversation(npc_id="npc_clerk")
        assert result.effects[1].speaker == "npc"
        assert result.effects[1].sender_name == "Martin Hale"
        assert says(result) == [
            '"Evening, detective. Or morning, I suppose. Make it quick."',
            "You are talking to Martin Hale. Say GOODBYE to end the conversation.",
        ]

    def test_talk_to_scenery(self, ctx, parser, new_state) -> None:
        result = TalkHandler(ctx).handle(parser.parse("talk to coat rack"), new_state)

        assert says(result) == ["The Coat Rack has nothing to say."]

    def test_interaction_limit(self, ctx, parser, reducer, new_state) -> None:
        state = advance(
            reducer,
            new_state,
            IncrementEntityCounter(entity_id="npc_clerk", counter="interaction_count", by=12),
        )

        result = TalkHandler(ctx).handle(parser.parse("talk to clerk"), state)

        assert result.success is False
        assert says(result) == ['"They have nothing more to say to you."']


class TestConversation:
    """ConversationHandler topic routing."""

    @pytest.fixture
    def talking(self, reducer, new_state):
        return advance(reducer, new_state, StartConversation(npc_id="npc_clerk"))

    @pytest.mark.asyncio
    async def test_locked_topic_falls_back_to_default(self, ctx, talking) -> None:
        result = await ConversationHandler(ctx).handle("What about the safe?", talking)

        assert result.effects[0] == IncrementEntityCounter(entity_id="npc_clerk", counter="interaction_count")
        assert says(result) == ['"I really couldn\'t say."']

    @pytest.mark.asyncio
    async def test_topic_by_keyword(self, ctx, talking) -> None:
        result = await ConversationHandler(ctx).handle("Where were you last night?", talking)

        assert CompleteTopic(npc_id="npc_clerk", topic_id="t_night") in result.effects
        assert SetFlag(flag="heard_alibi") in result.effects
        assert says(result) == ['"I locked up at nine sharp. The safe was shut. I checked it twice."']
        assert not any(isinstance(e, DemoteNpc) for e in result.effects)

    @pytest.mark.asyncio
    async def test_required_flags_then_demotion(self, ctx, reducer, talking) -> None:
        handler = ConversationHandler(ctx)
        first = await handler.handle("tell me about the break-in", talking)
        state = advance(reducer, talking, *first.effects)

        result = await handler.handle("who knows the safe combination?", state)

        assert says(result) == [
            '"Only the director knows the word. She always says justice should be blind."'
        ]
        assert result.effects[-1] == DemoteNpc(npc_id="npc_clerk")

    @pytest.mark.asyncio
    async def test_once_topics_do_not_repeat(self, ctx, reducer, talking) -> None:
        handler = ConversationHandler(ctx)
        first = await handler.handle("last night", talking)
        state = advance(reducer, talking, *first.effects)

        again = await handler.handle("last night", state)

        assert says(again) == ['"I really couldn\'t say."']

    @pytest.mark.asyncio
    async def test_goodbye(self, ctx, talking) -> None:
        result = await ConversationHandler(ctx).handle("Thanks. Goodbye.", talking)

        assert result.effects[0] == EndConversation()
        assert says(result) == ['"I\'ll be at my desk if you need me."']

    @pytest.mark.asyncio
    async def test_freeform_dialogue(self, ctx, talking) -> None:
        freeform = ctx.game.model_copy(deep=True)
        freeform.npcs["npc_clerk"].freeform = True
        ctx.game = freeform
        dialogue = MockDialogue(line="Ask the director, not me.")

        result = await ConversationHandler(ctx, dialogue=dialogue).handle("How is your wife?", talking)

        assert says(result) == ['"Ask the director, not me."']
        assert dialogue.calls == ["How is your wife?"]

    @pytest.mark.asyncio
    async def test_freeform_failure_uses_default(self, ctx, talking) -> None:
        freeform = ctx.game.model_copy(deep=True)
        freeform.npcs["npc_clerk"].freeform = True
        ctx.game = freeform

        result = await ConversationHandler(ctx, dialogue=MockDialogue(error=True)).handle(
            "How is your wife?", talking
        )

        assert says(result) == ['"I really couldn\'t say."']

    @pytest.mark.parametrize(
        "text, ending",
        [("goodbye", True), ("OK, bye then", True), ("I need to leave", True), ("bylaws", False)],
    )
    def test_is_ending_conversation(self, text, ending) -> None:
        assert is_ending_conversation(text) is ending
