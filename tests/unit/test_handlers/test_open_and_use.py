"""Unit tests for the open, move, break, read and use handlers.

Tests cover:
- Open/close/unlock gating and the password prompt
- One-way transitions and what they reveal
- Authored rules, including item-specific use rules and their fail branch
- Reading pages in order
"""

import pytest

from casefile.engine.handlers import BreakHandler, MoveHandler, OpenHandler, ReadHandler, UseHandler
from casefile.engine.handlers.read import FINISHED_READING
from casefile.models.effects import (
    AddItem,
    IncrementEntityCounter,
    RevealFromParent,
    SetDeviceFocus,
    SetEntityState,
    SetStateId,
    SetZone,
    ShowMessage,
    StartInteraction,
)


def says(result) -> list[str]:
    return [e.content for e in result.effects if isinstance(e, ShowMessage)]


def advance(reducer, state, *effects):
    return reducer.apply_all(list(effects), state).state


@pytest.fixture
def at_desk(reducer, new_state):
    return advance(reducer, new_state, SetZone(zone_id="zone_desk"))


@pytest.fixture
def at_shelves(reducer, new_state):
    return advance(reducer, new_state, SetZone(zone_id="zone_shelves"))


class TestOpen:
    """OpenHandler."""

    def test_open_lists_contents(self, ctx, parser, at_desk) -> None:
        result = OpenHandler(ctx).handle(parser.parse("open drawer"), at_desk)

        assert result.effects[0] == SetEntityState(entity_id="obj_drawer", patch={"is_open": True})
        assert says(result) == ["You open the Desk Drawer. Inside you see: Torn Note."]

    def test_already_open(self, ctx, parser, reducer, at_desk) -> None:
        state = advance(reducer, at_desk, SetEntityState(entity_id="obj_drawer", patch={"is_open": True}))

        result = OpenHandler(ctx).handle(parser.parse("open drawer"), state)

        assert result.success is False
        assert says(result) == ["It is already open."]

    def test_already_closed(self, ctx, parser, at_desk) -> None:
        assert says(OpenHandler(ctx).handle(parser.parse("close drawer"), at_desk)) == [
            "It is already closed."
        ]

    def test_safe_is_not_openable(self, ctx, parser, at_desk) -> None:
        result = OpenHandler(ctx).handle(parser.parse("open safe"), at_desk)

        assert says(result) == ["You can't open the Wall Safe."]

    def test_unlock_prompts_for_password(self, ctx, parser, at_desk) -> None:
        result = OpenHandler(ctx).handle(parser.parse("unlock safe"), at_desk)

        assert result.effects[0] == StartInteraction(object_id="obj_safe")
        assert says(result) == [
            "The Wall Safe needs a password. Type it in, or say EXIT to step away."
            "\n\nA brass plate under the dial reads: WHAT IS BLIND?"
        ]

    def test_wrong_tool(self, ctx, parser, reducer, at_desk) -> None:
        state = advance(reducer, at_desk, AddItem(item_id="item_crowbar"))

        result = OpenHandler(ctx).handle(parser.parse("unlock safe with crowbar"), state)

        assert result.success is False
        assert says(result) == ["The Crowbar doesn't fit the Wall Safe."]

    def test_missing_capability(self, ctx, parser, at_desk) -> None:
        assert says(OpenHandler(ctx).handle(parser.parse("unlock drawer"), at_desk)) == [
            "You can't unlock the Desk Drawer."
        ]

    def test_out_of_zone(self, ctx, parser, new_state) -> None:
        result = OpenHandler(ctx).handle(parser.parse("open drawer"), new_state)

        assert result.success is False
        assert "Desk Drawer" in says(result)[0]


class TestMoveAndBreak:
    """MoveHandler and BreakHandler."""

    def test_moving_rug_reveals_trapdoor(self, ctx, parser, reducer, new_state) -> None:
        result = MoveHandler(ctx).handle(parser.parse("move rug"), new_state)

        assert result.effects[:2] == [
            SetEntityState(entity_id="obj_rug", patch={"is_moved": True}),
            RevealFromParent(entity_id="obj_trapdoor", parent_id="obj_rug"),
        ]
        assert says(result) == ["You move the Faded Rug aside. You find: Trapdoor."]

        state = advance(reducer, new_state, *result.effects)
        assert ctx.access.check("obj_trapdoor", state).allowed is True

    def test_already_moved(self, ctx, parser, reducer, new_state) -> None:
        state = advance(reducer, new_state, SetEntityState(entity_id="obj_rug", patch={"is_moved": True}))

        assert says(MoveHandler(ctx).handle(parser.parse("push rug"), state)) == [
            "It has already been moved."
        ]

    def test_authored_move_rule(self, ctx, parser, at_desk) -> None:
        result = MoveHandler(ctx).handle(parser.parse("move painting"), at_desk)

        assert result.effects[0] == SetEntityState(entity_id="obj_painting", patch={"is_moved": True})
        assert result.effects[1] == SetStateId(entity_id="obj_painting", to="tilted")
        assert says(result)[0].startswith("You tilt the painting")

    def test_immovable(self, ctx, parser, at_desk) -> None:
        assert says(MoveHandler(ctx).handle(parser.parse("move desk"), at_desk)) == [
            "You can't move the Desk."
        ]

    def test_break_needs_crowbar(self, ctx, parser, at_shelves) -> None:
        result = BreakHandler(ctx).handle(parser.parse("break crate"), at_shelves)

        assert result.success is False
        assert len(result.effects) == 1
        assert says(result) == ["The slats are too strong to break with your bare hands."]

    def test_break_with_crowbar_carried(self, ctx, parser, reducer, at_shelves) -> None:
        state = advance(reducer, at_shelves, AddItem(item_id="item_crowbar"))

        result = BreakHandler(ctx).handle(parser.parse("break crate"), state)

        assert result.success is True
        assert result.effects[0] == SetEntityState(entity_id="obj_crate", patch={"is_broken": True})
        assert RevealFromParent(entity_id="item_pouch", parent_id="obj_crate") in result.effects

    def test_break_with_instrument_uses_use_rules(self, ctx, parser, reducer, at_shelves) -> None:
        state = advance(reducer, at_shelves, AddItem(item_id="item_crowbar"))
        handler = BreakHandler(ctx, use_handler=UseHandler(ctx))

        result = handler.handle(parser.parse("break crate with crowbar"), state)

        assert says(result) == ["You jam the crowbar under the lid. The crate splinters open."]

    def test_unbreakable(self, ctx, parser, at_desk) -> None:
        assert says(BreakHandler(ctx).handle(parser.parse("smash desk"), at_desk)) == [
            "The Desk can't be broken. Try a different approach."
        ]


class TestRead:
    """ReadHandler."""

    def test_pages_in_order(self, ctx, parser, reducer, new_state) -> None:
        handler = ReadHandler(ctx)
        state = new_state
        seen = []
        for _ in range(3):
            result = handler.handle(parser.parse("read notebook"), state)
            seen.extend(says(result))
            state = advance(reducer, state, *result.effects)

        assert seen[0].startswith("Page one:")
        assert seen[1].startswith("Page two:")
        assert seen[2] == FINISHED_READING.format(name="Notebook")

    def test_plain_description(self, ctx, parser, at_desk) -> None:
        result = ReadHandler(ctx).handle(parser.parse("read ledger"), at_desk)

        assert isinstance(result.effects[0], IncrementEntityCounter)
        assert says(result) == ["The visitor ledger. The last entry is from yesterday at 8:52 p.m."]

    def test_unreadable(self, ctx, parser, new_state) -> None:
        assert says(ReadHandler(ctx).handle(parser.parse("read rug"), new_state)) == [
            "There's nothing to read on the Faded Rug."
        ]


class TestUse:
    """UseHandler."""

    def test_use_crowbar_on_crate(self, ctx, parser, reducer, at_shelves) -> None:
        state = advance(reducer, at_shelves, AddItem(item_id="item_crowbar"))

        result = UseHandler(ctx).handle(parser.parse("use crowbar on crate"), state)

        assert result.success is True
        assert result.target_id == "obj_crate"
        assert result.effects[0] == IncrementEntityCounter(entity_id="item_crowbar", counter="used_count")

        state = advance(reducer, state, *result.effects)
        assert state.world["obj_crate"].is_broken is True
        assert state.world["item_pouch"].is_visible is True

    def test_second_use_answers_with_fail_branch(self, ctx, parser, reducer, at_shelves) -> None:
        state = advance(
            reducer,
            at_shelves,
            AddItem(item_id="item_crowbar"),
            SetEntityState(entity_id="obj_crate", patch={"is_broken": True}),
        )

        result = UseHandler(ctx).handle(parser.parse("use crowbar on crate"), state)

        assert result.success is False
        assert says(result) == ["The crate is already broken."]

    def test_unpaired_use(self, ctx, parser, reducer, at_desk) -> None:
        state = advance(reducer, at_desk, AddItem(item_id="item_crowbar"))

        result = UseHandler(ctx).handle(parser.parse("use crowbar on desk"), state)

        assert says(result) == ["That doesn't seem to work."]

    def test_instrument_not_carried(self, ctx, parser, at_shelves) -> None:
        assert says(UseHandler(ctx).handle(parser.parse("use pouch on crate"), at_shelves)) == [
            'You don\'t have a "pouch".'
        ]

    def test_use_phone_enters_device_mode(self, ctx, parser, new_state) -> None:
        result = UseHandler(ctx).handle(parser.parse("use phone"), new_state)

        assert result.effects[0] == SetDeviceFocus(device_id="item_phone")
        assert says(result)[0].startswith("You take out your Phone.")
        assert "Type CALL" in says(result)[0]

    def test_single_use_without_rule(self, ctx, parser, reducer, new_state) -> None:
        state = advance(reducer, new_state, AddItem(item_id="item_crowbar"))

        assert says(UseHandler(ctx).handle(parser.parse("use crowbar"), state)) == [
            "You use the Crowbar, but nothing happens."
        ]

    def test_not_usable(self, ctx, parser, new_state) -> None:
        assert says(UseHandler(ctx).handle(parser.parse("use notebook"), new_state)) == [
            "You need to specify what to use the Notebook on, or it can't be used by itself."
        ]
