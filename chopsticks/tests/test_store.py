"""
Tests for the shared state store and the match wire format.
"""

import asyncio

import pytest

from ..engine_core.state import MatchState, PlayerHands, Seat, Hand, RoomType, JankenChoice, SelectedHand
from ..errors import InvalidSnapshot, StoreWriteFailure
from ..store import InMemoryStore, deep_merge
from ..store.base import SharedStateStore
from .conftest import settle


class TestWireFormat:
    """Tests for MatchState.to_dict / from_dict."""

    def test_round_trip_is_lossless(self):
        state = MatchState.new_room("XY12AB", RoomType.RANDOM, "Alice", 1000.5)._copy_with(
            hands={Seat.ONE: PlayerHands(3, 0), Seat.TWO: PlayerHands(2, 4)},
            current_player=Seat.TWO,
            selected_hand=SelectedHand(Seat.TWO, Hand.RIGHT),
            timeout_count={Seat.ONE: 1, Seat.TWO: 0},
            janken={Seat.ONE: JankenChoice.PAPER, Seat.TWO: None},
            janken_round=2,
            revision=17,
            players=2,
        )
        assert MatchState.from_dict(state.to_dict()) == state

    def test_seat_keys_are_strings(self, fresh_state):
        data = fresh_state.to_dict()
        assert set(data["hands"]) == {"1", "2"}
        assert data["phase"] == "playing"

    def test_missing_field_raises_invalid_snapshot(self, fresh_state):
        data = fresh_state.to_dict()
        del data["hands"]
        with pytest.raises(InvalidSnapshot):
            MatchState.from_dict(data)

    def test_out_of_range_hand_raises_invalid_snapshot(self, fresh_state):
        data = fresh_state.to_dict()
        data["hands"]["2"]["left"] = 7
        with pytest.raises(InvalidSnapshot):
            MatchState.from_dict(data)

    def test_unknown_phase_raises_invalid_snapshot(self, fresh_state):
        data = fresh_state.to_dict()
        data["phase"] = "overtime"
        with pytest.raises(InvalidSnapshot):
            MatchState.from_dict(data)


class TestDeepMerge:
    """Tests for merge writes."""

    def test_nested_fields_merge(self):
        base = {"janken": {"1": "rock", "2": None}, "revision": 3}
        merged = deep_merge(base, {"janken": {"2": "paper"}, "revision": 4})

        assert merged == {"janken": {"1": "rock", "2": "paper"}, "revision": 4}
        assert base["janken"]["2"] is None

    def test_explicit_none_overwrites(self):
        assert deep_merge({"winner": 1}, {"winner": None}) == {"winner": None}


class TestInMemoryStore:
    """Tests for the in-process store."""

    def test_set_and_get(self, store):
        async def scenario():
            await store.set("ROOM", {"players": 1})
            return await store.get("ROOM"), await store.get("MISSING")

        document, missing = asyncio.run(scenario())
        assert document == {"players": 1}
        assert missing is None

    def test_reads_are_copies(self, store):
        async def scenario():
            await store.set("ROOM", {"seats": {"1": {"name": "A"}}})
            first = await store.get("ROOM")
            first["seats"]["1"]["name"] = "changed"
            return await store.get("ROOM")

        assert asyncio.run(scenario())["seats"]["1"]["name"] == "A"

    def test_merge_write_keeps_other_fields(self, store):
        async def scenario():
            await store.set("ROOM", {"players": 1, "seats": {"1": {"name": "A"}}})
            await store.set("ROOM", {"seats": {"2": {"name": "B"}}}, merge=True)
            return await store.get("ROOM")

        assert asyncio.run(scenario()) == {
            "players": 1,
            "seats": {"1": {"name": "A"}, "2": {"name": "B"}},
        }

    def test_plain_write_replaces_document(self, store):
        async def scenario():
            await store.set("ROOM", {"players": 1, "room_type": "random"})
            await store.set("ROOM", {"players": 2})
            return await store.get("ROOM")

        assert asyncio.run(scenario()) == {"players": 2}

    def test_unserializable_write_fails(self, store):
        async def scenario():
            await store.set("ROOM", {"value": object()})

        with pytest.raises(StoreWriteFailure):
            asyncio.run(scenario())

    def test_subscribe_delivers_current_then_updates(self, store):
        received = []

        async def scenario():
            await store.set("ROOM", {"revision": 1})
            unsubscribe = store.subscribe("ROOM", received.append)
            await settle()
            await store.set("ROOM", {"revision": 2})
            await settle()
            unsubscribe()
            await store.set("ROOM", {"revision": 3})
            await settle()

        asyncio.run(scenario())
        assert received == [{"revision": 1}, {"revision": 2}]

    def test_delete_notifies_none(self, store):
        received = []

        async def scenario():
            await store.set("ROOM", {"revision": 1})
            store.subscribe("ROOM", received.append)
            await settle()
            await store.delete("ROOM")
            await settle()
            await store.delete("ROOM")  # missing key is fine

        asyncio.run(scenario())
        assert received == [{"revision": 1}, None]

    def test_query_filters_documents(self, store):
        async def scenario():
            await store.set("A", {"room_type": "random", "players": 1})
            await store.set("B", {"room_type": "random", "players": 2})
            await store.set("C", {"room_type": "private", "players": 1})
            return await store.query(lambda d: d["room_type"] == "random" and d["players"] == 1)

        assert asyncio.run(scenario()) == [("A", {"room_type": "random", "players": 1})]

    def test_update_if_is_conditional(self, store):
        async def scenario():
            await store.set("ROOM", {"players": 1})
            first = await store.update_if("ROOM", {"players": 1}, {"players": 2})
            second = await store.update_if("ROOM", {"players": 1}, {"players": 2})
            missing = await store.update_if("NOPE", {"players": 1}, {"players": 2})
            return first, second, missing

        assert asyncio.run(scenario()) == (True, False, False)


class _PlainStore(InMemoryStore):
    """Store without a conditional write of its own."""

    update_if = SharedStateStore.update_if


class TestDefaultConditionalUpdate:
    """The interface's read-then-write update_if."""

    def test_default_update_if_checks_then_merges(self):
        store = _PlainStore()

        async def scenario():
            await store.set("ROOM", {"players": 1, "revision": 0})
            ok = await store.update_if("ROOM", {"players": 1}, {"players": 2})
            return ok, await store.get("ROOM")

        ok, document = asyncio.run(scenario())
        assert ok
        assert document == {"players": 2, "revision": 0}
