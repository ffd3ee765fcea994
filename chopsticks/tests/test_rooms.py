"""
Tests for room matchmaking.

Tests:
- Create, join by code, random match
- Room not found / room full
- Seat claim races with and without atomic claims
- Cancel and leave
"""

import asyncio
import random

import pytest

from ..config import GameConfig
from ..engine_core.state import Seat, Phase, RoomType
from ..errors import RoomFull, RoomNotFound
from ..rooms import RoomManager
from ..rooms.manager import ROOM_CODE_ALPHABET
from ..store import InMemoryStore
from .conftest import FakeClock


def rooms_for(store, config=None, seed=0):
    return RoomManager(store, config=config or GameConfig(), clock=FakeClock(), rng=random.Random(seed))


class TestCreateRoom:
    """Tests for opening rooms."""

    def test_create_room_writes_waiting_match(self, store):
        async def scenario():
            room = await rooms_for(store).create_room("Alice")
            return room, await store.get(room.code)

        room, document = asyncio.run(scenario())

        assert room.seat is Seat.ONE
        assert room.waiting
        assert len(room.code) == 6
        assert set(room.code) <= set(ROOM_CODE_ALPHABET)
        assert document["phase"] == Phase.JANKEN.value
        assert document["room_type"] == RoomType.PRIVATE.value
        assert document["players"] == 1
        assert document["seats"]["1"]["name"] == "Alice"

    def test_codes_do_not_collide(self, store):
        async def scenario():
            rooms = rooms_for(store)
            return {(await rooms.create_room(f"P{i}")).code for i in range(20)}

        assert len(asyncio.run(scenario())) == 20


class TestJoinRoom:
    """Tests for joining by code."""

    def test_join_claims_seat_two(self, store):
        async def scenario():
            host = await rooms_for(store, seed=1).create_room("Alice")
            guest = await rooms_for(store, seed=2).join_room(host.code.lower(), "Bob")
            return guest, await store.get(host.code)

        guest, document = asyncio.run(scenario())

        assert guest.seat is Seat.TWO
        assert not guest.waiting
        assert guest.state.seats[Seat.TWO].name == "Bob"
        assert guest.state.seats[Seat.ONE].name == "Alice"
        assert document["players"] == 2
        assert document["seats"]["1"]["name"] == "Alice"
        assert document["seats"]["2"]["name"] == "Bob"

    def test_unknown_code_raises_room_not_found(self, store):
        with pytest.raises(RoomNotFound) as exc_info:
            asyncio.run(rooms_for(store).join_room("NOPE00", "Bob"))
        assert exc_info.value.room_code == "NOPE00"

    def test_full_room_raises_room_full(self, store):
        async def scenario():
            host = await rooms_for(store, seed=1).create_room("Alice")
            await rooms_for(store, seed=2).join_room(host.code, "Bob")
            await rooms_for(store, seed=3).join_room(host.code, "Carol")

        with pytest.raises(RoomFull):
            asyncio.run(scenario())


class TestRandomMatch:
    """Tests for random matchmaking."""

    def test_no_waiting_room_opens_one(self, store):
        room = asyncio.run(rooms_for(store).find_random_match("Alice"))

        assert room.seat is Seat.ONE
        assert room.state.room_type is RoomType.RANDOM

    def test_waiting_random_room_is_claimed(self, store):
        async def scenario():
            first = await rooms_for(store, seed=1).find_random_match("Alice")
            second = await rooms_for(store, seed=2).find_random_match("Bob")
            return first, second

        first, second = asyncio.run(scenario())

        assert second.code == first.code
        assert second.seat is Seat.TWO

    def test_private_rooms_are_not_matched(self, store):
        async def scenario():
            private = await rooms_for(store, seed=1).create_room("Alice")
            random_room = await rooms_for(store, seed=2).find_random_match("Bob")
            return private, random_room

        private, random_room = asyncio.run(scenario())

        assert random_room.code != private.code
        assert random_room.seat is Seat.ONE

    def test_simultaneous_claims_seat_one_guest(self, store):
        """Two seekers racing for one waiting room: one claims it, one opens a new room."""
        async def scenario():
            waiting = await rooms_for(store, seed=1).find_random_match("Alice")
            bob, carol = await asyncio.gather(
                rooms_for(store, seed=2).find_random_match("Bob"),
                rooms_for(store, seed=3).find_random_match("Carol"),
            )
            return waiting, bob, carol

        waiting, bob, carol = asyncio.run(scenario())

        claimed = [room for room in (bob, carol) if room.code == waiting.code]
        assert len(claimed) == 1
        assert claimed[0].seat is Seat.TWO


class _SlowReadStore(InMemoryStore):
    """Store whose reads yield to the event loop, like a network round trip."""

    async def get(self, key):
        document = await super().get(key)
        await asyncio.sleep(0)
        return document


class TestClaimRace:
    """The read-then-write claim can double-book a room."""

    def test_non_atomic_claims_can_both_succeed(self):
        store = _SlowReadStore()
        config = GameConfig(atomic_claims=False)

        async def scenario():
            host = await rooms_for(store, config, seed=1).create_room("Alice")
            return await asyncio.gather(
                rooms_for(store, config, seed=2).join_room(host.code, "Bob"),
                rooms_for(store, config, seed=3).join_room(host.code, "Carol"),
            )

        bob, carol = asyncio.run(scenario())
        assert bob.seat is Seat.TWO and carol.seat is Seat.TWO

    def test_atomic_claims_admit_one_guest(self):
        store = _SlowReadStore()
        config = GameConfig(atomic_claims=True)

        async def scenario():
            host = await rooms_for(store, config, seed=1).create_room("Alice")
            return await asyncio.gather(
                rooms_for(store, config, seed=2).join_room(host.code, "Bob"),
                rooms_for(store, config, seed=3).join_room(host.code, "Carol"),
                return_exceptions=True,
            )

        bob, carol = asyncio.run(scenario())
        assert bob.seat is Seat.TWO
        assert isinstance(carol, RoomFull)


class TestLeaveRoom:
    """Tests for cancel and leave."""

    def test_cancel_deletes_waiting_room(self, store):
        async def scenario():
            rooms = rooms_for(store)
            room = await rooms.create_room("Alice")
            cancelled = await rooms.cancel(room)
            return cancelled, await store.get(room.code)

        cancelled, document = asyncio.run(scenario())
        assert cancelled
        assert document is None

    def test_guest_cannot_cancel(self, store):
        async def scenario():
            host = await rooms_for(store, seed=1).create_room("Alice")
            guest = await rooms_for(store, seed=2).join_room(host.code, "Bob")
            return await rooms_for(store).cancel(guest)

        assert asyncio.run(scenario()) is False

    def test_leave_failure_is_not_raised(self, flaky_store):
        async def scenario():
            rooms = rooms_for(flaky_store)
            room = await rooms.create_room("Alice")
            flaky_store.failing = True
            return await rooms.leave(room.code)

        assert asyncio.run(scenario()) is False
