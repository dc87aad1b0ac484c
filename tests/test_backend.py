"""Tests for the in-memory room registry."""

from datetime import timedelta

import pytest

from backend import RoomStore
from errors import RoomAlreadyExists, RoomNotFound
from tests.conftest import T0


class TestRoomStore:

    def test_create_sets_lifetime(self, store):
        room = store.create("R", T0)

        assert room.name == "R"
        assert room.created_at == T0
        assert room.expires_at == T0 + timedelta(hours=24)
        assert room.expires_at > room.created_at
        assert room.members == {}

    def test_create_duplicate_fails_and_keeps_original(self, store):
        original = store.create("R", T0)
        original.add_member("c1", "alice")

        with pytest.raises(RoomAlreadyExists) as exc_info:
            store.create("R", T0 + timedelta(hours=1))

        assert exc_info.value.message == 'Room "R" already exists. Please choose a different name.'
        room = store.get("R")
        assert room is original
        assert room.created_at == T0
        assert room.usernames == ["alice"]

    def test_get_missing_room(self, store):
        with pytest.raises(RoomNotFound) as exc_info:
            store.get("X")
        assert exc_info.value.message == 'Room "X" doesn\'t exist.'

    def test_list_preserves_insertion_order(self, store):
        store.create("b", T0)
        store.create("a", T0 + timedelta(minutes=1))
        store.get("a").add_member("c1", "alice")

        summaries = store.list()

        assert [s.name for s in summaries] == ["b", "a"]
        assert [s.member_count for s in summaries] == [0, 1]
        assert summaries[1].created_at == T0 + timedelta(minutes=1)

    def test_remove_is_idempotent(self, store):
        store.create("R", T0)

        store.remove("R")
        store.remove("R")

        assert "R" not in store
        assert len(store) == 0

    def test_sweep_removes_empty_rooms(self, store):
        store.create("empty", T0)
        store.create("busy", T0)
        store.get("busy").add_member("c1", "alice")

        removed = store.sweep_expired(T0)

        assert removed == {"empty"}
        assert [s.name for s in store.list()] == ["busy"]

    def test_sweep_respects_expiry(self, store):
        store.create("R", T0)
        store.get("R").add_member("c1", "alice")

        assert store.sweep_expired(T0 + timedelta(hours=23)) == set()
        assert "R" in store

        assert store.sweep_expired(T0 + timedelta(hours=25)) == {"R"}
        assert "R" not in store

    def test_sweep_at_exact_expiry(self, store):
        store.create("R", T0)
        store.get("R").add_member("c1", "alice")

        assert store.sweep_expired(T0 + timedelta(hours=24)) == {"R"}

    def test_sweep_twice_is_noop(self, store):
        store.create("R", T0)

        assert store.sweep_expired(T0) == {"R"}
        assert store.sweep_expired(T0) == set()

    def test_custom_lifetime(self):
        store = RoomStore(room_lifetime=timedelta(minutes=5))
        room = store.create("R", T0)
        assert room.expires_at == T0 + timedelta(minutes=5)

    def test_non_positive_lifetime_rejected(self):
        with pytest.raises(ValueError):
            RoomStore(room_lifetime=timedelta(0))
