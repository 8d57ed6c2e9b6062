"""Tests for recordstore.sessions module."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from recordstore import SqliteAdapter, StoreError
from recordstore.sessions import Session, SessionSchema, SessionStore
from recordstore.values import Double, Str


@pytest.fixture
def store(conn):
    adapter = SqliteAdapter(conn, "sessions", SessionSchema())
    adapter.initialize()
    return SessionStore(adapter)


class TestSession:
    """Test the Session record."""

    def test_ids_are_unique(self):
        assert Session().id != Session().id

    def test_no_expiry(self):
        assert not Session().is_expired()

    def test_expire_in(self):
        session = Session()
        session.expire_in(60)
        assert not session.is_expired()
        assert session.is_expired(now=datetime.now(timezone.utc) + timedelta(minutes=2))


class TestSessionSchema:
    """Test SessionSchema conversions."""

    def test_serialize(self):
        session = Session(id="abc", data={"b": 1, "a": [1, 2]})
        assert SessionSchema().serialize_data(session) == {
            "id": Str("abc"),
            "data": Str('{"a": [1, 2], "b": 1}'),
            "expires_at": Double(0.0),
        }

    def test_unserializable_data(self):
        assert SessionSchema().serialize_data(Session(data={"x": object()})) is None

    def test_other_record_types(self):
        assert SessionSchema().serialize_data({"id": "abc"}) is None

    def test_round_trip(self):
        schema = SessionSchema()
        session = Session(id="abc", data={"user_id": 7})
        assert schema.deserialize_data(schema.serialize_data(session)) == session

    def test_bad_json(self):
        row = {"id": Str("abc"), "data": Str("{not json"), "expires_at": Double(0.0)}
        assert SessionSchema().deserialize_data(row) is None


class TestSessionStore:
    """Test the async SessionStore facade."""

    def test_store_and_load(self, store):
        session = Session(data={"user_id": 7})
        session_id = asyncio.run(store.store_session(session))
        assert session_id == session.id
        loaded = asyncio.run(store.load_session(session_id))
        assert loaded.data == {"user_id": 7}

    def test_store_twice_replaces(self, store):
        session = Session(data={"n": 1})
        asyncio.run(store.store_session(session))
        session.data["n"] = 2
        asyncio.run(store.store_session(session))
        assert asyncio.run(store.load_session(session.id)).data == {"n": 2}

    def test_load_missing(self, store):
        assert asyncio.run(store.load_session("missing")) is None

    def test_expired_session_is_not_loaded(self, store):
        session = Session()
        session.expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)
        asyncio.run(store.store_session(session))
        assert asyncio.run(store.load_session(session.id)) is None

    def test_expiry_survives_storage(self, store):
        session = Session()
        session.expire_in(3600)
        asyncio.run(store.store_session(session))
        loaded = asyncio.run(store.load_session(session.id))
        assert abs(loaded.expires_at - session.expires_at) < timedelta(milliseconds=1)

    def test_destroy(self, store):
        session = Session()
        asyncio.run(store.store_session(session))
        asyncio.run(store.destroy_session(session))
        assert asyncio.run(store.load_session(session.id)) is None

    def test_storing_a_non_session_raises(self, store):
        with pytest.raises(StoreError):
            store.adapter.upsert("abc", {"id": "abc"})

    def test_destroy_failure_raises(self, store, monkeypatch):
        monkeypatch.setattr(store.adapter, "delete", lambda key: False)
        with pytest.raises(StoreError, match="Unable to delete session"):
            asyncio.run(store.destroy_session(Session()))

    def test_clear_store(self, store):
        sessions = [Session() for _ in range(3)]

        async def run():
            await asyncio.gather(*(store.store_session(s) for s in sessions))
            await store.clear_store()
            return await asyncio.gather(*(store.load_session(s.id) for s in sessions))

        assert asyncio.run(run()) == [None, None, None]
