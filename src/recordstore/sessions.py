"""Async web-session store backed by a SqliteAdapter.

The adapter is synchronous, so every SessionStore call runs the adapter
operation on a worker thread and awaits it.

Example:
    conn = connect("sessions.db")
    adapter = SqliteAdapter(conn, "sessions", SessionSchema())
    adapter.initialize()
    store = SessionStore(adapter)

    session = Session(data={"user_id": 7})
    session.expire_in(3600)
    session_id = await store.store_session(session)
    loaded = await store.load_session(session_id)
"""

import asyncio
import json
import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Sequence

from .exceptions import StoreError
from .schema import FieldSpec, Schema
from .sqlite import SqliteAdapter
from .values import Double, Kind, Str, Value

logger = logging.getLogger(__name__)


def _new_session_id() -> str:
    return secrets.token_urlsafe(32)


@dataclass
class Session:
    """A web session: an id, a JSON-serializable dict and an optional expiry."""

    id: str = field(default_factory=_new_session_id)
    data: dict[str, Any] = field(default_factory=dict)
    expires_at: datetime | None = None

    def expire_in(self, seconds: float) -> None:
        self.expires_at = datetime.now(timezone.utc) + timedelta(seconds=seconds)

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or datetime.now(timezone.utc))


class SessionSchema(Schema):
    """
    Stores a Session as (id TEXT, data TEXT, expires_at REAL).

    data holds the JSON encoding of Session.data; expires_at holds unix
    seconds, 0.0 meaning the session does not expire.
    """

    _FIELDS = (
        FieldSpec("id", Kind.STRING),
        FieldSpec("data", Kind.STRING),
        FieldSpec("expires_at", Kind.DOUBLE),
    )

    def fields(self) -> Sequence[FieldSpec]:
        return self._FIELDS

    def key_field(self) -> str:
        return "id"

    def serialize_key(self, key: str) -> Value:
        return Str(key)

    def deserialize_key(self, value: Value) -> str | None:
        return value.as_str()

    def serialize_data(self, record: Session) -> dict[str, Value] | None:
        if not isinstance(record, Session):
            return None
        try:
            data = json.dumps(record.data, sort_keys=True)
        except (TypeError, ValueError):
            return None
        expires_at = record.expires_at.timestamp() if record.expires_at else 0.0
        return {
            "id": Str(record.id),
            "data": Str(data),
            "expires_at": Double(expires_at),
        }

    def deserialize_data(self, row: dict[str, Value]) -> Session | None:
        session_id = row["id"].as_str() if "id" in row else None
        data = row["data"].as_str() if "data" in row else None
        expires_at = row["expires_at"].as_f64() if "expires_at" in row else None
        if session_id is None or data is None or expires_at is None:
            return None
        try:
            decoded = json.loads(data)
        except json.JSONDecodeError:
            return None
        return Session(
            id=session_id,
            data=decoded,
            expires_at=datetime.fromtimestamp(expires_at, timezone.utc) if expires_at else None,
        )


class SessionStore:
    """
    Session load/store/destroy/clear on top of an adapter.

    Args:
        adapter: Adapter whose schema stores Session records under their id
    """

    def __init__(self, adapter: SqliteAdapter):
        self.adapter = adapter

    async def load_session(self, session_id: str) -> Session | None:
        """Return the stored session, or None if it is missing or expired."""
        session = await asyncio.to_thread(self.adapter.load, session_id)
        if session is None:
            return None
        if session.is_expired():
            logger.debug("Session %s has expired", session_id)
            return None
        return session

    async def store_session(self, session: Session) -> str:
        """Insert or replace the session and return its id."""
        await asyncio.to_thread(self.adapter.upsert, session.id, session)
        logger.debug("Stored session %s", session.id)
        return session.id

    async def destroy_session(self, session: Session) -> None:
        """
        Delete the session.

        Raises:
            StoreError: If the adapter could not delete it
        """
        deleted = await asyncio.to_thread(self.adapter.delete, session.id)
        if not deleted:
            raise StoreError("Unable to delete session")

    async def clear_store(self) -> None:
        await asyncio.to_thread(self.adapter.clear)
