# pibot/runtime_state/sessions.py
# -*- coding: utf-8 -*-
"""
PiBot - Runtime Session State
-----------------------------

In-memory session cache backed by the append-only SessionLogStore.

Purpose
~~~~~~~
- Keep one authoritative in-memory Session per conversation identity.
- Hydrate lazily from the log on first access after a restart.
- Append every turn to the cache and then durably to the log.

Design notes
~~~~~~~~~~~~
- Single process, asyncio. Every operation on one identity runs under that
  identity's asyncio.Lock (FIFO), which gives two guarantees:
    * turns reach cache and log in the order they were requested;
    * concurrent first accesses share one load instead of racing.
- Different identities never wait on each other.
- The in-memory append happens before the durable append is awaited. If the
  process dies in between, the cache was ahead of the log, and the cache
  does not survive the restart anyway. If the durable append fails in a
  live process, the in-memory append is rolled back.
- Locks are held in a weak-valued map, so idle identities cost nothing.
"""

from __future__ import annotations

import asyncio
import uuid
import weakref
from typing import Dict, MutableMapping, Optional

from pibot.core.errors import SessionNotFoundError, StorageError
from pibot.core.identity import session_identity
from pibot.core.types import Role, Session, Turn
from pibot.runtime_state.log_store import SessionLogStore
from pibot.utils import get_logger, now_ms

logger = get_logger("pibot.runtime_state")


class SessionManager:
    """
    Session cache + log coordination.

    Parameters
    ----------
    store:
        Durable log store used for hydration, appends and deletion.
    """

    def __init__(self, store: SessionLogStore) -> None:
        self.store = store
        self._sessions: Dict[str, Session] = {}
        # Weak values: a lock lives only while some operation holds or awaits it.
        self._locks: MutableMapping[str, asyncio.Lock] = weakref.WeakValueDictionary()

    async def initialize(self) -> None:
        await self.store.initialize()

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        return lock

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def peek(self, author_id: str, channel_id: Optional[str] = None) -> Optional[Session]:
        """Return the cached session, if any. Never touches the log."""
        return self._sessions.get(session_identity(author_id, channel_id))

    def cached_count(self) -> int:
        return len(self._sessions)

    async def snapshot(
        self,
        author_id: str,
        channel_id: Optional[str],
        default_model: str,
    ) -> Session:
        """
        Read-only view of a session: the cached one, else the logged one,
        else an empty placeholder. Nothing is added to the cache.
        """
        session_id = session_identity(author_id, channel_id)
        async with self._lock_for(session_id):
            cached = self._sessions.get(session_id)
            if cached is not None:
                return cached
            existing = await self.store.load(session_id)

        if existing is not None:
            if not existing.model:
                existing.model = default_model
            return existing

        created = now_ms()
        return Session(
            id=session_id,
            author_id=author_id,
            channel_id=channel_id,
            turns=[],
            created_at=created,
            updated_at=created,
            model=default_model,
        )

    async def get_or_create(
        self,
        author_id: str,
        channel_id: Optional[str],
        default_model: str,
    ) -> Session:
        """
        Return the session for (author, channel), hydrating or creating it.

        A reloaded session keeps its model if it has one; otherwise it gets
        `default_model`.
        """
        session_id = session_identity(author_id, channel_id)
        async with self._lock_for(session_id):
            return await self._get_or_create_locked(
                session_id, author_id, channel_id, default_model
            )

    async def _get_or_create_locked(
        self,
        session_id: str,
        author_id: str,
        channel_id: Optional[str],
        default_model: str,
    ) -> Session:
        cached = self._sessions.get(session_id)
        if cached is not None:
            return cached

        existing = await self.store.load(session_id)
        if existing is not None:
            if not existing.model:
                existing.model = default_model
            self._sessions[session_id] = existing
            logger.info(
                "[SessionManager] Hydrated session %s (%d turns)",
                session_id,
                len(existing.turns),
            )
            return existing

        created = now_ms()
        session = Session(
            id=session_id,
            author_id=author_id,
            channel_id=channel_id,
            turns=[],
            created_at=created,
            updated_at=created,
            model=default_model,
        )
        self._sessions[session_id] = session
        logger.info("[SessionManager] Creating new session %s", session_id)
        return session

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def append_turn(
        self,
        author_id: str,
        channel_id: Optional[str],
        role: Role,
        content: str,
    ) -> Turn:
        """
        Append a turn to a cached session and to its log.

        Raises SessionNotFoundError if get_or_create() has not been called
        for this identity; StorageError if the durable write fails.
        """
        session_id = session_identity(author_id, channel_id)
        async with self._lock_for(session_id):
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)

            # Timestamps never go backwards within a session.
            timestamp = max(now_ms(), session.updated_at if session.turns else 0)
            turn = Turn(
                id=uuid.uuid4().hex,
                role=role,
                content=content,
                timestamp=timestamp,
                author_id=author_id,
                channel_id=channel_id,
            )

            previous_updated_at = session.updated_at
            session.turns.append(turn)
            session.updated_at = turn.timestamp

            try:
                await self.store.append(session_id, turn)
            except StorageError:
                # Not durable: the cache must not run ahead of the log.
                session.turns.pop()
                session.updated_at = previous_updated_at
                raise
            return turn

    async def clear(self, author_id: str, channel_id: Optional[str] = None) -> None:
        """Forget a session in memory and delete its log."""
        session_id = session_identity(author_id, channel_id)
        async with self._lock_for(session_id):
            self._sessions.pop(session_id, None)
            await self.store.clear(session_id)
        logger.info("[SessionManager] Cleared session %s", session_id)

    async def set_model(
        self,
        author_id: str,
        channel_id: Optional[str],
        model: str,
    ) -> Session:
        """
        Switch the model of a session, creating/hydrating it first if needed
        so the switch sticks for identities never seen before.
        """
        session_id = session_identity(author_id, channel_id)
        async with self._lock_for(session_id):
            session = await self._get_or_create_locked(
                session_id, author_id, channel_id, model
            )
            session.model = model
        logger.info("[SessionManager] Session %s now uses model %s", session_id, model)
        return session
