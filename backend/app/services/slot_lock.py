"""Serialise check-then-write sequences per contended booking resource."""

from __future__ import annotations

import asyncio
import hashlib
import logging
import uuid
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import Select, select, text
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError
from app.models.resource_lock import BookingResourceLock
from app.services.booking_modes import ResourceKey

logger = logging.getLogger(__name__)

_local_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
    weakref.WeakValueDictionary()
)


def _local_lock(key: ResourceKey) -> asyncio.Lock:
    name = key.as_text()
    lock = _local_locks.get(name)
    if lock is None:
        lock = asyncio.Lock()
        _local_locks[name] = lock
    return lock


def advisory_lock_key(key: ResourceKey) -> int:
    """Deterministic bigint for a PostgreSQL advisory lock on ``key``."""
    digest = hashlib.sha256(key.as_text().encode()).digest()[:8]
    return int.from_bytes(digest, "big") % (2**63)


def _lock_row_stmt(key: ResourceKey) -> Select[tuple[BookingResourceLock]]:
    return (
        select(BookingResourceLock)
        .where(
            BookingResourceLock.venue_id == key.venue_id,
            BookingResourceLock.resource_kind == key.resource_kind,
            BookingResourceLock.resource_id == key.resource_id,
            BookingResourceLock.booking_date == key.booking_date,
        )
        .with_for_update()
    )


def _lock_row_values(key: ResourceKey) -> dict[str, object]:
    return {
        "venue_id": key.venue_id,
        "resource_kind": key.resource_kind,
        "resource_id": key.resource_id,
        "booking_date": key.booking_date,
    }


async def _lock_row(session: AsyncSession, key: ResourceKey) -> None:
    if session.get_bind().dialect.name == "sqlite":
        # pysqlite SAVEPOINT opens its own transaction; INSERT OR IGNORE instead.
        await session.execute(
            sqlite_insert(BookingResourceLock)
            .values(id=uuid.uuid4(), **_lock_row_values(key))
            .on_conflict_do_nothing()
        )
        await session.execute(_lock_row_stmt(key))
        return

    row = (await session.execute(_lock_row_stmt(key))).scalars().first()
    if row is not None:
        return
    try:
        async with session.begin_nested():
            session.add(BookingResourceLock(**_lock_row_values(key)))
    except IntegrityError:
        logger.debug("Lock row for %s created concurrently; retrying", key.as_text())
    row = (await session.execute(_lock_row_stmt(key))).scalars().first()
    if row is None:
        raise ConflictError("Time slot is being booked, please retry")


async def _acquire_database_lock(session: AsyncSession, key: ResourceKey) -> None:
    if session.get_bind().dialect.name == "postgresql":
        await session.execute(
            text("SELECT pg_advisory_xact_lock(:k)"), {"k": advisory_lock_key(key)}
        )
        return
    await _lock_row(session, key)


@asynccontextmanager
async def hold(session: AsyncSession, key: ResourceKey) -> AsyncIterator[None]:
    """Hold ``key`` until the enclosed transaction commits or rolls back.

    The body must commit on success; any exception rolls the session back
    before it propagates.
    """
    async with _local_lock(key):
        try:
            await _acquire_database_lock(session, key)
            yield
        except BaseException:
            await session.rollback()
            raise
    logger.debug("Released booking resource %s", key.as_text())
