"""Distributed try-locks backed by the shared store.

Two backends share one interface:

- ``PostgresAdvisoryLockManager`` holds a session-level
  ``pg_try_advisory_lock`` on a dedicated connection per key. If the
  process dies the connection drops and PostgreSQL frees the lock.
- ``LeaseLockManager`` inserts a row with an expiry into ``sync_locks``
  and renews it while held. A crashed holder stops renewing and the
  lease is reclaimed once it expires.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import socket
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Protocol

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncSession, async_sessionmaker

from tenant_sync.db.repositories import SyncLockRepository
from tenant_sync.db.types import utc_now
from tenant_sync.logging import get_logger

logger = get_logger(__name__)


class LockManager(Protocol):
    """Try-lock interface used by the executor and orchestrator."""

    async def acquire(self, lock_key: str) -> bool:
        """Take the lock without waiting. True if the caller now holds it."""
        ...

    async def release(self, lock_key: str) -> None:
        """Release the lock. Releasing a lock not held is a no-op."""
        ...

    async def release_all(self) -> None:
        """Release every lock held by this manager."""
        ...


def default_holder_id() -> str:
    """Identify this process in lease rows."""
    return f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"


# -----------------------------------------------------------------------------
# PostgreSQL advisory locks
# -----------------------------------------------------------------------------
class PostgresAdvisoryLockManager:
    """Session-scoped PostgreSQL advisory locks.

    Each held key pins one connection. A key already held by this
    process is reported as contended rather than re-entered.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._connections: dict[str, AsyncConnection] = {}
        self._pending: set[str] = set()

    @property
    def held_keys(self) -> list[str]:
        return list(self._connections)

    async def acquire(self, lock_key: str) -> bool:
        if lock_key in self._connections or lock_key in self._pending:
            return False

        self._pending.add(lock_key)
        conn: AsyncConnection | None = None
        try:
            conn = await self._engine.connect()
            conn = await conn.execution_options(isolation_level="AUTOCOMMIT")
            result = await conn.execute(
                text("SELECT pg_try_advisory_lock(hashtext(:key))"),
                {"key": lock_key},
            )
            acquired = bool(result.scalar())
        except BaseException:
            if conn is not None:
                await conn.close()
            raise
        finally:
            self._pending.discard(lock_key)

        if not acquired:
            await conn.close()
            logger.debug("Advisory lock {} held elsewhere", lock_key)
            return False

        self._connections[lock_key] = conn
        logger.debug("Acquired advisory lock {}", lock_key)
        return True

    async def release(self, lock_key: str) -> None:
        conn = self._connections.pop(lock_key, None)
        if conn is None:
            return

        try:
            await conn.execute(
                text("SELECT pg_advisory_unlock(hashtext(:key))"),
                {"key": lock_key},
            )
        except SQLAlchemyError as e:
            # Dropping the connection frees the session lock server-side
            logger.warning("Failed to unlock {}: {}; discarding connection", lock_key, e)
            await conn.invalidate()
        finally:
            await conn.close()
        logger.debug("Released advisory lock {}", lock_key)

    async def release_all(self) -> None:
        for lock_key in list(self._connections):
            await self.release(lock_key)


# -----------------------------------------------------------------------------
# Lease locks (stores without advisory locks)
# -----------------------------------------------------------------------------
class LeaseLockManager:
    """Row-based lease locks with background renewal.

    Usage:
        locks = LeaseLockManager(session_factory, lease=timedelta(minutes=5))
        if await locks.acquire("github:commit"):
            try:
                ...
            finally:
                await locks.release("github:commit")
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        lease: timedelta = timedelta(minutes=5),
        holder_id: str | None = None,
        clock: Callable[[], datetime] = utc_now,
        renew_interval: float | None = None,
    ) -> None:
        """Initialize the lease lock manager.

        Args:
            session_factory: Factory for short-lived sessions
            lease: How long a lease lives without renewal
            holder_id: Identity written to lease rows (defaults to host:pid:nonce)
            clock: Source of the current time
            renew_interval: Seconds between renewals (defaults to a third of the lease)
        """
        self._session_factory = session_factory
        self._lease = lease
        self._holder_id = holder_id or default_holder_id()
        self._clock = clock
        self._renew_interval = renew_interval or lease.total_seconds() / 3
        self._held: dict[str, asyncio.Task[None]] = {}
        self._pending: set[str] = set()

    @property
    def holder_id(self) -> str:
        return self._holder_id

    @property
    def held_keys(self) -> list[str]:
        return list(self._held)

    async def acquire(self, lock_key: str) -> bool:
        if lock_key in self._held or lock_key in self._pending:
            return False

        self._pending.add(lock_key)
        try:
            now = self._clock()
            async with self._session_factory() as session:
                repo = SyncLockRepository(session)
                try:
                    await repo.delete_expired(lock_key, now)
                    await repo.insert(lock_key, self._holder_id, now, now + self._lease)
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    logger.debug("Lease {} held elsewhere", lock_key)
                    return False

            self._held[lock_key] = asyncio.create_task(
                self._renew_loop(lock_key), name=f"lease-renew:{lock_key}"
            )
        finally:
            self._pending.discard(lock_key)

        logger.debug("Acquired lease {}", lock_key)
        return True

    async def release(self, lock_key: str) -> None:
        renewal = self._held.pop(lock_key, None)
        if renewal is None:
            return

        renewal.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await renewal

        try:
            async with self._session_factory() as session:
                await SyncLockRepository(session).release(lock_key, self._holder_id)
                await session.commit()
        except SQLAlchemyError as e:
            logger.warning("Failed to delete lease {}: {}; it will expire", lock_key, e)
            return
        logger.debug("Released lease {}", lock_key)

    async def release_all(self) -> None:
        for lock_key in list(self._held):
            await self.release(lock_key)

    async def _renew_loop(self, lock_key: str) -> None:
        while True:
            await asyncio.sleep(self._renew_interval)
            try:
                async with self._session_factory() as session:
                    renewed = await SyncLockRepository(session).renew(
                        lock_key, self._holder_id, self._clock() + self._lease
                    )
                    await session.commit()
            except SQLAlchemyError as e:
                logger.warning("Lease renewal for {} failed: {}", lock_key, e)
                continue
            if not renewed:
                logger.warning("Lease {} was lost before release", lock_key)
                return


# -----------------------------------------------------------------------------
# Factory
# -----------------------------------------------------------------------------
def create_lock_manager(
    engine: AsyncEngine,
    session_factory: async_sessionmaker[AsyncSession],
    *,
    lease: timedelta = timedelta(minutes=5),
) -> PostgresAdvisoryLockManager | LeaseLockManager:
    """Pick the lock backend for the engine's dialect."""
    if engine.dialect.name == "postgresql":
        return PostgresAdvisoryLockManager(engine)
    return LeaseLockManager(session_factory, lease=lease)
