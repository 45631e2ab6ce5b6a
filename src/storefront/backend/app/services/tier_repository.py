"""Persistence for profit grid tiers.

Both repositories keep a grid-wide revision number. :meth:`snapshot` returns the
tiers together with the revision they were read at, and every conditional write
takes the revision the caller validated against; a mismatch raises
:class:`StaleSnapshotError` instead of writing, which lets the service retry the
whole validate-then-write sequence against fresh data.
"""

from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import closing, contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from threading import Lock
from typing import Callable, Iterable, Iterator, Protocol
from uuid import uuid4

from storefront.backend.app.models.tiers import ProfitGridTier, TierStatus, TierValues
from storefront.backend.app.services.errors import RepositoryError, StaleSnapshotError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TierSnapshot:
    """Tiers read together with the grid revision they belong to."""

    tiers: tuple[ProfitGridTier, ...]
    revision: int


class TierRepository(Protocol):
    """Storage contract consumed by :class:`ProfitGridService`."""

    def snapshot(self, *, status: TierStatus | None = None) -> TierSnapshot: ...

    def list(self, *, status: TierStatus | None = None) -> list[ProfitGridTier]: ...

    def get(self, tier_id: str) -> ProfitGridTier: ...

    def insert(self, values: TierValues, *, expected_revision: int) -> ProfitGridTier: ...

    def replace(
        self, tier_id: str, values: TierValues, *, expected_revision: int
    ) -> ProfitGridTier: ...

    def delete(self, tier_id: str) -> ProfitGridTier: ...

    def delete_many(self, tier_ids: Iterable[str]) -> int: ...


def _ordered(tiers: Iterable[ProfitGridTier]) -> list[ProfitGridTier]:
    return sorted(tiers, key=lambda tier: (tier.min_amount, tier.id))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryTierRepository:
    """Thread-safe in-process tier storage."""

    def __init__(self, *, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or _utcnow
        self._records: dict[str, ProfitGridTier] = {}
        self._revision = 0
        self._lock = Lock()

    def _check_revision_locked(self, expected_revision: int) -> None:
        if expected_revision != self._revision:
            raise StaleSnapshotError(expected_revision, self._revision)

    def snapshot(self, *, status: TierStatus | None = None) -> TierSnapshot:
        with self._lock:
            tiers = [
                record
                for record in self._records.values()
                if status is None or record.status == status
            ]
            revision = self._revision
        return TierSnapshot(tiers=tuple(_ordered(tiers)), revision=revision)

    def list(self, *, status: TierStatus | None = None) -> list[ProfitGridTier]:
        return list(self.snapshot(status=status).tiers)

    def get(self, tier_id: str) -> ProfitGridTier:
        with self._lock:
            record = self._records.get(tier_id)
        if record is None:
            raise KeyError(tier_id)
        return record

    def insert(self, values: TierValues, *, expected_revision: int) -> ProfitGridTier:
        now = self._clock()
        record = ProfitGridTier.from_values(
            uuid4().hex, values, created_at=now, updated_at=now
        )
        with self._lock:
            self._check_revision_locked(expected_revision)
            self._records[record.id] = record
            self._revision += 1
        return record

    def replace(
        self, tier_id: str, values: TierValues, *, expected_revision: int
    ) -> ProfitGridTier:
        with self._lock:
            current = self._records.get(tier_id)
            if current is None:
                raise KeyError(tier_id)
            self._check_revision_locked(expected_revision)
            record = ProfitGridTier.from_values(
                tier_id, values, created_at=current.created_at, updated_at=self._clock()
            )
            self._records[tier_id] = record
            self._revision += 1
        return record

    def delete(self, tier_id: str) -> ProfitGridTier:
        with self._lock:
            record = self._records.pop(tier_id, None)
            if record is None:
                raise KeyError(tier_id)
            self._revision += 1
        return record

    def delete_many(self, tier_ids: Iterable[str]) -> int:
        deleted = 0
        with self._lock:
            for tier_id in set(tier_ids):
                if self._records.pop(tier_id, None) is not None:
                    deleted += 1
            if deleted:
                self._revision += 1
        return deleted


class SQLiteTierRepository:
    """SQLite-backed tier storage with snapshot reads and serialised writes."""

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._path = str(path)
        self._clock = clock or _utcnow
        self._lock = Lock()
        self._initialise()

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(
            self._path,
            isolation_level=None,
            check_same_thread=False,
        )
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA journal_mode=WAL")
        connection.execute("PRAGMA synchronous=NORMAL")
        return connection

    @contextmanager
    def _transaction(self, *, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        try:
            with closing(self._connect()) as connection:
                connection.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
                try:
                    yield connection
                except BaseException:
                    connection.execute("ROLLBACK")
                    raise
                connection.execute("COMMIT")
        except sqlite3.Error as error:
            logger.error("Tier storage failure at %s", self._path, exc_info=True)
            raise RepositoryError(f"Tier storage failure: {error}") from error

    def _initialise(self) -> None:
        with self._transaction(immediate=True) as connection:
            connection.execute(
                """
                CREATE TABLE IF NOT EXISTS profit_grid_tiers (
                    id TEXT PRIMARY KEY,
                    min_amount TEXT NOT NULL,
                    max_amount TEXT NOT NULL,
                    gross_rate TEXT NOT NULL,
                    deduction_rate TEXT NOT NULL,
                    net_rate TEXT NOT NULL,
                    status TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            connection.execute(
                """
                CREATE TABLE IF NOT EXISTS profit_grid_revision (
                    id INTEGER PRIMARY KEY CHECK (id = 0),
                    revision INTEGER NOT NULL
                )
                """
            )
            connection.execute(
                "INSERT OR IGNORE INTO profit_grid_revision (id, revision) VALUES (0, 0)"
            )

    @staticmethod
    def _decode_record(row: sqlite3.Row) -> ProfitGridTier:
        created_at = datetime.fromisoformat(row["created_at"])
        updated_at = datetime.fromisoformat(row["updated_at"])
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        if updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=timezone.utc)
        return ProfitGridTier(
            id=row["id"],
            min_amount=Decimal(row["min_amount"]),
            max_amount=Decimal(row["max_amount"]),
            gross_rate=Decimal(row["gross_rate"]),
            deduction_rate=Decimal(row["deduction_rate"]),
            net_rate=Decimal(row["net_rate"]),
            status=row["status"],
            created_at=created_at,
            updated_at=updated_at,
        )

    @staticmethod
    def _read_revision(connection: sqlite3.Connection) -> int:
        return int(
            connection.execute(
                "SELECT revision FROM profit_grid_revision WHERE id = 0"
            ).fetchone()[0]
        )

    def _bump_revision(self, connection: sqlite3.Connection, expected_revision: int | None) -> None:
        if expected_revision is not None:
            actual = self._read_revision(connection)
            if actual != expected_revision:
                raise StaleSnapshotError(expected_revision, actual)
        connection.execute("UPDATE profit_grid_revision SET revision = revision + 1 WHERE id = 0")

    def snapshot(self, *, status: TierStatus | None = None) -> TierSnapshot:
        with self._transaction() as connection:
            revision = self._read_revision(connection)
            if status is None:
                rows = connection.execute("SELECT * FROM profit_grid_tiers").fetchall()
            else:
                rows = connection.execute(
                    "SELECT * FROM profit_grid_tiers WHERE status = ?", (status,)
                ).fetchall()
        tiers = _ordered(self._decode_record(row) for row in rows)
        return TierSnapshot(tiers=tuple(tiers), revision=revision)

    def list(self, *, status: TierStatus | None = None) -> list[ProfitGridTier]:
        return list(self.snapshot(status=status).tiers)

    def get(self, tier_id: str) -> ProfitGridTier:
        with self._transaction() as connection:
            row = connection.execute(
                "SELECT * FROM profit_grid_tiers WHERE id = ?", (tier_id,)
            ).fetchone()
        if row is None:
            raise KeyError(tier_id)
        return self._decode_record(row)

    def insert(self, values: TierValues, *, expected_revision: int) -> ProfitGridTier:
        now = self._clock()
        record = ProfitGridTier.from_values(
            uuid4().hex, values, created_at=now, updated_at=now
        )
        with self._lock:
            with self._transaction(immediate=True) as connection:
                self._bump_revision(connection, expected_revision)
                connection.execute(
                    "INSERT INTO profit_grid_tiers (id, min_amount, max_amount, gross_rate,"
                    " deduction_rate, net_rate, status, created_at, updated_at)"
                    " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        record.id,
                        str(record.min_amount),
                        str(record.max_amount),
                        str(record.gross_rate),
                        str(record.deduction_rate),
                        str(record.net_rate),
                        record.status,
                        record.created_at.isoformat(),
                        record.updated_at.isoformat(),
                    ),
                )
        return record

    def replace(
        self, tier_id: str, values: TierValues, *, expected_revision: int
    ) -> ProfitGridTier:
        with self._lock:
            with self._transaction(immediate=True) as connection:
                row = connection.execute(
                    "SELECT * FROM profit_grid_tiers WHERE id = ?", (tier_id,)
                ).fetchone()
                if row is None:
                    raise KeyError(tier_id)
                current = self._decode_record(row)
                self._bump_revision(connection, expected_revision)
                record = ProfitGridTier.from_values(
                    tier_id, values, created_at=current.created_at, updated_at=self._clock()
                )
                connection.execute(
                    "UPDATE profit_grid_tiers SET min_amount = ?, max_amount = ?,"
                    " gross_rate = ?, deduction_rate = ?, net_rate = ?, status = ?,"
                    " updated_at = ? WHERE id = ?",
                    (
                        str(record.min_amount),
                        str(record.max_amount),
                        str(record.gross_rate),
                        str(record.deduction_rate),
                        str(record.net_rate),
                        record.status,
                        record.updated_at.isoformat(),
                        tier_id,
                    ),
                )
        return record

    def delete(self, tier_id: str) -> ProfitGridTier:
        with self._lock:
            with self._transaction(immediate=True) as connection:
                row = connection.execute(
                    "SELECT * FROM profit_grid_tiers WHERE id = ?", (tier_id,)
                ).fetchone()
                if row is None:
                    raise KeyError(tier_id)
                connection.execute("DELETE FROM profit_grid_tiers WHERE id = ?", (tier_id,))
                self._bump_revision(connection, None)
        return self._decode_record(row)

    def delete_many(self, tier_ids: Iterable[str]) -> int:
        deleted = 0
        with self._lock:
            with self._transaction(immediate=True) as connection:
                for tier_id in set(tier_ids):
                    cursor = connection.execute(
                        "DELETE FROM profit_grid_tiers WHERE id = ?", (tier_id,)
                    )
                    deleted += cursor.rowcount
                if deleted:
                    self._bump_revision(connection, None)
        return deleted


__all__ = [
    "InMemoryTierRepository",
    "SQLiteTierRepository",
    "TierRepository",
    "TierSnapshot",
]
