# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Keyed record store used by every lifecycle service.

Records are JSON-compatible dictionaries (``model_dump(mode="json")``)
grouped by table name. Two implementations are provided: an in-memory
store for tests and single-process deployments, and an asyncpg-backed
store that keeps every table in one JSONB ``records`` table.

Updates accept an ``expected_version``; when given, the write only
succeeds if the stored record still carries that ``version`` value.
"""

import asyncio
import copy
import json
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import Any
from uuid import UUID

import asyncpg
from beartype import beartype

from .config import Settings, get_settings
from .logging_utils import get_logger

logger = get_logger(__name__)

Record = dict[str, Any]
RecordId = UUID | str


class RecordStoreError(Exception):
    """Base class for store failures."""


class DuplicateRecordError(RecordStoreError):
    """A record with the same id already exists in the table."""


class MissingRecordError(RecordStoreError):
    """The record to update does not exist."""


class StaleRecordError(RecordStoreError):
    """The stored version differs from the expected one."""


def _key(record_id: RecordId) -> str:
    return str(record_id)


def _normalize(value: Any) -> Any:
    """Bring filter values to their JSON representation."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    return value


class RecordStore(ABC):
    """Abstract keyed record store with single-record atomicity."""

    @abstractmethod
    async def get(self, table: str, record_id: RecordId) -> Record | None:
        """Return a copy of the record or None."""

    @abstractmethod
    async def list_all(self, table: str) -> list[Record]:
        """Return every record of the table in insertion order."""

    @abstractmethod
    async def find(self, table: str, **equals: Any) -> list[Record]:
        """Return records whose top-level fields equal the given values."""

    @abstractmethod
    async def insert(self, table: str, record_id: RecordId, record: Record) -> None:
        """Insert a new record; raises DuplicateRecordError on id clash."""

    @abstractmethod
    async def update(
        self,
        table: str,
        record_id: RecordId,
        record: Record,
        expected_version: int | None = None,
    ) -> None:
        """Replace a record, optionally guarded by its current version."""

    @abstractmethod
    async def delete(self, table: str, record_id: RecordId) -> bool:
        """Delete a record; returns False when nothing was deleted."""

    async def list_by(
        self, table: str, predicate: Callable[[Record], bool]
    ) -> list[Record]:
        """Return records matching an arbitrary predicate."""
        return [record for record in await self.list_all(table) if predicate(record)]


class InMemoryRecordStore(RecordStore):
    """Dictionary-backed store. Reads and writes are deep copies."""

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, Record]] = {}
        self._lock = asyncio.Lock()

    def _table(self, table: str) -> dict[str, Record]:
        return self._tables.setdefault(table, {})

    @beartype
    async def get(self, table: str, record_id: RecordId) -> Record | None:
        record = self._table(table).get(_key(record_id))
        return copy.deepcopy(record) if record is not None else None

    @beartype
    async def list_all(self, table: str) -> list[Record]:
        return [copy.deepcopy(record) for record in self._table(table).values()]

    @beartype
    async def find(self, table: str, **equals: Any) -> list[Record]:
        wanted = {name: _normalize(value) for name, value in equals.items()}
        return [
            copy.deepcopy(record)
            for record in self._table(table).values()
            if all(record.get(name) == value for name, value in wanted.items())
        ]

    @beartype
    async def insert(self, table: str, record_id: RecordId, record: Record) -> None:
        async with self._lock:
            rows = self._table(table)
            key = _key(record_id)
            if key in rows:
                raise DuplicateRecordError(f"{table}/{key} already exists")
            rows[key] = copy.deepcopy(record)

    @beartype
    async def update(
        self,
        table: str,
        record_id: RecordId,
        record: Record,
        expected_version: int | None = None,
    ) -> None:
        async with self._lock:
            rows = self._table(table)
            key = _key(record_id)
            current = rows.get(key)
            if current is None:
                raise MissingRecordError(f"{table}/{key} does not exist")
            if expected_version is not None and current.get("version") != expected_version:
                raise StaleRecordError(
                    f"{table}/{key} is at version {current.get('version')}, "
                    f"expected {expected_version}"
                )
            rows[key] = copy.deepcopy(record)

    @beartype
    async def delete(self, table: str, record_id: RecordId) -> bool:
        async with self._lock:
            return self._table(table).pop(_key(record_id), None) is not None


class PostgresRecordStore(RecordStore):
    """asyncpg-backed store keeping all tables in one JSONB table."""

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS records (
            table_name TEXT NOT NULL,
            id TEXT NOT NULL,
            data JSONB NOT NULL,
            seq BIGSERIAL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            PRIMARY KEY (table_name, id)
        )
    """

    def __init__(self, pool: Any) -> None:
        self._pool = pool

    @classmethod
    async def connect(cls, settings: Settings | None = None) -> "PostgresRecordStore":
        """Create a connection pool from settings."""
        settings = settings or get_settings()
        pool = await asyncpg.create_pool(
            settings.database_url,
            min_size=settings.database_pool_min,
            max_size=settings.database_pool_max,
            command_timeout=settings.database_command_timeout,
        )
        logger.info("Connected record store pool (max=%s)", settings.database_pool_max)
        return cls(pool)

    async def initialize(self) -> None:
        """Create the backing table if needed."""
        await self._pool.execute(self.SCHEMA)

    async def close(self) -> None:
        await self._pool.close()

    @staticmethod
    def _decode(raw: Any) -> Record:
        if isinstance(raw, str):
            return json.loads(raw)
        return dict(raw)

    @beartype
    async def get(self, table: str, record_id: RecordId) -> Record | None:
        row = await self._pool.fetchrow(
            "SELECT data FROM records WHERE table_name = $1 AND id = $2",
            table,
            _key(record_id),
        )
        return self._decode(row["data"]) if row else None

    @beartype
    async def list_all(self, table: str) -> list[Record]:
        rows = await self._pool.fetch(
            "SELECT data FROM records WHERE table_name = $1 ORDER BY seq",
            table,
        )
        return [self._decode(row["data"]) for row in rows]

    @beartype
    async def find(self, table: str, **equals: Any) -> list[Record]:
        clauses = ["table_name = $1"]
        params: list[Any] = [table]
        for name, value in equals.items():
            params.append(name)
            params.append(str(_normalize(value)))
            clauses.append(f"data ->> ${len(params) - 1} = ${len(params)}")

        query = (
            "SELECT data FROM records WHERE "
            + " AND ".join(clauses)
            + " ORDER BY seq"
        )  # nosec B608 - clauses only contain positional placeholders
        rows = await self._pool.fetch(query, *params)
        return [self._decode(row["data"]) for row in rows]

    @beartype
    async def insert(self, table: str, record_id: RecordId, record: Record) -> None:
        try:
            await self._pool.execute(
                "INSERT INTO records (table_name, id, data) VALUES ($1, $2, $3::jsonb)",
                table,
                _key(record_id),
                json.dumps(record),
            )
        except asyncpg.UniqueViolationError as e:
            raise DuplicateRecordError(f"{table}/{record_id} already exists") from e

    @beartype
    async def update(
        self,
        table: str,
        record_id: RecordId,
        record: Record,
        expected_version: int | None = None,
    ) -> None:
        row = await self._pool.fetchrow(
            """
            UPDATE records
            SET data = $3::jsonb, updated_at = NOW()
            WHERE table_name = $1 AND id = $2
              AND ($4::int IS NULL OR (data ->> 'version')::int = $4)
            RETURNING id
            """,
            table,
            _key(record_id),
            json.dumps(record),
            expected_version,
        )
        if row:
            return

        if await self.get(table, record_id) is None:
            raise MissingRecordError(f"{table}/{record_id} does not exist")
        raise StaleRecordError(
            f"{table}/{record_id} changed since version {expected_version}"
        )

    @beartype
    async def delete(self, table: str, record_id: RecordId) -> bool:
        result = await self._pool.execute(
            "DELETE FROM records WHERE table_name = $1 AND id = $2",
            table,
            _key(record_id),
        )
        return str(result).split()[-1] != "0"
