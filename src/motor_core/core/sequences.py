# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Monotonic document number allocation per (kind, year, month)."""

import asyncio
import re
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any

from beartype import beartype

from .logging_utils import get_logger

logger = get_logger(__name__)

_NUMBER_PATTERN = re.compile(r"^([A-Z]{3})-(\d{4})-(\d{2})-(\d{4,})$")


class DocumentKind(str, Enum):
    """Document kinds and their number prefixes."""

    QUOTE = "QTE"
    POLICY = "POL"
    ENDORSEMENT = "AVE"
    CLAIM = "SIN"


@beartype
def format_document_number(prefix: str, year: int, month: int, sequence: int) -> str:
    """Format ``PREFIX-YYYY-MM-NNNN``."""
    return f"{prefix}-{year:04d}-{month:02d}-{sequence:04d}"


@beartype
def parse_document_number(number: str) -> tuple[str, int, int, int] | None:
    """Split a document number into (prefix, year, month, sequence)."""
    match = _NUMBER_PATTERN.match(number)
    if not match:
        return None
    prefix, year, month, sequence = match.groups()
    return prefix, int(year), int(month), int(sequence)


class SequenceGenerator(ABC):
    """Hands out strictly increasing sequence values."""

    @abstractmethod
    async def next_value(self, kind: DocumentKind, year: int, month: int) -> int:
        """Allocate the next value for the period, starting at 1."""

    @beartype
    async def next_number(self, kind: DocumentKind, at: datetime) -> str:
        """Allocate and format the next document number for ``at``'s month."""
        sequence = await self.next_value(kind, at.year, at.month)
        return format_document_number(kind.value, at.year, at.month, sequence)


class InMemorySequenceGenerator(SequenceGenerator):
    """Process-local counters serialized by a single lock."""

    def __init__(self) -> None:
        self._counters: dict[tuple[str, int, int], int] = {}
        self._lock = asyncio.Lock()

    @beartype
    async def next_value(self, kind: DocumentKind, year: int, month: int) -> int:
        async with self._lock:
            key = (kind.value, year, month)
            value = self._counters.get(key, 0) + 1
            self._counters[key] = value
            return value

    @beartype
    async def seed(self, kind: DocumentKind, year: int, month: int, value: int) -> None:
        """Continue numbering after already-issued documents."""
        async with self._lock:
            key = (kind.value, year, month)
            self._counters[key] = max(self._counters.get(key, 0), value)


class PostgresSequenceGenerator(SequenceGenerator):
    """Counters held in a Postgres table and bumped atomically."""

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS document_sequences (
            kind TEXT NOT NULL,
            year INTEGER NOT NULL,
            month INTEGER NOT NULL,
            value INTEGER NOT NULL,
            PRIMARY KEY (kind, year, month)
        )
    """

    def __init__(self, pool: Any) -> None:
        self._pool = pool

    async def initialize(self) -> None:
        await self._pool.execute(self.SCHEMA)

    @beartype
    async def next_value(self, kind: DocumentKind, year: int, month: int) -> int:
        row = await self._pool.fetchrow(
            """
            INSERT INTO document_sequences (kind, year, month, value)
            VALUES ($1, $2, $3, 1)
            ON CONFLICT (kind, year, month)
            DO UPDATE SET value = document_sequences.value + 1
            RETURNING value
            """,
            kind.value,
            year,
            month,
        )
        if not row:
            raise RuntimeError(f"Sequence allocation failed for {kind.value}-{year}-{month}")
        return int(row["value"])
