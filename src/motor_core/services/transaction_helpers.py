# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Helpers for guarded, versioned writes shared by lifecycle services."""

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar
from uuid import UUID

from beartype import beartype

from ..core.errors import ConcurrencyConflictError, DomainError, NotFoundError
from ..core.locks import EntityLocks
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..core.store import MissingRecordError, RecordStore, StaleRecordError
from ..models.base import VersionedEntity

V = TypeVar("V", bound=VersionedEntity)

logger = get_logger(__name__)


@beartype
async def with_entity_lock(
    locks: EntityLocks,
    kind: str,
    entity_id: UUID,
    operation: Callable[[], Awaitable[Any]],
) -> Any:
    """Run ``operation`` while holding the entity's exclusive lock.

    Example:
        ```python
        async def _accept() -> Result[Quote, DomainError]:
            ...

        return await with_entity_lock(self._locks, "quote", quote_id, _accept)
        ```
    """
    async with locks.hold(kind, entity_id):
        return await operation()


@beartype
async def load_entity(
    store: RecordStore, table: str, model: type[V], entity_id: UUID, label: str
) -> Result[V, DomainError]:
    record = await store.get(table, entity_id)
    if record is None:
        return Err(NotFoundError.for_entity(label, entity_id))
    return Ok(model.model_validate(record))


@beartype
async def save_entity(
    store: RecordStore, table: str, entity: V, expected_version: int
) -> Result[V, DomainError]:
    """Write ``entity`` only if the stored record is still at ``expected_version``."""
    try:
        await store.update(
            table, entity.id, entity.model_dump(mode="json"), expected_version
        )
    except StaleRecordError as e:
        logger.warning("Concurrent update on %s/%s: %s", table, entity.id, e)
        return Err(
            ConcurrencyConflictError(
                f"{table} {entity.id} was modified concurrently, retry the operation"
            )
        )
    except MissingRecordError:
        return Err(NotFoundError.for_entity(table, entity.id))
    return Ok(entity)
