# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Base Pydantic model configuration for all domain models.

Every entity is immutable. Lifecycle services produce a new instance with
``model_copy(update=...)`` and write it back to the record store together
with a bumped ``version``.
"""

from datetime import datetime, timezone
from typing import Any, Self
from uuid import UUID, uuid4

from beartype import beartype
from pydantic import BaseModel, ConfigDict, Field


@beartype
def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


@beartype
class BaseModelConfig(BaseModel):
    """Base model with strict configuration for all domain entities.

    Enforces:
    - Immutability (frozen=True)
    - No extra fields allowed (extra="forbid")
    - Validation on assignment
    - Automatic whitespace stripping
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_assignment=True,
        str_strip_whitespace=True,
        validate_default=True,
    )


@beartype
class IdentifiableModel(BaseModelConfig):
    """Base model with UUID identifier and timestamps."""

    id: UUID = Field(default_factory=uuid4, description="Unique identifier")
    created_at: datetime = Field(
        default_factory=utc_now, description="Timestamp when the entity was created"
    )
    updated_at: datetime = Field(
        default_factory=utc_now, description="Timestamp when the entity was last updated"
    )


@beartype
class VersionedEntity(IdentifiableModel):
    """Stored entity guarded by an optimistic version counter."""

    version: int = Field(default=1, ge=1, description="Optimistic concurrency version")

    def to_record(self) -> dict[str, Any]:
        """JSON-compatible representation for the record store."""
        return self.model_dump(mode="json")

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Self:
        return cls.model_validate(record)

    def evolve(self, **changes: Any) -> Self:
        """Return a copy with ``changes`` applied, bumping version and timestamp."""
        changes.setdefault("updated_at", utc_now())
        changes["version"] = self.version + 1
        return self.model_copy(update=changes)
