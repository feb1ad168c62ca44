# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Typed domain errors carried inside ``Err`` results.

Services never raise for business failures. They return ``Err(error)``
where ``error`` is one of the frozen classes below, so callers can branch
on ``error.kind`` and translate it into a protocol-specific response.
"""

from enum import Enum
from typing import Any

from attrs import field, frozen


class ErrorKind(str, Enum):
    """Error taxonomy shared by all lifecycle services."""

    NOT_FOUND = "NOT_FOUND"
    INVALID_STATE_TRANSITION = "INVALID_STATE_TRANSITION"
    INVARIANT_VIOLATION = "INVARIANT_VIOLATION"
    MISSING_REFERENCE_DATA = "MISSING_REFERENCE_DATA"
    CONFLICT = "CONFLICT"


@frozen
class DomainError:
    """Base error value."""

    message: str = field()

    @property
    def kind(self) -> ErrorKind:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.message


@frozen
class NotFoundError(DomainError):
    """A referenced quote, policy, claim, coverage or distributor is missing."""

    entity: str = field(default="")
    key: str = field(default="")

    @classmethod
    def for_entity(cls, entity: str, key: Any) -> "NotFoundError":
        return cls(message=f"{entity} {key} not found", entity=entity, key=str(key))

    @property
    def kind(self) -> ErrorKind:
        return ErrorKind.NOT_FOUND


@frozen
class InvalidStateTransitionError(DomainError):
    """Operation invoked while the entity status does not permit it."""

    entity: str = field(default="")
    current_status: str = field(default="")
    operation: str = field(default="")

    @classmethod
    def for_operation(
        cls, entity: str, current_status: Any, operation: str
    ) -> "InvalidStateTransitionError":
        status = getattr(current_status, "value", current_status)
        return cls(
            message=f"Cannot {operation} {entity} in status {status}",
            entity=entity,
            current_status=str(status),
            operation=operation,
        )

    @property
    def kind(self) -> ErrorKind:
        return ErrorKind.INVALID_STATE_TRANSITION


@frozen
class InvariantViolationError(DomainError):
    """A business invariant would be broken by the operation."""

    @property
    def kind(self) -> ErrorKind:
        return ErrorKind.INVARIANT_VIOLATION


@frozen
class MissingReferenceDataError(DomainError):
    """Reference data required by a lookup is absent."""

    @property
    def kind(self) -> ErrorKind:
        return ErrorKind.MISSING_REFERENCE_DATA


@frozen
class ConcurrencyConflictError(DomainError):
    """The record changed between read and write (version mismatch)."""

    @property
    def kind(self) -> ErrorKind:
        return ErrorKind.CONFLICT
