# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Quote generation and lifecycle service."""

import calendar
from collections.abc import Awaitable, Callable
from datetime import date, datetime, timedelta
from typing import Any
from uuid import UUID

from beartype import beartype

from ..core.config import Settings, get_settings
from ..core.errors import DomainError, InvalidStateTransitionError
from ..core.locks import EntityLocks
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..core.sequences import DocumentKind, SequenceGenerator
from ..core.store import RecordStore
from ..models.base import utc_now
from ..models.quote import Quote, QuoteCreate, QuoteStatus
from ..models.rating import RatingRequest
from .performance_monitor import performance_monitor
from .rating.rating_engine import RatingEngine
from .reference_data import ReferenceDataProvider
from .transaction_helpers import load_entity, save_entity, with_entity_lock

logger = get_logger(__name__)

QUOTES_TABLE = "quotes"


@beartype
def add_months(start: date, months: int) -> date:
    """Same day ``months`` later, clamped to the end of the target month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


class QuoteService:
    """Creates quotes from rating results and moves them through their states."""

    def __init__(
        self,
        store: RecordStore,
        sequences: SequenceGenerator,
        rating_engine: RatingEngine,
        reference_data: ReferenceDataProvider,
        locks: EntityLocks | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._sequences = sequences
        self._rating_engine = rating_engine
        self._reference_data = reference_data
        self._locks = locks or EntityLocks()
        self._settings = settings or get_settings()
        self._clock = clock

    @beartype
    @performance_monitor("quote_creation")
    async def create_quote(self, data: QuoteCreate) -> Result[Quote, DomainError]:
        """Rate the request and store a Generated quote valid for 30 days."""
        references = await self._validate_references(data)
        if isinstance(references, Err):
            return references

        rating = await self._rating_engine.calculate(
            RatingRequest(
                vehicle_value=data.vehicle.vehicle_value,
                horsepower=data.vehicle.horsepower,
                fuel_type=data.vehicle.fuel_type,
                duration_months=data.duration_months,
                coverage_ids=data.coverage_ids,
                professional_discount_percent=data.professional_discount_percent,
                commercial_discount_percent=data.commercial_discount_percent,
                distributor_id=data.distributor_id,
            )
        )
        if isinstance(rating, Err):
            return rating

        now = self._clock()
        quote = Quote(
            quote_number=await self._sequences.next_number(DocumentKind.QUOTE, now),
            quote_date=now,
            expiry_date=now + timedelta(days=self._settings.quote_validity_days),
            status=QuoteStatus.GENERATED,
            client_id=data.client_id,
            distributor_id=data.distributor_id,
            product_id=data.product_id,
            currency_id=data.currency_id,
            policy_start_date=data.policy_start_date,
            policy_end_date=data.policy_end_date
            or add_months(data.policy_start_date, data.duration_months),
            duration_months=data.duration_months,
            vehicle=data.vehicle,
            premium=rating.value,
            notes=data.notes,
            created_at=now,
            updated_at=now,
        )
        await self._store.insert(QUOTES_TABLE, quote.id, quote.model_dump(mode="json"))

        logger.info(
            "Quote %s generated, total premium %s",
            quote.quote_number,
            quote.total_premium,
        )
        return Ok(quote)

    @beartype
    @performance_monitor("quote_accept")
    async def accept_quote(self, quote_id: UUID) -> Result[Quote, DomainError]:
        async def _accept() -> Result[Quote, DomainError]:
            loaded = await self.get_quote(quote_id)
            if isinstance(loaded, Err):
                return loaded
            quote = loaded.value

            if not self._settings.permissive_transitions:
                now = self._clock()
                if quote.status != QuoteStatus.GENERATED or quote.is_expired(now):
                    return self._reject_transition(
                        quote, quote.effective_status(now), "accept"
                    )

            return await self._transition(quote, QuoteStatus.ACCEPTED)

        return await with_entity_lock(self._locks, "quote", quote_id, _accept)

    @beartype
    @performance_monitor("quote_reject")
    async def reject_quote(self, quote_id: UUID) -> Result[Quote, DomainError]:
        async def _reject() -> Result[Quote, DomainError]:
            loaded = await self.get_quote(quote_id)
            if isinstance(loaded, Err):
                return loaded
            quote = loaded.value

            if (
                not self._settings.permissive_transitions
                and quote.status != QuoteStatus.GENERATED
            ):
                return self._reject_transition(quote, quote.status, "reject")

            return await self._transition(quote, QuoteStatus.REJECTED)

        return await with_entity_lock(self._locks, "quote", quote_id, _reject)

    @beartype
    async def get_quote(self, quote_id: UUID) -> Result[Quote, DomainError]:
        return await load_entity(self._store, QUOTES_TABLE, Quote, quote_id, "Quote")

    @beartype
    async def get_quote_by_number(self, quote_number: str) -> Quote | None:
        records = await self._store.find(QUOTES_TABLE, quote_number=quote_number)
        return Quote.model_validate(records[0]) if records else None

    @beartype
    async def list_by_client(self, client_id: UUID) -> list[Quote]:
        """Client quotes, newest first."""
        records = await self._store.find(QUOTES_TABLE, client_id=client_id)
        quotes = [Quote.model_validate(record) for record in records]
        return sorted(quotes, key=lambda q: q.quote_date, reverse=True)

    @property
    def locks(self) -> EntityLocks:
        return self._locks

    async def _transition(
        self, quote: Quote, status: QuoteStatus
    ) -> Result[Quote, DomainError]:
        updated = quote.evolve(status=status, updated_at=self._clock())
        saved = await save_entity(self._store, QUOTES_TABLE, updated, quote.version)
        if isinstance(saved, Ok):
            logger.info(
                "Quote %s: %s -> %s",
                quote.quote_number,
                quote.status.value,
                status.value,
            )
        return saved

    def _reject_transition(
        self, quote: Quote, status: QuoteStatus, operation: str
    ) -> Err[DomainError]:
        error = InvalidStateTransitionError.for_operation("quote", status, operation)
        logger.warning("Quote %s: %s", quote.quote_number, error)
        return Err(error)

    async def _validate_references(self, data: QuoteCreate) -> Result[None, DomainError]:
        """Every referenced client, product and vehicle entity must exist."""
        reference_data = self._reference_data
        vehicle = data.vehicle
        lookups: list[tuple[Callable[[UUID], Awaitable[Any]], UUID | None]] = [
            (reference_data.get_client, data.client_id),
            (reference_data.get_product, data.product_id),
            (reference_data.get_vehicle_category, vehicle.vehicle_category_id),
            (reference_data.get_vehicle_make, vehicle.vehicle_make_id),
            (reference_data.get_vehicle_model, vehicle.vehicle_model_id),
            (reference_data.get_currency, data.currency_id),
        ]

        for lookup, entity_id in lookups:
            if entity_id is None:
                continue
            result = await lookup(entity_id)
            if isinstance(result, Err):
                logger.warning("Quote creation rejected: %s", result.error)
                return result
        return Ok(None)
