# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Policy issuance, status management and endorsements."""

from collections.abc import Callable
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from beartype import beartype

from ..core.config import Settings, get_settings
from ..core.errors import (
    DomainError,
    InvalidStateTransitionError,
    InvariantViolationError,
    NotFoundError,
)
from ..core.locks import EntityLocks
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..core.sequences import DocumentKind, SequenceGenerator
from ..core.store import RecordStore
from ..models.base import utc_now
from ..models.policy import (
    Endorsement,
    EndorsementRequest,
    EndorsementType,
    Policy,
    PolicyCoverage,
    PolicyStatus,
)
from ..models.quote import QuoteStatus
from ..models.rating import PremiumBreakdown, RatingRequest
from .performance_monitor import performance_monitor
from .quote_service import QuoteService
from .rating.rating_engine import RatingEngine
from .reference_data import ReferenceDataProvider
from .transaction_helpers import load_entity, save_entity, with_entity_lock

logger = get_logger(__name__)

POLICIES_TABLE = "policies"

CANCELLABLE_STATUSES = frozenset(
    {PolicyStatus.DRAFT, PolicyStatus.ACTIVE, PolicyStatus.SUSPENDED}
)


class PolicyService:
    """Converts accepted quotes into policies and manages their lifecycle."""

    def __init__(
        self,
        store: RecordStore,
        sequences: SequenceGenerator,
        quote_service: QuoteService,
        reference_data: ReferenceDataProvider,
        rating_engine: RatingEngine,
        locks: EntityLocks | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._sequences = sequences
        self._quote_service = quote_service
        self._reference_data = reference_data
        self._rating_engine = rating_engine
        self._locks = locks or quote_service.locks
        self._settings = settings or get_settings()
        self._clock = clock

    @beartype
    @performance_monitor("quote_conversion")
    async def convert_quote_to_policy(
        self, quote_id: UUID
    ) -> Result[Policy, DomainError]:
        """Issue a Draft policy from an Accepted quote, at most once per quote."""

        async def _convert() -> Result[Policy, DomainError]:
            loaded = await self._quote_service.get_quote(quote_id)
            if isinstance(loaded, Err):
                return loaded
            quote = loaded.value

            if quote.status != QuoteStatus.ACCEPTED:
                error = InvalidStateTransitionError.for_operation(
                    "quote", quote.status, "convert"
                )
                logger.warning("Quote %s: %s", quote.quote_number, error)
                return Err(error)

            existing = await self._store.find(POLICIES_TABLE, quote_id=quote.id)
            if existing:
                logger.warning(
                    "Quote %s already converted to %s",
                    quote.quote_number,
                    existing[0]["policy_number"],
                )
                return Err(
                    InvariantViolationError(
                        f"Quote {quote.quote_number} already has policy "
                        f"{existing[0]['policy_number']}"
                    )
                )

            now = self._clock()
            policy = Policy(
                policy_number=await self._sequences.next_number(
                    DocumentKind.POLICY, now
                ),
                policy_date=now,
                issue_date=now,
                status=PolicyStatus.DRAFT,
                quote_id=quote.id,
                quote_number=quote.quote_number,
                client_id=quote.client_id,
                distributor_id=quote.distributor_id,
                product_id=quote.product_id,
                currency_id=quote.currency_id,
                policy_start_date=quote.policy_start_date,
                policy_end_date=quote.policy_end_date,
                duration_months=quote.duration_months,
                vehicle=quote.vehicle,
                premium=quote.premium,
                is_paid=False,
                notes=quote.notes,
                coverages=[
                    PolicyCoverage(
                        coverage_id=line.coverage_id,
                        code=line.code,
                        name=line.name,
                        section_letter=line.section_letter,
                        premium_amount=line.premium_amount,
                        is_active=True,
                    )
                    for line in quote.selected_coverages
                ],
                created_at=now,
                updated_at=now,
            )
            await self._store.insert(
                POLICIES_TABLE, policy.id, policy.model_dump(mode="json")
            )
            logger.info(
                "Policy %s issued from quote %s",
                policy.policy_number,
                quote.quote_number,
            )
            return Ok(policy)

        return await with_entity_lock(self._locks, "quote", quote_id, _convert)

    @beartype
    @performance_monitor("policy_activation")
    async def activate_policy(
        self, policy_id: UUID, payment_reference: str
    ) -> Result[Policy, DomainError]:
        async def _activate() -> Result[Policy, DomainError]:
            loaded = await self.get_policy(policy_id)
            if isinstance(loaded, Err):
                return loaded
            policy = loaded.value

            if policy.status != PolicyStatus.DRAFT:
                return self._reject_transition(policy, "activate")

            now = self._clock()
            updated = policy.evolve(
                status=PolicyStatus.ACTIVE,
                is_paid=True,
                payment_date=now,
                payment_reference=payment_reference,
                updated_at=now,
            )
            return await self._save(policy, updated)

        return await with_entity_lock(self._locks, "policy", policy_id, _activate)

    @beartype
    @performance_monitor("policy_suspension")
    async def suspend_policy(
        self, policy_id: UUID, reason: str
    ) -> Result[Policy, DomainError]:
        async def _suspend() -> Result[Policy, DomainError]:
            loaded = await self.get_policy(policy_id)
            if isinstance(loaded, Err):
                return loaded
            policy = loaded.value

            if policy.status != PolicyStatus.ACTIVE:
                return self._reject_transition(policy, "suspend")

            endorsement = await self._new_endorsement(
                policy,
                EndorsementType.SUSPENSION,
                adjustment=Decimal("0"),
                new_total=policy.total_premium,
                description="Suspension de la police",
                reason=reason,
            )
            updated = policy.evolve(
                status=PolicyStatus.SUSPENDED,
                endorsements=[*policy.endorsements, endorsement],
                updated_at=endorsement.endorsement_date,
            )
            return await self._save(policy, updated)

        return await with_entity_lock(self._locks, "policy", policy_id, _suspend)

    @beartype
    @performance_monitor("policy_cancellation")
    async def cancel_policy(
        self, policy_id: UUID, reason: str
    ) -> Result[Policy, DomainError]:
        """Cancel the policy and record a Cancellation endorsement.

        The policy's total premium is left as is; the endorsement records a
        new total of zero.
        """

        async def _cancel() -> Result[Policy, DomainError]:
            loaded = await self.get_policy(policy_id)
            if isinstance(loaded, Err):
                return loaded
            policy = loaded.value

            if (
                not self._settings.permissive_transitions
                and policy.status not in CANCELLABLE_STATUSES
            ):
                return self._reject_transition(policy, "cancel")

            endorsement = await self._new_endorsement(
                policy,
                EndorsementType.CANCELLATION,
                adjustment=Decimal("0"),
                new_total=Decimal("0"),
                description="Annulation de la police",
                reason=reason,
            )
            updated = policy.evolve(
                status=PolicyStatus.CANCELLED,
                endorsements=[*policy.endorsements, endorsement],
                updated_at=endorsement.endorsement_date,
            )
            return await self._save(policy, updated)

        return await with_entity_lock(self._locks, "policy", policy_id, _cancel)

    @beartype
    @performance_monitor("endorsement_creation")
    async def create_endorsement(
        self, policy_id: UUID, request: EndorsementRequest
    ) -> Result[Endorsement, DomainError]:
        """Amend coverages or vehicle value and adjust the total premium.

        With flat adjustments only ``premium.total_premium`` moves. The other
        breakdown lines keep their issued values, so after such an endorsement
        the total no longer equals net premium plus tax plus policy cost. The
        endorsement history explains the difference. With
        ``endorsement_rerating`` the whole breakdown is recomputed.
        """

        async def _endorse() -> Result[Endorsement, DomainError]:
            loaded = await self.get_policy(policy_id)
            if isinstance(loaded, Err):
                return loaded
            policy = loaded.value

            if (
                not self._settings.permissive_transitions
                and policy.status != PolicyStatus.ACTIVE
            ):
                return self._reject_transition(policy, "endorse")

            amended = await self._apply_amendment(policy, request)
            if isinstance(amended, Err):
                return amended
            coverages, vehicle_value, flat_adjustment = amended.value

            vehicle = policy.vehicle.model_copy(update={"vehicle_value": vehicle_value})
            old_total = policy.total_premium

            if self._settings.endorsement_rerating:
                rerated = await self._rerate(policy, coverages, vehicle_value)
                if isinstance(rerated, Err):
                    return rerated
                premium = rerated.value
                adjustment = premium.total_premium - old_total
            else:
                adjustment = flat_adjustment
                premium = policy.premium.model_copy(
                    update={"total_premium": old_total + adjustment}
                )

            endorsement = await self._new_endorsement(
                policy,
                request.endorsement_type,
                adjustment=adjustment,
                new_total=premium.total_premium,
                description=request.description or request.endorsement_type.value,
                reason=request.reason,
                effective_date=request.effective_date,
            )
            updated = policy.evolve(
                vehicle=vehicle,
                coverages=coverages,
                premium=premium,
                endorsements=[*policy.endorsements, endorsement],
                updated_at=endorsement.endorsement_date,
            )
            saved = await self._save(policy, updated, log_transition=False)
            if isinstance(saved, Err):
                return saved

            logger.info(
                "Endorsement %s on policy %s: %s %s, new total %s",
                endorsement.endorsement_number,
                policy.policy_number,
                endorsement.endorsement_type.value,
                adjustment,
                premium.total_premium,
            )
            return Ok(endorsement)

        return await with_entity_lock(self._locks, "policy", policy_id, _endorse)

    @beartype
    async def get_policy(self, policy_id: UUID) -> Result[Policy, DomainError]:
        return await load_entity(
            self._store, POLICIES_TABLE, Policy, policy_id, "Policy"
        )

    @beartype
    async def get_policy_by_number(self, policy_number: str) -> Policy | None:
        records = await self._store.find(POLICIES_TABLE, policy_number=policy_number)
        return Policy.model_validate(records[0]) if records else None

    @beartype
    async def list_by_client(self, client_id: UUID) -> list[Policy]:
        """Client policies, newest first."""
        records = await self._store.find(POLICIES_TABLE, client_id=client_id)
        policies = [Policy.model_validate(record) for record in records]
        return sorted(policies, key=lambda p: p.created_at, reverse=True)

    @beartype
    async def list_endorsements(
        self, policy_id: UUID
    ) -> Result[list[Endorsement], DomainError]:
        """Endorsements of the policy, newest first."""
        loaded = await self.get_policy(policy_id)
        if isinstance(loaded, Err):
            return loaded
        return Ok(list(reversed(loaded.value.endorsements)))

    async def _apply_amendment(
        self, policy: Policy, request: EndorsementRequest
    ) -> Result[tuple[list[PolicyCoverage], Decimal, Decimal], DomainError]:
        """New coverages, vehicle value and flat adjustment for the request."""
        coverages = list(policy.coverages)
        vehicle_value = policy.vehicle.vehicle_value
        placeholder = self._settings.endorsement_coverage_placeholder
        adjustment = Decimal("0")

        match request.endorsement_type:
            case EndorsementType.ADD_COVERAGE:
                if request.coverage_ids_to_add:
                    resolved = await self._reference_data.get_coverages(
                        request.coverage_ids_to_add
                    )
                    if isinstance(resolved, Err):
                        return resolved
                    for coverage in resolved.value:
                        coverages = [
                            c for c in coverages if c.coverage_id != coverage.id
                        ]
                        coverages.append(
                            PolicyCoverage(
                                coverage_id=coverage.id,
                                code=coverage.code,
                                name=coverage.name,
                                section_letter=coverage.section_letter,
                                premium_amount=coverage.fixed_premium,
                            )
                        )
                    adjustment = placeholder

            case EndorsementType.REMOVE_COVERAGE:
                if request.coverage_ids_to_remove:
                    active_ids = {c.coverage_id for c in coverages if c.is_active}
                    for coverage_id in request.coverage_ids_to_remove:
                        if coverage_id not in active_ids:
                            return Err(
                                NotFoundError.for_entity("PolicyCoverage", coverage_id)
                            )
                    removed = set(request.coverage_ids_to_remove)
                    coverages = [
                        c.model_copy(update={"is_active": False})
                        if c.coverage_id in removed
                        else c
                        for c in coverages
                    ]
                    adjustment = -placeholder

            case EndorsementType.CHANGE_VEHICLE_VALUE:
                if request.new_vehicle_value is not None:
                    adjustment = (
                        request.new_vehicle_value - vehicle_value
                    ) * self._settings.endorsement_vehicle_value_rate
                    vehicle_value = request.new_vehicle_value

        return Ok((coverages, vehicle_value, adjustment))

    async def _rerate(
        self,
        policy: Policy,
        coverages: list[PolicyCoverage],
        vehicle_value: Decimal,
    ) -> Result[PremiumBreakdown, DomainError]:
        return await self._rating_engine.calculate(
            RatingRequest(
                vehicle_value=vehicle_value,
                horsepower=policy.vehicle.horsepower,
                fuel_type=policy.vehicle.fuel_type,
                duration_months=policy.duration_months,
                coverage_ids=[c.coverage_id for c in coverages if c.is_active],
                professional_discount_percent=policy.premium.professional_discount_percent,
                commercial_discount_percent=policy.premium.commercial_discount_percent,
                distributor_id=policy.distributor_id,
            )
        )

    async def _new_endorsement(
        self,
        policy: Policy,
        endorsement_type: EndorsementType,
        adjustment: Decimal,
        new_total: Decimal,
        description: str,
        reason: str | None,
        effective_date: date | None = None,
    ) -> Endorsement:
        now = self._clock()
        return Endorsement(
            policy_id=policy.id,
            endorsement_number=await self._sequences.next_number(
                DocumentKind.ENDORSEMENT, now
            ),
            endorsement_date=now,
            endorsement_type=endorsement_type,
            description=description,
            premium_adjustment=adjustment,
            new_total_premium=new_total,
            effective_date=effective_date or now.date(),
            reason=reason,
            created_at=now,
            updated_at=now,
        )

    async def _save(
        self, previous: Policy, updated: Policy, log_transition: bool = True
    ) -> Result[Policy, DomainError]:
        saved = await save_entity(self._store, POLICIES_TABLE, updated, previous.version)
        if isinstance(saved, Ok) and log_transition:
            logger.info(
                "Policy %s: %s -> %s",
                previous.policy_number,
                previous.status.value,
                updated.status.value,
            )
        return saved

    def _reject_transition(self, policy: Policy, operation: str) -> Err[DomainError]:
        error = InvalidStateTransitionError.for_operation(
            "policy", policy.status, operation
        )
        logger.warning("Policy %s: %s", policy.policy_number, error)
        return Err(error)
