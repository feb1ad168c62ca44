# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Claim adjudication workflow.

Transitions, with the statuses that permit them:

    create          -> Draft           policy Active, claim date in coverage
    submit          Draft -> Submitted
    start_review    Submitted -> UnderReview
    assign_expert   UnderReview | Investigating -> Investigating
    submit_expertise Investigating (expert assigned), no status change
    approve         UnderReview | Investigating -> Approved
    reject          any except Rejected | Settled | Closed -> Rejected
    settle          Approved -> Settled (net payable > 0)
    close           Settled | Rejected -> Closed
    update          Draft, no status change (claim date in coverage)

Every transition and administrative action appends a history entry.
"""

from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from typing import Any
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
from ..models.claim import (
    Claim,
    ClaimAction,
    ClaimApproval,
    ClaimCreate,
    ClaimDocument,
    ClaimHistory,
    ClaimRejection,
    ClaimSettlement,
    ClaimStatus,
    DocumentUpload,
    ExpertAssignment,
    ExpertiseReport,
    MotorClaimDetails,
    ThirdParty,
    ThirdPartyInput,
)
from ..models.policy import Policy, PolicyStatus
from .performance_monitor import performance_monitor
from .policy_service import PolicyService
from .transaction_helpers import load_entity, save_entity, with_entity_lock

logger = get_logger(__name__)

CLAIMS_TABLE = "claims"

REVIEWABLE_STATUSES = frozenset({ClaimStatus.UNDER_REVIEW, ClaimStatus.INVESTIGATING})
FINAL_STATUSES = frozenset(
    {ClaimStatus.REJECTED, ClaimStatus.SETTLED, ClaimStatus.CLOSED}
)
CLOSABLE_STATUSES = frozenset({ClaimStatus.SETTLED, ClaimStatus.REJECTED})

ClaimChange = Callable[[Claim], Result[Claim, DomainError]]


def _format_amount(amount: Decimal | None) -> str:
    return f"{amount:,.0f}" if amount is not None else "0"


class ClaimService:
    """Manages claims against active policies."""

    def __init__(
        self,
        store: RecordStore,
        sequences: SequenceGenerator,
        policy_service: PolicyService,
        locks: EntityLocks | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._sequences = sequences
        self._policy_service = policy_service
        self._locks = locks or EntityLocks()
        self._settings = settings or get_settings()
        self._clock = clock

    @beartype
    @performance_monitor("claim_creation")
    async def create_claim(
        self, data: ClaimCreate, performed_by: str | None = None
    ) -> Result[Claim, DomainError]:
        loaded = await self._policy_service.get_policy(data.policy_id)
        if isinstance(loaded, Err):
            return loaded
        policy = loaded.value

        coverage = self._check_coverage(policy, data)
        if isinstance(coverage, Err):
            return coverage

        now = self._clock()
        claim = Claim(
            claim_number=await self._sequences.next_number(DocumentKind.CLAIM, now),
            policy_id=policy.id,
            client_id=policy.client_id,
            claim_date=data.claim_date,
            reported_date=now,
            status=ClaimStatus.DRAFT,
            location=data.location,
            description=data.description,
            circumstances=data.circumstances,
            claimed_amount=data.claimed_amount,
            details=MotorClaimDetails(
                **self._motor_fields(data),
                third_parties=[
                    ThirdParty(**third_party.model_dump(), created_at=now)
                    for third_party in data.third_parties
                ],
            ),
            created_at=now,
            updated_at=now,
        )
        claim = claim.model_copy(
            update={
                "history": [
                    self._history(
                        ClaimAction.CLAIM_CREATED,
                        "Sinistre créé",
                        None,
                        ClaimStatus.DRAFT,
                        performed_by,
                    )
                ]
            }
        )
        await self._store.insert(CLAIMS_TABLE, claim.id, claim.model_dump(mode="json"))

        logger.info(
            "Claim %s created on policy %s", claim.claim_number, policy.policy_number
        )
        return Ok(claim)

    @beartype
    @performance_monitor("claim_update")
    async def update_claim(
        self, claim_id: UUID, data: ClaimCreate, performed_by: str | None = None
    ) -> Result[Claim, DomainError]:
        """Edit the declaration of a Draft claim."""
        loaded = await self.get_claim(claim_id)
        if isinstance(loaded, Err):
            return loaded
        if loaded.value.policy_id != data.policy_id:
            return Err(
                InvariantViolationError("A claim cannot be moved to another policy")
            )

        policy = await self._policy_service.get_policy(data.policy_id)
        if isinstance(policy, Err):
            return policy
        coverage = self._check_window(policy.value, data)
        if isinstance(coverage, Err):
            return coverage

        def change(claim: Claim) -> Result[Claim, DomainError]:
            if claim.status != ClaimStatus.DRAFT:
                return self._reject_transition(claim, "update")
            details = claim.details.model_copy(update=self._motor_fields(data))
            return Ok(
                self._record(
                    claim,
                    ClaimAction.CLAIM_UPDATED,
                    "Sinistre modifié",
                    performed_by,
                    claim_date=data.claim_date,
                    location=data.location,
                    description=data.description,
                    circumstances=data.circumstances,
                    claimed_amount=data.claimed_amount,
                    details=details,
                )
            )

        return await self._mutate(claim_id, change)

    @beartype
    @performance_monitor("claim_submission")
    async def submit_claim(
        self, claim_id: UUID, performed_by: str | None = None
    ) -> Result[Claim, DomainError]:
        return await self._transition(
            claim_id,
            "submit",
            frozenset({ClaimStatus.DRAFT}),
            ClaimStatus.SUBMITTED,
            ClaimAction.CLAIM_SUBMITTED,
            lambda claim: "Sinistre soumis pour examen",
            performed_by,
        )

    @beartype
    @performance_monitor("claim_review")
    async def start_review(
        self, claim_id: UUID, reviewer: str | None = None
    ) -> Result[Claim, DomainError]:
        return await self._transition(
            claim_id,
            "start review of",
            frozenset({ClaimStatus.SUBMITTED}),
            ClaimStatus.UNDER_REVIEW,
            ClaimAction.REVIEW_STARTED,
            lambda claim: "Examen du sinistre commencé",
            reviewer,
        )

    @beartype
    @performance_monitor("claim_expert_assignment")
    async def assign_expert(
        self,
        claim_id: UUID,
        assignment: ExpertAssignment,
        performed_by: str | None = None,
    ) -> Result[Claim, DomainError]:
        when = (
            assignment.expertise_date.strftime("%d/%m/%Y")
            if assignment.expertise_date
            else "à définir"
        )
        return await self._transition(
            claim_id,
            "assign an expert to",
            REVIEWABLE_STATUSES,
            ClaimStatus.INVESTIGATING,
            ClaimAction.EXPERT_ASSIGNED,
            lambda claim: (
                f"Expert assigné: {assignment.expert_name} - "
                f"Date d'expertise: {when}"
            ),
            performed_by,
            comment=assignment.notes,
            assigned_expert=assignment.expert_name,
            expertise_date=assignment.expertise_date,
        )

    @beartype
    @performance_monitor("claim_expertise")
    async def submit_expertise(
        self,
        claim_id: UUID,
        report: ExpertiseReport,
        performed_by: str | None = None,
    ) -> Result[Claim, DomainError]:
        """Record the expert's estimate. Status stays Investigating."""

        def change(claim: Claim) -> Result[Claim, DomainError]:
            if claim.status != ClaimStatus.INVESTIGATING:
                return self._reject_transition(claim, "submit expertise for")
            if not claim.assigned_expert:
                return Err(
                    InvariantViolationError(
                        f"No expert is assigned to claim {claim.claim_number}"
                    )
                )

            changes: dict[str, Any] = {
                "estimated_amount": report.estimated_amount,
                "expertise_report": report.expertise_report,
            }
            if report.recommended_deductible is not None:
                changes["deductible"] = report.recommended_deductible
            return Ok(
                self._record(
                    claim,
                    ClaimAction.EXPERTISE_SUBMITTED,
                    "Rapport d'expertise soumis - Montant estimé: "
                    f"{_format_amount(report.estimated_amount)} FCFA",
                    performed_by,
                    **changes,
                )
            )

        return await self._mutate(claim_id, change)

    @beartype
    @performance_monitor("claim_approval")
    async def approve_claim(
        self,
        claim_id: UUID,
        approval: ClaimApproval,
        approved_by: str | None = None,
    ) -> Result[Claim, DomainError]:
        net_payable = approval.approved_amount - approval.deductible
        return await self._transition(
            claim_id,
            "approve",
            REVIEWABLE_STATUSES,
            ClaimStatus.APPROVED,
            ClaimAction.CLAIM_APPROVED,
            lambda claim: (
                f"Sinistre approuvé - Montant: {_format_amount(approval.approved_amount)} FCFA"
                f" - Franchise: {_format_amount(approval.deductible)} FCFA"
                f" - Net à payer: {_format_amount(net_payable)} FCFA"
            ),
            approved_by,
            comment=approval.comments,
            approved_amount=approval.approved_amount,
            deductible=approval.deductible,
            net_payable_amount=net_payable,
            approval_date=self._clock(),
            approved_by=approved_by,
        )

    @beartype
    @performance_monitor("claim_rejection")
    async def reject_claim(
        self,
        claim_id: UUID,
        rejection: ClaimRejection,
        performed_by: str | None = None,
    ) -> Result[Claim, DomainError]:
        rejectable = frozenset(ClaimStatus) - FINAL_STATUSES
        return await self._transition(
            claim_id,
            "reject",
            rejectable,
            ClaimStatus.REJECTED,
            ClaimAction.CLAIM_REJECTED,
            lambda claim: f"Sinistre rejeté - Motif: {rejection.rejection_reason}",
            performed_by,
            comment=rejection.comments,
            rejection_reason=rejection.rejection_reason,
            closed_date=self._clock(),
        )

    @beartype
    @performance_monitor("claim_settlement")
    async def settle_claim(
        self,
        claim_id: UUID,
        settlement: ClaimSettlement,
        performed_by: str | None = None,
    ) -> Result[Claim, DomainError]:
        def change(claim: Claim) -> Result[Claim, DomainError]:
            if claim.status != ClaimStatus.APPROVED:
                return self._reject_transition(claim, "settle")
            if claim.net_payable_amount is None or claim.net_payable_amount <= 0:
                error = InvariantViolationError(
                    f"Net payable amount of claim {claim.claim_number} must be positive"
                )
                logger.warning("%s", error)
                return Err(error)

            return Ok(
                self._record(
                    claim,
                    ClaimAction.CLAIM_SETTLED,
                    "Sinistre réglé - Montant payé: "
                    f"{_format_amount(claim.net_payable_amount)} FCFA"
                    f" - Référence: {settlement.payment_reference}",
                    performed_by,
                    new_status=ClaimStatus.SETTLED,
                    comment=settlement.comments,
                    settlement_date=settlement.settlement_date or self._clock().date(),
                    payment_reference=settlement.payment_reference,
                    payment_method=settlement.payment_method,
                )
            )

        return await self._mutate(claim_id, change)

    @beartype
    @performance_monitor("claim_closure")
    async def close_claim(
        self, claim_id: UUID, performed_by: str | None = None
    ) -> Result[Claim, DomainError]:
        return await self._transition(
            claim_id,
            "close",
            CLOSABLE_STATUSES,
            ClaimStatus.CLOSED,
            ClaimAction.CLAIM_CLOSED,
            lambda claim: "Sinistre clôturé",
            performed_by,
            closed_date=self._clock(),
        )

    @beartype
    async def add_third_party(
        self, claim_id: UUID, data: ThirdPartyInput
    ) -> Result[ThirdParty, DomainError]:
        third_party = ThirdParty(**data.model_dump(), created_at=self._clock())

        def change(claim: Claim) -> Result[Claim, DomainError]:
            parties = [*claim.details.third_parties, third_party]
            return Ok(self._with_third_parties(claim, parties))

        result = await self._mutate(claim_id, change)
        if isinstance(result, Err):
            return result
        return Ok(third_party)

    @beartype
    async def update_third_party(
        self, claim_id: UUID, third_party_id: UUID, data: ThirdPartyInput
    ) -> Result[ThirdParty, DomainError]:
        updated: list[ThirdParty] = []

        def change(claim: Claim) -> Result[Claim, DomainError]:
            parties = []
            for party in claim.details.third_parties:
                if party.id == third_party_id:
                    party = ThirdParty(
                        **data.model_dump(), id=party.id, created_at=party.created_at
                    )
                    updated.append(party)
                parties.append(party)
            if not updated:
                return Err(NotFoundError.for_entity("ThirdParty", third_party_id))
            return Ok(self._with_third_parties(claim, parties))

        result = await self._mutate(claim_id, change)
        if isinstance(result, Err):
            return result
        return Ok(updated[0])

    @beartype
    async def remove_third_party(
        self, claim_id: UUID, third_party_id: UUID
    ) -> Result[bool, DomainError]:
        """Remove a third party; Ok(False) when it is not on the claim."""
        loaded = await self.get_claim(claim_id)
        if isinstance(loaded, Err):
            return loaded
        if not any(p.id == third_party_id for p in loaded.value.third_parties):
            return Ok(False)

        def change(claim: Claim) -> Result[Claim, DomainError]:
            parties = [p for p in claim.details.third_parties if p.id != third_party_id]
            return Ok(self._with_third_parties(claim, parties))

        result = await self._mutate(claim_id, change)
        if isinstance(result, Err):
            return result
        return Ok(True)

    @beartype
    async def upload_document(
        self,
        claim_id: UUID,
        upload: DocumentUpload,
        uploaded_by: str | None = None,
    ) -> Result[ClaimDocument, DomainError]:
        document = ClaimDocument(
            **upload.model_dump(), uploaded_at=self._clock(), uploaded_by=uploaded_by
        )

        def change(claim: Claim) -> Result[Claim, DomainError]:
            return Ok(
                self._record(
                    claim,
                    ClaimAction.DOCUMENT_UPLOADED,
                    f"Document ajouté: {upload.document_type} - {upload.file_name}",
                    uploaded_by,
                    documents=[*claim.documents, document],
                )
            )

        result = await self._mutate(claim_id, change)
        if isinstance(result, Err):
            return result
        return Ok(document)

    @beartype
    async def delete_document(
        self, claim_id: UUID, document_id: UUID
    ) -> Result[bool, DomainError]:
        """Delete a document; Ok(False) when it is not on the claim."""
        loaded = await self.get_claim(claim_id)
        if isinstance(loaded, Err):
            return loaded
        if not any(d.id == document_id for d in loaded.value.documents):
            return Ok(False)

        def change(claim: Claim) -> Result[Claim, DomainError]:
            documents = [d for d in claim.documents if d.id != document_id]
            return Ok(claim.evolve(documents=documents, updated_at=self._clock()))

        result = await self._mutate(claim_id, change)
        if isinstance(result, Err):
            return result
        return Ok(True)

    @beartype
    async def update_notes(
        self, claim_id: UUID, notes: str, performed_by: str | None = None
    ) -> Result[Claim, DomainError]:
        def change(claim: Claim) -> Result[Claim, DomainError]:
            return Ok(
                self._record(
                    claim,
                    ClaimAction.NOTES_UPDATED,
                    "Notes internes mises à jour",
                    performed_by,
                    internal_notes=notes,
                )
            )

        return await self._mutate(claim_id, change)

    @beartype
    async def get_claim(self, claim_id: UUID) -> Result[Claim, DomainError]:
        return await load_entity(self._store, CLAIMS_TABLE, Claim, claim_id, "Claim")

    @beartype
    async def get_claim_by_number(
        self, claim_number: str
    ) -> Result[Claim, DomainError]:
        records = await self._store.find(CLAIMS_TABLE, claim_number=claim_number)
        if not records:
            return Err(NotFoundError.for_entity("Claim", claim_number))
        return Ok(Claim.model_validate(records[0]))

    @beartype
    async def list_by_policy(self, policy_id: UUID) -> list[Claim]:
        return await self._find(policy_id=policy_id)

    @beartype
    async def list_by_client(self, client_id: UUID) -> list[Claim]:
        return await self._find(client_id=client_id)

    @beartype
    async def list_by_status(self, status: ClaimStatus) -> list[Claim]:
        return await self._find(status=status)

    @beartype
    async def list_all(self) -> list[Claim]:
        records = await self._store.list_all(CLAIMS_TABLE)
        return self._newest_first([Claim.model_validate(r) for r in records])

    @beartype
    async def get_history(
        self, claim_id: UUID
    ) -> Result[list[ClaimHistory], DomainError]:
        """Audit trail, newest first."""
        loaded = await self.get_claim(claim_id)
        if isinstance(loaded, Err):
            return loaded
        return Ok(list(reversed(loaded.value.history)))

    @beartype
    async def get_documents(
        self, claim_id: UUID
    ) -> Result[list[ClaimDocument], DomainError]:
        """Documents, most recently uploaded first."""
        loaded = await self.get_claim(claim_id)
        if isinstance(loaded, Err):
            return loaded
        return Ok(
            sorted(loaded.value.documents, key=lambda d: d.uploaded_at, reverse=True)
        )

    async def _find(self, **equals: Any) -> list[Claim]:
        records = await self._store.find(CLAIMS_TABLE, **equals)
        return self._newest_first([Claim.model_validate(r) for r in records])

    @staticmethod
    def _newest_first(claims: list[Claim]) -> list[Claim]:
        return sorted(claims, key=lambda c: c.reported_date, reverse=True)

    def _check_coverage(
        self, policy: Policy, data: ClaimCreate
    ) -> Result[None, DomainError]:
        if policy.status != PolicyStatus.ACTIVE:
            error = InvariantViolationError(
                f"Policy {policy.policy_number} must be active to declare a claim"
            )
            logger.warning(
                "Claim rejected on policy %s: %s", policy.policy_number, error
            )
            return Err(error)
        return self._check_window(policy, data)

    @staticmethod
    def _check_window(policy: Policy, data: ClaimCreate) -> Result[None, DomainError]:
        """Draft edits only re-check the date, whatever the policy status."""
        if policy.covers(data.claim_date):
            return Ok(None)
        error = InvariantViolationError(
            f"Claim date {data.claim_date} is out of coverage period "
            f"{policy.policy_start_date} - {policy.policy_end_date}"
        )
        logger.warning("Claim rejected on policy %s: %s", policy.policy_number, error)
        return Err(error)

    @staticmethod
    def _motor_fields(data: ClaimCreate) -> dict[str, Any]:
        return data.model_dump(
            include={
                "claim_type",
                "has_injuries",
                "injury_count",
                "has_police_report",
                "police_report_number",
                "police_station",
            }
        )

    def _history(
        self,
        action: ClaimAction,
        description: str,
        old_status: ClaimStatus | None,
        new_status: ClaimStatus | None,
        performed_by: str | None,
        comment: str | None = None,
    ) -> ClaimHistory:
        return ClaimHistory(
            action_type=action,
            description=description,
            old_status=old_status,
            new_status=new_status,
            performed_by=performed_by,
            comment=comment,
            timestamp=self._clock(),
        )

    def _record(
        self,
        claim: Claim,
        action: ClaimAction,
        description: str,
        performed_by: str | None,
        /,
        new_status: ClaimStatus | None = None,
        comment: str | None = None,
        **changes: Any,
    ) -> Claim:
        """Apply ``changes`` and append one history entry.

        Without ``new_status`` the entry records no status change.
        """
        entry = self._history(
            action,
            description,
            claim.status if new_status else None,
            new_status,
            performed_by,
            comment,
        )
        if new_status:
            changes["status"] = new_status
        return claim.evolve(
            history=[*claim.history, entry], updated_at=entry.timestamp, **changes
        )

    def _with_third_parties(self, claim: Claim, parties: list[ThirdParty]) -> Claim:
        details = claim.details.model_copy(update={"third_parties": parties})
        return claim.evolve(details=details, updated_at=self._clock())

    async def _transition(
        self,
        claim_id: UUID,
        operation: str,
        allowed: frozenset[ClaimStatus],
        new_status: ClaimStatus,
        action: ClaimAction,
        describe: Callable[[Claim], str],
        performed_by: str | None,
        comment: str | None = None,
        **changes: Any,
    ) -> Result[Claim, DomainError]:
        def change(claim: Claim) -> Result[Claim, DomainError]:
            if claim.status not in allowed:
                return self._reject_transition(claim, operation)
            return Ok(
                self._record(
                    claim,
                    action,
                    describe(claim),
                    performed_by,
                    new_status=new_status,
                    comment=comment,
                    **changes,
                )
            )

        return await self._mutate(claim_id, change)

    async def _mutate(
        self, claim_id: UUID, change: ClaimChange
    ) -> Result[Claim, DomainError]:
        """Load, change and write back a claim under its lock."""

        async def _apply() -> Result[Claim, DomainError]:
            loaded = await self.get_claim(claim_id)
            if isinstance(loaded, Err):
                return loaded
            claim = loaded.value

            changed = change(claim)
            if isinstance(changed, Err):
                return changed
            updated = changed.value

            saved = await save_entity(self._store, CLAIMS_TABLE, updated, claim.version)
            if isinstance(saved, Ok) and updated.status != claim.status:
                logger.info(
                    "Claim %s: %s -> %s",
                    claim.claim_number,
                    claim.status.value,
                    updated.status.value,
                )
            return saved

        return await with_entity_lock(self._locks, "claim", claim_id, _apply)

    def _reject_transition(self, claim: Claim, operation: str) -> Err[DomainError]:
        error = InvalidStateTransitionError.for_operation(
            "claim", claim.status, operation
        )
        logger.warning("Claim %s: %s", claim.claim_number, error)
        return Err(error)

