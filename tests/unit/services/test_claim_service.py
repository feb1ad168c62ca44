"""Unit tests for the claim adjudication workflow."""

import asyncio
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio
from pydantic import ValidationError

from motor_core.core.errors import ErrorKind
from motor_core.models.claim import (
    ClaimAction,
    ClaimApproval,
    ClaimCreate,
    ClaimRejection,
    ClaimSettlement,
    ClaimStatus,
    ClaimType,
    DocumentUpload,
    ExpertAssignment,
    ExpertiseReport,
    ThirdPartyInput,
)


def _declaration(policy_id, **overrides) -> ClaimCreate:
    data = {
        "policy_id": policy_id,
        "claim_date": date(2025, 6, 10),
        "claim_type": ClaimType.ACCIDENT,
        "location": "Boulevard Latrille, Abidjan",
        "description": "Collision au carrefour",
        "claimed_amount": Decimal("850000"),
    }
    data.update(overrides)
    return ClaimCreate(**data)


@pytest_asyncio.fixture
async def policy(services, issue_policy):
    return await issue_policy(services)


@pytest_asyncio.fixture
async def claim(services, policy):
    return (await services.claims.create_claim(_declaration(policy.id), "agent.kone")).unwrap()


async def _under_investigation(services, claim_id):
    await services.claims.submit_claim(claim_id)
    await services.claims.start_review(claim_id, "reviewer")
    return (
        await services.claims.assign_expert(
            claim_id, ExpertAssignment(expert_name="Cabinet Expertise Auto")
        )
    ).unwrap()


async def _approved(services, claim_id, approved="600000", deductible="50000"):
    await _under_investigation(services, claim_id)
    return (
        await services.claims.approve_claim(
            claim_id,
            ClaimApproval(
                approved_amount=Decimal(approved), deductible=Decimal(deductible)
            ),
            "manager",
        )
    ).unwrap()


class TestClaimCreation:
    """Test claim declaration against a policy."""

    async def test_create_claim(self, services, policy, clock):
        claim = (
            await services.claims.create_claim(
                _declaration(
                    policy.id,
                    has_police_report=True,
                    police_report_number="PV-2025-118",
                    third_parties=[
                        ThirdPartyInput(
                            full_name="Koffi Yao",
                            vehicle_registration="CD-9876-CI",
                            is_at_fault=True,
                            fault_percentage=Decimal("70"),
                        )
                    ],
                ),
                "agent.kone",
            )
        ).unwrap()

        assert claim.claim_number == "SIN-2025-03-0001"
        assert claim.status == ClaimStatus.DRAFT
        assert claim.client_id == policy.client_id
        assert claim.reported_date == clock.now
        assert claim.details.kind == "motor"
        assert claim.details.police_report_number == "PV-2025-118"
        assert [tp.full_name for tp in claim.third_parties] == ["Koffi Yao"]

        [entry] = claim.history
        assert entry.action_type == ClaimAction.CLAIM_CREATED
        assert entry.old_status is None
        assert entry.new_status == ClaimStatus.DRAFT
        assert entry.performed_by == "agent.kone"

    async def test_claim_date_outside_coverage(self, services, policy):
        result = await services.claims.create_claim(
            _declaration(policy.id, claim_date=date(2025, 3, 31))
        )

        error = result.unwrap_err()
        assert error.kind == ErrorKind.INVARIANT_VIOLATION
        assert "out of coverage period" in error.message

    async def test_policy_must_be_active(self, services, issue_policy):
        draft = await issue_policy(services, activate=False)

        result = await services.claims.create_claim(_declaration(draft.id))

        assert result.unwrap_err().kind == ErrorKind.INVARIANT_VIOLATION

    async def test_unknown_policy(self, services, reference):
        result = await services.claims.create_claim(_declaration(uuid4()))

        assert result.unwrap_err().kind == ErrorKind.NOT_FOUND

    def test_fault_percentage_bounded(self):
        with pytest.raises(ValidationError):
            ThirdPartyInput(full_name="X", fault_percentage=Decimal("120"))


class TestClaimWorkflow:
    """Test the adjudication transitions."""

    async def test_full_workflow(self, services, claim):
        claim_id = claim.id

        submitted = (await services.claims.submit_claim(claim_id, "agent.kone")).unwrap()
        assert submitted.status == ClaimStatus.SUBMITTED

        reviewing = (await services.claims.start_review(claim_id, "reviewer")).unwrap()
        assert reviewing.status == ClaimStatus.UNDER_REVIEW

        investigating = (
            await services.claims.assign_expert(
                claim_id,
                ExpertAssignment(
                    expert_name="Cabinet Expertise Auto",
                    expertise_date=date(2025, 6, 20),
                    notes="Véhicule au garage",
                ),
                "reviewer",
            )
        ).unwrap()
        assert investigating.status == ClaimStatus.INVESTIGATING
        assert investigating.assigned_expert == "Cabinet Expertise Auto"
        assert investigating.history[-1].comment == "Véhicule au garage"

        assessed = (
            await services.claims.submit_expertise(
                claim_id,
                ExpertiseReport(
                    estimated_amount=Decimal("720000"),
                    expertise_report="Aile avant et pare-choc",
                    recommended_deductible=Decimal("50000"),
                ),
                "expert",
            )
        ).unwrap()
        assert assessed.status == ClaimStatus.INVESTIGATING
        assert assessed.estimated_amount == Decimal("720000")
        assert assessed.deductible == Decimal("50000")
        assert assessed.history[-1].new_status is None

        approved = (
            await services.claims.approve_claim(
                claim_id,
                ClaimApproval(
                    approved_amount=Decimal("700000"), deductible=Decimal("50000")
                ),
                "manager",
            )
        ).unwrap()
        assert approved.status == ClaimStatus.APPROVED
        assert approved.net_payable_amount == Decimal("650000")
        assert approved.approved_by == "manager"
        assert approved.approval_date is not None

        settled = (
            await services.claims.settle_claim(
                claim_id,
                ClaimSettlement(payment_reference="VIR-2025-001", payment_method="Virement"),
            )
        ).unwrap()
        assert settled.status == ClaimStatus.SETTLED
        assert settled.settlement_date == date(2025, 3, 15)
        assert settled.payment_reference == "VIR-2025-001"

        closed = (await services.claims.close_claim(claim_id)).unwrap()
        assert closed.status == ClaimStatus.CLOSED
        assert closed.closed_date is not None

        assert [entry.action_type for entry in closed.history] == [
            ClaimAction.CLAIM_CREATED,
            ClaimAction.CLAIM_SUBMITTED,
            ClaimAction.REVIEW_STARTED,
            ClaimAction.EXPERT_ASSIGNED,
            ClaimAction.EXPERTISE_SUBMITTED,
            ClaimAction.CLAIM_APPROVED,
            ClaimAction.CLAIM_SETTLED,
            ClaimAction.CLAIM_CLOSED,
        ]
        assert closed.version == 8

    async def test_approve_from_review(self, services, claim):
        await services.claims.submit_claim(claim.id)
        await services.claims.start_review(claim.id)

        approved = (
            await services.claims.approve_claim(
                claim.id, ClaimApproval(approved_amount=Decimal("100000"))
            )
        ).unwrap()

        assert approved.net_payable_amount == Decimal("100000")

    async def test_reassign_expert_while_investigating(self, services, claim):
        await _under_investigation(services, claim.id)

        reassigned = (
            await services.claims.assign_expert(
                claim.id, ExpertAssignment(expert_name="Second Cabinet")
            )
        ).unwrap()

        assert reassigned.assigned_expert == "Second Cabinet"

    async def test_submit_twice_refused(self, services, claim):
        await services.claims.submit_claim(claim.id)

        result = await services.claims.submit_claim(claim.id)

        assert result.unwrap_err().kind == ErrorKind.INVALID_STATE_TRANSITION

    async def test_review_requires_submission(self, services, claim):
        result = await services.claims.start_review(claim.id)

        assert result.unwrap_err().current_status == "Draft"

    async def test_expertise_requires_investigation(self, services, claim):
        await services.claims.submit_claim(claim.id)
        await services.claims.start_review(claim.id)

        result = await services.claims.submit_expertise(
            claim.id,
            ExpertiseReport(estimated_amount=Decimal("1"), expertise_report="r"),
        )

        assert result.unwrap_err().kind == ErrorKind.INVALID_STATE_TRANSITION

    async def test_settle_requires_approval(self, services, claim):
        await _under_investigation(services, claim.id)

        result = await services.claims.settle_claim(
            claim.id, ClaimSettlement(payment_reference="X", payment_method="Chèque")
        )

        assert result.unwrap_err().kind == ErrorKind.INVALID_STATE_TRANSITION

    async def test_settle_requires_positive_net_payable(self, services, claim):
        await _approved(services, claim.id, approved="50000", deductible="50000")

        result = await services.claims.settle_claim(
            claim.id, ClaimSettlement(payment_reference="X", payment_method="Chèque")
        )

        assert result.unwrap_err().kind == ErrorKind.INVARIANT_VIOLATION
        stored = (await services.claims.get_claim(claim.id)).unwrap()
        assert stored.status == ClaimStatus.APPROVED

    async def test_close_draft_refused(self, services, claim):
        result = await services.claims.close_claim(claim.id)

        assert result.unwrap_err().kind == ErrorKind.INVALID_STATE_TRANSITION

    async def test_reject_draft(self, services, claim):
        rejected = (
            await services.claims.reject_claim(
                claim.id,
                ClaimRejection(rejection_reason="Hors garanties", comments="Vol non couvert"),
            )
        ).unwrap()

        assert rejected.status == ClaimStatus.REJECTED
        assert rejected.closed_date is not None
        assert rejected.rejection_reason == "Hors garanties"
        assert rejected.history[-1].old_status == ClaimStatus.DRAFT
        assert rejected.history[-1].comment == "Vol non couvert"

    async def test_reject_settled_refused(self, services, claim):
        await _approved(services, claim.id)
        await services.claims.settle_claim(
            claim.id, ClaimSettlement(payment_reference="X", payment_method="Chèque")
        )

        result = await services.claims.reject_claim(
            claim.id, ClaimRejection(rejection_reason="Fraude")
        )

        assert result.unwrap_err().kind == ErrorKind.INVALID_STATE_TRANSITION

    async def test_close_rejected(self, services, claim):
        await services.claims.reject_claim(
            claim.id, ClaimRejection(rejection_reason="Doublon")
        )

        closed = (await services.claims.close_claim(claim.id)).unwrap()

        assert closed.status == ClaimStatus.CLOSED

    async def test_concurrent_submissions(self, services, claim):
        results = await asyncio.gather(
            services.claims.submit_claim(claim.id),
            services.claims.submit_claim(claim.id),
        )

        assert sorted(r.is_ok() for r in results) == [False, True]
        stored = (await services.claims.get_claim(claim.id)).unwrap()
        assert len(stored.history) == 2


class TestClaimUpdates:
    """Test edits of Draft claims."""

    async def test_update_draft(self, services, claim, policy):
        updated = (
            await services.claims.update_claim(
                claim.id,
                _declaration(
                    policy.id,
                    claim_type=ClaimType.GLASS_BREAKAGE,
                    claimed_amount=Decimal("120000"),
                    description="Pare-brise fissuré",
                ),
            )
        ).unwrap()

        assert updated.status == ClaimStatus.DRAFT
        assert updated.claimed_amount == Decimal("120000")
        assert updated.details.claim_type == ClaimType.GLASS_BREAKAGE
        assert updated.history[-1].action_type == ClaimAction.CLAIM_UPDATED

    async def test_update_after_submission_refused(self, services, claim, policy):
        await services.claims.submit_claim(claim.id)

        result = await services.claims.update_claim(claim.id, _declaration(policy.id))

        assert result.unwrap_err().kind == ErrorKind.INVALID_STATE_TRANSITION

    async def test_update_rechecks_coverage_window(self, services, claim, policy):
        result = await services.claims.update_claim(
            claim.id, _declaration(policy.id, claim_date=date(2026, 5, 1))
        )

        assert "out of coverage period" in result.unwrap_err().message

    async def test_update_draft_after_policy_suspended(self, services, claim, policy):
        await services.policies.suspend_policy(policy.id, "Défaut de paiement")

        updated = (
            await services.claims.update_claim(
                claim.id,
                _declaration(policy.id, claimed_amount=Decimal("900000")),
            )
        ).unwrap()

        assert updated.claimed_amount == Decimal("900000")

    async def test_new_claim_on_suspended_policy_refused(self, services, policy):
        await services.policies.suspend_policy(policy.id, "Défaut de paiement")

        result = await services.claims.create_claim(_declaration(policy.id))

        assert "must be active" in result.unwrap_err().message

    async def test_update_notes(self, services, claim):
        updated = (
            await services.claims.update_notes(claim.id, "Relancer le garage", "agent")
        ).unwrap()

        assert updated.internal_notes == "Relancer le garage"
        assert updated.history[-1].action_type == ClaimAction.NOTES_UPDATED


class TestThirdPartiesAndDocuments:
    """Test embedded third parties and documents."""

    async def test_third_party_lifecycle(self, services, claim):
        added = (
            await services.claims.add_third_party(
                claim.id, ThirdPartyInput(full_name="Adjoua N'Guessan")
            )
        ).unwrap()

        changed = (
            await services.claims.update_third_party(
                claim.id,
                added.id,
                ThirdPartyInput(
                    full_name="Adjoua N'Guessan",
                    is_at_fault=True,
                    fault_percentage=Decimal("100"),
                ),
            )
        ).unwrap()
        assert changed.id == added.id
        assert changed.fault_percentage == Decimal("100")

        assert (await services.claims.remove_third_party(claim.id, added.id)).unwrap()
        stored = (await services.claims.get_claim(claim.id)).unwrap()
        assert stored.third_parties == []

    async def test_unknown_third_party(self, services, claim):
        assert (await services.claims.remove_third_party(claim.id, uuid4())).unwrap() is False

        result = await services.claims.update_third_party(
            claim.id, uuid4(), ThirdPartyInput(full_name="X")
        )
        assert result.unwrap_err().entity == "ThirdParty"

    async def test_third_parties_editable_after_closure(self, services, claim):
        await services.claims.reject_claim(claim.id, ClaimRejection(rejection_reason="x"))
        await services.claims.close_claim(claim.id)

        result = await services.claims.add_third_party(
            claim.id, ThirdPartyInput(full_name="Témoin")
        )

        assert result.is_ok()

    async def test_documents(self, services, claim, clock):
        first = (
            await services.claims.upload_document(
                claim.id,
                DocumentUpload(
                    document_type="Constat",
                    file_name="constat.pdf",
                    file_path="claims/constat.pdf",
                    content_type="application/pdf",
                    file_size=20480,
                ),
                "agent",
            )
        ).unwrap()
        clock.advance(minutes=10)
        second = (
            await services.claims.upload_document(
                claim.id,
                DocumentUpload(
                    document_type="Photo",
                    file_name="aile.jpg",
                    file_path="claims/aile.jpg",
                ),
            )
        ).unwrap()

        documents = (await services.claims.get_documents(claim.id)).unwrap()
        assert [d.id for d in documents] == [second.id, first.id]
        assert first.uploaded_by == "agent"

        history = (await services.claims.get_history(claim.id)).unwrap()
        assert history[0].action_type == ClaimAction.DOCUMENT_UPLOADED
        assert history[-1].action_type == ClaimAction.CLAIM_CREATED

        assert (await services.claims.delete_document(claim.id, first.id)).unwrap()
        assert (await services.claims.delete_document(claim.id, first.id)).unwrap() is False
        remaining = (await services.claims.get_documents(claim.id)).unwrap()
        assert [d.id for d in remaining] == [second.id]

    async def test_unknown_claim(self, services, reference):
        result = await services.claims.upload_document(
            uuid4(),
            DocumentUpload(document_type="x", file_name="x", file_path="x"),
        )

        assert result.unwrap_err().kind == ErrorKind.NOT_FOUND


class TestClaimQueries:
    """Test lookups and listings."""

    async def test_get_by_number(self, services, claim):
        found = (await services.claims.get_claim_by_number(claim.claim_number)).unwrap()

        assert found.id == claim.id
        missing = await services.claims.get_claim_by_number("SIN-2025-03-9999")
        assert missing.unwrap_err().kind == ErrorKind.NOT_FOUND

    async def test_listings(self, services, policy, issue_policy, reference, clock):
        first = (await services.claims.create_claim(_declaration(policy.id))).unwrap()
        clock.advance(hours=1)
        second = (await services.claims.create_claim(_declaration(policy.id))).unwrap()
        await services.claims.submit_claim(second.id)
        other_policy = await issue_policy(services, client_id=reference.other_client.id)
        other = (await services.claims.create_claim(_declaration(other_policy.id))).unwrap()

        by_policy = await services.claims.list_by_policy(policy.id)
        assert [c.id for c in by_policy] == [second.id, first.id]

        by_client = await services.claims.list_by_client(reference.other_client.id)
        assert [c.id for c in by_client] == [other.id]

        drafts = await services.claims.list_by_status(ClaimStatus.DRAFT)
        assert {c.id for c in drafts} == {first.id, other.id}

        assert len(await services.claims.list_all()) == 3
