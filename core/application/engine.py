"""
Workflow State Engine - Application Lifecycle Transitions

This module is the SINGLE SOURCE OF TRUTH for application state changes.
Given the current ApplicationRecord, the caller and a requested action, it
either raises a WorkflowError or returns a RecordMutation describing the
complete set of fields to write.

Rules (Non-Negotiable):
- The engine performs no I/O; storing documents and writing records is
  the caller's job
- Every mutation is one combined update, never a sequence of writes
- contract_status is recomputed on every mutation from the signature flags
- Signing and payment commute: any order converges on the same record
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Optional

from core.application.errors import (
    AuthorizationError,
    InvalidTransition,
    PreconditionFailed,
    ValidationError,
)
from core.application.schema import (
    ApplicationRecord,
    ApplicationStage,
    ApplicationStatus,
    Caller,
    ContractStatus,
    Decision,
    MUTABLE_FIELDS,
    PaymentStatus,
    SignerRole,
    WorkflowAction,
    generate_application_id,
)


# =============================================================================
# Mutation
# =============================================================================


@dataclass(frozen=True)
class RecordMutation:
    """
    Partial update produced by a workflow action.

    `changes` maps field names to new values. An empty mapping means the
    action was accepted but nothing needs writing.
    """

    application_id: str
    action: WorkflowAction
    changes: dict[str, Any] = field(default_factory=dict)

    @property
    def is_noop(self) -> bool:
        return not self.changes

    @property
    def completes_application(self) -> bool:
        return self.changes.get("stage") == ApplicationStage.COMPLETED


def apply_mutation(record: ApplicationRecord, mutation: RecordMutation) -> ApplicationRecord:
    """
    Return a new record with the mutation applied.

    Raises:
        ValueError: If the mutation targets another record or an immutable field
    """
    if mutation.application_id != record.application_id:
        raise ValueError(
            f"Mutation for {mutation.application_id} applied to {record.application_id}"
        )
    illegal = set(mutation.changes) - MUTABLE_FIELDS
    if illegal:
        raise ValueError(f"Cannot modify fields: {sorted(illegal)}")
    if mutation.is_noop:
        return record
    return replace(record, **mutation.changes)


# =============================================================================
# Derivations
# =============================================================================


def derive_contract_status(
    has_contract: bool,
    landlord_signed: bool,
    tenant_signed: bool,
) -> ContractStatus:
    """
    Compute contract status from contract presence and the two signature flags.

    This is the only place contract status is decided. Stored values are
    overwritten with this result on every write.
    """
    if not has_contract:
        return ContractStatus.PENDING
    if landlord_signed and tenant_signed:
        return ContractStatus.COMPLETED
    if landlord_signed:
        return ContractStatus.SIGNED_BY_LANDLORD
    if tenant_signed:
        return ContractStatus.SIGNED_BY_TENANT
    return ContractStatus.UPLOADED


def contract_status_of(record: ApplicationRecord) -> ContractStatus:
    return derive_contract_status(
        record.has_contract,
        record.contract_signed_landlord,
        record.contract_signed_tenant,
    )


def _settle(record: ApplicationRecord, changes: dict[str, Any]) -> dict[str, Any]:
    """
    Complete a change set with the derived fields.

    Recomputes contract_status against the post-change values and applies
    the single automatic transition: both signed + paid advances the stage
    to COMPLETED in the same update. Idempotent.
    """
    projected = replace(record, **changes)
    settled = dict(changes)

    if changes:
        settled["contract_status"] = contract_status_of(projected)

    if projected.both_signed and projected.is_paid and not projected.is_completed:
        settled["stage"] = ApplicationStage.COMPLETED

    return settled


def settle_record(record: ApplicationRecord) -> ApplicationRecord:
    """
    Re-derive contract_status and the automatic completion on a whole record.

    The record store applies this to the merged result of every write, so
    two change sets computed from the same stale view still end in a
    consistent record.
    """
    settled = replace(record, contract_status=contract_status_of(record))
    if settled.both_signed and settled.is_paid and not settled.is_completed:
        settled = replace(settled, stage=ApplicationStage.COMPLETED)
    return settled


# =============================================================================
# Guards
# =============================================================================


def _require_owner(record: ApplicationRecord, caller: Caller, doing: str) -> None:
    if caller.user_id != record.property_owner_id:
        raise AuthorizationError(
            f"Only the property owner can {doing}",
            record.application_id,
        )


def _require_applicant(record: ApplicationRecord, caller: Caller, doing: str) -> None:
    if caller.user_id != record.applicant_id:
        raise AuthorizationError(
            f"Only the applicant can {doing}",
            record.application_id,
        )


def _require_party(record: ApplicationRecord, caller: Caller, doing: str) -> None:
    if caller.user_id not in (record.property_owner_id, record.applicant_id):
        raise AuthorizationError(
            f"Only the landlord or the tenant can {doing}",
            record.application_id,
        )


def _require_not_rejected(record: ApplicationRecord) -> None:
    if record.is_rejected:
        raise InvalidTransition(
            "This application was rejected; no further contract or payment activity is allowed",
            record.application_id,
        )


def _require_accepted(record: ApplicationRecord) -> None:
    _require_not_rejected(record)
    if record.status != ApplicationStatus.ACCEPTED:
        raise PreconditionFailed(
            "The landlord has not accepted this application yet",
            record.application_id,
        )


def _require_open_contract(record: ApplicationRecord) -> None:
    if record.is_completed:
        raise InvalidTransition(
            "This application is already completed; contract documents are final",
            record.application_id,
        )


# =============================================================================
# Submission
# =============================================================================


def submit_application(
    property_id: str,
    applicant_id: str,
    property_owner_id: str,
    submitted_at: Optional[datetime] = None,
    appointment_time: Optional[datetime] = None,
    property_title: Optional[str] = None,
    applicant_name: Optional[str] = None,
    message: Optional[str] = None,
    monthly_rent: Optional[int] = None,
    application_id: Optional[str] = None,
) -> ApplicationRecord:
    """
    Create the initial record for a new application.

    Raises:
        ValidationError: If a reference is missing or the applicant owns the property
    """
    try:
        return ApplicationRecord(
            application_id=application_id or generate_application_id(),
            property_id=property_id,
            applicant_id=applicant_id,
            property_owner_id=property_owner_id,
            submitted_at=submitted_at or datetime.utcnow(),
            appointment_time=appointment_time,
            property_title=property_title,
            applicant_name=applicant_name,
            message=message.strip() if message and message.strip() else None,
            monthly_rent=monthly_rent,
        )
    except ValueError as e:
        raise ValidationError(str(e)) from e


# =============================================================================
# Landlord Response
# =============================================================================


def respond(
    record: ApplicationRecord,
    caller: Caller,
    decision: Decision,
    feedback: Optional[str] = None,
) -> RecordMutation:
    """
    Accept or reject a pending application.

    Raises:
        AuthorizationError: Caller is not the property owner
        InvalidTransition: The application was already decided
        ValidationError: Rejecting without feedback
    """
    _require_owner(record, caller, "respond to this application")

    if record.status != ApplicationStatus.PENDING:
        raise InvalidTransition(
            f"Application has already been {record.status.value}",
            record.application_id,
        )

    cleaned = feedback.strip() if feedback else ""
    if decision is Decision.REJECT and not cleaned:
        raise ValidationError(
            "Feedback is required when rejecting an application",
            record.application_id,
        )

    if decision is Decision.ACCEPT:
        changes: dict[str, Any] = {
            "status": ApplicationStatus.ACCEPTED,
            "stage": ApplicationStage.PROCESSING,
            "feedback": cleaned or None,
        }
        action = WorkflowAction.ACCEPT
    else:
        changes = {
            "status": ApplicationStatus.REJECTED,
            "feedback": cleaned,
        }
        action = WorkflowAction.REJECT

    return RecordMutation(record.application_id, action, changes)


# =============================================================================
# Contract Upload
# =============================================================================


def check_upload_initial_contract(record: ApplicationRecord, caller: Caller) -> None:
    """
    Validate an initial contract upload before the document is stored.

    Raises:
        AuthorizationError: Caller is not the property owner
        InvalidTransition: Application rejected or completed
        PreconditionFailed: Not accepted yet, or a contract already exists
    """
    _require_owner(record, caller, "upload the contract")
    _require_accepted(record)
    _require_open_contract(record)
    if record.has_contract:
        raise PreconditionFailed(
            "A contract has already been uploaded; upload a signed copy instead",
            record.application_id,
        )


def upload_initial_contract(
    record: ApplicationRecord,
    caller: Caller,
    contract_url: str,
) -> RecordMutation:
    """Attach the landlord's contract document to an accepted application."""
    check_upload_initial_contract(record, caller)
    if not contract_url:
        raise ValidationError("contract_url is required", record.application_id)

    changes = _settle(record, {"contract_url": contract_url})
    return RecordMutation(record.application_id, WorkflowAction.UPLOAD_CONTRACT, changes)


# =============================================================================
# Signature Upload
# =============================================================================


def check_upload_signature(
    record: ApplicationRecord,
    caller: Caller,
    signer_role: SignerRole,
) -> None:
    """
    Validate a signed-copy upload before the document is stored.

    Re-signing by a role that already signed is allowed.

    Raises:
        InvalidTransition: Application rejected or completed
        PreconditionFailed: No contract to sign
        AuthorizationError: Caller is not the party for signer_role
    """
    if caller.user_id != record.party_id(signer_role):
        raise AuthorizationError(
            f"Only the {signer_role.value} can upload the {signer_role.value} signature",
            record.application_id,
        )
    _require_not_rejected(record)
    _require_open_contract(record)
    if not record.has_contract:
        raise PreconditionFailed(
            "The landlord has not uploaded a contract yet",
            record.application_id,
        )


def upload_signature(
    record: ApplicationRecord,
    caller: Caller,
    signer_role: SignerRole,
    signature_url: str,
) -> RecordMutation:
    """
    Record a party's signed copy of the contract.

    When this signature completes the contract and the deposit is already
    paid, the same mutation advances the stage to COMPLETED.
    """
    check_upload_signature(record, caller, signer_role)
    if not signature_url:
        raise ValidationError("signature_url is required", record.application_id)

    if signer_role is SignerRole.LANDLORD:
        changes: dict[str, Any] = {
            "contract_signed_landlord": True,
            "landlord_signature_url": signature_url,
        }
    else:
        changes = {
            "contract_signed_tenant": True,
            "tenant_signature_url": signature_url,
        }

    # Re-signing with an identical document changes nothing
    changes = {k: v for k, v in changes.items() if getattr(record, k) != v}

    return RecordMutation(
        record.application_id,
        WorkflowAction.UPLOAD_SIGNATURE,
        _settle(record, changes),
    )


# =============================================================================
# Payment
# =============================================================================


def check_record_payment(record: ApplicationRecord, caller: Caller) -> None:
    """
    Validate a deposit payment before the payment collaborator is charged.

    Raises:
        AuthorizationError: Caller is not the applicant
        InvalidTransition: Application rejected
        PreconditionFailed: Contract not signed by both parties
    """
    _require_applicant(record, caller, "pay the deposit")
    _require_not_rejected(record)
    if not record.both_signed:
        raise PreconditionFailed(
            "Both parties must sign the contract before payment",
            record.application_id,
        )


def record_payment(record: ApplicationRecord, caller: Caller) -> RecordMutation:
    """
    Mark the deposit as paid.

    Idempotent: an already paid record yields an empty mutation. When both
    parties have signed, the same mutation advances the stage to COMPLETED.
    """
    check_record_payment(record, caller)
    if record.is_paid:
        return RecordMutation(record.application_id, WorkflowAction.PAY, _settle(record, {}))

    changes = _settle(record, {"payment_status": PaymentStatus.PAID})
    return RecordMutation(record.application_id, WorkflowAction.PAY, changes)


# =============================================================================
# Finalization
# =============================================================================


def check_finalize(record: ApplicationRecord, caller: Caller) -> None:
    """
    Validate a manual finalization.

    Raises:
        AuthorizationError: Caller is neither landlord nor tenant
        InvalidTransition: Application rejected
        PreconditionFailed: Not signed, not paid, or already completed
    """
    _require_party(record, caller, "finalize this application")
    _require_not_rejected(record)
    if record.is_completed:
        raise PreconditionFailed(
            "Application is already completed",
            record.application_id,
        )
    if not record.both_signed:
        raise PreconditionFailed(
            "Both parties must sign the contract before finalizing",
            record.application_id,
        )
    if not record.is_paid:
        raise PreconditionFailed(
            "The deposit must be paid before finalizing",
            record.application_id,
        )


def finalize(record: ApplicationRecord, caller: Caller) -> RecordMutation:
    """Advance a signed and paid application to COMPLETED."""
    check_finalize(record, caller)
    changes = _settle(record, {"stage": ApplicationStage.COMPLETED})
    return RecordMutation(record.application_id, WorkflowAction.FINALIZE, changes)


# =============================================================================
# Invariants
# =============================================================================


def check_invariants(record: ApplicationRecord) -> list[str]:
    """
    Return every invariant the record violates (empty list when consistent).
    """
    violations: list[str] = []

    if record.stage != ApplicationStage.APPLICATION and record.status != ApplicationStatus.ACCEPTED:
        violations.append(f"stage {record.stage.value} requires status accepted")

    if record.is_completed and not (record.both_signed and record.is_paid):
        violations.append("completed stage requires both signatures and payment")

    if record.contract_status == ContractStatus.COMPLETED and not record.both_signed:
        violations.append("completed contract requires both signatures")

    if not record.has_contract:
        if record.contract_signed_landlord or record.contract_signed_tenant:
            violations.append("signature recorded without a contract")
        if record.contract_status != ContractStatus.PENDING:
            violations.append("contract status set without a contract")

    if record.is_rejected and (
        record.has_contract
        or record.contract_signed_landlord
        or record.contract_signed_tenant
        or record.is_paid
        or record.stage != ApplicationStage.APPLICATION
    ):
        violations.append("rejected application has downstream activity")

    if record.contract_status != contract_status_of(record):
        violations.append(
            f"contract status {record.contract_status.value} does not match "
            f"signatures ({contract_status_of(record).value})"
        )

    return violations
