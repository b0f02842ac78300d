"""
Rental Application Schema - Application Record and Workflow Enums

Defines the canonical record for one rental application and the enums that
describe its lifecycle. The record is the single source of truth; every
workflow action is expressed as a partial update of these fields.

Principles:
- Identity and references never change after submission
- Stage and payment only move forward
- Contract status is derived, never trusted from storage
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, fields
from datetime import datetime
from enum import Enum
from typing import Any, Final, Optional


# =============================================================================
# Enums
# =============================================================================


class ApplicationStatus(Enum):
    """Landlord decision on the application."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ApplicationStage(Enum):
    """Coarse lifecycle phase. Never regresses."""

    APPLICATION = "application"
    PROCESSING = "processing"
    COMPLETED = "completed"

    @property
    def index(self) -> int:
        """Position of the stage in the lifecycle (0-based)."""
        return _STAGE_ORDER.index(self)


_STAGE_ORDER: Final[tuple[ApplicationStage, ...]] = (
    ApplicationStage.APPLICATION,
    ApplicationStage.PROCESSING,
    ApplicationStage.COMPLETED,
)


class ContractStatus(Enum):
    """Fine-grained signing progress, derived from the signature flags."""

    PENDING = "pending"
    UPLOADED = "uploaded"
    SIGNED_BY_LANDLORD = "signed_by_landlord"
    SIGNED_BY_TENANT = "signed_by_tenant"
    COMPLETED = "completed"


class PaymentStatus(Enum):
    """Deposit payment state. PAID is terminal."""

    UNPAID = "unpaid"
    PAID = "paid"


class SignerRole(Enum):
    """The two parties that co-sign a tenancy contract."""

    LANDLORD = "landlord"
    TENANT = "tenant"

    @property
    def other(self) -> "SignerRole":
        if self is SignerRole.LANDLORD:
            return SignerRole.TENANT
        return SignerRole.LANDLORD


class Decision(Enum):
    """Landlord response to a pending application."""

    ACCEPT = "accept"
    REJECT = "reject"


class WorkflowAction(Enum):
    """User-triggerable workflow actions."""

    ACCEPT = "accept"
    REJECT = "reject"
    UPLOAD_CONTRACT = "upload_contract"
    UPLOAD_SIGNATURE = "upload_signature"
    PAY = "pay"
    FINALIZE = "finalize"


# =============================================================================
# Constants
# =============================================================================

# Contract and signature documents must be PDFs
ALLOWED_DOCUMENT_EXTENSIONS: Final[tuple[str, ...]] = (".pdf",)
ALLOWED_DOCUMENT_CONTENT_TYPES: Final[tuple[str, ...]] = ("application/pdf",)
PDF_MAGIC_BYTES: Final[bytes] = b"%PDF-"

# Maximum document size (10MB)
MAX_DOCUMENT_SIZE_BYTES: Final[int] = 10 * 1024 * 1024

# Fields fixed at submission
IMMUTABLE_FIELDS: Final[frozenset[str]] = frozenset({
    "application_id",
    "property_id",
    "applicant_id",
    "property_owner_id",
    "submitted_at",
    "appointment_time",
    "property_title",
    "applicant_name",
    "message",
    "monthly_rent",
})


def generate_application_id() -> str:
    """Generate a unique application ID."""
    return f"APP-{uuid.uuid4().hex[:12].upper()}"


# =============================================================================
# Caller Identity
# =============================================================================


@dataclass(frozen=True)
class Caller:
    """
    Identity of the user issuing a workflow action.

    Passed explicitly into every operation; the engine never reads
    session state.
    """

    user_id: str
    display_name: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.user_id or not str(self.user_id).strip():
            raise ValueError("user_id is required")


# =============================================================================
# Application Record
# =============================================================================


@dataclass(frozen=True)
class ApplicationRecord:
    """
    One rental application.

    Frozen: workflow actions produce a new record through
    engine.apply_mutation() or the repository's partial update.
    """

    # === IDENTITY (immutable) ===
    application_id: str
    property_id: str
    applicant_id: str
    property_owner_id: str
    submitted_at: datetime

    # === LANDLORD DECISION ===
    status: ApplicationStatus = ApplicationStatus.PENDING
    feedback: Optional[str] = None
    stage: ApplicationStage = ApplicationStage.APPLICATION

    # === CONTRACT ===
    contract_url: Optional[str] = None
    contract_status: ContractStatus = ContractStatus.PENDING
    contract_signed_landlord: bool = False
    contract_signed_tenant: bool = False
    landlord_signature_url: Optional[str] = None
    tenant_signature_url: Optional[str] = None

    # === PAYMENT ===
    payment_status: PaymentStatus = PaymentStatus.UNPAID

    # === INFORMATIONAL (immutable) ===
    appointment_time: Optional[datetime] = None
    property_title: Optional[str] = None
    applicant_name: Optional[str] = None
    message: Optional[str] = None
    monthly_rent: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate identity fields at construction."""
        for name in ("application_id", "property_id", "applicant_id", "property_owner_id"):
            value = getattr(self, name)
            if not value or not str(value).strip():
                raise ValueError(f"{name} is required and cannot be empty")
        if self.applicant_id == self.property_owner_id:
            raise ValueError("applicant cannot apply to their own property")
        if self.monthly_rent is not None and self.monthly_rent <= 0:
            raise ValueError("monthly_rent must be positive")

    # -------------------------------------------------------------------------
    # Convenience views
    # -------------------------------------------------------------------------

    @property
    def has_contract(self) -> bool:
        return bool(self.contract_url)

    @property
    def both_signed(self) -> bool:
        return self.contract_signed_landlord and self.contract_signed_tenant

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID

    @property
    def is_rejected(self) -> bool:
        return self.status == ApplicationStatus.REJECTED

    @property
    def is_completed(self) -> bool:
        return self.stage == ApplicationStage.COMPLETED

    @property
    def ready_to_finalize(self) -> bool:
        """Both completion conditions hold but the stage has not advanced yet."""
        return self.both_signed and self.is_paid and not self.is_completed

    def is_signed_by(self, role: SignerRole) -> bool:
        if role is SignerRole.LANDLORD:
            return self.contract_signed_landlord
        return self.contract_signed_tenant

    def party_id(self, role: SignerRole) -> str:
        """User ID expected to act as the given signer role."""
        if role is SignerRole.LANDLORD:
            return self.property_owner_id
        return self.applicant_id

    # -------------------------------------------------------------------------
    # Serialisation
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialisation."""
        return {
            "application_id": self.application_id,
            "property_id": self.property_id,
            "applicant_id": self.applicant_id,
            "property_owner_id": self.property_owner_id,
            "submitted_at": self.submitted_at.isoformat(),
            "status": self.status.value,
            "feedback": self.feedback,
            "stage": self.stage.value,
            "contract_url": self.contract_url,
            "contract_status": self.contract_status.value,
            "contract_signed_landlord": self.contract_signed_landlord,
            "contract_signed_tenant": self.contract_signed_tenant,
            "landlord_signature_url": self.landlord_signature_url,
            "tenant_signature_url": self.tenant_signature_url,
            "payment_status": self.payment_status.value,
            "appointment_time": (
                self.appointment_time.isoformat() if self.appointment_time else None
            ),
            "property_title": self.property_title,
            "applicant_name": self.applicant_name,
            "message": self.message,
            "monthly_rent": self.monthly_rent,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ApplicationRecord":
        """Create from dictionary."""
        return cls(
            application_id=data["application_id"],
            property_id=data["property_id"],
            applicant_id=data["applicant_id"],
            property_owner_id=data["property_owner_id"],
            submitted_at=datetime.fromisoformat(data["submitted_at"]),
            status=ApplicationStatus(data.get("status", "pending")),
            feedback=data.get("feedback"),
            stage=ApplicationStage(data.get("stage", "application")),
            contract_url=data.get("contract_url"),
            contract_status=ContractStatus(data.get("contract_status", "pending")),
            contract_signed_landlord=bool(data.get("contract_signed_landlord", False)),
            contract_signed_tenant=bool(data.get("contract_signed_tenant", False)),
            landlord_signature_url=data.get("landlord_signature_url"),
            tenant_signature_url=data.get("tenant_signature_url"),
            payment_status=PaymentStatus(data.get("payment_status", "unpaid")),
            appointment_time=(
                datetime.fromisoformat(data["appointment_time"])
                if data.get("appointment_time")
                else None
            ),
            property_title=data.get("property_title"),
            applicant_name=data.get("applicant_name"),
            message=data.get("message"),
            monthly_rent=data.get("monthly_rent"),
        )


# Every field name on the record; the repository rejects anything else
RECORD_FIELDS: Final[frozenset[str]] = frozenset(f.name for f in fields(ApplicationRecord))

MUTABLE_FIELDS: Final[frozenset[str]] = RECORD_FIELDS - IMMUTABLE_FIELDS
