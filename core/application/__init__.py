"""
Rental Application Workflow

Lifecycle of one rental application between a tenant and a landlord:
submission, landlord review, contract upload, co-signature, deposit
payment and finalization.

Principles:
1. The record is the single source of truth
2. Every action is one combined update
3. Signing and payment commute
4. Rejection freezes everything downstream
5. The UI re-derives what is enabled from the record on every render
"""

from core.application.schema import (
    ApplicationRecord,
    ApplicationStatus,
    ApplicationStage,
    ContractStatus,
    PaymentStatus,
    SignerRole,
    Decision,
    WorkflowAction,
    Caller,
    generate_application_id,
    ALLOWED_DOCUMENT_EXTENSIONS,
    MAX_DOCUMENT_SIZE_BYTES,
)
from core.application.errors import (
    WorkflowError,
    ValidationError,
    PreconditionFailed,
    ActionInProgress,
    InvalidTransition,
    StorageFailure,
    AuthorizationError,
    ApplicationNotFound,
)
from core.application.engine import (
    RecordMutation,
    apply_mutation,
    derive_contract_status,
    check_invariants,
    submit_application,
    respond,
    upload_initial_contract,
    upload_signature,
    record_payment,
    finalize,
)
from core.application.timeline import (
    EventClassification,
    TimelineEvent,
    project_timeline,
    current_event,
)
from core.application.surface import (
    StageTab,
    StageTabState,
    CallerRole,
    InteractionSurface,
    build_surface,
    STAGE_TABS,
)
from core.application.storage import (
    ContractDocumentStorage,
    DocumentSlot,
    StoredDocument,
    validate_contract_file,
    get_document_storage,
    reset_document_storage,
)
from core.application.repository import (
    ApplicationRepository,
    get_application_repository,
    reset_application_repository,
)
from core.application.payment import (
    PaymentGateway,
    MockPaymentGateway,
    PaymentOutcome,
    PaymentReceipt,
    PaymentLedger,
    DepositBreakdown,
    compute_deposit,
)
from core.application.service import (
    ApplicationWorkflowService,
    InFlightRegistry,
    PaymentAttempt,
)

__all__ = [
    # Schema
    "ApplicationRecord",
    "ApplicationStatus",
    "ApplicationStage",
    "ContractStatus",
    "PaymentStatus",
    "SignerRole",
    "Decision",
    "WorkflowAction",
    "Caller",
    "generate_application_id",
    "ALLOWED_DOCUMENT_EXTENSIONS",
    "MAX_DOCUMENT_SIZE_BYTES",
    # Errors
    "WorkflowError",
    "ValidationError",
    "PreconditionFailed",
    "ActionInProgress",
    "InvalidTransition",
    "StorageFailure",
    "AuthorizationError",
    "ApplicationNotFound",
    # Engine
    "RecordMutation",
    "apply_mutation",
    "derive_contract_status",
    "check_invariants",
    "submit_application",
    "respond",
    "upload_initial_contract",
    "upload_signature",
    "record_payment",
    "finalize",
    # Timeline
    "EventClassification",
    "TimelineEvent",
    "project_timeline",
    "current_event",
    # Interaction surface
    "StageTab",
    "StageTabState",
    "CallerRole",
    "InteractionSurface",
    "build_surface",
    "STAGE_TABS",
    # Storage
    "ContractDocumentStorage",
    "DocumentSlot",
    "StoredDocument",
    "validate_contract_file",
    "get_document_storage",
    "reset_document_storage",
    # Repository
    "ApplicationRepository",
    "get_application_repository",
    "reset_application_repository",
    # Payment
    "PaymentGateway",
    "MockPaymentGateway",
    "PaymentOutcome",
    "PaymentReceipt",
    "PaymentLedger",
    "DepositBreakdown",
    "compute_deposit",
    # Service
    "ApplicationWorkflowService",
    "InFlightRegistry",
    "PaymentAttempt",
]
