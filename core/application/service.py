"""
Application Workflow Service - Orchestrates Actions Against the Stores

Every action follows the same path:
1. Read the authoritative record
2. Validate with the engine (before touching any collaborator)
3. Store the document / charge the payment, if the action needs one
4. Write the engine's mutation as ONE combined update
5. Re-fetch and return the record

A failure at any step leaves the record as it was. A document stored in
step 3 whose update fails in step 4 stays in its overwritable slot; the
retry writes the same slot again.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, Optional

from core.application import engine
from core.application.errors import ActionInProgress, StorageFailure
from core.application.payment import (
    DEFAULT_CURRENCY,
    DEFAULT_DEPOSIT_AMOUNT,
    DepositBreakdown,
    MockPaymentGateway,
    PaymentGateway,
    PaymentLedger,
    PaymentOutcome,
    PaymentReceipt,
    compute_deposit,
)
from core.application.repository import ApplicationRepository
from core.application.schema import (
    ApplicationRecord,
    Caller,
    Decision,
    SignerRole,
)
from core.application.storage import ContractDocumentStorage, DocumentSlot
from core.application.surface import InteractionSurface, build_surface
from core.application.timeline import TimelineEvent, project_timeline

logger = logging.getLogger(__name__)


# =============================================================================
# In-flight Guard
# =============================================================================


class InFlightRegistry:
    """
    Tracks applications with an outstanding action.

    A second action on the same application while one is running is
    refused instead of queued, mirroring a disabled button.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._active: set[str] = set()

    def is_in_flight(self, application_id: str) -> bool:
        with self._lock:
            return application_id in self._active

    @contextmanager
    def hold(self, application_id: str) -> Iterator[None]:
        with self._lock:
            if application_id in self._active:
                raise ActionInProgress(
                    "Another action on this application is still in progress",
                    application_id,
                )
            self._active.add(application_id)
        try:
            yield
        finally:
            with self._lock:
                self._active.discard(application_id)


# =============================================================================
# Result Types
# =============================================================================


@dataclass(frozen=True)
class PaymentAttempt:
    """Outcome of a deposit payment attempt and the record afterwards."""

    record: ApplicationRecord
    outcome: PaymentOutcome
    amount: float
    currency: str
    receipt: Optional[PaymentReceipt] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome.success

    def to_dict(self) -> dict:
        return {
            "success": self.outcome.success,
            "failure_reason": self.outcome.failure_reason,
            "amount": self.amount,
            "currency": self.currency,
            "receipt": self.receipt.to_dict() if self.receipt else None,
            "application": self.record.to_dict(),
        }


# =============================================================================
# Service
# =============================================================================


class ApplicationWorkflowService:
    """
    Runs workflow actions against the record store, document store and
    payment collaborator.

    Usage:
        service = ApplicationWorkflowService(repository, storage)
        record = service.respond(app_id, Caller("landlord-1"), Decision.ACCEPT, "Welcome!")
    """

    def __init__(
        self,
        repository: ApplicationRepository,
        storage: ContractDocumentStorage,
        gateway: Optional[PaymentGateway] = None,
        ledger: Optional[PaymentLedger] = None,
        default_deposit: float = DEFAULT_DEPOSIT_AMOUNT,
        currency: str = DEFAULT_CURRENCY,
    ):
        self._repository = repository
        self._storage = storage
        self._gateway = gateway or MockPaymentGateway()
        self._ledger = ledger if ledger is not None else PaymentLedger()
        self._default_deposit = default_deposit
        self._currency = currency
        self._in_flight = InFlightRegistry()

    @property
    def repository(self) -> ApplicationRepository:
        return self._repository

    @property
    def storage(self) -> ContractDocumentStorage:
        return self._storage

    @property
    def ledger(self) -> PaymentLedger:
        return self._ledger

    @property
    def default_deposit(self) -> float:
        return self._default_deposit

    @property
    def currency(self) -> str:
        return self._currency

    def _write(self, mutation: engine.RecordMutation) -> ApplicationRecord:
        """Send the mutation as one update and return the re-fetched record."""
        if not mutation.is_noop:
            self._repository.update(mutation.application_id, mutation.changes)
            logger.info(
                "application %s action=%s fields=%s%s",
                mutation.application_id,
                mutation.action.value,
                ",".join(sorted(mutation.changes)),
                " (completed)" if mutation.completes_application else "",
            )
        return self._repository.require(mutation.application_id)

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, application_id: str) -> ApplicationRecord:
        return self._repository.require(application_id)

    def timeline(self, application_id: str) -> list[TimelineEvent]:
        return project_timeline(self.get(application_id))

    def surface(self, application_id: str, caller: Caller) -> InteractionSurface:
        return build_surface(
            self.get(application_id),
            caller,
            in_flight=self._in_flight.is_in_flight(application_id),
        )

    def is_in_flight(self, application_id: str) -> bool:
        return self._in_flight.is_in_flight(application_id)

    # =========================================================================
    # Actions
    # =========================================================================

    def submit(
        self,
        property_id: str,
        applicant: Caller,
        property_owner_id: str,
        appointment_time: Optional[datetime] = None,
        property_title: Optional[str] = None,
        message: Optional[str] = None,
        monthly_rent: Optional[int] = None,
    ) -> ApplicationRecord:
        """Create a new pending application for the calling tenant."""
        record = engine.submit_application(
            property_id=property_id,
            applicant_id=applicant.user_id,
            property_owner_id=property_owner_id,
            appointment_time=appointment_time,
            property_title=property_title,
            applicant_name=applicant.display_name,
            message=message,
            monthly_rent=monthly_rent,
        )
        self._repository.create(record)
        logger.info(
            "application %s submitted property=%s applicant=%s",
            record.application_id,
            property_id,
            applicant.user_id,
        )
        return self._repository.require(record.application_id)

    def respond(
        self,
        application_id: str,
        caller: Caller,
        decision: Decision,
        feedback: Optional[str] = None,
    ) -> ApplicationRecord:
        """Landlord accepts or rejects a pending application."""
        with self._in_flight.hold(application_id):
            record = self._repository.require(application_id)
            mutation = engine.respond(record, caller, decision, feedback)
            return self._write(mutation)

    def upload_initial_contract(
        self,
        application_id: str,
        caller: Caller,
        filename: str,
        content: bytes,
        content_type: Optional[str] = None,
    ) -> ApplicationRecord:
        """Landlord uploads the contract for an accepted application."""
        with self._in_flight.hold(application_id):
            record = self._repository.require(application_id)
            engine.check_upload_initial_contract(record, caller)

            stored = self._storage.store(
                application_id, DocumentSlot.CONTRACT, filename, content, content_type
            )
            mutation = engine.upload_initial_contract(record, caller, stored.url)
            return self._write_after_upload(mutation, stored.url)

    def upload_signature(
        self,
        application_id: str,
        caller: Caller,
        signer_role: SignerRole,
        filename: str,
        content: bytes,
        content_type: Optional[str] = None,
    ) -> ApplicationRecord:
        """Landlord or tenant uploads their signed copy of the contract."""
        with self._in_flight.hold(application_id):
            record = self._repository.require(application_id)
            engine.check_upload_signature(record, caller, signer_role)

            stored = self._storage.store(
                application_id,
                DocumentSlot.for_signer(signer_role),
                filename,
                content,
                content_type,
            )
            mutation = engine.upload_signature(record, caller, signer_role, stored.url)
            return self._write_after_upload(mutation, stored.url)

    def _write_after_upload(self, mutation: engine.RecordMutation, url: str) -> ApplicationRecord:
        try:
            return self._write(mutation)
        except StorageFailure:
            logger.error(
                "record update failed after storing %s for application %s; retry the upload",
                url,
                mutation.application_id,
            )
            raise

    def deposit_for(self, record: ApplicationRecord) -> DepositBreakdown:
        return compute_deposit(record.monthly_rent, self._default_deposit, self._currency)

    def pay_deposit(self, application_id: str, caller: Caller) -> PaymentAttempt:
        """
        Charge the deposit and record the payment.

        A declined charge changes nothing. Paying an already paid
        application does not charge again, and neither does a retry after
        a captured charge whose record update failed.
        """
        with self._in_flight.hold(application_id):
            record = self._repository.require(application_id)
            engine.check_record_payment(record, caller)
            deposit = self.deposit_for(record)

            if record.is_paid:
                # Nothing to charge
                record = self._write(engine.record_payment(record, caller))
                return PaymentAttempt(
                    record=record,
                    outcome=PaymentOutcome.succeeded("already_paid"),
                    amount=deposit.total,
                    currency=deposit.currency,
                )

            captured = self._ledger.for_application(application_id)
            if captured:
                # Charge went through but the record was never updated
                receipt = captured[-1]
                logger.info(
                    "reusing captured payment %s for application %s",
                    receipt.payment_id,
                    application_id,
                )
                record = self._write(engine.record_payment(record, caller))
                return PaymentAttempt(
                    record=record,
                    outcome=PaymentOutcome.succeeded(receipt.provider_reference or receipt.payment_id),
                    amount=receipt.amount,
                    currency=receipt.currency,
                    receipt=receipt,
                )

            outcome = self._gateway.charge(
                deposit.total, application_id, caller.user_id, deposit.currency
            )
            if not outcome.success:
                logger.warning(
                    "deposit charge declined application=%s payer=%s reason=%s",
                    application_id,
                    caller.user_id,
                    outcome.failure_reason,
                )
                return PaymentAttempt(
                    record=record,
                    outcome=outcome,
                    amount=deposit.total,
                    currency=deposit.currency,
                )

            receipt = self._ledger.record(
                application_id,
                caller.user_id,
                deposit.total,
                deposit.currency,
                outcome.reference,
            )
            try:
                record = self._write(engine.record_payment(record, caller))
            except StorageFailure:
                logger.error(
                    "payment %s captured but application %s not updated; retrying records it without charging",
                    receipt.payment_id,
                    application_id,
                )
                raise
            return PaymentAttempt(
                record=record,
                outcome=outcome,
                amount=deposit.total,
                currency=deposit.currency,
                receipt=receipt,
            )

    def record_payment(self, application_id: str, caller: Caller) -> ApplicationRecord:
        """Mark the deposit paid after the provider reported success elsewhere."""
        with self._in_flight.hold(application_id):
            record = self._repository.require(application_id)
            return self._write(engine.record_payment(record, caller))

    def finalize(self, application_id: str, caller: Caller) -> ApplicationRecord:
        """Manually complete a signed and paid application."""
        with self._in_flight.hold(application_id):
            record = self._repository.require(application_id)
            return self._write(engine.finalize(record, caller))
