"""
Deposit Payment - Payment Collaborator Interface and Ledger

The workflow only consumes the outcome of a charge. Card handling and the
provider protocol live behind PaymentGateway; MockPaymentGateway is the
development and test implementation.

Deposit terms (tenancy agreement):
- Security deposit: 2 months' rent
- Utility deposit: 0.5 month's rent
- Flat default deposit when the rent is unknown
"""

from __future__ import annotations

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Final, Optional

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

SECURITY_DEPOSIT_MONTHS: Final[float] = 2.0
UTILITY_DEPOSIT_MONTHS: Final[float] = 0.5
DEFAULT_DEPOSIT_AMOUNT: Final[float] = 1000.0
DEFAULT_CURRENCY: Final[str] = "MYR"
TENANCY_PERIOD_MONTHS: Final[int] = 12


# =============================================================================
# Deposit Calculation
# =============================================================================


@dataclass(frozen=True)
class DepositBreakdown:
    """Amounts due from the tenant at signing."""

    security_deposit: float
    utility_deposit: float
    currency: str = DEFAULT_CURRENCY

    @property
    def total(self) -> float:
        return round(self.security_deposit + self.utility_deposit, 2)

    def to_dict(self) -> dict:
        return {
            "security_deposit": self.security_deposit,
            "utility_deposit": self.utility_deposit,
            "total": self.total,
            "currency": self.currency,
        }


def compute_deposit(
    monthly_rent: Optional[float],
    default_amount: float = DEFAULT_DEPOSIT_AMOUNT,
    currency: str = DEFAULT_CURRENCY,
) -> DepositBreakdown:
    """
    Compute the deposit for a tenancy.

    Args:
        monthly_rent: Monthly rental, or None when the listing has none
        default_amount: Flat security deposit used when rent is unknown
        currency: ISO currency code

    Returns:
        DepositBreakdown
    """
    if not monthly_rent or monthly_rent <= 0:
        return DepositBreakdown(
            security_deposit=round(default_amount, 2),
            utility_deposit=0.0,
            currency=currency,
        )
    return DepositBreakdown(
        security_deposit=round(monthly_rent * SECURITY_DEPOSIT_MONTHS, 2),
        utility_deposit=round(monthly_rent * UTILITY_DEPOSIT_MONTHS, 2),
        currency=currency,
    )


# =============================================================================
# Gateway
# =============================================================================


@dataclass(frozen=True)
class PaymentOutcome:
    """Result of one charge attempt."""

    success: bool
    reference: Optional[str] = None
    failure_reason: Optional[str] = None

    @classmethod
    def succeeded(cls, reference: str) -> "PaymentOutcome":
        return cls(success=True, reference=reference)

    @classmethod
    def failed(cls, reason: str) -> "PaymentOutcome":
        return cls(success=False, failure_reason=reason)


class PaymentGateway(ABC):
    """Abstract payment collaborator."""

    @abstractmethod
    def charge(
        self,
        amount: float,
        application_id: str,
        payer_id: str,
        currency: str = DEFAULT_CURRENCY,
    ) -> PaymentOutcome:
        """
        Charge the payer for an application's deposit.

        Returns:
            PaymentOutcome; any non-success is treated as nothing happened
        """
        pass


class MockPaymentGateway(PaymentGateway):
    """
    Gateway that approves charges without contacting a provider.

    Failures can be scripted for tests: `decline_next` declines the next
    N charges, `declined_payers` always declines those payers.
    """

    def __init__(self, decline_next: int = 0, declined_payers: Optional[set[str]] = None):
        self.decline_next = decline_next
        self.declined_payers = set(declined_payers or ())
        self.charges: list[tuple[str, str, float]] = []

    def charge(
        self,
        amount: float,
        application_id: str,
        payer_id: str,
        currency: str = DEFAULT_CURRENCY,
    ) -> PaymentOutcome:
        self.charges.append((application_id, payer_id, amount))

        if amount <= 0:
            return PaymentOutcome.failed("Amount must be positive")
        if payer_id in self.declined_payers:
            return PaymentOutcome.failed("Card declined")
        if self.decline_next > 0:
            self.decline_next -= 1
            return PaymentOutcome.failed("Card declined")

        return PaymentOutcome.succeeded(f"pm_mock_{uuid.uuid4().hex[:16]}")


# =============================================================================
# Ledger
# =============================================================================


@dataclass(frozen=True)
class PaymentReceipt:
    """A successful deposit payment."""

    payment_id: str
    application_id: str
    payer_id: str
    amount: float
    currency: str
    provider_reference: Optional[str]
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "payment_id": self.payment_id,
            "application_id": self.application_id,
            "payer_id": self.payer_id,
            "amount": self.amount,
            "currency": self.currency,
            "provider_reference": self.provider_reference,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class PaymentLedger:
    """In-memory record of successful payments."""

    _receipts: list[PaymentReceipt] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record(
        self,
        application_id: str,
        payer_id: str,
        amount: float,
        currency: str,
        provider_reference: Optional[str] = None,
    ) -> PaymentReceipt:
        receipt = PaymentReceipt(
            payment_id=f"PAY-{uuid.uuid4().hex[:12].upper()}",
            application_id=application_id,
            payer_id=payer_id,
            amount=amount,
            currency=currency,
            provider_reference=provider_reference,
            created_at=datetime.utcnow(),
        )
        with self._lock:
            self._receipts.append(receipt)
        logger.info(
            "payment recorded application=%s payer=%s amount=%.2f %s",
            application_id,
            payer_id,
            amount,
            currency,
        )
        return receipt

    def for_application(self, application_id: str) -> list[PaymentReceipt]:
        return [r for r in self._receipts if r.application_id == application_id]

    def total_paid(self, application_id: str) -> float:
        return round(sum(r.amount for r in self.for_application(application_id)), 2)

    def __len__(self) -> int:
        return len(self._receipts)
