"""
Tests for deposit calculation, the mock gateway and the payment ledger.
"""

from __future__ import annotations

import pytest

from core.application.payment import (
    DEFAULT_DEPOSIT_AMOUNT,
    MockPaymentGateway,
    PaymentLedger,
    compute_deposit,
)


class TestComputeDeposit:
    """Security deposit 2 months, utility deposit half a month."""

    def test_with_rent(self):
        deposit = compute_deposit(2500)
        assert deposit.security_deposit == 5000.0
        assert deposit.utility_deposit == 1250.0
        assert deposit.total == 6250.0
        assert deposit.currency == "MYR"

    def test_rounds_to_cents(self):
        deposit = compute_deposit(1234.567)
        assert deposit.security_deposit == 2469.13
        assert deposit.utility_deposit == 617.28

    @pytest.mark.parametrize("rent", [None, 0, -100])
    def test_default_without_rent(self, rent):
        deposit = compute_deposit(rent)
        assert deposit.total == DEFAULT_DEPOSIT_AMOUNT
        assert deposit.utility_deposit == 0.0

    def test_custom_default_and_currency(self):
        deposit = compute_deposit(None, default_amount=750, currency="SGD")
        assert deposit.to_dict() == {
            "security_deposit": 750.0,
            "utility_deposit": 0.0,
            "total": 750.0,
            "currency": "SGD",
        }


class TestMockPaymentGateway:
    """Scriptable approvals and declines."""

    def test_approves(self):
        gateway = MockPaymentGateway()
        outcome = gateway.charge(1000.0, "APP-1", "tenant-1")
        assert outcome.success
        assert outcome.reference.startswith("pm_mock_")
        assert gateway.charges == [("APP-1", "tenant-1", 1000.0)]

    def test_decline_next(self):
        gateway = MockPaymentGateway(decline_next=1)
        first = gateway.charge(1000.0, "APP-1", "tenant-1")
        second = gateway.charge(1000.0, "APP-1", "tenant-1")
        assert not first.success
        assert first.failure_reason == "Card declined"
        assert second.success

    def test_declined_payer(self):
        gateway = MockPaymentGateway(declined_payers={"tenant-9"})
        assert not gateway.charge(1000.0, "APP-1", "tenant-9").success
        assert gateway.charge(1000.0, "APP-2", "tenant-1").success

    def test_non_positive_amount(self):
        outcome = MockPaymentGateway().charge(0, "APP-1", "tenant-1")
        assert not outcome.success


class TestPaymentLedger:
    """Receipts for successful payments."""

    def test_record(self):
        ledger = PaymentLedger()
        receipt = ledger.record("APP-1", "tenant-1", 6250.0, "MYR", "pm_mock_abc")
        assert receipt.payment_id.startswith("PAY-")
        assert ledger.for_application("APP-1") == [receipt]
        assert ledger.total_paid("APP-1") == 6250.0
        assert len(ledger) == 1
        assert receipt.to_dict()["provider_reference"] == "pm_mock_abc"

    def test_per_application(self):
        ledger = PaymentLedger()
        ledger.record("APP-1", "tenant-1", 100.0, "MYR")
        ledger.record("APP-2", "tenant-2", 200.0, "MYR")
        assert ledger.total_paid("APP-2") == 200.0
        assert ledger.for_application("APP-3") == []
