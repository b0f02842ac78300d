"""
Tests for the Interaction Surface

Tests covering:
1. Stage tab reachability and default tab
2. Action enablement per role and record state
3. In-flight disabling
4. Surface rebuilt from the latest record (no stale enablement)
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

import pytest

from core.application.schema import (
    ApplicationRecord,
    ApplicationStage,
    ApplicationStatus,
    Caller,
    ContractStatus,
    PaymentStatus,
    WorkflowAction,
)
from core.application.surface import (
    CallerRole,
    StageTab,
    build_surface,
)


LANDLORD = Caller("owner-1")
TENANT = Caller("tenant-1")
OBSERVER = Caller("visitor-9")


@pytest.fixture
def pending():
    return ApplicationRecord(
        application_id="APP-SURFACE00001",
        property_id="prop-1",
        applicant_id=TENANT.user_id,
        property_owner_id=LANDLORD.user_id,
        submitted_at=datetime(2026, 2, 14, 8, 30),
    )


@pytest.fixture
def accepted(pending):
    return replace(pending, status=ApplicationStatus.ACCEPTED, stage=ApplicationStage.PROCESSING)


@pytest.fixture
def with_contract(accepted):
    return replace(
        accepted,
        contract_url="/files/contracts/APP-SURFACE00001/contract.pdf",
        contract_status=ContractStatus.UPLOADED,
    )


@pytest.fixture
def both_signed(with_contract):
    return replace(
        with_contract,
        contract_signed_landlord=True,
        contract_signed_tenant=True,
        contract_status=ContractStatus.COMPLETED,
    )


@pytest.fixture
def completed(both_signed):
    return replace(both_signed, payment_status=PaymentStatus.PAID, stage=ApplicationStage.COMPLETED)


def enabled(record, caller, in_flight=False):
    return build_surface(record, caller, in_flight).enabled_actions


class TestStageTabs:
    """Reachability follows the record's stage."""

    def test_pending_only_application_tab(self, pending):
        surface = build_surface(pending, TENANT)
        assert surface.active_tab is StageTab.APPLICATION
        assert surface.is_reachable(StageTab.APPLICATION)
        assert not surface.is_reachable(StageTab.CONTRACT_PAYMENT)
        assert not surface.is_reachable(StageTab.COMPLETED)

    def test_processing(self, accepted):
        surface = build_surface(accepted, LANDLORD)
        assert surface.active_tab is StageTab.CONTRACT_PAYMENT
        assert surface.is_reachable(StageTab.CONTRACT_PAYMENT)
        assert not surface.is_reachable(StageTab.COMPLETED)

    def test_completed(self, completed):
        surface = build_surface(completed, TENANT)
        assert surface.active_tab is StageTab.COMPLETED
        assert all(state.reachable for state in surface.tabs)
        assert all(state.done for state in surface.tabs)

    def test_rejected_stays_on_application(self, pending):
        rejected = replace(pending, status=ApplicationStatus.REJECTED, feedback="No")
        surface = build_surface(rejected, TENANT)
        assert surface.active_tab is StageTab.APPLICATION
        assert not surface.is_reachable(StageTab.CONTRACT_PAYMENT)
        assert surface.status_message == "Application rejected"


class TestEnabledActions:
    """Which controls are live for whom."""

    def test_pending_landlord_can_respond(self, pending):
        assert enabled(pending, LANDLORD) == {WorkflowAction.ACCEPT, WorkflowAction.REJECT}
        assert enabled(pending, TENANT) == frozenset()

    def test_accepted_only_contract_upload(self, accepted):
        assert enabled(accepted, LANDLORD) == {WorkflowAction.UPLOAD_CONTRACT}
        assert enabled(accepted, TENANT) == frozenset()

    def test_contract_present_both_can_sign(self, with_contract):
        assert enabled(with_contract, LANDLORD) == {WorkflowAction.UPLOAD_SIGNATURE}
        assert enabled(with_contract, TENANT) == {WorkflowAction.UPLOAD_SIGNATURE}

    def test_signed_role_not_offered_again(self, with_contract):
        tenant_signed = replace(
            with_contract,
            contract_signed_tenant=True,
            contract_status=ContractStatus.SIGNED_BY_TENANT,
        )
        assert WorkflowAction.UPLOAD_SIGNATURE not in enabled(tenant_signed, TENANT)
        assert WorkflowAction.UPLOAD_SIGNATURE in enabled(tenant_signed, LANDLORD)
        assert WorkflowAction.PAY not in enabled(tenant_signed, TENANT)

    def test_pay_only_tenant_after_both_signed(self, both_signed):
        assert enabled(both_signed, TENANT) == {WorkflowAction.PAY}
        assert enabled(both_signed, LANDLORD) == frozenset()

    def test_finalize_when_ready(self, both_signed):
        ready = replace(both_signed, payment_status=PaymentStatus.PAID)
        assert enabled(ready, TENANT) == {WorkflowAction.FINALIZE}
        assert enabled(ready, LANDLORD) == {WorkflowAction.FINALIZE}
        assert build_surface(ready, TENANT).status_message == "Ready to finalize"

    def test_nothing_after_completion(self, completed):
        assert enabled(completed, TENANT) == frozenset()
        assert enabled(completed, LANDLORD) == frozenset()

    def test_observer_gets_nothing(self, with_contract):
        surface = build_surface(with_contract, OBSERVER)
        assert surface.caller_role is CallerRole.OBSERVER
        assert surface.enabled_actions == frozenset()

    def test_in_flight_disables_everything(self, pending, with_contract):
        assert enabled(pending, LANDLORD, in_flight=True) == frozenset()
        surface = build_surface(with_contract, TENANT, in_flight=True)
        assert surface.in_flight is True
        assert surface.enabled_actions == frozenset()


class TestSurfaceFreshness:
    """A surface reflects the record it was built from, nothing older."""

    def test_rebuilt_after_update(self, with_contract):
        before = build_surface(with_contract, TENANT)
        assert before.is_enabled(WorkflowAction.UPLOAD_SIGNATURE)

        after_sign = replace(
            with_contract,
            contract_signed_tenant=True,
            contract_status=ContractStatus.SIGNED_BY_TENANT,
        )
        after = build_surface(after_sign, TENANT)
        assert not after.is_enabled(WorkflowAction.UPLOAD_SIGNATURE)
        assert after.status_message == "Waiting for the other party to sign"

    def test_to_dict(self, pending):
        data = build_surface(pending, LANDLORD).to_dict()
        assert data["caller_role"] == "landlord"
        assert data["active_tab"] == "application"
        assert data["enabled_actions"] == ["accept", "reject"]
        assert [t["label"] for t in data["tabs"]] == ["Application", "Contract & Payment", "Completed"]
        assert data["status_message"] == "Review this application and respond"
