"""
Interaction Surface - What the UI May Show and Enable

Derives, for one caller and the current authoritative record, which stage
tabs are reachable and which action controls are enabled. The surface is
rebuilt from the record on every render; it holds no state between calls.

Enablement asks the engine whether the action would be accepted, then
applies the UI-only rules on top:
- a party that already signed is not offered the signature upload again
- payment is offered only while unpaid
- nothing is enabled while an action is in flight
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Final, Optional

from core.application import engine
from core.application.errors import WorkflowError
from core.application.schema import (
    ApplicationRecord,
    ApplicationStatus,
    Caller,
    SignerRole,
    WorkflowAction,
)


class StageTab(Enum):
    """The three tabs of the application detail stepper."""

    APPLICATION = "application"
    CONTRACT_PAYMENT = "contract_payment"
    COMPLETED = "completed"

    @property
    def label(self) -> str:
        return _TAB_LABELS[self]


_TAB_LABELS: Final[dict[StageTab, str]] = {
    StageTab.APPLICATION: "Application",
    StageTab.CONTRACT_PAYMENT: "Contract & Payment",
    StageTab.COMPLETED: "Completed",
}

STAGE_TABS: Final[tuple[StageTab, ...]] = (
    StageTab.APPLICATION,
    StageTab.CONTRACT_PAYMENT,
    StageTab.COMPLETED,
)


class CallerRole(Enum):
    """How the caller relates to the application."""

    LANDLORD = "landlord"
    TENANT = "tenant"
    OBSERVER = "observer"

    @property
    def signer_role(self) -> Optional[SignerRole]:
        if self is CallerRole.LANDLORD:
            return SignerRole.LANDLORD
        if self is CallerRole.TENANT:
            return SignerRole.TENANT
        return None


@dataclass(frozen=True)
class StageTabState:
    """Render state of one stepper tab."""

    tab: StageTab
    index: int
    reachable: bool
    active: bool
    done: bool

    def to_dict(self) -> dict:
        return {
            "tab": self.tab.value,
            "label": self.tab.label,
            "index": self.index,
            "reachable": self.reachable,
            "active": self.active,
            "done": self.done,
        }


@dataclass(frozen=True)
class InteractionSurface:
    """Everything the UI needs to render controls for one caller."""

    application_id: str
    caller_role: CallerRole
    tabs: tuple[StageTabState, ...]
    enabled_actions: frozenset[WorkflowAction]
    in_flight: bool
    status_message: str

    @property
    def active_tab(self) -> StageTab:
        for state in self.tabs:
            if state.active:
                return state.tab
        return StageTab.APPLICATION

    def is_enabled(self, action: WorkflowAction) -> bool:
        return action in self.enabled_actions

    def is_reachable(self, tab: StageTab) -> bool:
        return any(state.tab is tab and state.reachable for state in self.tabs)

    def to_dict(self) -> dict:
        return {
            "application_id": self.application_id,
            "caller_role": self.caller_role.value,
            "tabs": [state.to_dict() for state in self.tabs],
            "active_tab": self.active_tab.value,
            "enabled_actions": sorted(a.value for a in self.enabled_actions),
            "in_flight": self.in_flight,
            "status_message": self.status_message,
        }


# =============================================================================
# Derivation
# =============================================================================


def caller_role_for(record: ApplicationRecord, caller: Caller) -> CallerRole:
    if caller.user_id == record.property_owner_id:
        return CallerRole.LANDLORD
    if caller.user_id == record.applicant_id:
        return CallerRole.TENANT
    return CallerRole.OBSERVER


def _accepted(check: Callable[[], None]) -> bool:
    try:
        check()
    except WorkflowError:
        return False
    return True


def enabled_actions_for(
    record: ApplicationRecord,
    caller: Caller,
    in_flight: bool = False,
) -> frozenset[WorkflowAction]:
    """Actions the caller may trigger on the record right now."""
    if in_flight:
        return frozenset()

    enabled: set[WorkflowAction] = set()
    role = caller_role_for(record, caller)

    if role is CallerRole.LANDLORD and record.status == ApplicationStatus.PENDING:
        enabled.update({WorkflowAction.ACCEPT, WorkflowAction.REJECT})

    if _accepted(lambda: engine.check_upload_initial_contract(record, caller)):
        enabled.add(WorkflowAction.UPLOAD_CONTRACT)

    signer = role.signer_role
    if (
        signer is not None
        and not record.is_signed_by(signer)
        and _accepted(lambda: engine.check_upload_signature(record, caller, signer))
    ):
        enabled.add(WorkflowAction.UPLOAD_SIGNATURE)

    if not record.is_paid and _accepted(lambda: engine.check_record_payment(record, caller)):
        enabled.add(WorkflowAction.PAY)

    if _accepted(lambda: engine.check_finalize(record, caller)):
        enabled.add(WorkflowAction.FINALIZE)

    return frozenset(enabled)


def stage_tabs_for(record: ApplicationRecord) -> tuple[StageTabState, ...]:
    """Tab states; a tab is reachable when its index is at most the stage index."""
    current = record.stage.index
    return tuple(
        StageTabState(
            tab=tab,
            index=index,
            reachable=index == 0 or index <= current,
            active=index == current,
            done=index < current or (index == current and record.is_completed),
        )
        for index, tab in enumerate(STAGE_TABS)
    )


def status_message_for(record: ApplicationRecord, role: CallerRole) -> str:
    """Short description of what the workflow is waiting for."""
    if record.status == ApplicationStatus.REJECTED:
        return "Application rejected"
    if record.status == ApplicationStatus.PENDING:
        if role is CallerRole.LANDLORD:
            return "Review this application and respond"
        return "Awaiting landlord decision"
    if record.is_completed:
        return "Application completed"
    if not record.has_contract:
        if role is CallerRole.LANDLORD:
            return "Upload the tenancy contract"
        return "Waiting for landlord to upload contract"

    signer = role.signer_role
    if not record.both_signed:
        if signer is not None and not record.is_signed_by(signer):
            return "Sign the contract and upload your signed copy"
        return "Waiting for the other party to sign"
    if not record.is_paid:
        if role is CallerRole.TENANT:
            return "Contract signed by both parties; pay the deposit"
        return "Contract signed by both parties; waiting for payment"
    return "Ready to finalize"


def build_surface(
    record: ApplicationRecord,
    caller: Caller,
    in_flight: bool = False,
) -> InteractionSurface:
    """
    Build the interaction surface for a caller.

    Args:
        record: Authoritative record, freshly fetched
        caller: User viewing the application
        in_flight: True while an action by this client is outstanding

    Returns:
        InteractionSurface
    """
    role = caller_role_for(record, caller)
    return InteractionSurface(
        application_id=record.application_id,
        caller_role=role,
        tabs=stage_tabs_for(record),
        enabled_actions=enabled_actions_for(record, caller, in_flight),
        in_flight=in_flight,
        status_message=status_message_for(record, role),
    )
