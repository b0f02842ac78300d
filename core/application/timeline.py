"""
Application Timeline - Read-Only Lifecycle Projection

Maps an ApplicationRecord to the ordered list of lifecycle events shown to
both parties. Recomputed from the record on every call; nothing is cached
or accumulated between calls.

Event order (fixed):
1. Application Submitted
2. Landlord Review            (stops here while pending or if rejected)
3. Contract Upload
4. Tenant Signature
5. Landlord Signature
6. Rent Payment
7. Finalization               (only once ready or done)

Exactly one event is CURRENT: the first step not yet satisfied. A fully
completed or rejected application has no CURRENT event.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from core.application.schema import ApplicationRecord, ApplicationStatus


class EventClassification(Enum):
    """Display state of a timeline event."""

    COMPLETED = "completed"
    CURRENT = "current"
    PENDING = "pending"


@dataclass(frozen=True)
class TimelineEvent:
    """One step of the application lifecycle as shown to the user."""

    title: str
    classification: EventClassification
    description: str
    timestamp: Optional[datetime] = None
    note: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "classification": self.classification.value,
            "description": self.description,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "note": self.note,
        }


@dataclass(frozen=True)
class _Step:
    title: str
    done: bool
    done_text: str
    waiting_text: str


def project_timeline(record: ApplicationRecord) -> list[TimelineEvent]:
    """
    Project the record onto its lifecycle timeline.

    Args:
        record: Current application record

    Returns:
        Ordered list of TimelineEvent
    """
    events = [
        TimelineEvent(
            title="Application Submitted",
            classification=EventClassification.COMPLETED,
            description="Application received",
            timestamp=record.submitted_at,
            note=record.message,
        )
    ]

    if record.status == ApplicationStatus.PENDING:
        events.append(TimelineEvent(
            title="Landlord Review",
            classification=EventClassification.CURRENT,
            description="Awaiting landlord decision",
        ))
        return events

    accepted = record.status == ApplicationStatus.ACCEPTED
    events.append(TimelineEvent(
        title="Landlord Review",
        classification=EventClassification.COMPLETED,
        description="Application accepted" if accepted else "Application rejected",
        note=record.feedback,
    ))
    if not accepted:
        return events

    steps = [
        _Step(
            "Contract Upload",
            record.has_contract,
            "Contract document uploaded",
            "Waiting for landlord to upload contract",
        ),
        _Step(
            "Tenant Signature",
            record.has_contract and record.contract_signed_tenant,
            "Tenant has signed the contract",
            "Tenant needs to sign the contract",
        ),
        _Step(
            "Landlord Signature",
            record.has_contract and record.contract_signed_landlord,
            "Landlord has signed the contract",
            "Landlord needs to sign the contract",
        ),
        _Step(
            "Rent Payment",
            record.is_paid,
            "Payment completed successfully",
            "Tenant needs to pay rent deposit",
        ),
    ]

    current_assigned = False
    for step in steps:
        if step.done:
            classification = EventClassification.COMPLETED
        elif not current_assigned:
            classification = EventClassification.CURRENT
            current_assigned = True
        else:
            classification = EventClassification.PENDING
        events.append(TimelineEvent(
            title=step.title,
            classification=classification,
            description=step.done_text if step.done else step.waiting_text,
        ))

    if record.is_completed:
        events.append(TimelineEvent(
            title="Application Completed",
            classification=EventClassification.COMPLETED,
            description="All steps completed successfully",
        ))
    elif record.both_signed and record.is_paid:
        events.append(TimelineEvent(
            title="Application Finalization",
            classification=EventClassification.CURRENT,
            description="Ready to finalize",
        ))

    return events


def current_event(events: list[TimelineEvent]) -> Optional[TimelineEvent]:
    """Return the CURRENT event, or None for a finished or rejected timeline."""
    for event in events:
        if event.classification is EventClassification.CURRENT:
            return event
    return None
