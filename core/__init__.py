"""
Rental Application Workflow - Core Business Logic

This module provides the application lifecycle:
1. Submission (tenant)
2. Landlord review (accept / reject with feedback)
3. Contract upload (landlord)
4. Signatures (both parties, any order)
5. Deposit payment (tenant, before or after the landlord signs)
6. Completion (automatic once signed and paid, or manual finalize)
"""

from .application import (
    ApplicationRecord,
    ApplicationStatus,
    ApplicationStage,
    ContractStatus,
    PaymentStatus,
    SignerRole,
    Decision,
    WorkflowAction,
    Caller,
    WorkflowError,
    ApplicationWorkflowService,
    project_timeline,
    build_surface,
)

__all__ = [
    "ApplicationRecord",
    "ApplicationStatus",
    "ApplicationStage",
    "ContractStatus",
    "PaymentStatus",
    "SignerRole",
    "Decision",
    "WorkflowAction",
    "Caller",
    "WorkflowError",
    "ApplicationWorkflowService",
    "project_timeline",
    "build_surface",
]
