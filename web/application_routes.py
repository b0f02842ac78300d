"""
Application Routes - Web API for Rental Applications

Tenants submit and pay, landlords review and upload the contract, both
sides sign. The record returned by every action is the re-fetched
authoritative record; clients re-render from it.

Access Control:
- The session layer is external; the caller is identified by the
  X-User-Id header (display name in X-User-Name)
- Only the two parties of an application can read or act on it
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, Query, Request, UploadFile
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from core.application import (
    ApplicationRecord,
    ApplicationRepository,
    ApplicationStatus,
    ApplicationWorkflowService,
    AuthorizationError,
    Caller,
    ContractDocumentStorage,
    Decision,
    SignerRole,
    ValidationError,
)
from core.application.payment import MockPaymentGateway
from reporting.tenancy_agreement import AgreementNotAvailable, generate_agreement_pdf
from utils.config import Config


# =============================================================================
# Router Setup
# =============================================================================

router = APIRouter(prefix="/applications", tags=["applications"])


def build_workflow_service(config: Config) -> ApplicationWorkflowService:
    """Wire the workflow service to the stores named in config."""
    return ApplicationWorkflowService(
        repository=ApplicationRepository(config.applications_file),
        storage=ContractDocumentStorage(
            config.document_root,
            config.document_base_url,
            config.max_upload_bytes,
        ),
        gateway=MockPaymentGateway(),
        default_deposit=config.default_deposit,
        currency=config.currency,
    )


def get_workflow_service(request: Request) -> ApplicationWorkflowService:
    """
    The workflow service created with the app.

    Tests replace it through app.dependency_overrides.
    """
    return request.app.state.workflow_service


# =============================================================================
# Request Models
# =============================================================================


class SubmitApplicationRequest(BaseModel):
    """Body of a new application."""
    property_id: str
    property_owner_id: str
    appointment_time: Optional[datetime] = None
    property_title: Optional[str] = None
    message: Optional[str] = None
    monthly_rent: Optional[int] = None


class RespondRequest(BaseModel):
    """Landlord decision: accept or reject."""
    decision: str
    feedback: Optional[str] = None


# =============================================================================
# Helpers
# =============================================================================


def require_caller(
    x_user_id: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
) -> Caller:
    """
    Build the Caller from request headers.

    Raises:
        HTTPException(401) if no user id was sent
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="X-User-Id header is required")
    return Caller(user_id=x_user_id.strip(), display_name=x_user_name)


def _parse_enum(enum_type, value: str, label: str):
    try:
        return enum_type(value.strip().lower())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_type)
        raise ValidationError(f"Invalid {label} '{value}'. Expected one of: {allowed}")


def _visible_record(
    service: ApplicationWorkflowService,
    application_id: str,
    caller: Caller,
) -> ApplicationRecord:
    record = service.get(application_id)
    if caller.user_id not in (record.applicant_id, record.property_owner_id):
        raise AuthorizationError(
            "You are not a party to this application", application_id
        )
    return record


async def _read_upload(upload: UploadFile) -> tuple[str, bytes, Optional[str]]:
    content = await upload.read()
    return upload.filename or "", content, upload.content_type


# =============================================================================
# Reads
# =============================================================================


@router.get("/")
async def list_applications(
    q: Optional[str] = Query(None, description="Search text"),
    status: Optional[str] = Query(None, description="pending, accepted or rejected"),
    applicant_id: Optional[str] = Query(None),
    owner_id: Optional[str] = Query(None),
    caller: Caller = Depends(require_caller),
    service: ApplicationWorkflowService = Depends(get_workflow_service),
):
    """List the caller's applications, newest first."""
    status_filter = _parse_enum(ApplicationStatus, status, "status") if status else None
    records = service.repository.search(
        text=q,
        status=status_filter,
        applicant_id=applicant_id,
        property_owner_id=owner_id,
    )
    visible = [
        r for r in records
        if caller.user_id in (r.applicant_id, r.property_owner_id)
    ]
    return JSONResponse({
        "count": len(visible),
        "applications": [r.to_dict() for r in visible],
    })


@router.get("/{application_id}")
async def get_application(
    application_id: str,
    caller: Caller = Depends(require_caller),
    service: ApplicationWorkflowService = Depends(get_workflow_service),
):
    record = _visible_record(service, application_id, caller)
    return JSONResponse(record.to_dict())


@router.get("/{application_id}/timeline")
async def get_timeline(
    application_id: str,
    caller: Caller = Depends(require_caller),
    service: ApplicationWorkflowService = Depends(get_workflow_service),
):
    """Progress timeline derived from the current record."""
    _visible_record(service, application_id, caller)
    events = service.timeline(application_id)
    return JSONResponse({
        "application_id": application_id,
        "events": [e.to_dict() for e in events],
    })


@router.get("/{application_id}/surface")
async def get_surface(
    application_id: str,
    caller: Caller = Depends(require_caller),
    service: ApplicationWorkflowService = Depends(get_workflow_service),
):
    """Stage tabs and enabled actions for the caller."""
    _visible_record(service, application_id, caller)
    return JSONResponse(service.surface(application_id, caller).to_dict())


@router.get("/{application_id}/agreement.pdf")
async def download_agreement(
    application_id: str,
    landlord_name: Optional[str] = Query(None),
    property_address: Optional[str] = Query(None),
    caller: Caller = Depends(require_caller),
    service: ApplicationWorkflowService = Depends(get_workflow_service),
):
    """Draft tenancy agreement for the landlord to sign and upload."""
    record = _visible_record(service, application_id, caller)
    if landlord_name is None:
        is_owner = caller.user_id == record.property_owner_id
        landlord_name = (caller.display_name if is_owner else None) or record.property_owner_id

    try:
        pdf_bytes = generate_agreement_pdf(
            record,
            landlord_name=landlord_name,
            property_address=property_address,
            default_deposit=service.default_deposit,
            currency=service.currency,
        )
    except AgreementNotAvailable as e:
        raise HTTPException(status_code=409, detail=str(e))

    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="agreement-{application_id}.pdf"'},
    )


# =============================================================================
# Actions
# =============================================================================


@router.post("/", status_code=201)
async def submit_application(
    request: SubmitApplicationRequest,
    caller: Caller = Depends(require_caller),
    service: ApplicationWorkflowService = Depends(get_workflow_service),
):
    """Tenant submits an application for a property."""
    record = service.submit(
        property_id=request.property_id,
        applicant=caller,
        property_owner_id=request.property_owner_id,
        appointment_time=request.appointment_time,
        property_title=request.property_title,
        message=request.message,
        monthly_rent=request.monthly_rent,
    )
    return JSONResponse(record.to_dict(), status_code=201)


@router.post("/{application_id}/respond")
async def respond_to_application(
    application_id: str,
    request: RespondRequest,
    caller: Caller = Depends(require_caller),
    service: ApplicationWorkflowService = Depends(get_workflow_service),
):
    decision = _parse_enum(Decision, request.decision, "decision")
    record = service.respond(application_id, caller, decision, request.feedback)
    return JSONResponse(record.to_dict())


@router.post("/{application_id}/contract")
async def upload_contract(
    application_id: str,
    document: UploadFile = File(...),
    caller: Caller = Depends(require_caller),
    service: ApplicationWorkflowService = Depends(get_workflow_service),
):
    """Landlord uploads the initial contract PDF."""
    filename, content, content_type = await _read_upload(document)
    record = service.upload_initial_contract(
        application_id, caller, filename, content, content_type
    )
    return JSONResponse(record.to_dict())


@router.post("/{application_id}/signature")
async def upload_signature(
    application_id: str,
    signer_role: str = Form(...),
    document: UploadFile = File(...),
    caller: Caller = Depends(require_caller),
    service: ApplicationWorkflowService = Depends(get_workflow_service),
):
    """Landlord or tenant uploads their signed copy."""
    role = _parse_enum(SignerRole, signer_role, "signer role")
    filename, content, content_type = await _read_upload(document)
    record = service.upload_signature(
        application_id, caller, role, filename, content, content_type
    )
    return JSONResponse(record.to_dict())


@router.post("/{application_id}/payment")
async def pay_deposit(
    application_id: str,
    caller: Caller = Depends(require_caller),
    service: ApplicationWorkflowService = Depends(get_workflow_service),
):
    """
    Tenant pays the deposit.

    A declined charge returns 402 with the unchanged record.
    """
    attempt = service.pay_deposit(application_id, caller)
    return JSONResponse(attempt.to_dict(), status_code=200 if attempt.succeeded else 402)


@router.post("/{application_id}/finalize")
async def finalize_application(
    application_id: str,
    caller: Caller = Depends(require_caller),
    service: ApplicationWorkflowService = Depends(get_workflow_service),
):
    record = service.finalize(application_id, caller)
    return JSONResponse(record.to_dict())
