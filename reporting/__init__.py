"""
Reporting module for the rental application workflow.

Generates the Residential Tenancy Agreement PDF a landlord signs and
uploads as the initial contract.

Usage:
    from reporting import build_agreement_details, TenancyAgreementGenerator

    details = build_agreement_details(record, landlord_name="Tan Ah Kow")
    pdf_bytes = TenancyAgreementGenerator().generate_to_buffer(details)
"""

from .tenancy_agreement import (
    AgreementDetails,
    AgreementNotAvailable,
    AgreementPalette,
    TenancyAgreementGenerator,
    agreement_reference,
    build_agreement_details,
    generate_agreement_pdf,
    mask_identifier,
)

__all__ = [
    "AgreementDetails",
    "AgreementNotAvailable",
    "AgreementPalette",
    "TenancyAgreementGenerator",
    "agreement_reference",
    "build_agreement_details",
    "generate_agreement_pdf",
    "mask_identifier",
]
