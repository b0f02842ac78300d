"""
Residential Tenancy Agreement PDF Generator

Produces the draft agreement a landlord downloads, signs and uploads as
the initial contract of an accepted application. The tenant later signs
the same document and uploads their copy.

Output Structure:
1. Title block (reference number, date)
2. The Parties
3. The Property
4. Key Terms (rent, deposits, period)
5. Signatures

Library Choice: ReportLab
- Pure Python
- Invariant mode gives byte-identical output for identical input
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Final, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import (
    HRFlowable,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from core.application.payment import (
    DEFAULT_CURRENCY,
    DEFAULT_DEPOSIT_AMOUNT,
    SECURITY_DEPOSIT_MONTHS,
    TENANCY_PERIOD_MONTHS,
    UTILITY_DEPOSIT_MONTHS,
    DepositBreakdown,
    compute_deposit,
)
from core.application.schema import ApplicationRecord, ApplicationStatus
from utils.formatting import format_currency, format_date


# =============================================================================
# Constants
# =============================================================================

OUTPUT_DIR: Final[Path] = Path("reports/agreements")


class AgreementPalette:
    """Print-friendly colours."""

    BLACK = colors.Color(0.1, 0.1, 0.1)
    GRAY = colors.Color(0.45, 0.45, 0.45)
    RULE = colors.Color(0.8, 0.8, 0.8)
    PANEL = colors.Color(0.97, 0.97, 0.97)


class AgreementNotAvailable(Exception):
    """Raised when an agreement is requested for an application that was not accepted."""

    def __init__(self, application_id: str, status: ApplicationStatus):
        self.application_id = application_id
        self.status = status
        super().__init__(
            f"Tenancy agreement not available for {status.value} application {application_id}"
        )


# =============================================================================
# Agreement Data
# =============================================================================


def mask_identifier(value: str) -> str:
    """Show only the first six characters of a personal identifier."""
    if not value:
        return ""
    return f"{value[:6]}-XX-XXXX"


@dataclass(frozen=True)
class AgreementDetails:
    """Everything printed on the agreement."""

    reference_no: str
    agreement_date: datetime
    landlord_name: str
    tenant_name: str
    tenant_identifier: str
    property_title: str
    property_address: str
    monthly_rent: Optional[float]
    deposit: DepositBreakdown
    period_months: int = TENANCY_PERIOD_MONTHS

    def to_dict(self) -> dict:
        return {
            "reference_no": self.reference_no,
            "agreement_date": self.agreement_date.isoformat(),
            "landlord_name": self.landlord_name,
            "tenant_name": self.tenant_name,
            "tenant_identifier": self.tenant_identifier,
            "property_title": self.property_title,
            "property_address": self.property_address,
            "monthly_rent": self.monthly_rent,
            "deposit": self.deposit.to_dict(),
            "period_months": self.period_months,
        }


def agreement_reference(application_id: str, agreement_date: datetime) -> str:
    """Deterministic reference number, e.g. CNT-3F9A1C-2026."""
    return f"CNT-{application_id[-6:].upper()}-{agreement_date.year}"


def build_agreement_details(
    record: ApplicationRecord,
    landlord_name: str,
    property_address: Optional[str] = None,
    agreement_date: Optional[datetime] = None,
    default_deposit: float = DEFAULT_DEPOSIT_AMOUNT,
    currency: str = DEFAULT_CURRENCY,
) -> AgreementDetails:
    """
    Collect agreement details for an accepted application.

    Raises:
        AgreementNotAvailable: If the application is not accepted
    """
    if record.status != ApplicationStatus.ACCEPTED:
        raise AgreementNotAvailable(record.application_id, record.status)

    date = agreement_date or datetime.utcnow()
    title = record.property_title or record.property_id
    return AgreementDetails(
        reference_no=agreement_reference(record.application_id, date),
        agreement_date=date,
        landlord_name=landlord_name,
        tenant_name=record.applicant_name or record.applicant_id,
        tenant_identifier=mask_identifier(record.applicant_id),
        property_title=title,
        property_address=property_address or title,
        monthly_rent=float(record.monthly_rent) if record.monthly_rent else None,
        deposit=compute_deposit(record.monthly_rent, default_deposit, currency),
    )


# =============================================================================
# Styles
# =============================================================================


def get_agreement_styles() -> dict:
    """Paragraph styles for the agreement."""
    styles = getSampleStyleSheet()

    styles.add(ParagraphStyle(
        name="AgreementTitle",
        parent=styles["Normal"],
        fontSize=16,
        leading=20,
        alignment=TA_CENTER,
        fontName="Helvetica-Bold",
        textColor=AgreementPalette.BLACK,
        spaceAfter=4 * mm,
    ))

    styles.add(ParagraphStyle(
        name="AgreementMeta",
        parent=styles["Normal"],
        fontSize=8.5,
        leading=11,
        alignment=TA_CENTER,
        fontName="Helvetica",
        textColor=AgreementPalette.GRAY,
    ))

    styles.add(ParagraphStyle(
        name="AgreementSection",
        parent=styles["Normal"],
        fontSize=11,
        leading=14,
        fontName="Helvetica-Bold",
        textColor=AgreementPalette.BLACK,
        spaceBefore=8 * mm,
        spaceAfter=3 * mm,
    ))

    styles.add(ParagraphStyle(
        name="AgreementBody",
        parent=styles["Normal"],
        fontSize=9.5,
        leading=14,
        fontName="Helvetica",
        textColor=AgreementPalette.BLACK,
        spaceAfter=2 * mm,
    ))

    styles.add(ParagraphStyle(
        name="AgreementCentered",
        parent=styles["Normal"],
        fontSize=9.5,
        leading=14,
        alignment=TA_CENTER,
        fontName="Helvetica-Oblique",
        textColor=AgreementPalette.GRAY,
        spaceBefore=2 * mm,
        spaceAfter=2 * mm,
    ))

    return styles


# =============================================================================
# Generator
# =============================================================================


class TenancyAgreementGenerator:
    """
    Renders AgreementDetails as a PDF.

    Usage:
        generator = TenancyAgreementGenerator()
        pdf_bytes = generator.generate_to_buffer(details)
    """

    MARGIN = 20 * mm

    def __init__(self, output_dir: Optional[Path] = None):
        self.styles = get_agreement_styles()
        self.output_dir = output_dir or OUTPUT_DIR

    def generate_to_buffer(self, details: AgreementDetails) -> bytes:
        """Generate the PDF and return it as bytes."""
        buffer = BytesIO()
        self._build_document(details, buffer)
        return buffer.getvalue()

    def generate(self, details: AgreementDetails) -> Path:
        """Generate the PDF into the output directory and return its path."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / f"{details.reference_no}.pdf"
        path.write_bytes(self.generate_to_buffer(details))
        return path

    def _build_document(self, details: AgreementDetails, buffer: BytesIO) -> None:
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=self.MARGIN,
            rightMargin=self.MARGIN,
            topMargin=self.MARGIN,
            bottomMargin=self.MARGIN,
            title=f"Residential Tenancy Agreement {details.reference_no}",
            author=details.landlord_name,
            subject="Residential Tenancy Agreement",
            invariant=1,
        )

        story: list = []
        story.extend(self._build_title(details))
        story.extend(self._build_parties(details))
        story.extend(self._build_property(details))
        story.extend(self._build_terms(details))
        story.extend(self._build_signatures(details))
        doc.build(story)

    def _build_title(self, details: AgreementDetails) -> list:
        return [
            Paragraph("RESIDENTIAL TENANCY AGREEMENT", self.styles["AgreementTitle"]),
            Paragraph(
                f"Reference No: <b>{details.reference_no}</b> &nbsp;&nbsp;|&nbsp;&nbsp; "
                f"Date: <b>{format_date(details.agreement_date)}</b>",
                self.styles["AgreementMeta"],
            ),
            Spacer(1, 3 * mm),
            HRFlowable(width="100%", thickness=1.5, color=AgreementPalette.BLACK),
        ]

    def _party_box(self, role: str, name: str, extra: list[str]) -> Table:
        rows = [[Paragraph(f"<b>{role.upper()}</b>", self.styles["AgreementBody"])],
                [Paragraph(escape(name), self.styles["AgreementBody"])]]
        rows.extend([Paragraph(escape(line), self.styles["AgreementBody"])] for line in extra)
        table = Table(rows, colWidths=["100%"])
        table.setStyle(TableStyle([
            ("BOX", (0, 0), (-1, -1), 0.75, AgreementPalette.RULE),
            ("BACKGROUND", (0, 0), (-1, -1), AgreementPalette.PANEL),
            ("LEFTPADDING", (0, 0), (-1, -1), 8),
            ("TOPPADDING", (0, 0), (-1, -1), 2),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
        ]))
        return table

    def _build_parties(self, details: AgreementDetails) -> list:
        return [
            Paragraph("1. The Parties", self.styles["AgreementSection"]),
            Paragraph(
                f"This Tenancy Agreement is made on <b>{format_date(details.agreement_date)}</b> between:",
                self.styles["AgreementBody"],
            ),
            self._party_box("Landlord", details.landlord_name, ['("The Landlord")']),
            Paragraph("- AND -", self.styles["AgreementCentered"]),
            self._party_box(
                "Tenant",
                details.tenant_name,
                [f"Passport/IC: {details.tenant_identifier}", '("The Tenant")'],
            ),
        ]

    def _build_property(self, details: AgreementDetails) -> list:
        return [
            Paragraph("2. The Property", self.styles["AgreementSection"]),
            Paragraph(
                "The Landlord agrees to let and the Tenant agrees to take the property situated at:",
                self.styles["AgreementBody"],
            ),
            Paragraph(
                f"<b>{escape(details.property_address)}</b><br/>({escape(details.property_title)})",
                self.styles["AgreementBody"],
            ),
            Paragraph("Together with the fixtures and fittings therein.", self.styles["AgreementBody"]),
        ]

    def _build_terms(self, details: AgreementDetails) -> list:
        currency = details.deposit.currency
        rent = (
            format_currency(details.monthly_rent, currency)
            if details.monthly_rent
            else "As advertised"
        )
        if details.monthly_rent:
            security = (
                f"{format_currency(details.deposit.security_deposit, currency)} "
                f"({SECURITY_DEPOSIT_MONTHS:g} Months)"
            )
            utility = (
                f"{format_currency(details.deposit.utility_deposit, currency)} "
                f"({UTILITY_DEPOSIT_MONTHS:g} Month)"
            )
        else:
            security = format_currency(details.deposit.security_deposit, currency)
            utility = "Not applicable"

        rows = [
            ["Monthly Rental", rent],
            ["Security Deposit", security],
            ["Utility Deposit", utility],
            ["Total Payable on Signing", format_currency(details.deposit.total, currency)],
            ["Tenancy Period", f"{details.period_months} Months"],
        ]
        table = Table(rows, colWidths=["40%", "60%"])
        table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (0, -1), "Helvetica"),
            ("FONTNAME", (1, 0), (1, -1), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9.5),
            ("TEXTCOLOR", (0, 0), (0, -1), AgreementPalette.GRAY),
            ("LINEBELOW", (0, 0), (-1, -1), 0.5, AgreementPalette.RULE),
            ("TOPPADDING", (0, 0), (-1, -1), 5),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
        ]))
        return [
            Paragraph("3. Key Terms", self.styles["AgreementSection"]),
            table,
        ]

    def _build_signatures(self, details: AgreementDetails) -> list:
        rows = [
            ["", ""],
            ["_" * 32, "_" * 32],
            [f"Landlord: {details.landlord_name}", f"Tenant: {details.tenant_name}"],
            ["Date:", "Date:"],
        ]
        table = Table(rows, colWidths=["50%", "50%"], rowHeights=[18 * mm, None, None, None])
        table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (-1, -1), "Helvetica"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("VALIGN", (0, 0), (-1, -1), "BOTTOM"),
        ]))
        return [
            Paragraph("4. Signatures", self.styles["AgreementSection"]),
            Paragraph(
                "Each party signs this agreement and uploads the signed copy. The tenancy "
                "is complete once both signed copies are received and the deposit is paid.",
                self.styles["AgreementBody"],
            ),
            table,
        ]


def generate_agreement_pdf(
    record: ApplicationRecord,
    landlord_name: str,
    property_address: Optional[str] = None,
    agreement_date: Optional[datetime] = None,
    default_deposit: float = DEFAULT_DEPOSIT_AMOUNT,
    currency: str = DEFAULT_CURRENCY,
) -> bytes:
    """Convenience wrapper: details + render in one call."""
    details = build_agreement_details(
        record,
        landlord_name=landlord_name,
        property_address=property_address,
        agreement_date=agreement_date,
        default_deposit=default_deposit,
        currency=currency,
    )
    return TenancyAgreementGenerator().generate_to_buffer(details)
