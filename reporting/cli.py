#!/usr/bin/env python3
"""
CLI for generating Residential Tenancy Agreement PDFs.

Usage:
    python -m reporting.cli sample
    python -m reporting.cli generate <application_json> --landlord-name NAME

Examples:
    # Generate a sample agreement for testing
    python -m reporting.cli sample

    # Generate from an exported application record
    python -m reporting.cli generate exports/APP-3F9A1C2B4D5E.json --landlord-name "Tan Ah Kow"
"""

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path

from core.application.schema import (
    ApplicationRecord,
    ApplicationStage,
    ApplicationStatus,
)
from .tenancy_agreement import (
    OUTPUT_DIR,
    AgreementNotAvailable,
    TenancyAgreementGenerator,
    build_agreement_details,
)


def create_sample_application() -> ApplicationRecord:
    """An accepted application with realistic values."""
    return ApplicationRecord(
        application_id="APP-5A7C9E1B3D2F",
        property_id="prop-kl-0042",
        applicant_id="900101145678",
        property_owner_id="owner-0007",
        submitted_at=datetime(2026, 1, 5, 10, 30),
        status=ApplicationStatus.ACCEPTED,
        stage=ApplicationStage.PROCESSING,
        feedback="Welcome aboard",
        property_title="Cozy 2BR Condo, Mont Kiara",
        applicant_name="Nur Aisyah binti Ahmad",
        monthly_rent=2500,
    )


def cmd_sample(args):
    """Generate a sample tenancy agreement for testing."""
    print("Generating sample Residential Tenancy Agreement...")

    details = build_agreement_details(
        create_sample_application(),
        landlord_name="Tan Ah Kow",
        property_address="Unit 12-3, Residensi Sri Kiara, 50480 Kuala Lumpur",
    )
    filepath = TenancyAgreementGenerator(Path(args.output_dir)).generate(details)

    print(f"Agreement generated: {filepath}")
    return 0


def cmd_generate(args):
    """Generate an agreement from a JSON application record."""
    input_path = Path(args.application_file)

    if not input_path.exists():
        print(f"Error: File not found: {input_path}", file=sys.stderr)
        return 1

    print(f"Loading application from: {input_path}")

    try:
        with open(input_path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON: {e}", file=sys.stderr)
        return 1

    try:
        record = ApplicationRecord.from_dict(data)
    except (KeyError, ValueError) as e:
        print(f"Error: Invalid application data: {e}", file=sys.stderr)
        return 1

    try:
        details = build_agreement_details(
            record,
            landlord_name=args.landlord_name or record.property_owner_id,
            property_address=args.address,
        )
    except AgreementNotAvailable as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Generating agreement for: {details.tenant_name}")
    filepath = TenancyAgreementGenerator(Path(args.output_dir)).generate(details)

    print(f"Agreement generated: {filepath}")
    return 0


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Residential Tenancy Agreement Generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
    python -m reporting.cli sample
    python -m reporting.cli generate exports/APP-3F9A1C2B4D5E.json --landlord-name "Tan Ah Kow"

Output:
    Agreements are saved to: {OUTPUT_DIR}/CNT-<id>-<year>.pdf
        """,
    )
    parser.add_argument(
        "--output-dir",
        default=str(OUTPUT_DIR),
        help="Directory for generated agreements",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Sample command
    sample_parser = subparsers.add_parser(
        "sample",
        help="Generate a sample agreement with mock data",
    )
    sample_parser.set_defaults(func=cmd_sample)

    # Generate command
    gen_parser = subparsers.add_parser(
        "generate",
        help="Generate an agreement from a JSON application record",
    )
    gen_parser.add_argument(
        "application_file",
        help="Path to JSON application record",
    )
    gen_parser.add_argument("--landlord-name", help="Landlord name printed on the agreement")
    gen_parser.add_argument("--address", help="Property address printed on the agreement")
    gen_parser.set_defaults(func=cmd_generate)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
