"""
Tests for Contract Document Storage
"""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from core.application.errors import StorageFailure, ValidationError
from core.application.schema import SignerRole
from core.application.storage import (
    ContractDocumentStorage,
    DocumentSlot,
    validate_contract_file,
)

PDF = b"%PDF-1.4\n1 0 obj << /Type /Catalog >> endobj\n%%EOF\n"


@pytest.fixture
def temp_storage():
    """Storage rooted in a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield ContractDocumentStorage(storage_root=tmpdir, public_base_url="/files")


class TestValidateContractFile:
    """PDF-only, non-empty, size-limited uploads."""

    def test_accepts_pdf(self):
        validate_contract_file("contract.pdf", PDF, "application/pdf")

    def test_extension_case_insensitive(self):
        validate_contract_file("CONTRACT.PDF", PDF)

    @pytest.mark.parametrize("filename", ["contract.docx", "contract", "", "scan.png"])
    def test_rejects_non_pdf_name(self, filename):
        with pytest.raises(ValidationError, match="PDF"):
            validate_contract_file(filename, PDF)

    def test_rejects_wrong_content_type(self):
        with pytest.raises(ValidationError):
            validate_contract_file("contract.pdf", PDF, "image/png")

    def test_content_type_parameters_ignored(self):
        validate_contract_file("contract.pdf", PDF, "application/pdf; charset=binary")

    def test_rejects_empty(self):
        with pytest.raises(ValidationError, match="empty"):
            validate_contract_file("contract.pdf", b"")

    def test_rejects_oversize(self):
        with pytest.raises(ValidationError, match="too large"):
            validate_contract_file("contract.pdf", PDF + b"0" * 100, max_size_bytes=64)

    def test_rejects_renamed_file(self):
        with pytest.raises(ValidationError, match="not a valid PDF"):
            validate_contract_file("contract.pdf", b"PK\x03\x04 zip archive")


class TestContractDocumentStorage:
    """Storing and retrieving contract documents."""

    def test_store_contract(self, temp_storage):
        stored = temp_storage.store("APP-1", DocumentSlot.CONTRACT, "lease.pdf", PDF, "application/pdf")

        assert stored.url == "/files/contracts/APP-1/contract.pdf"
        assert stored.file_size_bytes == len(PDF)
        assert len(stored.content_hash) == 64
        assert stored.original_filename == "lease.pdf"
        assert Path(stored.storage_path).read_bytes() == PDF

    def test_role_specific_paths(self, temp_storage):
        landlord = temp_storage.store(
            "APP-1", DocumentSlot.for_signer(SignerRole.LANDLORD), "signed.pdf", PDF
        )
        tenant = temp_storage.store(
            "APP-1", DocumentSlot.for_signer(SignerRole.TENANT), "signed.pdf", PDF
        )
        assert landlord.url.endswith("/contracts/APP-1/landlord_signed.pdf")
        assert tenant.url.endswith("/contracts/APP-1/tenant_signed.pdf")

    def test_reupload_overwrites_slot(self, temp_storage):
        first = temp_storage.store("APP-1", DocumentSlot.TENANT_SIGNED, "v1.pdf", PDF)
        second = temp_storage.store("APP-1", DocumentSlot.TENANT_SIGNED, "v2.pdf", PDF + b"v2")

        assert first.url == second.url
        assert temp_storage.retrieve(second.url) == PDF + b"v2"
        assert len(temp_storage.list_documents("APP-1")) == 1

    def test_invalid_file_not_stored(self, temp_storage):
        with pytest.raises(ValidationError):
            temp_storage.store("APP-1", DocumentSlot.CONTRACT, "lease.txt", b"hello")
        assert temp_storage.list_documents("APP-1") == []

    def test_retrieve_unknown(self, temp_storage):
        assert temp_storage.retrieve("/files/contracts/APP-X/contract.pdf") is None
        assert temp_storage.retrieve("https://elsewhere.example/contract.pdf") is None
        assert temp_storage.retrieve("/files/../secret.pdf") is None

    def test_verify(self, temp_storage):
        stored = temp_storage.store("APP-1", DocumentSlot.CONTRACT, "lease.pdf", PDF)
        assert temp_storage.verify(stored)

        Path(stored.storage_path).write_bytes(PDF + b"tampered")
        assert not temp_storage.verify(stored)

    def test_path_traversal_in_id_neutralised(self, temp_storage):
        stored = temp_storage.store("../../etc", DocumentSlot.CONTRACT, "lease.pdf", PDF)
        assert Path(stored.storage_path).resolve().is_relative_to(temp_storage.storage_root.resolve())

    def test_write_failure_raises_storage_failure(self, temp_storage):
        # A file where the application folder should be makes the write fail
        blocker = temp_storage.storage_root / "contracts"
        blocker.write_bytes(b"not a directory")
        with pytest.raises(StorageFailure):
            temp_storage.store("APP-1", DocumentSlot.CONTRACT, "lease.pdf", PDF)

    def test_store_from_file(self, temp_storage, tmp_path):
        source = tmp_path / "upload.pdf"
        source.write_bytes(PDF)
        with open(source, "rb") as f:
            stored = temp_storage.store_from_file("APP-2", DocumentSlot.CONTRACT, "upload.pdf", f)
        assert temp_storage.retrieve(stored.url) == PDF
