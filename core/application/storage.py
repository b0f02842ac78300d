"""
Contract Document Storage - PDF Storage for Tenancy Contracts

Stores the landlord's contract and each party's signed copy. Every
application has exactly three overwritable slots:

    {storage_root}/contracts/{application_id}/contract.pdf
    {storage_root}/contracts/{application_id}/landlord_signed.pdf
    {storage_root}/contracts/{application_id}/tenant_signed.pdf

Uploading to a slot again replaces the previous file and yields the same
URL, so a retried upload never leaves more than one document per slot.
"""

from __future__ import annotations

import hashlib
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Final, Optional

from core.application.errors import StorageFailure, ValidationError
from core.application.schema import (
    ALLOWED_DOCUMENT_CONTENT_TYPES,
    ALLOWED_DOCUMENT_EXTENSIONS,
    MAX_DOCUMENT_SIZE_BYTES,
    PDF_MAGIC_BYTES,
    SignerRole,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Storage Configuration
# =============================================================================

DEFAULT_STORAGE_PATH: Final[str] = "data/documents"
DEFAULT_PUBLIC_BASE_URL: Final[str] = "/files"
CONTRACTS_FOLDER: Final[str] = "contracts"


class DocumentSlot(Enum):
    """Storage slot within an application's contract folder."""

    CONTRACT = "contract"
    LANDLORD_SIGNED = "landlord_signed"
    TENANT_SIGNED = "tenant_signed"

    @classmethod
    def for_signer(cls, role: SignerRole) -> "DocumentSlot":
        if role is SignerRole.LANDLORD:
            return cls.LANDLORD_SIGNED
        return cls.TENANT_SIGNED


@dataclass(frozen=True)
class StoredDocument:
    """
    Record of a stored contract document.

    Metadata only; the bytes live in the storage slot.
    """

    document_id: str
    application_id: str
    slot: DocumentSlot
    original_filename: str
    file_size_bytes: int
    content_hash: str  # SHA-256 hash for integrity
    stored_at: datetime
    storage_path: str
    url: str

    def to_dict(self) -> dict:
        return {
            "document_id": self.document_id,
            "application_id": self.application_id,
            "slot": self.slot.value,
            "original_filename": self.original_filename,
            "file_size_bytes": self.file_size_bytes,
            "content_hash": self.content_hash,
            "stored_at": self.stored_at.isoformat(),
            "storage_path": self.storage_path,
            "url": self.url,
        }


# =============================================================================
# Validation
# =============================================================================


def validate_contract_file(
    filename: str,
    content: bytes,
    content_type: Optional[str] = None,
    max_size_bytes: int = MAX_DOCUMENT_SIZE_BYTES,
) -> None:
    """
    Reject anything that is not a non-empty PDF within the size limit.

    Raises:
        ValidationError: With a message suitable for the uploading user
    """
    ext = ""
    if filename and "." in filename:
        ext = "." + filename.rsplit(".", 1)[-1].lower()
    if ext not in ALLOWED_DOCUMENT_EXTENSIONS:
        raise ValidationError("Please upload a PDF file")

    if content_type and content_type.split(";")[0].strip().lower() not in ALLOWED_DOCUMENT_CONTENT_TYPES:
        raise ValidationError(f"Please upload a PDF file (received {content_type})")

    if not content:
        raise ValidationError("File is empty")

    if len(content) > max_size_bytes:
        max_mb = max_size_bytes / (1024 * 1024)
        raise ValidationError(f"File too large. Maximum size: {max_mb:g}MB")

    if not content.startswith(PDF_MAGIC_BYTES):
        raise ValidationError("File is not a valid PDF document")


# =============================================================================
# Document Storage
# =============================================================================


class ContractDocumentStorage:
    """
    Filesystem-backed document store with public URLs.

    Stands in for the managed blob store: store() returns a retrievable URL,
    retrieve() resolves that URL back to bytes.
    """

    def __init__(
        self,
        storage_root: Optional[str] = None,
        public_base_url: Optional[str] = None,
        max_size_bytes: int = MAX_DOCUMENT_SIZE_BYTES,
    ):
        """
        Initialise document storage.

        Args:
            storage_root: Root directory. Defaults to data/documents.
            public_base_url: Prefix for returned URLs. Defaults to /files.
            max_size_bytes: Upload size limit
        """
        self._storage_root = Path(storage_root or DEFAULT_STORAGE_PATH)
        self._public_base_url = (public_base_url or DEFAULT_PUBLIC_BASE_URL).rstrip("/")
        self._max_size_bytes = max_size_bytes
        self._storage_root.mkdir(parents=True, exist_ok=True)

    @property
    def storage_root(self) -> Path:
        return self._storage_root

    @staticmethod
    def _sanitise_id(application_id: str) -> str:
        safe = application_id.replace("/", "_").replace("\\", "_").replace("..", "_")
        safe = safe.strip().strip(".")
        if not safe:
            raise ValidationError("application_id is required")
        return safe

    @staticmethod
    def _calculate_hash(content: bytes) -> str:
        return hashlib.sha256(content).hexdigest()

    def _relative_path(self, application_id: str, slot: DocumentSlot) -> str:
        return f"{CONTRACTS_FOLDER}/{self._sanitise_id(application_id)}/{slot.value}.pdf"

    def path_for(self, application_id: str, slot: DocumentSlot) -> Path:
        return self._storage_root / self._relative_path(application_id, slot)

    def url_for(self, application_id: str, slot: DocumentSlot) -> str:
        return f"{self._public_base_url}/{self._relative_path(application_id, slot)}"

    def store(
        self,
        application_id: str,
        slot: DocumentSlot,
        filename: str,
        content: bytes,
        content_type: Optional[str] = None,
    ) -> StoredDocument:
        """
        Validate and store a document, replacing any previous file in the slot.

        Raises:
            ValidationError: If the file is not an acceptable PDF
            StorageFailure: If the file could not be written
        """
        validate_contract_file(filename, content, content_type, self._max_size_bytes)

        path = self.path_for(application_id, slot)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Write then rename so readers never see a half-written file
            tmp_path = path.parent / f"{path.name}.tmp"
            tmp_path.write_bytes(content)
            tmp_path.replace(path)
        except OSError as e:
            logger.warning("document store failed application=%s slot=%s: %s", application_id, slot.value, e)
            raise StorageFailure(
                f"Could not store {slot.value.replace('_', ' ')} document: {e}",
                application_id,
            ) from e

        stored = StoredDocument(
            document_id=f"DOC-{uuid.uuid4().hex[:12].upper()}",
            application_id=application_id,
            slot=slot,
            original_filename=filename,
            file_size_bytes=len(content),
            content_hash=self._calculate_hash(content),
            stored_at=datetime.utcnow(),
            storage_path=str(path),
            url=self.url_for(application_id, slot),
        )
        logger.info(
            "document stored application=%s slot=%s bytes=%d",
            application_id,
            slot.value,
            stored.file_size_bytes,
        )
        return stored

    def store_from_file(
        self,
        application_id: str,
        slot: DocumentSlot,
        filename: str,
        file_handle: BinaryIO,
        content_type: Optional[str] = None,
    ) -> StoredDocument:
        """Store a document read from a file handle."""
        return self.store(application_id, slot, filename, file_handle.read(), content_type)

    def _path_from_url(self, url: str) -> Optional[Path]:
        prefix = f"{self._public_base_url}/"
        if not url or not url.startswith(prefix):
            return None
        relative = url[len(prefix):]
        if ".." in relative.split("/"):
            return None
        return self._storage_root / relative

    def retrieve(self, url: str) -> Optional[bytes]:
        """
        Retrieve document content by URL.

        Returns:
            File content as bytes, or None if not found
        """
        path = self._path_from_url(url)
        if path is not None and path.is_file():
            return path.read_bytes()
        return None

    def verify(self, document: StoredDocument) -> bool:
        """Check the stored bytes still match the recorded hash."""
        content = self.retrieve(document.url)
        if content is None:
            return False
        return self._calculate_hash(content) == document.content_hash

    def list_documents(self, application_id: str) -> list[Path]:
        """List stored documents for an application."""
        folder = self._storage_root / CONTRACTS_FOLDER / self._sanitise_id(application_id)
        if not folder.exists():
            return []
        return sorted(p for p in folder.iterdir() if p.is_file() and p.suffix == ".pdf")


# =============================================================================
# Singleton Instance
# =============================================================================

_storage_instance: Optional[ContractDocumentStorage] = None


def get_document_storage(
    storage_root: Optional[str] = None,
    public_base_url: Optional[str] = None,
) -> ContractDocumentStorage:
    """
    Get the document storage singleton.

    Arguments are only used on first call.
    """
    global _storage_instance
    if _storage_instance is None:
        _storage_instance = ContractDocumentStorage(storage_root, public_base_url)
    return _storage_instance


def reset_document_storage() -> None:
    """Drop the singleton (tests and app reconfiguration)."""
    global _storage_instance
    _storage_instance = None
