"""
Application Repository - Record Store for Rental Applications

Stands in for the managed backend's `applications` table: read by id,
single-document partial update, and the list queries the application
dashboards need. In-memory with optional JSON file persistence.

Each update is atomic for one record: all fields in the change set land
together or none do. contract_status and the automatic completion are
re-derived from the merged record on every update.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from core.application.engine import settle_record
from core.application.errors import ApplicationNotFound, StorageFailure
from core.application.schema import (
    ApplicationRecord,
    ApplicationStatus,
    IMMUTABLE_FIELDS,
    RECORD_FIELDS,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Repository
# =============================================================================


class ApplicationRepository:
    """
    Repository for storing and retrieving application records.

    Provides CRUD operations and querying capabilities.
    Uses in-memory storage with optional file persistence.
    """

    def __init__(self, persist_path: Optional[str] = None):
        """
        Initialise repository.

        Args:
            persist_path: Optional path to persist data to JSON file
        """
        self._records: dict[str, ApplicationRecord] = {}
        self._persist_path = Path(persist_path) if persist_path else None
        self._lock = threading.RLock()

        if self._persist_path and self._persist_path.exists():
            self._load_from_file()

    def _save_to_file(self) -> None:
        """Persist data to file."""
        if not self._persist_path:
            return

        data = {
            "applications": {
                aid: record.to_dict() for aid, record in self._records.items()
            },
            "saved_at": datetime.utcnow().isoformat(),
        }

        self._persist_path.parent.mkdir(parents=True, exist_ok=True)
        self._persist_path.write_text(json.dumps(data, indent=2))

    def _load_from_file(self) -> None:
        """Load data from file."""
        if not self._persist_path or not self._persist_path.exists():
            return

        try:
            data = json.loads(self._persist_path.read_text())
            for aid, record_data in data.get("applications", {}).items():
                self._records[aid] = ApplicationRecord.from_dict(record_data)
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            # Start fresh rather than refuse to boot
            logger.warning("could not load application data from %s: %s", self._persist_path, e)

    def _commit(self, previous: dict[str, ApplicationRecord]) -> None:
        """Persist, restoring the previous state if the write fails."""
        try:
            self._save_to_file()
        except OSError as e:
            self._records = previous
            raise StorageFailure(f"Could not save application records: {e}") from e

    # =========================================================================
    # CRUD Operations
    # =========================================================================

    def create(self, record: ApplicationRecord) -> ApplicationRecord:
        """
        Store a new application record.

        Raises:
            ValueError: If the application_id already exists
            StorageFailure: If persistence fails
        """
        with self._lock:
            if record.application_id in self._records:
                raise ValueError(f"Application {record.application_id} already exists")

            previous = dict(self._records)
            self._records[record.application_id] = record
            self._commit(previous)
            return record

    def get(self, application_id: str) -> Optional[ApplicationRecord]:
        """Get an application record by ID, or None if not found."""
        return self._records.get(application_id)

    def require(self, application_id: str) -> ApplicationRecord:
        """
        Get an application record by ID.

        Raises:
            ApplicationNotFound: If no such record exists
        """
        record = self.get(application_id)
        if record is None:
            raise ApplicationNotFound(f"Application {application_id} not found", application_id)
        return record

    def update(self, application_id: str, changes: dict[str, Any]) -> ApplicationRecord:
        """
        Apply a partial update to one record as a single write.

        Args:
            application_id: Record to update
            changes: Field name -> new value

        Returns:
            The updated record

        Raises:
            ApplicationNotFound: If no such record exists
            ValueError: If changes name unknown or immutable fields
            StorageFailure: If persistence fails (record left unchanged)
        """
        unknown = set(changes) - RECORD_FIELDS
        if unknown:
            raise ValueError(f"Unknown application fields: {sorted(unknown)}")
        immutable = set(changes) & IMMUTABLE_FIELDS
        if immutable:
            raise ValueError(f"Cannot modify immutable fields: {sorted(immutable)}")

        with self._lock:
            current = self.require(application_id)
            if not changes:
                return current

            previous = dict(self._records)
            # Derived fields follow the merged record, not the writer's view
            updated = settle_record(replace(current, **changes))
            if updated.is_completed and not current.is_completed and "stage" not in changes:
                logger.info("application %s completed by merged update", application_id)
            self._records[application_id] = updated
            self._commit(previous)
            return updated

    def delete(self, application_id: str) -> bool:
        """
        Delete an application record.

        Note: The workflow never deletes; archival is an administrative task.
        """
        with self._lock:
            if application_id not in self._records:
                return False
            previous = dict(self._records)
            del self._records[application_id]
            self._commit(previous)
            return True

    # =========================================================================
    # Query Operations
    # =========================================================================

    def _sorted(self, records) -> list[ApplicationRecord]:
        return sorted(records, key=lambda r: r.submitted_at, reverse=True)

    def list_all(self) -> list[ApplicationRecord]:
        """All records, newest first."""
        return self._sorted(self._records.values())

    def list_by_applicant(self, applicant_id: str) -> list[ApplicationRecord]:
        """Applications submitted by one tenant."""
        return self._sorted(r for r in self._records.values() if r.applicant_id == applicant_id)

    def list_by_owner(self, property_owner_id: str) -> list[ApplicationRecord]:
        """Applications received by one landlord or agent."""
        return self._sorted(
            r for r in self._records.values() if r.property_owner_id == property_owner_id
        )

    def list_by_status(self, status: ApplicationStatus) -> list[ApplicationRecord]:
        return self._sorted(r for r in self._records.values() if r.status == status)

    def list_by_property(self, property_id: str) -> list[ApplicationRecord]:
        return self._sorted(r for r in self._records.values() if r.property_id == property_id)

    def search(
        self,
        text: Optional[str] = None,
        status: Optional[ApplicationStatus] = None,
        applicant_id: Optional[str] = None,
        property_owner_id: Optional[str] = None,
    ) -> list[ApplicationRecord]:
        """
        Filter applications the way the application dashboard does.

        Args:
            text: Case-insensitive match on applicant name, property title,
                  applicant ID or application ID
            status: Only this landlord decision
            applicant_id: Only this tenant's applications
            property_owner_id: Only this owner's applications

        Returns:
            Matching records, newest first
        """
        needle = text.strip().lower() if text else ""
        result = []
        for record in self._records.values():
            if status is not None and record.status != status:
                continue
            if applicant_id is not None and record.applicant_id != applicant_id:
                continue
            if property_owner_id is not None and record.property_owner_id != property_owner_id:
                continue
            if needle:
                haystack = " ".join(
                    part or ""
                    for part in (
                        record.applicant_name,
                        record.property_title,
                        record.applicant_id,
                        record.application_id,
                    )
                ).lower()
                if needle not in haystack:
                    continue
            result.append(record)
        return self._sorted(result)

    def count(self) -> int:
        return len(self._records)

    def count_by_status(self) -> dict[str, int]:
        """Count of applications by landlord decision."""
        counts: dict[str, int] = {}
        for record in self._records.values():
            counts[record.status.value] = counts.get(record.status.value, 0) + 1
        return counts

    def count_by_stage(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for record in self._records.values():
            counts[record.stage.value] = counts.get(record.stage.value, 0) + 1
        return counts

    def get_summary(self) -> dict:
        """
        Summary statistics for dashboards.

        Returns dict with counts by status and stage and the ten most
        recent applications.
        """
        recent = [
            {
                "application_id": r.application_id,
                "property_title": r.property_title,
                "applicant_name": r.applicant_name,
                "status": r.status.value,
                "stage": r.stage.value,
                "submitted_at": r.submitted_at.isoformat(),
            }
            for r in self.list_all()[:10]
        ]
        return {
            "total_applications": self.count(),
            "status_counts": self.count_by_status(),
            "stage_counts": self.count_by_stage(),
            "recent_applications": recent,
        }


# =============================================================================
# Singleton Instance
# =============================================================================

_repository_instance: Optional[ApplicationRepository] = None


def get_application_repository(persist_path: Optional[str] = None) -> ApplicationRepository:
    """
    Get the application repository singleton.

    Args:
        persist_path: Optional path for persistence (only used on first call)
    """
    global _repository_instance
    if _repository_instance is None:
        _repository_instance = ApplicationRepository(persist_path)
    return _repository_instance


def reset_application_repository() -> None:
    """Drop the singleton (tests and app reconfiguration)."""
    global _repository_instance
    _repository_instance = None
