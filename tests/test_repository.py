"""
Tests for the Application Repository
"""

from __future__ import annotations

import json
import tempfile
from datetime import datetime
from pathlib import Path

import pytest

from core.application.errors import ApplicationNotFound, StorageFailure
from core.application.repository import (
    ApplicationRepository,
    get_application_repository,
    reset_application_repository,
)
from core.application.schema import (
    ApplicationRecord,
    ApplicationStage,
    ApplicationStatus,
    ContractStatus,
    PaymentStatus,
)


def make_record(application_id, applicant="tenant-1", owner="owner-1", day=1, **kwargs):
    return ApplicationRecord(
        application_id=application_id,
        property_id=kwargs.pop("property_id", "prop-1"),
        applicant_id=applicant,
        property_owner_id=owner,
        submitted_at=datetime(2026, 3, day, 12, 0),
        **kwargs,
    )


@pytest.fixture
def repo():
    return ApplicationRepository()


@pytest.fixture
def populated(repo):
    repo.create(make_record("APP-A", day=1, applicant_name="Nur Aisyah", property_title="Cozy Condo"))
    repo.create(make_record(
        "APP-B",
        applicant="tenant-2",
        day=2,
        applicant_name="Lee Wei",
        property_title="Garden Terrace",
        status=ApplicationStatus.ACCEPTED,
        stage=ApplicationStage.PROCESSING,
    ))
    repo.create(make_record(
        "APP-C",
        owner="owner-2",
        day=3,
        applicant_name="Nur Aisyah",
        property_title="Studio Bangsar",
        property_id="prop-9",
        status=ApplicationStatus.REJECTED,
        feedback="Already let",
    ))
    return repo


class TestCrud:
    """Create, read and partial update."""

    def test_create_and_get(self, repo):
        record = make_record("APP-1")
        repo.create(record)
        assert repo.get("APP-1") == record
        assert repo.require("APP-1") == record

    def test_duplicate_id(self, repo):
        repo.create(make_record("APP-1"))
        with pytest.raises(ValueError):
            repo.create(make_record("APP-1"))

    def test_missing(self, repo):
        assert repo.get("APP-404") is None
        with pytest.raises(ApplicationNotFound):
            repo.require("APP-404")
        with pytest.raises(ApplicationNotFound):
            repo.update("APP-404", {"feedback": "x"})

    def test_partial_update(self, repo):
        repo.create(make_record("APP-1"))
        updated = repo.update("APP-1", {
            "contract_url": "/files/contracts/APP-1/contract.pdf",
            "contract_status": ContractStatus.UPLOADED,
        })
        assert updated.contract_status == ContractStatus.UPLOADED
        assert updated.applicant_id == "tenant-1"
        assert repo.require("APP-1") == updated

    def test_update_rederives_contract_status(self, repo):
        repo.create(make_record(
            "APP-1",
            status=ApplicationStatus.ACCEPTED,
            stage=ApplicationStage.PROCESSING,
            contract_url="/files/contracts/APP-1/contract.pdf",
            contract_status=ContractStatus.UPLOADED,
        ))
        # Two writers that each saw only their own signature
        repo.update("APP-1", {
            "contract_signed_tenant": True,
            "contract_status": ContractStatus.SIGNED_BY_TENANT,
        })
        updated = repo.update("APP-1", {
            "contract_signed_landlord": True,
            "contract_status": ContractStatus.SIGNED_BY_LANDLORD,
        })
        assert updated.contract_status == ContractStatus.COMPLETED
        assert updated.stage == ApplicationStage.PROCESSING

    def test_update_completes_signed_and_paid(self, repo):
        repo.create(make_record(
            "APP-1",
            status=ApplicationStatus.ACCEPTED,
            stage=ApplicationStage.PROCESSING,
            contract_url="/files/contracts/APP-1/contract.pdf",
            contract_signed_landlord=True,
            contract_signed_tenant=True,
            contract_status=ContractStatus.COMPLETED,
        ))
        updated = repo.update("APP-1", {"payment_status": PaymentStatus.PAID})
        assert updated.stage == ApplicationStage.COMPLETED

    def test_empty_update_returns_current(self, repo):
        record = repo.create(make_record("APP-1"))
        assert repo.update("APP-1", {}) == record

    def test_immutable_fields_refused(self, repo):
        repo.create(make_record("APP-1"))
        with pytest.raises(ValueError, match="immutable"):
            repo.update("APP-1", {"applicant_id": "tenant-9"})
        with pytest.raises(ValueError, match="Unknown"):
            repo.update("APP-1", {"colour": "blue"})

    def test_delete(self, repo):
        repo.create(make_record("APP-1"))
        assert repo.delete("APP-1") is True
        assert repo.delete("APP-1") is False


class TestQueries:
    """List and search helpers used by the dashboards."""

    def test_newest_first(self, populated):
        assert [r.application_id for r in populated.list_all()] == ["APP-C", "APP-B", "APP-A"]

    def test_by_party(self, populated):
        assert [r.application_id for r in populated.list_by_applicant("tenant-1")] == ["APP-C", "APP-A"]
        assert [r.application_id for r in populated.list_by_owner("owner-1")] == ["APP-B", "APP-A"]
        assert [r.application_id for r in populated.list_by_property("prop-9")] == ["APP-C"]

    def test_by_status(self, populated):
        assert [r.application_id for r in populated.list_by_status(ApplicationStatus.ACCEPTED)] == ["APP-B"]

    def test_search_text(self, populated):
        assert [r.application_id for r in populated.search(text="nur")] == ["APP-C", "APP-A"]
        assert [r.application_id for r in populated.search(text="  GARDEN ")] == ["APP-B"]
        assert populated.search(text="nobody") == []

    def test_search_combined_filters(self, populated):
        result = populated.search(text="nur", status=ApplicationStatus.PENDING)
        assert [r.application_id for r in result] == ["APP-A"]
        result = populated.search(property_owner_id="owner-2", applicant_id="tenant-1")
        assert [r.application_id for r in result] == ["APP-C"]

    def test_summary(self, populated):
        summary = populated.get_summary()
        assert summary["total_applications"] == 3
        assert summary["status_counts"] == {"pending": 1, "accepted": 1, "rejected": 1}
        assert summary["stage_counts"] == {"application": 2, "processing": 1}
        assert summary["recent_applications"][0]["application_id"] == "APP-C"


class TestPersistence:
    """JSON file persistence."""

    def test_round_trip_through_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "applications.json"
            repo = ApplicationRepository(str(path))
            repo.create(make_record("APP-1", monthly_rent=2500, message="Hello"))
            repo.update("APP-1", {"status": ApplicationStatus.ACCEPTED, "stage": ApplicationStage.PROCESSING})

            reloaded = ApplicationRepository(str(path))
            assert reloaded.require("APP-1") == repo.require("APP-1")

    def test_corrupt_file_starts_empty(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "applications.json"
            path.write_text("{not json")
            repo = ApplicationRepository(str(path))
            assert repo.count() == 0

    def test_failed_save_rolls_back(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "applications.json"
            repo = ApplicationRepository(str(path))
            repo.create(make_record("APP-1"))

            # Replace the data file with a directory so the next save fails
            path.unlink()
            path.mkdir()
            with pytest.raises(StorageFailure):
                repo.update("APP-1", {"feedback": "Welcome"})
            assert repo.require("APP-1").feedback is None

    def test_file_format(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "applications.json"
            ApplicationRepository(str(path)).create(make_record("APP-1"))
            data = json.loads(path.read_text())
            assert data["applications"]["APP-1"]["status"] == "pending"
            assert "saved_at" in data


class TestSingleton:
    """Module-level repository instance."""

    def test_same_instance_until_reset(self):
        reset_application_repository()
        first = get_application_repository()
        assert get_application_repository() is first
        reset_application_repository()
        assert get_application_repository() is not first
        reset_application_repository()
