"""System repository tests.

Tests for ProgressRepository: get_or_create, save, archive.
"""

from tests.conftest import make_tenant


class TestProgressRepository:
    """Tests for ProgressRepository."""

    def test_get_or_create_is_idempotent(self, temp_db):
        _, tenant = make_tenant(temp_db, "clinic")
        first = temp_db.progress.get_or_create(tenant.id, "clinic-overview")
        second = temp_db.progress.get_or_create(tenant.id, "organization-overview")
        assert first.id == second.id
        assert second.current_step == "clinic-overview"
        assert second.completed_steps == []

    def test_get_by_tenant_missing(self, temp_db):
        assert temp_db.progress.get_by_tenant(99999) is None

    def test_save_replaces_lists(self, temp_db):
        _, tenant = make_tenant(temp_db, "clinic")
        temp_db.progress.get_or_create(tenant.id, "clinic-overview")
        temp_db.progress.save(
            tenant.id, "clinic-contact", ["clinic-overview"], [],
            step_data={"clinic-overview": {"name": "X"}},
        )
        stored = temp_db.progress.get_by_tenant(tenant.id)
        assert stored.current_step == "clinic-contact"
        assert stored.completed_steps == ["clinic-overview"]
        assert stored.step_data["clinic-overview"]["name"] == "X"

    def test_save_missing_progress(self, temp_db):
        assert temp_db.progress.save(99999, "completed", [], []) is None

    def test_archive_keeps_record(self, temp_db):
        _, tenant = make_tenant(temp_db, "clinic")
        temp_db.progress.get_or_create(tenant.id, "clinic-overview")
        archived = temp_db.progress.archive(tenant.id, "completed")
        assert archived.onboarding_completed is True
        assert archived.archived_at is not None
        assert temp_db.progress.get_by_tenant(tenant.id) is not None
