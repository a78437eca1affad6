"""ClinicStatusTransitionManager tests, including scenario F."""

from datetime import date

import pytest

from business.clinic_status import (
    ClinicStatusTransitionManager, StatusChangeRequest, TransferOptions
)
from business.errors import (
    ClinicNotFoundError, MissingTargetClinicError, TargetClinicNotFoundError,
    TransferRequiredError
)
from database.models import Personnel
from tests.conftest import TODAY

ACTIVE = ["scheduled", "confirmed"]


@pytest.fixture
def manager(temp_db):
    return ClinicStatusTransitionManager(temp_db)


@pytest.fixture
def clinics(temp_db):
    """Two clinics under one subscription; the first has a doctor and an appointment."""
    sub = temp_db.subscriptions.create_subscription("company")
    source = temp_db.clinics.create_clinic(sub.id, "Source")
    target = temp_db.clinics.create_clinic(sub.id, "Target")
    doctor = temp_db.personnel.create_member("Dr. Salem", role="doctor", clinic_id=source.id)
    appointment = temp_db.appointments.create_appointment(
        source.id, date(2024, 6, 10), "10:00", doctor_id=doctor.id
    )
    return source, target, doctor, appointment


class TestCheckDependencies:
    """Counting what a deactivation would strand."""

    def test_counts(self, temp_db, manager, clinics):
        source, _, _, _ = clinics
        temp_db.personnel.create_member("Reception", role="receptionist", clinic_id=source.id)
        temp_db.personnel.create_member("Former", role="doctor", clinic_id=source.id,
                                        is_active=False)
        temp_db.personnel.create_member("Patient", role="patient", clinic_id=source.id)
        counts = manager.check_dependencies(source.id, today=TODAY)
        assert counts == {"active_appointments": 1, "assigned_doctors": 1, "assigned_staff": 1}


class TestChangeStatus:
    """Status transitions with transfer decisions."""

    def test_scenario_f(self, temp_db, manager, clinics):
        """Deactivation is rejected without a decision, then succeeds with a transfer."""
        source, target, doctor, appointment = clinics

        with pytest.raises(TransferRequiredError) as exc_info:
            manager.change_status(source.id, StatusChangeRequest("inactive"), today=TODAY)
        error = exc_info.value
        assert error.assigned_doctors == 1
        assert error.active_appointments == 1
        assert error.assigned_staff == 0
        assert error.details["requires_transfer"] is True
        assert error.code == "CLINIC_004"
        assert temp_db.clinics.get(source.id).status == "active"

        result = manager.change_status(
            source.id,
            StatusChangeRequest("inactive", reason="renovation",
                                transfer_doctors=True, target_clinic_id=target.id),
            today=TODAY,
        )
        assert result.changed is True
        assert result.doctors_transferred == 1
        assert result.appointments_marked_for_rescheduling == 1

        clinic = temp_db.clinics.get(source.id)
        assert clinic.status == "inactive"
        assert clinic.is_active is False
        assert clinic.deactivation_reason == "renovation"
        assert temp_db.personnel.count_active(target.id, doctors=True) == 1
        flagged = temp_db.appointments.get_upcoming(source.id, ACTIVE, from_date=TODAY)
        assert flagged[0].id == appointment.id
        assert flagged[0].requires_rescheduling is True
        assert flagged[0].rescheduling_reason == "clinic_deactivated"

    def test_keep_personnel(self, temp_db, manager, clinics):
        """Personnel stay put but upcoming appointments are still flagged."""
        source, _, doctor, appointment = clinics
        result = manager.change_status(
            source.id, StatusChangeRequest("suspended", keep_personnel=True), today=TODAY
        )
        assert result.status == "suspended"
        assert result.doctors_transferred == 0
        assert result.appointments_marked_for_rescheduling == 1
        assert temp_db.personnel.get_by_id(Personnel, doctor.id).clinic_id == source.id
        upcoming = temp_db.appointments.get_upcoming(source.id, ACTIVE, from_date=TODAY)
        assert upcoming[0].id == appointment.id
        assert upcoming[0].requires_rescheduling is True
        assert upcoming[0].rescheduling_reason == "clinic_deactivated"

    def test_target_id_alone_is_not_a_decision(self, manager, clinics):
        source, target, _, _ = clinics
        with pytest.raises(TransferRequiredError):
            manager.change_status(
                source.id, StatusChangeRequest("inactive", target_clinic_id=target.id),
                today=TODAY,
            )

    def test_transfer_without_target(self, manager, clinics):
        source, _, _, _ = clinics
        with pytest.raises(MissingTargetClinicError):
            manager.change_status(
                source.id, StatusChangeRequest("inactive", transfer_doctors=True), today=TODAY
            )

    def test_transfer_to_self(self, manager, clinics):
        source, _, _, _ = clinics
        with pytest.raises(MissingTargetClinicError):
            manager.change_status(
                source.id,
                StatusChangeRequest("inactive", transfer_doctors=True, target_clinic_id=source.id),
                today=TODAY,
            )

    def test_target_not_found_rolls_back(self, temp_db, manager, clinics):
        source, _, _, _ = clinics
        with pytest.raises(TargetClinicNotFoundError):
            manager.change_status(
                source.id,
                StatusChangeRequest("inactive", transfer_doctors=True, target_clinic_id=777),
                today=TODAY,
            )
        assert temp_db.clinics.get(source.id).status == "active"

    def test_empty_clinic_needs_no_decision(self, temp_db, manager):
        sub = temp_db.subscriptions.create_subscription("clinic")
        clinic = temp_db.clinics.create_clinic(sub.id, "Quiet")
        result = manager.change_status(clinic.id, StatusChangeRequest("inactive"), today=TODAY)
        assert result.changed is True
        assert result.dependencies == {
            "active_appointments": 0, "assigned_doctors": 0, "assigned_staff": 0
        }

    def test_staff_only_needs_no_decision(self, temp_db, manager):
        sub = temp_db.subscriptions.create_subscription("clinic")
        clinic = temp_db.clinics.create_clinic(sub.id, "Front Desk Only")
        temp_db.personnel.create_member("Clerk", role="staff", clinic_id=clinic.id)
        result = manager.change_status(clinic.id, StatusChangeRequest("suspended"), today=TODAY)
        assert result.dependencies["assigned_staff"] == 1
        assert temp_db.personnel.count_active(clinic.id, doctors=False) == 1

    def test_same_status_is_noop(self, manager, clinics):
        source, _, _, _ = clinics
        result = manager.change_status(source.id, StatusChangeRequest("ACTIVE"), today=TODAY)
        assert result.changed is False

    def test_reactivation_needs_no_decision(self, temp_db, manager):
        sub = temp_db.subscriptions.create_subscription("clinic")
        clinic = temp_db.clinics.create_clinic(sub.id, "Dormant", status="inactive")
        temp_db.personnel.create_member("Dr. Noor", role="doctor", clinic_id=clinic.id)
        result = manager.change_status(clinic.id, StatusChangeRequest("active"), today=TODAY)
        assert result.status == "active"
        reloaded = temp_db.clinics.get(clinic.id)
        assert reloaded.is_active is True
        assert reloaded.deactivated_at is None

    def test_unknown_clinic(self, manager):
        with pytest.raises(ClinicNotFoundError):
            manager.change_status(5150, StatusChangeRequest("inactive"), today=TODAY)


class TestTransferStaff:
    """Bulk transfers without a status change."""

    def test_selected_members_only(self, temp_db, manager, clinics):
        source, target, doctor, _ = clinics
        temp_db.personnel.create_member("Dr. Huda", role="doctor", clinic_id=source.id)
        nurse = temp_db.personnel.create_member("Nurse", role="nurse", clinic_id=source.id)
        inactive = temp_db.personnel.create_member("Old", role="nurse", clinic_id=source.id,
                                                   is_active=False)

        result = manager.transfer_staff(
            source.id,
            TransferOptions(target_clinic_id=target.id, doctor_ids=[doctor.id]),
            today=TODAY,
        )
        assert result.doctors_transferred == 1
        assert result.staff_transferred == 1
        assert result.appointments_affected == 1
        assert temp_db.personnel.count_active(source.id, doctors=True) == 1
        moved_ids = [m.id for m in temp_db.personnel.list_active(target.id, doctors=False)]
        assert moved_ids == [nurse.id]
        assert temp_db.personnel.get_by_id(Personnel, inactive.id).clinic_id == source.id
        assert temp_db.clinics.get(source.id).status == "active"

    def test_requires_target(self, manager, clinics):
        source, _, _, _ = clinics
        with pytest.raises(MissingTargetClinicError):
            manager.transfer_staff(source.id, TransferOptions(), today=TODAY)
