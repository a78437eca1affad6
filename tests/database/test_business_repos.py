"""Business repository tests.

- WorkingHoursRepository: replace_schedule, get_schedule ordering
- AppointmentRepository: upcoming lookup, count, mark_for_rescheduling
- PersonnelRepository: active counts by role group, reassign_active
"""
from datetime import date

from business.steps import WEEK_DAYS
from tests.conftest import week

ACTIVE = ["scheduled", "confirmed"]


def _clinic(db, name="C"):
    sub = db.subscriptions.create_subscription("company")
    return db.clinics.create_clinic(sub.id, name)


class TestWorkingHoursRepository:
    """Tests for WorkingHoursRepository."""

    def test_replace_and_get_sorted_by_weekday(self, temp_db):
        days = list(reversed(week()))
        temp_db.working_hours.replace_schedule("complex", 1, days)

        rows = temp_db.working_hours.get_schedule("complex", 1)
        assert [r.day_of_week for r in rows][:2] == ["monday", "tuesday"]
        assert len(rows) == 7

    def test_schedule_order_matches_week_days(self, temp_db):
        temp_db.working_hours.replace_schedule("complex", 2, list(reversed(week())))
        rows = temp_db.working_hours.get_schedule("complex", 2)
        assert [r.day_of_week for r in rows] == list(WEEK_DAYS)

    def test_replace_overwrites_previous_rows(self, temp_db):
        temp_db.working_hours.replace_schedule("clinic", 5, week())
        temp_db.working_hours.replace_schedule("clinic", 5, [
            {"day_of_week": "Monday", "opening_time": "10:00", "closing_time": "12:00"},
        ])
        rows = temp_db.working_hours.get_schedule("clinic", 5)
        assert len(rows) == 1
        assert rows[0].day_of_week == "monday"
        assert rows[0].opening_time == "10:00"

    def test_non_working_day_drops_times(self, temp_db):
        temp_db.working_hours.replace_schedule("clinic", 6, [
            {"day_of_week": "friday", "is_working_day": False,
             "opening_time": "09:00", "closing_time": "17:00"},
        ])
        row = temp_db.working_hours.get_schedule("clinic", 6)[0]
        assert row.is_working_day is False
        assert row.opening_time is None

    def test_empty_schedule(self, temp_db):
        assert temp_db.working_hours.get_schedule("complex", 404) == []


class TestAppointmentRepository:
    """Tests for AppointmentRepository."""

    def test_upcoming_filters_status_date_and_deleted(self, temp_db):
        clinic = _clinic(temp_db)
        today = date(2024, 5, 27)
        keep = temp_db.appointments.create_appointment(clinic.id, date(2024, 5, 28), "10:00")
        temp_db.appointments.create_appointment(clinic.id, date(2024, 5, 20), "10:00")
        temp_db.appointments.create_appointment(
            clinic.id, date(2024, 5, 29), "10:00", status="cancelled"
        )
        same_day = temp_db.appointments.create_appointment(
            clinic.id, today, "08:00", status="confirmed"
        )

        upcoming = temp_db.appointments.get_upcoming(clinic.id, ACTIVE, from_date=today)
        assert [a.id for a in upcoming] == [same_day.id, keep.id]
        assert temp_db.appointments.count_upcoming(clinic.id, ACTIVE, from_date=today) == 2

    def test_mark_for_rescheduling(self, temp_db):
        clinic = _clinic(temp_db)
        appt = temp_db.appointments.create_appointment(clinic.id, date(2024, 6, 3), "09:30")

        marked = temp_db.appointments.mark_for_rescheduling(
            clinic.id, ACTIVE, "clinic_deactivated", from_date=date(2024, 5, 27)
        )
        assert marked == 1
        refreshed = temp_db.get_session().get(type(appt), appt.id)
        assert refreshed.requires_rescheduling is True
        assert refreshed.rescheduling_reason == "clinic_deactivated"
        assert refreshed.marked_for_rescheduling_at is not None


class TestPersonnelRepository:
    """Tests for PersonnelRepository."""

    def test_count_active_by_role_group(self, temp_db):
        clinic = _clinic(temp_db)
        temp_db.personnel.create_member("Dr. A", "doctor", clinic.id)
        temp_db.personnel.create_member("Dr. B", "doctor", clinic.id, is_active=False)
        temp_db.personnel.create_member("Nurse", "nurse", clinic.id)
        temp_db.personnel.create_member("Patient", "patient", clinic.id)

        assert temp_db.personnel.count_active(clinic.id, doctors=True) == 1
        assert temp_db.personnel.count_active(clinic.id, doctors=False) == 1

    def test_reassign_moves_only_active(self, temp_db):
        source = _clinic(temp_db, "Source")
        target = _clinic(temp_db, "Target")
        temp_db.personnel.create_member("Dr. A", "doctor", source.id)
        inactive = temp_db.personnel.create_member("Dr. B", "doctor", source.id, is_active=False)

        moved = temp_db.personnel.reassign_active(source.id, target.id, doctors=True)
        assert moved == 1
        assert temp_db.personnel.count_active(target.id, doctors=True) == 1
        assert temp_db.get_session().get(type(inactive), inactive.id).clinic_id == source.id

    def test_reassign_explicit_ids(self, temp_db):
        source = _clinic(temp_db, "Source")
        target = _clinic(temp_db, "Target")
        first = temp_db.personnel.create_member("Rec 1", "receptionist", source.id)
        temp_db.personnel.create_member("Rec 2", "receptionist", source.id)

        moved = temp_db.personnel.reassign_active(
            source.id, target.id, doctors=False, member_ids=[first.id]
        )
        assert moved == 1
        assert temp_db.personnel.list_active(target.id, doctors=False)[0].id == first.id
