"""Shared fixtures for the onboarding test-suite.

Provides a fresh temp-file SQLite DatabaseManager per test, an
OnboardingEngine bound to it, and small helpers that seed tenants,
hierarchy entities and working hours.
"""
import os
import shutil
import tempfile
from datetime import date, timedelta

import pytest

from business import OnboardingEngine
from database import DatabaseManager

# 2024-06-01 is a Saturday
SATURDAY = date(2024, 6, 1)
TODAY = date(2024, 5, 27)  # Monday

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday")


def week(opening="09:00", closing="17:00", closed=("saturday", "sunday"),
         break_start=None, break_end=None):
    """Helper: build a full-week schedule in storage field names."""
    days = []
    for day in ("monday", "tuesday", "wednesday", "thursday",
                "friday", "saturday", "sunday"):
        if day in closed:
            days.append({"day_of_week": day, "is_working_day": False})
        else:
            days.append({
                "day_of_week": day, "is_working_day": True,
                "opening_time": opening, "closing_time": closing,
                "break_start_time": break_start, "break_end_time": break_end,
            })
    return days


def next_weekday(start, weekday_index):
    """Helper: first date on or after start with the given weekday (0=Monday)."""
    return start + timedelta(days=(weekday_index - start.weekday()) % 7)


def make_tenant(db, plan_type, name="Tenant", store_plan=True):
    """Helper: create a subscription and tenant, return (subscription, tenant)."""
    subscription = db.subscriptions.create_subscription(plan_type)
    tenant = db.tenants.create_tenant(
        name, subscription_id=subscription.id,
        plan_type=plan_type if store_plan else None,
    )
    return subscription, tenant


def make_complex_with_clinic(db, complex_hours=None, clinic_hours=None):
    """Helper: complex-plan subscription with one complex and one linked clinic."""
    subscription, tenant = make_tenant(db, "complex")
    complex_ = db.complexes.create_complex(subscription.id, "Central Complex")
    clinic = db.clinics.create_clinic(subscription.id, "Dental", complex_id=complex_.id)
    db.tenants.link_entities(tenant.id, complex_id=complex_.id, clinic_id=clinic.id)
    if complex_hours is not None:
        db.working_hours.replace_schedule("complex", complex_.id, complex_hours)
    if clinic_hours is not None:
        db.working_hours.replace_schedule("clinic", clinic.id, clinic_hours)
    return subscription, tenant, complex_, clinic


@pytest.fixture
def temp_db():
    """Yield a fresh DatabaseManager bound to a temp SQLite database."""
    temp_dir = tempfile.mkdtemp(prefix="onboarding-tests-")
    db_path = os.path.join(temp_dir, "test.db")
    manager = DatabaseManager(database_url=f"sqlite:///{db_path}")
    manager.create_tables()

    try:
        yield manager
    finally:
        manager.close()
        shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def engine(temp_db):
    """Yield an OnboardingEngine over the temp database."""
    return OnboardingEngine(temp_db)


@pytest.fixture
def company_tenant(temp_db):
    """A company-plan subscription and tenant with nothing created yet."""
    return make_tenant(temp_db, "company", "HealthCorp")


@pytest.fixture
def clinic_tenant(temp_db):
    """A clinic-plan subscription and tenant with nothing created yet."""
    return make_tenant(temp_db, "clinic", "Solo Clinic")
