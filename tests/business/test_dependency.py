"""DependencyValidator tests, including scenarios C and D."""

import pytest

from business.dependency import DependencyValidator, get_step_dependencies
from business.errors import InvalidStepError, TenantNotFoundError
from business.progress import ProgressTracker
from business.skip_logic import SkipLogicResolver
from business.steps import OnboardingStep
from tests.conftest import make_tenant


@pytest.fixture
def tracker(temp_db):
    return ProgressTracker(temp_db)


@pytest.fixture
def validator(tracker):
    return DependencyValidator(tracker)


class TestDependencyTable:
    """Static per-plan dependency table."""

    def test_clinic_overview_depends_on_complex_only_above_clinic_plan(self):
        assert get_step_dependencies("company", "clinic-overview") == (
            OnboardingStep.COMPLEX_OVERVIEW,
        )
        assert get_step_dependencies("complex", "clinic-overview") == (
            OnboardingStep.COMPLEX_OVERVIEW,
        )
        assert get_step_dependencies("clinic", "clinic-overview") == ()

    def test_clinic_schedule_depends_on_overview_and_complex_schedule(self):
        deps = get_step_dependencies("company", "clinic-schedule")
        assert set(deps) == {OnboardingStep.CLINIC_OVERVIEW, OnboardingStep.COMPLEX_SCHEDULE}

    def test_first_steps_have_no_dependencies(self):
        assert get_step_dependencies("company", "organization-overview") == ()
        assert get_step_dependencies("complex", "complex-overview") == ()


class TestValidateStepDependency:
    """validate_step_dependency against stored progress."""

    def test_missing_complex_overview(self, validator, company_tenant):
        """Scenario C: nothing completed yet."""
        _, tenant = company_tenant
        result = validator.validate_step_dependency(tenant.id, "clinic-overview")
        assert result.can_proceed is False
        assert result.missing_steps == ["complex-overview"]
        assert result.message["en"]

    def test_skip_satisfies_dependency(self, tracker, validator, company_tenant):
        """Scenario D: skipping the complex unblocks clinic steps."""
        sub, tenant = company_tenant
        SkipLogicResolver(tracker).skip_complex_step(tenant.id, sub.id)
        result = validator.validate_step_dependency(tenant.id, "clinic-overview")
        assert result.can_proceed is True
        assert result.missing_steps == []

    def test_completion_satisfies_dependency(self, tracker, validator, temp_db):
        _, tenant = make_tenant(temp_db, "complex")
        tracker.mark_step_complete(tenant.id, "complex-overview")
        assert validator.validate_step_dependency(tenant.id, "clinic-overview").can_proceed

    def test_not_transitive(self, tracker, validator, company_tenant):
        _, tenant = company_tenant
        tracker.mark_step_complete(tenant.id, "complex-overview")
        # organization-overview is still open, but clinic-overview only needs complex-overview
        assert validator.validate_step_dependency(tenant.id, "clinic-overview").can_proceed

    def test_unlisted_step_always_allowed(self, validator, clinic_tenant):
        _, tenant = clinic_tenant
        assert validator.validate_step_dependency(tenant.id, "dashboard").can_proceed

    def test_invalid_step(self, validator, clinic_tenant):
        _, tenant = clinic_tenant
        with pytest.raises(InvalidStepError):
            validator.validate_step_dependency(tenant.id, "billing")

    def test_unknown_tenant(self, validator):
        with pytest.raises(TenantNotFoundError):
            validator.validate_step_dependency(99999, "clinic-overview")
