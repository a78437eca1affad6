"""SkipLogicResolver tests."""

import pytest

from business.errors import (
    SkipNotAllowedError, SubscriptionNotFoundError, TenantNotFoundError
)
from business.progress import ProgressTracker
from business.skip_logic import SkipLogicResolver, can_skip_complex, get_skipped_steps
from business.steps import OnboardingStep

COMPLEX_CASCADE = [
    "complex-overview", "complex-contact", "complex-schedule",
    "clinic-overview", "clinic-contact", "clinic-schedule",
]


@pytest.fixture
def resolver(temp_db):
    return SkipLogicResolver(ProgressTracker(temp_db))


class TestSkipRules:
    """Pure skip helpers."""

    def test_only_company_can_skip(self):
        assert can_skip_complex("company") is True
        assert can_skip_complex("COMPANY") is True
        assert can_skip_complex("complex") is False
        assert can_skip_complex("clinic") is False
        assert can_skip_complex(None) is False

    def test_complex_overview_cascades(self):
        assert get_skipped_steps("complex-overview") == COMPLEX_CASCADE
        assert get_skipped_steps(OnboardingStep.COMPLEX_OVERVIEW) == COMPLEX_CASCADE

    def test_other_steps_are_identity(self):
        assert get_skipped_steps("clinic-legal") == ["clinic-legal"]
        assert get_skipped_steps("anything") == ["anything"]


class TestSkipComplexStep:
    """skip_complex_step against stored progress."""

    def test_skips_cascade_and_moves_to_dashboard(self, resolver, company_tenant):
        sub, tenant = company_tenant
        result = resolver.skip_complex_step(tenant.id, sub.id)
        assert result.skipped_steps == COMPLEX_CASCADE
        assert result.current_step == "dashboard"
        payload = result.to_dict()
        assert payload["message"]["en"].startswith("Complex and clinic setup skipped")
        assert set(payload["progress"]["skipped_steps"]) == set(COMPLEX_CASCADE)

    def test_completed_steps_stay_completed(self, resolver, company_tenant):
        sub, tenant = company_tenant
        resolver.tracker.mark_step_complete(tenant.id, "complex-overview")
        result = resolver.skip_complex_step(tenant.id, sub.id)
        assert OnboardingStep.COMPLEX_OVERVIEW in result.progress.completed_steps
        assert OnboardingStep.COMPLEX_OVERVIEW not in result.progress.skipped_steps

    def test_forbidden_for_clinic_plan(self, temp_db, resolver, clinic_tenant):
        sub, tenant = clinic_tenant
        with pytest.raises(SkipNotAllowedError) as exc_info:
            resolver.skip_complex_step(tenant.id, sub.id)
        assert exc_info.value.code == "ONBOARDING_001"
        assert temp_db.progress.get_by_tenant(tenant.id) is None

    def test_subscription_mismatch(self, temp_db, resolver, company_tenant):
        _, tenant = company_tenant
        other = temp_db.subscriptions.create_subscription("company")
        with pytest.raises(SubscriptionNotFoundError):
            resolver.skip_complex_step(tenant.id, other.id)

    def test_unknown_tenant(self, resolver, company_tenant):
        sub, _ = company_tenant
        with pytest.raises(TenantNotFoundError):
            resolver.skip_complex_step(98765, sub.id)
