"""ProgressTracker tests: lazy creation, set invariants and plan inference."""

import pytest

from business.errors import InvalidStepError, TenantNotFoundError
from business.progress import ProgressTracker, infer_plan_type
from business.steps import OnboardingStep, PlanType, get_step_flow, next_step
from tests.conftest import make_tenant


@pytest.fixture
def tracker(temp_db):
    return ProgressTracker(temp_db)


class TestPlanInference:
    """Plan type resolution from explicit values and linked entities."""

    def test_precedence_organization_first(self):
        assert infer_plan_type(organization_id=1, complex_id=2, clinic_id=3) is PlanType.COMPANY
        assert infer_plan_type(complex_id=2, clinic_id=3) is PlanType.COMPLEX
        assert infer_plan_type(clinic_id=3) is PlanType.CLINIC

    def test_defaults_to_clinic(self):
        assert infer_plan_type() is PlanType.CLINIC

    def test_falls_back_to_subscription_plan(self, temp_db, tracker):
        _, tenant = make_tenant(temp_db, "complex", store_plan=False)
        assert tracker.plan_type_of(tenant.id) is PlanType.COMPLEX

    def test_infers_from_links_when_nothing_stored(self, temp_db, tracker):
        tenant = temp_db.tenants.create_tenant("Linked")
        sub = temp_db.subscriptions.create_subscription("company")
        org = temp_db.organizations.create_organization(sub.id, "Org")
        temp_db.tenants.link_entities(tenant.id, organization_id=org.id)
        assert tracker.plan_type_of(tenant.id) is PlanType.COMPANY


class TestStepFlow:
    """Wizard order per plan."""

    def test_flow_lengths(self):
        assert len(get_step_flow("company")) == 12
        assert len(get_step_flow("complex")) == 9
        assert len(get_step_flow("clinic")) == 5

    def test_next_step(self):
        assert next_step("clinic", "clinic-overview") is OnboardingStep.CLINIC_CONTACT
        assert next_step("clinic", "clinic-schedule") is OnboardingStep.COMPLETED
        assert next_step("clinic", "complex-overview") is OnboardingStep.COMPLETED
        assert next_step("company", "dashboard") is OnboardingStep.DASHBOARD

    def test_unknown_step_rejected(self):
        with pytest.raises(InvalidStepError):
            OnboardingStep.parse("clinic-billing")


class TestProgressTracker:
    """State transitions on the stored progress record."""

    def test_lazy_creation_at_initial_step(self, temp_db, tracker, company_tenant):
        _, tenant = company_tenant
        assert temp_db.progress.get_by_tenant(tenant.id) is None
        progress = tracker.get_progress(tenant.id)
        assert progress.current_step is OnboardingStep.ORGANIZATION_OVERVIEW
        assert progress.completed_steps == set()
        assert temp_db.progress.get_by_tenant(tenant.id) is not None

    def test_unknown_tenant(self, tracker):
        with pytest.raises(TenantNotFoundError) as exc_info:
            tracker.get_progress(424242)
        assert exc_info.value.code == "ONBOARDING_007"

    def test_mark_complete_is_idempotent(self, tracker, clinic_tenant):
        _, tenant = clinic_tenant
        tracker.mark_step_complete(tenant.id, "clinic-overview")
        progress = tracker.mark_step_complete(tenant.id, "clinic-overview")
        assert progress.completed_steps == {OnboardingStep.CLINIC_OVERVIEW}
        assert progress.to_dict()["completed_steps"] == ["clinic-overview"]

    def test_completing_skipped_step_moves_it(self, tracker, company_tenant):
        _, tenant = company_tenant
        tracker.mark_step_skipped(tenant.id, "complex-contact")
        progress = tracker.mark_step_complete(tenant.id, "complex-contact")
        assert OnboardingStep.COMPLEX_CONTACT in progress.completed_steps
        assert OnboardingStep.COMPLEX_CONTACT not in progress.skipped_steps

    def test_skipping_completed_step_is_noop(self, tracker, company_tenant):
        _, tenant = company_tenant
        tracker.mark_step_complete(tenant.id, "complex-overview")
        progress = tracker.mark_step_skipped(tenant.id, "complex-overview")
        assert progress.skipped_steps == set()
        assert progress.completed_steps == {OnboardingStep.COMPLEX_OVERVIEW}

    def test_sets_never_overlap(self, tracker, company_tenant):
        _, tenant = company_tenant
        for step in ("organization-overview", "complex-overview", "clinic-overview"):
            tracker.mark_step_skipped(tenant.id, step)
            tracker.mark_step_complete(tenant.id, step)
            tracker.mark_step_skipped(tenant.id, step)
        progress = tracker.get_progress(tenant.id)
        assert not progress.completed_steps & progress.skipped_steps

    def test_update_progress_keeps_sets(self, tracker, clinic_tenant):
        _, tenant = clinic_tenant
        tracker.mark_step_complete(tenant.id, "clinic-overview")
        progress = tracker.update_progress(
            tenant.id, "clinic-legal", step_data={"license": "L-1"}
        )
        assert progress.current_step is OnboardingStep.CLINIC_LEGAL
        assert progress.completed_steps == {OnboardingStep.CLINIC_OVERVIEW}
        assert tracker.get_progress(tenant.id).step_data["clinic-legal"] == {"license": "L-1"}

    def test_complete_and_advance(self, tracker, clinic_tenant):
        _, tenant = clinic_tenant
        progress = tracker.complete_and_advance(tenant.id, "clinic-overview")
        assert progress.current_step is OnboardingStep.CLINIC_CONTACT
        assert progress.current_step_number == 2
        assert progress.percent_complete == 20

    def test_archive_progress(self, temp_db, tracker, clinic_tenant):
        _, tenant = clinic_tenant
        tracker.mark_step_complete(tenant.id, "clinic-overview")
        progress = tracker.archive_progress(tenant.id)
        assert progress.onboarding_completed is True
        assert progress.current_step is OnboardingStep.COMPLETED
        record = temp_db.progress.get_by_tenant(tenant.id)
        assert record.current_step == "completed"
        assert record.completed_steps == ["clinic-overview"]
