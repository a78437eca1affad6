"""EntityHierarchyPolicy tests: required entities, limits and plan configuration."""

import pytest

from business.errors import InvalidPlanTypeError
from business.hierarchy_policy import (
    max_allowed, plan_configuration, required_entities, validate_entity_hierarchy
)
from business.steps import EntityKind

LIMIT_TABLE = {
    "company": {"organization": 1, "complex": None, "clinic": None},
    "complex": {"organization": 0, "complex": 1, "clinic": None},
    "clinic": {"organization": 0, "complex": 0, "clinic": 1},
}


class TestMaxAllowed:
    """maxAllowed follows the plan table exactly."""

    @pytest.mark.parametrize("plan", sorted(LIMIT_TABLE))
    def test_table(self, plan):
        for kind, expected in LIMIT_TABLE[plan].items():
            assert max_allowed(plan, kind) == expected

    def test_case_insensitive(self):
        assert max_allowed("CLINIC", "Clinic") == 1

    def test_unknown_plan_raises(self):
        with pytest.raises(InvalidPlanTypeError):
            max_allowed("enterprise", "clinic")


class TestRequiredEntities:
    """required_entities ordering per plan."""

    def test_required_per_plan(self):
        assert required_entities("company") == (EntityKind.ORGANIZATION,)
        assert required_entities("complex") == (EntityKind.COMPLEX, EntityKind.DEPARTMENT)
        assert required_entities("clinic") == (EntityKind.CLINIC,)

    def test_unknown_plan_is_empty(self):
        assert required_entities("nope") == ()


class TestValidateEntityHierarchy:
    """validate_entity_hierarchy presence rules."""

    def test_company_needs_organization(self):
        assert validate_entity_hierarchy("company", {"organization": 1}) is True
        assert validate_entity_hierarchy("company", {"organization": []}) is False

    def test_complexes_require_departments(self):
        assert validate_entity_hierarchy(
            "company", {"organization": 1, "complex": ["c1"]}
        ) is False
        assert validate_entity_hierarchy(
            "company", {"organization": 1, "complex": ["c1"], "department": ["d1"]}
        ) is True

    def test_complex_plan(self):
        assert validate_entity_hierarchy("complex", {"complex": 1, "department": 2}) is True
        assert validate_entity_hierarchy("complex", {"complex": 1}) is False

    def test_clinic_plan_case_insensitive(self):
        assert validate_entity_hierarchy("Clinic", {"clinic": {"id": 1}}) is True
        assert validate_entity_hierarchy("clinic", {}) is False

    def test_unknown_plan_is_false(self):
        assert validate_entity_hierarchy("gold", {"clinic": 1}) is False


class TestPlanConfiguration:
    """plan_configuration display data."""

    def test_company_configuration(self):
        config = plan_configuration("company")
        assert config.name == "Company Plan"
        assert "organization_management" in config.features
        assert config.limits["organization"] == 1
        assert config.limits["complex"] is None

    def test_unknown(self):
        assert plan_configuration(None) is None
