"""入驻规则引擎门面（Facade）。

OnboardingEngine 组合所有规则组件，把它们的操作暴露为普通方法调用：
参数是基本类型的ID和结构化数据，返回结构化结果或抛出 OnboardingError。

Example::

    engine = OnboardingEngine(DatabaseManager("sqlite:///data/onboarding.db"))
    engine.db.create_tables()

    result = engine.validate_plan_limit(subscription_id, "clinic", "clinic")
    if result.can_create:
        clinic = engine.create_clinic(tenant_id, "Main Clinic")
"""
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from loguru import logger

from database import DatabaseManager
from database.models import Clinic, Complex, Organization, Tenant
from . import hierarchy_policy
from .clinic_status import (
    ClinicStatusTransitionManager, StatusChangeRequest, StatusChangeResult,
    TransferOptions, TransferResult
)
from .conflicts import ValidationResult, WorkingHoursConflictValidator
from .dependency import DependencyResult, DependencyValidator
from .errors import SubscriptionNotFoundError, TenantNotFoundError
from .inheritance import (
    InheritanceResult, WorkingHoursInheritanceResolver, can_inherit_working_hours
)
from .plan_limits import LimitResult, PlanLimitEnforcer
from .progress import ProgressTracker, StepProgress, resolve_plan_type
from .schedule import DaySchedule, ensure_valid_schedule
from .skip_logic import SkipLogicResolver, SkipResult, can_skip_complex, get_skipped_steps
from .steps import EntityKind, OnboardingStep, PlanType


class OnboardingEngine:
    """入驻规则引擎。

    Attributes:
        db: 数据库管理器。
        limits: 套餐限额检查。
        progress: 进度跟踪。
        dependencies: 步骤依赖校验。
        skips: 跳过逻辑。
        inheritance: 工作时间继承。
        working_hours: 诊所工作时间校验。
        clinic_status: 诊所状态变更。
    """

    def __init__(self, db: Optional[DatabaseManager] = None) -> None:
        self.db = db or DatabaseManager()
        self.limits = PlanLimitEnforcer(self.db)
        self.progress = ProgressTracker(self.db)
        self.dependencies = DependencyValidator(self.progress)
        self.skips = SkipLogicResolver(self.progress)
        self.inheritance = WorkingHoursInheritanceResolver(self.db)
        self.working_hours = WorkingHoursConflictValidator(self.db)
        self.clinic_status = ClinicStatusTransitionManager(self.db)

    # ================================================================
    # 实体层级与套餐限额
    # ================================================================

    @staticmethod
    def required_entities(plan_type: Union[str, PlanType]) -> List[str]:
        return [kind.value for kind in hierarchy_policy.required_entities(plan_type)]

    @staticmethod
    def max_allowed(plan_type: Union[str, PlanType],
                    entity_kind: Union[str, EntityKind]) -> Optional[int]:
        return hierarchy_policy.max_allowed(plan_type, entity_kind)

    @staticmethod
    def validate_entity_hierarchy(plan_type: Union[str, PlanType],
                                  present_entities: Mapping[str, Any]) -> bool:
        return hierarchy_policy.validate_entity_hierarchy(plan_type, present_entities)

    @staticmethod
    def plan_configuration(plan_type: Union[str, PlanType]):
        return hierarchy_policy.plan_configuration(plan_type)

    def validate_plan_limit(self, subscription_id: int,
                            entity_kind: Union[str, EntityKind],
                            plan_type: Union[str, PlanType]) -> LimitResult:
        return self.limits.validate_plan_limit(subscription_id, entity_kind, plan_type)

    def can_create_entity(self, subscription_id: int,
                          entity_kind: Union[str, EntityKind],
                          plan_type: Union[str, PlanType]) -> bool:
        return self.limits.can_create_entity(subscription_id, entity_kind, plan_type)

    def _tenant_context(self, tenant_id: int) -> Tuple[int, PlanType]:
        with self.db.transaction() as session:
            tenant: Optional[Tenant] = self.db.tenants.get(tenant_id, session=session)
            if tenant is None:
                raise TenantNotFoundError(details={"tenant_id": tenant_id})
            if tenant.subscription_id is None:
                raise SubscriptionNotFoundError(details={"tenant_id": tenant_id})
            return tenant.subscription_id, resolve_plan_type(tenant)

    def create_organization(self, tenant_id: int, name: str) -> Organization:
        """在套餐限额内为租户创建组织并记录到租户上。

        Raises:
            TenantNotFoundError / SubscriptionNotFoundError / LimitExceededError
        """
        subscription_id, plan_type = self._tenant_context(tenant_id)

        def _create(session):
            organization = self.db.organizations.create_organization(
                subscription_id, name, session=session
            )
            self.db.tenants.link_entities(
                tenant_id, organization_id=organization.id, session=session
            )
            return organization

        return self.limits.create_within_limit(
            subscription_id, EntityKind.ORGANIZATION, plan_type, _create
        )

    def create_complex(self, tenant_id: int, name: str,
                       organization_id: Optional[int] = None) -> Complex:
        """在套餐限额内为租户创建综合体。"""
        subscription_id, plan_type = self._tenant_context(tenant_id)

        def _create(session):
            complex_ = self.db.complexes.create_complex(
                subscription_id, name, organization_id=organization_id, session=session
            )
            self.db.tenants.link_entities(tenant_id, complex_id=complex_.id, session=session)
            return complex_

        return self.limits.create_within_limit(
            subscription_id, EntityKind.COMPLEX, plan_type, _create
        )

    def create_clinic(self, tenant_id: int, name: str,
                      complex_id: Optional[int] = None) -> Clinic:
        """在套餐限额内为租户创建诊所。"""
        subscription_id, plan_type = self._tenant_context(tenant_id)

        def _create(session):
            clinic = self.db.clinics.create_clinic(
                subscription_id, name, complex_id=complex_id, session=session
            )
            self.db.tenants.link_entities(tenant_id, clinic_id=clinic.id, session=session)
            return clinic

        return self.limits.create_within_limit(
            subscription_id, EntityKind.CLINIC, plan_type, _create
        )

    # ================================================================
    # 进度与步骤
    # ================================================================

    def get_progress(self, tenant_id: int) -> StepProgress:
        return self.progress.get_progress(tenant_id)

    def update_progress(self, tenant_id: int, step: Union[str, OnboardingStep],
                        step_data: Optional[Dict[str, Any]] = None) -> StepProgress:
        return self.progress.update_progress(tenant_id, step, step_data=step_data)

    def mark_step_complete(self, tenant_id: int,
                           step: Union[str, OnboardingStep]) -> StepProgress:
        return self.progress.mark_step_complete(tenant_id, step)

    def mark_step_skipped(self, tenant_id: int,
                          step: Union[str, OnboardingStep]) -> StepProgress:
        return self.progress.mark_step_skipped(tenant_id, step)

    def complete_step(self, tenant_id: int,
                      step: Union[str, OnboardingStep]) -> StepProgress:
        """完成步骤并前进到下一步。"""
        return self.progress.complete_and_advance(tenant_id, step)

    def archive_progress(self, tenant_id: int) -> StepProgress:
        return self.progress.archive_progress(tenant_id)

    def validate_step_dependency(self, tenant_id: int,
                                 step: Union[str, OnboardingStep]) -> DependencyResult:
        return self.dependencies.validate_step_dependency(tenant_id, step)

    # ================================================================
    # 跳过
    # ================================================================

    @staticmethod
    def can_skip_complex(plan_type: Union[str, PlanType, None]) -> bool:
        return can_skip_complex(plan_type)

    @staticmethod
    def get_skipped_steps(step: Union[str, OnboardingStep]) -> List[str]:
        return get_skipped_steps(step)

    def skip_complex_step(self, tenant_id: int, subscription_id: int) -> SkipResult:
        return self.skips.skip_complex_step(tenant_id, subscription_id)

    # ================================================================
    # 工作时间
    # ================================================================

    @staticmethod
    def can_inherit_working_hours(plan_type: Union[str, PlanType, None],
                                  parent_id: Optional[int] = None) -> bool:
        return can_inherit_working_hours(plan_type, parent_id)

    def get_inherited_working_hours(self, subscription_id: int,
                                    plan_type: Union[str, PlanType],
                                    parent_id: Optional[int] = None) -> InheritanceResult:
        return self.inheritance.get_inherited_working_hours(
            subscription_id, plan_type, parent_id
        )

    def validate_working_hours(self, clinic_id: int,
                               proposed_schedule: Iterable[Any],
                               today: Optional[date] = None) -> ValidationResult:
        return self.working_hours.validate(clinic_id, proposed_schedule, today=today)

    def save_working_hours(self, entity_type: Union[str, EntityKind], entity_id: int,
                           schedule: Iterable[Any],
                           today: Optional[date] = None) -> List[DaySchedule]:
        """校验并保存实体的一周工作时间。

        诊所的时间还必须落在上级综合体的时间之内。

        Raises:
            InvalidScheduleError: 排班结构非法。
            WorkingHoursOutOfBoundsError: 诊所时间超出综合体范围。
        """
        kind = EntityKind.require(entity_type)
        days = ensure_valid_schedule(schedule)
        if kind is EntityKind.CLINIC:
            self.working_hours.ensure_within_parent(entity_id, days, today=today)
        self.db.working_hours.replace_schedule(
            kind.value, entity_id, [day.to_dict() for day in days]
        )
        logger.info(f"Saved {len(days)} working-hours days for {kind.value} {entity_id}")
        return days

    # ================================================================
    # 诊所状态
    # ================================================================

    def change_clinic_status(self, clinic_id: int,
                             status: Union[str, StatusChangeRequest],
                             today: Optional[date] = None,
                             **decision: Any) -> StatusChangeResult:
        """变更诊所状态，decision 可包含 transfer_doctors / transfer_staff /
        keep_personnel / target_clinic_id / reason。"""
        request = status if isinstance(status, StatusChangeRequest) else \
            StatusChangeRequest(status=status, **decision)
        return self.clinic_status.change_status(clinic_id, request, today=today)

    def transfer_staff(self, from_clinic_id: int, options: TransferOptions,
                       today: Optional[date] = None) -> TransferResult:
        return self.clinic_status.transfer_staff(from_clinic_id, options, today=today)
