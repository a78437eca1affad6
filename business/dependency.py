"""步骤依赖校验。

依赖表按套餐区分：
- 所有套餐：各级的子步骤依赖本级的 overview 步骤。
- 公司与综合体套餐：诊所 overview 依赖综合体 overview，诊所排班依赖综合体排班。
- 公司套餐：综合体 overview 依赖组织 overview。

依赖只看直接前置步骤，不做传递展开。前置步骤已完成或已跳过都视为满足。
不在依赖表中的步骤总是可以进入。
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from loguru import logger
from sqlalchemy.orm import Session

from . import messages
from .progress import ProgressTracker
from .steps import OnboardingStep, PlanType

S = OnboardingStep

_OWN_LEVEL: Dict[OnboardingStep, Tuple[OnboardingStep, ...]] = {
    S.ORGANIZATION_CONTACT: (S.ORGANIZATION_OVERVIEW,),
    S.ORGANIZATION_LEGAL: (S.ORGANIZATION_OVERVIEW,),
    S.COMPLEX_CONTACT: (S.COMPLEX_OVERVIEW,),
    S.COMPLEX_LEGAL: (S.COMPLEX_OVERVIEW,),
    S.COMPLEX_SCHEDULE: (S.COMPLEX_OVERVIEW,),
    S.CLINIC_CONTACT: (S.CLINIC_OVERVIEW,),
    S.CLINIC_SERVICES: (S.CLINIC_OVERVIEW,),
    S.CLINIC_LEGAL: (S.CLINIC_OVERVIEW,),
    S.CLINIC_SCHEDULE: (S.CLINIC_OVERVIEW,),
}

_UNDER_COMPLEX: Dict[OnboardingStep, Tuple[OnboardingStep, ...]] = {
    S.CLINIC_OVERVIEW: (S.COMPLEX_OVERVIEW,),
    S.CLINIC_SCHEDULE: (S.COMPLEX_SCHEDULE,),
}

_UNDER_ORGANIZATION: Dict[OnboardingStep, Tuple[OnboardingStep, ...]] = {
    S.COMPLEX_OVERVIEW: (S.ORGANIZATION_OVERVIEW,),
}


def _merge(*tables: Dict[OnboardingStep, Tuple[OnboardingStep, ...]]
           ) -> Dict[OnboardingStep, Tuple[OnboardingStep, ...]]:
    merged: Dict[OnboardingStep, Tuple[OnboardingStep, ...]] = {}
    for table in tables:
        for step, required in table.items():
            merged[step] = merged.get(step, ()) + required
    return merged


STEP_DEPENDENCIES: Dict[PlanType, Dict[OnboardingStep, Tuple[OnboardingStep, ...]]] = {
    PlanType.COMPANY: _merge(_OWN_LEVEL, _UNDER_COMPLEX, _UNDER_ORGANIZATION),
    PlanType.COMPLEX: _merge(_OWN_LEVEL, _UNDER_COMPLEX),
    PlanType.CLINIC: _merge(_OWN_LEVEL),
}


def get_step_dependencies(plan_type: Union[str, PlanType],
                          step: Union[str, OnboardingStep]) -> Tuple[OnboardingStep, ...]:
    """套餐下某步骤的直接前置步骤，没有依赖时返回空元组。"""
    return STEP_DEPENDENCIES[PlanType.require(plan_type)].get(OnboardingStep.parse(step), ())


@dataclass
class DependencyResult:
    """步骤依赖校验结果

    Attributes:
        can_proceed: 是否可以进入该步骤
        requested_step: 请求的步骤
        missing_steps: 尚未完成也未跳过的前置步骤
        message: 不能进入时的双语提示
    """
    can_proceed: bool
    requested_step: str
    missing_steps: List[str] = field(default_factory=list)
    message: Optional[Dict[str, str]] = None


class DependencyValidator:
    """根据租户进度判断能否进入某一步骤。"""

    def __init__(self, tracker: ProgressTracker) -> None:
        self.tracker = tracker

    def validate_step_dependency(self, tenant_id: int,
                                 requested_step: Union[str, OnboardingStep],
                                 session: Optional[Session] = None
                                 ) -> DependencyResult:
        """校验租户能否进入 requested_step。

        Raises:
            InvalidStepError: 步骤标识非法。
            TenantNotFoundError: 租户不存在，无法加载进度。
        """
        step = OnboardingStep.parse(requested_step)
        progress = self.tracker.get_progress(tenant_id, session=session)
        required = STEP_DEPENDENCIES[progress.plan_type].get(step, ())
        missing = [dep.value for dep in required if not progress.is_satisfied(dep)]

        if missing:
            logger.warning(
                f"Tenant {tenant_id} cannot enter {step.value}, missing: {missing}"
            )
            return DependencyResult(
                can_proceed=False,
                requested_step=step.value,
                missing_steps=missing,
                message=dict(messages.STEP_DEPENDENCY_NOT_MET["message"]),
            )
        return DependencyResult(can_proceed=True, requested_step=step.value)
