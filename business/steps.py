"""入驻流程的固定词汇表：套餐类型、实体种类、步骤、诊所状态与星期。

步骤是封闭的枚举，外部传入的字符串统一经过 ``parse`` 转换，
非法取值在入口处即被拒绝。
"""
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from .errors import InvalidPlanTypeError, InvalidStepError, ValidationFailedError


class PlanType(Enum):
    """订阅套餐类型"""
    COMPANY = "company"
    COMPLEX = "complex"
    CLINIC = "clinic"

    @classmethod
    def parse(cls, value: Union[str, "PlanType", None]) -> Optional["PlanType"]:
        """大小写不敏感地解析套餐类型，无法识别返回 None。"""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None

    @classmethod
    def require(cls, value: Union[str, "PlanType", None]) -> "PlanType":
        """解析套餐类型，无法识别时抛出 InvalidPlanTypeError。"""
        plan_type = cls.parse(value)
        if plan_type is None:
            raise InvalidPlanTypeError(details={"plan_type": value})
        return plan_type


class EntityKind(Enum):
    """层级实体种类"""
    ORGANIZATION = "organization"
    COMPLEX = "complex"
    CLINIC = "clinic"
    DEPARTMENT = "department"

    @classmethod
    def require(cls, value: Union[str, "EntityKind"]) -> "EntityKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationFailedError(details={"entity_kind": value})


class OnboardingStep(Enum):
    """入驻向导步骤"""
    ORGANIZATION_OVERVIEW = "organization-overview"
    ORGANIZATION_CONTACT = "organization-contact"
    ORGANIZATION_LEGAL = "organization-legal"
    COMPLEX_OVERVIEW = "complex-overview"
    COMPLEX_CONTACT = "complex-contact"
    COMPLEX_LEGAL = "complex-legal"
    COMPLEX_SCHEDULE = "complex-schedule"
    CLINIC_OVERVIEW = "clinic-overview"
    CLINIC_CONTACT = "clinic-contact"
    CLINIC_SERVICES = "clinic-services"
    CLINIC_LEGAL = "clinic-legal"
    CLINIC_SCHEDULE = "clinic-schedule"
    COMPLETED = "completed"
    DASHBOARD = "dashboard"

    @classmethod
    def parse(cls, value: Union[str, "OnboardingStep"]) -> "OnboardingStep":
        """解析步骤标识，非法标识抛出 InvalidStepError。"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidStepError(details={"step": value})

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STEPS


class ClinicStatus(Enum):
    """诊所状态"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"

    @classmethod
    def parse(cls, value: Union[str, "ClinicStatus"]) -> "ClinicStatus":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationFailedError(details={"status": value})


TERMINAL_STEPS = frozenset({OnboardingStep.COMPLETED, OnboardingStep.DASHBOARD})

ORGANIZATION_STEPS: Tuple[OnboardingStep, ...] = (
    OnboardingStep.ORGANIZATION_OVERVIEW,
    OnboardingStep.ORGANIZATION_CONTACT,
    OnboardingStep.ORGANIZATION_LEGAL,
)

COMPLEX_STEPS: Tuple[OnboardingStep, ...] = (
    OnboardingStep.COMPLEX_OVERVIEW,
    OnboardingStep.COMPLEX_CONTACT,
    OnboardingStep.COMPLEX_LEGAL,
    OnboardingStep.COMPLEX_SCHEDULE,
)

CLINIC_STEPS: Tuple[OnboardingStep, ...] = (
    OnboardingStep.CLINIC_OVERVIEW,
    OnboardingStep.CLINIC_CONTACT,
    OnboardingStep.CLINIC_SERVICES,
    OnboardingStep.CLINIC_LEGAL,
    OnboardingStep.CLINIC_SCHEDULE,
)

# 各套餐的向导顺序（不含终止步骤）
STEP_FLOWS: Dict[PlanType, Tuple[OnboardingStep, ...]] = {
    PlanType.COMPANY: ORGANIZATION_STEPS + COMPLEX_STEPS + CLINIC_STEPS,
    PlanType.COMPLEX: COMPLEX_STEPS + CLINIC_STEPS,
    PlanType.CLINIC: CLINIC_STEPS,
}

INITIAL_STEPS: Dict[PlanType, OnboardingStep] = {
    plan_type: flow[0] for plan_type, flow in STEP_FLOWS.items()
}

WEEK_DAYS: Tuple[str, ...] = (
    "monday", "tuesday", "wednesday", "thursday",
    "friday", "saturday", "sunday",
)


def get_step_flow(plan_type: Union[str, PlanType]) -> Tuple[OnboardingStep, ...]:
    """获取套餐的向导步骤顺序。"""
    return STEP_FLOWS[PlanType.require(plan_type)]


def initial_step(plan_type: Union[str, PlanType]) -> OnboardingStep:
    """获取套餐的起始步骤。"""
    return INITIAL_STEPS[PlanType.require(plan_type)]


def next_step(plan_type: Union[str, PlanType],
              step: Union[str, OnboardingStep]) -> OnboardingStep:
    """获取向导中紧随 step 之后的步骤。

    流程最后一步及不属于该套餐流程的步骤之后都是 ``completed``，
    终止步骤原样返回。
    """
    step = OnboardingStep.parse(step)
    if step.is_terminal:
        return step
    flow = get_step_flow(plan_type)
    if step not in flow:
        return OnboardingStep.COMPLETED
    index = flow.index(step)
    if index + 1 < len(flow):
        return flow[index + 1]
    return OnboardingStep.COMPLETED
