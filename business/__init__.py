"""入驻规则引擎。

对外入口是 OnboardingEngine；各规则组件也可以单独使用。
"""
from .engine import OnboardingEngine
from .errors import OnboardingError
from .steps import ClinicStatus, EntityKind, OnboardingStep, PlanType

__all__ = [
    "OnboardingEngine",
    "OnboardingError",
    "ClinicStatus",
    "EntityKind",
    "OnboardingStep",
    "PlanType",
]
