"""跳过逻辑。

只有公司套餐可以跳过综合体。跳过综合体会级联跳过诊所步骤：
公司套餐下跳过综合体之后不存在可以挂靠的诊所。
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple, Union

from loguru import logger

from . import messages
from .errors import (
    SkipNotAllowedError, SubscriptionNotFoundError, TenantNotFoundError
)
from .progress import ProgressTracker, StepProgress, resolve_plan_type
from .steps import OnboardingStep, PlanType

# 可级联跳过的步骤组
SKIP_CASCADES: Dict[OnboardingStep, Tuple[OnboardingStep, ...]] = {
    OnboardingStep.COMPLEX_OVERVIEW: (
        OnboardingStep.COMPLEX_OVERVIEW,
        OnboardingStep.COMPLEX_CONTACT,
        OnboardingStep.COMPLEX_SCHEDULE,
        OnboardingStep.CLINIC_OVERVIEW,
        OnboardingStep.CLINIC_CONTACT,
        OnboardingStep.CLINIC_SCHEDULE,
    ),
}


def can_skip_complex(plan_type: Union[str, PlanType, None]) -> bool:
    """只有公司套餐可以跳过综合体（大小写不敏感）。"""
    return PlanType.parse(plan_type) is PlanType.COMPANY


def get_skipped_steps(step: Union[str, OnboardingStep]) -> List[str]:
    """跳过 step 时实际被跳过的步骤。

    complex-overview 级联为六个步骤；其他输入原样返回单元素列表。
    """
    token = step.value if isinstance(step, OnboardingStep) else step
    for trigger, cascade in SKIP_CASCADES.items():
        if token == trigger.value:
            return [s.value for s in cascade]
    return [token]


@dataclass
class SkipResult:
    """跳过综合体的结果

    Attributes:
        skipped_steps: 被跳过的步骤（按顺序）
        current_step: 跳过后的当前步骤
        progress: 跳过后的完整进度
        message: 双语成功提示
    """
    skipped_steps: List[str]
    current_step: str
    progress: StepProgress
    message: Dict[str, str] = field(
        default_factory=lambda: dict(messages.SKIP_COMPLEX_SUCCESS)
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "skipped_steps": list(self.skipped_steps),
            "current_step": self.current_step,
            "progress": self.progress.to_dict(),
            "message": self.message,
        }


class SkipLogicResolver:
    """把"跳过综合体"展开为一组步骤并一次性写入进度。"""

    def __init__(self, tracker: ProgressTracker) -> None:
        self.tracker = tracker
        self.db = tracker.db

    def skip_complex_step(self, tenant_id: int, subscription_id: int) -> SkipResult:
        """为公司套餐租户跳过综合体及其诊所步骤，并把当前步骤移到 dashboard。

        所有步骤在同一个事务中写入，其他读取者看不到部分跳过的状态。

        Raises:
            TenantNotFoundError: 租户不存在。
            SubscriptionNotFoundError: 订阅不存在或不属于该租户。
            SkipNotAllowedError: 租户不是公司套餐。
        """
        steps = get_skipped_steps(OnboardingStep.COMPLEX_OVERVIEW)

        with self.db.transaction() as session:
            tenant = self.db.tenants.get(tenant_id, session=session)
            if tenant is None:
                raise TenantNotFoundError(details={"tenant_id": tenant_id})
            subscription = self.db.subscriptions.get(subscription_id, session=session)
            if subscription is None or tenant.subscription_id != subscription_id:
                raise SubscriptionNotFoundError(details={
                    "tenant_id": tenant_id, "subscription_id": subscription_id
                })

            plan_type = resolve_plan_type(tenant)
            if not can_skip_complex(plan_type):
                logger.warning(
                    f"Tenant {tenant_id} on {plan_type.value} plan tried to skip complex"
                )
                raise SkipNotAllowedError(details={
                    "tenant_id": tenant_id, "plan_type": plan_type.value
                })

            progress = self.tracker.mark_steps_skipped(
                tenant_id, steps,
                current_step=OnboardingStep.DASHBOARD,
                session=session,
            )

        logger.info(f"Tenant {tenant_id} skipped complex setup")
        return SkipResult(
            skipped_steps=steps,
            current_step=progress.current_step.value,
            progress=progress,
        )
