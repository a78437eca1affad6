"""入驻进度跟踪。

每个租户一条进度记录：当前步骤、已完成步骤集合、已跳过步骤集合。
进度在第一次交互时按套餐的起始步骤创建，完成后归档。

集合不变式：同一步骤不会同时出现在已完成和已跳过中。
完成一个已跳过的步骤会把它移到已完成；跳过一个已完成的步骤不做任何改变。
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Union

from loguru import logger
from sqlalchemy.orm import Session

from database import DatabaseManager
from database.models import OnboardingProgress, Tenant
from .errors import TenantNotFoundError
from .steps import (
    OnboardingStep, PlanType, get_step_flow, initial_step, next_step
)


def infer_plan_type(organization_id: Optional[int] = None,
                    complex_id: Optional[int] = None,
                    clinic_id: Optional[int] = None) -> PlanType:
    """根据已关联的实体推断套餐类型。

    优先级固定为 organization > complex > clinic：同时关联组织和综合体的
    租户属于公司套餐。什么都没有关联时默认为诊所套餐。
    """
    if organization_id:
        return PlanType.COMPANY
    if complex_id:
        return PlanType.COMPLEX
    if clinic_id:
        return PlanType.CLINIC
    return PlanType.CLINIC


def resolve_plan_type(tenant: Tenant) -> PlanType:
    """租户的套餐类型：显式存储的优先，其次订阅上的套餐，最后按关联实体推断。"""
    explicit = PlanType.parse(tenant.plan_type)
    if explicit:
        return explicit
    if tenant.subscription is not None:
        subscribed = PlanType.parse(tenant.subscription.plan_type)
        if subscribed:
            return subscribed
    return infer_plan_type(tenant.organization_id, tenant.complex_id, tenant.clinic_id)


def _ordered(steps: Iterable[OnboardingStep]) -> List[str]:
    step_set = set(steps)
    return [step.value for step in OnboardingStep if step in step_set]


@dataclass
class StepProgress:
    """租户的向导进度

    Attributes:
        tenant_id: 租户ID
        plan_type: 套餐类型
        current_step: 当前步骤
        completed_steps: 已完成步骤集合
        skipped_steps: 已跳过步骤集合
        step_data: 各步骤暂存数据
        onboarding_completed: 是否已归档完成
    """
    tenant_id: int
    plan_type: PlanType
    current_step: OnboardingStep
    completed_steps: Set[OnboardingStep] = field(default_factory=set)
    skipped_steps: Set[OnboardingStep] = field(default_factory=set)
    step_data: Dict[str, Any] = field(default_factory=dict)
    onboarding_completed: bool = False

    @classmethod
    def from_record(cls, plan_type: PlanType,
                    record: OnboardingProgress) -> "StepProgress":
        completed = {OnboardingStep.parse(s) for s in record.completed_steps or []}
        skipped = {OnboardingStep.parse(s) for s in record.skipped_steps or []}
        return cls(
            tenant_id=record.tenant_id,
            plan_type=plan_type,
            current_step=OnboardingStep.parse(record.current_step),
            completed_steps=completed,
            skipped_steps=skipped - completed,
            step_data=dict(record.step_data or {}),
            onboarding_completed=bool(record.onboarding_completed),
        )

    def is_satisfied(self, step: OnboardingStep) -> bool:
        """步骤已完成或已跳过。"""
        return step in self.completed_steps or step in self.skipped_steps

    def complete(self, step: OnboardingStep) -> None:
        self.skipped_steps.discard(step)
        self.completed_steps.add(step)

    def skip(self, step: OnboardingStep) -> None:
        if step not in self.completed_steps:
            self.skipped_steps.add(step)

    @property
    def total_steps(self) -> int:
        return len(get_step_flow(self.plan_type))

    @property
    def current_step_number(self) -> int:
        """当前步骤在流程中的序号（从1开始），终止步骤返回总步数。"""
        flow = get_step_flow(self.plan_type)
        if self.current_step in flow:
            return flow.index(self.current_step) + 1
        return len(flow)

    @property
    def percent_complete(self) -> int:
        flow = get_step_flow(self.plan_type)
        done = sum(1 for step in flow if self.is_satisfied(step))
        return round(done * 100 / len(flow))

    def to_dict(self) -> Dict[str, Any]:
        """转换为可序列化的字典。"""
        return {
            "tenant_id": self.tenant_id,
            "plan_type": self.plan_type.value,
            "current_step": self.current_step.value,
            "completed_steps": _ordered(self.completed_steps),
            "skipped_steps": _ordered(self.skipped_steps),
            "total_steps": self.total_steps,
            "current_step_number": self.current_step_number,
            "percent_complete": self.percent_complete,
            "onboarding_completed": self.onboarding_completed,
        }


class ProgressTracker:
    """读写租户的入驻进度。

    所有写操作都在一个事务内完成"读取、修改、保存"。传入外部会话时
    在该会话中执行，由调用方负责提交。
    """

    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    def _load_tenant(self, tenant_id: int, session: Session) -> Tenant:
        tenant = self.db.tenants.get(tenant_id, session=session)
        if tenant is None:
            raise TenantNotFoundError(details={"tenant_id": tenant_id})
        return tenant

    def plan_type_of(self, tenant_id: int,
                     session: Optional[Session] = None) -> PlanType:
        """获取租户的套餐类型。

        Raises:
            TenantNotFoundError: 租户不存在。
        """
        if session:
            return resolve_plan_type(self._load_tenant(tenant_id, session))
        with self.db.transaction() as sess:
            return resolve_plan_type(self._load_tenant(tenant_id, sess))

    def _apply(self, tenant_id: int,
               change: Optional[Callable[[StepProgress], None]],
               session: Optional[Session] = None) -> StepProgress:
        def _do(sess):
            tenant = self._load_tenant(tenant_id, sess)
            plan_type = resolve_plan_type(tenant)
            record = self.db.progress.get_or_create(
                tenant_id, initial_step(plan_type).value, session=sess
            )
            progress = StepProgress.from_record(plan_type, record)
            if change is None:
                return progress
            change(progress)
            self.db.progress.save(
                tenant_id,
                current_step=progress.current_step.value,
                completed_steps=_ordered(progress.completed_steps),
                skipped_steps=_ordered(progress.skipped_steps),
                step_data=progress.step_data,
                session=sess,
            )
            return progress

        if session:
            return _do(session)
        with self.db.transaction() as sess:
            return _do(sess)

    def get_progress(self, tenant_id: int,
                     session: Optional[Session] = None) -> StepProgress:
        """获取租户的进度，首次访问时按套餐起始步骤创建。

        Raises:
            TenantNotFoundError: 租户不存在。
        """
        return self._apply(tenant_id, None, session=session)

    def update_progress(self, tenant_id: int,
                        step: Union[str, OnboardingStep],
                        step_data: Optional[Dict[str, Any]] = None,
                        session: Optional[Session] = None) -> StepProgress:
        """设置当前步骤，不改变已完成/已跳过集合。

        Args:
            tenant_id: 租户ID。
            step: 新的当前步骤。
            step_data: 该步骤的暂存数据（可选）。
            session: 外部会话（可选）。
        """
        step = OnboardingStep.parse(step)

        def _change(progress: StepProgress) -> None:
            progress.current_step = step
            if step_data is not None:
                progress.step_data[step.value] = step_data

        progress = self._apply(tenant_id, _change, session=session)
        logger.info(f"Tenant {tenant_id} moved to step {step.value}")
        return progress

    def mark_step_complete(self, tenant_id: int,
                           step: Union[str, OnboardingStep],
                           session: Optional[Session] = None) -> StepProgress:
        """把步骤加入已完成集合（幂等）。"""
        step = OnboardingStep.parse(step)
        progress = self._apply(
            tenant_id, lambda p: p.complete(step), session=session
        )
        logger.info(f"Tenant {tenant_id} completed step {step.value}")
        return progress

    def mark_step_skipped(self, tenant_id: int,
                          step: Union[str, OnboardingStep],
                          session: Optional[Session] = None) -> StepProgress:
        """把步骤加入已跳过集合（幂等），已完成的步骤保持不变。"""
        step = OnboardingStep.parse(step)
        progress = self._apply(
            tenant_id, lambda p: p.skip(step), session=session
        )
        logger.info(f"Tenant {tenant_id} skipped step {step.value}")
        return progress

    def mark_steps_skipped(self, tenant_id: int,
                           steps: Iterable[Union[str, OnboardingStep]],
                           current_step: Optional[Union[str, OnboardingStep]] = None,
                           session: Optional[Session] = None) -> StepProgress:
        """批量跳过步骤并可选地设置当前步骤，整体作为一次写入。"""
        parsed = [OnboardingStep.parse(step) for step in steps]
        target = OnboardingStep.parse(current_step) if current_step is not None else None

        def _change(progress: StepProgress) -> None:
            for step in parsed:
                progress.skip(step)
            if target is not None:
                progress.current_step = target

        progress = self._apply(tenant_id, _change, session=session)
        logger.info(
            f"Tenant {tenant_id} skipped {len(parsed)} steps: "
            f"{', '.join(step.value for step in parsed)}"
        )
        return progress

    def complete_and_advance(self, tenant_id: int,
                             step: Union[str, OnboardingStep],
                             session: Optional[Session] = None) -> StepProgress:
        """完成步骤并把当前步骤移到流程中的下一步。"""
        step = OnboardingStep.parse(step)

        def _change(progress: StepProgress) -> None:
            progress.complete(step)
            progress.current_step = next_step(progress.plan_type, step)

        progress = self._apply(tenant_id, _change, session=session)
        logger.info(
            f"Tenant {tenant_id} completed {step.value}, next: {progress.current_step.value}"
        )
        return progress

    def archive_progress(self, tenant_id: int,
                         session: Optional[Session] = None) -> StepProgress:
        """归档进度：标记入驻完成，当前步骤移到 completed。记录不删除。"""
        def _do(sess):
            progress = self._apply(tenant_id, None, session=sess)
            self.db.progress.archive(
                tenant_id, OnboardingStep.COMPLETED.value, session=sess
            )
            progress.current_step = OnboardingStep.COMPLETED
            progress.onboarding_completed = True
            return progress

        if session:
            progress = _do(session)
        else:
            with self.db.transaction() as sess:
                progress = _do(sess)
        logger.info(f"Onboarding archived for tenant {tenant_id}")
        return progress
