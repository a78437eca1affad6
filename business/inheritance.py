"""工作时间继承。

子实体可以把上级实体的工作时间作为可编辑的起点：
- 诊所套餐且指定了综合体：诊所继承综合体的工作时间
- 综合体套餐：综合体继承本订阅下组织的工作时间
公司套餐的组织是根节点，没有可继承的上级。
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from database import DatabaseManager
from . import messages
from .errors import ParentEntityNotFoundError, WorkingHoursNotFoundError
from .schedule import DaySchedule
from .steps import EntityKind, PlanType


@dataclass
class InheritanceResult:
    """工作时间继承结果

    Attributes:
        working_hours: 上级实体的每日工作时间（day / start_time / end_time / is_active / 休息时间）
        source: 来源实体 {"entity_type", "entity_id", "entity_name"}
        can_modify: 继承的时间是否可修改，始终为 True
        message: 双语提示
    """
    working_hours: List[Dict[str, Any]]
    source: Dict[str, Any]
    can_modify: bool = True
    message: Dict[str, str] = field(default_factory=dict)


def can_inherit_working_hours(plan_type: Union[str, PlanType, None],
                              parent_id: Optional[int] = None) -> bool:
    """判断能否继承上级工作时间。"""
    plan = PlanType.parse(plan_type)
    if plan is PlanType.CLINIC and parent_id:
        return True
    if plan is PlanType.COMPLEX:
        return True
    return False


class WorkingHoursInheritanceResolver:
    """查找上级实体并返回其工作时间。"""

    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    def get_inherited_working_hours(self, subscription_id: int,
                                    plan_type: Union[str, PlanType],
                                    parent_id: Optional[int] = None
                                    ) -> InheritanceResult:
        """获取可继承的上级工作时间。

        Args:
            subscription_id: 订阅ID。
            plan_type: 子实体的套餐类型。
            parent_id: 上级实体ID。诊所套餐时为综合体ID（必填）；
                综合体套餐时为组织ID（可选，缺省按订阅查找组织）。

        Returns:
            InheritanceResult。

        Raises:
            WorkingHoursNotFoundError: 该套餐没有可继承的上级，或上级没有工作时间。
            ParentEntityNotFoundError: 上级实体不存在或不属于该订阅。
        """
        plan = PlanType.parse(plan_type)
        if not can_inherit_working_hours(plan, parent_id):
            raise WorkingHoursNotFoundError(details={
                "plan_type": plan.value if plan else plan_type,
                "reason": "no_parent_entity",
            })

        with self.db.transaction() as session:
            if plan is PlanType.CLINIC:
                parent_kind = EntityKind.COMPLEX
                parent = self.db.complexes.get(parent_id, session=session)
            elif parent_id:
                parent_kind = EntityKind.ORGANIZATION
                parent = self.db.organizations.get(parent_id, session=session)
            else:
                parent_kind = EntityKind.ORGANIZATION
                parent = self.db.organizations.get_by_subscription(
                    subscription_id, session=session
                )

            if parent is None or parent.subscription_id != subscription_id:
                raise ParentEntityNotFoundError(details={
                    "entity_type": parent_kind.value,
                    "entity_id": parent_id,
                    "subscription_id": subscription_id,
                })

            records = self.db.working_hours.get_schedule(
                parent_kind.value, parent.id, session=session
            )
            if not records:
                logger.warning(
                    f"No working hours found for {parent_kind.value} {parent.id}"
                )
                raise WorkingHoursNotFoundError(details={
                    "entity_type": parent_kind.value,
                    "entity_id": parent.id,
                })

            working_hours = [
                DaySchedule.from_record(record).to_inherited_dict()
                for record in records
            ]
            source = {
                "entity_type": parent_kind.value,
                "entity_id": parent.id,
                "entity_name": parent.name,
            }

        logger.info(
            f"Working hours inherited from {parent_kind.value} {source['entity_id']} "
            f"for subscription {subscription_id}"
        )
        return InheritanceResult(
            working_hours=working_hours,
            source=source,
            can_modify=True,
            message=messages.inherited_hours_message(
                parent_kind.value, source["entity_name"]
            ),
        )
