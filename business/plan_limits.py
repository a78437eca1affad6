"""套餐限额检查。

"先计数再创建"是一个读后写序列，单独调用 validate_plan_limit 并不能
防止并发请求同时通过检查。需要真正创建实体时使用 create_within_limit，
它在同一个可串行化事务内完成计数、复核与创建，并在序列化冲突时重试。
"""
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, TypeVar, Union

from loguru import logger
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from config.settings import settings
from database import DatabaseManager
from . import messages
from .errors import LimitExceededError, ValidationFailedError
from .hierarchy_policy import max_allowed
from .steps import EntityKind, PlanType

T = TypeVar("T")

_LIMIT_MESSAGES = {
    EntityKind.ORGANIZATION: messages.PLAN_LIMIT_COMPANY,
    EntityKind.COMPLEX: messages.PLAN_LIMIT_COMPLEX,
    EntityKind.CLINIC: messages.PLAN_LIMIT_CLINIC,
}


@dataclass
class LimitResult:
    """套餐限额检查结果

    Attributes:
        can_create: 是否还能创建
        current_count: 当前数量（不含软删除）
        max_allowed: 上限，None 表示不限
        plan_type: 套餐类型
        entity_kind: 实体种类
        code: 超限时的错误码
        message: 超限时的双语消息
    """
    can_create: bool
    current_count: int
    max_allowed: Optional[int]
    plan_type: str
    entity_kind: str
    code: Optional[str] = None
    message: Optional[Dict[str, str]] = field(default=None)


class PlanLimitEnforcer:
    """根据订阅下已有实体数量判断能否再创建。

    Args:
        db: 数据库管理器，提供按订阅计数的能力。
    """

    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    def validate_plan_limit(self, subscription_id: int,
                            entity_kind: Union[str, EntityKind],
                            plan_type: Union[str, PlanType],
                            session: Optional[Session] = None) -> LimitResult:
        """检查订阅能否再创建一个 entity_kind 实体。

        Args:
            subscription_id: 订阅ID。
            entity_kind: organization / complex / clinic。
            plan_type: 套餐类型（大小写不敏感）。
            session: 外部会话（可选），在事务内复核时传入。

        Returns:
            LimitResult。超限时附带该实体种类的双语消息。

        Raises:
            InvalidPlanTypeError: 套餐类型无法识别。
            ValidationFailedError: 实体种类不受套餐限额约束（如 department）。
        """
        plan = PlanType.require(plan_type)
        kind = EntityKind.require(entity_kind)
        if kind not in _LIMIT_MESSAGES:
            raise ValidationFailedError(details={"entity_kind": kind.value})
        limit = max_allowed(plan, kind)
        current = self.db.count_entities(subscription_id, kind.value, session=session)

        can_create = limit is None or current < limit
        result = LimitResult(
            can_create=can_create,
            current_count=current,
            max_allowed=limit,
            plan_type=plan.value,
            entity_kind=kind.value,
        )
        if not can_create:
            limit_message = _LIMIT_MESSAGES[kind]
            result.code = limit_message["code"]
            result.message = dict(limit_message["message"])

        logger.debug(
            f"Plan limit check: subscription={subscription_id} kind={kind.value} "
            f"plan={plan.value} count={current} max={limit} -> {can_create}"
        )
        return result

    def can_create_entity(self, subscription_id: int,
                          entity_kind: Union[str, EntityKind],
                          plan_type: Union[str, PlanType]) -> bool:
        """validate_plan_limit 的布尔简写。"""
        return self.validate_plan_limit(subscription_id, entity_kind, plan_type).can_create

    def ensure_can_create(self, subscription_id: int,
                          entity_kind: Union[str, EntityKind],
                          plan_type: Union[str, PlanType],
                          session: Optional[Session] = None) -> LimitResult:
        """检查限额，超限时抛出 LimitExceededError。"""
        result = self.validate_plan_limit(
            subscription_id, entity_kind, plan_type, session=session
        )
        if not result.can_create:
            logger.warning(
                f"Plan limit reached for subscription {subscription_id}: "
                f"{result.entity_kind} {result.current_count}/{result.max_allowed}"
            )
            raise LimitExceededError(result)
        return result

    def create_within_limit(self, subscription_id: int,
                            entity_kind: Union[str, EntityKind],
                            plan_type: Union[str, PlanType],
                            create_fn: Callable[[Session], T],
                            retries: Optional[int] = None) -> T:
        """在可串行化事务中完成"计数、复核、创建"。

        Args:
            subscription_id: 订阅ID。
            entity_kind: 要创建的实体种类。
            plan_type: 套餐类型。
            create_fn: 在事务会话中执行创建的回调，返回值原样返回。
            retries: 序列化冲突时的最大尝试次数，默认取 settings.transaction_retries。

        Returns:
            create_fn 的返回值。

        Raises:
            LimitExceededError: 复核时发现已达上限。
            OperationalError: 重试次数用尽后仍发生数据库冲突。
        """
        attempts = max(1, retries if retries is not None else settings.transaction_retries)
        for attempt in range(1, attempts + 1):
            try:
                with self.db.transaction(serializable=True) as session:
                    self.ensure_can_create(
                        subscription_id, entity_kind, plan_type, session=session
                    )
                    created = create_fn(session)
                logger.info(
                    f"Created {EntityKind.require(entity_kind).value} "
                    f"for subscription {subscription_id}"
                )
                return created
            except OperationalError as exc:
                if attempt >= attempts:
                    raise
                logger.warning(
                    f"Serialization conflict creating {entity_kind} "
                    f"(attempt {attempt}/{attempts}): {exc}"
                )
