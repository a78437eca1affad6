"""实体仓库 —— 订阅、租户与三级机构层级的数据访问层。

管理系统中的基础实体（订阅、租户、组织、综合体、诊所）。
组织、综合体、诊所采用软删除（``deleted_at``），所有计数均排除已删除记录，
供套餐限额检查使用。

每个仓库继承 BaseCRUD 获得通用能力，并添加领域特定的查询方法。
"""
from datetime import datetime
from typing import Optional, List, Type
from sqlalchemy import func
from sqlalchemy.orm import Session

from .base_crud import BaseCRUD
from .connection import DatabaseConnection
from .models import (
    Subscription, Tenant, Organization, Complex, Clinic
)


class SubscriptionRepository(BaseCRUD):
    """订阅 仓库。"""

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    def get(self, subscription_id: int,
            session: Optional[Session] = None) -> Optional[Subscription]:
        """按ID获取订阅，不存在返回 None。"""
        return self.get_by_id(Subscription, subscription_id, session=session)

    def create_subscription(self, plan_type: str,
                            session: Optional[Session] = None) -> Subscription:
        """创建订阅。

        Args:
            plan_type: 套餐类型（company / complex / clinic），统一存为小写。
            session: 外部会话（可选）。

        Returns:
            新建的 Subscription 对象。
        """
        return self.create(
            Subscription(plan_type=plan_type.lower()), session=session
        )


class TenantRepository(BaseCRUD):
    """租户 仓库。"""

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    def get(self, tenant_id: int,
            session: Optional[Session] = None) -> Optional[Tenant]:
        """按ID获取租户，不存在返回 None。"""
        return self.get_by_id(Tenant, tenant_id, session=session)

    def create_tenant(self, name: str, subscription_id: Optional[int] = None,
                      plan_type: Optional[str] = None,
                      session: Optional[Session] = None) -> Tenant:
        """创建租户。

        Args:
            name: 租户名称。
            subscription_id: 订阅ID（可选）。
            plan_type: 显式套餐类型（可选），为空时由关联实体推断。
            session: 外部会话（可选）。

        Returns:
            新建的 Tenant 对象。
        """
        return self.create(
            Tenant(name=name, subscription_id=subscription_id,
                   plan_type=plan_type.lower() if plan_type else None),
            session=session
        )

    def link_entities(self, tenant_id: int,
                      organization_id: Optional[int] = None,
                      complex_id: Optional[int] = None,
                      clinic_id: Optional[int] = None,
                      session: Optional[Session] = None) -> Optional[Tenant]:
        """记录租户已创建的层级实体，只更新传入的字段。

        Returns:
            更新后的 Tenant 对象，租户不存在返回 None。
        """
        values = {
            key: value for key, value in (
                ("organization_id", organization_id),
                ("complex_id", complex_id),
                ("clinic_id", clinic_id),
            ) if value is not None
        }
        return self.update_by_id(Tenant, tenant_id, session=session, **values)


class _HierarchyRepository(BaseCRUD):
    """组织/综合体/诊所仓库的公共部分：软删除与按订阅计数。"""

    model: Type = None

    def get(self, entity_id: int, session: Optional[Session] = None):
        """按ID获取未删除的实体，不存在或已软删除返回 None。"""
        record = self.get_by_id(self.model, entity_id, session=session)
        if record is None or record.deleted_at is not None:
            return None
        return record

    def count_by_subscription(self, subscription_id: int,
                              session: Optional[Session] = None) -> int:
        """统计订阅下未软删除的实体数量。

        Args:
            subscription_id: 订阅ID。
            session: 外部会话（可选）。在可串行化事务中计数时必须传入。

        Returns:
            实体数量。
        """
        def _query(sess):
            return sess.query(func.count(self.model.id)).filter(
                self.model.subscription_id == subscription_id,
                self.model.deleted_at.is_(None)
            ).scalar() or 0

        if session:
            return _query(session)

        with self._get_session() as sess:
            return _query(sess)

    def list_by_subscription(self, subscription_id: int,
                             session: Optional[Session] = None) -> List:
        """列出订阅下未软删除的实体。"""
        def _query(sess):
            return sess.query(self.model).filter(
                self.model.subscription_id == subscription_id,
                self.model.deleted_at.is_(None)
            ).order_by(self.model.id).all()

        if session:
            return _query(session)

        with self._get_session() as sess:
            return _query(sess)

    def soft_delete(self, entity_id: int,
                    session: Optional[Session] = None):
        """软删除实体（设置 deleted_at）。

        Returns:
            更新后的实体对象，不存在返回 None。
        """
        return self.update_by_id(
            self.model, entity_id, session=session,
            deleted_at=datetime.utcnow()
        )


class OrganizationRepository(_HierarchyRepository):
    """组织 仓库。"""

    model = Organization

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    def create_organization(self, subscription_id: int, name: str,
                            session: Optional[Session] = None) -> Organization:
        """创建组织。"""
        return self.create(
            Organization(subscription_id=subscription_id, name=name),
            session=session
        )

    def get_by_subscription(self, subscription_id: int,
                            session: Optional[Session] = None
                            ) -> Optional[Organization]:
        """获取订阅下的组织（公司套餐最多一个），不存在返回 None。"""
        organizations = self.list_by_subscription(subscription_id, session=session)
        return organizations[0] if organizations else None


class ComplexRepository(_HierarchyRepository):
    """综合体 仓库。"""

    model = Complex

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    def create_complex(self, subscription_id: int, name: str,
                       organization_id: Optional[int] = None,
                       session: Optional[Session] = None) -> Complex:
        """创建综合体。"""
        return self.create(
            Complex(subscription_id=subscription_id, name=name,
                    organization_id=organization_id),
            session=session
        )


class ClinicRepository(_HierarchyRepository):
    """诊所 仓库。"""

    model = Clinic

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    def create_clinic(self, subscription_id: int, name: str,
                      complex_id: Optional[int] = None,
                      status: str = "active",
                      session: Optional[Session] = None) -> Clinic:
        """创建诊所。"""
        return self.create(
            Clinic(subscription_id=subscription_id, name=name,
                   complex_id=complex_id, status=status,
                   is_active=status == "active"),
            session=session
        )

    def update_status(self, clinic_id: int, status: str,
                      reason: Optional[str] = None,
                      session: Optional[Session] = None) -> Optional[Clinic]:
        """更新诊所状态。

        停用（inactive / suspended）时记录停用时间与原因，
        重新启用时清空这两个字段。

        Returns:
            更新后的 Clinic 对象，不存在返回 None。
        """
        if status == "active":
            return self.update_by_id(
                Clinic, clinic_id, session=session, status=status,
                is_active=True, deactivated_at=None, deactivation_reason=None
            )
        return self.update_by_id(
            Clinic, clinic_id, session=session, status=status,
            is_active=False, deactivated_at=datetime.utcnow(),
            deactivation_reason=reason
        )
