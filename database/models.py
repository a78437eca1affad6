"""SQLAlchemy ORM 模型定义。

本模块定义了入驻（onboarding）流程涉及的所有数据库表，包括：
- 订阅、租户及其入驻进度
- 三级机构层级：组织（organization）→ 综合体（complex）→ 诊所（clinic）
- 工作时间、预约、人员等只读/外部数据
"""
from typing import Dict, Any, List, Optional
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, Date, DateTime,
    ForeignKey, JSON, UniqueConstraint
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import relationship
from datetime import datetime, date

# SQLAlchemy declarative base，所有模型都继承自此类
# 设置 __allow_unmapped__ = True 以兼容 SQLAlchemy 2.0 的类型注解要求
Base = declarative_base()

Base.__allow_unmapped__ = True


class Subscription(Base):
    """订阅表模型。

    标识一个租户的订阅及其套餐类型，签发后不可变。

    Attributes:
        id: 主键，自增整数。
        plan_type: 套餐类型，可选值：company / complex / clinic。
        is_active: 是否有效，布尔值，默认True。
        created_at: 创建时间，自动设置为当前UTC时间。
    """
    __tablename__ = "subscriptions"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    plan_type: str = Column(String(20), nullable=False)  # company / complex / clinic
    is_active: bool = Column(Boolean, default=True)
    created_at: datetime = Column(DateTime, default=datetime.utcnow)

    tenants: List["Tenant"] = relationship("Tenant", back_populates="subscription")


class Tenant(Base):
    """租户表模型。

    正在进行入驻流程的订阅持有者。套餐类型可显式存储，
    也可根据关联的组织/综合体/诊所推断。

    Attributes:
        id: 主键，自增整数。
        name: 名称，必填，最大长度100字符。
        subscription_id: 订阅ID，外键关联subscriptions表。
        plan_type: 显式存储的套餐类型，可选。
        organization_id: 已创建的组织ID，可选。
        complex_id: 已创建的综合体ID，可选。
        clinic_id: 已创建的诊所ID，可选。
        created_at: 创建时间，自动设置为当前UTC时间。
    """
    __tablename__ = "tenants"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    name: str = Column(String(100), nullable=False)
    subscription_id: Optional[int] = Column(Integer, ForeignKey("subscriptions.id"))
    plan_type: Optional[str] = Column(String(20))
    organization_id: Optional[int] = Column(Integer, ForeignKey("organizations.id"))
    complex_id: Optional[int] = Column(Integer, ForeignKey("complexes.id"))
    clinic_id: Optional[int] = Column(Integer, ForeignKey("clinics.id"))
    created_at: datetime = Column(DateTime, default=datetime.utcnow)

    subscription: Optional["Subscription"] = relationship("Subscription", back_populates="tenants")
    progress: Optional["OnboardingProgress"] = relationship(
        "OnboardingProgress", back_populates="tenant", uselist=False
    )


class OnboardingProgress(Base):
    """入驻进度表模型。

    每个租户一条记录，首次进入入驻流程时创建，完成后归档（不删除）。
    completed_steps 与 skipped_steps 以 JSON 数组存储，读取后在业务层转为集合。

    Attributes:
        id: 主键，自增整数。
        tenant_id: 租户ID，外键关联tenants表，唯一。
        current_step: 当前步骤标识。
        completed_steps: 已完成步骤列表。
        skipped_steps: 已跳过步骤列表。
        step_data: 各步骤的暂存数据。
        onboarding_completed: 是否已完成入驻。
        archived_at: 归档时间，可选。
        created_at: 创建时间。
        updated_at: 更新时间，更新时自动刷新。
    """
    __tablename__ = "onboarding_progress"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id: int = Column(Integer, ForeignKey("tenants.id"), nullable=False, unique=True)
    current_step: str = Column(String(50), nullable=False)
    completed_steps: List[str] = Column(JSON, default=list)
    skipped_steps: List[str] = Column(JSON, default=list)
    step_data: Dict[str, Any] = Column(JSON, default=dict)
    onboarding_completed: bool = Column(Boolean, default=False)
    archived_at: Optional[datetime] = Column(DateTime)
    created_at: datetime = Column(DateTime, default=datetime.utcnow)
    updated_at: datetime = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    tenant: "Tenant" = relationship("Tenant", back_populates="progress")


class Organization(Base):
    """组织（公司）表模型，层级的根节点。

    Attributes:
        id: 主键，自增整数。
        subscription_id: 所属订阅ID。
        name: 名称，必填。
        deleted_at: 软删除时间，非空表示已删除。
        created_at: 创建时间。
    """
    __tablename__ = "organizations"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    subscription_id: int = Column(Integer, ForeignKey("subscriptions.id"), nullable=False)
    name: str = Column(String(100), nullable=False)
    deleted_at: Optional[datetime] = Column(DateTime)
    created_at: datetime = Column(DateTime, default=datetime.utcnow)

    complexes: List["Complex"] = relationship("Complex", back_populates="organization")


class Complex(Base):
    """综合体表模型，可选地隶属于一个组织。

    Attributes:
        id: 主键，自增整数。
        subscription_id: 所属订阅ID。
        organization_id: 上级组织ID，可选。
        name: 名称，必填。
        deleted_at: 软删除时间。
        created_at: 创建时间。
    """
    __tablename__ = "complexes"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    subscription_id: int = Column(Integer, ForeignKey("subscriptions.id"), nullable=False)
    organization_id: Optional[int] = Column(Integer, ForeignKey("organizations.id"))
    name: str = Column(String(100), nullable=False)
    deleted_at: Optional[datetime] = Column(DateTime)
    created_at: datetime = Column(DateTime, default=datetime.utcnow)

    organization: Optional["Organization"] = relationship("Organization", back_populates="complexes")
    clinics: List["Clinic"] = relationship("Clinic", back_populates="complex")


class Clinic(Base):
    """诊所表模型，最多隶属于一个综合体。

    Attributes:
        id: 主键，自增整数。
        subscription_id: 所属订阅ID。
        complex_id: 上级综合体ID，可选。
        name: 名称，必填。
        status: 状态，可选值：active / inactive / suspended，默认active。
        is_active: 兼容字段，与 status 保持一致。
        deactivated_at: 停用时间，可选。
        deactivation_reason: 停用原因，可选。
        deleted_at: 软删除时间。
        created_at: 创建时间。
    """
    __tablename__ = "clinics"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    subscription_id: int = Column(Integer, ForeignKey("subscriptions.id"), nullable=False)
    complex_id: Optional[int] = Column(Integer, ForeignKey("complexes.id"))
    name: str = Column(String(100), nullable=False)
    status: str = Column(String(20), default="active")  # active / inactive / suspended
    is_active: bool = Column(Boolean, default=True)
    deactivated_at: Optional[datetime] = Column(DateTime)
    deactivation_reason: Optional[str] = Column(Text)
    deleted_at: Optional[datetime] = Column(DateTime)
    created_at: datetime = Column(DateTime, default=datetime.utcnow)

    complex: Optional["Complex"] = relationship("Complex", back_populates="clinics")


class WorkingHours(Base):
    """工作时间表模型。

    以 (entity_type, entity_id, day_of_week) 为键，每个实体每天一条记录。
    时间统一以 ``HH:MM`` 字符串存储，比较时解析为当天分钟数。

    Attributes:
        id: 主键，自增整数。
        entity_type: 实体类型：organization / complex / clinic。
        entity_id: 实体ID。
        day_of_week: 星期，小写英文（monday ... sunday）。
        is_working_day: 是否营业。
        opening_time: 开门时间，非营业日为空。
        closing_time: 关门时间，非营业日为空。
        break_start_time: 休息开始时间，可选。
        break_end_time: 休息结束时间，可选。
        is_active: 是否有效，默认True。

    Table Args:
        UniqueConstraint: (entity_type, entity_id, day_of_week)唯一约束。
    """
    __tablename__ = "working_hours"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    entity_type: str = Column(String(20), nullable=False)
    entity_id: int = Column(Integer, nullable=False)
    day_of_week: str = Column(String(10), nullable=False)
    is_working_day: bool = Column(Boolean, default=True)
    opening_time: Optional[str] = Column(String(5))
    closing_time: Optional[str] = Column(String(5))
    break_start_time: Optional[str] = Column(String(5))
    break_end_time: Optional[str] = Column(String(5))
    is_active: bool = Column(Boolean, default=True)

    __table_args__ = (
        UniqueConstraint('entity_type', 'entity_id', 'day_of_week',
                         name='uq_working_hours_day'),
    )


class Appointment(Base):
    """预约表模型（外部数据，本系统只读，仅标记是否需要改期）。

    Attributes:
        id: 主键，自增整数。
        clinic_id: 诊所ID。
        doctor_id: 医生ID，可选。
        patient_name: 患者姓名，可选。
        appointment_date: 预约日期。
        appointment_time: 预约时间，``HH:MM``。
        status: 状态：scheduled / confirmed / cancelled / completed 等。
        requires_rescheduling: 是否需要改期。
        rescheduling_reason: 改期原因，可选。
        marked_for_rescheduling_at: 标记改期的时间，可选。
        deleted_at: 软删除时间。
    """
    __tablename__ = "appointments"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    clinic_id: int = Column(Integer, ForeignKey("clinics.id"), nullable=False)
    doctor_id: Optional[int] = Column(Integer, ForeignKey("personnel.id"))
    patient_name: Optional[str] = Column(String(100))
    appointment_date: date = Column(Date, nullable=False)
    appointment_time: str = Column(String(5), nullable=False)
    status: str = Column(String(20), default="scheduled")
    requires_rescheduling: bool = Column(Boolean, default=False)
    rescheduling_reason: Optional[str] = Column(Text)
    marked_for_rescheduling_at: Optional[datetime] = Column(DateTime)
    deleted_at: Optional[datetime] = Column(DateTime)


class Personnel(Base):
    """人员表模型（医生与其他员工）。

    Attributes:
        id: 主键，自增整数。
        name: 姓名，必填。
        role: 角色：doctor / nurse / receptionist 等，默认staff。
        clinic_id: 当前所属诊所ID，可选。
        is_active: 是否在职，默认True。
    """
    __tablename__ = "personnel"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    name: str = Column(String(100), nullable=False)
    role: str = Column(String(30), default="staff")
    clinic_id: Optional[int] = Column(Integer, ForeignKey("clinics.id"))
    is_active: bool = Column(Boolean, default=True)
