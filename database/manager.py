"""数据库管理器 —— 统一门面（Facade）。

DatabaseManager 是 database 模块的统一入口，组合了所有子仓库：

1. **子仓库访问**：通过 ``db.tenants``、``db.clinics`` 等属性直接访问，
   返回 ORM 对象。
2. **便捷方法**：如 ``count_entities()``，按实体种类分派到对应仓库，
   供业务层的规则引擎使用。
"""
from contextlib import contextmanager
from typing import Optional, Iterator
from sqlalchemy.orm import Session

from .connection import DatabaseConnection
from .entity_repos import (
    SubscriptionRepository, TenantRepository,
    OrganizationRepository, ComplexRepository, ClinicRepository
)
from .business_repos import (
    WorkingHoursRepository, AppointmentRepository, PersonnelRepository
)
from .system_repos import ProgressRepository


class DatabaseManager:
    """数据库管理器 —— 统一门面。

    Attributes:
        conn: 数据库连接管理器。
        subscriptions: 订阅仓库。
        tenants: 租户仓库。
        organizations: 组织仓库。
        complexes: 综合体仓库。
        clinics: 诊所仓库。
        working_hours: 工作时间仓库。
        appointments: 预约仓库。
        personnel: 人员仓库。
        progress: 入驻进度仓库。

    Example::

        db = DatabaseManager("sqlite:///data/onboarding.db")
        db.create_tables()

        subscription = db.subscriptions.create_subscription("company")
        count = db.count_entities(subscription.id, "complex")
    """

    def __init__(self, database_url: Optional[str] = None) -> None:
        """初始化数据库管理器。

        Args:
            database_url: 数据库连接URL。如果为None则使用settings配置。
        """
        # 基础设施层
        self.conn = DatabaseConnection(database_url)

        # 实体仓库
        self.subscriptions = SubscriptionRepository(self.conn)
        self.tenants = TenantRepository(self.conn)
        self.organizations = OrganizationRepository(self.conn)
        self.complexes = ComplexRepository(self.conn)
        self.clinics = ClinicRepository(self.conn)

        # 业务数据仓库
        self.working_hours = WorkingHoursRepository(self.conn)
        self.appointments = AppointmentRepository(self.conn)
        self.personnel = PersonnelRepository(self.conn)

        # 系统数据仓库
        self.progress = ProgressRepository(self.conn)

    # ================================================================
    # 基础设施方法
    # ================================================================

    def create_tables(self) -> None:
        """创建所有数据库表（幂等操作）。"""
        self.conn.create_tables()

    def get_session(self) -> Session:
        """获取数据库会话。"""
        return self.conn.get_session()

    @contextmanager
    def transaction(self, serializable: bool = False) -> Iterator[Session]:
        """开启事务边界，详见 DatabaseConnection.transaction。"""
        with self.conn.transaction(serializable=serializable) as session:
            yield session

    @property
    def database_url(self) -> str:
        """数据库连接URL。"""
        return self.conn.database_url

    @property
    def engine(self):
        """SQLAlchemy 引擎对象。"""
        return self.conn.engine

    def close(self) -> None:
        """关闭数据库连接，释放所有资源。"""
        self.conn.close()

    # ================================================================
    # 便捷查询方法
    # ================================================================

    def hierarchy_repository(self, entity_kind: str):
        """按实体种类获取层级仓库。

        Args:
            entity_kind: organization / complex / clinic。

        Returns:
            对应的仓库，未知种类返回 None。
        """
        return {
            "organization": self.organizations,
            "complex": self.complexes,
            "clinic": self.clinics,
        }.get(entity_kind)

    def count_entities(self, subscription_id: int, entity_kind: str,
                       session: Optional[Session] = None) -> int:
        """统计订阅下某种层级实体的数量（排除软删除）。

        Args:
            subscription_id: 订阅ID。
            entity_kind: organization / complex / clinic。
            session: 外部会话（可选）。

        Returns:
            实体数量。

        Raises:
            ValueError: 未知的实体种类。
        """
        repo = self.hierarchy_repository(entity_kind)
        if repo is None:
            raise ValueError(f"Unknown entity kind: {entity_kind}")
        return repo.count_by_subscription(subscription_id, session=session)
