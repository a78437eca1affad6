"""初始化数据库"""
import argparse
import sys
import os
from pathlib import Path

# 添加项目根目录到路径
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import DatabaseManager
from config.settings import settings
from loguru import logger

# 示例数据：一周工作时间（周五、周六休息）
DEMO_WEEK = [
    {"day_of_week": day, "is_working_day": True,
     "opening_time": "08:00", "closing_time": "22:00",
     "break_start_time": "13:00", "break_end_time": "14:00"}
    for day in ("sunday", "monday", "tuesday", "wednesday", "thursday")
] + [
    {"day_of_week": "friday", "is_working_day": False},
    {"day_of_week": "saturday", "is_working_day": False},
]


def seed_demo(db: DatabaseManager) -> None:
    """插入一个公司套餐的示例租户：组织、综合体及其工作时间。"""
    subscription = db.subscriptions.create_subscription("company")
    tenant = db.tenants.create_tenant("Demo Medical Group", subscription_id=subscription.id)
    organization = db.organizations.create_organization(subscription.id, "Demo Medical Group")
    complex_ = db.complexes.create_complex(
        subscription.id, "Demo Complex", organization_id=organization.id
    )
    db.tenants.link_entities(
        tenant.id, organization_id=organization.id, complex_id=complex_.id
    )
    db.working_hours.replace_schedule("organization", organization.id, DEMO_WEEK)
    db.working_hours.replace_schedule("complex", complex_.id, DEMO_WEEK)
    logger.info(
        f"Created demo tenant {tenant.id} (subscription {subscription.id}, "
        f"organization {organization.id}, complex {complex_.id})"
    )


def init_database(with_demo: bool = False):
    """初始化数据库和示例数据"""
    logger.info("Initializing database...")

    # 创建数据库管理器
    db = DatabaseManager()

    if db.conn.is_sqlite:
        db_path = db.database_url.replace("sqlite:///", "", 1)
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    # 创建所有表
    logger.info(f"Creating tables at {db.database_url}...")
    db.create_tables()

    if with_demo:
        logger.info("Inserting demo data...")
        seed_demo(db)

    db.close()
    logger.info("Database initialization completed!")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create onboarding tables")
    parser.add_argument("--demo", action="store_true", help="insert a demo company tenant")
    args = parser.parse_args()

    logger.remove()
    logger.add(
        sys.stdout,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level=settings.log_level,
    )
    init_database(with_demo=args.demo)
