"""系统数据仓库 —— 入驻进度的数据访问层。

每个租户一条入驻进度记录：首次进入入驻流程时创建，
流程结束后归档（记录完成时间），从不删除。
"""
from datetime import datetime
from typing import Optional, List, Dict, Any
from sqlalchemy.orm import Session
from loguru import logger

from .base_crud import BaseCRUD
from .connection import DatabaseConnection
from .models import OnboardingProgress


class ProgressRepository(BaseCRUD):
    """入驻进度 仓库。

    completed_steps / skipped_steps 以 JSON 列表存储。写入时整体替换列表，
    保证 SQLAlchemy 能检测到 JSON 列的变化。
    """

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    def get_by_tenant(self, tenant_id: int,
                      session: Optional[Session] = None
                      ) -> Optional[OnboardingProgress]:
        """获取租户的入驻进度，不存在返回 None。"""
        def _query(sess):
            return sess.query(OnboardingProgress).filter(
                OnboardingProgress.tenant_id == tenant_id
            ).first()

        if session:
            return _query(session)

        with self._get_session() as sess:
            return _query(sess)

    def get_or_create(self, tenant_id: int, initial_step: str,
                      session: Optional[Session] = None
                      ) -> OnboardingProgress:
        """获取或创建租户的入驻进度。

        Args:
            tenant_id: 租户ID。
            initial_step: 新建进度时的起始步骤。
            session: 外部会话（可选）。

        Returns:
            已存在或新建的 OnboardingProgress 对象。
        """
        def _do(sess):
            progress = self.get_by_tenant(tenant_id, session=sess)
            if progress:
                return progress, False
            progress = OnboardingProgress(
                tenant_id=tenant_id,
                current_step=initial_step,
                completed_steps=[],
                skipped_steps=[],
                step_data={}
            )
            sess.add(progress)
            sess.flush()
            return progress, True

        if session:
            progress, created = _do(session)
        else:
            with self._get_session() as sess:
                progress, created = _do(sess)
                sess.commit()

        if created:
            logger.debug(f"Created onboarding progress for tenant {tenant_id} at {initial_step}")
        return progress

    def save(self, tenant_id: int, current_step: str,
             completed_steps: List[str], skipped_steps: List[str],
             step_data: Optional[Dict[str, Any]] = None,
             session: Optional[Session] = None
             ) -> Optional[OnboardingProgress]:
        """整体保存租户的入驻进度。

        Args:
            tenant_id: 租户ID。
            current_step: 当前步骤。
            completed_steps: 已完成步骤列表。
            skipped_steps: 已跳过步骤列表。
            step_data: 步骤暂存数据（可选，None 表示不修改）。
            session: 外部会话（可选）。

        Returns:
            更新后的 OnboardingProgress 对象，进度不存在返回 None。
        """
        def _do(sess):
            progress = sess.query(OnboardingProgress).filter(
                OnboardingProgress.tenant_id == tenant_id
            ).first()
            if progress is None:
                return None
            progress.current_step = current_step
            progress.completed_steps = list(completed_steps)
            progress.skipped_steps = list(skipped_steps)
            if step_data is not None:
                progress.step_data = dict(step_data)
            sess.flush()
            return progress

        if session:
            return _do(session)

        with self._get_session() as sess:
            progress = _do(sess)
            sess.commit()
            return progress

    def archive(self, tenant_id: int, final_step: str,
                session: Optional[Session] = None
                ) -> Optional[OnboardingProgress]:
        """归档租户的入驻进度（标记完成，不删除）。

        Returns:
            归档后的 OnboardingProgress 对象，进度不存在返回 None。
        """
        def _do(sess):
            progress = sess.query(OnboardingProgress).filter(
                OnboardingProgress.tenant_id == tenant_id
            ).first()
            if progress is None:
                return None
            progress.current_step = final_step
            progress.onboarding_completed = True
            if progress.archived_at is None:
                progress.archived_at = datetime.utcnow()
            sess.flush()
            return progress

        if session:
            return _do(session)

        with self._get_session() as sess:
            progress = _do(sess)
            sess.commit()
            return progress
