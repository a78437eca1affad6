"""业务数据仓库 —— 工作时间、预约与人员的数据访问层。

这些数据由其他模块拥有，入驻规则引擎只做以下操作：
- 读取/替换实体的每周工作时间
- 查询诊所未来的有效预约，并标记"需要改期"
- 统计并批量转移诊所的在职医生与员工
"""
from datetime import date, datetime
from typing import Optional, List, Dict, Any, Iterable
from sqlalchemy.orm import Session
from loguru import logger

from .base_crud import BaseCRUD
from .connection import DatabaseConnection
from .models import WorkingHours, Appointment, Personnel

# 与 business.steps.WEEK_DAYS 顺序一致；数据层不反向依赖业务层
_DAY_ORDER = (
    "monday", "tuesday", "wednesday", "thursday",
    "friday", "saturday", "sunday",
)

DOCTOR_ROLE = "doctor"
# 不计入"员工"的角色
NON_STAFF_ROLES = (DOCTOR_ROLE, "patient")


def _day_index(day: str) -> int:
    day = (day or "").lower()
    return _DAY_ORDER.index(day) if day in _DAY_ORDER else len(_DAY_ORDER)


class WorkingHoursRepository(BaseCRUD):
    """工作时间 仓库。

    以 (entity_type, entity_id) 为单位读写一周的工作时间。
    """

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    def get_schedule(self, entity_type: str, entity_id: int,
                     session: Optional[Session] = None) -> List[WorkingHours]:
        """获取实体的有效工作时间，按星期一到星期日排序。

        Args:
            entity_type: 实体类型（organization / complex / clinic）。
            entity_id: 实体ID。
            session: 外部会话（可选）。

        Returns:
            WorkingHours 列表，无记录时为空列表。
        """
        def _query(sess):
            rows = sess.query(WorkingHours).filter(
                WorkingHours.entity_type == entity_type,
                WorkingHours.entity_id == entity_id,
                WorkingHours.is_active.is_(True)
            ).all()
            return sorted(rows, key=lambda row: _day_index(row.day_of_week))

        if session:
            return _query(session)

        with self._get_session() as sess:
            return _query(sess)

    def replace_schedule(self, entity_type: str, entity_id: int,
                         days: Iterable[Dict[str, Any]],
                         session: Optional[Session] = None
                         ) -> List[WorkingHours]:
        """用新的一周安排替换实体的全部工作时间。

        Args:
            entity_type: 实体类型。
            entity_id: 实体ID。
            days: 每天的安排，支持以下键：
                - day_of_week: 星期（必填）
                - is_working_day: 是否营业（默认True）
                - opening_time / closing_time: 营业时间（营业日必填）
                - break_start_time / break_end_time: 休息时间（可选）
            session: 外部会话（可选）。

        Returns:
            新写入的 WorkingHours 列表。
        """
        def _do(sess):
            sess.query(WorkingHours).filter(
                WorkingHours.entity_type == entity_type,
                WorkingHours.entity_id == entity_id
            ).delete(synchronize_session=False)

            rows = []
            for day in days:
                is_working_day = day.get("is_working_day", True)
                rows.append(WorkingHours(
                    entity_type=entity_type,
                    entity_id=entity_id,
                    day_of_week=day["day_of_week"].lower(),
                    is_working_day=is_working_day,
                    opening_time=day.get("opening_time") if is_working_day else None,
                    closing_time=day.get("closing_time") if is_working_day else None,
                    break_start_time=day.get("break_start_time") if is_working_day else None,
                    break_end_time=day.get("break_end_time") if is_working_day else None,
                ))
            sess.add_all(rows)
            sess.flush()
            return sorted(rows, key=lambda row: _day_index(row.day_of_week))

        if session:
            return _do(session)

        with self._get_session() as sess:
            rows = _do(sess)
            sess.commit()
            logger.debug(
                f"Replaced {len(rows)} working-hours rows for {entity_type} {entity_id}"
            )
            return rows


class AppointmentRepository(BaseCRUD):
    """预约 仓库。

    只读访问，唯一的写操作是标记"需要改期"。
    """

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    def create_appointment(self, clinic_id: int, appointment_date: date,
                           appointment_time: str, status: str = "scheduled",
                           doctor_id: Optional[int] = None,
                           patient_name: Optional[str] = None,
                           session: Optional[Session] = None) -> Appointment:
        """创建预约记录（用于数据准备与测试）。"""
        return self.create(
            Appointment(clinic_id=clinic_id, appointment_date=appointment_date,
                        appointment_time=appointment_time, status=status,
                        doctor_id=doctor_id, patient_name=patient_name),
            session=session
        )

    @staticmethod
    def _upcoming_query(sess: Session, clinic_id: int,
                        statuses: Iterable[str], from_date: date):
        return sess.query(Appointment).filter(
            Appointment.clinic_id == clinic_id,
            Appointment.status.in_(list(statuses)),
            Appointment.appointment_date >= from_date,
            Appointment.deleted_at.is_(None)
        )

    def get_upcoming(self, clinic_id: int, statuses: Iterable[str],
                     from_date: Optional[date] = None,
                     session: Optional[Session] = None) -> List[Appointment]:
        """获取诊所从指定日期起的有效预约。

        Args:
            clinic_id: 诊所ID。
            statuses: 视为有效的预约状态。
            from_date: 起始日期（含），默认今天。
            session: 外部会话（可选）。

        Returns:
            预约列表，按日期和时间排序。
        """
        from_date = from_date or date.today()

        def _query(sess):
            return self._upcoming_query(sess, clinic_id, statuses, from_date).order_by(
                Appointment.appointment_date, Appointment.appointment_time
            ).all()

        if session:
            return _query(session)

        with self._get_session() as sess:
            return _query(sess)

    def count_upcoming(self, clinic_id: int, statuses: Iterable[str],
                       from_date: Optional[date] = None,
                       session: Optional[Session] = None) -> int:
        """统计诊所从指定日期起的有效预约数量。"""
        from_date = from_date or date.today()

        def _query(sess):
            return self._upcoming_query(sess, clinic_id, statuses, from_date).count()

        if session:
            return _query(session)

        with self._get_session() as sess:
            return _query(sess)

    def mark_for_rescheduling(self, clinic_id: int, statuses: Iterable[str],
                              reason: str,
                              from_date: Optional[date] = None,
                              session: Optional[Session] = None) -> int:
        """将诊所未来的有效预约标记为"需要改期"（不自动改期）。

        Args:
            clinic_id: 诊所ID。
            statuses: 视为有效的预约状态。
            reason: 改期原因。
            from_date: 起始日期（含），默认今天。
            session: 外部会话（可选）。

        Returns:
            被标记的预约数量。
        """
        from_date = from_date or date.today()

        def _do(sess):
            appointments = self._upcoming_query(
                sess, clinic_id, statuses, from_date
            ).all()
            marked_at = datetime.utcnow()
            for appointment in appointments:
                appointment.requires_rescheduling = True
                appointment.rescheduling_reason = reason
                appointment.marked_for_rescheduling_at = marked_at
            sess.flush()
            return len(appointments)

        if session:
            return _do(session)

        with self._get_session() as sess:
            marked = _do(sess)
            sess.commit()
            return marked


class PersonnelRepository(BaseCRUD):
    """人员 仓库。

    医生按 role == "doctor" 识别，其余非患者角色视为员工。
    只有在职（is_active）人员参与统计与转移。
    """

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    def create_member(self, name: str, role: str = "staff",
                      clinic_id: Optional[int] = None,
                      is_active: bool = True,
                      session: Optional[Session] = None) -> Personnel:
        """创建人员记录。"""
        return self.create(
            Personnel(name=name, role=role, clinic_id=clinic_id,
                      is_active=is_active),
            session=session
        )

    @staticmethod
    def _active_query(sess: Session, clinic_id: int, doctors: bool,
                      member_ids: Optional[List[int]] = None):
        query = sess.query(Personnel).filter(
            Personnel.clinic_id == clinic_id,
            Personnel.is_active.is_(True)
        )
        if doctors:
            query = query.filter(Personnel.role == DOCTOR_ROLE)
        else:
            query = query.filter(Personnel.role.notin_(NON_STAFF_ROLES))
        if member_ids:
            query = query.filter(Personnel.id.in_(member_ids))
        return query

    def list_active(self, clinic_id: int, doctors: bool,
                    session: Optional[Session] = None) -> List[Personnel]:
        """列出诊所的在职医生（doctors=True）或员工（doctors=False）。"""
        def _query(sess):
            return self._active_query(sess, clinic_id, doctors).order_by(
                Personnel.id
            ).all()

        if session:
            return _query(session)

        with self._get_session() as sess:
            return _query(sess)

    def count_active(self, clinic_id: int, doctors: bool,
                     session: Optional[Session] = None) -> int:
        """统计诊所的在职医生或员工数量。"""
        def _query(sess):
            return self._active_query(sess, clinic_id, doctors).count()

        if session:
            return _query(session)

        with self._get_session() as sess:
            return _query(sess)

    def reassign_active(self, from_clinic_id: int, to_clinic_id: int,
                        doctors: bool,
                        member_ids: Optional[List[int]] = None,
                        session: Optional[Session] = None) -> int:
        """把在职医生或员工从一个诊所批量转移到另一个诊所。

        离职人员保持不变。

        Args:
            from_clinic_id: 源诊所ID。
            to_clinic_id: 目标诊所ID。
            doctors: True 转移医生，False 转移员工。
            member_ids: 仅转移指定ID的人员（可选，默认全部）。
            session: 外部会话（可选）。

        Returns:
            实际转移的人数。
        """
        def _do(sess):
            members = self._active_query(
                sess, from_clinic_id, doctors, member_ids
            ).all()
            for member in members:
                member.clinic_id = to_clinic_id
            sess.flush()
            return len(members)

        if session:
            return _do(session)

        with self._get_session() as sess:
            moved = _do(sess)
            sess.commit()
            return moved
