"""诊所状态变更与人员转移。

状态：active / inactive / suspended，所有变更由调用方发起。
诊所离开 active 状态前，若仍有在职医生或未来的有效预约，调用方必须
给出处理决定（转移医生、转移员工或保留人员），否则拒绝并返回各项数量
（含在职员工数）。只有员工时不需要决定。重新启用不需要任何决定。
不论是否转移人员，离开 active 时诊所未来的有效预约都会被标记为需要改期。

检查与转移是读后写序列，整个变更在一个可串行化事务中完成。
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Union

from loguru import logger
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from config.settings import settings
from database import DatabaseManager
from database.models import Clinic
from .errors import (
    ClinicNotFoundError, MissingTargetClinicError, TargetClinicNotFoundError,
    TransferRequiredError
)
from .steps import ClinicStatus

RESCHEDULING_REASON = "clinic_deactivated"
TRANSFER_REASON = "staff_transferred"


@dataclass
class TransferOptions:
    """人员转移选项

    Attributes:
        target_clinic_id: 目标诊所ID
        transfer_doctors: 是否转移医生
        transfer_staff: 是否转移员工
        doctor_ids: 只转移这些医生（为空表示全部在职医生）
        staff_ids: 只转移这些员工（为空表示全部在职员工）
    """
    target_clinic_id: Optional[int] = None
    transfer_doctors: bool = True
    transfer_staff: bool = True
    doctor_ids: Optional[List[int]] = None
    staff_ids: Optional[List[int]] = None


@dataclass
class TransferResult:
    """人员转移结果"""
    doctors_transferred: int = 0
    staff_transferred: int = 0
    appointments_affected: int = 0


@dataclass
class StatusChangeRequest:
    """状态变更请求

    Attributes:
        status: 目标状态
        reason: 停用原因
        transfer_doctors: 转移在职医生
        transfer_staff: 转移在职员工
        keep_personnel: 保留人员在原诊所
        target_clinic_id: 转移的目标诊所
    """
    status: Union[str, ClinicStatus]
    reason: Optional[str] = None
    transfer_doctors: bool = False
    transfer_staff: bool = False
    keep_personnel: bool = False
    target_clinic_id: Optional[int] = None

    @property
    def wants_transfer(self) -> bool:
        return self.transfer_doctors or self.transfer_staff

    @property
    def has_decision(self) -> bool:
        return self.wants_transfer or self.keep_personnel


@dataclass
class StatusChangeResult:
    """状态变更结果"""
    clinic_id: int
    previous_status: str
    status: str
    changed: bool = True
    doctors_transferred: int = 0
    staff_transferred: int = 0
    appointments_marked_for_rescheduling: int = 0
    dependencies: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "clinic_id": self.clinic_id,
            "previous_status": self.previous_status,
            "status": self.status,
            "changed": self.changed,
            "doctors_transferred": self.doctors_transferred,
            "staff_transferred": self.staff_transferred,
            "appointments_marked_for_rescheduling": self.appointments_marked_for_rescheduling,
        }


class ClinicStatusTransitionManager:
    """编排诊所状态变更、转移决定和人员批量转移。"""

    def __init__(self, db: DatabaseManager,
                 active_statuses: Optional[List[str]] = None) -> None:
        self.db = db
        self.active_statuses = active_statuses or list(settings.appointment_active_statuses)

    def _get_clinic(self, clinic_id: int, session: Session) -> Clinic:
        clinic = self.db.clinics.get(clinic_id, session=session)
        if clinic is None:
            raise ClinicNotFoundError(details={"clinic_id": clinic_id})
        return clinic

    def _get_target(self, source_id: int, target_id: Optional[int],
                    session: Session) -> Clinic:
        if not target_id:
            raise MissingTargetClinicError(details={"clinic_id": source_id})
        if target_id == source_id:
            raise MissingTargetClinicError(details={
                "clinic_id": source_id, "target_clinic_id": target_id,
                "reason": "same_clinic",
            })
        target = self.db.clinics.get(target_id, session=session)
        if target is None:
            raise TargetClinicNotFoundError(details={"target_clinic_id": target_id})
        return target

    def check_dependencies(self, clinic_id: int, today: Optional[date] = None,
                           session: Optional[Session] = None) -> Dict[str, int]:
        """统计诊所的未来有效预约、在职医生和在职员工数量。"""
        today = today or date.today()

        def _query(sess):
            return {
                "active_appointments": self.db.appointments.count_upcoming(
                    clinic_id, self.active_statuses, from_date=today, session=sess
                ),
                "assigned_doctors": self.db.personnel.count_active(
                    clinic_id, doctors=True, session=sess
                ),
                "assigned_staff": self.db.personnel.count_active(
                    clinic_id, doctors=False, session=sess
                ),
            }

        if session:
            return _query(session)
        with self.db.transaction() as sess:
            return _query(sess)

    def _move_personnel(self, from_clinic_id: int, options: TransferOptions,
                        session: Session, today: date,
                        reason: str) -> TransferResult:
        result = TransferResult()
        if options.transfer_doctors:
            result.doctors_transferred = self.db.personnel.reassign_active(
                from_clinic_id, options.target_clinic_id, doctors=True,
                member_ids=options.doctor_ids, session=session
            )
        if options.transfer_staff:
            result.staff_transferred = self.db.personnel.reassign_active(
                from_clinic_id, options.target_clinic_id, doctors=False,
                member_ids=options.staff_ids, session=session
            )
        result.appointments_affected = self.db.appointments.mark_for_rescheduling(
            from_clinic_id, self.active_statuses, reason,
            from_date=today, session=session
        )
        return result

    def _with_retry(self, operation, retries: Optional[int] = None):
        attempts = max(1, retries if retries is not None else settings.transaction_retries)
        for attempt in range(1, attempts + 1):
            try:
                with self.db.transaction(serializable=True) as session:
                    return operation(session)
            except OperationalError as exc:
                if attempt >= attempts:
                    raise
                logger.warning(
                    f"Serialization conflict on clinic update "
                    f"(attempt {attempt}/{attempts}): {exc}"
                )

    def change_status(self, clinic_id: int, request: StatusChangeRequest,
                      today: Optional[date] = None) -> StatusChangeResult:
        """变更诊所状态。

        Args:
            clinic_id: 诊所ID。
            request: 目标状态与人员处理决定。
            today: 预约统计的起始日期，默认今天。

        Returns:
            StatusChangeResult。目标状态与当前状态相同时不做任何修改。

        Raises:
            ClinicNotFoundError: 诊所不存在。
            TransferRequiredError: 离开 active 时仍有在职医生或未来预约且没有处理决定。
            MissingTargetClinicError: 要求转移但没有指定目标诊所。
            TargetClinicNotFoundError: 目标诊所不存在。
        """
        target_status = ClinicStatus.parse(request.status)
        today = today or date.today()

        def _operation(session: Session) -> StatusChangeResult:
            clinic = self._get_clinic(clinic_id, session)
            current = ClinicStatus.parse(clinic.status or ClinicStatus.ACTIVE.value)
            result = StatusChangeResult(
                clinic_id=clinic_id,
                previous_status=current.value,
                status=target_status.value,
            )
            if current is target_status:
                result.changed = False
                return result

            if current is ClinicStatus.ACTIVE:
                counts = self.check_dependencies(clinic_id, today=today, session=session)
                result.dependencies = counts
                blocking = counts["assigned_doctors"] or counts["active_appointments"]
                if blocking and not request.has_decision:
                    logger.warning(
                        f"Clinic {clinic_id} deactivation needs a transfer decision: {counts}"
                    )
                    raise TransferRequiredError(clinic_id=clinic_id, **counts)

                if request.wants_transfer:
                    self._get_target(clinic_id, request.target_clinic_id, session)
                    moved = self._move_personnel(
                        clinic_id,
                        TransferOptions(
                            target_clinic_id=request.target_clinic_id,
                            transfer_doctors=request.transfer_doctors,
                            transfer_staff=request.transfer_staff,
                        ),
                        session, today, RESCHEDULING_REASON,
                    )
                    result.doctors_transferred = moved.doctors_transferred
                    result.staff_transferred = moved.staff_transferred
                    result.appointments_marked_for_rescheduling = moved.appointments_affected
                else:
                    # 保留人员，但预约仍需改期
                    result.appointments_marked_for_rescheduling = (
                        self.db.appointments.mark_for_rescheduling(
                            clinic_id, self.active_statuses, RESCHEDULING_REASON,
                            from_date=today, session=session
                        )
                    )

            self.db.clinics.update_status(
                clinic_id, target_status.value, reason=request.reason, session=session
            )
            return result

        result = self._with_retry(_operation)
        if result.changed:
            logger.info(
                f"Clinic {clinic_id} status {result.previous_status} -> {result.status} "
                f"(doctors moved: {result.doctors_transferred}, "
                f"staff moved: {result.staff_transferred}, "
                f"appointments flagged: {result.appointments_marked_for_rescheduling})"
            )
        return result

    def transfer_staff(self, from_clinic_id: int, options: TransferOptions,
                       today: Optional[date] = None) -> TransferResult:
        """把在职医生/员工从一个诊所转移到另一个诊所，不改变诊所状态。

        源诊所未来的有效预约会被标记为需要改期。

        Raises:
            ClinicNotFoundError: 源诊所不存在。
            MissingTargetClinicError: 没有指定目标诊所。
            TargetClinicNotFoundError: 目标诊所不存在。
        """
        today = today or date.today()

        def _operation(session: Session) -> TransferResult:
            self._get_clinic(from_clinic_id, session)
            self._get_target(from_clinic_id, options.target_clinic_id, session)
            return self._move_personnel(
                from_clinic_id, options, session, today, TRANSFER_REASON
            )

        result = self._with_retry(_operation)
        logger.info(
            f"Transferred {result.doctors_transferred} doctors and "
            f"{result.staff_transferred} staff from clinic {from_clinic_id} "
            f"to clinic {options.target_clinic_id}"
        )
        return result
