"""诊所工作时间校验：对照上级综合体的时间，并找出受影响的预约。

每个提议的日期独立做两项结构检查（同一天可以同时触发）：
1. 包含检查：诊所营业时，开门不早于、关门不晚于综合体当天的时间（边界包含）。
2. 上级休息：综合体当天不营业而诊所营业，一律报错。
综合体当天没有记录时不做结构检查。

之后扫描诊所未来的有效预约。预约所在的星期在新时间中不营业（提议未列出
该星期也算不营业）、预约时间落在新的营业时间之外，或落在新的休息时间
之内，即记为冲突。
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from loguru import logger

from config.settings import settings
from database import DatabaseManager
from . import messages
from .errors import (
    ClinicNotFoundError, ClinicNotLinkedError, ParentEntityNotFoundError,
    WorkingHoursOutOfBoundsError
)
from .schedule import DaySchedule, normalize_schedule, parse_time
from .steps import EntityKind, WEEK_DAYS

ScheduleInput = Iterable[Union[DaySchedule, Mapping[str, Any]]]


@dataclass
class ValidationResult:
    """诊所工作时间校验结果

    Attributes:
        is_valid: 没有结构错误
        errors: 按日期的结构错误
        conflicts: {"appointments": [...]} 受新时间影响的预约
        requires_rescheduling: 是否有预约需要改期
        affected_appointments: 受影响的预约数量
    """
    is_valid: bool
    errors: List[Dict[str, Any]] = field(default_factory=list)
    conflicts: Dict[str, List[Dict[str, Any]]] = field(
        default_factory=lambda: {"appointments": []}
    )
    requires_rescheduling: bool = False
    affected_appointments: int = 0


def generate_suggestions(parent_schedule: ScheduleInput,
                         proposed_schedule: ScheduleInput) -> List[Dict[str, Any]]:
    """为提议中的每个营业日给出综合体允许的时间窗口。

    综合体当天不营业时建议设为休息日；综合体当天没有记录时不给建议。
    """
    parent = {day.day_of_week: day for day in normalize_schedule(parent_schedule)}
    suggestions = []
    for day in normalize_schedule(proposed_schedule):
        if not day.is_working_day:
            continue
        parent_day = parent.get(day.day_of_week)
        if parent_day is None:
            continue
        if not parent_day.is_working_day or not parent_day.has_hours:
            suggestions.append({"day": day.day_of_week, "is_working_day": False})
            continue
        suggestions.append({
            "day": day.day_of_week,
            "is_working_day": True,
            "suggested_range": {
                "opening_time": parent_day.opening_time,
                "closing_time": parent_day.closing_time,
            },
        })
    return suggestions


def check_against_parent(parent_schedule: ScheduleInput,
                         proposed_schedule: ScheduleInput) -> List[Dict[str, Any]]:
    """逐日对照上级时间，返回结构错误列表。

    Raises:
        InvalidTimeFormatError: 任一时间格式错误。
    """
    parent = {day.day_of_week: day for day in normalize_schedule(parent_schedule)}
    errors: List[Dict[str, Any]] = []

    for day in normalize_schedule(proposed_schedule):
        day.check_times()
        parent_day = parent.get(day.day_of_week)
        if parent_day is None or not day.is_working_day:
            continue
        parent_day.check_times()

        if not parent_day.is_working_day:
            errors.append({
                "day": day.day_of_week,
                "type": "parent_closed",
                "message": messages.parent_closed_message(day.day_of_week),
                "clinic_hours": day.hours_dict(),
                "complex_hours": parent_day.hours_dict(),
            })

        window = day.window()
        parent_window = parent_day.window()
        if window is None or parent_window is None:
            continue
        if window[0] < parent_window[0] or window[1] > parent_window[1]:
            errors.append({
                "day": day.day_of_week,
                "type": "outside_parent_hours",
                "message": messages.outside_parent_hours_message(
                    parent_day.opening_time, parent_day.closing_time
                ),
                "clinic_hours": day.hours_dict(),
                "complex_hours": parent_day.hours_dict(),
                "suggested_range": {
                    "opening_time": parent_day.opening_time,
                    "closing_time": parent_day.closing_time,
                },
            })

    return errors


def _conflict_reason(day: DaySchedule, minutes: int) -> Optional[Dict[str, str]]:
    if not day.is_working_day:
        return dict(messages.APPOINTMENT_ON_NON_WORKING_DAY)
    window = day.window()
    if window is None:
        return None
    if minutes < window[0] or minutes >= window[1]:
        return dict(messages.APPOINTMENT_OUTSIDE_HOURS)
    break_window = day.break_window()
    if break_window and break_window[0] <= minutes < break_window[1]:
        return dict(messages.APPOINTMENT_DURING_BREAK)
    return None


class WorkingHoursConflictValidator:
    """校验诊所提议的工作时间。"""

    def __init__(self, db: DatabaseManager,
                 active_statuses: Optional[List[str]] = None) -> None:
        self.db = db
        self.active_statuses = active_statuses or list(settings.appointment_active_statuses)

    def validate(self, clinic_id: int, proposed_schedule: ScheduleInput,
                 today: Optional[date] = None) -> ValidationResult:
        """对照综合体时间和已有预约校验诊所的新工作时间。

        Args:
            clinic_id: 诊所ID。
            proposed_schedule: 提议的每日时间。
            today: 预约扫描的起始日期，默认今天。

        Returns:
            ValidationResult。空的提议视为有效。

        Raises:
            ClinicNotFoundError: 诊所不存在。
            ClinicNotLinkedError: 诊所没有上级综合体。
            ParentEntityNotFoundError: 上级综合体已不存在。
            InvalidTimeFormatError: 时间格式错误。
        """
        proposed = normalize_schedule(proposed_schedule)
        today = today or date.today()

        with self.db.transaction() as session:
            clinic = self.db.clinics.get(clinic_id, session=session)
            if clinic is None:
                raise ClinicNotFoundError(details={"clinic_id": clinic_id})
            if clinic.complex_id is None:
                raise ClinicNotLinkedError(details={"clinic_id": clinic_id})
            complex_ = self.db.complexes.get(clinic.complex_id, session=session)
            if complex_ is None:
                raise ParentEntityNotFoundError(details={
                    "entity_type": EntityKind.COMPLEX.value,
                    "entity_id": clinic.complex_id,
                })

            parent = [
                DaySchedule.from_record(record)
                for record in self.db.working_hours.get_schedule(
                    EntityKind.COMPLEX.value, complex_.id, session=session
                )
            ]
            errors = check_against_parent(parent, proposed)

            appointments = self.db.appointments.get_upcoming(
                clinic_id, self.active_statuses, from_date=today, session=session
            )
            conflicts = self._find_conflicts(proposed, appointments)

        if errors:
            logger.warning(
                f"Clinic {clinic_id} working hours rejected on "
                f"{', '.join(error['day'] for error in errors)}"
            )
        logger.debug(
            f"Clinic {clinic_id} working hours check: {len(errors)} errors, "
            f"{len(conflicts)} conflicting appointments"
        )
        return ValidationResult(
            is_valid=not errors,
            errors=errors,
            conflicts={"appointments": conflicts},
            requires_rescheduling=len(conflicts) > 0,
            affected_appointments=len(conflicts),
        )

    def ensure_within_parent(self, clinic_id: int, proposed_schedule: ScheduleInput,
                             today: Optional[date] = None) -> ValidationResult:
        """校验并在存在结构错误时抛出 WorkingHoursOutOfBoundsError。"""
        result = self.validate(clinic_id, proposed_schedule, today=today)
        if not result.is_valid:
            raise WorkingHoursOutOfBoundsError(details={
                "clinic_id": clinic_id, "errors": result.errors
            })
        return result

    @staticmethod
    def _find_conflicts(proposed: List[DaySchedule],
                        appointments: Iterable[Any]) -> List[Dict[str, Any]]:
        by_day = {day.day_of_week: day for day in proposed}
        conflicts = []
        for appointment in appointments:
            weekday = WEEK_DAYS[appointment.appointment_date.weekday()]
            day = by_day.get(weekday)
            if day is None:
                # 提议中缺少的星期视为不营业
                day = DaySchedule(day_of_week=weekday, is_working_day=False)
            minutes = parse_time(appointment.appointment_time, weekday, "appointment_time")
            reason = _conflict_reason(day, minutes)
            if reason is None:
                continue
            conflicts.append({
                "appointment_id": appointment.id,
                "appointment_date": appointment.appointment_date.isoformat(),
                "appointment_time": appointment.appointment_time,
                "day": weekday,
                "doctor_id": appointment.doctor_id,
                "patient_name": appointment.patient_name,
                "reason": reason,
            })
        return conflicts
