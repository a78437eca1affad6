"""工作时间的值类型与结构校验。

时间统一以 ``HH:MM`` 字符串传入，比较前解析为当天的分钟数。
格式错误的时间一律抛出 InvalidTimeFormatError，不会被当作"不满足"静默处理。
"""
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .errors import InvalidScheduleError, InvalidTimeFormatError
from .steps import WEEK_DAYS

TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")


def parse_time(value: str, day: Optional[str] = None,
               field_name: Optional[str] = None) -> int:
    """把 ``HH:MM`` 解析为当天的分钟数。

    Raises:
        InvalidTimeFormatError: 格式不合法。
    """
    if not isinstance(value, str) or not TIME_PATTERN.match(value.strip()):
        details = {"value": value}
        if day:
            details["day"] = day
        if field_name:
            details["field"] = field_name
        raise InvalidTimeFormatError(details=details)
    hours, minutes = value.strip().split(":")
    return int(hours) * 60 + int(minutes)


def format_time(minutes: int) -> str:
    """把当天的分钟数格式化为 ``HH:MM``。"""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def _blank_to_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


@dataclass
class DaySchedule:
    """某一天的工作时间

    Attributes:
        day_of_week: 星期，小写英文
        is_working_day: 是否营业
        opening_time: 开门时间
        closing_time: 关门时间
        break_start_time: 休息开始时间
        break_end_time: 休息结束时间
    """
    day_of_week: str
    is_working_day: bool = True
    opening_time: Optional[str] = None
    closing_time: Optional[str] = None
    break_start_time: Optional[str] = None
    break_end_time: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Union["DaySchedule", Mapping[str, Any]]) -> "DaySchedule":
        """从字典构造，同时接受存储字段名和继承结果的字段名
        （day / start_time / end_time / is_active）。"""
        if isinstance(data, DaySchedule):
            return data
        day = _first(data, "day_of_week", "day")
        working = _first(data, "is_working_day", "is_active")
        return cls(
            day_of_week=str(day or "").strip().lower(),
            is_working_day=True if working is None else bool(working),
            opening_time=_blank_to_none(_first(data, "opening_time", "start_time")),
            closing_time=_blank_to_none(_first(data, "closing_time", "end_time")),
            break_start_time=_blank_to_none(data.get("break_start_time")),
            break_end_time=_blank_to_none(data.get("break_end_time")),
        )

    @classmethod
    def from_record(cls, record: Any) -> "DaySchedule":
        """从 WorkingHours ORM 对象构造。"""
        return cls(
            day_of_week=record.day_of_week,
            is_working_day=record.is_working_day is not False,
            opening_time=_blank_to_none(record.opening_time),
            closing_time=_blank_to_none(record.closing_time),
            break_start_time=_blank_to_none(record.break_start_time),
            break_end_time=_blank_to_none(record.break_end_time),
        )

    @property
    def has_hours(self) -> bool:
        return self.opening_time is not None and self.closing_time is not None

    @property
    def has_break(self) -> bool:
        return self.break_start_time is not None and self.break_end_time is not None

    def window(self) -> Optional[tuple]:
        """营业时间的 (开门, 关门) 分钟数，没有营业时间返回 None。"""
        if not self.has_hours:
            return None
        return (
            parse_time(self.opening_time, self.day_of_week, "opening_time"),
            parse_time(self.closing_time, self.day_of_week, "closing_time"),
        )

    def break_window(self) -> Optional[tuple]:
        if not self.has_break:
            return None
        return (
            parse_time(self.break_start_time, self.day_of_week, "break_start_time"),
            parse_time(self.break_end_time, self.day_of_week, "break_end_time"),
        )

    def check_times(self) -> None:
        """解析所有已填写的时间，格式错误时抛出 InvalidTimeFormatError。"""
        for name in ("opening_time", "closing_time", "break_start_time", "break_end_time"):
            value = getattr(self, name)
            if value is not None:
                parse_time(value, self.day_of_week, name)

    def hours_dict(self) -> Dict[str, Any]:
        return {
            "is_working_day": self.is_working_day,
            "opening_time": self.opening_time,
            "closing_time": self.closing_time,
        }

    def to_dict(self) -> Dict[str, Any]:
        """存储字段名的字典，可直接交给 WorkingHoursRepository.replace_schedule。"""
        return {
            "day_of_week": self.day_of_week,
            "is_working_day": self.is_working_day,
            "opening_time": self.opening_time,
            "closing_time": self.closing_time,
            "break_start_time": self.break_start_time,
            "break_end_time": self.break_end_time,
        }

    def to_inherited_dict(self) -> Dict[str, Any]:
        """继承结果使用的字段名。"""
        return {
            "day": self.day_of_week,
            "start_time": self.opening_time or "",
            "end_time": self.closing_time or "",
            "is_active": self.is_working_day,
            "break_start_time": self.break_start_time,
            "break_end_time": self.break_end_time,
        }


def normalize_schedule(days: Iterable[Union[DaySchedule, Mapping[str, Any]]]
                       ) -> List[DaySchedule]:
    return [DaySchedule.from_dict(day) for day in days]


def validate_schedule_structure(days: Iterable[Union[DaySchedule, Mapping[str, Any]]]
                                ) -> List[Dict[str, Any]]:
    """检查一周排班的内部一致性。

    规则：星期名合法且不重复；营业日必须填写开门和关门时间；
    时间格式为 ``HH:MM``；开门早于关门；休息时间成对出现、
    开始早于结束并落在营业时间之内。

    Returns:
        问题列表，每项包含 day、field、reason。没有问题时为空列表。
    """
    errors: List[Dict[str, Any]] = []
    seen = set()

    def _error(day: str, field_name: Optional[str], reason: str) -> None:
        errors.append({"day": day, "field": field_name, "reason": reason})

    for day in normalize_schedule(days):
        name = day.day_of_week
        if name not in WEEK_DAYS:
            _error(name, "day_of_week", "invalid_day")
            continue
        if name in seen:
            _error(name, "day_of_week", "duplicate_day")
            continue
        seen.add(name)

        if not day.is_working_day:
            continue

        parsed = {}
        for field_name in ("opening_time", "closing_time",
                           "break_start_time", "break_end_time"):
            value = getattr(day, field_name)
            if value is None:
                continue
            try:
                parsed[field_name] = parse_time(value, name, field_name)
            except InvalidTimeFormatError:
                _error(name, field_name, "invalid_time_format")

        if day.opening_time is None or day.closing_time is None:
            _error(name, "opening_time" if day.opening_time is None else "closing_time",
                   "missing_time")
            continue
        if "opening_time" not in parsed or "closing_time" not in parsed:
            continue
        if parsed["opening_time"] >= parsed["closing_time"]:
            _error(name, "closing_time", "closing_before_opening")
            continue

        if (day.break_start_time is None) != (day.break_end_time is None):
            _error(name, "break_start_time" if day.break_start_time is None else "break_end_time",
                   "incomplete_break")
            continue
        if "break_start_time" in parsed and "break_end_time" in parsed:
            if parsed["break_start_time"] >= parsed["break_end_time"]:
                _error(name, "break_end_time", "break_end_before_start")
            elif (parsed["break_start_time"] < parsed["opening_time"]
                  or parsed["break_end_time"] > parsed["closing_time"]):
                _error(name, "break_start_time", "break_outside_hours")

    return errors


def ensure_valid_schedule(days: Iterable[Union[DaySchedule, Mapping[str, Any]]]
                          ) -> List[DaySchedule]:
    """结构校验，不通过时抛出 InvalidScheduleError。"""
    schedule = normalize_schedule(days)
    errors = validate_schedule_structure(schedule)
    if errors:
        raise InvalidScheduleError(details={"errors": errors})
    return schedule
