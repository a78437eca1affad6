"""入驻规则引擎的异常体系。

所有业务规则违例都在发生处抛出 OnboardingError 的子类，
携带稳定的错误码、双语消息和结构化的 details（数量、ID、星期等），
调用方据此决定如何展示。

类别：
- NotFoundError：租户、订阅、上级实体、工作时间、诊所、目标诊所不存在
- ForbiddenError：当前套餐不允许跳过
- ValidationFailedError：步骤、套餐类型、时间格式、排班结构非法等
- LimitExceededError：套餐数量上限已满
- ConflictError：停用前需要转移人员、转移缺少目标诊所
"""
from typing import Any, Dict, Optional, TYPE_CHECKING

from . import messages

if TYPE_CHECKING:
    from .plan_limits import LimitResult


class OnboardingError(Exception):
    """入驻规则引擎异常基类。

    Attributes:
        code: 错误码，如 ``ONBOARDING_001``。
        message: 双语消息 ``{"ar": ..., "en": ...}``。
        details: 结构化上下文。
    """
    error: Dict[str, Any] = messages.VALIDATION_FAILED

    def __init__(self, details: Optional[Dict[str, Any]] = None,
                 error: Optional[Dict[str, Any]] = None) -> None:
        error = error or self.error
        self.code: str = error["code"]
        self.message: Dict[str, str] = dict(error["message"])
        self.details: Dict[str, Any] = details or {}
        super().__init__(f"[{self.code}] {self.message['en']}")

    def to_dict(self) -> Dict[str, Any]:
        """转换为可序列化的字典。"""
        payload = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


# ================================================================
# NotFound
# ================================================================

class NotFoundError(OnboardingError):
    """所需记录不存在。"""


class TenantNotFoundError(NotFoundError):
    error = messages.TENANT_NOT_FOUND


class SubscriptionNotFoundError(NotFoundError):
    error = messages.SUBSCRIPTION_NOT_FOUND


class ParentEntityNotFoundError(NotFoundError):
    error = messages.PARENT_ENTITY_NOT_FOUND


class WorkingHoursNotFoundError(NotFoundError):
    error = messages.WORKING_HOURS_NOT_FOUND


class ClinicNotFoundError(NotFoundError):
    error = messages.CLINIC_NOT_FOUND


class TargetClinicNotFoundError(NotFoundError):
    error = messages.TARGET_CLINIC_NOT_FOUND


# ================================================================
# Forbidden
# ================================================================

class ForbiddenError(OnboardingError):
    """当前套餐不允许该操作。"""


class SkipNotAllowedError(ForbiddenError):
    error = messages.SKIP_COMPLEX_NOT_ALLOWED


# ================================================================
# ValidationFailed
# ================================================================

class ValidationFailedError(OnboardingError):
    """输入数据未通过校验。"""


class InvalidStepError(ValidationFailedError):
    error = messages.INVALID_STEP


class InvalidPlanTypeError(ValidationFailedError):
    error = messages.INVALID_PLAN_TYPE


class InvalidTimeFormatError(ValidationFailedError):
    error = messages.INVALID_TIME_FORMAT


class InvalidScheduleError(ValidationFailedError):
    """排班结构非法，details["errors"] 中列出每一处问题。"""
    error = messages.INVALID_SCHEDULE


class ClinicNotLinkedError(ValidationFailedError):
    error = messages.CLINIC_NOT_LINKED


class WorkingHoursOutOfBoundsError(ValidationFailedError):
    """诊所工作时间超出综合体范围，details["errors"] 中列出违例的日期。"""
    error = messages.HOURS_OUTSIDE_COMPLEX


# ================================================================
# LimitExceeded
# ================================================================

class LimitExceededError(OnboardingError):
    """套餐数量上限已满。

    Attributes:
        result: 触发异常的 LimitResult。
    """

    def __init__(self, result: "LimitResult") -> None:
        self.result = result
        super().__init__(
            details={
                "entity_kind": result.entity_kind,
                "plan_type": result.plan_type,
                "current_count": result.current_count,
                "max_allowed": result.max_allowed,
            },
            error=({"code": result.code, "message": result.message}
                   if result.message else messages.ENTITY_CREATION_FAILED),
        )


# ================================================================
# Conflict
# ================================================================

class ConflictError(OnboardingError):
    """操作与当前数据状态冲突。"""


class TransferRequiredError(ConflictError):
    """停用诊所前必须决定如何处理医生/员工。

    Attributes:
        active_appointments: 未来的有效预约数量。
        assigned_doctors: 在职医生数量。
        assigned_staff: 在职员工数量。
    """
    error = messages.TRANSFER_REQUIRED

    def __init__(self, active_appointments: int, assigned_doctors: int,
                 assigned_staff: int, clinic_id: Optional[int] = None) -> None:
        self.active_appointments = active_appointments
        self.assigned_doctors = assigned_doctors
        self.assigned_staff = assigned_staff
        details = {
            "active_appointments": active_appointments,
            "assigned_doctors": assigned_doctors,
            "assigned_staff": assigned_staff,
            "requires_transfer": True,
        }
        if clinic_id is not None:
            details["clinic_id"] = clinic_id
        super().__init__(details=details)


class MissingTargetClinicError(ConflictError):
    error = messages.TARGET_CLINIC_REQUIRED
