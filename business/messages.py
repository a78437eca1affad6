"""双语（阿拉伯语 / 英语）消息常量。

每条消息是 ``{"code": ..., "message": {"ar": ..., "en": ...}}`` 结构，
作为数据随结果或异常一起返回，由调用方决定如何展示。
"""
from typing import Dict

BilingualMessage = Dict[str, str]

# ================================================================
# 入驻流程
# ================================================================

SKIP_COMPLEX_NOT_ALLOWED = {
    "code": "ONBOARDING_001",
    "message": {
        "ar": "يمكن تخطي المجمع فقط في خطة الشركة",
        "en": "Can only skip complex in company plan",
    },
}

PLAN_LIMIT_COMPANY = {
    "code": "ONBOARDING_002",
    "message": {
        "ar": "الخطة تسمح بإنشاء شركة واحدة فقط",
        "en": "Plan allows maximum 1 company",
    },
}

PLAN_LIMIT_COMPLEX = {
    "code": "ONBOARDING_003",
    "message": {
        "ar": "الخطة تسمح بإنشاء مجمع واحد فقط",
        "en": "Plan allows maximum 1 complex",
    },
}

PLAN_LIMIT_CLINIC = {
    "code": "ONBOARDING_004",
    "message": {
        "ar": "الخطة تسمح بإنشاء عيادة واحدة فقط",
        "en": "Plan allows maximum 1 clinic",
    },
}

STEP_DEPENDENCY_NOT_MET = {
    "code": "ONBOARDING_005",
    "message": {
        "ar": "يجب إكمال تفاصيل المجمع قبل تعبئة تفاصيل العيادة",
        "en": "Must complete complex details before filling clinic details",
    },
}

INVALID_PLAN_TYPE = {
    "code": "ONBOARDING_006",
    "message": {
        "ar": "نوع الخطة غير صالح",
        "en": "Invalid plan type",
    },
}

TENANT_NOT_FOUND = {
    "code": "ONBOARDING_007",
    "message": {
        "ar": "المستخدم غير موجود",
        "en": "User not found",
    },
}

SUBSCRIPTION_NOT_FOUND = {
    "code": "ONBOARDING_008",
    "message": {
        "ar": "الاشتراك غير موجود",
        "en": "Subscription not found",
    },
}

VALIDATION_FAILED = {
    "code": "ONBOARDING_009",
    "message": {
        "ar": "فشل التحقق من البيانات",
        "en": "Validation failed",
    },
}

ENTITY_CREATION_FAILED = {
    "code": "ONBOARDING_010",
    "message": {
        "ar": "فشل إنشاء الكيان",
        "en": "Entity creation failed",
    },
}

PARENT_ENTITY_NOT_FOUND = {
    "code": "ONBOARDING_011",
    "message": {
        "ar": "الكيان الأصلي غير موجود",
        "en": "Parent entity not found",
    },
}

WORKING_HOURS_NOT_FOUND = {
    "code": "ONBOARDING_012",
    "message": {
        "ar": "ساعات العمل غير موجودة",
        "en": "Working hours not found",
    },
}

INVALID_STEP = {
    "code": "ONBOARDING_009",
    "message": {
        "ar": "خطوة التسجيل غير صالحة",
        "en": "Invalid onboarding step",
    },
}

SKIP_COMPLEX_SUCCESS = {
    "ar": "تم تخطي إعداد المجمع والعيادة بنجاح. يمكنك إضافتهم لاحقاً من لوحة التحكم",
    "en": "Complex and clinic setup skipped successfully. You can add them later from the dashboard",
}

# ================================================================
# 诊所
# ================================================================

TRANSFER_REQUIRED = {
    "code": "CLINIC_004",
    "message": {
        "ar": "يرجى اختيار ما إذا كنت تريد الاحتفاظ بالأطباء أو نقلهم",
        "en": "Must transfer doctors/staff before deactivation",
    },
}

HOURS_OUTSIDE_COMPLEX = {
    "code": "CLINIC_005",
    "message": {
        "ar": "ساعات العمل خارج نطاق ساعات المجمع",
        "en": "Working hours outside complex hours",
    },
}

CLINIC_NOT_FOUND = {
    "code": "CLINIC_007",
    "message": {
        "ar": "العيادة غير موجودة",
        "en": "Clinic not found",
    },
}

TARGET_CLINIC_NOT_FOUND = {
    "code": "CLINIC_008",
    "message": {
        "ar": "العيادة المستهدفة غير موجودة",
        "en": "Target clinic not found",
    },
}

TARGET_CLINIC_REQUIRED = {
    "code": "CLINIC_008",
    "message": {
        "ar": "يجب تحديد العيادة المستهدفة للنقل",
        "en": "Target clinic must be specified for transfer",
    },
}

CLINIC_NOT_LINKED = {
    "code": "CLINIC_NO_COMPLEX",
    "message": {
        "ar": "العيادة غير مرتبطة بمجمع",
        "en": "Clinic is not associated with a complex",
    },
}

# ================================================================
# 工作时间
# ================================================================

INVALID_TIME_FORMAT = {
    "code": "WORKING_HOURS_INVALID_TIME",
    "message": {
        "ar": "تنسيق الوقت غير صالح، يجب أن يكون HH:MM",
        "en": "Invalid time format, expected HH:MM",
    },
}

INVALID_SCHEDULE = {
    "code": "WORKING_HOURS_INVALID_SCHEDULE",
    "message": {
        "ar": "جدول ساعات العمل غير صالح",
        "en": "Invalid working hours schedule",
    },
}

APPOINTMENT_ON_NON_WORKING_DAY = {
    "ar": "الموعد في يوم غير عمل",
    "en": "Appointment on non-working day",
}

APPOINTMENT_OUTSIDE_HOURS = {
    "ar": "الموعد خارج ساعات العمل الجديدة",
    "en": "Appointment outside new working hours",
}

APPOINTMENT_DURING_BREAK = {
    "ar": "الموعد خلال فترة الاستراحة الجديدة",
    "en": "Appointment during new break time",
}

DAY_NAMES_AR = {
    "monday": "الاثنين",
    "tuesday": "الثلاثاء",
    "wednesday": "الأربعاء",
    "thursday": "الخميس",
    "friday": "الجمعة",
    "saturday": "السبت",
    "sunday": "الأحد",
}

SOURCE_NAMES_AR = {
    "organization": "المنظمة",
    "complex": "المجمع",
}


def inherited_hours_message(source_type: str, source_name: str) -> BilingualMessage:
    """工作时间继承成功的提示。"""
    return {
        "ar": f"تم استيراد ساعات العمل من {SOURCE_NAMES_AR.get(source_type, source_type)}: {source_name}",
        "en": f"Working hours inherited from {source_type}: {source_name}",
    }


def outside_parent_hours_message(opening: str, closing: str) -> BilingualMessage:
    """诊所时间超出综合体时间范围的提示。"""
    return {
        "ar": f"ساعات العيادة يجب أن تكون ضمن ساعات المجمع ({opening} - {closing})",
        "en": f"Clinic hours must be within complex hours ({opening} - {closing})",
    }


def parent_closed_message(day: str) -> BilingualMessage:
    """综合体休息日诊所营业的提示。"""
    return {
        "ar": f"لا يمكن فتح العيادة يوم {DAY_NAMES_AR.get(day, day)} عندما يكون المجمع مغلقاً",
        "en": f"Clinic cannot be open on {day} when complex is closed",
    }
