"""实体层级策略 —— 各套餐需要哪些实体、创建顺序及数量上限。

纯查表，无状态。上限为 None 表示不限。
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .steps import EntityKind, PlanType

# 各套餐必须存在的实体种类（按创建顺序）
REQUIRED_ENTITIES: Dict[PlanType, Tuple[EntityKind, ...]] = {
    PlanType.COMPANY: (EntityKind.ORGANIZATION,),
    PlanType.COMPLEX: (EntityKind.COMPLEX, EntityKind.DEPARTMENT),
    PlanType.CLINIC: (EntityKind.CLINIC,),
}

# 父实体非空时，子实体也必须非空
DEPENDENT_ENTITIES: Dict[EntityKind, EntityKind] = {
    EntityKind.COMPLEX: EntityKind.DEPARTMENT,
}

PLAN_LIMITS: Dict[PlanType, Dict[EntityKind, Optional[int]]] = {
    PlanType.COMPANY: {
        EntityKind.ORGANIZATION: 1,
        EntityKind.COMPLEX: None,
        EntityKind.CLINIC: None,
    },
    PlanType.COMPLEX: {
        EntityKind.ORGANIZATION: 0,
        EntityKind.COMPLEX: 1,
        EntityKind.CLINIC: None,
    },
    PlanType.CLINIC: {
        EntityKind.ORGANIZATION: 0,
        EntityKind.COMPLEX: 0,
        EntityKind.CLINIC: 1,
    },
}

_PLAN_DISPLAY = {
    PlanType.COMPANY: ("Company Plan", [
        "organization_management", "complex_management", "clinic_management",
        "department_management", "service_management",
    ]),
    PlanType.COMPLEX: ("Complex Plan", [
        "complex_management", "clinic_management",
        "department_management", "service_management",
    ]),
    PlanType.CLINIC: ("Clinic Plan", [
        "clinic_management", "department_management", "service_management",
    ]),
}


@dataclass
class PlanConfiguration:
    """套餐配置

    Attributes:
        plan_type: 套餐类型
        name: 展示名称
        features: 功能开关列表
        limits: 各实体种类的数量上限（None 表示不限）
        required_entities: 必须存在的实体种类
    """
    plan_type: PlanType
    name: str
    features: List[str] = field(default_factory=list)
    limits: Dict[str, Optional[int]] = field(default_factory=dict)
    required_entities: List[str] = field(default_factory=list)


def required_entities(plan_type: Union[str, PlanType]) -> Tuple[EntityKind, ...]:
    """套餐必须存在的实体种类，按创建顺序。未知套餐返回空元组。"""
    plan = PlanType.parse(plan_type)
    if plan is None:
        return ()
    return REQUIRED_ENTITIES[plan]


def max_allowed(plan_type: Union[str, PlanType],
                entity_kind: Union[str, EntityKind]) -> Optional[int]:
    """套餐下某种实体的数量上限。

    Returns:
        上限数量，None 表示不限。

    Raises:
        InvalidPlanTypeError: 套餐类型无法识别。
    """
    plan = PlanType.require(plan_type)
    kind = EntityKind.require(entity_kind)
    return PLAN_LIMITS[plan].get(kind)


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value > 0
    try:
        return len(value) > 0
    except TypeError:
        return True


def validate_entity_hierarchy(plan_type: Union[str, PlanType],
                              present_entities: Mapping[str, Any]) -> bool:
    """校验实体层级是否完整。

    Args:
        plan_type: 套餐类型（大小写不敏感）。
        present_entities: 实体种类到已有实体的映射，取值可以是数量、
            列表或单个对象，例如 ``{"complex": [...], "department": 2}``。

    Returns:
        套餐要求的实体都已存在，且依赖实体（如综合体存在时的科室）
        也不为空时返回 True。未知套餐返回 False。
    """
    plan = PlanType.parse(plan_type)
    if plan is None:
        return False

    present = {str(key).lower(): value for key, value in present_entities.items()}
    for kind in REQUIRED_ENTITIES[plan]:
        if not _is_present(present.get(kind.value)):
            return False
    for parent, child in DEPENDENT_ENTITIES.items():
        if _is_present(present.get(parent.value)) and not _is_present(present.get(child.value)):
            return False
    return True


def plan_configuration(plan_type: Union[str, PlanType]) -> Optional[PlanConfiguration]:
    """获取套餐的展示名称、功能与上限，未知套餐返回 None。"""
    plan = PlanType.parse(plan_type)
    if plan is None:
        return None
    name, features = _PLAN_DISPLAY[plan]
    return PlanConfiguration(
        plan_type=plan,
        name=name,
        features=list(features),
        limits={kind.value: limit for kind, limit in PLAN_LIMITS[plan].items()},
        required_entities=[kind.value for kind in REQUIRED_ENTITIES[plan]],
    )
