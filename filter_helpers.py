from typing import Optional

VALID_SORTS = {"name", "location", "updated_at", "created_at"}
VALID_ORDERS = {"asc", "desc"}
TRUE_VALUES = {"1", "true", "yes", "on", "available"}
FALSE_VALUES = {"0", "false", "no", "off", "borrowed"}


def blank_to_none(value: Optional[str]) -> Optional[str]:
    if value == "":
        return None
    return value


def normalize_available(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    v = value.strip().lower()
    if v in TRUE_VALUES:
        return True
    if v in FALSE_VALUES:
        return False
    return None


def normalize_sort(sort: str) -> str:
    if sort in VALID_SORTS:
        return sort
    return "name"


def normalize_order(order: str) -> str:
    if order in VALID_ORDERS:
        return order
    return "asc"


def normalize_limit(limit: int, *, min_value: int = 1, max_value: int = 500) -> int:
    if limit < min_value:
        return min_value
    if limit > max_value:
        return max_value
    return limit


def normalize_offset(offset: int) -> int:
    if offset < 0:
        return 0
    return offset
