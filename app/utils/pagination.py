import math
from typing import Optional, Tuple

from app.core.exceptions import ValidationError


def resolve_page(page: Optional[int], page_size: Optional[int], default: int, maximum: int) -> Tuple[int, int]:
    """Return a validated ``(page, page_size)`` pair; missing values fall back to 1 and ``default``."""
    page = 1 if page is None else page
    page_size = default if page_size is None else page_size
    if page < 1:
        raise ValidationError("page must be at least 1")
    if page_size < 1:
        raise ValidationError("page_size must be at least 1")
    if page_size > maximum:
        raise ValidationError(f"page_size must not exceed {maximum}")
    return page, page_size


def page_offset(page: int, page_size: int) -> int:
    return (page - 1) * page_size


def total_pages(total: int, page_size: int) -> int:
    if total <= 0:
        return 0
    return math.ceil(total / page_size)
