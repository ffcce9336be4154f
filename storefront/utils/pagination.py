# storefront/utils/pagination.py
import math
from dataclasses import dataclass

DEFAULT_LIMIT = 20
MAX_LIMIT = 100

#tylko te pola moga isc do ORDER BY
ALLOWED_SORT_FIELDS = (
    "created_at",
    "updated_at",
    "total",
    "order_number",
    "status",
)


@dataclass(frozen=True)
class Page:
    page: int
    limit: int
    sort: str
    order: str

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def get_pagination(
    page: int | None = None,
    limit: int | None = None,
    sort: str | None = None,
    order: str | None = None,
) -> Page:
    page = max(1, page or 1)
    limit = min(MAX_LIMIT, max(1, limit or DEFAULT_LIMIT))
    return Page(
        page=page,
        limit=limit,
        sort=sanitize_sort_field(sort),
        order="asc" if order == "asc" else "desc",
    )


def sanitize_sort_field(field: str | None) -> str:
    return field if field in ALLOWED_SORT_FIELDS else "created_at"


def get_pagination_info(page: int, limit: int, total: int) -> dict:
    pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": pages,
        "has_next": page < pages,
        "has_prev": page > 1,
    }
