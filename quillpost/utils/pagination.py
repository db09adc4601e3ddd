"""
Разбор параметров пагинации и сортировки из query-строки.
"""
import math
from dataclasses import dataclass
from typing import Literal, Optional

SortOrder = Literal["asc", "desc"]


@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int
    sort_by: str
    sort_order: SortOrder

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def parse_bool_flag(value: Optional[str]) -> Optional[bool]:
    """
    "true"/"false" -> bool, всё остальное (и отсутствие) -> None
    """
    if value == "true":
        return True
    if value == "false":
        return False
    return None


def parse_csv(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]
