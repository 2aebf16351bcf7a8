from dataclasses import dataclass
from typing import Optional

from .filters_catalog import DEFAULT_SORT, SORT_COLUMNS


@dataclass(frozen=True)
class OrderBy:
    column: str
    direction: str

    @property
    def sql(self) -> str:
        return f"{self.column} {self.direction}"


DEFAULT_ORDER = OrderBy(*SORT_COLUMNS[DEFAULT_SORT])


class SortResolver:
    def resolve(self, sort: Optional[str]) -> OrderBy:
        if not sort or not isinstance(sort, str):
            return DEFAULT_ORDER
        column = SORT_COLUMNS.get(sort.strip().lower())
        return OrderBy(*column) if column else DEFAULT_ORDER
