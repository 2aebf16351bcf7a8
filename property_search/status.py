from typing import Any

from .filters_catalog import ARCHIVED_STATUSES, STATUS_CANON, STATUS_CONDITIONS, canonize_list
from .store_predicates import Predicate
from .utils import split_csv


class StatusResolver:
    """Maps user-facing status labels ("Active", "Pending", "Under Agreement",
    "Sold") to listing-state conditions.

    Accepts one label, a comma-separated string or a list. Unknown labels are
    dropped; when nothing known remains the Active condition applies.
    """

    def labels(self, status: Any) -> list[str]:
        return canonize_list(split_csv(status), STATUS_CANON)

    def resolve(self, status: Any) -> Predicate:
        conditions = [STATUS_CONDITIONS[label] for label in self.labels(status)]
        if not conditions:
            return Predicate(STATUS_CONDITIONS["active"])
        if len(conditions) == 1:
            return Predicate(conditions[0])
        return Predicate("(" + " OR ".join(f"({c})" for c in conditions) + ")")

    def includes_archived(self, status: Any) -> bool:
        return any(label in ARCHIVED_STATUSES for label in self.labels(status))
