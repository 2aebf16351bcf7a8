from typing import Any, Mapping, Optional, Protocol, Sequence


class PostFilterHook(Protocol):
    """Filters candidate rows on criteria the store cannot evaluate (schools).

    Returns the kept rows in their original order, or None when no filtering
    is available; the search then keeps its unfiltered rows and store total.
    """

    def apply(self, rows: Sequence[Mapping[str, Any]],
              criteria: Mapping[str, Any]) -> Optional[list[Mapping[str, Any]]]: ...


class NullPostFilter:
    def apply(self, rows, criteria):
        return None
