import hashlib

from .cache import CacheService
from .repository import PropertyRepository
from .schemas import Suggestion

CACHE_NAMESPACE = "autocomplete"
CACHE_TTL = 300
MAX_SUGGESTIONS = 10
MIN_TERM_LENGTH = 2

# Lower wins when two sources return the same value.
TYPE_PRIORITY = {
    "mls": 1,
    "city": 2,
    "zip": 3,
    "neighborhood": 4,
    "street": 5,
    "address": 6,
}


class AutocompleteService:
    def __init__(self, repository: PropertyRepository, cache: CacheService):
        self.repository = repository
        self.cache = cache

    def suggest(self, term: str) -> list[Suggestion]:
        term = (term or "").strip()
        if len(term) < MIN_TERM_LENGTH:
            return []
        key = "ac_" + hashlib.md5(term.encode("utf-8")).hexdigest()
        return self.cache.get_or_compute(key, CACHE_TTL, CACHE_NAMESPACE, lambda: self._build(term))

    def _sources(self):
        repo = self.repository
        return (
            ("mls", repo.autocomplete_mls_numbers),
            ("city", repo.autocomplete_cities),
            ("zip", repo.autocomplete_zips),
            ("neighborhood", repo.autocomplete_neighborhoods),
            ("street", repo.autocomplete_street_names),
            ("address", repo.autocomplete_addresses),
        )

    def _build(self, term: str) -> list[Suggestion]:
        seen: dict[str, Suggestion] = {}
        for kind, source in self._sources():
            for row in source(term):
                value = row.get("value")
                if not value:
                    continue
                value = str(value)
                count = row.get("count")
                candidate = Suggestion(value=value, type=kind, count=int(count) if count is not None else None)
                current = seen.get(value.lower())
                if current is None or TYPE_PRIORITY[kind] < TYPE_PRIORITY[current.type]:
                    seen[value.lower()] = candidate

        ranked = sorted(seen.values(), key=lambda s: (TYPE_PRIORITY[s.type], s.value.lower()))
        return ranked[:MAX_SUGGESTIONS]
