import logging
from datetime import datetime
from typing import Callable, Optional

from .cache import CacheService
from .repository import PropertyRepository
from .schemas import PropertyDetail

logger = logging.getLogger(__name__)

CACHE_NAMESPACE = "property_detail"
CACHE_TTL = 3600


class PropertyDetailService:
    def __init__(self, repository: PropertyRepository, cache: CacheService,
                 clock: Optional[Callable[[], datetime]] = None):
        self.repository = repository
        self.cache = cache
        self.clock = clock or datetime.now

    def get_by_listing_id(self, listing_id: str) -> Optional[PropertyDetail]:
        """Active listing first, archived otherwise. A miss is not cached."""
        listing_id = str(listing_id).strip()
        detail = self.cache.get_or_compute(
            f"detail_{listing_id}", CACHE_TTL, CACHE_NAMESPACE, lambda: self._fetch(listing_id)
        )
        return detail.model_copy(deep=True) if detail is not None else None

    def _fetch(self, listing_id: str) -> Optional[PropertyDetail]:
        row = self.repository.find_by_listing_id(listing_id)
        if row is None:
            logger.info("listing %s not found", listing_id)
            return None

        key = row["listing_key"]
        agent_id = row.get("list_agent_mls_id")
        office_id = row.get("list_office_mls_id")
        return PropertyDetail.from_data(
            row,
            photos=self.repository.fetch_all_media(key),
            agent=self.repository.find_agent(agent_id) if agent_id else None,
            office=self.repository.find_office(office_id) if office_id else None,
            open_houses=self.repository.fetch_upcoming_open_houses(key, self.clock().strftime("%Y-%m-%d")),
            history=self.repository.fetch_history(key),
        )
