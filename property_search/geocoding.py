import hashlib
import logging
from typing import Optional

import requests
from requests import exceptions as requests_exceptions

from .cache import CacheService
from .schemas import GeocodeResult

logger = logging.getLogger(__name__)

CACHE_NAMESPACE = "geocode"
CACHE_TTL = 30 * 24 * 3600
DEFAULT_URL = "https://maps.googleapis.com/maps/api/geocode/json"


class GeocodingClient:
    """Address -> coordinates over the Google Geocoding JSON API.

    One blocking attempt per call, bounded by ``timeout``. Any failure
    (transport, HTTP status, malformed body, no match, no key) yields None
    and is not cached, so the next call tries again.
    """

    def __init__(
        self,
        api_key: Optional[str],
        cache: Optional[CacheService] = None,
        url: str = DEFAULT_URL,
        timeout: float = 10.0,
    ):
        self.api_key = api_key
        self.cache = cache
        self.url = url
        self.timeout = timeout

    def geocode(self, address: str) -> Optional[GeocodeResult]:
        address = (address or "").strip()
        if not address:
            return None

        key = "geocode_" + hashlib.md5(address.encode("utf-8")).hexdigest()
        if self.cache is not None:
            cached = self.cache.get(key, CACHE_NAMESPACE)
            if cached is not None:
                return cached

        if not self.api_key:
            logger.warning("geocoding skipped: no API key configured")
            return None

        try:
            resp = requests.get(
                self.url,
                params={"address": address, "key": self.api_key},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            body = resp.json()
        except requests_exceptions.Timeout:
            logger.warning("geocoding timed out after %ss for %r", self.timeout, address)
            return None
        except requests_exceptions.RequestException as exc:
            logger.warning("geocoding request failed for %r: %s", address, exc)
            return None
        except ValueError:
            logger.warning("geocoding returned a non-JSON body for %r", address)
            return None

        result = self._parse(body, address)
        if result is None:
            status = body.get("status") if isinstance(body, dict) else None
            logger.warning("geocoding found no match for %r (status=%s)", address, status)
            return None

        if self.cache is not None:
            self.cache.set(key, result, CACHE_TTL, CACHE_NAMESPACE)
        return result

    @staticmethod
    def _parse(body, address: str) -> Optional[GeocodeResult]:
        if not isinstance(body, dict) or body.get("status") != "OK":
            return None
        results = body.get("results") or []
        if not results or not isinstance(results[0], dict):
            return None
        location = (results[0].get("geometry") or {}).get("location")
        if not isinstance(location, dict):
            return None
        try:
            return GeocodeResult(
                lat=float(location["lat"]),
                lng=float(location["lng"]),
                formatted_address=str(results[0].get("formatted_address") or address),
            )
        except (KeyError, TypeError, ValueError):
            return None
