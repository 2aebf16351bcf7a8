import logging
from functools import lru_cache

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from .autocomplete import AutocompleteService
from .cache import InMemoryCache
from .detail import PropertyDetailService
from .error_handlers import init_error_handlers
from .errors import InvalidFilterError, NotFoundError
from .geocoding import GeocodingClient
from .logging_config import setup_logging
from .middleware import RequestIdMiddleware
from .repository import SQLitePropertyRepository
from .schemas import FilterRequest, GeocodeResult, PropertyDetail, ResultPage, Suggestion
from .search import PropertySearchService
from .settings import settings

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger("property-search")

# ========== SERVICES ==========
# Built once per process; tests swap them through app.dependency_overrides.

@lru_cache
def get_cache() -> InMemoryCache:
    return InMemoryCache(max_entries=settings.CACHE_MAX_ENTRIES, enabled=settings.CACHE_ENABLED)

@lru_cache
def get_repository() -> SQLitePropertyRepository:
    return SQLitePropertyRepository(settings.DATABASE_PATH)

def get_search_service(repository=Depends(get_repository), cache=Depends(get_cache)) -> PropertySearchService:
    return PropertySearchService(repository, cache, max_per_page=settings.MAX_PER_PAGE)

def get_detail_service(repository=Depends(get_repository), cache=Depends(get_cache)) -> PropertyDetailService:
    return PropertyDetailService(repository, cache)

def get_autocomplete_service(repository=Depends(get_repository), cache=Depends(get_cache)) -> AutocompleteService:
    return AutocompleteService(repository, cache)

def get_geocoder(cache=Depends(get_cache)) -> GeocodingClient:
    return GeocodingClient(
        settings.GOOGLE_GEOCODING_KEY,
        cache,
        url=settings.GEOCODING_URL,
        timeout=settings.GEOCODE_TIMEOUT_SECONDS,
    )

# ========== FASTAPI ==========
app = FastAPI(title="Property Search API", version="1.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.CORS_ALLOW_ORIGINS == ["*"] else settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True, allow_methods=["*"], allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)
init_error_handlers(app)
logger.info("Serving listings from %s", settings.DATABASE_PATH)

@app.get("/health")
def health(cache=Depends(get_cache)):
    return {"status": "ok", "cache": cache.stats()}

@app.get("/properties", response_model=ResultPage)
def search_properties(
    request: Request,
    page: int = Query(1),
    per_page: int = Query(settings.DEFAULT_PER_PAGE),
    service: PropertySearchService = Depends(get_search_service),
):
    # Filters stay loose: a malformed value drops its own filter instead of failing the request.
    filters = FilterRequest.from_query_params(request.query_params)
    return service.search(filters, page=page, per_page=per_page)

# Declared before /properties/{listing_id} so "autocomplete" is not taken for an id.
@app.get("/properties/autocomplete", response_model=list[Suggestion])
def autocomplete(term: str = Query(""), service: AutocompleteService = Depends(get_autocomplete_service)):
    return service.suggest(term)

@app.get("/properties/{listing_id}", response_model=PropertyDetail)
def property_detail(listing_id: str, service: PropertyDetailService = Depends(get_detail_service)):
    detail = service.get_by_listing_id(listing_id)
    if detail is None:
        raise NotFoundError(f"Listing {listing_id} not found")
    return detail

@app.get("/geocode", response_model=GeocodeResult)
def geocode(address: str = Query(""), geocoder: GeocodingClient = Depends(get_geocoder)):
    if not address.strip():
        raise InvalidFilterError("address is required")
    result = geocoder.geocode(address)
    if result is None:
        raise NotFoundError(f"No coordinates found for {address!r}")
    return result
