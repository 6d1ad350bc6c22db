"""
Place Sources - Where candidate sync gets raw place records from.

A place source yields batches of RawPlace. The sync never sees HTTP; it only
sees PlaceSourceError when a batch cannot be produced.

Google Places API (New) text search:
- Endpoint: POST https://places.googleapis.com/v1/places:searchText
- Auth: X-Goog-Api-Key header
- Fields: X-Goog-FieldMask (billing depends on the mask)
- One query -> one batch (first page only)

Usage:
    source = GooglePlacesSource(queries=["campsite Chiang Mai", "glamping Pai"])
    for batch in source.fetch_batches():
        for raw in batch:
            print(raw.place_id, raw.name)
"""

import logging
import os
import time
from typing import Any, Dict, Iterable, Iterator, List, Optional

import requests
from pydantic import ValidationError as PydanticValidationError

from services.ingestion_config import get_places_timeout
from services.place_normalizer import RawPlace

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

PLACES_SEARCH_URL = "https://places.googleapis.com/v1/places:searchText"

PLACES_FIELD_MASK = ",".join([
    "places.id",
    "places.displayName",
    "places.formattedAddress",
    "places.location",
    "places.internationalPhoneNumber",
    "places.websiteUri",
    "places.rating",
    "places.userRatingCount",
    "places.priceLevel",
    "places.types",
    "places.businessStatus",
])

# Places API (New) PriceLevel enum -> 0..4
PRICE_LEVELS = {
    "PRICE_LEVEL_FREE": 0,
    "PRICE_LEVEL_INEXPENSIVE": 1,
    "PRICE_LEVEL_MODERATE": 2,
    "PRICE_LEVEL_EXPENSIVE": 3,
    "PRICE_LEVEL_VERY_EXPENSIVE": 4,
}

DEFAULT_QUERIES = ["campsite", "campground", "glamping"]

MAX_RETRIES = 3
INITIAL_BACKOFF_SECONDS = 1.0
BACKOFF_MULTIPLIER = 2.0


class PlaceSourceError(Exception):
    """A place source could not produce a batch (network, timeout, bad payload)."""
    pass


class PlaceSource:
    """Interface: anything with fetch_batches() can feed the candidate sync."""

    def fetch_batches(self) -> Iterator[List[RawPlace]]:
        raise NotImplementedError


class StaticPlaceSource(PlaceSource):
    """
    In-memory batches, for JSON imports from the CLI and for tests.

    Entries may be RawPlace instances or dicts (validated by the sync, so a
    bad record counts as skipped_invalid). An Exception instance in the
    batch list is raised when that batch is reached.
    """

    def __init__(self, batches: Iterable[Any]):
        self._batches = list(batches)

    @classmethod
    def from_records(cls, records: List[Dict[str, Any]], batch_size: int = 50) -> "StaticPlaceSource":
        batches = [records[i:i + batch_size] for i in range(0, len(records), batch_size)]
        return cls(batches)

    def fetch_batches(self) -> Iterator[List[RawPlace]]:
        for batch in self._batches:
            if isinstance(batch, Exception):
                raise batch
            yield list(batch)


def _map_place(place: Dict[str, Any]) -> Dict[str, Any]:
    """Places API (New) payload -> RawPlace fields."""
    location = place.get("location") or {}
    display_name = place.get("displayName") or {}
    return {
        "place_id": place.get("id") or "",
        "name": display_name.get("text") or "",
        "address": place.get("formattedAddress"),
        "latitude": location.get("latitude"),
        "longitude": location.get("longitude"),
        "phone": place.get("internationalPhoneNumber"),
        "website": place.get("websiteUri"),
        "rating": place.get("rating"),
        "rating_count": place.get("userRatingCount"),
        "price_level": PRICE_LEVELS.get(place.get("priceLevel")),
        "types": place.get("types") or [],
        "business_status": place.get("businessStatus"),
    }


class GooglePlacesSource(PlaceSource):
    """
    Text-search client for the Google Places API (New).

    Records that fail RawPlace validation are logged and dropped; transport
    failures are retried with exponential backoff, then raised as
    PlaceSourceError.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        queries: Optional[List[str]] = None,
        timeout: Optional[float] = None,
        language: str = "en",
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key or os.environ.get("PLACES_API_KEY")
        if not self.api_key:
            raise PlaceSourceError(
                "PLACES_API_KEY not found. Set PLACES_API_KEY environment variable "
                "or pass api_key to constructor."
            )
        env_queries = [q.strip() for q in os.environ.get("PLACES_QUERIES", "").split(",") if q.strip()]
        self.queries = queries or env_queries or list(DEFAULT_QUERIES)
        self.timeout = timeout if timeout is not None else get_places_timeout()
        self.language = language
        self._session = session or requests.Session()
        self._session.headers.update({
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self.api_key,
            "X-Goog-FieldMask": PLACES_FIELD_MASK,
        })

        logger.info(f"Google Places source initialized with {len(self.queries)} queries")

    def search(self, query: str) -> List[RawPlace]:
        """
        Run one text search.

        Raises:
            PlaceSourceError: If the request fails after retries.
        """
        for attempt in range(MAX_RETRIES):
            try:
                response = self._session.post(
                    PLACES_SEARCH_URL,
                    json={"textQuery": query, "languageCode": self.language},
                    timeout=self.timeout,
                )
                response.raise_for_status()
                payload = response.json()
                break
            except requests.exceptions.RequestException as e:
                backoff = INITIAL_BACKOFF_SECONDS * (BACKOFF_MULTIPLIER ** attempt)
                logger.warning(
                    f"Text search {query!r} attempt {attempt + 1}/{MAX_RETRIES} failed: {e}. "
                    f"Retrying in {backoff:.1f}s"
                )
                if attempt < MAX_RETRIES - 1:
                    time.sleep(backoff)
                else:
                    raise PlaceSourceError(f"Text search {query!r} failed after {MAX_RETRIES} attempts: {e}")
            except ValueError as e:
                raise PlaceSourceError(f"Text search {query!r} returned invalid JSON: {e}")

        places = []
        for place in payload.get("places") or []:
            try:
                places.append(RawPlace.model_validate(_map_place(place)))
            except PydanticValidationError as e:
                logger.warning(f"Dropping malformed place {place.get('id')!r}: {e.error_count()} errors")

        logger.info(f"Text search {query!r}: {len(places)} places")
        return places

    def fetch_batches(self) -> Iterator[List[RawPlace]]:
        for query in self.queries:
            yield self.search(query)
