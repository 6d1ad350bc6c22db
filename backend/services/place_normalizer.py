"""
Place Normalizer - Turns raw directory records into candidate fields.

RawPlace is the contract every place source must produce. normalize_place()
is the single place where directory data is cleaned before it reaches the
matcher, the scorer or the candidate table.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


CLOSED_STATUSES = frozenset(["CLOSED_PERMANENTLY"])


class PlaceNormalizationError(ValueError):
    """Raised when a raw place cannot become a candidate."""

    def __init__(self, message: str, external_ref: Optional[str] = None):
        super().__init__(message)
        self.external_ref = external_ref


class RawPlace(BaseModel):
    """One record as handed over by a place source."""
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        populate_by_name=True,
        extra='ignore',
    )

    place_id: str = Field(min_length=1)
    name: str = ""
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    rating_count: Optional[int] = Field(default=None, ge=0)
    price_level: Optional[int] = Field(default=None, ge=0, le=4)
    types: List[str] = Field(default_factory=list)
    business_status: Optional[str] = None


@dataclass(frozen=True)
class NormalizedPlace:
    """Cleaned candidate fields. Immutable so scoring stays reproducible."""
    external_ref: str
    name: str
    address: Optional[str]
    latitude: float
    longitude: float
    phone: Optional[str] = None
    website: Optional[str] = None
    rating: Optional[float] = None
    rating_count: Optional[int] = None
    price_level: Optional[int] = None
    place_types: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def coordinates(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)

    @property
    def has_contact(self) -> bool:
        return bool(self.phone or self.website)


# =============================================================================
# FIELD HELPERS
# =============================================================================

def collapse_whitespace(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    collapsed = re.sub(r"\s+", " ", value).strip()
    return collapsed or None


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """Strip spaces, dashes, dots and parentheses; keep a leading '+'."""
    if not phone:
        return None
    digits = re.sub(r"[\s\-\(\)\.]", "", phone)
    return digits or None


def normalize_website(url: Optional[str]) -> Optional[str]:
    """
    Reduce a URL to lowercase host + path without scheme, 'www.' or trailing slash.

    'https://www.Example.com/camp/' -> 'example.com/camp'

    Returns None when there is no host or the URL cannot be parsed.
    """
    if not url:
        return None
    candidate = url.strip()
    if "://" not in candidate:
        candidate = "http://" + candidate
    try:
        parsed = urlparse(candidate)
        host = (parsed.hostname or "").lower()
    except ValueError:
        # unbalanced brackets in the netloc
        return None
    if host.startswith("www."):
        host = host[4:]
    if not host:
        return None
    path = parsed.path.rstrip("/")
    return f"{host}{path}".lower()


def _validate_coordinates(lat: Optional[float], lng: Optional[float], ref: str) -> Tuple[float, float]:
    if lat is None or lng is None:
        raise PlaceNormalizationError("Missing coordinates", external_ref=ref)
    if not -90.0 <= lat <= 90.0:
        raise PlaceNormalizationError(f"Latitude out of range: {lat}", external_ref=ref)
    if not -180.0 <= lng <= 180.0:
        raise PlaceNormalizationError(f"Longitude out of range: {lng}", external_ref=ref)
    return float(lat), float(lng)


# =============================================================================
# MAIN ENTRY
# =============================================================================

def normalize_place(raw: RawPlace) -> NormalizedPlace:
    """
    Normalize a raw place.

    Raises:
        PlaceNormalizationError: missing name/coordinates, coordinates out of
        range, or a permanently closed business.
    """
    ref = raw.place_id
    if raw.business_status and raw.business_status.upper() in CLOSED_STATUSES:
        raise PlaceNormalizationError("Place is permanently closed", external_ref=ref)

    name = collapse_whitespace(raw.name)
    if not name:
        raise PlaceNormalizationError("Missing name", external_ref=ref)

    lat, lng = _validate_coordinates(raw.latitude, raw.longitude, ref)

    website = collapse_whitespace(raw.website)
    if website and normalize_website(website) is None:
        logger.info(f"Dropping unparseable website for {ref}: {website!r}")
        website = None

    return NormalizedPlace(
        external_ref=ref,
        name=name,
        address=collapse_whitespace(raw.address),
        latitude=lat,
        longitude=lng,
        phone=normalize_phone(raw.phone),
        website=website,
        rating=raw.rating,
        rating_count=raw.rating_count,
        price_level=raw.price_level,
        place_types=tuple(t.strip().lower() for t in raw.types if t and t.strip()),
    )
