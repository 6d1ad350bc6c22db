"""
Duplicate Matcher - Compares a candidate against nearby campsite inventory.

Pure functions only: the caller supplies the inventory records (usually from
campsite_inventory.records_near()), so the same inputs always give the same
ranked matches.

Scoring:
    similarity = name_weight * name_similarity
               + distance_weight * (1 - distance / radius)

A normalized phone or website match inside the radius is decisive and
raises similarity to 1.0. A candidate is a duplicate only when the best
similarity is strictly greater than the threshold.
"""
import re
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from math import atan2, cos, radians, sin, sqrt
from typing import Iterable, List, Optional, Tuple

from services.ingestion_config import MatcherSettings
from services.place_normalizer import normalize_phone, normalize_website


EARTH_RADIUS_METERS = 6371000

# Words that say nothing about which campsite a name refers to
GENERIC_NAME_TOKENS = frozenset([
    "camping",
    "campsite",
    "campsites",
    "campground",
    "campgrounds",
    "camp",
    "the",
])


def haversine_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Great-circle distance between two points.

    Args:
        lat1, lng1: Coordinates of first point (in degrees)
        lat2, lng2: Coordinates of second point (in degrees)

    Returns:
        Distance in meters
    """
    lat1, lng1, lat2, lng2 = map(radians, [lat1, lng1, lat2, lng2])

    dlat = lat2 - lat1
    dlng = lng2 - lng1

    a = sin(dlat/2)**2 + cos(lat1) * cos(lat2) * sin(dlng/2)**2
    c = 2 * atan2(sqrt(a), sqrt(1-a))

    return EARTH_RADIUS_METERS * c


def normalize_name(name: Optional[str]) -> str:
    """
    Normalize a campsite name for comparison.

    "The Pines Campground!" -> "pines"
    "Camping" -> "camping" (generic tokens kept when nothing else remains)
    """
    if not name:
        return ""
    cleaned = re.sub(r"[^\w\s]", " ", name.lower())
    tokens = cleaned.split()
    meaningful = [t for t in tokens if t not in GENERIC_NAME_TOKENS]
    return " ".join(meaningful or tokens)


def name_similarity(a: Optional[str], b: Optional[str]) -> float:
    """Similarity of two names in [0, 1]; 1.0 for an exact normalized match."""
    left = normalize_name(a)
    right = normalize_name(b)
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0
    return SequenceMatcher(None, left, right).ratio()


def compute_similarity(
    name_score: float,
    distance_meters: float,
    radius_meters: float,
    name_weight: float = 0.6,
) -> float:
    """Weighted name/proximity similarity, rounded to 6 decimals."""
    proximity = max(0.0, 1.0 - distance_meters / radius_meters)
    score = name_weight * name_score + (1.0 - name_weight) * proximity
    return round(min(1.0, max(0.0, score)), 6)


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class InventoryRecord:
    """The slice of an inventory campsite the matcher needs."""
    id: str
    name: str
    latitude: float
    longitude: float
    phone: Optional[str] = None
    website: Optional[str] = None


@dataclass(frozen=True)
class DuplicateMatch:
    matched_campsite_id: str
    matched_name: str
    similarity: float
    distance_meters: float
    name_similarity: float
    contact_match: bool = False

    def to_dict(self) -> dict:
        return {
            "matched_campsite_id": self.matched_campsite_id,
            "matched_name": self.matched_name,
            "similarity": self.similarity,
            "distance_meters": round(self.distance_meters, 2),
            "name_similarity": round(self.name_similarity, 6),
            "contact_match": self.contact_match,
        }


@dataclass(frozen=True)
class MatchOutcome:
    """Ranked matches within the radius plus the duplicate verdict."""
    matches: Tuple[DuplicateMatch, ...] = field(default_factory=tuple)
    is_duplicate: bool = False
    threshold: float = 0.80

    @property
    def best(self) -> Optional[DuplicateMatch]:
        return self.matches[0] if self.matches else None

    @property
    def matched_campsite_id(self) -> Optional[str]:
        return self.best.matched_campsite_id if self.is_duplicate else None

    @property
    def similar_count(self) -> int:
        return len(self.matches)


# =============================================================================
# MATCHING
# =============================================================================

def _contact_matches(candidate, record: InventoryRecord) -> bool:
    cand_phone = normalize_phone(getattr(candidate, "phone", None))
    if cand_phone and cand_phone == normalize_phone(record.phone):
        return True
    cand_site = normalize_website(getattr(candidate, "website", None))
    return bool(cand_site) and cand_site == normalize_website(record.website)


def _rank_key(match: DuplicateMatch):
    return (-match.similarity, match.distance_meters, match.matched_campsite_id)


def find_duplicates(
    candidate,
    inventory: Iterable[InventoryRecord],
    settings: Optional[MatcherSettings] = None,
) -> MatchOutcome:
    """
    Rank inventory records that may describe the same place as the candidate.

    Args:
        candidate: Anything with name, latitude, longitude and optional
            phone/website (NormalizedPlace or ImportCandidate)
        inventory: Records to compare against; ones outside the radius are ignored
        settings: Radius, threshold and weights (defaults when omitted)

    Returns:
        MatchOutcome ordered by similarity desc, distance asc, id asc
    """
    settings = settings or MatcherSettings()
    matches: List[DuplicateMatch] = []

    for record in inventory:
        distance = haversine_meters(
            candidate.latitude, candidate.longitude,
            record.latitude, record.longitude,
        )
        if distance > settings.radius_meters:
            continue

        name_score = name_similarity(candidate.name, record.name)
        contact = _contact_matches(candidate, record)
        if contact:
            similarity = 1.0
        else:
            similarity = compute_similarity(
                name_score, distance, settings.radius_meters, settings.name_weight,
            )

        matches.append(DuplicateMatch(
            matched_campsite_id=record.id,
            matched_name=record.name,
            similarity=similarity,
            distance_meters=distance,
            name_similarity=name_score,
            contact_match=contact,
        ))

    matches.sort(key=_rank_key)
    is_duplicate = bool(matches) and matches[0].similarity > settings.duplicate_threshold

    return MatchOutcome(
        matches=tuple(matches),
        is_duplicate=is_duplicate,
        threshold=settings.duplicate_threshold,
    )
