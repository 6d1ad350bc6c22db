"""
Candidate Ingestion Configuration - Environment-based settings and kill switch

Environment Variables:
    CANDIDATE_SYNC_ENABLED: 'true' or 'false' (default: 'true')
        Kill switch to disable sync. Set to 'false' to reject sync triggers.

    DUPLICATE_RADIUS_METERS: float (default: 500)
        Inventory records farther than this are never considered duplicates.

    DUPLICATE_THRESHOLD: float (default: 0.80)
        A best match must score strictly above this to flag a duplicate.

    DUPLICATE_NAME_WEIGHT: float (default: 0.6)
        Weight of name similarity; distance gets (1 - name weight).

    RATING_SATURATION_COUNT: int (default: 50)
        Rating count at which the rating-volume signal saturates at 1.0.

    SYNC_LOCK_TTL_SECONDS: int (default: 900)
        Lease length of the sync lock; renewed after every batch.

    SYNC_MAX_PLACES: int (default: 5000)
        Upper bound on raw records read per sync run.

    PLACES_API_TIMEOUT_SECONDS / CAMPSITE_API_TIMEOUT_SECONDS: float (default: 10)
        Timeouts for the two external collaborators.
"""

import logging
import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)


DEFAULT_RADIUS_METERS = 500.0
DEFAULT_DUPLICATE_THRESHOLD = 0.80
DEFAULT_NAME_WEIGHT = 0.6
DEFAULT_RATING_SATURATION = 50
DEFAULT_LOCK_TTL_SECONDS = 900
DEFAULT_MAX_PLACES = 5000
DEFAULT_TIMEOUT_SECONDS = 10.0

SYNC_LOCK_NAME = "candidate_sync"


# =============================================================================
# Kill Switch
# =============================================================================

def is_sync_enabled() -> bool:
    """
    Check if candidate sync is enabled.

    Environment:
        CANDIDATE_SYNC_ENABLED: 'true' (default) or 'false'
    """
    enabled = os.environ.get('CANDIDATE_SYNC_ENABLED', 'true').lower()
    if enabled in ('false', '0', 'no', 'off', 'disabled'):
        logger.warning("Candidate sync is DISABLED via CANDIDATE_SYNC_ENABLED=false")
        return False
    return True


# =============================================================================
# Typed getters
# =============================================================================

def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}, defaulting to {default}")
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}, defaulting to {default}")
        return default


def get_lock_ttl_seconds() -> int:
    return max(1, _env_int('SYNC_LOCK_TTL_SECONDS', DEFAULT_LOCK_TTL_SECONDS))


def get_max_places() -> int:
    return max(1, _env_int('SYNC_MAX_PLACES', DEFAULT_MAX_PLACES))


def get_places_timeout() -> float:
    return _env_float('PLACES_API_TIMEOUT_SECONDS', DEFAULT_TIMEOUT_SECONDS)


def get_campsite_timeout() -> float:
    return _env_float('CAMPSITE_API_TIMEOUT_SECONDS', DEFAULT_TIMEOUT_SECONDS)


# =============================================================================
# Matcher / scorer settings
# =============================================================================

@dataclass(frozen=True)
class MatcherSettings:
    """Duplicate matcher parameters. Weights must sum to 1."""
    radius_meters: float = DEFAULT_RADIUS_METERS
    duplicate_threshold: float = DEFAULT_DUPLICATE_THRESHOLD
    name_weight: float = DEFAULT_NAME_WEIGHT

    def __post_init__(self):
        if self.radius_meters <= 0:
            raise ValueError("radius_meters must be positive")
        if not 0.0 <= self.duplicate_threshold <= 1.0:
            raise ValueError("duplicate_threshold must be within [0, 1]")
        if not 0.0 <= self.name_weight <= 1.0:
            raise ValueError("name_weight must be within [0, 1]")

    @property
    def distance_weight(self) -> float:
        return round(1.0 - self.name_weight, 6)

    @classmethod
    def from_env(cls) -> "MatcherSettings":
        return cls(
            radius_meters=_env_float('DUPLICATE_RADIUS_METERS', DEFAULT_RADIUS_METERS),
            duplicate_threshold=_env_float('DUPLICATE_THRESHOLD', DEFAULT_DUPLICATE_THRESHOLD),
            name_weight=_env_float('DUPLICATE_NAME_WEIGHT', DEFAULT_NAME_WEIGHT),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ScorerSettings:
    rating_saturation: int = DEFAULT_RATING_SATURATION

    def __post_init__(self):
        if self.rating_saturation <= 0:
            raise ValueError("rating_saturation must be positive")

    @classmethod
    def from_env(cls) -> "ScorerSettings":
        return cls(
            rating_saturation=_env_int('RATING_SATURATION_COUNT', DEFAULT_RATING_SATURATION),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def settings_from_app_config(config: Optional[Mapping[str, Any]] = None):
    """
    Build (MatcherSettings, ScorerSettings), letting Flask config keys
    override the environment.

    Keys: DUPLICATE_RADIUS_METERS, DUPLICATE_THRESHOLD, DUPLICATE_NAME_WEIGHT,
    RATING_SATURATION_COUNT.
    """
    matcher = MatcherSettings.from_env()
    scorer = ScorerSettings.from_env()
    if not config:
        return matcher, scorer

    matcher = MatcherSettings(
        radius_meters=float(config.get('DUPLICATE_RADIUS_METERS', matcher.radius_meters)),
        duplicate_threshold=float(config.get('DUPLICATE_THRESHOLD', matcher.duplicate_threshold)),
        name_weight=float(config.get('DUPLICATE_NAME_WEIGHT', matcher.name_weight)),
    )
    scorer = ScorerSettings(
        rating_saturation=int(config.get('RATING_SATURATION_COUNT', scorer.rating_saturation)),
    )
    return matcher, scorer
