"""
Confidence Scorer - Deterministic quality score for import candidates.

Version v1 is a weighted sum of three signals, each in [0, 1]:

    completeness   (0.5)  address, coordinates, any contact method
    rating volume  (0.3)  min(1, rating_count / saturation)
    text quality   (0.2)  sane name length, no placeholder tokens

No randomness and no clock: the same candidate fields always produce the
same score. Change SCORING_VERSION whenever a weight or signal changes so
stored scores can be told apart.
"""
import re
from dataclasses import dataclass
from typing import List, Optional

from services.ingestion_config import ScorerSettings


SCORING_VERSION = "v1"

WEIGHT_COMPLETENESS = 0.5
WEIGHT_RATING_VOLUME = 0.3
WEIGHT_TEXT_QUALITY = 0.2

NAME_MIN_LENGTH = 3
NAME_MAX_LENGTH = 120

PLACEHOLDER_TOKENS = frozenset([
    "test",
    "unnamed",
    "unknown",
    "n/a",
    "tbd",
    "placeholder",
    "untitled",
    "sample",
])

LOW_RATING_THRESHOLD = 3.0


@dataclass(frozen=True)
class ScoreBreakdown:
    completeness: float
    rating_volume: float
    text_quality: float
    score: float
    version: str = SCORING_VERSION

    def to_dict(self) -> dict:
        return {
            "completeness": self.completeness,
            "rating_volume": self.rating_volume,
            "text_quality": self.text_quality,
            "score": self.score,
            "version": self.version,
        }


# =============================================================================
# SIGNALS
# =============================================================================

def _present(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def completeness_signal(candidate) -> float:
    checks = [
        _present(getattr(candidate, "address", None)),
        candidate.latitude is not None and candidate.longitude is not None,
        _present(getattr(candidate, "phone", None)) or _present(getattr(candidate, "website", None)),
    ]
    return sum(1.0 for ok in checks if ok) / len(checks)


def rating_volume_signal(rating_count: Optional[int], saturation: int) -> float:
    if not rating_count or rating_count < 0:
        return 0.0
    return min(1.0, rating_count / saturation)


def _has_placeholder(name: str) -> bool:
    lowered = name.lower()
    if "n/a" in lowered:
        return True
    words = set(re.findall(r"[a-z]+", lowered))
    return bool(words & PLACEHOLDER_TOKENS)


def text_quality_signal(name: Optional[str]) -> float:
    text = (name or "").strip()
    length_ok = (
        NAME_MIN_LENGTH <= len(text) <= NAME_MAX_LENGTH
        and any(ch.isalpha() for ch in text)
    )
    no_placeholder = bool(text) and not _has_placeholder(text)
    return (float(length_ok) + float(no_placeholder)) / 2


# =============================================================================
# PUBLIC API
# =============================================================================

def score_candidate(candidate, settings: Optional[ScorerSettings] = None) -> ScoreBreakdown:
    """
    Score a candidate (NormalizedPlace or ImportCandidate).

    Returns:
        ScoreBreakdown with every signal, clamped and rounded to 4 decimals
    """
    settings = settings or ScorerSettings()

    completeness = completeness_signal(candidate)
    rating_volume = rating_volume_signal(
        getattr(candidate, "rating_count", None), settings.rating_saturation,
    )
    text_quality = text_quality_signal(candidate.name)

    raw = (
        WEIGHT_COMPLETENESS * completeness
        + WEIGHT_RATING_VOLUME * rating_volume
        + WEIGHT_TEXT_QUALITY * text_quality
    )
    score = round(min(1.0, max(0.0, raw)), 4)

    return ScoreBreakdown(
        completeness=round(completeness, 4),
        rating_volume=round(rating_volume, 4),
        text_quality=round(text_quality, 4),
        score=score,
    )


def build_validation_warnings(candidate, similar_count: int = 0) -> List[str]:
    """Human-readable warnings shown next to a candidate in the review queue."""
    warnings = []
    if not _present(getattr(candidate, "phone", None)):
        warnings.append("Missing phone number")
    if not _present(getattr(candidate, "website", None)):
        warnings.append("Missing website")
    rating = getattr(candidate, "rating", None)
    if rating is None or rating < LOW_RATING_THRESHOLD:
        warnings.append("Low or missing rating")
    if similar_count > 0:
        warnings.append(f"{similar_count} similar campsite(s) found")
    return warnings
