"""
Type Classifier - Suggests a campsite type from a place's name and directory types.

Keyword rules only; the result is a suggestion shown to the reviewer and
carried into the campsite payload, where an approve-time edit can override it.

Rules, first hit wins:
    name mentions glamping (or type glamping_site)  -> Glamping      0.95
    name mentions bungalow                          -> Bungalow      0.95
    name mentions resort                            -> Tented Resort 0.90
    name mentions camping / tent ground             -> Camping       0.95
    type campground                                 -> Camping 0.85, Glamping 0.70 if pricey
    type lodging / inn                              -> Camping 0.60, Glamping 0.60 if pricey
    otherwise                                       -> Camping       0.50
"""
from dataclasses import dataclass
from typing import Iterable, Optional


TYPE_CAMPING = "Camping"
TYPE_GLAMPING = "Glamping"
TYPE_TENTED_RESORT = "Tented Resort"
TYPE_BUNGALOW = "Bungalow"

CAMPSITE_TYPES = (TYPE_CAMPING, TYPE_GLAMPING, TYPE_TENTED_RESORT, TYPE_BUNGALOW)

# Price level (0-4) from which a campground or lodging reads as glamping
PRICEY_LEVEL = 3

GLAMPING_KEYWORDS = ("glamping",)
BUNGALOW_KEYWORDS = ("bungalow", "บังกะโล")
RESORT_KEYWORDS = ("resort", "รีสอร์ท")
CAMPING_KEYWORDS = ("camping", "แคมป์ปิ้ง", "ลานกางเต็นท์")


@dataclass(frozen=True)
class TypeSuggestion:
    type_name: str
    confidence: float

    def to_dict(self) -> dict:
        return {"type_name": self.type_name, "confidence": self.confidence}


def _mentions(name: str, keywords) -> bool:
    return any(keyword in name for keyword in keywords)


def classify_type(
    name: Optional[str],
    place_types: Optional[Iterable[str]] = None,
    price_level: Optional[int] = None,
) -> TypeSuggestion:
    """Suggest a campsite type. Deterministic: same inputs, same suggestion."""
    lowered = (name or "").lower()
    types = {t.lower() for t in (place_types or ())}
    pricey = price_level is not None and price_level >= PRICEY_LEVEL

    if _mentions(lowered, GLAMPING_KEYWORDS) or "glamping_site" in types:
        return TypeSuggestion(TYPE_GLAMPING, 0.95)
    if _mentions(lowered, BUNGALOW_KEYWORDS):
        return TypeSuggestion(TYPE_BUNGALOW, 0.95)
    if _mentions(lowered, RESORT_KEYWORDS):
        return TypeSuggestion(TYPE_TENTED_RESORT, 0.9)
    if _mentions(lowered, CAMPING_KEYWORDS):
        return TypeSuggestion(TYPE_CAMPING, 0.95)

    if "campground" in types:
        return TypeSuggestion(TYPE_GLAMPING, 0.7) if pricey else TypeSuggestion(TYPE_CAMPING, 0.85)
    if "lodging" in types or "inn" in types:
        return TypeSuggestion(TYPE_GLAMPING if pricey else TYPE_CAMPING, 0.6)

    return TypeSuggestion(TYPE_CAMPING, 0.5)


def suggest_for(subject) -> TypeSuggestion:
    """classify_type() for a NormalizedPlace or ImportCandidate."""
    return classify_type(
        getattr(subject, "name", None),
        getattr(subject, "place_types", None),
        getattr(subject, "price_level", None),
    )
