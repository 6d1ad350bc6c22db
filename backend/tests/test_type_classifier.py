"""
Tests for the keyword campsite-type suggestion.
"""

import pytest

from services.place_normalizer import NormalizedPlace
from services.type_classifier import (
    TYPE_BUNGALOW,
    TYPE_CAMPING,
    TYPE_GLAMPING,
    TYPE_TENTED_RESORT,
    classify_type,
    suggest_for,
)


@pytest.mark.parametrize("name,types,price_level,expected,confidence", [
    ("Sky Glamping Chiang Dao", [], None, TYPE_GLAMPING, 0.95),
    ("Hill View", ["glamping_site"], None, TYPE_GLAMPING, 0.95),
    ("Lakeside Bungalow", ["campground"], None, TYPE_BUNGALOW, 0.95),
    ("บังกะโล ริมน้ำ", [], None, TYPE_BUNGALOW, 0.95),
    ("Mon Jam Resort", [], None, TYPE_TENTED_RESORT, 0.9),
    ("Doi Inthanon Camping Ground", [], None, TYPE_CAMPING, 0.95),
    ("ลานกางเต็นท์ ดอยหลวง", [], None, TYPE_CAMPING, 0.95),
    ("Pine Ridge", ["campground"], None, TYPE_CAMPING, 0.85),
    ("Pine Ridge", ["campground"], 3, TYPE_GLAMPING, 0.7),
    ("Valley Stay", ["lodging"], 1, TYPE_CAMPING, 0.6),
    ("Valley Stay", ["inn"], 4, TYPE_GLAMPING, 0.6),
    ("Somewhere", ["point_of_interest"], None, TYPE_CAMPING, 0.5),
])
def test_classify_type(name, types, price_level, expected, confidence):
    suggestion = classify_type(name, types, price_level)

    assert suggestion.type_name == expected
    assert suggestion.confidence == confidence


def test_name_keywords_win_over_types():
    assert classify_type("River Resort", ["campground"], 4).type_name == TYPE_TENTED_RESORT


def test_missing_inputs_default_to_camping():
    assert classify_type(None).to_dict() == {"type_name": TYPE_CAMPING, "confidence": 0.5}


def test_suggest_for_normalized_place():
    place = NormalizedPlace(
        external_ref="p-1",
        name="Highland Camp",
        address=None,
        latitude=18.8,
        longitude=98.9,
        price_level=3,
        place_types=("campground",),
    )

    assert suggest_for(place).type_name == TYPE_GLAMPING
