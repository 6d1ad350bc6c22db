"""
Tests for place normalization.

Raw directory records are cleaned here before they reach the matcher, the
scorer or the candidate table.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from services.place_normalizer import (
    PlaceNormalizationError,
    RawPlace,
    collapse_whitespace,
    normalize_phone,
    normalize_place,
    normalize_website,
)


def _raw(**overrides):
    fields = dict(
        place_id="ChIJ-pine-ridge",
        name="  Pine   Ridge Campground ",
        address="Doi Suthep,\n Chiang Mai",
        latitude=18.7883,
        longitude=98.9853,
        phone="+66 (53) 111-222",
        website="https://pineridge.example.com/",
        rating=4.6,
        rating_count=42,
        types=["Campground", " lodging "],
    )
    fields.update(overrides)
    return RawPlace(**fields)


class TestFieldHelpers:

    def test_collapse_whitespace(self):
        assert collapse_whitespace("  a \n b\t c ") == "a b c"

    def test_collapse_whitespace_blank_is_none(self):
        assert collapse_whitespace("   ") is None

    def test_normalize_phone_keeps_plus(self):
        assert normalize_phone("+66 (53) 111-222") == "+6653111222"

    def test_normalize_phone_empty(self):
        assert normalize_phone("") is None

    @pytest.mark.parametrize("url,expected", [
        ("https://www.Example.com/camp/", "example.com/camp"),
        ("http://example.com", "example.com"),
        ("example.com/Camp", "example.com/camp"),
        ("WWW.EXAMPLE.COM", "example.com"),
    ])
    def test_normalize_website(self, url, expected):
        assert normalize_website(url) == expected

    def test_normalize_website_without_host(self):
        assert normalize_website("https://") is None

    @pytest.mark.parametrize("url", ["http://[broken", "https://camp.example.com]/x", "[::1"])
    def test_normalize_website_unparseable(self, url):
        assert normalize_website(url) is None


class TestRawPlace:

    def test_requires_place_id(self):
        with pytest.raises(PydanticValidationError):
            RawPlace(place_id="", name="Camp")

    def test_rejects_rating_above_five(self):
        with pytest.raises(PydanticValidationError):
            _raw(rating=7)

    def test_ignores_unknown_fields(self):
        raw = RawPlace(place_id="p-1", name="Camp", photos=["a.jpg"])
        assert not hasattr(raw, "photos")


class TestNormalizePlace:

    def test_cleans_fields(self):
        place = normalize_place(_raw())

        assert place.external_ref == "ChIJ-pine-ridge"
        assert place.name == "Pine Ridge Campground"
        assert place.address == "Doi Suthep, Chiang Mai"
        assert place.phone == "+6653111222"
        assert place.website == "https://pineridge.example.com/"
        assert place.place_types == ("campground", "lodging")
        assert place.coordinates == (18.7883, 98.9853)
        assert place.has_contact is True

    def test_missing_name(self):
        with pytest.raises(PlaceNormalizationError) as exc_info:
            normalize_place(_raw(name="   "))
        assert exc_info.value.external_ref == "ChIJ-pine-ridge"

    def test_missing_coordinates(self):
        with pytest.raises(PlaceNormalizationError, match="coordinates"):
            normalize_place(_raw(longitude=None))

    @pytest.mark.parametrize("lat,lng", [(91.0, 0.0), (0.0, -181.0)])
    def test_out_of_range_coordinates(self, lat, lng):
        with pytest.raises(PlaceNormalizationError, match="out of range"):
            normalize_place(_raw(latitude=lat, longitude=lng))

    def test_permanently_closed(self):
        with pytest.raises(PlaceNormalizationError, match="closed"):
            normalize_place(_raw(business_status="CLOSED_PERMANENTLY"))

    def test_temporarily_closed_is_kept(self):
        place = normalize_place(_raw(business_status="CLOSED_TEMPORARILY"))
        assert place.name == "Pine Ridge Campground"

    def test_no_contact(self):
        place = normalize_place(_raw(phone=None, website=None))
        assert place.has_contact is False

    def test_unparseable_website_is_dropped(self):
        place = normalize_place(_raw(website="http://[broken"))

        assert place.website is None
        assert place.phone == "+6653111222"

    def test_price_level_is_carried(self):
        assert normalize_place(_raw(price_level=3)).price_level == 3

    def test_rejects_price_level_above_four(self):
        with pytest.raises(PydanticValidationError):
            _raw(price_level=5)
