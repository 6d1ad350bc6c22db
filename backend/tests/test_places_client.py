"""
Tests for the place sources.

The Google Places client is exercised against a mocked requests session;
nothing here talks to the real API.
"""

import pytest
from unittest.mock import MagicMock, Mock, patch

import requests

from services.place_normalizer import RawPlace
from services.places_client import (
    DEFAULT_QUERIES,
    MAX_RETRIES,
    PLACES_SEARCH_URL,
    GooglePlacesSource,
    PlaceSourceError,
    StaticPlaceSource,
)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def sample_search_response():
    """Sample Places API (New) text search response."""
    return {
        "places": [
            {
                "id": "ChIJ-doi-inthanon",
                "displayName": {"text": "Doi Inthanon Camping Ground", "languageCode": "en"},
                "formattedAddress": "Ban Luang, Chom Thong, Chiang Mai 50160",
                "location": {"latitude": 18.5885, "longitude": 98.4867},
                "internationalPhoneNumber": "+66 53 286 729",
                "websiteUri": "https://www.dnp.go.th/",
                "rating": 4.5,
                "userRatingCount": 812,
                "priceLevel": "PRICE_LEVEL_INEXPENSIVE",
                "types": ["campground", "point_of_interest"],
                "businessStatus": "OPERATIONAL",
            },
            {
                # No id: dropped by validation
                "displayName": {"text": "Nameless"},
                "location": {"latitude": 18.0, "longitude": 98.0},
            },
        ]
    }


def _response(payload=None, status_code=200):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload if payload is not None else {}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status_code} error")
    return response


@pytest.fixture
def http_session():
    return MagicMock()


# =============================================================================
# StaticPlaceSource
# =============================================================================

class TestStaticPlaceSource:

    def test_yields_batches_in_order(self):
        source = StaticPlaceSource([[{"place_id": "a"}], [{"place_id": "b"}]])
        assert list(source.fetch_batches()) == [[{"place_id": "a"}], [{"place_id": "b"}]]

    def test_raises_queued_exception(self):
        source = StaticPlaceSource([[{"place_id": "a"}], PlaceSourceError("boom")])
        batches = source.fetch_batches()

        assert next(batches) == [{"place_id": "a"}]
        with pytest.raises(PlaceSourceError, match="boom"):
            next(batches)

    def test_from_records_chunks(self):
        records = [{"place_id": str(i)} for i in range(5)]

        batches = list(StaticPlaceSource.from_records(records, batch_size=2).fetch_batches())

        assert [len(b) for b in batches] == [2, 2, 1]


# =============================================================================
# GooglePlacesSource
# =============================================================================

class TestGooglePlacesSourceInit:

    def test_requires_api_key(self):
        with pytest.raises(PlaceSourceError, match="PLACES_API_KEY"):
            GooglePlacesSource()

    def test_reads_key_and_queries_from_env(self, monkeypatch, http_session):
        monkeypatch.setenv("PLACES_API_KEY", "env-key")
        monkeypatch.setenv("PLACES_QUERIES", "glamping Pai, campsite Nan ,")

        source = GooglePlacesSource(session=http_session)

        assert source.api_key == "env-key"
        assert source.queries == ["glamping Pai", "campsite Nan"]

    def test_default_queries(self, http_session):
        source = GooglePlacesSource(api_key="k", session=http_session)
        assert source.queries == DEFAULT_QUERIES

    def test_sets_auth_and_field_mask_headers(self, http_session):
        GooglePlacesSource(api_key="secret", session=http_session)

        headers = http_session.headers.update.call_args[0][0]
        assert headers["X-Goog-Api-Key"] == "secret"
        assert "places.location" in headers["X-Goog-FieldMask"]


class TestGooglePlacesSearch:

    def test_maps_places(self, http_session, sample_search_response):
        http_session.post.return_value = _response(sample_search_response)
        source = GooglePlacesSource(api_key="k", timeout=5, session=http_session)

        places = source.search("campsite Chiang Mai")

        assert len(places) == 1
        place = places[0]
        assert isinstance(place, RawPlace)
        assert place.place_id == "ChIJ-doi-inthanon"
        assert place.name == "Doi Inthanon Camping Ground"
        assert place.latitude == 18.5885
        assert place.rating_count == 812
        assert place.price_level == 1
        assert place.types == ["campground", "point_of_interest"]

        args, kwargs = http_session.post.call_args
        assert args[0] == PLACES_SEARCH_URL
        assert kwargs["json"]["textQuery"] == "campsite Chiang Mai"
        assert kwargs["timeout"] == 5

    def test_malformed_places_are_logged(self, http_session, sample_search_response, caplog):
        http_session.post.return_value = _response(sample_search_response)
        source = GooglePlacesSource(api_key="k", session=http_session)

        source.search("campsite")

        assert "Dropping malformed place" in caplog.text

    def test_empty_response(self, http_session):
        http_session.post.return_value = _response({})
        source = GooglePlacesSource(api_key="k", session=http_session)

        assert source.search("nothing here") == []

    @patch("services.places_client.time.sleep")
    def test_retries_then_succeeds(self, mock_sleep, http_session, sample_search_response):
        http_session.post.side_effect = [
            requests.exceptions.ConnectionError("reset"),
            _response(sample_search_response),
        ]
        source = GooglePlacesSource(api_key="k", session=http_session)

        assert len(source.search("campsite")) == 1
        assert mock_sleep.call_count == 1

    @patch("services.places_client.time.sleep")
    def test_gives_up_after_retries(self, mock_sleep, http_session):
        http_session.post.return_value = _response(status_code=503)
        source = GooglePlacesSource(api_key="k", session=http_session)

        with pytest.raises(PlaceSourceError, match="failed after"):
            source.search("campsite")

        assert http_session.post.call_count == MAX_RETRIES
        assert mock_sleep.call_count == MAX_RETRIES - 1

    def test_invalid_json(self, http_session):
        response = _response()
        response.json.side_effect = ValueError("not json")
        http_session.post.return_value = response
        source = GooglePlacesSource(api_key="k", session=http_session)

        with pytest.raises(PlaceSourceError, match="invalid JSON"):
            source.search("campsite")

    def test_one_batch_per_query(self, http_session, sample_search_response):
        http_session.post.return_value = _response(sample_search_response)
        source = GooglePlacesSource(api_key="k", queries=["a", "b"], session=http_session)

        batches = list(source.fetch_batches())

        assert len(batches) == 2
        queries = [c.kwargs["json"]["textQuery"] for c in http_session.post.call_args_list]
        assert queries == ["a", "b"]
