"""
Tests for Candidate Ingestion Configuration

Tests kill switch, typed env getters and matcher/scorer settings.
"""

import pytest

from services.ingestion_config import (
    DEFAULT_MAX_PLACES,
    MatcherSettings,
    ScorerSettings,
    get_lock_ttl_seconds,
    get_max_places,
    is_sync_enabled,
    settings_from_app_config,
)


# =============================================================================
# Kill Switch Tests
# =============================================================================

class TestKillSwitch:
    """Tests for the CANDIDATE_SYNC_ENABLED kill switch."""

    def test_enabled_by_default(self, monkeypatch):
        """Sync should be enabled when env var not set."""
        monkeypatch.delenv('CANDIDATE_SYNC_ENABLED', raising=False)
        assert is_sync_enabled() is True

    def test_enabled_when_true(self, monkeypatch):
        monkeypatch.setenv('CANDIDATE_SYNC_ENABLED', 'true')
        assert is_sync_enabled() is True

    @pytest.mark.parametrize("value", ["false", "0", "no", "off", "disabled", "FALSE"])
    def test_disabled_values(self, monkeypatch, value):
        """Kill switch accepts the usual falsy spellings, case insensitive."""
        monkeypatch.setenv('CANDIDATE_SYNC_ENABLED', value)
        assert is_sync_enabled() is False


# =============================================================================
# Env getters
# =============================================================================

class TestEnvGetters:

    def test_max_places_default(self):
        assert get_max_places() == DEFAULT_MAX_PLACES

    def test_max_places_from_env(self, monkeypatch):
        monkeypatch.setenv('SYNC_MAX_PLACES', '250')
        assert get_max_places() == 250

    def test_invalid_value_falls_back_to_default(self, monkeypatch):
        """Garbage in the env should not crash the sync."""
        monkeypatch.setenv('SYNC_LOCK_TTL_SECONDS', 'soon')
        assert get_lock_ttl_seconds() == 900

    def test_lock_ttl_has_floor_of_one(self, monkeypatch):
        monkeypatch.setenv('SYNC_LOCK_TTL_SECONDS', '-5')
        assert get_lock_ttl_seconds() == 1


# =============================================================================
# Settings
# =============================================================================

class TestMatcherSettings:

    def test_defaults(self):
        settings = MatcherSettings()

        assert settings.radius_meters == 500.0
        assert settings.duplicate_threshold == 0.80
        assert settings.name_weight == 0.6
        assert settings.distance_weight == 0.4

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv('DUPLICATE_RADIUS_METERS', '250')
        monkeypatch.setenv('DUPLICATE_THRESHOLD', '0.9')

        settings = MatcherSettings.from_env()

        assert settings.radius_meters == 250.0
        assert settings.duplicate_threshold == 0.9

    @pytest.mark.parametrize("kwargs", [
        {"radius_meters": 0},
        {"duplicate_threshold": 1.5},
        {"name_weight": -0.1},
    ])
    def test_rejects_out_of_range(self, kwargs):
        with pytest.raises(ValueError):
            MatcherSettings(**kwargs)


class TestScorerSettings:

    def test_default_saturation(self):
        assert ScorerSettings().rating_saturation == 50

    def test_rejects_non_positive_saturation(self):
        with pytest.raises(ValueError):
            ScorerSettings(rating_saturation=0)


class TestSettingsFromAppConfig:

    def test_no_config_uses_env(self, monkeypatch):
        monkeypatch.setenv('RATING_SATURATION_COUNT', '20')

        matcher, scorer = settings_from_app_config(None)

        assert matcher == MatcherSettings()
        assert scorer.rating_saturation == 20

    def test_app_config_overrides_env(self, monkeypatch):
        monkeypatch.setenv('DUPLICATE_RADIUS_METERS', '250')

        matcher, scorer = settings_from_app_config({
            'DUPLICATE_RADIUS_METERS': 1000,
            'RATING_SATURATION_COUNT': 10,
        })

        assert matcher.radius_meters == 1000.0
        assert scorer.rating_saturation == 10
