"""
Root pytest configuration for backend tests.

Provides:
- Shared fixtures (app, client, session)
- Factories for candidates and campsites
- A fake campsite creator for review-workflow tests

Tests run against in-memory SQLite through TestConfig; production requires
PostgreSQL (see config._get_database_url).
"""

import sys
from pathlib import Path

# Add backend directory to Python path so imports like
# `from services.duplicate_matcher import ...` and `from utils.normalize import ...` work
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

import pytest


INGESTION_ENV_VARS = (
    "CANDIDATE_SYNC_ENABLED",
    "DUPLICATE_RADIUS_METERS",
    "DUPLICATE_THRESHOLD",
    "DUPLICATE_NAME_WEIGHT",
    "RATING_SATURATION_COUNT",
    "SYNC_LOCK_TTL_SECONDS",
    "SYNC_MAX_PLACES",
    "PLACES_API_KEY",
    "PLACES_QUERIES",
    "CAMPSITE_API_URL",
    "CAMPSITE_API_TOKEN",
)


class TestConfig:
    TESTING = True
    SECRET_KEY = "test-secret"
    # Flask-SQLAlchemy shares one connection for in-memory SQLite
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {}
    PLACE_SOURCE = None
    CAMPSITE_CREATOR = None
    SYNC_INLINE = True
    AUTO_CREATE_TABLES = True


class FakeCampsiteCreator:
    """Records payloads; raises the queued errors first, then returns ids."""

    def __init__(self, failures=None):
        self.calls = []
        self.failures = list(failures or [])
        self.created = {}

    def create_campsite(self, payload):
        self.calls.append(payload)
        if self.failures:
            raise self.failures.pop(0)
        candidate_id = payload["source_candidate_id"]
        return self.created.setdefault(candidate_id, f"campsite-{len(self.created) + 1}")


@pytest.fixture(autouse=True)
def clean_ingestion_env(monkeypatch):
    """Keep developer env vars from leaking into config-dependent tests."""
    for name in INGESTION_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def app():
    """Create test Flask application with a fresh schema."""
    from app import create_app
    from models.database import db

    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def session(app):
    from models.database import db
    return db.session


@pytest.fixture
def creator(app):
    fake = FakeCampsiteCreator()
    app.config["CAMPSITE_CREATOR"] = fake
    return fake


@pytest.fixture
def make_campsite(session):
    from models.campsite import Campsite

    def _make(**overrides):
        fields = {
            "name": "Pine Ridge Campground",
            "latitude": 18.7883,
            "longitude": 98.9853,
        }
        fields.update(overrides)
        campsite = Campsite(**fields)
        session.add(campsite)
        session.commit()
        return campsite

    return _make


@pytest.fixture
def make_candidate(session):
    from models.import_candidate import ImportCandidate

    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        fields = {
            "external_ref": f"place-{counter['n']}",
            "name": f"Riverside Camp {counter['n']}",
            "address": "1 River Road, Chiang Mai",
            "latitude": 18.80,
            "longitude": 98.95,
            "phone": "+66 53 000 000",
            "website": "https://riverside.example.com",
            "rating": 4.4,
            "rating_count": 25,
            "confidence_score": 0.85,
            "score_breakdown": {},
            "scoring_version": "v1",
            "validation_warnings": [],
            "place_types": ["campground"],
        }
        fields.update(overrides)
        candidate = ImportCandidate(**fields)
        session.add(candidate)
        session.commit()
        return candidate

    return _make
