"""
Campsite Creators - Turn an approved candidate into an inventory campsite.

The review workflow only knows the CampsiteCreator interface:

    campsite_id = creator.create_campsite(candidate.creation_payload())

payload["source_candidate_id"] is the idempotency key: creating twice for
the same candidate returns the campsite made the first time.

Implementations:
- LocalCampsiteCreator: inserts into the campsites table of this database
- HttpCampsiteCreator: POSTs to the campsite service (CAMPSITE_API_URL)
"""

import logging
import os
from typing import Any, Dict, Optional

import requests
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models.campsite import Campsite
from models.database import db
from services.ingestion_config import get_campsite_timeout

logger = logging.getLogger(__name__)


class CampsiteCreationError(Exception):
    """Campsite could not be created; the candidate stays approved."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CampsiteCreator:
    def create_campsite(self, payload: Dict[str, Any]) -> str:
        raise NotImplementedError


class LocalCampsiteCreator(CampsiteCreator):
    """Insert the campsite row directly; idempotent on source_candidate_id."""

    def __init__(self, session=None):
        self.session = session or db.session

    def _existing(self, candidate_id: str) -> Optional[Campsite]:
        return (
            self.session.query(Campsite)
            .filter(Campsite.source_candidate_id == candidate_id)
            .first()
        )

    def create_campsite(self, payload: Dict[str, Any]) -> str:
        candidate_id = payload["source_candidate_id"]
        existing = self._existing(candidate_id)
        if existing is not None:
            logger.info(f"Campsite {existing.id} already exists for candidate {candidate_id}")
            return existing.id

        campsite = Campsite(
            name=payload["name"],
            campsite_type=payload.get("campsite_type"),
            description=payload.get("description"),
            address=payload.get("address"),
            latitude=payload["latitude"],
            longitude=payload["longitude"],
            phone=payload.get("phone"),
            website=payload.get("website"),
            email=payload.get("email"),
            price_min=payload.get("price_min"),
            price_max=payload.get("price_max"),
            rating_average=payload.get("rating_average") or 0,
            review_count=payload.get("review_count") or 0,
            source_candidate_id=candidate_id,
        )
        try:
            self.session.add(campsite)
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            existing = self._existing(candidate_id)
            if existing is None:
                raise CampsiteCreationError(f"Could not insert campsite for candidate {candidate_id}")
            return existing.id
        except SQLAlchemyError as e:
            self.session.rollback()
            raise CampsiteCreationError(f"Database error creating campsite: {e}")

        logger.info(f"Created campsite {campsite.id} from candidate {candidate_id}")
        return campsite.id


class HttpCampsiteCreator(CampsiteCreator):
    """
    Client for the campsite service.

    Expects POST {base_url}/campsites to answer 200/201 with {"id": ...}
    (or {"data": {"id": ...}}). Any transport error, timeout or non-2xx
    response raises CampsiteCreationError.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_token: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or os.environ.get("CAMPSITE_API_URL") or "").rstrip("/")
        if not self.base_url:
            raise CampsiteCreationError("CAMPSITE_API_URL not configured")
        self.timeout = timeout if timeout is not None else get_campsite_timeout()
        self._session = session or requests.Session()
        token = api_token or os.environ.get("CAMPSITE_API_TOKEN")
        if token:
            self._session.headers.update({"Authorization": f"Bearer {token}"})

    def create_campsite(self, payload: Dict[str, Any]) -> str:
        candidate_id = payload["source_candidate_id"]
        try:
            response = self._session.post(
                f"{self.base_url}/campsites",
                json=payload,
                headers={"Idempotency-Key": candidate_id},
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            raise CampsiteCreationError(
                f"Campsite service timed out after {self.timeout}s"
            )
        except requests.exceptions.RequestException as e:
            raise CampsiteCreationError(f"Campsite service unreachable: {e}")

        if response.status_code not in (200, 201):
            raise CampsiteCreationError(
                f"Campsite service returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError:
            raise CampsiteCreationError("Campsite service returned invalid JSON")

        if not isinstance(body, dict):
            raise CampsiteCreationError(
                f"Campsite service returned {type(body).__name__}, expected an object"
            )
        data = body.get("data")
        campsite_id = body.get("id") or (data.get("id") if isinstance(data, dict) else None)
        if not campsite_id:
            raise CampsiteCreationError("Campsite service response has no id")

        logger.info(f"Campsite service created {campsite_id} for candidate {candidate_id}")
        return str(campsite_id)
