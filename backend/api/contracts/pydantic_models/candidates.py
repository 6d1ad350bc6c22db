"""
Pydantic models for /api/admin/candidates/* request bodies.

Endpoints:
- candidates/<id>/approve
- candidates/<id>/reject
- candidates/bulk
- candidates/sync
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import ConfigDict, Field, field_validator, model_validator

from services.place_normalizer import normalize_website
from services.type_classifier import CAMPSITE_TYPES

from .base import BaseParamsModel


EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


class RejectRequest(BaseParamsModel):
    """Body of POST /candidates/<id>/reject."""

    reason: str = Field(
        min_length=1,
        max_length=500,
        description="Why the candidate is not a campsite we want"
    )
    notes: Optional[str] = Field(
        default=None,
        max_length=2000,
        description="Free-text reviewer notes"
    )


class CampsiteEdits(BaseParamsModel):
    """Admin overrides applied to the campsite created on approval."""
    # unknown edit fields are a 400
    model_config = ConfigDict(extra='forbid')

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    address: Optional[str] = Field(default=None, min_length=1, max_length=500)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, max_length=255, pattern=EMAIL_PATTERN)
    website: Optional[str] = Field(default=None, max_length=500)
    price_min: Optional[int] = Field(default=None, ge=0, alias="priceMin")
    price_max: Optional[int] = Field(default=None, ge=0, alias="priceMax")
    campsite_type: Optional[Literal[CAMPSITE_TYPES]] = Field(default=None, alias="campsiteType")

    @field_validator('website')
    @classmethod
    def website_is_http_url(cls, v):
        if v is None:
            return v
        if not v.lower().startswith(("http://", "https://")) or normalize_website(v) is None:
            raise ValueError("website must be an http(s) URL with a host")
        return v

    @model_validator(mode='after')
    def price_range_ordered(self):
        if self.price_min is not None and self.price_max is not None and self.price_min > self.price_max:
            raise ValueError("price_min must not exceed price_max")
        return self

    def changes(self) -> Dict[str, Any]:
        """Only the fields the admin actually set."""
        return self.model_dump(exclude_none=True)


class ApproveRequest(BaseParamsModel):
    """Body of POST /candidates/<id>/approve. Empty body means no edits."""

    edits: Optional[CampsiteEdits] = None


class BulkActionRequest(BaseParamsModel):
    """Body of POST /candidates/bulk."""

    ids: List[str] = Field(
        min_length=1,
        max_length=100,
        description="Candidate ids, processed in order"
    )
    action: Literal["approve", "reject"]
    reason: Optional[str] = Field(
        default=None,
        max_length=500,
        description="Shared rejection reason (required for reject)"
    )
    notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator('ids')
    @classmethod
    def ids_not_blank(cls, v):
        if any(not item or not item.strip() for item in v):
            raise ValueError("ids must not contain blank values")
        return [item.strip() for item in v]


class SyncTriggerRequest(BaseParamsModel):
    """Body of POST /candidates/sync. Empty body means defaults."""

    max_places: Optional[int] = Field(
        default=None,
        alias="maxPlaces",
        ge=1,
        le=50000,
        description="Upper bound on raw records read in this run"
    )
