"""
Pydantic models for admin API request bodies.

Key features:
- Frozen models (immutable after validation)
- Auto type coercion with clear error messages
- camelCase aliases accepted alongside snake_case

Usage:
    from api.contracts.pydantic_models import RejectRequest

    body = RejectRequest.model_validate(request.get_json(silent=True) or {})
"""

from .base import BaseParamsModel
from .candidates import (
    ApproveRequest,
    BulkActionRequest,
    CampsiteEdits,
    RejectRequest,
    SyncTriggerRequest,
)

__all__ = [
    'ApproveRequest',
    'BaseParamsModel',
    'BulkActionRequest',
    'CampsiteEdits',
    'RejectRequest',
    'SyncTriggerRequest',
]
