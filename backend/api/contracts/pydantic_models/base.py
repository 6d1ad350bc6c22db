"""
Base Pydantic model for all admin API request bodies.

Key features:
- frozen=True: Immutable after validation (prevents downstream mutation)
- populate_by_name=True: Accept both alias (camelCase) and field name
- extra='ignore': Ignore undeclared fields (safe)
"""

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError


class BaseParamsModel(BaseModel):
    """
    Base model for all request schemas.

    All body models inherit from this to ensure consistent behavior:
    - Frozen after creation (immutable)
    - Whitespace stripped from strings
    - Both alias and field name accepted
    - Unknown fields ignored
    """
    model_config = ConfigDict(
        frozen=True,  # Immutable after normalization
        str_strip_whitespace=True,  # Strip whitespace from strings
        populate_by_name=True,  # Accept both alias and field name
        extra='ignore',  # Ignore undeclared fields
    )


def summarize_errors(error: PydanticValidationError) -> List[Dict[str, Any]]:
    """Compact, JSON-safe view of pydantic errors for the error envelope."""
    return [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())),
            "message": err.get("msg"),
        }
        for err in error.errors()
    ]
