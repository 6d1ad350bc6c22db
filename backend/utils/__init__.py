"""
Utility modules for the backend.
"""
from .normalize import (
    ValidationError,
    to_int,
    to_float,
    to_bool,
    to_choice,
    validation_error_response,
)

__all__ = [
    'ValidationError',
    'to_int',
    'to_float',
    'to_bool',
    'to_choice',
    'validation_error_response',
]
