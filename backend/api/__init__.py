"""
API package - HTTP boundary of the candidate review service.

This package provides:
- Pydantic request-body models (api.contracts.pydantic_models)
- Global middleware (request_id, error_envelope, request_logging)
"""
