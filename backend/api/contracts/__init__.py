"""
Request contracts for the admin API.

Bodies are validated with the pydantic models in pydantic_models/; query
strings go through utils.normalize.
"""
