"""Pydantic Schemas: request validation for the instance API.

Invariants:
    - Schemas validate envelope shape only; instance payloads stay free-form dicts
"""
