"""API Layer: FastAPI routes, request context dependencies and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - Thin routes delegate to InstanceService
"""
