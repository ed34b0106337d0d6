"""Infrastructure Layer: database sessions, the document store and logging setup.

Invariants:
    - Infrastructure never imports from services/ or api/
    - Every driver failure is mapped to StorageError (core/errors.py) before leaving this layer
"""
