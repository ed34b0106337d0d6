"""CMDB Instance Core: tenant-scoped CRUD for dynamically typed model instances.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
