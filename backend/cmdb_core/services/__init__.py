"""Services Layer: instance CRUD orchestration and the collaborators it is wired with.

Invariants:
    - Services depend on core/ Protocols, never on a concrete store class
    - Post-update side effects use an explicit object type -> hook mapping (no auto-discovery)
"""
