"""Boundary Protocols: contracts between the instance core and its collaborators.

Invariants:
    - Core NEVER imports from services/, infrastructure/ or api/: dependency arrows point inward
    - All IO goes through these Protocol types; implementations are injected by the shell
    - Failures are raised, never returned: InstanceValidationError from the gateway,
      StorageError from the store and the association guard

Design Decisions:
    - Protocol over ABC: structural subtyping, fakes in tests need no inheritance
    - Async in Protocol: implementations do IO; the pure helpers in core/ stay synchronous
"""

from typing import Any, Protocol, Sequence

from cmdb_core.core.domain_types import InstanceId, ModelInstance, RequestContext


class DocumentStore(Protocol):
    """Generic document operations over named collections."""
    async def find(
        self,
        collection: str,
        condition: dict[str, Any],
        *,
        start: int = 0,
        limit: int = 0,
        sort: str = "",
        fields: Sequence[str] = (),
    ) -> list[ModelInstance]: ...
    async def count(self, collection: str, condition: dict[str, Any]) -> int: ...
    async def insert(self, collection: str, document: ModelInstance) -> None: ...
    async def update(
        self, collection: str, condition: dict[str, Any], data: dict[str, Any],
    ) -> int: ...
    async def delete(self, collection: str, condition: dict[str, Any]) -> int: ...
    async def next_sequence(self, name: str) -> int: ...


class ValidationGateway(Protocol):
    """Decides whether instance field values are acceptable for an object type."""
    async def validate_create(
        self, ctx: RequestContext, object_type: str, data: ModelInstance,
    ) -> None: ...
    async def validate_update(
        self,
        ctx: RequestContext,
        object_type: str,
        patch: dict[str, Any],
        label: dict[str, str],
        original: ModelInstance,
        can_edit_all: bool,
    ) -> None: ...


class AssociationGuard(Protocol):
    """Tracks associations that reference an instance."""
    async def exists(self, ctx: RequestContext, object_type: str, inst_id: InstanceId) -> bool: ...
    async def delete_all(self, ctx: RequestContext, object_type: str, inst_id: InstanceId) -> int: ...
