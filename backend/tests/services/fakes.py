"""Test doubles shared by service and API tests.

Design Decisions:
    - FakeValidator keys off payload markers: "invalid" rejects a create,
      "locked" on an original rejects an update unless can_edit_all
"""

from cmdb_core.core.domain_types import RequestContext
from cmdb_core.core.errors import InstanceValidationError


TENANT_A = RequestContext(owner_id="tenant-a", request_id="req-a")
TENANT_B = RequestContext(owner_id="tenant-b", request_id="req-b")


class FakeValidator:
    """Records every call; rejects payloads carrying marker fields."""

    def __init__(self):
        self.create_calls: list[dict] = []
        self.update_calls: list[dict] = []

    async def validate_create(self, ctx, object_type, data):
        self.create_calls.append(data)
        if data.get("invalid"):
            raise InstanceValidationError("item marked invalid", "invalid")

    async def validate_update(self, ctx, object_type, patch, label, original, can_edit_all):
        self.update_calls.append({
            "patch": patch, "label": label,
            "original": original, "can_edit_all": can_edit_all,
        })
        # mutating the copy must never leak into the store or other calls
        original["mutated_by_validator"] = True
        if original.get("locked") and not can_edit_all:
            raise InstanceValidationError("instance is locked", "locked")
