"""Domain Types: object types, well-known field names and the request context.

Invariants:
    - Field and collection names match the documents persisted by the wider CMDB
    - RequestContext is immutable and passed explicitly to every operation (no global state)
    - ModelInstance is a plain dict: payloads are schema-less per object type

Design Decisions:
    - str Enums: compare equal to raw object type strings coming from the transport
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, NewType


# ─── Identity Types ──────────────────────────────────────────────

InstanceId = NewType("InstanceId", int)
ModelInstance = dict[str, Any]


# ─── Enums ───────────────────────────────────────────────────────

class ObjectType(str, Enum):
    """Built-in object types with a dedicated collection."""
    HOST = "host"
    BIZ = "biz"
    SET = "set"
    MODULE = "module"
    PLAT = "plat"
    PROCESS = "process"


class BindIPSource(str, Enum):
    """process template bind_ip values that derive from a host address."""
    INNER = "3"
    OUTER = "4"


# ─── Field Names ─────────────────────────────────────────────────

OWNER_FIELD = "bk_supplier_account"
OBJ_ID_FIELD = "bk_obj_id"
METADATA_FIELD = "metadata"
LABEL_FIELD = "label"
BIZ_ID_FIELD = "bk_biz_id"
CREATE_TIME_FIELD = "create_time"
LAST_TIME_FIELD = "last_time"

HOST_ID_FIELD = "bk_host_id"
HOST_INNER_IP_FIELD = "bk_host_innerip"
HOST_OUTER_IP_FIELD = "bk_host_outerip"

INST_ID_FIELD = "bk_inst_id"
ASST_OBJ_ID_FIELD = "bk_asst_obj_id"
ASST_INST_ID_FIELD = "bk_asst_inst_id"

PROCESS_ID_FIELD = "bk_process_id"
PROCESS_TEMPLATE_ID_FIELD = "bk_process_template_id"
TEMPLATE_ID_FIELD = "id"
BIND_IP_FIELD = "bind_ip"


# ─── Collections ─────────────────────────────────────────────────

PROCESS_INSTANCE_RELATION_COLLECTION = "cc_ProcessInstanceRelation"
PROCESS_TEMPLATE_COLLECTION = "cc_ProcessTemplate"
PROCESS_COLLECTION = "cc_Process"
ASSOCIATION_COLLECTION = "cc_InstAsst"
ATTRIBUTE_COLLECTION = "cc_ObjAttDes"


@dataclass(frozen=True)
class RequestContext:
    """Request-scoped caller identity: tenant, trace id, locale."""
    owner_id: str
    request_id: str
    locale: str = "en"
