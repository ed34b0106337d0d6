"""Instance Results: return shapes of the CRUD operations.

Invariants:
    - CreateManyResult.exceptions are ordered by origin_index (items processed sequentially)
    - to_dict() output is JSON-serializable
"""

from dataclasses import dataclass, field, asdict
from typing import Any


@dataclass
class Page:
    """Pagination and ordering for search. limit == 0 means no limit."""
    start: int = 0
    limit: int = 0
    sort: str = ""


@dataclass
class CreateOneResult:
    id: int

    def to_dict(self) -> dict:
        return {"created": {"id": self.id}}


@dataclass
class ExceptionRecord:
    """One failed item of a bulk create."""
    origin_index: int
    message: str
    code: str
    data: dict[str, Any]


@dataclass
class CreateManyResult:
    created: list[int] = field(default_factory=list)
    exceptions: list[ExceptionRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "created": [{"id": i} for i in self.created],
            "exceptions": [asdict(e) for e in self.exceptions],
        }


@dataclass
class QueryResult:
    count: int = 0
    info: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"count": self.count, "info": self.info}
