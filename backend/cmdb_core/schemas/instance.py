"""Instance Schemas: request bodies for the instance operations.

Invariants:
    - condition and data are free-form mappings (schema-less instances)
    - Page.start >= 0, Page.limit >= 0 (0 = unlimited)
"""

from typing import Any

from pydantic import BaseModel, Field

from cmdb_core.core.instance_results import Page


class CreateOneRequest(BaseModel):
    data: dict[str, Any]


class CreateManyRequest(BaseModel):
    datas: list[dict[str, Any]] = Field(min_length=1)


class UpdateRequest(BaseModel):
    """Patch every instance matching condition."""
    condition: dict[str, Any] = Field(default_factory=dict)
    data: dict[str, Any] = Field(min_length=1)
    can_edit_all: bool = False


class PageRequest(BaseModel):
    start: int = Field(0, ge=0)
    limit: int = Field(0, ge=0)
    sort: str = ""

    def to_page(self) -> Page:
        return Page(start=self.start, limit=self.limit, sort=self.sort)


class SearchRequest(BaseModel):
    condition: dict[str, Any] = Field(default_factory=dict)
    page: PageRequest = Field(default_factory=PageRequest)
    fields: list[str] = Field(default_factory=list)


class DeleteRequest(BaseModel):
    condition: dict[str, Any] = Field(default_factory=dict)
