"""Document ORM: one schema-less document of a named collection.

Invariants:
    - collection is non-nullable and indexed: every store call targets exactly one collection
    - body holds the whole instance as JSON; field-level filtering happens in core/filter_match.py

Design Decisions:
    - Single table for every collection: object types are dynamic, tables per type would need migrations
    - id is a storage surrogate only; instance identity lives inside body (bk_host_id, bk_inst_id, ...)
"""

from sqlalchemy import Integer, String, JSON
from sqlalchemy.orm import Mapped, mapped_column

from cmdb_core.db.base import Base


class Document(Base):
    """Row-per-document storage for all collections."""
    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True,
    )
    collection: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True,
    )
    body: Mapped[dict] = mapped_column(
        JSON, nullable=False, default=dict,
    )
