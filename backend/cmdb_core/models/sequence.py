"""Sequence ORM: monotonically increasing identity allocator per collection."""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from cmdb_core.db.base import Base


class Sequence(Base):
    __tablename__ = "sequences"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
