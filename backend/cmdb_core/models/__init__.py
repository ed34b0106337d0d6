"""ORM Models: SQLAlchemy declarative models behind the document store.

Invariants:
    - All models inherit from Base (db/base.py)
    - All models imported here so Base.metadata is complete before create_all
"""

from cmdb_core.models.document import Document  # noqa: F401
from cmdb_core.models.sequence import Sequence  # noqa: F401
