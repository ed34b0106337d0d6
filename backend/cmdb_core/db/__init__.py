"""Database Infrastructure: SQLAlchemy declarative Base for the document tables."""
