"""SQLAlchemy ORM models — one file per table."""

from scansentinel.models.scan import Scan

__all__ = [
    "Scan",
]
