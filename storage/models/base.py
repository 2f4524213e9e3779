"""
Base ORM Model.

============================================================
PURPOSE
============================================================
Provides the declarative base shared by every ORM model of the
cluster alias directory.

============================================================
COMPONENTS
============================================================
- Base: SQLAlchemy declarative base for all models

============================================================
"""

from datetime import datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Declarative base for all ORM models.

    Alias tables and the discovery tables they are derived from
    register on the same metadata, so a single create_all() builds
    the whole schema.
    """

    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }
