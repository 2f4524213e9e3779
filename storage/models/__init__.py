"""
ORM Models Package.

Only the declarative base lives here. Domain tables are defined by
the package that owns them (see cluster_alias.models) and register
on this base.
"""

from storage.models.base import Base

__all__ = ["Base"]
