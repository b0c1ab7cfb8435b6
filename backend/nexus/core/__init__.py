"""
Nexus PM - Core Package
=======================

Configuration, persistence, schemas and the planning domain.
"""

from nexus.core.config import settings
from nexus.core.database import Base, get_db_session

__all__ = ["Base", "get_db_session", "settings"]
