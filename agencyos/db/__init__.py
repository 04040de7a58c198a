"""Database package"""

from agencyos.db.session import AsyncSessionLocal, engine, get_db
from agencyos.models.base import Base

__all__ = ["Base", "AsyncSessionLocal", "engine", "get_db"]
