"""
Database Module
"""
from .connection import init_database, close_database, get_engine, check_database_health
from .models import Base

__all__ = [
    "init_database",
    "close_database",
    "get_engine",
    "check_database_health",
    "Base",
]
