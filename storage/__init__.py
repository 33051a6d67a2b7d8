"""
Persistent storage for location records.

``LocationStore`` is the contract the service depends on;
``SQLLocationStore`` implements it on a SQLAlchemy async engine.
"""

from storage.base import LocationStore, StoreError
from storage.sql_store import SQLLocationStore, locations_table, metadata

__all__ = [
    "LocationStore",
    "StoreError",
    "SQLLocationStore",
    "locations_table",
    "metadata",
]
