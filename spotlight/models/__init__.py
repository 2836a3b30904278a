"""Persistence layer: SQLAlchemy models and the shared DBStorage instance.

The application factory binds `storage` to the configured database and
creates the tables; until then it points at DATABASE_URL lazily.
"""
from spotlight.models.db_storage import DBStorage

storage = DBStorage()
