"""Database models and bootstrap helpers."""

from .db_init import init_db
from .db_models import Base, MediaRecordModel

__all__ = ["Base", "MediaRecordModel", "init_db"]
