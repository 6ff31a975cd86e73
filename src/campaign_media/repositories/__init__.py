"""Persistence layer for media records."""

from .interfaces import MediaRecordStore
from .media_record_repository import MediaRecordRepository, handle_sqlalchemy_errors

__all__ = ["MediaRecordRepository", "MediaRecordStore", "handle_sqlalchemy_errors"]
