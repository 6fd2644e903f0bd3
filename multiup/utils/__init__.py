"""Shared helpers."""
from .events import EventEmitter
from .naming import build_object_key, sanitize_file_name, submission_timestamp

__all__ = ["EventEmitter", "build_object_key", "sanitize_file_name", "submission_timestamp"]
