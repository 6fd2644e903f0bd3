"""Destination adapters - one transfer primitive per destination kind."""
from .base import BaseAdapter, CancelToken, UnavailableAdapter, validate_endpoint
from .builtin import BuiltinStoreAdapter
from .s3 import S3Adapter
from .factory import AdapterFactory

__all__ = [
    "AdapterFactory",
    "BaseAdapter",
    "BuiltinStoreAdapter",
    "CancelToken",
    "S3Adapter",
    "UnavailableAdapter",
    "validate_endpoint",
]
