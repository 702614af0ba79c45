"""
Intent stores.
"""
from .base import IntentStore
from .memory import MemoryIntentStore
from .file import FileIntentStore

__all__ = ["IntentStore", "MemoryIntentStore", "FileIntentStore"]
