from .base import Base
from .voice_cache import VoiceCacheEntry

__all__ = [
    "Base",
    "VoiceCacheEntry",
]
