# src/core/realtime/__init__.py
"""
Realtime-зеркало геолокации для live-клиентов.
"""

from src.core.realtime.bridge import RealtimeBridge
from src.core.realtime.store import RealtimeStore, RedisRealtimeStore

__all__ = [
    "RealtimeBridge",
    "RealtimeStore",
    "RedisRealtimeStore",
]
