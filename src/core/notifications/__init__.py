# src/core/notifications/__init__.py
"""
Домен уведомлений.
Подписки на геолокацию и рассылка push-уведомлений подписчикам.
"""

from src.core.notifications.fanout import FanoutNotifier, FanoutResult
from src.core.notifications.service import EventBusPushDispatcher, PushDispatcher, PushMessage
from src.core.notifications.subscriptions import SubscribeResult, Subscription, SubscriptionRegistry

__all__ = [
    "EventBusPushDispatcher",
    "FanoutNotifier",
    "FanoutResult",
    "PushDispatcher",
    "PushMessage",
    "SubscribeResult",
    "Subscription",
    "SubscriptionRegistry",
]
