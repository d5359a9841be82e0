"""
Notification dispatch engine.

Turns change events from the practice database into per-user
notifications: dedup, message building, recipient resolution,
preference evaluation and delivery routing.

Usage:
    from notification import NotificationDispatchService

    service = NotificationDispatchService.from_config(config)
    result = service.handle(body)
"""

from notification.events import (
    ChangeEvent,
    NotificationPayload,
    NotificationCategory,
    NotificationPriority,
    Operation,
    DispatchError,
    MalformedEventError,
    ProviderError,
)

from notification.tracker import EventDedupGuard, generate_dedup_key

from notification.message_builder import NotificationMessageBuilder, RecordLookup

from notification.recipients import RecipientResolver

from notification.preferences import PreferenceEngine, DeliveryDecision, UserPreferences

from notification.channels import NotificationChannel, PushProviderChannel, DirectWriteChannel

from notification.service import (
    NotificationDispatchService,
    DeliveryRouter,
    DispatchResult,
    enqueue_change_event,
    process_change_event_task,
)

__all__ = [
    # Events
    'ChangeEvent',
    'NotificationPayload',
    'NotificationCategory',
    'NotificationPriority',
    'Operation',
    'DispatchError',
    'MalformedEventError',
    'ProviderError',
    # Pipeline stages
    'EventDedupGuard',
    'generate_dedup_key',
    'NotificationMessageBuilder',
    'RecordLookup',
    'RecipientResolver',
    'PreferenceEngine',
    'DeliveryDecision',
    'UserPreferences',
    # Channels
    'NotificationChannel',
    'PushProviderChannel',
    'DirectWriteChannel',
    # Service
    'NotificationDispatchService',
    'DeliveryRouter',
    'DispatchResult',
    'enqueue_change_event',
    'process_change_event_task',
]
