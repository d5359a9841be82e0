#!/usr/bin/env python3
"""
Notification Channels

Two ways of getting a notification to its recipients:

- PushProviderChannel: one batched workflow-trigger call to the external
  push provider, which owns fan-out and delivery.
- DirectWriteChannel: per-recipient preference evaluation and a direct
  insert into the notifications table.

Both implement NotificationChannel, so the router can treat them alike.

Usage:
    from notification.channels import PushProviderChannel, DirectWriteChannel

    provider = PushProviderChannel(config.notifications.provider)
    if provider.validate_config():
        provider.send(["user-1", "user-2"], payload)
"""

from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Any, List, Sequence
import logging

import requests
from sqlalchemy.orm import sessionmaker

from core.config_loader import PushProviderConfig
from database.uow import dispatch_uow
from notification.events import NotificationPayload, ProviderError
from notification.preferences import PreferenceEngine

logger = logging.getLogger(__name__)


class NotificationChannel(ABC):
    """
    Abstract base class for all notification channels.
    """

    @property
    @abstractmethod
    def channel_type(self) -> str:
        """Return the channel type identifier."""
        pass

    @abstractmethod
    def send(self, recipients: Sequence[str], payload: NotificationPayload) -> int:
        """
        Deliver payload to recipients.

        Returns:
            Number of recipients handled by this channel
        """
        pass

    def validate_config(self) -> bool:
        """
        Validate that the channel is properly configured.

        Returns:
            True if configured correctly, False otherwise
        """
        return True


class PushProviderChannel(NotificationChannel):
    """Workflow trigger on the external push provider."""

    def __init__(self, config: PushProviderConfig, session: requests.Session = None):
        self.config = config
        self.session = session or requests.Session()

    @property
    def channel_type(self) -> str:
        return 'provider'

    def validate_config(self) -> bool:
        # Present only when a credential is configured
        return bool(self.config.api_key)

    @property
    def trigger_url(self) -> str:
        return f"{self.config.base_url.rstrip('/')}/workflows/{self.config.workflow_key}/trigger"

    def build_request_body(self, recipients: Sequence[str], payload: NotificationPayload) -> Dict[str, Any]:
        data = dict(payload.metadata or {})
        data.update({
            'subject': payload.subject,
            'body': payload.body,
            'category': payload.category.value,
            'priority': payload.priority.value,
            'action_url': payload.action_url,
        })
        return {
            'recipients': [{'id': recipient} for recipient in recipients],
            'data': data,
        }

    def send(self, recipients: Sequence[str], payload: NotificationPayload) -> int:
        """
        Trigger the provider workflow for all recipients in one call.

        Raises:
            ProviderError: if the provider is unconfigured, unreachable, slow or rejects the call
        """
        if not self.validate_config():
            raise ProviderError("Push provider credential not configured")

        headers = {
            'Authorization': f"Bearer {self.config.api_key}",
            'Content-Type': 'application/json',
        }

        try:
            response = self.session.post(
                self.trigger_url,
                json=self.build_request_body(recipients, payload),
                headers=headers,
                timeout=self.config.timeout_seconds
            )
        except requests.Timeout as e:
            raise ProviderError(f"Provider timed out after {self.config.timeout_seconds}s") from e
        except requests.RequestException as e:
            raise ProviderError(f"Provider request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise ProviderError(f"Provider returned HTTP {response.status_code}: {response.text[:200]}")

        logger.info(f"Provider workflow {self.config.workflow_key} triggered for {len(recipients)} recipient(s)")
        return len(recipients)


class DirectWriteChannel(NotificationChannel):
    """
    Writes notifications straight into the notifications table.

    Each recipient is evaluated and written in its own transaction; a
    failure for one recipient never blocks the others.
    """

    def __init__(
        self,
        preference_engine: PreferenceEngine,
        session_factory: sessionmaker = None,
        max_workers: int = 1
    ):
        self.preference_engine = preference_engine
        self.session_factory = session_factory
        self.max_workers = max(1, max_workers)

    @property
    def channel_type(self) -> str:
        return 'direct'

    def send(self, recipients: Sequence[str], payload: NotificationPayload) -> int:
        recipients = list(recipients)
        if self.max_workers > 1 and len(recipients) > 1:
            with ThreadPoolExecutor(max_workers=min(self.max_workers, len(recipients))) as pool:
                results: List[bool] = list(pool.map(lambda r: self._deliver_one(r, payload), recipients))
        else:
            results = [self._deliver_one(recipient, payload) for recipient in recipients]
        return sum(1 for written in results if written)

    def _deliver_one(self, recipient_id: str, payload: NotificationPayload) -> bool:
        decision = self.preference_engine.decide(recipient_id, payload)
        if not decision.deliver:
            logger.info(f"Not notifying {recipient_id} about {payload.event_type}: {decision.reason}")
            return False

        try:
            with dispatch_uow(self.session_factory) as repo:
                repo.notifications.create_notification(
                    recipient_id=recipient_id,
                    notification_type=payload.event_type,
                    title=payload.subject,
                    message=payload.body,
                    category=payload.category.value,
                    priority=payload.priority.value,
                    delivery_status=decision.delivery_status,
                    reference_id=payload.reference_id,
                    action_url=payload.action_url,
                    metadata=payload.metadata,
                    delivery_channels=decision.delivery_channels,
                    snoozed_until=decision.snoozed_until,
                    digest_batch_id=decision.digest_batch_id,
                )
        except Exception as e:
            logger.error(f"Failed to write notification for {recipient_id}: {e}", exc_info=True)
            return False

        logger.info(f"Notification {payload.event_type} written for {recipient_id} ({decision.delivery_status})")
        return True
