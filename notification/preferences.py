#!/usr/bin/env python3
"""
Preference Engine

Decides, per recipient, whether and how a notification is delivered:

1. global enable switch
2. category, event and mute toggles
3. quiet hours (deferral with snoozed_until)
4. frequency (instant, digest, off)
5. priority filter

A user without a stored preferences row gets the defaults: everything
enabled, no quiet hours, instant delivery, all priorities.

Usage:
    from notification.preferences import PreferenceEngine

    engine = PreferenceEngine(session_factory, timezone_name="Asia/Kolkata")
    decision = engine.decide("user123", payload)
    if decision.deliver:
        ...
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Optional, Dict, Any, List, Callable, Literal

from dateutil import tz
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from database.uow import dispatch_uow
from notification.digest import digest_batch_id
from notification.events import NotificationPayload, NotificationPriority

logger = logging.getLogger(__name__)

DELIVERED = "delivered"
PENDING = "pending"

# Minimum priority admitted by each priority filter
PRIORITY_FILTER_THRESHOLDS = {
    'all': NotificationPriority.LOW,
    'normal': NotificationPriority.NORMAL,
    'high': NotificationPriority.HIGH,
    'urgent': NotificationPriority.URGENT,
}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str_list(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [str(v) for v in value if v is not None]


class CategoryPreference(BaseModel):
    enabled: bool = True
    frequency: Literal['instant', 'digest', 'off'] = 'instant'
    priority_filter: Literal['all', 'normal', 'high', 'urgent'] = 'all'


class QuietHours(BaseModel):
    enabled: bool = False
    start: str = '22:00'
    end: str = '08:00'


class DeliveryChannels(BaseModel):
    in_app: bool = True
    email: bool = True
    browser: bool = True
    sound: bool = True


class UserPreferences(BaseModel):
    enabled: bool = True
    quiet_hours: QuietHours = Field(default_factory=QuietHours)
    categories: Dict[str, CategoryPreference] = Field(default_factory=dict)
    delivery_channels: DeliveryChannels = Field(default_factory=DeliveryChannels)
    event_preferences: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    muted_cases: List[str] = Field(default_factory=list)
    muted_clients: List[str] = Field(default_factory=list)
    muted_users: List[str] = Field(default_factory=list)

    def category(self, name: str) -> CategoryPreference:
        return self.categories.get(name) or CategoryPreference()

    def event_enabled(self, event_type: str) -> bool:
        setting = self.event_preferences.get(event_type)
        if isinstance(setting, dict):
            return setting.get('enabled', True) is not False
        return True

    @classmethod
    def from_row(cls, row) -> "UserPreferences":
        """
        Build preferences from a stored row, tolerating partial or invalid documents.

        Each malformed section falls back to its defaults instead of failing the lookup.
        """
        if row is None:
            return cls()

        categories: Dict[str, CategoryPreference] = {}
        for name, value in _as_dict(row.categories).items():
            if not isinstance(value, dict):
                continue
            try:
                categories[name] = CategoryPreference(**value)
            except ValidationError as e:
                logger.warning(f"Ignoring invalid '{name}' category preferences for {row.user_id}: {e}")

        try:
            channels = DeliveryChannels(**_as_dict(row.delivery_preferences))
        except ValidationError:
            channels = DeliveryChannels()

        return cls(
            enabled=row.enabled is not False,
            quiet_hours=QuietHours(
                enabled=bool(row.quiet_hours_enabled),
                start=str(row.quiet_hours_start or '22:00'),
                end=str(row.quiet_hours_end or '08:00'),
            ),
            categories=categories,
            delivery_channels=channels,
            event_preferences={
                k: v for k, v in _as_dict(row.event_preferences).items() if isinstance(v, dict)
            },
            muted_cases=_as_str_list(row.muted_cases),
            muted_clients=_as_str_list(row.muted_clients),
            muted_users=_as_str_list(row.muted_users),
        )


@dataclass
class DeliveryDecision:
    deliver: bool
    delivery_status: Optional[str] = None
    snoozed_until: Optional[datetime] = None
    digest_batch_id: Optional[str] = None
    delivery_channels: Dict[str, bool] = field(default_factory=dict)
    reason: Optional[str] = None

    @classmethod
    def skip(cls, reason: str) -> "DeliveryDecision":
        return cls(deliver=False, reason=reason)


def parse_time_of_day(value: Any) -> Optional[time]:
    """Parse 'HH:MM' or 'HH:MM:SS'. Returns None when unparseable."""
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        return None
    parts = value.strip().split(':')
    try:
        hour, minute = int(parts[0]), int(parts[1])
        second = int(parts[2]) if len(parts) > 2 else 0
        return time(hour, minute, second)
    except (ValueError, IndexError):
        return None


def is_within_quiet_hours(now: time, start: time, end: time) -> bool:
    """
    Time-of-day containment in [start, end), wrapping past midnight when start >= end.
    """
    if start < end:
        return start <= now < end
    return now >= start or now < end


def next_occurrence(now: datetime, at: time) -> datetime:
    """The next datetime strictly after now whose time of day is `at`."""
    candidate = now.replace(hour=at.hour, minute=at.minute, second=at.second, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def resolve_timezone(name: str):
    zone = tz.gettz(name)
    if zone is None:
        logger.warning(f"Unknown time zone '{name}', using UTC")
        return tz.UTC
    return zone


class PreferenceEngine:
    """
    Per-recipient delivery decision.

    Only reads preferences; never raises. A preferences lookup failure is
    treated like a missing row.
    """

    def __init__(
        self,
        session_factory: sessionmaker = None,
        timezone_name: str = "UTC",
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.session_factory = session_factory
        self.tz = resolve_timezone(timezone_name)
        self._clock = clock

    def now(self) -> datetime:
        if self._clock is not None:
            current = self._clock()
            if current.tzinfo is None:
                return current.replace(tzinfo=self.tz)
            return current.astimezone(self.tz)
        return datetime.now(self.tz)

    def load(self, user_id: str) -> UserPreferences:
        try:
            with dispatch_uow(self.session_factory) as repo:
                return UserPreferences.from_row(repo.preferences.get_for_user(user_id))
        except (SQLAlchemyError, ValidationError) as e:
            logger.warning(f"Could not load preferences for {user_id}, using defaults: {e}")
            return UserPreferences()

    def decide(self, user_id: str, payload: NotificationPayload) -> DeliveryDecision:
        prefs = self.load(user_id)
        return self.evaluate(prefs, payload, self.now(), user_id)

    @staticmethod
    def evaluate(
        prefs: UserPreferences,
        payload: NotificationPayload,
        now: datetime,
        user_id: str
    ) -> DeliveryDecision:
        """Pure decision over already loaded preferences."""
        if not prefs.enabled:
            return DeliveryDecision.skip("disabled")

        category = prefs.category(payload.category.value)
        if not category.enabled:
            return DeliveryDecision.skip("category_disabled")

        if not prefs.event_enabled(payload.event_type):
            return DeliveryDecision.skip("event_disabled")

        metadata = payload.metadata or {}
        if metadata.get('case_id') and str(metadata['case_id']) in prefs.muted_cases:
            return DeliveryDecision.skip("muted_case")
        if metadata.get('client_id') and str(metadata['client_id']) in prefs.muted_clients:
            return DeliveryDecision.skip("muted_client")
        if metadata.get('actor_id') and str(metadata['actor_id']) in prefs.muted_users:
            return DeliveryDecision.skip("muted_user")

        decision = DeliveryDecision(
            deliver=True,
            delivery_channels=prefs.delivery_channels.model_dump(),
        )

        quiet_start = parse_time_of_day(prefs.quiet_hours.start)
        quiet_end = parse_time_of_day(prefs.quiet_hours.end)
        in_quiet_hours = (
            prefs.quiet_hours.enabled
            and quiet_start is not None
            and quiet_end is not None
            and is_within_quiet_hours(now.time(), quiet_start, quiet_end)
        )

        if in_quiet_hours:
            decision.delivery_status = PENDING
            decision.snoozed_until = next_occurrence(now, quiet_end)
        elif category.frequency == 'digest':
            decision.delivery_status = PENDING
            decision.digest_batch_id = digest_batch_id(user_id, now.date())
        elif category.frequency == 'off':
            return DeliveryDecision.skip("frequency_off")
        else:
            decision.delivery_status = DELIVERED

        # Applies to deferred notifications as well
        threshold = PRIORITY_FILTER_THRESHOLDS[category.priority_filter]
        if payload.priority.rank < threshold.rank:
            return DeliveryDecision.skip("below_priority_filter")

        return decision
