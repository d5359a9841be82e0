"""
Digest batching.

Notifications deferred for digesting share a batch id per recipient per
calendar day; the external digest job compiles one summary per batch.
"""

import hashlib
from datetime import date, datetime
from typing import Union


def digest_batch_id(user_id: str, day: Union[date, datetime]) -> str:
    """Deterministic batch id for (user_id, calendar day)."""
    if isinstance(day, datetime):
        day = day.date()
    key = f"{user_id}:{day.isoformat()}"
    return hashlib.sha256(key.encode('utf-8')).hexdigest()[:32]
