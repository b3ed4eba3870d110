from __future__ import annotations
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware current UTC time; the single clock used for persisted timestamps."""
    return datetime.now(timezone.utc)

__all__ = ['utcnow']
