"""Post-commit event outbox.

Services queue pub/sub events on the session while they work. The router
publishes them with ``flush_events`` once its commit has succeeded, and a
rollback discards whatever was queued.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from betthat.redis_client import publish_event

_OUTBOX_KEY = "pending_events"


def queue_event(db: AsyncSession, channel: str, payload: dict[str, Any]) -> None:
    db.info.setdefault(_OUTBOX_KEY, []).append((channel, payload))


def pending_events(db: AsyncSession) -> list[tuple[str, dict[str, Any]]]:
    """Events queued on this session and not yet published."""
    return list(db.info.get(_OUTBOX_KEY, []))


async def flush_events(db: AsyncSession, redis: object) -> int:
    """Publish and clear the queued events. Call only after a successful commit."""
    events = db.info.pop(_OUTBOX_KEY, [])
    for channel, payload in events:
        await publish_event(redis, channel, payload)
    return len(events)


@event.listens_for(Session, "after_rollback")
def _discard_on_rollback(session: Session) -> None:
    session.info.pop(_OUTBOX_KEY, None)
