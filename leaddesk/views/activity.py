"""Recent-activity feed driven by lead events."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from leaddesk.core.events import (
    CallCompleted,
    EventBus,
    FollowUpScheduled,
    LeadAssigned,
    LeadDeleted,
    NotesAdded,
)

FEED_LIMIT = 10
NOTES_PREVIEW = 50


@dataclass(frozen=True)
class Activity:
    type: str
    message: str
    details: str
    status: str
    lead_id: Optional[str]
    at: datetime


def format_duration(seconds: int) -> str:
    seconds = max(0, int(seconds or 0))
    minutes, secs = divmod(seconds, 60)
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def _preview(text: str) -> str:
    if len(text) <= NOTES_PREVIEW:
        return text
    return text[:NOTES_PREVIEW] + "..."


class ActivityFeed:
    """Newest-first list of at most `limit` activities."""

    def __init__(self, *, limit: int = FEED_LIMIT, clock: Callable[[], datetime] | None = None) -> None:
        self._limit = limit
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._items: list[Activity] = []
        self._unsubscribers: list[Callable[[], None]] = []

    @property
    def items(self) -> list[Activity]:
        return list(self._items)

    def attach(self, bus: EventBus) -> None:
        self._unsubscribers += [
            bus.subscribe(LeadDeleted, self._on_lead_deleted),
            bus.subscribe(CallCompleted, self._on_call_completed),
            bus.subscribe(FollowUpScheduled, self._on_follow_up),
            bus.subscribe(NotesAdded, self._on_notes),
            bus.subscribe(LeadAssigned, self._on_assigned),
        ]

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    def push(self, activity: Activity) -> None:
        self._items = [activity, *self._items][: self._limit]

    def _add(self, type_: str, message: str, details: str, status: str, lead_id: Optional[str]) -> None:
        self.push(Activity(type_, message, details, status, lead_id, self._clock()))

    async def _on_lead_deleted(self, event: LeadDeleted) -> None:
        self._items = [a for a in self._items if a.lead_id != event.lead_id]

    async def _on_call_completed(self, event: CallCompleted) -> None:
        self._add(
            "call_completed",
            f'Call completed with "{event.lead_name}"',
            f"Call duration: {format_duration(event.duration_seconds)}",
            "completed",
            event.lead_id,
        )

    async def _on_follow_up(self, event: FollowUpScheduled) -> None:
        when = event.follow_up_at.date().isoformat() if event.follow_up_at else "unscheduled"
        self._add(
            "followup_scheduled",
            f'Follow-up scheduled for "{event.lead_name}"',
            f"Follow-up date: {when}",
            "scheduled",
            event.lead_id,
        )

    async def _on_notes(self, event: NotesAdded) -> None:
        self._add(
            "notes_added",
            f'Notes added to "{event.lead_name}"',
            f"Notes: {_preview(event.notes)}",
            "active",
            event.lead_id,
        )

    async def _on_assigned(self, event: LeadAssigned) -> None:
        self._add(
            "lead_assigned",
            f'Lead "{event.lead_name}" assigned',
            f"Assigned to: {event.assigned_to}",
            "active",
            event.lead_id,
        )


__all__ = ["Activity", "ActivityFeed", "format_duration"]
