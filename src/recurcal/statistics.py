from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, List

from recurcal.models import CalendarEvent, EventCategory, EventPriority, EventStatus
from recurcal.recurrence import weekday_index

_CLOSED = (EventStatus.COMPLETED, EventStatus.CANCELLED)


def compute_event_stats(events: List[CalendarEvent], now: datetime) -> Dict:
    """
    Kennzahlen über eine Liste von Events:
      total_events       : Anzahl
      events_by_category : je Kategorie (alle Kategorien, auch mit 0)
      events_by_priority : je Priorität
      events_by_status   : je Status
      upcoming_events    : Start in den nächsten 7 Tagen
      overdue_events     : Start vorbei, weder erledigt noch abgesagt
    """
    by_category = {c: 0 for c in EventCategory}
    by_priority = {p: 0 for p in EventPriority}
    by_status = {s: 0 for s in EventStatus}
    week_from_now = now + timedelta(days=7)
    upcoming = overdue = 0

    for ev in events:
        by_category[ev.category] += 1
        by_priority[ev.priority] += 1
        by_status[ev.status] += 1
        if now < ev.start <= week_from_now:
            upcoming += 1
        if ev.start < now and ev.status not in _CLOSED:
            overdue += 1

    return {
        'total_events': len(events),
        'events_by_category': by_category,
        'events_by_priority': by_priority,
        'events_by_status': by_status,
        'upcoming_events': upcoming,
        'overdue_events': overdue,
    }


def count_by_weekday(events: List[CalendarEvent]) -> Dict[int, int]:
    """0=Sonntag … 6=Samstag -> Anzahl Events"""
    counts = {d: 0 for d in range(7)}
    for ev in events:
        counts[weekday_index(ev.start)] += 1
    return counts


def calculate_trends(events: List[CalendarEvent], period: str = 'weekly') -> Dict[str, List[int]]:
    """Zählt Events je Kalenderwoche, Monat oder Jahr."""
    trends = defaultdict(int)

    for ev in events:
        day = ev.start
        if period == 'weekly':
            key = day.isocalendar()[1]  # Kalenderwoche
        elif period == 'monthly':
            key = day.month
        else:
            key = day.year

        trends[key] += 1

    sorted_keys = sorted(trends.keys())
    return {"periods": sorted_keys, "counts": [trends[k] for k in sorted_keys]}
