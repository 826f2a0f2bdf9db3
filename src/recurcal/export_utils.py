from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional

from recurcal.models import CalendarEvent, EventStatus, CATEGORY_CONFIG, PRIORITY_CONFIG, STATUS_CONFIG
from recurcal.recurrence import to_datetime


def _clock(dt: datetime) -> str:
    # 9:05 AM statt 09:05 AM
    return f"{dt.hour % 12 or 12}:{dt.minute:02d} {'AM' if dt.hour < 12 else 'PM'}"


def format_event_time(start: datetime, end: Optional[datetime] = None, all_day: bool = False) -> str:
    if all_day:
        return 'All day'
    if end is None:
        return _clock(start)
    return f"{_clock(start)} - {_clock(end)}"


def format_event_date(start) -> str:
    d = to_datetime(start)
    return f"{d:%A}, {d:%B} {d.day}, {d.year}"


def is_today(start, today: Optional[date] = None) -> bool:
    today = today or date.today()
    return to_datetime(start).date() == today


def is_upcoming(start, now: Optional[datetime] = None) -> bool:
    """Liegt der Start in den nächsten 7 Tagen?"""
    now = now or datetime.now()
    return now < to_datetime(start) <= now + timedelta(days=7)


def is_overdue(start, status: EventStatus, now: Optional[datetime] = None) -> bool:
    if status in (EventStatus.COMPLETED, EventStatus.CANCELLED):
        return False
    now = now or datetime.now()
    return to_datetime(start) < now


def to_display_dict(ev: CalendarEvent) -> Dict[str, Any]:
    """Event im Format des Kalender-Widgets, mit Farben der Kategorie."""
    cat = CATEGORY_CONFIG[ev.category]
    data = ev.to_dict()
    extended = {k: v for k, v in data.items() if k not in ('id', 'title', 'start', 'end', 'allDay')}
    return {
        'id': ev.id,
        'title': ev.title,
        'start': data['start'],
        'end': data['end'],
        'allDay': ev.all_day,
        'backgroundColor': cat.background_color,
        'borderColor': cat.border_color,
        'textColor': cat.text_color,
        'extendedProps': extended,
    }


def format_agenda_line(ev: CalendarEvent) -> str:
    """Eine Zeile für Agenda-Listen, z. B. im PDF-Export."""
    cat = CATEGORY_CONFIG[ev.category]
    prio = PRIORITY_CONFIG[ev.priority]
    status = STATUS_CONFIG[ev.status]
    when = format_event_time(ev.start, ev.end, ev.all_day)
    line = f"{ev.start:%a %Y-%m-%d} {when}: {ev.title} [{cat.label}, {prio.label}"
    if ev.status != EventStatus.CONFIRMED:
        line += f", {status.label}"
    return line + "]"
