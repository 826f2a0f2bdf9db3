# src/recurcal/main.py

import logging
from datetime import date, datetime
from typing import Optional

from dateutil.relativedelta import relativedelta

from .config import load_config
from .data import Database
from .models import (
    CalendarEvent, EventCategory, EventRecurrence, MonthlyRecurrenceType,
    RecurrenceEndType, RecurrenceFrequency, WEEKDAY_ABBREVIATIONS,
)
from .recurrence import get_recurrence_description, preview_occurrences, validate_pattern


def _ask(prompt: str, default: str = '') -> str:
    value = input(prompt).strip()
    return value or default


def input_recurrence(start: datetime) -> Optional[EventRecurrence]:
    freq = _ask("  Repeat (none/daily/weekly/monthly/yearly) [none]: ", 'none').lower()
    if freq == 'none':
        return None
    rec = EventRecurrence(frequency=RecurrenceFrequency(freq))
    rec.interval = int(_ask("  Every N units [1]: ", '1'))

    if rec.frequency == RecurrenceFrequency.WEEKLY:
        days = _ask("  Weekdays (0=Sun … 6=Sat), comma separated [start day]: ")
        rec.week_days = [int(x) for x in days.split(',') if x.strip().isdigit()]
    elif rec.frequency == RecurrenceFrequency.MONTHLY:
        kind = _ask("  Monthly by [1] day of month or [2] weekday of month [1]: ", '1')
        if kind == '2':
            rec.monthly_type = MonthlyRecurrenceType.DAY_OF_WEEK
            rec.week_of_month = int(_ask("  Week of month (calendar row 1-5, weeks start on Sunday): "))
            rec.day_of_week = int(_ask("  Day of week (0=Sun … 6=Sat): "))
        else:
            rec.monthly_type = MonthlyRecurrenceType.DAY_OF_MONTH
            rec.day_of_month = int(_ask(f"  Day of month [{start.day}]: ", str(start.day)))

    end = _ask("  Ends: [1] never, [2] on date, [3] after N occurrences [1]: ", '1')
    if end == '2':
        rec.end_type = RecurrenceEndType.ON_DATE
        rec.end_date = date.fromisoformat(_ask("  End date (YYYY-MM-DD): "))
    elif end == '3':
        rec.end_type = RecurrenceEndType.AFTER_OCCURRENCES
        rec.occurrences = int(_ask("  Number of occurrences: "))
    return rec


def input_event() -> CalendarEvent:
    print("\n✏️  New event:")
    title = _ask("  Title: ", 'Untitled')
    start = datetime.fromisoformat(_ask("  Start (YYYY-MM-DDTHH:MM): "))
    end_str = _ask("  End (YYYY-MM-DDTHH:MM) [none]: ")
    category = EventCategory(_ask("  Category [other]: ", 'other').lower())
    return CalendarEvent(
        id='',
        title=title,
        start=start,
        end=datetime.fromisoformat(end_str) if end_str else None,
        category=category,
    )


def run_wizard():
    cfg = load_config()
    logging.basicConfig(level=cfg.get('log_level', 'INFO'))
    print("🎯 Welcome to the RecurCal setup wizard 🎯")

    ev = input_event()
    while True:
        rec = input_recurrence(ev.start)
        if rec is None:
            break
        check = validate_pattern(rec)
        for w in check.warnings:
            print(f"  ⚠️  {w}")
        if check.is_valid:
            ev.recurrence = rec
            break
        for e in check.errors:
            print(f"  ❌ {e}")
        print("  Please enter the repetition again.")

    print(f"\n✅ {ev.title} on {ev.start:%Y-%m-%d %H:%M}")
    if ev.recurrence is not None:
        print("  " + get_recurrence_description(ev.recurrence, cfg['date_format']))
        print("  Next occurrences:")
        for d in preview_occurrences(ev, ev.recurrence, cfg['preview_count']):
            print(f"   {WEEKDAY_ABBREVIATIONS[d.isoweekday() % 7]} {d:%Y-%m-%d %H:%M}")

    if _ask("\nSave event? (y/n) ").lower() == "y":
        db = Database(cfg.get('db_path'), split_series=cfg.get('split_series_on_future_edit', False))
        try:
            saved = db.add_event(ev)
            upcoming = db.get_events_in_range(ev.start.date(), ev.start.date() + relativedelta(months=1))
            print(f"Saved as {saved.id}; {len(upcoming)} event(s) in the following month.")
        finally:
            db.close()


if __name__ == "__main__":
    run_wizard()
