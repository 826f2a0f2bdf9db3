import logging
import math
from dataclasses import replace
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Iterator, List, Union

from dateutil.relativedelta import relativedelta

from .models import (
    CalendarEvent, EventRecurrence, RecurrencePattern, RecurrenceValidation,
    RecurringEventInstance, RecurrenceFrequency, RecurrenceEndType,
    MonthlyRecurrenceType, WEEKDAY_ABBREVIATIONS, FREQUENCY_UNITS,
    EVENT_FIELDS, coerce_event_fields,
)

# Offene Serien werden höchstens so weit über das Abfrageende hinaus abgetastet
HORIZON_YEARS = 2
DEFAULT_DATE_FORMAT = '%m/%d/%Y'

DateLike = Union[date, datetime]


def weekday_index(d: DateLike) -> int:
    """Wochentag mit 0=Sonntag … 6=Samstag."""
    return d.isoweekday() % 7


def week_of_month(d: DateLike) -> int:
    """Kalenderzeile des Tages im Monat (1-basiert, Wochen beginnen am Sonntag)."""
    first = d.replace(day=1)
    return math.ceil((d.day + weekday_index(first)) / 7)


def to_datetime(value: DateLike, end_of_day: bool = False) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.max if end_of_day else time.min)


def to_date(value: DateLike) -> date:
    return value.date() if isinstance(value, datetime) else value


def occurrence_key(value: DateLike) -> str:
    """Normalisierter Schlüssel eines Vorkommens (für IDs und Modifikationen)."""
    return to_datetime(value).isoformat()


def validate_pattern(pattern: RecurrencePattern) -> RecurrenceValidation:
    """
    Prüft ein Muster vollständig und sammelt alle Verstöße, damit die Oberfläche
    sie gemeinsam anzeigen kann. Warnungen beeinflussen is_valid nicht.
    """
    errors: List[str] = []
    warnings: List[str] = []

    if pattern.interval is None or pattern.interval < 1:
        errors.append('Interval must be at least 1')

    if pattern.end_type == RecurrenceEndType.ON_DATE and not pattern.end_date:
        errors.append('End date is required when end type is "On specific date"')

    if pattern.end_type == RecurrenceEndType.AFTER_OCCURRENCES and (
            not pattern.occurrences or pattern.occurrences < 1):
        errors.append('Number of occurrences must be at least 1')

    if pattern.frequency == RecurrenceFrequency.WEEKLY:
        if not pattern.week_days:
            warnings.append('No weekdays selected for weekly recurrence')
        elif any(d < 0 or d > 6 for d in pattern.week_days):
            errors.append('Weekdays must be between 0 (Sunday) and 6 (Saturday)')

    if pattern.frequency == RecurrenceFrequency.MONTHLY:
        if pattern.monthly_type == MonthlyRecurrenceType.DAY_OF_MONTH:
            if not pattern.day_of_month or pattern.day_of_month < 1 or pattern.day_of_month > 31:
                errors.append('Day of month must be between 1 and 31')
        elif pattern.monthly_type == MonthlyRecurrenceType.DAY_OF_WEEK:
            if pattern.week_of_month is None or pattern.day_of_week is None:
                errors.append('Week of month and day of week are required for this monthly pattern')
            else:
                if not 1 <= pattern.week_of_month <= 5:
                    errors.append('Week of month must be between 1 and 5')
                if not 0 <= pattern.day_of_week <= 6:
                    errors.append('Day of week must be between 0 (Sunday) and 6 (Saturday)')

    return RecurrenceValidation(is_valid=not errors, errors=errors, warnings=warnings)


def _week_offset(candidate: datetime, original: datetime) -> int:
    # Wochen seit dem Sonntag der Startwoche
    week_start = original.date() - timedelta(days=weekday_index(original))
    return (candidate.date() - week_start).days // 7


def _month_offset(candidate: datetime, original: datetime) -> int:
    return (candidate.year - original.year) * 12 + candidate.month - original.month


def matches_pattern(candidate: datetime, original: datetime, pattern: RecurrencePattern) -> bool:
    """Ist `candidate` ein echtes Vorkommen einer Serie, die am `original` beginnt?"""
    freq = pattern.frequency
    if freq == RecurrenceFrequency.DAILY:
        return True

    if freq == RecurrenceFrequency.WEEKLY:
        days = pattern.week_days or [weekday_index(original)]
        return (weekday_index(candidate) in days
                and _week_offset(candidate, original) % _interval(pattern) == 0)

    if freq == RecurrenceFrequency.MONTHLY:
        if pattern.monthly_type == MonthlyRecurrenceType.DAY_OF_WEEK:
            dow = pattern.day_of_week if pattern.day_of_week is not None else weekday_index(original)
            wom = pattern.week_of_month if pattern.week_of_month is not None else week_of_month(original)
            return (weekday_index(candidate) == dow
                    and week_of_month(candidate) == wom
                    and _month_offset(candidate, original) % _interval(pattern) == 0)
        return candidate.day == _target_day(original, pattern)

    if freq == RecurrenceFrequency.YEARLY:
        return (candidate.month, candidate.day) == (original.month, original.day)

    return False


def _interval(pattern: RecurrencePattern) -> int:
    return max(pattern.interval or 1, 1)


def _target_day(original: datetime, pattern: RecurrencePattern) -> int:
    if pattern.monthly_type == MonthlyRecurrenceType.DAY_OF_MONTH and pattern.day_of_month is not None:
        return pattern.day_of_month
    return original.day


def _sweep(start: datetime, pattern: RecurrencePattern) -> Iterator[datetime]:
    """
    Cursor-Positionen ab Serienstart. Wochen- und Wochentags-Muster laufen
    tageweise, der Matcher entscheidet über Treffer. Monats- und Jahresschritte
    werden immer vom Start aus gerechnet, damit Monatsenden nicht wandern.
    """
    freq = pattern.frequency
    step = 0
    if freq == RecurrenceFrequency.DAILY:
        while True:
            yield start + timedelta(days=step * pattern.interval)
            step += 1
    elif freq == RecurrenceFrequency.WEEKLY or (
            freq == RecurrenceFrequency.MONTHLY
            and pattern.monthly_type == MonthlyRecurrenceType.DAY_OF_WEEK):
        while True:
            yield start + timedelta(days=step)
            step += 1
    elif freq == RecurrenceFrequency.MONTHLY:
        target = _target_day(start, pattern)
        while True:
            # relativedelta(day=31) klemmt auf das Monatsende, der Matcher verwirft das
            candidate = start + relativedelta(months=step * pattern.interval, day=target)
            if candidate >= start:
                yield candidate
            step += 1
    elif freq == RecurrenceFrequency.YEARLY:
        while True:
            yield start + relativedelta(years=step * pattern.interval)
            step += 1


def _end_boundary(pattern: RecurrencePattern, range_end: datetime) -> datetime:
    if pattern.end_type == RecurrenceEndType.ON_DATE and pattern.end_date:
        return to_datetime(pattern.end_date, end_of_day=True)
    return range_end + relativedelta(years=HORIZON_YEARS)


def generate_instances(
    base_event: CalendarEvent,
    pattern: RecurrencePattern,
    range_start: DateLike,
    range_end: DateLike,
) -> List[RecurringEventInstance]:
    """
    Erzeuge alle Vorkommen einer Serie im Zeitraum [range_start, range_end].

    Der Sweep beginnt immer beim echten Serienstart, damit `afterOccurrences`
    auch bei schmalen Abfragefenstern über die ganze Serie zählt; ausgegeben
    werden nur Treffer im Fenster. Ausnahmedaten zählen nicht mit.
    Ein reines Datum als Grenze umfasst den ganzen Tag.
    Ungültige Muster liefern eine leere Liste.
    """
    if not validate_pattern(pattern).is_valid:
        logging.debug(f"Ungültiges Muster für Event {base_event.id}, keine Vorkommen erzeugt")
        return []

    start = to_datetime(base_event.start)
    duration = to_datetime(base_event.end) - start if base_event.end else timedelta(0)
    lower = to_datetime(range_start)
    upper = to_datetime(range_end, end_of_day=True)
    boundary = _end_boundary(pattern, upper)
    limit = pattern.occurrences if pattern.end_type == RecurrenceEndType.AFTER_OCCURRENCES else None
    skipped = {to_date(d) for d in pattern.exceptions}

    instances: List[RecurringEventInstance] = []
    count = 0
    for cursor in _sweep(start, pattern):
        if cursor > boundary or cursor > upper:
            break
        if limit is not None and count >= limit:
            break
        if cursor.date() in skipped or not matches_pattern(cursor, start, pattern):
            continue
        count += 1
        if cursor >= lower:
            instances.append(RecurringEventInstance(
                date=cursor,
                end_date=cursor + duration if duration > timedelta(0) else None,
            ))
    return instances


def _apply_modification(event: CalendarEvent, changes: Dict[str, Any]) -> CalendarEvent:
    # Feldweise überschreiben; id und Serien-Verknüpfung bleiben stabil
    unknown = set(changes) - EVENT_FIELDS
    if unknown:
        logging.debug(f"Unbekannte Felder in Modifikation ignoriert: {sorted(unknown)}")
    updates = {k: v for k, v in coerce_event_fields(changes).items()
               if k in EVENT_FIELDS and k not in ('id', 'recurrence')}
    return replace(event, **updates)


def create_event_instances(
    base_event: CalendarEvent,
    instances: List[RecurringEventInstance],
) -> List[CalendarEvent]:
    """Macht aus Vorkommen anzeigefertige Events, inkl. Änderungen und Löschungen."""
    recurrence = base_event.recurrence or EventRecurrence()
    overrides = {occurrence_key(m.original_date): m for m in recurrence.modifications}

    events: List[CalendarEvent] = []
    for instance in instances:
        key = occurrence_key(instance.date)
        modification = overrides.get(key)
        if modification is not None and modification.is_deleted:
            continue
        event = replace(
            base_event,
            id=f"{base_event.id}_{key}",
            start=instance.date,
            end=instance.end_date,
            recurrence=replace(
                recurrence,
                parent_event_id=base_event.id,
                instance_date=instance.date,
                modifications=[],
            ),
        )
        if modification is not None and modification.modified_event:
            event = _apply_modification(event, modification.modified_event)
        events.append(event)
    return events


def preview_occurrences(base_event: CalendarEvent, pattern: RecurrencePattern, count: int = 5) -> List[datetime]:
    """Die ersten `count` Vorkommen der Serie ab ihrem Start."""
    start = to_datetime(base_event.start)
    horizon = start + relativedelta(years=HORIZON_YEARS)
    return [i.date for i in generate_instances(base_event, pattern, start, horizon)[:count]]


def get_recurrence_description(pattern: RecurrencePattern, date_format: str = DEFAULT_DATE_FORMAT) -> str:
    """Menschenlesbar, z. B. 'Repeats weekly on Mon, Wed until 12/31/2025'."""
    description = f"Repeats {pattern.frequency.value}"

    if pattern.interval and pattern.interval > 1:
        description += f" every {pattern.interval} {FREQUENCY_UNITS[pattern.frequency]}s"

    if pattern.frequency == RecurrenceFrequency.WEEKLY and pattern.week_days:
        days = ', '.join(WEEKDAY_ABBREVIATIONS.get(d, str(d)) for d in pattern.week_days)
        description += f" on {days}"
    elif pattern.frequency == RecurrenceFrequency.MONTHLY:
        if pattern.monthly_type == MonthlyRecurrenceType.DAY_OF_MONTH and pattern.day_of_month:
            description += f" on day {pattern.day_of_month}"
        elif (pattern.monthly_type == MonthlyRecurrenceType.DAY_OF_WEEK
              and pattern.week_of_month is not None and pattern.day_of_week is not None):
            # week_of_month ist die Kalenderzeile, keine Ordinalzahl
            day = WEEKDAY_ABBREVIATIONS.get(pattern.day_of_week, str(pattern.day_of_week))
            description += f" on {day} in week {pattern.week_of_month} of the month"

    if pattern.end_type == RecurrenceEndType.ON_DATE and pattern.end_date:
        description += f" until {pattern.end_date.strftime(date_format)}"
    elif pattern.end_type == RecurrenceEndType.AFTER_OCCURRENCES:
        description += f" for {pattern.occurrences} occurrences"

    return description


def get_end_description(pattern: RecurrencePattern, date_format: str = DEFAULT_DATE_FORMAT) -> str:
    if pattern.end_type == RecurrenceEndType.ON_DATE:
        if pattern.end_date:
            return f"Ends on {pattern.end_date.strftime(date_format)}"
        return 'Ends on specific date'
    if pattern.end_type == RecurrenceEndType.AFTER_OCCURRENCES:
        if pattern.occurrences:
            return f"Ends after {pattern.occurrences} occurrences"
        return 'Ends after specific number'
    return 'Never ends'
