import random
import string
import time
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional


class RecurrenceFrequency(str, Enum):
    DAILY = 'daily'
    WEEKLY = 'weekly'
    MONTHLY = 'monthly'
    YEARLY = 'yearly'


class RecurrenceEndType(str, Enum):
    NEVER = 'never'
    ON_DATE = 'onDate'
    AFTER_OCCURRENCES = 'afterOccurrences'


class MonthlyRecurrenceType(str, Enum):
    DAY_OF_MONTH = 'dayOfMonth'
    DAY_OF_WEEK = 'dayOfWeek'


class WeekDay(IntEnum):
    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6


WEEKDAY_NAMES = {
    WeekDay.SUNDAY: 'Sunday',
    WeekDay.MONDAY: 'Monday',
    WeekDay.TUESDAY: 'Tuesday',
    WeekDay.WEDNESDAY: 'Wednesday',
    WeekDay.THURSDAY: 'Thursday',
    WeekDay.FRIDAY: 'Friday',
    WeekDay.SATURDAY: 'Saturday',
}

WEEKDAY_ABBREVIATIONS = {day: name[:3] for day, name in WEEKDAY_NAMES.items()}

FREQUENCY_UNITS = {
    RecurrenceFrequency.DAILY: 'day',
    RecurrenceFrequency.WEEKLY: 'week',
    RecurrenceFrequency.MONTHLY: 'month',
    RecurrenceFrequency.YEARLY: 'year',
}


def _parse_date(value) -> Optional[date]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    # ISO-Strings mit oder ohne Uhrzeit
    return datetime.fromisoformat(str(value)).date()


def _parse_datetime(value) -> Optional[datetime]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(str(value))


@dataclass
class RecurrencePattern:
    """Beschreibt, wie sich ein Termin wiederholt (z. B. jeden Mo/Mi/Fr bis Jahresende)."""
    frequency: RecurrenceFrequency = RecurrenceFrequency.WEEKLY
    interval: int = 1                        # alle N Tage/Wochen/Monate/Jahre
    end_type: RecurrenceEndType = RecurrenceEndType.NEVER
    end_date: Optional[date] = None          # nur bei end_type=onDate, inklusiv
    occurrences: Optional[int] = None        # nur bei end_type=afterOccurrences
    week_days: List[int] = field(default_factory=list)   # 0=Sonntag … 6=Samstag
    monthly_type: Optional[MonthlyRecurrenceType] = None
    day_of_month: Optional[int] = None
    week_of_month: Optional[int] = None      # 1-5
    day_of_week: Optional[int] = None
    exceptions: List[date] = field(default_factory=list)
    timezone: Optional[str] = None           # nur informativ

    def pattern_dict(self) -> Dict[str, Any]:
        """Nur die Muster-Felder, im camelCase-Format der gespeicherten Events."""
        return {
            'frequency': self.frequency.value,
            'interval': self.interval,
            'endType': self.end_type.value,
            'endDate': self.end_date.isoformat() if self.end_date else None,
            'occurrences': self.occurrences,
            'weekDays': list(self.week_days),
            'monthlyType': self.monthly_type.value if self.monthly_type else None,
            'dayOfMonth': self.day_of_month,
            'weekOfMonth': self.week_of_month,
            'dayOfWeek': self.day_of_week,
            'exceptions': [d.isoformat() for d in self.exceptions],
            'timezone': self.timezone,
        }

    def to_dict(self) -> Dict[str, Any]:
        return self.pattern_dict()

    @staticmethod
    def _pattern_kwargs(data: Dict[str, Any]) -> Dict[str, Any]:
        monthly = data.get('monthlyType')
        return {
            'frequency': RecurrenceFrequency(data.get('frequency', 'weekly')),
            'interval': int(data.get('interval') or 1),
            'end_type': RecurrenceEndType(data.get('endType', 'never')),
            'end_date': _parse_date(data.get('endDate')),
            'occurrences': data.get('occurrences'),
            'week_days': [int(d) for d in data.get('weekDays') or []],
            'monthly_type': MonthlyRecurrenceType(monthly) if monthly else None,
            'day_of_month': data.get('dayOfMonth'),
            'week_of_month': data.get('weekOfMonth'),
            'day_of_week': data.get('dayOfWeek'),
            'exceptions': [_parse_date(d) for d in data.get('exceptions') or []],
            'timezone': data.get('timezone'),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RecurrencePattern':
        return cls(**cls._pattern_kwargs(data))


DEFAULT_RECURRENCE_PATTERN = RecurrencePattern()


@dataclass
class RecurrenceModification:
    """Abweichung für genau ein Vorkommen einer Serie (geändert oder gelöscht)."""
    original_date: datetime
    modified_event: Optional[Dict[str, Any]] = None
    is_deleted: bool = False

    def to_dict(self) -> Dict[str, Any]:
        modified = None
        if self.modified_event is not None:
            modified = {k: _jsonable(v) for k, v in self.modified_event.items()}
        return {
            'originalDate': self.original_date.isoformat(),
            'modifiedEvent': modified,
            'isDeleted': self.is_deleted,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RecurrenceModification':
        modified = data.get('modifiedEvent')
        if modified is not None:
            modified = coerce_event_fields(modified)
        return cls(
            original_date=_parse_datetime(data['originalDate']),
            modified_event=modified,
            is_deleted=bool(data.get('isDeleted', False)),
        )


@dataclass
class EventRecurrence(RecurrencePattern):
    """Muster plus Serien-Verknüpfung, wie es an einem Termin hängt."""
    parent_event_id: Optional[str] = None    # nur bei erzeugten Vorkommen
    instance_date: Optional[datetime] = None
    modifications: List[RecurrenceModification] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = self.pattern_dict()
        data['parentEventId'] = self.parent_event_id
        data['instanceDate'] = self.instance_date.isoformat() if self.instance_date else None
        data['modifications'] = [m.to_dict() for m in self.modifications]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EventRecurrence':
        return cls(
            parent_event_id=data.get('parentEventId'),
            instance_date=_parse_datetime(data.get('instanceDate')),
            modifications=[RecurrenceModification.from_dict(m) for m in data.get('modifications') or []],
            **cls._pattern_kwargs(data),
        )

    @classmethod
    def from_pattern(cls, pattern: RecurrencePattern) -> 'EventRecurrence':
        return cls(**{f.name: getattr(pattern, f.name) for f in fields(RecurrencePattern)})


@dataclass
class RecurrenceValidation:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class RecurringEventInstance:
    date: datetime
    end_date: Optional[datetime] = None
    is_exception: bool = False
    is_modified: bool = False


# === Kategorien, Prioritäten, Status ===

class EventCategory(str, Enum):
    WORK = 'work'
    PERSONAL = 'personal'
    MEETING = 'meeting'
    HEALTH = 'health'
    EDUCATION = 'education'
    TRAVEL = 'travel'
    SOCIAL = 'social'
    OTHER = 'other'


class EventPriority(str, Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    URGENT = 'urgent'


class EventStatus(str, Enum):
    CONFIRMED = 'confirmed'
    TENTATIVE = 'tentative'
    CANCELLED = 'cancelled'
    COMPLETED = 'completed'


@dataclass(frozen=True)
class CategoryConfig:
    label: str
    color: str
    background_color: str
    border_color: str
    text_color: str
    icon: str


@dataclass(frozen=True)
class BadgeConfig:
    label: str
    color: str
    icon: str


CATEGORY_CONFIG = {
    EventCategory.WORK: CategoryConfig('Work', '#3b82f6', '#dbeafe', '#3b82f6', '#1e40af', '💼'),
    EventCategory.PERSONAL: CategoryConfig('Personal', '#10b981', '#d1fae5', '#10b981', '#047857', '🏠'),
    EventCategory.MEETING: CategoryConfig('Meeting', '#f59e0b', '#fef3c7', '#f59e0b', '#d97706', '🤝'),
    EventCategory.HEALTH: CategoryConfig('Health', '#ef4444', '#fee2e2', '#ef4444', '#dc2626', '🏥'),
    EventCategory.EDUCATION: CategoryConfig('Education', '#8b5cf6', '#ede9fe', '#8b5cf6', '#7c3aed', '📚'),
    EventCategory.TRAVEL: CategoryConfig('Travel', '#06b6d4', '#cffafe', '#06b6d4', '#0891b2', '✈️'),
    EventCategory.SOCIAL: CategoryConfig('Social', '#ec4899', '#fce7f3', '#ec4899', '#db2777', '🎉'),
    EventCategory.OTHER: CategoryConfig('Other', '#6b7280', '#f3f4f6', '#6b7280', '#4b5563', '📌'),
}

PRIORITY_CONFIG = {
    EventPriority.LOW: BadgeConfig('Low', '#6b7280', '🔵'),
    EventPriority.MEDIUM: BadgeConfig('Medium', '#f59e0b', '🟡'),
    EventPriority.HIGH: BadgeConfig('High', '#ef4444', '🟠'),
    EventPriority.URGENT: BadgeConfig('Urgent', '#dc2626', '🔴'),
}

STATUS_CONFIG = {
    EventStatus.CONFIRMED: BadgeConfig('Confirmed', '#10b981', '✅'),
    EventStatus.TENTATIVE: BadgeConfig('Tentative', '#f59e0b', '❓'),
    EventStatus.CANCELLED: BadgeConfig('Cancelled', '#ef4444', '❌'),
    EventStatus.COMPLETED: BadgeConfig('Completed', '#6b7280', '☑️'),
}

# Jede Enum-Ausprägung braucht einen Eintrag, sonst schlägt schon der Import fehl
for _enum, _table in ((EventCategory, CATEGORY_CONFIG),
                      (EventPriority, PRIORITY_CONFIG),
                      (EventStatus, STATUS_CONFIG)):
    _missing = set(_enum) - set(_table)
    if _missing:
        raise RuntimeError(f"{_enum.__name__} ohne Style-Eintrag: {sorted(m.value for m in _missing)}")


@dataclass
class Reminder:
    type: str               # 'email' | 'popup' | 'push'
    minutes_before: int


@dataclass
class CalendarEvent:
    """Ein Termin. Mit `recurrence` und ohne parent_event_id ist er die Wurzel einer Serie."""
    id: str
    title: str
    start: datetime
    end: Optional[datetime] = None
    all_day: bool = False
    category: EventCategory = EventCategory.OTHER
    priority: EventPriority = EventPriority.MEDIUM
    status: EventStatus = EventStatus.CONFIRMED
    description: Optional[str] = None
    location: Optional[str] = None
    attendees: List[str] = field(default_factory=list)
    url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None
    recurrence: Optional[EventRecurrence] = None
    reminders: List[Reminder] = field(default_factory=list)

    @property
    def is_series_root(self) -> bool:
        return self.recurrence is not None and self.recurrence.parent_event_id is None

    @property
    def is_instance(self) -> bool:
        return self.recurrence is not None and self.recurrence.parent_event_id is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'start': self.start.isoformat(),
            'end': self.end.isoformat() if self.end else None,
            'allDay': self.all_day,
            'category': self.category.value,
            'priority': self.priority.value,
            'status': self.status.value,
            'description': self.description,
            'location': self.location,
            'attendees': list(self.attendees),
            'url': self.url,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
            'createdBy': self.created_by,
            'recurrence': self.recurrence.to_dict() if self.recurrence else None,
            'reminders': [{'type': r.type, 'minutesBefore': r.minutes_before} for r in self.reminders],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CalendarEvent':
        rec = data.get('recurrence')
        return cls(
            id=data['id'],
            title=data['title'],
            start=_parse_datetime(data['start']),
            end=_parse_datetime(data.get('end')),
            all_day=bool(data.get('allDay', False)),
            category=EventCategory(data.get('category') or 'other'),
            priority=EventPriority(data.get('priority') or 'medium'),
            status=EventStatus(data.get('status') or 'confirmed'),
            description=data.get('description'),
            location=data.get('location'),
            attendees=list(data.get('attendees') or []),
            url=data.get('url'),
            created_at=_parse_datetime(data.get('createdAt')),
            updated_at=_parse_datetime(data.get('updatedAt')),
            created_by=data.get('createdBy'),
            recurrence=EventRecurrence.from_dict(rec) if rec else None,
            reminders=[Reminder(r['type'], int(r['minutesBefore'])) for r in data.get('reminders') or []],
        )


EVENT_FIELDS = frozenset(f.name for f in fields(CalendarEvent))

_DATETIME_FIELDS = ('start', 'end', 'created_at', 'updated_at')
_ENUM_FIELDS = {'category': EventCategory, 'priority': EventPriority, 'status': EventStatus}


def coerce_event_fields(changes: Dict[str, Any]) -> Dict[str, Any]:
    """Bringt Feldwerte (z. B. aus JSON) auf die Typen von CalendarEvent."""
    out = dict(changes)
    for key in _DATETIME_FIELDS:
        if isinstance(out.get(key), (str, date)):
            out[key] = _parse_datetime(out[key])
    for key, enum in _ENUM_FIELDS.items():
        if key in out and out[key] is not None:
            out[key] = enum(out[key])
    if isinstance(out.get('recurrence'), dict):
        out['recurrence'] = EventRecurrence.from_dict(out['recurrence'])
    if 'reminders' in out:
        out['reminders'] = [
            r if isinstance(r, Reminder) else Reminder(r['type'], int(r['minutesBefore']))
            for r in out['reminders'] or []
        ]
    return out


def _jsonable(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, EventRecurrence):
        return value.to_dict()
    if isinstance(value, Reminder):
        return {'type': value.type, 'minutesBefore': value.minutes_before}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


def new_event_id() -> str:
    """IDs im Format event_<millis>_<9 Zeichen>."""
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"event_{int(time.time() * 1000)}_{suffix}"
