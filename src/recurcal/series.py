import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from .models import (
    CalendarEvent, EventRecurrence, RecurrenceEndType, RecurrenceModification,
    EVENT_FIELDS, coerce_event_fields, new_event_id,
)
from .recurrence import generate_instances, occurrence_key, to_date, to_datetime


class EditScope(str, Enum):
    THIS = 'this'
    THIS_AND_FUTURE = 'thisAndFuture'
    ALL = 'all'


class MutationAction(str, Enum):
    UPDATE = 'update'
    DELETE = 'delete'
    CREATE = 'create'


@dataclass
class SeriesMutation:
    """Was der Speicher auf ein Event anwenden soll."""
    action: MutationAction
    event_id: str
    updates: Dict[str, Any] = field(default_factory=dict)
    event: Optional[CalendarEvent] = None


def root_id(event: CalendarEvent) -> str:
    """ID der Serienwurzel; bei normalen Events und Wurzeln die eigene."""
    if event.is_instance:
        return event.recurrence.parent_event_id
    return event.id


def occurrence_date(event: CalendarEvent) -> datetime:
    if event.recurrence is not None and event.recurrence.instance_date is not None:
        return event.recurrence.instance_date
    return to_datetime(event.start)


def _upsert_modification(
    recurrence: EventRecurrence,
    original_date: datetime,
    changes: Optional[Dict[str, Any]] = None,
    deleted: bool = False,
) -> List[RecurrenceModification]:
    key = occurrence_key(original_date)
    result: List[RecurrenceModification] = []
    found = False
    for mod in recurrence.modifications:
        if occurrence_key(mod.original_date) != key:
            result.append(mod)
            continue
        found = True
        merged = dict(mod.modified_event or {})
        merged.update(changes or {})
        result.append(RecurrenceModification(mod.original_date, merged or None, deleted or mod.is_deleted))
    if not found:
        result.append(RecurrenceModification(original_date, dict(changes) if changes else None, deleted))
    return result


def _instance_changes(changes: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in changes.items() if k not in ('id', 'recurrence')}


def _root_changes(root: CalendarEvent, target: CalendarEvent, changes: Dict[str, Any]) -> Dict[str, Any]:
    updates = {k: v for k, v in coerce_event_fields(changes).items() if k in EVENT_FIELDS and k != 'id'}

    if target.is_instance:
        # Verschiebung des bearbeiteten Vorkommens auf die Wurzel übertragen
        for key in ('start', 'end'):
            new_value = updates.get(key)
            before = getattr(target, key)
            base = getattr(root, key)
            if new_value is not None and before is not None and base is not None:
                updates[key] = base + (new_value - before)

    new_rec = updates.get('recurrence')
    if isinstance(new_rec, EventRecurrence):
        kept = new_rec.modifications or (root.recurrence.modifications if root.recurrence else [])
        updates['recurrence'] = replace(new_rec, parent_event_id=None, instance_date=None, modifications=kept)
    return updates


def _truncated(recurrence: EventRecurrence, when: datetime) -> EventRecurrence:
    """Serie endet am Tag vor `when`; ein früheres Enddatum bleibt erhalten."""
    cutoff = to_date(when) - timedelta(days=1)
    if (recurrence.end_type == RecurrenceEndType.ON_DATE
            and recurrence.end_date is not None and recurrence.end_date <= cutoff):
        return recurrence
    return replace(recurrence, end_type=RecurrenceEndType.ON_DATE, end_date=cutoff, occurrences=None)


def _split(root: CalendarEvent, target: CalendarEvent, changes: Dict[str, Any], new_id: str) -> List[SeriesMutation]:
    """
    Teilt die Serie am Vorkommen `target`: die alte Wurzel endet am Vortag,
    eine neue Wurzel übernimmt ab dort inklusive der Änderungen.
    """
    rec = root.recurrence
    when = occurrence_date(target)
    tail = replace(rec, modifications=[m for m in rec.modifications if m.original_date >= when])
    if rec.end_type == RecurrenceEndType.AFTER_OCCURRENCES and rec.occurrences:
        done = len(generate_instances(root, rec, root.start, when - timedelta(microseconds=1)))
        tail = replace(tail, occurrences=max(rec.occurrences - done, 1))

    duration = root.end - root.start if root.end else None
    new_root = replace(
        root,
        id=new_id,
        start=when,
        end=when + duration if duration is not None else None,
        recurrence=tail,
        created_at=None,
        updated_at=None,
    )
    new_root = replace(new_root, **_root_changes(new_root, target, changes))
    return [
        SeriesMutation(MutationAction.UPDATE, root.id, {'recurrence': _truncated(rec, when)}),
        SeriesMutation(MutationAction.CREATE, new_id, event=new_root),
    ]


def plan_edit(
    root: CalendarEvent,
    target: CalendarEvent,
    changes: Dict[str, Any],
    scope: EditScope,
    split_series: bool = False,
    new_id: Optional[str] = None,
) -> List[SeriesMutation]:
    """
    Übersetzt eine Bearbeitung von `target` (Wurzel oder Vorkommen) in Mutationen.

    this:          Modifikation am Vorkommensdatum auf der Wurzel (upsert)
    thisAndFuture: ändert ohne split_series die ganze Serie (Altverhalten),
                   mit split_series wird die Serie am Vorkommen geteilt
    all:           Basisfelder der Wurzel
    """
    scope = EditScope(scope)
    if root.recurrence is None:
        return [SeriesMutation(MutationAction.UPDATE, root.id, _root_changes(root, target, changes))]

    if scope == EditScope.THIS:
        mods = _upsert_modification(root.recurrence, occurrence_date(target), _instance_changes(changes))
        return [SeriesMutation(MutationAction.UPDATE, root.id,
                               {'recurrence': replace(root.recurrence, modifications=mods)})]

    if scope == EditScope.THIS_AND_FUTURE:
        if split_series:
            return _split(root, target, changes, new_id or new_event_id())
        logging.warning(f"'thisAndFuture' für Serie {root.id} ändert die ganze Serie")

    return [SeriesMutation(MutationAction.UPDATE, root.id, _root_changes(root, target, changes))]


def plan_delete(root: CalendarEvent, target: CalendarEvent, scope: EditScope) -> List[SeriesMutation]:
    scope = EditScope(scope)
    if root.recurrence is None or scope == EditScope.ALL:
        return [SeriesMutation(MutationAction.DELETE, root.id)]

    when = occurrence_date(target)
    if scope == EditScope.THIS:
        mods = _upsert_modification(root.recurrence, when, deleted=True)
        recurrence = replace(root.recurrence, modifications=mods)
    else:
        recurrence = _truncated(root.recurrence, when)
    return [SeriesMutation(MutationAction.UPDATE, root.id, {'recurrence': recurrence})]
