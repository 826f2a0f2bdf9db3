import json
import logging
import os
import sqlite3
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from recurcal.models import CalendarEvent, EVENT_FIELDS, coerce_event_fields, new_event_id
from recurcal.recurrence import DateLike, create_event_instances, generate_instances, to_datetime
from recurcal.series import (
    EditScope, MutationAction, SeriesMutation, plan_delete, plan_edit, root_id,
)


class EventNotFoundError(KeyError):
    pass


_COLUMNS = (
    'id', 'title', 'start', 'end_at', 'all_day', 'category', 'priority', 'status',
    'description', 'location', 'attendees', 'url', 'created_at', 'updated_at',
    'created_by', 'recurrence', 'reminders',
)


def _event_params(ev: CalendarEvent) -> tuple:
    d = ev.to_dict()
    return (
        d['id'], d['title'], d['start'], d['end'], int(d['allDay']), d['category'],
        d['priority'], d['status'], d['description'], d['location'],
        json.dumps(d['attendees'], ensure_ascii=False), d['url'], d['createdAt'],
        d['updatedAt'], d['createdBy'],
        json.dumps(d['recurrence'], ensure_ascii=False) if d['recurrence'] else None,
        json.dumps(d['reminders'], ensure_ascii=False),
    )


def _row_to_event(row: sqlite3.Row) -> CalendarEvent:
    return CalendarEvent.from_dict({
        'id': row['id'],
        'title': row['title'],
        'start': row['start'],
        'end': row['end_at'],
        'allDay': bool(row['all_day']),
        'category': row['category'],
        'priority': row['priority'],
        'status': row['status'],
        'description': row['description'],
        'location': row['location'],
        'attendees': json.loads(row['attendees'] or '[]'),
        'url': row['url'],
        'createdAt': row['created_at'],
        'updatedAt': row['updated_at'],
        'createdBy': row['created_by'],
        'recurrence': json.loads(row['recurrence']) if row['recurrence'] else None,
        'reminders': json.loads(row['reminders'] or '[]'),
    })


def _overlaps(ev: CalendarEvent, lower: datetime, upper: datetime) -> bool:
    start = ev.start
    end = ev.end or start
    return (lower <= start <= upper) or (lower <= end <= upper) or (start <= lower and end >= upper)


class Database:
    """Speicher für Basis-Events; Serien-Vorkommen werden nie gespeichert."""

    def __init__(self, db_path: str = None, split_series: bool = False):
        # Standard für thisAndFuture-Bearbeitungen (Config: split_series_on_future_edit)
        self.split_series = split_series
        try:
            self.db_path = db_path or os.path.join(os.path.expanduser("~"), ".recurcal", "recurcal.db")
            if self.db_path != ':memory:':
                os.makedirs(os.path.dirname(os.path.abspath(self.db_path)), exist_ok=True)
            self.conn = sqlite3.connect(self.db_path)
            self.conn.row_factory = sqlite3.Row
            self._ensure_tables()
        except Exception as e:
            logging.error(f"Database connection error: {e}")
            raise

    def _ensure_tables(self):
        cur = self.conn.cursor()
        cur.execute("""
        CREATE TABLE IF NOT EXISTS events (
          id TEXT PRIMARY KEY,
          title TEXT NOT NULL,
          start TEXT NOT NULL,
          end_at TEXT,
          all_day INTEGER NOT NULL DEFAULT 0,
          category TEXT NOT NULL,
          priority TEXT NOT NULL,
          status TEXT NOT NULL,
          description TEXT,
          location TEXT,
          attendees TEXT,
          url TEXT,
          created_at TEXT,
          updated_at TEXT,
          created_by TEXT,
          recurrence TEXT,
          reminders TEXT
        )""")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_events_start ON events(start)")
        self.conn.commit()

    # Export/Import
    def export_to_sql(self, filename: str):
        """Dump aller Tabellen als SQL-Statements"""
        with open(filename, 'w', encoding='utf-8') as f:
            for line in self.conn.iterdump():
                f.write(f"{line}\n")

    def import_from_sql(self, filename: str):
        """Vorhandene Tabellen löschen, Dump einlesen und ausführen"""
        with open(filename, 'r', encoding='utf-8') as f:
            script = f.read()
        cur = self.conn.cursor()
        cur.execute("DROP TABLE IF EXISTS events")
        self.conn.commit()
        self.conn.executescript(script)
        self.conn.commit()
        self._ensure_tables()

    # Event-Methoden
    def _write_event(self, ev: CalendarEvent):
        placeholders = ','.join('?' for _ in _COLUMNS)
        self.conn.execute(
            f"REPLACE INTO events ({','.join(_COLUMNS)}) VALUES ({placeholders})",
            _event_params(ev),
        )

    def add_event(self, ev: CalendarEvent) -> CalendarEvent:
        now = datetime.now()
        ev = replace(
            ev,
            id=ev.id or new_event_id(),
            created_at=ev.created_at or now,
            updated_at=ev.updated_at or now,
        )
        self._write_event(ev)
        self.conn.commit()
        logging.info(f"Inserted event id={ev.id}")
        return ev

    def get_event(self, event_id: str) -> Optional[CalendarEvent]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM events WHERE id=?", (event_id,))
        row = cur.fetchone()
        return _row_to_event(row) if row else None

    def load_events(self) -> List[CalendarEvent]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM events ORDER BY start")
        return [_row_to_event(row) for row in cur.fetchall()]

    def _apply_updates(self, event_id: str, updates: Dict[str, Any]) -> Optional[CalendarEvent]:
        ev = self.get_event(event_id)
        if ev is None:
            logging.warning(f"Update für unbekanntes Event {event_id} ignoriert")
            return None
        clean = {k: v for k, v in coerce_event_fields(updates).items() if k in EVENT_FIELDS and k != 'id'}
        clean['updated_at'] = datetime.now()
        ev = replace(ev, **clean)
        self._write_event(ev)
        return ev

    def update_event(self, event_id: str, updates: Dict[str, Any]) -> Optional[CalendarEvent]:
        ev = self._apply_updates(event_id, updates)
        self.conn.commit()
        return ev

    def delete_event(self, event_id: str):
        cur = self.conn.cursor()
        cur.execute("DELETE FROM events WHERE id=?", (event_id,))
        self.conn.commit()

    def set_events(self, events: List[CalendarEvent]):
        self.conn.execute("DELETE FROM events")
        for ev in events:
            self._write_event(ev)
        self.conn.commit()

    def clear_events(self):
        cur = self.conn.cursor()
        cur.execute("DELETE FROM events")
        self.conn.commit()

    def search_events(self, query: str) -> List[CalendarEvent]:
        """Suche in Titel und Beschreibung, ohne Groß-/Kleinschreibung."""
        q = query.lower()
        return [
            ev for ev in self.load_events()
            if q in ev.title.lower() or (ev.description and q in ev.description.lower())
        ]

    def get_events_in_range(self, start: DateLike, end: DateLike) -> List[CalendarEvent]:
        """
        Alle anzeigefertigen Events im Zeitraum: normale Events mit Überlappung,
        Serienwurzeln werden über die Recurrence-Engine expandiert.
        """
        lower = to_datetime(start)
        upper = to_datetime(end, end_of_day=True)
        result: List[CalendarEvent] = []
        for ev in self.load_events():
            if ev.is_series_root:
                instances = generate_instances(ev, ev.recurrence, lower, upper)
                result.extend(create_event_instances(ev, instances))
            elif ev.is_instance:
                # Vorkommen gehören nicht in den Speicher
                logging.debug(f"Gespeichertes Vorkommen {ev.id} übersprungen")
            elif _overlaps(ev, lower, upper):
                result.append(ev)
        result.sort(key=lambda e: e.start)
        return result

    # Serien-Methoden
    def _root_for(self, target: CalendarEvent) -> CalendarEvent:
        rid = root_id(target)
        root = self.get_event(rid)
        if root is None:
            raise EventNotFoundError(rid)
        return root

    def apply_mutations(self, mutations: List[SeriesMutation]):
        """Wendet alle Mutationen in einer Transaktion an."""
        try:
            for m in mutations:
                if m.action == MutationAction.DELETE:
                    self.conn.execute("DELETE FROM events WHERE id=?", (m.event_id,))
                elif m.action == MutationAction.CREATE:
                    now = datetime.now()
                    self._write_event(replace(m.event, created_at=m.event.created_at or now,
                                              updated_at=m.event.updated_at or now))
                else:
                    self._apply_updates(m.event_id, m.updates)
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise

    def edit_recurring_event(
        self,
        target: CalendarEvent,
        changes: Dict[str, Any],
        scope: EditScope,
        split_series: Optional[bool] = None,
    ) -> List[SeriesMutation]:
        root = self._root_for(target)
        if split_series is None:
            split_series = self.split_series
        mutations = plan_edit(root, target, changes, scope, split_series=split_series)
        self.apply_mutations(mutations)
        return mutations

    def delete_recurring_event(self, target: CalendarEvent, scope: EditScope) -> List[SeriesMutation]:
        root = self._root_for(target)
        mutations = plan_delete(root, target, scope)
        self.apply_mutations(mutations)
        return mutations

    def close(self):
        """Schließe die Datenbankverbindung sauber"""
        if self.conn:
            self.conn.close()
            self.conn = None
