import logging
import os
import tempfile
from datetime import date, datetime

from PySide6.QtCore import QObject, Signal

from recurcal.charts import create_category_chart
from recurcal.data import Database
from recurcal.report import DEFAULT_REPORT_FILE, build_agenda_pdf
from recurcal.statistics import compute_event_stats


class BackupWorker(QObject):
    """Exportiert die Datenbank als SQL-Dump; eigene Verbindung im Worker-Thread."""
    finished = Signal(str)
    error = Signal(str)

    def __init__(self, db_path, fn):
        super().__init__()
        self.db_path = db_path
        self.fn = fn
        self._stopped = False

    def stop(self):
        self._stopped = True

    def run(self):
        if self._stopped:
            return
        db = None
        try:
            db = Database(self.db_path)
            db.export_to_sql(self.fn)
            if not self._stopped:
                self.finished.emit(self.fn)
        except OSError as e:
            logging.error(f"BackupWorker OSError: {e}")
            if not self._stopped:
                self.error.emit(f"File error: {e}")
        except Exception as e:
            logging.error(f"BackupWorker error: {e}")
            if not self._stopped:
                self.error.emit(str(e))
        finally:
            if db is not None:
                db.close()


class RestoreWorker(QObject):
    """
    Spielt einen SQL-Dump ein. `on_restored` (optional) bekommt danach die
    wiederhergestellten Basis-Events, z. B. zum Neuzeichnen einer Ansicht.
    """
    finished = Signal()
    error = Signal(str)

    def __init__(self, db_path, fn, on_restored=None):
        super().__init__()
        self.db_path = db_path
        self.fn = fn
        self.on_restored = on_restored
        self._stopped = False

    def stop(self):
        self._stopped = True

    def run(self):
        if self._stopped:
            return
        db = None
        try:
            db = Database(self.db_path)
            db.import_from_sql(self.fn)
            if self._stopped:
                return
            if self.on_restored is not None:
                self.on_restored(db.load_events())
            self.finished.emit()
        except OSError as e:
            logging.error(f"RestoreWorker OSError: {e}")
            if not self._stopped:
                self.error.emit(f"File error: {e}")
        except Exception as e:
            logging.error(f"RestoreWorker error: {e}")
            if not self._stopped:
                self.error.emit(str(e))
        finally:
            if db is not None:
                db.close()


class ExportWorker(QObject):
    """Erzeugt das Agenda-PDF für einen Zeitraum im Hintergrund."""
    finished = Signal(str)
    error = Signal(str)

    def __init__(self, db_path, range_start: date, range_end: date, out_fn: str = DEFAULT_REPORT_FILE, with_chart: bool = True):
        super().__init__()
        self.db_path = db_path
        self.range_start = range_start
        self.range_end = range_end
        self.out_fn = out_fn
        self.with_chart = with_chart

    def run(self):
        logging.info("[RecurCal] ExportWorker.run gestartet.")
        if self.range_start is None or self.range_end is None or self.range_start > self.range_end:
            logging.error("[RecurCal] Ungültiger Zeitraum im ExportWorker.")
            self.error.emit("Error: start and end date must be set and ordered.")
            return
        db = None
        png = None
        try:
            db = Database(self.db_path)
            events = db.get_events_in_range(self.range_start, self.range_end)
            if self.with_chart:
                fd, png = tempfile.mkstemp(suffix='.png')
                os.close(fd)
                create_category_chart(compute_event_stats(events, datetime.now()), png)
            build_agenda_pdf(events, self.range_start, self.range_end, self.out_fn, chart_png=png)
            logging.info(f"[RecurCal] Export nach {self.out_fn} abgeschlossen ({len(events)} Events).")
            self.finished.emit(self.out_fn)
        except Exception as e:
            logging.error(f"ExportWorker error: {e}")
            self.error.emit(str(e))
        finally:
            if db is not None:
                db.close()
            if png and os.path.exists(png):
                os.remove(png)
