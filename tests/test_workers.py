from datetime import date, datetime

import pytest
from PySide6.QtCore import QCoreApplication

from recurcal.data import Database
from recurcal.models import CalendarEvent, EventCategory, EventRecurrence, RecurrenceFrequency
from recurcal.workers import BackupWorker, ExportWorker, RestoreWorker


@pytest.fixture(scope="module")
def qapp():
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


@pytest.fixture
def filled_db(tmp_path):
    dbfile = tmp_path / "worker.db"
    db = Database(str(dbfile))
    db.add_event(CalendarEvent(
        id='gym', title='Gym', start=datetime(2024, 1, 1, 18, 0), end=datetime(2024, 1, 1, 19, 0),
        category=EventCategory.HEALTH,
        recurrence=EventRecurrence(frequency=RecurrenceFrequency.WEEKLY, week_days=[1, 3]),
    ))
    db.add_event(CalendarEvent(id='review', title='Review', start=datetime(2024, 1, 4, 14, 0),
                               category=EventCategory.WORK))
    db.close()
    return str(dbfile)


def collect(worker, with_value=True):
    results, errors = [], []
    if with_value:
        worker.finished.connect(results.append)
    else:
        worker.finished.connect(lambda: results.append("done"))
    worker.error.connect(errors.append)
    return results, errors


# --- BackupWorker ---
def test_backup_worker_success(qapp, filled_db, tmp_path):
    backup_file = tmp_path / "backup.sql"
    worker = BackupWorker(filled_db, str(backup_file))
    results, errors = collect(worker)
    worker.run()
    assert results == [str(backup_file)]
    assert not errors
    assert "INSERT INTO" in backup_file.read_text(encoding='utf-8')


def test_backup_worker_failure(qapp, filled_db, tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x")
    worker = BackupWorker(filled_db, str(blocker / "backup.sql"))
    results, errors = collect(worker)
    worker.run()
    assert not results
    assert errors and errors[0].startswith("File error")


def test_backup_worker_stopped_does_nothing(qapp, filled_db, tmp_path):
    backup_file = tmp_path / "backup.sql"
    worker = BackupWorker(filled_db, str(backup_file))
    results, errors = collect(worker)
    worker.stop()
    worker.run()
    assert not results and not errors
    assert not backup_file.exists()


# --- RestoreWorker ---
def test_restore_worker_success(qapp, filled_db, tmp_path):
    backup_file = tmp_path / "backup.sql"
    BackupWorker(filled_db, str(backup_file)).run()

    restored = str(tmp_path / "restored.db")
    restored_events = []
    worker = RestoreWorker(restored, str(backup_file), on_restored=restored_events.append)
    results, errors = collect(worker, with_value=False)
    worker.run()
    assert results == ["done"]
    assert not errors
    assert len(restored_events) == 1
    assert {e.id for e in restored_events[0]} == {'gym', 'review'}


def test_restore_worker_without_callback(qapp, filled_db, tmp_path):
    backup_file = tmp_path / "backup.sql"
    BackupWorker(filled_db, str(backup_file)).run()
    worker = RestoreWorker(str(tmp_path / "plain.db"), str(backup_file))
    results, errors = collect(worker, with_value=False)
    worker.run()
    assert results == ["done"]
    assert not errors
    db = Database(str(tmp_path / "plain.db"))
    assert len(db.load_events()) == 2
    db.close()


def test_restore_worker_failure(qapp, tmp_path):
    worker = RestoreWorker(str(tmp_path / "db.db"), str(tmp_path / "missing.sql"))
    results, errors = collect(worker, with_value=False)
    worker.run()
    assert not results
    assert errors


# --- ExportWorker ---
def test_export_worker_success(qapp, filled_db, tmp_path):
    report_file = tmp_path / "recurcal_agenda.pdf"
    worker = ExportWorker(filled_db, date(2024, 1, 1), date(2024, 1, 14), out_fn=str(report_file))
    results, errors = collect(worker)
    worker.run()
    assert results == [str(report_file)]
    assert not errors
    assert report_file.exists()
    assert report_file.read_bytes().startswith(b"%PDF")


def test_export_worker_invalid_range(qapp, filled_db, tmp_path):
    report_file = tmp_path / "bad.pdf"
    worker = ExportWorker(filled_db, date(2024, 2, 1), date(2024, 1, 1), out_fn=str(report_file))
    results, errors = collect(worker)
    worker.run()
    assert not results
    assert errors
    assert not report_file.exists()
