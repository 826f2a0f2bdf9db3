from datetime import date, datetime

from recurcal.charts import create_category_chart, create_pie_chart
from recurcal.models import CalendarEvent, EventCategory
from recurcal.report import build_agenda_pdf
from recurcal.statistics import compute_event_stats


def sample_events():
    return [
        CalendarEvent(id=f'e{i}', title=f'Event {i}', start=datetime(2024, 1, 1 + i % 10, 9, 0),
                      category=EventCategory.WORK if i % 2 else EventCategory.SOCIAL)
        for i in range(60)
    ]


def test_pie_chart_written(tmp_path):
    out = tmp_path / "pie.png"
    assert create_pie_chart([3, 1], ['Work', 'Social'], str(out)) == str(out)
    assert out.exists() and out.stat().st_size > 0


def test_pie_chart_without_data(tmp_path):
    out = tmp_path / "empty.png"
    create_pie_chart([0, 0], ['Work', 'Social'], str(out), subtitle="Categories")
    assert out.exists()


def test_agenda_pdf_with_chart(tmp_path):
    events = sample_events()
    png = tmp_path / "cats.png"
    create_category_chart(compute_event_stats(events, datetime(2024, 1, 1)), str(png))
    pdf = tmp_path / "agenda.pdf"
    # 60 Zeilen erzwingen einen Seitenumbruch
    build_agenda_pdf(events, date(2024, 1, 1), date(2024, 1, 31), str(pdf), chart_png=str(png))
    data = pdf.read_bytes()
    assert data.startswith(b"%PDF")


def test_agenda_pdf_missing_chart_is_skipped(tmp_path, caplog):
    pdf = tmp_path / "agenda.pdf"
    build_agenda_pdf([], date(2024, 1, 1), date(2024, 1, 31), str(pdf),
                     chart_png=str(tmp_path / "missing.png"))
    assert pdf.exists()
    assert "missing.png" in caplog.text
