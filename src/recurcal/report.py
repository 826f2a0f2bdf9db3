import logging
import os
from datetime import date
from typing import List, Optional

from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from recurcal.export_utils import format_agenda_line
from recurcal.models import CalendarEvent

DEFAULT_REPORT_FILE = 'recurcal_agenda.pdf'


def build_agenda_pdf(
    events: List[CalendarEvent],
    range_start: date,
    range_end: date,
    out_fn: str = DEFAULT_REPORT_FILE,
    chart_png: Optional[str] = None,
) -> str:
    """
    Schreibt eine Agenda (ein Event pro Zeile, nach Tagen gruppiert) als PDF.
    Ist `chart_png` gesetzt, folgt eine Seite mit dem Kategorie-Diagramm.
    """
    c = canvas.Canvas(out_fn, pagesize=letter)
    w, h = letter
    y = h - 50
    c.setFont('Helvetica-Bold', 14)
    c.drawString(50, y, 'RecurCal Agenda')
    y -= 30
    c.setFont('Helvetica', 10)
    c.drawString(50, y, f"Period: {range_start.isoformat()} to {range_end.isoformat()}")
    y -= 20
    c.drawString(50, y, f"Events: {len(events)}")
    y -= 25

    current_day = None
    for ev in sorted(events, key=lambda e: e.start):
        if y < 100:
            c.showPage()
            c.setFont('Helvetica', 10)
            y = h - 50
        day = ev.start.date()
        if day != current_day:
            current_day = day
            c.setFont('Helvetica-Bold', 11)
            c.drawString(50, y, f"{day:%A, %B} {day.day}")
            c.setFont('Helvetica', 10)
            y -= 15
        c.drawString(60, y, format_agenda_line(ev))
        y -= 15

    if chart_png:
        if os.path.exists(chart_png):
            c.showPage()
            size = 300
            c.drawImage(chart_png, (w - size) / 2, h - 50 - size, width=size, height=size, preserveAspectRatio=True)
        else:
            logging.warning(f"Diagramm {chart_png} nicht gefunden, Export ohne Diagramm")

    c.save()
    return out_fn
