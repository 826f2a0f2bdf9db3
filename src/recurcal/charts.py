# src/recurcal/charts.py

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from recurcal.models import CATEGORY_CONFIG


def create_pie_chart(values: list[int], labels: list[str], filename: str, colors: list[str] = None, subtitle: str = None):
    """
    Erstellt ein Tortendiagramm und speichert es als PNG.
    :param values: Liste der Werte (z.B. Anzahl Events je Kategorie).
    :param labels: Zugehörige Labels.
    :param filename: Pfad zur Ausgabedatei, z.B. "categories.png".
    :param colors: (Optional) Liste von Farben für die Segmente.
    :param subtitle: (Optional) Text, der unter das Diagramm geschrieben wird.
    """
    fig, ax = plt.subplots()
    if sum(values) == 0:
        # Platzhalter-Bild statt leerem Diagramm
        ax.text(0.5, 0.5, "No data", ha="center", va="center", fontsize=14)
        ax.axis("off")
    else:
        ax.pie(values, labels=labels, autopct="%1.1f%%", colors=colors)
        ax.axis("equal")
    if subtitle:
        fig.text(0.5, 0.02, subtitle, ha="center", va="bottom", fontsize=16, fontweight='bold')
    fig.savefig(filename, bbox_inches="tight")
    plt.close(fig)
    return filename


def create_category_chart(stats: dict, filename: str) -> str:
    """Tortendiagramm der Events je Kategorie (Ergebnis von compute_event_stats)."""
    counts = {c: n for c, n in stats['events_by_category'].items() if n}
    labels = [CATEGORY_CONFIG[c].label for c in counts]
    colors = [CATEGORY_CONFIG[c].color for c in counts]
    return create_pie_chart(list(counts.values()), labels, filename, colors=colors or None, subtitle="Categories")
