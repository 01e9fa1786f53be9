"""ISO-8601-Kalenderwochen: Wochennummer eines Datums und Datumsbereich einer Woche."""

from datetime import date, timedelta
from typing import Optional

from timeline.weeks import clamp_week_number


def week_number_for_date(day: date) -> int:
    """ISO-Kalenderwoche (Woche 1 enthält den ersten Donnerstag des Jahres)."""
    return day.isocalendar()[1]


def current_week_number(today: Optional[date] = None) -> int:
    return week_number_for_date(today or date.today())


def week_dates(week: int, year: int) -> tuple[date, date]:
    """Montag und Sonntag der Kalenderwoche ``week`` im Jahr ``year``.

    Gerechnet wird ab dem Montag der ISO-Woche 1, daher liefert auch Woche 53
    in Jahren mit nur 52 Wochen ein Ergebnis (die erste Woche des Folgejahres).
    """
    monday = date.fromisocalendar(year, 1, 1) + timedelta(weeks=clamp_week_number(week) - 1)
    return monday, monday + timedelta(days=6)


def format_week_dates(week: int, year: int) -> str:
    """z.B. "02.09.–08.09." für Woche 36 in 2024."""
    start, end = week_dates(week, year)
    return f"{start.strftime('%d.%m.')}–{end.strftime('%d.%m.')}"
