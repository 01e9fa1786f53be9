"""Kalenderwochen-Arithmetik mit Jahreswechsel.

Wochennummern liegen immer im Bereich 1–53. Ein Wochenbereich, dessen Start
größer als sein Ende ist (z.B. Woche 50 bis Woche 5), läuft über den
Jahreswechsel.
"""

import math
import numbers
from collections.abc import Iterator, Mapping
from decimal import Decimal
from typing import Any, Optional

MAX_WEEKS_IN_YEAR = 53
DEFAULT_WEEK_START = 1
DEFAULT_WEEK_END = 52


def clamp_week_number(value: Any) -> int:
    """Bringt einen beliebigen Wert in den Bereich 1–53.

    Nicht-numerische Werte und NaN ergeben die Startwoche 1. Kommazahlen
    werden Richtung Null abgeschnitten. Wirft nie.
    """
    if isinstance(value, bool) or not isinstance(value, (numbers.Real, Decimal)):
        return DEFAULT_WEEK_START
    if math.isnan(value):
        return DEFAULT_WEEK_START
    if math.isinf(value):
        return MAX_WEEKS_IN_YEAR if value > 0 else 1

    week = math.trunc(value)
    if week < 1:
        return 1
    if week > MAX_WEEKS_IN_YEAR:
        return MAX_WEEKS_IN_YEAR
    return week


def iter_week_sequence(start: Optional[int] = None,
                       end: Optional[int] = None) -> Iterator[int]:
    """Liefert die Wochen von ``start`` bis einschließlich ``end``.

    Nach der Kappungswoche geht es mit Woche 1 weiter. Gekappt wird bei 53,
    wenn einer der Endpunkte 53 ist, sonst bei 52.
    """
    first = clamp_week_number(DEFAULT_WEEK_START if start is None else start)
    last = clamp_week_number(DEFAULT_WEEK_END if end is None else end)
    cap = MAX_WEEKS_IN_YEAR if MAX_WEEKS_IN_YEAR in (first, last) else DEFAULT_WEEK_END

    current = first
    yield current
    # Obergrenze: nie mehr als 52 Schritte, auch wenn end nie erreicht wird
    for _ in range(MAX_WEEKS_IN_YEAR - 1):
        if current == last:
            return
        current = 1 if current == cap else current + 1
        yield current


def generate_week_sequence(start: Optional[int] = None,
                           end: Optional[int] = None) -> list[int]:
    """Geordnete Wochenliste für Anzeige und Export eines Plans."""
    return list(iter_week_sequence(start, end))


def _span_bounds(span: Any) -> tuple[Any, Any]:
    if isinstance(span, Mapping):
        start = span.get("week_start", span.get("weekStart"))
        end = span.get("week_end", span.get("weekEnd"))
        return start, end
    return getattr(span, "week_start", None), getattr(span, "week_end", None)


def goal_covers_week(span: Any, week: Any) -> bool:
    """Prüft, ob ``week`` in der Spanne ``week_start``..``week_end`` liegt.

    Die Spanne darf ein Objekt mit Attributen oder ein Mapping sein.
    Drei Fälle:
    - Start == Ende: nur genau diese Woche
    - Start < Ende: geschlossenes Intervall
    - Start > Ende: über den Jahreswechsel (``week >= start`` oder ``week <= end``)
    """
    raw_start, raw_end = _span_bounds(span)
    start = clamp_week_number(raw_start)
    end = clamp_week_number(raw_end)
    target = clamp_week_number(week)

    if start == end:
        return target == start
    if start < end:
        return start <= target <= end
    return target >= start or target <= end


def is_week_blocked(blocked_week: Any, week: Any) -> bool:
    """Gesperrte Wochen nutzen dieselbe Spannen-Logik wie Lernziele."""
    return goal_covers_week(blocked_week, week)


def format_week_range(week_start: Any, week_end: Any) -> str:
    """Anzeige-Label: "Woche 7" für eine einzelne Woche, sonst "Woche 50-3"."""
    start = clamp_week_number(week_start)
    end = clamp_week_number(week_end)
    if start == end:
        return f"Woche {start}"
    return f"Woche {start}-{end}"
