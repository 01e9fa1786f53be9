"""Schuljahr-Hilfsfunktionen.

Format: "2024-2025" (September 2024 bis August 2025).
"""

import math
import numbers
import re
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, NamedTuple, Optional

from timeline.weeks import clamp_week_number

SUMMER_THRESHOLD_WEEK = 30

_RANGED_YEAR = re.compile(r"(\d{4})\s*[-/]\s*(\d{4})")
_SINGLE_YEAR = re.compile(r"(\d{4})")
_STRICT_SCHOOL_YEAR = re.compile(r"^(\d{4})-(\d{4})$")


class SchoolYearSpan(NamedTuple):
    """Start- und Endjahr eines Schuljahres; beide None wenn unbekannt."""

    start_year: Optional[int] = None
    end_year: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return self.start_year is None and self.end_year is None


class YearPolicy(str, Enum):
    """Strategie für die Zuordnung Kalenderwoche → Kalenderjahr."""

    # Ab Woche 30 (Sommerferien) gilt das Startjahr, davor das Endjahr
    THRESHOLD = "threshold"
    # Relativ zum Wochenbereich des Plans (ältere Variante)
    RANGE = "range"


def parse_school_year(text: Optional[str]) -> SchoolYearSpan:
    """Zerlegt "2024-2025", "2024/2025" oder "2024" in Start- und Endjahr.

    Bei einem einzelnen Jahr ist das Endjahr das Folgejahr. Ohne vierstellige
    Jahreszahl ist das Ergebnis leer. Wirft nie.
    """
    if not text or not isinstance(text, str):
        return SchoolYearSpan()

    normalized = text.strip()
    ranged = _RANGED_YEAR.search(normalized)
    if ranged:
        return SchoolYearSpan(int(ranged.group(1)), int(ranged.group(2)))

    single = _SINGLE_YEAR.search(normalized)
    if single:
        year = int(single.group(1))
        return SchoolYearSpan(year, year + 1)

    return SchoolYearSpan()


def get_year_for_week(
    week: Any,
    start_week: Any,
    end_week: Any,
    years: SchoolYearSpan,
    fallback_year: int,
    policy: YearPolicy = YearPolicy.THRESHOLD,
    threshold: int = SUMMER_THRESHOLD_WEEK,
) -> int:
    """Ordnet eine Kalenderwoche dem Kalenderjahr innerhalb des Schuljahres zu.

    Args:
        week: Kalenderwoche (wird auf 1–53 gebracht).
        start_week: Erste Woche des Plans (nur für ``YearPolicy.RANGE``).
        end_week: Letzte Woche des Plans (nur für ``YearPolicy.RANGE``).
        years: Ergebnis von ``parse_school_year``.
        fallback_year: Jahr, falls keine Zuordnung möglich ist.
        policy: ``THRESHOLD`` (Standard) oder ``RANGE``.
        threshold: Erste Woche, die noch zum Startjahr zählt.

    Returns:
        Das Kalenderjahr der Woche.
    """
    target = clamp_week_number(week)
    start_year, end_year = years

    if start_year is None and end_year is None:
        return fallback_year
    if start_year is None:
        return end_year
    if end_year is None:
        return start_year

    if policy == YearPolicy.RANGE:
        if target >= clamp_week_number(start_week):
            return start_year
        if target <= clamp_week_number(end_week):
            return end_year
        return fallback_year

    return start_year if target >= threshold else end_year


def format_school_year_from_start(start_year: Any) -> str:
    """2024 → "2024-2025"; leerer String bei fehlender Jahreszahl."""
    if isinstance(start_year, bool) or not isinstance(start_year, (numbers.Real, Decimal)):
        return ""
    if not math.isfinite(start_year) or not start_year:
        return ""
    year = int(start_year)
    return f"{year}-{year + 1}"


def mask_school_year_input(text: Optional[str]) -> str:
    """Eingabemaske: nur Ziffern (max. 8), ab der 5. Ziffer mit Bindestrich."""
    if not text:
        return ""
    digits = re.sub(r"\D", "", text)[:8]
    if len(digits) <= 4:
        return digits
    return f"{digits[:4]}-{digits[4:]}"


# ─── Aktuelles Schuljahr & Navigation ───────────────────────────────────────

def get_current_school_year(today: Optional[date] = None) -> str:
    """Ab September beginnt das neue Schuljahr."""
    today = today or date.today()
    if today.month >= 9:
        return f"{today.year}-{today.year + 1}"
    return f"{today.year - 1}-{today.year}"


def is_valid_school_year(text: str) -> bool:
    """Gültig ist nur "YYYY-YYYY" mit direkt aufeinanderfolgenden Jahren."""
    match = _STRICT_SCHOOL_YEAR.match(text or "")
    if not match:
        return False
    return int(match.group(2)) == int(match.group(1)) + 1


def next_school_year(school_year: str) -> str:
    start = _require_start_year(school_year)
    return f"{start + 1}-{start + 2}"


def previous_school_year(school_year: str) -> str:
    start = _require_start_year(school_year)
    return f"{start - 1}-{start}"


def generate_school_years(count: int = 10,
                          current: Optional[str] = None) -> list[str]:
    """Liste von Schuljahren um das aktuelle herum, neuestes zuerst."""
    start = _require_start_year(current or get_current_school_year())
    offset = count // 2
    years = [f"{start + i}-{start + i + 1}" for i in range(-offset, count - offset)]
    return sorted(years, reverse=True)


def _require_start_year(school_year: str) -> int:
    span = parse_school_year(school_year)
    if span.start_year is None:
        raise ValueError(f"Ungültiges Schuljahr: {school_year!r}")
    return span.start_year
