"""Notenberechnung: CvTE-Modell, zusammengesetzte Tests, Rundung.

Alle Funktionen sind rein und werfen bei fehlerhaften Daten nicht: eine
Notenanzeige darf nie an alten Datensätzen scheitern. Stattdessen wird
protokolliert und ein definierter Ersatzwert geliefert. Über
``evaluate_*`` ist unterscheidbar, ob eine 0 echt berechnet wurde oder
ein Ersatzwert ist.
"""

import logging
import math
import numbers
from collections.abc import Iterable, Sequence
from decimal import Decimal
from enum import Enum
from typing import Any, NamedTuple, Optional

from grading.formula import (
    evaluate_formula_expression,
    is_safe_expression,
    substitute_element_values,
)

logger = logging.getLogger(__name__)

DEFAULT_R_TERM = 9.0
CALCULATION_MODES = ("legacy", "official")


class CalculationStatus(str, Enum):
    OK = "ok"
    ZERO_MAX_POINTS = "zero_max_points"          # Ergebnis = n-Term
    NO_ELEMENTS = "no_elements"                  # Ergebnis = 0
    ZERO_WEIGHT = "zero_weight"                  # Ergebnis = 0
    FORBIDDEN_CHARACTERS = "forbidden_characters"  # Ergebnis = 0
    EVALUATION_FAILED = "evaluation_failed"      # Ergebnis = 0


class GradeResult(NamedTuple):
    value: float
    status: CalculationStatus = CalculationStatus.OK

    @property
    def is_degraded(self) -> bool:
        return self.status is not CalculationStatus.OK


# ─── Hilfsfunktionen ──────────────────────────────────────────────────────────

def round_half_up(value: float, digits: int = 2) -> float:
    """Rundet x.5 immer nach oben (wie ``Math.round``), nicht kaufmännisch-gerade."""
    if not math.isfinite(value):
        return 0.0
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def sanitize_points(value: Any) -> float:
    """Negative, NaN oder nicht-numerische Punkte zählen als 0."""
    if isinstance(value, bool) or not isinstance(value, (numbers.Real, Decimal)):
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return float(value)


def round_grade(grade: float) -> float:
    """Rundet auf eine Nachkommastelle (Anzeigenote)."""
    return round_half_up(grade, 1)


def final_grade(calculated: float, manual_override: Optional[float] = None) -> float:
    """Manuelle Überschreibung gewinnt immer, sonst die gerundete berechnete Note."""
    if manual_override is not None:
        return manual_override
    return round_grade(calculated)


# ─── CvTE-Modell ──────────────────────────────────────────────────────────────

def _official_cvte(points: float, max_points: float, n_term: float) -> float:
    """Offizielle CvTE-Normierung mit Begrenzungslinien und Notenbereich 1–10."""
    s = min(points, max_points)
    ratio = s / max_points
    missing = (max_points - s) / max_points
    base = 9.0 * ratio + n_term

    if n_term > 1.0:
        grade = min(base, 1.0 + 2 * 9.0 * ratio, 10.0 - 0.5 * 9.0 * missing)
    elif n_term < 1.0:
        grade = max(base, 1.0 + 0.5 * 9.0 * ratio, 10.0 - 2 * 9.0 * missing)
    else:
        grade = base
    return min(max(grade, 1.0), 10.0)


def evaluate_scaled_grade(points_earned: Any, max_points: float, n_term: float,
                          r_term: float = DEFAULT_R_TERM,
                          mode: str = "legacy") -> GradeResult:
    """Wie ``calculate_scaled_grade``, aber mit Status."""
    if mode not in CALCULATION_MODES:
        raise ValueError(
            f"Unbekannter Berechnungsmodus {mode!r} (erlaubt: {', '.join(CALCULATION_MODES)})"
        )
    if not max_points or max_points <= 0:
        return GradeResult(n_term, CalculationStatus.ZERO_MAX_POINTS)

    points = sanitize_points(points_earned)
    if mode == "official":
        grade = _official_cvte(points, max_points, n_term)
    else:
        grade = r_term * (points / max_points) + n_term
    return GradeResult(round_half_up(grade, 2))


def calculate_scaled_grade(points_earned: Any, max_points: float, n_term: float,
                           r_term: float = DEFAULT_R_TERM,
                           mode: str = "legacy") -> float:
    """CvTE-Note: ``r × (Punkte / Max) + n``, auf 2 Stellen gerundet.

    Bei ``max_points == 0`` wird genau der n-Term zurückgegeben.
    Im Modus ``"official"`` gelten die CvTE-Begrenzungslinien; der r-Term
    ist dort fest 9.
    """
    return evaluate_scaled_grade(points_earned, max_points, n_term, r_term, mode).value


# ─── Zusammengesetzte Tests ───────────────────────────────────────────────────

def _points_by_element(element_grades: Iterable[Any]) -> dict[str, float]:
    points: dict[str, float] = {}
    for grade in element_grades:
        # erster Eintrag je Element zählt
        points.setdefault(grade.element_id, sanitize_points(grade.points_earned))
    return points


def _evaluate_formula(points: dict[str, float], elements: Sequence[Any],
                      formula: str) -> GradeResult:
    # Namen ohne Groß-/Kleinschreibung: bei Gleichheit gilt das letzte Element
    by_name: dict[str, tuple[str, float]] = {}
    for element in elements:
        name = element.name.strip()
        if name:
            by_name[name.lower()] = (name, points.get(element.id, 0.0))
    values = dict(by_name.values())

    expression = substitute_element_values(formula, values)
    if not is_safe_expression(expression):
        logger.warning(f"Formel enthält unzulässige Zeichen: {expression!r}")
        return GradeResult(0.0, CalculationStatus.FORBIDDEN_CHARACTERS)

    result = evaluate_formula_expression(expression)
    if result is None:
        logger.warning(f"Formel nicht auswertbar: {expression!r}")
        return GradeResult(0.0, CalculationStatus.EVALUATION_FAILED)
    return GradeResult(round_half_up(result, 2))


def _weighted_average(points: dict[str, float], elements: Sequence[Any]) -> GradeResult:
    total_score = 0.0
    total_weight = 0.0
    for element in elements:
        if element.id not in points:
            continue
        normalized = (points[element.id] / element.max_points * 10
                      if element.max_points > 0 else 0.0)
        total_score += normalized * element.weight
        total_weight += element.weight

    if total_weight == 0:
        return GradeResult(0.0, CalculationStatus.ZERO_WEIGHT)
    return GradeResult(round_half_up(total_score / total_weight, 2))


def evaluate_composite_grade(element_grades: Iterable[Any], elements: Sequence[Any],
                             custom_formula: Optional[str] = None) -> GradeResult:
    """Wie ``calculate_composite_grade``, aber mit Status."""
    if not elements:
        return GradeResult(0.0, CalculationStatus.NO_ELEMENTS)

    points = _points_by_element(element_grades)
    if custom_formula and custom_formula.strip():
        return _evaluate_formula(points, elements, custom_formula)
    return _weighted_average(points, elements)


def calculate_composite_grade(element_grades: Iterable[Any], elements: Sequence[Any],
                              custom_formula: Optional[str] = None) -> float:
    """Note eines zusammengesetzten Tests.

    Mit eigener Formel werden die Elementnamen durch die erreichten Punkte
    ersetzt und der Ausdruck ausgewertet. Ohne Formel: gewichteter
    Durchschnitt der auf 0–10 normierten Elemente, nur über Elemente mit
    abgegebener Punktzahl. Fehler ergeben 0.
    """
    return evaluate_composite_grade(element_grades, elements, custom_formula).value
