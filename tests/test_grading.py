"""Tests für Notenberechnung, Formelauswertung und Statistik."""

import logging
from decimal import Decimal
from fractions import Fraction

import pytest

from grading.engine import (
    CalculationStatus,
    calculate_composite_grade,
    calculate_scaled_grade,
    evaluate_composite_grade,
    evaluate_scaled_grade,
    final_grade,
    round_grade,
    round_half_up,
    sanitize_points,
)
from grading.formula import (
    FormulaError,
    FormulaParser,
    evaluate_formula_expression,
    formula_references,
    is_safe_expression,
    substitute_element_values,
)
from grading.statistics import compute_test_statistics, weighted_average
from models.assessment import CompositeElement, ScaledScoring, Test
from models.grade import ElementGrade, Grade


def _element(id: str, name: str, max_points: float, weight: float = 1.0) -> CompositeElement:
    return CompositeElement(id=id, name=name, max_points=max_points, weight=weight)


def _grade(test_id: str, final: float, student_id: int = 1) -> Grade:
    return Grade(test_id=test_id, student_id=student_id, school_year="2024-2025",
                 calculated_grade=final, final_grade=final)


# ─── RUNDUNG ──────────────────────────────────────────────────────────────────

class TestRounding:
    @pytest.mark.parametrize("value, expected", [
        (5.45, 5.5), (6.25, 6.3), (5.44, 5.4), (7.75, 7.8), (10.0, 10.0), (1.0, 1.0),
    ])
    def test_round_grade_half_up(self, value, expected):
        """x.x5 wird immer aufgerundet (nicht kaufmännisch-gerade)."""
        assert round_grade(value) == expected

    def test_round_half_up_two_digits(self):
        assert round_half_up(7.125) == 7.13
        assert round_half_up(3.3333) == 3.33

    def test_non_finite_is_zero(self):
        assert round_half_up(float("nan")) == 0.0
        assert round_half_up(float("inf")) == 0.0

    def test_final_grade_override_wins(self):
        assert final_grade(7.75, 6.0) == 6.0
        assert final_grade(7.75, None) == 7.8
        assert final_grade(2.0, 0.0) == 0.0

    @pytest.mark.parametrize("value, expected", [
        (12, 12.0), (0, 0.0), (-3, 0.0), (float("nan"), 0.0), (None, 0.0), ("7", 0.0),
        (True, 0.0),
    ])
    def test_sanitize_points(self, value, expected):
        assert sanitize_points(value) == expected

    def test_sanitize_other_number_types(self):
        """Decimal und Fraction gelten als Zahlen."""
        assert sanitize_points(Decimal("12.5")) == 12.5
        assert sanitize_points(Fraction(3, 2)) == 1.5
        assert sanitize_points(Decimal("-1")) == 0.0


# ─── CVTE-MODELL ──────────────────────────────────────────────────────────────

class TestScaledGrade:
    def test_standard_formula(self):
        """Note = 9 × (30 / 40) + 1 = 7,75."""
        assert calculate_scaled_grade(30, 40, 1.0) == 7.75

    def test_full_and_zero_points(self):
        assert calculate_scaled_grade(40, 40, 1.0) == 10.0
        assert calculate_scaled_grade(0, 40, 1.0) == 1.0

    def test_custom_r_term(self):
        assert calculate_scaled_grade(20, 40, 0.5, r_term=10.0) == 5.5

    def test_rounded_to_two_digits(self):
        assert calculate_scaled_grade(1, 3, 1.0) == 4.0
        assert calculate_scaled_grade(2, 7, 1.2) == 3.77

    def test_zero_max_points_returns_n_term(self):
        result = evaluate_scaled_grade(10, 0, 1.3)
        assert result.value == 1.3
        assert result.status == CalculationStatus.ZERO_MAX_POINTS
        assert result.is_degraded

    def test_negative_points_count_as_zero(self):
        assert calculate_scaled_grade(-5, 40, 1.0) == 1.0

    def test_monotonic_in_points(self):
        """Mehr Punkte ergeben nie eine schlechtere Note."""
        grades = [calculate_scaled_grade(p, 40, 1.0) for p in range(41)]
        assert grades == sorted(grades)

    def test_unknown_mode_raises(self):
        with pytest.raises(ValueError):
            calculate_scaled_grade(10, 40, 1.0, mode="linear")


class TestOfficialCvte:
    def test_n_one_is_linear(self):
        assert calculate_scaled_grade(20, 40, 1.0, mode="official") == 5.5

    def test_bounds(self):
        """Notenbereich bleibt 1–10 auch bei extremen n-Termen."""
        for n in (0.0, 0.5, 1.5, 2.0):
            assert calculate_scaled_grade(0, 40, n, mode="official") == 1.0
            assert calculate_scaled_grade(40, 40, n, mode="official") == 10.0

    def test_high_n_limited_by_lower_line(self):
        """n > 1: wenige Punkte höchstens 1 + 2 × 9 × S/L."""
        # base 9*0.05+2 = 2.45, Linie 1 + 18*0.05 = 1.9
        assert calculate_scaled_grade(2, 40, 2.0, mode="official") == 1.9

    def test_low_n_raised_by_lower_line(self):
        """n < 1: wenige Punkte mindestens 1 + 0,5 × 9 × S/L."""
        # base 9*0.1+0.2 = 1.1, Linie 1 + 4.5*0.1 = 1.45
        assert calculate_scaled_grade(4, 40, 0.2, mode="official") == 1.45

    def test_points_above_max_clamped(self):
        assert calculate_scaled_grade(50, 40, 1.0, mode="official") == 10.0

    def test_legacy_may_exceed_ten(self):
        assert calculate_scaled_grade(40, 40, 2.0) == 11.0


# ─── ZUSAMMENGESETZTE TESTS ───────────────────────────────────────────────────

class TestCompositeGrade:
    ELEMENTS = [
        _element("e1", "Inhalt", 20, weight=2.0),
        _element("e2", "Stil", 10, weight=1.0),
    ]

    def test_weighted_average(self):
        """(8 × 2 + 5 × 1) / 3 = 7,0."""
        grades = [ElementGrade(element_id="e1", points_earned=16),
                  ElementGrade(element_id="e2", points_earned=5)]
        assert calculate_composite_grade(grades, self.ELEMENTS) == 7.0

    def test_only_submitted_elements_count(self):
        grades = [ElementGrade(element_id="e2", points_earned=5)]
        assert calculate_composite_grade(grades, self.ELEMENTS) == 5.0

    def test_no_elements(self):
        result = evaluate_composite_grade([], [])
        assert result == (0.0, CalculationStatus.NO_ELEMENTS)

    def test_no_points_is_zero_weight(self):
        result = evaluate_composite_grade([], self.ELEMENTS)
        assert result == (0.0, CalculationStatus.ZERO_WEIGHT)

    def test_all_weights_zero(self):
        elements = [_element("e1", "A", 10, weight=0)]
        grades = [ElementGrade(element_id="e1", points_earned=10)]
        assert evaluate_composite_grade(grades, elements).status == CalculationStatus.ZERO_WEIGHT

    def test_duplicate_element_grade_first_wins(self):
        grades = [ElementGrade(element_id="e2", points_earned=10),
                  ElementGrade(element_id="e2", points_earned=0)]
        assert calculate_composite_grade(grades, self.ELEMENTS) == 10.0

    def test_custom_formula(self):
        grades = [ElementGrade(element_id="e1", points_earned=16),
                  ElementGrade(element_id="e2", points_earned=6)]
        assert calculate_composite_grade(grades, self.ELEMENTS, "(Inhalt + Stil) / 2") == 11.0

    def test_formula_case_insensitive(self):
        grades = [ElementGrade(element_id="e1", points_earned=9)]
        assert calculate_composite_grade(grades, self.ELEMENTS, "inhalt + STIL") == 9.0

    def test_formula_forbidden_characters(self, caplog):
        grades = [ElementGrade(element_id="e1", points_earned=9)]
        with caplog.at_level(logging.WARNING, logger="grading.engine"):
            result = evaluate_composite_grade(grades, self.ELEMENTS, "Inhalt + Unbekannt")
        assert result == (0.0, CalculationStatus.FORBIDDEN_CHARACTERS)
        assert "unzulässige Zeichen" in caplog.text

    def test_formula_division_by_zero(self):
        result = evaluate_composite_grade([], self.ELEMENTS, "Inhalt / Stil")
        assert result == (0.0, CalculationStatus.EVALUATION_FAILED)

    def test_deeply_nested_formula_degrades_to_zero(self):
        grades = [ElementGrade(element_id="e1", points_earned=5)]
        formula = "(" * 3000 + "Inhalt" + ")" * 3000
        result = evaluate_composite_grade(grades, self.ELEMENTS, formula)
        assert result == (0.0, CalculationStatus.EVALUATION_FAILED)

    def test_names_equal_ignoring_case_last_wins(self):
        """Gleiche Namen bis auf Groß-/Kleinschreibung: das letzte Element zählt."""
        elements = [_element("a", "Teil", 10), _element("b", "TEIL", 10)]
        grades = [ElementGrade(element_id="a", points_earned=2),
                  ElementGrade(element_id="b", points_earned=7)]
        assert calculate_composite_grade(grades, elements, "teil + Teil") == 14.0

    def test_blank_formula_uses_average(self):
        grades = [ElementGrade(element_id="e2", points_earned=5)]
        assert calculate_composite_grade(grades, self.ELEMENTS, "   ") == 5.0


# ─── FORMEL-PARSER ────────────────────────────────────────────────────────────

class TestFormulaParser:
    @pytest.mark.parametrize("text, expected", [
        ("1 + 2 * 3", 7.0),
        ("(1 + 2) * 3", 9.0),
        ("10 / 4", 2.5),
        ("-3 + 5", 2.0),
        ("--2", 2.0),
        ("+4", 4.0),
        ("2 * (3 + (4 - 1)) / 3", 4.0),
        ("8 - 2 - 1", 5.0),
        ("12 / 2 / 3", 2.0),
        (".5 + 1.", 1.5),
    ])
    def test_valid_expressions(self, text, expected):
        assert evaluate_formula_expression(text) == pytest.approx(expected)

    @pytest.mark.parametrize("text", [
        "", "1 +", "(1 + 2", "1 2", "1 / 0", "1..2", ".", "()", "3 * / 2",
    ])
    def test_invalid_expressions(self, text):
        assert evaluate_formula_expression(text) is None

    def test_long_sign_chain(self):
        """Tausende Vorzeichen werden ohne Rekursion ausgewertet."""
        assert evaluate_formula_expression("-" * 5000 + "5") == 5.0
        assert evaluate_formula_expression("-" * 5001 + "5") == -5.0

    def test_deep_nesting_rejected(self):
        """Mehr als 100 Klammerebenen → None statt RecursionError."""
        assert evaluate_formula_expression("(" * 100 + "7" + ")" * 100) == 7.0
        assert evaluate_formula_expression("(" * 3000 + "7" + ")" * 3000) is None

    def test_parse_raises_formula_error(self):
        with pytest.raises(FormulaError):
            FormulaParser("1 / (2 - 2)").parse()

    def test_is_safe_expression(self):
        assert is_safe_expression("(8 + 7.5) / 2")
        assert not is_safe_expression("__import__('os')")
        assert not is_safe_expression("2 ** 3a")
        assert not is_safe_expression("")
        assert not is_safe_expression("٣ + 1")   # arabisch-indische Ziffer


class TestSubstitution:
    def test_whole_words_only(self):
        result = substitute_element_values("Teil + Teilnahme", {"Teil": 4})
        assert result == "4 + Teilnahme"

    def test_longest_name_first(self):
        values = {"Inhalt": 1, "Inhalt gesamt": 9}
        assert substitute_element_values("Inhalt gesamt - Inhalt", values) == "9 - 1"

    def test_comma_becomes_dot(self):
        assert substitute_element_values("A * 0,5", {"A": 6}) == "6 * 0.5"

    def test_float_formatting(self):
        assert substitute_element_values("A + B", {"A": 7.5, "B": 0.00001}) == "7.5 + 0.00001"

    def test_formula_references(self):
        assert formula_references("(Inhalt + Stil) / 2", ["Inhalt", "Aufwand", "Stil"]) == [
            "Inhalt", "Stil",
        ]


# ─── STATISTIK ────────────────────────────────────────────────────────────────

class TestStatistics:
    def test_empty(self):
        stats = compute_test_statistics([])
        assert stats.total_graded == 0
        assert stats.average == 0.0

    def test_counts_and_average(self):
        grades = [_grade("t", f, i) for i, f in enumerate([4.0, 5.5, 8.0, 6.3])]
        stats = compute_test_statistics(grades)
        assert stats.average == 6.0          # 23,8 / 4 = 5,95 → 6,0
        assert stats.highest == 8.0
        assert stats.lowest == 4.0
        assert stats.under_threshold == 1
        assert stats.above_threshold == 3
        assert stats.total_graded == 4

    def test_custom_threshold(self):
        grades = [_grade("t", 5.8, 1), _grade("t", 6.2, 2)]
        assert compute_test_statistics(grades, threshold=6.0).under_threshold == 1

    def test_weighted_average(self):
        tests = {
            "a": Test(id="a", class_groups=["3A"], school_year="2024-2025", weight=2,
                      scoring=ScaledScoring(max_points=10)),
            "b": Test(id="b", class_groups=["3A"], school_year="2024-2025", weight=1,
                      scoring=ScaledScoring(max_points=10)),
        }
        grades = [_grade("a", 8.0), _grade("b", 5.0)]
        assert weighted_average(grades, tests) == pytest.approx(7.0)

    def test_unknown_test_counts_once(self):
        assert weighted_average([_grade("x", 6.0), _grade("y", 8.0)], {}) == pytest.approx(7.0)

    def test_weighted_average_empty(self):
        assert weighted_average([], {}) is None
