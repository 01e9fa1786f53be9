"""Notenberechnung (CvTE, zusammengesetzte Tests, Statistik, Neuberechnung)."""

from .engine import (
    CalculationStatus,
    GradeResult,
    calculate_composite_grade,
    calculate_scaled_grade,
    evaluate_composite_grade,
    evaluate_scaled_grade,
    final_grade,
    round_grade,
)
from .formula import FormulaParser, evaluate_formula_expression
from .statistics import compute_test_statistics, weighted_average
from .recalculation import build_grade, recalculate_grades

__all__ = [
    "CalculationStatus",
    "GradeResult",
    "calculate_composite_grade",
    "calculate_scaled_grade",
    "evaluate_composite_grade",
    "evaluate_scaled_grade",
    "final_grade",
    "round_grade",
    "FormulaParser",
    "evaluate_formula_expression",
    "compute_test_statistics",
    "weighted_average",
    "build_grade",
    "recalculate_grades",
]
