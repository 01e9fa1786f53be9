"""Kalenderwochen- und Schuljahr-Modul (reine Funktionen, kein Zustand)."""

from .weeks import (
    MAX_WEEKS_IN_YEAR,
    clamp_week_number,
    format_week_range,
    generate_week_sequence,
    goal_covers_week,
    is_week_blocked,
    iter_week_sequence,
)
from .school_year import (
    SchoolYearSpan,
    YearPolicy,
    format_school_year_from_start,
    get_current_school_year,
    get_year_for_week,
    mask_school_year_input,
    parse_school_year,
)
from .iso_weeks import format_week_dates, week_dates, week_number_for_date

__all__ = [
    "MAX_WEEKS_IN_YEAR",
    "clamp_week_number",
    "format_week_range",
    "generate_week_sequence",
    "goal_covers_week",
    "is_week_blocked",
    "iter_week_sequence",
    "SchoolYearSpan",
    "YearPolicy",
    "format_school_year_from_start",
    "get_current_school_year",
    "get_year_for_week",
    "mask_school_year_input",
    "parse_school_year",
    "format_week_dates",
    "week_dates",
    "week_number_for_date",
]
