from config.schema import (
    AppConfig,
    CalendarConfig,
    GradingConfig,
    LoggingConfig,
    StorageConfig,
)
from timeline.school_year import YearPolicy


def default_grading() -> GradingConfig:
    """Niederländische Notenskala 1–10, genügend ab 5,5.

    CvTE-Standard: Note = 9 × (Punkte / Max) + 1
    """
    return GradingConfig(
        pass_threshold=5.5,
        default_n_term=1.0,
        default_r_term=9.0,
        default_calculation_mode="legacy",
    )


def default_calendar() -> CalendarConfig:
    """Schuljahr ab dem heutigen Datum, Jahreswechsel der Wochen in KW 30."""
    return CalendarConfig(
        current_school_year=None,
        year_policy=YearPolicy.THRESHOLD,
        summer_threshold_week=30,
    )


def default_app_config() -> AppConfig:
    return AppConfig(
        school_name="Musterschule",
        grading=default_grading(),
        calendar=default_calendar(),
        storage=StorageConfig(data_dir="data"),
        logging=LoggingConfig(level="WARNING"),
    )
