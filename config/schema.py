from pydantic import BaseModel, Field, field_validator
from typing import Literal, Optional

from timeline.school_year import YearPolicy, is_valid_school_year


# ─── NOTENBERECHNUNG ───

class GradingConfig(BaseModel):
    """Standardwerte für neue Tests und die Auswertung."""
    # Grenze zwischen ungenügend und genügend (niederländische 1–10-Skala)
    pass_threshold: float = Field(5.5, ge=1.0, le=10.0,
        description="Genügend ab dieser Note")
    # Standard n-Term für neue CvTE-Tests
    default_n_term: float = Field(1.0, ge=-10.0, le=10.0,
        description="Standard n-Term (Normierung)")
    # Standard r-Term (Multiplikator) für neue CvTE-Tests
    default_r_term: float = Field(9.0, gt=0.0,
        description="Standard r-Term (Multiplikator)")
    # Berechnungsmodus für neue CvTE-Tests
    default_calculation_mode: Literal["legacy", "official"] = Field("legacy",
        description="legacy = lineare Formel, official = CvTE-Begrenzungslinien")


# ─── KALENDER ───

class CalendarConfig(BaseModel):
    """Schuljahr und Zuordnung Kalenderwoche → Kalenderjahr."""
    # Aktuelles Schuljahr; None = aus dem heutigen Datum bestimmen
    current_school_year: Optional[str] = Field(None,
        description="Aktuelles Schuljahr, z.B. 2024-2025")
    # Strategie für die Jahreszuordnung
    year_policy: YearPolicy = Field(YearPolicy.THRESHOLD,
        description="threshold = fester Sommerwechsel, range = relativ zum Planbereich")
    # Erste Woche, die zum Startjahr des Schuljahres zählt
    summer_threshold_week: int = Field(30, ge=1, le=53,
        description="Sommerferien-Grenze (Kalenderwoche)")

    @field_validator("current_school_year")
    @classmethod
    def _check_school_year(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not is_valid_school_year(v):
            raise ValueError(f"Schuljahr muss das Format JJJJ-JJJJ haben: {v!r}")
        return v


# ─── SPEICHER & LOGGING ───

class StorageConfig(BaseModel):
    """Ablageort der JSON-Dateien."""
    data_dir: str = Field("data", description="Verzeichnis für tests.json/grades.json")


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field("WARNING",
        description="Log-Level")


# ─── GESAMT-CONFIG ───

class AppConfig(BaseModel):
    """Gesamtkonfiguration der Anwendung."""
    # Name der Schule (nur Anzeige)
    school_name: str = Field("Musterschule", description="Name der Schule")
    grading: GradingConfig = Field(default_factory=GradingConfig)
    calendar: CalendarConfig = Field(default_factory=CalendarConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
