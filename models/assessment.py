"""Datenmodell für Tests (Klassenarbeiten) mit Bewertungsmodell (Pydantic v2)."""

from datetime import date, datetime, timezone
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CompositeElement(BaseModel):
    """Ein gewichteter Teilbereich eines zusammengesetzten Tests (z.B. "Kreativität")."""

    id: str
    name: str
    max_points: float = Field(gt=0)
    weight: float = Field(1.0, ge=0)   # z.B. 0.3 für 30 %
    order: int = 0                     # Anzeige-Reihenfolge


class ScaledScoring(BaseModel):
    """Lineares CvTE-Modell: Note = r × (Punkte / Max) + n."""

    kind: Literal["scaled"] = "scaled"
    max_points: float = Field(gt=0)
    n_term: float = 1.0                # Normierung (n-Term)
    r_term: float = 9.0                # Multiplikator (r-Term)
    calculation_mode: Literal["legacy", "official"] = "legacy"


class CompositeScoring(BaseModel):
    """Mehrere Elemente, gewichteter Durchschnitt oder eigene Formel."""

    kind: Literal["composite"] = "composite"
    elements: list[CompositeElement] = []
    custom_formula: Optional[str] = None   # z.B. "(Kreativität + Aufwand) / 2"

    @model_validator(mode='after')
    def _check_unique_element_ids(self):
        ids = [e.id for e in self.elements]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"Element-IDs mehrfach vergeben: {', '.join(duplicates)}")
        return self

    @property
    def has_formula(self) -> bool:
        return bool(self.custom_formula and self.custom_formula.strip())

    def element(self, element_id: str) -> Optional[CompositeElement]:
        return next((e for e in self.elements if e.id == element_id), None)

    def sorted_elements(self) -> list[CompositeElement]:
        return sorted(self.elements, key=lambda e: e.order)


ScoringModel = Annotated[
    Union[ScaledScoring, CompositeScoring], Field(discriminator="kind")
]


def _merge_class_groups(*sources: Any) -> list[str]:
    """Fasst aktuelle und Legacy-Felder zusammen, ohne Duplikate, Reihenfolge bleibt."""
    merged: list[str] = []
    for source in sources:
        if source is None:
            continue
        values = [source] if isinstance(source, str) else list(source)
        for value in values:
            cleaned = str(value).strip()
            if cleaned and cleaned not in merged:
                merged.append(cleaned)
    return merged


class Test(BaseModel):
    """Eine bewertbare Leistungsüberprüfung für eine oder mehrere Klassen."""

    __test__ = False  # kein pytest-Testfall

    id: str
    name: str = ""
    test_date: Optional[date] = None
    description: str = ""
    weight: float = Field(1.0, gt=0)   # 1, 2, 3 = einfache/doppelte/dreifache Wertung
    class_groups: list[str]
    school_year: str                   # "2024-2025"
    scoring: ScoringModel
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode='before')
    @classmethod
    def _normalize_legacy_fields(cls, data: Any) -> Any:
        """Ältere Datensätze speichern Klassen als ``class_names`` oder ``class_name``."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        data["class_groups"] = _merge_class_groups(
            data.get("class_groups"),
            data.pop("class_names", None),
            data.pop("class_name", None),
        )
        scoring = data.get("scoring")
        if isinstance(scoring, dict) and scoring.get("kind") == "cvte":
            data["scoring"] = {**scoring, "kind": "scaled"}
        return data

    @field_validator("class_groups")
    @classmethod
    def _require_class_group(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("Mindestens eine Klasse ist erforderlich.")
        return v

    @property
    def is_scaled(self) -> bool:
        return isinstance(self.scoring, ScaledScoring)

    @property
    def is_composite(self) -> bool:
        return isinstance(self.scoring, CompositeScoring)
