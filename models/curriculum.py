"""Datenmodell für Jahrespläne (Lernziele, Paragraphen, gesperrte Wochen; Pydantic v2)."""

from collections.abc import Iterable
from typing import Literal, Optional

from pydantic import BaseModel, field_validator

from timeline.school_year import (
    SUMMER_THRESHOLD_WEEK,
    YearPolicy,
    get_year_for_week,
    parse_school_year,
)
from timeline.weeks import (
    DEFAULT_WEEK_END,
    DEFAULT_WEEK_START,
    clamp_week_number,
    generate_week_sequence,
    goal_covers_week,
    is_week_blocked,
)


class Topic(BaseModel):
    id: str
    name: str
    description: str = ""   # Rich-Text (HTML)
    order: int = 0


class Paragraph(BaseModel):
    """Ein Lehrbuch-Paragraph (z.B. "3.2 Fotosynthese")."""

    id: str
    number: str = ""
    title: str = ""
    topic_id: Optional[str] = None
    order: int = 0

    @property
    def label(self) -> str:
        number = f"§{self.number}" if self.number else "§?"
        return f"{number} {self.title.strip() or 'Paragraph'}"


class _WeekSpanModel(BaseModel):
    """Gemeinsame Basis: Wochenstart/-ende werden auf 1–53 gebracht."""

    week_start: int = DEFAULT_WEEK_START
    week_end: int = DEFAULT_WEEK_START

    @field_validator("week_start", "week_end", mode="before")
    @classmethod
    def _clamp_week(cls, v):
        return clamp_week_number(v)

    @property
    def wraps_year(self) -> bool:
        return self.week_start > self.week_end

    def covers(self, week: int) -> bool:
        return goal_covers_week(self, week)


class StudyGoal(_WeekSpanModel):
    """Lernziel über eine oder mehrere Wochen mit Verweisen auf Themen/Paragraphen."""

    id: str
    title: str = ""
    description: str = ""
    topic_ids: list[str] = []
    paragraph_ids: list[str] = []
    order: int = 0


class BlockedWeek(_WeekSpanModel):
    """Unterrichtsfreie Woche(n): Ferien, Prüfungen, Veranstaltungen."""

    id: str
    reason: str = ""
    type: Literal["holiday", "exam", "event", "other"] = "holiday"
    is_general: bool = True            # gilt für alle Klassen
    class_names: list[str] = []        # nur relevant wenn is_general=False

    def applies_to(self, class_names: Iterable[str]) -> bool:
        return self.is_general or bool(set(self.class_names) & set(class_names))

    def covers(self, week: int) -> bool:
        return is_week_blocked(self, week)


class WeekRow(BaseModel):
    """Eine Zeile der Wochenübersicht eines Plans."""

    week: int
    year: int
    goals: list[StudyGoal] = []
    paragraphs: list[Paragraph] = []
    blocked: list[BlockedWeek] = []

    @property
    def is_blocked(self) -> bool:
        return bool(self.blocked)


class CurriculumPlan(BaseModel):
    """Jahresplan eines Fachs für eine oder mehrere Klassen."""

    id: str
    class_names: list[str] = []
    subject: str = ""
    school_year: str = ""
    week_range_start: int = DEFAULT_WEEK_START
    week_range_end: int = DEFAULT_WEEK_END
    topics: list[Topic] = []
    paragraphs: list[Paragraph] = []
    study_goals: list[StudyGoal] = []
    blocked_weeks: list[BlockedWeek] = []

    @field_validator("week_range_start", "week_range_end", mode="before")
    @classmethod
    def _clamp_range(cls, v):
        return clamp_week_number(v)

    @property
    def wraps_year(self) -> bool:
        return self.week_range_start > self.week_range_end

    def weeks(self) -> list[int]:
        """Wochen in Anzeige-/Exportreihenfolge."""
        return generate_week_sequence(self.week_range_start, self.week_range_end)

    def goals_for_week(self, week: int) -> list[StudyGoal]:
        goals = [g for g in self.study_goals if g.covers(week)]
        return sorted(goals, key=lambda g: g.order)

    def paragraphs_for_week(self, week: int) -> list[Paragraph]:
        """Alle Paragraphen, auf die Lernziele dieser Woche verweisen (ohne Duplikate)."""
        by_id = {p.id: p for p in self.paragraphs}
        result: dict[str, Paragraph] = {}
        for goal in self.goals_for_week(week):
            for pid in goal.paragraph_ids:
                if pid in by_id and pid not in result:
                    result[pid] = by_id[pid]
        return list(result.values())

    def blocked_weeks_for(self, week: int,
                          global_blocked: Iterable[BlockedWeek] = ()) -> list[BlockedWeek]:
        """Eigene Sperrwochen plus globale, die für die Klassen des Plans gelten."""
        candidates = list(self.blocked_weeks) + [
            b for b in global_blocked if b.applies_to(self.class_names)
        ]
        return [b for b in candidates if b.covers(week)]

    def timeline(self, fallback_year: int,
                 policy: YearPolicy = YearPolicy.THRESHOLD,
                 global_blocked: Iterable[BlockedWeek] = (),
                 threshold: int = SUMMER_THRESHOLD_WEEK) -> list[WeekRow]:
        """Wochenübersicht mit Kalenderjahr, Lernzielen, Paragraphen und Sperren."""
        years = parse_school_year(self.school_year)
        global_blocked = list(global_blocked)
        rows = []
        for week in self.weeks():
            rows.append(WeekRow(
                week=week,
                year=get_year_for_week(
                    week, self.week_range_start, self.week_range_end,
                    years, fallback_year, policy, threshold,
                ),
                goals=self.goals_for_week(week),
                paragraphs=self.paragraphs_for_week(week),
                blocked=self.blocked_weeks_for(week, global_blocked),
            ))
        return rows
