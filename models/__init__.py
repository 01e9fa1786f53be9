from models.assessment import CompositeElement, CompositeScoring, ScaledScoring, Test
from models.grade import ElementGrade, Grade, GradeStatistics
from models.curriculum import (
    BlockedWeek,
    CurriculumPlan,
    Paragraph,
    StudyGoal,
    Topic,
    WeekRow,
)

__all__ = [
    "CompositeElement",
    "CompositeScoring",
    "ScaledScoring",
    "Test",
    "ElementGrade",
    "Grade",
    "GradeStatistics",
    "BlockedWeek",
    "CurriculumPlan",
    "Paragraph",
    "StudyGoal",
    "Topic",
    "WeekRow",
]
