from __future__ import annotations

from dataclasses import dataclass, field

from capstone.errors import InvalidInput


class Difficulty:
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"

    ALL = (BEGINNER, INTERMEDIATE, ADVANCED)


def normalize_difficulty(value: str | None) -> str:
    cleaned = (value or "").strip().lower()
    for tier in Difficulty.ALL:
        if tier.lower() == cleaned:
            return tier
    raise InvalidInput(f"Unknown difficulty tier: {value!r}")


@dataclass(frozen=True)
class SkillProfile:
    title: str
    skills: tuple[str, ...]
    difficulty: str


@dataclass
class CourseRecord:
    course: str
    subject: str
    grade: str | None = None
    percentage: float | None = None
    semester: str | None = None


@dataclass
class StudentPerformance:
    student_id: int | str
    competencies: dict[str, float]
    course_history: list[CourseRecord] = field(default_factory=list)
    gpa: float | None = None


@dataclass
class SkillGapEntry:
    skill_name: str
    current_score: float
    required_score: float
    gap: float
    status: str
    related_courses: list[str]
    recommendation: str


@dataclass
class ReadinessReport:
    project_title: str
    project_difficulty: str
    overall_readiness: float
    readiness_level: str
    estimated_prep_time: str
    strong_areas: list[SkillGapEntry]
    areas_to_improve: list[SkillGapEntry]


@dataclass(frozen=True)
class RecommendationItem:
    project_id: int | str
    project_title: str
    score: float
    reason: str

    @classmethod
    def from_record(cls, record: dict) -> RecommendationItem:
        try:
            return cls(
                project_id=record["projectId"],
                project_title=record.get("projectTitle", ""),
                score=float(record.get("score", 0.0)),
                reason=record.get("reason", ""),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise InvalidInput(f"Malformed recommendation record: {record!r}") from exc

    def to_record(self) -> dict:
        return {
            "projectId": self.project_id,
            "projectTitle": self.project_title,
            "score": self.score,
            "reason": self.reason,
        }


@dataclass
class Preferences:
    interests: str = ""
    preferred_difficulty: str = ""
    avoid_topics: str = ""
    additional_notes: str = ""

    def interest_terms(self) -> list[str]:
        return _split_terms(self.interests)

    def avoid_terms(self) -> list[str]:
        return _split_terms(self.avoid_topics)


def _split_terms(text: str) -> list[str]:
    return [part.strip().lower() for part in (text or "").split(",") if part.strip()]
