from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

import numpy as np

from capstone.errors import InvalidInput
from capstone.models import CourseRecord, ReadinessReport, SkillGapEntry, SkillProfile, normalize_difficulty

logger = logging.getLogger(__name__)

REQUIRED_SCORES = {
    "Beginner": 45.0,
    "Intermediate": 65.0,
    "Advanced": 85.0,
}

READY = "Ready"
NEARLY_READY = "Nearly Ready"
NEEDS_IMPROVEMENT = "Needs Improvement"
SIGNIFICANT_GAP = "Significant Gap"
NOT_READY = "Not Ready"

STRONG_STATUSES = {READY, NEARLY_READY}

# Gap fractions of the required score; shared with READINESS_BANDS (90 and 60).
NEARLY_READY_GAP = 0.10
NEEDS_IMPROVEMENT_GAP = 0.40

READINESS_BANDS = (
    (90.0, READY, "Ready to start"),
    (75.0, NEARLY_READY, "1-2 weeks"),
    (60.0, NEEDS_IMPROVEMENT, "3-4 weeks"),
    (40.0, SIGNIFICANT_GAP, "1-2 months"),
    (0.0, NOT_READY, "2-3 months"),
)

RECOMMENDATION_TEMPLATES = {
    READY: "You meet the {skill} requirement. Take ownership of the {skill} parts of this project.",
    NEARLY_READY: "You are close on {skill}. A short refresher before kickoff should close the gap.",
    NEEDS_IMPROVEMENT: "Build up {skill} with a focused course or a small practice project before starting.",
    SIGNIFICANT_GAP: "{skill} is a major gap. Plan dedicated study time or pair with a teammate strong in {skill}.",
}


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def required_score(difficulty: str) -> float:
    return REQUIRED_SCORES[normalize_difficulty(difficulty)]


def skill_status(current: float, required: float) -> str:
    if current >= required:
        return READY
    gap = required - current
    if gap <= NEARLY_READY_GAP * required:
        return NEARLY_READY
    if gap <= NEEDS_IMPROVEMENT_GAP * required:
        return NEEDS_IMPROVEMENT
    return SIGNIFICANT_GAP


def readiness_band(overall: float) -> tuple[str, str]:
    for threshold, level, prep_time in READINESS_BANDS:
        if overall >= threshold:
            return level, prep_time
    return READINESS_BANDS[-1][1], READINESS_BANDS[-1][2]


def related_courses(skill: str, course_history: Sequence[CourseRecord]) -> list[str]:
    wanted = skill.lower()
    return [record.course for record in course_history if (record.subject or "").lower() == wanted]


def _lookup_score(competencies: Mapping[str, float], skill: str) -> float:
    if skill in competencies:
        return _clamp(float(competencies[skill]))
    wanted = skill.lower()
    for name, score in competencies.items():
        if name.lower() == wanted:
            return _clamp(float(score))
    return 0.0


def analyze_skill_gap(
    competencies: Mapping[str, float] | None,
    profile: SkillProfile,
    course_history: Sequence[CourseRecord] | None = None,
) -> ReadinessReport:
    if not profile.skills:
        raise InvalidInput("Skill profile has no skills to analyse.")

    required = required_score(profile.difficulty)
    competencies = competencies or {}
    history = course_history or []

    entries: list[SkillGapEntry] = []
    ratios: list[float] = []
    for skill in profile.skills:
        current = _lookup_score(competencies, skill)
        status = skill_status(current, required)
        entries.append(
            SkillGapEntry(
                skill_name=skill,
                current_score=current,
                required_score=required,
                gap=max(0.0, required - current),
                status=status,
                related_courses=related_courses(skill, history),
                recommendation=RECOMMENDATION_TEMPLATES[status].format(skill=skill),
            )
        )
        ratios.append(min(100.0, current / required * 100.0))

    mean_ratio = _clamp(float(np.mean(ratios)))
    level, prep_time = readiness_band(mean_ratio)
    overall = round(mean_ratio, 1)

    strong = [entry for entry in entries if entry.status in STRONG_STATUSES]
    to_improve = [entry for entry in entries if entry.status not in STRONG_STATUSES]
    to_improve.sort(key=lambda e: e.gap, reverse=True)

    logger.debug(
        "Readiness for %r (%s): %.1f%% across %d skills",
        profile.title,
        profile.difficulty,
        overall,
        len(entries),
    )
    return ReadinessReport(
        project_title=profile.title,
        project_difficulty=normalize_difficulty(profile.difficulty),
        overall_readiness=overall,
        readiness_level=level,
        estimated_prep_time=prep_time,
        strong_areas=strong,
        areas_to_improve=to_improve,
    )
