from __future__ import annotations

from collections.abc import Iterable

import pandas as pd

from capstone.models import ReadinessReport, RecommendationItem, SkillGapEntry
from capstone.recommendations import Favorites

GAP_COLUMNS = ["Skill", "Area", "Status", "Current", "Required", "Gap", "Related Courses"]


def _entry_record(entry: SkillGapEntry) -> dict:
    return {
        "skillName": entry.skill_name,
        "currentScore": entry.current_score,
        "requiredScore": entry.required_score,
        "gap": entry.gap,
        "status": entry.status,
        "relatedCourses": list(entry.related_courses),
        "recommendation": entry.recommendation,
    }


def export_payload(report: ReadinessReport) -> dict:
    return {
        "projectTitle": report.project_title,
        "projectDifficulty": report.project_difficulty,
        "overallReadiness": report.overall_readiness,
        "readinessLevel": report.readiness_level,
        "estimatedPrepTime": report.estimated_prep_time,
        "strongAreas": [_entry_record(e) for e in report.strong_areas],
        "areasToImprove": [_entry_record(e) for e in report.areas_to_improve],
    }


def gap_frame(report: ReadinessReport) -> pd.DataFrame:
    rows = [
        {
            "Skill": entry.skill_name,
            "Area": area,
            "Status": entry.status,
            "Current": round(entry.current_score, 1),
            "Required": round(entry.required_score, 1),
            "Gap": round(entry.gap, 1),
            "Related Courses": ", ".join(entry.related_courses),
        }
        for area, entries in (("Strong", report.strong_areas), ("Improve", report.areas_to_improve))
        for entry in entries
    ]
    return pd.DataFrame(rows, columns=GAP_COLUMNS)


def recommendation_frame(items: Iterable[RecommendationItem], favorites: Favorites) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Position": index,
                "Project": item.project_title,
                "Match %": round(item.score * 100.0, 0),
                "Favorite": item.project_id in favorites,
            }
            for index, item in enumerate(items)
        ],
        columns=["Position", "Project", "Match %", "Favorite"],
    )
