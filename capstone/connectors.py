from __future__ import annotations

import json
import logging
from pathlib import Path

import requests

from capstone.config import Settings
from capstone.errors import InvalidInput, SourceUnavailable
from capstone.models import CourseRecord, Preferences, RecommendationItem, StudentPerformance
from capstone.parsers import extract_difficulty, infer_subject

logger = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).resolve().parents[1]
CATALOG_PATH = ROOT_DIR / "data" / "project_catalog.json"


def parse_performance(student_id: int | str, payload: dict | None) -> StudentPerformance:
    payload = payload or {}
    try:
        raw_competencies = payload.get("competencies") or {}
        if isinstance(raw_competencies, dict):
            competencies = {name: float(score) for name, score in raw_competencies.items()}
        else:
            competencies = {
                item["name"]: float(item.get("score", 0.0))
                for item in raw_competencies
                if item.get("name")
            }

        history = []
        for grade in payload.get("grades") or payload.get("courseHistory") or []:
            course = grade.get("course", "")
            if not course:
                continue
            history.append(
                CourseRecord(
                    course=course,
                    subject=grade.get("subject") or grade.get("subjectTag") or infer_subject(course),
                    grade=grade.get("grade"),
                    percentage=grade.get("percentage"),
                    semester=grade.get("semester"),
                )
            )
        gpa = payload.get("gpa")
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise InvalidInput(f"Malformed performance record for student {student_id}") from exc
    return StudentPerformance(
        student_id=student_id,
        competencies=competencies,
        course_history=history,
        gpa=gpa,
    )


class ApiClient:
    """Client for the recommendation and performance API."""

    def __init__(self, settings: Settings | None = None, session: requests.Session | None = None):
        self.settings = settings or Settings.from_env()
        self.session = session or requests.Session()

    def _get(self, path: str, params: dict | None = None):
        url = f"{self.settings.api_base_url}{path}"
        try:
            response = self.session.get(url, params=params, timeout=self.settings.request_timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("GET %s failed: %s", url, exc)
            raise SourceUnavailable(f"Request to {url} failed") from exc

    def fetch_candidates(
        self,
        student_id: int | str,
        exclude_ids: set,
        preferences: Preferences | None = None,
    ) -> list[RecommendationItem]:
        params = {}
        if exclude_ids:
            params["exclude"] = ",".join(str(pid) for pid in sorted(exclude_ids, key=str))
        if preferences is not None:
            if preferences.preferred_difficulty:
                params["difficulty"] = preferences.preferred_difficulty
            if preferences.interests:
                params["interests"] = preferences.interests
            if preferences.avoid_topics:
                params["avoid"] = preferences.avoid_topics
        path = f"/recommendations/{student_id}"
        payload = self._get(path, params=params or None)
        if not isinstance(payload, list):
            raise SourceUnavailable(f"Expected a list of recommendations from {path}")
        try:
            return [RecommendationItem.from_record(record) for record in payload]
        except InvalidInput as exc:
            raise SourceUnavailable(f"Malformed recommendation in response from {path}") from exc

    def fetch_performance(self, student_id: int | str) -> StudentPerformance:
        path = f"/performance/{student_id}"
        try:
            return parse_performance(student_id, self._get(path))
        except InvalidInput as exc:
            raise SourceUnavailable(f"Malformed performance response from {path}") from exc


def load_catalog(path: Path = CATALOG_PATH) -> list[dict]:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)["projects"]


def _preference_rank(project: dict, preferences: Preferences | None) -> int:
    if preferences is None:
        return 0
    text = f"{project['projectTitle']} {project.get('description', '')}".lower()
    return sum(1 for term in preferences.interest_terms() if term in text)


def _passes_preferences(project: dict, preferences: Preferences | None) -> bool:
    if preferences is None:
        return True
    text = f"{project['projectTitle']} {project.get('description', '')}".lower()
    if any(term in text for term in preferences.avoid_terms()):
        return False
    wanted = (preferences.preferred_difficulty or "").strip().lower()
    if wanted and extract_difficulty(project.get("description", "")).lower() != wanted:
        return False
    return True


class CatalogSource:
    """Serves candidates from a local project catalog, for offline use and demos."""

    def __init__(self, projects: list[dict] | None = None, batch_size: int = 3):
        self.projects = projects if projects is not None else load_catalog()
        self.batch_size = batch_size

    def fetch_candidates(
        self,
        student_id: int | str,
        exclude_ids: set,
        preferences: Preferences | None = None,
    ) -> list[RecommendationItem]:
        eligible = [
            project
            for project in self.projects
            if project["projectId"] not in exclude_ids and _passes_preferences(project, preferences)
        ]
        eligible.sort(
            key=lambda p: (_preference_rank(p, preferences), float(p.get("score", 0.0))),
            reverse=True,
        )
        return [
            RecommendationItem(
                project_id=project["projectId"],
                project_title=project["projectTitle"],
                score=float(project.get("score", 0.0)),
                reason=project.get("description", ""),
            )
            for project in eligible[: self.batch_size]
        ]

    def fetch_performance(self, student_id: int | str, path: Path | None = None) -> StudentPerformance:
        demo_path = path or ROOT_DIR / "data" / "demo_student.json"
        with demo_path.open("r", encoding="utf-8") as f:
            return parse_performance(student_id, json.load(f))
