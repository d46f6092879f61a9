"""Keyword-driven skill and difficulty extraction from project text.

Matching is plain substring search over lower-cased text, with no tokenising
or stemming. "neural networks" therefore never reaches Networks (that table
avoids the bare word "network"), while a word such as "laws" will still hit
the "aws" keyword. This is a known limitation of the approach.
"""
from __future__ import annotations

import logging

from capstone.models import Difficulty, SkillProfile

logger = logging.getLogger(__name__)

MAX_SKILLS = 4
FALLBACK_SKILLS = ("Programming", "Software Engineering")

SKILL_KEYWORDS = {
    "Artificial Intelligence": (
        "artificial intelligence",
        "ai-powered",
        "machine learning",
        "deep learning",
        "neural",
        "chatbot",
        "nlp",
        "computer vision",
    ),
    "Web Development": ("web", "react", "frontend", "front-end", "javascript", "html"),
    "Mobile Development": ("mobile", "android", "flutter", "ios app"),
    "Database": ("database", "sql", "mongodb", "data model"),
    "Networks": ("networking", "network protocol", "tcp", "routing", "wireless"),
    "Cybersecurity": ("security", "cyber", "encryption", "intrusion", "penetration"),
    "Cloud Computing": ("cloud", "aws", "azure", "serverless", "kubernetes"),
    "IoT": ("iot", "internet of things", "sensor", "arduino", "raspberry pi", "embedded"),
    "Data Analysis": ("data analysis", "analytics", "visualization", "dashboard", "data science", "statistics"),
    "Programming": ("programming", "algorithm", "object-oriented"),
    "Software Engineering": ("software engineering", "software", "rest api", "microservice"),
    "Blockchain": ("blockchain", "smart contract", "crypto", "ethereum"),
}

ADVANCED_WORDS = ("advanced", "complex", "challenging", "sophisticated")
BEGINNER_WORDS = ("beginner", "simple", "basic", "foundational")


def _match_skills(lowered: str) -> list[str]:
    found: list[str] = []
    for skill, keywords in SKILL_KEYWORDS.items():
        if skill in found:
            continue
        if any(keyword in lowered for keyword in keywords):
            found.append(skill)
    return found


def extract_skills(title: str, reason_text: str) -> list[str]:
    lowered = f"{title or ''} {reason_text or ''}".lower()
    skills = _match_skills(lowered)[:MAX_SKILLS]
    if not skills:
        logger.debug("No skill keywords in %r; using fallback skills", (title or "")[:60])
        return list(FALLBACK_SKILLS)
    return skills


def extract_difficulty(reason_text: str) -> str:
    lowered = (reason_text or "").lower()
    if any(word in lowered for word in ADVANCED_WORDS):
        return Difficulty.ADVANCED
    if any(word in lowered for word in BEGINNER_WORDS):
        return Difficulty.BEGINNER
    return Difficulty.INTERMEDIATE


def build_skill_profile(title: str, reason_text: str) -> SkillProfile:
    return SkillProfile(
        title=title or "",
        skills=tuple(extract_skills(title, reason_text)),
        difficulty=extract_difficulty(reason_text),
    )


def infer_subject(course_name: str) -> str:
    """Tag a course with the first skill its name mentions, or "" when none does."""
    matches = _match_skills((course_name or "").lower())
    return matches[0] if matches else ""
