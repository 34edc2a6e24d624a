"""
Supervisor Matching Engine
==========================

Scores teachers against a group's proposal and ranks them for display.
Pure functions only: no I/O, no randomness, so the same input always yields
the same order and scores.

Scoring:
    no proposal            -> every teacher gets the neutral score
    field overlap          -> +40
    per accepted topic     -> +20 if any keyword overlaps the topic
                              +15 if the topic appears in the proposal title
    teacher at capacity    -> -30
    result clamped to [0, 100]; sorted descending, ties keep input order
"""

from typing import Any, Iterable, List, NamedTuple, Optional

FIELD_MATCH_POINTS = 40
KEYWORD_TOPIC_POINTS = 20
TITLE_TOPIC_POINTS = 15
FULL_CAPACITY_PENALTY = 30
MIN_SCORE = 0
MAX_SCORE = 100
DEFAULT_NEUTRAL_SCORE = 50


class TeacherMatch(NamedTuple):
    teacher: Any
    score: int


def _norm(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def overlaps(a: Optional[str], b: Optional[str]) -> bool:
    """Case-insensitive 'a contains b or b contains a'; empty strings never match"""
    a, b = _norm(a), _norm(b)
    if not a or not b:
        return False
    return a in b or b in a


def is_at_capacity(teacher: Any) -> bool:
    current = getattr(teacher, "current_students_count", 0) or 0
    maximum = getattr(teacher, "max_students", 0) or 0
    return current >= maximum


def score_teacher(teacher: Any, proposal: Any) -> int:
    """Relevance score of one teacher for a proposal (proposal must not be None)"""
    score = 0

    if overlaps(getattr(teacher, "research_field", None), getattr(proposal, "field", None)):
        score += FIELD_MATCH_POINTS

    keywords = list(getattr(proposal, "keywords", None) or [])
    title = _norm(getattr(proposal, "title", None))

    for topic in getattr(teacher, "accepted_topics", None) or []:
        if any(overlaps(keyword, topic) for keyword in keywords):
            score += KEYWORD_TOPIC_POINTS
        topic_norm = _norm(topic)
        if topic_norm and topic_norm in title:
            score += TITLE_TOPIC_POINTS

    if is_at_capacity(teacher):
        score -= FULL_CAPACITY_PENALTY

    return max(MIN_SCORE, min(MAX_SCORE, score))


def rank_teachers(
    teachers: Iterable[Any],
    proposal: Optional[Any],
    neutral_score: int = DEFAULT_NEUTRAL_SCORE,
) -> List[TeacherMatch]:
    """Rank teachers by relevance; Python's sort is stable so ties keep input order"""
    teachers = list(teachers)
    if proposal is None:
        return [TeacherMatch(teacher, neutral_score) for teacher in teachers]

    matches = [TeacherMatch(teacher, score_teacher(teacher, proposal)) for teacher in teachers]
    return sorted(matches, key=lambda match: match.score, reverse=True)
