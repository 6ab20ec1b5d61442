"""At-most-one submission per (student, problem).

The compound unique indexes on ``idea`` and ``quizresponse`` are what make the
guarantee hold under concurrent requests. The lookups below only let the
common duplicate fail early with a friendly message; the insert is always
attempted and a uniqueness violation is mapped to ``DuplicateSubmission``.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from engconnect.db import fetch_first
from engconnect.errors import ApiError, ErrorKind
from engconnect.models import Idea, QuizResponse
from engconnect.schemas import QuizResult

logger = logging.getLogger(__name__)

IDEA_DUPLICATE = "You have already submitted an idea for this problem."
QUIZ_DUPLICATE = "You have already submitted this quiz"


def is_unique_violation(exc: IntegrityError) -> bool:
    text = str(exc.orig).lower()
    return "unique" in text or "duplicate key" in text


def find_idea(session: Session, student_id: int, problem_id: int) -> Optional[Idea]:
    return fetch_first(session, select(Idea).where(Idea.student_id == student_id, Idea.problem_id == problem_id))


def find_quiz_response(session: Session, problem_id: int, student_id: int) -> Optional[QuizResponse]:
    return fetch_first(session, select(QuizResponse).where(
        QuizResponse.problem_id == problem_id, QuizResponse.student_id == student_id,
    ))


def _insert(session: Session, row, duplicate_message: str):
    session.add(row)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        if not is_unique_violation(exc):
            raise
        logger.info("Duplicate %s rejected by unique index", type(row).__name__)
        raise ApiError(ErrorKind.DUPLICATE_SUBMISSION, duplicate_message) from exc
    session.refresh(row)
    return row


def submit_idea(
    session: Session,
    student_id: int,
    problem_id: int,
    idea_text: str,
    implementation_approach: str = "",
) -> Idea:
    if find_idea(session, student_id, problem_id) is not None:
        raise ApiError(ErrorKind.DUPLICATE_SUBMISSION, IDEA_DUPLICATE)
    idea = Idea(
        student_id=student_id,
        problem_id=problem_id,
        idea_text=idea_text,
        implementation_approach=implementation_approach,
    )
    return _insert(session, idea, IDEA_DUPLICATE)


def ensure_no_quiz_response(session: Session, problem_id: int, student_id: int) -> None:
    if find_quiz_response(session, problem_id, student_id) is not None:
        raise ApiError(ErrorKind.DUPLICATE_SUBMISSION, QUIZ_DUPLICATE)


def record_quiz_response(
    session: Session,
    problem_id: int,
    student_id: int,
    result: QuizResult,
    time_spent_seconds: int = 0,
) -> QuizResponse:
    response = QuizResponse(
        problem_id=problem_id,
        student_id=student_id,
        answers=[answer.model_dump() for answer in result.answers],
        total_score=result.total_score,
        max_score=result.max_score,
        percentage=result.percentage,
        passed=result.passed,
        time_spent_seconds=time_spent_seconds,
    )
    return _insert(session, response, QUIZ_DUPLICATE)


def clear_quiz_response(session: Session, problem_id: int, student_id: int) -> bool:
    """Delete a student's quiz response so exactly one retake is possible."""
    response = find_quiz_response(session, problem_id, student_id)
    if response is None:
        return False
    session.delete(response)
    session.commit()
    return True
