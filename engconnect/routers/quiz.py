import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from engconnect import grading, ledger
from engconnect.db import fetch_all, get_session
from engconnect.errors import ApiError, ErrorKind
from engconnect.guard import ADMIN_OR_COMPANY, AUTHENTICATED, STUDENT, require
from engconnect.models import QuizResponse
from engconnect.routers.ideas import student_summaries
from engconnect.routers.problems import get_owned_problem, get_problem_or_404
from engconnect.schemas import (
    IdentityOut,
    MessageOut,
    QuizDefinition,
    QuizResponseOut,
    QuizResponseWithStudent,
    QuizResultOut,
    QuizSubmission,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/quiz", tags=["quiz"])


@router.post("/submit", status_code=201, response_model=QuizResultOut)
def submit_quiz(
    payload: QuizSubmission,
    session: Session = Depends(get_session),
    current_user: IdentityOut = Depends(require(STUDENT)),
):
    problem = get_problem_or_404(session, payload.problem_id)
    quiz = QuizDefinition.model_validate(problem.quiz)
    if not quiz.enabled:
        raise ApiError(ErrorKind.QUIZ_NOT_ENABLED)

    ledger.ensure_no_quiz_response(session, problem.id, current_user.id)
    result = grading.grade(quiz, payload.answers)
    ledger.record_quiz_response(session, problem.id, current_user.id, result, payload.time_spent)
    logger.info(
        "Quiz for problem %s graded for student %s: %s/%s (%s%%, passed=%s)",
        problem.id, current_user.id, result.total_score, result.max_score, result.percentage, result.passed,
    )

    return QuizResultOut(
        total_score=result.total_score,
        max_score=result.max_score,
        percentage=result.percentage,
        passed=result.passed,
        time_spent=payload.time_spent,
    )


@router.get("/response/{problem_id}", response_model=QuizResponseOut)
def my_response(
    problem_id: int,
    session: Session = Depends(get_session),
    current_user: IdentityOut = Depends(require(AUTHENTICATED)),
):
    response = ledger.find_quiz_response(session, problem_id, current_user.id)
    if not response:
        raise ApiError(ErrorKind.RESOURCE_NOT_FOUND, "Quiz response not found")
    return QuizResponseOut.model_validate(response)


@router.get("/responses/{problem_id}", response_model=List[QuizResponseWithStudent])
def responses_for_problem(
    problem_id: int,
    session: Session = Depends(get_session),
    current_user: IdentityOut = Depends(require(ADMIN_OR_COMPANY)),
):
    problem = get_owned_problem(session, current_user, problem_id)
    responses = fetch_all(
        session,
        select(QuizResponse)
        .where(QuizResponse.problem_id == problem.id)
        .order_by(QuizResponse.percentage.desc(), QuizResponse.submitted_at.asc()),
    )
    students = student_summaries(session, (response.student_id for response in responses))
    return [
        QuizResponseWithStudent(
            **QuizResponseOut.model_validate(response).model_dump(),
            student=students.get(response.student_id),
        )
        for response in responses
    ]


@router.delete("/response/{problem_id}", response_model=MessageOut)
def delete_my_response(
    problem_id: int,
    session: Session = Depends(get_session),
    current_user: IdentityOut = Depends(require(AUTHENTICATED)),
):
    if not ledger.clear_quiz_response(session, problem_id, current_user.id):
        raise ApiError(ErrorKind.RESOURCE_NOT_FOUND, "Quiz response not found")
    logger.info("Quiz response for problem %s cleared by user %s", problem_id, current_user.id)
    return MessageOut(message="Quiz response deleted successfully. You can now retake the quiz.")
