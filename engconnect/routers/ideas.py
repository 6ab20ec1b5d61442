import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from engconnect import ledger
from engconnect.db import fetch, fetch_all, get_session
from engconnect.errors import ApiError, ErrorKind
from engconnect.guard import ADMIN, ADMIN_OR_COMPANY, STUDENT, require
from engconnect.models import Idea, User
from engconnect.routers.problems import get_owned_problem, get_problem_or_404
from engconnect.schemas import IdeaIn, IdeaOut, IdeaWithStudent, IdentityOut, StudentSummary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ideas", tags=["ideas"])


def student_summaries(session: Session, student_ids) -> dict:
    ids = set(student_ids)
    if not ids:
        return {}
    students = fetch_all(session, select(User).where(User.id.in_(ids)))
    return {student.id: StudentSummary.model_validate(student) for student in students}


def with_students(session: Session, ideas) -> List[IdeaWithStudent]:
    students = student_summaries(session, (idea.student_id for idea in ideas))
    return [
        IdeaWithStudent(**IdeaOut.model_validate(idea).model_dump(), student=students.get(idea.student_id))
        for idea in ideas
    ]


@router.post("/", status_code=201, response_model=IdeaOut)
def submit_idea(
    payload: IdeaIn,
    session: Session = Depends(get_session),
    current_user: IdentityOut = Depends(require(STUDENT)),
):
    get_problem_or_404(session, payload.problem_id)
    idea = ledger.submit_idea(
        session,
        student_id=current_user.id,
        problem_id=payload.problem_id,
        idea_text=payload.idea_text,
        implementation_approach=payload.implementation_approach,
    )
    logger.info("Idea %s submitted by student %s for problem %s", idea.id, current_user.id, payload.problem_id)
    return IdeaOut.model_validate(idea)


@router.get("/", response_model=List[IdeaWithStudent])
def list_ideas(
    session: Session = Depends(get_session),
    current_user: IdentityOut = Depends(require(ADMIN)),
):
    ideas = fetch_all(session, select(Idea).order_by(Idea.created_at.desc(), Idea.id.desc()))
    return with_students(session, ideas)


@router.get("/mine", response_model=List[IdeaOut])
def my_ideas(
    session: Session = Depends(get_session),
    current_user: IdentityOut = Depends(require(STUDENT)),
):
    ideas = fetch_all(session, select(Idea).where(Idea.student_id == current_user.id).order_by(Idea.created_at.desc()))
    return [IdeaOut.model_validate(idea) for idea in ideas]


@router.get("/problem/{problem_id}", response_model=List[IdeaWithStudent])
def ideas_for_problem(
    problem_id: int,
    session: Session = Depends(get_session),
    current_user: IdentityOut = Depends(require(ADMIN_OR_COMPANY)),
):
    problem = get_owned_problem(session, current_user, problem_id)
    ideas = fetch_all(session, select(Idea).where(Idea.problem_id == problem.id).order_by(Idea.created_at.desc(), Idea.id.desc()))
    return with_students(session, ideas)


@router.get("/{idea_id}", response_model=IdeaWithStudent)
def get_idea(
    idea_id: int,
    session: Session = Depends(get_session),
    current_user: IdentityOut = Depends(require(ADMIN)),
):
    idea = fetch(session, Idea, idea_id)
    if not idea:
        raise ApiError(ErrorKind.RESOURCE_NOT_FOUND, "Idea not found")
    return with_students(session, [idea])[0]
