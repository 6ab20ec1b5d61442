import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from engconnect import ownership
from engconnect.db import fetch, fetch_all, get_session
from engconnect.errors import ApiError, ErrorKind
from engconnect.guard import ADMIN_OR_COMPANY, optional_identity, raise_if_denied, require
from engconnect.models import Idea, Problem, QuizResponse
from engconnect.schemas import Branch, IdentityOut, MessageOut, ProblemIn, ProblemOut, QuizDefinition, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/problems", tags=["problems"])


def problem_out(problem: Problem, viewer: Optional[IdentityOut]) -> ProblemOut:
    quiz = QuizDefinition.model_validate(problem.quiz)
    if viewer is not None and ownership.owns_problem(viewer, problem):
        quiz_view = quiz.model_dump(by_alias=True, mode="json")
    else:
        quiz_view = quiz.public_view()
    return ProblemOut(
        id=problem.id,
        owner_id=problem.owner_id,
        company=problem.company,
        branch=problem.branch,
        title=problem.title,
        description=problem.description,
        video_url=problem.video_url,
        difficulty=problem.difficulty,
        tags=problem.tags,
        attachments=problem.attachments,
        quiz=quiz_view,
        created_at=problem.created_at,
        updated_at=problem.updated_at,
    )


def get_problem_or_404(session: Session, problem_id: int) -> Problem:
    problem = fetch(session, Problem, problem_id)
    if not problem:
        raise ApiError(ErrorKind.RESOURCE_NOT_FOUND, "Problem not found")
    return problem


def get_owned_problem(session: Session, current_user: IdentityOut, problem_id: int) -> Problem:
    problem = get_problem_or_404(session, problem_id)
    raise_if_denied(ownership.authorize_problem(current_user, problem))
    return problem


def _apply(problem: Problem, payload: ProblemIn) -> Problem:
    problem.company = payload.company
    problem.branch = payload.branch.value
    problem.title = payload.title
    problem.description = payload.description
    problem.video_url = payload.video_url
    problem.difficulty = payload.difficulty.value
    problem.tags = payload.tags
    problem.attachments = [attachment.model_dump(mode="json") for attachment in payload.attachments]
    problem.quiz = payload.stored_quiz()
    return problem


@router.get("/", response_model=List[ProblemOut])
def list_problems(
    branch: Optional[Branch] = None,
    session: Session = Depends(get_session),
    viewer: Optional[IdentityOut] = Depends(optional_identity),
):
    query = select(Problem)
    if branch:
        query = query.where(Problem.branch == branch.value)
    problems = fetch_all(session, query.order_by(Problem.created_at.desc(), Problem.id.desc()))
    return [problem_out(problem, viewer) for problem in problems]


@router.get("/{problem_id}", response_model=ProblemOut)
def get_problem(
    problem_id: int,
    session: Session = Depends(get_session),
    viewer: Optional[IdentityOut] = Depends(optional_identity),
):
    return problem_out(get_problem_or_404(session, problem_id), viewer)


@router.post("/", status_code=201, response_model=ProblemOut)
def create_problem(
    payload: ProblemIn,
    session: Session = Depends(get_session),
    current_user: IdentityOut = Depends(require(ADMIN_OR_COMPANY)),
):
    problem = _apply(Problem(owner_id=current_user.id), payload)
    session.add(problem)
    session.commit()
    session.refresh(problem)
    logger.info("Problem %s created by user %s", problem.id, current_user.id)
    return problem_out(problem, current_user)


@router.put("/{problem_id}", response_model=ProblemOut)
def update_problem(
    problem_id: int,
    payload: ProblemIn,
    session: Session = Depends(get_session),
    current_user: IdentityOut = Depends(require(ADMIN_OR_COMPANY)),
):
    problem = _apply(get_owned_problem(session, current_user, problem_id), payload)
    problem.updated_at = utcnow()
    session.add(problem)
    session.commit()
    session.refresh(problem)
    logger.info("Problem %s updated by user %s", problem.id, current_user.id)
    return problem_out(problem, current_user)


@router.delete("/{problem_id}", response_model=MessageOut)
def delete_problem(
    problem_id: int,
    session: Session = Depends(get_session),
    current_user: IdentityOut = Depends(require(ADMIN_OR_COMPANY)),
):
    problem = get_owned_problem(session, current_user, problem_id)
    for idea in session.exec(select(Idea).where(Idea.problem_id == problem.id)).all():
        session.delete(idea)
    for response in session.exec(select(QuizResponse).where(QuizResponse.problem_id == problem.id)).all():
        session.delete(response)
    session.delete(problem)
    session.commit()
    logger.info("Problem %s deleted by user %s", problem_id, current_user.id)
    return MessageOut(message="Problem removed")
