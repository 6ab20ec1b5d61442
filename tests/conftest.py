import os

os.environ["ENGCONNECT_SECRET_KEY"] = "test-secret-key"
os.environ["ENGCONNECT_DB_URL"] = "sqlite://"

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from engconnect.auth import get_password_hash
from engconnect.config import get_settings
from engconnect.db import get_session, init_db, make_engine
from engconnect.main import app
from engconnect.models import Problem, User
from engconnect.schemas import Role
from engconnect.tokens import TokenService

SECRET = "test-secret-key"
PASSWORD = "secret123"
_password_hash = None


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine):
    def override_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def tokens():
    return TokenService(SECRET)


@pytest.fixture
def make_user(session):
    def _make_user(username, role=Role.student, **fields):
        global _password_hash
        if _password_hash is None:
            _password_hash = get_password_hash(PASSWORD)
        if role == Role.student:
            fields.setdefault("university", "State University")
        user = User(username=username, password_hash=_password_hash, role=Role(role).value, **fields)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def auth_header(tokens):
    def _auth_header(user):
        token = tokens.issue(user.id, Role(user.role), timedelta(hours=1))
        return {"Authorization": f"Bearer {token}"}

    return _auth_header


QUIZ = {
    "enabled": True,
    "passingScore": 70,
    "questions": [
        {
            "question": "Capital of France?",
            "type": "multiple-choice",
            "options": [{"text": "Paris", "isCorrect": True}, {"text": "Lyon", "isCorrect": False}],
            "points": 1,
        },
        {"question": "Water boils at 100C at sea level", "type": "boolean", "correctAnswer": "True", "points": 1},
        {"question": "Unit of force?", "type": "text", "correctAnswer": "Newton", "points": 2},
    ],
}


def problem_payload(**overrides):
    payload = {
        "company": "Acme Robotics",
        "branch": "mechanical",
        "title": "Reduce gearbox noise",
        "description": "Our gearbox is loud; propose a fix.",
        "difficulty": "intermediate",
        "tags": "gears, acoustics",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_problem(session):
    def _make_problem(owner, quiz=None, **fields):
        problem = Problem(
            owner_id=owner.id,
            company=fields.pop("company", "Acme Robotics"),
            branch=fields.pop("branch", "mechanical"),
            title=fields.pop("title", "Reduce gearbox noise"),
            description=fields.pop("description", "Our gearbox is loud."),
            difficulty=fields.pop("difficulty", "beginner"),
            quiz=quiz or {"enabled": False, "questions": []},
            **fields,
        )
        session.add(problem)
        session.commit()
        session.refresh(problem)
        return problem

    return _make_problem
