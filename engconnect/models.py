from typing import List, Optional
from datetime import datetime
from sqlalchemy import JSON, Column, Index
from sqlmodel import SQLModel, Field

from engconnect.schemas import utcnow


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(unique=True, index=True)
    password_hash: str
    role: str = "student"  # student | admin | company
    university: Optional[str] = None
    company_name: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class Problem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(foreign_key="user.id", index=True)
    company: str
    branch: str
    title: str
    description: str
    video_url: Optional[str] = None
    difficulty: str
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    attachments: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    # QuizDefinition document; {"enabled": false, "questions": []} when the problem has no quiz
    quiz: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Idea(SQLModel, table=True):
    __table_args__ = (
        Index("uq_idea_student_problem", "student_id", "problem_id", unique=True),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: int = Field(foreign_key="user.id")
    problem_id: int = Field(foreign_key="problem.id", index=True)
    idea_text: str
    implementation_approach: str = ""
    created_at: datetime = Field(default_factory=utcnow)


class QuizResponse(SQLModel, table=True):
    __table_args__ = (
        Index("uq_quizresponse_problem_student", "problem_id", "student_id", unique=True),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    problem_id: int = Field(foreign_key="problem.id")
    student_id: int = Field(foreign_key="user.id", index=True)
    answers: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    total_score: int
    max_score: int
    percentage: int
    passed: bool
    time_spent_seconds: int = 0
    submitted_at: datetime = Field(default_factory=utcnow)


# Compound unique indexes the ledger relies on, by table.
LEDGER_INDEXES = {
    "idea": ("uq_idea_student_problem", ("student_id", "problem_id")),
    "quizresponse": ("uq_quizresponse_problem_student", ("problem_id", "student_id")),
}
