from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    student = "student"
    admin = "admin"
    company = "company"


class Branch(str, Enum):
    computer = "computer"
    mechanical = "mechanical"
    electrical = "electrical"
    civil = "civil"
    chemical = "chemical"
    aerospace = "aerospace"


class Difficulty(str, Enum):
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"


class FileType(str, Enum):
    pdf = "pdf"
    ppt = "ppt"
    pptx = "pptx"
    doc = "doc"
    docx = "docx"
    xls = "xls"
    xlsx = "xlsx"
    txt = "txt"
    other = "other"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# --- quiz definition -------------------------------------------------------

class Option(CamelModel):
    text: str = Field(min_length=1)
    is_correct: bool = False


class _QuestionBase(CamelModel):
    question: str = Field(min_length=1)
    points: int = Field(default=1, ge=0)

    @field_validator("question")
    @classmethod
    def check_question_text(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Each quiz question must have a question text and type")
        return value.strip()


class MultipleChoiceQuestion(_QuestionBase):
    type: Literal["multiple-choice"]
    options: List[Option] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_single_correct_option(self):
        if len(self.options) < 2:
            raise ValueError("Multiple choice questions must have at least 2 options")
        if sum(1 for option in self.options if option.is_correct) != 1:
            raise ValueError("Multiple choice questions must have exactly one correct answer")
        return self

    def correct_option(self) -> Option:
        return next(option for option in self.options if option.is_correct)


class _KeyedQuestion(_QuestionBase):
    correct_answer: str = ""

    @model_validator(mode="after")
    def check_has_answer(self):
        if not self.correct_answer.strip():
            raise ValueError(f"{self.type} questions must have a correct answer")
        return self


class TextQuestion(_KeyedQuestion):
    type: Literal["text"]


class BooleanQuestion(_KeyedQuestion):
    type: Literal["boolean"]


Question = Annotated[
    Union[MultipleChoiceQuestion, TextQuestion, BooleanQuestion],
    Field(discriminator="type"),
]


class QuizDefinition(CamelModel):
    enabled: bool = False
    title: Optional[str] = None
    description: Optional[str] = None
    questions: List[Question] = Field(default_factory=list)
    time_limit: int = Field(default=30, ge=1)
    passing_score: int = Field(default=70, ge=0, le=100)

    @model_validator(mode="after")
    def check_enabled_needs_questions(self):
        if self.enabled and not self.questions:
            raise ValueError("Quiz is enabled but no questions provided")
        return self

    def public_view(self) -> dict:
        """Wire form of the quiz with the answer key removed."""
        data = self.model_dump(by_alias=True, mode="json")
        for question in data["questions"]:
            question.pop("correctAnswer", None)
            for option in question.get("options", []):
                option.pop("isCorrect", None)
        return data


DISABLED_QUIZ = QuizDefinition(enabled=False)


# --- problems ---------------------------------------------------------------

class Attachment(CamelModel):
    file_name: str = Field(min_length=1)
    original_name: str = Field(min_length=1)
    file_type: FileType
    file_size: int = Field(ge=0)
    file_path: str = Field(min_length=1)
    uploaded_at: datetime = Field(default_factory=utcnow)


class ProblemIn(CamelModel):
    company: str
    branch: Branch
    title: str
    description: str
    video_url: Optional[str] = None
    difficulty: Difficulty
    tags: List[str] = Field(default_factory=list)
    attachments: List[Attachment] = Field(default_factory=list)
    quiz: Optional[QuizDefinition] = None

    @field_validator("company", "title", "description")
    @classmethod
    def check_required_text(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Please provide all required fields")
        return value.strip()

    @field_validator("video_url")
    @classmethod
    def normalize_video_url(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, list):
            return [tag.strip() for tag in value if isinstance(tag, str) and tag.strip()]
        return value

    def stored_quiz(self) -> dict:
        """Quiz document as persisted: defaults filled in, or the disabled stub."""
        if self.quiz is None or not self.quiz.enabled:
            return DISABLED_QUIZ.model_dump(mode="json")
        quiz = self.quiz.model_copy(update={
            "title": self.quiz.title or f"{self.title} Quiz",
            "description": self.quiz.description or "Complete this quiz to submit your idea",
        })
        return quiz.model_dump(mode="json")


class ProblemOut(CamelModel):
    id: int
    owner_id: int
    company: str
    branch: Branch
    title: str
    description: str
    video_url: Optional[str] = None
    difficulty: Difficulty
    tags: List[str]
    attachments: List[Attachment]
    quiz: dict
    created_at: datetime
    updated_at: datetime


# --- ideas ------------------------------------------------------------------

class IdeaIn(CamelModel):
    problem_id: int
    idea_text: str
    implementation_approach: str = ""

    @field_validator("idea_text")
    @classmethod
    def check_idea_text(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Problem ID and idea text are required")
        return value


class StudentSummary(CamelModel):
    id: int
    username: str
    university: Optional[str] = None


class IdeaOut(CamelModel):
    id: int
    student_id: int
    problem_id: int
    idea_text: str
    implementation_approach: str
    created_at: datetime


class IdeaWithStudent(IdeaOut):
    student: Optional[StudentSummary] = None


# --- quiz submissions -------------------------------------------------------

class SubmittedAnswer(CamelModel):
    question_index: int = Field(ge=0)
    answer: str


class QuizSubmission(CamelModel):
    problem_id: int
    answers: List[SubmittedAnswer] = Field(default_factory=list)
    time_spent: int = Field(default=0, ge=0)


class GradedAnswer(CamelModel):
    model_config = ConfigDict(frozen=True)

    question_index: int
    answer: str
    is_correct: bool
    points_awarded: int


class QuizResult(CamelModel):
    model_config = ConfigDict(frozen=True)

    answers: tuple[GradedAnswer, ...]
    total_score: int
    max_score: int
    percentage: int
    passed: bool


class QuizResultOut(CamelModel):
    message: str = "Quiz submitted successfully"
    total_score: int
    max_score: int
    percentage: int
    passed: bool
    time_spent: int


class QuizResponseOut(CamelModel):
    id: int
    problem_id: int
    student_id: int
    answers: List[GradedAnswer]
    total_score: int
    max_score: int
    percentage: int
    passed: bool
    time_spent_seconds: int
    submitted_at: datetime


class QuizResponseWithStudent(QuizResponseOut):
    student: Optional[StudentSummary] = None


# --- identities -------------------------------------------------------------

class RegisterIn(CamelModel):
    username: str
    password: str = Field(min_length=3)
    role: Role = Role.student
    university: Optional[str] = None
    company_name: Optional[str] = None

    @field_validator("username")
    @classmethod
    def check_username(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Username and password are required")
        return value.strip()

    @model_validator(mode="after")
    def check_student_university(self):
        if self.role == Role.admin:
            raise ValueError("Admin accounts cannot be self-registered")
        if self.role == Role.student and not (self.university or "").strip():
            raise ValueError("University is required for students")
        return self


class LoginIn(CamelModel):
    username: str
    password: str


class IdentityOut(CamelModel):
    id: int
    username: str
    role: Role
    university: Optional[str] = None
    company_name: Optional[str] = None
    created_at: datetime


class AuthOut(CamelModel):
    id: int
    username: str
    role: Role
    university: Optional[str] = None
    token: str
    message: str


class MessageOut(CamelModel):
    message: str
