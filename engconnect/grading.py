"""Deterministic quiz grading.

``grade`` depends only on its two arguments. Questions are scored in
definition order; an unanswered question earns nothing but still counts
toward the maximum score. Time spent is recorded by the caller and never
affects the verdict.
"""

from typing import Dict, Iterable

from engconnect.schemas import (
    GradedAnswer,
    MultipleChoiceQuestion,
    QuizDefinition,
    QuizResult,
    SubmittedAnswer,
)


def normalize(answer: str) -> str:
    return answer.strip().lower()


def is_correct(question, submitted: str) -> bool:
    if isinstance(question, MultipleChoiceQuestion):
        # option text must match exactly
        return submitted == question.correct_option().text
    return normalize(submitted) == normalize(question.correct_answer)


def percentage(total_score: int, max_score: int) -> int:
    """Percentage rounded half up, 0 for an empty quiz."""
    if max_score <= 0:
        return 0
    return (200 * total_score + max_score) // (2 * max_score)


def index_answers(answers: Iterable[SubmittedAnswer]) -> Dict[int, str]:
    by_index: Dict[int, str] = {}
    for answer in answers:
        # first answer for an index wins
        by_index.setdefault(answer.question_index, answer.answer)
    return by_index


def grade(quiz: QuizDefinition, answers: Iterable[SubmittedAnswer]) -> QuizResult:
    submitted = index_answers(answers)
    graded = []
    total_score = 0
    max_score = 0

    for index, question in enumerate(quiz.questions):
        max_score += question.points
        answer = submitted.get(index)
        correct = answer is not None and is_correct(question, answer)
        awarded = question.points if correct else 0
        total_score += awarded
        graded.append(GradedAnswer(
            question_index=index,
            answer=answer if answer is not None else "",
            is_correct=correct,
            points_awarded=awarded,
        ))

    score = percentage(total_score, max_score)
    return QuizResult(
        answers=tuple(graded),
        total_score=total_score,
        max_score=max_score,
        percentage=score,
        passed=score >= quiz.passing_score,
    )
