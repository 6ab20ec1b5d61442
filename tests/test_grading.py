import pytest

from engconnect.grading import grade, percentage
from engconnect.schemas import QuizDefinition, SubmittedAnswer


def quiz(questions, passing_score=70):
    return QuizDefinition.model_validate({"enabled": True, "questions": questions, "passingScore": passing_score})


def answers(*pairs):
    return [SubmittedAnswer(question_index=index, answer=text) for index, text in pairs]


CAPITAL = {
    "question": "Capital of France?",
    "type": "multiple-choice",
    "options": [{"text": "Paris", "isCorrect": True}, {"text": "Lyon", "isCorrect": False}],
}


def text_question(correct, points=1, kind="text"):
    return {"question": "Q?", "type": kind, "correctAnswer": correct, "points": points}


def test_multiple_choice_requires_exact_option_text():
    definition = quiz([CAPITAL])

    assert grade(definition, answers((0, "Paris"))).answers[0].is_correct
    assert not grade(definition, answers((0, "paris"))).answers[0].is_correct
    assert not grade(definition, answers((0, " Paris"))).answers[0].is_correct


@pytest.mark.parametrize("kind", ["boolean", "text"])
def test_keyed_answers_ignore_case_and_surrounding_space(kind):
    definition = quiz([text_question("True", kind=kind)])

    result = grade(definition, answers((0, " true ")))

    assert result.answers[0].is_correct
    assert result.total_score == 1


def test_percentage_and_pass_threshold():
    questions = [text_question("a", 1), text_question("b", 1), text_question("c", 2)]
    submitted = answers((0, "a"), (1, "wrong"), (2, "c"))

    at_70 = grade(quiz(questions, passing_score=70), submitted)
    at_80 = grade(quiz(questions, passing_score=80), submitted)

    assert (at_70.total_score, at_70.max_score, at_70.percentage) == (3, 4, 75)
    assert at_70.passed is True
    assert at_80.passed is False


def test_missing_answer_scores_zero_but_counts_toward_max():
    definition = quiz([text_question("a", 2), text_question("b", 3)])

    result = grade(definition, answers((1, "b")))

    assert result.total_score == 3
    assert result.max_score == 5
    assert result.answers[0].answer == ""
    assert result.answers[0].is_correct is False
    assert result.answers[0].points_awarded == 0


def test_results_follow_definition_order_not_submission_order():
    definition = quiz([text_question("a"), text_question("b"), text_question("c")])

    result = grade(definition, answers((2, "c"), (0, "a"), (1, "x")))

    assert [answer.question_index for answer in result.answers] == [0, 1, 2]
    assert [answer.is_correct for answer in result.answers] == [True, False, True]


def test_first_answer_for_an_index_wins_and_unknown_indexes_are_ignored():
    definition = quiz([text_question("a")])

    result = grade(definition, answers((0, "a"), (0, "b"), (9, "a")))

    assert result.total_score == 1
    assert len(result.answers) == 1


def test_grading_is_deterministic():
    definition = quiz([CAPITAL, text_question("Newton", 2)])
    submitted = answers((0, "Paris"), (1, "newton "))

    first = grade(definition, submitted)
    second = grade(definition, submitted)

    assert first == second
    assert first.model_dump_json() == second.model_dump_json()


def test_zero_point_quiz_has_zero_percentage():
    definition = quiz([text_question("a", 0)], passing_score=0)

    result = grade(definition, answers((0, "a")))

    assert result.percentage == 0
    assert result.passed is True


@pytest.mark.parametrize("total,maximum,expected", [(1, 8, 13), (1, 3, 33), (2, 3, 67), (0, 5, 0), (5, 5, 100)])
def test_percentage_rounds_half_up(total, maximum, expected):
    assert percentage(total, maximum) == expected


def test_quiz_definition_rejects_bad_multiple_choice():
    with pytest.raises(ValueError):
        quiz([{**CAPITAL, "options": [{"text": "Paris", "isCorrect": True}]}])
    with pytest.raises(ValueError):
        quiz([{**CAPITAL, "options": [{"text": "Paris", "isCorrect": True}, {"text": "Nice", "isCorrect": True}]}])


def test_quiz_definition_rejects_blank_correct_answer():
    with pytest.raises(ValueError):
        quiz([text_question("   ")])


def test_enabled_quiz_needs_questions():
    with pytest.raises(ValueError):
        QuizDefinition.model_validate({"enabled": True, "questions": []})
