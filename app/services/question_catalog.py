"""Static questionnaire definition.

Questions are asked in list order; there is no skipping or branching.
"""

from __future__ import annotations

from typing import Sequence

from app.domain.models import Question

DEFAULT_QUESTIONS: tuple[Question, ...] = (
    Question(
        id=1,
        text="Over the past week, how confident have you felt in making healthy food choices?",
        valid_categories=(
            "very confident",
            "somewhat confident",
            "neutral",
            "not very confident",
            "not confident at all",
        ),
    ),
    Question(
        id=2,
        text=(
            "In the past week, how many days did you engage in at least 20 minutes "
            "of moderate activity, such as walking?"
        ),
        valid_categories=("0", "1-3", "4-5", "6-7"),
    ),
    Question(
        id=3,
        text="Over the past week, how often have you felt physically well and energized?",
        valid_categories=(
            "always",
            "most of the time",
            "sometimes",
            "rarely",
            "never",
        ),
    ),
    Question(
        id=4,
        text="In the past week, have you taken all of your prescribed medication as directed?",
        valid_categories=(
            "yes",
            "no",
            "sometimes",
            "i dont take medication",
            "i dont have access to my medication",
        ),
    ),
)


class QuestionCatalog:
    """Ordered, read-only sequence of questions."""

    def __init__(self, questions: Sequence[Question] = DEFAULT_QUESTIONS) -> None:
        if not questions:
            raise ValueError("A questionnaire needs at least one question.")
        ids = [question.id for question in questions]
        if len(set(ids)) != len(ids):
            raise ValueError("Question ids must be unique.")
        self._questions = tuple(questions)

    def __len__(self) -> int:
        return len(self._questions)

    def __iter__(self):
        return iter(self._questions)

    def at(self, index: int) -> Question | None:
        """Return the question at ``index`` or None once the catalog is exhausted."""

        if 0 <= index < len(self._questions):
            return self._questions[index]
        return None


def get_question_catalog() -> QuestionCatalog:
    """Return the default catalog instance."""

    return _DEFAULT_CATALOG


_DEFAULT_CATALOG = QuestionCatalog()


__all__ = ["DEFAULT_QUESTIONS", "QuestionCatalog", "get_question_catalog"]
