"""
Quiz builder persistence.

A quiz is saved as one ``quizzes`` row, then one ``quiz_questions`` row per
question and the ``quiz_options`` of each question. Like invoice generation
this is not transactional: a failure stops the save and reports how far it got.
"""

import logging

from .database import BackendError

logger = logging.getLogger(__name__)

CHOICE_TYPES = ("multiple_choice", "true_false")


def validate_quiz(quiz, questions):
    """Return a list of problems; empty when the quiz can be saved."""
    problems = []
    if not (quiz.get("title") or "").strip():
        problems.append("Quiz title is required")
    if not quiz.get("class_id"):
        problems.append("Assign the quiz to a class")
    for index, question in enumerate(questions, start=1):
        if not (question.get("question_text") or "").strip():
            problems.append(f"Question {index} has no text")
        if question.get("type", "multiple_choice") in CHOICE_TYPES:
            options = question.get("options") or []
            if not any(option.get("is_correct") for option in options):
                problems.append(f"Question {index} needs a correct option")
    return problems


async def save_quiz(backend, teacher_id, quiz, questions, status="draft"):
    """Insert the quiz, its questions and options; returns the quiz id."""
    problems = validate_quiz(quiz, questions)
    if problems:
        raise ValueError(problems[0])

    rows = await backend.insert("quizzes", [{**quiz, "teacher_id": teacher_id, "status": status}])
    quiz_id = rows[0]["id"]

    for index, question in enumerate(questions):
        options = question.get("options") or []
        try:
            stored = await backend.insert("quiz_questions", [{
                "quiz_id": quiz_id,
                "question_text": question["question_text"],
                "type": question.get("type", "multiple_choice"),
                "points": question.get("points", 1),
                "order_index": index,
            }])
            if options:
                await backend.insert("quiz_options", [
                    {"question_id": stored[0]["id"], "option_text": option.get("option_text", ""),
                     "is_correct": bool(option.get("is_correct"))}
                    for option in options
                ])
        except BackendError as ex:
            logger.error("Quiz %s saved with %d of %d questions: %s",
                         quiz_id, index, len(questions), ex.message)
            raise BackendError(
                f"Quiz saved with {index} of {len(questions)} questions: {ex.message}"
            ) from ex
    logger.info("Quiz %s saved with %d questions", quiz_id, len(questions))
    return quiz_id
