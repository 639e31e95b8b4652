"""
Scoring of submitted exam sessions
"""
import logging
import uuid

from .errors import ScoringError
from .exam_session import now_millis
from .models import UNANSWERED, AnswerReview, ResultRecord

logger = logging.getLogger(__name__)


def new_test_id() -> str:
    return f'test-{uuid.uuid4().hex}'


def compute_score(correct_count, total_questions) -> float:
    if total_questions <= 0:
        return 0.0
    return round(correct_count / total_questions * 100, 2)


class Scorer:
    def __init__(self, id_factory=new_test_id, clock=now_millis):
        self.id_factory = id_factory
        self.clock = clock

    def build_review(self, session, answer_key):
        """One review entry per presented question, in presentation order.

        Unanswered questions are graded as wrong and carry UNANSWERED.
        """
        seen = set()
        review = []
        for question in session.ordered_questions:
            if question.id in seen:
                raise ScoringError(f'Question {question.id} appears twice in session {session.session_id}')
            seen.add(question.id)

            if question.id not in answer_key:
                raise ScoringError(f'No answer key entry for question {question.id}')

            review.append(AnswerReview(
                question_id=question.id,
                question_text=question.text,
                options=question.options,
                user_answer_index=session.answers.get(question.id, UNANSWERED),
                correct_answer_index=answer_key[question.id],
            ))
        return tuple(review)

    def grade(self, session, answer_key) -> ResultRecord:
        review = self.build_review(session, answer_key)
        correct_count = sum(1 for entry in review if entry.is_correct)
        total_questions = len(review)

        record = ResultRecord(
            test_id=self.id_factory(),
            user_id=session.user_id,
            exam_id=session.exam_id,
            score=compute_score(correct_count, total_questions),
            correct_count=correct_count,
            total_questions=total_questions,
            timestamp_millis=self.clock(),
            review=review,
        )
        logger.info("Graded session %s: %d/%d = %.2f%%",
                    session.session_id, correct_count, total_questions, record.score)
        return record
