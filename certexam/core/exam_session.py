"""
Exam sessions: question selection for an attempt and the in-progress answer map
"""
import logging
import random
import threading
import time
import uuid
from typing import Dict

from .errors import AccessDenied, InvalidAnswerError, SessionNotFound
from .models import ExamSession

logger = logging.getLogger(__name__)


def now_millis() -> int:
    return int(time.time() * 1000)


class ExamSessionManager:
    """Creates sessions and records answers.

    rng is any object with a shuffle() method (random.Random by default);
    tests pass a seeded instance.
    """

    def __init__(self, resolver, catalog, rng=None, clock=now_millis):
        self.resolver = resolver
        self.catalog = catalog
        self.rng = rng or random.Random()
        self.clock = clock

    def start(self, exam_id, user_id) -> ExamSession:
        exam = self.catalog.get_exam(exam_id)
        pool = list(self.resolver.resolve(exam_id))

        self.rng.shuffle(pool)
        selected = pool[:min(exam.question_count, len(pool))]

        session = ExamSession(
            session_id=str(uuid.uuid4()),
            exam_id=exam_id,
            user_id=user_id,
            ordered_questions=selected,
            started_at_millis=self.clock(),
        )
        logger.info("Created exam session %s for user %s on %s with %d questions",
                    session.session_id, user_id, exam_id, len(selected))
        return session

    def record_answer(self, session, question_id, option_index):
        question = session.question_by_id(question_id)
        if question is None:
            raise InvalidAnswerError(f'Question {question_id} is not part of this exam session')
        if isinstance(option_index, bool) or not isinstance(option_index, int):
            raise InvalidAnswerError('option_index must be an integer')
        if not 0 <= option_index < len(question.options):
            raise InvalidAnswerError(
                f'Option {option_index} is out of range for question {question_id}'
            )
        session.answers[question_id] = option_index

    @staticmethod
    def unanswered_count(session) -> int:
        return len(session.ordered_questions) - len(session.answers)


class SessionRegistry:
    """Live sessions kept in process memory.

    Sessions are not persisted: a restart drops every in-progress attempt.
    """

    def __init__(self):
        self._sessions: Dict[str, ExamSession] = {}
        self._lock = threading.Lock()

    def add(self, session):
        with self._lock:
            self._sessions[session.session_id] = session

    @staticmethod
    def _check_owner(session, session_id, user_id):
        if session is None:
            raise SessionNotFound()
        if session.user_id != user_id:
            logger.warning("User %s tried to access exam session %s owned by %s",
                           user_id, session_id, session.user_id)
            raise AccessDenied()

    def get(self, session_id, user_id) -> ExamSession:
        with self._lock:
            session = self._sessions.get(session_id)
        self._check_owner(session, session_id, user_id)
        return session

    def take(self, session_id, user_id) -> ExamSession:
        """Remove and return the session. Only one caller can take a given session."""
        with self._lock:
            session = self._sessions.get(session_id)
            self._check_owner(session, session_id, user_id)
            return self._sessions.pop(session_id)

    def discard(self, session_id):
        with self._lock:
            self._sessions.pop(session_id, None)

    def __len__(self):
        with self._lock:
            return len(self._sessions)
