"""
Exam service
Ties together catalog, sessions, attempt policy, scoring and the result store
"""
import logging

from .certificates import certificate_data, sample_certificate_data
from .errors import CertificateUnavailable, ExamError
from .question_source import answer_key_for

logger = logging.getLogger(__name__)


class ExamService:
    def __init__(self, catalog, session_manager, registry, policy, scorer, store):
        self.catalog = catalog
        self.sessions = session_manager
        self.registry = registry
        self.policy = policy
        self.scorer = scorer
        self.store = store

    def _exam_entry(self, user, exam, prior):
        product = self.catalog.product_for(exam.id)
        entry = {
            'id': exam.id,
            'name': exam.name,
            'description': exam.description,
            'price_cents': exam.price_cents,
            'question_count': exam.question_count,
            'pass_threshold_percent': exam.pass_threshold_percent,
            'is_practice': exam.is_practice,
            'duration_minutes': exam.duration_minutes,
            'product_id': product.id if product else None,
            'entitled': exam.is_practice or exam.is_free or exam.id in user.paid_exam_ids,
        }
        entry.update(self.policy.attempts_summary(user, exam, prior))
        return entry

    def list_exams(self, user):
        prior = self.store.list_for_user(user.user_id)
        return [self._exam_entry(user, exam, prior) for exam in self.catalog.exams]

    def list_products(self, user):
        """Test series with their practice and certification exam entries"""
        prior = self.store.list_for_user(user.user_id)
        listing = []
        for product in self.catalog.products:
            listing.append({
                'id': product.id,
                'name': product.name,
                'description': product.description,
                'practice': self._exam_entry(
                    user, self.catalog.get_exam(product.practice_exam_id), prior),
                'certification': self._exam_entry(
                    user, self.catalog.get_exam(product.certification_exam_id), prior),
            })
        return listing

    def start_exam(self, user, exam_id):
        """Authorize and create a session. Nothing is created when denied."""
        exam = self.catalog.get_exam(exam_id)
        self.policy.ensure_entitled(user, exam)
        self.policy.ensure_authorized(user, exam, self.store.list_for_user(user.user_id))

        session = self.sessions.start(exam_id, user.user_id)
        self.registry.add(session)
        return session

    def get_session(self, user, session_id):
        return self.registry.get(session_id, user.user_id)

    def answer(self, user, session_id, question_id, option_index):
        session = self.registry.get(session_id, user.user_id)
        self.sessions.record_answer(session, question_id, option_index)
        return session

    def submit(self, user, session_id):
        """Grade and store the attempt.

        The session is taken out of the registry first, so a second submit of
        the same session gets SessionNotFound. The attempt policy is evaluated
        again inside the store's atomic append, so parallel submissions of
        different sessions cannot exceed the attempt limits. Unanswered
        questions count as wrong.
        """
        session = self.registry.take(session_id, user.user_id)
        exam = self.catalog.get_exam(session.exam_id)

        unanswered = self.sessions.unanswered_count(session)
        if unanswered:
            logger.info("Session %s submitted with %d unanswered questions", session_id, unanswered)

        def grade_if_allowed(prior_results):
            self.policy.ensure_authorized(user, exam, prior_results)
            return self.scorer.grade(session, answer_key_for(session.ordered_questions))

        try:
            return self.store.append_if(user.user_id, grade_if_allowed)
        except ExamError:
            # Denied or ungradable attempts are over; nothing was stored
            raise
        except Exception:
            # Storage failed, the attempt can be submitted again
            self.registry.add(session)
            raise

    def abandon(self, user, session_id):
        self.registry.get(session_id, user.user_id)
        self.registry.discard(session_id)
        logger.info("User %s abandoned exam session %s", user.user_id, session_id)

    def result(self, user, test_id):
        return self.store.get_by_test_id(test_id, user.user_id)

    def history(self, user):
        return self.store.list_for_user(user.user_id)

    def certificate(self, user, test_id):
        record = self.store.get_by_test_id(test_id, user.user_id)
        exam = self.catalog.get_exam(record.exam_id)
        return certificate_data(record, exam, user.name, self.catalog.organization)

    def sample_certificate(self, user, exam_id=None):
        """Preview certificate for exam_id, or for the first certification exam"""
        if exam_id is not None:
            exam = self.catalog.get_exam(exam_id)
        else:
            exam = next((e for e in self.catalog.exams if not e.is_practice), None)
            if exam is None:
                raise CertificateUnavailable('No certification exams configured')
        return sample_certificate_data(exam, user.name, self.sessions.clock(), self.catalog.organization)
