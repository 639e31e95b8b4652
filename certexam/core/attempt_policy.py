"""
Attempt policy: who may start (or submit) which exam
"""
import enum
import logging
from typing import Iterable, NamedTuple, Optional

from .errors import AlreadyPassed, AttemptsExceeded, NotEntitled, QuotaExceeded

logger = logging.getLogger(__name__)


class DenialReason(enum.Enum):
    QUOTA_EXCEEDED = 'quota_exceeded'
    ALREADY_PASSED = 'already_passed'
    ATTEMPTS_EXCEEDED = 'attempts_exceeded'


class AuthorizationDecision(NamedTuple):
    allowed: bool
    reason: Optional[DenialReason] = None

    @classmethod
    def allow(cls):
        return cls(True, None)

    @classmethod
    def deny(cls, reason):
        return cls(False, reason)


_DENIAL_ERRORS = {
    DenialReason.QUOTA_EXCEEDED: QuotaExceeded,
    DenialReason.ALREADY_PASSED: AlreadyPassed,
    DenialReason.ATTEMPTS_EXCEEDED: AttemptsExceeded,
}


class AttemptPolicy:
    DEFAULT_PRACTICE_ATTEMPT_LIMIT = 10
    DEFAULT_CERTIFICATION_ATTEMPT_LIMIT = 3

    def __init__(self, practice_exam_ids: Iterable[str],
                 practice_attempt_limit: int = DEFAULT_PRACTICE_ATTEMPT_LIMIT,
                 certification_attempt_limit: int = DEFAULT_CERTIFICATION_ATTEMPT_LIMIT):
        self.practice_exam_ids = frozenset(practice_exam_ids)
        self.practice_attempt_limit = practice_attempt_limit
        self.certification_attempt_limit = certification_attempt_limit

    def authorize(self, user, exam, prior_results) -> AuthorizationDecision:
        """Decide whether the user may take another attempt of exam.

        prior_results are the user's result records (any exam); records
        belonging to other users are ignored.
        """
        prior_results = [r for r in prior_results if r.user_id == user.user_id]

        if exam.is_practice:
            if user.unlimited_practice:
                return AuthorizationDecision.allow()
            # The quota is shared by every practice exam
            used = sum(1 for r in prior_results if r.exam_id in self.practice_exam_ids)
            if used >= self.practice_attempt_limit:
                return AuthorizationDecision.deny(DenialReason.QUOTA_EXCEEDED)
            return AuthorizationDecision.allow()

        attempts = [r for r in prior_results if r.exam_id == exam.id]
        if any(r.passed(exam.pass_threshold_percent) for r in attempts):
            return AuthorizationDecision.deny(DenialReason.ALREADY_PASSED)
        if len(attempts) >= self.certification_attempt_limit:
            return AuthorizationDecision.deny(DenialReason.ATTEMPTS_EXCEEDED)
        return AuthorizationDecision.allow()

    def ensure_authorized(self, user, exam, prior_results):
        decision = self.authorize(user, exam, prior_results)
        if not decision.allowed:
            logger.info("Attempt denied for user %s on %s: %s", user.user_id, exam.id, decision.reason.value)
            raise self.error_for(decision.reason, exam)
        return decision

    def error_for(self, reason, exam):
        error_class = _DENIAL_ERRORS[reason]
        if reason is DenialReason.QUOTA_EXCEEDED:
            return error_class(f'You have used all {self.practice_attempt_limit} of your free practice attempts.')
        if reason is DenialReason.ATTEMPTS_EXCEEDED:
            return error_class(
                f'You have used all {self.certification_attempt_limit} attempts for {exam.name}.'
            )
        return error_class(f'You have already passed {exam.name}.')

    @staticmethod
    def ensure_entitled(user, exam):
        """Paid certification exams must have been purchased."""
        if exam.is_practice or exam.is_free:
            return
        if exam.id not in user.paid_exam_ids:
            raise NotEntitled(f'{exam.name} has not been purchased')

    def attempts_summary(self, user, exam, prior_results):
        """Attempt counters shown next to an exam in listings"""
        prior_results = [r for r in prior_results if r.user_id == user.user_id]
        if exam.is_practice:
            used = sum(1 for r in prior_results if r.exam_id in self.practice_exam_ids)
            limit = None if user.unlimited_practice else self.practice_attempt_limit
        else:
            used = sum(1 for r in prior_results if r.exam_id == exam.id)
            limit = self.certification_attempt_limit
        return {
            'attempts_used': used,
            'attempts_limit': limit,
            'allowed': self.authorize(user, exam, prior_results).allowed,
        }
