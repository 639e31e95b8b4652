"""
Exception hierarchy for the exam engine
Each error carries the HTTP status the JSON API answers with
"""


class ExamError(Exception):
    """Base class for every error raised by the exam engine"""

    status_code = 500
    code = 'exam_error'

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


class ConfigurationError(ExamError):
    """Exam or topic mapping is missing from the catalog"""

    status_code = 500
    code = 'configuration_error'


class QuestionSourceError(ExamError):
    """Question feed could not be fetched or parsed"""

    status_code = 503
    code = 'question_source_error'


class EmptyPoolError(ExamError):
    """No questions are available for this exam"""

    status_code = 503
    code = 'empty_pool'


class InvalidAnswerError(ExamError):
    """Selected option is not valid for this question"""

    status_code = 400
    code = 'invalid_answer'


class ScoringError(ExamError):
    """Exam session cannot be graded"""

    status_code = 500
    code = 'scoring_error'


class PolicyDenied(ExamError):
    """Attempt is not allowed"""

    status_code = 403
    code = 'policy_denied'


class QuotaExceeded(PolicyDenied):
    """All free practice attempts have been used"""

    code = 'quota_exceeded'


class AlreadyPassed(PolicyDenied):
    """This exam has already been passed"""

    code = 'already_passed'


class AttemptsExceeded(PolicyDenied):
    """Maximum number of attempts for this exam reached"""

    code = 'attempts_exceeded'


class NotEntitled(ExamError):
    """This exam has not been purchased"""

    status_code = 402
    code = 'not_entitled'


class AccessDenied(ExamError):
    """Access denied"""

    status_code = 403
    code = 'access_denied'


class SessionNotFound(ExamError):
    """Exam session not found. Start the exam again."""

    status_code = 404
    code = 'session_not_found'


class ResultNotFound(ExamError):
    """Test result not found"""

    status_code = 404
    code = 'result_not_found'


class CertificateUnavailable(ExamError):
    """No certificate is available for this result"""

    status_code = 404
    code = 'certificate_unavailable'


class DuplicateTestIdError(ExamError):
    """A result with this test id already exists"""

    status_code = 500
    code = 'duplicate_test_id'
