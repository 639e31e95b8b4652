"""
Certificate data for passed certification exams (rendering happens elsewhere)
"""
from datetime import datetime, timezone

from .errors import CertificateUnavailable

SAMPLE_CERTIFICATE_NUMBER = '12345-SAMPLE'
SAMPLE_SCORE = 95.0
SAMPLE_TOTAL_QUESTIONS = 10


def _format_date(timestamp_millis):
    issued = datetime.fromtimestamp(timestamp_millis / 1000, tz=timezone.utc)
    return f"{issued.strftime('%B')} {issued.day}, {issued.year}"


def _certificate_fields(exam, certificate_number, candidate_name, score, total_questions,
                        timestamp_millis, organization):
    body = exam.certificate_body or ''
    return {
        'certificate_number': certificate_number,
        'candidate_name': candidate_name,
        'final_score': score,
        'date': _format_date(timestamp_millis),
        'total_questions': total_questions,
        'exam_id': exam.id,
        'exam_name': exam.name,
        'certificate_title': exam.certificate_title or exam.name,
        'certificate_body': body.replace('{finalScore}', f'{score:g}'),
        'organization': (organization or {}).get('name'),
    }


def certificate_data(record, exam, candidate_name, organization=None):
    """Fields a certificate template needs for a passed, paid exam."""
    if exam.is_practice or exam.is_free:
        raise CertificateUnavailable('Certificates are only issued for certification exams')
    if not record.passed(exam.pass_threshold_percent):
        raise CertificateUnavailable('Certificates are only issued for passed exams')

    return _certificate_fields(exam, record.test_id, candidate_name, record.score,
                               record.total_questions, record.timestamp_millis, organization)


def sample_certificate_data(exam, candidate_name, timestamp_millis, organization=None):
    """Preview certificate with fixed placeholder results, dated timestamp_millis"""
    if exam.is_practice:
        raise CertificateUnavailable('Practice exams have no certificate')
    return _certificate_fields(exam, SAMPLE_CERTIFICATE_NUMBER, candidate_name, SAMPLE_SCORE,
                               SAMPLE_TOTAL_QUESTIONS, timestamp_millis, organization)
