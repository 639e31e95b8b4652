import random
import threading
import time

import pytest

from certexam.core.attempt_policy import AttemptPolicy
from certexam.core.errors import (
    AccessDenied,
    AlreadyPassed,
    AttemptsExceeded,
    CertificateUnavailable,
    NotEntitled,
    QuotaExceeded,
    SessionNotFound,
)
from certexam.core.exam_service import ExamService
from certexam.core.exam_session import ExamSessionManager, SessionRegistry
from certexam.core.models import UserIdentity
from certexam.core.question_pool import QuestionPoolResolver
from certexam.core.scorer import Scorer

from tests.helpers import make_record

BUYER = UserIdentity(user_id="user-1", name="Jane Doe",
                     paid_exam_ids=frozenset({"exam-x", "exam-z"}))


class CountingScorer(Scorer):
    def __init__(self):
        super().__init__(clock=lambda: 1_700_000_000_000)
        self.graded = 0

    def grade(self, session, answer_key):
        self.graded += 1
        return super().grade(session, answer_key)


@pytest.fixture()
def service(catalog, store):
    return ExamService(
        catalog=catalog,
        session_manager=ExamSessionManager(QuestionPoolResolver(catalog), catalog, rng=random.Random(5)),
        registry=SessionRegistry(),
        policy=AttemptPolicy(catalog.practice_exam_ids()),
        scorer=CountingScorer(),
        store=store,
    )


def answer_all(service, user, session, correct):
    """Answer the first `correct` questions right and the rest wrong."""
    for i, question in enumerate(session.ordered_questions):
        right = question.correct_option_index
        choice = right if i < correct else (right + 1) % len(question.options)
        service.answer(user, session.session_id, question.id, choice)


def take_exam(service, user, exam_id, correct):
    session = service.start_exam(user, exam_id)
    answer_all(service, user, session, correct)
    return service.submit(user, session.session_id)


def test_full_attempt_is_graded_and_stored(service):
    session = service.start_exam(BUYER, "exam-x")
    answer_all(service, BUYER, session, correct=7)

    record = service.submit(BUYER, session.session_id)

    assert record.score == 70.0
    assert record.correct_count == 7
    assert record.total_questions == 10
    assert service.result(BUYER, record.test_id) == record
    assert [r.test_id for r in service.history(BUYER)] == [record.test_id]
    with pytest.raises(SessionNotFound):
        service.get_session(BUYER, session.session_id)


def test_partial_submission_grades_gaps_as_wrong(service):
    session = service.start_exam(BUYER, "exam-z")
    first = session.ordered_questions[0]
    service.answer(BUYER, session.session_id, first.id, first.correct_option_index)

    record = service.submit(BUYER, session.session_id)
    assert record.correct_count == 1
    assert record.total_questions == 4
    assert record.score == 25.0
    assert sum(1 for r in record.review if r.user_answer_index == -1) == 3


def test_unpurchased_certification_exam_is_rejected(service):
    with pytest.raises(NotEntitled):
        service.start_exam(UserIdentity(user_id="user-9"), "exam-x")
    assert len(service.registry) == 0


def test_three_failures_block_the_fourth_attempt(service):
    for _ in range(3):
        assert take_exam(service, BUYER, "exam-z", correct=2).score == 50.0

    with pytest.raises(AttemptsExceeded):
        service.start_exam(BUYER, "exam-z")
    assert len(service.registry) == 0
    assert service.scorer.graded == 3


def test_fourth_submission_from_parallel_sessions_is_never_graded(service):
    sessions = [service.start_exam(BUYER, "exam-z") for _ in range(4)]
    for session in sessions[:3]:
        service.submit(BUYER, session.session_id)

    with pytest.raises(AttemptsExceeded):
        service.submit(BUYER, sessions[3].session_id)

    assert service.scorer.graded == 3
    assert len(service.history(BUYER)) == 3
    with pytest.raises(SessionNotFound):
        service.get_session(BUYER, sessions[3].session_id)


def test_concurrent_submissions_cannot_exceed_limit(service):
    sessions = [service.start_exam(BUYER, "exam-z") for _ in range(6)]
    barrier = threading.Barrier(len(sessions))
    denied = []

    def submit(session_id):
        barrier.wait()
        try:
            service.submit(BUYER, session_id)
        except AttemptsExceeded:
            denied.append(session_id)

    threads = [threading.Thread(target=submit, args=(s.session_id,)) for s in sessions]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(service.history(BUYER)) == 3
    assert len(denied) == 3


def test_passed_exam_cannot_be_retaken(service):
    take_exam(service, BUYER, "exam-z", correct=3)
    with pytest.raises(AlreadyPassed):
        service.start_exam(BUYER, "exam-z")


def test_practice_quota(service, store):
    for n in range(10):
        store.append(make_record(f"prior-{n}", exam_id="exam-y2", timestamp=n))

    with pytest.raises(QuotaExceeded):
        service.start_exam(BUYER, "exam-y")

    subscriber = UserIdentity(user_id="user-1", unlimited_practice=True)
    assert service.start_exam(subscriber, "exam-y").exam_id == "exam-y"


def test_sessions_belong_to_their_user(service):
    session = service.start_exam(BUYER, "exam-y")
    intruder = UserIdentity(user_id="user-2")

    with pytest.raises(AccessDenied):
        service.answer(intruder, session.session_id, session.ordered_questions[0].id, 0)
    with pytest.raises(AccessDenied):
        service.submit(intruder, session.session_id)
    assert service.get_session(BUYER, session.session_id) is session


def test_abandon_discards_session(service):
    session = service.start_exam(BUYER, "exam-y")
    service.abandon(BUYER, session.session_id)
    with pytest.raises(SessionNotFound):
        service.submit(BUYER, session.session_id)
    assert service.history(BUYER) == []


def test_results_are_private(service):
    record = take_exam(service, BUYER, "exam-x", correct=10)
    with pytest.raises(AccessDenied):
        service.result(UserIdentity(user_id="user-2"), record.test_id)


def test_certificate_for_passed_paid_exam(service):
    record = take_exam(service, BUYER, "exam-x", correct=8)
    data = service.certificate(BUYER, record.test_id)

    assert data["candidate_name"] == "Jane Doe"
    assert data["final_score"] == 80.0
    assert data["certificate_number"] == record.test_id
    assert data["certificate_title"] == "Coding Proficiency"
    assert data["certificate_body"] == "Passed with a score of 80%."
    assert data["date"] == "November 14, 2023"
    assert data["organization"] == "Test Org"


def test_no_certificate_for_failed_or_practice_exam(service):
    failed = take_exam(service, BUYER, "exam-x", correct=5)
    with pytest.raises(CertificateUnavailable):
        service.certificate(BUYER, failed.test_id)

    practice = take_exam(service, BUYER, "exam-y", correct=5)
    with pytest.raises(CertificateUnavailable):
        service.certificate(BUYER, practice.test_id)


def test_list_exams_reports_attempts(service):
    take_exam(service, BUYER, "exam-z", correct=0)
    listing = {e["id"]: e for e in service.list_exams(BUYER)}

    assert listing["exam-z"]["attempts_used"] == 1
    assert listing["exam-z"]["attempts_limit"] == 3
    assert listing["exam-z"]["allowed"] is True
    assert listing["exam-x"]["entitled"] is True
    assert listing["exam-y"]["attempts_limit"] == 10

    anonymous = {e["id"]: e for e in service.list_exams(UserIdentity(user_id="user-3"))}
    assert anonymous["exam-x"]["entitled"] is False
    assert anonymous["exam-y"]["entitled"] is True


def test_same_session_submitted_twice_concurrently_is_stored_once(catalog, store):
    def slow_clock():
        time.sleep(0.3)
        return 1_700_000_000_000

    service = ExamService(
        catalog=catalog,
        session_manager=ExamSessionManager(QuestionPoolResolver(catalog), catalog, rng=random.Random(5)),
        registry=SessionRegistry(),
        policy=AttemptPolicy(catalog.practice_exam_ids()),
        scorer=Scorer(clock=slow_clock),
        store=store,
    )
    session = service.start_exam(BUYER, "exam-z")
    barrier = threading.Barrier(2)
    stored, missing = [], []

    def submit():
        barrier.wait()
        try:
            stored.append(service.submit(BUYER, session.session_id))
        except SessionNotFound:
            missing.append(session.session_id)

    threads = [threading.Thread(target=submit) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(stored) == 1
    assert len(missing) == 1
    assert len(service.history(BUYER)) == 1


def test_submitted_session_cannot_be_submitted_again(service):
    session = service.start_exam(BUYER, "exam-y")
    service.submit(BUYER, session.session_id)
    with pytest.raises(SessionNotFound):
        service.submit(BUYER, session.session_id)
    assert len(service.history(BUYER)) == 1


def test_storage_failure_keeps_session_for_retry(service, monkeypatch):
    session = service.start_exam(BUYER, "exam-y")

    def broken_append(user_id, produce):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(service.store, "append_if", broken_append)
    with pytest.raises(RuntimeError):
        service.submit(BUYER, session.session_id)
    assert service.get_session(BUYER, session.session_id) is session


def test_list_products_groups_exam_entries(service):
    take_exam(service, BUYER, "exam-y", correct=1)
    products = service.list_products(BUYER)

    assert [p["id"] for p in products] == ["prod-x"]
    product = products[0]
    assert product["practice"]["id"] == "exam-y"
    assert product["practice"]["attempts_used"] == 1
    assert product["certification"]["id"] == "exam-x"
    assert product["certification"]["entitled"] is True

    listing = {e["id"]: e for e in service.list_exams(BUYER)}
    assert listing["exam-x"]["product_id"] == "prod-x"
    assert listing["exam-z"]["product_id"] is None


def test_sample_certificate(service):
    service.sessions.clock = lambda: 1_700_000_000_000
    data = service.sample_certificate(BUYER)

    assert data["certificate_number"] == "12345-SAMPLE"
    assert data["candidate_name"] == "Jane Doe"
    assert data["final_score"] == 95.0
    assert data["total_questions"] == 10
    assert data["exam_id"] == "exam-x"
    assert data["certificate_body"] == "Passed with a score of 95%."
    assert data["date"] == "November 14, 2023"
    assert service.history(BUYER) == []

    assert service.sample_certificate(BUYER, "exam-z")["certificate_title"] == "Exam Z"
    with pytest.raises(CertificateUnavailable):
        service.sample_certificate(BUYER, "exam-y")
