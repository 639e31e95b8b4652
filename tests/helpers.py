"""Shared test data"""
from certexam.core.models import Question, ResultRecord

CATALOG_DATA = {
    "organization": {"id": "org-test", "name": "Test Org"},
    "topics": [
        {"id": "t-coding", "name": "Coding"},
        {"id": "t-billing", "name": "Billing"},
        {"id": "t-empty", "name": "Nothing here"},
    ],
    "exams": [
        {"id": "exam-x", "name": "Exam X", "price_cents": 1999, "question_count": 10,
         "pass_threshold_percent": 70, "is_practice": False, "topic_ids": ["t-coding"],
         "certificate_title": "Coding Proficiency",
         "certificate_body": "Passed with a score of {finalScore}%."},
        {"id": "exam-z", "name": "Exam Z", "price_cents": 999, "question_count": 4,
         "pass_threshold_percent": 70, "is_practice": False, "topic_ids": ["t-billing"]},
        {"id": "exam-y", "name": "Practice Y", "price_cents": 0, "question_count": 5,
         "pass_threshold_percent": 70, "is_practice": True, "topic_ids": ["t-coding", "t-billing"]},
        {"id": "exam-y2", "name": "Practice Y2", "price_cents": 0, "question_count": 3,
         "pass_threshold_percent": 70, "is_practice": True, "topic_ids": ["t-billing"]},
        {"id": "exam-empty", "name": "Empty", "price_cents": 0, "question_count": 3,
         "pass_threshold_percent": 70, "is_practice": True, "topic_ids": ["t-empty"]},
        {"id": "exam-unmapped", "name": "Unmapped", "price_cents": 0, "question_count": 3,
         "pass_threshold_percent": 70, "is_practice": True, "topic_ids": []},
    ],
    "products": [
        {"id": "prod-x", "name": "Series X", "description": "Practice Y leads to Exam X",
         "practice_exam_id": "exam-y", "certification_exam_id": "exam-x"},
    ],
}


def make_question(qid, correct=0, n_options=4):
    return Question(
        id=qid,
        text=f"Question {qid}",
        options=tuple(f"Option {i}" for i in range(n_options)),
        correct_option_index=correct,
    )


def make_record(test_id, user_id="user-1", exam_id="exam-x", score=50.0, timestamp=1000):
    return ResultRecord(
        test_id=test_id,
        user_id=user_id,
        exam_id=exam_id,
        score=score,
        correct_count=0,
        total_questions=0,
        timestamp_millis=timestamp,
    )


def tagged_questions():
    """Questions 1-10 are coding, 11-14 billing, 5 and 6 are in both."""
    tagged = []
    for qid in range(1, 11):
        topics = {"t-coding", "t-billing"} if qid in (5, 6) else {"t-coding"}
        tagged.append((make_question(qid, correct=qid % 4), frozenset(topics)))
    for qid in range(11, 15):
        tagged.append((make_question(qid, correct=1), frozenset({"t-billing"})))
    return tagged
