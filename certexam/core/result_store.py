"""
Result store: append-only persistence of graded attempts

Layout mirrors a key-value store: one row per record in `results`
(the record hash) and a `user_results` index (the per-user set of test ids).
There is no update or delete.
"""
import json
import logging
import threading
from typing import Callable, List

from .errors import AccessDenied, DuplicateTestIdError, ResultNotFound
from .models import AnswerReview, ResultRecord

logger = logging.getLogger(__name__)

LOCK_STRIPES = 64

_COLUMNS = 'test_id, user_id, exam_id, score, correct_count, total_questions, timestamp_millis, review'
_JOINED_COLUMNS = ", ".join("r." + c for c in _COLUMNS.split(", "))


def _row_to_record(row) -> ResultRecord:
    review = row['review']
    if isinstance(review, str):
        review = json.loads(review)
    return ResultRecord(
        test_id=row['test_id'],
        user_id=row['user_id'],
        exam_id=row['exam_id'],
        score=row['score'],
        correct_count=row['correct_count'],
        total_questions=row['total_questions'],
        timestamp_millis=row['timestamp_millis'],
        review=tuple(AnswerReview(**item) for item in review),
    )


def _review_json(record):
    return json.dumps([entry.model_dump(mode='json') for entry in record.review], ensure_ascii=False)


class ResultStore:
    def __init__(self, db_manager):
        self.db = db_manager
        self._locks = tuple(threading.Lock() for _ in range(LOCK_STRIPES))

    def _user_lock(self, user_id):
        """Same user, same lock. Unrelated users may share a stripe."""
        return self._locks[hash(user_id) % len(self._locks)]

    # --- writes ---

    def _insert(self, tx, record):
        existing = tx.execute('SELECT test_id FROM results WHERE test_id = ?', (record.test_id,))
        if existing:
            logger.error("Refusing to overwrite result %s", record.test_id)
            raise DuplicateTestIdError(f'Result {record.test_id} already exists')

        tx.execute(
            f'INSERT INTO results ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)',
            (
                record.test_id, record.user_id, record.exam_id, record.score,
                record.correct_count, record.total_questions, record.timestamp_millis,
                _review_json(record),
            )
        )
        tx.execute(
            'INSERT INTO user_results (user_id, test_id) VALUES (?, ?)',
            (record.user_id, record.test_id)
        )

    def append(self, record: ResultRecord):
        with self._user_lock(record.user_id):
            with self.db.transaction(lock_key=f'user:{record.user_id}:results') as tx:
                self._insert(tx, record)
        logger.info("Stored result %s for user %s", record.test_id, record.user_id)

    def append_if(self, user_id, produce: Callable[[List[ResultRecord]], ResultRecord]) -> ResultRecord:
        """Build and append a record from the user's prior results, atomically.

        produce(prior_results) either returns the record to store or raises to
        abort. Reading the prior results and writing the new record happen
        under one lock and one transaction, so two concurrent submissions
        cannot both pass a count-based check.
        """
        with self._user_lock(user_id):
            with self.db.transaction(lock_key=f'user:{user_id}:results') as tx:
                prior = self._select_for_user(tx, user_id)
                record = produce(prior)
                if record.user_id != user_id:
                    raise ValueError('record belongs to a different user')
                self._insert(tx, record)
        logger.info("Stored result %s for user %s", record.test_id, record.user_id)
        return record

    # --- reads ---

    def _select_for_user(self, tx, user_id, exam_id=None):
        query = (
            f"SELECT {_JOINED_COLUMNS} "
            'FROM results r JOIN user_results u ON u.test_id = r.test_id '
            'WHERE u.user_id = ?'
        )
        params = [user_id]
        if exam_id is not None:
            query += ' AND r.exam_id = ?'
            params.append(exam_id)
        query += ' ORDER BY r.timestamp_millis DESC, r.test_id DESC'
        return [_row_to_record(row) for row in tx.execute(query, tuple(params))]

    def get_by_test_id(self, test_id, user_id) -> ResultRecord:
        rows = self.db.execute_query(f'SELECT {_COLUMNS} FROM results WHERE test_id = ?', (test_id,))
        if not rows:
            raise ResultNotFound()
        record = _row_to_record(rows[0])
        if record.user_id != user_id:
            logger.warning("Security: user %s requested result %s owned by another user", user_id, test_id)
            raise AccessDenied()
        return record

    def list_for_user(self, user_id) -> List[ResultRecord]:
        """Newest first"""
        with self.db.transaction() as tx:
            return self._select_for_user(tx, user_id)

    def list_for_user_exam(self, user_id, exam_id) -> List[ResultRecord]:
        with self.db.transaction() as tx:
            return self._select_for_user(tx, user_id, exam_id)
