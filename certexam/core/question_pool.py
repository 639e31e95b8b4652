"""
Question pool resolution: exam id -> deduplicated candidate questions
"""
import logging
from typing import Dict, List

from .errors import EmptyPoolError
from .models import Question

logger = logging.getLogger(__name__)


class QuestionPoolResolver:
    def __init__(self, catalog):
        self.catalog = catalog

    def resolve(self, exam_id) -> List[Question]:
        """Gather the questions of every topic mapped to the exam.

        A question filed under several topics appears once; the first
        occurrence wins.
        """
        topic_ids = self.catalog.topic_ids_for(exam_id)

        unique: Dict[int, Question] = {}
        for topic_id in topic_ids:
            for question in self.catalog.questions_for_topic(topic_id):
                if question.id not in unique:
                    unique[question.id] = question

        if not unique:
            exam = self.catalog.get_exam(exam_id)
            raise EmptyPoolError(f'No questions found for the topics related to: {exam.name}')

        logger.debug("Resolved %d questions for %s from %d topics", len(unique), exam_id, len(topic_ids))
        return list(unique.values())

