"""
Exam catalog
Static exam definitions, product pairings and the topic -> question buckets built from the question feed
"""
import json
import logging
import threading
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from .errors import ConfigurationError
from .models import ExamDefinition, ExamProduct, Question

logger = logging.getLogger(__name__)


class ExamCatalog:
    """Read-only view over exams, products and their question buckets.

    Exam definitions never change after construction. Question buckets are
    filled by load() and replaced wholesale by refresh().
    """

    def __init__(self, exams: Iterable[ExamDefinition], topics: Optional[Dict[str, str]] = None,
                 organization: Optional[dict] = None, products: Iterable[ExamProduct] = ()):
        self._exams: Dict[str, ExamDefinition] = {}
        for exam in exams:
            if exam.id in self._exams:
                raise ConfigurationError(f'Duplicate exam id in catalog: {exam.id}')
            self._exams[exam.id] = exam
        self.topics = dict(topics or {})
        self.organization = dict(organization or {})
        self._products: Dict[str, ExamProduct] = {}
        self._product_by_exam: Dict[str, ExamProduct] = {}
        for product in products:
            self._add_product(product)
        self._buckets: Dict[str, Tuple[Question, ...]] = {}
        self._loaded = False
        self._lock = threading.Lock()

        for exam in self._exams.values():
            unknown = [t for t in exam.topic_ids if self.topics and t not in self.topics]
            if unknown:
                logger.warning("Exam %s references unknown topics: %s", exam.id, ', '.join(sorted(unknown)))

    def _add_product(self, product):
        if product.id in self._products:
            raise ConfigurationError(f'Duplicate product id in catalog: {product.id}')
        practice = self.get_exam(product.practice_exam_id)
        certification = self.get_exam(product.certification_exam_id)
        if not practice.is_practice or certification.is_practice:
            raise ConfigurationError(
                f'Product {product.id} must pair a practice exam with a certification exam'
            )
        for exam_id in (practice.id, certification.id):
            if exam_id in self._product_by_exam:
                raise ConfigurationError(f'Exam {exam_id} belongs to more than one product')
            self._product_by_exam[exam_id] = product
        self._products[product.id] = product

    @classmethod
    def from_dict(cls, data):
        try:
            exams = [ExamDefinition(**item) for item in data.get('exams', [])]
            products = [ExamProduct(**item) for item in data.get('products', [])]
        except (TypeError, ValidationError) as e:
            raise ConfigurationError(f'Invalid exam definition in catalog: {e}')
        topics = {t['id']: t.get('name', t['id']) for t in data.get('topics', [])}
        return cls(exams, topics=topics, organization=data.get('organization'), products=products)

    @classmethod
    def from_file(cls, path):
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f'Cannot load exam catalog {path}: {e}')
        catalog = cls.from_dict(data)
        logger.info("Loaded %d exams from %s", len(catalog._exams), path)
        return catalog

    # --- exams ---

    @property
    def exams(self) -> List[ExamDefinition]:
        return list(self._exams.values())

    def get_exam(self, exam_id) -> ExamDefinition:
        exam = self._exams.get(exam_id)
        if exam is None:
            raise ConfigurationError(f'Unknown exam: {exam_id}')
        return exam

    def topic_ids_for(self, exam_id) -> List[str]:
        """Topics for an exam in configured order."""
        exam = self.get_exam(exam_id)
        if not exam.topic_ids:
            raise ConfigurationError(f'No topic mapping found for exam: {exam.name}')
        return list(exam.topic_ids)

    def practice_exam_ids(self) -> frozenset:
        return frozenset(e.id for e in self._exams.values() if e.is_practice)

    # --- products ---

    @property
    def products(self) -> List[ExamProduct]:
        return list(self._products.values())

    def product_for(self, exam_id) -> Optional[ExamProduct]:
        return self._product_by_exam.get(exam_id)

    # --- question buckets ---

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def _all_topic_ids(self):
        topic_ids = set(self.topics)
        for exam in self._exams.values():
            topic_ids.update(exam.topic_ids)
        return topic_ids

    def _build_buckets(self, tagged_questions):
        all_topics = self._all_topic_ids()
        buckets: Dict[str, List[Question]] = {topic_id: [] for topic_id in all_topics}
        for question, question_topics in tagged_questions:
            # Untagged questions belong to every topic
            targets = question_topics or all_topics
            for topic_id in targets:
                buckets.setdefault(topic_id, []).append(question)
        return {topic_id: tuple(questions) for topic_id, questions in buckets.items()}

    def load(self, tagged_questions):
        """Fill the question buckets.

        tagged_questions is a sequence of (Question, topic_ids) pairs as
        produced by question_source.parse_questions().
        """
        buckets = self._build_buckets(tagged_questions)
        with self._lock:
            self._buckets = buckets
            self._loaded = True
        logger.info("Question buckets ready: %d topics", len(buckets))

    def refresh(self, tagged_questions):
        """Rebuild the buckets from a fresh feed. Readers keep the old buckets until the swap."""
        self.load(tagged_questions)

    def questions_for_topic(self, topic_id) -> Tuple[Question, ...]:
        with self._lock:
            return self._buckets.get(topic_id, ())
