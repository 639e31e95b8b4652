"""
Data model for exams, sessions and results
"""
from typing import Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

UNANSWERED = -1


class Question(BaseModel):
    """A multiple-choice question as loaded from the question feed"""

    model_config = ConfigDict(frozen=True)

    id: int
    text: str
    options: Tuple[str, ...]
    correct_option_index: int

    @model_validator(mode='after')
    def _check_options(self):
        if len(self.options) < 2:
            raise ValueError('a question needs at least two options')
        if not 0 <= self.correct_option_index < len(self.options):
            raise ValueError('correct_option_index is outside the options')
        return self


class ExamDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ''
    price_cents: int = Field(default=0, ge=0)
    question_count: int = Field(gt=0)
    pass_threshold_percent: float = Field(ge=0, le=100)
    is_practice: bool = False
    topic_ids: Tuple[str, ...] = ()
    duration_minutes: Optional[int] = None
    certificate_title: Optional[str] = None
    certificate_body: Optional[str] = None

    @field_validator('topic_ids')
    @classmethod
    def _dedupe_topics(cls, value):
        # Configured order matters for pool resolution
        return tuple(dict.fromkeys(value))

    @property
    def is_free(self) -> bool:
        return self.price_cents == 0


class ExamProduct(BaseModel):
    """A test series: one practice exam paired with its certification exam"""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ''
    practice_exam_id: str
    certification_exam_id: str


class UserIdentity(BaseModel):
    """Verified identity claims handed over by the SSO layer"""

    model_config = ConfigDict(frozen=True)

    user_id: str
    name: str = ''
    email: str = ''
    paid_exam_ids: FrozenSet[str] = frozenset()
    unlimited_practice: bool = False


class ExamSession(BaseModel):
    """One in-progress attempt. Held in memory only."""

    session_id: str
    exam_id: str
    user_id: str
    ordered_questions: List[Question]
    answers: Dict[int, int] = Field(default_factory=dict)
    started_at_millis: int

    def question_by_id(self, question_id: int) -> Optional[Question]:
        for question in self.ordered_questions:
            if question.id == question_id:
                return question
        return None

    def public_view(self):
        """Session payload without the answer key"""
        return {
            'session_id': self.session_id,
            'exam_id': self.exam_id,
            'started_at': self.started_at_millis,
            'questions': [
                {'id': q.id, 'text': q.text, 'options': list(q.options)}
                for q in self.ordered_questions
            ],
            'answers': {str(qid): idx for qid, idx in self.answers.items()},
            'unanswered_count': len(self.ordered_questions) - len(self.answers),
        }


class AnswerReview(BaseModel):
    model_config = ConfigDict(frozen=True)

    question_id: int
    question_text: str
    options: Tuple[str, ...]
    user_answer_index: int = UNANSWERED
    correct_answer_index: int

    @property
    def is_correct(self) -> bool:
        return self.user_answer_index == self.correct_answer_index


class ResultRecord(BaseModel):
    """Immutable outcome of one graded attempt"""

    model_config = ConfigDict(frozen=True)

    test_id: str
    user_id: str
    exam_id: str
    score: float
    correct_count: int
    total_questions: int
    timestamp_millis: int
    review: Tuple[AnswerReview, ...] = ()

    def passed(self, threshold_percent: float) -> bool:
        return self.score >= threshold_percent
