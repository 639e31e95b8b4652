"""
Question feed loader
Parses the CSV export of the question sheet into Question objects
"""
import csv
import logging
import re
import time
from typing import Dict, List, Tuple

import requests

from .errors import QuestionSourceError
from .models import Question

logger = logging.getLogger(__name__)

OPTION_SEPARATOR = '|'
TOPIC_SEPARATOR = ';'


def _split_lines(text):
    lines = re.split(r'\r\n|\r|\n', text.strip())
    # Header row is skipped, blank lines do not count as rows
    return [line for line in lines[1:] if line.strip()]


def parse_row(line, question_id):
    """Parse one CSV line. Returns (Question, topic_ids) or None when malformed."""
    try:
        columns = next(csv.reader([line]))
    except csv.Error:
        return None
    if len(columns) < 3:
        return None

    question_text, options_str, correct_str = (c.strip() for c in columns[:3])
    if not question_text or not options_str or not correct_str:
        return None

    try:
        correct_number = int(correct_str)
    except ValueError:
        return None

    options = options_str.split(OPTION_SEPARATOR)
    if len(options) < 2:
        return None

    # 1-based in the sheet
    correct_index = correct_number - 1
    if not 0 <= correct_index < len(options):
        return None

    topics = frozenset()
    if len(columns) > 3 and columns[3].strip():
        topics = frozenset(t.strip() for t in columns[3].split(TOPIC_SEPARATOR) if t.strip())

    question = Question(
        id=question_id,
        text=question_text,
        options=tuple(options),
        correct_option_index=correct_index,
    )
    return question, topics


def parse_questions(text) -> List[Tuple[Question, frozenset]]:
    """Parse the whole CSV export. Malformed rows are skipped."""
    parsed = []
    skipped = 0
    for index, line in enumerate(_split_lines(text)):
        row = parse_row(line, index + 1)
        if row is None:
            skipped += 1
            logger.warning("Skipping malformed question row %d", index + 1)
            continue
        parsed.append(row)

    if not parsed:
        raise QuestionSourceError('No questions parsed from the question source')

    if skipped:
        logger.info("Parsed %d questions (%d rows skipped)", len(parsed), skipped)
    else:
        logger.info("Parsed %d questions", len(parsed))
    return parsed


def load_questions_from_path(path):
    try:
        with open(path, 'r', encoding='utf-8') as f:
            text = f.read()
    except OSError as e:
        raise QuestionSourceError(f'Cannot read question source {path}: {e}')
    return parse_questions(text)


def fetch_questions(url, timeout=15, session=None):
    """Download the published CSV sheet and parse it."""
    http = session or requests
    try:
        response = http.get(url, params={'_': int(time.time() * 1000)}, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise QuestionSourceError(f'Failed to fetch question source: {e}')

    content_type = response.headers.get('content-type', '')
    if 'text/csv' not in content_type:
        raise QuestionSourceError(f'Unexpected content type from question source: {content_type!r}')

    return parse_questions(response.text)


def answer_key_for(questions) -> Dict[int, int]:
    return {q.id: q.correct_option_index for q in questions}
