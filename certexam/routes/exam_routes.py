"""
Exam listing and exam session endpoints
"""
from flask import Blueprint, request, jsonify, current_app

from certexam.core.auth import login_required, current_user
from certexam.core.errors import InvalidAnswerError

exam_bp = Blueprint('exam', __name__, url_prefix='/api')


def _int_field(data, name):
    value = data.get(name)
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAnswerError(f'{name} must be an integer')
    return value


@exam_bp.route('/exams')
@login_required
def list_exams():
    return jsonify(current_app.exam_service.list_exams(current_user()))


@exam_bp.route('/products')
@login_required
def list_products():
    """Practice and certification exams grouped by test series"""
    return jsonify(current_app.exam_service.list_products(current_user()))


@exam_bp.route('/exams/<exam_id>/start', methods=['POST'])
@login_required
def start_exam(exam_id):
    """Start an attempt; the response carries the questions without answers"""
    session = current_app.exam_service.start_exam(current_user(), exam_id)
    return jsonify(session.public_view()), 201


@exam_bp.route('/sessions/<session_id>')
@login_required
def get_session(session_id):
    session = current_app.exam_service.get_session(current_user(), session_id)
    return jsonify(session.public_view())


@exam_bp.route('/sessions/<session_id>/answers', methods=['POST'])
@login_required
def record_answer(session_id):
    data = request.get_json(silent=True) or {}
    question_id = _int_field(data, 'question_id')
    option_index = _int_field(data, 'option_index')

    session = current_app.exam_service.answer(current_user(), session_id, question_id, option_index)
    return jsonify({
        'question_id': question_id,
        'option_index': option_index,
        'unanswered_count': current_app.exam_service.sessions.unanswered_count(session)
    })


@exam_bp.route('/sessions/<session_id>/submit', methods=['POST'])
@login_required
def submit_exam(session_id):
    record = current_app.exam_service.submit(current_user(), session_id)
    return jsonify(record.model_dump(mode='json')), 201


@exam_bp.route('/sessions/<session_id>', methods=['DELETE'])
@login_required
def abandon_exam(session_id):
    current_app.exam_service.abandon(current_user(), session_id)
    return '', 204
