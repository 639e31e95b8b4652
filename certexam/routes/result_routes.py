"""
Result history, result review and certificate data endpoints
"""
from flask import Blueprint, request, jsonify, current_app

from certexam.core.auth import login_required, current_user

result_bp = Blueprint('results', __name__, url_prefix='/api/results')


@result_bp.route('')
@login_required
def list_results():
    """Newest first"""
    records = current_app.exam_service.history(current_user())
    return jsonify([r.model_dump(mode='json') for r in records])


@result_bp.route('/sample/certificate')
@login_required
def get_sample_certificate():
    """Preview with placeholder results; ?exam_id= picks the exam"""
    exam_id = request.args.get('exam_id')
    return jsonify(current_app.exam_service.sample_certificate(current_user(), exam_id))


@result_bp.route('/<test_id>')
@login_required
def get_result(test_id):
    record = current_app.exam_service.result(current_user(), test_id)
    return jsonify(record.model_dump(mode='json'))


@result_bp.route('/<test_id>/certificate')
@login_required
def get_certificate(test_id):
    return jsonify(current_app.exam_service.certificate(current_user(), test_id))
