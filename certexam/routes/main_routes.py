"""
Health check
"""
from flask import Blueprint, jsonify, current_app

main_bp = Blueprint('main', __name__)


@main_bp.route('/health')
def health():
    """Database connectivity and catalog state"""
    try:
        db_ok = current_app.db_manager.ping()
    except Exception as e:
        current_app.logger.error(f"Database health check failed: {e}")
        return jsonify({
            'status': 'error',
            'message': 'Failed to connect to the database.',
            'error': str(e)
        }), 500

    catalog = current_app.exam_catalog
    return jsonify({
        'status': 'ok' if db_ok else 'error',
        'database': current_app.db_manager.db_type,
        'questions_loaded': catalog.is_loaded,
        'exams': len(catalog.exams)
    }), 200 if db_ok else 500
