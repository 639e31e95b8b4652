"""
Blueprints of the JSON API
"""
from .main_routes import main_bp
from .exam_routes import exam_bp
from .result_routes import result_bp

__all__ = ['main_bp', 'exam_bp', 'result_bp']
