"""
Certification exam engine - application factory
Flask + SQLite/PostgreSQL JSON API for taking and scoring exams
"""

import random
from datetime import timedelta
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from certexam.core.config import Config
from certexam.core.database import DatabaseManager
from certexam.core.auth import init_auth_routes
from certexam.core.attempt_policy import AttemptPolicy
from certexam.core.catalog import ExamCatalog
from certexam.core.errors import ExamError
from certexam.core.exam_service import ExamService
from certexam.core.exam_session import ExamSessionManager, SessionRegistry
from certexam.core.question_pool import QuestionPoolResolver
from certexam.core.question_source import fetch_questions, load_questions_from_path
from certexam.core.result_store import ResultStore
from certexam.core.scorer import Scorer
from certexam.routes import main_bp, exam_bp, result_bp


def create_app(config_class=Config, rng=None):
    """Application Factory Pattern"""
    app = Flask(__name__)
    app.config.from_object(config_class)

    _configure_security(app, config_class)

    db_manager = _init_database(config_class)
    catalog = _init_catalog(app, config_class)

    app.db_manager = db_manager
    app.exam_catalog = catalog
    app.result_store = ResultStore(db_manager)
    app.exam_service = ExamService(
        catalog=catalog,
        session_manager=ExamSessionManager(QuestionPoolResolver(catalog), catalog, rng=rng or random.Random()),
        registry=SessionRegistry(),
        policy=AttemptPolicy(
            catalog.practice_exam_ids(),
            practice_attempt_limit=config_class.PRACTICE_ATTEMPT_LIMIT,
            certification_attempt_limit=config_class.CERTIFICATION_ATTEMPT_LIMIT,
        ),
        scorer=Scorer(),
        store=app.result_store,
    )

    init_auth_routes(app)
    _register_blueprints(app)
    _register_error_handlers(app)

    return app


def _configure_security(app, config_class):
    if not app.config['SECRET_KEY']:
        if config_class.DEBUG:
            app.config['SECRET_KEY'] = 'dev-secret-key-change-in-production'
            app.logger.warning("Using the development SECRET_KEY. Set SECRET_KEY in production.")
        else:
            raise ValueError("SECRET_KEY environment variable is not set.")

    app.config.update(
        SESSION_COOKIE_SECURE=not config_class.DEBUG,
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE='Lax',
        PERMANENT_SESSION_LIFETIME=timedelta(hours=24)
    )


def _init_database(config_class):
    try:
        db_manager = DatabaseManager(config_class.get_db_config())
        db_manager.init_database()
        return db_manager
    except Exception as e:
        raise RuntimeError(f"Database initialization error: {e}")


def _init_catalog(app, config_class):
    """Load exam definitions and fill the question buckets from the feed"""
    catalog = ExamCatalog.from_file(config_class.CATALOG_PATH)

    if config_class.QUESTION_SOURCE_URL:
        app.logger.info("Fetching questions from the published question sheet")
        questions = fetch_questions(config_class.QUESTION_SOURCE_URL, timeout=config_class.QUESTION_SOURCE_TIMEOUT)
    elif config_class.QUESTION_SOURCE_PATH:
        app.logger.info(f"Loading questions from {config_class.QUESTION_SOURCE_PATH}")
        questions = load_questions_from_path(config_class.QUESTION_SOURCE_PATH)
    else:
        app.logger.warning("No question source configured; every exam pool is empty.")
        return catalog

    catalog.load(questions)
    return catalog


def _register_blueprints(app):
    for blueprint in (main_bp, exam_bp, result_bp):
        app.register_blueprint(blueprint)


def _register_error_handlers(app):
    @app.errorhandler(ExamError)
    def _handle_exam_error(error):
        if error.status_code >= 500:
            app.logger.error(f"{error.__class__.__name__}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def _handle_http_error(error):
        return jsonify({'error': error.description, 'code': error.name.lower().replace(' ', '_')}), error.code
