import random

import pytest

from certexam.core.catalog import ExamCatalog
from certexam.core.database import DatabaseManager
from certexam.core.result_store import ResultStore

from tests.helpers import CATALOG_DATA, tagged_questions


@pytest.fixture()
def catalog():
    catalog = ExamCatalog.from_dict(CATALOG_DATA)
    catalog.load(tagged_questions())
    return catalog


@pytest.fixture()
def rng():
    return random.Random(1234)


@pytest.fixture()
def db_manager(tmp_path):
    db = DatabaseManager({"DATABASE_TYPE": "sqlite", "DATABASE": str(tmp_path / "test.db")})
    db.init_database()
    return db


@pytest.fixture()
def store(db_manager):
    return ResultStore(db_manager)
