import sqlite3
import logging
from contextlib import contextmanager

# PostgreSQL support is optional; without psycopg2 only SQLite is used
try:
    import psycopg2
    import psycopg2.extras
    PSYCOPG2_AVAILABLE = True
except ImportError:
    PSYCOPG2_AVAILABLE = False

logger = logging.getLogger(__name__)

_READ_PREFIXES = ('SELECT', 'WITH', 'PRAGMA')


def _is_read(query):
    return query.strip().upper().startswith(_READ_PREFIXES)


class _Transaction:
    """Cursor wrapper handed out by DatabaseManager.transaction()"""

    def __init__(self, manager, cursor):
        self.manager = manager
        self.cursor = cursor

    def execute(self, query, params=None):
        self.cursor.execute(self.manager.prepare(query), params or ())
        if _is_read(query):
            return [dict(row) for row in self.cursor.fetchall()]
        return self.cursor.rowcount


class DatabaseManager:
    def __init__(self, config):
        self.db_type = config['DATABASE_TYPE']
        self.config = dict(config)

        # Fall back to SQLite when psycopg2 is missing
        if self.db_type == 'postgresql' and not PSYCOPG2_AVAILABLE:
            logger.warning("PostgreSQL requested but psycopg2 not available. Falling back to SQLite.")
            self.db_type = 'sqlite'
            self.config['DATABASE_TYPE'] = 'sqlite'

    def prepare(self, query):
        """Queries are written with '?' placeholders; psycopg2 wants '%s'."""
        if self.db_type == 'postgresql':
            return query.replace('?', '%s')
        return query

    def get_connection(self):
        if self.db_type == 'postgresql':
            conn = psycopg2.connect(
                host=self.config['DB_HOST'],
                database=self.config['DB_NAME'],
                user=self.config['DB_USER'],
                password=self.config['DB_PASSWORD'],
                port=self.config['DB_PORT']
            )
            conn.autocommit = False
            return conn
        else:
            db_path = self.config.get('DATABASE', 'cert_exam.db')
            conn = sqlite3.connect(db_path, timeout=30, isolation_level=None)
            conn.row_factory = sqlite3.Row
            return conn

    def _cursor(self, conn):
        if self.db_type == 'postgresql':
            return conn.cursor(cursor_factory=psycopg2.extras.DictCursor)
        return conn.cursor()

    def execute_query(self, query, params=None):
        with self.transaction() as tx:
            return tx.execute(query, params)

    @contextmanager
    def transaction(self, lock_key=None):
        """Run several statements atomically.

        SQLite takes the database write lock up front (BEGIN IMMEDIATE).
        On PostgreSQL a lock_key takes a transaction-scoped advisory lock so
        concurrent writers for the same key are serialized.
        """
        conn = self.get_connection()
        cur = self._cursor(conn)
        try:
            if self.db_type == 'postgresql':
                if lock_key is not None:
                    cur.execute('SELECT pg_advisory_xact_lock(hashtext(%s))', (lock_key,))
            else:
                cur.execute('BEGIN IMMEDIATE')
            yield _Transaction(self, cur)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cur.close()
            conn.close()

    def ping(self):
        result = self.execute_query('SELECT 1 AS ok')
        return bool(result) and result[0]['ok'] == 1

    def init_database(self):
        if self.db_type == 'postgresql':
            self._init_postgresql()
        else:
            self._init_sqlite()

    def _init_postgresql(self):
        queries = [
            """CREATE TABLE IF NOT EXISTS results (
                test_id VARCHAR(64) PRIMARY KEY,
                user_id VARCHAR(255) NOT NULL,
                exam_id VARCHAR(100) NOT NULL,
                score DOUBLE PRECISION NOT NULL,
                correct_count INTEGER NOT NULL,
                total_questions INTEGER NOT NULL,
                timestamp_millis BIGINT NOT NULL,
                review JSON NOT NULL
            )""",
            """CREATE TABLE IF NOT EXISTS user_results (
                user_id VARCHAR(255) NOT NULL,
                test_id VARCHAR(64) NOT NULL REFERENCES results(test_id),
                PRIMARY KEY (user_id, test_id)
            )""",
            "CREATE INDEX IF NOT EXISTS idx_results_user_exam ON results(user_id, exam_id)",
        ]
        for query in queries:
            self.execute_query(query)

    def _init_sqlite(self):
        queries = [
            """CREATE TABLE IF NOT EXISTS results (
                test_id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                exam_id TEXT NOT NULL,
                score REAL NOT NULL,
                correct_count INTEGER NOT NULL,
                total_questions INTEGER NOT NULL,
                timestamp_millis INTEGER NOT NULL,
                review TEXT NOT NULL
            )""",
            """CREATE TABLE IF NOT EXISTS user_results (
                user_id TEXT NOT NULL,
                test_id TEXT NOT NULL,
                PRIMARY KEY (user_id, test_id),
                FOREIGN KEY (test_id) REFERENCES results (test_id)
            )""",
            "CREATE INDEX IF NOT EXISTS idx_results_user_exam ON results(user_id, exam_id)",
        ]
        for query in queries:
            self.execute_query(query)
