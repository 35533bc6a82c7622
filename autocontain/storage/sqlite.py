from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

from autocontain.errors import NotFound
from autocontain.errors import StoreFailure
from autocontain.storage.models import ClassRecord
from autocontain.storage.models import FunctionRecord
from autocontain.storage.models import Repository

logger = logging.getLogger(__name__)

CallerKey = tuple[str, int | None]


class SqliteStore:
    """Embedded SQLite handle shared by the indexer and the flow reconstructor."""

    def __init__(self, path: str) -> None:
        self._path = path
        try:
            # autocommit mode: every statement commits unless inside transaction()
            self._conn = sqlite3.connect(path, isolation_level=None, check_same_thread=False)
            self._conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as exc:
            raise StoreFailure(f"Cannot open store at {path}: {exc}") from exc
        self._in_transaction = False

    @property
    def path(self) -> str:
        return self._path

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._in_transaction:
            yield
            return
        with _store_errors("begin transaction"):
            self._conn.execute("BEGIN")
        self._in_transaction = True
        try:
            yield
        except BaseException:
            self._in_transaction = False
            with _store_errors("rollback"):
                self._conn.execute("ROLLBACK")
            raise
        self._in_transaction = False
        with _store_errors("commit"):
            self._conn.execute("COMMIT")

    def close(self) -> None:
        self._conn.close()


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        logger.error(f"store {action} failed: {exc}")
        raise StoreFailure(f"store {action} failed: {exc}") from exc


def ensure_schema(store: SqliteStore) -> None:
    statements = (
        """
        CREATE TABLE IF NOT EXISTS repositories (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            description TEXT
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS classes (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            repo_id INTEGER NOT NULL REFERENCES repositories(id),
            name TEXT NOT NULL,
            attributes TEXT,
            methods TEXT,
            file_location TEXT NOT NULL,
            start_line INTEGER NOT NULL,
            end_line INTEGER NOT NULL,
            docstring TEXT
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS functions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            repo_id INTEGER NOT NULL REFERENCES repositories(id),
            class_id INTEGER REFERENCES classes(id),
            name TEXT NOT NULL,
            parameters TEXT,
            return_type TEXT,
            file_location TEXT NOT NULL,
            start_line INTEGER NOT NULL,
            end_line INTEGER NOT NULL,
            docstring TEXT
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS function_dependencies (
            function_name TEXT NOT NULL,
            dependency TEXT NOT NULL,
            class_id INTEGER REFERENCES classes(id),
            function_id INTEGER REFERENCES functions(id)
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_functions_name_class ON functions (name, class_id)",
        "CREATE INDEX IF NOT EXISTS idx_dependencies_caller ON function_dependencies (function_name, class_id)",
    )
    with _store_errors("ensure schema"):
        for statement in statements:
            store.connection.execute(statement)


def insert_repository(store: SqliteStore, repo: Repository) -> int:
    with _store_errors("insert repository"):
        cur = store.connection.execute(
            "INSERT INTO repositories (name, description) VALUES (?, ?)",
            (repo.name, repo.description),
        )
    return int(cur.lastrowid)


def insert_class(store: SqliteStore, cls: ClassRecord) -> int:
    with _store_errors("insert class"):
        cur = store.connection.execute(
            """
            INSERT INTO classes (repo_id, name, attributes, methods, file_location, start_line, end_line, docstring)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                cls.repo_id,
                cls.name,
                cls.attributes,
                cls.methods,
                cls.file_location,
                cls.start_line,
                cls.end_line,
                cls.docstring,
            ),
        )
    return int(cur.lastrowid)


def insert_function(store: SqliteStore, func: FunctionRecord) -> int:
    with _store_errors("insert function"):
        cur = store.connection.execute(
            """
            INSERT INTO functions (
                repo_id, class_id, name, parameters, return_type, file_location, start_line, end_line, docstring
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                func.repo_id,
                func.class_id,
                func.name,
                func.parameters,
                func.return_type,
                func.file_location,
                func.start_line,
                func.end_line,
                func.docstring,
            ),
        )
    return int(cur.lastrowid)


def last_insert_id(store: SqliteStore) -> int:
    with _store_errors("read last insert id"):
        row = store.connection.execute("SELECT last_insert_rowid()").fetchone()
    return int(row[0])


def insert_dependencies(
    store: SqliteStore,
    function_name: str,
    class_id: int | None,
    dependency_names: Sequence[str],
    function_id: int | None = None,
) -> None:
    if not dependency_names:
        return
    with _store_errors("insert dependencies"):
        store.connection.executemany(
            "INSERT INTO function_dependencies (function_name, dependency, class_id, function_id) VALUES (?, ?, ?, ?)",
            [(function_name, name, class_id, function_id) for name in dependency_names],
        )


def get_dependencies(
    store: SqliteStore,
    function_name: str,
    class_id: int | None,
    repo_id: int | None = None,
) -> list[CallerKey]:
    """
    Edges recorded for the caller `(function_name, class_id)`, in insertion order.

    `class_id=None` matches only free functions (`IS NULL`), never every class.
    """
    sql = "SELECT d.dependency, d.class_id FROM function_dependencies d"
    params: list[object] = []
    if repo_id is not None:
        sql += " JOIN functions f ON f.id = d.function_id"
    sql += " WHERE d.function_name = ?"
    params.append(function_name)
    if class_id is None:
        sql += " AND d.class_id IS NULL"
    else:
        sql += " AND d.class_id = ?"
        params.append(class_id)
    if repo_id is not None:
        sql += " AND f.repo_id = ?"
        params.append(repo_id)
    sql += " ORDER BY d.rowid"
    with _store_errors("get dependencies"):
        rows = store.connection.execute(sql, params).fetchall()
    return [(row[0], row[1]) for row in rows]


def get_function_description(
    store: SqliteStore,
    function_name: str,
    class_id: int | None,
    repo_id: int | None = None,
) -> str | None:
    """Docstring of the first matching function; raises `NotFound` when no row matches."""
    sql = "SELECT docstring FROM functions WHERE name = ?"
    params: list[object] = [function_name]
    if class_id is None:
        sql += " AND class_id IS NULL"
    else:
        sql += " AND class_id = ?"
        params.append(class_id)
    if repo_id is not None:
        sql += " AND repo_id = ?"
        params.append(repo_id)
    sql += " ORDER BY id LIMIT 1"
    with _store_errors("get function description"):
        row = store.connection.execute(sql, params).fetchone()
    if row is None:
        raise NotFound(f"function not found: {function_name} (class_id={class_id})")
    return row[0]


def load_dependency_graph(store: SqliteStore, repo_id: int | None = None) -> dict[CallerKey, list[CallerKey]]:
    sql = "SELECT d.function_name, d.class_id, d.dependency FROM function_dependencies d"
    params: list[object] = []
    if repo_id is not None:
        sql += " JOIN functions f ON f.id = d.function_id WHERE f.repo_id = ?"
        params.append(repo_id)
    sql += " ORDER BY d.rowid"
    with _store_errors("load dependency graph"):
        rows = store.connection.execute(sql, params).fetchall()
    graph: dict[CallerKey, list[CallerKey]] = {}
    for function_name, class_id, dependency in rows:
        graph.setdefault((function_name, class_id), []).append((dependency, class_id))
    return graph


def load_function_descriptions(store: SqliteStore, repo_id: int | None = None) -> dict[CallerKey, str | None]:
    sql = "SELECT name, class_id, docstring FROM functions"
    params: list[object] = []
    if repo_id is not None:
        sql += " WHERE repo_id = ?"
        params.append(repo_id)
    sql += " ORDER BY id"
    with _store_errors("load function descriptions"):
        rows = store.connection.execute(sql, params).fetchall()
    descriptions: dict[CallerKey, str | None] = {}
    for name, class_id, docstring in rows:
        descriptions.setdefault((name, class_id), docstring)
    return descriptions


def get_repository(store: SqliteStore, repo_id: int) -> Repository:
    with _store_errors("get repository"):
        row = store.connection.execute(
            "SELECT id, name, description FROM repositories WHERE id = ?", (repo_id,)
        ).fetchone()
    if row is None:
        raise NotFound(f"repository not found: {repo_id}")
    return Repository(id=row[0], name=row[1], description=row[2])


def list_repositories(store: SqliteStore) -> list[Repository]:
    with _store_errors("list repositories"):
        rows = store.connection.execute("SELECT id, name, description FROM repositories ORDER BY id").fetchall()
    return [Repository(id=row[0], name=row[1], description=row[2]) for row in rows]


def list_classes(store: SqliteStore, repo_id: int) -> list[ClassRecord]:
    with _store_errors("list classes"):
        rows = store.connection.execute(
            """
            SELECT id, repo_id, name, attributes, methods, file_location, start_line, end_line, docstring
            FROM classes
            WHERE repo_id = ?
            ORDER BY id
            """,
            (repo_id,),
        ).fetchall()
    return [
        ClassRecord(
            id=row[0],
            repo_id=row[1],
            name=row[2],
            attributes=row[3],
            methods=row[4],
            file_location=row[5],
            start_line=row[6],
            end_line=row[7],
            docstring=row[8],
        )
        for row in rows
    ]


def list_functions(store: SqliteStore, repo_id: int) -> list[FunctionRecord]:
    with _store_errors("list functions"):
        rows = store.connection.execute(
            """
            SELECT id, repo_id, class_id, name, parameters, return_type, file_location, start_line, end_line, docstring
            FROM functions
            WHERE repo_id = ?
            ORDER BY id
            """,
            (repo_id,),
        ).fetchall()
    return [
        FunctionRecord(
            id=row[0],
            repo_id=row[1],
            class_id=row[2],
            name=row[3],
            parameters=row[4],
            return_type=row[5],
            file_location=row[6],
            start_line=row[7],
            end_line=row[8],
            docstring=row[9],
        )
        for row in rows
    ]


def delete_repository(store: SqliteStore, repo_id: int) -> None:
    """Remove a repository and every class, function and edge indexed for it."""
    get_repository(store, repo_id)
    with store.transaction():
        with _store_errors("delete repository"):
            store.connection.execute(
                """
                DELETE FROM function_dependencies
                WHERE function_id IN (SELECT id FROM functions WHERE repo_id = ?)
                   OR class_id IN (SELECT id FROM classes WHERE repo_id = ?)
                """,
                (repo_id, repo_id),
            )
            store.connection.execute("DELETE FROM functions WHERE repo_id = ?", (repo_id,))
            store.connection.execute("DELETE FROM classes WHERE repo_id = ?", (repo_id,))
            store.connection.execute("DELETE FROM repositories WHERE id = ?", (repo_id,))
    logger.info(f"Removed repository {repo_id} from store")
