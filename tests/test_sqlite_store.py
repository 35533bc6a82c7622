from __future__ import annotations

import pytest

from autocontain.errors import NotFound
from autocontain.errors import StoreFailure
from autocontain.storage.models import ClassRecord
from autocontain.storage.models import FunctionRecord
from autocontain.storage.models import Repository
from autocontain.storage.sqlite import SqliteStore
from autocontain.storage.sqlite import delete_repository
from autocontain.storage.sqlite import ensure_schema
from autocontain.storage.sqlite import get_dependencies
from autocontain.storage.sqlite import get_function_description
from autocontain.storage.sqlite import get_repository
from autocontain.storage.sqlite import insert_class
from autocontain.storage.sqlite import insert_dependencies
from autocontain.storage.sqlite import insert_function
from autocontain.storage.sqlite import insert_repository
from autocontain.storage.sqlite import last_insert_id
from autocontain.storage.sqlite import list_classes
from autocontain.storage.sqlite import list_functions
from autocontain.storage.sqlite import list_repositories
from autocontain.storage.sqlite import load_dependency_graph


def _function(repo_id: int, name: str, class_id: int | None = None, docstring: str | None = None) -> FunctionRecord:
    return FunctionRecord(
        repo_id=repo_id,
        class_id=class_id,
        name=name,
        parameters="()",
        file_location="app.py",
        start_line=1,
        end_line=2,
        docstring=docstring,
    )


def test_repository_ids_increase(store: SqliteStore) -> None:
    first = insert_repository(store, Repository(name="one"))
    second = insert_repository(store, Repository(name="two", description="second"))
    assert second > first
    assert get_repository(store, second).description == "second"
    assert [r.name for r in list_repositories(store)] == ["one", "two"]


def test_ensure_schema_is_idempotent(store: SqliteStore) -> None:
    ensure_schema(store)
    assert list_repositories(store) == []


def test_insert_class_then_last_insert_id(store: SqliteStore) -> None:
    repo_id = insert_repository(store, Repository(name="repo"))
    class_id = insert_class(
        store,
        ClassRecord(repo_id=repo_id, name="Point", attributes="x: int", file_location="p.py", start_line=1, end_line=3),
    )
    assert last_insert_id(store) == class_id
    [stored] = list_classes(store, repo_id)
    assert stored.id == class_id
    assert stored.attributes == "x: int"


def test_function_class_must_exist(store: SqliteStore) -> None:
    repo_id = insert_repository(store, Repository(name="repo"))
    with pytest.raises(StoreFailure):
        insert_function(store, _function(repo_id, "orphan", class_id=999))


def test_dependencies_filter_treats_no_class_as_explicit(store: SqliteStore) -> None:
    repo_id = insert_repository(store, Repository(name="repo"))
    class_id = insert_class(
        store, ClassRecord(repo_id=repo_id, name="Svc", file_location="s.py", start_line=1, end_line=9)
    )
    free_id = insert_function(store, _function(repo_id, "run"))
    method_id = insert_function(store, _function(repo_id, "run", class_id=class_id))
    insert_dependencies(store, "run", None, ["load", "save"], function_id=free_id)
    insert_dependencies(store, "run", class_id, ["connect"], function_id=method_id)

    assert get_dependencies(store, "run", None) == [("load", None), ("save", None)]
    assert get_dependencies(store, "run", class_id) == [("connect", class_id)]
    assert get_dependencies(store, "missing", None) == []


def test_dependency_rows_are_append_only(store: SqliteStore) -> None:
    repo_id = insert_repository(store, Repository(name="repo"))
    insert_dependencies(store, "main", None, ["load"])
    insert_dependencies(store, "main", None, ["load"])
    assert get_dependencies(store, "main", None) == [("load", None), ("load", None)]
    assert get_dependencies(store, "main", None, repo_id=repo_id) == []


def test_get_function_description(store: SqliteStore) -> None:
    repo_id = insert_repository(store, Repository(name="repo"))
    insert_function(store, _function(repo_id, "main", docstring="Entry point."))
    insert_function(store, _function(repo_id, "quiet"))
    assert get_function_description(store, "main", None) == "Entry point."
    assert get_function_description(store, "quiet", None) is None
    with pytest.raises(NotFound):
        get_function_description(store, "main", 42)


def test_dependencies_scoped_by_repository(store: SqliteStore) -> None:
    first = insert_repository(store, Repository(name="first"))
    second = insert_repository(store, Repository(name="second"))
    first_main = insert_function(store, _function(first, "main"))
    second_main = insert_function(store, _function(second, "main"))
    insert_dependencies(store, "main", None, ["a"], function_id=first_main)
    insert_dependencies(store, "main", None, ["b"], function_id=second_main)

    assert get_dependencies(store, "main", None, repo_id=first) == [("a", None)]
    assert get_dependencies(store, "main", None, repo_id=second) == [("b", None)]
    assert load_dependency_graph(store, repo_id=second) == {("main", None): [("b", None)]}
    assert load_dependency_graph(store) == {("main", None): [("a", None), ("b", None)]}


def test_transaction_rolls_back_on_failure(store: SqliteStore) -> None:
    repo_id = insert_repository(store, Repository(name="repo"))
    with pytest.raises(StoreFailure):
        with store.transaction():
            insert_function(store, _function(repo_id, "kept_only_if_committed"))
            insert_function(store, _function(repo_id, "bad", class_id=12345))
    assert list_functions(store, repo_id) == []


def test_delete_repository_removes_everything(store: SqliteStore) -> None:
    keep = insert_repository(store, Repository(name="keep"))
    drop = insert_repository(store, Repository(name="drop"))
    class_id = insert_class(store, ClassRecord(repo_id=drop, name="C", file_location="c.py", start_line=1, end_line=2))
    method_id = insert_function(store, _function(drop, "m", class_id=class_id))
    insert_dependencies(store, "m", class_id, ["x"], function_id=method_id)
    kept_id = insert_function(store, _function(keep, "main"))
    insert_dependencies(store, "main", None, ["y"], function_id=kept_id)

    delete_repository(store, drop)

    assert [r.id for r in list_repositories(store)] == [keep]
    assert list_classes(store, drop) == []
    assert list_functions(store, drop) == []
    assert get_dependencies(store, "m", class_id) == []
    assert get_dependencies(store, "main", None) == [("y", None)]
    with pytest.raises(NotFound):
        delete_repository(store, drop)


def test_closed_store_raises_store_failure(store: SqliteStore) -> None:
    store.close()
    with pytest.raises(StoreFailure):
        list_repositories(store)
