"""
Repository indexing pipeline.

Source Walker -> Tree Parser -> Entity Extractor -> Relational Store, one file at a time.

- unreadable files (`IoFailure`) and rejected files (`ParseFailure`) are logged and skipped
- store failures (`StoreFailure`) abort the run and remove what it had written
- each file's rows are written in a single transaction
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from autocontain.errors import IoFailure
from autocontain.errors import NotFound
from autocontain.errors import ParseFailure
from autocontain.errors import StoreFailure
from autocontain.indexing.extractor import FileEntities
from autocontain.indexing.extractor import extract_entities
from autocontain.indexing.file_scanner import PYTHON_EXTENSIONS
from autocontain.indexing.file_scanner import iter_source_files
from autocontain.indexing.parser import SourceParser
from autocontain.storage.models import ClassRecord
from autocontain.storage.models import FunctionRecord
from autocontain.storage.models import Repository
from autocontain.storage.sqlite import SqliteStore
from autocontain.storage.sqlite import delete_repository
from autocontain.storage.sqlite import insert_class
from autocontain.storage.sqlite import insert_dependencies
from autocontain.storage.sqlite import insert_function
from autocontain.storage.sqlite import insert_repository

logger = logging.getLogger(__name__)


@dataclass
class IndexReport:
    repo_id: int
    files_indexed: int = 0
    files_skipped: int = 0
    classes: int = 0
    functions: int = 0
    dependencies: int = 0


def index_repository(
    store: SqliteStore,
    repo_name: str,
    repo_path: str,
    description: str | None = None,
) -> int:
    """Index every Python file under `repo_path` and return the new repository id."""
    report = index_repository_with_report(store=store, repo_name=repo_name, repo_path=repo_path, description=description)
    return report.repo_id


def index_repository_with_report(
    store: SqliteStore,
    repo_name: str,
    repo_path: str,
    description: str | None = None,
) -> IndexReport:
    if not repo_name:
        raise ValueError("repo_name is required")
    if not os.path.isdir(repo_path):
        raise IoFailure(f"Repository path is not a readable directory: {repo_path}")

    repo_id = insert_repository(store, Repository(name=repo_name, description=description))
    report = IndexReport(repo_id=repo_id)
    parser = SourceParser()
    logger.info(f"Indexing repository {repo_name} (id={repo_id}) from {repo_path}")

    try:
        _index_files(store=store, parser=parser, repo_path=repo_path, report=report)
    except StoreFailure:
        _discard_partial_repository(store=store, repo_id=repo_id)
        raise

    logger.info(
        f"Indexed repository {repo_name}: files={report.files_indexed}, skipped={report.files_skipped}, "
        f"classes={report.classes}, functions={report.functions}, dependencies={report.dependencies}"
    )
    return report


def _index_files(store: SqliteStore, parser: SourceParser, repo_path: str, report: IndexReport) -> None:
    for full_path in iter_source_files(repo_dir=repo_path, allowed_extensions=PYTHON_EXTENSIONS):
        relative_path = os.path.relpath(full_path, repo_path)
        try:
            entities = _parse_file(parser=parser, full_path=full_path, relative_path=relative_path)
        except (IoFailure, ParseFailure) as exc:
            logger.warning(f"Skipping {relative_path}: {exc}")
            report.files_skipped += 1
            continue
        _persist_file(store=store, repo_id=report.repo_id, entities=entities, report=report)
        report.files_indexed += 1
        logger.debug(
            f"Indexed {relative_path}: {len(entities.classes)} class(es), {len(entities.functions)} function(s)"
        )


def _discard_partial_repository(store: SqliteStore, repo_id: int) -> None:
    """Remove the rows of an aborted run. A failure here is logged; the caller re-raises the original error."""
    try:
        delete_repository(store, repo_id)
    except (StoreFailure, NotFound) as exc:
        logger.error(f"Could not remove partially indexed repository {repo_id}: {exc}")


def _parse_file(parser: SourceParser, full_path: str, relative_path: str) -> FileEntities:
    content = _read_text_file(full_path)
    tree = parser.parse(content, path=relative_path)
    return extract_entities(tree.root_node, path=relative_path)


def _persist_file(store: SqliteStore, repo_id: int, entities: FileEntities, report: IndexReport) -> None:
    with store.transaction():
        class_ids: list[int] = []
        for cls in entities.classes:
            class_id = insert_class(
                store,
                ClassRecord(
                    repo_id=repo_id,
                    name=cls.name,
                    attributes=", ".join(cls.attributes) or None,
                    methods=", ".join(cls.methods) or None,
                    file_location=entities.path,
                    start_line=cls.start_line,
                    end_line=cls.end_line,
                    docstring=cls.docstring,
                ),
            )
            class_ids.append(class_id)

        for func in entities.functions:
            class_id = class_ids[func.owner] if func.owner is not None else None
            function_id = insert_function(
                store,
                FunctionRecord(
                    repo_id=repo_id,
                    class_id=class_id,
                    name=func.name,
                    parameters=func.parameters,
                    return_type=func.return_type,
                    file_location=entities.path,
                    start_line=func.start_line,
                    end_line=func.end_line,
                    docstring=func.docstring,
                ),
            )
            insert_dependencies(
                store,
                function_name=func.name,
                class_id=class_id,
                dependency_names=func.dependencies,
                function_id=function_id,
            )
            report.dependencies += len(func.dependencies)

    report.classes += len(entities.classes)
    report.functions += len(entities.functions)


def _read_text_file(path: str) -> str:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            return handle.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise IoFailure(f"Cannot read {path}: {exc}") from exc
