from __future__ import annotations

import logging
import os
from collections.abc import Iterator

logger = logging.getLogger(__name__)

PYTHON_EXTENSIONS = frozenset({".py"})


def iter_source_files(repo_dir: str, allowed_extensions: frozenset[str] = PYTHON_EXTENSIONS) -> Iterator[str]:
    """
    Lazily yield every file under `repo_dir` whose extension is in `allowed_extensions`.

    No directory is excluded. An unreadable directory is logged and skipped; the walk goes on.
    """
    for root, _dirs, filenames in os.walk(repo_dir, onerror=_log_walk_error):
        for name in filenames:
            ext = os.path.splitext(name)[1].lower()
            if ext not in allowed_extensions:
                continue
            yield os.path.join(root, name)


def _log_walk_error(exc: OSError) -> None:
    logger.warning(f"Skipping unreadable directory entry: {exc.filename}: {exc.strerror}")
