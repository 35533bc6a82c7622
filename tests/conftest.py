from __future__ import annotations

import textwrap
from collections.abc import Iterator
from pathlib import Path

import pytest

from autocontain.storage.sqlite import SqliteStore
from autocontain.storage.sqlite import ensure_schema

SAMPLE_FILES: dict[str, str] = {
    "app/main.py": '''
        from app.models import Point


        def helper(value):
            """Double a value."""
            return value * 2


        def main():
            """Entry point."""
            helper(1)
            helper(2)
            run()
            print("done")


        def run():
            main()
        ''',
    "app/models.py": '''
        class Point:
            """A 2D point."""

            def __init__(self, x: int, y: int = 0):
                self.x = x
                self.y = y

            @property
            def norm(self) -> float:
                return compute(self.x, self.y)

            class Meta:
                def describe(self):
                    return "meta"
        ''',
    "other/models.py": '''
        class Point:
            def area(self):
                return 0
        ''',
    "broken.py": "def broken(:\n    pass\n",
    "notes.md": "# not python\n",
}


def write_repo(root: Path, files: dict[str, str]) -> Path:
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
    return root


@pytest.fixture
def sample_repo(tmp_path: Path) -> Path:
    """Small repository: 2 valid modules with classes, 1 free-function module, 1 broken file."""
    repo = write_repo(tmp_path / "sample", SAMPLE_FILES)
    (repo / "latin1.py").write_bytes(b"# caf\xe9\nx = 1\n")
    return repo


@pytest.fixture
def store() -> Iterator[SqliteStore]:
    s = SqliteStore(":memory:")
    ensure_schema(s)
    yield s
    s.close()
