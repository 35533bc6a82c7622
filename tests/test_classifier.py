from __future__ import annotations

import textwrap

from autocontain.indexing.classifier import classify_class_members
from autocontain.indexing.classifier import parse_constructor_attributes
from autocontain.indexing.classifier import split_parameters
from autocontain.indexing.parser import SourceParser


def _first_class(source: str):
    tree = SourceParser().parse(textwrap.dedent(source))
    for node in tree.root_node.children:
        if node.type == "class_definition":
            return node
    raise AssertionError("no class in source")


def test_constructor_attributes_typed() -> None:
    assert parse_constructor_attributes("self, x: int, y: str") == ["x: int", "y: str"]


def test_constructor_attributes_default_with_commas_stays_whole() -> None:
    assert parse_constructor_attributes("self, items: list=[1,2,3]") == ["items: list=[1,2,3]"]


def test_constructor_attributes_untyped_default_to_unknown() -> None:
    assert parse_constructor_attributes("(self, name, retries=3)") == ["name: unknown", "retries: unknown"]


def test_constructor_attributes_skip_markers_and_keep_star_args() -> None:
    assert parse_constructor_attributes("(self, a: int, /, *, b: str, **extra)") == [
        "a: int",
        "b: str",
        "**extra: unknown",
    ]


def test_constructor_attributes_only_self() -> None:
    assert parse_constructor_attributes("(self)") == []


def test_split_parameters_tracks_all_bracket_kinds_and_strings() -> None:
    params = "(self, a: dict[str, int] = {'k': (1, 2)}, sep: str = ',', cb=f(x, y),)"
    assert split_parameters(params) == [
        "self",
        "a: dict[str, int] = {'k': (1, 2)}",
        "sep: str = ','",
        "cb=f(x, y)",
    ]


def test_split_parameters_multiline() -> None:
    params = "(\n    self,\n    x: int,\n    y: tuple[int, int] = (0, 0),\n)"
    assert split_parameters(params) == ["self", "x: int", "y: tuple[int, int] = (0, 0)"]


def test_classify_class_members_separates_constructor_and_methods() -> None:
    cls = _first_class(
        """
        class Account:
            def __init__(self, owner: str, balance: float = 0.0):
                self.owner = owner
                self.balance = balance

            def deposit(self, amount: float) -> None:
                self.balance += amount

            @property
            def label(self):
                return self.owner

            class Meta:
                def ignored(self) -> str:
                    return "meta"
        """
    )
    members = classify_class_members(cls)
    assert members.attributes == ["owner: str", "balance: float = 0.0"]
    assert members.methods == ["deposit -> None", "label"]


def test_classify_class_without_constructor() -> None:
    cls = _first_class(
        """
        class Empty:
            pass
        """
    )
    members = classify_class_members(cls)
    assert members.attributes == []
    assert members.methods == []


def test_classify_constructor_ignores_comments_in_signature() -> None:
    cls = _first_class(
        """
        class Endpoint:
            def __init__(
                self,
                host: str,  # hostname, or IP
                port: int = 80,
            ):
                self.host = host
                self.port = port
        """
    )
    assert classify_class_members(cls).attributes == ["host: str", "port: int = 80"]


def test_classify_constructor_keeps_lambda_default_whole() -> None:
    cls = _first_class(
        """
        class Sorter:
            def __init__(self, key=lambda a, b: a, reverse: bool = False):
                self.key = key
                self.reverse = reverse
        """
    )
    assert classify_class_members(cls).attributes == ["key: unknown", "reverse: bool = False"]


def test_classify_constructor_skips_separators() -> None:
    cls = _first_class(
        """
        class Options:
            def __init__(self, a: int, /, *, b: str, **extra):
                pass
        """
    )
    assert classify_class_members(cls).attributes == ["a: int", "b: str", "**extra: unknown"]
