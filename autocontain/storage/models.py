from __future__ import annotations

from pydantic import BaseModel


class Repository(BaseModel):
    id: int | None = None
    name: str
    description: str | None = None


class ClassRecord(BaseModel):
    id: int | None = None
    repo_id: int
    name: str
    attributes: str | None = None
    methods: str | None = None
    file_location: str
    start_line: int
    end_line: int
    docstring: str | None = None


class FunctionRecord(BaseModel):
    id: int | None = None
    repo_id: int
    class_id: int | None = None
    name: str
    parameters: str | None = None
    return_type: str | None = None
    file_location: str
    start_line: int
    end_line: int
    docstring: str | None = None
