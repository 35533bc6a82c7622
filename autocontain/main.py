"""
FastAPI service entry.

Three things happen here:
- load configuration (strict env validation)
- open the shared store handle and, when configured, the LLM client
- mount the routes (health, repositories, flow, chat)

Run with: `uvicorn --factory autocontain.main:build_app`

Store access runs in worker threads under `store_lock`. Reads and writes share one
connection, so a read never sees an indexing run that is still in progress.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Mapping

import anyio
import httpx
from fastapi import FastAPI
from fastapi import HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from autocontain.chat.assistant import handle_user_query
from autocontain.config import load_config_from_env
from autocontain.errors import IoFailure
from autocontain.errors import NotFound
from autocontain.errors import StoreFailure
from autocontain.flow.reconstructor import reconstruct_flow
from autocontain.indexing.indexer import IndexReport
from autocontain.indexing.indexer import index_repository_with_report
from autocontain.llm.client import OpenAICompatLLMClient
from autocontain.storage.models import Repository
from autocontain.storage.sqlite import SqliteStore
from autocontain.storage.sqlite import delete_repository
from autocontain.storage.sqlite import ensure_schema
from autocontain.storage.sqlite import list_repositories

logger = logging.getLogger(__name__)


class IndexRequest(BaseModel):
    name: str
    path: str
    description: str | None = None


class IndexResponse(BaseModel):
    repo_id: int
    files_indexed: int
    files_skipped: int
    classes: int
    functions: int
    dependencies: int


class ChatRequest(BaseModel):
    query: str
    repo_id: int | None = None


class ChatResponse(BaseModel):
    answer: str


def build_app(environ: Mapping[str, str] | None = None) -> FastAPI:
    """Create the FastAPI app (separate from module import for tests)."""

    config = load_config_from_env(os.environ if environ is None else environ)

    store = SqliteStore(config.db_path)
    ensure_schema(store)
    store_lock = threading.Lock()

    llm_client: OpenAICompatLLMClient | None = None
    if config.llm is not None:
        http_client = httpx.AsyncClient(timeout=httpx.Timeout(30.0))
        llm_client = OpenAICompatLLMClient(
            api_key=config.llm.api_key,
            base_url=str(config.llm.base_url).rstrip("/"),
            http_client=http_client,
            model=config.llm.model,
        )

    app = FastAPI(title="autocontain", version="0.1.0")
    app.state.store = store
    app.state.store_lock = store_lock

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/repositories")
    async def create_repository(req: IndexRequest) -> IndexResponse:
        def run_index() -> IndexReport:
            with store_lock:
                return index_repository_with_report(
                    store=store,
                    repo_name=req.name,
                    repo_path=req.path,
                    description=req.description,
                )

        try:
            report = await anyio.to_thread.run_sync(run_index)
        except (IoFailure, ValueError) as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except StoreFailure as exc:
            logger.error(f"Indexing {req.name} aborted: {exc}")
            raise HTTPException(status_code=500, detail=f"Indexing aborted: {exc}") from exc
        return IndexResponse(
            repo_id=report.repo_id,
            files_indexed=report.files_indexed,
            files_skipped=report.files_skipped,
            classes=report.classes,
            functions=report.functions,
            dependencies=report.dependencies,
        )

    @app.get("/repositories")
    async def get_repositories() -> list[Repository]:
        def read_repositories() -> list[Repository]:
            with store_lock:
                return list_repositories(store)

        try:
            return await anyio.to_thread.run_sync(read_repositories)
        except StoreFailure as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc

    @app.delete("/repositories/{repo_id}")
    async def remove_repository(repo_id: int) -> dict[str, str]:
        def run_delete() -> None:
            with store_lock:
                delete_repository(store, repo_id)

        try:
            await anyio.to_thread.run_sync(run_delete)
        except NotFound as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except StoreFailure as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return {"status": "deleted"}

    @app.get("/flow", response_class=PlainTextResponse)
    async def get_flow(entry: str | None = None, repo_id: int | None = None) -> str:
        entry_function = entry or config.entry_function

        def read_flow() -> str:
            with store_lock:
                return reconstruct_flow(store, entry_function_name=entry_function, repo_id=repo_id)

        return await anyio.to_thread.run_sync(read_flow)

    if llm_client is not None:
        chat_client = llm_client

        @app.post("/chat")
        async def chat(req: ChatRequest) -> ChatResponse:
            if not req.query.strip():
                raise HTTPException(status_code=400, detail="query must be non-empty")
            answer = await handle_user_query(
                llm_client=chat_client,
                store=store,
                query=req.query,
                entry_function_name=config.entry_function,
                repo_id=req.repo_id,
                store_lock=store_lock,
            )
            return ChatResponse(answer=answer)

    return app
