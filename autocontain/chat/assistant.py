"""
Chat collaborator: answers one user query about an indexed repository.

Two steps, both single LLM calls:
- classify the query intent (`Casual Chat` / `Overall Code Logic`)
- answer, feeding the reconstructed call flow in for code-logic questions

The interactive loop around this lives with the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from contextlib import AbstractContextManager
from contextlib import nullcontext
from typing import Protocol

import anyio

from autocontain.flow.reconstructor import DEFAULT_ENTRY_FUNCTION
from autocontain.flow.reconstructor import format_program_flow
from autocontain.llm.client import ChatMessage
from autocontain.storage.sqlite import SqliteStore

logger = logging.getLogger(__name__)

INTENT_CASUAL_CHAT = "Casual Chat"
INTENT_CODE_LOGIC = "Overall Code Logic"
KNOWN_INTENTS = (INTENT_CASUAL_CHAT, INTENT_CODE_LOGIC)

ASSISTANT_SYSTEM_PROMPT = "You are an assistant who explains code repository structures, logic flow, and functionality."
INTENT_SYSTEM_PROMPT = "You are an assistant that excels in recognizing user's prompt intent."


class TextCompleter(Protocol):
    async def complete_text(self, messages: Sequence[ChatMessage]) -> str: ...


async def classify_intent(llm_client: TextCompleter, query: str) -> str:
    """Return one of `KNOWN_INTENTS`, or the model's raw (stripped) answer when it is neither."""
    prompt = (
        "Classify the user query into one of the following categories: "
        f"['{INTENT_CASUAL_CHAT}', '{INTENT_CODE_LOGIC}']. "
        "Return only the result category. "
        f"User Query: '{query}'"
    )
    raw = await llm_client.complete_text(
        [
            ChatMessage(role="system", content=INTENT_SYSTEM_PROMPT),
            ChatMessage(role="user", content=prompt),
        ]
    )
    return _normalize_intent(raw)


async def handle_user_query(
    llm_client: TextCompleter,
    store: SqliteStore,
    query: str,
    entry_function_name: str = DEFAULT_ENTRY_FUNCTION,
    repo_id: int | None = None,
    store_lock: AbstractContextManager | None = None,
) -> str:
    """`store_lock`, when given, is held while the flow is read from `store`."""
    if not query.strip():
        raise ValueError("query must be non-empty")

    intent = await classify_intent(llm_client=llm_client, query=query)
    logger.info(f"Intent: {intent}")

    if intent == INTENT_CODE_LOGIC:
        def read_flow() -> str:
            with nullcontext() if store_lock is None else store_lock:
                return format_program_flow(store, entry_function_name=entry_function_name, repo_id=repo_id)

        logic_flow = await anyio.to_thread.run_sync(read_flow)
        content = build_code_logic_prompt(logic_flow=logic_flow)
    elif intent == INTENT_CASUAL_CHAT:
        content = f"The user said: '{query}'. Respond in a friendly manner."
    else:
        content = f"Unrecognized intent.\n\nUser's Query: '{query}'"

    return await llm_client.complete_text(
        [
            ChatMessage(role="system", content=ASSISTANT_SYSTEM_PROMPT),
            ChatMessage(role="user", content=content),
        ]
    )


def build_code_logic_prompt(logic_flow: str) -> str:
    return (
        "Provide a summary of the overall code logic for a repository. "
        f"Here is the code flow:\n\n{logic_flow}\n\n"
        "Summarize the main purpose and flow of the repository."
    )


def _normalize_intent(raw: str) -> str:
    cleaned = raw.strip().strip("'\"`[]. ").strip()
    for intent in KNOWN_INTENTS:
        if cleaned.lower() == intent.lower():
            return intent
    return cleaned
