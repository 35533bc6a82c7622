"""
Local mock of an OpenAI-compatible chat-completions endpoint.

Purpose:
- run the chat path (intent classification + answer) without a real model

Start:
  python -m autocontain.dev.mock_openai_server
"""

from __future__ import annotations

from collections.abc import Sequence

import uvicorn
from fastapi import FastAPI
from pydantic import BaseModel, Field

from autocontain.chat.assistant import INTENT_CASUAL_CHAT
from autocontain.chat.assistant import INTENT_CODE_LOGIC
from autocontain.llm.client import ChatMessage

FLOW_MARKER = "Here is the code flow:"


class ChatCompletionRequest(BaseModel):
    model: str
    messages: list[ChatMessage] = Field(default_factory=list)


def _extract_function_names(prompt: str) -> list[str]:
    """
    Pull function names out of a flow prompt; lines look like:
      - Function: `main`
    """
    names: list[str] = []
    for line in prompt.splitlines():
        stripped = line.strip()
        if not stripped.startswith("- Function: "):
            continue
        name = stripped.removeprefix("- Function: ").strip("` ")
        if name:
            names.append(name)
    return names


def _decide_mock_response(messages: Sequence[ChatMessage]) -> str:
    user_texts = [m.content for m in messages if m.role == "user"]
    if not user_texts:
        raise ValueError("Mock server expects at least one user message")
    prompt = "\n".join(user_texts)

    if prompt.startswith("Classify the user query"):
        # the category list itself says "Logic", so only look at the quoted query
        lowered = prompt.rsplit("User Query:", 1)[-1].lower()
        if "flow" in lowered or "logic" in lowered or "how does" in lowered:
            return INTENT_CODE_LOGIC
        return INTENT_CASUAL_CHAT

    if FLOW_MARKER in prompt:
        names = _extract_function_names(prompt=prompt)
        if not names:
            return "[MOCK] The repository has no indexed entry point."
        return f"[MOCK] Execution starts in `{names[0]}` and touches {len(names)} function(s): {', '.join(names)}."

    return "[MOCK] Hello! Ask me about the repository's code logic."


app = FastAPI(title="Mock OpenAI-compatible LLM", version="0.1.0")


@app.post("/v1/chat/completions")
async def chat_completions(req: ChatCompletionRequest) -> dict[str, object]:
    content = _decide_mock_response(messages=req.messages)
    return {"choices": [{"message": {"content": content}}]}


def main() -> None:
    uvicorn.run(app, host="127.0.0.1", port=9001)


if __name__ == "__main__":
    main()
