"""
Application configuration.

- **Strict**: a missing required variable raises immediately
- **Typed**: Pydantic validates URLs and strings
- **Testable**: the loader takes `environ` explicitly
"""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel, HttpUrl

DEFAULT_ENTRY_FUNCTION = "main"


class LLMConfig(BaseModel):
    base_url: HttpUrl
    api_key: str
    model: str


class AppConfig(BaseModel):
    db_path: str
    entry_function: str = DEFAULT_ENTRY_FUNCTION
    llm: LLMConfig | None = None


def load_config_from_env(environ: Mapping[str, str]) -> AppConfig:
    """
    Load and validate configuration from environment variables.

    - **Required**: `AUTOCONTAIN_DB_PATH`
    - **Optional**: `AUTOCONTAIN_ENTRY_FUNCTION` (default `main`)
    - **All-or-nothing**: `LLM_BASE_URL` / `LLM_API_KEY` / `LLM_MODEL`; a partial set raises `ValueError`
    """
    db_path = environ.get("AUTOCONTAIN_DB_PATH", "")
    if not db_path:
        raise ValueError("Missing required env vars: AUTOCONTAIN_DB_PATH")

    llm_keys: tuple[str, ...] = ("LLM_BASE_URL", "LLM_API_KEY", "LLM_MODEL")
    present = [key for key in llm_keys if environ.get(key)]
    llm: LLMConfig | None = None
    if present:
        missing = [key for key in llm_keys if key not in present]
        if missing:
            raise ValueError(f"Incomplete LLM config, missing: {', '.join(missing)}")
        llm = LLMConfig(
            base_url=environ["LLM_BASE_URL"],
            api_key=environ["LLM_API_KEY"],
            model=environ["LLM_MODEL"],
        )

    return AppConfig(
        db_path=db_path,
        entry_function=environ.get("AUTOCONTAIN_ENTRY_FUNCTION") or DEFAULT_ENTRY_FUNCTION,
        llm=llm,
    )
