import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    openai_api_key: str = ""
    openai_base_url: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    log_level: str = "INFO"
    max_sessions: int = 256
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


def _get(key: str, default: str | None = None) -> str | None:
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    return value.strip()


def load_settings() -> Settings:
    """Read settings from the environment (and a .env file, if present).

    The API key is passed through as-is; an absent key becomes an empty
    string and the remote service reports the problem on first use.
    """
    load_dotenv()
    origins = _get("QUERYMASTER_CORS_ORIGINS", "*")
    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        openai_base_url=_get("OPENAI_BASE_URL"),
        openai_model=_get("OPENAI_MODEL", "gpt-4o-mini"),
        log_level=_get("QUERYMASTER_LOG_LEVEL", "INFO").upper(),
        max_sessions=int(_get("QUERYMASTER_MAX_SESSIONS", "256")),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
    )
