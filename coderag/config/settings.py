"""
Settings
========
Centralised, cached access to environment configuration.

A `.env` file in the working directory (or any parent) is loaded once, on
first access, so OPENAI_API_KEY and the CODERAG_* keys can live there.
"""
import os
from typing import Any, Dict

from dotenv import load_dotenv

DEFAULT_EMBED_MODEL = "text-embedding-ada-002"
DEFAULT_CHUNK_SIZE = 1000
DEFAULT_COLLECTION = "code-snippets"
DEFAULT_STORE_BACKEND = "chroma"
DEFAULT_EMBED_MAX_RETRIES = 2
DEFAULT_EMBED_TIMEOUT = 60


class Settings:
    _CACHE: Dict[str, Any] = {}
    _dotenv_loaded: bool = False

    @classmethod
    def get(cls, key: str, default: Any | None = None) -> Any:
        if not cls._dotenv_loaded:
            load_dotenv()
            cls._dotenv_loaded = True
        # cache the environment value only; defaults differ between callers
        if key not in cls._CACHE:
            cls._CACHE[key] = os.getenv(key)
        value = cls._CACHE[key]
        return default if value is None else value

    @classmethod
    def get_int(cls, key: str, default: int) -> int:
        raw = cls.get(key, default)
        try:
            return int(raw)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{key} must be an integer, got {raw!r}") from exc

    @classmethod
    def clear(cls) -> None:
        """Forget cached values (tests change the environment between cases)."""
        cls._CACHE.clear()
