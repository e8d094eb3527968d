"""
Embedder
========
Wraps the OpenAI embeddings API to convert code chunks into dense vectors.

Anything that satisfies `EmbeddingProvider` can stand in for `Embedder`
(tests use a deterministic hash-based fake).
"""
from __future__ import annotations

from typing import Any, List, Optional, Protocol, Sequence

import openai
from openai import OpenAI

from coderag.config.settings import (
    DEFAULT_EMBED_MAX_RETRIES,
    DEFAULT_EMBED_MODEL,
    DEFAULT_EMBED_TIMEOUT,
    Settings,
)
from coderag.errors import EmbeddingError, MissingCredentialsError
from coderag.utils.cancellation import CancelToken, check_cancelled
from coderag.utils.logging import SimpleLogger


class EmbeddingProvider(Protocol):
    def embed(
        self, texts: Sequence[str], token: Optional[CancelToken] = None
    ) -> List[List[float]]:
        """Return one vector per input text, in input order."""
        ...


class Embedder:
    """High-level embedding interface using the OpenAI API."""

    def __init__(
        self,
        model: Optional[str] = None,
        *,
        api_key: Optional[str] = None,
        client: Any = None,
        max_retries: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Args:
            model: Embedding model name (default: CODERAG_EMBED_MODEL or ada-002).
            api_key: Overrides OPENAI_API_KEY from the environment / .env.
            client: Pre-built OpenAI-compatible client; skips key lookup.
            max_retries: Transport retries done by the OpenAI client itself.
            timeout: Per-request HTTP timeout in seconds.
        """
        self.model = model or Settings.get("CODERAG_EMBED_MODEL", DEFAULT_EMBED_MODEL)
        self.prompt_tokens = 0
        self.total_tokens = 0

        if client is not None:
            self.client = client
            return

        key = api_key or Settings.get("OPENAI_API_KEY")
        if not key:
            raise MissingCredentialsError("OPENAI_API_KEY not found in environment or .env file")

        self.client = OpenAI(
            api_key=key,
            max_retries=(
                max_retries
                if max_retries is not None
                else Settings.get_int("CODERAG_EMBED_MAX_RETRIES", DEFAULT_EMBED_MAX_RETRIES)
            ),
            timeout=(
                timeout
                if timeout is not None
                else Settings.get_int("CODERAG_EMBED_TIMEOUT", DEFAULT_EMBED_TIMEOUT)
            ),
        )

    def embed(
        self, texts: Sequence[str], token: Optional[CancelToken] = None
    ) -> List[List[float]]:
        """
        Generate embeddings for a list of texts.
        Returns: list of embedding vectors (one per text, same order)

        Raises EmbeddingError on empty input, transport failure, a non-success
        status, or a response that does not carry exactly one vector per text.
        """
        if not texts:
            raise EmbeddingError("no texts provided for embedding generation")
        check_cancelled(token, "embed")

        client = self.client
        remaining = token.remaining() if token is not None else None
        if remaining is not None:
            # never wait on the network past the caller's deadline
            client = client.with_options(timeout=remaining)

        try:
            response = client.embeddings.create(model=self.model, input=list(texts))
        except openai.APIStatusError as exc:
            raise EmbeddingError(
                f"embedding request failed with status code: {exc.status_code}"
            ) from exc
        except openai.APIConnectionError as exc:
            # a timeout caused by the token's deadline is a cancellation
            check_cancelled(token, "embed")
            raise EmbeddingError(f"failed to make embedding request: {exc}") from exc
        except openai.OpenAIError as exc:
            raise EmbeddingError(f"embedding request failed: {exc}") from exc

        embeddings = self._unpack(response, len(texts))

        usage = getattr(response, "usage", None)
        if usage is not None:
            self.prompt_tokens += int(getattr(usage, "prompt_tokens", 0) or 0)
            self.total_tokens += int(getattr(usage, "total_tokens", 0) or 0)
            SimpleLogger.debug(
                f"Embedder: {len(texts)} text(s), model={self.model}, "
                f"prompt_tokens={getattr(usage, 'prompt_tokens', '?')}"
            )
        return embeddings

    @staticmethod
    def _unpack(response: Any, expected: int) -> List[List[float]]:
        data = getattr(response, "data", None)
        if data is None:
            raise EmbeddingError("failed to decode embedding response: no data")
        if len(data) != expected:
            raise EmbeddingError(
                f"failed to decode embedding response: expected {expected} vectors, got {len(data)}"
            )

        # The API tags each vector with the position of its input
        by_index = {}
        for item in data:
            idx = getattr(item, "index", None)
            vec = getattr(item, "embedding", None)
            if not isinstance(idx, int) or not 0 <= idx < expected or idx in by_index:
                raise EmbeddingError(f"failed to decode embedding response: bad index {idx!r}")
            if not vec:
                raise EmbeddingError(f"failed to decode embedding response: empty vector at {idx}")
            by_index[idx] = [float(x) for x in vec]

        return [by_index[i] for i in range(expected)]
