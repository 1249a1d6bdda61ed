"""
Embedding provider for vector-based semantic search.

Wraps the Google GenAI embedding API for batch and single-text embedding
with configurable model, dimensions, and batch size. Any failure from the
underlying client is raised as ``EmbeddingUnavailable``.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from google.genai import Client as GenAIClient
from google.genai.types import HttpOptions

from .config import http_timeout
from .errors import EmbeddingUnavailable


logger = logging.getLogger(__name__)

_DEFAULT_MODEL = "gemini-embedding-001"
_DEFAULT_DIM = 768
_DEFAULT_BATCH_SIZE = 50


class EmbeddingProvider:
    """Generate text embeddings via Google GenAI."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        dim: int | None = None,
        batch_size: int | None = None,
        client: Any | None = None,
    ) -> None:
        self.model = model or os.getenv("SOUNDWAVE_EMBEDDING_MODEL", _DEFAULT_MODEL)
        self.dim = dim or int(os.getenv("SOUNDWAVE_EMBEDDING_DIM", str(_DEFAULT_DIM)))
        self.batch_size = batch_size or int(
            os.getenv("SOUNDWAVE_EMBEDDING_BATCH_SIZE", str(_DEFAULT_BATCH_SIZE))
        )

        if client is not None:
            self._client = client
        else:
            resolved_key = api_key or os.getenv("GOOGLE_API_KEY")
            if resolved_key is None:
                raise ValueError(
                    "GOOGLE_API_KEY not found. "
                    "Provide api_key or set the environment variable."
                )
            # HttpOptions.timeout is in milliseconds.
            self._client = GenAIClient(
                api_key=resolved_key,
                http_options=HttpOptions(timeout=int(http_timeout() * 1000)),
            )

    def embed_texts(
        self,
        texts: list[str],
        *,
        task_type: str = "RETRIEVAL_DOCUMENT",
    ) -> list[list[float]]:
        """Embed a list of texts in batches.

        Returns a list of embedding vectors in the same order as *texts*.
        """
        all_embeddings: list[list[float]] = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start : start + self.batch_size]
            all_embeddings.extend(self._embed(batch, task_type=task_type))
        return all_embeddings

    def embed_document(self, text: str) -> list[float]:
        """Embed the descriptive text stored alongside a song."""
        return self._embed([text], task_type="RETRIEVAL_DOCUMENT")[0]

    def embed_query(self, query: str) -> list[float]:
        """Embed a single query text for retrieval."""
        return self._embed([query], task_type="RETRIEVAL_QUERY")[0]

    def _embed(self, contents: list[str], *, task_type: str) -> list[list[float]]:
        try:
            result = self._client.models.embed_content(
                model=self.model,
                contents=contents,
                config={
                    "task_type": task_type,
                    "output_dimensionality": self.dim,
                },
            )
        except Exception as exc:
            logger.error("Embedding request to %s failed: %s", self.model, exc)
            raise EmbeddingUnavailable(f"Embedding provider failed: {exc}") from exc

        embeddings = getattr(result, "embeddings", None) or []
        if len(embeddings) != len(contents):
            raise EmbeddingUnavailable(
                f"Embedding provider returned {len(embeddings)} vectors "
                f"for {len(contents)} inputs."
            )
        vectors = [list(emb.values or []) for emb in embeddings]
        if any(not vector for vector in vectors):
            raise EmbeddingUnavailable("Embedding provider returned an empty vector.")
        return vectors


class UnconfiguredEmbedder:
    """Stand-in used when no embedding API key is available."""

    def embed_query(self, query: str) -> list[float]:
        raise EmbeddingUnavailable("Embedding provider is not configured (GOOGLE_API_KEY).")

    def embed_document(self, text: str) -> list[float]:
        raise EmbeddingUnavailable("Embedding provider is not configured (GOOGLE_API_KEY).")
