"""
Song search: semantic ranking with substring and recency fallbacks.

Every path is capped at the policy page size, and every result says which
path produced it (``match_kind``). Only semantic hits carry a computed
cosine score; substring and recent hits carry fixed placeholder scores.
"""

from __future__ import annotations

import logging
from typing import Protocol

from ..config import SearchPolicy
from ..errors import EmbeddingUnavailable, MalformedEmbedding
from ..models import MatchResult
from ..storage import SongStore
from .ranker import rank


logger = logging.getLogger(__name__)


class QueryEmbedder(Protocol):
    def embed_query(self, query: str) -> list[float]: ...


class SongSearchEngine:
    """Turn free-text queries into ranked song matches."""

    def __init__(
        self,
        store: SongStore,
        embedding_provider: QueryEmbedder,
        policy: SearchPolicy | None = None,
    ) -> None:
        self.store = store
        self.embedding_provider = embedding_provider
        self.policy = policy or SearchPolicy()

    def search(self, query: str | None) -> list[MatchResult]:
        """Return matches for *query*, falling back to substring then recent."""
        text = (query or "").strip()
        if not text:
            return self._recent()

        results = self._semantic(text)
        if results:
            logger.info("Query %r: %d semantic matches", text, len(results))
            return results

        results = self._substring(text)
        if results:
            logger.info("Query %r: %d substring matches", text, len(results))
            return results

        logger.info("Query %r: no matches, returning recent songs", text)
        return self._recent()

    def _semantic(self, text: str) -> list[MatchResult]:
        query_embedding = self.embedding_provider.embed_query(text)
        records = self.store.fetch_all_with_embeddings()
        by_id = {record.id: record for record in records}
        try:
            ranked = rank(
                query_embedding,
                [(record.id, record.embedding) for record in records],
            )
        except MalformedEmbedding as exc:
            raise EmbeddingUnavailable(f"Query embedding is unusable: {exc}") from exc

        results: list[MatchResult] = []
        for match in ranked:
            if match.score <= self.policy.semantic_threshold:
                break
            results.append(
                MatchResult.from_record(
                    by_id[match.id],
                    similarity=match.score,
                    match_kind="semantic",
                )
            )
            if len(results) >= self.policy.page_size:
                break
        return results

    def _substring(self, text: str) -> list[MatchResult]:
        records = self.store.fetch_by_substring(text, self.policy.page_size)
        return [
            MatchResult.from_record(
                record,
                similarity=self.policy.substring_score,
                match_kind="substring",
            )
            for record in records[: self.policy.page_size]
        ]

    def _recent(self) -> list[MatchResult]:
        records = self.store.fetch_recent(self.policy.page_size)
        return [
            MatchResult.from_record(
                record,
                similarity=self.policy.recent_score,
                match_kind="recent",
            )
            for record in records[: self.policy.page_size]
        ]
