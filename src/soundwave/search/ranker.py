"""
Cosine-similarity ranking over stored song embeddings.

Ranking is an exhaustive O(N*D) scan over every candidate vector with no
index structure. That is fine for a catalogue of a few thousand songs and
is the first thing to replace if the store grows past that.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from ..errors import MalformedEmbedding


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankedMatch:
    """A candidate id with its cosine score."""

    id: str
    score: float


def decode_embedding(raw: Any) -> list[float]:
    """Decode a stored embedding (JSON text or numeric sequence)."""
    value = raw
    if isinstance(raw, (bytes, bytearray)):
        value = raw.decode("utf-8", errors="replace")
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as exc:
            raise MalformedEmbedding(f"Embedding is not valid JSON: {exc}") from exc

    if not isinstance(value, (list, tuple)) or not value:
        raise MalformedEmbedding("Embedding must be a non-empty list of numbers.")

    vector: list[float] = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, (int, float)):
            raise MalformedEmbedding(f"Embedding contains non-numeric value {item!r}.")
        number = float(item)
        if not math.isfinite(number):
            raise MalformedEmbedding("Embedding contains a non-finite value.")
        vector.append(number)
    return vector


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float | None:
    """Return the cosine of the angle between *a* and *b*.

    Returns ``None`` when the score is undefined: mismatched lengths, a
    zero-norm vector, or a non-finite result.
    """
    if len(a) != len(b) or not a:
        return None
    dot = math.fsum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(math.fsum(x * x for x in a))
    norm_b = math.sqrt(math.fsum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return None
    score = dot / (norm_a * norm_b)
    if not math.isfinite(score):
        return None
    # Rounding can push parallel vectors a hair past +/-1.
    return max(-1.0, min(1.0, score))


def rank(
    query: Sequence[float],
    candidates: Iterable[tuple[str, Any]],
) -> list[RankedMatch]:
    """Score candidates against *query*, best first.

    Candidates whose embedding is missing, undecodable, of the wrong
    dimensionality, or zero-norm are left out of the result. Equal scores
    keep their input order.
    """
    query_vector = decode_embedding(query)
    matches: list[RankedMatch] = []
    for candidate_id, raw_vector in candidates:
        if raw_vector is None:
            continue
        try:
            vector = decode_embedding(raw_vector)
        except MalformedEmbedding as exc:
            logger.warning("Skipping song %s with malformed embedding: %s", candidate_id, exc)
            continue
        if len(vector) != len(query_vector):
            logger.warning(
                "Skipping song %s: embedding has %d dimensions, query has %d",
                candidate_id,
                len(vector),
                len(query_vector),
            )
            continue
        score = cosine_similarity(query_vector, vector)
        if score is None:
            continue
        matches.append(RankedMatch(id=candidate_id, score=score))

    matches.sort(key=lambda match: match.score, reverse=True)
    return matches
