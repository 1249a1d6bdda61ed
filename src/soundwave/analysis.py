"""
Normalization of lyrics/mood analysis payloads.

The analysis service returns its list-like fields in whatever shape it
feels like: a JSON object keyed by index, a list, a bare string, an empty
object, or nothing at all. Everything downstream works on ``SongAnalysis``
so that search code never has to branch on payload shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .errors import AnalysisFailed


@dataclass(frozen=True)
class SongAnalysis:
    """Fixed-schema view of one analysis response."""

    language: str = "unknown"
    language_code: str = "unknown"
    summary: str = ""
    explicit: bool = False
    keywords: tuple[str, ...] = ()
    moods: tuple[str, ...] = ()
    themes: tuple[str, ...] = ()
    flags: dict[str, Any] = field(default_factory=dict)

    def embedding_text(self) -> str:
        """Text embedded for a song: summary followed by its tags."""
        parts = [self.summary, *self.keywords, *self.moods, *self.themes]
        return " ".join(part.strip() for part in parts if part and part.strip())


def as_string_list(value: Any) -> list[str]:
    """Coerce an object/list/scalar/absent field into a list of strings."""
    if value is None:
        return []
    if isinstance(value, dict):
        items = list(value.values())
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        items = [value]

    result: list[str] = []
    for item in items:
        if item is None:
            continue
        text = item if isinstance(item, str) else str(item)
        text = text.strip()
        if text:
            result.append(text)
    return result


def _as_text(value: Any, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "1", "explicit"}
    return bool(value)


def normalize_analysis(payload: Any) -> SongAnalysis:
    """Build a ``SongAnalysis`` from a raw analysis response."""
    if not isinstance(payload, dict):
        raise AnalysisFailed(
            f"Analysis response must be a JSON object, got {type(payload).__name__}."
        )

    flags = payload.get("flags")
    return SongAnalysis(
        language=_as_text(payload.get("language"), "unknown"),
        language_code=_as_text(payload.get("language-iso"), "unknown"),
        summary=_as_text(payload.get("summary"), ""),
        explicit=_as_bool(payload.get("explicit", False)),
        keywords=tuple(as_string_list(payload.get("keywords"))),
        moods=tuple(as_string_list(payload.get("ddex moods"))),
        themes=tuple(as_string_list(payload.get("ddex themes"))),
        flags=dict(flags) if isinstance(flags, dict) else {},
    )
