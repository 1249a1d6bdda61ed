from datetime import datetime
from typing import Any, Literal, TypeAlias

from pydantic import BaseModel, Field

from .storage import SongRecord

MatchKind: TypeAlias = Literal["semantic", "substring", "recent"]


def audio_url_for(song_id: str) -> str:
    return f"/songs/{song_id}/audio"


class MatchResult(BaseModel):
    """A ranked search hit with its provenance and song metadata"""

    song_id: str = Field(serialization_alias="songId")
    similarity: float = Field(description="Cosine score, or a fixed placeholder for fallback hits")
    match_kind: MatchKind = Field(serialization_alias="matchKind")
    filename: str
    summary: str
    keywords: list[str]
    moods: list[str]
    themes: list[str]
    audio_url: str = Field(serialization_alias="audioUrl")

    @classmethod
    def from_record(
        cls, record: SongRecord, *, similarity: float, match_kind: MatchKind
    ) -> "MatchResult":
        return cls(
            song_id=record.id,
            similarity=similarity,
            match_kind=match_kind,
            filename=record.filename,
            summary=record.summary,
            keywords=list(record.keywords),
            moods=list(record.moods),
            themes=list(record.themes),
            audio_url=audio_url_for(record.id),
        )


class SongView(BaseModel):
    """Public view of a stored song (no embedding)"""

    id: str
    filename: str
    source_url: str = Field(serialization_alias="songUrl")
    language: str
    language_code: str = Field(serialization_alias="languageCode")
    summary: str
    explicit: bool
    keywords: list[str]
    moods: list[str]
    themes: list[str]
    flags: dict[str, Any]
    audio_url: str = Field(serialization_alias="audioUrl")
    created_at: datetime | None = Field(serialization_alias="createdAt")

    @classmethod
    def from_record(cls, record: SongRecord) -> "SongView":
        return cls(
            id=record.id,
            filename=record.filename,
            source_url=record.source_url,
            language=record.language,
            language_code=record.language_code,
            summary=record.summary,
            explicit=record.explicit,
            keywords=list(record.keywords),
            moods=list(record.moods),
            themes=list(record.themes),
            flags=dict(record.flags),
            audio_url=audio_url_for(record.id),
            created_at=record.created_at,
        )


class SearchResponse(BaseModel):
    success: bool = True
    results: list[MatchResult]


class SongListResponse(BaseModel):
    success: bool = True
    total: int
    songs: list[SongView]


class SongResponse(BaseModel):
    success: bool = True
    song: SongView


class UploadResponse(BaseModel):
    success: bool = True
    message: str
    song_id: str = Field(serialization_alias="songId")
    details: dict[str, Any]


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
