"""
schemas.py

Pydantic schemas for Movie, Genre, Tag, Mood and UserProfile.

TMDB hands movies back in two shapes: list endpoints carry ``genre_ids`` while
the detail endpoint embeds ``genres: [{id, name}]``. Both are folded into
``Movie.genre_ids`` on validation so nothing downstream branches on the shape.
"""
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator


class Mood(str, Enum):
    HAPPY = "happy"
    SAD = "sad"
    EXCITED = "excited"
    RELAXED = "relaxed"
    THOUGHTFUL = "thoughtful"
    TENSE = "tense"


class TagSource(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


class TagType(str, Enum):
    GENRE = "genre"


class Genre(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    name: str


class Movie(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    title: str
    poster_path: Optional[str] = None
    genre_ids: List[int] = Field(default_factory=list)
    overview: Optional[str] = None
    release_date: Optional[str] = None
    vote_average: Optional[float] = None
    popularity: Optional[float] = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_payload(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        genres = data.pop("genres", None)
        if data.get("genre_ids") is None:
            ids = []
            for g in genres or []:
                gid = g.get("id") if isinstance(g, dict) else getattr(g, "id", None)
                if gid is not None:
                    ids.append(gid)
            data["genre_ids"] = ids
        if not data.get("title"):
            data["title"] = data.get("original_title") or ""
        return data

    @field_validator("genre_ids")
    @classmethod
    def _distinct_genres(cls, value: List[int]) -> List[int]:
        # A genre listed twice on one movie still counts once
        return list(dict.fromkeys(value))


class Tag(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    source: TagSource = TagSource.MANUAL
    type: TagType = TagType.GENRE


PREFERENCE_FIELDS = ("liked_movies", "disliked_movies", "avoided_movies")


class UserProfile(BaseModel):
    """Canonical preference state. Serialized as one JSON blob."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    liked_movies: List[Movie] = Field(default_factory=list, alias="likedMovies")
    disliked_movies: List[Movie] = Field(default_factory=list, alias="dislikedMovies")
    avoided_movies: List[Movie] = Field(default_factory=list, alias="avoidedMovies")
    tags: List[Tag] = Field(default_factory=list)
    current_mood: Optional[Mood] = Field(default=None, alias="currentMood")

    # Restored blobs go through here too. Fields validate in declaration
    # order, so an id keeps its first set: liked, then disliked, then avoided.
    @field_validator("liked_movies", "disliked_movies", "avoided_movies")
    @classmethod
    def _disjoint_movie_sets(cls, value: List[Movie], info: ValidationInfo) -> List[Movie]:
        claimed = set()
        for earlier in PREFERENCE_FIELDS[:PREFERENCE_FIELDS.index(info.field_name)]:
            claimed.update(m.id for m in info.data.get(earlier, []))
        kept = []
        for movie in value:
            if movie.id in claimed:
                continue
            claimed.add(movie.id)
            kept.append(movie)
        return kept

    @field_validator("tags")
    @classmethod
    def _unique_tags(cls, value: List[Tag]) -> List[Tag]:
        seen = set()
        kept = []
        for tag in value:
            if tag.id not in seen:
                seen.add(tag.id)
                kept.append(tag)
        return kept

    @property
    def liked_ids(self) -> List[int]:
        return [m.id for m in self.liked_movies]

    @property
    def disliked_ids(self) -> List[int]:
        return [m.id for m in self.disliked_movies]

    @property
    def avoided_ids(self) -> List[int]:
        return [m.id for m in self.avoided_movies]

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, raw: str) -> "UserProfile":
        return cls.model_validate_json(raw)


# Payloads
class MoodUpdate(BaseModel):
    mood: Mood
