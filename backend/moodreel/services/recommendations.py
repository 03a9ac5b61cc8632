"""
recommendations.py

Stateless derivations over a profile snapshot plus catalog data:
- auto tags from the genre frequency of a movie list
- mood-driven discovery
- tag/exclusion-driven discovery with a popular-movies cold start

``catalog`` is anything exposing the TMDBClient coroutine methods. The
catalog already degrades failures to empty results, so nothing here raises
on a remote error.
"""
import logging
from collections import Counter
from typing import Iterable, List, Optional, Sequence, Union

from moodreel.schemas import Genre, Movie, Mood, Tag, TagSource, TagType, UserProfile
from moodreel.services.mood import mood_genre_ids

logger = logging.getLogger(__name__)

GENRE_TAG_PREFIX = "genre-"
UNKNOWN_GENRE = "Unknown Genre"


def genre_tag_id(genre_id: int) -> str:
    return f"{GENRE_TAG_PREFIX}{genre_id}"


def derive_tags(movies: Sequence[Movie], genres: Sequence[Genre]) -> List[Tag]:
    """Build auto genre tags, most frequent genre first.

    Each movie counts each of its genres once. Ties keep first-seen order.
    """
    counts = Counter()
    for movie in movies:
        for genre_id in dict.fromkeys(movie.genre_ids):
            counts[genre_id] += 1

    # Counter preserves insertion order and sorted() is stable
    ranked = sorted(counts, key=lambda gid: counts[gid], reverse=True)
    names = {g.id: g.name for g in genres}
    return [
        Tag(
            id=genre_tag_id(gid),
            name=names.get(gid) or UNKNOWN_GENRE,
            source=TagSource.AUTO,
            type=TagType.GENRE,
        )
        for gid in ranked
    ]


def genre_ids_from_tags(tags: Iterable[Tag]) -> List[int]:
    """Numeric genre ids from genre tags; unparseable ids are dropped."""
    ids = []
    for tag in tags:
        if tag.type != TagType.GENRE:
            continue
        suffix = tag.id[len(GENRE_TAG_PREFIX):] if tag.id.startswith(GENRE_TAG_PREFIX) else tag.id
        # Plain ASCII digits only
        if not (suffix.isascii() and suffix.isdigit()):
            logger.debug(f"Ignoring genre tag with non-numeric id {tag.id!r}")
            continue
        genre_id = int(suffix)
        if genre_id not in ids:
            ids.append(genre_id)
    return ids


async def derive_mood_candidates(catalog, mood: Union[Mood, str, None], page: int = 1) -> List[Movie]:
    """Popular movies in the mood's genres. Unknown moods run unfiltered."""
    genre_ids = mood_genre_ids(mood)
    if not genre_ids:
        logger.info(f"No genre mapping for mood {mood!r}, using unfiltered discovery")
    return await catalog.fetch_by_genres(genre_ids, page=page)


async def derive_recommendations(
    catalog,
    tags: Sequence[Tag],
    liked_ids: Sequence[int],
    disliked_ids: Sequence[int],
    avoided_ids: Sequence[int] = (),
    page: int = 1,
) -> List[Movie]:
    genre_ids = genre_ids_from_tags(tags)

    if not genre_ids and not liked_ids:
        # Cold start: nothing to personalize on yet
        results = await catalog.fetch_popular(page=page)
    else:
        results = await catalog.fetch_by_genres(genre_ids or None, page=page)

    # TMDB knows nothing about per-user exclusions, so always filter here
    excluded = set(disliked_ids) | set(avoided_ids)
    return [m for m in results if m.id not in excluded]


async def recommend_for_profile(catalog, profile: UserProfile, page: int = 1) -> List[Movie]:
    return await derive_recommendations(
        catalog,
        profile.tags,
        profile.liked_ids,
        profile.disliked_ids,
        profile.avoided_ids,
        page=page,
    )


async def auto_tags_for_profile(catalog, profile: UserProfile, movies: Optional[Sequence[Movie]] = None) -> List[Tag]:
    """Auto tags for the liked movies (or an explicit movie list)."""
    source = profile.liked_movies if movies is None else movies
    if not source:
        return []
    genres = await catalog.fetch_genres()
    return derive_tags(source, genres)


async def similar_to_liked(catalog, profile: UserProfile, limit: int = 20, per_movie: int = 5) -> List[Movie]:
    """Merge TMDB's per-movie recommendations for the most recently liked movies.

    Anything already in one of the preference sets is left out.
    """
    seen = set(profile.liked_ids) | set(profile.disliked_ids) | set(profile.avoided_ids)
    merged: List[Movie] = []
    for liked in reversed(profile.liked_movies[-per_movie:]):
        for movie in await catalog.fetch_recommendations_for(liked.id):
            if movie.id in seen:
                continue
            seen.add(movie.id)
            merged.append(movie)
            if len(merged) >= limit:
                return merged
    return merged
