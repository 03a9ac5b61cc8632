import asyncio
import unittest

from moodreel.schemas import Genre, Mood, Movie, Tag, TagSource, TagType, UserProfile
from moodreel.services.mood import MOOD_TO_GENRES, mood_genre_ids
from moodreel.services.recommendations import (
    auto_tags_for_profile,
    derive_mood_candidates,
    derive_recommendations,
    derive_tags,
    genre_ids_from_tags,
    recommend_for_profile,
    similar_to_liked,
)

GENRES = [Genre(id=18, name="Drama"), Genre(id=35, name="Comedy"), Genre(id=28, name="Action")]


def movie(movie_id, genres=None):
    return Movie(id=movie_id, title=f"Movie {movie_id}", genre_ids=genres or [])


class FakeCatalog:
    def __init__(self, popular=None, discover=None, genres=None, recommendations=None):
        self.popular = popular or []
        self.discover = discover or []
        self.genres = genres or []
        self.recommendations = recommendations or {}
        self.calls = []

    async def fetch_popular(self, page=1):
        self.calls.append(("popular", page))
        return list(self.popular)

    async def fetch_by_genres(self, genre_ids=None, page=1):
        self.calls.append(("discover", list(genre_ids or []), page))
        return list(self.discover)

    async def fetch_genres(self):
        self.calls.append(("genres",))
        return list(self.genres)

    async def fetch_recommendations_for(self, movie_id):
        self.calls.append(("recommendations", movie_id))
        return list(self.recommendations.get(movie_id, []))


class TestDeriveTags(unittest.TestCase):
    def test_empty_input(self):
        self.assertEqual(derive_tags([], GENRES), [])

    def test_genre_listed_twice_counts_once_per_movie(self):
        movies = [
            Movie.model_validate({"id": 1, "title": "A", "genre_ids": [35, 35]}),
            movie(2, [18]),
            movie(3, [18]),
        ]
        tags = derive_tags(movies, GENRES)
        # Drama (2 movies) outranks Comedy (1 movie, listed twice)
        self.assertEqual([t.id for t in tags], ["genre-18", "genre-35"])

    def test_orders_by_frequency_with_stable_ties(self):
        movies = [movie(1, [35, 28]), movie(2, [18, 28]), movie(3, [28]), movie(4, [18])]
        tags = derive_tags(movies, GENRES)
        self.assertEqual([t.id for t in tags], ["genre-28", "genre-18", "genre-35"])

        movies = [movie(1, [18, 99]), movie(2, [18]), movie(3, [18]), movie(4, [35])]
        ranked = [t.id for t in derive_tags(movies, GENRES)]
        self.assertEqual(ranked[0], "genre-18")
        # 99 was seen before 35, both once
        self.assertEqual(ranked[1:], ["genre-99", "genre-35"])

    def test_unknown_genre_and_tag_shape(self):
        tags = derive_tags([movie(1, [18, 12345])], GENRES)
        self.assertEqual(tags[0], Tag(id="genre-18", name="Drama", source=TagSource.AUTO, type=TagType.GENRE))
        self.assertEqual(tags[1].name, "Unknown Genre")
        self.assertEqual(len({t.id for t in tags}), len(tags))

    def test_embedded_genre_records_are_normalized(self):
        detail = Movie.model_validate({"id": 5, "title": "Detail", "genres": [{"id": 35, "name": "Comedy"}]})
        self.assertEqual([t.name for t in derive_tags([detail], GENRES)], ["Comedy"])


class TestGenreIdsFromTags(unittest.TestCase):
    def test_parses_and_drops_invalid(self):
        tags = [
            Tag(id="genre-18", name="Drama"),
            Tag(id="genre-abc", name="Broken"),
            Tag(id="genre-", name="Empty"),
            Tag(id="genre-18", name="Drama again"),
            Tag(id="genre-35", name="Comedy", source=TagSource.AUTO),
        ]
        self.assertEqual(genre_ids_from_tags(tags), [18, 35])

    def test_rejects_suffixes_int_would_accept(self):
        tags = [
            Tag(id="genre-1_8", name="Underscore"),
            Tag(id="genre- 35", name="Space"),
            Tag(id="genre-+28", name="Sign"),
            Tag(id="genre--12", name="Negative"),
            Tag(id="genre-١٨", name="Arabic-Indic digits"),
            Tag(id="genre-99", name="Documentary"),
        ]
        self.assertEqual(genre_ids_from_tags(tags), [99])


class TestMoodCandidates(unittest.TestCase):
    def test_table_covers_every_mood(self):
        self.assertEqual(set(MOOD_TO_GENRES), set(Mood))
        self.assertEqual(mood_genre_ids("sad"), [18, 10749])
        self.assertEqual(mood_genre_ids(Mood.EXCITED), [28, 12, 878])
        self.assertEqual(mood_genre_ids("bored"), [])

    def test_sad_queries_drama_and_romance(self):
        catalog = FakeCatalog(discover=[movie(1)])
        result = asyncio.run(derive_mood_candidates(catalog, "sad", 1))
        self.assertEqual(catalog.calls, [("discover", [18, 10749], 1)])
        self.assertEqual([m.id for m in result], [1])

    def test_unknown_mood_runs_unfiltered(self):
        catalog = FakeCatalog(discover=[movie(1)])
        asyncio.run(derive_mood_candidates(catalog, "bored", 2))
        self.assertEqual(catalog.calls, [("discover", [], 2)])


class TestDeriveRecommendations(unittest.TestCase):
    def test_cold_start_uses_popular_and_filters_disliked(self):
        catalog = FakeCatalog(popular=[movie(4), movie(5), movie(6)])
        result = asyncio.run(derive_recommendations(catalog, [], [], [5], [], page=1))
        self.assertEqual(catalog.calls, [("popular", 1)])
        self.assertEqual([m.id for m in result], [4, 6])

    def test_genre_tags_drive_discover_and_exclusions_apply(self):
        catalog = FakeCatalog(discover=[movie(1), movie(2), movie(3), movie(4)])
        tags = [Tag(id="genre-18", name="Drama"), Tag(id="genre-28", name="Action")]
        result = asyncio.run(derive_recommendations(catalog, tags, [], [2], [4], page=3))
        self.assertEqual(catalog.calls, [("discover", [18, 28], 3)])
        self.assertEqual([m.id for m in result], [1, 3])

    def test_liked_without_tags_runs_unfiltered_discover(self):
        catalog = FakeCatalog(discover=[movie(1), movie(9)])
        result = asyncio.run(derive_recommendations(catalog, [Tag(id="genre-x", name="Bad")], [9], [], []))
        self.assertEqual(catalog.calls, [("discover", [], 1)])
        self.assertEqual([m.id for m in result], [1, 9])

    def test_recommend_for_profile_uses_snapshot(self):
        profile = UserProfile(
            liked_movies=[movie(1)],
            disliked_movies=[movie(2)],
            avoided_movies=[movie(3)],
            tags=[Tag(id="genre-35", name="Comedy")],
        )
        catalog = FakeCatalog(discover=[movie(2), movie(3), movie(7)])
        result = asyncio.run(recommend_for_profile(catalog, profile, page=2))
        self.assertEqual(catalog.calls, [("discover", [35], 2)])
        self.assertEqual([m.id for m in result], [7])


class TestProfileHelpers(unittest.TestCase):
    def test_auto_tags_for_liked_movies(self):
        profile = UserProfile(liked_movies=[movie(1, [18, 35]), movie(2, [18])])
        catalog = FakeCatalog(genres=GENRES)
        tags = asyncio.run(auto_tags_for_profile(catalog, profile))
        self.assertEqual([(t.id, t.name) for t in tags], [("genre-18", "Drama"), ("genre-35", "Comedy")])

    def test_auto_tags_skip_catalog_for_empty_profile(self):
        catalog = FakeCatalog(genres=GENRES)
        self.assertEqual(asyncio.run(auto_tags_for_profile(catalog, UserProfile())), [])
        self.assertEqual(catalog.calls, [])

    def test_similar_to_liked_dedupes_and_excludes(self):
        profile = UserProfile(
            liked_movies=[movie(1), movie(2)],
            disliked_movies=[movie(10)],
        )
        catalog = FakeCatalog(recommendations={
            2: [movie(10), movie(11), movie(1)],
            1: [movie(11), movie(12)],
        })
        result = asyncio.run(similar_to_liked(catalog, profile))
        # Most recently liked first
        self.assertEqual(catalog.calls, [("recommendations", 2), ("recommendations", 1)])
        self.assertEqual([m.id for m in result], [11, 12])


if __name__ == "__main__":
    unittest.main()
