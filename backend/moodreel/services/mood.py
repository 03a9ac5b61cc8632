"""
Static mood to TMDB genre mapping.
Order matters: the ids are sent to the discover endpoint as given.
"""
from typing import Dict, List, Union

from moodreel.schemas import Mood

MOOD_TO_GENRES: Dict[Mood, List[int]] = {
    Mood.HAPPY: [35, 10751],            # Comedy, Family
    Mood.SAD: [18, 10749],              # Drama, Romance
    Mood.EXCITED: [28, 12, 878],        # Action, Adventure, Science Fiction
    Mood.RELAXED: [16, 35, 10751],      # Animation, Comedy, Family
    Mood.THOUGHTFUL: [99, 36, 18],      # Documentary, History, Drama
    Mood.TENSE: [27, 53, 9648],         # Horror, Thriller, Mystery
}


def parse_mood(value: Union[Mood, str, None]):
    """Return the Mood for value, or None when it is not a known mood."""
    if isinstance(value, Mood):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Mood(value.strip().lower())
    except ValueError:
        return None


def mood_genre_ids(mood: Union[Mood, str, None]) -> List[int]:
    """Genre ids for a mood; unknown moods map to no genres."""
    parsed = parse_mood(mood)
    if parsed is None:
        return []
    return list(MOOD_TO_GENRES[parsed])
