"""Test configuration and fixtures."""

import random

import pytest

from tastegen.history import AudioDescriptor, RawHistory
from tastegen.profile import build_taste_profile


def make_track(track_id, name=None, popularity=50, duration_ms=200000, artists=None):
    """Minimal Spotify track object."""
    return {
        "id": track_id,
        "name": name or f"Song {track_id}",
        "uri": f"spotify:track:{track_id}",
        "popularity": popularity,
        "duration_ms": duration_ms,
        "artists": artists if artists is not None else [{"id": "a0", "name": "Artist 0"}],
    }


def make_artist(artist_id, name=None, genres=None):
    return {"id": artist_id, "name": name or f"Artist {artist_id}", "genres": genres or []}


def make_features(track_id, **values):
    """Audio features record with neutral defaults."""
    record = {
        "id": track_id,
        "danceability": 0.5,
        "energy": 0.5,
        "valence": 0.5,
        "acousticness": 0.2,
        "instrumentalness": 0.0,
        "tempo": 120.0,
        "loudness": -6.0,
        "mode": 1,
        "duration_ms": 200000,
    }
    record.update(values)
    return record


class FakeSpotifyClient:
    """
    In-memory provider with scripted responses.

    Every call is recorded in `calls` as (method, args) tuples.
    `recommendations` is either a list returned on every call or a callable
    taking the query dict.
    """

    def __init__(
        self,
        top_tracks=None,
        top_artists=None,
        recently_played=None,
        audio_features=None,
        search_results=None,
        recommendations=None,
        genre_seeds=None,
        year_tracks=None,
        user=None,
    ):
        self.top_tracks = top_tracks or {}
        self.top_artists = top_artists or {}
        self.recently_played = recently_played or []
        self.audio_features = audio_features or {}
        self.search_results = search_results or {}
        self.recommendations = recommendations if recommendations is not None else []
        self.genre_seeds = genre_seeds or []
        self.year_tracks = year_tracks or {}
        self.user = user or {"id": "user1", "display_name": "Test User"}
        self.calls = []

    def _record(self, method, *args):
        self.calls.append((method, args))

    def calls_to(self, method):
        return [args for name, args in self.calls if name == method]

    def get_current_user(self):
        self._record("get_current_user")
        return self.user

    def get_top_items(self, kind, time_range="medium_term", limit=50):
        self._record("get_top_items", kind, time_range, limit)
        source = self.top_tracks if kind == "tracks" else self.top_artists
        return list(source.get(time_range, []))[:limit]

    def get_recently_played(self, limit=50):
        self._record("get_recently_played", limit)
        return [{"track": t, "played_at": "2024-01-01T00:00:00Z"} for t in self.recently_played][:limit]

    def get_audio_features(self, track_ids):
        self._record("get_audio_features", list(track_ids))
        return [self.audio_features.get(tid) for tid in track_ids]

    def search(self, query, types=None, limit=10):
        self._record("search", query, list(types or []), limit)
        results = {}
        for kind in types or ["artist", "track"]:
            results[f"{kind}s"] = list(self.search_results.get((kind, query.lower()), []))[:limit]
        return results

    def get_recommendations(self, params):
        self._record("get_recommendations", dict(params))
        if callable(self.recommendations):
            return self.recommendations(params)
        return list(self.recommendations)

    def get_available_genre_seeds(self):
        self._record("get_available_genre_seeds")
        return list(self.genre_seeds)

    def search_tracks_by_year(self, year, limit=50):
        self._record("search_tracks_by_year", year, limit)
        return list(self.year_tracks.get(year, []))[:limit]

    def create_playlist(self, user_id, name, description="", public=False):
        self._record("create_playlist", user_id, name, description, public)
        return {
            "id": "pl1",
            "external_urls": {"spotify": "https://open.spotify.com/playlist/pl1"},
        }

    def add_tracks_to_playlist(self, playlist_id, uris):
        self._record("add_tracks_to_playlist", playlist_id, list(uris))


@pytest.fixture()
def listening_data():
    """Provider-shaped listening history used by several tests."""
    short = [make_track("t1", popularity=80), make_track("t2", popularity=60), make_track("t3", popularity=40)]
    medium = [make_track("t2", popularity=60), make_track("t4", popularity=30)]
    long_ = [make_track("t5", popularity=20)]
    recent = [make_track("t1", popularity=80), make_track("t6", popularity=10)]

    artists = {
        "short_term": [
            make_artist("a1", "Indie Band", ["indie", "indie-pop"]),
            make_artist("a2", "Rock Band", ["rock"]),
        ],
        "medium_term": [make_artist("a1", "Indie Band", ["indie", "indie-pop"])],
        "long_term": [make_artist("a3", "Jazz Trio", ["jazz"])],
    }

    # t6 has no audio features
    features = {
        "t1": make_features("t1", energy=0.9, danceability=0.8, valence=0.7, acousticness=0.1, tempo=128.0),
        "t2": make_features("t2", energy=0.6, danceability=0.6, valence=0.5, acousticness=0.3, tempo=110.0),
        "t3": make_features("t3", energy=0.4, danceability=0.4, valence=0.3, acousticness=0.6, tempo=90.0, mode=0),
        "t4": make_features("t4", energy=0.7, danceability=0.7, valence=0.8, acousticness=0.2, tempo=100.0),
        "t5": make_features("t5", energy=0.2, danceability=0.3, valence=0.2, acousticness=0.9, tempo=70.0, mode=0),
    }

    return {
        "top_tracks": {"short_term": short, "medium_term": medium, "long_term": long_},
        "top_artists": artists,
        "recently_played": recent,
        "audio_features": features,
    }


@pytest.fixture()
def history(listening_data):
    """RawHistory assembled directly from the listening data."""
    return RawHistory(
        top_tracks=listening_data["top_tracks"],
        top_artists=listening_data["top_artists"],
        recently_played=listening_data["recently_played"],
        audio_features={
            tid: AudioDescriptor.from_api(record)
            for tid, record in listening_data["audio_features"].items()
        },
    )


@pytest.fixture()
def profile(history):
    return build_taste_profile(history)


@pytest.fixture()
def empty_profile():
    """Profile of a user without listening history."""
    return build_taste_profile(RawHistory())


@pytest.fixture()
def rng():
    return random.Random(42)
