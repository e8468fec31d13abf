"""Tests for the playlist generation strategies."""

import itertools
from dataclasses import replace

import pytest

from conftest import FakeSpotifyClient, make_artist, make_track
from tastegen.config import DEFAULT_GENERATION_CONFIG, MOOD_PRESETS
from tastegen.exceptions import ResolutionError
from tastegen.strategies import (
    BlendStrategy,
    DiscoveryStrategy,
    GenreDeepDiveStrategy,
    PlaylistRequest,
    StandardStrategy,
    TimeMachineStrategy,
    dedupe_tracks,
    get_strategy,
    resolve_genre,
    trim_to_duration,
)


def fresh_tracks(duration_ms=200000):
    """Provider that returns `limit` never-seen tracks on every call."""
    counter = itertools.count()

    def respond(params):
        return [make_track(f"n{next(counter)}", duration_ms=duration_ms) for _ in range(params["limit"])]

    return respond


def last_query(client):
    return client.calls_to("get_recommendations")[-1][0]


class TestHelpers:
    def test_dedupe_keeps_first_and_updates_seen(self):
        seen = {"x"}
        tracks = [make_track("a"), make_track("x"), make_track("a"), make_track("b")]
        assert [t["id"] for t in dedupe_tracks(tracks, seen)] == ["a", "b"]
        assert seen == {"x", "a", "b"}

    def test_trim_to_duration_stops_once_target_reached(self):
        tracks = [make_track(str(i), duration_ms=100) for i in range(10)]
        assert len(trim_to_duration(tracks, 350)) == 4

    def test_trim_keeps_everything_when_short(self):
        tracks = [make_track("a", duration_ms=100)]
        assert trim_to_duration(tracks, 1000) == tracks


class TestResolveGenre:
    ALLOWED = ["r-n-b", "pop", "rock", "post-rock", "synth-pop", "indie"]

    def test_exact_match_is_case_insensitive(self):
        assert resolve_genre("Indie", self.ALLOWED) == "indie"

    def test_substring_match(self):
        assert resolve_genre("indie rock", ["rock", "indie"]) == "rock"

    def test_token_overlap(self):
        assert resolve_genre("synthwave", self.ALLOWED) == "synth-pop"

    def test_short_tokens_are_ignored(self):
        # "r-n-b" must not match via its one-letter tokens
        assert resolve_genre("synthwave", ["r-n-b", "synth-pop"]) == "synth-pop"
        assert resolve_genre("banjo", ["r-n-b"]) is None

    def test_no_match(self):
        assert resolve_genre("zydeco", self.ALLOWED) is None
        assert resolve_genre("   ", self.ALLOWED) is None


class TestStandardStrategy:
    def test_mood_targets_and_profile_seeds(self, profile, rng):
        client = FakeSpotifyClient(recommendations=[make_track("r1")])
        result = StandardStrategy(client, rng=rng).generate(PlaylistRequest(mood="happy"), profile)

        query = last_query(client)
        for key, value in MOOD_PRESETS["happy"].items():
            assert query[key] == value
        assert query["limit"] == 25
        assert set(query["seed_artists"]) == {"a1", "a2"}
        assert len(query["seed_tracks"]) == 2
        assert set(query["seed_tracks"]) <= {"t1", "t2", "t3"}
        assert [t["id"] for t in result.tracks] == ["r1"]
        assert result.mode == "standard"

    def test_layer_precedence(self, profile, rng):
        client = FakeSpotifyClient()
        request = PlaylistRequest(mood="sad", activity="workout", vibe="happy")
        StandardStrategy(client, rng=rng).generate(request, profile)

        query = last_query(client)
        assert query["target_valence"] == 0.8  # vibe beats mood and activity
        assert query["target_energy"] == 0.9  # activity beats mood
        assert query["target_acousticness"] == 0.6  # only the mood sets it

    def test_unset_targets_fall_back_to_profile(self, profile, rng):
        client = FakeSpotifyClient()
        StandardStrategy(client, rng=rng).generate(PlaylistRequest(), profile)

        query = last_query(client)
        assert query["target_energy"] == pytest.approx(profile.avg_features["energy"])
        assert query["target_valence"] == pytest.approx(profile.avg_features["valence"])
        assert query["target_danceability"] == pytest.approx(profile.avg_features["danceability"])

    def test_no_fallback_without_audio_features(self, empty_profile, rng):
        client = FakeSpotifyClient()
        StandardStrategy(client, rng=rng).generate(PlaylistRequest(mood="chill"), empty_profile)

        query = last_query(client)
        assert query["target_energy"] == 0.3
        assert "target_tempo" not in query
        assert "seed_artists" not in query

    def test_based_on_artist(self, profile, rng):
        client = FakeSpotifyClient(search_results={("artist", "radiohead"): [make_artist("r1", "Radiohead")]})
        StandardStrategy(client, rng=rng).generate(PlaylistRequest(based_on="artist:Radiohead"), profile)

        query = last_query(client)
        assert query["seed_artists"] == ["r1"]
        assert "seed_tracks" not in query

    def test_based_on_track(self, profile, rng):
        client = FakeSpotifyClient(search_results={("track", "creep"): [make_track("c1", "Creep")]})
        StandardStrategy(client, rng=rng).generate(PlaylistRequest(based_on="track:Creep"), profile)

        assert last_query(client)["seed_tracks"] == ["c1"]

    def test_based_on_without_prefix_is_an_artist(self, profile, rng):
        client = FakeSpotifyClient(search_results={("artist", "radiohead"): [make_artist("r1", "Radiohead")]})
        StandardStrategy(client, rng=rng).generate(PlaylistRequest(based_on="Radiohead"), profile)

        assert client.calls_to("search")[0][1] == ["artist"]
        assert last_query(client)["seed_artists"] == ["r1"]

    def test_unresolved_based_on_falls_back_to_profile_seeds(self, profile, rng, capsys):
        client = FakeSpotifyClient()
        StandardStrategy(client, rng=rng).generate(PlaylistRequest(based_on="artist:Nobody"), profile)

        assert set(last_query(client)["seed_artists"]) == {"a1", "a2"}
        assert "No artist found" in capsys.readouterr().out

    def test_discovery_caps_popularity_and_adds_genre(self, profile, rng):
        client = FakeSpotifyClient(genre_seeds=["rock", "indie", "pop"])
        StandardStrategy(client, rng=rng).generate(PlaylistRequest(discover=True), profile)

        query = last_query(client)
        assert query["max_popularity"] == 50
        assert query["seed_genres"] == ["indie"]
        assert len(query["seed_artists"]) == 1
        assert len(query["seed_tracks"]) == 1

    def test_discovery_without_allowed_genre(self, profile, rng):
        client = FakeSpotifyClient(genre_seeds=["polka"])
        StandardStrategy(client, rng=rng).generate(PlaylistRequest(discover=True), profile)

        query = last_query(client)
        assert "seed_genres" not in query
        assert len(query["seed_artists"]) == 2

    def test_discovery_strategy_forces_discover(self, profile, rng):
        client = FakeSpotifyClient(genre_seeds=["indie"])
        result = DiscoveryStrategy(client, rng=rng).generate(PlaylistRequest(mode="discover"), profile)

        assert last_query(client)["max_popularity"] == 50
        assert result.mode == "discover"

    def test_explicit_track_count(self, profile, rng):
        client = FakeSpotifyClient()
        StandardStrategy(client, rng=rng).generate(PlaylistRequest(mood="happy", track_count=40), profile)
        assert last_query(client)["limit"] == 40

    def test_duplicate_recommendations_removed(self, profile, rng):
        client = FakeSpotifyClient(recommendations=[make_track("a"), make_track("a"), make_track("b")])
        result = StandardStrategy(client, rng=rng).generate(PlaylistRequest(), profile)
        assert [t["id"] for t in result.tracks] == ["a", "b"]


class TestDurationFill:
    def test_duration_sets_limit(self, profile, rng):
        client = FakeSpotifyClient(recommendations=fresh_tracks())
        result = StandardStrategy(client, rng=rng).generate(
            PlaylistRequest(activity="focus", duration=10), profile
        )

        # ceil(10 / 3.5) tracks of 3:20 already cover ten minutes
        assert client.calls_to("get_recommendations")[0][0]["limit"] == 3
        assert len(client.calls_to("get_recommendations")) == 1
        assert len(result.tracks) == 3

    def test_fills_then_trims(self, profile, rng):
        client = FakeSpotifyClient(recommendations=fresh_tracks(duration_ms=100000))
        result = StandardStrategy(client, rng=rng).generate(
            PlaylistRequest(activity="focus", duration=20), profile
        )

        calls = client.calls_to("get_recommendations")
        assert [args[0]["limit"] for args in calls] == [6, 20]
        assert len(result.tracks) == 12
        assert sum(t["duration_ms"] for t in result.tracks) == 20 * 60 * 1000

    def test_stops_when_provider_returns_nothing_new(self, profile, rng):
        client = FakeSpotifyClient(recommendations=[make_track("a"), make_track("b")])
        result = StandardStrategy(client, rng=rng).generate(
            PlaylistRequest(activity="focus", duration=10), profile
        )

        # One initial request plus exactly one fill attempt
        assert len(client.calls_to("get_recommendations")) == 2
        assert [t["id"] for t in result.tracks] == ["a", "b"]

    def test_stops_at_max_fill_tracks(self, profile, rng):
        config = replace(DEFAULT_GENERATION_CONFIG, max_fill_tracks=30)
        client = FakeSpotifyClient(recommendations=fresh_tracks(duration_ms=1000))
        result = StandardStrategy(client, config=config, rng=rng).generate(
            PlaylistRequest(activity="focus", duration=60), profile
        )

        assert len(client.calls_to("get_recommendations")) == 2
        assert len(result.tracks) == 38

    def test_fill_keeps_targets_and_seeds(self, profile, rng):
        client = FakeSpotifyClient(recommendations=fresh_tracks(duration_ms=100000))
        StandardStrategy(client, rng=rng).generate(
            PlaylistRequest(activity="focus", duration=20), profile
        )

        first, fill = [args[0] for args in client.calls_to("get_recommendations")]
        assert fill["target_instrumentalness"] == first["target_instrumentalness"]
        assert set(fill["seed_artists"]) == set(first["seed_artists"])


class TestBlendStrategy:
    @pytest.fixture()
    def client(self):
        return FakeSpotifyClient(
            search_results={
                ("artist", "björk"): [make_artist("b1", "Björk", ["art pop", "electronic", "icelandic"])],
                ("artist", "radiohead"): [make_artist("r1", "Radiohead", ["alternative rock", "art rock", "rock"])],
            },
            genre_seeds=["rock", "electronic", "indie"],
            recommendations=[make_track("x1"), make_track("x2")],
        )

    def test_blend(self, client, profile, rng):
        request = PlaylistRequest(mode="blend", blend_with=["Björk", "Radiohead"], track_count=30)
        result = BlendStrategy(client, rng=rng).generate(request, profile)

        query = last_query(client)
        assert query["seed_artists"] == ["b1", "r1", "a1"]
        assert query["seed_genres"] == ["rock", "electronic"]
        assert query["limit"] == 30
        assert query["target_energy"] == round((profile.avg_features["energy"] + 0.6) / 2, 3)

        assert result.details["artist_names"] == ["Björk", "Radiohead"]
        assert result.details["shared_genres"] == ["alternative rock", "art rock", "rock"]
        assert len(result.tracks) == 2

    def test_unknown_artists_are_skipped(self, client, profile, rng, capsys):
        request = PlaylistRequest(mode="blend", blend_with=["Nobody", "Björk"])
        result = BlendStrategy(client, rng=rng).generate(request, profile)

        assert result.details["artist_names"] == ["Björk"]
        assert "Could not find artist: Nobody" in capsys.readouterr().out

    def test_no_artists_found(self, client, profile, rng):
        request = PlaylistRequest(mode="blend", blend_with=["Nobody", "Nothing"])
        with pytest.raises(ResolutionError) as excinfo:
            BlendStrategy(client, rng=rng).generate(request, profile)
        assert excinfo.value.tried == ["Nobody", "Nothing"]
        assert client.calls_to("get_recommendations") == []

    def test_neutral_targets_without_audio_features(self, client, empty_profile, rng):
        request = PlaylistRequest(mode="blend", blend_with=["Radiohead"])
        BlendStrategy(client, rng=rng).generate(request, empty_profile)

        query = last_query(client)
        assert query["target_energy"] == 0.6
        assert query["target_valence"] == 0.6
        assert query["seed_artists"] == ["r1"]


class TestTimeMachineStrategy:
    YEAR_TRACKS = [make_track(f"y{i}", popularity=i) for i in range(60)]

    def test_single_year_takes_most_popular(self, rng):
        client = FakeSpotifyClient(year_tracks={2005: self.YEAR_TRACKS})
        strategy = TimeMachineStrategy(client, rng=rng, current_year=2024)
        result = strategy.generate(PlaylistRequest(mode="timemachine", target_year=2005, track_count=10), None)

        assert client.calls_to("search_tracks_by_year") == [(2005, 30)]
        assert {t["id"] for t in result.tracks} == {f"y{i}" for i in range(20, 30)}
        assert result.details == {"years": [2005], "high_school": False}

    def test_high_school_years(self, rng):
        strategy = TimeMachineStrategy(FakeSpotifyClient(), rng=rng, current_year=2024)
        assert strategy.resolve_years(PlaylistRequest(birth_year=1990)) == [2004, 2005, 2006, 2007, 2008]

    def test_years_clamped_to_current_year(self, rng):
        years = {y: self.YEAR_TRACKS for y in range(2008, 2013)}
        client = FakeSpotifyClient(year_tracks=years)
        strategy = TimeMachineStrategy(client, rng=rng, current_year=2010)
        result = strategy.generate(PlaylistRequest(mode="timemachine", birth_year=1994, track_count=30), None)

        assert [args[0] for args in client.calls_to("search_tracks_by_year")] == [2008, 2009, 2010]
        assert result.details["years"] == [2008, 2009, 2010]
        assert result.details["high_school"] is True
        # Every year returns the same catalogue; no track may repeat
        ids = [t["id"] for t in result.tracks]
        assert len(ids) == len(set(ids)) == 30

    def test_birth_year_too_early(self, rng):
        strategy = TimeMachineStrategy(FakeSpotifyClient(), rng=rng, current_year=2024)
        with pytest.raises(ResolutionError):
            strategy.generate(PlaylistRequest(mode="timemachine", birth_year=1800), None)

    def test_future_year(self, rng):
        strategy = TimeMachineStrategy(FakeSpotifyClient(), rng=rng, current_year=2024)
        with pytest.raises(ResolutionError):
            strategy.resolve_years(PlaylistRequest(target_year=2999))

    def test_year_required(self, rng):
        with pytest.raises(ResolutionError):
            TimeMachineStrategy(FakeSpotifyClient(), rng=rng).resolve_years(PlaylistRequest())


class TestGenreDeepDiveStrategy:
    GENRES = ["indie", "pop", "rock", "synth-pop"]

    def test_unknown_genre(self, profile, rng):
        client = FakeSpotifyClient(genre_seeds=self.GENRES)
        with pytest.raises(ResolutionError) as excinfo:
            GenreDeepDiveStrategy(client, rng=rng).generate(PlaylistRequest(mode="genre", genre="zydeco"), profile)
        assert excinfo.value.available == self.GENRES
        assert "zydeco" in str(excinfo.value)

    def test_deep_cuts_filtered_and_sorted(self, profile, rng):
        responses = iter([
            [make_track("p45", popularity=45), make_track("p10", popularity=10),
             make_track("p30", popularity=30), make_track("p70", popularity=70)],
            [make_track("p10", popularity=10), make_track("p48", popularity=48)],
        ])
        client = FakeSpotifyClient(genre_seeds=self.GENRES, recommendations=lambda params: next(responses))
        result = GenreDeepDiveStrategy(client, rng=rng).generate(
            PlaylistRequest(mode="genre", genre="synthwave", track_count=5), profile
        )

        first, relaxed = [args[0] for args in client.calls_to("get_recommendations")]
        assert first["seed_genres"] == ["synth-pop"]
        assert first["max_popularity"] == 40
        assert first["limit"] == 100
        assert first["seed_artists"] == ["a1"]
        assert relaxed["max_popularity"] == 50
        assert "seed_artists" not in relaxed

        assert [t["id"] for t in result.tracks] == ["p10", "p30", "p45", "p48"]
        assert result.details == {"genre": "synth-pop", "deep_cuts": True}

    def test_no_supplement_when_enough_cuts(self, profile, rng):
        tracks = [make_track(f"c{i}", popularity=i) for i in range(10)]
        client = FakeSpotifyClient(genre_seeds=self.GENRES, recommendations=tracks)
        result = GenreDeepDiveStrategy(client, rng=rng).generate(
            PlaylistRequest(mode="genre", genre="indie", track_count=5), profile
        )

        assert len(client.calls_to("get_recommendations")) == 1
        assert [t["popularity"] for t in result.tracks] == [0, 1, 2, 3, 4]

    def test_popular_mode(self, profile, rng):
        tracks = [make_track("a", popularity=55), make_track("b", popularity=90), make_track("c", popularity=70)]
        client = FakeSpotifyClient(genre_seeds=self.GENRES, recommendations=tracks)
        result = GenreDeepDiveStrategy(client, rng=rng).generate(
            PlaylistRequest(mode="genre", genre="rock", deep_cuts=False, track_count=2), profile
        )

        query = last_query(client)
        assert query["min_popularity"] == 50
        assert query["limit"] == 2
        assert [t["id"] for t in result.tracks] == ["b", "c"]
        assert result.details["deep_cuts"] is False


class TestRegistry:
    def test_get_strategy(self):
        client = FakeSpotifyClient()
        assert isinstance(get_strategy("blend", client), BlendStrategy)
        assert isinstance(get_strategy("genre", client), GenreDeepDiveStrategy)

    def test_unknown_mode(self):
        with pytest.raises(ValueError, match="Unknown playlist mode"):
            get_strategy("karaoke", FakeSpotifyClient())
