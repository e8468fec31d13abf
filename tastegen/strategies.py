"""
Generation Strategies
=====================

Each strategy turns a playlist request plus the user's taste profile into an
ordered candidate track list:

1. Standard      - presets / vibe targets blended with the taste profile,
                   optionally filled up to a target duration
2. Discovery     - standard with popularity capped and a genre seed
3. Blend         - the user's taste mixed with named artists
4. Time Machine  - the most popular tracks of one year or the high school years
5. Genre Deep Dive - low-popularity tracks inside one genre

Strategies talk to the provider through the SpotifyClient interface:
search, get_recommendations, get_available_genre_seeds and
search_tracks_by_year. Randomness comes from an injected random.Random so
seed shuffling is reproducible.
"""

import math
import random
import re
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Dict, List, Optional

from .config import DEFAULT_GENERATION_CONFIG, GenerationConfig
from .exceptions import ResolutionError
from .intent import RecommendationParams, merge_layers, parse_vibe, resolve_preset
from .profile import TasteProfile
from .utils import shuffled, total_duration_ms, unique_ids

# Shortest token that counts in fuzzy genre matching
MIN_GENRE_TOKEN_LENGTH = 3


@dataclass
class PlaylistRequest:
    """What the user asked for."""
    mode: str = "standard"
    name: Optional[str] = None
    description: Optional[str] = None
    track_count: Optional[int] = None
    duration: Optional[float] = None  # minutes

    # Standard / discovery
    mood: Optional[str] = None
    activity: Optional[str] = None
    time_of_day: Optional[str] = None
    based_on: Optional[str] = None  # "artist:NAME" or "track:NAME"
    vibe: Optional[str] = None
    discover: bool = False

    public: bool = False

    # Blend
    blend_with: List[str] = field(default_factory=list)

    # Time machine
    birth_year: Optional[int] = None
    target_year: Optional[int] = None

    # Genre deep dive
    genre: Optional[str] = None
    deep_cuts: bool = True


@dataclass
class StrategyResult:
    """Tracks chosen by a strategy plus details used for naming."""
    tracks: List[Dict]
    mode: str
    details: Dict[str, Any] = field(default_factory=dict)


def dedupe_tracks(tracks: List[Dict], seen: Optional[set] = None) -> List[Dict]:
    """
    Drop tracks whose id was already seen.

    Args:
        tracks: Candidate tracks in provider order
        seen: Ids to exclude; updated in place with the kept ids
    """
    seen = seen if seen is not None else set()
    result = []
    for track in tracks:
        track_id = track.get('id')
        if track_id and track_id not in seen:
            seen.add(track_id)
            result.append(track)
    return result


def trim_to_duration(tracks: List[Dict], target_ms: float) -> List[Dict]:
    """Keep tracks in order until the accumulated duration reaches the target."""
    result = []
    accumulated = 0
    for track in tracks:
        if accumulated >= target_ms:
            break
        result.append(track)
        accumulated += track.get('duration_ms', 0) or 0
    return result


def genre_overlap(user_genres: List[str], other_genres: List[str]) -> List[str]:
    """Genres from other_genres that contain, or are contained in, a user genre."""
    overlap = []
    for genre in other_genres:
        if any(ug in genre or genre in ug for ug in user_genres):
            overlap.append(genre)
    return overlap


def _genre_tokens(genre: str) -> List[str]:
    return [t for t in re.split(r"[-\s]+", genre) if len(t) >= MIN_GENRE_TOKEN_LENGTH]


def resolve_genre(requested: str, allowed: List[str]) -> Optional[str]:
    """
    Match a requested genre name against the allowed genre seeds.

    Tries, in order: exact match, substring either way, then token overlap
    (tokens split on hyphens and spaces).

    Returns:
        The allowed genre, or None
    """
    wanted = requested.strip().lower()
    if not wanted:
        return None
    candidates = [(genre, genre.lower()) for genre in allowed if genre]

    for genre, lowered in candidates:
        if lowered == wanted:
            return genre

    for genre, lowered in candidates:
        if wanted in lowered or lowered in wanted:
            return genre

    wanted_tokens = _genre_tokens(wanted)
    for genre, lowered in candidates:
        if any(token in wanted for token in _genre_tokens(lowered)):
            return genre
        if any(token in lowered for token in wanted_tokens):
            return genre

    return None


# =============================================================================
# STRATEGIES
# =============================================================================
class GenerationStrategy:
    """Base class for playlist generation strategies."""

    mode = ""

    def __init__(
        self,
        spotify_client,
        config: GenerationConfig = DEFAULT_GENERATION_CONFIG,
        rng: Optional[random.Random] = None
    ):
        """
        Args:
            spotify_client: Provider (SpotifyClient or a compatible fake)
            config: Generation tunables
            rng: Random source for seed selection and shuffling
        """
        self.spotify = spotify_client
        self.config = config
        self.rng = rng or random.Random()

    def generate(self, request: PlaylistRequest, profile: TasteProfile) -> StrategyResult:
        raise NotImplementedError

    def _track_count(self, request: PlaylistRequest) -> int:
        return request.track_count or self.config.default_track_count

    def _search_first(self, query: str, kind: str) -> Optional[Dict]:
        """Best search match of one kind ("artist" or "track")."""
        results = self.spotify.search(query, [kind], 1)
        items = results.get(f"{kind}s", [])
        return items[0] if items else None


class StandardStrategy(GenerationStrategy):
    """
    Preset and vibe targets personalized with the taste profile.

    Layers, in increasing precedence: mood, activity, time of day, vibe. Seeds
    come from based_on when given, else from the user's short-term favorites.
    """

    mode = "standard"

    def build_params(self, request: PlaylistRequest, profile: TasteProfile) -> RecommendationParams:
        params = RecommendationParams(limit=self._track_count(request))

        layers = []
        if request.mood:
            layers.append(resolve_preset("mood", request.mood))
        if request.activity:
            layers.append(resolve_preset("activity", request.activity))
        if request.time_of_day:
            layers.append(resolve_preset("time", request.time_of_day))
        if request.vibe:
            layers.append(parse_vibe(request.vibe))
        params.apply(merge_layers(*layers))

        if request.based_on:
            self._apply_based_on(params, request.based_on)

        if not params.has_seeds():
            params.seed_artists = self.rng.sample(
                profile.top_artist_ids, min(2, len(profile.top_artist_ids))
            )
            params.seed_tracks = self.rng.sample(
                profile.top_track_ids, min(2, len(profile.top_track_ids))
            )

        if request.discover:
            self._apply_discovery(params, profile)

        # Unset core targets fall back to the user's own averages
        if profile.has_audio_features:
            for feature in ("energy", "valence", "danceability"):
                key = f"target_{feature}"
                if getattr(params, key) is None:
                    setattr(params, key, profile.avg_features[feature])

        if request.duration and not request.track_count:
            params.limit = math.ceil(request.duration / self.config.avg_track_minutes)

        return params

    def _apply_based_on(self, params: RecommendationParams, based_on: str):
        kind, sep, name = based_on.partition(":")
        if not sep:
            kind, name = "artist", based_on
        kind = kind.strip().lower()
        name = name.strip()

        if kind not in ("artist", "track") or not name:
            print(f"   ⚠️  Ignoring unrecognized seed '{based_on}' (use artist:NAME or track:NAME)")
            return

        match = self._search_first(name, kind)
        if match is None:
            print(f"   ⚠️  No {kind} found for '{name}', using your top picks instead")
            return

        if kind == "artist":
            params.seed_artists = [match['id']]
        else:
            params.seed_tracks = [match['id']]

    def _apply_discovery(self, params: RecommendationParams, profile: TasteProfile):
        params.max_popularity = self.config.discovery_max_popularity

        if not profile.top_genres:
            return

        allowed = set(self.spotify.get_available_genre_seeds())
        matching = next((g for g in profile.top_genre_names() if g in allowed), None)
        if matching:
            params.seed_genres = [matching]
            # Leave room for the genre: one artist and one track seed
            if params.seed_artists is not None:
                params.seed_artists = params.seed_artists[:1]
            if params.seed_tracks is not None:
                params.seed_tracks = params.seed_tracks[:1]

    def generate(self, request: PlaylistRequest, profile: TasteProfile) -> StrategyResult:
        params = self.build_params(request, profile)

        print("  → Requesting recommendations...")
        tracks = dedupe_tracks(self.spotify.get_recommendations(params.to_query()))

        if request.duration:
            tracks = self.fill_duration(params, tracks, request.duration)

        return StrategyResult(tracks=tracks, mode=self.mode)

    def fill_duration(
        self,
        params: RecommendationParams,
        tracks: List[Dict],
        minutes: float
    ) -> List[Dict]:
        """
        Re-query until the tracks cover the requested duration, then trim.

        Stops at the target duration, at max_fill_tracks, or as soon as an
        iteration brings no new tracks.
        """
        target_ms = minutes * 60 * 1000
        tracks = list(tracks)
        seen = {t['id'] for t in tracks}

        while total_duration_ms(tracks) < target_ms and len(tracks) < self.config.max_fill_tracks:
            # Reorder seeds so the provider varies its picks
            if params.seed_artists:
                params.seed_artists = shuffled(params.seed_artists, self.rng)
            if params.seed_tracks:
                params.seed_tracks = shuffled(params.seed_tracks, self.rng)

            more = self.spotify.get_recommendations(
                params.copy(limit=self.config.fill_batch_size).to_query()
            )
            new_tracks = dedupe_tracks(more, seen)
            if not new_tracks:
                break
            tracks.extend(new_tracks)
            print(f"  → Filled to {len(tracks)} tracks")

        return trim_to_duration(tracks, target_ms)


class DiscoveryStrategy(StandardStrategy):
    """Standard generation with discovery forced on."""

    mode = "discover"

    def generate(self, request: PlaylistRequest, profile: TasteProfile) -> StrategyResult:
        result = super().generate(replace(request, discover=True), profile)
        result.mode = self.mode
        return result


class BlendStrategy(GenerationStrategy):
    """Blend the user's taste with a set of named artists."""

    mode = "blend"

    def generate(self, request: PlaylistRequest, profile: TasteProfile) -> StrategyResult:
        print("  → Looking up blend artists...")
        found = []
        for name in request.blend_with:
            artist = self._search_first(name, "artist")
            if artist is None:
                print(f"   ⚠️  Could not find artist: {name}")
                continue
            found.append(artist)

        if not found:
            raise ResolutionError(
                f"Could not find any of these artists: {', '.join(request.blend_with) or '(none given)'}",
                tried=request.blend_with,
            )

        per_artist = self.config.blend_genres_per_artist
        blend_genres = unique_ids(
            genre for artist in found for genre in artist.get('genres', [])[:per_artist]
        )
        overlap = genre_overlap(profile.top_genre_names(), blend_genres)

        allowed = set(self.spotify.get_available_genre_seeds())
        seed_genres = [
            g for g in unique_ids(overlap + blend_genres) if g in allowed
        ][:self.config.blend_max_genre_seeds]

        seed_artists = [a['id'] for a in found[:self.config.blend_max_artist_seeds]]
        seed_artists += profile.top_artist_ids[:1]

        params = RecommendationParams(
            seed_artists=seed_artists,
            seed_genres=seed_genres or None,
            limit=self._track_count(request),
        )

        neutral = self.config.blend_neutral
        for feature in ("energy", "valence", "danceability"):
            if profile.has_audio_features:
                value = (profile.avg_features[feature] + neutral) / 2
            else:
                value = neutral
            setattr(params, f"target_{feature}", round(value, 3))

        print("  → Requesting blended recommendations...")
        tracks = dedupe_tracks(self.spotify.get_recommendations(params.to_query()))

        return StrategyResult(
            tracks=tracks,
            mode=self.mode,
            details={
                "artist_names": [a.get('name', '') for a in found],
                "shared_genres": overlap,
                "seed_genres": seed_genres,
            },
        )


class TimeMachineStrategy(GenerationStrategy):
    """Popular tracks from a single year or from the user's high school years."""

    mode = "timemachine"

    def __init__(
        self,
        spotify_client,
        config: GenerationConfig = DEFAULT_GENERATION_CONFIG,
        rng: Optional[random.Random] = None,
        current_year: Optional[int] = None
    ):
        super().__init__(spotify_client, config, rng)
        self.current_year = current_year or date.today().year

    def resolve_years(self, request: PlaylistRequest) -> List[int]:
        """Target years, clamped to [min_year, current year]."""
        if request.target_year is not None:
            years = [request.target_year]
        elif request.birth_year is not None:
            start = request.birth_year + self.config.high_school_start_age
            end = request.birth_year + self.config.high_school_end_age
            years = list(range(start, end + 1))
        else:
            raise ResolutionError("Specify either a target year or a birth year")

        valid = [y for y in years if self.config.min_year <= y <= self.current_year]
        if not valid:
            span = str(years[0]) if len(years) == 1 else f"{years[0]}-{years[-1]}"
            raise ResolutionError(
                f"No valid years to search: {span} is outside "
                f"{self.config.min_year}-{self.current_year}",
                tried=[str(y) for y in years],
            )
        return valid

    def generate(self, request: PlaylistRequest, profile: TasteProfile) -> StrategyResult:
        years = self.resolve_years(request)
        count = self._track_count(request)
        per_year = math.ceil(count / len(years))

        chosen: List[Dict] = []
        seen: set = set()
        for year in years:
            print(f"  → Searching {year}...")
            candidates = self.spotify.search_tracks_by_year(
                year, per_year + self.config.time_machine_extra
            )
            fresh = dedupe_tracks(candidates, set(seen))
            fresh.sort(key=lambda t: t.get('popularity', 0) or 0, reverse=True)

            picked = fresh[:per_year]
            seen.update(t['id'] for t in picked)
            chosen.extend(picked)

        # Interleave years instead of presenting them in blocks
        self.rng.shuffle(chosen)

        return StrategyResult(
            tracks=chosen[:count],
            mode=self.mode,
            details={
                "years": years,
                "high_school": request.target_year is None,
            },
        )


class GenreDeepDiveStrategy(GenerationStrategy):
    """Lesser-known tracks (or the essentials) of a single genre."""

    mode = "genre"

    def generate(self, request: PlaylistRequest, profile: TasteProfile) -> StrategyResult:
        allowed = self.spotify.get_available_genre_seeds()
        genre = resolve_genre(request.genre or "", allowed)
        if genre is None:
            hint = allowed[:self.config.genre_hint_count]
            raise ResolutionError(
                f"Genre '{request.genre}' not found. Try one of: {', '.join(hint)}...",
                tried=[request.genre or ""],
                available=hint,
            )

        count = self._track_count(request)
        if request.deep_cuts:
            tracks = self._deep_cuts(genre, count, profile)
        else:
            tracks = self._essentials(genre, count, profile)

        return StrategyResult(
            tracks=tracks,
            mode=self.mode,
            details={"genre": genre, "deep_cuts": request.deep_cuts},
        )

    def _profile_targets(self, profile: TasteProfile) -> Dict[str, float]:
        if not profile.has_audio_features:
            return {}
        return {
            "target_energy": profile.avg_features["energy"],
            "target_valence": profile.avg_features["valence"],
        }

    def _deep_cuts(self, genre: str, count: int, profile: TasteProfile) -> List[Dict]:
        params = RecommendationParams(
            seed_genres=[genre],
            limit=self.config.deep_cut_candidates,
            max_popularity=self.config.deep_cut_max_popularity,
        )
        params.apply(self._profile_targets(profile))
        if profile.top_artist_ids:
            params.seed_artists = profile.top_artist_ids[:1]

        print(f"  → Digging for deep cuts in {genre}...")
        candidates = dedupe_tracks(self.spotify.get_recommendations(params.to_query()))

        threshold = self.config.deep_cut_filter_popularity
        cuts = [t for t in candidates if (t.get('popularity', 0) or 0) < threshold]
        cuts.sort(key=lambda t: t.get('popularity', 0) or 0)

        if len(cuts) < count:
            print("  → Not enough deep cuts, widening the search...")
            relaxed = RecommendationParams(
                seed_genres=[genre],
                limit=self.config.deep_cut_candidates,
                max_popularity=threshold,
            )
            extra = self.spotify.get_recommendations(relaxed.to_query())
            cuts.extend(dedupe_tracks(extra, {t['id'] for t in cuts}))

        return cuts[:count]

    def _essentials(self, genre: str, count: int, profile: TasteProfile) -> List[Dict]:
        params = RecommendationParams(
            seed_genres=[genre],
            limit=count,
            min_popularity=self.config.popular_min_popularity,
        )
        params.apply(self._profile_targets(profile))

        print(f"  → Fetching popular {genre} tracks...")
        tracks = dedupe_tracks(self.spotify.get_recommendations(params.to_query()))
        tracks.sort(key=lambda t: t.get('popularity', 0) or 0, reverse=True)
        return tracks[:count]


STRATEGIES = {
    StandardStrategy.mode: StandardStrategy,
    DiscoveryStrategy.mode: DiscoveryStrategy,
    BlendStrategy.mode: BlendStrategy,
    TimeMachineStrategy.mode: TimeMachineStrategy,
    GenreDeepDiveStrategy.mode: GenreDeepDiveStrategy,
}


def get_strategy(
    mode: str,
    spotify_client,
    config: GenerationConfig = DEFAULT_GENERATION_CONFIG,
    rng: Optional[random.Random] = None
) -> GenerationStrategy:
    """Instantiate the strategy registered for a mode."""
    if mode not in STRATEGIES:
        raise ValueError(f"Unknown playlist mode '{mode}'. Choose from: {', '.join(STRATEGIES)}")
    return STRATEGIES[mode](spotify_client, config, rng)
