"""
Configuration and constants for the TasteGen playlist generator.
"""
import os
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping

# =============================================================================
# SPOTIFY API CONFIGURATION
# =============================================================================
SPOTIFY_CLIENT_ID = os.environ.get("SPOTIFY_CLIENT_ID", "")
SPOTIFY_CLIENT_SECRET = os.environ.get("SPOTIFY_CLIENT_SECRET", "")
SPOTIFY_REDIRECT_URI = os.environ.get("SPOTIFY_REDIRECT_URI", "http://127.0.0.1:8888/callback")

# Scopes needed to read listening history and write playlists
SPOTIFY_SCOPES = [
    "user-top-read",
    "user-read-recently-played",
    "playlist-modify-public",
    "playlist-modify-private",
]

TOKEN_CACHE_PATH = os.environ.get(
    "TASTEGEN_TOKEN_CACHE",
    os.path.join(os.path.expanduser("~"), ".tastegen_token"),
)

# =============================================================================
# API LIMITS
# =============================================================================
AUDIO_FEATURES_BATCH_SIZE = 100   # ids per audio-features request
PLAYLIST_ADD_BATCH_SIZE = 100     # uris per add-tracks request
SEARCH_PAGE_SIZE = 50             # max items per search page
MAX_SEEDS_PER_TYPE = 5
MAX_RECOMMENDATIONS = 100

# =============================================================================
# LISTENING HISTORY & TASTE PROFILE
# =============================================================================
TIME_RANGES = ["short_term", "medium_term", "long_term"]

# Items fetched per tier; also the rank horizon for weight decay
HISTORY_LIMIT = 50

# Base weight per track tier (recent listening matters more)
TRACK_TIER_WEIGHTS = MappingProxyType({
    "short_term": 3.0,
    "recently_played": 2.5,
    "medium_term": 2.0,
    "long_term": 1.0,
})

# Integer weights for artist genre counting
GENRE_TIER_WEIGHTS = MappingProxyType({
    "short_term": 3,
    "medium_term": 2,
    "long_term": 1,
})

# Descriptors averaged into the taste profile
PROFILE_FEATURES = [
    "danceability",
    "energy",
    "valence",
    "acousticness",
    "instrumentalness",
    "tempo",
    "loudness",
]

# Descriptors with observed min/max tracked
RANGE_FEATURES = ["danceability", "energy", "valence", "tempo"]

TOP_GENRES_LIMIT = 20
TOP_SEEDS_LIMIT = 10

# Listening pattern thresholds
HIGH_ENERGY_THRESHOLD = 0.6
ACOUSTIC_THRESHOLD = 0.4

# =============================================================================
# CACHING CONFIGURATION
# =============================================================================
CACHE_DIR = os.path.join(os.path.expanduser("~"), ".cache", "tastegen")
CACHE_TTL_HOURS = 24  # Cache time-to-live

# =============================================================================
# GENERATION CONFIGURATION
# =============================================================================
@dataclass
class GenerationConfig:
    """Tunables shared by the generation strategies."""
    default_track_count: int = 25

    # Duration fill
    avg_track_minutes: float = 3.5
    max_fill_tracks: int = 100
    fill_batch_size: int = 20

    # Discovery
    discovery_max_popularity: int = 50

    # Blend: targets are pulled halfway towards this neutral value
    blend_neutral: float = 0.6
    blend_max_artist_seeds: int = 2
    blend_max_genre_seeds: int = 2
    blend_genres_per_artist: int = 3

    # Time machine
    time_machine_extra: int = 20  # over-fetch to survive dedup
    min_year: int = 1950
    high_school_start_age: int = 14
    high_school_end_age: int = 18

    # Genre deep dive
    deep_cut_max_popularity: int = 40
    deep_cut_filter_popularity: int = 50
    deep_cut_candidates: int = 100
    popular_min_popularity: int = 50
    genre_hint_count: int = 10


DEFAULT_GENERATION_CONFIG = GenerationConfig()

# =============================================================================
# INTENT PRESETS (immutable; keys are recommendation query parameters)
# =============================================================================
def _frozen(table: Dict[str, Dict[str, float]]) -> Mapping[str, Mapping[str, float]]:
    return MappingProxyType({key: MappingProxyType(dict(values)) for key, values in table.items()})


MOOD_PRESETS = _frozen({
    "happy": {
        "target_valence": 0.8,
        "target_energy": 0.7,
        "target_danceability": 0.65,
    },
    "sad": {
        "target_valence": 0.2,
        "target_energy": 0.3,
        "target_acousticness": 0.6,
    },
    "energetic": {
        "target_energy": 0.9,
        "target_danceability": 0.8,
        "target_valence": 0.7,
    },
    "chill": {
        "target_energy": 0.3,
        "target_danceability": 0.4,
        "target_acousticness": 0.5,
        "target_valence": 0.5,
    },
    "angry": {
        "target_energy": 0.9,
        "target_valence": 0.2,
        "target_danceability": 0.5,
    },
    "romantic": {
        "target_valence": 0.6,
        "target_energy": 0.4,
        "target_acousticness": 0.5,
        "target_danceability": 0.5,
    },
})

ACTIVITY_PRESETS = _frozen({
    "workout": {
        "target_energy": 0.9,
        "target_danceability": 0.75,
        "target_valence": 0.7,
        "target_tempo": 140,
    },
    "focus": {
        "target_energy": 0.4,
        "target_instrumentalness": 0.7,
        "target_valence": 0.5,
        "target_acousticness": 0.3,
    },
    "party": {
        "target_energy": 0.85,
        "target_danceability": 0.9,
        "target_valence": 0.8,
        "min_popularity": 50,
    },
    "sleep": {
        "target_energy": 0.15,
        "target_acousticness": 0.7,
        "target_instrumentalness": 0.5,
        "target_tempo": 70,
    },
    "commute": {
        "target_energy": 0.6,
        "target_valence": 0.6,
        "target_danceability": 0.6,
    },
    "cooking": {
        "target_energy": 0.6,
        "target_valence": 0.7,
        "target_danceability": 0.65,
    },
})

TIME_PRESETS = _frozen({
    "morning": {
        "target_energy": 0.5,
        "target_valence": 0.7,
        "target_acousticness": 0.4,
    },
    "afternoon": {
        "target_energy": 0.65,
        "target_valence": 0.65,
        "target_danceability": 0.6,
    },
    "evening": {
        "target_energy": 0.55,
        "target_valence": 0.55,
        "target_danceability": 0.5,
    },
    "night": {
        "target_energy": 0.35,
        "target_valence": 0.4,
        "target_acousticness": 0.5,
    },
})

MOODS = list(MOOD_PRESETS)
ACTIVITIES = list(ACTIVITY_PRESETS)
TIMES_OF_DAY = list(TIME_PRESETS)
