"""
Taste Profile Builder
=====================

Turns raw listening history into a single weighted taste profile.

Weighting:
    track weight = tier weight x (50 - rank) / 50

    tier weights: short term 3, recently played 2.5, medium term 2, long term 1

    Rank is the 0-based position within a tier, so the provider's own
    ordering decides intra-tier decay. Genres are counted across the three
    top-artist tiers with integer weights 3 / 2 / 1.

Audio features are weighted means over the tracks that have a descriptor;
tracks without one are skipped without changing anyone else's weight.
Average popularity is an unweighted mean over the same tracks.
"""

from collections import Counter
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Tuple

import numpy as np

from .config import (
    TIME_RANGES,
    HISTORY_LIMIT,
    TRACK_TIER_WEIGHTS,
    GENRE_TIER_WEIGHTS,
    PROFILE_FEATURES,
    RANGE_FEATURES,
    TOP_GENRES_LIMIT,
    TOP_SEEDS_LIMIT,
    HIGH_ENERGY_THRESHOLD,
    ACOUSTIC_THRESHOLD,
)
from .history import RawHistory


@dataclass
class ListeningPatterns:
    """Coarse listening habits derived from the averaged features."""
    prefers_major_key: bool = False
    prefers_high_energy: bool = False
    prefers_acoustic: bool = False
    avg_popularity: float = 0.0


@dataclass
class TasteProfile:
    """Weighted summary of a user's listening history."""
    # (genre, weighted count), descending
    top_genres: List[Tuple[str, float]] = field(default_factory=list)

    avg_features: Dict[str, float] = field(
        default_factory=lambda: {f: 0.0 for f in PROFILE_FEATURES}
    )
    feature_ranges: Dict[str, Tuple[float, float]] = field(
        default_factory=lambda: {f: (0.0, 0.0) for f in RANGE_FEATURES}
    )

    # Recommendation seeds (short-term favorites)
    top_artist_ids: List[str] = field(default_factory=list)
    top_track_ids: List[str] = field(default_factory=list)

    listening_patterns: ListeningPatterns = field(default_factory=ListeningPatterns)

    # False when no listened track had audio features
    has_audio_features: bool = False

    def top_genre_names(self) -> List[str]:
        return [genre for genre, _ in self.top_genres]

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "top_genres": [{"genre": g, "count": c} for g, c in self.top_genres],
            "avg_features": {k: round(v, 4) for k, v in self.avg_features.items()},
            "feature_ranges": {
                k: {"min": lo, "max": hi} for k, (lo, hi) in self.feature_ranges.items()
            },
            "top_artist_ids": self.top_artist_ids,
            "top_track_ids": self.top_track_ids,
            "listening_patterns": asdict(self.listening_patterns),
            "has_audio_features": self.has_audio_features,
        }


def rank_weight(tier_weight: float, rank: int, horizon: int = HISTORY_LIMIT) -> float:
    """Weight of the item at 0-based rank within a tier."""
    return tier_weight * max(horizon - rank, 0) / horizon


def weighted_tracks(history: RawHistory) -> List[Tuple[Dict, float]]:
    """Every history track paired with its tier- and rank-scaled weight."""
    tiers = [
        (history.tracks("short_term"), TRACK_TIER_WEIGHTS["short_term"]),
        (history.recently_played, TRACK_TIER_WEIGHTS["recently_played"]),
        (history.tracks("medium_term"), TRACK_TIER_WEIGHTS["medium_term"]),
        (history.tracks("long_term"), TRACK_TIER_WEIGHTS["long_term"]),
    ]

    weighted = []
    for tracks, tier_weight in tiers:
        for rank, track in enumerate(tracks):
            weighted.append((track, rank_weight(tier_weight, rank)))
    return weighted


def count_genres(history: RawHistory, limit: int = TOP_GENRES_LIMIT) -> List[Tuple[str, float]]:
    """
    Weighted genre counts across the top-artist tiers.

    Returns:
        (genre, count) pairs sorted descending, ties in first-seen order
    """
    genre_counts: Counter = Counter()
    for time_range in TIME_RANGES:
        weight = GENRE_TIER_WEIGHTS[time_range]
        for artist in history.artists(time_range):
            for genre in artist.get('genres', []):
                genre_counts[genre] += weight

    return genre_counts.most_common(limit)


def build_taste_profile(history: RawHistory) -> TasteProfile:
    """
    Build a taste profile from raw history.

    Args:
        history: Aggregated listening history

    Returns:
        TasteProfile; a zero profile when no track has audio features
    """
    profile = TasteProfile(
        top_genres=count_genres(history),
        top_artist_ids=[a['id'] for a in history.artists("short_term")[:TOP_SEEDS_LIMIT]],
        top_track_ids=[t['id'] for t in history.tracks("short_term")[:TOP_SEEDS_LIMIT]],
    )

    weights = []
    rows = []
    popularities = []
    major_count = 0
    minor_count = 0

    for track, weight in weighted_tracks(history):
        descriptor = history.descriptor(track.get('id'))
        if descriptor is None:
            continue

        weights.append(weight)
        rows.append([descriptor.get(f) for f in PROFILE_FEATURES])
        popularities.append(track.get('popularity', 0) or 0)

        if descriptor.is_major:
            major_count += 1
        else:
            minor_count += 1

    weights_arr = np.asarray(weights, dtype=float)
    if not rows or weights_arr.sum() <= 0:
        return profile

    matrix = np.asarray(rows, dtype=float)
    averages = np.average(matrix, axis=0, weights=weights_arr)
    profile.avg_features = {
        feature: float(value) for feature, value in zip(PROFILE_FEATURES, averages)
    }

    for feature in RANGE_FEATURES:
        column = matrix[:, PROFILE_FEATURES.index(feature)]
        profile.feature_ranges[feature] = (float(column.min()), float(column.max()))

    profile.listening_patterns = ListeningPatterns(
        prefers_major_key=major_count > minor_count,
        prefers_high_energy=profile.avg_features["energy"] > HIGH_ENERGY_THRESHOLD,
        prefers_acoustic=profile.avg_features["acousticness"] > ACOUSTIC_THRESHOLD,
        avg_popularity=float(np.mean(popularities)),
    )
    profile.has_audio_features = True

    return profile
