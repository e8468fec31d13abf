"""
Listening History Aggregation
=============================

Pulls the raw listening signals a taste profile is built from:
1. Top tracks and top artists for the short, medium and long term windows
2. Recently played tracks
3. Audio features for every distinct track seen

The seven history fetches run concurrently; audio features are requested
afterwards in batches of at most 100 ids. This layer does no scoring and no
retries: provider errors propagate to the caller.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .config import (
    TIME_RANGES,
    HISTORY_LIMIT,
    AUDIO_FEATURES_BATCH_SIZE,
)
from .utils import batch_process, unique_ids


@dataclass(frozen=True)
class AudioDescriptor:
    """Audio features of a single track."""
    track_id: str
    danceability: float = 0.0
    energy: float = 0.0
    valence: float = 0.0
    acousticness: float = 0.0
    instrumentalness: float = 0.0
    tempo: float = 0.0
    loudness: float = 0.0
    mode: int = 1  # 1 = major, 0 = minor
    duration_ms: int = 0

    @classmethod
    def from_api(cls, data: Dict) -> "AudioDescriptor":
        """Build a descriptor from a Spotify audio-features record."""
        def number(key: str) -> float:
            value = data.get(key)
            return float(value) if value is not None else 0.0

        return cls(
            track_id=data['id'],
            danceability=number('danceability'),
            energy=number('energy'),
            valence=number('valence'),
            acousticness=number('acousticness'),
            instrumentalness=number('instrumentalness'),
            tempo=number('tempo'),
            loudness=number('loudness'),
            mode=int(data.get('mode') or 0),
            duration_ms=int(data.get('duration_ms') or 0),
        )

    def get(self, feature: str) -> float:
        return getattr(self, feature)

    @property
    def is_major(self) -> bool:
        return self.mode == 1


@dataclass
class RawHistory:
    """Raw listening signals for one invocation."""
    top_tracks: Dict[str, List[Dict]] = field(default_factory=dict)
    top_artists: Dict[str, List[Dict]] = field(default_factory=dict)
    recently_played: List[Dict] = field(default_factory=list)
    audio_features: Dict[str, AudioDescriptor] = field(default_factory=dict)

    def tracks(self, time_range: str) -> List[Dict]:
        return self.top_tracks.get(time_range, [])

    def artists(self, time_range: str) -> List[Dict]:
        return self.top_artists.get(time_range, [])

    def unique_track_ids(self) -> List[str]:
        """All track ids across tiers, deduplicated in first-seen order."""
        all_tracks = []
        for time_range in TIME_RANGES:
            all_tracks.extend(self.tracks(time_range))
        all_tracks.extend(self.recently_played)
        return unique_ids(t.get('id') for t in all_tracks)

    def descriptor(self, track_id: str) -> Optional[AudioDescriptor]:
        return self.audio_features.get(track_id)


def fetch_audio_descriptors(client, track_ids: List[str]) -> Dict[str, AudioDescriptor]:
    """
    Fetch audio descriptors in provider-sized batches.

    Args:
        client: Provider exposing get_audio_features(ids)
        track_ids: Distinct track ids

    Returns:
        Mapping of track id to descriptor; ids without features are dropped
    """
    records = batch_process(track_ids, AUDIO_FEATURES_BATCH_SIZE, client.get_audio_features)

    descriptors = {}
    for record in records:
        if record and record.get('id'):
            descriptors[record['id']] = AudioDescriptor.from_api(record)
    return descriptors


def gather_listening_history(client, limit: int = HISTORY_LIMIT) -> RawHistory:
    """
    Gather the user's listening history.

    Args:
        client: Provider with get_top_items, get_recently_played and
            get_audio_features
        limit: Items per tier

    Returns:
        RawHistory with every tier and the audio descriptor map
    """
    with ThreadPoolExecutor(max_workers=2 * len(TIME_RANGES) + 1) as executor:
        track_futures = {
            time_range: executor.submit(client.get_top_items, "tracks", time_range, limit)
            for time_range in TIME_RANGES
        }
        artist_futures = {
            time_range: executor.submit(client.get_top_items, "artists", time_range, limit)
            for time_range in TIME_RANGES
        }
        recent_future = executor.submit(client.get_recently_played, limit)

        # .result() re-raises the first provider failure
        history = RawHistory(
            top_tracks={tr: f.result() for tr, f in track_futures.items()},
            top_artists={tr: f.result() for tr, f in artist_futures.items()},
            recently_played=[
                item['track'] for item in recent_future.result()
                if item and item.get('track')
            ],
        )

    history.audio_features = fetch_audio_descriptors(client, history.unique_track_ids())
    return history
