"""
Spotify API Client Wrapper
==========================

Handles all interactions with the Spotify Web API needed by TasteGen:
- User authentication (authorization code flow)
- Top items and recently played history
- Audio features retrieval
- Search, recommendations and available genre seeds
- Playlist creation
- Request throttling and caching of immutable data

Errors raised by spotipy are propagated unchanged; token refresh is handled
by spotipy's auth manager.
"""

import os
import threading
import time
from typing import Any, Dict, List, Optional

import spotipy
from spotipy.oauth2 import SpotifyOAuth

from .config import (
    SPOTIFY_CLIENT_ID,
    SPOTIFY_CLIENT_SECRET,
    SPOTIFY_REDIRECT_URI,
    SPOTIFY_SCOPES,
    TOKEN_CACHE_PATH,
    CACHE_DIR,
    CACHE_TTL_HOURS,
    AUDIO_FEATURES_BATCH_SIZE,
    PLAYLIST_ADD_BATCH_SIZE,
    SEARCH_PAGE_SIZE,
    MAX_RECOMMENDATIONS,
)
from .utils import Cache, batch_process


class SpotifyClient:
    """
    Wrapper around Spotipy with throttling and caching.

    Attributes:
        sp: Spotipy client instance
        cache: File cache for immutable responses (None when disabled)
    """

    def __init__(self, use_cache: bool = True, open_browser: bool = True):
        """
        Initialize Spotify client with user credentials.

        Args:
            use_cache: Enable local caching for audio features and genre seeds
            open_browser: Open a browser window for the login flow
        """
        self.cache = Cache(CACHE_DIR, CACHE_TTL_HOURS) if use_cache else None

        # Get credentials from environment at runtime (not import time)
        client_id = os.environ.get("SPOTIFY_CLIENT_ID") or os.environ.get("SPOTIPY_CLIENT_ID") or SPOTIFY_CLIENT_ID
        client_secret = os.environ.get("SPOTIFY_CLIENT_SECRET") or os.environ.get("SPOTIPY_CLIENT_SECRET") or SPOTIFY_CLIENT_SECRET
        redirect_uri = os.environ.get("SPOTIPY_REDIRECT_URI") or SPOTIFY_REDIRECT_URI

        auth_manager = SpotifyOAuth(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
            scope=" ".join(SPOTIFY_SCOPES),
            cache_path=TOKEN_CACHE_PATH,
            open_browser=open_browser,
        )
        self.sp = spotipy.Spotify(auth_manager=auth_manager)

        # Request throttling
        self._last_request_time = 0.0
        self._throttle_lock = threading.Lock()
        self._min_request_interval = 0.05  # 50ms between requests

    def _throttle(self):
        """Ensure minimum time between requests, across threads."""
        with self._throttle_lock:
            elapsed = time.time() - self._last_request_time
            if elapsed < self._min_request_interval:
                time.sleep(self._min_request_interval - elapsed)
            self._last_request_time = time.time()

    def _load_cache(self, key: str) -> Optional[Any]:
        if self.cache is None:
            return None
        return self.cache.get(key)

    def _save_cache(self, key: str, data: Any):
        if self.cache is not None:
            self.cache.set(key, data)

    # =========================================================================
    # USER OPERATIONS
    # =========================================================================

    def get_current_user(self) -> Dict:
        """Fetch the profile of the logged-in user."""
        self._throttle()
        return self.sp.current_user()

    def get_top_items(
        self,
        kind: str,
        time_range: str = "medium_term",
        limit: int = 50
    ) -> List[Dict]:
        """
        Fetch the user's top artists or tracks.

        Args:
            kind: "artists" or "tracks"
            time_range: short_term, medium_term or long_term
            limit: Maximum items (Spotify caps this at 50)

        Returns:
            Items ordered by the provider's affinity ranking
        """
        self._throttle()
        if kind == "artists":
            result = self.sp.current_user_top_artists(limit=limit, time_range=time_range)
        elif kind == "tracks":
            result = self.sp.current_user_top_tracks(limit=limit, time_range=time_range)
        else:
            raise ValueError(f"Unknown top item kind: {kind}")
        return result.get('items', [])

    def get_recently_played(self, limit: int = 50) -> List[Dict]:
        """
        Fetch recently played items.

        Returns:
            List of {"track": ..., "played_at": ...} dictionaries, newest first
        """
        self._throttle()
        result = self.sp.current_user_recently_played(limit=limit)
        return result.get('items', [])

    # =========================================================================
    # TRACK OPERATIONS
    # =========================================================================

    def get_audio_features(self, track_ids: List[str]) -> List[Optional[Dict]]:
        """
        Fetch audio features for one batch of tracks.

        Args:
            track_ids: Up to 100 Spotify track IDs

        Returns:
            List of audio feature dictionaries (None for unavailable)
        """
        if not track_ids:
            return []
        if len(track_ids) > AUDIO_FEATURES_BATCH_SIZE:
            raise ValueError(
                f"At most {AUDIO_FEATURES_BATCH_SIZE} ids per audio features request"
            )

        cache_key = self.cache.make_key("audio_features", sorted(track_ids)) if self.cache else ""
        cached = self._load_cache(cache_key)
        if cached:
            by_id = {f['id']: f for f in cached if f}
            return [by_id.get(tid) for tid in track_ids]

        self._throttle()
        features = self.sp.audio_features(track_ids) or [None] * len(track_ids)

        self._save_cache(cache_key, features)
        return features

    def search_tracks_by_year(self, year: int, limit: int = 50) -> List[Dict]:
        """
        Search tracks released in a given year.

        Args:
            year: Release year
            limit: Maximum tracks to return (paginated 50 at a time)

        Returns:
            List of track dictionaries
        """
        tracks: List[Dict] = []
        offset = 0

        while len(tracks) < limit:
            page_size = min(SEARCH_PAGE_SIZE, limit - len(tracks))
            self._throttle()
            result = self.sp.search(
                q=f"year:{year}",
                type='track',
                limit=page_size,
                offset=offset
            )
            page = result.get('tracks', {}).get('items', [])
            tracks.extend(t for t in page if t and t.get('id'))

            if len(page) < page_size:
                break
            offset += page_size

        return tracks[:limit]

    # =========================================================================
    # SEARCH & RECOMMENDATIONS
    # =========================================================================

    def search(
        self,
        query: str,
        types: Optional[List[str]] = None,
        limit: int = 10
    ) -> Dict[str, List[Dict]]:
        """
        General search.

        Args:
            query: Search query
            types: Item types to search ("artist", "track", "album")
            limit: Maximum items per type

        Returns:
            Mapping of plural type name ("artists", "tracks") to ranked items
        """
        types = types or ["artist", "track"]
        self._throttle()
        result = self.sp.search(
            q=query,
            type=",".join(types),
            limit=min(limit, SEARCH_PAGE_SIZE)
        )
        return {
            key: [item for item in value.get('items', []) if item]
            for key, value in result.items()
        }

    def get_recommendations(self, params: Dict[str, Any]) -> List[Dict]:
        """
        Fetch recommendations.

        Args:
            params: Query parameters as produced by RecommendationParams.to_query()

        Returns:
            List of recommended track dictionaries
        """
        query = dict(params)
        query['limit'] = min(query.get('limit') or 20, MAX_RECOMMENDATIONS)

        self._throttle()
        result = self.sp.recommendations(**query)
        return [t for t in result.get('tracks', []) if t]

    def get_available_genre_seeds(self) -> List[str]:
        """Fetch the genres accepted as recommendation seeds."""
        cache_key = "genre_seeds"
        cached = self._load_cache(cache_key)
        if cached:
            return cached

        self._throttle()
        genres = self.sp.recommendation_genre_seeds().get('genres', [])
        self._save_cache(cache_key, genres)
        return genres

    # =========================================================================
    # PLAYLIST OPERATIONS
    # =========================================================================

    def create_playlist(
        self,
        user_id: str,
        name: str,
        description: str = "",
        public: bool = False
    ) -> Dict:
        """
        Create an empty playlist for a user.

        Returns:
            Playlist data including id and external_urls
        """
        self._throttle()
        return self.sp.user_playlist_create(
            user_id,
            name,
            public=public,
            description=description
        )

    def add_tracks_to_playlist(self, playlist_id: str, uris: List[str]) -> None:
        """
        Append tracks to a playlist, 100 at a time.

        Args:
            playlist_id: Spotify playlist ID
            uris: Track URIs in playlist order
        """
        def add_batch(batch: List[str]):
            self._throttle()
            self.sp.playlist_add_items(playlist_id, batch)

        batch_process(uris, PLAYLIST_ADD_BATCH_SIZE, add_batch)
