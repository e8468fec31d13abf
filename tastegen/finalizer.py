"""
Playlist Finalizer
==================

Names and describes a generated track list and saves it as a Spotify
playlist. Caller-supplied names and descriptions always win; otherwise each
mode has its own template. The finalizer does not validate the track list
and does not roll back a playlist whose track upload fails partway.
"""

import json
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .strategies import PlaylistRequest, StrategyResult
from .utils import artist_names, total_duration_ms

DESCRIPTION_PREFIX = "Generated by TasteGen 🎵"


@dataclass
class PlaylistOutput:
    """A finished playlist."""
    name: str
    description: str
    tracks: List[Dict] = field(default_factory=list)
    playlist_id: Optional[str] = None
    playlist_url: Optional[str] = None

    @property
    def track_uris(self) -> List[str]:
        return [t['uri'] for t in self.tracks if t.get('uri')]

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "description": self.description,
            "playlist_id": self.playlist_id,
            "playlist_url": self.playlist_url,
            "track_count": len(self.tracks),
            "duration_ms": total_duration_ms(self.tracks),
            "tracks": [
                {
                    "track_id": t.get('id'),
                    "track_name": t.get('name', ''),
                    "artist_names": artist_names(t),
                    "popularity": t.get('popularity'),
                    "duration_ms": t.get('duration_ms', 0),
                    "uri": t.get('uri'),
                }
                for t in self.tracks
            ],
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


def _capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


def _year_span(years: List[int]) -> str:
    if len(years) == 1:
        return str(years[0])
    return f"{min(years)}-{max(years)}"


class PlaylistFinalizer:
    """Assigns names and descriptions and creates the playlist."""

    def __init__(self, spotify_client):
        self.spotify = spotify_client

    # =========================================================================
    # NAMING
    # =========================================================================

    def playlist_name(self, request: PlaylistRequest, result: StrategyResult) -> str:
        if request.name:
            return request.name

        details = result.details
        if result.mode == "blend":
            return f"Blend: You + {' & '.join(details.get('artist_names', []))}"
        if result.mode == "timemachine":
            span = _year_span(details.get('years', []))
            if details.get('high_school'):
                return f"High School Hits ({span})"
            return f"Time Machine: {span}"
        if result.mode == "genre":
            genre = details.get('genre', '').replace('-', ' ').title()
            return f"{genre} Deep Cuts" if details.get('deep_cuts') else f"{genre} Essentials"
        if result.mode == "discover" and not (request.based_on or self._standard_parts(request)):
            return "Discovery Mix"

        parts = self._standard_parts(request)
        if request.discover or result.mode == "discover":
            parts.append("Discovery")
        if request.based_on:
            _, sep, name = request.based_on.partition(":")
            parts.append(f"Like {name if sep else request.based_on}")
        return f"{' '.join(parts)} Mix" if parts else "Generated Playlist"

    def _standard_parts(self, request: PlaylistRequest) -> List[str]:
        parts = []
        if request.mood:
            parts.append(_capitalize(request.mood))
        if request.activity:
            parts.append(_capitalize(request.activity))
        if request.time_of_day:
            parts.append(_capitalize(request.time_of_day))
        if request.vibe:
            parts.append(f'"{request.vibe}"')
        return parts

    def playlist_description(self, request: PlaylistRequest, result: StrategyResult) -> str:
        if request.description:
            return request.description

        details = result.details
        parts = [DESCRIPTION_PREFIX]

        if result.mode == "blend":
            parts.append(f"Your taste blended with {', '.join(details.get('artist_names', []))}")
            if details.get('shared_genres'):
                parts.append(f"Shared genres: {', '.join(details['shared_genres'][:3])}")
        elif result.mode == "timemachine":
            parts.append(f"Top tracks from {_year_span(details.get('years', []))}")
        elif result.mode == "genre":
            label = "Hidden gems" if details.get('deep_cuts') else "Popular tracks"
            parts.append(f"{label} in {details.get('genre', '')}")
        else:
            if request.mood:
                parts.append(f"Mood: {request.mood}")
            if request.activity:
                parts.append(f"Activity: {request.activity}")
            if request.time_of_day:
                parts.append(f"Time: {request.time_of_day}")
            if request.vibe:
                parts.append(f'Vibe: "{request.vibe}"')
            if request.based_on:
                parts.append(f"Based on {request.based_on}")
            if request.discover or result.mode == "discover":
                parts.append("Discovery mode enabled")

        parts.append(f"{len(result.tracks)} tracks")
        return " | ".join(parts)

    # =========================================================================
    # CREATION
    # =========================================================================

    def finalize(
        self,
        request: PlaylistRequest,
        result: StrategyResult,
        dry_run: bool = False
    ) -> PlaylistOutput:
        """
        Name the playlist and save it to the user's library.

        Args:
            request: The original request
            result: Tracks chosen by the strategy
            dry_run: Skip the Spotify calls and only build the output

        Returns:
            PlaylistOutput with the playlist id and URL when created
        """
        output = PlaylistOutput(
            name=self.playlist_name(request, result),
            description=self.playlist_description(request, result),
            tracks=list(result.tracks),
        )
        if dry_run:
            return output

        user = self.spotify.get_current_user()
        playlist = self.spotify.create_playlist(
            user['id'],
            output.name,
            output.description,
            request.public
        )
        self.spotify.add_tracks_to_playlist(playlist['id'], output.track_uris)

        output.playlist_id = playlist['id']
        output.playlist_url = playlist.get('external_urls', {}).get('spotify')
        return output
