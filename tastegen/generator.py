"""
Playlist Generator
==================

Orchestrates the complete generation pipeline:
1. Gather listening history
2. Build the taste profile
3. Run the strategy for the requested mode
4. Name, describe and save the playlist

This module ties together all components into a cohesive system.
"""

import random
from typing import Optional, Tuple

from .config import DEFAULT_GENERATION_CONFIG, GenerationConfig
from .finalizer import PlaylistFinalizer, PlaylistOutput
from .history import RawHistory, gather_listening_history
from .profile import TasteProfile, build_taste_profile
from .strategies import PlaylistRequest, get_strategy


class PlaylistGenerator:
    """
    Main engine orchestrating history, profile, strategy and finalizer.

    Usage:
        generator = PlaylistGenerator()
        output = generator.generate(PlaylistRequest(mood="happy"))
        print(output.to_json())
    """

    def __init__(
        self,
        spotify_client=None,
        config: GenerationConfig = DEFAULT_GENERATION_CONFIG,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize the generator.

        Args:
            spotify_client: Pre-configured Spotify client (creates new if None)
            config: Generation tunables
            rng: Random source shared by every strategy
        """
        if spotify_client is None:
            from .spotify_client import SpotifyClient
            spotify_client = SpotifyClient()

        self.spotify = spotify_client
        self.config = config
        self.rng = rng or random.Random()
        self.finalizer = PlaylistFinalizer(self.spotify)

    def analyze(self) -> Tuple[RawHistory, TasteProfile]:
        """Gather the listening history and build the taste profile."""
        print("📥 Fetching your listening history...")
        history = gather_listening_history(self.spotify)
        print(f"   Tracks with audio features: {len(history.audio_features)}")

        print("🔬 Analyzing your music taste...")
        profile = build_taste_profile(history)
        if not profile.has_audio_features:
            print("⚠️  No audio features available, targets will not be personalized")

        return history, profile

    def generate(self, request: PlaylistRequest, dry_run: bool = False) -> PlaylistOutput:
        """
        Generate a playlist for a request.

        Args:
            request: What to generate
            dry_run: Build the track list without creating the playlist

        Returns:
            PlaylistOutput with tracks and, unless dry_run, the saved playlist
        """
        print("🎵 TasteGen - Generating playlist...")
        print("-" * 50)

        strategy = get_strategy(request.mode, self.spotify, self.config, self.rng)
        _, profile = self.analyze()

        print(f"🔍 Generating tracks ({request.mode})...")
        result = strategy.generate(request, profile)
        print(f"   Tracks: {len(result.tracks)}")

        if not result.tracks:
            print("⚠️  No tracks found!")

        if dry_run:
            print("📝 Dry run, playlist not saved")
        else:
            print("💾 Saving playlist...")
        output = self.finalizer.finalize(request, result, dry_run=dry_run)

        print("-" * 50)
        print(f"✅ {output.name}: {len(output.tracks)} tracks")

        return output
