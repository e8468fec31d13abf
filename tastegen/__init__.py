"""
TasteGen - Personalized Spotify Playlist Generator
==================================================

Builds a taste profile from your listening history and generates playlists
for a mood, activity, time of day, free-text vibe, artist blend, year or
genre, then saves them to your Spotify library.

Modules:
    - config: Configuration, presets and constants
    - exceptions: Error types
    - spotify_client: Spotify API wrapper
    - history: Listening history aggregation
    - profile: Weighted taste profile
    - intent: Mood / activity / time / vibe to target features
    - strategies: Playlist generation strategies
    - finalizer: Playlist naming and creation
    - generator: Main generation orchestrator
    - explainer: Taste profile and track list reports
    - cli: Command-line interface
    - app: Streamlit web app
"""

__version__ = "1.0.0"
__author__ = "TasteGen Team"
