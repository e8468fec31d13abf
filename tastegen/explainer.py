"""
Taste Explanation Module
========================

Human-readable reports for the terminal:
- A taste profile summary (genres, audio profile, listening patterns)
- Plain-language bands for individual audio features
- A numbered track list with durations
"""

from typing import Dict, List

from .history import RawHistory
from .profile import TasteProfile
from .utils import artist_names, format_duration, total_duration_ms

BAR_WIDTH = 20
RULE = "─" * 50


def describe_danceability(value: float) -> str:
    if value >= 0.8:
        return "Dance floor ready"
    if value >= 0.6:
        return "Groovy"
    if value >= 0.4:
        return "Moderate rhythm"
    return "Low dance factor"


def describe_energy(value: float) -> str:
    if value >= 0.8:
        return "High octane"
    if value >= 0.6:
        return "Energetic"
    if value >= 0.4:
        return "Balanced"
    return "Mellow"


def describe_valence(value: float) -> str:
    if value >= 0.8:
        return "Very happy/upbeat"
    if value >= 0.6:
        return "Positive vibes"
    if value >= 0.4:
        return "Mixed emotions"
    if value >= 0.2:
        return "Melancholic"
    return "Dark/introspective"


def describe_acousticness(value: float) -> str:
    if value >= 0.7:
        return "Very acoustic"
    if value >= 0.4:
        return "Some acoustic"
    return "Mostly electronic/produced"


def describe_popularity(value: float) -> str:
    if value >= 70:
        return "(mainstream)"
    if value >= 50:
        return "(balanced)"
    if value >= 30:
        return "(indie leaning)"
    return "(deep cuts)"


def bar(fraction: float, width: int = BAR_WIDTH) -> str:
    """Text bar for a value in [0, 1]."""
    filled = max(0, min(width, round(fraction * width)))
    return "█" * filled + "░" * (width - filled)


# (feature, emoji, label, describer)
AUDIO_PROFILE_ROWS = [
    ("danceability", "💃", "Danceability", describe_danceability),
    ("energy", "⚡", "Energy", describe_energy),
    ("valence", "😊", "Mood (Valence)", describe_valence),
    ("acousticness", "🎸", "Acousticness", describe_acousticness),
]


def format_taste_profile(profile: TasteProfile, history: RawHistory) -> str:
    """
    Render a taste profile as a text report.

    Args:
        profile: Built taste profile
        history: History the profile came from (for top artists and tracks)

    Returns:
        Multi-line report
    """
    lines = ["", "🎵 Your Music Taste Profile", RULE]

    lines.append("")
    lines.append("📊 Top Genres:")
    if profile.top_genres:
        max_count = profile.top_genres[0][1] or 1
        for genre, count in profile.top_genres[:10]:
            lines.append(f"  {bar(count / max_count)} {genre}")
    else:
        lines.append("  (no genres found)")

    lines.append("")
    lines.append("🎚️ Audio Profile:")
    if profile.has_audio_features:
        for feature, emoji, label, describe in AUDIO_PROFILE_ROWS:
            value = profile.avg_features[feature]
            lines.append(f"  {emoji} {label}: {bar(value)} {describe(value)}")
        lines.append(f"  🥁 Avg Tempo: {round(profile.avg_features['tempo'])} BPM")

        patterns = profile.listening_patterns
        lines.append("")
        lines.append("🔁 Listening Patterns:")
        lines.append("  • " + (
            "Prefers major keys (uplifting)" if patterns.prefers_major_key
            else "Prefers minor keys (introspective)"
        ))
        lines.append("  • " + (
            "High energy listener" if patterns.prefers_high_energy
            else "Moderate/chill energy preference"
        ))
        lines.append("  • " + (
            "Appreciates acoustic sounds" if patterns.prefers_acoustic
            else "Prefers produced/electronic sounds"
        ))
        lines.append(
            f"  • Average track popularity: {round(patterns.avg_popularity)}/100 "
            f"{describe_popularity(patterns.avg_popularity)}"
        )
    else:
        lines.append("  (audio features unavailable)")

    lines.append("")
    lines.append("🎤 Top Artists (Last 4 Weeks):")
    for artist in history.artists("short_term")[:5]:
        lines.append(f"  • {artist.get('name', '')}")

    lines.append("")
    lines.append("🎵 Top Tracks (Last 4 Weeks):")
    for track in history.tracks("short_term")[:5]:
        lines.append(f"  • {track.get('name', '')} - {', '.join(artist_names(track))}")

    lines.append("")
    lines.append(RULE)
    lines.append("Based on your Spotify listening history")
    return "\n".join(lines)


def format_track_list(tracks: List[Dict]) -> str:
    """Numbered track list with per-track and total durations."""
    lines = []
    for i, track in enumerate(tracks, 1):
        artists = ", ".join(artist_names(track))
        duration = format_duration(track.get('duration_ms', 0) or 0)
        lines.append(f"{i:2}. {track.get('name', '')} - {artists} [{duration}]")

    lines.append("")
    lines.append(f"Total: {len(tracks)} tracks, {format_duration(total_duration_ms(tracks))}")
    return "\n".join(lines)
