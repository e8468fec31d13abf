"""
Command-Line Interface for TasteGen
===================================

Usage:
    tastegen <command> [options]

    or

    python -m tastegen.cli <command> [options]

Commands:
    auth            Log in to Spotify (or --logout)
    analyze         Show your taste profile (--json for raw output)
    mood MOOD       Playlist for a mood
    activity NAME   Playlist for an activity (supports --duration)
    time WHEN       Playlist for a time of day
    vibe TEXT...    Playlist from a free-text vibe
    like QUERY      Playlist like an artist or track ("track:NAME")
    discover        Lesser-known tracks matching your taste
    blend ARTIST... Your taste blended with other artists
    timemachine     Hits from a year (--year) or your high school years (--born)
    genre GENRE     Deep cuts in a genre (--popular for the essentials)

Examples:
    tastegen mood happy -t 30
    tastegen activity workout --duration 45
    tastegen vibe chill sunday morning coffee --dry-run
    tastegen timemachine --born 1995
"""

import argparse
import io
import json
import os
import sys
from typing import List, Optional

from .config import (
    ACTIVITIES,
    MOODS,
    TIMES_OF_DAY,
    TOKEN_CACHE_PATH,
    DEFAULT_GENERATION_CONFIG,
)
from .exceptions import ResolutionError
from .explainer import format_taste_profile, format_track_list
from .finalizer import PlaylistOutput
from .generator import PlaylistGenerator
from .spotify_client import SpotifyClient
from .strategies import PlaylistRequest

PLAYLIST_COMMANDS = [
    "mood", "activity", "time", "vibe", "like",
    "discover", "blend", "timemachine", "genre",
]

# Modes that default to a longer playlist
LONG_DEFAULT_TRACKS = 30


def _playlist_options(duration: bool = True) -> argparse.ArgumentParser:
    """Options shared by the playlist commands.

    Only the commands backed by the standard strategy can fill to a duration.
    """
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        '-t', '--tracks',
        type=int,
        default=None,
        help=f'Number of tracks (default: {DEFAULT_GENERATION_CONFIG.default_track_count})'
    )
    if duration:
        parent.add_argument(
            '--duration',
            type=float,
            default=None,
            help='Target duration in minutes (overrides --tracks)'
        )
    parent.add_argument(
        '-n', '--name',
        type=str,
        default=None,
        help='Playlist name'
    )
    parent.add_argument(
        '-d', '--discover',
        action='store_true',
        help='Favor less popular tracks'
    )
    parent.add_argument(
        '--public',
        action='store_true',
        help='Make the playlist public'
    )
    parent.add_argument(
        '--dry-run',
        action='store_true',
        help='Show the tracks without saving a playlist'
    )
    parent.add_argument(
        '--format',
        type=str,
        choices=['json', 'simple'],
        default='simple',
        help='Output format (default: simple)'
    )
    return parent


def _common_options() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )
    parent.add_argument(
        '--no-cache',
        action='store_true',
        help='Disable API response caching'
    )
    return parent


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog='tastegen',
        description='🎵 TasteGen - Personalized Spotify playlists from your listening history',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
  SPOTIFY_CLIENT_ID      Your Spotify API client ID
  SPOTIFY_CLIENT_SECRET  Your Spotify API client secret
  SPOTIFY_REDIRECT_URI   OAuth redirect URI (default: http://127.0.0.1:8888/callback)
        """
    )
    common = _common_options()
    playlist = _playlist_options()
    fixed_length = [common, _playlist_options(duration=False)]
    subparsers = parser.add_subparsers(dest='command', metavar='command')
    subparsers.required = True

    auth = subparsers.add_parser('auth', parents=[common], help='Log in to Spotify')
    auth.add_argument('--logout', action='store_true', help='Remove the cached token')

    analyze = subparsers.add_parser('analyze', parents=[common], help='Show your taste profile')
    analyze.add_argument('--json', action='store_true', help='Output as JSON')

    both = [common, playlist]

    mood = subparsers.add_parser('mood', parents=both, help='Playlist for a mood')
    mood.add_argument('mood', type=str.lower, choices=MOODS)

    activity = subparsers.add_parser('activity', parents=both, help='Playlist for an activity')
    activity.add_argument('activity', type=str.lower, choices=ACTIVITIES)

    time_of_day = subparsers.add_parser('time', parents=both, help='Playlist for a time of day')
    time_of_day.add_argument('time_of_day', type=str.lower, choices=TIMES_OF_DAY)

    vibe = subparsers.add_parser('vibe', parents=both, help='Playlist from a free-text vibe')
    vibe.add_argument('vibe', nargs='+', help='Describe the vibe, e.g. "late night coding session"')

    like = subparsers.add_parser('like', parents=both, help='Playlist like an artist or track')
    like.add_argument('query', help='Artist name, or artist:NAME / track:NAME')

    discover = subparsers.add_parser('discover', parents=both, help='Discover new music')
    discover.add_argument('--based-on', type=str, default=None,
                          help='Base on an artist or track (e.g. "artist:Radiohead")')
    discover.set_defaults(default_tracks=LONG_DEFAULT_TRACKS)

    blend = subparsers.add_parser('blend', parents=fixed_length, help='Blend your taste with artists')
    blend.add_argument('artists', nargs='+', help='Artists to blend with')
    blend.set_defaults(default_tracks=LONG_DEFAULT_TRACKS)

    timemachine = subparsers.add_parser('timemachine', parents=fixed_length, help='Hits from the past')
    when = timemachine.add_mutually_exclusive_group(required=True)
    when.add_argument('-b', '--born', type=int, help='Birth year (uses your high school years)')
    when.add_argument('-y', '--year', type=int, help='A specific year')
    timemachine.set_defaults(default_tracks=LONG_DEFAULT_TRACKS)

    genre = subparsers.add_parser('genre', parents=fixed_length, help='Deep dive into a genre')
    genre.add_argument('genre', help='Genre name, e.g. "shoegaze"')
    genre.add_argument('--popular', action='store_true',
                       help='Popular tracks instead of deep cuts')

    return parser


def build_request(args: argparse.Namespace) -> PlaylistRequest:
    """Translate parsed playlist-command arguments into a PlaylistRequest."""
    duration = getattr(args, 'duration', None)
    track_count = None
    if duration is None:
        track_count = args.tracks or getattr(args, 'default_tracks', None)

    request = PlaylistRequest(
        name=args.name,
        track_count=track_count,
        duration=duration,
        discover=args.discover,
        public=args.public,
    )

    command = args.command
    if command == 'mood':
        request.mood = args.mood
    elif command == 'activity':
        request.activity = args.activity
    elif command == 'time':
        request.time_of_day = args.time_of_day
    elif command == 'vibe':
        request.vibe = " ".join(args.vibe)
    elif command == 'like':
        request.based_on = args.query if ':' in args.query else f"artist:{args.query}"
    elif command == 'discover':
        request.mode = 'discover'
        request.based_on = args.based_on
    elif command == 'blend':
        request.mode = 'blend'
        request.blend_with = list(args.artists)
    elif command == 'timemachine':
        request.mode = 'timemachine'
        request.birth_year = args.born
        request.target_year = args.year
    elif command == 'genre':
        request.mode = 'genre'
        request.genre = args.genre
        request.deep_cuts = not args.popular
    else:
        raise ValueError(f"Not a playlist command: {command}")

    return request


def format_output(output: PlaylistOutput, fmt: str) -> str:
    """Format playlist output based on requested format."""
    if fmt == 'json':
        return output.to_json(indent=2)

    lines = [
        f"🎵 {output.name}",
        f"   {output.description}",
        "",
        format_track_list(output.tracks),
    ]
    if output.playlist_url:
        lines.append("")
        lines.append("✅ Playlist saved to your Spotify library")
        lines.append(f"   {output.playlist_url}")
    return '\n'.join(lines)


def validate_environment() -> bool:
    """Check if required environment variables are set."""
    client_id = os.environ.get('SPOTIFY_CLIENT_ID') or os.environ.get('SPOTIPY_CLIENT_ID')
    client_secret = os.environ.get('SPOTIFY_CLIENT_SECRET') or os.environ.get('SPOTIPY_CLIENT_SECRET')

    if not client_id or not client_secret:
        print("❌ Error: Spotify API credentials not found!", file=sys.stderr)
        print("", file=sys.stderr)
        print("Please set the following environment variables:", file=sys.stderr)
        print("  SPOTIFY_CLIENT_ID=your_client_id", file=sys.stderr)
        print("  SPOTIFY_CLIENT_SECRET=your_client_secret", file=sys.stderr)
        print("", file=sys.stderr)
        print("Get credentials at: https://developer.spotify.com/dashboard", file=sys.stderr)
        return False

    return True


def run_auth(args: argparse.Namespace) -> str:
    if args.logout:
        if os.path.exists(TOKEN_CACHE_PATH):
            os.remove(TOKEN_CACHE_PATH)
            return "✅ Logged out"
        return "Not logged in"

    spotify = SpotifyClient(use_cache=not args.no_cache)
    user = spotify.get_current_user()
    return f"✅ Authenticated as {user.get('display_name') or user['id']}"


def run_analyze(args: argparse.Namespace) -> str:
    generator = PlaylistGenerator(spotify_client=SpotifyClient(use_cache=not args.no_cache))
    history, profile = generator.analyze()
    if args.json:
        return json.dumps(profile.to_dict(), indent=2)
    return format_taste_profile(profile, history)


def run_playlist(args: argparse.Namespace) -> str:
    request = build_request(args)
    generator = PlaylistGenerator(spotify_client=SpotifyClient(use_cache=not args.no_cache))
    output = generator.generate(request, dry_run=args.dry_run)
    return format_output(output, args.format)


COMMANDS = {
    'auth': run_auth,
    'analyze': run_analyze,
}
COMMANDS.update({command: run_playlist for command in PLAYLIST_COMMANDS})


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command == 'auth' and args.logout:
        print(run_auth(args))
        return 0

    # Validate environment
    if not validate_environment():
        return 1

    # Suppress progress output if not verbose. The OAuth flow may prompt
    # for the redirect URL, so auth always keeps stdout.
    stdout = sys.stdout
    if not args.verbose and args.command != 'auth':
        sys.stdout = io.StringIO()

    try:
        output = COMMANDS[args.command](args)
    except ResolutionError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"❌ Error: {str(e)}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1
    finally:
        sys.stdout = stdout

    print(output)
    return 0


if __name__ == '__main__':
    sys.exit(main())
