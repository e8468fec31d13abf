"""
TasteGen - Streamlit Web App
============================

Web interface for generating playlists from your listening history.

Run with:
    streamlit run tastegen/app.py
"""

import os

import streamlit as st

from tastegen.config import ACTIVITIES, MOODS, TIMES_OF_DAY
from tastegen.exceptions import ResolutionError
from tastegen.finalizer import PlaylistOutput
from tastegen.generator import PlaylistGenerator
from tastegen.strategies import PlaylistRequest
from tastegen.utils import artist_names, format_duration, total_duration_ms

MODES = {
    "🙂 Mood": "mood",
    "🏃 Activity": "activity",
    "🕐 Time of Day": "time",
    "✨ Vibe": "vibe",
    "🎤 Like an Artist": "like",
    "🧭 Discover": "discover",
    "🤝 Blend": "blend",
    "⏰ Time Machine": "timemachine",
    "💎 Genre Deep Dive": "genre",
}


# =============================================================================
# PAGE CONFIG
# =============================================================================
st.set_page_config(
    page_title="TasteGen",
    page_icon="🎵",
    layout="wide",
    initial_sidebar_state="expanded"
)

st.markdown("""
<style>
    .main-header {
        font-size: 3rem;
        font-weight: bold;
        color: #1DB954;
        text-align: center;
        margin-bottom: 0.5rem;
    }
    .sub-header {
        text-align: center;
        color: #888;
        margin-bottom: 2rem;
    }
    .track-row {
        border-left: 4px solid #1DB954;
        padding: 0.4rem 0.8rem;
        margin-bottom: 0.4rem;
    }
    .track-artists {
        color: #b3b3b3;
        font-size: 0.9rem;
    }
</style>
""", unsafe_allow_html=True)


# =============================================================================
# HELPERS
# =============================================================================

def check_credentials() -> bool:
    """Check if Spotify credentials are configured."""
    client_id = os.environ.get("SPOTIFY_CLIENT_ID", "") or st.session_state.get("spotify_client_id", "")
    client_secret = os.environ.get("SPOTIFY_CLIENT_SECRET", "") or st.session_state.get("spotify_client_secret", "")
    return bool(client_id and client_secret)


def set_credentials(client_id: str, client_secret: str):
    """Set Spotify credentials in environment."""
    os.environ["SPOTIFY_CLIENT_ID"] = client_id
    os.environ["SPOTIFY_CLIENT_SECRET"] = client_secret
    os.environ["SPOTIPY_CLIENT_ID"] = client_id
    os.environ["SPOTIPY_CLIENT_SECRET"] = client_secret
    st.session_state["spotify_client_id"] = client_id
    st.session_state["spotify_client_secret"] = client_secret
    # Clear cached generator so it picks up new credentials
    get_generator.clear()


@st.cache_resource
def get_generator() -> PlaylistGenerator:
    """Get or create the playlist generator (cached)."""
    return PlaylistGenerator()


def request_inputs(mode: str) -> PlaylistRequest:
    """Render the inputs for a mode and collect them into a request."""
    request = PlaylistRequest()

    if mode == "mood":
        request.mood = st.selectbox("Mood", MOODS)
    elif mode == "activity":
        request.activity = st.selectbox("Activity", ACTIVITIES)
    elif mode == "time":
        request.time_of_day = st.selectbox("Time of day", TIMES_OF_DAY)
    elif mode == "vibe":
        request.vibe = st.text_input("Describe the vibe", placeholder="late night coding session")
    elif mode == "like":
        kind = st.radio("Based on", ["artist", "track"], horizontal=True)
        query = st.text_input(f"{kind.title()} name")
        request.based_on = f"{kind}:{query}" if query else None
    elif mode == "discover":
        request.mode = "discover"
        query = st.text_input("Based on artist (optional)")
        request.based_on = f"artist:{query}" if query else None
    elif mode == "blend":
        request.mode = "blend"
        names = st.text_input("Artists (comma separated)", placeholder="Radiohead, Björk")
        request.blend_with = [n.strip() for n in names.split(",") if n.strip()]
    elif mode == "timemachine":
        request.mode = "timemachine"
        by_birth = st.radio("Pick by", ["Birth year", "Specific year"], horizontal=True) == "Birth year"
        year = int(st.number_input("Year", min_value=1900, max_value=2100, value=2000, step=1))
        if by_birth:
            request.birth_year = year
        else:
            request.target_year = year
    elif mode == "genre":
        request.mode = "genre"
        request.genre = st.text_input("Genre", placeholder="shoegaze")
        request.deep_cuts = not st.checkbox("Popular tracks instead of deep cuts")

    return request


def render_playlist(output: PlaylistOutput):
    """Render a generated playlist."""
    st.markdown("---")
    col1, col2 = st.columns(2)
    with col1:
        st.metric("Tracks", len(output.tracks))
    with col2:
        st.metric("Duration", format_duration(total_duration_ms(output.tracks)))

    if output.playlist_url:
        st.markdown(f"[▶️ Open in Spotify]({output.playlist_url})")
    st.caption(output.description)

    st.subheader(f"🎶 {output.name}")
    for i, track in enumerate(output.tracks, 1):
        st.markdown(f"""
        <div class="track-row">
            {i}. {track.get('name', '')} <span class="track-artists">{', '.join(artist_names(track))}
            [{format_duration(track.get('duration_ms', 0) or 0)}]</span>
        </div>
        """, unsafe_allow_html=True)

    st.download_button(
        label="📄 Download JSON",
        data=output.to_json(),
        file_name="tastegen_playlist.json",
        mime="application/json"
    )


# =============================================================================
# MAIN APP
# =============================================================================

def main():
    """Main Streamlit app."""
    st.markdown('<h1 class="main-header">🎵 TasteGen</h1>', unsafe_allow_html=True)
    st.markdown('<p class="sub-header">Playlists built from your own listening history</p>', unsafe_allow_html=True)

    with st.sidebar:
        st.header("⚙️ Settings")

        with st.expander("🔑 Spotify Credentials", expanded=not check_credentials()):
            client_id = st.text_input(
                "Client ID",
                value=st.session_state.get("spotify_client_id", ""),
                type="password"
            )
            client_secret = st.text_input(
                "Client Secret",
                value=st.session_state.get("spotify_client_secret", ""),
                type="password"
            )
            if st.button("Save Credentials"):
                if client_id and client_secret:
                    set_credentials(client_id, client_secret)
                    st.success("✅ Credentials saved!")
                    st.rerun()
                else:
                    st.error("Please enter both Client ID and Secret")

        st.markdown("---")
        st.subheader("🎛️ Playlist Settings")
        use_duration = st.checkbox("Fill a duration instead of a track count")
        if use_duration:
            duration = st.slider("Minutes", min_value=15, max_value=240, value=60, step=15)
            track_count = None
        else:
            track_count = st.slider("Number of tracks", min_value=5, max_value=100, value=25, step=5)
            duration = None
        discover = st.checkbox("🧭 Favor less popular tracks")
        public = st.checkbox("🌍 Public playlist")
        dry_run = st.checkbox("👀 Preview only (don't save)")
        name = st.text_input("Playlist name (optional)")

    if not check_credentials():
        st.warning("⚠️ Please enter your Spotify API credentials in the sidebar to get started.")
        return

    mode_label = st.radio("What kind of playlist?", list(MODES), horizontal=True)
    request = request_inputs(MODES[mode_label])
    request.track_count = track_count
    request.duration = duration
    request.discover = request.discover or discover
    request.public = public
    request.name = name or None

    if st.button("🚀 Generate Playlist", type="primary", use_container_width=True):
        try:
            with st.spinner("Analyzing your taste and picking tracks..."):
                output = get_generator().generate(request, dry_run=dry_run)
            st.session_state["last_output"] = output
            st.success(f"✅ Generated **{output.name}**")
            render_playlist(output)
        except ResolutionError as e:
            st.error(f"❌ {e}")
            if e.available:
                st.info(f"Try one of: {', '.join(e.available)}")
        except Exception as e:
            st.error(f"❌ Error: {str(e)}")

    elif "last_output" in st.session_state:
        st.info(f"Showing previous playlist **{st.session_state['last_output'].name}**")
        render_playlist(st.session_state["last_output"])


if __name__ == "__main__":
    main()
