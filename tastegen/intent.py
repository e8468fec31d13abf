"""
Intent-to-Target Mapping
========================

Maps a requested mood, activity, time of day or free-text vibe to target
audio features for a recommendation query.

Closed vocabularies are direct lookups in the preset tables of config.py.
Free text goes through ordered keyword cascades (first match wins within a
cascade), then through context phrases. A matching context supplies its
preset as the base layer and the keyword values are laid on top of it.

All layering goes through merge_layers(): layers apply in order and a later
layer wins on any key it sets.
"""

import re
from dataclasses import dataclass, fields, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Pattern, Tuple, Union

from .config import (
    MOOD_PRESETS,
    ACTIVITY_PRESETS,
    TIME_PRESETS,
    MAX_SEEDS_PER_TYPE,
)

TARGET_FIELDS = [
    "target_danceability",
    "target_energy",
    "target_valence",
    "target_tempo",
    "target_acousticness",
    "target_instrumentalness",
]


# =============================================================================
# RECOMMENDATION PARAMETERS
# =============================================================================
@dataclass
class RecommendationParams:
    """Working set of recommendation query parameters."""
    seed_artists: Optional[List[str]] = None
    seed_tracks: Optional[List[str]] = None
    seed_genres: Optional[List[str]] = None
    limit: Optional[int] = None

    target_danceability: Optional[float] = None
    target_energy: Optional[float] = None
    target_valence: Optional[float] = None
    target_tempo: Optional[float] = None
    target_acousticness: Optional[float] = None
    target_instrumentalness: Optional[float] = None

    min_popularity: Optional[int] = None
    max_popularity: Optional[int] = None

    def apply(self, partial: Mapping[str, Any]) -> "RecommendationParams":
        """Overwrite fields with every non-None value of a partial layer."""
        known = {f.name for f in fields(self)}
        for key, value in partial.items():
            if key not in known:
                raise ValueError(f"Unknown recommendation parameter: {key}")
            if value is not None:
                setattr(self, key, list(value) if isinstance(value, list) else value)
        return self

    def copy(self, **changes) -> "RecommendationParams":
        """Independent copy, optionally with some fields replaced."""
        clone = replace(self, **changes)
        for name in ("seed_artists", "seed_tracks", "seed_genres"):
            value = getattr(clone, name)
            if value is not None:
                setattr(clone, name, list(value))
        return clone

    def has_seeds(self) -> bool:
        return bool(self.seed_artists or self.seed_tracks)

    def to_query(self) -> Dict[str, Any]:
        """
        Keyword arguments for the recommendations endpoint.

        Seed lists are capped at 5 entries each; unset values are omitted.
        """
        query: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if f.name.startswith("seed_"):
                if not value:
                    continue
                value = list(value)[:MAX_SEEDS_PER_TYPE]
            query[f.name] = value
        return query


def merge_layers(*layers: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Merge partial parameter layers with override.

    Layers apply left to right; a later layer wins on every key it sets.
    Missing layers and None values are skipped.
    """
    merged: Dict[str, Any] = {}
    for layer in layers:
        if not layer:
            continue
        for key, value in layer.items():
            if value is not None:
                merged[key] = value
    return merged


# =============================================================================
# VIBE KEYWORD RULES
# =============================================================================
def _words(*terms: str) -> Pattern:
    """
    Whole-word, case-insensitive alternation.

    A trailing "*" marks a prefix (celebrat* matches celebrate, celebration).
    """
    parts = []
    for term in terms:
        if term.endswith("*"):
            parts.append(re.escape(term[:-1]) + r"\w*")
        else:
            parts.append(r"\s+".join(re.escape(w) for w in term.split()))
    return re.compile(r"\b(?:" + "|".join(parts) + r")\b", re.IGNORECASE)


def _electronic(current: Mapping[str, Any]) -> Dict[str, Any]:
    """Electronic pushes acousticness down and boosts the energy set so far."""
    base = current.get("target_energy")
    if base is None:
        base = 0.5
    return {
        "target_acousticness": 0.1,
        "target_energy": round(min(1.0, base + 0.2), 2),
    }


Rule = Tuple[Pattern, Union[Mapping[str, Any], Callable[[Mapping[str, Any]], Mapping[str, Any]]]]

# Each cascade stops at its first matching group
KEYWORD_CASCADES: List[List[Rule]] = [
    # Energy
    [
        (_words("hype", "pump", "intense", "powerful", "explosive", "wild"), {"target_energy": 0.9}),
        (_words("energetic", "upbeat", "lively", "dynamic"), {"target_energy": 0.75}),
        (_words("chill", "relaxed", "mellow", "calm", "peaceful", "soft"), {"target_energy": 0.3}),
        (_words("ambient", "dreamy", "floating"), {"target_energy": 0.2}),
    ],
    # Mood / valence
    [
        (_words("happy", "joy", "euphoric", "celebrat*", "cheerful", "bright"), {"target_valence": 0.8}),
        (_words("sad", "melanchol*", "depress*", "lonely", "heartbreak", "cry"), {"target_valence": 0.2}),
        (_words("angry", "rage", "furious", "aggressive"), {"target_valence": 0.2, "target_energy": 0.9}),
        (_words("romantic", "love", "sensual", "intimate"), {"target_valence": 0.6, "target_energy": 0.4}),
    ],
    # Danceability
    [
        (_words("dance", "dancing", "groove", "groovy", "funky", "disco"), {"target_danceability": 0.85}),
        (_words("sway", "bob", "movement"), {"target_danceability": 0.65}),
    ],
    # Acoustic vs electronic
    [
        (_words("acoustic", "unplugged", "folk", "organic"), {"target_acousticness": 0.8}),
        (_words("electronic", "synth", "techno", "house", "edm"), _electronic),
    ],
    # Instrumental
    [
        (_words("instrumental", "no vocals", "without words", "background"), {"target_instrumentalness": 0.8}),
    ],
    # Tempo
    [
        (_words("fast", "quick", "rapid", "racing"), {"target_tempo": 140}),
        (_words("slow", "slowdown", "laid back"), {"target_tempo": 80}),
    ],
]

# Settings that supply a whole preset as the base layer; first match wins
CONTEXT_RULES: List[Tuple[str, Pattern, Mapping[str, Any]]] = [
    ("morning", _words("morning", "sunrise", "wake up", "breakfast"), TIME_PRESETS["morning"]),
    ("late night", _words("late night", "midnight", "2am", "3am", "after hours", "coding session"),
     {"target_energy": 0.45, "target_valence": 0.4, "target_instrumentalness": 0.4}),
    ("sunset", _words("sunset", "golden hour", "evening"), TIME_PRESETS["evening"]),
    ("workout", _words("workout", "gym", "running", "exercise", "training"), ACTIVITY_PRESETS["workout"]),
    ("focus", _words("study", "focus", "concentrate", "work", "productivity"), ACTIVITY_PRESETS["focus"]),
    ("party", _words("party", "club", "pregame"), ACTIVITY_PRESETS["party"]),
    ("sleep", _words("sleep", "bedtime", "rest", "wind down"), ACTIVITY_PRESETS["sleep"]),
    ("road trip", _words("road trip", "driving", "drive"),
     {"target_energy": 0.7, "target_valence": 0.7, "target_danceability": 0.6}),
    ("coffee", _words("coffee", "cafe", "jazz"),
     {"target_energy": 0.4, "target_acousticness": 0.6, "target_instrumentalness": 0.4}),
]


def parse_keywords(vibe: str) -> Dict[str, Any]:
    """Apply the keyword cascades to free text."""
    params: Dict[str, Any] = {}
    for cascade in KEYWORD_CASCADES:
        for pattern, values in cascade:
            if pattern.search(vibe):
                update = values(params) if callable(values) else values
                params = merge_layers(params, update)
                break
    return params


def detect_context(vibe: str) -> Optional[Tuple[str, Mapping[str, Any]]]:
    """First context phrase found in the text, with its preset."""
    for name, pattern, preset in CONTEXT_RULES:
        if pattern.search(vibe):
            return name, preset
    return None


def parse_vibe(vibe: str) -> Dict[str, Any]:
    """
    Parse a natural-language vibe into target features.

    Args:
        vibe: Free text such as "chill sunday morning coffee"

    Returns:
        Partial recommendation parameters
    """
    keywords = parse_keywords(vibe)

    context = detect_context(vibe)
    if context is not None:
        _, preset = context
        return merge_layers(preset, keywords)

    return keywords


# =============================================================================
# PRESET LOOKUP
# =============================================================================
PRESET_TABLES: Dict[str, Mapping[str, Mapping[str, Any]]] = {
    "mood": MOOD_PRESETS,
    "activity": ACTIVITY_PRESETS,
    "time": TIME_PRESETS,
}


def resolve_preset(kind: str, key: str) -> Dict[str, Any]:
    """Copy of a preset from one of the closed-vocabulary tables."""
    table = PRESET_TABLES[kind]
    normalized = key.strip().lower()
    if normalized not in table:
        raise ValueError(
            f"Unknown {kind} '{key}'. Choose from: {', '.join(table)}"
        )
    return dict(table[normalized])


def map_intent(mode: str, payload: str) -> Dict[str, Any]:
    """
    Map an intent to partial recommendation parameters.

    Args:
        mode: "mood", "activity", "time" or "vibe"
        payload: Preset key, or free text for "vibe"

    Returns:
        A new dict of target parameters
    """
    if mode == "vibe":
        return parse_vibe(payload)
    if mode in PRESET_TABLES:
        return resolve_preset(mode, payload)
    raise ValueError(
        f"Unknown intent mode '{mode}'. Choose from: {', '.join([*PRESET_TABLES, 'vibe'])}"
    )
