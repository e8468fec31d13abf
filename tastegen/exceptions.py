"""
Exceptions raised by the TasteGen generation pipeline.
"""
from typing import List, Optional


class TasteGenError(Exception):
    """Base class for TasteGen errors."""


class ResolutionError(TasteGenError):
    """
    A named artist, track, genre or year could not be resolved.

    Attributes:
        tried: The names or values that were attempted
        available: Valid alternatives worth showing to the user
    """

    def __init__(
        self,
        message: str,
        tried: Optional[List[str]] = None,
        available: Optional[List[str]] = None
    ):
        super().__init__(message)
        self.tried = list(tried or [])
        self.available = list(available or [])
