"""Taste filter: the set of artists the listener cares about."""
import logging
from typing import Dict, Iterable, Optional

from processor.models import RatedItem
from processor.text import simplify

logger = logging.getLogger(__name__)


class TasteFilter:
    """Mapping of simplified artist name to display name."""

    def __init__(self, artists: Optional[Dict[str, str]] = None):
        self._artists = dict(artists or {})

    @classmethod
    def build(cls, items: Iterable[RatedItem], min_stars: int) -> 'TasteFilter':
        """
        Build the filter from rated tracks.

        A track counts if it is rated at least ``min_stars`` stars (20% per
        star) or if it is a music video.

        Args:
            items: Rated tracks from the taste source
            min_stars: Minimum star rating, 0-5

        Returns:
            TasteFilter keyed by simplified artist name
        """
        threshold = min_stars * 20
        artists = {}

        for item in items:
            if not item.artist:
                continue
            if item.rating_percent >= threshold or item.has_video:
                artists[simplify(item.artist)] = item.artist

        logger.info(f"{len(artists)} artists of {min_stars}+ stars")
        return cls(artists)

    def __contains__(self, name: str) -> bool:
        return simplify(name) in self._artists

    def __len__(self) -> int:
        return len(self._artists)

    def display_name(self, name: str) -> Optional[str]:
        """Library spelling of the artist matching ``name``, if any."""
        return self._artists.get(simplify(name))
