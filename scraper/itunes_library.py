"""Reader for the iTunes "Music Library.xml" export."""
import logging
import plistlib
from typing import List
from xml.parsers.expat import ExpatError

from processor.errors import TasteSourceError
from processor.models import RatedItem

logger = logging.getLogger(__name__)


def load_rated_items(path: str) -> List[RatedItem]:
    """
    Read every track with an artist from an iTunes library export.

    Args:
        path: Path to the library XML property list

    Returns:
        List of RatedItem, one per track

    Raises:
        TasteSourceError: If the file cannot be read or parsed
    """
    logger.info(f"Reading {path}")

    try:
        with open(path, 'rb') as f:
            library = plistlib.load(f)
    except OSError as e:
        raise TasteSourceError(f"{path}: {e}") from e
    except (plistlib.InvalidFileException, ExpatError) as e:
        raise TasteSourceError(f"{path}: unparsable library: {e}") from e

    tracks = library.get('Tracks') if isinstance(library, dict) else None
    if not isinstance(tracks, dict):
        raise TasteSourceError(f"{path}: no Tracks in library")

    items = []
    for track in tracks.values():
        artist = track.get('Artist')
        if not artist:
            continue
        items.append(RatedItem(
            artist=artist,
            rating_percent=int(track.get('Rating', 0)),
            has_video=bool(track.get('Has Video', False))
        ))

    logger.debug(f"Read {len(items)} tracks from {path}")
    return items
