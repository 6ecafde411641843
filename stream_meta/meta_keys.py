from __future__ import annotations

# Keys requested from an extraction session and the preference that gates artwork.
# Keep these centralized to reduce magic strings and accidental divergence.

TITLE = "title"
ALBUM = "album"
ARTIST = "artist"
DURATION = "duration"
EMBEDDED_ARTWORK = "embedded_artwork"

TEXT_KEYS = (TITLE, ALBUM, ARTIST)

RETRIEVE_ALBUM_ART = "retrieve_album_art"
