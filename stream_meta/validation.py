from __future__ import annotations

from typing import Dict, Optional

from .models import UNKNOWN_INTEGER, UNKNOWN_STRING, RawMetadata


def normalize_text(raw: Optional[str]) -> str:
    if raw is None:
        return UNKNOWN_STRING
    cleaned = raw.strip()
    if not cleaned:
        return UNKNOWN_STRING
    return cleaned


def normalize_duration(raw: Optional[str]) -> int:
    text = normalize_text(raw)
    if text == UNKNOWN_STRING:
        return UNKNOWN_INTEGER
    try:
        return int(text, 10)
    except ValueError:
        return UNKNOWN_INTEGER


def _present(raw: Optional[str]) -> bool:
    return raw is not None and bool(raw.strip())


def is_worth_storing(title: Optional[str], album: Optional[str], artist: Optional[str]) -> bool:
    # Only the identifying text counts; duration or artwork alone would just
    # overwrite good data with sentinels. Blank values count as absent.
    return _present(title) or _present(album) or _present(artist)


def build_update(raw: RawMetadata) -> Optional[Dict[str, object]]:
    """Return the column values to write for ``raw`` or ``None`` to leave the row alone."""
    if not is_worth_storing(raw.title, raw.album, raw.artist):
        return None
    fields: Dict[str, object] = {
        "title": normalize_text(raw.title),
        "album": normalize_text(raw.album),
        "artist": normalize_text(raw.artist),
        "duration": normalize_duration(raw.duration),
    }
    if raw.artwork is not None:
        fields["artwork"] = raw.artwork
    return fields
