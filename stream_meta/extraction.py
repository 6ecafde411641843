from __future__ import annotations

import io
import logging
import time
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Optional, Tuple

import mutagen
from mutagen.id3 import ID3
from mutagen.mp4 import MP4Tags

from .meta_keys import ALBUM, ARTIST, DURATION, EMBEDDED_ARTWORK, TITLE
from .models import ExtractionFailure, RawMetadata

logger = logging.getLogger(__name__)

REMOTE_SCHEMES = {"http", "https"}
CHUNK_SIZE = 64 * 1024
FRONT_COVER = 3

ID3_FRAMES = {TITLE: "TIT2", ALBUM: "TALB", ARTIST: "TPE1"}
MP4_ATOMS = {TITLE: "\xa9nam", ALBUM: "\xa9alb", ARTIST: "\xa9ART"}


@dataclass(frozen=True)
class TruncatedSource:
    """A remote body cut off after ``fetched`` bytes; ``total`` comes from Content-Length."""

    fetched: int
    total: Optional[int] = None

    def corrected_length(self, length: float, bitrate: int) -> Optional[float]:
        if not bitrate or bitrate <= 0:
            return None
        covered = length * bitrate / 8
        if covered > self.fetched:
            # Reported by a header describing the whole stream.
            return length
        if self.total is None:
            return None
        # Estimated from the size of the partial buffer; redo it for the full body.
        audio_start = self.fetched - covered
        return (self.total - audio_start) * 8 / bitrate


class ExtractionSession:
    """An opened source; owns the underlying handle until :meth:`close`."""

    def __init__(
        self,
        locator: str,
        handle: IO[bytes],
        audio: Any,
        truncation: Optional[TruncatedSource] = None,
    ) -> None:
        self.locator = locator
        self._handle = handle
        self._audio = audio
        self._truncation = truncation

    def __enter__(self) -> "ExtractionSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if not self._handle.closed:
            self._handle.close()

    def get(self, key: str) -> Optional[str | bytes]:
        if key == DURATION:
            return self._duration()
        if key == EMBEDDED_ARTWORK:
            return self._artwork()
        if key in (TITLE, ALBUM, ARTIST):
            return self._text(key)
        raise KeyError(key)

    def read(self, include_artwork: bool = False) -> RawMetadata:
        raw = RawMetadata(
            title=self.get(TITLE),
            album=self.get(ALBUM),
            artist=self.get(ARTIST),
            duration=self.get(DURATION),
        )
        if include_artwork:
            try:
                raw.artwork = self.get(EMBEDDED_ARTWORK)
            except Exception as exc:
                logger.debug("Artwork retrieval failed for %s: %s", self.locator, exc)
                raw.artwork = None
        return raw

    def _text(self, key: str) -> Optional[str]:
        tags = getattr(self._audio, "tags", None)
        if not tags:
            return None
        if isinstance(tags, ID3):
            frames = tags.getall(ID3_FRAMES[key])
            if not frames or not frames[0].text:
                return None
            value: Any = frames[0].text[0]
        elif isinstance(tags, MP4Tags):
            value = tags.get(MP4_ATOMS[key])
        else:
            value = tags.get(key)
        if isinstance(value, list):
            value = value[0] if value else None
        if value is None:
            return None
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        text = str(value)
        return text if text else None

    def _duration(self) -> Optional[str]:
        info = getattr(self._audio, "info", None)
        length = getattr(info, "length", None)
        if not length or length <= 0:
            return None
        if self._truncation is not None:
            length = self._truncation.corrected_length(length, getattr(info, "bitrate", 0) or 0)
            if length is None:
                logger.debug("Duration of %s unknown; only part of the stream was fetched", self.locator)
                return None
        return str(int(round(length * 1000)))

    def _artwork(self) -> Optional[bytes]:
        tags = getattr(self._audio, "tags", None)
        if isinstance(tags, ID3):
            frames = tags.getall("APIC")
            if not frames:
                return None
            front = [frame for frame in frames if frame.type == FRONT_COVER]
            return bytes((front or frames)[0].data)
        if isinstance(tags, MP4Tags):
            covers = tags.get("covr")
            return bytes(covers[0]) if covers else None
        pictures = getattr(self._audio, "pictures", None)
        if pictures:
            return bytes(pictures[0].data)
        return None


class MetadataExtractor:
    """Opens a source locator with mutagen and hands back an :class:`ExtractionSession`."""

    def __init__(
        self,
        timeout: float = 15.0,
        max_remote_bytes: int = 1024 * 1024,
        user_agent: str = "stream-meta/0.1",
    ) -> None:
        self.timeout = timeout
        self.max_remote_bytes = max_remote_bytes
        self.user_agent = user_agent

    def open(self, locator: str) -> ExtractionSession:
        handle, truncation = self._acquire(locator)
        try:
            audio = mutagen.File(handle)
        except Exception as exc:
            handle.close()
            raise ExtractionFailure(locator, f"unreadable source ({exc})") from exc
        if audio is None:
            handle.close()
            raise ExtractionFailure(locator, "unsupported format")
        return ExtractionSession(locator, handle, audio, truncation)

    def extract(self, locator: str, include_artwork: bool = False) -> RawMetadata:
        with self.open(locator) as session:
            return session.read(include_artwork=include_artwork)

    def _acquire(self, locator: str) -> Tuple[IO[bytes], Optional[TruncatedSource]]:
        parsed = urllib.parse.urlparse(locator)
        if parsed.scheme in REMOTE_SCHEMES:
            return self._fetch_remote(locator)
        if parsed.scheme == "file":
            path = Path(urllib.request.url2pathname(parsed.path))
        elif parsed.scheme and len(parsed.scheme) > 1:
            raise ExtractionFailure(locator, f"unsupported scheme {parsed.scheme!r}")
        else:
            path = Path(locator).expanduser()
        try:
            return path.open("rb"), None
        except OSError as exc:
            raise ExtractionFailure(locator, f"cannot open ({exc})") from exc

    def _fetch_remote(self, locator: str) -> Tuple[IO[bytes], Optional[TruncatedSource]]:
        # Tags sit at the head of most streams; never pull the whole body.
        req = urllib.request.Request(locator, headers={"User-Agent": self.user_agent})
        deadline = time.monotonic() + self.timeout
        buffer = io.BytesIO()
        truncation: Optional[TruncatedSource] = None
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                total = _content_length(resp)
                while buffer.tell() < self.max_remote_bytes:
                    if time.monotonic() > deadline:
                        raise ExtractionFailure(locator, f"timed out after {self.timeout}s")
                    chunk = resp.read(min(CHUNK_SIZE, self.max_remote_bytes - buffer.tell()))
                    if not chunk:
                        break
                    buffer.write(chunk)
                if buffer.tell() >= self.max_remote_bytes and resp.read(1):
                    truncation = TruncatedSource(fetched=buffer.tell(), total=total)
        except urllib.error.HTTPError as exc:
            raise ExtractionFailure(locator, f"HTTP {exc.code}") from exc
        except (urllib.error.URLError, TimeoutError, OSError) as exc:
            raise ExtractionFailure(locator, f"unreachable ({exc})") from exc
        logger.debug("Fetched %d bytes from %s", buffer.tell(), locator)
        buffer.seek(0)
        return buffer, truncation


def _content_length(resp: Any) -> Optional[int]:
    headers = getattr(resp, "headers", None)
    if headers is None:
        return None
    try:
        total = int(headers.get("Content-Length"))
    except (TypeError, ValueError):
        return None
    return total if total > 0 else None
