from __future__ import annotations

from dataclasses import replace
from threading import Event
from typing import Callable, Dict, List, Optional, Union

from stream_meta.models import ExtractionFailure, RawMetadata


class FakeSession:
    def __init__(self, extractor: "FakeExtractor", locator: str, raw: RawMetadata) -> None:
        self.extractor = extractor
        self.locator = locator
        self.raw = raw

    def __enter__(self) -> "FakeSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.extractor.closed.append(self.locator)

    def read(self, include_artwork: bool = False) -> RawMetadata:
        self.extractor.reads.append((self.locator, include_artwork))
        if self.extractor.on_read:
            self.extractor.on_read(self.locator)
        if include_artwork:
            return replace(self.raw)
        return replace(self.raw, artwork=None)


class FakeExtractor:
    """Scripted stand-in for MetadataExtractor keyed by locator."""

    def __init__(self, results: Dict[str, Union[RawMetadata, Exception]]) -> None:
        self.results = results
        self.opened: List[str] = []
        self.closed: List[str] = []
        self.reads: List[tuple[str, bool]] = []
        self.on_read: Optional[Callable[[str], None]] = None

    def open(self, locator: str) -> FakeSession:
        self.opened.append(locator)
        result = self.results.get(locator)
        if result is None:
            raise ExtractionFailure(locator, "unsupported format")
        if isinstance(result, Exception):
            raise result
        return FakeSession(self, locator, result)


class GateExtractor(FakeExtractor):
    """Blocks inside the first read until ``release`` is set."""

    def __init__(self, results: Dict[str, Union[RawMetadata, Exception]]) -> None:
        super().__init__(results)
        self.started = Event()
        self.release = Event()
        self.on_read = self._wait

    def _wait(self, locator: str) -> None:
        if not self.started.is_set():
            self.started.set()
            self.release.wait(timeout=5)
