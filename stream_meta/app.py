from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .config import Settings
from .extraction import MetadataExtractor
from .meta_keys import RETRIEVE_ALBUM_ART
from .notifications import BroadcastNotifier, NotificationSink
from .pipeline import EnrichmentPipeline
from .preferences import MappingPreferences, PreferenceSource, YamlPreferences
from .scheduler import BatchScheduler
from .store import MediaStore

logger = logging.getLogger(__name__)


@dataclass
class StreamMetaApp:
    settings: Settings
    store: MediaStore
    preferences: PreferenceSource
    notifier: NotificationSink
    pipeline: EnrichmentPipeline
    scheduler: BatchScheduler

    @classmethod
    def create(cls, settings: Settings, notifier: Optional[NotificationSink] = None) -> "StreamMetaApp":
        store = MediaStore(settings.store.path)
        extractor = MetadataExtractor(
            timeout=settings.extraction.timeout_seconds,
            max_remote_bytes=settings.extraction.max_remote_bytes,
            user_agent=settings.extraction.user_agent,
        )
        defaults = {RETRIEVE_ALBUM_ART: settings.preferences.retrieve_album_art}
        preferences: PreferenceSource
        if settings.preferences.path is not None:
            preferences = YamlPreferences(settings.preferences.path, defaults=defaults)
        else:
            preferences = MappingPreferences(defaults)
        sink = notifier or BroadcastNotifier()
        pipeline = EnrichmentPipeline(store, extractor, preferences, notifier=sink)
        scheduler = BatchScheduler(pipeline, max_workers=settings.scheduler.max_workers)
        logger.debug("Media store at %s", settings.store.path)
        return cls(
            settings=settings,
            store=store,
            preferences=preferences,
            notifier=sink,
            pipeline=pipeline,
            scheduler=scheduler,
        )

    def close(self) -> None:
        self.scheduler.shutdown(wait=True)
        self.store.close()
