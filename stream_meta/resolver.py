from __future__ import annotations

import logging
from typing import Optional

from .store import RecordStore

logger = logging.getLogger(__name__)


class LocatorResolver:
    """Maps a media id to the source locator stored on its row."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def resolve(self, media_id: int) -> Optional[str]:
        locator = self.store.find_locator(media_id)
        if locator is None or not locator.strip():
            logger.debug("No locator stored for media %s", media_id)
            return None
        return locator.strip()
