from __future__ import annotations

import logging
from threading import Event
from typing import Optional

from .extraction import MetadataExtractor
from .meta_keys import RETRIEVE_ALBUM_ART
from .models import (
    Batch,
    BatchReport,
    BatchStatus,
    ExtractionFailure,
    ItemOutcome,
    OutcomeStatus,
    StoreError,
    StoreUnavailableError,
)
from .notifications import NotificationSink
from .preferences import PreferenceSource
from .resolver import LocatorResolver
from .store import RecordStore
from .validation import build_update

logger = logging.getLogger(__name__)


class _BatchAborted(Exception):
    def __init__(self, outcome: ItemOutcome, cause: StoreUnavailableError) -> None:
        super().__init__(str(cause))
        self.outcome = outcome
        self.cause = cause


class EnrichmentPipeline:
    """Walks one batch in order, enriching each item and isolating its failures.

    The pipeline keeps no per-batch state between runs apart from ``state``,
    which reflects the most recent run. Concurrent runs should use separate
    pipeline instances or ignore ``state``.
    """

    def __init__(
        self,
        store: RecordStore,
        extractor: MetadataExtractor,
        preferences: PreferenceSource,
        notifier: Optional[NotificationSink] = None,
        resolver: Optional[LocatorResolver] = None,
    ) -> None:
        self.store = store
        self.extractor = extractor
        self.preferences = preferences
        self.notifier = notifier
        self.resolver = resolver or LocatorResolver(store)
        self.state = BatchStatus.IDLE

    def run(self, batch: Batch, stop_event: Optional[Event] = None) -> BatchReport:
        report = BatchReport(status=BatchStatus.RUNNING)
        self.state = BatchStatus.RUNNING
        logger.debug("Enriching %d item(s), active index %s", len(batch), batch.active_index)
        for index, media_id in enumerate(batch.ids):
            if stop_event is not None and stop_event.is_set():
                logger.info("Stopping batch before item %d of %d", index, len(batch))
                report.cancelled = True
                break
            try:
                outcome, reached_write = self._process_item(index, media_id)
            except _BatchAborted as exc:
                report.outcomes.append(exc.outcome)
                report.status = BatchStatus.ABORTED
                report.error = str(exc.cause)
                self.state = BatchStatus.ABORTED
                logger.error("Media store unavailable; aborting batch at item %d: %s", index, exc.cause)
                return report
            except Exception as exc:
                logger.exception("Unexpected error enriching media %s", media_id)
                outcome, reached_write = self._failed(index, media_id, f"unexpected error: {exc}"), False
            report.outcomes.append(outcome)
            if index == batch.active_index and reached_write:
                report.notified = self._notify(media_id)
        report.status = BatchStatus.COMPLETED
        self.state = BatchStatus.COMPLETED
        logger.debug(
            "Batch complete: %d written, %d skipped, %d failed",
            len(report.written),
            len(report.skipped),
            len(report.failed),
        )
        return report

    def _process_item(self, index: int, media_id: int) -> tuple[ItemOutcome, bool]:
        """Return the item outcome and whether the item got as far as the write decision."""
        try:
            locator = self.resolver.resolve(media_id)
        except StoreUnavailableError as exc:
            raise _BatchAborted(self._failed(index, media_id, f"store unavailable: {exc}"), exc) from exc
        except StoreError as exc:
            logger.warning("Locator lookup failed for media %s: %s", media_id, exc)
            return self._failed(index, media_id, f"lookup failed: {exc}"), False
        if locator is None:
            return ItemOutcome(index, media_id, OutcomeStatus.SKIPPED, "no locator"), False

        try:
            with self.extractor.open(locator) as session:
                include_artwork = self.preferences.get_bool(RETRIEVE_ALBUM_ART, False)
                raw = session.read(include_artwork=include_artwork)
        except ExtractionFailure as exc:
            logger.warning("Metadata for media %s could not be retrieved: %s", media_id, exc)
            return self._failed(index, media_id, f"extraction failed: {exc.reason}"), False
        except Exception as exc:
            logger.exception("Unexpected error extracting media %s from %s", media_id, locator)
            return self._failed(index, media_id, f"extraction failed: {exc}"), False

        fields = build_update(raw)
        if fields is None:
            logger.debug("Media %s has no identifying metadata; leaving record untouched", media_id)
            return ItemOutcome(index, media_id, OutcomeStatus.SKIPPED, "no identifying metadata"), True

        try:
            rows = self.store.update_record(media_id, fields)
        except StoreUnavailableError as exc:
            raise _BatchAborted(self._failed(index, media_id, f"store unavailable: {exc}"), exc) from exc
        except StoreError as exc:
            logger.warning("Failed to store metadata for media %s: %s", media_id, exc)
            return self._failed(index, media_id, f"write failed: {exc}"), True
        if rows == 0:
            logger.debug("Media %s no longer exists; nothing updated", media_id)
        return ItemOutcome(index, media_id, OutcomeStatus.WRITTEN, rows=rows), True

    @staticmethod
    def _failed(index: int, media_id: int, reason: str) -> ItemOutcome:
        return ItemOutcome(index, media_id, OutcomeStatus.FAILED, reason)

    def _notify(self, media_id: int) -> bool:
        if self.notifier is None:
            return False
        try:
            self.notifier.notify_active_item_updated()
        except Exception:
            logger.exception("Active item notification failed for media %s", media_id)
            return False
        return True
