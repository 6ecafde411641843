from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import mutagen

from ..config import Settings
from ..meta_keys import RETRIEVE_ALBUM_ART
from ..models import StoreError
from ..preferences import MappingPreferences, PreferenceSource, YamlPreferences
from ..store import MediaStore


@dataclass(slots=True)
class DoctorReport:
    ok: bool = True
    checks: list[str] = field(default_factory=list)

    def add(self, label: str, status: str = "OK", detail: Optional[str] = None) -> None:
        line = f"{label}: {status}"
        if detail:
            line += f" ({detail})"
        self.checks.append(line)
        if status == "ERROR":
            self.ok = False


def run(settings: Settings) -> DoctorReport:
    report = DoctorReport()
    _check_store(settings, report)
    report.add("mutagen", detail=mutagen.version_string)
    extraction = settings.extraction
    report.add(
        "Extraction",
        detail=f"timeout={extraction.timeout_seconds}s max_remote_bytes={extraction.max_remote_bytes}",
    )
    preferences = _check_preferences(settings, report)
    if preferences.get_bool(RETRIEVE_ALBUM_ART, False):
        report.add("Album art retrieval", "ENABLED")
    else:
        report.add("Album art retrieval", "DISABLED", f"set {RETRIEVE_ALBUM_ART}: true")
    return report


def _check_store(settings: Settings, report: DoctorReport) -> None:
    try:
        store = MediaStore(settings.store.path)
    except StoreError as exc:
        report.add("Media store", "ERROR", str(exc))
        return
    try:
        records = store.list_records()
    except StoreError as exc:
        report.add("Media store", "ERROR", str(exc))
        return
    finally:
        store.close()
    report.add("Media store", detail=f"{settings.store.path} ({len(records)} record(s))")
    missing_uri = sum(1 for record in records if not (record.uri or "").strip())
    if missing_uri:
        report.add("Locators", "WARNING", f"{missing_uri} record(s) without a source locator")
    else:
        report.add("Locators")
    pending = sum(1 for record in records if record.title is None)
    report.add("Enrichment", detail=f"{pending} record(s) never enriched")


def _check_preferences(settings: Settings, report: DoctorReport) -> PreferenceSource:
    defaults = {RETRIEVE_ALBUM_ART: settings.preferences.retrieve_album_art}
    path = settings.preferences.path
    if path is None:
        return MappingPreferences(defaults)
    if path.exists():
        report.add("Preferences", detail=str(path))
    else:
        report.add("Preferences", "WARNING", f"missing file {path}; using defaults")
    return YamlPreferences(path, defaults=defaults)
