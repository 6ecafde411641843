import tempfile
import unittest
from pathlib import Path

from stream_meta.models import StoreError, StoreUnavailableError
from stream_meta.resolver import LocatorResolver
from stream_meta.store import MediaStore


class TestMediaStore(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.store = MediaStore(Path(self._tmp.name) / "db" / "media.sqlite3")

    def tearDown(self) -> None:
        try:
            self.store.close()
        finally:
            self._tmp.cleanup()

    def test_add_and_find_locator(self) -> None:
        media_id = self.store.add_media("http://radio.example/stream.mp3")
        self.assertEqual(self.store.find_locator(media_id), "http://radio.example/stream.mp3")
        self.assertIsNone(self.store.find_locator(media_id + 100))

    def test_add_with_explicit_id(self) -> None:
        self.assertEqual(self.store.add_media("/music/a.mp3", media_id=101), 101)
        record = self.store.get_record(101)
        assert record is not None
        self.assertEqual(record.uri, "/music/a.mp3")
        self.assertIsNone(record.title)

    def test_update_record_writes_descriptive_columns(self) -> None:
        media_id = self.store.add_media("/music/a.mp3")
        rows = self.store.update_record(
            media_id,
            {"title": "A", "album": "unknown", "artist": "B", "duration": 1234, "artwork": b"img"},
        )
        self.assertEqual(rows, 1)
        record = self.store.get_record(media_id)
        assert record is not None
        self.assertEqual((record.title, record.album, record.artist), ("A", "unknown", "B"))
        self.assertEqual(record.duration, 1234)
        self.assertEqual(record.artwork, b"img")
        self.assertEqual(record.uri, "/music/a.mp3")

    def test_update_missing_row_affects_nothing(self) -> None:
        self.assertEqual(self.store.update_record(999, {"title": "A"}), 0)

    def test_update_rejects_unknown_columns(self) -> None:
        media_id = self.store.add_media("/music/a.mp3")
        with self.assertRaises(ValueError):
            self.store.update_record(media_id, {"uri": "/elsewhere.mp3"})

    def test_duplicate_id_is_a_store_error(self) -> None:
        self.store.add_media("/music/a.mp3", media_id=1)
        with self.assertRaises(StoreError):
            self.store.add_media("/music/b.mp3", media_id=1)

    def test_closed_store_is_unavailable(self) -> None:
        media_id = self.store.add_media("/music/a.mp3")
        self.store.close()
        with self.assertRaises(StoreUnavailableError):
            self.store.update_record(media_id, {"title": "A"})
        with self.assertRaises(StoreUnavailableError):
            self.store.find_locator(media_id)

    def test_list_records_in_id_order(self) -> None:
        self.store.add_media("/b.mp3", media_id=2)
        self.store.add_media("/a.mp3", media_id=1)
        self.assertEqual([r.id for r in self.store.list_records()], [1, 2])


class TestLocatorResolver(unittest.TestCase):
    def test_blank_locator_is_absent(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = MediaStore(Path(tmpdir) / "media.sqlite3")
            try:
                store.add_media("   ", media_id=1)
                store.add_media(None, media_id=2)
                store.add_media(" /music/a.flac ", media_id=3)
                resolver = LocatorResolver(store)
                self.assertIsNone(resolver.resolve(1))
                self.assertIsNone(resolver.resolve(2))
                self.assertEqual(resolver.resolve(3), "/music/a.flac")
                self.assertIsNone(resolver.resolve(4))
            finally:
                store.close()


if __name__ == "__main__":
    unittest.main()
