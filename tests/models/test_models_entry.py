import unittest

from gdrivemirror.errors import HashUnavailableError
from gdrivemirror.models import File, Folder, RemoteRecord, SyncReport, entry_from_record
from gdrivemirror.util.mime import DEFAULT_MIME, FOLDER_MIME


class TestEntries(unittest.TestCase):
    def test_entry_from_folder_record(self) -> None:
        entry = entry_from_record(
            RemoteRecord(id="D", name="docs", parent_id="R", mime_type=FOLDER_MIME)
        )
        self.assertIsInstance(entry, Folder)
        self.assertTrue(entry.is_folder)
        self.assertEqual(entry.child_ids, set())
        self.assertEqual(entry.mime_type, FOLDER_MIME)

    def test_entry_from_file_record(self) -> None:
        entry = entry_from_record(
            RemoteRecord(id="F", name="a.bin", parent_id="R", size=10, md5_checksum="m")
        )
        self.assertIsInstance(entry, File)
        self.assertEqual(entry.size, 10)
        self.assertEqual(entry.hash, "m")
        self.assertEqual(entry.mime_type, DEFAULT_MIME)

    def test_hash_unavailable(self) -> None:
        entry = File(id="F", name="doc")
        self.assertFalse(entry.has_hash)
        with self.assertRaises(HashUnavailableError) as ctx:
            _ = entry.hash
        self.assertEqual(ctx.exception.details["entry_id"], "F")


class TestSyncReport(unittest.TestCase):
    def test_token_advanced(self) -> None:
        self.assertTrue(SyncReport(mode="full", previous_token=None, token="5").token_advanced)
        self.assertFalse(
            SyncReport(mode="incremental", previous_token="5", token="5").token_advanced
        )


if __name__ == "__main__":
    unittest.main()
