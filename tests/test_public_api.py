import unittest

import gdrivemirror


class TestPublicApi(unittest.TestCase):
    def test_top_level_exports_exist(self) -> None:
        for name in (
            "DriveSession",
            "DriveConfig",
            "AuthInfo",
            "OAuthClient",
            "EntryGraph",
            "EntrySynchronizer",
            "ChunkedUploadSession",
            "ChunkedDownloadStream",
            "InMemoryDriveService",
            "GoogleDriveService",
            "GDriveMirrorError",
            "ConsistencyTimeoutError",
        ):
            self.assertTrue(hasattr(gdrivemirror, name), name)

    def test___all___is_defined(self) -> None:
        self.assertIn("DriveSession", gdrivemirror.__all__)
        self.assertIn("GDriveMirrorError", gdrivemirror.__all__)
        for name in gdrivemirror.__all__:
            self.assertTrue(hasattr(gdrivemirror, name), name)


if __name__ == "__main__":
    unittest.main()
