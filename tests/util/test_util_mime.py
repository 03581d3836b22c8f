import unittest

from gdrivemirror.util.mime import (
    DEFAULT_MIME,
    FOLDER_MIME,
    is_download_disallowed,
    is_folder,
    is_google_app,
)


class TestUtilMime(unittest.TestCase):
    def test_is_folder(self) -> None:
        self.assertTrue(is_folder(FOLDER_MIME))
        self.assertFalse(is_folder(DEFAULT_MIME))
        self.assertFalse(is_folder(None))

    def test_is_google_app_uses_prefix(self) -> None:
        self.assertTrue(is_google_app("application/vnd.google-apps.document"))
        self.assertTrue(is_google_app("application/vnd.google-apps.some-new-type"))
        self.assertFalse(is_google_app("application/pdf"))
        self.assertFalse(is_google_app(""))

    def test_is_download_disallowed(self) -> None:
        self.assertTrue(is_download_disallowed(FOLDER_MIME))
        self.assertTrue(is_download_disallowed("application/vnd.google-apps.spreadsheet"))
        self.assertFalse(is_download_disallowed("text/plain"))
        self.assertFalse(is_download_disallowed(DEFAULT_MIME))
