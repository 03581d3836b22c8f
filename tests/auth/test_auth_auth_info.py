import unittest

from gdrivemirror.auth import DRIVE_SCOPE, AuthInfo


class TestAuthInfo(unittest.TestCase):
    def test_auth_info_defaults_to_drive_scope(self) -> None:
        info = AuthInfo(
            client_secrets_file="/tmp/client_secrets.json",
            token_file="/tmp/token.json",
        )
        self.assertEqual(info.scopes, (DRIVE_SCOPE,))

    def test_auth_info_rejects_empty_paths(self) -> None:
        with self.assertRaises(ValueError):
            AuthInfo(client_secrets_file="", token_file="/tmp/token.json")
        with self.assertRaises(ValueError):
            AuthInfo(client_secrets_file="/tmp/c.json", token_file="  ")

    def test_auth_info_rejects_empty_scopes(self) -> None:
        with self.assertRaises(ValueError):
            AuthInfo(client_secrets_file="/tmp/c.json", token_file="/tmp/t.json", scopes=())


if __name__ == "__main__":
    unittest.main()
