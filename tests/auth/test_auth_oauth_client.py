import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import Mock

from gdrivemirror.auth import AuthInfo, OAuthClient
from gdrivemirror.errors import AuthError

SCOPES = ("https://www.googleapis.com/auth/drive",)


def _write_token(path: Path, refresh_token: str | None = "fake-refresh-token") -> None:
    token_payload = {
        "token": "fake-token",
        "token_uri": "https://oauth2.googleapis.com/token",
        "client_id": "fake-client-id",
        "client_secret": "fake-client-secret",
        "scopes": list(SCOPES),
        "type": "authorized_user",
    }
    if refresh_token is not None:
        token_payload["refresh_token"] = refresh_token
    path.write_text(json.dumps(token_payload), encoding="utf-8")


class TestOAuthClient(unittest.TestCase):
    def test_get_credentials_loads_token_file_without_refresh(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            token_file = tmp_path / "token.json"
            _write_token(token_file)

            info = AuthInfo(
                client_secrets_file=str(tmp_path / "client_secrets.json"),
                token_file=str(token_file),
                scopes=SCOPES,
            )
            client = OAuthClient(info)
            creds = client.get_credentials(ensure_valid=False)

            self.assertEqual(creds.refresh_token, "fake-refresh-token")
            # Cached: the same object is shared by every consumer.
            self.assertIs(client.get_credentials(ensure_valid=False), creds)

    def test_missing_client_secrets_raises_auth_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            info = AuthInfo(
                client_secrets_file=str(tmp_path / "missing.json"),
                token_file=str(tmp_path / "token.json"),
            )
            with self.assertRaises(AuthError):
                OAuthClient(info).get_credentials()

    def test_forced_refresh_persists_new_token(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            token_file = tmp_path / "token.json"
            _write_token(token_file)

            client = OAuthClient(
                AuthInfo(
                    client_secrets_file=str(tmp_path / "client_secrets.json"),
                    token_file=str(token_file),
                )
            )
            creds = Mock()
            creds.valid = True
            creds.refresh_token = "r"
            creds.to_json.return_value = '{"token": "new"}'
            client._creds = creds

            self.assertFalse(client.refresh())
            self.assertTrue(client.refresh(force=True))

            creds.refresh.assert_called_once()
            self.assertEqual(json.loads(token_file.read_text(encoding="utf-8")), {"token": "new"})

    def test_refresh_without_refresh_token_raises(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            client = OAuthClient(
                AuthInfo(
                    client_secrets_file=str(tmp_path / "c.json"),
                    token_file=str(tmp_path / "t.json"),
                )
            )
            creds = Mock()
            creds.valid = False
            creds.refresh_token = None
            client._creds = creds

            with self.assertRaises(AuthError):
                client.refresh(force=True)


if __name__ == "__main__":
    unittest.main()
