import json
import os
import tempfile
import unittest
from datetime import datetime, timezone
from unittest.mock import Mock, patch

from gdrivemirror import DriveConfig, DriveSession, InMemoryDriveService, SnapshotStore
from gdrivemirror.errors import (
    ConflictError,
    ConsistencyTimeoutError,
    InvalidArgumentError,
    TargetExistsError,
    TargetNotEmptyError,
)
from gdrivemirror.models import File, Folder
from gdrivemirror.retry import RetryingInvoker
from gdrivemirror.util.mime import FOLDER_MIME


class TestDriveSession(unittest.TestCase):
    def _make_session(self, service=None, **kwargs) -> DriveSession:
        self.service = service or InMemoryDriveService()
        self.sleep = Mock()
        session = DriveSession(
            self.service,
            invoker=RetryingInvoker(Mock(), sleep=Mock()),
            sleep=self.sleep,
            **kwargs,
        )
        session.sync()
        return session

    def _mutations(self) -> list[str]:
        names = {"create_folder", "update_metadata", "delete_entry", "start_upload"}
        return [c[0] for c in self.service.calls if c[0] in names]

    # ----------------------------
    # create_folder
    # ----------------------------
    def test_create_folder_recursive(self) -> None:
        session = self._make_session()
        root = session.root()

        c = session.create_folder(root, "a/b/c", recursive=True)

        a = session.get_entry_by_path("/a")
        b = session.get_entry_by_path("/a/b")
        self.assertEqual(a.parent_id, root.id)
        self.assertEqual(b.parent_id, a.id)
        self.assertEqual(c.parent_id, b.id)
        self.assertEqual(session.path_of(c), "/a/b/c")

        with self.assertRaises(ConflictError):
            session.create_folder(root, "a/b/c", recursive=True)

    def test_create_folder_reuses_intermediates(self) -> None:
        session = self._make_session()
        root = session.root()
        session.create_folder(root, "a/b", recursive=True)
        before = len(self._mutations())

        d = session.create_folder(root, "a/b/d", recursive=True)

        self.assertEqual(len(self._mutations()) - before, 1)
        self.assertEqual(session.path_of(d), "/a/b/d")
        self.assertIs(session.create_folder(root, "a/b/d", recursive=True, exist_ok=True), d)

    def test_create_folder_rejects_separator_without_recursive(self) -> None:
        session = self._make_session()
        with self.assertRaises(InvalidArgumentError):
            session.create_folder(session.root(), "a/b")

    def test_create_folder_blocked_by_file(self) -> None:
        session = self._make_session()
        session.upload_bytes(session.root(), "a", b"x")
        with self.assertRaises(TargetExistsError):
            session.create_folder(session.root(), "a/b", recursive=True)

    def test_create_folder_is_visible_remotely_and_locally(self) -> None:
        session = self._make_session()
        folder = session.create_folder(session.root(), "docs")
        self.assertIsInstance(folder, Folder)
        self.assertTrue(self.service.has(folder.id))
        self.assertEqual(self.service.record_of(folder.id).mime_type, FOLDER_MIME)

    # ----------------------------
    # move / rename
    # ----------------------------
    def test_move_to_same_place_is_idempotent(self) -> None:
        session = self._make_session()
        folder = session.create_folder(session.root(), "a")
        f = session.upload_bytes(folder, "f.txt", b"x")
        target = session.create_folder(session.root(), "b")

        session.move(f, target)
        count = len(self._mutations())
        session.move(f, target)
        session.move(f, target, "f.txt")

        self.assertEqual(len(self._mutations()), count)
        self.assertEqual(session.path_of(f), "/b/f.txt")

    def test_move_with_rename_updates_remote_and_graph(self) -> None:
        session = self._make_session()
        a = session.create_folder(session.root(), "a")
        f = session.upload_bytes(session.root(), "f.txt", b"x")

        moved = session.move(f, a, "g.txt")

        self.assertIs(moved, f)
        self.assertEqual(session.path_of(f), "/a/g.txt")
        record = self.service.record_of(f.id)
        self.assertEqual((record.parent_id, record.name), (a.id, "g.txt"))

    def test_rename_onto_existing_needs_overwrite(self) -> None:
        session = self._make_session()
        f = session.upload_bytes(session.root(), "f.txt", b"1")
        g = session.upload_bytes(session.root(), "g.txt", b"2")

        with self.assertRaises(TargetExistsError):
            session.rename(f, "g.txt")

        session.rename(f, "g.txt", overwrite=True)

        self.assertIsNone(session.get_entry(g.id))
        self.assertFalse(self.service.has(g.id))
        self.assertIs(session.get_entry_by_path("/g.txt"), f)

    def test_non_empty_folder_is_never_overwritten(self) -> None:
        session = self._make_session()
        busy = session.create_folder(session.root(), "busy")
        session.upload_bytes(busy, "inner", b"x")
        other = session.create_folder(session.root(), "other")

        with self.assertRaises(TargetNotEmptyError):
            session.rename(other, "busy", overwrite=True)
        self.assertEqual(session.path_of(other), "/other")

    def test_move_root_or_into_descendant_fails(self) -> None:
        session = self._make_session()
        a = session.create_folder(session.root(), "a/b", recursive=True)
        with self.assertRaises(InvalidArgumentError):
            session.move(session.root(), a)
        with self.assertRaises(InvalidArgumentError):
            session.move(session.get_entry_by_path("/a"), a)

    def test_rejected_move_leaves_graph_unchanged(self) -> None:
        session = self._make_session()
        a = session.create_folder(session.root(), "a")
        f = session.upload_bytes(session.root(), "f", b"x")
        self.service.fail_next("update_metadata", ConflictError("precondition failed"))

        with self.assertRaises(ConflictError):
            session.move(f, a)
        self.assertEqual(session.path_of(f), "/f")

    # ----------------------------
    # delete / update
    # ----------------------------
    def test_delete_folder(self) -> None:
        session = self._make_session()
        folder = session.create_folder(session.root(), "a")
        f = session.upload_bytes(folder, "f", b"x")

        with self.assertRaises(TargetNotEmptyError):
            session.delete(folder)

        session.delete(folder, recursive=True)

        self.assertIsNone(session.get_entry(folder.id))
        self.assertIsNone(session.get_entry(f.id))
        self.assertFalse(self.service.has(f.id))

        with self.assertRaises(InvalidArgumentError):
            session.delete(session.root())

    def test_update_entry_properties_and_time(self) -> None:
        session = self._make_session()
        f = session.upload_bytes(session.root(), "f", b"x")
        when = datetime(2024, 5, 1, tzinfo=timezone.utc)

        session.update_entry(f, properties={"origin": "backup"}, modified_time=when)

        self.assertEqual(f.properties, {"origin": "backup"})
        self.assertEqual(f.modified_time, when)

    # ----------------------------
    # transfers / queries
    # ----------------------------
    def test_upload_and_read_content(self) -> None:
        session = self._make_session(chunk_size=4)
        folder = session.create_folder(session.root(), "a")

        upload = session.upload(folder, "data.bin", 10)
        self.assertIsNone(upload.append(b"01234"))
        f = upload.append(b"56789")

        self.assertIsInstance(f, File)
        self.assertIs(session.get_entry_by_path("/a/data.bin"), f)
        self.assertEqual(session.read_content(f), b"0123456789")
        self.assertEqual(session.read_content(f, 2, 3), b"234")
        self.assertEqual(session.size_of(folder), 10)
        self.assertEqual([e.name for e in session.children(folder)], ["data.bin"])

    def test_upload_file_from_disk(self) -> None:
        session = self._make_session(chunk_size=3)
        progress = Mock()
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "hello.txt")
            with open(path, "wb") as f:
                f.write(b"hello world")

            entry = session.upload_file(session.root(), path, progress_callback=progress)

        self.assertEqual(entry.name, "hello.txt")
        self.assertEqual(self.service.content_of(entry.id), b"hello world")
        self.assertEqual(progress.call_args.args, (11, 11))

    def test_download_of_folder_is_rejected(self) -> None:
        session = self._make_session()
        folder = session.create_folder(session.root(), "a")
        with self.assertRaises(InvalidArgumentError):
            session.download(folder)

    # ----------------------------
    # consistency / snapshots
    # ----------------------------
    def test_wait_for_sees_lagging_change(self) -> None:
        service = InMemoryDriveService(visibility_lag=2)
        session = self._make_session(service)
        service.add_folder("remote")

        session.wait_for(lambda s: s.get_entry_by_path("/remote") is not None, attempts=5)

        self.assertIsNotNone(session.get_entry_by_path("/remote"))
        self.assertEqual(self.sleep.call_count, 2)

    def test_wait_for_times_out(self) -> None:
        session = self._make_session()
        with self.assertRaises(ConsistencyTimeoutError):
            session.wait_for(lambda s: False, attempts=3, interval_sec=0.5)
        self.assertEqual([c.args[0] for c in self.sleep.call_args_list], [0.5, 0.5])

    def test_snapshot_and_restore(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            store = SnapshotStore(os.path.join(tmp, "files.cache"))
            session = self._make_session(store=store)
            session.create_folder(session.root(), "a/b", recursive=True)
            session.snapshot()

            restored = DriveSession(self.service, store=store)
            self.assertTrue(restored.restore())
            self.assertEqual(restored.continuation_token, session.continuation_token)
            self.assertIsNotNone(restored.get_entry_by_path("/a/b"))

            # A restored snapshot is only a starting point.
            self.service.add_folder("later")
            restored.sync()
            self.assertIsNotNone(restored.get_entry_by_path("/later"))


class TestDriveSessionConnect(unittest.TestCase):
    def test_connect_restores_and_syncs(self) -> None:
        service = InMemoryDriveService()
        service.add_folder("existing")

        with tempfile.TemporaryDirectory() as tmp:
            config = DriveConfig(config_dir=tmp)
            with patch("gdrivemirror.session.OAuthClient") as oauth_cls, patch(
                "gdrivemirror.session.GoogleDriveService", return_value=service
            ):
                first = DriveSession.connect(config)
                self.assertIsNotNone(first.get_entry_by_path("/existing"))
                self.assertTrue(os.path.exists(config.snapshot_path))

                service.add_folder("new")
                second = DriveSession.connect(config)

            oauth_cls.assert_called_with(config.auth_info(), application_name=None)
            self.assertIsNotNone(second.get_entry_by_path("/new"))
            self.assertEqual(second.sync().mode, "incremental")
            list_calls = [c for c in service.calls if c[0] == "list_entries"]
            self.assertEqual(len(list_calls), 1)


    def test_connect_with_corrupt_snapshot_runs_full_sync(self) -> None:
        service = InMemoryDriveService()
        service.add_folder("existing")

        with tempfile.TemporaryDirectory() as tmp:
            config = DriveConfig(config_dir=tmp)
            with open(config.snapshot_path, "w", encoding="utf-8") as f:
                json.dump(
                    {
                        "version": 1,
                        "token": "5",
                        "root_id": "root",
                        "entries": [{"kind": "file", "id": "root", "name": "My Drive"}],
                    },
                    f,
                )
            with patch("gdrivemirror.session.OAuthClient"), patch(
                "gdrivemirror.session.GoogleDriveService", return_value=service
            ):
                session = DriveSession.connect(config)

            self.assertIsNotNone(session.get_entry_by_path("/existing"))
            self.assertEqual(session.root().id, service.root_id)
            self.assertEqual(len([c for c in service.calls if c[0] == "list_entries"]), 1)


if __name__ == "__main__":
    unittest.main()
