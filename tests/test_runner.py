"""
Tests for remote enumeration parsing and per-site orchestration.

The SSH manager is replaced by a mock throughout; nothing here opens a socket.
"""
import tempfile
import unittest
from pathlib import Path, PurePosixPath
from unittest import mock

import sitemirror.config as cfg
from sitemirror.core import runner
from sitemirror.core.ssh_manager import SSHManager
from sitemirror.errors import MissingInventoryError, TransferError
from sitemirror.models import InventoryRecord, Mode, Status
from sitemirror.operations import scanner
from sitemirror.operations.transfer import download, fetch_file
from sitemirror.state.inventory import load_inventory, save_inventory
from sitemirror.state.ledger import Ledger

SITE_A = "https://files.example.com/sites/Alpha"
SITE_B = "https://files.example.com/sites/Beta"

SCAN_OUTPUT = (
    "Shared Documents/report.pdf\t1700000000.25\t1200\n"
    "Shared Documents/sub dir/notes.txt\t1700000100.0\t34\n"
    "readme.md\t1700000200.0\t5\n"
    "garbage line\n"
)


class ConfiguredTestCase(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name)
        self._saved = (cfg.LOCAL_ROOT, cfg.DATA_DIR, cfg.REMOTE_ROOT, cfg.SSH_HOST, cfg.SSH_PORT)
        cfg.LOCAL_ROOT = self.root / "mirror"
        cfg.DATA_DIR = self.root / "data"
        cfg.REMOTE_ROOT = PurePosixPath("/srv/docs")
        cfg.SSH_HOST = "files.example.com"
        cfg.SSH_PORT = 22
        self.mgr = mock.Mock()
        self.mgr.sftp_is_dir.return_value = True
        self.mgr.exec.return_value = (SCAN_OUTPUT, "")

    def tearDown(self):
        (cfg.LOCAL_ROOT, cfg.DATA_DIR, cfg.REMOTE_ROOT, cfg.SSH_HOST, cfg.SSH_PORT) = self._saved
        self.tmpdir.cleanup()


# ── Tests: enumeration ────────────────────────────────────────────────────────

class TestEnumeration(ConfiguredTestCase):

    def test_enumerate_files_builds_records(self):
        records = scanner.enumerate_files(self.mgr, SITE_A)
        self.assertEqual([r.server_path for r in records], [
            "/sites/Alpha/Shared Documents/report.pdf",
            "/sites/Alpha/Shared Documents/sub dir/notes.txt",
            "/sites/Alpha/readme.md",
        ])
        first = records[0]
        self.assertEqual(first.file_name, "report.pdf")
        self.assertEqual(first.size_bytes, 1200)
        self.assertEqual(first.library, "Shared Documents")
        self.assertEqual(first.url, "sftp://files.example.com:22/srv/docs/sites/Alpha/Shared Documents/report.pdf")
        self.assertEqual(records[2].library, "")
        self.mgr.sftp_is_dir.assert_called_with("/srv/docs/sites/Alpha")
        self.assertIn("cd /srv/docs/sites/Alpha && find", self.mgr.exec.call_args[0][0])

    def test_enumerate_missing_site_dir(self):
        self.mgr.sftp_is_dir.return_value = False
        with self.assertRaises(FileNotFoundError):
            scanner.enumerate_files(self.mgr, SITE_A)

    def test_directory_sizes(self):
        records = scanner.enumerate_files(self.mgr, SITE_A)
        rows = scanner.directory_sizes(records, "/sites/Alpha", depth=1)
        self.assertEqual(rows, [("Shared Documents", 2, 1234), (".", 1, 5)])
        rows = scanner.directory_sizes(records, "/sites/Alpha", depth=2)
        self.assertIn(("Shared Documents/sub dir", 1, 34), rows)

    def test_format_size(self):
        self.assertEqual(scanner.format_size(512), "512 B")
        self.assertEqual(scanner.format_size(2048), "2.00 KB")
        self.assertEqual(scanner.format_size(3 * 1024 ** 4), "3.00 TB")


# ── Tests: transfer primitive ─────────────────────────────────────────────────

class TestFetchFile(ConfiguredTestCase):

    def test_fetch_renames_part_file(self):
        dest = self.root / "out"
        dest.mkdir()

        def fake_get(remote, local):
            Path(local).write_bytes(b"hello")

        self.mgr.sftp_get.side_effect = fake_get
        ok, msg = fetch_file(self.mgr, "/sites/Alpha/readme.md", dest, "readme.md")
        self.assertTrue(ok, msg)
        self.mgr.sftp_get.assert_called_once_with("/srv/docs/sites/Alpha/readme.md",
                                                  str(dest / "readme.md.part"))
        self.assertEqual((dest / "readme.md").read_bytes(), b"hello")
        self.assertFalse((dest / "readme.md.part").exists())

    def test_fetch_failure_cleans_up(self):
        dest = self.root / "out"
        dest.mkdir()

        def broken_get(remote, local):
            Path(local).write_bytes(b"hal")
            raise EOFError("connection dropped")

        self.mgr.sftp_get.side_effect = broken_get
        ok, msg = fetch_file(self.mgr, "/sites/Alpha/readme.md", dest, "readme.md")
        self.assertFalse(ok)
        self.assertEqual(msg, "EOFError: connection dropped")
        self.assertEqual(list(dest.iterdir()), [])

    def test_download_raises_transfer_error(self):
        dest = self.root / "out"
        dest.mkdir()
        self.mgr.sftp_get.side_effect = PermissionError("remote: permission denied")
        with self.assertRaises(TransferError) as ctx:
            download(self.mgr, "/sites/Alpha/locked.docx", dest / "locked.docx")
        self.assertIn("PermissionError", str(ctx.exception))
        self.assertIsInstance(ctx.exception.__cause__, PermissionError)
        self.assertEqual(list(dest.iterdir()), [])


# ── Tests: SSH manager ────────────────────────────────────────────────────────

class TestSSHManager(unittest.TestCase):

    def test_disconnect_without_connection_is_silent(self):
        with mock.patch("sitemirror.core.ssh_manager.log") as log:
            SSHManager().disconnect()
        log.assert_not_called()

    def test_disconnect_closes_open_session(self):
        mgr = SSHManager()
        client, sftp = mock.Mock(), mock.Mock()
        mgr._ssh, mgr._sftp = client, sftp
        with mock.patch("sitemirror.core.ssh_manager.log") as log:
            mgr.disconnect()
        sftp.close.assert_called_once_with()
        client.close.assert_called_once_with()
        log.assert_called_once_with("[SSH] disconnected.")
        self.assertIsNone(mgr._ssh)

    def test_connect_kwargs_follow_profile(self):
        saved = (cfg.SSH_HOST, cfg.SSH_PORT, cfg.SSH_USER, cfg.SSH_KEY_PATH, cfg.SSH_PASSWORD)
        try:
            cfg.SSH_HOST, cfg.SSH_PORT, cfg.SSH_USER = "files.example.com", 2222, "mirror"
            cfg.SSH_KEY_PATH, cfg.SSH_PASSWORD = None, "s3cret"
            kw = SSHManager._connect_kwargs()
        finally:
            (cfg.SSH_HOST, cfg.SSH_PORT, cfg.SSH_USER, cfg.SSH_KEY_PATH, cfg.SSH_PASSWORD) = saved
        self.assertEqual((kw["hostname"], kw["port"], kw["username"]),
                         ("files.example.com", 2222, "mirror"))
        self.assertEqual(kw["password"], "s3cret")
        self.assertNotIn("key_filename", kw)


# ── Tests: per-site runs ──────────────────────────────────────────────────────

def _writing_fetch(server_path, dest_dir, file_name):
    (Path(dest_dir) / file_name).write_text(server_path, encoding="utf-8")
    return True, ""


class TestRunSites(ConfiguredTestCase):

    def _seed_inventory(self, site_name, paths):
        save_inventory(cfg.get_inventory_file(site_name),
                       [InventoryRecord(p, PurePosixPath(p).name, 1) for p in paths])

    def test_missing_inventory_aborts_only_that_site(self):
        self._seed_inventory("Beta", ["/sites/Beta/Docs/x.txt"])
        with mock.patch("builtins.print"):
            aborted = runner.run_sites([SITE_A, SITE_B], Mode.SYNC, mgr=self.mgr,
                                       fetch=_writing_fetch)
        self.assertEqual(aborted, ["Alpha"])
        ledger = Ledger.load(cfg.get_ledger_file("Beta"))
        self.assertEqual(ledger.get("/sites/Beta/Docs/x.txt").status, Status.SUCCESS)
        self.assertTrue((cfg.LOCAL_ROOT / "Beta" / "Docs" / "x.txt").exists())

    def test_run_site_raises_missing_inventory(self):
        with self.assertRaises(MissingInventoryError):
            runner.run_site(SITE_A, Mode.RESUME, _writing_fetch)

    def test_sites_use_separate_ledgers(self):
        self._seed_inventory("Alpha", ["/sites/Alpha/a.txt"])
        self._seed_inventory("Beta", ["/sites/Beta/b.txt"])
        with mock.patch("builtins.print"):
            runner.run_sites([SITE_A, SITE_B], Mode.SYNC, mgr=self.mgr, fetch=_writing_fetch)
        self.assertEqual(len(Ledger.load(cfg.get_ledger_file("Alpha"))), 1)
        self.assertEqual(len(Ledger.load(cfg.get_ledger_file("Beta"))), 1)
        self.assertTrue((cfg.LOCAL_ROOT / "Alpha" / "a.txt").exists())
        self.assertTrue((cfg.LOCAL_ROOT / "Beta" / "b.txt").exists())

    def test_update_refreshes_only_selected_site(self):
        self._seed_inventory("Beta", ["/sites/Beta/old.txt"])
        with mock.patch("builtins.print"):
            aborted = runner.run_sites([SITE_A], Mode.UPDATE, mgr=self.mgr, fetch=_writing_fetch)
        self.assertEqual(aborted, [])
        self.assertEqual(len(load_inventory(cfg.get_inventory_file("Alpha"))), 3)
        beta = load_inventory(cfg.get_inventory_file("Beta"))
        self.assertEqual([r.server_path for r in beta], ["/sites/Beta/old.txt"])
        self.assertTrue((cfg.LOCAL_ROOT / "Alpha" / "Shared Documents" / "sub dir" / "notes.txt").exists())

    def test_update_fetches_only_new_files(self):
        runner.generate_inventory(self.mgr, SITE_A)
        with mock.patch("builtins.print"):
            runner.run_site(SITE_A, Mode.SYNC, _writing_fetch)
        self.mgr.exec.return_value = (SCAN_OUTPUT + "new.txt\t1700000300.0\t9\n", "")

        fetch = mock.Mock(side_effect=_writing_fetch)
        with mock.patch("builtins.print"):
            summary = runner.run_site(SITE_A, Mode.UPDATE, fetch, mgr=self.mgr)
        self.assertEqual(summary.succeeded, 1)
        fetch.assert_called_once()
        self.assertEqual(fetch.call_args[0][0], "/sites/Alpha/new.txt")

    def test_enumeration_error_aborts_site(self):
        self.mgr.sftp_is_dir.return_value = False
        with mock.patch("builtins.print"):
            aborted = runner.run_sites([SITE_A], Mode.UPDATE, mgr=self.mgr, fetch=_writing_fetch)
        self.assertEqual(aborted, ["Alpha"])

    def test_site_status(self):
        self._seed_inventory("Alpha", ["/sites/Alpha/a.txt", "/sites/Alpha/b.txt"])
        with mock.patch("builtins.print"):
            runner.run_site(SITE_A, Mode.SYNC,
                            lambda s, d, f: (False, "denied") if s.endswith("b.txt")
                            else _writing_fetch(s, d, f))
        st = runner.site_status(SITE_A)
        self.assertEqual(st["inventory"], 2)
        self.assertEqual((st["success"], st["failed"], st["untracked"]), (1, 1, 0))

    def test_check_login(self):
        self.mgr.sftp_is_dir.side_effect = lambda p: p.endswith("Alpha")
        self.assertTrue(runner.check_login(self.mgr, [SITE_A]))
        self.assertFalse(runner.check_login(self.mgr, [SITE_A, SITE_B]))


if __name__ == "__main__":
    unittest.main()
