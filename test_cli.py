from __future__ import annotations

import io
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from typing import Dict
from unittest import mock

from zipkit.cli import main


def _build_fixture_tree(root: Path) -> Dict[str, bytes]:
    files: Dict[str, bytes] = {}
    (root / "docs" / "notes").mkdir(parents=True)
    files["docs/readme.txt"] = b"hello world\n" * 20
    files["docs/notes/binary.bin"] = os.urandom(2048)
    files["docs/notes/empty.txt"] = b""
    for name, data in files.items():
        (root / name).write_bytes(data)
    return files


def _run(*argv: str) -> str:
    out = io.StringIO()
    with redirect_stdout(out):
        main(list(argv))
    return out.getvalue()


class CliWorkflowTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.src = self.tmp / "src"
        self.src.mkdir()
        self.files = _build_fixture_tree(self.src)
        self.archive = str(self.tmp / "out.zip")

    def tearDown(self):
        self._tmp.cleanup()

    def _assert_unpacked(self, outdir: Path):
        for name, data in self.files.items():
            self.assertEqual((outdir / name).read_bytes(), data, name)

    def test_pack_list_unpack(self):
        text = _run("pack", self.archive, str(self.src / "docs"), "--quiet")
        self.assertIn("Done: 3 files, 2 dirs", text)

        listing = _run("list", self.archive).splitlines()
        self.assertIn("dir\t0\tstored\tdocs/", listing)
        self.assertIn("file\t240\tdeflated\tdocs/readme.txt", listing)
        self.assertIn("file\t0\tdeflated\tdocs/notes/empty.txt", listing)

        outdir = self.tmp / "restored"
        text = _run("unpack", self.archive, "--outdir", str(outdir))
        self.assertIn("Extracted 5 entries", text)
        self._assert_unpacked(outdir)

    def test_stored_large_file(self):
        _run("pack", self.archive, str(self.src / "docs"), "--method", "stored", "--large-file", "--quiet")
        listing = _run("list", self.archive)
        self.assertIn("file\t2048\tstored\tdocs/notes/binary.bin", listing)
        outdir = self.tmp / "restored"
        _run("unpack", self.archive, "--outdir", str(outdir), "--quiet")
        self._assert_unpacked(outdir)

    def test_password_round_trip(self):
        _run("pack", self.archive, str(self.src / "docs"), "--password", "hunter2", "--quiet")
        listing = _run("list", self.archive)
        self.assertIn("docs/readme.txt\tAES256", listing)

        outdir = self.tmp / "restored"
        _run("unpack", self.archive, "--outdir", str(outdir), "--password", "hunter2", "--quiet")
        self._assert_unpacked(outdir)

    def test_pack_current_directory(self):
        cwd = os.getcwd()
        os.chdir(self.src)
        self.addCleanup(os.chdir, cwd)
        inner = "inner.zip"
        _run("pack", inner, ".", "--quiet")
        # A second run walks over the archive it is writing and must skip it
        _run("pack", inner, ".", "--quiet")
        names = [line.split("\t")[3] for line in _run("list", inner).splitlines()]
        self.assertNotIn(inner, names)
        self.assertIn("docs/", names)
        self.assertIn("docs/readme.txt", names)

        outdir = self.tmp / "restored"
        _run("unpack", inner, "--outdir", str(outdir), "--quiet")
        self._assert_unpacked(outdir)

    def test_pack_parent_reference(self):
        _run("pack", self.archive, str(self.src / "docs" / "notes" / ".."), "--quiet")
        names = [line.split("\t")[3] for line in _run("list", self.archive).splitlines()]
        self.assertEqual(sorted(names), ["notes/", "notes/binary.bin", "notes/empty.txt", "readme.txt"])

    def test_password_prompt(self):
        with mock.patch("zipkit.cli._getpass.getpass", return_value="hunter2") as prompt:
            _run("pack", self.archive, str(self.src / "docs"), "--quiet", "--password")
            outdir = self.tmp / "restored"
            _run("unpack", self.archive, "--outdir", str(outdir), "--quiet", "--password")
        self.assertEqual(prompt.call_count, 2)
        self._assert_unpacked(outdir)
        self.assertIn("AES256", _run("list", self.archive))

    def test_missing_password_exits_with_error(self):
        _run("pack", self.archive, str(self.src / "docs"), "--password", "hunter2", "--quiet")
        err = io.StringIO()
        with redirect_stderr(err), self.assertRaises(SystemExit) as ctx:
            _run("unpack", self.archive, "--outdir", str(self.tmp / "restored"))
        self.assertEqual(ctx.exception.code, 2)
        self.assertIn("--password", err.getvalue())

    def test_missing_archive_exits_with_error(self):
        err = io.StringIO()
        with redirect_stderr(err), self.assertRaises(SystemExit) as ctx:
            _run("list", str(self.tmp / "nope.zip"))
        self.assertEqual(ctx.exception.code, 2)
        self.assertTrue(err.getvalue().startswith("Error:"))

    def test_not_a_zip_exits_with_error(self):
        bogus = self.tmp / "bogus.zip"
        bogus.write_bytes(b"this is not an archive" * 4)
        err = io.StringIO()
        with redirect_stderr(err), self.assertRaises(SystemExit) as ctx:
            _run("list", str(bogus))
        self.assertEqual(ctx.exception.code, 2)


if __name__ == "__main__":
    unittest.main()
