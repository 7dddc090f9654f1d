"""
Tests for the protocol adapters, using stand-ins for ftplib.FTP and
paramiko.SSHClient.
"""
import ftplib
import io
import stat
import tempfile
import unittest
from pathlib import Path

import paramiko

from ftpmirror.core.clients import (FTPClient, SFTPClient, _parse_mlsd_time,
                                    make_client, parse_list_line)
from ftpmirror.core.entries import EntryKind
from ftpmirror.errors import ConnectError, DownloadError, ListError
from tests.fakes import make_config


class StubFTP:
    """Just enough of ftplib.FTP for FTPClient."""

    instances = []

    def __init__(self, timeout=None, encoding=None):
        self.timeout = timeout
        self.encoding = encoding
        self.sock = None
        self.commands = []
        self.mlsd_error = None
        self.login_error = None
        self.mlsd_rows = []
        self.list_lines = []
        self.payload = b""
        StubFTP.instances.append(self)

    def connect(self, host, port):
        self.commands.append(("connect", host, port))
        self.sock = object()

    def login(self, user, password):
        if self.login_error:
            raise self.login_error
        self.commands.append(("login", user, password))

    def set_pasv(self, value):
        self.commands.append(("pasv", value))

    def voidcmd(self, cmd):
        self.commands.append(("voidcmd", cmd))

    def mlsd(self, path, facts=()):
        if self.mlsd_error:
            raise self.mlsd_error
        return iter(self.mlsd_rows)

    def retrlines(self, cmd, callback):
        self.commands.append(("retrlines", cmd))
        for line in self.list_lines:
            callback(line)

    def size(self, path):
        return len(self.payload)

    def retrbinary(self, cmd, callback):
        self.commands.append(("retrbinary", cmd))
        for i in range(0, len(self.payload), 4):
            callback(self.payload[i:i + 4])

    def quit(self):
        self.commands.append(("quit",))
        self.sock = None

    def close(self):
        self.sock = None


class TestParsing(unittest.TestCase):

    def test_mlsd_time(self):
        self.assertEqual(_parse_mlsd_time("19700101000010"), 10.0)
        self.assertEqual(_parse_mlsd_time("19700101000010.123"), 10.0)
        self.assertIsNone(_parse_mlsd_time(None))
        self.assertIsNone(_parse_mlsd_time("garbage"))

    def test_list_line_file_and_dir(self):
        f = parse_list_line("-rw-r--r--   1 ftp ftp     1234 Jan 01 12:00 report 2020.pdf")
        self.assertEqual((f.name, f.kind, f.size), ("report 2020.pdf", EntryKind.FILE, 1234))
        d = parse_list_line("drwxr-xr-x   2 ftp ftp     4096 Mar  3  2021 music")
        self.assertEqual((d.name, d.kind), ("music", EntryKind.DIRECTORY))

    def test_list_line_skips_links_and_noise(self):
        self.assertIsNone(parse_list_line("lrwxrwxrwx 1 ftp ftp 4 Jan 01 12:00 a -> b"))
        self.assertIsNone(parse_list_line("total 12"))


class TestFTPClient(unittest.TestCase):

    def setUp(self):
        StubFTP.instances.clear()
        self.tmpdir = tempfile.TemporaryDirectory()
        self.config = make_config(Path(self.tmpdir.name), port=2121, encoding="cp1252",
                                  user="bob", password="pw")
        self.client = FTPClient(self.config, ftp_factory=StubFTP)

    def tearDown(self):
        self.tmpdir.cleanup()

    @property
    def ftp(self) -> StubFTP:
        return StubFTP.instances[-1]

    def test_connect_applies_defaults(self):
        self.assertTrue(self.client.closed)
        self.client.connect()
        self.assertFalse(self.client.closed)
        self.assertEqual(self.ftp.encoding, "cp1252")
        self.assertEqual(self.ftp.commands, [
            ("connect", "ftp.example.com", 2121),
            ("login", "bob", "pw"),
            ("pasv", True),
            ("voidcmd", "TYPE I"),
        ])

    def test_login_failure_is_connect_error(self):
        def factory(**kw):
            ftp = StubFTP(**kw)
            ftp.login_error = ftplib.error_perm("530 Login incorrect.")
            return ftp

        client = FTPClient(self.config, ftp_factory=factory)
        with self.assertRaises(ConnectError):
            client.connect()
        self.assertTrue(client.closed)

    def test_list_uses_mlsd_facts(self):
        self.client.connect()
        self.ftp.mlsd_rows = [
            (".", {"type": "cdir"}),
            ("a.txt", {"type": "file", "size": "12", "modify": "19700101000100"}),
            ("sub", {"type": "dir"}),
            ("link", {"type": "OS.unix=symlink"}),
        ]
        entries = self.client.list("/pub")
        self.assertEqual([e.name for e in entries], ["a.txt", "sub"])
        self.assertEqual(entries[0].size, 12)
        self.assertEqual(entries[0].modified_at, 60.0)
        self.assertTrue(entries[1].is_dir)

    def test_list_skips_path_named_cdir_and_pdir(self):
        self.client.connect()
        self.ftp.mlsd_rows = [
            ("/pub", {"type": "cdir"}),
            ("/", {"type": "pdir"}),
            ("a.txt", {"type": "file", "size": "3"}),
        ]
        entries = self.client.list("/pub")
        self.assertEqual([(e.name, e.is_dir) for e in entries], [("a.txt", False)])

    def test_list_falls_back_to_list_command(self):
        self.client.connect()
        self.ftp.mlsd_error = ftplib.error_perm("500 Unknown command.")
        self.ftp.list_lines = ["-rw-r--r-- 1 ftp ftp 7 Jan 01 12:00 a.txt"]
        entries = self.client.list("/pub")
        self.assertEqual([(e.name, e.size, e.modified_at) for e in entries], [("a.txt", 7, None)])
        self.assertIn(("retrlines", "LIST /pub"), self.ftp.commands)

    def test_list_permission_error(self):
        self.client.connect()
        self.ftp.mlsd_error = ftplib.error_perm("550 No such directory.")
        with self.assertRaises(ListError):
            self.client.list("/nope")

    def test_list_when_not_connected(self):
        with self.assertRaises(ListError):
            self.client.list("/pub")

    def test_download_streams_with_progress(self):
        self.client.connect()
        self.ftp.payload = b"0123456789"
        sink = io.BytesIO()
        seen = []
        self.client.download("/pub/a.bin", sink, lambda done, total: seen.append((done, total)))
        self.assertEqual(sink.getvalue(), b"0123456789")
        self.assertEqual(seen, [(4, 10), (8, 10), (10, 10)])
        self.assertIn(("retrbinary", "RETR /pub/a.bin"), self.ftp.commands)

    def test_download_when_not_connected(self):
        with self.assertRaises(DownloadError):
            self.client.download("/pub/a.bin", io.BytesIO())

    def test_close_twice(self):
        self.client.connect()
        self.client.close()
        self.client.close()
        self.assertTrue(self.client.closed)

    def test_abort_skips_quit(self):
        self.client.connect()
        ftp = self.ftp
        self.client.abort()
        self.assertTrue(self.client.closed)
        self.assertIsNone(ftp.sock)
        self.assertNotIn(("quit",), ftp.commands)
        self.client.abort()


class StubTransport:
    def __init__(self):
        self.keepalive = None

    def set_keepalive(self, interval):
        self.keepalive = interval

    def is_active(self):
        return True


class StubSFTP:
    def __init__(self):
        self.attrs = []
        self.payload = b""

    def listdir_attr(self, path):
        return self.attrs

    def getfo(self, path, sink, callback=None):
        sink.write(self.payload)
        if callback:
            callback(len(self.payload), len(self.payload))

    def close(self):
        pass


class StubSSH:
    last = None

    def __init__(self):
        self.kw = None
        self.transport = StubTransport()
        self.sftp = StubSFTP()
        StubSSH.last = self

    def set_missing_host_key_policy(self, policy):
        self.policy = policy

    def connect(self, **kw):
        self.kw = kw

    def get_transport(self):
        return self.transport

    def open_sftp(self):
        return self.sftp

    def close(self):
        pass


def sftp_attr(name, mode, size=0, mtime=None):
    a = paramiko.SFTPAttributes()
    a.filename = name
    a.st_mode = mode
    a.st_size = size
    a.st_mtime = mtime
    return a


class TestSFTPClient(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.config = make_config(Path(self.tmpdir.name), protocol="sftp", port=22,
                                  user="alice", password="pw")
        self.client = SFTPClient(self.config, ssh_factory=StubSSH)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_connect(self):
        self.client.connect()
        ssh = StubSSH.last
        self.assertEqual(ssh.kw["hostname"], "ftp.example.com")
        self.assertEqual(ssh.kw["username"], "alice")
        self.assertEqual(ssh.kw["password"], "pw")
        self.assertEqual(ssh.transport.keepalive, 30)
        self.assertFalse(self.client.closed)

    def test_list_maps_modes(self):
        self.client.connect()
        StubSSH.last.sftp.attrs = [
            sftp_attr("a.txt", stat.S_IFREG | 0o644, 12, 99),
            sftp_attr("sub", stat.S_IFDIR | 0o755),
            sftp_attr("link", stat.S_IFLNK | 0o777),
        ]
        entries = self.client.list("/pub")
        self.assertEqual([(e.name, e.kind) for e in entries],
                         [("a.txt", EntryKind.FILE), ("sub", EntryKind.DIRECTORY)])
        self.assertEqual(entries[0].modified_at, 99.0)

    def test_download(self):
        self.client.connect()
        StubSSH.last.sftp.payload = b"abc"
        sink = io.BytesIO()
        self.client.download("/pub/a", sink)
        self.assertEqual(sink.getvalue(), b"abc")

    def test_make_client_picks_protocol(self):
        self.assertIsInstance(make_client(self.config), SFTPClient)
        ftp_config = make_config(Path(self.tmpdir.name))
        self.assertIsInstance(make_client(ftp_config), FTPClient)


if __name__ == "__main__":
    unittest.main()
