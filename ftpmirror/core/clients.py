"""
Protocol adapters: FTP/FTPS via ftplib, SFTP via paramiko.

Each adapter exposes the same small surface used by TransportSession:
connect(), close(), closed, list(path) and download(path, sink, progress, size).
Library errors are converted to ConnectError / ListError / DownloadError.
"""
import ftplib
import re
import stat
from datetime import datetime, timezone
from typing import BinaryIO, Callable, List, Optional

import paramiko

from ..config import SyncConfig
from ..errors import ConnectError, DownloadError, ListError
from .entries import EntryKind, RemoteEntry

ProgressCallback = Callable[[int, int], None]

# drwxr-xr-x   2 owner group      4096 Jan 01 12:00 name
_LIST_RE = re.compile(
    r"^(?P<type>[-dlbcps])\S{9}\S*\s+\d+\s+\S+\s+\S+\s+(?P<size>\d+)\s+"
    r"\w{3}\s+\d{1,2}\s+(?:\d{1,2}:\d{2}|\d{4})\s+(?P<name>.+)$"
)


def _parse_mlsd_time(value: Optional[str]) -> Optional[float]:
    """MLSD ``modify`` fact (YYYYMMDDHHMMSS[.sss], UTC) to a POSIX timestamp."""
    if not value or len(value) < 14:
        return None
    try:
        dt = datetime.strptime(value[:14], "%Y%m%d%H%M%S")
    except ValueError:
        return None
    return dt.replace(tzinfo=timezone.utc).timestamp()


def parse_list_line(line: str) -> Optional[RemoteEntry]:
    """Parse one Unix-style LIST line; links and special files are skipped."""
    m = _LIST_RE.match(line)
    if not m:
        return None
    kind = m.group("type")
    if kind == "d":
        return RemoteEntry(m.group("name"), EntryKind.DIRECTORY, int(m.group("size")))
    if kind == "-":
        return RemoteEntry(m.group("name"), EntryKind.FILE, int(m.group("size")))
    return None


class FTPClient:
    """
    Wraps ftplib.FTP (or FTP_TLS for ftps profiles).
    Connection defaults: configured text encoding, passive mode, binary type.
    """

    def __init__(self, config: SyncConfig, ftp_factory=None):
        self._config = config
        if ftp_factory is None:
            ftp_factory = ftplib.FTP_TLS if config.protocol == "ftps" else ftplib.FTP
        self._factory = ftp_factory
        self._ftp: Optional[ftplib.FTP] = None

    @property
    def closed(self) -> bool:
        return self._ftp is None or self._ftp.sock is None

    def connect(self):
        cfg = self._config
        ftp = self._factory(timeout=cfg.timeout, encoding=cfg.encoding)
        try:
            ftp.connect(cfg.host, cfg.port)
            ftp.login(cfg.user, cfg.password)
            if isinstance(ftp, ftplib.FTP_TLS):
                ftp.prot_p()
            ftp.set_pasv(True)
            ftp.voidcmd("TYPE I")
        except ftplib.all_errors as exc:
            ftp.close()
            raise ConnectError(f"cannot connect to {cfg.host}:{cfg.port}: {exc}") from exc
        self._ftp = ftp

    def close(self):
        if self._ftp is None:
            return
        try:
            self._ftp.quit()
        except ftplib.all_errors:
            self._ftp.close()
        finally:
            self._ftp = None

    def abort(self):
        """Drop the control connection at once, without a QUIT exchange."""
        ftp, self._ftp = self._ftp, None
        if ftp is not None:
            ftp.close()

    def _require(self) -> ftplib.FTP:
        if self._ftp is None:
            raise ConnectionError("not connected")
        return self._ftp

    def list(self, path: str) -> List[RemoteEntry]:
        try:
            ftp = self._require()
            try:
                facts = list(ftp.mlsd(path, facts=["type", "size", "modify"]))
            except ftplib.error_perm as exc:
                # 500/502: command not understood / not implemented
                if not str(exc).startswith("50"):
                    raise
                return self._list_fallback(ftp, path)
        except ftplib.all_errors as exc:
            raise ListError(f"cannot list {path}: {exc}") from exc

        entries = []
        for name, f in facts:
            kind = f.get("type", "").lower()
            # cdir/pdir rows may be named after the listed path itself
            if kind == "dir":
                entry_kind = EntryKind.DIRECTORY
            elif kind == "file":
                entry_kind = EntryKind.FILE
            else:
                continue
            entries.append(RemoteEntry(
                name=name,
                kind=entry_kind,
                size=int(f.get("size") or 0),
                modified_at=_parse_mlsd_time(f.get("modify")),
            ))
        return entries

    @staticmethod
    def _list_fallback(ftp: ftplib.FTP, path: str) -> List[RemoteEntry]:
        lines: List[str] = []
        ftp.retrlines(f"LIST {path}", lines.append)
        return [e for e in (parse_list_line(line) for line in lines) if e is not None]

    def download(self, path: str, sink: BinaryIO,
                 progress: Optional[ProgressCallback] = None,
                 size: Optional[int] = None):
        received = 0

        def on_block(block: bytes):
            nonlocal received
            sink.write(block)
            received += len(block)
            if progress is not None:
                progress(received, total)

        try:
            ftp = self._require()
            total = size
            if total is None:
                try:
                    total = ftp.size(path) or 0
                except ftplib.error_perm:
                    total = 0
            ftp.retrbinary(f"RETR {path}", on_block)
        except ftplib.all_errors as exc:
            raise DownloadError(f"cannot download {path}: {exc}") from exc


class SFTPClient:
    """
    Wraps paramiko SSHClient + SFTPClient.
    Sends SSH keep-alives to reduce mid-transfer drops.
    """

    def __init__(self, config: SyncConfig, ssh_factory=paramiko.SSHClient):
        self._config = config
        self._factory = ssh_factory
        self._ssh: Optional[paramiko.SSHClient] = None
        self._sftp: Optional[paramiko.SFTPClient] = None

    @property
    def closed(self) -> bool:
        if self._ssh is None or self._sftp is None:
            return True
        transport = self._ssh.get_transport()
        return transport is None or not transport.is_active()

    def connect(self):
        cfg = self._config
        client = self._factory()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        kw: dict = dict(hostname=cfg.host, port=cfg.port, username=cfg.user,
                        timeout=cfg.timeout, banner_timeout=30, auth_timeout=30)
        if cfg.ssh_key:
            kw["key_filename"] = cfg.ssh_key
        if cfg.password:
            kw["password"] = cfg.password
        try:
            client.connect(**kw)
            # Keep-alive: send a NOP every 30s
            client.get_transport().set_keepalive(30)
            sftp = client.open_sftp()
        except (paramiko.SSHException, OSError) as exc:
            client.close()
            raise ConnectError(f"cannot connect to {cfg.host}:{cfg.port}: {exc}") from exc
        self._ssh = client
        self._sftp = sftp

    def close(self):
        try:
            if self._sftp is not None:
                self._sftp.close()
        except (paramiko.SSHException, OSError):
            pass
        try:
            if self._ssh is not None:
                self._ssh.close()
        except (paramiko.SSHException, OSError):
            pass
        self._ssh = None
        self._sftp = None

    def abort(self):
        self.close()

    def list(self, path: str) -> List[RemoteEntry]:
        if self._sftp is None:
            raise ListError(f"cannot list {path}: not connected")
        try:
            attrs = self._sftp.listdir_attr(path)
        except (paramiko.SSHException, OSError) as exc:
            raise ListError(f"cannot list {path}: {exc}") from exc
        entries = []
        for a in attrs:
            mode = a.st_mode or 0
            if stat.S_ISDIR(mode):
                kind = EntryKind.DIRECTORY
            elif stat.S_ISREG(mode):
                kind = EntryKind.FILE
            else:
                continue
            entries.append(RemoteEntry(
                name=a.filename,
                kind=kind,
                size=a.st_size or 0,
                modified_at=float(a.st_mtime) if a.st_mtime is not None else None,
            ))
        return entries

    def download(self, path: str, sink: BinaryIO,
                 progress: Optional[ProgressCallback] = None,
                 size: Optional[int] = None):
        if self._sftp is None:
            raise DownloadError(f"cannot download {path}: not connected")
        try:
            self._sftp.getfo(path, sink, callback=progress)
        except (paramiko.SSHException, OSError) as exc:
            raise DownloadError(f"cannot download {path}: {exc}") from exc


def make_client(config: SyncConfig):
    """Pick the protocol adapter for *config*."""
    if config.protocol == "sftp":
        return SFTPClient(config)
    return FTPClient(config)
