"""
Exception hierarchy for ftpmirror
"""


class FtpMirrorError(Exception):
    """Base class for every error raised by ftpmirror."""


class ConfigError(FtpMirrorError):
    """Configuration file missing, unreadable or incomplete."""


class TransportError(FtpMirrorError):
    """Failure talking to the remote server."""


class ConnectError(TransportError):
    """Connection handshake or login failed."""


class ListError(TransportError):
    """Directory listing failed."""


class DownloadError(TransportError):
    """File transfer failed."""


class ReconnectExhaustedError(TransportError):
    """Every reconnect attempt failed; the current run cannot continue."""
