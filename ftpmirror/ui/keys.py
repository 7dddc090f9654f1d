"""
Single-key terminal input
"""
import sys

try:
    import termios
    import tty
    _HAS_TERMIOS = True
except ImportError:
    _HAS_TERMIOS = False


def read_key() -> str:
    """Read one raw character from stdin (Ctrl-C arrives as '\\x03')."""
    if not _HAS_TERMIOS:
        import msvcrt
        return msvcrt.getwch()
    fd = sys.stdin.fileno()
    old = termios.tcgetattr(fd)
    try:
        tty.setraw(fd)
        return sys.stdin.read(1)
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old)
