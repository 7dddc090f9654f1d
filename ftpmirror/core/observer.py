"""
Presentation callbacks emitted by the engine and controller
"""
from ..utils.logging import Style, log, vlog


class SyncObserver:
    """
    Receives everything a front end displays. The base class writes to the
    console through the logging module; the dashboard overrides it.
    """

    def on_status_update(self, snapshot):
        pass

    def on_log_line(self, text: str, style: Style = Style.INFO):
        log(text, style)

    def on_sync_log_line(self, text: str, style: Style = Style.INFO,
                         replace_previous: bool = False):
        log(text, style)

    def on_current_directory_change(self, path: str):
        vlog(f"current remote directory: {path}")
