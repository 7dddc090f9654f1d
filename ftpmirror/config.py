"""
Configuration for ftpmirror
Profiles live in YAML files; a profile is turned into an immutable SyncConfig.
"""
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional

import yaml

from .errors import ConfigError

# ══════════════════════════════════════════════════════════════════════════════
#  DEFAULTS
# ══════════════════════════════════════════════════════════════════════════════

PROTOCOLS = ("ftp", "ftps", "sftp")
DEFAULT_PROTOCOL = "ftp"
DEFAULT_ENCODING = "latin1"
DEFAULT_PORTS = {"ftp": 21, "ftps": 21, "sftp": 22}
DEFAULT_TIMEOUT = 30

CONFIG_FILE = ".ftpmirror"

# Reconnect settings
RECONNECT_RETRIES = 3
RECONNECT_DELAY = 2.0  # seconds; doubles each attempt
FORCED_RECONNECT_RETRIES = 5

# A download more than this many seconds after the previous one re-verifies
# an already matching file ("safety sync").
SAFETY_WINDOW = 60

# How often a paused traversal checks whether it may continue
POLL_INTERVAL = 0.1

# Dashboard status refresh
STATUS_REFRESH_INTERVAL = 1.0


@dataclass(frozen=True)
class SyncConfig:
    host: str
    local_root: Path
    remote_root: PurePosixPath
    staging_root: Path
    user: str = "anonymous"
    password: str = ""
    port: int = 21
    encoding: str = DEFAULT_ENCODING
    protocol: str = DEFAULT_PROTOCOL
    ssh_key: Optional[str] = None
    timeout: int = DEFAULT_TIMEOUT
    name: str = "default"

    @property
    def endpoint(self) -> str:
        return f"{self.protocol}://{self.user}@{self.host}:{self.port}"


# ══════════════════════════════════════════════════════════════════════════════
#  GLOBAL CONFIG FILE  ── $XDG_CONFIG_HOME/ftpmirror/config.yaml
# ══════════════════════════════════════════════════════════════════════════════

def get_global_config_dir() -> Path:
    """Return the global config directory for ftpmirror."""
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg:
        return Path(xdg) / "ftpmirror"
    if os.name == "nt":
        appdata = os.environ.get("APPDATA", "")
        if appdata:
            return Path(appdata) / "ftpmirror"
    return Path.home() / ".config" / "ftpmirror"


def load_global_config() -> dict:
    """Load global config; a missing or broken file counts as empty."""
    cfg_path = get_global_config_dir() / "config.yaml"
    if not cfg_path.is_file():
        return {}
    try:
        with cfg_path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        return {}


# ══════════════════════════════════════════════════════════════════════════════
#  PROJECT CONFIG FILE  ── .ftpmirror (searched upward)
# ══════════════════════════════════════════════════════════════════════════════

def find_config(start: Optional[Path] = None) -> Optional[Path]:
    """
    Search upward from *start* (default: cwd) for a .ftpmirror file.
    Returns the Path if found, or None if no .ftpmirror exists in any parent.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def load_config_file(path: Path) -> dict:
    """Parse a YAML (or legacy JSON) config file and return its contents."""
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigError(f"cannot read {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"invalid config file {path}: expected a mapping")
    return data


def get_profile(data: dict, profile_name: str = "default") -> dict:
    """
    Extract a named profile from a config data dict.
    Falls back to the first profile if the named one is not found.
    A file without a profiles list is treated as a single flat profile.
    Returns a flat profile dict merged with top-level defaults.
    """
    defaults = data.get("defaults", {}) or {}
    profiles = data.get("profiles")
    if profiles is None:
        merged = defaults.copy()
        merged.update({k: v for k, v in data.items() if k != "defaults"})
        return merged
    if not profiles:
        return defaults.copy()
    profile = next((p for p in profiles if p.get("name") == profile_name), None)
    if profile is None:
        profile = profiles[0]
    merged = defaults.copy()
    merged.update(profile)
    return merged


_ALIASES = {
    "server": "host",
    "username": "user",
    "defaultEncoding": "encoding",
    "localDir": "local_root",
    "remoteDir": "remote_root",
    "patchDir": "staging_root",
    "patch_root": "staging_root",
}


def normalize_profile(profile: dict) -> dict:
    """Flatten the legacy ``ftpConfig`` block and map alias keys."""
    flat = {}
    nested = profile.get("ftpConfig") or {}
    for src in (nested, profile):
        for key, value in src.items():
            if key == "ftpConfig":
                continue
            flat[_ALIASES.get(key, key)] = value
    return flat


def build_config(profile: dict) -> SyncConfig:
    """Validate a merged profile and turn it into a SyncConfig."""
    p = normalize_profile(profile)

    missing = [k for k in ("host", "local_root", "remote_root", "staging_root")
               if not p.get(k)]
    if missing:
        raise ConfigError(f"missing required setting(s): {', '.join(missing)}")

    protocol = str(p.get("protocol") or DEFAULT_PROTOCOL).lower()
    if p.get("secure") and protocol == "ftp":
        protocol = "ftps"
    if protocol not in PROTOCOLS:
        raise ConfigError(f"unsupported protocol {protocol!r} "
                          f"(expected one of {', '.join(PROTOCOLS)})")

    try:
        port = int(p.get("port") or DEFAULT_PORTS[protocol])
        timeout = int(p.get("timeout") or DEFAULT_TIMEOUT)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"port and timeout must be numbers: {exc}") from exc

    user = p.get("user")
    if not user:
        if protocol == "sftp":
            raise ConfigError("missing required setting(s): user")
        user = "anonymous"

    return SyncConfig(
        host=str(p["host"]),
        port=port,
        user=str(user),
        password=str(p.get("password") or ""),
        encoding=str(p.get("encoding") or DEFAULT_ENCODING),
        protocol=protocol,
        ssh_key=str(p["ssh_key"]) if p.get("ssh_key") else None,
        timeout=timeout,
        local_root=Path(p["local_root"]).expanduser(),
        remote_root=PurePosixPath(str(p["remote_root"])),
        staging_root=Path(p["staging_root"]).expanduser(),
        name=str(p.get("name") or "default"),
    )


def load_config(path: Optional[Path] = None, profile_name: str = "default") -> SyncConfig:
    """
    Resolve, load and validate the configuration for one run.
    Global defaults sit under the file's own ``defaults`` section.
    """
    if path is None:
        path = find_config()
        if path is None:
            raise ConfigError(f"no {CONFIG_FILE} file found in this directory or any parent")
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"config file {path} doesn't exist")

    data = load_config_file(path)
    global_defaults = load_global_config().get("defaults", {}) or {}
    if global_defaults:
        data = dict(data)
        data["defaults"] = {**global_defaults, **(data.get("defaults") or {})}
    return build_config(get_profile(data, profile_name))
