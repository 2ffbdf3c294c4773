"""
Configuration constants for sitemirror
"""
import os
from pathlib import Path, PurePosixPath
from typing import Optional

import yaml

from .errors import ConfigError

# ══════════════════════════════════════════════════════════════════════════════
#  DEFAULTS  ── overridden by YAML config or apply_profile()
# ══════════════════════════════════════════════════════════════════════════════

SSH_HOST = "example.com"
SSH_PORT = 22
SSH_USER = "root"
# Path to your private key, or None to use ssh-agent / ~/.ssh/id_*
SSH_KEY_PATH: Optional[str] = None
SSH_PASSWORD: Optional[str] = None

# Directory on the remote host that holds the sites/ tree
REMOTE_ROOT = PurePosixPath("/")

# Local mirror root; each site is mirrored into LOCAL_ROOT/<site name>
LOCAL_ROOT = Path(".")

# Where inventory and ledger CSVs are kept; None means LOCAL_ROOT
DATA_DIR: Optional[Path] = None

# Site URLs, e.g. "https://files.example.com/sites/Projects"
SITES: list = []

# Optional log file; every console line is appended here too
LOG_FILE: Optional[Path] = None

# Retry settings
RETRY_MAX = 5
RETRY_BASE_DELAY = 2.0  # seconds; doubles each attempt

PROJECT_FILE = ".sitemirror"


# ══════════════════════════════════════════════════════════════════════════════
#  DYNAMIC PATHS  ── computed from LOCAL_ROOT / DATA_DIR at call time
# ══════════════════════════════════════════════════════════════════════════════

def get_data_dir() -> Path:
    """Return the directory holding inventory and ledger files."""
    return DATA_DIR if DATA_DIR is not None else LOCAL_ROOT


def get_inventory_file(site: str) -> Path:
    """Return the inventory CSV path for the site named *site*."""
    return get_data_dir() / f"{site}_inventory.csv"


def get_ledger_file(site: str) -> Path:
    """Return the sync ledger CSV path for the site named *site*."""
    return get_data_dir() / f"{site}_sync_status.csv"


def get_local_base(site: str) -> Path:
    """Return the local mirror directory for the site named *site*."""
    return LOCAL_ROOT / site


# ══════════════════════════════════════════════════════════════════════════════
#  GLOBAL CONFIG FILE  ── $XDG_CONFIG_HOME/sitemirror/config.yaml
# ══════════════════════════════════════════════════════════════════════════════

def get_global_config_dir() -> Path:
    """Return the global config directory for sitemirror."""
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg:
        return Path(xdg) / "sitemirror"
    if os.name == "nt":
        appdata = os.environ.get("APPDATA", "")
        if appdata:
            return Path(appdata) / "sitemirror"
    return Path.home() / ".config" / "sitemirror"


def load_global_config() -> dict:
    """Load global config from the sitemirror config directory."""
    cfg_path = get_global_config_dir() / "config.yaml"
    if not cfg_path.is_file():
        return {}
    try:
        with cfg_path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        return {}


# ══════════════════════════════════════════════════════════════════════════════
#  PROJECT CONFIG FILE  ── .sitemirror (searched upward)
# ══════════════════════════════════════════════════════════════════════════════

def find_project_file(start: Optional[Path] = None) -> Optional[Path]:
    """
    Search upward from *start* (default: cwd) for a .sitemirror YAML file.
    Returns the Path if found, or None if no .sitemirror exists in any parent.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / PROJECT_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def load_project_file(path: Path) -> dict:
    """Parse a .sitemirror YAML file and return its contents as a dict."""
    try:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc


def get_profile(data: dict, profile_name: str = "default") -> dict:
    """
    Extract a named profile from a .sitemirror or config.yaml data dict.
    Falls back to the first profile if the named one is not found.
    Returns a flat profile dict merged with top-level defaults.
    """
    defaults = data.get("defaults", {})
    profiles = data.get("profiles", [])
    if not profiles:
        return defaults.copy()
    profile = next((p for p in profiles if p.get("name") == profile_name), None)
    if profile is None:
        profile = profiles[0]
    merged = defaults.copy()
    merged.update(profile)
    return merged


# ══════════════════════════════════════════════════════════════════════════════
#  APPLY PROFILE  ── mutates module-level variables
# ══════════════════════════════════════════════════════════════════════════════

def apply_profile(profile: dict):
    """
    Apply a profile dict to the module-level config variables.
    Supports keys: server, port, user, ssh_key, ssh_password, remote_root,
                   local_root, data_dir, sites, log_file.
    """
    global SSH_HOST, SSH_PORT, SSH_USER, SSH_KEY_PATH, SSH_PASSWORD
    global REMOTE_ROOT, LOCAL_ROOT, DATA_DIR, SITES, LOG_FILE

    if "server" in profile:
        SSH_HOST = str(profile["server"])
    if "port" in profile:
        SSH_PORT = int(profile["port"])
    if "user" in profile:
        SSH_USER = str(profile["user"])
    elif "username" in profile:
        SSH_USER = str(profile["username"])
    if "ssh_key" in profile:
        SSH_KEY_PATH = str(profile["ssh_key"]) if profile["ssh_key"] else None
    if "ssh_password" in profile:
        SSH_PASSWORD = str(profile["ssh_password"]) if profile["ssh_password"] else None
    if "remote_root" in profile:
        REMOTE_ROOT = PurePosixPath(str(profile["remote_root"]))
    if "local_root" in profile:
        LOCAL_ROOT = Path(profile["local_root"]).expanduser().resolve()
    if "data_dir" in profile:
        DATA_DIR = Path(profile["data_dir"]).expanduser().resolve() if profile["data_dir"] else None
    if "sites" in profile:
        sites = profile["sites"] or []
        if isinstance(sites, str):
            sites = [sites]
        SITES = [str(s) for s in sites]
    if "log_file" in profile:
        LOG_FILE = Path(profile["log_file"]).expanduser() if profile["log_file"] else None


def load_active_profile(profile_name: str = "default", start: Optional[Path] = None) -> dict:
    """
    Find the nearest .sitemirror, merge it over the global defaults and apply it.
    Raises ConfigError if no project file exists.
    """
    path = find_project_file(start)
    if path is None:
        raise ConfigError(
            "no .sitemirror file found in this directory or any parent. "
            "Run 'sitemirror init' to create one."
        )
    global_defaults = load_global_config().get("defaults", {})
    data = load_project_file(path)
    profile = dict(global_defaults)
    profile.update(get_profile(data, profile_name))
    apply_profile(profile)
    return profile
