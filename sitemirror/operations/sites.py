"""
Site and mode selection, and site URL parsing
"""
import re
import sys
from typing import Optional, Sequence
from urllib.parse import urlparse

from ..errors import ConfigError
from ..models import Mode

# scheme://host/sites/<name>[/anything]
_SITE_URL = re.compile(r"^(?P<root>[a-zA-Z][a-zA-Z0-9+.-]*://[^/]+/sites/(?P<name>[^/?#]+))")
_SITE_PATH = re.compile(r"^(?P<root>/sites/(?P<name>[^/?#]+))")

MODE_MENU = [Mode.SYNC, Mode.RESUME, Mode.RECHECK, Mode.UPDATE]


def normalize_site_url(url: str) -> str:
    """
    Reduce any URL inside a site to the site root, e.g.
    https://host/sites/Proj/Shared%20Documents/x.docx -> https://host/sites/Proj.
    Input that does not follow scheme://host/sites/name comes back unchanged.
    """
    m = _SITE_URL.match(url.strip())
    return m.group("root") if m else url


def site_prefix(url: str) -> str:
    """Server-relative root of the site: '/sites/<name>'."""
    url = url.strip()
    m = _SITE_URL.match(url)
    if m:
        return "/sites/" + m.group("name")
    path = urlparse(url).path if "://" in url else url
    m = _SITE_PATH.match(path)
    if m:
        return m.group("root")
    return path.rstrip("/")


def site_name(url: str) -> str:
    """Short name used for per-site files and directories."""
    prefix = site_prefix(url)
    name = prefix.rstrip("/").rsplit("/", 1)[-1]
    if not name:
        name = urlparse(url).netloc or url
    return re.sub(r"[^\w.-]+", "_", name)


# ══════════════════════════════════════════════════════════════════════════════
#  SELECTION
# ══════════════════════════════════════════════════════════════════════════════

def _parse_site_choice(sites: Sequence[str], choice: str) -> list[str]:
    choice = choice.strip()
    if choice.lower() in ("", "all", "*"):
        return list(sites)

    picked: list[str] = []
    for token in re.split(r"[,\s]+", choice):
        if not token:
            continue
        if token.isdigit():
            idx = int(token)
            if not 1 <= idx <= len(sites):
                raise ConfigError(f"site number {idx} is out of range (1-{len(sites)})")
            site = sites[idx - 1]
        else:
            matches = [s for s in sites if token in (s, site_name(s), normalize_site_url(s))]
            if not matches:
                raise ConfigError(f"unknown site: {token}")
            site = matches[0]
        if site not in picked:
            picked.append(site)
    return picked


def select_sites(sites: Sequence[str], choices: Optional[Sequence[str]] = None) -> list[str]:
    """
    Pick which configured sites to work on.

    *choices* may hold 'all', 1-based numbers ('1,3') or site names/URLs.
    With no choice and an interactive terminal the user is asked; without a
    terminal every site is selected.
    """
    if not sites:
        raise ConfigError("no sites configured; add a 'sites:' list to .sitemirror")

    if choices:
        picked: list[str] = []
        for choice in choices:
            for site in _parse_site_choice(sites, choice):
                if site not in picked:
                    picked.append(site)
        return picked

    if not sys.stdin.isatty():
        return list(sites)

    print("\nSites:")
    for i, site in enumerate(sites, start=1):
        print(f"  {i}. {site_name(site):<24} {site}")
    while True:
        try:
            entered = input("Select sites (numbers, names or 'all') [all]: ")
        except EOFError:
            entered = ""
        try:
            return _parse_site_choice(sites, entered)
        except ConfigError as exc:
            print(f"  {exc}")


def select_mode(choice: Optional[str] = None) -> Mode:
    """Resolve a mode from its name or menu number; prompt when *choice* is None."""
    if choice is None:
        print("\nModes:")
        for i, mode in enumerate(MODE_MENU, start=1):
            print(f"  {i}. {mode.value}")
        try:
            choice = input("Select mode [1]: ").strip() or "1"
        except EOFError:
            choice = "1"

    choice = choice.strip().lower()
    if choice.isdigit() and 1 <= int(choice) <= len(MODE_MENU):
        return MODE_MENU[int(choice) - 1]
    try:
        return Mode(choice)
    except ValueError:
        raise ConfigError(f"unknown mode: {choice!r} "
                          f"(expected one of {', '.join(m.value for m in Mode)})") from None
