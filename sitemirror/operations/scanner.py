"""
Remote enumeration (site inventory) and directory size report
"""
import shlex
from collections import defaultdict
from datetime import datetime
from pathlib import PurePosixPath

from ..core.ssh_manager import SSHManager
from ..core.path_mapper import strip_site_prefix
from .. import config as _cfg
from ..models import InventoryRecord
from ..utils.logging import log, vlog
from .sites import site_prefix


def remote_site_dir(site_url: str) -> PurePosixPath:
    """Directory on the remote host that holds the site's document tree."""
    return _cfg.REMOTE_ROOT / site_prefix(site_url).lstrip("/")


def file_url(remote_path: PurePosixPath) -> str:
    return f"sftp://{_cfg.SSH_HOST}:{_cfg.SSH_PORT}{remote_path}"


def _parse_scan_output(content: str, prefix: str, base: PurePosixPath) -> list[InventoryRecord]:
    """Parse `find -printf "%P\t%T@\t%s\n"` output into records, in find order."""
    records: list[InventoryRecord] = []
    for line in content.splitlines():
        if not line.strip():
            continue
        parts = line.rsplit("\t", 2)
        if len(parts) != 3:
            vlog(f"  [scan] unparseable line skipped: {line!r}")
            continue
        rel_path, mtime_raw, size_raw = parts
        if not rel_path:
            continue
        try:
            modified = datetime.fromtimestamp(float(mtime_raw))
            size = int(size_raw)
        except (ValueError, OverflowError, OSError):
            vlog(f"  [scan] bad mtime/size skipped: {line!r}")
            continue
        rel = PurePosixPath(rel_path)
        records.append(InventoryRecord(
            server_path=f"{prefix}/{rel.as_posix()}",
            file_name=rel.name,
            size_bytes=size,
            created=None,
            modified=modified,
            url=file_url(base / rel),
            library=rel.parts[0] if len(rel.parts) > 1 else "",
        ))
    return records


def enumerate_files(mgr: SSHManager, site_url: str, timeout: int = 600) -> list[InventoryRecord]:
    """
    List every file of a site on the remote host.
    Raises FileNotFoundError when the site directory does not exist.
    """
    base = remote_site_dir(site_url)
    prefix = site_prefix(site_url)
    if not mgr.sftp_is_dir(str(base)):
        raise FileNotFoundError(f"remote site directory not found: {base}")

    log(f"[scan] Enumerating {base} …")
    cmd = (f"cd {shlex.quote(str(base))} && "
           r'find . -type f -printf "%P\t%T@\t%s\n"')
    out, _ = mgr.exec(cmd, timeout=timeout)
    # %P is relative to the start point "." so entries come out without a leading "./"
    records = _parse_scan_output(out, prefix, base)
    log(f"[scan] {len(records)} remote file(s) found")
    return records


def directory_sizes(records, prefix: str, depth: int = 1) -> list[tuple[str, int, int]]:
    """
    Sum file counts and bytes per folder, *depth* levels below the site root.
    Returns [(folder, files, bytes), …] largest first; '.' holds root-level files.
    """
    totals: dict[str, list[int]] = defaultdict(lambda: [0, 0])
    for rec in records:
        parts = PurePosixPath(strip_site_prefix(rec.server_path, prefix)).parts[:-1]
        folder = "/".join(parts[:max(depth, 1)]) or "."
        totals[folder][0] += 1
        totals[folder][1] += rec.size_bytes
    return sorted(((k, v[0], v[1]) for k, v in totals.items()),
                  key=lambda row: (-row[2], row[0]))


def format_size(n: int) -> str:
    size = float(n)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024:
            break
        size /= 1024
    else:
        unit = "TB"
    return f"{size:.0f} {unit}" if unit == "B" else f"{size:.2f} {unit}"
