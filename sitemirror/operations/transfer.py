"""
File transfer (remote -> local, one file at a time)
"""
import os
from pathlib import Path, PurePosixPath

from ..core.ssh_manager import SSHManager
from .. import config as _cfg
from ..errors import TransferError
from ..utils.logging import vlog


def remote_path_for(server_path: str) -> PurePosixPath:
    """Absolute path on the remote host for a server-relative path."""
    return _cfg.REMOTE_ROOT / server_path.lstrip("/")


def download(mgr: SSHManager, server_path: str, dest: Path):
    """
    Copy one remote file to *dest*.

    The download lands in a '.part' file that is renamed into place once
    complete, so a dropped connection never leaves a truncated file behind
    under the real name. Raises TransferError with the part file removed.
    """
    remote = remote_path_for(server_path)
    part = dest.with_name(dest.name + ".part")
    try:
        vlog(f"    sftp get {remote} → {part}")
        mgr.sftp_get(str(remote), str(part))
        os.replace(part, dest)
    except Exception as exc:
        part.unlink(missing_ok=True)
        raise TransferError(f"{exc.__class__.__name__}: {exc}") from exc


def fetch_file(mgr: SSHManager, server_path: str, dest_dir: Path,
               file_name: str) -> tuple[bool, str]:
    """download() reported as (True, "") or (False, error detail)."""
    try:
        download(mgr, server_path, Path(dest_dir) / file_name)
    except TransferError as exc:
        return False, str(exc)
    return True, ""


def make_fetcher(mgr: SSHManager):
    """Bind *mgr* so the engine can call fetch(server_path, dest_dir, file_name)."""
    def fetch(server_path: str, dest_dir: Path, file_name: str) -> tuple[bool, str]:
        return fetch_file(mgr, server_path, dest_dir, file_name)
    return fetch
