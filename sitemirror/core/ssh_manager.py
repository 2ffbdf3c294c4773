"""
SSH connection manager with auto-reconnect and keep-alive
"""
import stat
from typing import Optional
import paramiko
from .. import config as _cfg
from ..utils.logging import log
from ..utils.retry import retried


class SSHManager:
    """
    One paramiko session (SSH + SFTP) shared by every site in a run.

    The session is opened lazily by the first remote call and reopened when
    the transport has died. Keep-alives are sent every KEEPALIVE seconds.
    """

    KEEPALIVE = 30

    def __init__(self):
        self._ssh: Optional[paramiko.SSHClient] = None
        self._sftp: Optional[paramiko.SFTPClient] = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.disconnect()

    # ── connection ─────────────────────────────────────────────────────────

    @staticmethod
    def _connect_kwargs() -> dict:
        kw: dict = dict(hostname=_cfg.SSH_HOST, port=_cfg.SSH_PORT, username=_cfg.SSH_USER,
                        timeout=20, banner_timeout=30, auth_timeout=30)
        if _cfg.SSH_KEY_PATH:
            kw["key_filename"] = str(_cfg.SSH_KEY_PATH)
        if _cfg.SSH_PASSWORD:
            kw["password"] = _cfg.SSH_PASSWORD
        return kw

    def connect(self):
        if self._ssh is not None:
            try:
                self._ssh.get_transport().send_ignore()
                return
            except Exception:
                self._close_quietly()

        log(f"[SSH] connecting to {_cfg.SSH_USER}@{_cfg.SSH_HOST}:{_cfg.SSH_PORT} …")
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        client.connect(**self._connect_kwargs())
        client.get_transport().set_keepalive(self.KEEPALIVE)

        self._ssh = client
        self._sftp = client.open_sftp()
        log("[SSH] connected ✓")

    def _close_quietly(self):
        try:
            if self._sftp:
                self._sftp.close()
        except Exception:
            pass
        try:
            if self._ssh:
                self._ssh.close()
        except Exception:
            pass
        self._ssh = None
        self._sftp = None

    def disconnect(self):
        if self._ssh is None:
            return
        self._close_quietly()
        log("[SSH] disconnected.")

    def ensure_connected(self):
        """Call before any remote operation."""
        try:
            if self._ssh and self._ssh.get_transport().is_active():
                return
        except Exception:
            pass
        self.connect()

    # ── raw exec ────────────────────────────────────────────────────────────

    @retried
    def exec(self, cmd: str, timeout: int = 30) -> tuple[str, str]:
        """Run a command; return (stdout, stderr). Raises on non-zero exit."""
        self.ensure_connected()
        _, stdout, stderr = self._ssh.exec_command(cmd, timeout=timeout)
        out = stdout.read().decode("utf-8", errors="replace")
        err = stderr.read().decode("utf-8", errors="replace")
        rc = stdout.channel.recv_exit_status()
        if rc != 0:
            raise RuntimeError(f"remote command exited {rc}: {cmd!r}\nstderr: {err.strip()}")
        return out, err

    # ── sftp ops ────────────────────────────────────────────────────────────

    @retried
    def sftp_get(self, remote: str, local: str):
        self.ensure_connected()
        self._sftp.get(remote, local)

    @retried
    def sftp_stat(self, remote: str):
        self.ensure_connected()
        return self._sftp.stat(remote)

    def sftp_is_dir(self, remote: str) -> bool:
        try:
            return stat.S_ISDIR(self.sftp_stat(remote).st_mode or 0)
        except (FileNotFoundError, IOError):
            return False
