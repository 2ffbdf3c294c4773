"""
Sync ledger: per-file transfer status, persisted as CSV after every change
"""
import csv
import io
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

from ..errors import LedgerPersistenceError
from ..models import LedgerEntry, Status
from ..utils.logging import warn

LEDGER_FIELDS = ["ServerPath", "LocalPath", "Status", "LastChecked", "Message"]


def _parse_time(raw: Optional[str]) -> datetime:
    try:
        return datetime.fromisoformat((raw or "").strip())
    except ValueError:
        return datetime.fromtimestamp(0)


class Ledger:
    """
    In-memory map of ServerPath -> LedgerEntry backed by one CSV file.

    On-disk:
      Header: ServerPath,LocalPath,Status,LastChecked,Message
      One row per attempted file; the whole file is rewritten on flush().
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else None
        self._entries: dict[str, LedgerEntry] = {}

    # ── load ────────────────────────────────────────────────────────────────

    @classmethod
    def load(cls, path: Path) -> "Ledger":
        """Read the ledger at *path*. A missing file is a first run: empty ledger."""
        ledger = cls(path)
        path = Path(path)
        if not path.exists():
            return ledger

        text = path.read_text("utf-8")
        for row in csv.DictReader(io.StringIO(text)):
            server_path = (row.get("ServerPath") or "").strip()
            if not server_path:
                continue
            ledger._entries[server_path] = LedgerEntry(
                server_path=server_path,
                local_path=row.get("LocalPath") or "",
                status=Status.parse(row.get("Status")),
                last_checked=_parse_time(row.get("LastChecked")),
                message=row.get("Message") or "",
            )
        return ledger

    # ── mapping access ──────────────────────────────────────────────────────

    def get(self, server_path: str) -> Optional[LedgerEntry]:
        return self._entries.get(server_path)

    def upsert(self, entry: LedgerEntry):
        """Replace whatever was recorded for entry.server_path."""
        self._entries[entry.server_path] = entry

    def entries(self) -> Iterator[LedgerEntry]:
        return iter(self._entries.values())

    def counts(self) -> dict[Status, int]:
        result = {s: 0 for s in Status}
        for entry in self._entries.values():
            result[entry.status] += 1
        return result

    def __len__(self):
        return len(self._entries)

    def __contains__(self, server_path):
        return server_path in self._entries

    # ── persist ─────────────────────────────────────────────────────────────

    def to_csv(self) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(LEDGER_FIELDS)
        for entry in self._entries.values():
            writer.writerow([
                entry.server_path,
                entry.local_path,
                entry.status.value,
                entry.last_checked.isoformat(timespec="seconds"),
                entry.message,
            ])
        return buf.getvalue()

    def flush(self, path: Optional[Path] = None):
        """
        Write the full ledger to *path* (default: the path it was loaded from).

        The CSV goes to a temp file in the same directory and is then moved over
        the destination, so readers see either the old or the new ledger.
        Raises LedgerPersistenceError if any step fails.
        """
        dest = Path(path) if path else self.path
        if dest is None:
            raise LedgerPersistenceError("ledger has no destination path")

        tmp_name = None
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{dest.name}.",
                                            suffix=".tmp", dir=str(dest.parent))
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(self.to_csv())
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, dest)
            tmp_name = None
        except OSError as exc:
            raise LedgerPersistenceError(f"cannot write ledger {dest}: {exc}") from exc
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    warn(f"Could not remove temp ledger file {tmp_name}")
