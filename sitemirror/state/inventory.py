"""
Inventory file management (one CSV snapshot of a site's remote files)
"""
import csv
import io
import os
import tempfile
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Iterable, Optional

from ..models import InventoryRecord
from ..utils.logging import warn

INVENTORY_FIELDS = ["FileName", "Path", "Url", "SizeBytes", "SizeMB",
                    "Library", "Created", "Modified"]


def _parse_time(raw: Optional[str]) -> Optional[datetime]:
    raw = (raw or "").strip()
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


def _fmt_time(value: Optional[datetime]) -> str:
    return value.isoformat(timespec="seconds") if value else ""


def load_inventory(path: Path) -> list[InventoryRecord]:
    """
    Read an inventory CSV in file order.
    Rows without a Path are dropped; a repeated Path keeps its first row.
    Raises FileNotFoundError when the file does not exist.
    """
    text = Path(path).read_text("utf-8")
    records: list[InventoryRecord] = []
    seen: set[str] = set()
    for line_no, row in enumerate(csv.DictReader(io.StringIO(text)), start=2):
        server_path = (row.get("Path") or "").strip()
        if not server_path:
            continue
        if server_path in seen:
            warn(f"[inventory] duplicate path on line {line_no} ignored: {server_path}")
            continue
        seen.add(server_path)
        try:
            size = int(row.get("SizeBytes") or 0)
        except ValueError:
            warn(f"[inventory] bad SizeBytes on line {line_no}: {row.get('SizeBytes')!r}")
            size = 0
        records.append(InventoryRecord(
            server_path=server_path,
            file_name=(row.get("FileName") or PurePosixPath(server_path).name),
            size_bytes=size,
            created=_parse_time(row.get("Created")),
            modified=_parse_time(row.get("Modified")),
            url=row.get("Url") or "",
            library=row.get("Library") or "",
        ))
    return records


def save_inventory(path: Path, records: Iterable[InventoryRecord]) -> int:
    """Write *records* to *path* (whole file replaced). Returns the row count."""
    path = Path(path)
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(INVENTORY_FIELDS)
    n = 0
    for rec in records:
        writer.writerow([
            rec.file_name,
            rec.server_path,
            rec.url,
            rec.size_bytes,
            f"{rec.size_mb:.2f}",
            rec.library,
            _fmt_time(rec.created),
            _fmt_time(rec.modified),
        ])
        n += 1

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp",
                                    dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(buf.getvalue())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return n
