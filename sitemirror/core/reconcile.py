"""
Reconciliation engine - per-file fetch/skip decision and the sequential driver
"""
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, NamedTuple, Optional

from ..errors import LedgerPersistenceError
from ..models import InventoryRecord, LedgerEntry, Mode, Status
from ..state.ledger import Ledger
from ..utils.file_utils import apply_timestamps, local_size
from ..utils.logging import error, log, vlog, warn
from .path_mapper import resolve_local_path

# fetch(server_path, dest_dir, file_name) -> (ok, error_message)
FetchFn = Callable[[str, Path, str], tuple[bool, str]]


class Decision(NamedTuple):
    fetch: bool
    reason: str


def needs_local_state(mode: Mode, prior: Optional[Status]) -> bool:
    """True when decide() has to know what is on disk."""
    return mode is Mode.RECHECK and prior is Status.SUCCESS


def decide(mode: Mode, prior: Optional[Status], expected_size: int,
           local_bytes: Optional[int] = None) -> Decision:
    """
    Fetch-or-skip for one file.

    sync / resume / update: fetch unless the last attempt succeeded.
    recheck: only successful files are looked at; fetch them again when the
    local copy is gone or its length differs from the inventory size.
    *local_bytes* is None when no local file exists.
    """
    if mode is Mode.RECHECK:
        if prior is not Status.SUCCESS:
            return Decision(False, "no baseline" if prior is None else "not synced")
        if local_bytes is None:
            return Decision(True, "missing locally")
        if local_bytes != expected_size:
            return Decision(True, "size mismatch")
        return Decision(False, "size ok")

    if prior is None:
        return Decision(True, "new")
    if prior is Status.SUCCESS:
        return Decision(False, "already synced")
    if prior is Status.FAILED:
        return Decision(True, "previously failed")
    return Decision(True, "pending")


@dataclass
class ReconcileSummary:
    total: int = 0
    skipped: int = 0
    succeeded: int = 0
    failed: int = 0
    reasons: Counter = field(default_factory=Counter)

    @property
    def fetched(self) -> int:
        return self.succeeded + self.failed


def _flush(ledger: Ledger):
    """Persist the ledger; one immediate retry, then give up loudly."""
    try:
        ledger.flush()
    except LedgerPersistenceError as exc:
        error(f"[ledger] flush failed: {exc}; retrying once")
        try:
            ledger.flush()
        except LedgerPersistenceError as exc2:
            error(f"[ledger] flush failed again: {exc2}")
            raise


def _probe_local(local_path: Path) -> Optional[int]:
    try:
        return local_size(local_path)
    except OSError as exc:
        warn(f"  cannot inspect {local_path}: {exc}; treating as missing")
        return None


def _fetch_one(rec: InventoryRecord, local_path: Path, fetch: FetchFn) -> tuple[bool, str]:
    try:
        local_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return False, f"cannot create {local_path.parent}: {exc}"
    try:
        ok, message = fetch(rec.server_path, local_path.parent, local_path.name)
    except Exception as exc:
        return False, str(exc) or exc.__class__.__name__
    if not ok:
        return False, message or "transfer failed"

    try:
        apply_timestamps(local_path, rec.created, rec.modified)
    except (OSError, OverflowError, ValueError) as exc:
        warn(f"  could not set timestamps on {local_path}: {exc}")
    return True, ""


def reconcile(records: Iterable[InventoryRecord], ledger: Ledger,
              site_prefix: str, local_base: Path, mode: Mode,
              fetch: FetchFn, dry_run: bool = False) -> ReconcileSummary:
    """
    Walk *records* in order and bring the local mirror in line with them.

    Every transfer attempt is written to the ledger and flushed before the
    next record is looked at, so an interrupted run loses at most the file
    that was in flight. Raises LedgerPersistenceError if the ledger cannot
    be written; transfer failures are recorded and never raised.
    """
    records = list(records)
    summary = ReconcileSummary(total=len(records))
    width = len(str(len(records)))

    for i, rec in enumerate(records, start=1):
        tag = f"[{i:>{width}}/{len(records)}]"
        local_path = resolve_local_path(rec.server_path, site_prefix, local_base)
        prior_entry = ledger.get(rec.server_path)
        prior = prior_entry.status if prior_entry else None

        local_bytes = _probe_local(local_path) if needs_local_state(mode, prior) else None
        decision = decide(mode, prior, rec.size_bytes, local_bytes)
        summary.reasons[decision.reason] += 1

        if not decision.fetch:
            summary.skipped += 1
            vlog(f"  {tag} [SKIP] {rec.server_path} ({decision.reason})")
            continue

        if dry_run:
            log(f"  {tag} [FETCH-DRY] {rec.server_path} ({decision.reason})")
            continue

        log(f"  {tag} [FETCH] {rec.server_path} ({decision.reason})")
        ok, message = _fetch_one(rec, local_path, fetch)
        if ok:
            summary.succeeded += 1
            log(f"  {tag} [FETCH ✓] {local_path}")
        else:
            summary.failed += 1
            warn(f"{tag} [FETCH ✗] {rec.server_path}: {message}")

        ledger.upsert(LedgerEntry(
            server_path=rec.server_path,
            local_path=str(local_path),
            status=Status.SUCCESS if ok else Status.FAILED,
            last_checked=datetime.now(),
            message=message,
        ))
        _flush(ledger)

    return summary
