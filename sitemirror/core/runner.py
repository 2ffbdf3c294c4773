"""
Per-site orchestration: inventory refresh, ledger load, reconcile, summary
"""
from typing import Callable, Optional, Sequence

import paramiko

from .. import config as _cfg
from ..errors import LedgerPersistenceError, MissingInventoryError, SiteMirrorError
from ..models import Mode, Status
from ..operations.scanner import directory_sizes, enumerate_files, format_size, remote_site_dir
from ..operations.sites import site_name, site_prefix
from ..operations.transfer import make_fetcher
from ..state.inventory import load_inventory, save_inventory
from ..state.ledger import Ledger
from ..utils.logging import error, log, warn
from .reconcile import FetchFn, ReconcileSummary, reconcile
from .ssh_manager import SSHManager


def check_login(mgr: SSHManager, sites: Sequence[str]) -> bool:
    """Connect and confirm every site directory is reachable."""
    mgr.connect()
    ok = True
    for site in sites:
        base = remote_site_dir(site)
        if mgr.sftp_is_dir(str(base)):
            log(f"[login] {site_name(site)}: {base} ✓")
        else:
            warn(f"[login] {site_name(site)}: {base} not found")
            ok = False
    return ok


def generate_inventory(mgr: SSHManager, site_url: str) -> int:
    """Enumerate the site and replace its inventory file. Returns the file count."""
    records = enumerate_files(mgr, site_url)
    path = _cfg.get_inventory_file(site_name(site_url))
    n = save_inventory(path, records)
    log(f"[inventory] {site_name(site_url)}: {n} file(s) → {path}")
    return n


def run_site(site_url: str, mode: Mode, fetch: FetchFn,
             mgr: Optional[SSHManager] = None, dry_run: bool = False) -> ReconcileSummary:
    """
    Reconcile one site.

    Update mode refreshes this site's inventory first. Raises
    MissingInventoryError when there is no inventory to work from and
    LedgerPersistenceError when the ledger cannot be written.
    """
    name = site_name(site_url)
    if mode is Mode.UPDATE:
        if mgr is None:
            raise ValueError("update mode needs a remote connection")
        if dry_run:
            log(f"[update] {name}: dry-run, keeping the current inventory")
        else:
            generate_inventory(mgr, site_url)

    inv_path = _cfg.get_inventory_file(name)
    try:
        records = load_inventory(inv_path)
    except FileNotFoundError:
        raise MissingInventoryError(name, inv_path) from None

    ledger_path = _cfg.get_ledger_file(name)
    try:
        ledger = Ledger.load(ledger_path)
    except OSError as exc:
        raise LedgerPersistenceError(f"cannot read ledger {ledger_path}: {exc}") from exc

    local_base = _cfg.get_local_base(name)
    log(f"[{mode.value}] {name}: {len(records)} file(s) in inventory, "
        f"{len(ledger)} in ledger → {local_base}")

    summary = reconcile(records, ledger, site_prefix(site_url), local_base,
                        mode, fetch, dry_run=dry_run)
    _print_summary(name, mode, summary)
    return summary


def _print_summary(name: str, mode: Mode, summary: ReconcileSummary):
    print()
    print(f"{'─' * 64}")
    print(f" SUMMARY  {name} ({mode.value})")
    print(f"  Files      : {summary.total}")
    print(f"  Fetched    : {summary.succeeded}")
    print(f"  Failed     : {summary.failed}")
    print(f"  Skipped    : {summary.skipped}")
    if mode is Mode.RECHECK:
        print(f"  Missing    : {summary.reasons['missing locally']}")
        print(f"  Size diff  : {summary.reasons['size mismatch']}")
    print(f"{'─' * 64}")
    if summary.failed:
        print(f"⚠  {summary.failed} file(s) failed; run again with --mode resume to retry.")


def run_sites(sites: Sequence[str], mode: Mode, dry_run: bool = False,
              mgr: Optional[SSHManager] = None,
              fetch: Optional[Callable] = None) -> list[str]:
    """
    Reconcile each site in turn. A site that cannot start (no inventory,
    unwritable ledger, missing remote directory) is reported and skipped.
    Returns the names of the sites that aborted.
    """
    own_mgr = mgr is None
    if own_mgr:
        mgr = SSHManager()
    if fetch is None:
        fetch = make_fetcher(mgr)

    aborted: list[str] = []
    try:
        for site in sites:
            print(f"\n{'=' * 64}")
            print(f"  {mode.value.upper()}  {site}")
            print(f"   →   {_cfg.get_local_base(site_name(site))}")
            print(f"{'=' * 64}")
            if dry_run:
                print("  *** DRY-RUN: no files will be changed ***")
            try:
                run_site(site, mode, fetch, mgr=mgr, dry_run=dry_run)
            except (SiteMirrorError, OSError, RuntimeError, paramiko.SSHException) as exc:
                error(f"[{site_name(site)}] aborted: {exc}")
                aborted.append(site_name(site))
    finally:
        if own_mgr:
            mgr.disconnect()
    return aborted


def report_sizes(mgr: SSHManager, sites: Sequence[str], depth: int = 1):
    """Print per-folder file counts and sizes for each site."""
    for site in sites:
        records = enumerate_files(mgr, site)
        rows = directory_sizes(records, site_prefix(site), depth)
        total = sum(r[2] for r in rows)
        print(f"\n{site_name(site)}  ({len(records)} files, {format_size(total)})")
        for folder, files, size in rows:
            print(f"  {format_size(size):>12}  {files:>7} file(s)  {folder}")


def site_status(site_url: str) -> dict:
    """Offline view of a site: inventory size and ledger status counts."""
    name = site_name(site_url)
    inv_path = _cfg.get_inventory_file(name)
    inventory = load_inventory(inv_path) if inv_path.exists() else None
    ledger = Ledger.load(_cfg.get_ledger_file(name))
    counts = ledger.counts()
    return {
        "site": name,
        "inventory": len(inventory) if inventory is not None else None,
        "success": counts[Status.SUCCESS],
        "failed": counts[Status.FAILED],
        "pending": counts[Status.PENDING],
        "untracked": (len([r for r in inventory if r.server_path not in ledger])
                      if inventory is not None else None),
    }
