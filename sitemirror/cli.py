#!/usr/bin/env python3
"""
sitemirror  —  Resumable one-way mirror of remote document sites
================================================================

Subcommands:
  init       Create a .sitemirror config file in the current directory.
  login      Connect to the remote host and check every site is reachable.
  size       Report per-folder sizes of the selected sites.
  inventory  Enumerate the selected sites into inventory files.
  sync       Reconcile the local mirror (--mode sync|resume|recheck|update).
  status     Show ledger status counts per site (no connection needed).
  menu       Interactive menu offering all of the above.

Run 'sitemirror <subcommand> --help' for more details.
"""
import sys
import argparse
from pathlib import Path

from sitemirror.errors import ConfigError


# ── helpers ──────────────────────────────────────────────────────────────────

def _setup(args) -> dict:
    """Load the nearest .sitemirror profile and configure logging."""
    import sitemirror.config as _cfg
    from sitemirror.utils.logging import set_log_file, set_verbose

    set_verbose(getattr(args, "verbose", False))
    profile = _cfg.load_active_profile(getattr(args, "profile", None) or "default")
    set_log_file(_cfg.LOG_FILE)
    if getattr(args, "verbose", False):
        print(f"[config] profile {profile.get('name', 'default')}: "
              f"{len(_cfg.SITES)} site(s), local root {_cfg.LOCAL_ROOT}")
    return profile


def _selected_sites(args) -> list:
    import sitemirror.config as _cfg
    from sitemirror.operations.sites import select_sites
    return select_sites(_cfg.SITES, getattr(args, "site", None))


# ── init ─────────────────────────────────────────────────────────────────────

def cmd_init(args):
    """Create a .sitemirror profile file in the current directory."""
    from sitemirror import config as _cfg
    from sitemirror.operations.sites import normalize_site_url

    target = Path.cwd() / _cfg.PROJECT_FILE

    if target.exists() and not args.force:
        print(f"error: {_cfg.PROJECT_FILE} already exists in {Path.cwd()}", file=sys.stderr)
        print("Use --force to overwrite.", file=sys.stderr)
        sys.exit(1)

    g_defaults = _cfg.load_global_config().get("defaults", {})

    server = args.server or g_defaults.get("server", "example.com")
    if not args.server and sys.stdin.isatty():
        val = input(f"Server hostname [{server}]: ").strip()
        if val:
            server = val

    user = args.user or g_defaults.get("user", "root")
    port = args.port or int(g_defaults.get("port", 22))
    remote_root = args.remote_root or g_defaults.get("remote_root", "/")
    local_root = str(Path(args.local or Path.cwd()).expanduser()).replace("\\", "/")

    sites = [normalize_site_url(s) for s in (args.site or [])]
    if not sites and sys.stdin.isatty():
        entered = input("Site URLs (comma separated, e.g. https://host/sites/Docs): ").strip()
        sites = [normalize_site_url(s.strip()) for s in entered.split(",") if s.strip()]

    def _yq(value: str) -> str:
        """Wrap a string in YAML single quotes, escaping embedded single quotes."""
        return "'" + str(value).replace("'", "''") + "'"

    lines = [
        "# .sitemirror — sitemirror project configuration",
        "#",
        "# profiles: list of mirror profiles for this project.",
        "# Each site is mirrored into <local_root>/<site name>; inventory and",
        "# ledger CSVs are written to data_dir (default: local_root).",
        "profiles:",
        f"  - name: {args.profile or 'default'}",
        f"    server: {_yq(server)}",
        f"    port: {port}",
        f"    user: {_yq(user)}",
        f"    remote_root: {_yq(remote_root)}",
        f"    local_root: {_yq(local_root)}",
    ]
    if args.data_dir:
        lines.append(f"    data_dir: {_yq(args.data_dir)}")
    if sites:
        lines.append("    sites:")
        lines += [f"      - {_yq(s)}" for s in sites]
    else:
        lines.append("    sites: []")

    content = "\n".join(lines) + "\n"

    if args.dry_run:
        print(f"[dry-run] Would write {target}:")
        print(content)
        return

    target.write_text(content, encoding="utf-8")
    print(f"Created {target}")
    if args.verbose:
        print(content)


# ── login / size / inventory ─────────────────────────────────────────────────

def cmd_login(args):
    """Check the connection and the configured site directories."""
    from sitemirror.core.runner import check_login
    from sitemirror.core.ssh_manager import SSHManager

    _setup(args)
    sites = _selected_sites(args)
    with SSHManager() as mgr:
        ok = check_login(mgr, sites)
    if not ok:
        sys.exit(1)


def cmd_size(args):
    """Directory size report for the selected sites."""
    from sitemirror.core.runner import report_sizes
    from sitemirror.core.ssh_manager import SSHManager

    _setup(args)
    sites = _selected_sites(args)
    with SSHManager() as mgr:
        report_sizes(mgr, sites, depth=args.depth)


def cmd_inventory(args):
    """Write a fresh inventory file for each selected site."""
    from sitemirror.core.runner import generate_inventory
    from sitemirror.core.ssh_manager import SSHManager
    from sitemirror.operations.sites import site_name
    from sitemirror.utils.logging import error

    _setup(args)
    sites = _selected_sites(args)
    failed = []
    with SSHManager() as mgr:
        for site in sites:
            try:
                generate_inventory(mgr, site)
            except (OSError, RuntimeError) as exc:
                error(f"[inventory] {site_name(site)}: {exc}")
                failed.append(site)
    if failed:
        sys.exit(1)


# ── sync ─────────────────────────────────────────────────────────────────────

def cmd_sync(args):
    """Reconcile the selected sites in the chosen mode."""
    from sitemirror.core.runner import run_sites
    from sitemirror.operations.sites import select_mode
    from sitemirror.utils.logging import warn

    _setup(args)
    sites = _selected_sites(args)
    mode = select_mode(args.mode)
    try:
        aborted = run_sites(sites, mode, dry_run=args.dry_run)
    except KeyboardInterrupt:
        print()
        warn("Interrupted by user. Ledger is up to date; run with --mode resume to continue.")
        sys.exit(130)
    if aborted:
        warn(f"{len(aborted)} site(s) aborted: {', '.join(aborted)}")
        sys.exit(1)


# ── status ────────────────────────────────────────────────────────────────────

def cmd_status(args):
    """Show ledger status counts for each site."""
    import sitemirror.config as _cfg
    from sitemirror.core.runner import site_status

    profile = _setup(args)
    sites = _selected_sites(args)

    print(f"\nProfile : {profile.get('name', 'default')}")
    print(f"Remote  : {_cfg.SSH_USER}@{_cfg.SSH_HOST}:{_cfg.SSH_PORT}:{_cfg.REMOTE_ROOT}")
    print(f"Local   : {_cfg.LOCAL_ROOT}")
    print()
    print(f"  {'site':<24} {'inventory':>9} {'success':>8} {'failed':>7} {'pending':>8} {'untracked':>9}")
    for site in sites:
        st = site_status(site)
        inv = "-" if st["inventory"] is None else st["inventory"]
        untracked = "-" if st["untracked"] is None else st["untracked"]
        print(f"  {st['site']:<24} {inv:>9} {st['success']:>8} {st['failed']:>7} "
              f"{st['pending']:>8} {untracked:>9}")


# ── menu ──────────────────────────────────────────────────────────────────────

MENU = [
    ("1", "Test login", cmd_login, None),
    ("2", "Directory size report", cmd_size, None),
    ("3", "Generate inventory", cmd_inventory, None),
    ("4", "Sync (initial)", cmd_sync, "sync"),
    ("5", "Resume failed / pending", cmd_sync, "resume"),
    ("6", "Recheck local files", cmd_sync, "recheck"),
    ("7", "Update (refresh inventory + sync)", cmd_sync, "update"),
    ("8", "Status", cmd_status, None),
]


def cmd_menu(args):
    """Interactive menu loop; 'q' quits."""
    while True:
        print(f"\n{'=' * 40}")
        print("  sitemirror")
        print(f"{'=' * 40}")
        for key, label, _, _ in MENU:
            print(f"  {key}. {label}")
        print("  q. Quit")
        try:
            choice = input("Choice: ").strip().lower()
        except (EOFError, KeyboardInterrupt):
            print()
            return
        if choice in ("q", "quit", "exit"):
            return
        item = next((m for m in MENU if m[0] == choice), None)
        if item is None:
            print(f"  unknown choice: {choice!r}")
            continue
        _, _, handler, mode = item
        sub_args = argparse.Namespace(
            profile=args.profile, verbose=args.verbose, site=args.site,
            dry_run=False, mode=mode, depth=1,
        )
        try:
            handler(sub_args)
        except SystemExit:
            pass
        except ConfigError as exc:
            print(f"error: {exc}", file=sys.stderr)


# ── main ──────────────────────────────────────────────────────────────────────

def _add_common(p, dry_run=False):
    p.add_argument("--profile", metavar="NAME", default="default",
                   help="Profile to use (default: default)")
    p.add_argument("--site", action="append", metavar="SITE",
                   help="Site name, number or URL; repeatable; 'all' for every site")
    p.add_argument("-v", "--verbose", action="store_true",
                   help="Show every file, not just actions")
    if dry_run:
        p.add_argument("-n", "--dry-run", action="store_true",
                       help="Preview without applying changes")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sitemirror",
        description="Resumable one-way mirror of remote document sites",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    # ── init ──────────────────────────────────────────────────────────────────
    init_p = subparsers.add_parser(
        "init",
        help="Create a .sitemirror config file in the current directory",
        description="Create a .sitemirror YAML config file for this project.",
    )
    init_p.add_argument("--server", metavar="HOST", help="Remote server hostname or IP")
    init_p.add_argument("--user", metavar="NAME", help="SSH username (default: root)")
    init_p.add_argument("--port", type=int, metavar="N", help="SSH port (default: 22)")
    init_p.add_argument("--remote-root", metavar="PATH",
                        help="Remote directory holding the sites/ tree (default: /)")
    init_p.add_argument("--local", metavar="PATH",
                        help="Local mirror root (default: current directory)")
    init_p.add_argument("--data-dir", metavar="PATH",
                        help="Where inventory and ledger files go (default: local root)")
    init_p.add_argument("--site", action="append", metavar="URL",
                        help="Site URL, e.g. https://host/sites/Docs (repeatable)")
    init_p.add_argument("--profile", metavar="NAME", default="default",
                        help="Profile name to create (default: default)")
    init_p.add_argument("--force", action="store_true", help="Overwrite existing .sitemirror")
    init_p.add_argument("-n", "--dry-run", action="store_true",
                        help="Preview without writing files")
    init_p.add_argument("-v", "--verbose", action="store_true", help="Show extra output")

    login_p = subparsers.add_parser("login", help="Test the connection and site directories")
    _add_common(login_p)

    size_p = subparsers.add_parser("size", help="Directory size report")
    _add_common(size_p)
    size_p.add_argument("--depth", type=int, default=1, metavar="N",
                        help="Folder depth below the site root (default: 1)")

    inv_p = subparsers.add_parser("inventory", help="Generate inventory files")
    _add_common(inv_p)

    sync_p = subparsers.add_parser(
        "sync",
        help="Reconcile the local mirror with the inventory",
        description="Fetch what the ledger says is missing, failed or stale.",
    )
    _add_common(sync_p, dry_run=True)
    sync_p.add_argument("--mode", choices=["sync", "resume", "recheck", "update"],
                        default="sync", help="Operating mode (default: sync)")

    status_p = subparsers.add_parser("status", help="Show ledger status per site")
    _add_common(status_p)

    menu_p = subparsers.add_parser("menu", help="Interactive menu")
    _add_common(menu_p)

    return parser


def main(argv=None):
    """CLI entry point for sitemirror"""
    parser = build_parser()
    args = parser.parse_args(argv)

    handlers = {
        "init": cmd_init,
        "login": cmd_login,
        "size": cmd_size,
        "inventory": cmd_inventory,
        "sync": cmd_sync,
        "status": cmd_status,
        "menu": cmd_menu,
    }
    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)
    try:
        handler(args)
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
