"""
Map remote server paths onto the local mirror tree
"""
from pathlib import Path, PurePosixPath


def strip_site_prefix(server_path: str, site_prefix: str) -> str:
    """
    Return *server_path* relative to *site_prefix*, without leading slashes.

    The prefix only matches on a path-segment boundary. When it does not
    match, the whole server path is used as the relative path.
    """
    prefix = site_prefix.rstrip("/")
    rel = server_path
    if prefix and (server_path == prefix or server_path.startswith(prefix + "/")):
        rel = server_path[len(prefix):]
    return rel.lstrip("/\\")


def resolve_local_path(server_path: str, site_prefix: str, local_base) -> Path:
    """Local destination for *server_path* under *local_base*."""
    rel = strip_site_prefix(server_path, site_prefix)
    parts = [p for p in PurePosixPath(rel).parts if p not in ("", ".", "..")]
    return Path(local_base).joinpath(*parts)
