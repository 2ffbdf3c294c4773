"""Operations (site selection, remote scan, transfer)"""
from .sites import normalize_site_url, site_prefix, site_name, select_sites, select_mode
from .scanner import enumerate_files, directory_sizes
from .transfer import download, fetch_file

__all__ = [
    "normalize_site_url", "site_prefix", "site_name", "select_sites", "select_mode",
    "enumerate_files", "directory_sizes",
    "download", "fetch_file",
]
