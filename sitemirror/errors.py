"""
Exception types raised by sitemirror
"""


class SiteMirrorError(Exception):
    """Base class for all sitemirror errors."""


class ConfigError(SiteMirrorError):
    """Missing or unusable configuration (no .sitemirror, no sites, bad YAML)."""


class TransferError(SiteMirrorError):
    """A single remote file could not be copied to the local mirror."""


class LedgerPersistenceError(SiteMirrorError):
    """The sync ledger could not be written to disk."""


class MissingInventoryError(SiteMirrorError):
    """Reconciliation was requested for a site that has no inventory file."""

    def __init__(self, site: str, path):
        super().__init__(f"no inventory for site '{site}' at {path}; "
                         f"run 'sitemirror inventory' first")
        self.site = site
        self.path = path
