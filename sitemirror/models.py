"""
Records shared by the inventory, the ledger and the reconciliation engine
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import PurePosixPath
from typing import Optional


class Status(str, Enum):
    PENDING = "Pending"
    SUCCESS = "Success"
    FAILED = "Failed"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "Status":
        """Case-insensitive lookup; anything unrecognised is Pending."""
        value = (raw or "").strip().lower()
        for status in cls:
            if status.value.lower() == value:
                return status
        return cls.PENDING


class Mode(str, Enum):
    SYNC = "sync"        # initial full sync
    RESUME = "resume"    # retry whatever did not succeed
    RECHECK = "recheck"  # verify successful files still exist with the right size
    UPDATE = "update"    # refresh the inventory, then sync new files


@dataclass(frozen=True)
class InventoryRecord:
    """One remote file as seen by the last enumeration."""
    server_path: str
    file_name: str
    size_bytes: int
    created: Optional[datetime] = None
    modified: Optional[datetime] = None
    url: str = ""
    library: str = ""

    @property
    def size_mb(self) -> float:
        return round(self.size_bytes / (1024 * 1024), 2)

    @property
    def name(self) -> str:
        return self.file_name or PurePosixPath(self.server_path).name


@dataclass
class LedgerEntry:
    """Last known transfer outcome for one server path."""
    server_path: str
    local_path: str
    status: Status = Status.PENDING
    last_checked: datetime = field(default_factory=datetime.now)
    message: str = ""
