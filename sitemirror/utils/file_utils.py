"""
Local file utilities (size probe, timestamp restore)
"""
import os
from datetime import datetime
from pathlib import Path
from typing import Optional


def local_size(path: Path) -> Optional[int]:
    """
    Byte length of the file at *path*, or None if there is no regular file there.
    A parent component that is not a directory counts as absent; other
    OSErrors (permissions, I/O) propagate.
    """
    try:
        st = path.stat()
    except (FileNotFoundError, NotADirectoryError):
        return None
    if not path.is_file():
        return None
    return st.st_size


def apply_timestamps(path: Path, created: Optional[datetime],
                     modified: Optional[datetime]):
    """
    Set the access/modification times of *path* from the remote record.

    POSIX has no settable creation time, so *created* only stands in for the
    modification time when the record has no *modified* value.
    Raises OSError on failure; callers treat that as a warning.
    """
    stamp = modified or created
    if stamp is None:
        return
    ts = stamp.timestamp()
    os.utime(path, (ts, ts))
