"""
inventory/models.py -- Domain dataclass for asset records.

Pure data container. Persistence lives in inventory/store.py.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Asset:
    """Metadata for a file hosted by an external storage provider.

    file_id is the provider's identifier; url is where the file is served
    from. size is in KB. deleted_at marks a soft delete.

    id is None before the record is written to the database.
    """

    file_id: str
    url: str
    name: Optional[str] = None
    path: Optional[str] = None
    type: str = "file"
    size: int = 100  # KB
    hosted_at: Optional[str] = None  # ISO 8601
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""
    deleted_at: Optional[str] = None
